"""Errors shared by the transport layer and the pipeline client."""


class FoundationError(Exception):
    """Base class for errors raised by foundation utilities."""


class UpstreamError(FoundationError):
    """A pipeline node refused, dropped, or rejected a request.

    Raised for failures on the remote side of the wire, as opposed to
    misconfiguration or bookkeeping errors inside the client.
    """
