"""Exception hierarchy for the ingest client.

All exceptions inherit from `IngestClientError`, so callers can catch every
client failure in one place. Failures caused by the remote pipeline service
or the network additionally inherit from `UpstreamError`.

## Exception Hierarchy

- `InitializationError`: no endpoint could establish a session at construction
- `NoEndpointsAvailableError`: the session store is empty when a request starts
- `EndpointLostError`: a session could not be refreshed for an endpoint
- `ServerError`: the endpoint answered with an unexpected HTTP status
- `TransientConnectionError`: connection refused/reset (retryable)
- `TransportError`: any other transport failure (read timeout, bad response)

## Retry Semantics

```python
TransientConnectionError  → failover, or one backoff retry on the last endpoint
ServerError               → failover
TransportError            → failover
EndpointLostError         → failover
NoEndpointsAvailableError → fatal
InitializationError       → fatal
```

Once every candidate endpoint has failed, the most recent of these errors is
raised to the caller as-is. Transport errors are chained (`raise ... from e`)
to the underlying `requests` exception.
"""

import requests

from ingest_client.foundation.exceptions import UpstreamError


class IngestClientError(Exception):
    """Base exception class for all ingest client errors."""


class InitializationError(IngestClientError):
    """Raised when no endpoint could establish a session at construction time.

    The underlying cause of the last failed endpoint is available as
    `__cause__`.
    """


class NoEndpointsAvailableError(IngestClientError):
    """Raised when the session store holds no endpoints at request start.

    Endpoints drop out of the store when their session cannot be
    re-established; earlier log records explain why each one was lost.
    """


class EndpointLostError(IngestClientError):
    """Raised when a session for an endpoint cannot be refreshed mid-request."""

    def __init__(self, message: str, *, endpoint: str, request_id: int | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.request_id = request_id


class ServerError(IngestClientError, UpstreamError):
    """Raised when an endpoint responds with an unexpected HTTP status.

    Attributes:
        status_code: HTTP status code returned by the endpoint.
        body: Response body text (may be empty).
        endpoint: URL that produced the response.
        request_id: Logical request id, or None for login requests.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        endpoint: str | None = None,
        request_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint
        self.request_id = request_id


class TransportError(IngestClientError, UpstreamError):
    """Raised when the transport fails for a reason other than a lost connection."""

    def __init__(self, message: str, *, endpoint: str, request_id: int | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.request_id = request_id


class TransientConnectionError(TransportError):
    """Raised when a connection to an endpoint is refused or reset."""


def transport_error(exc: requests.RequestException, *, endpoint: str, request_id: int | None = None) -> TransportError:
    """Translate a `requests` failure into the client taxonomy.

    Connection-level failures (refused, reset, connect timeout) become
    `TransientConnectionError`; everything else becomes `TransportError`.
    The caller is expected to chain the result with `raise ... from exc`.
    """
    prefix = f"Request {request_id} to" if request_id is not None else "Request to"
    msg = f"{prefix} [{endpoint}] failed: {exc}"
    if isinstance(exc, requests.ConnectionError):
        return TransientConnectionError(msg, endpoint=endpoint, request_id=request_id)
    return TransportError(msg, endpoint=endpoint, request_id=request_id)
