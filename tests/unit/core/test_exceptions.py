"""Unit tests for core.exceptions module."""

import pytest
import requests

from ingest_client.core.exceptions import (
    EndpointLostError,
    IngestClientError,
    InitializationError,
    NoEndpointsAvailableError,
    ServerError,
    TransientConnectionError,
    TransportError,
    transport_error,
)
from ingest_client.foundation.exceptions import UpstreamError

ENDPOINT = "http://fusion-a:8764/api/index"


class TestHierarchy:
    """Test suite for the exception hierarchy."""

    @pytest.mark.parametrize(
        "exc",
        [
            InitializationError("x"),
            NoEndpointsAvailableError("x"),
            EndpointLostError("x", endpoint=ENDPOINT),
            ServerError("x", status_code=500),
            TransportError("x", endpoint=ENDPOINT),
            TransientConnectionError("x", endpoint=ENDPOINT),
        ],
        ids=lambda e: type(e).__name__,
    )
    def test_all_errors_share_base(self, exc: Exception) -> None:
        assert isinstance(exc, IngestClientError)

    def test_remote_failures_are_upstream_errors(self) -> None:
        """Test which errors are attributed to the remote service.

        **Why this test is important:**
          - Callers distinguish remote failures from client misuse

        **What it tests:**
          - Server and transport errors are UpstreamError
          - Session bookkeeping errors are not
        """
        assert isinstance(ServerError("x", status_code=502), UpstreamError)
        assert isinstance(TransientConnectionError("x", endpoint=ENDPOINT), UpstreamError)
        assert not isinstance(NoEndpointsAvailableError("x"), UpstreamError)
        assert not isinstance(EndpointLostError("x", endpoint=ENDPOINT), UpstreamError)

    def test_server_error_attributes(self) -> None:
        exc = ServerError("boom", status_code=503, body="busy", endpoint=ENDPOINT, request_id=7)

        assert str(exc) == "boom"
        assert (exc.status_code, exc.body, exc.endpoint, exc.request_id) == (503, "busy", ENDPOINT, 7)


class TestTransportError:
    """Test suite for transport_error()."""

    @pytest.mark.parametrize(
        "cause",
        [requests.ConnectionError("refused"), requests.ConnectTimeout("connect timed out")],
        ids=["refused", "connect-timeout"],
    )
    def test_connection_failures_are_transient(self, cause: requests.RequestException) -> None:
        exc = transport_error(cause, endpoint=ENDPOINT, request_id=4)

        assert isinstance(exc, TransientConnectionError)
        assert exc.endpoint == ENDPOINT
        assert exc.request_id == 4

    @pytest.mark.parametrize(
        "cause",
        [requests.ReadTimeout("read timed out"), requests.exceptions.ChunkedEncodingError("bad chunk")],
        ids=["read-timeout", "chunked"],
    )
    def test_other_failures_are_not_transient(self, cause: requests.RequestException) -> None:
        exc = transport_error(cause, endpoint=ENDPOINT)

        assert type(exc) is TransportError

    def test_message_names_request_and_endpoint(self) -> None:
        exc = transport_error(requests.ConnectionError("refused"), endpoint=ENDPOINT, request_id=12)

        assert str(exc) == f"Request 12 to [{ENDPOINT}] failed: refused"

    def test_message_without_request_id(self) -> None:
        exc = transport_error(requests.ConnectionError("refused"), endpoint=ENDPOINT)

        assert str(exc).startswith(f"Request to [{ENDPOINT}]")
