"""Shared fixtures for client tests.

This module provides a mocked requests transport, response factories and
client builders used across the session store and pipeline client tests.
"""

# pylint: disable=redefined-outer-name
# Pytest fixtures intentionally redefine fixture names - this is expected behavior

import random
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests
from requests.cookies import RequestsCookieJar

from ingest_client.clients.pipeline import PipelineClient
from ingest_client.clients.sessions import SessionStore
from ingest_client.core.models import Credentials


def _make_response(status_code: int = 204, text: str = "", cookies: dict[str, str] | None = None) -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.reason = "Reason"
    resp.text = text
    resp.url = "http://example.invalid"
    jar = RequestsCookieJar()
    for name, value in (cookies or {}).items():
        jar.set(name, value)
    resp.cookies = jar
    return resp


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mocked requests.Response objects."""
    return _make_response


@pytest.fixture
def mock_http() -> MagicMock:
    """Create a mock requests.Session for testing.

    Every POST answers 204 unless a test routes it elsewhere.
    """
    session = MagicMock(spec=requests.Session)
    session.post = MagicMock(return_value=_make_response(204))
    return session


@pytest.fixture
def route(mock_http: MagicMock) -> Callable[[dict[str, Any]], None]:
    """Route POSTs by URL to scripted outcomes.

    Each URL maps to an outcome or a list of outcomes consumed in order (the
    last one repeats). An outcome is an HTTP status code, a response mock, or
    an exception instance to raise.
    """

    def _route(script: dict[str, Any]) -> None:
        queues = {url: list(o) if isinstance(o, list) else [o] for url, o in script.items()}

        def _post(url: str, **kwargs: Any) -> Any:
            queue = queues[url]
            outcome = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(outcome, int):
                return _make_response(outcome, text=f"status {outcome}")
            return outcome

        mock_http.post.side_effect = _post

    return _route


@pytest.fixture
def mock_sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def basic_credentials() -> Credentials:
    return Credentials(username="admin", password="secret")


@pytest.fixture
def realm_credentials() -> Credentials:
    return Credentials(username="admin", password="secret", realm="native")


@pytest.fixture
def make_store(mock_http: MagicMock, clock: Any) -> Callable[..., SessionStore]:
    def _make(credentials: Credentials, **kwargs: Any) -> SessionStore:
        return SessionStore(http=mock_http, credentials=credentials, clock=clock, **kwargs)

    return _make


@pytest.fixture
def make_client(
    mock_http: MagicMock, clock: Any, mock_sleep: MagicMock, basic_credentials: Credentials
) -> Callable[..., PipelineClient]:
    """Build a PipelineClient wired to the mocked transport, clock and sleep."""

    def _make(
        endpoints: list[str] | str,
        credentials: Credentials | None = None,
        rng: random.Random | None = None,
        **kwargs: Any,
    ) -> PipelineClient:
        return PipelineClient(
            endpoints=endpoints,
            credentials=credentials or basic_credentials,
            http=mock_http,
            clock=clock,
            sleep=mock_sleep,
            rng=rng or random.Random(7),
            **kwargs,
        )

    return _make


def first_pick(index: int) -> MagicMock:
    """Random source whose first multi-candidate pick is `index`."""
    rng = MagicMock(spec=random.Random)
    rng.randrange.return_value = index
    return rng


@pytest.fixture
def pick() -> Callable[[int], MagicMock]:
    return first_pick
