"""Shared HTTP utilities for bounded connection pooling.

This module builds the single `requests.Session` that every pipeline endpoint
shares. Retries are not performed at this layer: the pipeline client makes
every retry and failover decision itself, so the urllib3 adapter is configured
to fail immediately and surface the transport error.

Connection limits:
- `max_connections` bounds the number of requests in flight across all hosts.
- `max_connections_per_host` bounds the urllib3 pool for each destination.

Both limits block the caller until a connection frees up instead of failing.
"""

import logging
import threading
from http.cookiejar import DefaultCookiePolicy
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Default pool configuration
DEFAULT_MAX_CONNECTIONS = 500
DEFAULT_MAX_CONNECTIONS_PER_HOST = 100
DEFAULT_POOL_CONNECTIONS = 10

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

logger = logging.getLogger("ingest_client.http")


class RejectAllCookiesPolicy(DefaultCookiePolicy):
    """Cookie policy that never stores cookies in the jar it is attached to.

    Installed on the shared session so login cookies only live in the
    per-endpoint jars held by the session store.
    """

    def set_ok(self, cookie: Any, request: Any) -> bool:
        return False


class BoundedHTTPAdapter(HTTPAdapter):
    """HTTPAdapter that caps the total number of in-flight requests.

    urllib3 only bounds connections per host; a semaphore shared by every
    mounted prefix adds the global ceiling.

    Attributes:
        max_connections: Maximum number of concurrent requests across all hosts.
    """

    def __init__(self, max_connections: int = DEFAULT_MAX_CONNECTIONS, **kwargs: Any) -> None:
        if max_connections < 1:
            msg = f"max_connections must be positive, got {max_connections}"
            raise ValueError(msg)
        self.max_connections = max_connections
        self._slots = threading.BoundedSemaphore(max_connections)
        super().__init__(**kwargs)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        with self._slots:
            return super().send(request, **kwargs)


def create_pooled_session(
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
    max_connections_per_host: int = DEFAULT_MAX_CONNECTIONS_PER_HOST,
    pool_connections: int = DEFAULT_POOL_CONNECTIONS,
) -> requests.Session:
    """Create a requests session with bounded, blocking connection pools.

    Args:
        max_connections: Ceiling on concurrent requests across all hosts
            (default: 500).
        max_connections_per_host: Ceiling on pooled connections to a single
            host (default: 100).
        pool_connections: Number of per-host pools to cache (default: 10).

    Returns:
        Configured requests.Session shared by all endpoints.

    Example:
        ```python
        from ingest_client.foundation.http import create_pooled_session

        session = create_pooled_session(max_connections=50, max_connections_per_host=10)
        response = session.post("http://fusion:8764/api/index", data=b"[]")
        ```

    Note:
        One adapter instance is mounted for both HTTP and HTTPS so the global
        ceiling is shared between the two schemes.
    """
    if max_connections_per_host > max_connections:
        msg = (
            f"max_connections_per_host ({max_connections_per_host}) cannot exceed "
            f"max_connections ({max_connections})"
        )
        raise ValueError(msg)

    session = requests.Session()
    session.cookies.set_policy(RejectAllCookiesPolicy())
    adapter = BoundedHTTPAdapter(
        max_connections=max_connections,
        pool_connections=pool_connections,
        pool_maxsize=max_connections_per_host,
        pool_block=True,
        max_retries=Retry(total=0, read=False),
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def response_text(response: requests.Response) -> str:
    """Return the response body as text for error messages.

    A body that cannot be read yields an empty string; the failure is logged
    since the text is only used to compose an error message.
    """
    try:
        return response.text
    except requests.RequestException as e:
        logger.warning("Failed to read response body", extra={"error": str(e), "url": response.url})
        return ""
