"""Per-endpoint session store.

The store maps every live endpoint URL to its `Session` and is the only place
sessions are created, refreshed or dropped. A single re-entrant lock guards
the whole map: the staleness check and the refresh that follows it happen
atomically, and a reset is never observed half-done by a thread taking a
snapshot of the endpoint set.

Network I/O for ingestion requests happens outside the lock; only login
exchanges (which mutate the store) run while holding it.

## Authentication modes

- **Realm configured**: each endpoint logs in through the session API
  (`<base>/api/session?realmName=<realm>`) and keeps the returned cookies in
  a private jar.
- **No realm**: sessions carry pre-emptive basic auth; establishing one only
  stamps the time.
"""

import json
import threading
import time
from collections.abc import Callable, Iterable
from urllib.parse import urlsplit

import attrs
import requests
from requests.cookies import RequestsCookieJar

from ingest_client.core.exceptions import (
    IngestClientError,
    InitializationError,
    ServerError,
    transport_error,
)
from ingest_client.core.models import SESSION_INACTIVITY_TIMEOUT_S, Credentials, Session
from ingest_client.foundation.http import JSON_CONTENT_TYPE, response_text

from .mixins import LoggerMixin

LOGIN_OK_STATUSES = frozenset({200, 201, 204})


def session_api_url(endpoint: str) -> str:
    """Derive the session API URL from an endpoint URL.

    The base is everything before the first `/api` path segment; endpoints
    without one fall back to scheme and host.

    Example:
        ```python
        session_api_url("http://fusion:8764/api/apollo/index-pipelines/p/collections/c/index")
        # Returns: "http://fusion:8764/api/session"
        ```
    """
    at = endpoint.find("/api")
    if at >= 0:
        base = endpoint[:at]
    else:
        parts = urlsplit(endpoint)
        base = f"{parts.scheme}://{parts.netloc}"
    return f"{base}/api/session"


@attrs.define(frozen=False, slots=True)
class SessionStore(LoggerMixin):
    """Thread-safe map of endpoint URL to authenticated `Session`.

    Attributes:
        http: Shared requests session used for login exchanges.
        credentials: Credentials for every endpoint.
        timeout: requests timeout for login exchanges.
        max_inactivity: Seconds after which a session is considered stale.
        clock: Monotonic time source in seconds.

    Example:
        ```python
        store = SessionStore(http=create_pooled_session(), credentials=Credentials("admin", "pw", "native"))
        store.establish_all(["http://fusion1:8764/api/index", "http://fusion2:8764/api/index"])
        session = store.get_or_refresh("http://fusion1:8764/api/index")
        ```
    """

    http: requests.Session
    credentials: Credentials
    timeout: float | tuple[float, float] = 60.0
    max_inactivity: float = SESSION_INACTIVITY_TIMEOUT_S
    clock: Callable[[], float] = time.monotonic
    _sessions: dict[str, Session] = attrs.field(init=False, factory=dict)
    _lock: threading.RLock = attrs.field(init=False, factory=threading.RLock)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, endpoint: object) -> bool:
        with self._lock:
            return endpoint in self._sessions

    def get(self, endpoint: str) -> Session | None:
        """Return the stored session without checking staleness."""
        with self._lock:
            return self._sessions.get(endpoint)

    def snapshot(self) -> list[str]:
        """Return a new list of the endpoints that currently hold a session."""
        with self._lock:
            return list(self._sessions)

    def establish(self, endpoint: str) -> Session:
        """Authenticate against `endpoint` and return a fresh session.

        Does not touch the store.

        Raises:
            ServerError: If the session API answers with a non-success status.
            TransientConnectionError: If the endpoint refuses or drops the connection.
            TransportError: For any other transport failure.
        """
        creds = self.credentials
        if not creds.uses_login:
            return Session(endpoint=endpoint, established_at=self.clock(), auth=creds.basic_auth())

        login_url = session_api_url(endpoint)
        body = json.dumps({"username": creds.username, "password": creds.password}).encode("utf-8")
        try:
            resp = self.http.post(
                login_url,
                params={"realmName": creds.realm},
                data=body,
                headers={"Content-Type": JSON_CONTENT_TYPE},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise transport_error(e, endpoint=login_url) from e

        try:
            if resp.status_code not in LOGIN_OK_STATUSES:
                text = response_text(resp)
                msg = (
                    f"POST credentials to session API [{login_url}] failed due to: "
                    f"{resp.status_code} {resp.reason}: {text}"
                )
                raise ServerError(msg, status_code=resp.status_code, body=text, endpoint=endpoint)
            cookies = RequestsCookieJar()
            cookies.update(resp.cookies)
        finally:
            resp.close()

        self._logger.info(  # type: ignore[attr-defined]
            "Established secure session with session API",
            extra={"endpoint": endpoint, "user": creds.username, "realm": creds.realm},
        )
        return Session(endpoint=endpoint, established_at=self.clock(), cookies=cookies)

    def establish_all(self, endpoints: Iterable[str]) -> None:
        """Establish a session with every endpoint, tolerating partial failure.

        Endpoints that fail are logged and left out of the store.

        Raises:
            InitializationError: If no endpoint could be established. The last
                failure is chained as the cause and the store is left empty.
        """
        endpoint_list = list(endpoints)
        established: dict[str, Session] = {}
        last_error: IngestClientError | None = None
        for url in endpoint_list:
            try:
                established[url] = self.establish(url)
            except IngestClientError as e:
                last_error = e
                self._logger.error(  # type: ignore[attr-defined]
                    "Failed to establish session",
                    extra={"endpoint": url, "error": str(e), "error_type": type(e).__name__},
                )

        with self._lock:
            self._sessions.clear()
            self._sessions.update(established)

        if not established:
            msg = f"Failed to establish session with endpoint(s): {endpoint_list}"
            raise InitializationError(msg) from last_error

        self._logger.info(  # type: ignore[attr-defined]
            "Established sessions with %d of %d endpoints",
            len(established),
            len(endpoint_list),
            extra={"user": self.credentials.username, "realm": self.credentials.realm},
        )

    def reset(self, endpoint: str) -> Session | None:
        """Re-establish the session for `endpoint`.

        On success the new session replaces the stored one. On failure the
        endpoint is removed from the store and None is returned.
        """
        with self._lock:
            try:
                session = self.establish(endpoint)
            except IngestClientError as e:
                self._logger.error(  # type: ignore[attr-defined]
                    "Failed to re-establish session, dropping endpoint",
                    extra={"endpoint": endpoint, "error": str(e), "error_type": type(e).__name__},
                )
                self._sessions.pop(endpoint, None)
                return None
            self._sessions[endpoint] = session
            return session

    def get_or_refresh(self, endpoint: str, request_id: int | None = None) -> Session | None:
        """Return a usable session for `endpoint`, refreshing it if missing or stale.

        Returns:
            The current or refreshed session, or None if refreshing failed
            (the endpoint has then been dropped from the store).
        """
        with self._lock:
            session = self._sessions.get(endpoint)
            if session is not None and not session.is_stale(self.clock(), self.max_inactivity):
                return session

            self._logger.info(  # type: ignore[attr-defined]
                "Session is likely expired (or soon will be), re-setting it before processing request",
                extra={"endpoint": endpoint, "request_id": request_id},
            )
            return self.reset(endpoint)

    def clear(self) -> None:
        """Drop every session."""
        with self._lock:
            self._sessions.clear()
