"""Load-balancing client for posting document batches to pipeline endpoints.

`PipelineClient` delivers one batch per `post_batch()` call, choosing among
the endpoints that currently hold a session and recovering from failures
without the caller's involvement.

## Usage

```python
from ingest_client.clients.pipeline import PipelineClient
from ingest_client.core.models import Credentials

with PipelineClient(
    endpoints="http://fusion1:8764/api/apollo/index-pipelines/docs/collections/c1/index,"
    "http://fusion2:8764/api/apollo/index-pipelines/docs/collections/c1/index",
    credentials=Credentials(username="admin", password="secret", realm="native"),
) as client:
    client.post_batch([{"id": "doc-1", "title_s": "hello"}])
```

## Failure handling

One logical request (a `post_batch()` call) may span several physical sends:

1. **Failover**: while more than one candidate endpoint remains, a failed
   send removes that endpoint from this request's candidate list (never
   from the session store) and another endpoint is picked at random.
2. **Last-endpoint backoff**: a send to the only remaining candidate that
   fails with `TransientConnectionError` is retried once after a fixed wait.
   Whatever the retry raises propagates.
3. **Re-authentication**: a 401 resets the endpoint's session and repeats
   the send once in place. This never counts as a failover.

When every candidate has failed, the most recent error is raised unchanged.
"""

import itertools
import json
import random
import threading
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any, NoReturn

import attrs
import requests

from ingest_client.config import PipelineClientConfig, parse_endpoints
from ingest_client.core.exceptions import (
    EndpointLostError,
    IngestClientError,
    InitializationError,
    NoEndpointsAvailableError,
    ServerError,
    TransientConnectionError,
    transport_error,
)
from ingest_client.core.models import SESSION_INACTIVITY_TIMEOUT_S, AttemptOutcome, Credentials, Session
from ingest_client.foundation.http import (
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_CONNECTIONS_PER_HOST,
    JSON_CONTENT_TYPE,
    create_pooled_session,
    response_text,
)
from ingest_client.foundation.retry import DEFAULT_WAIT_SECONDS, RetryWithBackoff

from .mixins import LoggerMixin
from .selector import EndpointSelector
from .sessions import SessionStore

SUCCESS_STATUSES = frozenset({200, 204})


class TransientErrorClassifier:
    """Marks refused or reset connections as worth retrying on the same endpoint."""

    def is_retriable(self, exc: BaseException) -> bool:
        return isinstance(exc, TransientConnectionError)

    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        details: dict[str, Any] = {}
        for name in ("endpoint", "request_id", "status_code"):
            value = getattr(exc, name, None)
            if value is not None:
                details[name] = value
        return details


def _endpoint_list(value: str | Sequence[str]) -> list[str]:
    if isinstance(value, str):
        return parse_endpoints(value)
    return parse_endpoints(",".join(value))


@attrs.define(frozen=False, slots=True)
class PipelineClient(LoggerMixin):
    """Client that posts JSON document batches to a set of pipeline endpoints.

    Sessions are established with every endpoint at construction; at least
    one must succeed or `InitializationError` is raised.

    Attributes:
        endpoints: Endpoint URLs, as a list or a comma-separated string.
        credentials: Credentials shared by all endpoints.
        timeout: requests timeout, a number or a (connect, read) tuple.
        max_connections: Concurrent connection ceiling for the default transport.
        max_connections_per_host: Per-host ceiling for the default transport.
        session_inactivity_timeout: Seconds before a session is refreshed.
        retry_backoff: Seconds to wait before retrying the last endpoint.
        rng: Random source for endpoint selection.
        clock: Monotonic time source for session ageing.
        sleep: Function used for the last-endpoint backoff.
        http: Transport to use. A bounded pooled session is created if omitted.

    Note:
        The client is thread-safe; concurrent `post_batch()` calls share
        sessions and the connection pool. Do not use it after `close()`.
    """

    endpoints: list[str] = attrs.field(converter=_endpoint_list)
    credentials: Credentials = attrs.field(factory=Credentials)
    timeout: float | tuple[float, float] = (10.0, 60.0)
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    max_connections_per_host: int = DEFAULT_MAX_CONNECTIONS_PER_HOST
    session_inactivity_timeout: float = SESSION_INACTIVITY_TIMEOUT_S
    retry_backoff: float = DEFAULT_WAIT_SECONDS
    rng: random.Random = attrs.field(factory=random.Random)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    http: requests.Session | None = None
    _store: SessionStore = attrs.field(init=False)
    _selector: EndpointSelector = attrs.field(init=False)
    _retry: RetryWithBackoff = attrs.field(init=False)
    _request_ids: Iterator[int] = attrs.field(init=False, factory=lambda: itertools.count(1))
    _closed: bool = attrs.field(init=False, default=False)
    _close_lock: threading.Lock = attrs.field(init=False, factory=threading.Lock)

    def __attrs_post_init__(self) -> None:
        """Create the transport and establish sessions with every endpoint."""
        if not self.endpoints:
            raise ValueError("At least one pipeline endpoint is required")
        owns_http = self.http is None
        if self.http is None:
            self.http = create_pooled_session(
                max_connections=self.max_connections,
                max_connections_per_host=self.max_connections_per_host,
            )

        self._store = SessionStore(
            http=self.http,
            credentials=self.credentials,
            timeout=self.timeout,
            max_inactivity=self.session_inactivity_timeout,
            clock=self.clock,
        )
        self._selector = EndpointSelector(rng=self.rng)
        self._retry = RetryWithBackoff(
            classifier=TransientErrorClassifier(),
            max_attempts=2,
            wait_seconds=self.retry_backoff,
            sleep=self.sleep,
            logger=self._logger,  # type: ignore[attr-defined]
            message="No other endpoints available, retrying request on the same endpoint",
        )
        try:
            self._store.establish_all(self.endpoints)
        except InitializationError:
            if owns_http:
                self.http.close()
            raise

    @classmethod
    def from_config(cls, config: PipelineClientConfig, **kwargs: Any) -> "PipelineClient":
        """Create PipelineClient from PipelineClientConfig.

        Args:
            config: Client configuration.
            **kwargs: Overrides for non-config attributes (rng, clock, sleep, http).

        Returns:
            Connected PipelineClient instance.
        """
        return cls(
            endpoints=config.endpoints,
            credentials=config.credentials,
            timeout=config.timeout,
            max_connections=config.max_connections,
            max_connections_per_host=config.max_connections_per_host,
            session_inactivity_timeout=config.session_inactivity_timeout,
            retry_backoff=config.retry_backoff,
            **kwargs,
        )

    @property
    def http_client(self) -> requests.Session:
        """The shared transport."""
        if self.http is None:
            raise RuntimeError("HTTP transport is not initialized")
        return self.http

    @property
    def sessions(self) -> SessionStore:
        return self._store

    def post_batch(self, documents: Sequence[Any]) -> None:
        """Post one batch of documents, failing over between endpoints as needed.

        Args:
            documents: Sequence of JSON-serializable documents. Serialized once
                and reused by every attempt.

        Raises:
            TypeError: If `documents` is a mapping, a string or bytes rather
                than a sequence of documents.
            NoEndpointsAvailableError: If no endpoint holds a session.
            IngestClientError: The error from the last endpoint tried, once
                every candidate has failed.
        """
        if isinstance(documents, (Mapping, str, bytes, bytearray)):
            msg = f"documents must be a sequence of documents, got {type(documents).__name__}"
            raise TypeError(msg)
        batch = list(documents)
        json_body = json.dumps(batch).encode("utf-8")
        request_id = next(self._request_ids)
        candidates = self._store.snapshot()

        last_error: IngestClientError | None = None
        while True:
            endpoint = self._selector.pick(candidates)
            if endpoint is None:
                msg = (
                    "No available endpoints! Check log for previous errors as to why there are "
                    "no more endpoints available. This is a fatal error."
                )
                raise NoEndpointsAvailableError(msg)
            self._logger.debug(  # type: ignore[attr-defined]
                "POSTing batch of %d documents",
                len(batch),
                extra={"endpoint": endpoint, "request_id": request_id},
            )

            error = self._attempt(endpoint, json_body, request_id, last_candidate=len(candidates) == 1)
            if error is None:
                if last_error is not None:
                    self._logger.info(  # type: ignore[attr-defined]
                        "Re-try request succeeded after failover",
                        extra={"endpoint": endpoint, "request_id": request_id, "error": str(last_error)},
                    )
                return

            outcome = AttemptOutcome.EXHAUSTED if len(candidates) == 1 else AttemptOutcome.FAILOVER
            if outcome is AttemptOutcome.FAILOVER:
                candidates.remove(endpoint)
                last_error = error
                self._logger.info(  # type: ignore[attr-defined]
                    "Will re-try failed request on another endpoint",
                    extra={"endpoint": endpoint, "request_id": request_id, "remaining": len(candidates)},
                )
                continue

            self._logger.error(  # type: ignore[attr-defined]
                "Failing request, no more endpoints to try",
                extra={"endpoint": endpoint, "request_id": request_id, "error": str(error)},
            )
            raise error

    def _attempt(
        self, endpoint: str, json_body: bytes, request_id: int, last_candidate: bool
    ) -> IngestClientError | None:
        """Run one attempt against `endpoint`, returning its error or None on success."""
        try:
            if last_candidate:
                self._retry.call(self.send, endpoint, json_body, request_id)
            else:
                self.send(endpoint, json_body, request_id)
        except IngestClientError as e:
            self._logger.error(  # type: ignore[attr-defined]
                "Failed to send request",
                extra={
                    "endpoint": endpoint,
                    "request_id": request_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return e
        return None

    def send(self, endpoint: str, json_body: bytes, request_id: int) -> None:
        """Make one physical POST of `json_body` to `endpoint`.

        A 401 response resets the endpoint's session and repeats the POST once.

        Raises:
            EndpointLostError: If the session cannot be refreshed or reset.
            ServerError: If the endpoint answers with anything but 200/204.
            TransientConnectionError: If the connection is refused or reset.
            TransportError: For any other transport failure.
        """
        session = self._store.get_or_refresh(endpoint, request_id)
        if session is None:
            msg = f"Failed to re-connect to {endpoint} after session loss when processing request {request_id}"
            raise EndpointLostError(msg, endpoint=endpoint, request_id=request_id)

        resp = self._post(endpoint, json_body, request_id, session)
        try:
            if resp.status_code == 401:
                self._logger.error(  # type: ignore[attr-defined]
                    "Unauthorized error (401), will re-try to establish session",
                    extra={"endpoint": endpoint, "request_id": request_id},
                )
                resp.close()
                session = self._store.reset(endpoint)
                if session is None:
                    msg = (
                        f"After re-establishing session when processing request {request_id}, "
                        f"endpoint {endpoint} is no longer active! Try another endpoint."
                    )
                    raise EndpointLostError(msg, endpoint=endpoint, request_id=request_id)

                self._logger.info(  # type: ignore[attr-defined]
                    "Going to re-try request after session re-established",
                    extra={"endpoint": endpoint, "request_id": request_id},
                )
                resp = self._post(endpoint, json_body, request_id, session)
                if resp.status_code in SUCCESS_STATUSES:
                    self._logger.info(  # type: ignore[attr-defined]
                        "Re-try request after session timeout succeeded",
                        extra={"endpoint": endpoint, "request_id": request_id},
                    )
                    return

            if resp.status_code not in SUCCESS_STATUSES:
                self._raise_server_error(endpoint, resp, request_id)
        finally:
            resp.close()

    def _post(self, endpoint: str, json_body: bytes, request_id: int, session: Session) -> requests.Response:
        try:
            return self.http_client.post(
                endpoint,
                data=json_body,
                headers={"Content-Type": JSON_CONTENT_TYPE},
                cookies=session.cookies,
                auth=session.auth,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise transport_error(e, endpoint=endpoint, request_id=request_id) from e

    @staticmethod
    def _raise_server_error(endpoint: str, resp: requests.Response, request_id: int) -> NoReturn:
        text = response_text(resp)
        msg = f"POST request {request_id} to [{endpoint}] failed due to: ({resp.status_code}) {resp.reason}: {text}"
        raise ServerError(msg, status_code=resp.status_code, body=text, endpoint=endpoint, request_id=request_id)

    def close(self) -> None:
        """Drop all sessions and close the transport.

        Calling close() a second time logs an error and does nothing else.
        """
        with self._close_lock:
            if self._closed:
                self._logger.error("Already shut down")  # type: ignore[attr-defined]
                return
            self._closed = True
            self._store.clear()
            try:
                self.http_client.close()
            except OSError as e:
                self._logger.warning(  # type: ignore[attr-defined]
                    "Failed to close HTTP transport",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )

    def __enter__(self) -> "PipelineClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
