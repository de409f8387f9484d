"""Domain models for the ingest client.

All classes use `attrs` for concise, correct class definitions.
"""

import enum

import attrs
from requests.auth import HTTPBasicAuth
from requests.cookies import RequestsCookieJar

# Sessions idle longer than this are assumed to have expired server-side
SESSION_INACTIVITY_TIMEOUT_S = 599.0


@attrs.define(frozen=True, slots=True)
class Credentials:
    """Credentials used to authenticate against every endpoint.

    A realm switches the client to cookie sessions obtained from the login
    resource; without one, requests carry pre-emptive basic auth.

    Attributes:
        username: Login name, or None for unauthenticated endpoints.
        password: Password (never shown in repr).
        realm: Optional tenant/realm name for the login resource.
    """

    username: str | None = None
    password: str | None = attrs.field(default=None, repr=False)
    realm: str | None = None

    @property
    def uses_login(self) -> bool:
        """Whether sessions are obtained from the login resource."""
        return self.realm is not None

    def basic_auth(self) -> HTTPBasicAuth | None:
        """Return pre-emptive basic auth, or None in realm mode or without a user."""
        if self.uses_login or self.username is None:
            return None
        return HTTPBasicAuth(self.username, self.password or "")


@attrs.define(frozen=True, slots=True, eq=False)
class Session:
    """Authentication state for one endpoint.

    Attributes:
        endpoint: Endpoint URL this session belongs to.
        established_at: Monotonic timestamp (seconds) of establishment.
        cookies: Cookies returned by the login resource. Private to the endpoint.
        auth: Pre-emptive basic auth attached to every request, if any.
    """

    endpoint: str
    established_at: float
    cookies: RequestsCookieJar = attrs.field(factory=RequestsCookieJar)
    auth: HTTPBasicAuth | None = None

    def age(self, now: float) -> float:
        return now - self.established_at

    def is_stale(self, now: float, max_inactivity: float = SESSION_INACTIVITY_TIMEOUT_S) -> bool:
        """Return True once the session may have expired server-side."""
        return self.age(now) >= max_inactivity


class AttemptOutcome(enum.Enum):
    """Next step of a logical request after one attempt on an endpoint.

    Retries against the same endpoint (401 re-authentication, last-endpoint
    backoff) happen inside the attempt and never surface here.
    """

    SUCCESS = "success"
    FAILOVER = "failover"
    EXHAUSTED = "exhausted"
