"""Configuration management for the ingest client.

This module provides the configuration system for the pipeline client using
Pydantic models. Settings are loaded from environment variables, and the
`get_settings()` function uses `@lru_cache` so they are read once per process.

## Environment Variables

**Endpoints and credentials**
- `INGEST_ENDPOINTS`: Comma-separated list of pipeline endpoint URLs
  (required), e.g.
  `http://fusion1:8764/api/apollo/index-pipelines/docs/collections/c1/index`
- `INGEST_USERNAME`: Username for authentication (optional)
- `INGEST_PASSWORD`: Password for authentication (optional)
- `INGEST_REALM`: Realm name. When set, sessions are obtained from the
  login resource; otherwise requests use pre-emptive basic auth.

**Transport**
- `INGEST_CONNECT_TIMEOUT`: Connect timeout in seconds (default: `10`)
- `INGEST_READ_TIMEOUT`: Read timeout in seconds (default: `60`)
- `INGEST_MAX_CONNECTIONS`: Concurrent connection ceiling (default: `500`)
- `INGEST_MAX_CONNECTIONS_PER_HOST`: Per-host ceiling (default: `100`)

**Sessions and retries**
- `INGEST_SESSION_INACTIVITY_TIMEOUT`: Seconds before a session is
  considered expired (default: `599`)
- `INGEST_RETRY_BACKOFF`: Seconds to wait before retrying the last
  remaining endpoint (default: `1`)

**Logging**
- `LOG_LEVEL`: Level for the `ingest_client` loggers (default: `INFO`)

## Usage

```python
from ingest_client.config import get_settings
from ingest_client.clients import PipelineClient

settings = get_settings()
with PipelineClient.from_config(settings.client) as client:
    client.post_batch([{"id": "doc-1", "title": "hello"}])
```
"""

import os
from functools import lru_cache

from pydantic import BaseModel, model_validator
from pydantic_settings import SettingsConfigDict

from ingest_client.core.models import SESSION_INACTIVITY_TIMEOUT_S, Credentials
from ingest_client.foundation.http import DEFAULT_MAX_CONNECTIONS, DEFAULT_MAX_CONNECTIONS_PER_HOST
from ingest_client.foundation.retry import DEFAULT_WAIT_SECONDS


def parse_endpoints(value: str) -> list[str]:
    """Split a comma-separated endpoint list, dropping blanks and duplicates.

    Args:
        value: Comma-separated URLs.

    Returns:
        Endpoint URLs in their original order.
    """
    endpoints: list[str] = []
    for item in value.split(","):
        url = item.strip()
        if url and url not in endpoints:
            endpoints.append(url)
    return endpoints


class PipelineClientConfig(BaseModel):
    """Configuration for the pipeline client.

    Attributes:
        endpoints: Pipeline endpoint URLs. Must not be empty.
        username: Username for authentication.
        password: Password for authentication.
        realm: Realm for the login resource. None selects basic auth.
        connect_timeout: Connect timeout in seconds. Default: 10.
        read_timeout: Read timeout in seconds. Default: 60.
        max_connections: Concurrent connection ceiling. Default: 500.
        max_connections_per_host: Per-host connection ceiling. Default: 100.
        session_inactivity_timeout: Session lifetime in seconds. Default: 599.
        retry_backoff: Wait before retrying the last endpoint. Default: 1.
    """

    endpoints: list[str]
    username: str | None = None
    password: str | None = None
    realm: str | None = None
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    max_connections_per_host: int = DEFAULT_MAX_CONNECTIONS_PER_HOST
    session_inactivity_timeout: float = SESSION_INACTIVITY_TIMEOUT_S
    retry_backoff: float = DEFAULT_WAIT_SECONDS

    model_config = SettingsConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_consistency(self) -> "PipelineClientConfig":
        if not self.endpoints:
            raise ValueError("At least one pipeline endpoint is required")
        if self.realm is not None and (not self.username or self.password is None):
            raise ValueError("A realm requires both username and password")
        if self.max_connections < 1 or self.max_connections_per_host < 1:
            raise ValueError("Connection limits must be positive")
        if self.max_connections_per_host > self.max_connections:
            raise ValueError("max_connections_per_host cannot exceed max_connections")
        return self

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password, realm=self.realm)

    @property
    def timeout(self) -> tuple[float, float]:
        """(connect, read) timeout tuple for requests."""
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_env(cls) -> "PipelineClientConfig":
        """Create PipelineClientConfig from environment variables.

        Returns:
            Configured PipelineClientConfig instance.

        Raises:
            ValueError: If INGEST_ENDPOINTS is missing or a value is invalid.
        """
        endpoints = parse_endpoints(os.getenv("INGEST_ENDPOINTS", ""))
        if not endpoints:
            raise ValueError("INGEST_ENDPOINTS is required")

        return cls(
            endpoints=endpoints,
            username=os.getenv("INGEST_USERNAME") or None,
            password=os.getenv("INGEST_PASSWORD"),
            realm=os.getenv("INGEST_REALM") or None,
            connect_timeout=float(os.getenv("INGEST_CONNECT_TIMEOUT", "10")),
            read_timeout=float(os.getenv("INGEST_READ_TIMEOUT", "60")),
            max_connections=int(os.getenv("INGEST_MAX_CONNECTIONS", str(DEFAULT_MAX_CONNECTIONS))),
            max_connections_per_host=int(
                os.getenv("INGEST_MAX_CONNECTIONS_PER_HOST", str(DEFAULT_MAX_CONNECTIONS_PER_HOST))
            ),
            session_inactivity_timeout=float(
                os.getenv("INGEST_SESSION_INACTIVITY_TIMEOUT", str(SESSION_INACTIVITY_TIMEOUT_S))
            ),
            retry_backoff=float(os.getenv("INGEST_RETRY_BACKOFF", str(DEFAULT_WAIT_SECONDS))),
        )


class Settings(BaseModel):
    """Immutable runtime configuration.

    Attributes:
        client: Pipeline client configuration.
        log_level: Level for the `ingest_client` loggers.
    """

    client: PipelineClientConfig
    log_level: str = "INFO"

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            client=PipelineClientConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Load and return application settings (cached per process).

    Note:
        Settings are loaded once per process. Call `get_settings.cache_clear()`
        to pick up changed environment variables.
    """
    return Settings.from_env()
