"""Unit tests for config module.

This file tests the configuration classes and their from_env() methods.

# Test Coverage

The tests cover:
  - parse_endpoints: Comma-separated endpoint parsing
  - PipelineClientConfig: Validation, derived credentials and timeout
  - Environment variable parsing and default value handling
  - get_settings: Caching

# Running Tests

Run with: pytest tests/unit/test_config.py
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from ingest_client.config import PipelineClientConfig, Settings, get_settings, parse_endpoints

ENDPOINT_A = "http://fusion-a:8764/api/apollo/index-pipelines/docs/collections/c1/index"
ENDPOINT_B = "http://fusion-b:8764/api/apollo/index-pipelines/docs/collections/c1/index"


class TestParseEndpoints:
    """Test suite for parse_endpoints."""

    def test_splits_and_trims(self) -> None:
        assert parse_endpoints(f" {ENDPOINT_A} ,{ENDPOINT_B}") == [ENDPOINT_A, ENDPOINT_B]

    def test_drops_blanks_and_duplicates(self) -> None:
        assert parse_endpoints(f"{ENDPOINT_A},,{ENDPOINT_A}, ") == [ENDPOINT_A]

    def test_empty_string(self) -> None:
        assert parse_endpoints("") == []


# =============================================================================
# PipelineClientConfig Tests
# =============================================================================


class TestPipelineClientConfig:
    """Test suite for PipelineClientConfig validation."""

    def test_defaults(self) -> None:
        config = PipelineClientConfig(endpoints=[ENDPOINT_A])

        assert config.timeout == (10.0, 60.0)
        assert config.max_connections == 500
        assert config.max_connections_per_host == 100
        assert config.session_inactivity_timeout == 599.0
        assert config.retry_backoff == 1.0
        assert not config.credentials.uses_login

    def test_realm_enables_login_credentials(self) -> None:
        config = PipelineClientConfig(endpoints=[ENDPOINT_A], username="admin", password="pw", realm="native")

        assert config.credentials.uses_login
        assert config.credentials.realm == "native"

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"endpoints": []}, "At least one pipeline endpoint"),
            ({"endpoints": [ENDPOINT_A], "realm": "native"}, "realm requires"),
            ({"endpoints": [ENDPOINT_A], "max_connections": 0}, "must be positive"),
            ({"endpoints": [ENDPOINT_A], "max_connections": 10, "max_connections_per_host": 20}, "cannot exceed"),
        ],
        ids=["no-endpoints", "realm-without-user", "zero-limit", "per-host-too-high"],
    )
    def test_rejects_inconsistent_values(self, kwargs: dict, message: str) -> None:
        with pytest.raises(ValidationError, match=message):
            PipelineClientConfig(**kwargs)

    def test_is_frozen(self) -> None:
        config = PipelineClientConfig(endpoints=[ENDPOINT_A])

        with pytest.raises(ValidationError):
            config.read_timeout = 1.0  # type: ignore[misc]


class TestPipelineClientConfigFromEnv:
    """Test suite for PipelineClientConfig.from_env()."""

    @patch.dict(os.environ, {"INGEST_ENDPOINTS": f"{ENDPOINT_A},{ENDPOINT_B}"}, clear=True)
    def test_defaults_from_minimal_env(self) -> None:
        """Test that only the endpoint list is required.

        **Why this test is important:**
          - A basic-auth or open deployment should need one variable

        **What it tests:**
          - Endpoints are parsed from INGEST_ENDPOINTS
          - Every other value falls back to its default
        """
        config = PipelineClientConfig.from_env()

        assert config.endpoints == [ENDPOINT_A, ENDPOINT_B]
        assert config.username is None
        assert config.realm is None
        assert config.timeout == (10.0, 60.0)
        assert config.retry_backoff == 1.0

    @patch.dict(
        os.environ,
        {
            "INGEST_ENDPOINTS": ENDPOINT_A,
            "INGEST_USERNAME": "admin",
            "INGEST_PASSWORD": "secret",
            "INGEST_REALM": "native",
            "INGEST_CONNECT_TIMEOUT": "2.5",
            "INGEST_READ_TIMEOUT": "30",
            "INGEST_MAX_CONNECTIONS": "50",
            "INGEST_MAX_CONNECTIONS_PER_HOST": "10",
            "INGEST_SESSION_INACTIVITY_TIMEOUT": "120",
            "INGEST_RETRY_BACKOFF": "0.5",
        },
        clear=True,
    )
    def test_reads_every_variable(self) -> None:
        config = PipelineClientConfig.from_env()

        assert config.credentials.uses_login
        assert config.password == "secret"
        assert config.timeout == (2.5, 30.0)
        assert config.max_connections == 50
        assert config.max_connections_per_host == 10
        assert config.session_inactivity_timeout == 120.0
        assert config.retry_backoff == 0.5

    @patch.dict(os.environ, {"INGEST_ENDPOINTS": ENDPOINT_A, "INGEST_REALM": ""}, clear=True)
    def test_empty_realm_means_basic_auth(self) -> None:
        assert PipelineClientConfig.from_env().realm is None

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_endpoints_raises(self) -> None:
        with pytest.raises(ValueError, match="INGEST_ENDPOINTS is required"):
            PipelineClientConfig.from_env()

    @patch.dict(os.environ, {"INGEST_ENDPOINTS": ENDPOINT_A, "INGEST_READ_TIMEOUT": "soon"}, clear=True)
    def test_invalid_number_raises(self) -> None:
        with pytest.raises(ValueError):
            PipelineClientConfig.from_env()


class TestSettings:
    """Test suite for Settings and get_settings()."""

    @patch.dict(os.environ, {"INGEST_ENDPOINTS": ENDPOINT_A, "LOG_LEVEL": "debug"}, clear=True)
    def test_log_level_is_normalized(self) -> None:
        assert Settings.from_env().log_level == "DEBUG"

    @patch.dict(os.environ, {"INGEST_ENDPOINTS": ENDPOINT_A}, clear=True)
    def test_get_settings_is_cached(self) -> None:
        first = get_settings()

        with patch.dict(os.environ, {"INGEST_ENDPOINTS": ENDPOINT_B}):
            assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings().client.endpoints == [ENDPOINT_A]
