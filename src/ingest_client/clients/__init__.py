"""Pipeline endpoint clients.

This module provides a factory function for creating a configured pipeline
client from centralized configuration.
"""

from ingest_client.config import PipelineClientConfig, get_settings

from .pipeline import PipelineClient, TransientErrorClassifier
from .selector import EndpointSelector
from .sessions import SessionStore, session_api_url


def create_pipeline_client(config: PipelineClientConfig | None = None) -> PipelineClient:
    """Create a connected pipeline client.

    Args:
        config: Optional PipelineClientConfig. If None, uses settings from
            get_settings().

    Returns:
        PipelineClient with sessions established.

    Raises:
        InitializationError: If no endpoint could establish a session.

    Example:
        ```python
        from ingest_client.clients import create_pipeline_client

        with create_pipeline_client() as client:
            client.post_batch([{"id": "doc-1"}])
        ```
    """
    if config is None:
        config = get_settings().client

    return PipelineClient.from_config(config)


__all__ = [
    "EndpointSelector",
    "PipelineClient",
    "PipelineClientConfig",
    "SessionStore",
    "TransientErrorClassifier",
    "create_pipeline_client",
    "session_api_url",
]
