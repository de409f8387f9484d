"""Resilient client for posting document batches to clustered pipeline endpoints."""

from ingest_client.clients import PipelineClient, create_pipeline_client
from ingest_client.core.exceptions import (
    EndpointLostError,
    IngestClientError,
    InitializationError,
    NoEndpointsAvailableError,
    ServerError,
    TransientConnectionError,
    TransportError,
)
from ingest_client.core.models import Credentials

__version__ = "0.1.0"

__all__ = [
    "Credentials",
    "EndpointLostError",
    "IngestClientError",
    "InitializationError",
    "NoEndpointsAvailableError",
    "PipelineClient",
    "ServerError",
    "TransientConnectionError",
    "TransportError",
    "create_pipeline_client",
]
