"""Connector layer for the remote record service.

Key components:
- AuthStrategy: Authentication abstraction (anonymous base, ApiKeyAuth)
- RequestPolicy: Retries, timeouts
- ConnectorError hierarchy: transport-level failures
- AsyncHTTPClient: httpx wrapper with policy enforcement
- RecordServiceClient: table/record API client used by the remote backend
"""

from .base import (
    DEFAULT_POLICY,
    NO_RETRY_POLICY,
    ApiKeyAuth,
    AuthenticationError,
    AuthStrategy,
    BaseConnector,
    ConnectionError,
    ConnectorError,
    RateLimitError,
    RequestPolicy,
    ResourceNotFoundError,
    ServiceUnavailableError,
    TimeoutError,
    ValidationError,
)
from .http_client import AsyncHTTPClient, HTTPResponse, map_status_error, parse_retry_after
from .record_service import (
    FieldError,
    RecordResult,
    RecordServiceClient,
    RecordServiceResponse,
)

__all__ = [
    "BaseConnector",
    # Auth
    "AuthStrategy",
    "ApiKeyAuth",
    # Policy
    "RequestPolicy",
    "DEFAULT_POLICY",
    "NO_RETRY_POLICY",
    # Errors
    "ConnectorError",
    "ConnectionError",
    "TimeoutError",
    "AuthenticationError",
    "RateLimitError",
    "ValidationError",
    "ResourceNotFoundError",
    "ServiceUnavailableError",
    # HTTP
    "AsyncHTTPClient",
    "HTTPResponse",
    "map_status_error",
    "parse_retry_after",
    # Record service
    "RecordServiceClient",
    "RecordServiceResponse",
    "RecordResult",
    "FieldError",
]
