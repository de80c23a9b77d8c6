"""Building blocks shared by the record-service connector.

- AuthStrategy / ApiKeyAuth: request headers that carry credentials
- RequestPolicy: timeouts and the retry schedule
- ConnectorError and subclasses: what a failed call looks like to callers
- BaseConnector: holds auth and policy for a concrete client

Transport failures surface as ConnectorError subclasses and are propagated
to callers unchanged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# =============================================================================
# Authentication
# =============================================================================


@dataclass
class AuthStrategy:
    """Anonymous access. Subclasses add credentials."""

    def is_configured(self) -> bool:
        """True when the strategy has everything it needs to sign a request."""
        return True

    def get_headers(self) -> Dict[str, str]:
        """Headers to merge into every request."""
        return {}


@dataclass
class ApiKeyAuth(AuthStrategy):
    """Key sent in a header, ``Authorization: Bearer <key>`` by default."""

    api_key: str = ""
    header_name: str = "Authorization"
    header_prefix: str = "Bearer"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_headers(self) -> Dict[str, str]:
        if not self.api_key:
            return {}
        value = f"{self.header_prefix} {self.api_key}" if self.header_prefix else self.api_key
        return {self.header_name: value}


# =============================================================================
# Request Policy
# =============================================================================


@dataclass
class RequestPolicy:
    """Timeouts and retry schedule for record-service calls.

    Non-idempotent writes only retry on 429 and connect failures; see
    ``AsyncHTTPClient.request``.
    """

    connect_timeout: float = 10.0  # seconds
    read_timeout: float = 30.0  # seconds

    max_retries: int = 3
    retry_delay: float = 1.0  # first wait, in seconds
    retry_backoff: float = 2.0  # multiplier per further attempt
    retry_on_status: List[int] = field(default_factory=lambda: [429, 500, 502, 503, 504])

    user_agent: str = "crmdesk/1.0"
    default_headers: Dict[str, str] = field(default_factory=dict)

    def retry_delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        return self.retry_delay * (self.retry_backoff ** attempt)


DEFAULT_POLICY = RequestPolicy()

# No retries, no sleeping. Used by tests and one-shot CLI calls.
NO_RETRY_POLICY = RequestPolicy(max_retries=0, retry_delay=0.0)


# =============================================================================
# Errors
# =============================================================================


class ConnectorError(Exception):
    """A record-service call failed below the CRM layer."""

    def __init__(self, message: str, connector_name: str = "", details: Optional[Dict[str, Any]] = None):
        self.connector_name = connector_name
        self.details = details or {}
        super().__init__(message)


class ConnectionError(ConnectorError):
    """The service could not be reached."""


class TimeoutError(ConnectorError):
    """No answer within the read timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        connector_name: str = "",
        timeout_seconds: Optional[float] = None,
    ):
        super().__init__(message, connector_name, {"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds


class AuthenticationError(ConnectorError):
    """Missing or rejected credentials (401/403)."""


class RateLimitError(ConnectorError):
    """HTTP 429. ``retry_after`` is in seconds when the service said so."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        connector_name: str = "",
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, connector_name, {"retry_after": retry_after})
        self.retry_after = retry_after


class ValidationError(ConnectorError):
    """HTTP 422, with ``{fieldLabel: message}`` pairs when the body has them."""

    def __init__(
        self,
        message: str,
        connector_name: str = "",
        field_errors: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, connector_name, {"field_errors": field_errors or {}})
        self.field_errors = field_errors or {}


class ResourceNotFoundError(ConnectorError):
    """HTTP 404."""


class ServiceUnavailableError(ConnectorError):
    """HTTP 5xx left after retries."""


# =============================================================================
# Connector base
# =============================================================================


class BaseConnector(ABC):
    """Holds the auth strategy and request policy used by every call."""

    _name: str = "base"

    def __init__(
        self,
        auth: Optional[AuthStrategy] = None,
        policy: Optional[RequestPolicy] = None,
    ):
        self.auth = auth or AuthStrategy()
        self.policy = policy or DEFAULT_POLICY

    @property
    def name(self) -> str:
        """Connector name used in errors and logs."""
        return self._name

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the remote service answers."""
