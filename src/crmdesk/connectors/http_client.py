"""Async HTTP client wrapper with retry support.

Wraps httpx with RequestPolicy enforcement:
- Configurable timeouts
- Automatic retries with exponential backoff on retryable statuses
- Error mapping to the ConnectorError hierarchy

A non-idempotent call (record creation, update, deletion) may already have
taken effect when a 5xx or a timeout comes back, so it is only retried when
the service certainly did not process it: on 429 and on connect failures.

Tests inject an ``httpx.MockTransport`` instead of talking to a network.
"""

import asyncio
import json as json_module
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from .base import (
    AuthenticationError,
    AuthStrategy,
    ConnectionError,
    ConnectorError,
    RateLimitError,
    RequestPolicy,
    ResourceNotFoundError,
    ServiceUnavailableError,
    TimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Statuses a non-idempotent request may be retried on
UNPROCESSED_STATUSES = frozenset({429})


@dataclass
class HTTPResponse:
    """Simplified HTTP response wrapper."""

    status_code: int
    headers: Dict[str, str]
    body: bytes
    json_data: Optional[Any] = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        """Check if status code indicates success (2xx)."""
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Get JSON data (parsed body)."""
        if self.json_data is not None:
            return self.json_data
        self.json_data = json_module.loads(self.body)
        return self.json_data


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds to wait according to a ``Retry-After`` header.

    The header is either a number of seconds or an HTTP date. A date in the
    past gives 0. Anything unparseable gives None.
    """
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


def map_status_error(
    status_code: int,
    body: bytes,
    headers: Dict[str, str],
    connector_name: str = "http_client",
) -> ConnectorError:
    """Map an HTTP status code to the appropriate ConnectorError."""
    body_str = body.decode("utf-8", errors="replace")

    if status_code in (401, 403):
        return AuthenticationError(
            f"Authentication failed ({status_code}): {body_str}",
            connector_name=connector_name,
        )
    elif status_code == 404:
        return ResourceNotFoundError(
            f"Resource not found: {body_str}",
            connector_name=connector_name,
        )
    elif status_code == 422:
        return ValidationError(
            f"Validation failed: {body_str}",
            connector_name=connector_name,
            field_errors=_field_errors_from_body(body),
        )
    elif status_code == 429:
        return RateLimitError(
            f"Rate limit exceeded: {body_str}",
            connector_name=connector_name,
            retry_after=parse_retry_after(headers.get("retry-after") or headers.get("Retry-After")),
        )
    elif status_code >= 500:
        return ServiceUnavailableError(
            f"Service error ({status_code}): {body_str}",
            connector_name=connector_name,
        )
    return ConnectorError(
        f"HTTP error {status_code}: {body_str}",
        connector_name=connector_name,
    )


def _field_errors_from_body(body: bytes) -> Dict[str, str]:
    """Pull ``{fieldLabel: message}`` pairs out of a 422 body, if it has any."""
    try:
        payload = json_module.loads(body)
    except ValueError:
        return {}
    if not isinstance(payload, dict):
        return {}
    errors = payload.get("errors") or []
    return {
        str(err.get("fieldLabel", "")): str(err.get("message", ""))
        for err in errors
        if isinstance(err, dict)
    }


class AsyncHTTPClient:
    """Async HTTP client with retry support.

    One ``httpx.AsyncClient`` is opened per request; the record service is
    called a handful of times per user action so pooling is not worth the
    lifecycle management.
    """

    def __init__(
        self,
        auth: Optional[AuthStrategy] = None,
        policy: Optional[RequestPolicy] = None,
        base_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connector_name: str = "http_client",
    ):
        """Initialize async HTTP client.

        Args:
            auth: Authentication strategy for requests
            policy: Request policy (timeouts, retries)
            base_url: Base URL for all requests
            transport: Optional httpx transport (tests use MockTransport)
            connector_name: Name attached to raised ConnectorErrors
        """
        self.auth = auth
        self.policy = policy or RequestPolicy()
        self.base_url = base_url.rstrip("/")
        self.connector_name = connector_name
        self._transport = transport

    def _build_headers(self, extra_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Build request headers including auth and defaults."""
        headers = {"User-Agent": self.policy.user_agent}
        headers.update(self.policy.default_headers)

        if self.auth:
            headers.update(self.auth.get_headers())

        if extra_headers:
            headers.update(extra_headers)

        return headers

    def _get_url(self, path: str) -> str:
        """Build full URL from path."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _retries_status(self, status_code: int, idempotent: bool) -> bool:
        if status_code not in self.policy.retry_on_status:
            return False
        return idempotent or status_code in UNPROCESSED_STATUSES

    async def _sleep_and_retry(self, attempt: int) -> bool:
        """Sleep before retry if attempts remain. Returns True if should retry."""
        if attempt < self.policy.max_retries:
            await asyncio.sleep(self.policy.retry_delay_for(attempt))
            return True
        return False

    async def request(  # noqa: C901
        self,
        method: str,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        raise_for_status: bool = True,
        idempotent: bool = True,
    ) -> HTTPResponse:
        """Make async HTTP request with retry logic.

        Args:
            method: HTTP method
            path: Path relative to ``base_url``, or an absolute URL
            json: JSON body
            params: Query parameters
            headers: Extra headers for this request
            raise_for_status: Raise a ConnectorError on a non-2xx answer
            idempotent: False for calls that must not be repeated once the
                service may have acted on them; those only retry on 429 and
                connect failures

        Raises:
            ConnectorError: On HTTP errors (if raise_for_status=True)
            TimeoutError: On request timeout after all retries
            ConnectionError: On connection failure after all retries
        """
        url = self._get_url(path)
        request_headers = self._build_headers(headers)
        timeout = httpx.Timeout(
            connect=self.policy.connect_timeout,
            read=self.policy.read_timeout,
            write=self.policy.read_timeout,
            pool=self.policy.connect_timeout,
        )

        last_error: Optional[Exception] = None

        for attempt in range(self.policy.max_retries + 1):
            try:
                start_time = time.monotonic()

                async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                    response = await client.request(
                        method=method,
                        url=url,
                        json=json,
                        params=params,
                        headers=request_headers,
                    )

                result = HTTPResponse(
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    body=response.content,
                    elapsed_seconds=time.monotonic() - start_time,
                )
                logger.debug(
                    f"{method} {url} -> {result.status_code} ({result.elapsed_seconds:.3f}s)"
                )

                if not result.ok and self._retries_status(result.status_code, idempotent):
                    if attempt < self.policy.max_retries:
                        logger.warning(
                            f"{method} {url} returned {result.status_code}, "
                            f"retrying ({attempt + 1}/{self.policy.max_retries})"
                        )
                        await self._sleep_and_retry(attempt)
                        continue

                if raise_for_status and not result.ok:
                    raise map_status_error(
                        result.status_code,
                        result.body,
                        result.headers,
                        connector_name=self.connector_name,
                    )

                return result

            except httpx.TimeoutException as e:
                last_error = TimeoutError(
                    f"Request timed out after {self.policy.read_timeout}s",
                    connector_name=self.connector_name,
                    timeout_seconds=self.policy.read_timeout,
                )
                # A connect timeout means nothing reached the service
                retryable = idempotent or isinstance(e, httpx.ConnectTimeout)
            except httpx.ConnectError as e:
                last_error = ConnectionError(
                    f"Failed to connect to {url}: {e}",
                    connector_name=self.connector_name,
                )
                retryable = True
            except httpx.HTTPError as e:
                last_error = ConnectorError(
                    f"HTTP error: {e}",
                    connector_name=self.connector_name,
                )
                retryable = idempotent

            logger.warning(f"{method} {url} failed: {last_error}")
            if not retryable or not await self._sleep_and_retry(attempt):
                break

        if last_error:
            raise last_error
        raise ConnectorError("Request failed after all retries", connector_name=self.connector_name)
