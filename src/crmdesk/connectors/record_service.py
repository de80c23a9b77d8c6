"""Client for the remote record service.

The record service is a generic table/record API. Every call returns the
same envelope::

    {"success": bool, "message": str?, "data": [...] | {...}?,
     "results": [{"success": bool, "data": {...}?, "errors": [...]?, "message": str?}]?}

Reads take a query body (field projection, where, orderBy, pagingInfo);
writes take ``{"records": [...]}`` and deletes ``{"RecordIds": [...]}``.
This module only moves envelopes; field translation lives in
``crmdesk.crm.schema``.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .base import (
    ApiKeyAuth,
    AuthenticationError,
    BaseConnector,
    ConnectorError,
    RequestPolicy,
)
from .http_client import AsyncHTTPClient

logger = logging.getLogger(__name__)


# =============================================================================
# Wire envelope
# =============================================================================


class WireModel(BaseModel):
    """Base for record-service payloads (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class FieldError(WireModel):
    """One field-level error inside a per-record result."""

    field_label: str = Field("", alias="fieldLabel")
    message: str = ""

    def __str__(self) -> str:
        return f"{self.field_label}: {self.message}"


class RecordResult(WireModel):
    """Outcome for one record of a batch write."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    errors: List[FieldError] = Field(default_factory=list)
    message: Optional[str] = None


class RecordServiceResponse(WireModel):
    """Top-level response envelope."""

    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None
    results: Optional[List[RecordResult]] = None


# =============================================================================
# Client
# =============================================================================


class RecordServiceClient(BaseConnector):
    """Async client for the record service.

    One instance can serve every table; it holds no per-table state.
    """

    _name = "record_service"

    PROJECT_HEADER = "X-Project-Id"

    def __init__(
        self,
        base_url: str,
        project_id: str,
        api_key: str,
        policy: Optional[RequestPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Record service base URL
            project_id: Project identifier sent with every request
            api_key: Public API key
            policy: Request policy (timeouts, retries)
            transport: Optional httpx transport (tests use MockTransport)
        """
        super().__init__(ApiKeyAuth(api_key=api_key), policy)
        self.project_id = project_id
        self._http = AsyncHTTPClient(
            auth=self.auth,
            policy=self.policy,
            base_url=base_url,
            transport=transport,
            connector_name=self._name,
        )

    async def _call(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        idempotent: bool = True,
    ) -> RecordServiceResponse:
        if not self.auth.is_configured():
            raise AuthenticationError("Record service API key is not set", connector_name=self._name)

        response = await self._http.request(
            method,
            path,
            json=payload,
            headers={self.PROJECT_HEADER: self.project_id},
            idempotent=idempotent,
        )
        try:
            return RecordServiceResponse.model_validate(response.json())
        except ValueError as e:
            # pydantic.ValidationError and json.JSONDecodeError are both ValueErrors
            raise ConnectorError(
                f"Malformed record service response from {path}: {e}",
                connector_name=self._name,
            ) from e

    async def fetch_records(self, table: str, params: Dict[str, Any]) -> RecordServiceResponse:
        """Query a table. ``data`` is a list of records."""
        return await self._call("POST", f"/tables/{table}/records/query", params)

    async def get_record_by_id(
        self, table: str, record_id: int, params: Dict[str, Any]
    ) -> RecordServiceResponse:
        """Fetch one record. ``data`` is the record, or null."""
        return await self._call("POST", f"/tables/{table}/records/{record_id}/query", params)

    async def create_records(self, table: str, records: List[Dict[str, Any]]) -> RecordServiceResponse:
        """Create a batch of records."""
        return await self._call(
            "POST", f"/tables/{table}/records", {"records": records}, idempotent=False
        )

    async def update_records(self, table: str, records: List[Dict[str, Any]]) -> RecordServiceResponse:
        """Update a batch of records. Each record carries its ``Id``."""
        return await self._call(
            "PATCH", f"/tables/{table}/records", {"records": records}, idempotent=False
        )

    async def delete_records(self, table: str, record_ids: List[int]) -> RecordServiceResponse:
        """Delete a batch of records by id."""
        return await self._call(
            "DELETE", f"/tables/{table}/records", {"RecordIds": record_ids}, idempotent=False
        )

    async def health_check(self) -> bool:
        """Return True if the service answers its health endpoint."""
        try:
            response = await self._http.request("GET", "/health", raise_for_status=False)
        except ConnectorError as e:
            logger.warning(f"Record service health check failed: {e}")
            return False
        return response.ok
