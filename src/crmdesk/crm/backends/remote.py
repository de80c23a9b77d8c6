"""Record-service backend (the ``remote`` backend).

Presents the same CRUD contract as the in-memory store while delegating
storage to the record service. Translation in both directions goes through
``crmdesk.crm.schema``; this module handles the call sequence and the
response envelope.

Error handling:
- outbound fields are checked against the model before any call; a bad
  record is not sent
- list reads skip rows the model rejects, with a warning
- ``success: false`` at the top level -> RecordServiceError with the
  service message (logged first)
- per-record failures inside a batch are logged with their field errors and
  reported in a BatchResult; the single-record helpers raise
  RecordValidationError when their only record failed
- HTTP 404 -> RecordNotFoundError; HTTP 422 -> RecordValidationError
- other ConnectorErrors (connect, timeout, 5xx) propagate unchanged
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from crmdesk.connectors.base import ResourceNotFoundError
from crmdesk.connectors.base import ValidationError as ConnectorValidationError
from crmdesk.connectors.record_service import RecordServiceClient, RecordServiceResponse
from crmdesk.crm.backends.base import (
    DEFAULT_PARENT_FIELD,
    BaseEntityBackend,
    BatchResult,
    RecordFailure,
    RecordNotFoundError,
    RecordServiceError,
    RecordValidationError,
)
from crmdesk.crm.models import STORE_MANAGED_FIELDS, CRMRecord, EntityKind
from crmdesk.crm.schema import DEFAULT_PAGE_SIZE, RemoteSchema, schema_for

logger = logging.getLogger(__name__)


class RemoteRecordBackend(BaseEntityBackend):
    """Entity backend backed by the remote record service.

    Reads fetch a single page (``page_size`` records, newest first); larger
    collections need explicit pagination, which is not implemented.
    """

    backend_name = "remote"

    def __init__(
        self,
        kind: EntityKind,
        client: RecordServiceClient,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        """Initialize the backend.

        Args:
            kind: Entity kind served by this backend
            client: Record service client (may be shared between kinds)
            page_size: Records requested per read
        """
        super().__init__(kind)
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.client = client
        self.page_size = page_size
        self.schema: RemoteSchema = schema_for(self.kind)

    # -------------------------------------------------------------------------
    # Envelope handling
    # -------------------------------------------------------------------------

    @property
    def _label(self) -> str:
        return self.kind.value

    def _check_response(self, response: RecordServiceResponse, operation: str) -> None:
        """Raise RecordServiceError on a top-level failure."""
        if not response.success:
            message = response.message or f"{operation} failed"
            logger.error(f"Failed to {operation} {self._label} records: {message}")
            raise RecordServiceError(message, operation=operation)

    def _to_record(self, data: Mapping[str, Any]) -> CRMRecord:
        return self.validate(self.schema.from_remote(data))

    def _to_records(self, rows: Optional[Sequence[Mapping[str, Any]]], operation: str) -> List[CRMRecord]:
        """Translate a page of rows, skipping (and logging) rows the model rejects."""
        records = []
        for row in rows or []:
            try:
                records.append(self._to_record(row))
            except RecordValidationError as e:
                row_id = row.get(self.schema.system_fields["id"])
                logger.warning(
                    f"Skipping invalid {self._label} record {row_id} during {operation}: {e.field_errors}"
                )
        return records

    def _split_valid(
        self, items: Sequence[Any], to_wire: Callable[[Any], Dict[str, Any]]
    ) -> Tuple[List[Dict[str, Any]], List[int], List[RecordFailure]]:
        """Translate batch items, setting aside those rejected locally.

        Returns:
            Payloads to send, the batch index of each payload, and the
            failures for items that will not be sent
        """
        payloads: List[Dict[str, Any]] = []
        positions: List[int] = []
        rejected: List[RecordFailure] = []
        for index, item in enumerate(items):
            try:
                payloads.append(to_wire(item))
            except RecordValidationError as e:
                rejected.append(RecordFailure(index=index, message=str(e), field_errors=e.field_errors))
                continue
            positions.append(index)
        return payloads, positions, rejected

    def _collect(
        self,
        response: Optional[RecordServiceResponse],
        operation: str,
        positions: Sequence[int],
        rejected: Sequence[RecordFailure] = (),
    ) -> BatchResult:
        """Split per-record results into successes and logged failures.

        Args:
            response: Service answer, or None if nothing was sent
            operation: Verb used in log lines
            positions: Batch index of each record that was sent
            rejected: Failures for records never sent
        """
        result = BatchResult(failures=list(rejected))

        if response is not None:
            self._check_response(response, operation)
            if response.results is None:
                # No per-record detail: everything sent went through.
                result.succeeded = len(positions)
            else:
                for offset, item in enumerate(response.results):
                    index = positions[offset] if offset < len(positions) else offset
                    if item.success:
                        result.succeeded += 1
                        if item.data is not None:
                            result.records.extend(self._to_records([item.data], operation))
                        continue
                    result.failures.append(
                        RecordFailure(
                            index=index,
                            message=item.message or "",
                            field_errors={err.field_label: err.message for err in item.errors},
                        )
                    )

        if result.failures:
            result.failures.sort(key=lambda failure: failure.index)
            logger.error(
                f"Failed to {operation} {len(result.failures)} {self._label} record(s)"
            )
            for failure in result.failures:
                if failure.message:
                    logger.error(f"  record {failure.index}: {failure.message}")
                for label, message in failure.field_errors.items():
                    logger.error(f"  record {failure.index}: {label}: {message}")
        return result

    def _single(self, result: BatchResult, operation: str) -> CRMRecord:
        """Unwrap a one-record batch, raising instead of returning nothing."""
        if result.records:
            return result.records[0]
        if result.failures:
            failure = result.failures[0]
            raise RecordValidationError(
                failure.message or f"Failed to {operation} {self._label}",
                failure.field_errors,
            )
        raise RecordServiceError(
            f"Record service returned no {self._label} data for {operation}", operation=operation
        )

    def _writable(self, fields: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
        """Validate caller fields and translate them to wire names."""
        unknown = [
            name for name in fields
            if name not in STORE_MANAGED_FIELDS and name not in self.schema.fields
        ]
        if unknown:
            raise RecordValidationError(
                f"Unknown {self._label} field(s): {', '.join(sorted(unknown))}",
                {name: "unknown field" for name in unknown},
            )
        return self.schema.to_remote(self.validate_fields(fields, partial=partial))

    async def _guard(self, coro, operation: str, record_id: Any = None) -> RecordServiceResponse:
        """Await a client call, mapping 404/422 to CRM errors."""
        try:
            return await coro
        except ResourceNotFoundError as e:
            logger.error(f"Error during {operation} of {self._label} {record_id}: {e}")
            raise RecordNotFoundError(self.kind, record_id) from e
        except ConnectorValidationError as e:
            logger.error(f"Error during {operation} of {self._label}: {e}")
            raise RecordValidationError(str(e), e.field_errors) from e

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_all(self) -> List[CRMRecord]:
        """Fetch the first page of records, newest first."""
        response = await self._guard(
            self.client.fetch_records(self.schema.table, self.schema.query(limit=self.page_size)),
            "fetch",
        )
        self._check_response(response, "fetch")
        return self._to_records(response.data, "fetch")

    async def get_by_id(self, record_id: int) -> CRMRecord:
        """Fetch one record.

        Raises:
            RecordNotFoundError: If the service has no such record
        """
        response = await self._guard(
            self.client.get_record_by_id(self.schema.table, record_id, self.schema.lookup()),
            "fetch",
            record_id,
        )
        self._check_response(response, "fetch")
        if not response.data:
            raise RecordNotFoundError(self.kind, record_id)
        return self._to_record(response.data)

    async def get_by_parent(self, parent_id: int, field: Optional[str] = None) -> List[CRMRecord]:
        """Fetch records whose foreign key equals ``parent_id``."""
        field = field or DEFAULT_PARENT_FIELD
        try:
            where = self.schema.equals(field, parent_id)
        except KeyError as e:
            raise RecordValidationError(str(e), {field: "unknown field"}) from e
        response = await self._guard(
            self.client.fetch_records(
                self.schema.table, self.schema.query(where=where, limit=self.page_size)
            ),
            "fetch",
        )
        self._check_response(response, "fetch")
        return self._to_records(response.data, "fetch")

    async def count_by_parent(self, parent_id: int, field: Optional[str] = None) -> int:
        """Count matching records with an id-only projection."""
        field = field or DEFAULT_PARENT_FIELD
        try:
            params = self.schema.count_query(field, parent_id)
        except KeyError as e:
            raise RecordValidationError(str(e), {field: "unknown field"}) from e
        response = await self._guard(self.client.fetch_records(self.schema.table, params), "count")
        self._check_response(response, "count")
        return len(response.data or [])

    # -------------------------------------------------------------------------
    # Batch writes
    # -------------------------------------------------------------------------

    async def create_many(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        """Create several records in one call. Partial failure is not raised.

        Items that fail local validation are reported as failures and not
        sent; if none are valid, no call is made.
        """
        payloads, positions, rejected = self._split_valid(items, self._writable)
        response = None
        if payloads:
            response = await self._guard(
                self.client.create_records(self.schema.table, payloads), "create"
            )
        return self._collect(response, "create", positions, rejected)

    async def update_many(self, items: Sequence[Tuple[int, Mapping[str, Any]]]) -> BatchResult:
        """Update several records in one call. Only supplied fields are sent."""
        id_field = self.schema.system_fields["id"]
        payloads, positions, rejected = self._split_valid(
            items,
            lambda item: {id_field: item[0], **self._writable(item[1], partial=True)},
        )
        response = None
        if payloads:
            record_id = items[0][0] if len(items) == 1 else None
            response = await self._guard(
                self.client.update_records(self.schema.table, payloads), "update", record_id
            )
        return self._collect(response, "update", positions, rejected)

    async def delete_many(self, record_ids: Sequence[int]) -> BatchResult:
        """Delete several records in one call."""
        record_id = record_ids[0] if len(record_ids) == 1 else None
        response = await self._guard(
            self.client.delete_records(self.schema.table, list(record_ids)), "delete", record_id
        )
        return self._collect(response, "delete", range(len(record_ids)))

    # -------------------------------------------------------------------------
    # Single-record writes
    # -------------------------------------------------------------------------

    async def create(self, fields: Mapping[str, Any]) -> CRMRecord:
        """Create one record.

        Raises:
            RecordValidationError: If the fields are invalid or the service
                rejected the record
        """
        return self._single(await self.create_many([fields]), "create")

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> CRMRecord:
        """Update one record with the supplied fields only.

        Raises:
            RecordNotFoundError: If the service answers 404
            RecordValidationError: If the fields are invalid or the service
                rejected the record
        """
        return self._single(await self.update_many([(record_id, fields)]), "update")

    async def delete(self, record_id: int) -> bool:
        """Delete one record. Returns False if the service refused it.

        Raises:
            RecordNotFoundError: If the service answers 404
        """
        result = await self.delete_many([record_id])
        return not result.all_failed
