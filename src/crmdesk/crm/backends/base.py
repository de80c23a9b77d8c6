"""Backend interface and error taxonomy for CRM entity storage.

Defines the Protocol every backend implements and the exceptions that cross
the backend boundary. Two backends exist:

- ``mock``: InMemoryEntityStore, an in-process list with simulated latency
- ``remote``: RemoteRecordBackend, a translation layer over the record service

Error contract (same for both backends):
- RecordNotFoundError: the requested id does not exist
- RecordValidationError: the supplied fields were rejected, with per-field detail
- RecordServiceError: the remote call completed but reported failure
- ConnectorError subclasses: the remote call itself could not be made

A backend never signals failure by returning None.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Type, runtime_checkable

from pydantic import ValidationError as PydanticValidationError

from crmdesk.crm.models import STORE_MANAGED_FIELDS, CRMRecord, EntityKind, model_for

# Parent field used by get_by_parent() when the caller does not name one.
DEFAULT_PARENT_FIELD = "contact_id"


# =============================================================================
# Errors
# =============================================================================


class CRMError(Exception):
    """Base exception for CRM data-access errors."""

    pass


class RecordNotFoundError(CRMError, LookupError):
    """Raised when a record id is absent from its collection."""

    def __init__(self, kind: EntityKind, record_id: Any):
        self.kind = EntityKind(kind)
        self.record_id = record_id
        super().__init__(f"{self.kind.value} {record_id} not found")


class RecordValidationError(CRMError, ValueError):
    """Raised when supplied fields are rejected.

    ``field_errors`` maps a field label to its message.
    """

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        self.field_errors = field_errors or {}
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, kind: EntityKind, error: PydanticValidationError) -> "RecordValidationError":
        """Flatten a pydantic ValidationError into field messages."""
        field_errors = {
            ".".join(str(part) for part in err["loc"]) or "__root__": err["msg"]
            for err in error.errors()
        }
        return cls(f"Invalid {EntityKind(kind).value}: {error.error_count()} field error(s)", field_errors)


class RecordServiceError(CRMError):
    """Raised when the record service reports a top-level failure."""

    def __init__(self, message: str, operation: str = ""):
        self.operation = operation
        super().__init__(message)


# =============================================================================
# Batch results
# =============================================================================


@dataclass
class RecordFailure:
    """One record that failed inside a batch write."""

    index: int
    message: str = ""
    field_errors: Dict[str, str] = field(default_factory=dict)


@dataclass
class BatchResult:
    """Outcome of a batch write.

    Partial failure is not an exception: successes are returned in
    ``records`` and failures listed in ``failures``.
    """

    records: List[Any] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)
    succeeded: int = 0

    @property
    def ok(self) -> bool:
        """True if no record failed."""
        return not self.failures

    @property
    def all_failed(self) -> bool:
        """True if there were failures and nothing succeeded."""
        return bool(self.failures) and self.succeeded == 0


# =============================================================================
# Backend Protocol
# =============================================================================


@runtime_checkable
class EntityBackend(Protocol):
    """Protocol defining the storage interface for one entity kind.

    All operations are coroutines. Returned records are copies owned by the
    caller.
    """

    kind: EntityKind

    async def get_all(self) -> List[CRMRecord]:
        """Return every record."""
        ...

    async def get_by_id(self, record_id: int) -> CRMRecord:
        """Return one record or raise RecordNotFoundError."""
        ...

    async def get_by_parent(self, parent_id: int, field: Optional[str] = None) -> List[CRMRecord]:
        """Return records whose foreign key ``field`` equals ``parent_id``."""
        ...

    async def count_by_parent(self, parent_id: int, field: Optional[str] = None) -> int:
        """Count records whose foreign key ``field`` equals ``parent_id``."""
        ...

    async def create(self, fields: Mapping[str, Any]) -> CRMRecord:
        """Create a record; the backend assigns id and timestamps."""
        ...

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> CRMRecord:
        """Merge ``fields`` into an existing record."""
        ...

    async def delete(self, record_id: int) -> bool:
        """Delete a record."""
        ...


class BaseEntityBackend(ABC):
    """Abstract base class for backends.

    Provides the model lookup and validation helpers and enforces the
    interface.
    """

    backend_name: str = "base"

    def __init__(self, kind: EntityKind):
        self.kind = EntityKind(kind)

    @property
    def model(self) -> Type[CRMRecord]:
        """Model class for this backend's entity kind."""
        return model_for(self.kind)

    def validate(self, data: Mapping[str, Any]) -> CRMRecord:
        """Build a model instance, translating pydantic errors.

        Raises:
            RecordValidationError: If the data does not fit the model
        """
        try:
            return self.model.model_validate(dict(data))
        except PydanticValidationError as e:
            raise RecordValidationError.from_pydantic(self.kind, e) from e

    def validate_fields(self, fields: Mapping[str, Any], *, partial: bool = False) -> Dict[str, Any]:
        """Check caller-supplied fields one by one against the model.

        Used where no complete record exists locally to validate, such as
        values about to be sent to the record service. Store-managed fields
        are dropped.

        Args:
            fields: Field values keyed by model field name
            partial: Only check the fields given (updates). Otherwise every
                required field must be present as well.

        Returns:
            The values as coerced by the model (enums, datetimes, numbers)

        Raises:
            RecordValidationError: With every rejected or missing field
        """
        draft = self.model.model_construct()
        field_errors: Dict[str, str] = {}
        values: Dict[str, Any] = {}

        for name, value in fields.items():
            if name in STORE_MANAGED_FIELDS:
                continue
            try:
                self.model.__pydantic_validator__.validate_assignment(draft, name, value)
            except PydanticValidationError as e:
                field_errors.update(RecordValidationError.from_pydantic(self.kind, e).field_errors)
                continue
            values[name] = getattr(draft, name)

        if not partial:
            for name, info in self.model.model_fields.items():
                if name in STORE_MANAGED_FIELDS or name in fields:
                    continue
                if info.is_required():
                    field_errors[name] = "Field required"

        if field_errors:
            raise RecordValidationError(
                f"Invalid {self.kind.value}: {len(field_errors)} field error(s)", field_errors
            )
        return values

    @abstractmethod
    async def get_all(self) -> List[CRMRecord]:
        pass

    @abstractmethod
    async def get_by_id(self, record_id: int) -> CRMRecord:
        pass

    @abstractmethod
    async def get_by_parent(self, parent_id: int, field: Optional[str] = None) -> List[CRMRecord]:
        pass

    async def count_by_parent(self, parent_id: int, field: Optional[str] = None) -> int:
        """Count children. Backends with a cheaper query override this."""
        return len(await self.get_by_parent(parent_id, field))

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> CRMRecord:
        pass

    @abstractmethod
    async def update(self, record_id: int, fields: Mapping[str, Any]) -> CRMRecord:
        pass

    @abstractmethod
    async def delete(self, record_id: int) -> bool:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r})"
