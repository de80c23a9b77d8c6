"""In-memory entity store (the ``mock`` backend).

Keeps one entity kind's records in an ordered list and serves async CRUD
with an artificial delay, so callers exercise their loading states without a
live service.

Every operation awaits the delay first and then runs its
find-mutate-return sequence without further awaits, so concurrent calls on
the event loop never observe a half-applied write. Concurrent updates to the
same id are last-writer-wins.
"""

import asyncio
import logging
import random
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from crmdesk.crm.backends.base import (
    DEFAULT_PARENT_FIELD,
    BaseEntityBackend,
    RecordNotFoundError,
    RecordValidationError,
)
from crmdesk.crm.models import STORE_MANAGED_FIELDS, CRMRecord, EntityKind, utcnow

logger = logging.getLogger(__name__)

# Seconds; matches the 150-400 ms range the UI was tuned against.
DEFAULT_LATENCY: Tuple[float, float] = (0.15, 0.4)


class InMemoryEntityStore(BaseEntityBackend):
    """Ordered in-process collection of one entity kind.

    Ids are ``max(existing ids) + 1``. The store also remembers the highest
    id it has issued, so deleting the newest record never frees its id for
    reuse.

    Usage:
        store = InMemoryEntityStore(EntityKind.CONTACT, latency=(0, 0))
        contact = await store.create({"name": "Ada"})
    """

    backend_name = "mock"

    def __init__(
        self,
        kind: EntityKind,
        records: Optional[Iterable[Mapping[str, Any]]] = None,
        latency: Tuple[float, float] = DEFAULT_LATENCY,
    ):
        """Initialize the store.

        Args:
            kind: Entity kind held by this store
            records: Optional seed records; each must carry its ``id``
            latency: (min, max) artificial delay in seconds

        Raises:
            ValueError: If the latency range is invalid or seed ids collide
            RecordValidationError: If a seed record does not fit the model
        """
        super().__init__(kind)
        low, high = latency
        if low < 0 or high < low:
            raise ValueError(f"Invalid latency range: {latency}")
        self.latency = (float(low), float(high))

        self._records: List[CRMRecord] = []
        self._last_id = 0
        for data in records or ():
            record = self.validate(data)
            if any(r.id == record.id for r in self._records):
                raise ValueError(f"Duplicate seed id {record.id} for {self.kind.value}")
            self._records.append(record)
            self._last_id = max(self._last_id, record.id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _delay(self) -> None:
        low, high = self.latency
        if high > 0:
            await asyncio.sleep(random.uniform(low, high))

    def _index_of(self, record_id: int) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise RecordNotFoundError(self.kind, record_id)

    def _next_id(self) -> int:
        current_max = max((r.id for r in self._records), default=0)
        return max(current_max, self._last_id) + 1

    @staticmethod
    def _copy(record: CRMRecord) -> CRMRecord:
        return record.model_copy(deep=True)

    def _writable(self, fields: Mapping[str, Any]) -> dict:
        ignored = STORE_MANAGED_FIELDS.intersection(fields)
        if ignored:
            logger.debug(f"Ignoring store-managed fields on {self.kind.value}: {sorted(ignored)}")
        return {k: v for k, v in fields.items() if k not in STORE_MANAGED_FIELDS}

    def _check_parent_field(self, field: str) -> None:
        if field not in self.model.model_fields:
            raise RecordValidationError(
                f"{self.kind.value} has no field '{field}'", {field: "unknown field"}
            )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_all(self) -> List[CRMRecord]:
        """Return copies of every record in collection order."""
        await self._delay()
        return [self._copy(r) for r in self._records]

    async def get_by_id(self, record_id: int) -> CRMRecord:
        """Return a copy of one record.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        await self._delay()
        return self._copy(self._records[self._index_of(record_id)])

    async def get_by_parent(self, parent_id: int, field: Optional[str] = None) -> List[CRMRecord]:
        """Return copies of records whose ``field`` equals ``parent_id``."""
        field = field or DEFAULT_PARENT_FIELD
        self._check_parent_field(field)
        await self._delay()
        return [self._copy(r) for r in self._records if getattr(r, field) == parent_id]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, fields: Mapping[str, Any]) -> CRMRecord:
        """Append a new record and return a copy of it.

        Raises:
            RecordValidationError: If the fields do not fit the model
        """
        await self._delay()
        now = utcnow()
        record = self.validate(
            {**self._writable(fields), "id": self._next_id(), "created_at": now, "updated_at": now}
        )
        self._records.append(record)
        self._last_id = record.id
        logger.debug(f"Created {self.kind.value} {record.id}")
        return self._copy(record)

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> CRMRecord:
        """Shallow-merge ``fields`` over a record and refresh ``updated_at``.

        Omitted fields keep their value. On validation failure the stored
        record is left untouched.

        Raises:
            RecordNotFoundError: If no record has this id
            RecordValidationError: If the merged record does not fit the model
        """
        await self._delay()
        index = self._index_of(record_id)
        current = self._records[index]
        changes = self._writable(fields)
        merged = {**current.model_dump(), **changes, "updated_at": utcnow()}
        record = self.validate(merged)
        self._records[index] = record
        logger.debug(f"Updated {self.kind.value} {record_id}: {sorted(changes)}")
        return self._copy(record)

    async def delete(self, record_id: int) -> bool:
        """Remove a record.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        await self._delay()
        del self._records[self._index_of(record_id)]
        logger.debug(f"Deleted {self.kind.value} {record_id}")
        return True

    def count(self) -> int:
        """Number of live records."""
        return len(self._records)
