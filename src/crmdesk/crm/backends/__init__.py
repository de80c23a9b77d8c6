"""CRM storage backends.

Provides the backend interface (Protocol) and its two implementations:
- InMemoryEntityStore ("mock"): in-process list with simulated latency
- RemoteRecordBackend ("remote"): record-service translation layer
"""

from crmdesk.crm.backends.base import (
    BaseEntityBackend,
    BatchResult,
    CRMError,
    EntityBackend,
    RecordFailure,
    RecordNotFoundError,
    RecordServiceError,
    RecordValidationError,
)
from crmdesk.crm.backends.memory import InMemoryEntityStore
from crmdesk.crm.backends.remote import RemoteRecordBackend

__all__ = [
    "BaseEntityBackend",
    "BatchResult",
    "CRMError",
    "EntityBackend",
    "InMemoryEntityStore",
    "RecordFailure",
    "RecordNotFoundError",
    "RecordServiceError",
    "RecordValidationError",
    "RemoteRecordBackend",
]
