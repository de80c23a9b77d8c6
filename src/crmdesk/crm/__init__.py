"""CRM data-access layer.

This module provides:
- Domain models for contacts, deals, tasks, activities and comments
- Storage backends behind one Protocol (in-memory mock, remote record service)
- Backend registry and factory driven by configuration
- Entity service facades and the service container
- Pipeline board and dashboard reports
"""

from crmdesk.crm.backends import (
    BatchResult,
    CRMError,
    EntityBackend,
    InMemoryEntityStore,
    RecordFailure,
    RecordNotFoundError,
    RecordServiceError,
    RecordValidationError,
    RemoteRecordBackend,
)
from crmdesk.crm.models import (
    Activity,
    ActivityType,
    Comment,
    Contact,
    CRMRecord,
    Deal,
    DealStage,
    EntityKind,
    Task,
    TaskPriority,
)
from crmdesk.crm.registry import BackendFactory, BackendRegistry, UnknownBackendError
from crmdesk.crm.reports import DashboardStats, PipelineBoard, dashboard_stats, pipeline_board
from crmdesk.crm.services import (
    ActivityService,
    CommentService,
    ContactService,
    CRMServices,
    DealService,
    TaskService,
    build_services,
)

__all__ = [
    "Activity",
    "ActivityService",
    "ActivityType",
    "BackendFactory",
    "BackendRegistry",
    "BatchResult",
    "Comment",
    "CommentService",
    "Contact",
    "ContactService",
    "CRMError",
    "CRMRecord",
    "CRMServices",
    "DashboardStats",
    "Deal",
    "DealService",
    "DealStage",
    "EntityBackend",
    "EntityKind",
    "InMemoryEntityStore",
    "PipelineBoard",
    "RecordFailure",
    "RecordNotFoundError",
    "RecordServiceError",
    "RecordValidationError",
    "RemoteRecordBackend",
    "Task",
    "TaskPriority",
    "TaskService",
    "UnknownBackendError",
    "build_services",
    "dashboard_stats",
    "pipeline_board",
]
