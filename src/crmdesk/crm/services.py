"""Entity service facades and the service container.

Each service is the single entry point UI code uses for one entity kind. A
service holds the backend it was constructed with and delegates to it; the
only logic added here is default-value injection and a few read helpers the
screens need (search, stage grouping, timeline).

There are no module-level service instances. Whoever composes the
application calls ``build_services()`` and passes the resulting
``CRMServices`` to the code that needs it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from crmdesk.config import BACKEND_MOCK, BACKEND_REMOTE, Config
from crmdesk.connectors.record_service import RecordServiceClient
from crmdesk.crm.backends.base import EntityBackend, RecordValidationError
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
    utcnow,
)
from crmdesk.crm.registry import BackendFactory, make_record_client
from crmdesk.crm.seed import SEED_RECORDS

logger = logging.getLogger(__name__)


class EntityService:
    """Facade over one backend for one entity kind."""

    kind: EntityKind

    def __init__(self, backend: EntityBackend):
        if EntityKind(backend.kind) != self.kind:
            raise ValueError(
                f"{type(self).__name__} needs a {self.kind.value} backend, "
                f"got {EntityKind(backend.kind).value}"
            )
        self.backend = backend

    async def get_all(self) -> List[CRMRecord]:
        """All records, in backend order."""
        return await self.backend.get_all()

    async def get_by_id(self, record_id: int) -> CRMRecord:
        """One record; raises RecordNotFoundError if absent."""
        return await self.backend.get_by_id(record_id)

    async def create(self, fields: Mapping[str, Any]) -> CRMRecord:
        """Create a record from caller-supplied fields."""
        return await self.backend.create(fields)

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> CRMRecord:
        """Merge fields into a record; raises RecordNotFoundError if absent."""
        return await self.backend.update(record_id, fields)

    async def delete(self, record_id: int) -> bool:
        """Delete a record; raises RecordNotFoundError if absent."""
        return await self.backend.delete(record_id)


class ChildEntityService(EntityService):
    """Service for kinds that hang off a contact."""

    async def get_by_contact_id(self, contact_id: int) -> List[CRMRecord]:
        """Records whose ``contact_id`` matches; empty if none."""
        return await self.backend.get_by_parent(contact_id, "contact_id")


class ContactService(EntityService):
    kind = EntityKind.CONTACT

    async def search(self, term: str) -> List[Contact]:
        """Case-insensitive substring match on name, email and company.

        An empty term returns every contact.
        """
        contacts = await self.get_all()
        needle = term.strip().lower()
        if not needle:
            return contacts
        return [
            c for c in contacts
            if any(needle in (value or "").lower() for value in (c.name, c.email, c.company))
        ]


class DealService(ChildEntityService):
    kind = EntityKind.DEAL

    async def get_by_stage(self, stage: Union[DealStage, str]) -> List[Deal]:
        """Deals currently in ``stage``."""
        stage = DealStage(stage)
        return [d for d in await self.get_all() if d.stage == stage]

    async def move_to_stage(self, deal_id: int, stage: Union[DealStage, str]) -> Deal:
        """Move a deal to another pipeline column."""
        return await self.update(deal_id, {"stage": DealStage(stage)})


class TaskService(ChildEntityService):
    kind = EntityKind.TASK

    async def create(self, fields: Mapping[str, Any]) -> Task:
        """Create a task; ``completed`` defaults to False."""
        fields = dict(fields)
        if fields.get("completed") is None:
            fields["completed"] = False
        return await super().create(fields)

    async def toggle_complete(self, task_id: int) -> Task:
        """Flip a task between open and completed."""
        task = await self.get_by_id(task_id)
        return await self.update(task_id, {"completed": not task.completed})

    async def get_open(self) -> List[Task]:
        """Tasks not yet completed."""
        return [t for t in await self.get_all() if not t.completed]


class ActivityService(ChildEntityService):
    kind = EntityKind.ACTIVITY

    async def get_by_deal_id(self, deal_id: int) -> List[Activity]:
        """Activities logged against a deal."""
        return await self.backend.get_by_parent(deal_id, "deal_id")

    async def timeline(
        self,
        contact_id: Optional[int] = None,
        term: Optional[str] = None,
        activity_type: Optional[Union[ActivityType, str]] = None,
    ) -> List[Activity]:
        """Activities filtered for display, newest first.

        Args:
            contact_id: Only this contact's activities
            term: Case-insensitive substring of subject or description
            activity_type: Only this type
        """
        if contact_id is not None:
            activities = await self.get_by_contact_id(contact_id)
        else:
            activities = await self.get_all()

        if term:
            needle = term.lower()
            activities = [
                a for a in activities
                if needle in a.subject.lower() or needle in a.description.lower()
            ]
        if activity_type is not None:
            wanted = ActivityType(activity_type)
            activities = [a for a in activities if a.type == wanted]

        return sorted(activities, key=lambda a: a.timestamp, reverse=True)


class CommentService(ChildEntityService):
    kind = EntityKind.COMMENT

    EDITABLE_FIELDS = frozenset({"content", "author"})

    async def create(self, fields: Mapping[str, Any]) -> Comment:
        """Create a comment stamped with the current time, not edited."""
        return await super().create({**fields, "timestamp": utcnow(), "edited": False})

    async def update(self, record_id: int, fields: Mapping[str, Any]) -> Comment:
        """Edit a comment's content or author; marks it as edited.

        Raises:
            RecordValidationError: If any other field is supplied
        """
        locked = sorted(set(fields) - self.EDITABLE_FIELDS)
        if locked:
            raise RecordValidationError(
                f"Comment field(s) cannot be edited: {', '.join(locked)}",
                {name: "not editable" for name in locked},
            )
        return await super().update(record_id, {**fields, "edited": True})

    async def count_for_contact(self, contact_id: int) -> int:
        """Number of comments on a contact."""
        return await self.backend.count_by_parent(contact_id, "contact_id")


SERVICE_CLASSES = {
    EntityKind.CONTACT: ContactService,
    EntityKind.DEAL: DealService,
    EntityKind.TASK: TaskService,
    EntityKind.ACTIVITY: ActivityService,
    EntityKind.COMMENT: CommentService,
}


@dataclass
class CRMServices:
    """One service per entity kind, all on the same kind of backend."""

    contacts: ContactService
    deals: DealService
    tasks: TaskService
    activities: ActivityService
    comments: CommentService
    backend_name: str = BACKEND_MOCK

    def for_kind(self, kind: Union[EntityKind, str]) -> EntityService:
        """Look up a service by entity kind."""
        return {
            EntityKind.CONTACT: self.contacts,
            EntityKind.DEAL: self.deals,
            EntityKind.TASK: self.tasks,
            EntityKind.ACTIVITY: self.activities,
            EntityKind.COMMENT: self.comments,
        }[EntityKind(kind)]


def build_services(
    config: Optional[Config] = None,
    *,
    client: Optional[RecordServiceClient] = None,
    seed: bool = False,
    **backend_kwargs: Any,
) -> CRMServices:
    """Compose the five services for the configured backend.

    Args:
        config: Configuration (read from environment if omitted)
        client: Record-service client to share (remote only; built from
            config if omitted)
        seed: Load sample records into mock stores
        **backend_kwargs: Extra backend constructor arguments (e.g. latency)

    Returns:
        CRMServices with one service per entity kind
    """
    config = config or Config()
    extra: Dict[str, Any] = dict(backend_kwargs)

    if config.backend == BACKEND_REMOTE:
        extra["client"] = client or make_record_client(config)

    services: Dict[EntityKind, EntityService] = {}
    for kind, service_class in SERVICE_CLASSES.items():
        kwargs = dict(extra)
        if seed and config.backend == BACKEND_MOCK:
            kwargs["records"] = SEED_RECORDS.get(kind, [])
        backend = BackendFactory.from_config(kind, config, **kwargs)
        services[kind] = service_class(backend)

    logger.debug(f"Built CRM services on '{config.backend}' backend")
    return CRMServices(
        contacts=services[EntityKind.CONTACT],
        deals=services[EntityKind.DEAL],
        tasks=services[EntityKind.TASK],
        activities=services[EntityKind.ACTIVITY],
        comments=services[EntityKind.COMMENT],
        backend_name=config.backend,
    )
