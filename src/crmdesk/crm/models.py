"""CRM domain models.

One pydantic model per entity kind. Every record carries a store-assigned
integer ``id`` and ``created_at``/``updated_at`` timestamps; the remaining
fields are the entity's own. Foreign keys (``contact_id``, ``deal_id``) are
plain ids with no referential integrity.

Models forbid unknown fields so that a typo in an update payload fails
validation instead of silently adding a key.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(v: datetime) -> datetime:
    """Treat naive datetimes as UTC so records compare consistently."""
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class EntityKind(str, Enum):
    """Kinds of record managed by the CRM."""

    CONTACT = "contact"
    DEAL = "deal"
    TASK = "task"
    ACTIVITY = "activity"
    COMMENT = "comment"


class DealStage(str, Enum):
    """Pipeline stage of a deal, in board order."""

    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    CLOSED_WON = "closed-won"
    CLOSED_LOST = "closed-lost"

    @property
    def label(self) -> str:
        """Human-readable stage name (e.g. "Closed Won")."""
        return self.value.replace("-", " ").title()


class TaskPriority(str, Enum):
    """Priority of a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActivityType(str, Enum):
    """Type of logged activity."""

    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"
    TASK = "task"


class CRMRecord(BaseModel):
    """Fields shared by every record kind."""

    id: int = Field(..., gt=0, description="Store-assigned identifier")
    created_at: datetime = Field(default_factory=utcnow, description="When the record was created")
    updated_at: datetime = Field(default_factory=utcnow, description="When the record was last updated")

    model_config = ConfigDict(extra="forbid")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _timestamps_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Contact(CRMRecord):
    """A person the team is in touch with."""

    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class Deal(CRMRecord):
    """A sales opportunity moving through the pipeline."""

    title: str = Field(..., min_length=1)
    value: float = Field(0.0, ge=0)
    stage: DealStage = DealStage.LEAD
    contact_id: Optional[int] = None
    probability: int = Field(0, ge=0, le=100)
    expected_close_date: Optional[date] = None


class Task(CRMRecord):
    """A to-do item, optionally attached to a contact."""

    title: str = Field(..., min_length=1)
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None
    completed: bool = False
    contact_id: Optional[int] = None


class Activity(CRMRecord):
    """A logged interaction (call, email, meeting, ...)."""

    type: ActivityType
    subject: str = Field(..., min_length=1)
    description: str = ""
    contact_id: Optional[int] = None
    deal_id: Optional[int] = None
    timestamp: datetime = Field(default_factory=utcnow)
    duration: Optional[int] = Field(None, ge=0, description="Length in minutes")

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Comment(CRMRecord):
    """A free-text note left on a contact."""

    contact_id: int
    author: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=utcnow)
    edited: bool = False

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


MODEL_BY_KIND: Dict[EntityKind, Type[CRMRecord]] = {
    EntityKind.CONTACT: Contact,
    EntityKind.DEAL: Deal,
    EntityKind.TASK: Task,
    EntityKind.ACTIVITY: Activity,
    EntityKind.COMMENT: Comment,
}

# Fields the store owns; callers cannot set them through create/update.
STORE_MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def model_for(kind: EntityKind) -> Type[CRMRecord]:
    """Return the model class for an entity kind."""
    return MODEL_BY_KIND[EntityKind(kind)]
