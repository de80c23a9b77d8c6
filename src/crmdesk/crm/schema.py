"""Field mapping between CRM models and the record-service schema.

The record service names custom fields with a ``_c`` suffix and stores
list-valued fields as delimited strings. This module is the only place that
knows either convention: records cross it as plain dicts keyed by model
field names, with native ``list[str]`` values.

Example (contact):
    {"name": "Ada", "tags": ["vip", "eu"]}
        <-> {"Name_c": "Ada", "Tags_c": "vip,eu"}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from crmdesk.crm.models import EntityKind

TAG_DELIMITER = ","

# System fields present on every table.
SYSTEM_FIELDS: Dict[str, str] = {
    "id": "Id",
    "created_at": "CreatedDate",
    "updated_at": "LastModifiedDate",
}

DEFAULT_PAGE_SIZE = 100
COUNT_PAGE_SIZE = 1000


@dataclass(frozen=True)
class RemoteSchema:
    """How one entity kind is laid out in the record service."""

    kind: EntityKind
    table: str
    fields: Dict[str, str]
    list_fields: FrozenSet[str] = frozenset()
    order_by: str = "CreatedDate"
    system_fields: Dict[str, str] = field(default_factory=lambda: dict(SYSTEM_FIELDS))

    @property
    def all_fields(self) -> Dict[str, str]:
        """Model field name -> remote field name, system fields included."""
        return {**self.system_fields, **self.fields}

    def remote_name(self, model_field: str) -> str:
        """Remote name of a model field.

        Raises:
            KeyError: If the field is not part of this kind's schema
        """
        try:
            return self.all_fields[model_field]
        except KeyError:
            raise KeyError(f"{self.kind.value} has no field '{model_field}'") from None

    # -------------------------------------------------------------------------
    # Translation
    # -------------------------------------------------------------------------

    def to_remote(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Translate model-keyed values to a remote record.

        Only keys present in ``values`` are emitted, so partial updates stay
        partial. System fields are not writable and are skipped.
        """
        record: Dict[str, Any] = {}
        for name, value in values.items():
            if name in self.system_fields:
                continue
            remote = self.remote_name(name)
            if name in self.list_fields:
                value = encode_list(value)
            elif hasattr(value, "isoformat"):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            record[remote] = value
        return record

    def from_remote(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Translate a remote record to model-keyed values.

        Unknown remote fields are dropped; null values are left out so the
        model's defaults apply.
        """
        values: Dict[str, Any] = {}
        for name, remote in self.all_fields.items():
            if remote not in record or record[remote] is None:
                continue
            value = record[remote]
            if name in self.list_fields:
                value = decode_list(value)
            values[name] = value
        return values

    # -------------------------------------------------------------------------
    # Query builders
    # -------------------------------------------------------------------------

    def projection(self) -> List[Dict[str, Dict[str, str]]]:
        """Explicit field projection covering every mapped field."""
        return [{"field": {"Name": remote}} for remote in self.all_fields.values()]

    def query(
        self,
        *,
        where: Optional[List[Dict[str, Any]]] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        ordered: bool = True,
    ) -> Dict[str, Any]:
        """Build a read request body."""
        params: Dict[str, Any] = {"fields": self.projection()}
        if where:
            params["where"] = where
        if ordered:
            params["orderBy"] = [{"fieldName": self.order_by, "sorttype": "DESC"}]
        params["pagingInfo"] = {"limit": limit, "offset": offset}
        return params

    def lookup(self) -> Dict[str, Any]:
        """Build a get-by-id request body (projection only)."""
        return {"fields": self.projection()}

    def equals(self, model_field: str, value: Any) -> List[Dict[str, Any]]:
        """Build a single ``EqualTo`` where clause."""
        return [{"FieldName": self.remote_name(model_field), "Operator": "EqualTo", "Values": [value]}]

    def count_query(self, model_field: str, value: Any) -> Dict[str, Any]:
        """Build an id-only query used to count matching records."""
        return {
            "fields": [{"field": {"Name": self.system_fields["id"]}}],
            "where": self.equals(model_field, value),
            "pagingInfo": {"limit": COUNT_PAGE_SIZE, "offset": 0},
        }


def encode_list(value: Any) -> Optional[str]:
    """Join a list of strings for transmission. Strings pass through."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return TAG_DELIMITER.join(str(item) for item in value)


def decode_list(value: Any) -> List[str]:
    """Split a delimited string into a clean list. Lists pass through."""
    if isinstance(value, list):
        return [str(item) for item in value]
    return [part.strip() for part in str(value).split(TAG_DELIMITER) if part.strip()]


SCHEMAS: Dict[EntityKind, RemoteSchema] = {
    EntityKind.CONTACT: RemoteSchema(
        kind=EntityKind.CONTACT,
        table="contact_c",
        fields={
            "name": "Name_c",
            "email": "Email_c",
            "phone": "Phone_c",
            "company": "Company_c",
            "position": "Position_c",
            "tags": "Tags_c",
        },
        list_fields=frozenset({"tags"}),
    ),
    EntityKind.DEAL: RemoteSchema(
        kind=EntityKind.DEAL,
        table="deal_c",
        fields={
            "title": "Title_c",
            "value": "Value_c",
            "stage": "Stage_c",
            "contact_id": "ContactId_c",
            "probability": "Probability_c",
            "expected_close_date": "ExpectedCloseDate_c",
        },
    ),
    EntityKind.TASK: RemoteSchema(
        kind=EntityKind.TASK,
        table="task_c",
        fields={
            "contact_id": "ContactId_c",
            "title": "Title_c",
            "description": "Description_c",
            "priority": "Priority_c",
            "due_date": "DueDate_c",
            "completed": "Completed_c",
        },
    ),
    EntityKind.ACTIVITY: RemoteSchema(
        kind=EntityKind.ACTIVITY,
        table="activity_c",
        fields={
            "type": "Type_c",
            "subject": "Subject_c",
            "description": "Description_c",
            "contact_id": "ContactId_c",
            "deal_id": "DealId_c",
            "timestamp": "Timestamp_c",
            "duration": "Duration_c",
        },
        order_by="Timestamp_c",
    ),
    EntityKind.COMMENT: RemoteSchema(
        kind=EntityKind.COMMENT,
        table="comment_c",
        fields={
            "contact_id": "ContactId_c",
            "author": "Author_c",
            "content": "Content_c",
            "timestamp": "Timestamp_c",
            "edited": "Edited_c",
        },
        order_by="Timestamp_c",
    ),
}


def schema_for(kind: EntityKind) -> RemoteSchema:
    """Return the remote schema for an entity kind."""
    return SCHEMAS[EntityKind(kind)]
