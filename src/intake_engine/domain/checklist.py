"""Checklist items tracked against an intake."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ChecklistItemType(str, Enum):
    MISSING_FIELD = "missing_field"
    MISSING_DOCUMENT = "missing_document"
    CLARIFICATION_NEEDED = "clarification_needed"
    CUSTOM = "custom"

    @property
    def is_auto(self) -> bool:
        """Auto types are owned by the checklist reconciler and keyed by field name."""
        return self in AUTO_ITEM_TYPES


AUTO_ITEM_TYPES = frozenset(
    {ChecklistItemType.MISSING_FIELD, ChecklistItemType.MISSING_DOCUMENT}
)


def checklist_key(item_type: ChecklistItemType, field_name: str | None) -> str:
    return f"{item_type.value}:{field_name}"


@dataclass
class ChecklistItem:
    """A tracked gap on an intake.

    ``(intake_id, item_type, field_name)`` is the natural key for auto types.
    Staff-created items carry no field name and are never touched by the
    reconciler.
    """

    intake_id: UUID
    item_type: ChecklistItemType
    description: str
    id: UUID = field(default_factory=uuid4)
    field_name: str | None = None
    is_resolved: bool = False
    resolved_at: datetime | None = None
    resolved_by_user_id: UUID | None = None
    created_by_user_id: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def key(self) -> str:
        return checklist_key(self.item_type, self.field_name)

    def resolve(self, user_id: UUID | None = None) -> None:
        self.is_resolved = True
        self.resolved_at = _utc_now()
        self.resolved_by_user_id = user_id
        self.updated_at = self.resolved_at

    def reopen(self, description: str) -> None:
        """Mark unresolved again, carrying the latest reported description."""
        self.description = description
        self.is_resolved = False
        self.resolved_at = None
        self.resolved_by_user_id = None
        self.updated_at = _utc_now()
