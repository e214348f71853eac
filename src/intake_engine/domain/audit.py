"""Audit trail records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AuditAction(str, Enum):
    INTAKE_SUBMITTED = "intake_submitted"
    STATUS_CHANGED = "status_changed"
    PACKET_GENERATED = "packet_generated"
    FILE_UPLOADED = "file_uploaded"
    FILE_DELETED = "file_deleted"
    PREPARER_ASSIGNED = "preparer_assigned"
    CHECKLIST_ITEM_CREATED = "checklist_item_created"
    CHECKLIST_ITEM_RESOLVED = "checklist_item_resolved"


class AuditResource(str, Enum):
    INTAKE = "intake"
    FILE = "file"
    CHECKLIST_ITEM = "checklist_item"
    PACKET_REQUEST = "packet_request"


class AuditResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class AuditEntry:
    action: AuditAction
    resource: AuditResource
    id: UUID = field(default_factory=uuid4)
    actor_id: UUID | None = None
    resource_id: UUID | None = None
    result: AuditResult = AuditResult.SUCCESS
    details: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def succeeded(self) -> bool:
        return self.result == AuditResult.SUCCESS
