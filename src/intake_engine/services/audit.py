"""Audit trail persisted to the audit_log table."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from intake_engine.domain.audit import (
    AuditAction,
    AuditEntry,
    AuditResource,
    AuditResult,
)
from intake_engine.logging_config import get_logger
from intake_engine.repositories.interfaces import AuditRepository
from intake_engine.services.interfaces import AuditSink

logger = get_logger(__name__)


class AuditService(AuditSink):
    """Fire-and-forget audit sink.

    A failed write is logged and dropped so that auditing can never abort
    the operation being audited.
    """

    def __init__(self, audit_repo: AuditRepository) -> None:
        self._audit_repo = audit_repo

    def record(
        self,
        actor_id: UUID | None,
        action: AuditAction,
        resource: AuditResource,
        resource_id: UUID | None,
        result: AuditResult = AuditResult.SUCCESS,
        details: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditEntry(
            action=action,
            resource=resource,
            actor_id=actor_id,
            resource_id=resource_id,
            result=result,
            details=details,
        )
        try:
            self._audit_repo.add(entry)
        except Exception:
            logger.exception(
                "audit_record_failed",
                action=action.value,
                resource=resource.value,
                resource_id=str(resource_id) if resource_id else None,
            )
            return
        logger.debug(
            "audit_recorded",
            action=action.value,
            resource=resource.value,
            result=result.value,
        )

    def list_by_resource(
        self, resource: AuditResource, resource_id: UUID, limit: int = 100
    ) -> list[AuditEntry]:
        return list(self._audit_repo.list_by_resource(resource, resource_id, limit))
