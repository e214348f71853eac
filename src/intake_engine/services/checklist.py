"""Checklist reconciliation and staff checklist operations."""

from uuid import UUID

from intake_engine.domain.audit import AuditAction, AuditResource
from intake_engine.domain.checklist import (
    AUTO_ITEM_TYPES,
    ChecklistItem,
    ChecklistItemType,
    checklist_key,
)
from intake_engine.exceptions import ChecklistItemNotFoundError, IntakeNotFoundError
from intake_engine.logging_config import get_logger
from intake_engine.repositories.interfaces import ChecklistRepository, IntakeRepository
from intake_engine.services.interfaces import (
    AuditSink,
    ChecklistSyncSummary,
    CompletenessEvaluator,
)

logger = get_logger(__name__)


class ChecklistReconciler:
    """Keeps auto-detected checklist items in step with a fresh evaluation.

    Only ``missing_field`` and ``missing_document`` items are read or written.
    Items no longer reported are resolved; reported items are upserted by
    ``(intake_id, item_type, field_name)`` and forced back to unresolved, so a
    staff resolution only sticks once the underlying gap is gone. Rows that
    already match the report are left alone, which makes a second run with
    unchanged data write nothing.
    """

    def __init__(
        self,
        evaluator: CompletenessEvaluator,
        checklist_repo: ChecklistRepository,
    ) -> None:
        self._evaluator = evaluator
        self._checklist_repo = checklist_repo

    def reconcile(
        self, intake_id: UUID, actor_id: UUID | None = None
    ) -> ChecklistSyncSummary:
        summary = ChecklistSyncSummary()
        result = self._evaluator.evaluate(intake_id)
        if not result.intake_found:
            logger.warning("reconcile_intake_not_found", intake_id=str(intake_id))
            return summary

        # One report can flag the same field more than once (a dependent SSN
        # that matches the taxpayer and is also duplicated); those share a row.
        desired: dict[str, tuple[ChecklistItemType, str, str]] = {}
        reported = [
            (ChecklistItemType.MISSING_FIELD, item) for item in result.missing_fields
        ] + [
            (ChecklistItemType.MISSING_DOCUMENT, item) for item in result.missing_docs
        ]
        for item_type, item in reported:
            key = checklist_key(item_type, item.field)
            if key in desired:
                _, field_name, description = desired[key]
                desired[key] = (item_type, field_name, f"{description}; {item.description}")
            else:
                desired[key] = (item_type, item.field, item.description)

        existing = {
            item.key: item
            for item in self._checklist_repo.list_by_intake(
                intake_id, item_types=AUTO_ITEM_TYPES
            )
        }

        for key, item in existing.items():
            if key not in desired and not item.is_resolved:
                item.resolve(actor_id)
                self._checklist_repo.update(item)
                summary.resolved += 1

        for key, (item_type, field_name, description) in desired.items():
            current = existing.get(key)
            if current is None:
                self._checklist_repo.upsert(
                    ChecklistItem(
                        intake_id=intake_id,
                        item_type=item_type,
                        description=description,
                        field_name=field_name,
                        created_by_user_id=actor_id,
                    )
                )
                summary.created += 1
                continue
            if not current.is_resolved and current.description == description:
                summary.unchanged += 1
                continue
            was_resolved = current.is_resolved
            current.reopen(description)
            self._checklist_repo.update(current)
            if was_resolved:
                summary.reopened += 1
            else:
                summary.updated += 1

        logger.info(
            "checklist_reconciled",
            intake_id=str(intake_id),
            created=summary.created,
            reopened=summary.reopened,
            updated=summary.updated,
            resolved=summary.resolved,
            unchanged=summary.unchanged,
        )
        return summary


class ChecklistService:
    """Staff-facing checklist operations."""

    def __init__(
        self,
        checklist_repo: ChecklistRepository,
        intake_repo: IntakeRepository,
        audit_sink: AuditSink,
    ) -> None:
        self._checklist_repo = checklist_repo
        self._intake_repo = intake_repo
        self._audit = audit_sink

    def add_item(
        self,
        intake_id: UUID,
        actor_id: UUID,
        item_type: ChecklistItemType,
        description: str,
    ) -> ChecklistItem:
        """Create a hand-written item. Only unkeyed types are accepted."""
        if item_type.is_auto:
            raise ValueError(
                f"{item_type.value} items are managed by reconciliation"
            )
        if not description or not description.strip():
            raise ValueError("Checklist item description is required")
        if self._intake_repo.get(intake_id) is None:
            raise IntakeNotFoundError(intake_id)

        item = ChecklistItem(
            intake_id=intake_id,
            item_type=item_type,
            description=description.strip(),
            created_by_user_id=actor_id,
        )
        self._checklist_repo.add(item)
        self._audit.record(
            actor_id,
            AuditAction.CHECKLIST_ITEM_CREATED,
            AuditResource.CHECKLIST_ITEM,
            item.id,
            details={"intake_id": str(intake_id), "item_type": item_type.value},
        )
        return item

    def resolve_item(self, item_id: UUID, actor_id: UUID) -> ChecklistItem:
        item = self._checklist_repo.get(item_id)
        if item is None:
            raise ChecklistItemNotFoundError(item_id)
        if item.is_resolved:
            return item

        item.resolve(actor_id)
        self._checklist_repo.update(item)
        self._audit.record(
            actor_id,
            AuditAction.CHECKLIST_ITEM_RESOLVED,
            AuditResource.CHECKLIST_ITEM,
            item.id,
            details={"intake_id": str(item.intake_id), "item_type": item.item_type.value},
        )
        return item

    def list_items(
        self, intake_id: UUID, include_resolved: bool = True
    ) -> list[ChecklistItem]:
        items = list(self._checklist_repo.list_by_intake(intake_id))
        if include_resolved:
            return items
        return [item for item in items if not item.is_resolved]
