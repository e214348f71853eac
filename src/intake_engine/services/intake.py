"""Intake lifecycle: client data entry, uploads, submission and staff status changes.

Client writes are only accepted while an intake is a draft and every one of
them re-runs checklist reconciliation. PII arrives as plaintext and is
encrypted before it reaches a record; blank values are stored as absent.
"""

from __future__ import annotations

import hashlib
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from intake_engine.domain.audit import AuditAction, AuditResource
from intake_engine.domain.files import FileCategory, IntakeFile
from intake_engine.domain.intake import (
    BankAccount,
    BankAccountType,
    ChildcareProvider,
    Dependent,
    EstimatedPayment,
    FilingStatus,
    FilingStatusType,
    Intake,
    IntakeStatus,
    StatusHistory,
    TaxAuthority,
    TaxpayerInfo,
)
from intake_engine.domain.validation import ValidationResult
from intake_engine.exceptions import (
    FileNotFoundInIntakeError,
    HouseholdRecordNotFoundError,
    IntakeIncompleteError,
    IntakeLockedError,
    IntakeNotFoundError,
    InvalidStatusTransitionError,
)
from intake_engine.logging_config import get_logger
from intake_engine.pii import PIICodec
from intake_engine.repositories.interfaces import (
    FileRepository,
    HouseholdRepository,
    IntakeRepository,
    TaxpayerInfoRepository,
)
from intake_engine.services.checklist import ChecklistReconciler
from intake_engine.services.interfaces import (
    AuditSink,
    CompletenessEvaluator,
    FileStorage,
)

logger = get_logger(__name__)

# Form field name -> encrypted attribute on TaxpayerInfo
TAXPAYER_PII_FIELDS = {
    "taxpayer_ssn": "taxpayer_ssn_encrypted",
    "taxpayer_ip_pin": "taxpayer_ip_pin_encrypted",
    "spouse_ssn": "spouse_ssn_encrypted",
    "spouse_ip_pin": "spouse_ip_pin_encrypted",
}

TAXPAYER_PLAIN_FIELDS = frozenset(
    {
        "taxpayer_first_name",
        "taxpayer_middle_initial",
        "taxpayer_last_name",
        "taxpayer_dob",
        "taxpayer_occupation",
        "taxpayer_phone",
        "taxpayer_email",
        "spouse_first_name",
        "spouse_middle_initial",
        "spouse_last_name",
        "spouse_dob",
        "spouse_occupation",
        "spouse_phone",
        "spouse_email",
        "address_street",
        "address_apt",
        "address_city",
        "address_state",
        "address_zip",
        "resident_state",
        "resident_city",
        "school_district",
        "county",
    }
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class IntakeService:
    def __init__(
        self,
        intake_repo: IntakeRepository,
        taxpayer_repo: TaxpayerInfoRepository,
        household_repo: HouseholdRepository,
        file_repo: FileRepository,
        file_storage: FileStorage,
        codec: PIICodec,
        evaluator: CompletenessEvaluator,
        reconciler: ChecklistReconciler,
        audit_sink: AuditSink,
    ) -> None:
        self._intake_repo = intake_repo
        self._taxpayer_repo = taxpayer_repo
        self._household_repo = household_repo
        self._file_repo = file_repo
        self._file_storage = file_storage
        self._codec = codec
        self._evaluator = evaluator
        self._reconciler = reconciler
        self._audit = audit_sink

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_intake(self, intake_id: UUID) -> Intake:
        intake = self._intake_repo.get(intake_id)
        if intake is None:
            raise IntakeNotFoundError(intake_id)
        return intake

    def list_intakes(self, user_id: UUID) -> list[Intake]:
        return list(self._intake_repo.list_by_user(user_id))

    def get_status_history(self, intake_id: UUID) -> list[StatusHistory]:
        return list(self._intake_repo.list_status_history(intake_id))

    def _get_editable(self, intake_id: UUID) -> Intake:
        intake = self.get_intake(intake_id)
        if not intake.is_editable:
            raise IntakeLockedError(intake_id, intake.status.value)
        return intake

    def _touch(self, intake: Intake) -> None:
        intake.updated_at = _utc_now()
        self._intake_repo.update(intake)

    # ------------------------------------------------------------------
    # Client data entry
    # ------------------------------------------------------------------

    def create_intake(self, user_id: UUID, tax_year: int) -> Intake:
        intake = Intake(user_id=user_id, tax_year=tax_year)
        self._intake_repo.add(intake)
        logger.info("intake_created", intake_id=str(intake.id), tax_year=tax_year)
        self._reconciler.reconcile(intake.id, user_id)
        return intake

    def save_taxpayer_info(
        self, intake_id: UUID, actor_id: UUID, **fields: Any
    ) -> TaxpayerInfo:
        """Update only the given fields. PII fields take plaintext."""
        unknown = set(fields) - TAXPAYER_PLAIN_FIELDS - set(TAXPAYER_PII_FIELDS)
        if unknown:
            raise ValueError(f"Unknown taxpayer fields: {', '.join(sorted(unknown))}")

        intake = self._get_editable(intake_id)
        info = self._taxpayer_repo.get_by_intake(intake_id) or TaxpayerInfo(
            intake_id=intake_id
        )
        for name, value in fields.items():
            if name in TAXPAYER_PII_FIELDS:
                setattr(info, TAXPAYER_PII_FIELDS[name], self._codec.safe_encrypt(value))
            else:
                setattr(info, name, value)
        info.updated_at = _utc_now()

        self._taxpayer_repo.save(info)
        self._touch(intake)
        logger.info(
            "taxpayer_info_saved", intake_id=str(intake_id), fields=len(fields)
        )
        self._reconciler.reconcile(intake_id, actor_id)
        return info

    def set_filing_status(
        self,
        intake_id: UUID,
        actor_id: UUID,
        filing_status: FilingStatusType,
        spouse_itemizes_separately: bool | None = None,
        can_be_claimed_as_dependent: bool | None = None,
        spouse_can_be_claimed: bool | None = None,
    ) -> FilingStatus:
        intake = self._get_editable(intake_id)
        current = self._taxpayer_repo.get_filing_status(intake_id)
        status = FilingStatus(
            intake_id=intake_id,
            filing_status=filing_status,
            spouse_itemizes_separately=spouse_itemizes_separately,
            can_be_claimed_as_dependent=can_be_claimed_as_dependent,
            spouse_can_be_claimed=spouse_can_be_claimed,
        )
        if current is not None:
            status.id = current.id
        self._taxpayer_repo.save_filing_status(status)
        self._touch(intake)
        self._reconciler.reconcile(intake_id, actor_id)
        return status

    def add_bank_account(
        self,
        intake_id: UUID,
        actor_id: UUID,
        account_type: BankAccountType,
        bank_name: str | None = None,
        routing_number: str | None = None,
        account_number: str | None = None,
        is_primary: bool = False,
    ) -> BankAccount:
        intake = self._get_editable(intake_id)
        account = BankAccount(
            intake_id=intake_id,
            account_type=account_type,
            bank_name=bank_name,
            routing_number_encrypted=self._codec.safe_encrypt(routing_number),
            account_number_encrypted=self._codec.safe_encrypt(account_number),
            is_primary=is_primary,
        )
        self._household_repo.add_bank_account(account)
        self._touch(intake)
        self._reconciler.reconcile(intake_id, actor_id)
        return account

    def remove_bank_account(
        self, intake_id: UUID, actor_id: UUID, account_id: UUID
    ) -> None:
        intake = self._get_editable(intake_id)
        if not self._household_repo.delete_bank_account(intake_id, account_id):
            raise HouseholdRecordNotFoundError("Bank account", account_id, intake_id)
        self._touch(intake)
        self._reconciler.reconcile(intake_id, actor_id)

    def add_dependent(
        self,
        intake_id: UUID,
        actor_id: UUID,
        first_name: str | None = None,
        last_name: str | None = None,
        ssn: str | None = None,
        dob: date | None = None,
        relationship: str | None = None,
        middle_initial: str | None = None,
        months_lived_with: int | None = None,
        is_student: bool | None = None,
        is_disabled: bool | None = None,
    ) -> Dependent:
        intake = self._get_editable(intake_id)
        dependent = Dependent(
            intake_id=intake_id,
            first_name=first_name,
            middle_initial=middle_initial,
            last_name=last_name,
            dob=dob,
            relationship=relationship,
            ssn_encrypted=self._codec.safe_encrypt(ssn),
            months_lived_with=months_lived_with,
            is_student=is_student,
            is_disabled=is_disabled,
        )
        self._household_repo.add_dependent(dependent)
        self._touch(intake)
        self._reconciler.reconcile(intake_id, actor_id)
        return dependent

    def remove_dependent(
        self, intake_id: UUID, actor_id: UUID, dependent_id: UUID
    ) -> None:
        intake = self._get_editable(intake_id)
        if not self._household_repo.delete_dependent(intake_id, dependent_id):
            raise HouseholdRecordNotFoundError("Dependent", dependent_id, intake_id)
        self._touch(intake)
        self._reconciler.reconcile(intake_id, actor_id)

    def add_childcare_provider(
        self,
        intake_id: UUID,
        provider_name: str,
        amount_paid: Decimal | None = None,
        provider_address: str | None = None,
        provider_city: str | None = None,
        provider_state: str | None = None,
        provider_zip: str | None = None,
    ) -> ChildcareProvider:
        intake = self._get_editable(intake_id)
        provider = ChildcareProvider(
            intake_id=intake_id,
            provider_name=provider_name,
            provider_address=provider_address,
            provider_city=provider_city,
            provider_state=provider_state,
            provider_zip=provider_zip,
            amount_paid=amount_paid,
        )
        self._household_repo.add_childcare_provider(provider)
        self._touch(intake)
        return provider

    def add_estimated_payment(
        self,
        intake_id: UUID,
        tax_authority: TaxAuthority,
        payment_period: str,
        amount: Decimal,
        date_paid: date | None = None,
    ) -> EstimatedPayment:
        intake = self._get_editable(intake_id)
        payment = EstimatedPayment(
            intake_id=intake_id,
            tax_authority=tax_authority,
            payment_period=payment_period,
            amount=amount,
            date_paid=date_paid,
        )
        self._household_repo.add_estimated_payment(payment)
        self._touch(intake)
        return payment

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def upload_file(
        self,
        intake_id: UUID,
        actor_id: UUID,
        data: bytes,
        filename: str,
        category: FileCategory,
        mime_type: str = "application/octet-stream",
    ) -> IntakeFile:
        intake = self._get_editable(intake_id)
        storage_key = self._file_storage.store(data, filename, category)
        file = IntakeFile(
            intake_id=intake_id,
            category=category,
            original_filename=filename,
            storage_key=storage_key,
            checksum_sha256=hashlib.sha256(data).hexdigest(),
            mime_type=mime_type,
            size_bytes=len(data),
            uploaded_by_id=actor_id,
        )
        self._file_repo.add(file)
        self._touch(intake)
        self._audit.record(
            actor_id,
            AuditAction.FILE_UPLOADED,
            AuditResource.FILE,
            file.id,
            details={
                "intake_id": str(intake_id),
                "filename": filename,
                "category": category.value,
            },
        )
        self._reconciler.reconcile(intake_id, actor_id)
        return file

    def delete_file(self, file_id: UUID, actor_id: UUID) -> None:
        file = self._file_repo.get(file_id)
        if file is None:
            raise FileNotFoundInIntakeError(file_id)
        intake = self._get_editable(file.intake_id)

        # bytes first so a storage failure leaves the record in place
        self._file_storage.delete(file.storage_key)
        self._file_repo.delete(file_id)
        self._touch(intake)
        self._audit.record(
            actor_id,
            AuditAction.FILE_DELETED,
            AuditResource.FILE,
            file.id,
            details={"intake_id": str(file.intake_id), "filename": file.original_filename},
        )
        self._reconciler.reconcile(file.intake_id, actor_id)

    def flag_file_for_review(
        self, file_id: UUID, needs_review: bool = True
    ) -> IntakeFile:
        """Staff-only. The review flag is the one mutable attribute of a file."""
        file = self._file_repo.get(file_id)
        if file is None:
            raise FileNotFoundInIntakeError(file_id)
        self._file_repo.set_needs_review(file_id, needs_review)
        file.needs_review = needs_review
        return file

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def submit(self, intake_id: UUID, actor_id: UUID) -> ValidationResult:
        """Submit a draft. An incomplete intake raises IntakeIncompleteError."""
        intake = self.get_intake(intake_id)
        if not intake.can_transition_to(IntakeStatus.SUBMITTED):
            raise InvalidStatusTransitionError(
                "intake", intake.status.value, IntakeStatus.SUBMITTED.value
            )

        result = self._evaluator.evaluate(intake_id)
        if not result.valid:
            logger.info(
                "intake_submission_refused",
                intake_id=str(intake_id),
                missing_fields=len(result.missing_fields),
                missing_docs=len(result.missing_docs),
            )
            self._reconciler.reconcile(intake_id, actor_id)
            raise IntakeIncompleteError(intake_id, result.to_dict())

        old_status = intake.status
        intake.status = IntakeStatus.SUBMITTED
        intake.submitted_at = _utc_now()
        intake.updated_at = intake.submitted_at
        self._intake_repo.update(intake)
        self._intake_repo.add_status_history(
            StatusHistory(
                intake_id=intake_id,
                old_status=old_status,
                new_status=IntakeStatus.SUBMITTED,
                changed_by_id=actor_id,
            )
        )
        self._audit.record(
            actor_id,
            AuditAction.INTAKE_SUBMITTED,
            AuditResource.INTAKE,
            intake_id,
            details={"tax_year": intake.tax_year, "warnings": len(result.warnings)},
        )
        logger.info("intake_submitted", intake_id=str(intake_id))
        return result

    def change_status(
        self,
        intake_id: UUID,
        actor_id: UUID,
        new_status: IntakeStatus,
        notes: str | None = None,
    ) -> Intake:
        intake = self.get_intake(intake_id)
        if intake.status == IntakeStatus.DRAFT and new_status == IntakeStatus.SUBMITTED:
            # submission always goes through the completeness gate
            self.submit(intake_id, actor_id)
            return self.get_intake(intake_id)
        if not intake.can_transition_to(new_status):
            raise InvalidStatusTransitionError(
                "intake", intake.status.value, new_status.value
            )

        old_status = intake.status
        intake.status = new_status
        self._touch(intake)
        self._intake_repo.add_status_history(
            StatusHistory(
                intake_id=intake_id,
                old_status=old_status,
                new_status=new_status,
                changed_by_id=actor_id,
                notes=notes,
            )
        )
        self._audit.record(
            actor_id,
            AuditAction.STATUS_CHANGED,
            AuditResource.INTAKE,
            intake_id,
            details={"old_status": old_status.value, "new_status": new_status.value},
        )
        logger.info(
            "intake_status_changed",
            intake_id=str(intake_id),
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return intake

    def assign_preparer(
        self, intake_id: UUID, actor_id: UUID, preparer_id: UUID | None
    ) -> Intake:
        intake = self.get_intake(intake_id)
        intake.assigned_preparer_id = preparer_id
        self._touch(intake)
        self._audit.record(
            actor_id,
            AuditAction.PREPARER_ASSIGNED,
            AuditResource.INTAKE,
            intake_id,
            details={"preparer_id": str(preparer_id) if preparer_id else None},
        )
        return intake
