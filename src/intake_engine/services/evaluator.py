"""Completeness evaluation for a single intake.

The evaluator reads the whole intake graph, decrypts what it needs through
the PII codec, and reports every gap as a MissingItem. Data problems never
raise: a ciphertext that fails its integrity check becomes a "could not be
verified" item and evaluation carries on with the next field. Only
repository faults propagate.

Output ordering is deterministic:

1. required plaintext fields (name, date of birth, phone, address)
2. taxpayer SSN, then the optional taxpayer IP PIN
3. filing status, then spouse fields when the status requires a spouse
4. photo IDs, spouse photo IDs, tax documents
5. bank account numbers, per account
6. dependent SSN cross-checks, in entry order
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from uuid import UUID

from intake_engine.domain.files import FileCategory
from intake_engine.domain.intake import IntakeGraph, TaxpayerInfo
from intake_engine.domain.validation import MissingItem, ValidationResult
from intake_engine.domain.validators import (
    digits_only,
    is_valid_account_number,
    is_valid_ip_pin,
    is_valid_routing_number,
    is_valid_ssn,
)
from intake_engine.exceptions import IntegrityError
from intake_engine.logging_config import get_logger
from intake_engine.pii import PIICodec
from intake_engine.services.graph import IntakeGraphReader
from intake_engine.services.interfaces import CompletenessEvaluator

logger = get_logger(__name__)

SECTION_PERSONAL = "Personal Info"
SECTION_ADDRESS = "Address"
SECTION_FILING_STATUS = "Filing Status"
SECTION_SPOUSE = "Spouse Info"
SECTION_PHOTO_ID = "Photo ID"
SECTION_SPOUSE_PHOTO_ID = "Spouse Photo ID"
SECTION_TAX_DOCUMENTS = "Tax Documents"
SECTION_BANK_ACCOUNTS = "Bank Accounts"
SECTION_DEPENDENTS = "Dependents"

INTAKE_NOT_FOUND_WARNING = "Intake not found"

# (field, description, section) for plaintext fields that must be non-blank
_REQUIRED_TAXPAYER_FIELDS = (
    ("taxpayer_first_name", "Taxpayer first name is required", SECTION_PERSONAL),
    ("taxpayer_last_name", "Taxpayer last name is required", SECTION_PERSONAL),
    ("taxpayer_dob", "Taxpayer date of birth is required", SECTION_PERSONAL),
    ("taxpayer_phone", "At least one phone number is required", SECTION_PERSONAL),
    ("address_city", "City is required", SECTION_ADDRESS),
    ("address_state", "State is required", SECTION_ADDRESS),
    ("address_zip", "ZIP code is required", SECTION_ADDRESS),
)

_REQUIRED_SPOUSE_FIELDS = (
    ("spouse_first_name", "Spouse first name is required for married filing"),
    ("spouse_last_name", "Spouse last name is required for married filing"),
    ("spouse_dob", "Spouse date of birth is required for married filing"),
)

_PHOTO_ID_DOCS = (
    (FileCategory.PHOTO_ID_FRONT, "Taxpayer photo ID (front) is required", SECTION_PHOTO_ID),
    (FileCategory.PHOTO_ID_BACK, "Taxpayer photo ID (back) is required", SECTION_PHOTO_ID),
)

_SPOUSE_PHOTO_ID_DOCS = (
    (
        FileCategory.SPOUSE_PHOTO_ID_FRONT,
        "Spouse photo ID (front) is required",
        SECTION_SPOUSE_PHOTO_ID,
    ),
    (
        FileCategory.SPOUSE_PHOTO_ID_BACK,
        "Spouse photo ID (back) is required",
        SECTION_SPOUSE_PHOTO_ID,
    ),
)

TAX_DOCUMENTS_FIELD = "tax_documents"
TAX_DOCUMENTS_DESCRIPTION = (
    "At least one tax document (W-2, 1099, 1099-K, 1098, or other) is required"
)


def _is_blank(value: str | date | None) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class CompletenessEvaluatorImpl(CompletenessEvaluator):
    def __init__(self, graph_reader: IntakeGraphReader, codec: PIICodec) -> None:
        self._graph_reader = graph_reader
        self._codec = codec

    def evaluate(self, intake_id: UUID) -> ValidationResult:
        graph = self._graph_reader.load(intake_id)
        if graph is None:
            logger.info("evaluation_intake_not_found", intake_id=str(intake_id))
            return ValidationResult(
                warnings=[INTAKE_NOT_FOUND_WARNING], intake_found=False
            )

        result = ValidationResult()
        info = graph.taxpayer_info or TaxpayerInfo(intake_id=intake_id)

        self._check_required_fields(info, result)
        self._check_taxpayer_pii(info, result)
        self._check_filing_status(graph, result)
        if graph.requires_spouse:
            self._check_spouse(info, result)
        self._check_documents(graph, result)
        self._check_bank_accounts(graph, result)
        self._check_dependents(graph, info, result)
        self._collect_warnings(graph, result)

        logger.debug(
            "intake_evaluated",
            intake_id=str(intake_id),
            valid=result.valid,
            missing_fields=len(result.missing_fields),
            missing_docs=len(result.missing_docs),
            warnings=len(result.warnings),
        )
        return result

    def _check_required_fields(
        self, info: TaxpayerInfo, result: ValidationResult
    ) -> None:
        for field_name, description, section in _REQUIRED_TAXPAYER_FIELDS:
            if _is_blank(getattr(info, field_name)):
                result.missing_fields.append(
                    MissingItem(field_name, description, section)
                )

    def _check_taxpayer_pii(self, info: TaxpayerInfo, result: ValidationResult) -> None:
        if not info.taxpayer_ssn_encrypted:
            result.missing_fields.append(
                MissingItem(
                    "taxpayer_ssn",
                    "Taxpayer Social Security Number is required",
                    SECTION_PERSONAL,
                )
            )
        else:
            self._check_encrypted(
                info.taxpayer_ssn_encrypted,
                is_valid_ssn,
                field_name="taxpayer_ssn",
                invalid="Taxpayer SSN format is invalid",
                unverifiable="Taxpayer SSN could not be verified",
                section=SECTION_PERSONAL,
                result=result,
            )

        if info.taxpayer_ip_pin_encrypted:
            self._check_encrypted(
                info.taxpayer_ip_pin_encrypted,
                is_valid_ip_pin,
                field_name="taxpayer_ip_pin",
                invalid="Taxpayer IP PIN must be 6 digits",
                unverifiable="Taxpayer IP PIN could not be verified",
                section=SECTION_PERSONAL,
                result=result,
            )

    def _check_filing_status(self, graph: IntakeGraph, result: ValidationResult) -> None:
        if graph.filing_status is None:
            result.missing_fields.append(
                MissingItem(
                    "filing_status", "Filing status is required", SECTION_FILING_STATUS
                )
            )

    def _check_spouse(self, info: TaxpayerInfo, result: ValidationResult) -> None:
        for field_name, description in _REQUIRED_SPOUSE_FIELDS:
            if _is_blank(getattr(info, field_name)):
                result.missing_fields.append(
                    MissingItem(field_name, description, SECTION_SPOUSE)
                )

        if not info.spouse_ssn_encrypted:
            result.missing_fields.append(
                MissingItem(
                    "spouse_ssn",
                    "Spouse Social Security Number is required for married filing",
                    SECTION_SPOUSE,
                )
            )
        else:
            self._check_encrypted(
                info.spouse_ssn_encrypted,
                is_valid_ssn,
                field_name="spouse_ssn",
                invalid="Spouse SSN format is invalid",
                unverifiable="Spouse SSN could not be verified",
                section=SECTION_SPOUSE,
                result=result,
            )

        if info.spouse_ip_pin_encrypted:
            self._check_encrypted(
                info.spouse_ip_pin_encrypted,
                is_valid_ip_pin,
                field_name="spouse_ip_pin",
                invalid="Spouse IP PIN must be 6 digits",
                unverifiable="Spouse IP PIN could not be verified",
                section=SECTION_SPOUSE,
                result=result,
            )

    def _check_documents(self, graph: IntakeGraph, result: ValidationResult) -> None:
        required = list(_PHOTO_ID_DOCS)
        if graph.requires_spouse:
            required.extend(_SPOUSE_PHOTO_ID_DOCS)
        for category, description, section in required:
            if not graph.has_file(category):
                result.missing_docs.append(
                    MissingItem(category.value, description, section)
                )

        if not graph.has_tax_document:
            result.missing_docs.append(
                MissingItem(
                    TAX_DOCUMENTS_FIELD, TAX_DOCUMENTS_DESCRIPTION, SECTION_TAX_DOCUMENTS
                )
            )

    def _check_bank_accounts(self, graph: IntakeGraph, result: ValidationResult) -> None:
        for account in graph.bank_accounts:
            if account.routing_number_encrypted:
                self._check_encrypted(
                    account.routing_number_encrypted,
                    is_valid_routing_number,
                    field_name=f"bank_{account.id}_routing",
                    invalid=(
                        "Bank account routing number is invalid "
                        "(must be 9 digits with valid checksum)"
                    ),
                    unverifiable="Bank routing number could not be verified",
                    section=SECTION_BANK_ACCOUNTS,
                    result=result,
                )
            if account.account_number_encrypted:
                self._check_encrypted(
                    account.account_number_encrypted,
                    is_valid_account_number,
                    field_name=f"bank_{account.id}_account",
                    invalid="Bank account number is invalid (must be 4-17 digits)",
                    unverifiable="Bank account number could not be verified",
                    section=SECTION_BANK_ACCOUNTS,
                    result=result,
                )

    def _check_dependents(
        self, graph: IntakeGraph, info: TaxpayerInfo, result: ValidationResult
    ) -> None:
        taxpayer_ssn = self._decrypt_ssn_quietly(info.taxpayer_ssn_encrypted)
        spouse_ssn = self._decrypt_ssn_quietly(info.spouse_ssn_encrypted)
        seen: set[str] = set()

        for dependent in graph.dependents:
            if not dependent.ssn_encrypted:
                continue
            field_name = f"dependent_{dependent.id}_ssn"
            name = dependent.display_name
            try:
                ssn = digits_only(self._codec.decrypt(dependent.ssn_encrypted))
            except IntegrityError:
                logger.warning(
                    "dependent_ssn_unverifiable",
                    intake_id=str(graph.intake.id),
                    dependent_id=str(dependent.id),
                )
                result.missing_fields.append(
                    MissingItem(
                        field_name,
                        f"Dependent {name}'s SSN could not be verified",
                        SECTION_DEPENDENTS,
                    )
                )
                continue

            if taxpayer_ssn and ssn == taxpayer_ssn:
                result.missing_fields.append(
                    MissingItem(
                        field_name,
                        f"Dependent {name}'s SSN matches taxpayer SSN",
                        SECTION_DEPENDENTS,
                    )
                )
            if spouse_ssn and ssn == spouse_ssn:
                result.missing_fields.append(
                    MissingItem(
                        field_name,
                        f"Dependent {name}'s SSN matches spouse SSN",
                        SECTION_DEPENDENTS,
                    )
                )
            # the first dependent holding an SSN is not flagged, later ones are
            if ssn in seen:
                result.missing_fields.append(
                    MissingItem(
                        field_name,
                        f"Dependent {name}'s SSN is duplicated",
                        SECTION_DEPENDENTS,
                    )
                )
            seen.add(ssn)

    def _collect_warnings(self, graph: IntakeGraph, result: ValidationResult) -> None:
        info = graph.taxpayer_info
        if info is not None and _is_blank(info.taxpayer_email):
            result.warnings.append("Taxpayer email address is not on file")

        for dependent in graph.dependents:
            if not dependent.ssn_encrypted:
                result.warnings.append(
                    f"Dependent {dependent.display_name} has no SSN on file"
                )

        flagged = sum(1 for f in graph.files if f.needs_review)
        if flagged:
            result.warnings.append(f"{flagged} uploaded file(s) flagged for review")

    def _check_encrypted(
        self,
        blob: bytes,
        predicate: Callable[[str], bool],
        *,
        field_name: str,
        invalid: str,
        unverifiable: str,
        section: str,
        result: ValidationResult,
    ) -> None:
        try:
            plaintext = self._codec.decrypt(blob)
        except IntegrityError:
            logger.warning("encrypted_field_unverifiable", field=field_name)
            result.missing_fields.append(MissingItem(field_name, unverifiable, section))
            return
        if not predicate(plaintext):
            result.missing_fields.append(MissingItem(field_name, invalid, section))

    def _decrypt_ssn_quietly(self, blob: bytes | None) -> str | None:
        """Decrypt for comparison only. An unverifiable value is left out of the comparison."""
        if not blob:
            return None
        try:
            return digits_only(self._codec.decrypt(blob)) or None
        except IntegrityError:
            return None
