"""Intake aggregate: one taxpayer's filing for one tax year.

Fields suffixed ``_encrypted`` hold PIICodec blobs. Plaintext for those
fields never lives on these records.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from intake_engine.domain.checklist import ChecklistItem
from intake_engine.domain.files import FileCategory, IntakeFile


def _utc_now() -> datetime:
    return datetime.now(UTC)


class IntakeStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    READY_FOR_FILING = "ready_for_filing"
    FILED = "filed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Staff-driven lifecycle. Submission from draft goes through IntakeService.submit.
INTAKE_TRANSITIONS: dict[IntakeStatus, frozenset[IntakeStatus]] = {
    IntakeStatus.DRAFT: frozenset({IntakeStatus.SUBMITTED}),
    IntakeStatus.SUBMITTED: frozenset({IntakeStatus.IN_REVIEW}),
    IntakeStatus.IN_REVIEW: frozenset(
        {IntakeStatus.READY_FOR_FILING, IntakeStatus.DRAFT}
    ),
    IntakeStatus.READY_FOR_FILING: frozenset({IntakeStatus.FILED}),
    IntakeStatus.FILED: frozenset({IntakeStatus.ACCEPTED, IntakeStatus.REJECTED}),
    IntakeStatus.ACCEPTED: frozenset(),
    IntakeStatus.REJECTED: frozenset({IntakeStatus.IN_REVIEW}),
}


class FilingStatusType(str, Enum):
    SINGLE = "single"
    MARRIED = "married"
    WIDOWED = "widowed"
    MARRIED_FILING_SEPARATELY = "married_filing_separately"
    HEAD_OF_HOUSEHOLD = "head_of_household"

    @property
    def requires_spouse(self) -> bool:
        return self in (
            FilingStatusType.MARRIED,
            FilingStatusType.MARRIED_FILING_SEPARATELY,
        )


class BankAccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"


class TaxAuthority(str, Enum):
    FEDERAL = "federal"
    RESIDENT_STATE = "resident_state"
    RESIDENT_CITY = "resident_city"


@dataclass
class Intake:
    user_id: UUID
    tax_year: int
    id: UUID = field(default_factory=uuid4)
    status: IntakeStatus = IntakeStatus.DRAFT
    assigned_preparer_id: UUID | None = None
    submitted_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def is_editable(self) -> bool:
        return self.status == IntakeStatus.DRAFT

    def can_transition_to(self, new_status: IntakeStatus) -> bool:
        return new_status in INTAKE_TRANSITIONS[self.status]


@dataclass
class TaxpayerInfo:
    intake_id: UUID
    id: UUID = field(default_factory=uuid4)
    taxpayer_first_name: str | None = None
    taxpayer_middle_initial: str | None = None
    taxpayer_last_name: str | None = None
    taxpayer_dob: date | None = None
    taxpayer_occupation: str | None = None
    taxpayer_phone: str | None = None
    taxpayer_email: str | None = None
    taxpayer_ssn_encrypted: bytes | None = None
    taxpayer_ip_pin_encrypted: bytes | None = None
    spouse_first_name: str | None = None
    spouse_middle_initial: str | None = None
    spouse_last_name: str | None = None
    spouse_dob: date | None = None
    spouse_occupation: str | None = None
    spouse_phone: str | None = None
    spouse_email: str | None = None
    spouse_ssn_encrypted: bytes | None = None
    spouse_ip_pin_encrypted: bytes | None = None
    address_street: str | None = None
    address_apt: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_zip: str | None = None
    resident_state: str | None = None
    resident_city: str | None = None
    school_district: str | None = None
    county: str | None = None
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def has_spouse_data(self) -> bool:
        return bool(
            (self.spouse_first_name and self.spouse_first_name.strip())
            or (self.spouse_last_name and self.spouse_last_name.strip())
            or self.spouse_ssn_encrypted
        )


@dataclass
class FilingStatus:
    intake_id: UUID
    filing_status: FilingStatusType
    id: UUID = field(default_factory=uuid4)
    spouse_itemizes_separately: bool | None = None
    can_be_claimed_as_dependent: bool | None = None
    spouse_can_be_claimed: bool | None = None


@dataclass
class BankAccount:
    intake_id: UUID
    account_type: BankAccountType
    id: UUID = field(default_factory=uuid4)
    bank_name: str | None = None
    routing_number_encrypted: bytes | None = None
    account_number_encrypted: bytes | None = None
    is_primary: bool = False
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class Dependent:
    intake_id: UUID
    id: UUID = field(default_factory=uuid4)
    first_name: str | None = None
    middle_initial: str | None = None
    last_name: str | None = None
    dob: date | None = None
    relationship: str | None = None
    ssn_encrypted: bytes | None = None
    months_lived_with: int | None = None
    is_student: bool | None = None
    is_disabled: bool | None = None
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def display_name(self) -> str:
        return self.first_name or "unknown"


@dataclass
class ChildcareProvider:
    intake_id: UUID
    id: UUID = field(default_factory=uuid4)
    provider_name: str | None = None
    provider_address: str | None = None
    provider_city: str | None = None
    provider_state: str | None = None
    provider_zip: str | None = None
    amount_paid: Decimal | None = None


@dataclass
class EstimatedPayment:
    intake_id: UUID
    tax_authority: TaxAuthority
    payment_period: str
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    date_paid: date | None = None


@dataclass
class StatusHistory:
    intake_id: UUID
    new_status: IntakeStatus
    id: UUID = field(default_factory=uuid4)
    old_status: IntakeStatus | None = None
    changed_by_id: UUID | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=_utc_now)


@dataclass
class IntakeGraph:
    """Everything persisted for one intake, loaded in one pass."""

    intake: Intake
    taxpayer_info: TaxpayerInfo | None = None
    filing_status: FilingStatus | None = None
    bank_accounts: list[BankAccount] = field(default_factory=list)
    dependents: list[Dependent] = field(default_factory=list)
    childcare_providers: list[ChildcareProvider] = field(default_factory=list)
    estimated_payments: list[EstimatedPayment] = field(default_factory=list)
    files: list[IntakeFile] = field(default_factory=list)
    checklist_items: list[ChecklistItem] = field(default_factory=list)

    @property
    def requires_spouse(self) -> bool:
        return (
            self.filing_status is not None
            and self.filing_status.filing_status.requires_spouse
        )

    def has_file(self, category: FileCategory) -> bool:
        return any(f.category == category for f in self.files)

    @property
    def has_tax_document(self) -> bool:
        return any(f.category.is_tax_document for f in self.files)
