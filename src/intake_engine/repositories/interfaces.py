from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from intake_engine.domain.audit import AuditEntry, AuditResource
from intake_engine.domain.checklist import ChecklistItem, ChecklistItemType
from intake_engine.domain.files import IntakeFile
from intake_engine.domain.intake import (
    BankAccount,
    ChildcareProvider,
    Dependent,
    EstimatedPayment,
    FilingStatus,
    Intake,
    StatusHistory,
    TaxpayerInfo,
)
from intake_engine.domain.packets import PacketRequest, PacketRequestStatus


class IntakeRepository(ABC):
    @abstractmethod
    def add(self, intake: Intake) -> None:
        pass

    @abstractmethod
    def get(self, intake_id: UUID) -> Intake | None:
        pass

    @abstractmethod
    def list_by_user(self, user_id: UUID) -> Iterable[Intake]:
        pass

    @abstractmethod
    def update(self, intake: Intake) -> None:
        pass

    @abstractmethod
    def add_status_history(self, entry: StatusHistory) -> None:
        pass

    @abstractmethod
    def list_status_history(self, intake_id: UUID) -> Iterable[StatusHistory]:
        pass


class TaxpayerInfoRepository(ABC):
    """One TaxpayerInfo and one FilingStatus per intake."""

    @abstractmethod
    def get_by_intake(self, intake_id: UUID) -> TaxpayerInfo | None:
        pass

    @abstractmethod
    def save(self, info: TaxpayerInfo) -> None:
        """Insert or replace the intake's taxpayer info."""

    @abstractmethod
    def get_filing_status(self, intake_id: UUID) -> FilingStatus | None:
        pass

    @abstractmethod
    def save_filing_status(self, filing_status: FilingStatus) -> None:
        pass


class HouseholdRepository(ABC):
    """Bank accounts, dependents and the other 0..n children of an intake."""

    @abstractmethod
    def add_bank_account(self, account: BankAccount) -> None:
        pass

    @abstractmethod
    def list_bank_accounts(self, intake_id: UUID) -> Iterable[BankAccount]:
        pass

    @abstractmethod
    def delete_bank_account(self, intake_id: UUID, account_id: UUID) -> bool:
        pass

    @abstractmethod
    def add_dependent(self, dependent: Dependent) -> None:
        pass

    @abstractmethod
    def list_dependents(self, intake_id: UUID) -> Iterable[Dependent]:
        pass

    @abstractmethod
    def delete_dependent(self, intake_id: UUID, dependent_id: UUID) -> bool:
        pass

    @abstractmethod
    def add_childcare_provider(self, provider: ChildcareProvider) -> None:
        pass

    @abstractmethod
    def list_childcare_providers(self, intake_id: UUID) -> Iterable[ChildcareProvider]:
        pass

    @abstractmethod
    def add_estimated_payment(self, payment: EstimatedPayment) -> None:
        pass

    @abstractmethod
    def list_estimated_payments(self, intake_id: UUID) -> Iterable[EstimatedPayment]:
        pass


class FileRepository(ABC):
    @abstractmethod
    def add(self, file: IntakeFile) -> None:
        pass

    @abstractmethod
    def get(self, file_id: UUID) -> IntakeFile | None:
        pass

    @abstractmethod
    def list_by_intake(self, intake_id: UUID) -> Iterable[IntakeFile]:
        pass

    @abstractmethod
    def set_needs_review(self, file_id: UUID, needs_review: bool) -> None:
        pass

    @abstractmethod
    def delete(self, file_id: UUID) -> None:
        pass


class ChecklistRepository(ABC):
    @abstractmethod
    def add(self, item: ChecklistItem) -> None:
        pass

    @abstractmethod
    def get(self, item_id: UUID) -> ChecklistItem | None:
        pass

    @abstractmethod
    def list_by_intake(
        self,
        intake_id: UUID,
        item_types: Iterable[ChecklistItemType] | None = None,
    ) -> Iterable[ChecklistItem]:
        pass

    @abstractmethod
    def update(self, item: ChecklistItem) -> None:
        pass

    @abstractmethod
    def upsert(self, item: ChecklistItem) -> ChecklistItem:
        """Insert, or update the row sharing (intake_id, item_type, field_name).

        On conflict the existing row keeps its id and creation metadata; its
        description is overwritten and it is forced back to unresolved.
        Returns the stored row.
        """


class PacketRequestRepository(ABC):
    @abstractmethod
    def add(self, request: PacketRequest) -> None:
        pass

    @abstractmethod
    def get(self, request_id: UUID) -> PacketRequest | None:
        pass

    @abstractmethod
    def update(self, request: PacketRequest) -> None:
        pass

    @abstractmethod
    def list_by_intake(self, intake_id: UUID) -> Iterable[PacketRequest]:
        """Newest first."""

    @abstractmethod
    def get_latest_for_intake(self, intake_id: UUID) -> PacketRequest | None:
        pass

    @abstractmethod
    def list_by_status(
        self,
        status: PacketRequestStatus,
        created_before: datetime | None = None,
    ) -> Iterable[PacketRequest]:
        pass


class AuditRepository(ABC):
    @abstractmethod
    def add(self, entry: AuditEntry) -> None:
        pass

    @abstractmethod
    def get(self, entry_id: UUID) -> AuditEntry | None:
        pass

    @abstractmethod
    def list_by_resource(
        self,
        resource: AuditResource,
        resource_id: UUID,
        limit: int = 100,
    ) -> Iterable[AuditEntry]:
        pass
