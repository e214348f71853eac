"""Loads every persisted child of an intake in one pass."""

from uuid import UUID

from intake_engine.domain.intake import IntakeGraph
from intake_engine.repositories.interfaces import (
    ChecklistRepository,
    FileRepository,
    HouseholdRepository,
    IntakeRepository,
    TaxpayerInfoRepository,
)


class IntakeGraphReader:
    def __init__(
        self,
        intake_repo: IntakeRepository,
        taxpayer_repo: TaxpayerInfoRepository,
        household_repo: HouseholdRepository,
        file_repo: FileRepository,
        checklist_repo: ChecklistRepository,
    ) -> None:
        self._intake_repo = intake_repo
        self._taxpayer_repo = taxpayer_repo
        self._household_repo = household_repo
        self._file_repo = file_repo
        self._checklist_repo = checklist_repo

    def load(self, intake_id: UUID) -> IntakeGraph | None:
        intake = self._intake_repo.get(intake_id)
        if intake is None:
            return None
        return IntakeGraph(
            intake=intake,
            taxpayer_info=self._taxpayer_repo.get_by_intake(intake_id),
            filing_status=self._taxpayer_repo.get_filing_status(intake_id),
            bank_accounts=list(self._household_repo.list_bank_accounts(intake_id)),
            dependents=list(self._household_repo.list_dependents(intake_id)),
            childcare_providers=list(
                self._household_repo.list_childcare_providers(intake_id)
            ),
            estimated_payments=list(
                self._household_repo.list_estimated_payments(intake_id)
            ),
            files=list(self._file_repo.list_by_intake(intake_id)),
            checklist_items=list(self._checklist_repo.list_by_intake(intake_id)),
        )
