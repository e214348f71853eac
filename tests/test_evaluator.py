"""Tests for the completeness evaluator."""

from datetime import date
from uuid import uuid4

import pytest

from intake_engine.domain.files import FileCategory
from intake_engine.domain.intake import BankAccountType, Dependent, FilingStatusType
from intake_engine.services.evaluator import (
    INTAKE_NOT_FOUND_WARNING,
    SECTION_BANK_ACCOUNTS,
    SECTION_DEPENDENTS,
    SECTION_SPOUSE,
    TAX_DOCUMENTS_FIELD,
)

from conftest import SPOUSE_SSN, TAXPAYER_SSN, VALID_ROUTING

TAMPERED_BLOB = b"\x00" * 40


def fields_of(items):
    return [item.field for item in items]


def descriptions_of(items):
    return [item.description for item in items]


class TestEvaluateMissingIntake:
    def test_unknown_intake_is_invalid_with_warning(self, evaluator):
        result = evaluator.evaluate(uuid4())

        assert result.valid is False
        assert result.intake_found is False
        assert result.missing_fields == []
        assert result.missing_docs == []
        assert result.warnings == [INTAKE_NOT_FOUND_WARNING]


class TestEvaluateEmptyIntake:
    def test_reports_every_required_field_in_order(self, evaluator, draft_intake):
        result = evaluator.evaluate(draft_intake.id)

        assert result.valid is False
        assert fields_of(result.missing_fields) == [
            "taxpayer_first_name",
            "taxpayer_last_name",
            "taxpayer_dob",
            "taxpayer_phone",
            "address_city",
            "address_state",
            "address_zip",
            "taxpayer_ssn",
            "filing_status",
        ]

    def test_reports_photo_ids_then_tax_documents(self, evaluator, draft_intake):
        result = evaluator.evaluate(draft_intake.id)

        assert fields_of(result.missing_docs) == [
            "photo_id_front",
            "photo_id_back",
            TAX_DOCUMENTS_FIELD,
        ]

    def test_no_email_warning_without_taxpayer_info(self, evaluator, draft_intake):
        result = evaluator.evaluate(draft_intake.id)

        assert result.warnings == []

    def test_descriptions_are_client_facing(self, evaluator, draft_intake):
        result = evaluator.evaluate(draft_intake.id)

        assert "Taxpayer first name is required" in descriptions_of(result.missing_fields)
        assert "ZIP code is required" in descriptions_of(result.missing_fields)
        assert "Filing status is required" in descriptions_of(result.missing_fields)


class TestEvaluateCompleteIntake:
    def test_complete_single_filer_is_valid(self, evaluator, complete_intake):
        result = evaluator.evaluate(complete_intake.id)

        assert result.valid is True
        assert result.missing_fields == []
        assert result.missing_docs == []
        assert result.warnings == []

    def test_evaluation_is_deterministic(self, evaluator, complete_intake, intake_service, actor_id):
        intake_service.add_dependent(complete_intake.id, actor_id, first_name="Ava")

        first = evaluator.evaluate(complete_intake.id)
        second = evaluator.evaluate(complete_intake.id)

        assert first.to_dict() == second.to_dict()

    def test_blank_required_field_is_missing(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.save_taxpayer_info(
            complete_intake.id, actor_id, taxpayer_first_name="   "
        )

        result = evaluator.evaluate(complete_intake.id)

        assert fields_of(result.missing_fields) == ["taxpayer_first_name"]

    def test_missing_email_is_only_a_warning(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.save_taxpayer_info(complete_intake.id, actor_id, taxpayer_email="")

        result = evaluator.evaluate(complete_intake.id)

        assert result.valid is True
        assert result.warnings == ["Taxpayer email address is not on file"]

    def test_any_tax_document_category_counts(
        self, evaluator, complete_intake, file_repo, intake_service, actor_id
    ):
        w2 = next(
            f for f in file_repo.list_by_intake(complete_intake.id)
            if f.category == FileCategory.W2
        )
        intake_service.delete_file(w2.id, actor_id)
        intake_service.upload_file(
            complete_intake.id, actor_id, b"1099k", "1099k.pdf", FileCategory.FORM_1099_K
        )

        result = evaluator.evaluate(complete_intake.id)

        assert result.missing_docs == []


class TestEvaluateTaxpayerPII:
    def test_invalid_ssn(self, evaluator, complete_intake, intake_service, actor_id):
        intake_service.save_taxpayer_info(
            complete_intake.id, actor_id, taxpayer_ssn="666-12-3456"
        )

        result = evaluator.evaluate(complete_intake.id)

        assert descriptions_of(result.missing_fields) == ["Taxpayer SSN format is invalid"]
        assert fields_of(result.missing_fields) == ["taxpayer_ssn"]

    def test_invalid_ip_pin(self, evaluator, complete_intake, intake_service, actor_id):
        intake_service.save_taxpayer_info(
            complete_intake.id, actor_id, taxpayer_ip_pin="12345"
        )

        result = evaluator.evaluate(complete_intake.id)

        assert descriptions_of(result.missing_fields) == [
            "Taxpayer IP PIN must be 6 digits"
        ]

    def test_valid_ip_pin_passes(self, evaluator, complete_intake, intake_service, actor_id):
        intake_service.save_taxpayer_info(
            complete_intake.id, actor_id, taxpayer_ip_pin="123456"
        )

        assert evaluator.evaluate(complete_intake.id).valid is True

    def test_tampered_ssn_is_unverifiable(self, evaluator, complete_intake, taxpayer_repo):
        info = taxpayer_repo.get_by_intake(complete_intake.id)
        info.taxpayer_ssn_encrypted = TAMPERED_BLOB
        taxpayer_repo.save(info)

        result = evaluator.evaluate(complete_intake.id)

        assert result.valid is False
        assert descriptions_of(result.missing_fields) == [
            "Taxpayer SSN could not be verified"
        ]

    def test_tampering_does_not_stop_later_checks(
        self, evaluator, complete_intake, taxpayer_repo, intake_service, actor_id
    ):
        intake_service.set_filing_status(
            complete_intake.id, actor_id, FilingStatusType.MARRIED
        )
        info = taxpayer_repo.get_by_intake(complete_intake.id)
        info.taxpayer_ssn_encrypted = TAMPERED_BLOB
        taxpayer_repo.save(info)

        result = evaluator.evaluate(complete_intake.id)

        assert "taxpayer_ssn" in fields_of(result.missing_fields)
        assert "spouse_ssn" in fields_of(result.missing_fields)
        assert "spouse_photo_id_front" in fields_of(result.missing_docs)


class TestEvaluateSpouse:
    @pytest.mark.parametrize(
        "status",
        [FilingStatusType.MARRIED, FilingStatusType.MARRIED_FILING_SEPARATELY],
    )
    def test_married_requires_spouse_fields_and_ids(
        self, evaluator, complete_intake, intake_service, actor_id, status
    ):
        intake_service.set_filing_status(complete_intake.id, actor_id, status)

        result = evaluator.evaluate(complete_intake.id)

        assert fields_of(result.missing_fields) == [
            "spouse_first_name",
            "spouse_last_name",
            "spouse_dob",
            "spouse_ssn",
        ]
        assert all(item.section == SECTION_SPOUSE for item in result.missing_fields)
        assert fields_of(result.missing_docs) == [
            "spouse_photo_id_front",
            "spouse_photo_id_back",
        ]

    @pytest.mark.parametrize(
        "status",
        [
            FilingStatusType.SINGLE,
            FilingStatusType.WIDOWED,
            FilingStatusType.HEAD_OF_HOUSEHOLD,
        ],
    )
    def test_other_statuses_ignore_spouse(
        self, evaluator, complete_intake, intake_service, actor_id, status
    ):
        intake_service.set_filing_status(complete_intake.id, actor_id, status)

        assert evaluator.evaluate(complete_intake.id).valid is True

    def test_complete_married_intake_is_valid(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.set_filing_status(
            complete_intake.id, actor_id, FilingStatusType.MARRIED
        )
        intake_service.save_taxpayer_info(
            complete_intake.id,
            actor_id,
            spouse_first_name="Casey",
            spouse_last_name="Rivera",
            spouse_dob=date(1986, 9, 3),
            spouse_ssn=SPOUSE_SSN,
        )
        for category in (
            FileCategory.SPOUSE_PHOTO_ID_FRONT,
            FileCategory.SPOUSE_PHOTO_ID_BACK,
        ):
            intake_service.upload_file(
                complete_intake.id, actor_id, b"id", "spouse id.jpg", category
            )

        assert evaluator.evaluate(complete_intake.id).valid is True

    def test_invalid_spouse_ip_pin(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.set_filing_status(
            complete_intake.id, actor_id, FilingStatusType.MARRIED
        )
        intake_service.save_taxpayer_info(
            complete_intake.id,
            actor_id,
            spouse_first_name="Casey",
            spouse_last_name="Rivera",
            spouse_dob=date(1986, 9, 3),
            spouse_ssn=SPOUSE_SSN,
            spouse_ip_pin="99",
        )

        result = evaluator.evaluate(complete_intake.id)

        assert descriptions_of(result.missing_fields) == [
            "Spouse IP PIN must be 6 digits"
        ]


class TestEvaluateBankAccounts:
    def test_valid_account_passes(self, evaluator, complete_intake, intake_service, actor_id):
        intake_service.add_bank_account(
            complete_intake.id,
            actor_id,
            BankAccountType.CHECKING,
            routing_number=VALID_ROUTING,
            account_number="000123456789",
        )

        assert evaluator.evaluate(complete_intake.id).valid is True

    def test_invalid_numbers_are_keyed_by_account(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        account = intake_service.add_bank_account(
            complete_intake.id,
            actor_id,
            BankAccountType.SAVINGS,
            routing_number="123456789",
            account_number="12",
        )

        result = evaluator.evaluate(complete_intake.id)

        assert fields_of(result.missing_fields) == [
            f"bank_{account.id}_routing",
            f"bank_{account.id}_account",
        ]
        assert all(item.section == SECTION_BANK_ACCOUNTS for item in result.missing_fields)
        assert result.missing_fields[0].description == (
            "Bank account routing number is invalid (must be 9 digits with valid checksum)"
        )

    def test_absent_numbers_are_not_checked(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.add_bank_account(
            complete_intake.id, actor_id, BankAccountType.CHECKING, bank_name="First Bank"
        )

        assert evaluator.evaluate(complete_intake.id).valid is True


class TestEvaluateDependents:
    def test_dependent_matching_taxpayer(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        dependent = intake_service.add_dependent(
            complete_intake.id, actor_id, first_name="Sam", ssn=TAXPAYER_SSN
        )

        result = evaluator.evaluate(complete_intake.id)

        assert len(result.missing_fields) == 1
        item = result.missing_fields[0]
        assert item.field == f"dependent_{dependent.id}_ssn"
        assert item.description == "Dependent Sam's SSN matches taxpayer SSN"
        assert item.section == SECTION_DEPENDENTS

    def test_match_ignores_formatting(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.add_dependent(
            complete_intake.id, actor_id, first_name="Sam", ssn="123456789"
        )

        result = evaluator.evaluate(complete_intake.id)

        assert descriptions_of(result.missing_fields) == [
            "Dependent Sam's SSN matches taxpayer SSN"
        ]

    def test_dependent_matching_spouse(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.save_taxpayer_info(
            complete_intake.id, actor_id, spouse_ssn=SPOUSE_SSN
        )
        intake_service.add_dependent(
            complete_intake.id, actor_id, first_name="Lee", ssn=SPOUSE_SSN
        )

        result = evaluator.evaluate(complete_intake.id)

        assert descriptions_of(result.missing_fields) == [
            "Dependent Lee's SSN matches spouse SSN"
        ]

    def test_only_later_duplicates_are_flagged(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.add_dependent(
            complete_intake.id, actor_id, first_name="Ava", ssn="345-67-8901"
        )
        second = intake_service.add_dependent(
            complete_intake.id, actor_id, first_name="Ben", ssn="345678901"
        )

        result = evaluator.evaluate(complete_intake.id)

        assert fields_of(result.missing_fields) == [f"dependent_{second.id}_ssn"]
        assert descriptions_of(result.missing_fields) == [
            "Dependent Ben's SSN is duplicated"
        ]

    def test_tampered_dependent_ssn_is_unverifiable(
        self, evaluator, complete_intake, household_repo
    ):
        household_repo.add_dependent(
            Dependent(
                intake_id=complete_intake.id,
                first_name="Kai",
                ssn_encrypted=TAMPERED_BLOB,
            )
        )

        result = evaluator.evaluate(complete_intake.id)

        assert descriptions_of(result.missing_fields) == [
            "Dependent Kai's SSN could not be verified"
        ]

    def test_dependent_without_ssn_is_a_warning(
        self, evaluator, complete_intake, intake_service, actor_id
    ):
        intake_service.add_dependent(complete_intake.id, actor_id, first_name="Ava")
        intake_service.add_dependent(complete_intake.id, actor_id)

        result = evaluator.evaluate(complete_intake.id)

        assert result.valid is True
        assert result.warnings == [
            "Dependent Ava has no SSN on file",
            "Dependent unknown has no SSN on file",
        ]


class TestEvaluateWarnings:
    def test_flagged_files_are_counted(
        self, evaluator, complete_intake, file_repo, intake_service
    ):
        files = list(file_repo.list_by_intake(complete_intake.id))
        intake_service.flag_file_for_review(files[0].id)
        intake_service.flag_file_for_review(files[1].id)

        result = evaluator.evaluate(complete_intake.id)

        assert result.valid is True
        assert result.warnings == ["2 uploaded file(s) flagged for review"]


class TestValidationResultSerialization:
    def test_to_dict_uses_camel_case_keys(self, evaluator, draft_intake):
        data = evaluator.evaluate(draft_intake.id).to_dict()

        assert set(data) == {"valid", "missingFields", "missingDocs", "warnings"}
        assert data["valid"] is False
        assert data["missingFields"][0] == {
            "field": "taxpayer_first_name",
            "description": "Taxpayer first name is required",
            "section": "Personal Info",
        }
