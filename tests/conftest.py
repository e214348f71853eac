from datetime import date
from uuid import UUID, uuid4

import pytest
import structlog

from intake_engine.domain.files import FileCategory
from intake_engine.domain.intake import FilingStatusType, Intake
from intake_engine.logging_config import get_console_processors
from intake_engine.pii import PIICodec
from intake_engine.repositories.sqlite import (
    SQLiteAuditRepository,
    SQLiteChecklistRepository,
    SQLiteDatabase,
    SQLiteFileRepository,
    SQLiteHouseholdRepository,
    SQLiteIntakeRepository,
    SQLitePacketRequestRepository,
    SQLiteTaxpayerInfoRepository,
)
from intake_engine.services.audit import AuditService
from intake_engine.services.checklist import ChecklistReconciler, ChecklistService
from intake_engine.services.evaluator import CompletenessEvaluatorImpl
from intake_engine.services.graph import IntakeGraphReader
from intake_engine.services.intake import IntakeService
from intake_engine.services.storage import LocalExportStore, LocalFileStorage

TEST_KEY = "0123456789abcdef" * 4
TAXPAYER_SSN = "123-45-6789"
SPOUSE_SSN = "234-56-7890"
VALID_ROUTING = "021000021"


@pytest.fixture(autouse=True, scope="session")
def structured_logging():
    """Route structlog through stdlib logging so nothing is printed to stdout."""
    structlog.configure(
        processors=get_console_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def codec() -> PIICodec:
    return PIICodec.from_secret(TEST_KEY)


@pytest.fixture
def db():
    database = SQLiteDatabase(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def intake_repo(db: SQLiteDatabase) -> SQLiteIntakeRepository:
    return SQLiteIntakeRepository(db)


@pytest.fixture
def taxpayer_repo(db: SQLiteDatabase) -> SQLiteTaxpayerInfoRepository:
    return SQLiteTaxpayerInfoRepository(db)


@pytest.fixture
def household_repo(db: SQLiteDatabase) -> SQLiteHouseholdRepository:
    return SQLiteHouseholdRepository(db)


@pytest.fixture
def file_repo(db: SQLiteDatabase) -> SQLiteFileRepository:
    return SQLiteFileRepository(db)


@pytest.fixture
def checklist_repo(db: SQLiteDatabase) -> SQLiteChecklistRepository:
    return SQLiteChecklistRepository(db)


@pytest.fixture
def packet_repo(db: SQLiteDatabase) -> SQLitePacketRequestRepository:
    return SQLitePacketRequestRepository(db)


@pytest.fixture
def audit_repo(db: SQLiteDatabase) -> SQLiteAuditRepository:
    return SQLiteAuditRepository(db)


@pytest.fixture
def audit_service(audit_repo: SQLiteAuditRepository) -> AuditService:
    return AuditService(audit_repo)


@pytest.fixture
def file_storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture
def export_store(tmp_path) -> LocalExportStore:
    return LocalExportStore(tmp_path / "exports")


@pytest.fixture
def graph_reader(
    intake_repo, taxpayer_repo, household_repo, file_repo, checklist_repo
) -> IntakeGraphReader:
    return IntakeGraphReader(
        intake_repo, taxpayer_repo, household_repo, file_repo, checklist_repo
    )


@pytest.fixture
def evaluator(graph_reader: IntakeGraphReader, codec: PIICodec) -> CompletenessEvaluatorImpl:
    return CompletenessEvaluatorImpl(graph_reader, codec)


@pytest.fixture
def reconciler(evaluator, checklist_repo) -> ChecklistReconciler:
    return ChecklistReconciler(evaluator, checklist_repo)


@pytest.fixture
def checklist_service(checklist_repo, intake_repo, audit_service) -> ChecklistService:
    return ChecklistService(checklist_repo, intake_repo, audit_service)


@pytest.fixture
def intake_service(
    intake_repo,
    taxpayer_repo,
    household_repo,
    file_repo,
    file_storage,
    codec,
    evaluator,
    reconciler,
    audit_service,
) -> IntakeService:
    return IntakeService(
        intake_repo=intake_repo,
        taxpayer_repo=taxpayer_repo,
        household_repo=household_repo,
        file_repo=file_repo,
        file_storage=file_storage,
        codec=codec,
        evaluator=evaluator,
        reconciler=reconciler,
        audit_sink=audit_service,
    )


@pytest.fixture
def draft_intake(intake_repo: SQLiteIntakeRepository) -> Intake:
    """A bare intake with no child records and no checklist."""
    intake = Intake(user_id=uuid4(), tax_year=2024)
    intake_repo.add(intake)
    return intake


@pytest.fixture
def complete_intake(intake_service: IntakeService, actor_id: UUID) -> Intake:
    """A single filer with every required field and document."""
    intake = intake_service.create_intake(actor_id, 2024)
    intake_service.save_taxpayer_info(
        intake.id,
        actor_id,
        taxpayer_first_name="Jordan",
        taxpayer_last_name="Rivera",
        taxpayer_dob=date(1985, 4, 12),
        taxpayer_phone="555-010-2000",
        taxpayer_email="jordan@example.com",
        taxpayer_ssn=TAXPAYER_SSN,
        address_street="12 Elm St",
        address_city="Columbus",
        address_state="OH",
        address_zip="43004",
    )
    intake_service.set_filing_status(intake.id, actor_id, FilingStatusType.SINGLE)
    for category, name in (
        (FileCategory.PHOTO_ID_FRONT, "license front.jpg"),
        (FileCategory.PHOTO_ID_BACK, "license back.jpg"),
        (FileCategory.W2, "w2 2024.pdf"),
    ):
        intake_service.upload_file(
            intake.id, actor_id, f"{name} bytes".encode(), name, category
        )
    return intake
