"""Dependency injection container for the Tax Intake Engine.

Wires repositories, collaborators and services from Settings. Everything is
built lazily on first access except the PII codec, which is built in the
constructor so that a missing or malformed encryption key fails at startup.

Usage:
    from intake_engine.container import Container

    with Container() as container:
        result = container.evaluator.evaluate(intake_id)
        request_id = container.packet_service.enqueue_packet(intake_id, actor_id)
"""

from functools import cached_property, lru_cache

from intake_engine.config import Settings, get_settings
from intake_engine.logging_config import get_logger
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
from intake_engine.services.interfaces import DocumentRenderer
from intake_engine.services.packet import PacketDispatcher, PacketPipeline, PacketService
from intake_engine.services.rendering import get_renderer
from intake_engine.services.storage import LocalExportStore, LocalFileStorage

logger = get_logger(__name__)


class Container:
    """Lazy service container.

    Configure with custom settings for tests:

        settings = Settings(sqlite_path=":memory:", data_encryption_key="...")
        container = Container(settings=settings)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self.codec = PIICodec.from_settings(self._settings)
        logger.debug(
            "container_created",
            environment=self._settings.environment.value,
            renderer=self._settings.packet_renderer,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def database(self) -> SQLiteDatabase:
        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)
        db = SQLiteDatabase(db_path)
        db.initialize()
        return db

    # Repositories

    @cached_property
    def intake_repo(self) -> SQLiteIntakeRepository:
        return SQLiteIntakeRepository(self.database)

    @cached_property
    def taxpayer_repo(self) -> SQLiteTaxpayerInfoRepository:
        return SQLiteTaxpayerInfoRepository(self.database)

    @cached_property
    def household_repo(self) -> SQLiteHouseholdRepository:
        return SQLiteHouseholdRepository(self.database)

    @cached_property
    def file_repo(self) -> SQLiteFileRepository:
        return SQLiteFileRepository(self.database)

    @cached_property
    def checklist_repo(self) -> SQLiteChecklistRepository:
        return SQLiteChecklistRepository(self.database)

    @cached_property
    def packet_repo(self) -> SQLitePacketRequestRepository:
        return SQLitePacketRequestRepository(self.database)

    @cached_property
    def audit_repo(self) -> SQLiteAuditRepository:
        return SQLiteAuditRepository(self.database)

    # Collaborators

    @cached_property
    def file_storage(self) -> LocalFileStorage:
        return LocalFileStorage(self._settings.upload_dir)

    @cached_property
    def export_store(self) -> LocalExportStore:
        return LocalExportStore(self._settings.export_dir)

    @cached_property
    def renderer(self) -> DocumentRenderer:
        return get_renderer(self._settings.packet_renderer)

    @cached_property
    def audit_service(self) -> AuditService:
        return AuditService(self.audit_repo)

    # Services

    @cached_property
    def graph_reader(self) -> IntakeGraphReader:
        return IntakeGraphReader(
            self.intake_repo,
            self.taxpayer_repo,
            self.household_repo,
            self.file_repo,
            self.checklist_repo,
        )

    @cached_property
    def evaluator(self) -> CompletenessEvaluatorImpl:
        return CompletenessEvaluatorImpl(self.graph_reader, self.codec)

    @cached_property
    def reconciler(self) -> ChecklistReconciler:
        return ChecklistReconciler(self.evaluator, self.checklist_repo)

    @cached_property
    def checklist_service(self) -> ChecklistService:
        return ChecklistService(self.checklist_repo, self.intake_repo, self.audit_service)

    @cached_property
    def intake_service(self) -> IntakeService:
        return IntakeService(
            intake_repo=self.intake_repo,
            taxpayer_repo=self.taxpayer_repo,
            household_repo=self.household_repo,
            file_repo=self.file_repo,
            file_storage=self.file_storage,
            codec=self.codec,
            evaluator=self.evaluator,
            reconciler=self.reconciler,
            audit_sink=self.audit_service,
        )

    @cached_property
    def packet_pipeline(self) -> PacketPipeline:
        return PacketPipeline(
            packet_repo=self.packet_repo,
            graph_reader=self.graph_reader,
            codec=self.codec,
            file_storage=self.file_storage,
            export_store=self.export_store,
            renderer=self.renderer,
            audit_sink=self.audit_service,
            summary_title=self._settings.summary_title,
        )

    @cached_property
    def packet_dispatcher(self) -> PacketDispatcher:
        return PacketDispatcher(
            self.packet_pipeline, max_workers=self._settings.packet_workers
        )

    @cached_property
    def packet_service(self) -> PacketService:
        return PacketService(
            self.packet_repo, self.intake_repo, self.packet_dispatcher, self.export_store
        )

    def close(self) -> None:
        """Wait for in-flight packet jobs, then close the database."""
        if "packet_dispatcher" in self.__dict__:
            self.packet_dispatcher.shutdown(wait=True)
        if "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


@lru_cache
def get_container() -> Container:
    """Process-wide container built from environment settings."""
    return Container()


def reset_container() -> None:
    """Close and forget the process-wide container."""
    if get_container.cache_info().currsize:
        get_container().close()
    get_container.cache_clear()
