"""Preparer packet generation.

A packet is a rendered summary plus a zip archive of every uploaded file,
written under ``<intake_id>/<request_id>`` in the export store. Each
generate or regenerate action creates a new PacketRequest; the pipeline
moves it ``pending -> processing -> completed | failed`` and audits the
outcome. Step failures are captured on the request and never re-raised.

Requests are processed on a worker pool. The caller only receives the
request id and polls ``PacketService.get_packet_status``.
"""

from __future__ import annotations

import re
import zipfile
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from io import BytesIO
from pathlib import PurePosixPath
from uuid import UUID

from intake_engine.domain.audit import AuditAction, AuditResource, AuditResult
from intake_engine.domain.files import FileCategory, IntakeFile
from intake_engine.domain.intake import IntakeGraph
from intake_engine.domain.packets import PacketRequest, PacketRequestStatus
from intake_engine.exceptions import (
    IntakeNotFoundError,
    InvalidStatusTransitionError,
    PacketNotReadyError,
    PacketRequestNotFoundError,
)
from intake_engine.logging_config import LogContext, get_logger
from intake_engine.pii import PIICodec
from intake_engine.repositories.interfaces import (
    IntakeRepository,
    PacketRequestRepository,
)
from intake_engine.services.graph import IntakeGraphReader
from intake_engine.services.interfaces import (
    AuditSink,
    DocumentRenderer,
    ExportStore,
    FileStorage,
)
from intake_engine.services.rendering import build_packet_summary

logger = get_logger(__name__)

PACKET_ARCHIVE_NAME = "Packet.zip"

# 1099 subtypes each get their own folder under 1099/
FILE_CATEGORY_FOLDERS: dict[FileCategory, str] = {
    FileCategory.PHOTO_ID_FRONT: "Photo_ID",
    FileCategory.PHOTO_ID_BACK: "Photo_ID",
    FileCategory.SPOUSE_PHOTO_ID_FRONT: "Photo_ID",
    FileCategory.SPOUSE_PHOTO_ID_BACK: "Photo_ID",
    FileCategory.W2: "W2",
    FileCategory.FORM_1098: "1098",
    FileCategory.OTHER: "Other",
}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_DOT_RUNS = re.compile(r"\.{2,}")


def sanitize_filename(name: str) -> str:
    """Restrict a name to ``[A-Za-z0-9._-]`` and collapse dot runs.

    The result contains no path separators and no ``..``, so it cannot climb
    out of its archive folder.
    """
    return _DOT_RUNS.sub(".", _UNSAFE_CHARS.sub("_", name))


def category_folder(category: FileCategory) -> str:
    if category.is_1099:
        return f"1099/{category.value}"
    return FILE_CATEGORY_FOLDERS.get(category, "Other")


def archive_entry_name(file: IntakeFile) -> str:
    folder = category_folder(file.category)
    return f"{folder}/{sanitize_filename(f'{file.category.value}__{file.original_filename}')}"


def _unique_entry(name: str, used: set[str]) -> str:
    if name not in used:
        return name
    path = PurePosixPath(name)
    counter = 2
    while True:
        candidate = str(path.with_name(f"{path.stem}_{counter}{path.suffix}"))
        if candidate not in used:
            return candidate
        counter += 1


class PacketPipeline:
    """Runs one packet request to a terminal state."""

    def __init__(
        self,
        packet_repo: PacketRequestRepository,
        graph_reader: IntakeGraphReader,
        codec: PIICodec,
        file_storage: FileStorage,
        export_store: ExportStore,
        renderer: DocumentRenderer,
        audit_sink: AuditSink,
        summary_title: str = "Preparer Summary",
    ) -> None:
        self._packet_repo = packet_repo
        self._graph_reader = graph_reader
        self._codec = codec
        self._file_storage = file_storage
        self._export_store = export_store
        self._renderer = renderer
        self._audit = audit_sink
        self._summary_title = summary_title

    def process(self, request_id: UUID) -> PacketRequest:
        request = self._packet_repo.get(request_id)
        if request is None:
            raise PacketRequestNotFoundError(request_id)

        with LogContext(request_id=str(request.id), intake_id=str(request.intake_id)):
            try:
                request.start()
            except InvalidStatusTransitionError:
                logger.warning("packet_request_not_pending", status=request.status.value)
                return request
            self._packet_repo.update(request)
            logger.info("packet_generation_started")

            try:
                location = self._generate(request)
            except Exception as exc:
                logger.exception("packet_generation_failed")
                request.fail(str(exc) or type(exc).__name__)
                self._packet_repo.update(request)
                self._audit.record(
                    request.requested_by_id,
                    AuditAction.PACKET_GENERATED,
                    AuditResource.INTAKE,
                    request.intake_id,
                    result=AuditResult.FAILURE,
                    details={
                        "request_id": str(request.id),
                        "error": request.error_message,
                    },
                )
                return request

            request.complete(location)
            self._packet_repo.update(request)
            self._audit.record(
                request.requested_by_id,
                AuditAction.PACKET_GENERATED,
                AuditResource.INTAKE,
                request.intake_id,
                details={"request_id": str(request.id), "status": request.status.value},
            )
            logger.info("packet_generation_completed", location=location)
            return request

    def _generate(self, request: PacketRequest) -> str:
        graph = self._graph_reader.load(request.intake_id)
        if graph is None:
            raise IntakeNotFoundError(request.intake_id)

        summary = build_packet_summary(graph, self._codec, self._summary_title)
        document = self._renderer.render(summary)
        archive = self._build_archive(graph, document)

        self._export_store.write(
            request.intake_id, request.id, self._renderer.filename, document
        )
        return self._export_store.write(
            request.intake_id, request.id, PACKET_ARCHIVE_NAME, archive
        )

    def _build_archive(self, graph: IntakeGraph, document: bytes) -> bytes:
        buffer = BytesIO()
        used = {self._renderer.filename}
        added = 0
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(self._renderer.filename, document)
            for file in graph.files:
                if not self._file_storage.exists(file.storage_key):
                    logger.warning(
                        "packet_file_missing_from_storage",
                        file_id=str(file.id),
                        category=file.category.value,
                    )
                    continue
                data = self._file_storage.fetch(file.storage_key)
                entry = _unique_entry(archive_entry_name(file), used)
                used.add(entry)
                zf.writestr(entry, data)
                added += 1
        logger.debug("packet_archive_built", files=added, skipped=len(graph.files) - added)
        return buffer.getvalue()


class PacketDispatcher:
    """Hands packet requests to a worker pool and returns immediately."""

    def __init__(
        self,
        pipeline: PacketPipeline,
        executor: Executor | None = None,
        max_workers: int = 2,
    ) -> None:
        self._pipeline = pipeline
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="packet"
        )

    def submit(self, request_id: UUID) -> Future:
        future = self._executor.submit(self._pipeline.process, request_id)
        future.add_done_callback(lambda f: self._log_crash(f, request_id))
        return future

    @staticmethod
    def _log_crash(future: Future, request_id: UUID) -> None:
        # step failures are handled inside the pipeline; this only sees
        # lookup or repository faults
        exc = future.exception()
        if exc is not None:
            logger.error(
                "packet_job_crashed",
                request_id=str(request_id),
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class PacketService:
    def __init__(
        self,
        packet_repo: PacketRequestRepository,
        intake_repo: IntakeRepository,
        dispatcher: PacketDispatcher,
        export_store: ExportStore,
    ) -> None:
        self._packet_repo = packet_repo
        self._intake_repo = intake_repo
        self._dispatcher = dispatcher
        self._export_store = export_store

    def enqueue_packet(self, intake_id: UUID, actor_id: UUID) -> UUID:
        """Create a pending request, dispatch it, and return its id."""
        if self._intake_repo.get(intake_id) is None:
            raise IntakeNotFoundError(intake_id)

        request = PacketRequest(intake_id=intake_id, requested_by_id=actor_id)
        self._packet_repo.add(request)
        self._dispatcher.submit(request.id)
        logger.info(
            "packet_enqueued", request_id=str(request.id), intake_id=str(intake_id)
        )
        return request.id

    def get_packet_status(self, request_id: UUID) -> PacketRequest:
        request = self._packet_repo.get(request_id)
        if request is None:
            raise PacketRequestNotFoundError(request_id)
        return request

    def list_requests(self, intake_id: UUID) -> list[PacketRequest]:
        return list(self._packet_repo.list_by_intake(intake_id))

    def get_latest_for_intake(self, intake_id: UUID) -> PacketRequest | None:
        """The most recently created request is the authoritative one."""
        return self._packet_repo.get_latest_for_intake(intake_id)

    def is_generating(self, intake_id: UUID) -> bool:
        latest = self.get_latest_for_intake(intake_id)
        return latest is not None and latest.status.is_active

    def find_orphaned(self, older_than: timedelta) -> list[PacketRequest]:
        """Requests stuck in ``processing`` longer than ``older_than``.

        These are listed for operators and never retried automatically.
        """
        cutoff = datetime.now(UTC) - older_than
        return list(
            self._packet_repo.list_by_status(
                PacketRequestStatus.PROCESSING, created_before=cutoff
            )
        )

    def read_artifact(self, request_id: UUID, name: str) -> bytes:
        request = self.get_packet_status(request_id)
        if request.status != PacketRequestStatus.COMPLETED or not request.packet_location:
            raise PacketNotReadyError(request.id, request.status.value)
        return self._export_store.read(request.packet_location, name)
