from intake_engine.services.audit import AuditService
from intake_engine.services.checklist import ChecklistReconciler, ChecklistService
from intake_engine.services.evaluator import CompletenessEvaluatorImpl
from intake_engine.services.graph import IntakeGraphReader
from intake_engine.services.intake import IntakeService
from intake_engine.services.interfaces import (
    AuditSink,
    ChecklistSyncSummary,
    CompletenessEvaluator,
    DocumentRenderer,
    ExportStore,
    FileStorage,
    PacketSummary,
    SummarySection,
)
from intake_engine.services.packet import (
    PacketDispatcher,
    PacketPipeline,
    PacketService,
    sanitize_filename,
)
from intake_engine.services.rendering import (
    PDFSummaryRenderer,
    TextSummaryRenderer,
    build_packet_summary,
)
from intake_engine.services.storage import LocalExportStore, LocalFileStorage

__all__ = [
    "AuditService",
    "AuditSink",
    "ChecklistReconciler",
    "ChecklistService",
    "ChecklistSyncSummary",
    "CompletenessEvaluator",
    "CompletenessEvaluatorImpl",
    "DocumentRenderer",
    "ExportStore",
    "FileStorage",
    "IntakeGraphReader",
    "IntakeService",
    "LocalExportStore",
    "LocalFileStorage",
    "PDFSummaryRenderer",
    "PacketDispatcher",
    "PacketPipeline",
    "PacketService",
    "PacketSummary",
    "SummarySection",
    "TextSummaryRenderer",
    "build_packet_summary",
    "sanitize_filename",
]
