from intake_engine.domain.audit import (
    AuditAction,
    AuditEntry,
    AuditResource,
    AuditResult,
)
from intake_engine.domain.checklist import ChecklistItem, ChecklistItemType
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
    IntakeGraph,
    IntakeStatus,
    StatusHistory,
    TaxAuthority,
    TaxpayerInfo,
)
from intake_engine.domain.packets import PacketRequest, PacketRequestStatus
from intake_engine.domain.validation import MissingItem, ValidationResult

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditResource",
    "AuditResult",
    "BankAccount",
    "BankAccountType",
    "ChecklistItem",
    "ChecklistItemType",
    "ChildcareProvider",
    "Dependent",
    "EstimatedPayment",
    "FileCategory",
    "FilingStatus",
    "FilingStatusType",
    "Intake",
    "IntakeFile",
    "IntakeGraph",
    "IntakeStatus",
    "MissingItem",
    "PacketRequest",
    "PacketRequestStatus",
    "StatusHistory",
    "TaxAuthority",
    "TaxpayerInfo",
    "ValidationResult",
]
