from intake_engine.repositories.interfaces import (
    AuditRepository,
    ChecklistRepository,
    FileRepository,
    HouseholdRepository,
    IntakeRepository,
    PacketRequestRepository,
    TaxpayerInfoRepository,
)
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

__all__ = [
    "AuditRepository",
    "ChecklistRepository",
    "FileRepository",
    "HouseholdRepository",
    "IntakeRepository",
    "PacketRequestRepository",
    "TaxpayerInfoRepository",
    "SQLiteAuditRepository",
    "SQLiteChecklistRepository",
    "SQLiteDatabase",
    "SQLiteFileRepository",
    "SQLiteHouseholdRepository",
    "SQLiteIntakeRepository",
    "SQLitePacketRequestRepository",
    "SQLiteTaxpayerInfoRepository",
]
