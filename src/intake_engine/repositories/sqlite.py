"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

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
    IntakeStatus,
    StatusHistory,
    TaxAuthority,
    TaxpayerInfo,
)
from intake_engine.domain.packets import PacketRequest, PacketRequestStatus
from intake_engine.repositories.interfaces import (
    AuditRepository,
    ChecklistRepository,
    FileRepository,
    HouseholdRepository,
    IntakeRepository,
    PacketRequestRepository,
    TaxpayerInfoRepository,
)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _uuid_str(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def _to_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


def _to_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _to_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _to_bool(value: int | None) -> bool | None:
    return bool(value) if value is not None else None


def _from_bool(value: bool | None) -> int | None:
    return (1 if value else 0) if value is not None else None


def _blob(value: bytes | None) -> bytes | None:
    return bytes(value) if value is not None else None


class SQLiteDatabase:
    """SQLite database connection manager.

    A single connection is shared by every repository. Packet jobs run on
    worker threads, so all access goes through ``transaction()``, which
    serializes callers on a re-entrant lock and commits or rolls back as a unit.
    """

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = False
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path, check_same_thread=self._check_same_thread
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection under the lock; commit on success, roll back on error."""
        with self._lock:
            conn = self.get_connection()
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()

    def initialize(self) -> None:
        """Create all database tables."""
        with self.transaction() as conn:
            conn.executescript(
                """
                -- Intakes table
                CREATE TABLE IF NOT EXISTS intakes (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    tax_year INTEGER NOT NULL,
                    status TEXT NOT NULL DEFAULT 'draft',
                    assigned_preparer_id TEXT,
                    submitted_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_intakes_user ON intakes(user_id);

                -- Status history table
                CREATE TABLE IF NOT EXISTS status_history (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    old_status TEXT,
                    new_status TEXT NOT NULL,
                    changed_by_id TEXT,
                    notes TEXT,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );
                CREATE INDEX IF NOT EXISTS idx_status_history_intake ON status_history(intake_id);

                -- Taxpayer info table (PII columns hold AES-GCM blobs)
                CREATE TABLE IF NOT EXISTS taxpayer_info (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL UNIQUE,
                    taxpayer_first_name TEXT,
                    taxpayer_middle_initial TEXT,
                    taxpayer_last_name TEXT,
                    taxpayer_dob TEXT,
                    taxpayer_occupation TEXT,
                    taxpayer_phone TEXT,
                    taxpayer_email TEXT,
                    taxpayer_ssn_encrypted BLOB,
                    taxpayer_ip_pin_encrypted BLOB,
                    spouse_first_name TEXT,
                    spouse_middle_initial TEXT,
                    spouse_last_name TEXT,
                    spouse_dob TEXT,
                    spouse_occupation TEXT,
                    spouse_phone TEXT,
                    spouse_email TEXT,
                    spouse_ssn_encrypted BLOB,
                    spouse_ip_pin_encrypted BLOB,
                    address_street TEXT,
                    address_apt TEXT,
                    address_city TEXT,
                    address_state TEXT,
                    address_zip TEXT,
                    resident_state TEXT,
                    resident_city TEXT,
                    school_district TEXT,
                    county TEXT,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );

                -- Filing status table
                CREATE TABLE IF NOT EXISTS filing_status (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL UNIQUE,
                    filing_status TEXT NOT NULL,
                    spouse_itemizes_separately INTEGER,
                    can_be_claimed_as_dependent INTEGER,
                    spouse_can_be_claimed INTEGER,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );

                -- Bank accounts table
                CREATE TABLE IF NOT EXISTS bank_accounts (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    account_type TEXT NOT NULL,
                    bank_name TEXT,
                    routing_number_encrypted BLOB,
                    account_number_encrypted BLOB,
                    is_primary INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );
                CREATE INDEX IF NOT EXISTS idx_bank_accounts_intake ON bank_accounts(intake_id);

                -- Dependents table
                CREATE TABLE IF NOT EXISTS dependents (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    first_name TEXT,
                    middle_initial TEXT,
                    last_name TEXT,
                    dob TEXT,
                    relationship TEXT,
                    ssn_encrypted BLOB,
                    months_lived_with INTEGER,
                    is_student INTEGER,
                    is_disabled INTEGER,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );
                CREATE INDEX IF NOT EXISTS idx_dependents_intake ON dependents(intake_id);

                -- Childcare providers table
                CREATE TABLE IF NOT EXISTS childcare_providers (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    provider_name TEXT,
                    provider_address TEXT,
                    provider_city TEXT,
                    provider_state TEXT,
                    provider_zip TEXT,
                    amount_paid TEXT,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );

                -- Estimated payments table
                CREATE TABLE IF NOT EXISTS estimated_payments (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    tax_authority TEXT NOT NULL,
                    payment_period TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    date_paid TEXT,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );

                -- Uploaded files table
                CREATE TABLE IF NOT EXISTS files (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    category TEXT NOT NULL,
                    original_filename TEXT NOT NULL,
                    storage_key TEXT NOT NULL,
                    checksum_sha256 TEXT NOT NULL,
                    mime_type TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL DEFAULT 0,
                    uploaded_by_id TEXT,
                    needs_review INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );
                CREATE INDEX IF NOT EXISTS idx_files_intake ON files(intake_id);

                -- Checklist items table. NULL field names never collide, so
                -- staff-created items stay outside the natural key.
                CREATE TABLE IF NOT EXISTS checklist_items (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    item_type TEXT NOT NULL,
                    field_name TEXT,
                    description TEXT NOT NULL,
                    is_resolved INTEGER NOT NULL DEFAULT 0,
                    resolved_at TEXT,
                    resolved_by_user_id TEXT,
                    created_by_user_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(intake_id, item_type, field_name),
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );
                CREATE INDEX IF NOT EXISTS idx_checklist_items_intake ON checklist_items(intake_id);

                -- Packet requests table
                CREATE TABLE IF NOT EXISTS packet_requests (
                    id TEXT PRIMARY KEY,
                    intake_id TEXT NOT NULL,
                    requested_by_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    packet_location TEXT,
                    error_message TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT,
                    FOREIGN KEY (intake_id) REFERENCES intakes(id)
                );
                CREATE INDEX IF NOT EXISTS idx_packet_requests_intake ON packet_requests(intake_id);
                CREATE INDEX IF NOT EXISTS idx_packet_requests_status ON packet_requests(status);

                -- Audit log table
                CREATE TABLE IF NOT EXISTS audit_log (
                    id TEXT PRIMARY KEY,
                    actor_id TEXT,
                    action TEXT NOT NULL,
                    resource TEXT NOT NULL,
                    resource_id TEXT,
                    result TEXT NOT NULL,
                    details TEXT,
                    timestamp TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_audit_log_resource ON audit_log(resource, resource_id);
                CREATE INDEX IF NOT EXISTS idx_audit_log_timestamp ON audit_log(timestamp);
                """
            )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


class SQLiteIntakeRepository(IntakeRepository):
    """SQLite implementation of IntakeRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, intake: Intake) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO intakes (id, user_id, tax_year, status, assigned_preparer_id,
                                     submitted_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(intake.id),
                    str(intake.user_id),
                    intake.tax_year,
                    intake.status.value,
                    _uuid_str(intake.assigned_preparer_id),
                    _iso(intake.submitted_at),
                    intake.created_at.isoformat(),
                    intake.updated_at.isoformat(),
                ),
            )

    def get(self, intake_id: UUID) -> Intake | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM intakes WHERE id = ?", (str(intake_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_intake(row)

    def list_by_user(self, user_id: UUID) -> list[Intake]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM intakes WHERE user_id = ? ORDER BY tax_year DESC",
                (str(user_id),),
            ).fetchall()
        return [self._row_to_intake(row) for row in rows]

    def update(self, intake: Intake) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE intakes SET
                    status = ?,
                    assigned_preparer_id = ?,
                    submitted_at = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    intake.status.value,
                    _uuid_str(intake.assigned_preparer_id),
                    _iso(intake.submitted_at),
                    intake.updated_at.isoformat(),
                    str(intake.id),
                ),
            )

    def add_status_history(self, entry: StatusHistory) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO status_history (id, intake_id, old_status, new_status,
                                            changed_by_id, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.id),
                    str(entry.intake_id),
                    entry.old_status.value if entry.old_status else None,
                    entry.new_status.value,
                    _uuid_str(entry.changed_by_id),
                    entry.notes,
                    entry.created_at.isoformat(),
                ),
            )

    def list_status_history(self, intake_id: UUID) -> list[StatusHistory]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM status_history WHERE intake_id = ? ORDER BY created_at ASC, rowid ASC",
                (str(intake_id),),
            ).fetchall()
        return [
            StatusHistory(
                intake_id=UUID(row["intake_id"]),
                new_status=IntakeStatus(row["new_status"]),
                id=UUID(row["id"]),
                old_status=IntakeStatus(row["old_status"]) if row["old_status"] else None,
                changed_by_id=_to_uuid(row["changed_by_id"]),
                notes=row["notes"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def _row_to_intake(self, row: sqlite3.Row) -> Intake:
        return Intake(
            user_id=UUID(row["user_id"]),
            tax_year=row["tax_year"],
            id=UUID(row["id"]),
            status=IntakeStatus(row["status"]),
            assigned_preparer_id=_to_uuid(row["assigned_preparer_id"]),
            submitted_at=_to_datetime(row["submitted_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


_TAXPAYER_TEXT_COLUMNS = (
    "taxpayer_first_name",
    "taxpayer_middle_initial",
    "taxpayer_last_name",
    "taxpayer_occupation",
    "taxpayer_phone",
    "taxpayer_email",
    "spouse_first_name",
    "spouse_middle_initial",
    "spouse_last_name",
    "spouse_occupation",
    "spouse_phone",
    "spouse_email",
    "address_street",
    "address_apt",
    "address_city",
    "address_state",
    "address_zip",
    "resident_state",
    "resident_city",
    "school_district",
    "county",
)
_TAXPAYER_DATE_COLUMNS = ("taxpayer_dob", "spouse_dob")
_TAXPAYER_BLOB_COLUMNS = (
    "taxpayer_ssn_encrypted",
    "taxpayer_ip_pin_encrypted",
    "spouse_ssn_encrypted",
    "spouse_ip_pin_encrypted",
)


class SQLiteTaxpayerInfoRepository(TaxpayerInfoRepository):
    """SQLite implementation of TaxpayerInfoRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def get_by_intake(self, intake_id: UUID) -> TaxpayerInfo | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM taxpayer_info WHERE intake_id = ?", (str(intake_id),)
            ).fetchone()
        if row is None:
            return None
        values: dict[str, object] = {
            column: row[column] for column in _TAXPAYER_TEXT_COLUMNS
        }
        values.update(
            {column: _to_date(row[column]) for column in _TAXPAYER_DATE_COLUMNS}
        )
        values.update(
            {column: _blob(row[column]) for column in _TAXPAYER_BLOB_COLUMNS}
        )
        return TaxpayerInfo(
            intake_id=UUID(row["intake_id"]),
            id=UUID(row["id"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            **values,
        )

    def save(self, info: TaxpayerInfo) -> None:
        columns = (
            ("id", "intake_id")
            + _TAXPAYER_TEXT_COLUMNS
            + _TAXPAYER_DATE_COLUMNS
            + _TAXPAYER_BLOB_COLUMNS
            + ("updated_at",)
        )
        params = (
            [str(info.id), str(info.intake_id)]
            + [getattr(info, column) for column in _TAXPAYER_TEXT_COLUMNS]
            + [_iso(getattr(info, column)) for column in _TAXPAYER_DATE_COLUMNS]
            + [_blob(getattr(info, column)) for column in _TAXPAYER_BLOB_COLUMNS]
            + [info.updated_at.isoformat()]
        )
        updates = ", ".join(
            f"{column} = excluded.{column}"
            for column in columns
            if column not in ("id", "intake_id")
        )
        with self._db.transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO taxpayer_info ({", ".join(columns)})
                VALUES ({", ".join("?" for _ in columns)})
                ON CONFLICT(intake_id) DO UPDATE SET {updates}
                """,
                params,
            )

    def get_filing_status(self, intake_id: UUID) -> FilingStatus | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM filing_status WHERE intake_id = ?", (str(intake_id),)
            ).fetchone()
        if row is None:
            return None
        return FilingStatus(
            intake_id=UUID(row["intake_id"]),
            filing_status=FilingStatusType(row["filing_status"]),
            id=UUID(row["id"]),
            spouse_itemizes_separately=_to_bool(row["spouse_itemizes_separately"]),
            can_be_claimed_as_dependent=_to_bool(row["can_be_claimed_as_dependent"]),
            spouse_can_be_claimed=_to_bool(row["spouse_can_be_claimed"]),
        )

    def save_filing_status(self, filing_status: FilingStatus) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO filing_status (id, intake_id, filing_status,
                                           spouse_itemizes_separately,
                                           can_be_claimed_as_dependent,
                                           spouse_can_be_claimed)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(intake_id) DO UPDATE SET
                    filing_status = excluded.filing_status,
                    spouse_itemizes_separately = excluded.spouse_itemizes_separately,
                    can_be_claimed_as_dependent = excluded.can_be_claimed_as_dependent,
                    spouse_can_be_claimed = excluded.spouse_can_be_claimed
                """,
                (
                    str(filing_status.id),
                    str(filing_status.intake_id),
                    filing_status.filing_status.value,
                    _from_bool(filing_status.spouse_itemizes_separately),
                    _from_bool(filing_status.can_be_claimed_as_dependent),
                    _from_bool(filing_status.spouse_can_be_claimed),
                ),
            )


class SQLiteHouseholdRepository(HouseholdRepository):
    """SQLite implementation of HouseholdRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add_bank_account(self, account: BankAccount) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO bank_accounts (id, intake_id, account_type, bank_name,
                                           routing_number_encrypted,
                                           account_number_encrypted, is_primary, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(account.id),
                    str(account.intake_id),
                    account.account_type.value,
                    account.bank_name,
                    _blob(account.routing_number_encrypted),
                    _blob(account.account_number_encrypted),
                    1 if account.is_primary else 0,
                    account.created_at.isoformat(),
                ),
            )

    def list_bank_accounts(self, intake_id: UUID) -> list[BankAccount]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM bank_accounts WHERE intake_id = ? ORDER BY created_at ASC, rowid ASC",
                (str(intake_id),),
            ).fetchall()
        return [
            BankAccount(
                intake_id=UUID(row["intake_id"]),
                account_type=BankAccountType(row["account_type"]),
                id=UUID(row["id"]),
                bank_name=row["bank_name"],
                routing_number_encrypted=_blob(row["routing_number_encrypted"]),
                account_number_encrypted=_blob(row["account_number_encrypted"]),
                is_primary=bool(row["is_primary"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def delete_bank_account(self, intake_id: UUID, account_id: UUID) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM bank_accounts WHERE id = ? AND intake_id = ?",
                (str(account_id), str(intake_id)),
            )
        return cursor.rowcount > 0

    def add_dependent(self, dependent: Dependent) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO dependents (id, intake_id, first_name, middle_initial, last_name,
                                        dob, relationship, ssn_encrypted, months_lived_with,
                                        is_student, is_disabled, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(dependent.id),
                    str(dependent.intake_id),
                    dependent.first_name,
                    dependent.middle_initial,
                    dependent.last_name,
                    _iso(dependent.dob),
                    dependent.relationship,
                    _blob(dependent.ssn_encrypted),
                    dependent.months_lived_with,
                    _from_bool(dependent.is_student),
                    _from_bool(dependent.is_disabled),
                    dependent.created_at.isoformat(),
                ),
            )

    def list_dependents(self, intake_id: UUID) -> list[Dependent]:
        # rowid breaks created_at ties so duplicate detection sees entry order
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM dependents WHERE intake_id = ? ORDER BY created_at ASC, rowid ASC",
                (str(intake_id),),
            ).fetchall()
        return [
            Dependent(
                intake_id=UUID(row["intake_id"]),
                id=UUID(row["id"]),
                first_name=row["first_name"],
                middle_initial=row["middle_initial"],
                last_name=row["last_name"],
                dob=_to_date(row["dob"]),
                relationship=row["relationship"],
                ssn_encrypted=_blob(row["ssn_encrypted"]),
                months_lived_with=row["months_lived_with"],
                is_student=_to_bool(row["is_student"]),
                is_disabled=_to_bool(row["is_disabled"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def delete_dependent(self, intake_id: UUID, dependent_id: UUID) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM dependents WHERE id = ? AND intake_id = ?",
                (str(dependent_id), str(intake_id)),
            )
        return cursor.rowcount > 0

    def add_childcare_provider(self, provider: ChildcareProvider) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO childcare_providers (id, intake_id, provider_name, provider_address,
                                                 provider_city, provider_state, provider_zip,
                                                 amount_paid)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(provider.id),
                    str(provider.intake_id),
                    provider.provider_name,
                    provider.provider_address,
                    provider.provider_city,
                    provider.provider_state,
                    provider.provider_zip,
                    str(provider.amount_paid) if provider.amount_paid is not None else None,
                ),
            )

    def list_childcare_providers(self, intake_id: UUID) -> list[ChildcareProvider]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM childcare_providers WHERE intake_id = ? ORDER BY rowid ASC",
                (str(intake_id),),
            ).fetchall()
        return [
            ChildcareProvider(
                intake_id=UUID(row["intake_id"]),
                id=UUID(row["id"]),
                provider_name=row["provider_name"],
                provider_address=row["provider_address"],
                provider_city=row["provider_city"],
                provider_state=row["provider_state"],
                provider_zip=row["provider_zip"],
                amount_paid=Decimal(row["amount_paid"]) if row["amount_paid"] else None,
            )
            for row in rows
        ]

    def add_estimated_payment(self, payment: EstimatedPayment) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO estimated_payments (id, intake_id, tax_authority, payment_period,
                                                amount, date_paid)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(payment.id),
                    str(payment.intake_id),
                    payment.tax_authority.value,
                    payment.payment_period,
                    str(payment.amount),
                    _iso(payment.date_paid),
                ),
            )

    def list_estimated_payments(self, intake_id: UUID) -> list[EstimatedPayment]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM estimated_payments WHERE intake_id = ? ORDER BY rowid ASC",
                (str(intake_id),),
            ).fetchall()
        return [
            EstimatedPayment(
                intake_id=UUID(row["intake_id"]),
                tax_authority=TaxAuthority(row["tax_authority"]),
                payment_period=row["payment_period"],
                amount=Decimal(row["amount"]),
                id=UUID(row["id"]),
                date_paid=_to_date(row["date_paid"]),
            )
            for row in rows
        ]


class SQLiteFileRepository(FileRepository):
    """SQLite implementation of FileRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, file: IntakeFile) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO files (id, intake_id, category, original_filename, storage_key,
                                   checksum_sha256, mime_type, size_bytes, uploaded_by_id,
                                   needs_review, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(file.id),
                    str(file.intake_id),
                    file.category.value,
                    file.original_filename,
                    file.storage_key,
                    file.checksum_sha256,
                    file.mime_type,
                    file.size_bytes,
                    _uuid_str(file.uploaded_by_id),
                    1 if file.needs_review else 0,
                    file.created_at.isoformat(),
                ),
            )

    def get(self, file_id: UUID) -> IntakeFile | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM files WHERE id = ?", (str(file_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_file(row)

    def list_by_intake(self, intake_id: UUID) -> list[IntakeFile]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM files WHERE intake_id = ? ORDER BY created_at ASC, rowid ASC",
                (str(intake_id),),
            ).fetchall()
        return [self._row_to_file(row) for row in rows]

    def set_needs_review(self, file_id: UUID, needs_review: bool) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                "UPDATE files SET needs_review = ? WHERE id = ?",
                (1 if needs_review else 0, str(file_id)),
            )

    def delete(self, file_id: UUID) -> None:
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM files WHERE id = ?", (str(file_id),))

    def _row_to_file(self, row: sqlite3.Row) -> IntakeFile:
        return IntakeFile(
            intake_id=UUID(row["intake_id"]),
            category=FileCategory(row["category"]),
            original_filename=row["original_filename"],
            storage_key=row["storage_key"],
            checksum_sha256=row["checksum_sha256"],
            id=UUID(row["id"]),
            mime_type=row["mime_type"],
            size_bytes=row["size_bytes"],
            uploaded_by_id=_to_uuid(row["uploaded_by_id"]),
            needs_review=bool(row["needs_review"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteChecklistRepository(ChecklistRepository):
    """SQLite implementation of ChecklistRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, item: ChecklistItem) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO checklist_items (id, intake_id, item_type, field_name, description,
                                             is_resolved, resolved_at, resolved_by_user_id,
                                             created_by_user_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(item.id),
                    str(item.intake_id),
                    item.item_type.value,
                    item.field_name,
                    item.description,
                    1 if item.is_resolved else 0,
                    _iso(item.resolved_at),
                    _uuid_str(item.resolved_by_user_id),
                    _uuid_str(item.created_by_user_id),
                    item.created_at.isoformat(),
                    item.updated_at.isoformat(),
                ),
            )

    def get(self, item_id: UUID) -> ChecklistItem | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM checklist_items WHERE id = ?", (str(item_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_item(row)

    def list_by_intake(
        self,
        intake_id: UUID,
        item_types: Iterable[ChecklistItemType] | None = None,
    ) -> list[ChecklistItem]:
        query = "SELECT * FROM checklist_items WHERE intake_id = ?"
        params: list[str] = [str(intake_id)]
        if item_types is not None:
            types = [t.value for t in item_types]
            if not types:
                return []
            query += f" AND item_type IN ({', '.join('?' for _ in types)})"
            params.extend(types)
        query += " ORDER BY created_at ASC, rowid ASC"
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_item(row) for row in rows]

    def update(self, item: ChecklistItem) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE checklist_items SET
                    description = ?,
                    is_resolved = ?,
                    resolved_at = ?,
                    resolved_by_user_id = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    item.description,
                    1 if item.is_resolved else 0,
                    _iso(item.resolved_at),
                    _uuid_str(item.resolved_by_user_id),
                    item.updated_at.isoformat(),
                    str(item.id),
                ),
            )

    def upsert(self, item: ChecklistItem) -> ChecklistItem:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO checklist_items (id, intake_id, item_type, field_name, description,
                                             is_resolved, resolved_at, resolved_by_user_id,
                                             created_by_user_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, 0, NULL, NULL, ?, ?, ?)
                ON CONFLICT(intake_id, item_type, field_name) DO UPDATE SET
                    description = excluded.description,
                    is_resolved = 0,
                    resolved_at = NULL,
                    resolved_by_user_id = NULL,
                    updated_at = excluded.updated_at
                """,
                (
                    str(item.id),
                    str(item.intake_id),
                    item.item_type.value,
                    item.field_name,
                    item.description,
                    _uuid_str(item.created_by_user_id),
                    item.created_at.isoformat(),
                    item.updated_at.isoformat(),
                ),
            )
            row = conn.execute(
                """
                SELECT * FROM checklist_items
                WHERE intake_id = ? AND item_type = ? AND field_name = ?
                """,
                (str(item.intake_id), item.item_type.value, item.field_name),
            ).fetchone()
        return self._row_to_item(row)

    def _row_to_item(self, row: sqlite3.Row) -> ChecklistItem:
        return ChecklistItem(
            intake_id=UUID(row["intake_id"]),
            item_type=ChecklistItemType(row["item_type"]),
            description=row["description"],
            id=UUID(row["id"]),
            field_name=row["field_name"],
            is_resolved=bool(row["is_resolved"]),
            resolved_at=_to_datetime(row["resolved_at"]),
            resolved_by_user_id=_to_uuid(row["resolved_by_user_id"]),
            created_by_user_id=_to_uuid(row["created_by_user_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLitePacketRequestRepository(PacketRequestRepository):
    """SQLite implementation of PacketRequestRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, request: PacketRequest) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO packet_requests (id, intake_id, requested_by_id, status,
                                             packet_location, error_message, created_at,
                                             updated_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(request.id),
                    str(request.intake_id),
                    str(request.requested_by_id),
                    request.status.value,
                    request.packet_location,
                    request.error_message,
                    request.created_at.isoformat(),
                    request.updated_at.isoformat(),
                    _iso(request.completed_at),
                ),
            )

    def get(self, request_id: UUID) -> PacketRequest | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM packet_requests WHERE id = ?", (str(request_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    def update(self, request: PacketRequest) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE packet_requests SET
                    status = ?,
                    packet_location = ?,
                    error_message = ?,
                    updated_at = ?,
                    completed_at = ?
                WHERE id = ?
                """,
                (
                    request.status.value,
                    request.packet_location,
                    request.error_message,
                    request.updated_at.isoformat(),
                    _iso(request.completed_at),
                    str(request.id),
                ),
            )

    def list_by_intake(self, intake_id: UUID) -> list[PacketRequest]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM packet_requests WHERE intake_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (str(intake_id),),
            ).fetchall()
        return [self._row_to_request(row) for row in rows]

    def get_latest_for_intake(self, intake_id: UUID) -> PacketRequest | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM packet_requests WHERE intake_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT 1
                """,
                (str(intake_id),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    def list_by_status(
        self,
        status: PacketRequestStatus,
        created_before: datetime | None = None,
    ) -> list[PacketRequest]:
        query = "SELECT * FROM packet_requests WHERE status = ?"
        params: list[str] = [status.value]
        if created_before is not None:
            query += " AND created_at < ?"
            params.append(created_before.isoformat())
        query += " ORDER BY created_at ASC"
        with self._db.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_request(row) for row in rows]

    def _row_to_request(self, row: sqlite3.Row) -> PacketRequest:
        return PacketRequest(
            intake_id=UUID(row["intake_id"]),
            requested_by_id=UUID(row["requested_by_id"]),
            id=UUID(row["id"]),
            status=PacketRequestStatus(row["status"]),
            packet_location=row["packet_location"],
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            completed_at=_to_datetime(row["completed_at"]),
        )


class SQLiteAuditRepository(AuditRepository):
    """SQLite implementation of AuditRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, entry: AuditEntry) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO audit_log (id, actor_id, action, resource, resource_id,
                                       result, details, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.id),
                    _uuid_str(entry.actor_id),
                    entry.action.value,
                    entry.resource.value,
                    _uuid_str(entry.resource_id),
                    entry.result.value,
                    json.dumps(entry.details, default=str) if entry.details else None,
                    entry.timestamp.isoformat(),
                ),
            )

    def get(self, entry_id: UUID) -> AuditEntry | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM audit_log WHERE id = ?", (str(entry_id),)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    def list_by_resource(
        self,
        resource: AuditResource,
        resource_id: UUID,
        limit: int = 100,
    ) -> list[AuditEntry]:
        with self._db.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM audit_log
                WHERE resource = ? AND resource_id = ?
                ORDER BY timestamp DESC, rowid DESC
                LIMIT ?
                """,
                (resource.value, str(resource_id), limit),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def _row_to_entry(self, row: sqlite3.Row) -> AuditEntry:
        return AuditEntry(
            action=AuditAction(row["action"]),
            resource=AuditResource(row["resource"]),
            id=UUID(row["id"]),
            actor_id=_to_uuid(row["actor_id"]),
            resource_id=_to_uuid(row["resource_id"]),
            result=AuditResult(row["result"]),
            details=json.loads(row["details"]) if row["details"] else None,
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )
