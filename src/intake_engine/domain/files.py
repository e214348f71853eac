"""Uploaded file records and their categories."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FileCategory(str, Enum):
    """Category tag chosen by the client at upload time."""

    PHOTO_ID_FRONT = "photo_id_front"
    PHOTO_ID_BACK = "photo_id_back"
    SPOUSE_PHOTO_ID_FRONT = "spouse_photo_id_front"
    SPOUSE_PHOTO_ID_BACK = "spouse_photo_id_back"
    W2 = "w2"
    FORM_1099_INT = "1099_int"
    FORM_1099_DIV = "1099_div"
    FORM_1099_MISC = "1099_misc"
    FORM_1099_NEC = "1099_nec"
    FORM_1099_R = "1099_r"
    FORM_1099_K = "1099_k"
    FORM_1098 = "1098"
    OTHER = "other"

    @property
    def is_1099(self) -> bool:
        return self.value.startswith("1099_")

    @property
    def is_tax_document(self) -> bool:
        return self in TAX_DOCUMENT_CATEGORIES


TAX_DOCUMENT_CATEGORIES = frozenset(
    {
        FileCategory.W2,
        FileCategory.FORM_1099_INT,
        FileCategory.FORM_1099_DIV,
        FileCategory.FORM_1099_MISC,
        FileCategory.FORM_1099_NEC,
        FileCategory.FORM_1099_R,
        FileCategory.FORM_1099_K,
        FileCategory.FORM_1098,
        FileCategory.OTHER,
    }
)


@dataclass
class IntakeFile:
    """An uploaded document. Immutable once written except for the review flag."""

    intake_id: UUID
    category: FileCategory
    original_filename: str
    storage_key: str
    checksum_sha256: str
    id: UUID = field(default_factory=uuid4)
    mime_type: str = "application/octet-stream"
    size_bytes: int = 0
    uploaded_by_id: UUID | None = None
    needs_review: bool = False
    created_at: datetime = field(default_factory=_utc_now)
