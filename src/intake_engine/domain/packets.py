"""Preparer packet generation requests and their state machine."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID, uuid4

from intake_engine.exceptions import InvalidStatusTransitionError


def _utc_now() -> datetime:
    return datetime.now(UTC)


class PacketRequestStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PacketRequestStatus.COMPLETED, PacketRequestStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


_ALLOWED: dict[PacketRequestStatus, frozenset[PacketRequestStatus]] = {
    PacketRequestStatus.PENDING: frozenset({PacketRequestStatus.PROCESSING}),
    PacketRequestStatus.PROCESSING: frozenset(
        {PacketRequestStatus.COMPLETED, PacketRequestStatus.FAILED}
    ),
    PacketRequestStatus.COMPLETED: frozenset(),
    PacketRequestStatus.FAILED: frozenset(),
}


@dataclass
class PacketRequest:
    """One packet generation attempt. Regenerating creates a new request."""

    intake_id: UUID
    requested_by_id: UUID
    id: UUID = field(default_factory=uuid4)
    status: PacketRequestStatus = PacketRequestStatus.PENDING
    packet_location: str | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    completed_at: datetime | None = None

    def _move_to(self, new_status: PacketRequestStatus) -> None:
        if new_status not in _ALLOWED[self.status]:
            raise InvalidStatusTransitionError(
                "packet request", self.status.value, new_status.value
            )
        self.status = new_status
        self.updated_at = _utc_now()

    def start(self) -> None:
        self._move_to(PacketRequestStatus.PROCESSING)

    def complete(self, location: str) -> None:
        self._move_to(PacketRequestStatus.COMPLETED)
        self.packet_location = location
        self.completed_at = self.updated_at

    def fail(self, error_message: str) -> None:
        self._move_to(PacketRequestStatus.FAILED)
        self.error_message = error_message or "Unknown error"
        self.completed_at = self.updated_at
