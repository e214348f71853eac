"""Exception hierarchy for the Tax Intake Engine.

All engine exceptions inherit from IntakeEngineError. Data-quality problems
found while evaluating an intake are not exceptions: they are reported as
MissingItem entries in a ValidationResult.
"""

from typing import Any
from uuid import UUID


class IntakeEngineError(Exception):
    """Base exception for all Tax Intake Engine errors.

    Includes an error_code for callers that translate errors into responses
    and an optional context dict with identifiers (never PII).
    """

    error_code: str = "INTAKE_ENGINE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Configuration and Cryptography Errors
# =============================================================================


class ConfigurationError(IntakeEngineError):
    """Raised when required configuration (e.g. the encryption key) is missing or malformed.

    Fatal at process start; never recovered per request.
    """

    error_code = "CONFIGURATION_ERROR"


class IntegrityError(IntakeEngineError):
    """Raised when a ciphertext blob is truncated or fails authentication."""

    error_code = "CIPHERTEXT_INTEGRITY_ERROR"

    def __init__(self, message: str = "Encrypted value failed integrity check") -> None:
        super().__init__(message)


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(IntakeEngineError):
    """Raised when file or export storage I/O fails."""

    error_code = "STORAGE_ERROR"

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message, context={"key": key} if key else None)
        self.key = key


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(IntakeEngineError):
    """Base exception for missing records."""

    error_code = "NOT_FOUND"


class IntakeNotFoundError(NotFoundError):
    """Raised when an intake cannot be found."""

    error_code = "INTAKE_NOT_FOUND"

    def __init__(self, intake_id: UUID | str) -> None:
        super().__init__(
            f"Intake not found: {intake_id}",
            context={"intake_id": str(intake_id)},
        )


class PacketRequestNotFoundError(NotFoundError):
    """Raised when a packet request cannot be found."""

    error_code = "PACKET_REQUEST_NOT_FOUND"

    def __init__(self, request_id: UUID | str) -> None:
        super().__init__(
            f"Packet request not found: {request_id}",
            context={"request_id": str(request_id)},
        )


class ChecklistItemNotFoundError(NotFoundError):
    """Raised when a checklist item cannot be found."""

    error_code = "CHECKLIST_ITEM_NOT_FOUND"

    def __init__(self, item_id: UUID | str) -> None:
        super().__init__(
            f"Checklist item not found: {item_id}",
            context={"item_id": str(item_id)},
        )


class FileNotFoundInIntakeError(NotFoundError):
    """Raised when an uploaded file record cannot be found."""

    error_code = "FILE_NOT_FOUND"

    def __init__(self, file_id: UUID | str) -> None:
        super().__init__(
            f"File not found: {file_id}",
            context={"file_id": str(file_id)},
        )


class HouseholdRecordNotFoundError(NotFoundError):
    """Raised when a bank account or dependent is not part of the given intake."""

    error_code = "HOUSEHOLD_RECORD_NOT_FOUND"

    def __init__(
        self, record_type: str, record_id: UUID | str, intake_id: UUID | str
    ) -> None:
        super().__init__(
            f"{record_type} not found on intake {intake_id}: {record_id}",
            context={
                "record_type": record_type,
                "record_id": str(record_id),
                "intake_id": str(intake_id),
            },
        )


# =============================================================================
# Lifecycle Errors
# =============================================================================


class InvalidStatusTransitionError(IntakeEngineError):
    """Raised when a state machine refuses a transition."""

    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, resource: str, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot move {resource} from '{current}' to '{requested}'",
            context={"resource": resource, "current": current, "requested": requested},
        )


class IntakeLockedError(IntakeEngineError):
    """Raised when client data is written to an intake that is no longer a draft."""

    error_code = "INTAKE_LOCKED"

    def __init__(self, intake_id: UUID | str, status: str) -> None:
        super().__init__(
            f"Intake {intake_id} is '{status}' and can no longer be edited",
            context={"intake_id": str(intake_id), "status": status},
        )


class IntakeIncompleteError(IntakeEngineError):
    """Raised when submission is refused because the intake is incomplete."""

    error_code = "INTAKE_INCOMPLETE"

    def __init__(self, intake_id: UUID | str, report: dict[str, Any]) -> None:
        super().__init__(
            f"Intake {intake_id} is not ready for submission",
            context={"intake_id": str(intake_id), "validation": report},
        )
        self.report = report


class PacketNotReadyError(IntakeEngineError):
    """Raised when artifacts are requested from a packet that has not completed."""

    error_code = "PACKET_NOT_READY"

    def __init__(self, request_id: UUID | str, status: str) -> None:
        super().__init__(
            f"Packet request {request_id} is '{status}', artifacts are not available",
            context={"request_id": str(request_id), "status": status},
        )
