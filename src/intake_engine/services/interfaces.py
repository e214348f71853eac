from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from intake_engine.domain.audit import AuditAction, AuditResource, AuditResult
from intake_engine.domain.files import FileCategory
from intake_engine.domain.validation import ValidationResult


@dataclass
class ChecklistSyncSummary:
    created: int = 0
    reopened: int = 0
    updated: int = 0
    resolved: int = 0
    unchanged: int = 0

    @property
    def writes(self) -> int:
        return self.created + self.reopened + self.updated + self.resolved


@dataclass
class SummarySection:
    title: str
    lines: list[str] = field(default_factory=list)


@dataclass
class PacketSummary:
    """Display-safe summary content. Every PII value in here is already masked."""

    title: str
    sections: list[SummarySection] = field(default_factory=list)

    def section(self, title: str) -> SummarySection | None:
        for section in self.sections:
            if section.title == title:
                return section
        return None


class FileStorage(ABC):
    """Bulk storage for uploaded file bytes. Keys are opaque."""

    @abstractmethod
    def store(self, data: bytes, name: str, category: FileCategory) -> str:
        pass

    @abstractmethod
    def fetch(self, key: str) -> bytes:
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class ExportStore(ABC):
    """Storage for generated packet artifacts, scoped by (intake id, request id)."""

    @abstractmethod
    def write(self, intake_id: UUID, request_id: UUID, name: str, data: bytes) -> str:
        """Write one artifact and return the location shared by the request's artifacts."""

    @abstractmethod
    def read(self, location: str, name: str) -> bytes:
        pass


class DocumentRenderer(ABC):
    filename: str

    @abstractmethod
    def render(self, summary: PacketSummary) -> bytes:
        pass


class AuditSink(ABC):
    @abstractmethod
    def record(
        self,
        actor_id: UUID | None,
        action: AuditAction,
        resource: AuditResource,
        resource_id: UUID | None,
        result: AuditResult = AuditResult.SUCCESS,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an audit event. Must never raise into the caller."""


class CompletenessEvaluator(ABC):
    @abstractmethod
    def evaluate(self, intake_id: UUID) -> ValidationResult:
        pass
