"""Completeness report returned by the evaluator."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class MissingItem:
    """One gap found in an intake: a missing or invalid field, or a missing document."""

    field: str
    description: str
    section: str

    def to_dict(self) -> dict[str, str]:
        return {
            "field": self.field,
            "description": self.description,
            "section": self.section,
        }


@dataclass
class ValidationResult:
    missing_fields: list[MissingItem] = field(default_factory=list)
    missing_docs: list[MissingItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    intake_found: bool = True

    @property
    def valid(self) -> bool:
        return self.intake_found and not self.missing_fields and not self.missing_docs

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys API clients already consume."""
        return {
            "valid": self.valid,
            "missingFields": [item.to_dict() for item in self.missing_fields],
            "missingDocs": [item.to_dict() for item in self.missing_docs],
            "warnings": list(self.warnings),
        }
