"""Tax Intake Engine: PII protection, completeness checks, checklists and preparer packets."""

__version__ = "0.1.0"
