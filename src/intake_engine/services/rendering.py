"""Preparer summary content and its PDF / plain-text renderings.

``build_packet_summary`` turns an intake graph into display-safe sections:
SSNs and account numbers are decrypted only to be masked, and a value that
fails its integrity check is shown as unverifiable rather than aborting the
packet. Renderers never see ciphertext or plaintext PII.

Section order:
  1. Header (tax year, status, submission time)
  2. Personal Information (masked SSN)
  3. Spouse Information, when spouse data exists
  4. Address
  5. Dependents (masked SSNs)
  6. Bank Accounts (masked account numbers)
  7. Checklist Items (unresolved only)
"""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer

from intake_engine.domain.intake import IntakeGraph, TaxpayerInfo
from intake_engine.exceptions import IntegrityError
from intake_engine.logging_config import get_logger
from intake_engine.pii import PIICodec, mask_account_number, mask_ssn
from intake_engine.services.interfaces import (
    DocumentRenderer,
    PacketSummary,
    SummarySection,
)

logger = get_logger(__name__)

NOT_PROVIDED = "Not provided"
UNVERIFIABLE = "Could not be verified"
NOT_AVAILABLE = "N/A"


def _masked(
    codec: PIICodec, blob: bytes | None, mask: Callable[[str | None], str]
) -> str:
    if not blob:
        return NOT_PROVIDED
    try:
        return mask(codec.decrypt(blob))
    except IntegrityError:
        return UNVERIFIABLE


def _join_name(*parts: str | None) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def build_packet_summary(
    graph: IntakeGraph, codec: PIICodec, title: str = "Preparer Summary"
) -> PacketSummary:
    intake = graph.intake
    info = graph.taxpayer_info or TaxpayerInfo(intake_id=intake.id)
    summary = PacketSummary(title=title)

    submitted = (
        intake.submitted_at.strftime("%Y-%m-%d %H:%M UTC")
        if intake.submitted_at
        else "Not submitted"
    )
    summary.sections.append(
        SummarySection(
            "Intake",
            [
                f"Tax Year: {intake.tax_year}",
                f"Status: {intake.status.value.upper()}",
                f"Submitted At: {submitted}",
            ],
        )
    )

    summary.sections.append(
        SummarySection(
            "Personal Information",
            [
                "Taxpayer: "
                + (
                    _join_name(
                        info.taxpayer_first_name,
                        info.taxpayer_middle_initial,
                        info.taxpayer_last_name,
                    )
                    or NOT_AVAILABLE
                ),
                f"Email: {info.taxpayer_email or NOT_AVAILABLE}",
                f"Phone: {info.taxpayer_phone or NOT_AVAILABLE}",
                "DOB: "
                + (info.taxpayer_dob.isoformat() if info.taxpayer_dob else NOT_AVAILABLE),
                f"SSN: {_masked(codec, info.taxpayer_ssn_encrypted, mask_ssn)}",
            ],
        )
    )

    if info.has_spouse_data or graph.requires_spouse:
        summary.sections.append(
            SummarySection(
                "Spouse Information",
                [
                    "Spouse: "
                    + (
                        _join_name(
                            info.spouse_first_name,
                            info.spouse_middle_initial,
                            info.spouse_last_name,
                        )
                        or NOT_AVAILABLE
                    ),
                    "DOB: "
                    + (info.spouse_dob.isoformat() if info.spouse_dob else NOT_AVAILABLE),
                    f"SSN: {_masked(codec, info.spouse_ssn_encrypted, mask_ssn)}",
                ],
            )
        )

    street = info.address_street or ""
    if info.address_apt:
        street = f"{street}, {info.address_apt}" if street else info.address_apt
    summary.sections.append(
        SummarySection(
            "Address",
            [
                street or NOT_AVAILABLE,
                f"{info.address_city or ''}, {info.address_state or ''} "
                f"{info.address_zip or ''}".strip(),
            ],
        )
    )

    if graph.dependents:
        summary.sections.append(
            SummarySection(
                "Dependents",
                [
                    f"{_join_name(d.first_name, d.last_name) or 'Unnamed'} "
                    f"({d.relationship or 'relationship not given'}) - "
                    f"SSN: {_masked(codec, d.ssn_encrypted, mask_ssn)}"
                    for d in graph.dependents
                ],
            )
        )

    if graph.bank_accounts:
        summary.sections.append(
            SummarySection(
                "Bank Accounts",
                [
                    f"{b.bank_name or 'Unnamed bank'} ({b.account_type.value}) - "
                    f"Account: {_masked(codec, b.account_number_encrypted, mask_account_number)}"
                    for b in graph.bank_accounts
                ],
            )
        )

    if graph.checklist_items:
        unresolved = [item for item in graph.checklist_items if not item.is_resolved]
        summary.sections.append(
            SummarySection(
                "Checklist Items",
                [f"[ ] {i.item_type.value}: {i.description}" for i in unresolved]
                or ["All items resolved."],
            )
        )

    return summary


class PDFSummaryRenderer(DocumentRenderer):
    """Renders a PacketSummary with reportlab PLATYPUS into an in-memory PDF."""

    filename = "Summary.pdf"

    def render(self, summary: PacketSummary) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=LETTER,
            leftMargin=18 * mm,
            rightMargin=18 * mm,
            topMargin=18 * mm,
            bottomMargin=18 * mm,
            title=summary.title,
        )
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "SummaryTitle",
            parent=styles["Heading1"],
            alignment=1,
        )

        story = [Paragraph(escape(summary.title), title_style), Spacer(1, 4 * mm)]
        for section in summary.sections:
            block = [Paragraph(escape(section.title), styles["Heading2"])]
            block.extend(
                Paragraph(escape(line), styles["Normal"]) for line in section.lines
            )
            story.append(KeepTogether(block))
            story.append(Spacer(1, 4 * mm))

        doc.build(story)
        # reportlab leaves the buffer positioned at the end
        buffer.seek(0)
        data = buffer.getvalue()
        logger.debug("summary_pdf_rendered", size_bytes=len(data))
        return data


class TextSummaryRenderer(DocumentRenderer):
    filename = "Summary.txt"

    def render(self, summary: PacketSummary) -> bytes:
        lines = [summary.title, "=" * len(summary.title), ""]
        for section in summary.sections:
            lines.append(section.title)
            lines.append("-" * len(section.title))
            lines.extend(section.lines)
            lines.append("")
        return "\n".join(lines).encode("utf-8")


def get_renderer(name: str) -> DocumentRenderer:
    if name == "pdf":
        return PDFSummaryRenderer()
    if name == "text":
        return TextSummaryRenderer()
    raise ValueError(f"Unknown summary renderer: {name}")
