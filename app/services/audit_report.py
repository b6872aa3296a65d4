"""Search and export helpers for the impersonation audit report."""

from __future__ import annotations

import csv
from datetime import date
from io import BytesIO, StringIO
from typing import Any, Iterable
from xml.sax.saxutils import escape

from app.schemas.impersonation import AuditEntry, AuditFilters
from app.services.audit_store import AuditStore
from app.utils.pdf_fonts import register_pdf_font

EXPORT_COLUMNS: tuple[str, ...] = ("Timestamp", "Type", "Admin", "Target User", "Action", "Details", "Session ID")
SEARCH_FIELDS: tuple[str, ...] = ("admin_email", "target_user_email", "action", "details")


def _reportlab():
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    return {
        "colors": colors,
        "A4": A4,
        "landscape": landscape,
        "ParagraphStyle": ParagraphStyle,
        "getSampleStyleSheet": getSampleStyleSheet,
        "Paragraph": Paragraph,
        "SimpleDocTemplate": SimpleDocTemplate,
        "Spacer": Spacer,
        "Table": Table,
        "TableStyle": TableStyle,
    }


def matches_text(entry: AuditEntry, text: str | None) -> bool:
    """Case-insensitive substring match over emails, action and details."""
    needle = (text or "").strip().lower()
    if not needle:
        return True
    return any(needle in str(getattr(entry, field) or "").lower() for field in SEARCH_FIELDS)


def search(store: AuditStore, filters: AuditFilters | None = None, text: str | None = None) -> list[AuditEntry]:
    """Structured filters AND free-text search, newest first."""
    return [entry for entry in store.query(filters) if matches_text(entry, text)]


def export_row(entry: AuditEntry) -> list[str]:
    return [
        entry.timestamp.isoformat(),
        entry.type.value,
        entry.admin_email,
        entry.target_user_email,
        entry.action or "",
        entry.details or "",
        entry.session_id,
    ]


def to_csv(entries: Iterable[AuditEntry]) -> str:
    """Serialize entries with a fixed header; every field is quoted."""
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for entry in entries:
        writer.writerow(export_row(entry))
    return buffer.getvalue()


def export_filename(day: date | None = None, extension: str = "csv") -> str:
    return f"impersonation_audit_log_{(day or date.today()).isoformat()}.{extension}"


def render_pdf(entries: Iterable[AuditEntry], meta: dict[str, Any]) -> bytes:
    """Render the audit report as a landscape PDF table with the export columns."""
    rl = _reportlab()
    font_name = register_pdf_font()
    styles = rl["getSampleStyleSheet"]()
    title_style = rl["ParagraphStyle"]("AuditTitle", parent=styles["Title"], fontName=font_name)
    normal_style = rl["ParagraphStyle"]("AuditNormal", parent=styles["Normal"], fontName=font_name)
    cell_style = rl["ParagraphStyle"]("AuditCell", parent=styles["Normal"], fontName=font_name, fontSize=7, leading=9)

    rows = [list(EXPORT_COLUMNS)]
    rows.extend([rl["Paragraph"](escape(value), cell_style) for value in export_row(entry)] for entry in entries)

    story: list[Any] = [
        rl["Paragraph"](f"Impersonation audit log: {meta.get('today', date.today().isoformat())}", title_style),
        rl["Paragraph"](f"Generated: {meta.get('generated_at', '-')}", normal_style),
        rl["Paragraph"](f"Entries: {len(rows) - 1}", normal_style),
        rl["Spacer"](1, 10),
    ]
    table = rl["Table"](rows, colWidths=[85, 60, 100, 100, 70, 183, 100], repeatRows=1)
    table.setStyle(
        rl["TableStyle"](
            [
                ("BACKGROUND", (0, 0), (-1, 0), rl["colors"].lightgrey),
                ("GRID", (0, 0), (-1, -1), 0.5, rl["colors"].black),
                ("FONTNAME", (0, 0), (-1, -1), font_name),
                ("FONTSIZE", (0, 0), (-1, 0), 8),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]
        )
    )
    story.append(table)

    buffer = BytesIO()
    rl["SimpleDocTemplate"](buffer, pagesize=rl["landscape"](rl["A4"])).build(story)
    return buffer.getvalue()
