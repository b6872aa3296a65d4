"""Helpers for configuring Unicode-capable fonts in ReportLab PDFs."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

FONT_CANDIDATES: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    r"C:\\Windows\\Fonts\\arial.ttf",
)

_fallback_warning_emitted = False


def find_unicode_ttf(candidates: tuple[str, ...] = FONT_CANDIDATES) -> str | None:
    """Return first available system Unicode font path for PDF generation."""
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return None


def register_pdf_font() -> str:
    """Register a Unicode font for ReportLab and return chosen font name.

    Audit exports carry user-supplied names and free-text details, so a font
    with wide glyph coverage is preferred over the built-in Helvetica.
    """
    global _fallback_warning_emitted

    font_path = find_unicode_ttf()
    if font_path:
        font_name = "AuditUnicode"
        from reportlab.pdfbase import pdfmetrics
        from reportlab.pdfbase.ttfonts import TTFont

        if font_name not in set(pdfmetrics.getRegisteredFontNames()):
            pdfmetrics.registerFont(TTFont(font_name, font_path))
        return font_name

    if not _fallback_warning_emitted:
        logger.warning("No Unicode TTF font found; non-Latin characters in audit exports may render incorrectly.")
        _fallback_warning_emitted = True
    return "Helvetica"
