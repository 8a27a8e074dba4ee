from __future__ import annotations

import logging
from dataclasses import fields, replace
from typing import Iterable

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont

from leafwise.report.footer import FooterSpec
from leafwise.report.layout import LayoutMetrics, TextStyle


logger = logging.getLogger(__name__)

DEFAULT_UNICODE_FONT = 'STSong-Light'

# The standard Type1 fonts only carry the WinAnsi character set.
_STANDARD_FONT_ENCODING = 'cp1252'


def needs_unicode_font(text: str) -> bool:
    try:
        str(text or '').encode(_STANDARD_FONT_ENCODING)
    except UnicodeEncodeError:
        return True
    return False


def register_unicode_font(font_name: str = DEFAULT_UNICODE_FONT) -> str | None:
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name
    try:
        pdfmetrics.registerFont(UnicodeCIDFont(font_name))
    except Exception as exc:
        logger.warning('Failed to register Unicode PDF font %s: %s', font_name, exc)
        return None
    return font_name


def _with_font(metrics: LayoutMetrics, font_name: str) -> LayoutMetrics:
    changes = {
        item.name: replace(getattr(metrics, item.name), font_name=font_name)
        for item in fields(metrics)
        if isinstance(getattr(metrics, item.name), TextStyle)
    }
    return replace(metrics, **changes)


def resolve_report_fonts(
    texts: Iterable[str],
    metrics: LayoutMetrics,
    footer: FooterSpec,
    *,
    unicode_font: str = DEFAULT_UNICODE_FONT,
) -> tuple[LayoutMetrics, FooterSpec]:
    """Switch every report style to ``unicode_font`` when any text falls
    outside the standard fonts' character set.

    Layout measures with the returned styles, so wrapping and drawing agree
    on the font. Returns the inputs unchanged when no switch is needed or
    the font cannot be registered.
    """
    if not any(needs_unicode_font(text) for text in texts):
        return metrics, footer
    font_name = register_unicode_font(unicode_font)
    if font_name is None:
        return metrics, footer
    logger.info('Report text needs glyphs outside WinAnsi; using %s', font_name)
    resolved = _with_font(metrics, font_name)
    resolved.validate()
    return resolved, replace(footer, style=replace(footer.style, font_name=font_name))
