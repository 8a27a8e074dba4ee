from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from reportlab.pdfbase import pdfmetrics


# Layout works in millimetres; reportlab font metrics are in points.
PT_TO_MM = 25.4 / 72.0


class TextMeasurer(Protocol):
    def width(self, text: str, font_name: str, font_size: float) -> float:
        """Rendered width of ``text`` in millimetres."""
        ...


class ReportlabMeasurer:
    def width(self, text: str, font_name: str, font_size: float) -> float:
        if not text:
            return 0.0
        return float(pdfmetrics.stringWidth(text, font_name, float(font_size))) * PT_TO_MM


@dataclass(frozen=True)
class FixedWidthMeasurer:
    char_width_ratio: float = 0.6

    def width(self, text: str, font_name: str, font_size: float) -> float:
        return float(len(text)) * float(font_size) * self.char_width_ratio * PT_TO_MM


def font_box_height(font_name: str, font_size: float) -> float:
    ascent, descent = pdfmetrics.getAscentDescent(font_name, float(font_size))
    return (float(ascent) - float(descent)) * PT_TO_MM


def font_ascent(font_name: str, font_size: float) -> float:
    ascent, _ = pdfmetrics.getAscentDescent(font_name, float(font_size))
    return float(ascent) * PT_TO_MM


def _split_token_by_width(
    token: str,
    *,
    max_width: float,
    font_name: str,
    font_size: float,
    measurer: TextMeasurer,
) -> list[str]:
    chunks: list[str] = []
    current = ''
    for char in token:
        candidate = f'{current}{char}'
        if measurer.width(candidate, font_name, font_size) <= max_width:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = char
            continue
        # a single glyph wider than the line still gets its own line
        chunks.append(char)
        current = ''
    if current:
        chunks.append(current)
    return chunks


def wrap_text(
    text: str,
    *,
    max_width: float,
    font_name: str,
    font_size: float,
    measurer: TextMeasurer,
) -> list[str]:
    """Greedily pack words into lines no wider than ``max_width``.

    Explicit newlines start a new line; a run of blank lines collapses into a
    single empty line. Returns an empty list for blank input.
    """
    if max_width <= 0:
        raise ValueError(f'max_width must be positive, got {max_width}')

    lines: list[str] = []
    for paragraph in str(text or '').strip().splitlines():
        words = paragraph.split()
        if not words:
            if lines and lines[-1] != '':
                lines.append('')
            continue

        current = ''
        for word in words:
            candidate = f'{current} {word}' if current else word
            if measurer.width(candidate, font_name, font_size) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ''
            if measurer.width(word, font_name, font_size) <= max_width:
                current = word
                continue
            chunks = _split_token_by_width(
                word,
                max_width=max_width,
                font_name=font_name,
                font_size=font_size,
                measurer=measurer,
            )
            lines.extend(chunks[:-1])
            current = chunks[-1]
        if current:
            lines.append(current)
    return lines
