from __future__ import annotations

import io
import logging
from typing import Sequence

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from leafwise.report.errors import ReportRenderError
from leafwise.report.layout import DrawInstruction, InstructionKind, LayoutPage, PageGeometry, TableLayout, TextStyle
from leafwise.report.text_metrics import font_ascent, font_box_height


logger = logging.getLogger(__name__)

PRODUCER = 'LeafWise'


def _pdf_y(geometry: PageGeometry, top: float) -> float:
    return (geometry.height - top) * mm


def _draw_text_line(
    canvas: Canvas,
    geometry: PageGeometry,
    *,
    text: str,
    x: float,
    y: float,
    width: float,
    height: float,
    style: TextStyle,
) -> None:
    if not text:
        return
    # centre the font box vertically inside the line box
    box = font_box_height(style.font_name, style.font_size)
    baseline = y + (height - box) / 2 + font_ascent(style.font_name, style.font_size)

    canvas.setFont(style.font_name, style.font_size)
    canvas.setFillColor(colors.HexColor(style.color))
    if style.align == 'center':
        canvas.drawCentredString((x + width / 2) * mm, _pdf_y(geometry, baseline), text)
    elif style.align == 'right':
        canvas.drawRightString((x + width) * mm, _pdf_y(geometry, baseline), text)
    else:
        canvas.drawString(x * mm, _pdf_y(geometry, baseline), text)


def _draw_cell(
    canvas: Canvas,
    geometry: PageGeometry,
    table: TableLayout,
    *,
    lines: Sequence[str],
    x: float,
    y: float,
    width: float,
    style: TextStyle,
) -> None:
    line_y = y + table.cell_padding
    for line in lines:
        _draw_text_line(
            canvas,
            geometry,
            text=line,
            x=x + table.cell_padding,
            y=line_y,
            width=width - 2 * table.cell_padding,
            height=table.line_height,
            style=style,
        )
        line_y += table.line_height


def _draw_table(canvas: Canvas, geometry: PageGeometry, item: DrawInstruction) -> None:
    table = item.table
    if table is None:
        raise ReportRenderError('Table instruction without table layout')
    label_width, value_width = table.column_widths
    total_width = label_width + value_width

    canvas.saveState()
    canvas.setStrokeColor(colors.HexColor(table.border_color))
    canvas.setLineWidth(0.5)

    top = item.y
    canvas.setFillColor(colors.HexColor(table.header_fill))
    canvas.rect(
        item.x * mm,
        _pdf_y(geometry, top + table.header_height),
        total_width * mm,
        table.header_height * mm,
        stroke=1,
        fill=1,
    )
    for text, x, width in (
        (table.header[0], item.x, label_width),
        (table.header[1], item.x + label_width, value_width),
    ):
        _draw_cell(canvas, geometry, table, lines=(text,), x=x, y=top, width=width, style=table.header_style)
    top += table.header_height

    for row in table.rows:
        for x, width in ((item.x, label_width), (item.x + label_width, value_width)):
            canvas.rect(x * mm, _pdf_y(geometry, top + row.height), width * mm, row.height * mm, stroke=1, fill=0)
        _draw_cell(canvas, geometry, table, lines=row.label_lines, x=item.x, y=top, width=label_width, style=table.label_style)
        _draw_cell(
            canvas,
            geometry,
            table,
            lines=row.value_lines,
            x=item.x + label_width,
            y=top,
            width=value_width,
            style=table.value_style,
        )
        top += row.height

    canvas.restoreState()


def _draw_image(canvas: Canvas, geometry: PageGeometry, item: DrawInstruction) -> None:
    if item.image is None:
        raise ReportRenderError('Image instruction without image data')
    canvas.drawImage(
        ImageReader(io.BytesIO(item.image.data)),
        item.x * mm,
        _pdf_y(geometry, item.bottom),
        width=item.width * mm,
        height=item.height * mm,
        mask='auto',
    )


def _draw_instruction(canvas: Canvas, geometry: PageGeometry, item: DrawInstruction) -> None:
    if item.kind == InstructionKind.text:
        if item.style is None:
            raise ReportRenderError('Text instruction without style')
        _draw_text_line(
            canvas,
            geometry,
            text=item.text,
            x=item.x,
            y=item.y,
            width=item.width,
            height=item.height,
            style=item.style,
        )
    elif item.kind == InstructionKind.image:
        _draw_image(canvas, geometry, item)
    elif item.kind == InstructionKind.table:
        _draw_table(canvas, geometry, item)
    else:
        raise ReportRenderError(f'Unknown draw instruction kind: {item.kind!r}')


def render_pdf(
    pages: Sequence[LayoutPage],
    geometry: PageGeometry,
    *,
    title: str,
    subject: str = 'Plant identification report',
) -> bytes:
    """Draw each layout page onto its own PDF page and return the document bytes."""
    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=(geometry.width * mm, geometry.height * mm))
    canvas.setTitle(title)
    canvas.setAuthor(PRODUCER)
    canvas.setSubject(subject)
    canvas.setProducer(PRODUCER)

    try:
        for page in pages:
            for item in page.instructions:
                _draw_instruction(canvas, geometry, item)
            canvas.showPage()
        canvas.save()
    except ReportRenderError:
        raise
    except Exception as exc:
        raise ReportRenderError(f'Failed to render report PDF: {type(exc).__name__}: {exc}') from exc

    pdf_bytes = buffer.getvalue()
    logger.info('Rendered report PDF: %d pages, %d bytes', len(pages), len(pdf_bytes))
    return pdf_bytes
