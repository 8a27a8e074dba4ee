from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from leafwise.config import Settings, get_settings
from leafwise.images import ImageSource, ResolvedImage, resolve_image
from leafwise.report.blocks import build_content_blocks
from leafwise.report.errors import MissingInputError
from leafwise.report.fonts import resolve_report_fonts
from leafwise.report.footer import FooterSpec, stamp_footer
from leafwise.report.layout import LayoutMetrics, LayoutPage, PageGeometry, paginate
from leafwise.report.pdf_export import render_pdf
from leafwise.report.text_metrics import FixedWidthMeasurer, ReportlabMeasurer, TextMeasurer
from leafwise.types import AttributeRecord


logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILENAME = 'plant_report.pdf'


@dataclass(frozen=True)
class ReportExport:
    filename: str
    pdf_bytes: bytes
    pages: tuple[LayoutPage, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


def report_filename(common_name: str | None) -> str:
    token = re.sub(r'\s+', '_', str(common_name or '').strip())
    token = re.sub(r'[^\w.-]', '', token)
    if not token.strip('._'):
        return DEFAULT_REPORT_FILENAME
    return f'{token}_report.pdf'


def build_page_geometry(settings: Settings) -> PageGeometry:
    return PageGeometry(
        width=settings.pdf_page_width,
        height=settings.pdf_page_height,
        margin=settings.pdf_page_margin,
    )


def build_layout_metrics(settings: Settings) -> LayoutMetrics:
    metrics = LayoutMetrics(
        image_display_width=settings.pdf_image_display_width,
        block_gap=settings.pdf_block_gap,
        title_line_height=settings.pdf_title_line_height,
        subtitle_line_height=settings.pdf_subtitle_line_height,
        heading_height=settings.pdf_heading_height,
        body_line_height=settings.pdf_body_line_height,
        table_label_width=settings.pdf_table_label_width,
        table_line_height=settings.pdf_table_line_height,
        table_cell_padding=settings.pdf_table_cell_padding,
        table_min_row_height=settings.pdf_table_min_row_height,
        table_header_height=settings.pdf_table_header_height,
    )
    metrics.validate()
    return metrics


def build_footer_spec(settings: Settings) -> FooterSpec:
    return FooterSpec(caption=settings.pdf_footer_caption, offset=settings.pdf_footer_offset)


def build_measurer(settings: Settings) -> TextMeasurer:
    mode = str(settings.pdf_text_measure or '').strip().lower()
    if mode == 'fixed':
        return FixedWidthMeasurer(char_width_ratio=settings.pdf_fixed_char_width_ratio)
    if mode != 'measured':
        raise ValueError(f"pdf_text_measure must be 'measured' or 'fixed', got {settings.pdf_text_measure!r}")
    return ReportlabMeasurer()


def compose_pages(
    record: AttributeRecord,
    image: ResolvedImage,
    *,
    geometry: PageGeometry,
    metrics: LayoutMetrics,
    footer: FooterSpec,
    measurer: TextMeasurer,
) -> list[LayoutPage]:
    blocks = build_content_blocks(record, image)
    pages = paginate(blocks, geometry, metrics, measurer=measurer)
    return stamp_footer(pages, geometry, footer)


async def export_plant_report(
    *,
    record: AttributeRecord | None,
    image: ImageSource | ResolvedImage | None,
    settings: Settings | None = None,
) -> ReportExport:
    settings = settings or get_settings()
    if record is None:
        raise MissingInputError('No identification result to export.')
    if image is None or (isinstance(image, (bytes, str)) and not image):
        raise MissingInputError('No image to export.')

    geometry = build_page_geometry(settings)
    metrics = build_layout_metrics(settings)
    footer = build_footer_spec(settings)
    metrics, footer = resolve_report_fonts(
        [*record.model_dump().values(), footer.caption],
        metrics,
        footer,
        unicode_font=settings.pdf_unicode_font,
    )
    measurer = build_measurer(settings)

    if isinstance(image, ResolvedImage):
        resolved = image
    else:
        resolved = await resolve_image(
            image,
            max_bytes=settings.max_image_bytes,
            timeout_seconds=settings.image_fetch_timeout_seconds,
        )

    pages = compose_pages(
        record,
        resolved,
        geometry=geometry,
        metrics=metrics,
        footer=footer,
        measurer=measurer,
    )
    title = record.common_name or 'Plant report'
    pdf_bytes = render_pdf(pages, geometry, title=title)
    filename = report_filename(record.common_name)
    logger.info('Exported %s (%d pages)', filename, len(pages))
    return ReportExport(filename=filename, pdf_bytes=pdf_bytes, pages=tuple(pages))


def export_plant_report_sync(
    *,
    record: AttributeRecord | None,
    image: ImageSource | ResolvedImage | None,
    settings: Settings | None = None,
) -> ReportExport:
    return asyncio.run(export_plant_report(record=record, image=image, settings=settings))
