from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Sequence

from leafwise.images import ResolvedImage
from leafwise.report.blocks import ContentBlock, ImageBlock, SectionBlock, TableBlock, TitleBlock
from leafwise.report.text_metrics import ReportlabMeasurer, TextMeasurer, font_box_height, wrap_text


logger = logging.getLogger(__name__)

_EPSILON = 1e-6


class InstructionKind(str, Enum):
    text = 'text'
    image = 'image'
    table = 'table'


@dataclass(frozen=True)
class TextStyle:
    font_name: str
    font_size: float
    color: str = '#000000'
    align: str = 'left'


@dataclass(frozen=True)
class TableRowLayout:
    label_lines: tuple[str, ...]
    value_lines: tuple[str, ...]
    height: float


@dataclass(frozen=True)
class TableLayout:
    header: tuple[str, str]
    column_widths: tuple[float, float]
    header_height: float
    line_height: float
    cell_padding: float
    rows: tuple[TableRowLayout, ...]
    header_style: TextStyle
    label_style: TextStyle
    value_style: TextStyle
    header_fill: str
    border_color: str


@dataclass(frozen=True)
class DrawInstruction:
    kind: InstructionKind
    x: float
    y: float
    width: float
    height: float
    # index into the block sequence; None for page decoration such as the footer
    block_index: int | None = None
    text: str = ''
    style: TextStyle | None = None
    image: ResolvedImage | None = None
    table: TableLayout | None = None

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class LayoutPage:
    number: int
    instructions: tuple[DrawInstruction, ...]


@dataclass(frozen=True)
class PageGeometry:
    width: float = 210.0
    height: float = 297.0
    margin: float = 14.0

    def __post_init__(self) -> None:
        if self.usable_width <= 0 or self.usable_height <= 0:
            raise ValueError(
                f'Page {self.width}x{self.height} leaves no room inside a {self.margin} margin'
            )

    @property
    def usable_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def usable_height(self) -> float:
        return self.height - 2 * self.margin

    @property
    def content_top(self) -> float:
        return self.margin

    @property
    def content_bottom(self) -> float:
        return self.height - self.margin


@dataclass(frozen=True)
class LayoutMetrics:
    image_display_width: float = 80.0
    block_gap: float = 6.0
    title_line_height: float = 10.0
    subtitle_line_height: float = 7.0
    heading_height: float = 8.0
    body_line_height: float = 5.0
    table_label_width: float = 50.0
    table_line_height: float = 4.6
    table_cell_padding: float = 2.0
    table_min_row_height: float = 8.6
    table_header_height: float = 8.6
    table_header: tuple[str, str] = ('Attribute', 'Value')
    table_header_fill: str = '#388E3C'
    table_border_color: str = '#9E9E9E'
    title_style: TextStyle = field(default_factory=lambda: TextStyle('Times-Bold', 22, '#388E3C', 'center'))
    subtitle_style: TextStyle = field(
        default_factory=lambda: TextStyle('Helvetica-Oblique', 14, '#795548', 'center')
    )
    heading_style: TextStyle = field(default_factory=lambda: TextStyle('Times-Bold', 14, '#388E3C'))
    body_style: TextStyle = field(default_factory=lambda: TextStyle('Helvetica', 10, '#000000'))
    table_header_style: TextStyle = field(default_factory=lambda: TextStyle('Helvetica-Bold', 10, '#FFFFFF'))
    table_label_style: TextStyle = field(default_factory=lambda: TextStyle('Helvetica-Bold', 10, '#000000'))
    table_value_style: TextStyle = field(default_factory=lambda: TextStyle('Helvetica', 10, '#000000'))

    def validate(self) -> None:
        """Reject line heights that cannot hold the glyphs of their font."""
        checks = (
            ('title_line_height', self.title_line_height, self.title_style),
            ('subtitle_line_height', self.subtitle_line_height, self.subtitle_style),
            ('heading_height', self.heading_height, self.heading_style),
            ('body_line_height', self.body_line_height, self.body_style),
            ('table_line_height', self.table_line_height, self.table_label_style),
            ('table_line_height', self.table_line_height, self.table_value_style),
            ('table_line_height', self.table_line_height, self.table_header_style),
        )
        for name, value, style in checks:
            required = font_box_height(style.font_name, style.font_size)
            if value + _EPSILON < required:
                raise ValueError(
                    f'{name}={value:.2f}mm is shorter than {style.font_name} {style.font_size}pt '
                    f'({required:.2f}mm)'
                )
        single_line_row = self.table_line_height + 2 * self.table_cell_padding
        if self.table_header_height + _EPSILON < single_line_row:
            raise ValueError(f'table_header_height must be at least {single_line_row:.2f}mm')
        if self.image_display_width <= 0:
            raise ValueError('image_display_width must be positive')
        if self.block_gap < 0:
            raise ValueError('block_gap must not be negative')


@dataclass(frozen=True)
class LayoutCursor:
    page: int
    y: float

    def fits(self, extent: float, geometry: PageGeometry) -> bool:
        return self.y + extent <= geometry.content_bottom + _EPSILON

    def at_page_top(self, geometry: PageGeometry) -> bool:
        return self.y <= geometry.content_top + _EPSILON

    def advance(self, extent: float) -> LayoutCursor:
        return LayoutCursor(page=self.page, y=self.y + extent)

    def next_page(self, geometry: PageGeometry) -> LayoutCursor:
        return LayoutCursor(page=self.page + 1, y=geometry.content_top)


def _make_room(cursor: LayoutCursor, extent: float, geometry: PageGeometry) -> LayoutCursor:
    if cursor.fits(extent, geometry) or cursor.at_page_top(geometry):
        return cursor
    return cursor.next_page(geometry)


def _emit(pages: list[list[DrawInstruction]], cursor: LayoutCursor, items: Sequence[DrawInstruction]) -> None:
    while len(pages) <= cursor.page:
        pages.append([])
    pages[cursor.page].extend(items)


def _shift(items: Sequence[DrawInstruction], dy: float) -> list[DrawInstruction]:
    return [replace(item, y=item.y + dy) for item in items]


def _text_line(
    text: str,
    *,
    index: int,
    y: float,
    height: float,
    style: TextStyle,
    geometry: PageGeometry,
) -> DrawInstruction:
    return DrawInstruction(
        kind=InstructionKind.text,
        x=geometry.margin,
        y=y,
        width=geometry.usable_width,
        height=height,
        block_index=index,
        text=text,
        style=style,
    )


def _wrap(text: str, width: float, style: TextStyle, measurer: TextMeasurer) -> list[str]:
    return wrap_text(
        text,
        max_width=width,
        font_name=style.font_name,
        font_size=style.font_size,
        measurer=measurer,
    )


def _layout_title(
    block: TitleBlock,
    index: int,
    geometry: PageGeometry,
    metrics: LayoutMetrics,
    measurer: TextMeasurer,
) -> tuple[float, list[DrawInstruction]]:
    items: list[DrawInstruction] = []
    offset = 0.0
    for text, style, line_height in (
        (block.name, metrics.title_style, metrics.title_line_height),
        (block.scientific_name, metrics.subtitle_style, metrics.subtitle_line_height),
    ):
        for line in _wrap(text, geometry.usable_width, style, measurer):
            items.append(
                _text_line(line, index=index, y=offset, height=line_height, style=style, geometry=geometry)
            )
            offset += line_height
    if not items:
        # keep a placeholder line so the block still owns a position on the page
        items.append(
            _text_line(
                '',
                index=index,
                y=0.0,
                height=metrics.title_line_height,
                style=metrics.title_style,
                geometry=geometry,
            )
        )
        offset = metrics.title_line_height
    return offset, items


def _layout_image(
    block: ImageBlock,
    index: int,
    geometry: PageGeometry,
    metrics: LayoutMetrics,
) -> tuple[float, list[DrawInstruction]]:
    aspect = block.aspect_ratio if block.aspect_ratio > 0 else 1.0
    width = min(metrics.image_display_width, geometry.usable_width)
    height = width / aspect
    if height > geometry.usable_height:
        height = geometry.usable_height
        width = height * aspect
    item = DrawInstruction(
        kind=InstructionKind.image,
        x=(geometry.width - width) / 2,
        y=0.0,
        width=width,
        height=height,
        block_index=index,
        image=block.image,
    )
    return height, [item]


def _layout_table(
    block: TableBlock,
    index: int,
    geometry: PageGeometry,
    metrics: LayoutMetrics,
    measurer: TextMeasurer,
) -> tuple[float, list[DrawInstruction]]:
    label_width = metrics.table_label_width
    value_width = geometry.usable_width - label_width
    inner_label = label_width - 2 * metrics.table_cell_padding
    inner_value = value_width - 2 * metrics.table_cell_padding
    if inner_label <= 0 or inner_value <= 0:
        raise ValueError(
            f'Table label width {label_width}mm does not fit a {geometry.usable_width}mm content area'
        )

    rows: list[TableRowLayout] = []
    for label, value in block.rows:
        label_lines = _wrap(label, inner_label, metrics.table_label_style, measurer) or ['']
        value_lines = _wrap(value, inner_value, metrics.table_value_style, measurer) or ['']
        line_count = max(len(label_lines), len(value_lines))
        height = max(
            metrics.table_min_row_height,
            line_count * metrics.table_line_height + 2 * metrics.table_cell_padding,
        )
        rows.append(TableRowLayout(label_lines=tuple(label_lines), value_lines=tuple(value_lines), height=height))

    total = metrics.table_header_height + sum(row.height for row in rows)
    table = TableLayout(
        header=metrics.table_header,
        column_widths=(label_width, value_width),
        header_height=metrics.table_header_height,
        line_height=metrics.table_line_height,
        cell_padding=metrics.table_cell_padding,
        rows=tuple(rows),
        header_style=metrics.table_header_style,
        label_style=metrics.table_label_style,
        value_style=metrics.table_value_style,
        header_fill=metrics.table_header_fill,
        border_color=metrics.table_border_color,
    )
    item = DrawInstruction(
        kind=InstructionKind.table,
        x=geometry.margin,
        y=0.0,
        width=geometry.usable_width,
        height=total,
        block_index=index,
        table=table,
    )
    return total, [item]


def _place_section(
    pages: list[list[DrawInstruction]],
    cursor: LayoutCursor,
    block: SectionBlock,
    index: int,
    geometry: PageGeometry,
    metrics: LayoutMetrics,
    measurer: TextMeasurer,
) -> LayoutCursor:
    lines = _wrap(block.body, geometry.usable_width, metrics.body_style, measurer)
    full_extent = metrics.heading_height + len(lines) * metrics.body_line_height
    if not cursor.fits(full_extent, geometry):
        # the section will break; the heading must still share a page with its first line
        head_extent = metrics.heading_height + (metrics.body_line_height if lines else 0.0)
        cursor = _make_room(cursor, head_extent, geometry)

    heading = _text_line(
        block.heading,
        index=index,
        y=cursor.y,
        height=metrics.heading_height,
        style=metrics.heading_style,
        geometry=geometry,
    )
    _emit(pages, cursor, [heading])
    cursor = cursor.advance(metrics.heading_height)

    for position, line in enumerate(lines):
        if position > 0 and not cursor.fits(metrics.body_line_height, geometry):
            if not cursor.at_page_top(geometry):
                cursor = cursor.next_page(geometry)
        if not line and cursor.at_page_top(geometry):
            continue
        item = _text_line(
            line,
            index=index,
            y=cursor.y,
            height=metrics.body_line_height,
            style=metrics.body_style,
            geometry=geometry,
        )
        _emit(pages, cursor, [item])
        cursor = cursor.advance(metrics.body_line_height)
    return cursor


def paginate(
    blocks: Sequence[ContentBlock],
    geometry: PageGeometry,
    metrics: LayoutMetrics | None = None,
    *,
    measurer: TextMeasurer | None = None,
) -> list[LayoutPage]:
    """Lay blocks out top to bottom, opening a new page whenever the next
    block would cross the bottom margin.

    Title, image and table blocks move whole to the next page. Section body
    lines may continue on the next page, but a section heading is never left
    without its first line. A block taller than a full page is placed at the
    top of a fresh page as is. Each call keeps its own cursor and page list.
    """
    metrics = metrics or LayoutMetrics()
    measurer = measurer or ReportlabMeasurer()

    pages: list[list[DrawInstruction]] = [[]]
    cursor = LayoutCursor(page=0, y=geometry.content_top)

    for index, block in enumerate(blocks):
        if isinstance(block, SectionBlock):
            cursor = _place_section(pages, cursor, block, index, geometry, metrics, measurer)
            cursor = cursor.advance(metrics.block_gap)
            continue

        if isinstance(block, TitleBlock):
            extent, items = _layout_title(block, index, geometry, metrics, measurer)
        elif isinstance(block, ImageBlock):
            extent, items = _layout_image(block, index, geometry, metrics)
        elif isinstance(block, TableBlock):
            extent, items = _layout_table(block, index, geometry, metrics, measurer)
        else:
            raise TypeError(f'Unsupported content block: {type(block).__name__}')

        cursor = _make_room(cursor, extent, geometry)
        if extent > geometry.usable_height:
            logger.warning(
                'Block %d (%s) is %.1fmm tall, taller than the %.1fmm page body; placing it as is',
                index,
                type(block).__name__,
                extent,
                geometry.usable_height,
            )
        _emit(pages, cursor, _shift(items, cursor.y))
        cursor = cursor.advance(extent + metrics.block_gap)

    return [LayoutPage(number=number, instructions=tuple(items)) for number, items in enumerate(pages, start=1)]
