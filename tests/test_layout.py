from __future__ import annotations

import pytest
from conftest import LONG_CARE_TIPS, make_record, make_resolved_image

from leafwise.report.blocks import ImageBlock, SectionBlock, TableBlock, TitleBlock, build_content_blocks
from leafwise.report.layout import (
    InstructionKind,
    LayoutMetrics,
    PageGeometry,
    paginate,
)


GEOMETRY = PageGeometry(width=210, height=280, margin=14)


def _block_order(pages) -> list[int]:
    seen: list[int] = []
    for page in pages:
        for item in page.instructions:
            if item.block_index is not None and item.block_index not in seen:
                seen.append(item.block_index)
    return seen


def _pages_of_block(pages, index: int) -> list[int]:
    return sorted({page.number for page in pages for item in page.instructions if item.block_index == index})


def test_short_record_fits_on_one_page(record, resolved_image) -> None:
    blocks = build_content_blocks(record, resolved_image)

    pages = paginate(blocks, GEOMETRY)

    assert len(pages) == 1
    assert _block_order(pages) == [0, 1, 2, 3, 4]
    kinds = [item.kind for item in pages[0].instructions]
    assert kinds.count(InstructionKind.image) == 1
    assert kinds.count(InstructionKind.table) == 1


def test_long_care_tips_spill_onto_second_page(resolved_image) -> None:
    blocks = build_content_blocks(make_record(care_tips=LONG_CARE_TIPS), resolved_image)
    care_index = len(blocks) - 1

    pages = paginate(blocks, GEOMETRY)

    assert len(pages) == 2
    assert _pages_of_block(pages, care_index) == [1, 2]
    heading_page = next(
        page for page in pages for item in page.instructions if item.block_index == care_index and item.text == 'Care Tips'
    )
    care_items = [item for item in heading_page.instructions if item.block_index == care_index]
    assert care_items[0].text == 'Care Tips'
    assert len(care_items) >= 2


def test_pagination_is_idempotent(resolved_image) -> None:
    blocks = build_content_blocks(make_record(care_tips=LONG_CARE_TIPS), resolved_image)

    assert paginate(blocks, GEOMETRY) == paginate(blocks, GEOMETRY)


def test_no_instruction_crosses_the_bottom_margin(resolved_image) -> None:
    blocks = build_content_blocks(make_record(care_tips=LONG_CARE_TIPS, description=LONG_CARE_TIPS), resolved_image)

    pages = paginate(blocks, GEOMETRY)

    assert len(pages) >= 2
    for page in pages:
        for item in page.instructions:
            assert item.y >= GEOMETRY.content_top - 1e-6
            assert item.bottom <= GEOMETRY.content_bottom + 1e-6


def test_heading_that_would_be_orphaned_moves_to_next_page() -> None:
    metrics = LayoutMetrics()
    # Title (17mm) + gap leaves the cursor at 37mm; this image then leaves 10mm,
    # enough for the 8mm heading but not for heading plus a 5mm line.
    image_height = GEOMETRY.content_bottom - 10 - (GEOMETRY.content_top + 17 + 2 * metrics.block_gap)
    image = make_resolved_image(width=80, height=int(round(image_height)))
    blocks = [
        TitleBlock(name='Snake Plant', scientific_name='Dracaena trifasciata'),
        ImageBlock(image=image, aspect_ratio=80 / image_height),
        SectionBlock(heading='Care Tips', body=LONG_CARE_TIPS),
    ]

    pages = paginate(blocks, GEOMETRY, metrics)

    assert _pages_of_block(pages, 1) == [1]
    assert 1 not in _pages_of_block(pages, 2)
    first = next(item for item in pages[1].instructions if item.block_index == 2)
    assert first.text == 'Care Tips'
    assert first.y == pytest.approx(GEOMETRY.content_top)


def test_table_that_does_not_fit_moves_whole_to_next_page(resolved_image) -> None:
    rows = tuple((f'Label {n}', f'Value {n}') for n in range(20))
    blocks = [
        TitleBlock(name='Snake Plant', scientific_name='Dracaena trifasciata'),
        ImageBlock(image=resolved_image, aspect_ratio=resolved_image.aspect_ratio),
        TableBlock(rows=rows),
    ]

    pages = paginate(blocks, GEOMETRY)

    assert len(pages) == 2
    table = pages[1].instructions[0]
    assert table.kind == InstructionKind.table
    assert table.y == pytest.approx(GEOMETRY.content_top)
    assert len(table.table.rows) == 20


def test_block_taller_than_a_page_is_placed_at_top_of_fresh_page(resolved_image) -> None:
    rows = tuple((f'Label {n}', f'Value {n}') for n in range(60))
    blocks = [
        TitleBlock(name='Snake Plant', scientific_name='Dracaena trifasciata'),
        TableBlock(rows=rows),
        SectionBlock(heading='Description', body='Short text.'),
    ]

    pages = paginate(blocks, GEOMETRY)

    table = pages[1].instructions[0]
    assert table.kind == InstructionKind.table
    assert table.y == pytest.approx(GEOMETRY.content_top)
    assert table.height > GEOMETRY.usable_height
    assert _pages_of_block(pages, 2) == [3]


def test_very_tall_image_is_scaled_to_the_page_body() -> None:
    image = make_resolved_image(width=10, height=200)

    pages = paginate([ImageBlock(image=image, aspect_ratio=image.aspect_ratio)], GEOMETRY)

    placed = pages[0].instructions[0]
    assert placed.height == pytest.approx(GEOMETRY.usable_height)
    assert placed.width == pytest.approx(GEOMETRY.usable_height * 10 / 200)
    assert placed.x + placed.width / 2 == pytest.approx(GEOMETRY.width / 2)


def test_empty_block_list_still_yields_one_page() -> None:
    pages = paginate([], GEOMETRY)

    assert len(pages) == 1
    assert pages[0].instructions == ()


def test_metrics_reject_line_height_smaller_than_font() -> None:
    with pytest.raises(ValueError, match='body_line_height'):
        LayoutMetrics(body_line_height=2.0).validate()

    LayoutMetrics().validate()


def test_geometry_without_room_is_rejected() -> None:
    with pytest.raises(ValueError):
        PageGeometry(width=20, height=280, margin=14)
