from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from leafwise.images import ResolvedImage
from leafwise.types import ATTRIBUTE_LABELS, AttributeRecord


@dataclass(frozen=True)
class TitleBlock:
    name: str
    scientific_name: str


@dataclass(frozen=True)
class ImageBlock:
    image: ResolvedImage
    aspect_ratio: float


@dataclass(frozen=True)
class TableBlock:
    rows: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class SectionBlock:
    heading: str
    body: str


ContentBlock = Union[TitleBlock, ImageBlock, TableBlock, SectionBlock]


def _clean(value: str | None) -> str:
    return str(value or '').strip()


def build_attribute_rows(record: AttributeRecord) -> tuple[tuple[str, str], ...]:
    rows: list[tuple[str, str]] = []
    for field_name, label in ATTRIBUTE_LABELS:
        value = _clean(getattr(record, field_name, ''))
        if not value:
            continue
        rows.append((label, value))
    return tuple(rows)


def build_content_blocks(record: AttributeRecord, image: ResolvedImage) -> list[ContentBlock]:
    blocks: list[ContentBlock] = [
        TitleBlock(name=_clean(record.common_name), scientific_name=_clean(record.scientific_name)),
        ImageBlock(image=image, aspect_ratio=image.aspect_ratio),
    ]

    rows = build_attribute_rows(record)
    if rows:
        blocks.append(TableBlock(rows=rows))

    for heading, text in (('Description', record.description), ('Care Tips', record.care_tips)):
        body = _clean(text)
        if body:
            blocks.append(SectionBlock(heading=heading, body=body))
    return blocks
