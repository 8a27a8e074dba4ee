from __future__ import annotations

from .types import AttributeRecord


def speech_text(record: AttributeRecord) -> str:
    return (
        f'Plant: {record.common_name}. Scientific Name: {record.scientific_name}.\n'
        f'Description: {record.description}.\n'
        f'Care Tips: {record.care_tips}.'
    )


def clipboard_text(record: AttributeRecord) -> str:
    return (
        f'Plant: {record.common_name} ({record.scientific_name})\n'
        f'Description: {record.description}\n'
        f'Care: {record.care_tips}'
    )
