from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttributeRecord(BaseModel):
    """Finished identification result for one plant photo.

    Attribute names are snake_case; the camelCase aliases match the keys the
    identification service returns and the history file stores.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    common_name: str
    scientific_name: str
    description: str = ''
    growth_habit: str = ''
    ideal_climate: str = ''
    light_requirement: str = ''
    water_needs: str = ''
    toxicity_to_pets: str = ''
    native_region: str = ''
    maintenance_level: str = ''
    care_tips: str = ''

    @field_validator('*', mode='before')
    @classmethod
    def _none_as_empty(cls, value):
        return '' if value is None else value


# Table attributes in report order, paired with their printed labels.
ATTRIBUTE_LABELS: tuple[tuple[str, str], ...] = (
    ('growth_habit', 'Growth Habit'),
    ('ideal_climate', 'Ideal Climate'),
    ('light_requirement', 'Light Requirement'),
    ('water_needs', 'Water Needs'),
    ('toxicity_to_pets', 'Toxicity to Pets'),
    ('native_region', 'Native Region'),
    ('maintenance_level', 'Maintenance Level'),
)


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = Field(default_factory=utcnow)
    image: str
    result: AttributeRecord


class HistoryFile(BaseModel):
    entries: list[HistoryEntry] = Field(default_factory=list)
