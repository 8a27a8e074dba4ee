from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from leafwise.config import get_settings
from leafwise.images import ResolvedImage
from leafwise.types import AttributeRecord


LONG_CARE_TIPS = ' '.join(
    [
        'Water thoroughly only when the top few centimetres of soil feel dry, and empty the saucer afterwards.',
        'Use a free-draining cactus mix with added perlite and repot every two to three years in spring.',
        'Feed with a diluted balanced fertilizer once a month from spring to late summer and never in winter.',
        'Wipe the leaves with a damp cloth to remove dust so the plant can photosynthesise efficiently.',
    ]
    * 8
)


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv('DATA_DIR', str(tmp_path / 'data'))
    for name in ('OPENAI_API_KEY', 'API_KEY', 'LLM_API_KEY'):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_png(width: int = 40, height: int = 30, color: tuple[int, int, int] = (56, 142, 60)) -> bytes:
    buffer = BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, format='PNG')
    return buffer.getvalue()


def make_resolved_image(width: int = 40, height: int = 30) -> ResolvedImage:
    return ResolvedImage(data=make_png(width, height), mime_type='image/png', width_px=width, height_px=height)


def make_record(**overrides: str) -> AttributeRecord:
    fields = {
        'common_name': 'Snake Plant',
        'scientific_name': 'Dracaena trifasciata',
        'description': 'An evergreen perennial with stiff, upright, sword-shaped leaves.',
        'growth_habit': 'Herb',
        'ideal_climate': 'Tropical',
        'light_requirement': 'Partial Shade',
        'water_needs': 'Low',
        'toxicity_to_pets': 'Mildly toxic',
        'native_region': 'West Africa',
        'maintenance_level': 'Easy',
        'care_tips': 'Let the soil dry out between waterings and avoid cold drafts.',
    }
    fields.update(overrides)
    return AttributeRecord(**fields)


@pytest.fixture
def record() -> AttributeRecord:
    return make_record()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def resolved_image() -> ResolvedImage:
    return make_resolved_image()
