from __future__ import annotations

import logging

from pydantic import ValidationError

from leafwise.adapters.llm import BasicLLMClient, LLMCallError
from leafwise.types import AttributeRecord


logger = logging.getLogger(__name__)

UNCLEAR_IMAGE = 'unclear_image'
UPSTREAM_ERROR = 'upstream_error'

IDENTIFY_PROMPT = (
    'Please identify the plant in the image. Provide its common and scientific names, a general '
    'description, and detailed information for the following attributes: growth habit, ideal climate, '
    'light requirement, water needs, toxicity to pets, native region, and maintenance level. Also include '
    'a section with general care tips.\n\n'
    'Respond with a single JSON object with exactly these string keys: commonName, scientificName, '
    'description, growthHabit (e.g. Shrub, Tree, Herb), idealClimate (e.g. Tropical, Temperate), '
    'lightRequirement (e.g. Full Sun, Partial Shade), waterNeeds (e.g. Low, Medium, High), '
    'toxicityToPets (e.g. Yes, No, Mildly toxic), nativeRegion (e.g. Asia, Africa), '
    'maintenanceLevel (e.g. Easy, Moderate, High), careTips (soil, fertilizer and pruning advice). '
    'Use an empty string for anything you cannot determine.'
)


class IdentificationError(RuntimeError):
    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind


class PlantIdentifier:
    def __init__(self, llm: BasicLLMClient):
        self.llm = llm

    async def identify(self, *, photo_data_uri: str) -> AttributeRecord:
        if not str(photo_data_uri or '').startswith('data:'):
            raise ValueError('photo_data_uri must be a data URI with a MIME type and base64 payload')

        messages = [
            {
                'role': 'user',
                'content': [
                    {'type': 'text', 'text': IDENTIFY_PROMPT},
                    {'type': 'image_url', 'image_url': {'url': photo_data_uri}},
                ],
            }
        ]
        try:
            payload = await self.llm.complete_json(messages)
        except LLMCallError as exc:
            kind = UNCLEAR_IMAGE if exc.kind == 'invalid_response' else UPSTREAM_ERROR
            raise IdentificationError(kind, f'Could not identify the plant: {exc}') from exc

        try:
            record = AttributeRecord.model_validate(payload)
        except ValidationError as exc:
            raise IdentificationError(
                UNCLEAR_IMAGE,
                f'Identification result is missing required fields: {exc.error_count()} error(s)',
            ) from exc
        if not record.common_name or not record.scientific_name:
            raise IdentificationError(UNCLEAR_IMAGE, 'The image might be unclear; no plant name was returned.')

        logger.info('Identified plant %s (%s)', record.common_name, record.scientific_name)
        return record
