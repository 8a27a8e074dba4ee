from __future__ import annotations

from leafwise.adapters.llm import BasicLLMClient, LLMCallError
from leafwise.types import AttributeRecord


SUMMARY_PROMPT = """You are an expert botanist who is skilled at summarizing plant information for non-experts.

Given the following information about a plant, please provide a concise summary of the key information about the plant, such as its primary characteristics and care needs.

Plant Name: {plant_name}
Description: {description}
Scientific Classification: {scientific_classification}
Care Needs: {care_needs}
Toxicity Info: {toxicity_info}

Respond with a JSON object of the form {{"summary": "<summary text>"}}."""


def _care_needs(record: AttributeRecord) -> str:
    parts = [
        ('Light', record.light_requirement),
        ('Water', record.water_needs),
        ('Climate', record.ideal_climate),
        ('Care', record.care_tips),
    ]
    return '; '.join(f'{label}: {value}' for label, value in parts if value)


class PlantSummarizer:
    def __init__(self, llm: BasicLLMClient):
        self.llm = llm

    async def summarize(self, record: AttributeRecord) -> str:
        prompt = SUMMARY_PROMPT.format(
            plant_name=record.common_name,
            description=record.description,
            scientific_classification=record.scientific_name,
            care_needs=_care_needs(record),
            toxicity_info=record.toxicity_to_pets,
        )
        payload = await self.llm.complete_json([{'role': 'user', 'content': prompt}])
        summary = str(payload.get('summary') or '').strip()
        if not summary:
            raise LLMCallError('invalid_response', 'Summary response has no "summary" text')
        return summary
