from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from openai import APIError, AsyncOpenAI

from leafwise.config import Settings


logger = logging.getLogger(__name__)


class LLMCallError(RuntimeError):
    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind


@dataclass
class BasicLLMConfig:
    base_url: str | None
    api_key: str | None
    model: str
    timeout_seconds: int
    temperature: float = 0.2
    max_tokens: int = 1500


def llm_config_from_settings(settings: Settings) -> BasicLLMConfig:
    return BasicLLMConfig(
        base_url=settings.openai_base_url,
        api_key=settings.openai_api_key,
        model=settings.identify_model,
        timeout_seconds=settings.identify_timeout_seconds,
        temperature=settings.identify_temperature,
        max_tokens=settings.identify_max_tokens,
    )


class BasicLLMClient:
    """Minimal async OpenAI client helper for JSON-returning prompts."""

    def __init__(self, cfg: BasicLLMConfig, *, client: AsyncOpenAI | None = None):
        self.cfg = cfg
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.cfg.api_key)

    def client(self) -> AsyncOpenAI:
        if not self.configured:
            raise LLMCallError('not_configured', 'LLM client is not configured; set OPENAI_API_KEY')
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.cfg.api_key,
                base_url=self.cfg.base_url,
                timeout=max(30, int(self.cfg.timeout_seconds)),
            )
        return self._client

    async def complete_json(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        try:
            response = await self.client().chat.completions.create(
                model=self.cfg.model,
                messages=messages,
                temperature=self.cfg.temperature,
                max_tokens=self.cfg.max_tokens,
                response_format={'type': 'json_object'},
            )
        except APIError as exc:
            raise LLMCallError('upstream_error', f'{type(exc).__name__}: {exc}') from exc

        choices = getattr(response, 'choices', None) or []
        content = choices[0].message.content if choices else None
        if not str(content or '').strip():
            raise LLMCallError('invalid_response', 'Model returned an empty response')
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            raise LLMCallError('invalid_response', f'Model response is not JSON: {exc}') from exc
        if not isinstance(payload, dict):
            raise LLMCallError('invalid_response', f'Model response is not a JSON object: {type(payload).__name__}')

        usage = getattr(response, 'usage', None)
        if usage is not None:
            logger.info(
                'LLM call model=%s input_tokens=%s output_tokens=%s',
                self.cfg.model,
                getattr(usage, 'prompt_tokens', None),
                getattr(usage, 'completion_tokens', None),
            )
        return payload
