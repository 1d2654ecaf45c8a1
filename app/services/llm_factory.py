"""
Process-wide reasoning-service adapter built from LLM settings.
"""

from __future__ import annotations

from functools import lru_cache

from app.config import get_llm_settings
from llm_synthesis.adapter import BaseLLMAdapter, build_llm_adapter


@lru_cache(maxsize=1)
def get_llm_adapter() -> BaseLLMAdapter:
    settings = get_llm_settings()
    return build_llm_adapter(
        settings.adapter,
        settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_seconds=settings.request_timeout_seconds,
    )
