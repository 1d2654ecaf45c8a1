"""LLM adapters for messaging analysis.

Provides a base interface, concrete adapters for the Anthropic and
OpenAI-compatible APIs, and a deterministic mock for testing.
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Optional


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted prompt string.
            max_tokens: Optional per-call completion budget. Falls back to
                the adapter default.

        Returns:
            Raw string response from the model (expected to contain JSON).
        """


class AnthropicLLMAdapter(BaseLLMAdapter):
    """Adapter for the Anthropic Messages API."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        temperature: float = 0.2,
        api_key: Optional[str] = None,
        timeout_seconds: float = 90.0,
    ) -> None:
        """Initialise the Anthropic adapter.

        Args:
            model: Model identifier.
            max_tokens: Default maximum tokens in the completion.
            temperature: Sampling temperature.
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            timeout_seconds: Transport timeout for one request.
        """
        try:
            from anthropic import Anthropic
        except ImportError as exc:
            raise ImportError(
                "anthropic package is required for AnthropicLLMAdapter. "
                "Install it with: pip install anthropic"
            ) from exc

        resolved_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        self._client = Anthropic(api_key=resolved_key, timeout=timeout_seconds)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        response = self._client.messages.create(
            model=self._model,
            max_tokens=max_tokens or self._max_tokens,
            temperature=self._temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        return ""


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Configured for non-streaming output with low temperature suitable
    for structured JSON generation.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 4096,
        temperature: float = 0.2,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 90.0,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Default maximum tokens in the completion.
            temperature: Sampling temperature.
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Transport timeout for one request.
        """
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key, "timeout": timeout_seconds}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self._temperature,
            max_tokens=max_tokens or self._max_tokens,
            stream=False,
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Fixed mock responses used for local runs and tests. The mock picks one by
# looking for the marker each prompt builder embeds.
# ---------------------------------------------------------------------------
_MOCK_SITE_ANALYSIS = {
    "differentiationScore": 58,
    "categoryScores": {
        "firstImpression": 6,
        "differentiation": 5,
        "customerClarity": 6,
        "storyStructure": 5,
        "trustSignals": 6,
        "buttonClarity": 7,
    },
    "topIssues": [
        {
            "title": "Generic headline",
            "description": "The hero headline could appear on any competitor site.",
            "severity": "critical",
            "findings": [
                {
                    "phrase": "innovative solutions",
                    "problem": "Buzzword without substance",
                    "rewrite": "Name the specific outcome you deliver",
                    "location": "hero",
                }
            ],
        },
        {
            "title": "Proof is buried",
            "description": "Specific numbers appear only deep on inner pages.",
            "severity": "warning",
            "findings": [],
        },
    ],
    "pageAnalysis": [],
    "proofPoints": [],
    "voiceAnalysis": {
        "currentTone": "Corporate and cautious",
        "authenticVoice": "Practical and hands-on",
        "examples": [],
    },
    "suggestedCompetitors": [],
}

_MOCK_COMPETITOR_ANALYSIS = {
    "categoryScores": {
        "firstImpression": 7,
        "differentiation": 6,
        "customerClarity": 6,
        "storyStructure": 5,
        "trustSignals": 7,
        "buttonClarity": 7,
    },
    "strengths": ['Clear CTA: "Start your free trial" appears above the fold'],
    "weaknesses": ['Generic positioning: "world-class solutions"'],
}

MOCK_SITE_ANALYSIS_JSON = json.dumps(_MOCK_SITE_ANALYSIS, indent=2)
MOCK_COMPETITOR_ANALYSIS_JSON = json.dumps(_MOCK_COMPETITOR_ANALYSIS, indent=2)
MOCK_DISCOVERY_JSON = "[]"

SITE_ANALYSIS_MARKER = "[task:site-analysis]"
COMPETITOR_ANALYSIS_MARKER = "[task:competitor-analysis]"
DISCOVERY_MARKER = "[task:competitor-discovery]"


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns fixed valid JSON responses.

    Used for local runs and CI pipelines where no LLM API is available.
    """

    def generate(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        if COMPETITOR_ANALYSIS_MARKER in prompt:
            return MOCK_COMPETITOR_ANALYSIS_JSON
        if DISCOVERY_MARKER in prompt:
            return MOCK_DISCOVERY_JSON
        return MOCK_SITE_ANALYSIS_JSON


def build_llm_adapter(
    adapter: str,
    model: str,
    max_tokens: int = 4096,
    temperature: float = 0.2,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_seconds: float = 90.0,
) -> BaseLLMAdapter:
    """Construct the adapter named by ``adapter``.

    Raises:
        ValueError: If the adapter name is unknown.
    """
    name = adapter.strip().lower()
    if name == "mock":
        return MockLLMAdapter()
    if name == "anthropic":
        return AnthropicLLMAdapter(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            api_key=api_key,
            timeout_seconds=timeout_seconds,
        )
    if name == "openai":
        return OpenAILLMAdapter(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            api_key=api_key,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )
    raise ValueError(f"Unknown LLM adapter '{adapter}'. Expected anthropic, openai or mock.")
