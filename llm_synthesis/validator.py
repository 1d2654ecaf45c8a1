"""Validation layer for raw reasoning-service output.

Extracts the first JSON object or array from a reply and validates it
against the contracts in ``llm_synthesis.schema``.
"""

import json
import re
from typing import Any, List

from pydantic import ValidationError

from llm_synthesis.schema import CompetitorDeepOutput, SiteAnalysisOutput

_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY_PATTERN = re.compile(r"\[.*?\]", re.DOTALL)
_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


class LLMOutputValidationError(Exception):
    """Raised when LLM output fails parsing or schema validation.

    Attributes:
        stage: Which validation step failed ("json_parse" or "schema").
        errors: List of human-readable error descriptions.
        raw_response: The original string that failed validation.
    """

    def __init__(
        self,
        stage: str,
        errors: List[str],
        raw_response: str,
    ) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        message = (
            f"LLM output validation failed at stage '{stage}': "
            + "; ".join(errors)
        )
        super().__init__(message)


def _strip_markdown_fences(text: str) -> str:
    """Remove optional markdown code fences wrapping JSON.

    Args:
        text: Raw LLM response string.

    Returns:
        The text with leading/trailing code fences removed, if present.
    """
    stripped = text.strip()
    match = re.match(
        r"^```(?:json)?\s*\n?(.*?)\n?\s*```$",
        stripped,
        re.DOTALL,
    )
    if match:
        return match.group(1).strip()
    return stripped


def extract_json_object(raw_response: str) -> Any:
    """Parse the first ``{...}`` span of a reply.

    Models often add prose around the JSON; everything outside the outermost
    braces is ignored.

    Raises:
        LLMOutputValidationError: With stage ``json_parse`` when no object
            can be found or decoded.
    """
    cleaned = _strip_markdown_fences(raw_response or "")
    match = _OBJECT_PATTERN.search(cleaned)
    if match is None:
        raise LLMOutputValidationError(
            stage="json_parse",
            errors=["no JSON object found in response"],
            raw_response=raw_response,
        )
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise LLMOutputValidationError(
            stage="json_parse",
            errors=[str(exc)],
            raw_response=raw_response,
        ) from exc


def extract_json_array(raw_response: str) -> Any:
    """Parse the first ``[...]`` span of a reply."""
    cleaned = _strip_markdown_fences(raw_response or "")
    match = _ARRAY_PATTERN.search(cleaned)
    if match is None:
        raise LLMOutputValidationError(
            stage="json_parse",
            errors=["no JSON array found in response"],
            raw_response=raw_response,
        )
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise LLMOutputValidationError(
            stage="json_parse",
            errors=[str(exc)],
            raw_response=raw_response,
        ) from exc


def _schema_errors(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
        for e in exc.errors()
    ]


def validate_site_analysis(raw_response: str) -> SiteAnalysisOutput:
    """Parse and validate a site-analysis reply.

    Args:
        raw_response: The raw string returned by the LLM adapter.

    Returns:
        A validated SiteAnalysisOutput instance.

    Raises:
        LLMOutputValidationError: If JSON parsing or schema validation fails.
    """
    data = extract_json_object(raw_response)
    if not isinstance(data, dict):
        raise LLMOutputValidationError(
            stage="schema",
            errors=["top-level JSON must be an object"],
            raw_response=raw_response,
        )
    # Older prompt revisions named the score commodityScore.
    if not data.get("differentiationScore") and data.get("commodityScore"):
        data["differentiationScore"] = data["commodityScore"]
    try:
        return SiteAnalysisOutput.model_validate(data)
    except ValidationError as exc:
        raise LLMOutputValidationError(
            stage="schema",
            errors=_schema_errors(exc),
            raw_response=raw_response,
        ) from exc


def validate_competitor_deep(raw_response: str) -> CompetitorDeepOutput:
    """Parse and validate a competitor deep-analysis reply."""
    data = extract_json_object(raw_response)
    if not isinstance(data, dict):
        raise LLMOutputValidationError(
            stage="schema",
            errors=["top-level JSON must be an object"],
            raw_response=raw_response,
        )
    try:
        return CompetitorDeepOutput.model_validate(data)
    except ValidationError as exc:
        raise LLMOutputValidationError(
            stage="schema",
            errors=_schema_errors(exc),
            raw_response=raw_response,
        ) from exc


def validate_domain_list(raw_response: str, limit: int = 5) -> List[str]:
    """Parse a discovery reply into bare domains.

    Schemes and trailing slashes are stripped, non-string and empty entries
    dropped, and the result truncated to ``limit``.
    """
    data = extract_json_array(raw_response)
    if not isinstance(data, list):
        raise LLMOutputValidationError(
            stage="schema",
            errors=["top-level JSON must be an array"],
            raw_response=raw_response,
        )
    domains: List[str] = []
    for item in data:
        if not isinstance(item, str):
            continue
        domain = _SCHEME_PATTERN.sub("", item.strip()).rstrip("/")
        if domain:
            domains.append(domain)
    return domains[:limit]
