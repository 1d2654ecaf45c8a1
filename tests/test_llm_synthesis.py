"""
tests/test_llm_synthesis.py

Tests for the reasoning-service layer: reply validation, retry and prompt
construction.

Coverage
--------
- JSON extraction: code fences, surrounding prose, missing JSON
- Site analysis schema: clamping, defaults, legacy score key, list limits
- Competitor deep schema: statement limits and overall score
- Discovery domain lists
- Retry on formatting errors only
- Mock adapter routing and adapter construction
- Prompt markers and content truncation
"""

from __future__ import annotations

import json

import pytest

from fakes import ScriptedLLMAdapter
from llm_synthesis.adapter import (
    COMPETITOR_ANALYSIS_MARKER,
    DISCOVERY_MARKER,
    SITE_ANALYSIS_MARKER,
    MockLLMAdapter,
    build_llm_adapter,
)
from llm_synthesis.prompt_builder import (
    COMPETITOR_CONTENT_LIMIT,
    DISCOVERY_CONTENT_LIMIT,
    SITE_PAGE_CONTENT_LIMIT,
    SitePromptBuilder,
)
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.validator import (
    LLMOutputValidationError,
    extract_json_object,
    validate_competitor_deep,
    validate_domain_list,
    validate_site_analysis,
)


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------


class TestExtraction:
    def test_markdown_fences_are_stripped(self) -> None:
        assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_prose_around_object_is_ignored(self) -> None:
        assert extract_json_object('Here you go: {"a": {"b": 2}} Hope that helps.') == {"a": {"b": 2}}

    def test_missing_object(self) -> None:
        with pytest.raises(LLMOutputValidationError) as exc_info:
            extract_json_object("no json here")
        assert exc_info.value.stage == "json_parse"

    def test_broken_object(self) -> None:
        with pytest.raises(LLMOutputValidationError) as exc_info:
            extract_json_object('{"a": }')
        assert exc_info.value.stage == "json_parse"
        assert exc_info.value.raw_response == '{"a": }'


# ---------------------------------------------------------------------------
# Site analysis schema
# ---------------------------------------------------------------------------


class TestSiteAnalysisValidation:
    def test_scores_are_clamped(self) -> None:
        output = validate_site_analysis(
            json.dumps(
                {
                    "differentiationScore": 140,
                    "categoryScores": {"firstImpression": "12", "differentiation": -3, "trustSignals": "n/a"},
                }
            )
        )
        assert output.differentiation_score == 100
        assert output.category_scores.first_impression == 10
        assert output.category_scores.differentiation == 0
        assert output.category_scores.trust_signals == 5
        assert output.category_scores.button_clarity == 5

    def test_missing_score_defaults(self) -> None:
        output = validate_site_analysis("{}")
        assert output.differentiation_score == 50
        assert output.category_scores is None
        assert output.voice_analysis.current_tone == "Corporate/generic"

    def test_legacy_score_key(self) -> None:
        assert validate_site_analysis('{"commodityScore": 33}').differentiation_score == 33

    def test_issue_fields_are_normalized(self) -> None:
        output = validate_site_analysis(
            json.dumps(
                {
                    "topIssues": [
                        {"title": None, "severity": "URGENT", "findings": ["bad", {"phrase": " synergy "}]},
                        "not an object",
                    ]
                    + [{"title": f"Issue {index}"} for index in range(12)],
                }
            )
        )
        first = output.top_issues[0]
        assert first.title == "Issue detected"
        assert first.description == "Generic messaging detected"
        assert first.severity == "warning"
        assert [finding.phrase for finding in first.findings] == ["synergy"]
        assert len(output.top_issues) == 10

    def test_suggestions_are_filtered_and_limited(self) -> None:
        suggestions = [{"domain": ""}, {"confidence": "high"}] + [
            {"domain": f"c{index}.com", "confidence": "HIGH"} for index in range(7)
        ]
        output = validate_site_analysis(json.dumps({"suggestedCompetitors": suggestions}))
        assert [item.domain for item in output.suggested_competitors] == [f"c{index}.com" for index in range(5)]
        assert output.suggested_competitors[0].confidence == "high"

    def test_top_level_array_is_rejected(self) -> None:
        with pytest.raises(LLMOutputValidationError):
            validate_site_analysis("[1, 2, 3]")


class TestCompetitorDeepValidation:
    def test_statements_are_limited(self) -> None:
        output = validate_competitor_deep(
            json.dumps(
                {
                    "categoryScores": {key: 7 for key in ("firstImpression", "differentiation", "customerClarity",
                                                          "storyStructure", "trustSignals", "buttonClarity")},
                    "strengths": ["a", " ", 3, "b", "c", "d"],
                    "weaknesses": "not a list",
                }
            )
        )
        assert output.strengths == ["a", "b", "c"]
        assert output.weaknesses == []
        assert output.overall_score() == 70

    def test_mock_reply_scores_63(self) -> None:
        output = validate_competitor_deep(MockLLMAdapter().generate(COMPETITOR_ANALYSIS_MARKER))
        assert output.overall_score() == 63


class TestDomainList:
    def test_schemes_and_slashes_are_stripped(self) -> None:
        reply = 'Sure: ["https://a.com/", "http://b.io", 42, "", "c.dev"]'
        assert validate_domain_list(reply) == ["a.com", "b.io", "c.dev"]

    def test_limit(self) -> None:
        reply = json.dumps([f"d{index}.com" for index in range(8)])
        assert len(validate_domain_list(reply, limit=5)) == 5

    def test_missing_array(self) -> None:
        with pytest.raises(LLMOutputValidationError):
            validate_domain_list("none")


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


class TestRetry:
    def test_second_attempt_succeeds(self) -> None:
        adapter = ScriptedLLMAdapter("garbage", '{"differentiationScore": 44}')
        output = generate_with_retry(adapter, "prompt", validate_site_analysis, max_retries=1)
        assert output.differentiation_score == 44
        assert len(adapter.prompts) == 2

    def test_exhausted(self) -> None:
        adapter = ScriptedLLMAdapter("garbage")
        with pytest.raises(LLMRetryExhaustedError) as exc_info:
            generate_with_retry(adapter, "prompt", validate_site_analysis, max_retries=2)
        assert exc_info.value.attempts == 3
        assert len(exc_info.value.history) == 3

    def test_transport_errors_are_not_retried(self) -> None:
        adapter = ScriptedLLMAdapter(ConnectionError("reset"))
        with pytest.raises(ConnectionError):
            generate_with_retry(adapter, "prompt", validate_site_analysis, max_retries=3)
        assert len(adapter.prompts) == 1


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class TestAdapters:
    def test_mock_routes_by_marker(self) -> None:
        mock = MockLLMAdapter()
        assert mock.generate(f"{DISCOVERY_MARKER}\n...") == "[]"
        assert "strengths" in json.loads(mock.generate(f"{COMPETITOR_ANALYSIS_MARKER}\n..."))
        assert json.loads(mock.generate(f"{SITE_ANALYSIS_MARKER}\n..."))["differentiationScore"] == 58

    def test_build_mock(self) -> None:
        assert isinstance(build_llm_adapter(" Mock ", "any-model"), MockLLMAdapter)

    def test_unknown_adapter(self) -> None:
        with pytest.raises(ValueError):
            build_llm_adapter("bard", "any-model")


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


class TestPrompts:
    def test_site_prompt_truncates_each_page(self) -> None:
        builder = SitePromptBuilder()
        prompt = builder.build_site_analysis_prompt(
            "https://example.com",
            [{"url": "https://example.com", "title": "", "content": "x" * (SITE_PAGE_CONTENT_LIMIT + 500)}],
        )
        assert prompt.startswith(SITE_ANALYSIS_MARKER)
        assert "## Untitled" in prompt
        assert "x" * SITE_PAGE_CONTENT_LIMIT in prompt
        assert "x" * (SITE_PAGE_CONTENT_LIMIT + 1) not in prompt
        assert "Company:" not in prompt

    def test_competitor_prompt(self) -> None:
        prompt = SitePromptBuilder().build_competitor_prompt("https://a.com", "y" * (COMPETITOR_CONTENT_LIMIT + 1))
        assert prompt.startswith(COMPETITOR_ANALYSIS_MARKER)
        assert "URL: https://a.com" in prompt
        assert "y" * (COMPETITOR_CONTENT_LIMIT + 1) not in prompt

    def test_discovery_prompt(self) -> None:
        prompt = SitePromptBuilder().build_discovery_prompt(
            "example.com", "z" * (DISCOVERY_CONTENT_LIMIT + 1), "Precision parts"
        )
        assert prompt.startswith(DISCOVERY_MARKER)
        assert "Website: example.com" in prompt
        assert "Description: Precision parts" in prompt
        assert "z" * (DISCOVERY_CONTENT_LIMIT + 1) not in prompt
