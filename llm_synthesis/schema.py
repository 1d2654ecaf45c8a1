"""Structured output contracts for the reasoning service.

Models accept the camelCase keys the prompts ask for, tolerate missing or
out-of-range values and clamp them into range instead of rejecting the
whole reply.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_SEVERITIES = ("critical", "warning", "info")
_CONFIDENCES = ("high", "medium", "low")


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class _OutputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CategoryScoresOutput(_OutputModel):
    """Six 0-10 category scores. Missing or non-numeric values become 5."""

    first_impression: int = 5
    differentiation: int = 5
    customer_clarity: int = 5
    story_structure: int = 5
    trust_signals: int = 5
    button_clarity: int = 5

    @field_validator("*", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        number = _to_number(value)
        if number is None:
            return 5
        return round(_clamp(number, 0, 10))

    def mean(self) -> float:
        values = list(self.model_dump().values())
        return sum(values) / len(values)


class FindingOutput(_OutputModel):
    phrase: str = ""
    problem: str = ""
    rewrite: str = ""
    location: str = ""
    page_url: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value)


class TopIssueOutput(_OutputModel):
    title: str = "Issue detected"
    description: str = "Generic messaging detected"
    severity: str = "warning"
    findings: List[FindingOutput] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return _as_text(value) or "Issue detected"

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        return _as_text(value) or "Generic messaging detected"

    @field_validator("severity", mode="before")
    @classmethod
    def _severity(cls, value: Any) -> str:
        text = _as_text(value).lower()
        return text if text in _SEVERITIES else "warning"

    @field_validator("findings", mode="before")
    @classmethod
    def _findings(cls, value: Any) -> List[Any]:
        return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


class PageIssueOutput(_OutputModel):
    phrase: str = ""
    problem: str = ""
    rewrite: str = ""
    location: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value)


class PageAnalysisOutput(_OutputModel):
    url: str = ""
    title: str = "Page"
    score: int = 70
    issues: List[PageIssueOutput] = Field(default_factory=list)

    @field_validator("url", mode="before")
    @classmethod
    def _url(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        return _as_text(value) or "Page"

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> int:
        number = _to_number(value)
        if not number:
            return 70
        return round(_clamp(number, 0, 100))

    @field_validator("issues", mode="before")
    @classmethod
    def _issues(cls, value: Any) -> List[Any]:
        return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


class ProofPointOutput(_OutputModel):
    quote: str = ""
    source: str = ""
    suggested_use: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value)


class VoiceAnalysisOutput(_OutputModel):
    current_tone: str = "Corporate/generic"
    authentic_voice: str = "Unable to determine"
    examples: List[str] = Field(default_factory=list)

    @field_validator("current_tone", mode="before")
    @classmethod
    def _tone(cls, value: Any) -> str:
        return _as_text(value) or "Corporate/generic"

    @field_validator("authentic_voice", mode="before")
    @classmethod
    def _voice(cls, value: Any) -> str:
        return _as_text(value) or "Unable to determine"

    @field_validator("examples", mode="before")
    @classmethod
    def _examples(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [_as_text(item) for item in value if _as_text(item)]


class SuggestedCompetitorOutput(_OutputModel):
    domain: str
    confidence: str = "medium"
    reason: str = ""

    @field_validator("domain", "reason", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> str:
        text = _as_text(value).lower()
        return text if text in _CONFIDENCES else "medium"


class SiteAnalysisOutput(_OutputModel):
    """Reply contract of the site-analysis prompt."""

    differentiation_score: int = 50
    category_scores: Optional[CategoryScoresOutput] = None
    top_issues: List[TopIssueOutput] = Field(default_factory=list)
    page_analysis: List[PageAnalysisOutput] = Field(default_factory=list)
    proof_points: List[ProofPointOutput] = Field(default_factory=list)
    voice_analysis: VoiceAnalysisOutput = Field(default_factory=VoiceAnalysisOutput)
    suggested_competitors: List[SuggestedCompetitorOutput] = Field(default_factory=list)

    @field_validator("differentiation_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> int:
        number = _to_number(value)
        if not number:
            return 50
        return round(_clamp(number, 0, 100))

    @field_validator("category_scores", mode="before")
    @classmethod
    def _category_scores(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @field_validator("voice_analysis", mode="before")
    @classmethod
    def _voice(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("top_issues", "page_analysis", "proof_points", mode="before")
    @classmethod
    def _objects(cls, value: Any) -> List[Any]:
        return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []

    @field_validator("top_issues")
    @classmethod
    def _limit_issues(cls, value: List[TopIssueOutput]) -> List[TopIssueOutput]:
        return value[:10]

    @field_validator("suggested_competitors", mode="before")
    @classmethod
    def _suggestions(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        items = [item for item in value if isinstance(item, dict) and _as_text(item.get("domain"))]
        return items[:5]


class CompetitorDeepOutput(_OutputModel):
    """Reply contract of the competitor deep-analysis prompt."""

    category_scores: CategoryScoresOutput = Field(default_factory=CategoryScoresOutput)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)

    @field_validator("category_scores", mode="before")
    @classmethod
    def _category_scores(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("strengths", "weaknesses", mode="before")
    @classmethod
    def _statements(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [_as_text(item) for item in value if isinstance(item, str) and _as_text(item)][:3]

    def overall_score(self) -> int:
        return round(self.category_scores.mean() * 10)
