"""
Rule-based competitor scoring used when the reasoning service is unavailable.

Scores a homepage from commodity-phrase and proof-point pattern counts and
quotes the matched text, so its output has the same shape as the AI path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from app.domain.audit_job import CategoryScores

COMMODITY_WORDS = (
    "leading",
    "innovative",
    "solutions",
    "best-in-class",
    "world-class",
    "cutting-edge",
    "next-generation",
    "state-of-the-art",
    "industry-leading",
    "trusted",
    "proven",
    "reliable",
    "premier",
    "excellence",
    "committed",
)

PROOF_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b\d+\s*\+?\s*(?:years?|customers?|clients?|projects?|companies|users?|teams?|employees?|locations?|offices?)\b",
        r"since\s*(?:19|20)\d{2}",
        r"founded\s*(?:in\s*)?(?:19|20)\d{2}",
        r"established\s*(?:in\s*)?(?:19|20)\d{2}",
        r"\b(?:iso|soc|hipaa|gdpr|pci|nist|cmmc|fedramp)\s*\d*\s*(?:certified|compliant|compliance|approved)?",
        r"\b(?:award[- ]?winning|patent(?:ed)?|guaranteed?|warranty|money.?back|satisfaction)\b",
        r"\d+%\s*(?:faster|better|more|increase|reduction|savings?|improvement|growth|success)",
        r"\$\d+[km]?\s*(?:in\s*)?(?:savings?|revenue|value|roi)",
        r"case\s*stud(?:y|ies)",
        r"\b(?:testimonial|review|rating|rated|stars?)\b",
        r"\b\d+\s*(?:star|review|rating)",
        r"(?:top|best)\s*\d+",
        r"\bInc\.?\s*5000\b",
        r"\bFortune\s*\d+",
        r"\bBBB\s*A\+?",
        r"\b(?:certified|licensed|insured|bonded)\b",
        r"\b(?:member|partner)\s*(?:of|with)\b",
        r"(?:locally|family)\s*owned",
        r"free\s*(?:consultation|estimate|quote|assessment)",
        r"same[- ]?day|next[- ]?day|24[/\-]?7",
    )
)

BASE_SCORE = 55
GENERIC_PENALTY = 2
MAX_GENERIC_PENALTY = 10
PROOF_BONUS = 5
MAX_PROOF_BONUS = 25
MIN_SCORE = 20
MAX_SCORE = 85
MAX_QUOTES = 3
MATCHES_PER_PATTERN = 2
CONTEXT_CHARS = 30

WEAKNESS_FLOOR_SCORE = 70


@dataclass
class CompetitorAssessment:
    """
    Scored view of one competitor homepage, shared by the AI and heuristic paths.
    """

    score: int
    category_scores: CategoryScores
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)


def floor_weaknesses(score: int, threshold: int = WEAKNESS_FLOOR_SCORE) -> list[str]:
    """
    Weaknesses to report when none survived for a site scoring below `threshold`.
    """

    if score >= threshold:
        return []
    if score < 40:
        return ["Weak differentiation from competitors", "Missing specific proof points"]
    if score < 60:
        return ["Limited use of specific claims and evidence"]
    return ["Could strengthen messaging with more specific proof"]


def category_scores_from_score(score: int, *, proof_count: int = 0, generic_count: int = 0) -> CategoryScores:
    base = min(10, max(0, round(score / 10)))
    return CategoryScores(
        first_impression=base,
        differentiation=max(0, base - 1) if generic_count > 2 else base,
        customer_clarity=base,
        story_structure=base,
        trust_signals=min(10, base + 1) if proof_count > 2 else base,
        button_clarity=base,
    )


def _generic_quotes(content: str) -> tuple[int, list[str]]:
    lowered = content.lower()
    count = 0
    quotes: list[str] = []
    for word in COMMODITY_WORDS:
        index = lowered.find(word)
        if index < 0:
            continue
        count += 1
        if len(quotes) < MAX_QUOTES:
            start = max(0, index - CONTEXT_CHARS)
            end = min(len(content), index + len(word) + CONTEXT_CHARS)
            context = " ".join(content[start:end].split())
            quotes.append(f'"...{context}..."')
    return count, quotes


def _proof_quotes(content: str) -> list[str]:
    quotes: list[str] = []
    for pattern in PROOF_PATTERNS:
        matches = [match.group(0) for match in pattern.finditer(content)][:MATCHES_PER_PATTERN]
        for match in matches:
            if len(quotes) >= MAX_QUOTES:
                return quotes
            if not any(match in quote for quote in quotes):
                quotes.append(f'"{match}"')
    return quotes


def score_competitor_heuristically(
    content: str,
    *,
    good_score_threshold: int = WEAKNESS_FLOOR_SCORE,
) -> CompetitorAssessment:
    generic_count, generic_quotes = _generic_quotes(content)
    proof_quotes = _proof_quotes(content)

    penalty = min(MAX_GENERIC_PENALTY, generic_count * GENERIC_PENALTY)
    bonus = min(MAX_PROOF_BONUS, len(proof_quotes) * PROOF_BONUS)
    score = max(MIN_SCORE, min(MAX_SCORE, BASE_SCORE - penalty + bonus))

    strengths = [f"Uses specific proof: {', '.join(proof_quotes)}"] if proof_quotes else []
    weaknesses = (
        [f"Relies on generic language: {', '.join(generic_quotes[:2])}"] if generic_quotes else []
    )
    if not weaknesses:
        weaknesses = floor_weaknesses(score, good_score_threshold)

    return CompetitorAssessment(
        score=score,
        category_scores=category_scores_from_score(
            score,
            proof_count=len(proof_quotes),
            generic_count=generic_count,
        ),
        strengths=strengths,
        weaknesses=weaknesses,
    )
