"""
Pure helpers that merge competitor records and recompute comparison aggregates.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from urllib.parse import urlparse

from app.domain.audit_job import CompetitorComparison, CompetitorRecord

TIMED_OUT_GAP = "Competitor analysis timed out - try refreshing in 30 seconds"
ALL_FAILED_GAP = "Competitor analysis failed - competitors may be blocking access"

SIMILARITY_BAND = 10
FAR_BEHIND_MARGIN = 15


def competitor_domain(value: str) -> str:
    """
    Identity key of a competitor: lower-cased host without scheme, `www.` or path.
    """

    candidate = value.strip().lower()
    if not candidate:
        return ""
    if "://" not in candidate:
        candidate = f"http://{candidate}"
    host = urlparse(candidate).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host


def merge_domain_lists(*groups: Iterable[str]) -> list[str]:
    """
    Order-preserving union of domain lists, compared by identity key.
    """

    merged: list[str] = []
    seen: set[str] = set()
    for group in groups:
        for value in group:
            key = competitor_domain(value)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(value)
    return merged


def merge_competitor_records(
    existing: Sequence[CompetitorRecord],
    incoming: Sequence[CompetitorRecord],
) -> list[CompetitorRecord]:
    """
    Union by domain. A newer record replaces the older one in place; records
    for other domains are kept and new domains are appended.
    """

    merged: list[CompetitorRecord] = []
    index_by_domain: dict[str, int] = {}
    for record in [*existing, *incoming]:
        key = competitor_domain(record.domain) or record.domain
        if key in index_by_domain:
            merged[index_by_domain[key]] = record
        else:
            index_by_domain[key] = len(merged)
            merged.append(record)
    return merged


def average_score(records: Sequence[CompetitorRecord]) -> int:
    if not records:
        return 0
    return round(sum(record.score for record in records) / len(records))


def build_gaps(your_score: int, records: Sequence[CompetitorRecord]) -> list[str]:
    if not records:
        return []

    avg = average_score(records)
    if your_score > avg + SIMILARITY_BAND:
        gaps = [
            "Your messaging is more differentiated than most competitors",
            "You have unique proof points competitors lack",
        ]
    elif your_score < avg - SIMILARITY_BAND:
        gaps = [
            "Competitors have clearer differentiation than you",
            "Look for proof points you can surface to stand out",
        ]
    else:
        gaps = [
            "Your messaging is similar to competitors - room to differentiate",
            "Focus on unique proof points only you can claim",
        ]

    best = max(records, key=lambda record: record.score)
    worst = min(records, key=lambda record: record.score)
    if best.score > your_score:
        gaps.append(f"{best.url} has stronger differentiation - worth studying")
    if worst.score < your_score - FAR_BEHIND_MARGIN:
        gaps.append(f"You're ahead of {worst.url} in messaging clarity")
    return gaps


def build_comparison(
    *,
    your_score: int,
    requested: Sequence[str],
    records: Sequence[CompetitorRecord],
    previous: CompetitorComparison | None = None,
    timed_out: bool = False,
) -> CompetitorComparison:
    """
    Merge a batch into the previous comparison and recompute aggregates from
    the full merged record set.
    """

    previous_records = previous.detailed_scores if previous is not None else []
    previous_domains = previous.competitors if previous is not None else []

    merged = merge_competitor_records(previous_records, records)
    gaps = build_gaps(your_score, merged)
    if timed_out:
        gaps.append(TIMED_OUT_GAP)
    elif not merged and requested:
        gaps = [ALL_FAILED_GAP]

    return CompetitorComparison(
        competitors=merge_domain_lists(previous_domains, requested),
        your_score=your_score,
        average_score=average_score(merged),
        gaps=gaps,
        detailed_scores=merged,
        timed_out=timed_out,
    )

