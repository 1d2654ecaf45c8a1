"""
tests/test_competitor_comparison.py

Pure-function tests for competitor record merging and comparison aggregates.
"""

from __future__ import annotations

from app.domain.audit_job import CompetitorComparison
from app.services.competitor_comparison import (
    ALL_FAILED_GAP,
    TIMED_OUT_GAP,
    average_score,
    build_comparison,
    build_gaps,
    competitor_domain,
    merge_competitor_records,
    merge_domain_lists,
)
from fakes import make_record


class TestDomainIdentity:
    def test_strips_scheme_www_and_path(self) -> None:
        assert competitor_domain("https://www.Acme.com/pricing") == "acme.com"
        assert competitor_domain("acme.com") == "acme.com"
        assert competitor_domain("   ") == ""

    def test_merge_domain_lists_keeps_first_spelling(self) -> None:
        merged = merge_domain_lists(["acme.com", "beta.io"], ["https://www.acme.com", "gamma.dev", ""])
        assert merged == ["acme.com", "beta.io", "gamma.dev"]


class TestMergeRecords:
    def test_newer_record_replaces_in_place(self) -> None:
        existing = [make_record("a.com", 40), make_record("b.com", 50)]
        incoming = [make_record("www.a.com", 80, source="heuristic"), make_record("c.com", 70)]

        merged = merge_competitor_records(existing, incoming)

        assert [record.domain for record in merged] == ["www.a.com", "b.com", "c.com"]
        assert merged[0].score == 80
        assert merged[1] == existing[1]

    def test_resubmitting_same_domain_is_idempotent(self) -> None:
        first = merge_competitor_records([], [make_record("a.com", 40)])
        second = merge_competitor_records(first, [make_record("a.com", 45)])
        third = merge_competitor_records(second, [make_record("a.com", 45)])
        assert len(third) == 1
        assert third[0].score == 45


class TestGaps:
    def test_no_records_no_gaps(self) -> None:
        assert build_gaps(50, []) == []
        assert average_score([]) == 0

    def test_ahead_of_competitors(self) -> None:
        gaps = build_gaps(80, [make_record("a.com", 40), make_record("b.com", 50)])
        assert gaps[0] == "Your messaging is more differentiated than most competitors"
        assert "You're ahead of https://a.com in messaging clarity" in gaps

    def test_behind_competitors(self) -> None:
        gaps = build_gaps(40, [make_record("a.com", 70), make_record("b.com", 60)])
        assert gaps[0] == "Competitors have clearer differentiation than you"
        assert "https://a.com has stronger differentiation - worth studying" in gaps

    def test_similar_band(self) -> None:
        gaps = build_gaps(55, [make_record("a.com", 50), make_record("b.com", 58)])
        assert gaps[0] == "Your messaging is similar to competitors - room to differentiate"
        assert gaps[-1] == "https://b.com has stronger differentiation - worth studying"


class TestBuildComparison:
    def test_timeout_flag_adds_gap_line(self) -> None:
        comparison = build_comparison(
            your_score=60,
            requested=["a.com", "b.com"],
            records=[make_record("a.com", 60)],
            timed_out=True,
        )
        assert comparison.timed_out is True
        assert comparison.gaps[-1] == TIMED_OUT_GAP
        assert comparison.competitors == ["a.com", "b.com"]

    def test_all_failed_gap(self) -> None:
        comparison = build_comparison(your_score=60, requested=["a.com"], records=[])
        assert comparison.gaps == [ALL_FAILED_GAP]
        assert comparison.detailed_scores == []
        assert comparison.average_score == 0

    def test_nothing_requested_is_empty(self) -> None:
        comparison = build_comparison(your_score=60, requested=[], records=[])
        assert comparison.competitors == []
        assert comparison.gaps == []

    def test_aggregates_recomputed_over_merged_set(self) -> None:
        previous = CompetitorComparison(
            competitors=["a.com"],
            your_score=60,
            average_score=40,
            detailed_scores=[make_record("a.com", 40)],
        )
        comparison = build_comparison(
            your_score=60,
            requested=["b.com"],
            records=[make_record("b.com", 80)],
            previous=previous,
        )
        assert comparison.average_score == 60
        assert [record.domain for record in comparison.detailed_scores] == ["a.com", "b.com"]
        assert comparison.competitors == ["a.com", "b.com"]
