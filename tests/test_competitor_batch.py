"""
tests/test_competitor_batch.py

Tests for the bounded competitor fan-out.

Coverage
--------
- Suggestion ranking by confidence
- Group size bound on concurrent workers
- Inline outer timeout keeps partial records
- Worker failures isolated to their own domain
- Enrichment progress reporting
"""

from __future__ import annotations

import threading
import time

from app.config import AuditPipelineSettings
from app.domain.audit_job import CompetitorProgressStatus, SuggestedCompetitor
from app.services.competitor_batch import (
    CompetitorBatchScheduler,
    chunk,
    early_findings,
    rank_suggestions,
)
from fakes import make_record


class FakeAnalyzer:
    """
    Returns a record per domain after `delay` seconds, tracking concurrency.
    Domains in `failing` return None; domains in `raising` raise.
    """

    def __init__(self, *, delay: float = 0.05, delays=None, failing=(), raising=()) -> None:
        self.delay = delay
        self.delays = delays or {}
        self.failing = set(failing)
        self.raising = set(raising)
        self.calls: list[str] = []
        self.max_active = 0
        self._active = 0
        self._lock = threading.Lock()

    def analyze(self, domain: str):
        with self._lock:
            self.calls.append(domain)
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            time.sleep(self.delays.get(domain, self.delay))
            if domain in self.raising:
                raise RuntimeError(f"worker crashed on {domain}")
            if domain in self.failing:
                return None
            return make_record(
                domain,
                55,
                strengths=[f"{domain} strength"],
                weaknesses=[f"{domain} weakness"],
            )
        finally:
            with self._lock:
                self._active -= 1


def _scheduler(analyzer: FakeAnalyzer, **overrides) -> CompetitorBatchScheduler:
    settings = {
        "max_competitors": 5,
        "competitor_group_size": 3,
        "competitor_batch_timeout_seconds": 10.0,
        **overrides,
    }
    return CompetitorBatchScheduler(analyzer=analyzer, settings=AuditPipelineSettings(**settings))


class TestHelpers:
    def test_rank_is_stable_by_confidence(self) -> None:
        suggestions = [
            SuggestedCompetitor(domain="low.com", confidence="low"),
            SuggestedCompetitor(domain="med1.com", confidence="medium"),
            SuggestedCompetitor(domain="high.com", confidence="high"),
            SuggestedCompetitor(domain="med2.com", confidence="medium"),
        ]
        assert rank_suggestions(suggestions, 3) == ["high.com", "med1.com", "med2.com"]

    def test_chunk(self) -> None:
        assert chunk(["a", "b", "c", "d", "e"], 3) == [["a", "b", "c"], ["d", "e"]]
        assert chunk([], 3) == []

    def test_early_findings(self) -> None:
        record = make_record("a.com", strengths=["s1", "s2"], weaknesses=["w1"])
        assert early_findings(record) == ["Strength: s1", "Gap: w1"]
        assert early_findings(make_record("b.com")) == []


class TestInlineBatch:
    def test_never_exceeds_group_size(self) -> None:
        analyzer = FakeAnalyzer(delay=0.1)
        outcome = _scheduler(analyzer).run_inline(["a.com", "b.com", "c.com", "d.com", "e.com"])

        assert analyzer.max_active <= 3
        assert len(outcome.records) == 5
        assert outcome.timed_out is False
        assert set(analyzer.calls[:3]) == {"a.com", "b.com", "c.com"}
        assert set(analyzer.calls[3:]) == {"d.com", "e.com"}

    def test_truncates_to_max_competitors(self) -> None:
        analyzer = FakeAnalyzer(delay=0)
        outcome = _scheduler(analyzer, max_competitors=2).run_inline(["a.com", "b.com", "c.com"])
        assert outcome.requested == ["a.com", "b.com"]
        assert len(outcome.records) == 2

    def test_outer_timeout_keeps_partial_records(self) -> None:
        analyzer = FakeAnalyzer(delay=0.0, delays={"slow.com": 1.5})
        outcome = _scheduler(
            analyzer,
            competitor_group_size=1,
            competitor_batch_timeout_seconds=0.5,
        ).run_inline(["fast.com", "slow.com", "never.com"])

        assert outcome.timed_out is True
        assert [record.domain for record in outcome.records] == ["fast.com"]
        assert outcome.requested == ["fast.com", "slow.com", "never.com"]

    def test_failures_are_isolated(self) -> None:
        analyzer = FakeAnalyzer(delay=0, failing={"gone.com"}, raising={"crash.com"})
        outcome = _scheduler(analyzer).run_inline(["a.com", "gone.com", "crash.com", "b.com"])

        assert sorted(record.domain for record in outcome.records) == ["a.com", "b.com"]
        assert outcome.timed_out is False

    def test_all_failed_is_empty_not_error(self) -> None:
        analyzer = FakeAnalyzer(delay=0, failing={"a.com", "b.com"})
        outcome = _scheduler(analyzer).run_inline(["a.com", "b.com"])
        assert outcome.records == []
        assert outcome.timed_out is False

    def test_empty_input(self) -> None:
        outcome = _scheduler(FakeAnalyzer()).run_inline([])
        assert outcome.requested == []
        assert outcome.records == []


class TestEnrichmentBatch:
    def test_reports_progress_per_group(self) -> None:
        analyzer = FakeAnalyzer(delay=0, failing={"d.com"})
        reports = []

        outcome = _scheduler(analyzer).run_enrichment(
            ["a.com", "b.com", "c.com", "d.com"],
            on_progress=lambda progress, pct, message: reports.append((progress, pct, message)),
        )

        assert [message for _, _, message in reports] == [
            "Analyzing a.com, b.com, c.com...",
            "Analyzed 3 of 4 competitors...",
            "Analyzing d.com...",
            "Analyzed 3 of 4 competitors...",
        ]
        assert [pct for _, pct, _ in reports] == [0, 75, 75, 100]

        first_progress = reports[0][0]
        assert [entry.status for entry in first_progress.competitors] == [
            CompetitorProgressStatus.ANALYZING,
            CompetitorProgressStatus.ANALYZING,
            CompetitorProgressStatus.ANALYZING,
            CompetitorProgressStatus.PENDING,
        ]

        final = reports[-1][0]
        assert final.total == 4
        assert final.completed == 3
        assert final.competitors[0].status == CompetitorProgressStatus.COMPLETED
        assert final.competitors[0].preliminary_score == 55
        assert final.competitors[0].early_findings == ["Strength: a.com strength", "Gap: a.com weakness"]
        assert final.competitors[3].status == CompetitorProgressStatus.ERROR
        assert len(outcome.records) == 3

    def test_runs_without_callback(self) -> None:
        outcome = _scheduler(FakeAnalyzer(delay=0)).run_enrichment(["a.com"])
        assert [record.domain for record in outcome.records] == ["a.com"]
