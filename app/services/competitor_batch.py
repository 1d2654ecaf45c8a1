"""
Bounded fan-out of competitor workers.

Domains run in groups; groups run one after another and the workers of a
group run concurrently, so at most `group_size` competitor sites are
fetched at once.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from app.config import AuditPipelineSettings, get_audit_pipeline_settings
from app.domain.audit_job import (
    CompetitorProgress,
    CompetitorProgressEntry,
    CompetitorProgressStatus,
    CompetitorRecord,
    SuggestedCompetitor,
)
from app.logging_utils import log_event
from app.services.competitor_analysis import CompetitorAnalyzer
from app.services.timeouts import GAVE_UP, run_with_timeout

logger = logging.getLogger(__name__)

CONFIDENCE_RANK = {"high": 0, "medium": 1, "low": 2}

BatchProgressCallback = Callable[[CompetitorProgress, int, str], None]


@dataclass
class BatchOutcome:
    requested: list[str]
    records: list[CompetitorRecord] = field(default_factory=list)
    timed_out: bool = False


def rank_suggestions(suggestions: Sequence[SuggestedCompetitor], limit: int) -> list[str]:
    """
    Domains of AI suggestions ordered high > medium > low, truncated to `limit`.
    The sort is stable, so equal confidence keeps the suggested order.
    """

    ordered = sorted(suggestions, key=lambda item: CONFIDENCE_RANK.get(item.confidence, 1))
    return [item.domain for item in ordered][:limit]


def chunk(domains: Sequence[str], size: int) -> list[list[str]]:
    return [list(domains[start : start + size]) for start in range(0, len(domains), size)]


def early_findings(record: CompetitorRecord) -> list[str]:
    findings: list[str] = []
    if record.strengths:
        findings.append(f"Strength: {record.strengths[0]}")
    if record.weaknesses:
        findings.append(f"Gap: {record.weaknesses[0]}")
    return findings[:2]


class CompetitorBatchScheduler:
    def __init__(
        self,
        *,
        analyzer: CompetitorAnalyzer | None = None,
        settings: AuditPipelineSettings | None = None,
    ) -> None:
        self._analyzer = analyzer or CompetitorAnalyzer()
        self._settings = settings or get_audit_pipeline_settings()

    @property
    def group_size(self) -> int:
        return max(1, self._settings.competitor_group_size)

    def run_inline(self, domains: Sequence[str]) -> BatchOutcome:
        """
        Analyze `domains` under one outer deadline.

        On timeout the records gathered so far are returned with
        `timed_out=True`; groups that have not started are skipped.
        """

        requested = list(domains)[: self._settings.max_competitors]
        outcome = BatchOutcome(requested=requested)
        if not requested:
            return outcome

        collected: list[CompetitorRecord] = []
        lock = threading.Lock()
        stop = threading.Event()

        def run_groups() -> None:
            for group in chunk(requested, self.group_size):
                if stop.is_set():
                    return
                for record in self._run_group(group):
                    if record is not None:
                        with lock:
                            collected.append(record)

        result = run_with_timeout(
            run_groups,
            timeout_seconds=self._settings.competitor_batch_timeout_seconds,
            thread_name_prefix="competitor-batch",
        )
        if result is GAVE_UP:
            stop.set()
            outcome.timed_out = True

        with lock:
            outcome.records = list(collected)

        log_event(
            logger,
            logging.INFO,
            "competitor_batch_finished",
            mode="inline",
            requested=len(requested),
            analyzed=len(outcome.records),
            timed_out=outcome.timed_out,
        )
        return outcome

    def run_enrichment(
        self,
        domains: Sequence[str],
        on_progress: BatchProgressCallback | None = None,
    ) -> BatchOutcome:
        """
        Analyze `domains` with no outer deadline, reporting the live progress
        list before and after every group.
        """

        requested = list(domains)[: self._settings.max_competitors]
        outcome = BatchOutcome(requested=requested)
        total = len(requested)
        entries = [CompetitorProgressEntry(domain=domain) for domain in requested]
        done = 0

        def report(message: str) -> None:
            if on_progress is None:
                return
            progress = CompetitorProgress(
                total=total,
                completed=len(outcome.records),
                competitors=[entry.model_copy() for entry in entries],
            )
            on_progress(progress, round(done / total * 100) if total else 100, message)

        offset = 0
        for group in chunk(requested, self.group_size):
            group_entries = entries[offset : offset + len(group)]
            offset += len(group)
            for entry in group_entries:
                entry.status = CompetitorProgressStatus.ANALYZING
            report(f"Analyzing {', '.join(group)}...")

            for entry, record in zip(group_entries, self._run_group(group)):
                done += 1
                if record is None:
                    entry.status = CompetitorProgressStatus.ERROR
                    continue
                entry.status = CompetitorProgressStatus.COMPLETED
                entry.preliminary_score = record.score
                entry.early_findings = early_findings(record)
                outcome.records.append(record)

            report(f"Analyzed {len(outcome.records)} of {total} competitors...")

        log_event(
            logger,
            logging.INFO,
            "competitor_batch_finished",
            mode="enrichment",
            requested=total,
            analyzed=len(outcome.records),
        )
        return outcome

    def _run_group(self, group: Sequence[str]) -> list[CompetitorRecord | None]:
        with ThreadPoolExecutor(
            max_workers=len(group),
            thread_name_prefix="competitor-worker",
        ) as pool:
            return list(pool.map(self._analyze_one, group))

    def _analyze_one(self, domain: str) -> CompetitorRecord | None:
        try:
            return self._analyzer.analyze(domain)
        except Exception:
            logger.exception("Competitor analysis failed for %s", domain)
            return None
