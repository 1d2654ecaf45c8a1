"""
Orchestrator service for audit job creation, poll-triggered dispatch and
enrichment requests.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol
from urllib.parse import urlparse

from fastapi import BackgroundTasks

from app.config import AuditPipelineSettings, get_audit_pipeline_settings
from app.domain.audit_job import AuditJob, AuditJobStatus
from app.logging_utils import log_event
from app.services.audit_pipeline import AuditPipeline
from app.services.competitor_comparison import merge_domain_lists
from app.services.job_state_machine import (
    MAX_SOCIAL_URLS_PER_REQUEST,
    AuditJobNotFoundError,
    AuditJobStateMachine,
    supplement_competitors,
)
from app.storage.factory import get_job_store, get_retention_policy

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
HOST_LABEL_PATTERN = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$", re.IGNORECASE)


class AuditTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class InlineTaskExecutor:
    """
    Runs tasks immediately in the caller's thread. Used by the CLI.
    """

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        task(*args, **kwargs)


class InvalidAuditRequestError(ValueError):
    """
    Raised for user input that cannot start or enrich an audit. The message
    is safe to show to the user.
    """


@dataclass(frozen=True)
class EnrichmentRequestResult:
    job: AuditJob
    message: str
    competitors: list[str]


def normalize_target_url(raw_url: str | None) -> str:
    """
    Trim, prefix `https://` when no scheme is given and check the host.
    """

    if not raw_url or not raw_url.strip():
        raise InvalidAuditRequestError("Please provide a website URL.")
    candidate = raw_url.strip()
    if not candidate.lower().startswith(("http://", "https://")):
        candidate = f"https://{candidate}"

    try:
        host = urlparse(candidate).hostname or ""
    except ValueError as exc:
        raise InvalidAuditRequestError("That doesn't look like a valid URL.") from exc

    labels = host.split(".")
    if len(labels) < 2 or not all(HOST_LABEL_PATTERN.match(label) for label in labels):
        raise InvalidAuditRequestError("That doesn't look like a valid URL.")
    return candidate


def normalize_email(raw_email: str | None) -> str | None:
    if raw_email is None or not raw_email.strip():
        return None
    email = raw_email.strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidAuditRequestError("Please provide a valid email address.")
    return email


def _clean_strings(values: Sequence[str] | None) -> list[str]:
    if not values:
        return []
    return [value.strip() for value in values if isinstance(value, str) and value.strip()]


class AuditOrchestratorService:
    """
    Coordinates job creation, the first-poll pipeline start and enrichment
    dispatch. All job mutation goes through the state machine.
    """

    def __init__(
        self,
        *,
        state_machine: AuditJobStateMachine | None = None,
        pipeline: AuditPipeline | None = None,
        settings: AuditPipelineSettings | None = None,
    ) -> None:
        self._state_machine = state_machine or AuditJobStateMachine(
            store=get_job_store(),
            retention=get_retention_policy(),
        )
        self._pipeline = pipeline or AuditPipeline(state_machine=self._state_machine)
        self._settings = settings or get_audit_pipeline_settings()

    @property
    def state_machine(self) -> AuditJobStateMachine:
        return self._state_machine

    def create_audit(self, *, url: str | None, email: str | None = None) -> AuditJob:
        normalized_url = normalize_target_url(url)
        normalized_email = normalize_email(email)
        return self._state_machine.create(url=normalized_url, email=normalized_email)

    def get_job_status(self, *, job_id: str, executor: AuditTaskExecutor) -> AuditJob:
        """
        Return the job snapshot, starting the pipeline on the first poll that
        observes `pending`. The claim lands before the task is scheduled.
        """

        job = self._state_machine.require(job_id)
        if job.status != AuditJobStatus.PENDING:
            return job

        if self._state_machine.claim_for_crawl(job_id):
            log_event(logger, logging.INFO, "audit_pipeline_scheduled", job_id=job_id)
            try:
                executor.submit(self._pipeline.run, job_id)
            except Exception:
                logger.exception("Failed to schedule audit pipeline for job %s", job_id)
                self._state_machine.fail(job_id, "Analysis failed. Please try again.")
                raise

        return self._state_machine.require(job_id)

    def request_enrichment(
        self,
        *,
        job_id: str,
        executor: AuditTaskExecutor,
        competitors: Sequence[str] | None = None,
        social_urls: Sequence[str] | None = None,
        email: str | None = None,
    ) -> EnrichmentRequestResult:
        job = self._state_machine.require(job_id)
        normalized_email = normalize_email(email)
        socials = list(dict.fromkeys(_clean_strings(social_urls)))[:MAX_SOCIAL_URLS_PER_REQUEST]

        requested = merge_domain_lists(_clean_strings(competitors))
        batch: list[str] = []
        if requested:
            batch = supplement_competitors(requested, job, limit=self._settings.max_competitors)

        updated = self._state_machine.start_enrichment(
            job_id,
            competitors=batch,
            social_urls=socials,
            email=normalized_email,
        )

        if batch:
            log_event(logger, logging.INFO, "enrichment_scheduled", job_id=job_id, competitors=batch)
            try:
                executor.submit(self._pipeline.run_enrichment, job_id, batch)
            except Exception:
                logger.exception("Failed to schedule enrichment for job %s", job_id)
                self._state_machine.fail_enrichment(job_id, "Could not analyze competitors")
                raise
            plural = "s" if len(batch) != 1 else ""
            message = f"Analyzing {len(batch)} competitor{plural}..."
        else:
            message = "Analysis updated"

        return EnrichmentRequestResult(job=updated, message=message, competitors=batch)

    def mark_paid(self, *, job_id: str) -> AuditJob:
        job = self._state_machine.mark_paid(job_id)
        if job is None:
            raise AuditJobNotFoundError(f"Audit job not found: {job_id}")
        log_event(logger, logging.INFO, "audit_job_paid", job_id=job_id)
        return job


@lru_cache(maxsize=1)
def get_audit_orchestrator_service() -> AuditOrchestratorService:
    return AuditOrchestratorService()
