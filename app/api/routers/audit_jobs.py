"""
Audit job endpoints: create, poll, enrich and mark paid.
"""

from __future__ import annotations

import secrets

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status

from app.api.dependencies import get_payment_settings_dependency
from app.config import PaymentSettings
from app.schemas.audit_jobs import (
    AuditAcceptedResponse,
    AuditCreateRequest,
    AuditEnrichmentRequest,
    AuditEnrichmentResponse,
    AuditJobSnapshot,
    AuditPaidResponse,
    AuditStatusResponse,
)
from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    FastAPIBackgroundTaskExecutor,
    InvalidAuditRequestError,
    get_audit_orchestrator_service,
)
from app.services.job_state_machine import AuditJobNotFoundError

router = APIRouter(prefix="/api/analyze", tags=["audit-jobs"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Analysis not found",
    )


@router.post("", response_model=AuditAcceptedResponse)
def create_audit(
    payload: AuditCreateRequest,
    orchestrator: AuditOrchestratorService = Depends(get_audit_orchestrator_service),
) -> AuditAcceptedResponse:
    try:
        job = orchestrator.create_audit(url=payload.url, email=payload.email)
    except InvalidAuditRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return AuditAcceptedResponse(
        analysis_id=job.id,
        status=job.status,
        analysis=AuditJobSnapshot.from_job(job),
    )


@router.get("/{analysis_id}", response_model=AuditStatusResponse)
def get_audit_status(
    analysis_id: str,
    background_tasks: BackgroundTasks,
    orchestrator: AuditOrchestratorService = Depends(get_audit_orchestrator_service),
) -> AuditStatusResponse:
    try:
        job = orchestrator.get_job_status(
            job_id=analysis_id,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
        )
    except AuditJobNotFoundError as exc:
        raise _not_found() from exc

    return AuditStatusResponse(analysis=AuditJobSnapshot.from_job(job))


@router.patch("/{analysis_id}", response_model=AuditEnrichmentResponse)
def enrich_audit(
    analysis_id: str,
    payload: AuditEnrichmentRequest,
    background_tasks: BackgroundTasks,
    orchestrator: AuditOrchestratorService = Depends(get_audit_orchestrator_service),
) -> AuditEnrichmentResponse:
    try:
        result = orchestrator.request_enrichment(
            job_id=analysis_id,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            competitors=payload.competitors,
            social_urls=payload.social_urls,
            email=payload.email,
        )
    except AuditJobNotFoundError as exc:
        raise _not_found() from exc
    except InvalidAuditRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return AuditEnrichmentResponse(
        message=result.message,
        enrichment_status=result.job.enrichment_status,
        competitors=result.competitors,
    )


@router.post("/{analysis_id}/paid", response_model=AuditPaidResponse)
def mark_audit_paid(
    analysis_id: str,
    x_payment_token: str | None = Header(default=None),
    payment_settings: PaymentSettings = Depends(get_payment_settings_dependency),
    orchestrator: AuditOrchestratorService = Depends(get_audit_orchestrator_service),
) -> AuditPaidResponse:
    expected = payment_settings.confirmation_token
    if expected and not secrets.compare_digest(x_payment_token or "", expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid payment token.")

    try:
        job = orchestrator.mark_paid(job_id=analysis_id)
    except AuditJobNotFoundError as exc:
        raise _not_found() from exc

    return AuditPaidResponse(analysis_id=job.id, paid=job.paid, paid_at=job.paid_at)
