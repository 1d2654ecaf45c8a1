"""
app/schemas package marker.
"""

from app.schemas.audit_jobs import (
    AuditAcceptedResponse,
    AuditCreateRequest,
    AuditEnrichmentRequest,
    AuditEnrichmentResponse,
    AuditJobSnapshot,
    AuditPaidResponse,
    AuditStatusResponse,
)

__all__ = [
    "AuditAcceptedResponse",
    "AuditCreateRequest",
    "AuditEnrichmentRequest",
    "AuditEnrichmentResponse",
    "AuditJobSnapshot",
    "AuditPaidResponse",
    "AuditStatusResponse",
]
