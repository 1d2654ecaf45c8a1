"""
app/services package marker.
"""

from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    InvalidAuditRequestError,
    get_audit_orchestrator_service,
)
from app.services.audit_pipeline import AuditPipeline
from app.services.job_state_machine import AuditJobNotFoundError, AuditJobStateMachine

__all__ = [
    "AuditJobNotFoundError",
    "AuditJobStateMachine",
    "AuditOrchestratorService",
    "AuditPipeline",
    "InvalidAuditRequestError",
    "get_audit_orchestrator_service",
]
