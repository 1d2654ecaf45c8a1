"""
app/api/routers package marker.
"""

from app.api.routers.audit_jobs import router as audit_jobs_router

__all__ = [
    "audit_jobs_router",
]
