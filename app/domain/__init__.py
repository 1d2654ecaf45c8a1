"""
app/domain package marker.
"""

from app.domain.audit_job import AuditJob, AuditJobStatus, CompetitorRecord, EnrichmentStatus
from app.domain.crawl import CrawledPage, CrawlResult
from app.domain.site_analysis import SiteAnalysis

__all__ = [
    "AuditJob",
    "AuditJobStatus",
    "CompetitorRecord",
    "CrawledPage",
    "CrawlResult",
    "EnrichmentStatus",
    "SiteAnalysis",
]
