"""
app/storage package marker.
"""

from app.storage.base import JobStore, JobStoreUnavailableError, RetentionPolicy
from app.storage.fallback import FallbackJobStore
from app.storage.memory_storage import InMemoryJobStore

__all__ = [
    "FallbackJobStore",
    "InMemoryJobStore",
    "JobStore",
    "JobStoreUnavailableError",
    "RetentionPolicy",
]
