"""Application services for PlanBook.

Services here coordinate domain services with a storage backend.
"""

from planbook.application.services.document_store import DocumentStore
from planbook.application.services.group_service import GroupService
from planbook.application.services.resolution_engine import Resolution, ResolutionEngine

__all__ = [
    "DocumentStore",
    "GroupService",
    "Resolution",
    "ResolutionEngine",
]
