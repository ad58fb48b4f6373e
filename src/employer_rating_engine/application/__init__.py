"""Application services: profile management, rating, batch and preview."""

from .audit import AuditEntry, AuditLog
from .batch import BatchHandle, BatchOptions, BatchResult
from .rating import RatingRecorder, StoredRating
from .service import RatingService
from .weighting_profiles import ProfileRef, ProfileRegistry

__all__ = [
    "AuditEntry",
    "AuditLog",
    "BatchHandle",
    "BatchOptions",
    "BatchResult",
    "ProfileRef",
    "ProfileRegistry",
    "RatingRecorder",
    "RatingService",
    "StoredRating",
]
