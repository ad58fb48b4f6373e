"""Exports for test fakes."""

from .filesystem import InMemoryFileSystem
from .progress import FakeProgressReporter
from .repository import BlockingAssessmentRepository, InMemoryAssessmentRepository
from .stores import InMemoryAuditSink, InMemoryRatingStore

__all__ = [
    "BlockingAssessmentRepository",
    "FakeProgressReporter",
    "InMemoryAssessmentRepository",
    "InMemoryAuditSink",
    "InMemoryFileSystem",
    "InMemoryRatingStore",
]
