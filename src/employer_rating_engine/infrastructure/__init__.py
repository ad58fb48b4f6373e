"""Concrete infrastructure implementations."""

from .filesystem import LocalFileSystem
from .repository import CsvAssessmentRepository
from .stores import CsvAuditSink, CsvRatingStore

__all__ = [
    "CsvAssessmentRepository",
    "CsvAuditSink",
    "CsvRatingStore",
    "LocalFileSystem",
]
