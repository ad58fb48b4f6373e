"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that the rating engine depends on,
enabling isolated unit testing with in-memory implementations.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import pandas as pd

    from .application.audit import AuditEntry
    from .application.rating import StoredRating
    from .domain.assessments import ComplianceAssessment, ExpertiseAssessment


@runtime_checkable
class FileSystem(Protocol):
    """Abstract filesystem for reading/writing engine data."""

    def read_csv(self, path: Path) -> pd.DataFrame:
        """Read CSV file into DataFrame."""
        ...

    def write_csv(self, df: pd.DataFrame, path: Path) -> None:
        """Write DataFrame to CSV file."""
        ...

    def append_csv(self, df: pd.DataFrame, path: Path) -> None:
        """Append DataFrame rows to CSV file (create if missing)."""
        ...

    def read_json(self, path: Path) -> dict[str, object]:
        """Read JSON file."""
        ...

    def write_json(self, data: Mapping[str, object], path: Path) -> None:
        """Write JSON file."""
        ...

    def read_text(self, path: Path) -> str:
        """Read text file."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if path exists."""
        ...


@runtime_checkable
class AssessmentRepository(Protocol):
    """Read-only access to employers, assessments and organiser reliability."""

    def employer_exists(self, employer_id: str) -> bool:
        """Return True when the employer is known."""
        ...

    def list_employer_ids(self) -> list[str]:
        """Return every known employer ID in a stable order."""
        ...

    def compliance_assessments(
        self, employer_id: str, as_of: datetime
    ) -> Sequence[ComplianceAssessment]:
        """Return compliance assessments dated on or before ``as_of``."""
        ...

    def expertise_assessments(
        self, employer_id: str, as_of: datetime
    ) -> Sequence[ExpertiseAssessment]:
        """Return expertise assessments dated on or before ``as_of``."""
        ...

    def organiser_multipliers(self) -> Mapping[str, float]:
        """Return assessor ID to historical reliability multiplier."""
        ...


@runtime_checkable
class RatingStore(Protocol):
    """Persisted ratings, newest last."""

    def latest(self, employer_id: str, profile_id: str) -> StoredRating | None:
        """Return the most recent stored rating for an employer and profile."""
        ...

    def save(self, stored: StoredRating) -> None:
        """Append a rating record."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Append-only destination for audit entries."""

    def append(self, entry: AuditEntry) -> None:
        """Persist one audit entry."""
        ...

    def entries(self) -> list[AuditEntry]:
        """Return every entry in insertion order."""
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """CLI-owned progress reporting interface."""

    def start(self, label: str, total: int | None) -> None:
        """Start a progress session."""
        ...

    def advance(self, count: int) -> None:
        """Advance progress by count."""
        ...

    def finish(self) -> None:
        """Finish a progress session."""
        ...
