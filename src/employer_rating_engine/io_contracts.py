"""Boundary-neutral IO contracts for infrastructure validation.

Usage example:
    from datetime import UTC, datetime

    from employer_rating_engine.io_contracts import ComplianceAssessmentIO

    row: ComplianceAssessmentIO = {
        "assessment_id": "ca-1",
        "employer_id": "employer-1",
        "assessment_type": "cbus_status",
        "score": 60.0,
        "confidence_level": "high",
        "assessment_date": datetime(2026, 1, 15, tzinfo=UTC),
        "severity_level": None,
        "project_id": "project-9",
    }
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from typing_extensions import TypedDict

ConfidenceLevelIO = Literal["very_low", "low", "medium", "high"]


class ComplianceAssessmentIO(TypedDict):
    """Validated compliance assessment row."""

    assessment_id: str
    employer_id: str
    assessment_type: str
    score: float
    confidence_level: ConfidenceLevelIO
    assessment_date: datetime
    severity_level: int | None
    project_id: str | None


class ExpertiseAssessmentIO(TypedDict):
    """Validated expertise assessment row with decoded category scores."""

    assessment_id: str
    employer_id: str
    assessor_id: str
    overall_score: float
    category_scores: dict[str, float]
    confidence_level: ConfidenceLevelIO
    assessment_date: datetime
    rationale: str


class OrganiserIO(TypedDict):
    """Validated organiser reliability row."""

    organiser_id: str
    confidence_multiplier: float


class TrackResultIO(TypedDict):
    """Stored track snapshot inside a rating record."""

    track: Literal["compliance", "expertise"]
    track_score: float | None
    per_category_scores: dict[str, float]
    data_completeness: float
    sample_count: int
    confidence_score: float


class RatingRecordIO(TypedDict):
    """Validated stored rating row with decoded JSON columns."""

    employer_id: str
    calculation_date: datetime
    final_score: float | None
    final_rating_band: Literal["green", "amber", "red", "unknown"]
    project_based_rating: Literal["green", "amber", "red", "unknown"]
    expertise_based_rating: Literal["green", "amber", "red", "unknown"]
    overall_confidence: ConfidenceLevelIO
    data_completeness: float
    discrepancy_detected: bool
    discrepancy_severity: Literal["none", "minor", "major", "critical"]
    discrepancy_explanation: str
    profile_id: str
    weighting_profile_version: int
    compliance_ids: list[str]
    expertise_ids: list[str]
    track_results: list[TrackResultIO]
    insufficient_data: bool
    superseded_profile: bool


class AuditEntryIO(TypedDict):
    """Validated audit log row with decoded snapshots."""

    entry_id: str
    kind: Literal[
        "rating_calculated",
        "profile_created",
        "profile_edited",
        "profile_archived",
        "validation_override",
    ]
    actor: str
    timestamp: datetime
    subject_id: str
    before: dict[str, object] | None
    after: dict[str, object] | None
    reason: str
