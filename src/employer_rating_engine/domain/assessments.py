"""Assessment records and derived track results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Literal

from .weighting_profiles import ConfidenceLevel

TrackName = Literal["compliance", "expertise"]

RAW_SCORE_MIN = -100.0
RAW_SCORE_MAX = 100.0


def normalise_score(raw: float) -> float:
    """Map a raw -100..100 assessment score onto the 0..100 rating scale."""
    clamped = max(RAW_SCORE_MIN, min(RAW_SCORE_MAX, raw))
    return (clamped - RAW_SCORE_MIN) / (RAW_SCORE_MAX - RAW_SCORE_MIN) * 100.0


@dataclass(frozen=True)
class ComplianceAssessment:
    """One compliance observation for one employer on one project."""

    assessment_id: str
    employer_id: str
    assessment_type: str
    score: float
    confidence_level: ConfidenceLevel
    assessment_date: datetime
    severity_level: int | None = None
    project_id: str | None = None


@dataclass(frozen=True)
class ExpertiseAssessment:
    """One organiser's holistic judgement of one employer."""

    assessment_id: str
    employer_id: str
    assessor_id: str
    overall_score: float
    category_scores: MappingProxyType[str, float]
    confidence_level: ConfidenceLevel
    assessment_date: datetime
    rationale: str = ""


@dataclass(frozen=True)
class TrackResult:
    """Aggregated output of one assessment track."""

    track: TrackName
    track_score: float | None  # 0-100, None when no usable data
    per_category_scores: MappingProxyType[str, float]
    data_completeness: float  # 0-1
    sample_count: int
    confidence_score: float  # 0-1
    contributing_ids: tuple[str, ...]

    @property
    def has_data(self) -> bool:
        return self.track_score is not None

    def to_snapshot(self) -> dict[str, object]:
        return {
            "track": self.track,
            "track_score": self.track_score,
            "per_category_scores": dict(self.per_category_scores),
            "data_completeness": self.data_completeness,
            "sample_count": self.sample_count,
            "confidence_score": self.confidence_score,
        }


def empty_track_result(track: TrackName) -> TrackResult:
    """Return the insufficient-data result for a track with no assessments."""
    return TrackResult(
        track=track,
        track_score=None,
        per_category_scores=MappingProxyType({}),
        data_completeness=0.0,
        sample_count=0,
        confidence_score=0.0,
        contributing_ids=(),
    )
