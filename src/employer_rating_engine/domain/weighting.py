"""Combine both assessment tracks into one final employer rating.

Usage example:
    from employer_rating_engine.domain.weighting import calculate_rating

    rating = calculate_rating(
        "employer-1",
        profile,
        as_of,
        compliance_assessments,
        expertise_assessments,
        organiser_multipliers={"organiser-7": 1.2},
    )
    print(rating.final_rating_band, rating.overall_confidence)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from ..exceptions import ProfileInvalidError
from .assessments import ComplianceAssessment, ExpertiseAssessment, TrackResult
from .bands import RatingBand, classify_score, confidence_tier, lowest_tier, shift_tier, tier_rank
from .compliance_track import aggregate_compliance
from .discrepancy import (
    DiscrepancyResult,
    DiscrepancySeverity,
    detect_discrepancy,
    diverging_categories,
)
from .expertise_track import aggregate_expertise
from .profile_validation import validate_profile
from .weighting_profiles import ConfidenceLevel, WeightingProfile


@dataclass(frozen=True)
class InputsSnapshot:
    """Assessment IDs that fed a rating; equal snapshots mean equal inputs."""

    compliance_ids: tuple[str, ...]
    expertise_ids: tuple[str, ...]


@dataclass(frozen=True)
class FinalRating:
    employer_id: str
    calculation_date: datetime
    final_score: float | None
    final_rating_band: RatingBand
    project_based_rating: RatingBand
    expertise_based_rating: RatingBand
    overall_confidence: ConfidenceLevel
    data_completeness: float
    discrepancy_detected: bool
    discrepancy_severity: DiscrepancySeverity
    discrepancy_explanation: str
    profile_id: str
    weighting_profile_version: int
    inputs_snapshot: InputsSnapshot
    track_results: tuple[TrackResult, TrackResult]
    insufficient_data: bool

    @property
    def compliance_result(self) -> TrackResult:
        return self.track_results[0]

    @property
    def expertise_result(self) -> TrackResult:
        return self.track_results[1]

    @property
    def discrepancy(self) -> DiscrepancyResult:
        """The track comparison recorded when this rating was calculated."""
        return DiscrepancyResult(
            detected=self.discrepancy_detected,
            severity=self.discrepancy_severity,
            explanation=self.discrepancy_explanation,
            diverging_categories=(
                diverging_categories(*self.track_results) if self.discrepancy_detected else ()
            ),
        )


def is_sufficient(track: TrackResult, minimum: int, profile: WeightingProfile) -> bool:
    """A track is usable when it has a score, enough samples and non-trivial confidence."""
    if track.track_score is None or track.sample_count < minimum:
        return False
    return track.confidence_score > profile.confidence_thresholds.very_low_max


def ensure_profile_usable(profile: WeightingProfile) -> None:
    """Raise ProfileInvalidError unless the profile passes hard validation.

    Profiles stored with an explicit override reason are accepted as they are.
    """
    if profile.validation_override_reason:
        return
    result = validate_profile(profile)
    if not result.is_valid:
        raise ProfileInvalidError(profile.name, result.errors)


def calculate_rating(
    employer_id: str,
    profile: WeightingProfile,
    as_of: datetime,
    compliance_assessments: Iterable[ComplianceAssessment],
    expertise_assessments: Iterable[ExpertiseAssessment],
    organiser_multipliers: Mapping[str, float] | None = None,
) -> FinalRating:
    """Compute a rating from assessments as of ``as_of``.

    Insufficient data on both tracks yields an ``unknown`` rating rather than
    an error.
    """
    ensure_profile_usable(profile)
    track1 = aggregate_compliance(employer_id, compliance_assessments, as_of, profile)
    track2 = aggregate_expertise(
        employer_id, expertise_assessments, as_of, profile, organiser_multipliers
    )
    return combine_tracks(employer_id, profile, as_of, track1, track2)


def combine_tracks(
    employer_id: str,
    profile: WeightingProfile,
    as_of: datetime,
    track1: TrackResult,
    track2: TrackResult,
) -> FinalRating:
    """Blend two aggregated track results using the profile's weights."""
    requirements = profile.min_data_requirements
    thresholds = profile.confidence_thresholds
    w1 = profile.project_data_weight
    w2 = profile.organiser_expertise_weight

    track1_ok = is_sufficient(track1, requirements.min_compliance_assessments, profile)
    track2_ok = is_sufficient(track2, requirements.min_expertise_assessments, profile)
    tier1 = confidence_tier(track1.confidence_score, thresholds)
    tier2 = confidence_tier(track2.confidence_score, thresholds)

    project_band = (
        classify_score(track1.track_score, profile.score_bands) if track1_ok else "unknown"
    )
    expertise_band = (
        classify_score(track2.track_score, profile.score_bands) if track2_ok else "unknown"
    )

    final_score: float | None
    confidence: ConfidenceLevel
    if track1_ok and track2_ok:
        assert track1.track_score is not None and track2.track_score is not None
        final_score = max(0.0, min(100.0, w1 * track1.track_score + w2 * track2.track_score))
        confidence = lowest_tier(tier1, tier2)
        completeness = _weighted_completeness(((w1, track1), (w2, track2)))
    elif track1_ok:
        final_score = track1.track_score
        confidence = _single_track_confidence(tier1, track2, tier2)
        completeness = track1.data_completeness
    elif track2_ok:
        final_score = track2.track_score
        confidence = _single_track_confidence(tier2, track1, tier1)
        completeness = track2.data_completeness
    else:
        final_score = None
        confidence = "very_low"
        completeness = _weighted_completeness(((w1, track1), (w2, track2)))

    band: RatingBand = "unknown"
    if final_score is not None:
        confidence = shift_tier(confidence, profile.confidence_adjustment)
        if tier_rank(confidence) >= tier_rank(profile.min_acceptable_confidence):
            band = classify_score(final_score, profile.score_bands)

    discrepancy: DiscrepancyResult = detect_discrepancy(
        project_band, expertise_band, track1, track2, thresholds
    )
    return FinalRating(
        employer_id=employer_id,
        calculation_date=as_of,
        final_score=final_score,
        final_rating_band=band,
        project_based_rating=project_band,
        expertise_based_rating=expertise_band,
        overall_confidence=confidence,
        data_completeness=completeness,
        discrepancy_detected=discrepancy.detected,
        discrepancy_severity=discrepancy.severity,
        discrepancy_explanation=discrepancy.explanation,
        profile_id=profile.profile_id,
        weighting_profile_version=profile.version,
        inputs_snapshot=InputsSnapshot(
            compliance_ids=track1.contributing_ids,
            expertise_ids=track2.contributing_ids,
        ),
        track_results=(track1, track2),
        insufficient_data=final_score is None,
    )


def _weighted_completeness(tracks: Iterable[tuple[float, TrackResult]]) -> float:
    pairs = list(tracks)
    total = sum(weight for weight, _ in pairs)
    if total <= 0.0:
        return 0.0
    return min(1.0, sum(weight * track.data_completeness for weight, track in pairs) / total)


def _single_track_confidence(
    used_tier: ConfidenceLevel,
    other: TrackResult,
    other_tier: ConfidenceLevel,
) -> ConfidenceLevel:
    """One tier below the track used, never above a scored but insufficient other track."""
    confidence = shift_tier(used_tier, -1)
    if other.has_data:
        confidence = lowest_tier(confidence, other_tier)
    return confidence
