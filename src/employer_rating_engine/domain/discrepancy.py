"""Flag disagreement between the compliance and expertise tracks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .assessments import TrackResult
from .bands import BAND_ORDER, RatingBand, confidence_tier
from .weighting_profiles import ConfidenceThresholds

DiscrepancySeverity = Literal["none", "minor", "major", "critical"]

SEVERITY_ORDER: tuple[DiscrepancySeverity, ...] = ("none", "minor", "major", "critical")
MAX_DIVERGING_CATEGORIES = 3


@dataclass(frozen=True)
class DiscrepancyResult:
    detected: bool
    severity: DiscrepancySeverity
    explanation: str
    diverging_categories: tuple[str, ...] = ()


def _escalate(severity: DiscrepancySeverity) -> DiscrepancySeverity:
    index = SEVERITY_ORDER.index(severity)
    return SEVERITY_ORDER[min(index + 1, len(SEVERITY_ORDER) - 1)]


def diverging_categories(track1: TrackResult, track2: TrackResult) -> tuple[str, ...]:
    shared = set(track1.per_category_scores) & set(track2.per_category_scores)
    ranked = sorted(
        shared,
        key=lambda category: (
            -abs(track1.per_category_scores[category] - track2.per_category_scores[category]),
            category,
        ),
    )
    return tuple(ranked[:MAX_DIVERGING_CATEGORIES])


def detect_discrepancy(
    project_based_rating: RatingBand,
    expertise_based_rating: RatingBand,
    track1: TrackResult,
    track2: TrackResult,
    thresholds: ConfidenceThresholds | None = None,
) -> DiscrepancyResult:
    """Compare the two track bands.

    Severity follows the band distance (one band apart is minor, two is major)
    and rises one step when both tracks are high confidence. Swapping the two
    sides never changes ``detected`` or ``severity``.
    """
    if project_based_rating == "unknown" or expertise_based_rating == "unknown":
        return DiscrepancyResult(
            detected=False,
            severity="none",
            explanation="Not compared: at least one track has insufficient data.",
        )

    distance = abs(BAND_ORDER[project_based_rating] - BAND_ORDER[expertise_based_rating])
    if distance == 0:
        return DiscrepancyResult(
            detected=False,
            severity="none",
            explanation=f"Both tracks rate the employer {project_based_rating}.",
        )

    severity: DiscrepancySeverity = "minor" if distance == 1 else "major"
    thresholds = thresholds or ConfidenceThresholds()
    both_high = (
        confidence_tier(track1.confidence_score, thresholds) == "high"
        and confidence_tier(track2.confidence_score, thresholds) == "high"
    )
    if both_high:
        severity = _escalate(severity)

    diverging = diverging_categories(track1, track2)
    explanation = (
        f"Compliance data rates the employer {project_based_rating} but organiser "
        f"expertise rates it {expertise_based_rating}."
    )
    if diverging:
        details = ", ".join(
            f"{category} ({track1.per_category_scores[category]:.1f} vs "
            f"{track2.per_category_scores[category]:.1f})"
            for category in diverging
        )
        explanation += f" Largest category differences: {details}."
    else:
        explanation += " The tracks share no assessed categories."
    if both_high:
        explanation += " Both tracks are high confidence."
    return DiscrepancyResult(
        detected=True,
        severity=severity,
        explanation=explanation,
        diverging_categories=diverging,
    )
