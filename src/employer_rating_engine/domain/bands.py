"""Rating bands and confidence tiers."""

from __future__ import annotations

from typing import Literal

from .weighting_profiles import (
    CONFIDENCE_LEVELS,
    ConfidenceLevel,
    ConfidenceThresholds,
    ScoreBands,
)

RatingBand = Literal["green", "amber", "red", "unknown"]

# Distance between bands drives discrepancy severity.
BAND_ORDER: dict[str, int] = {"green": 0, "amber": 1, "red": 2}


def classify_score(score: float | None, bands: ScoreBands) -> RatingBand:
    """Map a 0-100 score to a traffic-light band."""
    if score is None:
        return "unknown"
    if score >= bands.green_min:
        return "green"
    if score >= bands.amber_min:
        return "amber"
    return "red"


def confidence_tier(score: float, thresholds: ConfidenceThresholds) -> ConfidenceLevel:
    """Map a 0-1 confidence score to a tier."""
    if score >= thresholds.high_min:
        return "high"
    if score >= thresholds.medium_min:
        return "medium"
    if score >= thresholds.low_min:
        return "low"
    return "very_low"


def tier_rank(level: ConfidenceLevel) -> int:
    return CONFIDENCE_LEVELS.index(level)


def shift_tier(level: ConfidenceLevel, steps: int) -> ConfidenceLevel:
    """Move a tier up (positive) or down (negative), clamped to the known tiers."""
    rank = max(0, min(len(CONFIDENCE_LEVELS) - 1, tier_rank(level) + steps))
    return CONFIDENCE_LEVELS[rank]


def lowest_tier(*levels: ConfidenceLevel) -> ConfidenceLevel:
    return min(levels, key=tier_rank)
