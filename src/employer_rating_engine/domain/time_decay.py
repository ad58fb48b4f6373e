"""Recency weighting for time-stamped assessments."""

from __future__ import annotations

from datetime import datetime

from .weighting_profiles import DecaySettings

SECONDS_PER_DAY = 86_400.0

# Assessment confidence → contribution weight
CONFIDENCE_WEIGHTS = {
    "high": 1.0,
    "medium": 0.8,
    "low": 0.6,
    "very_low": 0.4,
}


def age_in_days(assessment_date: datetime, as_of: datetime) -> float:
    """Return the assessment age in days at ``as_of`` (never negative)."""
    return max(0.0, (as_of - assessment_date).total_seconds() / SECONDS_PER_DAY)


def decay_weight(age_days: float, settings: DecaySettings, max_age_days: float) -> float:
    """Weight for an assessment of the given age.

    Assessments older than ``max_age_days`` contribute nothing; inside the window
    the curve never drops below ``settings.minimum_weight``.
    """
    if age_days > max_age_days:
        return 0.0
    if settings.curve == "linear":
        # Reaches 0.5 at one half-life, like the exponential curve.
        raw = 1.0 - age_days / (2.0 * settings.half_life_days)
    else:
        raw = 0.5 ** (age_days / settings.half_life_days)
    return max(settings.minimum_weight, min(1.0, raw))


def confidence_weight(level: str) -> float:
    return CONFIDENCE_WEIGHTS.get(level, 0.5)
