"""Dry-run comparison of a proposed weighting profile against the current one."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

import pandas as pd

from ..domain.profile_validation import ValidationResult, validate_profile
from ..domain.weighting import FinalRating, calculate_rating
from ..domain.weighting_profiles import WeightingProfile
from ..exceptions import ProfileInvalidError, RatingEngineError
from ..observability import get_logger
from ..protocols import AssessmentRepository
from .rating import load_inputs

ImpactLevel = Literal["low", "medium", "high", "critical"]

# Score changes are on the 0-100 scale.
CHANGE_THRESHOLD = 5.0
MEDIUM_CHANGE = 10.0
HIGH_CHANGE = 20.0
CRITICAL_AVERAGE_CHANGE = 15.0
CONFIDENCE_SHIFT_THRESHOLD = 0.1

# Tier → nominal confidence value used to average confidence across employers.
CONFIDENCE_VALUES = {"very_low": 0.2, "low": 0.4, "medium": 0.6, "high": 0.8}

IMPACT_COLUMNS = (
    "employer_id",
    "current_score",
    "proposed_score",
    "current_band",
    "proposed_band",
    "current_confidence",
    "proposed_confidence",
    "score_change",
    "change_type",
    "impact_level",
)


@dataclass(frozen=True)
class ImpactPreview:
    """Summary of how a profile change would move ratings; nothing is persisted."""

    employers_evaluated: int
    ratings_improved: int
    ratings_declined: int
    ratings_unchanged: int
    band_changes: int
    average_score_change: float
    confidence_change: float
    overall_impact_level: ImpactLevel
    recommendations: tuple[str, ...]
    proposed_validation: ValidationResult
    changes: pd.DataFrame
    failed_employers: tuple[str, ...] = ()


def _impact_level(change: float) -> ImpactLevel:
    magnitude = abs(change)
    if magnitude > HIGH_CHANGE:
        return "high"
    if magnitude > MEDIUM_CHANGE:
        return "medium"
    return "low"


def _overall_impact_level(average_change: float) -> ImpactLevel:
    magnitude = abs(average_change)
    if magnitude > CRITICAL_AVERAGE_CHANGE:
        return "critical"
    if magnitude > MEDIUM_CHANGE:
        return "high"
    if magnitude > CHANGE_THRESHOLD:
        return "medium"
    return "low"


def _recommendations(
    level: ImpactLevel,
    average_change: float,
    improved: int,
    declined: int,
    confidence_change: float,
) -> tuple[str, ...]:
    recommendations: list[str] = []
    if level == "critical":
        recommendations.append("Consider applying these changes gradually to monitor impact")
        recommendations.append("Review employers with significant rating changes")
    if abs(average_change) > MEDIUM_CHANGE:
        recommendations.append("Large changes detected - validate with domain expert")
    if declined > improved:
        recommendations.append("More ratings declining than improving - review weighting balance")
    if abs(confidence_change) > CONFIDENCE_SHIFT_THRESHOLD:
        recommendations.append(
            "Significant confidence level changes - review data quality assumptions"
        )
    if not recommendations:
        recommendations.append("Changes appear to have minimal impact - safe to proceed")
    return tuple(recommendations)


def _row(current: FinalRating, proposed: FinalRating) -> dict[str, object]:
    return {
        "employer_id": current.employer_id,
        "current_score": current.final_score,
        "proposed_score": proposed.final_score,
        "current_band": current.final_rating_band,
        "proposed_band": proposed.final_rating_band,
        "current_confidence": current.overall_confidence,
        "proposed_confidence": proposed.overall_confidence,
    }


def preview_profile_change(
    repository: AssessmentRepository,
    employer_ids: Iterable[str],
    current_profile: WeightingProfile,
    proposed_profile: WeightingProfile,
    as_of: datetime,
) -> ImpactPreview:
    """Rate each employer under both profiles and summarise the differences.

    The proposed profile must pass ``validate_profile``; its warnings are
    returned with the preview.

    Raises:
        ProfileInvalidError: If the proposed profile has hard errors.
    """
    logger = get_logger("employer_rating_engine.impact")
    validation = validate_profile(proposed_profile)
    if not validation.is_valid:
        raise ProfileInvalidError(proposed_profile.name, validation.errors)

    rows: list[dict[str, object]] = []
    failed: list[str] = []
    for employer_id in employer_ids:
        try:
            inputs = load_inputs(repository, employer_id, as_of)
            current, proposed = (
                calculate_rating(
                    employer_id,
                    profile,
                    as_of,
                    inputs.compliance,
                    inputs.expertise,
                    inputs.organiser_multipliers,
                )
                for profile in (current_profile, proposed_profile)
            )
        except RatingEngineError as exc:
            logger.warning("Preview skipped %s: %s", employer_id, exc)
            failed.append(employer_id)
            continue
        rows.append(_row(current, proposed))

    df = pd.DataFrame(rows, columns=list(IMPACT_COLUMNS[:7]))
    df["current_score"] = pd.to_numeric(df["current_score"], errors="coerce")
    df["proposed_score"] = pd.to_numeric(df["proposed_score"], errors="coerce")
    df["score_change"] = df["proposed_score"] - df["current_score"]
    df["change_type"] = "no_change"
    df.loc[df["score_change"] > CHANGE_THRESHOLD, "change_type"] = "improvement"
    df.loc[df["score_change"] < -CHANGE_THRESHOLD, "change_type"] = "decline"
    df["impact_level"] = df["score_change"].fillna(0.0).map(_impact_level)
    df = df[list(IMPACT_COLUMNS)]

    comparable = df.dropna(subset=["score_change"])
    average_change = float(comparable["score_change"].mean()) if not comparable.empty else 0.0
    current_confidence = df["current_confidence"].map(CONFIDENCE_VALUES)
    proposed_confidence = df["proposed_confidence"].map(CONFIDENCE_VALUES)
    confidence_change = (
        float(proposed_confidence.mean() - current_confidence.mean()) if not df.empty else 0.0
    )
    improved = int((df["change_type"] == "improvement").sum())
    declined = int((df["change_type"] == "decline").sum())
    level = _overall_impact_level(average_change)

    logger.info(
        "Preview of %s v%s: %s improved, %s declined across %s employers",
        proposed_profile.profile_id,
        proposed_profile.version,
        improved,
        declined,
        len(df),
    )
    return ImpactPreview(
        employers_evaluated=len(df),
        ratings_improved=improved,
        ratings_declined=declined,
        ratings_unchanged=len(df) - improved - declined,
        band_changes=int((df["current_band"] != df["proposed_band"]).sum()),
        average_score_change=average_change,
        confidence_change=confidence_change,
        overall_impact_level=level,
        recommendations=_recommendations(
            level, average_change, improved, declined, confidence_change
        ),
        proposed_validation=validation,
        changes=df.reset_index(drop=True),
        failed_employers=tuple(failed),
    )

