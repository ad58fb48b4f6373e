"""Track 2: aggregate organiser expertise assessments for one employer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from .assessments import ExpertiseAssessment, TrackResult, empty_track_result, normalise_score
from .profile_validation import MAX_ORGANISER_MULTIPLIER, MIN_ORGANISER_MULTIPLIER
from .time_decay import age_in_days, confidence_weight, decay_weight
from .track_scoring import category_averages, combine_categories, completeness, sample_sufficiency
from .weighting_profiles import WeightingProfile


def organiser_multiplier(
    assessor_id: str,
    multipliers: Mapping[str, float],
    default: float,
) -> float:
    """Historical reliability multiplier for an assessor, clamped to 0.5-2.0."""
    value = multipliers.get(assessor_id, default)
    return max(MIN_ORGANISER_MULTIPLIER, min(MAX_ORGANISER_MULTIPLIER, value))


def aggregate_expertise(
    employer_id: str,
    assessments: Iterable[ExpertiseAssessment],
    as_of: datetime,
    profile: WeightingProfile,
    organiser_multipliers: Mapping[str, float] | None = None,
) -> TrackResult:
    """Reduce an employer's expertise assessments to a Track 2 result.

    Only the most recent ``profile.max_expertise_per_category`` assessments count
    for each category, so one prolific assessor cannot dominate. An assessment
    with no sub-score for any weighted category stands in for every category
    with its overall score.
    """
    weights = profile.expertise_category_weights
    settings = profile.expertise_decay
    requirements = profile.min_data_requirements
    multipliers = organiser_multipliers or {}

    decays: dict[str, float] = {}
    in_window: list[ExpertiseAssessment] = []
    for assessment in sorted(
        assessments,
        key=lambda assessment: (assessment.assessment_date, assessment.assessment_id),
    ):
        if assessment.employer_id != employer_id or assessment.assessment_date > as_of:
            continue
        decay = decay_weight(
            age_in_days(assessment.assessment_date, as_of),
            settings,
            requirements.max_data_age_days,
        )
        if decay <= 0.0:
            continue
        decays[assessment.assessment_id] = decay
        in_window.append(assessment)

    weighted_scores: dict[str, list[tuple[float, float]]] = {}
    contributing: set[str] = set()
    reliability = 0.0
    holistic = {a.assessment_id for a in in_window if weights.keys().isdisjoint(a.category_scores)}
    for category in sorted(weights):
        candidates = [
            a for a in in_window if category in a.category_scores or a.assessment_id in holistic
        ]
        for assessment in candidates[-profile.max_expertise_per_category :]:
            multiplier = organiser_multiplier(
                assessment.assessor_id, multipliers, profile.default_organiser_multiplier
            )
            decay = decays[assessment.assessment_id]
            weight = decay * confidence_weight(assessment.confidence_level) * multiplier
            raw = assessment.category_scores.get(category, assessment.overall_score)
            weighted_scores.setdefault(category, []).append((normalise_score(raw), weight))
            contributing.add(assessment.assessment_id)
            reliability = max(reliability, multiplier * decay)

    if not contributing:
        return empty_track_result("expertise")

    per_category = category_averages(weighted_scores)
    data_completeness = completeness(tuple(per_category), profile.required_expertise_categories)
    sample_count = len(contributing)
    return TrackResult(
        track="expertise",
        track_score=combine_categories(per_category, weights),
        per_category_scores=per_category,
        data_completeness=data_completeness,
        sample_count=sample_count,
        confidence_score=data_completeness
        * sample_sufficiency(sample_count, requirements.min_expertise_assessments)
        * min(1.0, reliability),
        contributing_ids=tuple(sorted(contributing)),
    )
