"""Track 1: aggregate objective compliance assessments for one employer.

Usage example:
    from datetime import UTC, datetime

    from employer_rating_engine.domain.compliance_track import aggregate_compliance

    result = aggregate_compliance(
        "employer-1",
        assessments,
        as_of=datetime(2026, 1, 1, tzinfo=UTC),
        profile=profile,
    )
    assert result.track_score is None or 0.0 <= result.track_score <= 100.0
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .assessments import ComplianceAssessment, TrackResult, empty_track_result, normalise_score
from .time_decay import age_in_days, confidence_weight, decay_weight
from .track_scoring import category_averages, combine_categories, completeness, sample_sufficiency
from .weighting_profiles import WeightingProfile


def severity_factor(assessment: ComplianceAssessment, discount: float) -> float:
    """Scale down negative findings by their severity level."""
    if assessment.score >= 0 or not assessment.severity_level:
        return 1.0
    return 1.0 / (1.0 + discount * max(0, assessment.severity_level))


def aggregate_compliance(
    employer_id: str,
    assessments: Iterable[ComplianceAssessment],
    as_of: datetime,
    profile: WeightingProfile,
) -> TrackResult:
    """Reduce an employer's compliance assessments to a Track 1 result."""
    weights = profile.compliance_category_weights
    settings = profile.compliance_decay
    requirements = profile.min_data_requirements

    considered = sorted(
        (
            assessment
            for assessment in assessments
            if assessment.employer_id == employer_id
            and assessment.assessment_date <= as_of
            and assessment.assessment_type in weights
        ),
        key=lambda assessment: (assessment.assessment_date, assessment.assessment_id),
    )

    weighted_scores: dict[str, list[tuple[float, float]]] = {}
    contributing: list[str] = []
    for assessment in considered:
        age = age_in_days(assessment.assessment_date, as_of)
        weight = (
            decay_weight(age, settings, requirements.max_data_age_days)
            * confidence_weight(assessment.confidence_level)
            * severity_factor(assessment, profile.severity_discount)
        )
        if weight <= 0.0:
            continue
        weighted_scores.setdefault(assessment.assessment_type, []).append(
            (normalise_score(assessment.score), weight)
        )
        contributing.append(assessment.assessment_id)

    if not contributing:
        return empty_track_result("compliance")

    per_category = category_averages(weighted_scores)
    data_completeness = completeness(
        tuple(per_category), profile.required_compliance_categories
    )
    sample_count = len(contributing)
    return TrackResult(
        track="compliance",
        track_score=combine_categories(per_category, weights),
        per_category_scores=per_category,
        data_completeness=data_completeness,
        sample_count=sample_count,
        confidence_score=data_completeness
        * sample_sufficiency(sample_count, requirements.min_compliance_assessments),
        contributing_ids=tuple(sorted(contributing)),
    )
