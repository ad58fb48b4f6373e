"""Validation rules for weighting profiles.

Usage example:
    from employer_rating_engine.domain.profile_validation import validate_profile

    result = validate_profile(profile)
    if not result.is_valid:
        for issue in result.errors:
            print(issue.field, issue.message)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .weighting_profiles import CONFIDENCE_LEVELS, DECAY_CURVES, DecaySettings, WeightingProfile

WEIGHT_TOLERANCE = 1e-6
EXTREME_CATEGORY_WEIGHT = 0.4
MIN_ORGANISER_MULTIPLIER = 0.5
MAX_ORGANISER_MULTIPLIER = 2.0
MIN_CONFIDENCE_ADJUSTMENT = -3
MAX_CONFIDENCE_ADJUSTMENT = 0


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation finding tied to a profile field."""

    field: str
    code: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Hard errors (reject) and soft warnings (accept but flag)."""

    errors: tuple[ValidationIssue, ...]
    warnings: tuple[ValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_snapshot(self) -> dict[str, object]:
        return {
            "errors": [_issue_snapshot(issue) for issue in self.errors],
            "warnings": [_issue_snapshot(issue) for issue in self.warnings],
        }


def _issue_snapshot(issue: ValidationIssue) -> dict[str, str]:
    return {"field": issue.field, "code": issue.code, "message": issue.message}


def _within_unit_interval(value: float) -> bool:
    return 0.0 <= value <= 1.0


def _sums_to_one(total: float) -> bool:
    return abs(total - 1.0) <= WEIGHT_TOLERANCE


def _check_track_weights(profile: WeightingProfile) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for field_name in ("project_data_weight", "organiser_expertise_weight"):
        value: float = getattr(profile, field_name)
        if not _within_unit_interval(value):
            issues.append(
                ValidationIssue(
                    field=field_name,
                    code="weight_range",
                    message=f"must be between 0 and 1 (got {value:g})",
                )
            )
    total = profile.project_data_weight + profile.organiser_expertise_weight
    if not _sums_to_one(total):
        issues.append(
            ValidationIssue(
                field="organiser_expertise_weight",
                code="weight_sum",
                message=(
                    "project_data_weight and organiser_expertise_weight must sum to 1.0 "
                    f"(current sum: {total:.3f})"
                ),
            )
        )
    return issues


def _check_category_map(field_name: str, weights: Mapping[str, float]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for category, value in sorted(weights.items()):
        if not _within_unit_interval(value):
            issues.append(
                ValidationIssue(
                    field=f"{field_name}.{category}",
                    code="weight_range",
                    message=f"must be between 0 and 1 (got {value:g})",
                )
            )
    total = sum(weights.values())
    if not weights or not _sums_to_one(total):
        issues.append(
            ValidationIssue(
                field=field_name,
                code="category_weight_sum",
                message=f"category weights must sum to 1.0 (current sum: {total:.3f})",
            )
        )
    return issues


def _check_thresholds(profile: WeightingProfile) -> list[ValidationIssue]:
    thresholds = profile.confidence_thresholds
    values = (
        thresholds.high_min,
        thresholds.medium_min,
        thresholds.low_min,
        thresholds.very_low_max,
    )
    strictly_ordered = values[0] > values[1] > values[2] > values[3]
    if strictly_ordered and all(_within_unit_interval(value) for value in values):
        return []
    return [
        ValidationIssue(
            field="confidence_thresholds",
            code="threshold_order",
            message=(
                "thresholds must lie in [0, 1] and satisfy "
                "high_min > medium_min > low_min > very_low_max "
                f"(got {values[0]:g} > {values[1]:g} > {values[2]:g} > {values[3]:g})"
            ),
        )
    ]


def _check_requirements(profile: WeightingProfile) -> list[ValidationIssue]:
    requirements = profile.min_data_requirements
    issues: list[ValidationIssue] = []
    for field_name in (
        "min_compliance_assessments",
        "min_expertise_assessments",
        "max_data_age_days",
    ):
        value: int = getattr(requirements, field_name)
        if value < 0:
            issues.append(
                ValidationIssue(
                    field=f"min_data_requirements.{field_name}",
                    code="negative_requirement",
                    message=f"must not be negative (got {value})",
                )
            )
    return issues


def _check_decay(field_name: str, settings: DecaySettings) -> list[ValidationIssue]:
    problems: list[str] = []
    if settings.curve not in DECAY_CURVES:
        problems.append(f"curve must be one of {', '.join(DECAY_CURVES)}")
    if settings.half_life_days <= 0:
        problems.append("half_life_days must be positive")
    if not _within_unit_interval(settings.minimum_weight):
        problems.append("minimum_weight must be between 0 and 1")
    return [
        ValidationIssue(field=field_name, code="decay_settings", message=problem)
        for problem in problems
    ]


def _check_engine_settings(profile: WeightingProfile) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    bands = profile.score_bands
    if not (0.0 <= bands.amber_min < bands.green_min <= 100.0):
        issues.append(
            ValidationIssue(
                field="score_bands",
                code="score_bands",
                message="bands must satisfy 0 <= amber_min < green_min <= 100",
            )
        )
    if profile.min_acceptable_confidence not in CONFIDENCE_LEVELS:
        issues.append(
            ValidationIssue(
                field="min_acceptable_confidence",
                code="confidence_level",
                message=f"must be one of {', '.join(CONFIDENCE_LEVELS)}",
            )
        )
    if not (
        MIN_CONFIDENCE_ADJUSTMENT <= profile.confidence_adjustment <= MAX_CONFIDENCE_ADJUSTMENT
    ):
        issues.append(
            ValidationIssue(
                field="confidence_adjustment",
                code="confidence_adjustment",
                message="may only lower confidence, by at most three tiers (range -3 to 0)",
            )
        )
    if not (
        MIN_ORGANISER_MULTIPLIER
        <= profile.default_organiser_multiplier
        <= MAX_ORGANISER_MULTIPLIER
    ):
        issues.append(
            ValidationIssue(
                field="default_organiser_multiplier",
                code="organiser_multiplier",
                message="organiser confidence multiplier must be between 0.5 and 2.0",
            )
        )
    if profile.max_expertise_per_category < 1:
        issues.append(
            ValidationIssue(
                field="max_expertise_per_category",
                code="window_size",
                message="must keep at least one assessment per category",
            )
        )
    if profile.severity_discount < 0:
        issues.append(
            ValidationIssue(
                field="severity_discount",
                code="severity_discount",
                message="must not be negative",
            )
        )
    return issues


def _extreme_weight_warnings(
    field_name: str, weights: Mapping[str, float]
) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            field=f"{field_name}.{category}",
            code="extreme_weighting",
            message=(
                f"category weight {value:.3f} exceeds {EXTREME_CATEGORY_WEIGHT:g}; "
                "consider a more balanced distribution"
            ),
        )
        for category, value in sorted(weights.items())
        if value > EXTREME_CATEGORY_WEIGHT
    ]


def _reachability_warning(
    field_name: str,
    required: tuple[str, ...],
    weights: Mapping[str, float],
    medium_min: float,
) -> list[ValidationIssue]:
    if not required:
        return []
    reachable = sum(1 for category in required if weights.get(category, 0.0) > 0.0)
    best_completeness = reachable / len(required)
    if best_completeness >= medium_min:
        return []
    return [
        ValidationIssue(
            field=field_name,
            code="unreachable_confidence",
            message=(
                f"required categories without weight cap completeness at "
                f"{best_completeness:.2f}; confidence can never leave the low tier"
            ),
        )
    ]


def _permissive_minimum_warnings(profile: WeightingProfile) -> list[ValidationIssue]:
    requirements = profile.min_data_requirements
    return [
        ValidationIssue(
            field=f"min_data_requirements.{field_name}",
            code="permissive_minimum",
            message="a minimum of zero lets a single observation carry a rating",
        )
        for field_name in ("min_compliance_assessments", "min_expertise_assessments")
        if getattr(requirements, field_name) == 0
    ]


def validate_profile(profile: WeightingProfile) -> ValidationResult:
    """Validate a weighting profile without side effects."""
    errors: list[ValidationIssue] = []
    errors.extend(_check_track_weights(profile))
    errors.extend(
        _check_category_map("compliance_category_weights", profile.compliance_category_weights)
    )
    errors.extend(
        _check_category_map("expertise_category_weights", profile.expertise_category_weights)
    )
    errors.extend(_check_thresholds(profile))
    errors.extend(_check_requirements(profile))
    errors.extend(_check_decay("compliance_decay", profile.compliance_decay))
    errors.extend(_check_decay("expertise_decay", profile.expertise_decay))
    errors.extend(_check_engine_settings(profile))

    warnings: list[ValidationIssue] = []
    warnings.extend(
        _extreme_weight_warnings(
            "compliance_category_weights", profile.compliance_category_weights
        )
    )
    warnings.extend(
        _extreme_weight_warnings("expertise_category_weights", profile.expertise_category_weights)
    )
    medium_min = profile.confidence_thresholds.medium_min
    warnings.extend(
        _reachability_warning(
            "min_data_requirements.required_compliance_categories",
            profile.min_data_requirements.required_compliance_categories,
            profile.compliance_category_weights,
            medium_min,
        )
    )
    warnings.extend(
        _reachability_warning(
            "min_data_requirements.required_expertise_categories",
            profile.min_data_requirements.required_expertise_categories,
            profile.expertise_category_weights,
            medium_min,
        )
    )
    warnings.extend(_permissive_minimum_warnings(profile))

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))
