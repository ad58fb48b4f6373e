"""Tests for weighting profile validation rules."""

from __future__ import annotations

from types import MappingProxyType

from employer_rating_engine.domain.profile_validation import ValidationResult, validate_profile
from employer_rating_engine.domain.weighting_profiles import (
    ConfidenceThresholds,
    DecaySettings,
    MinDataRequirements,
    ScoreBands,
)
from tests.support.builders import make_profile


def _codes(result: ValidationResult) -> set[str]:
    return {issue.code for issue in result.errors}


def _warning_codes(result: ValidationResult) -> set[str]:
    return {issue.code for issue in result.warnings}


def test_balanced_profile_is_valid_without_warnings() -> None:
    result = validate_profile(make_profile())

    assert result.is_valid
    assert result.errors == ()
    assert result.warnings == ()


def test_track_weights_must_sum_to_one() -> None:
    result = validate_profile(make_profile(project_data_weight=0.7, organiser_expertise_weight=0.5))

    assert not result.is_valid
    [issue] = [issue for issue in result.errors if issue.code == "weight_sum"]
    assert issue.field == "organiser_expertise_weight"
    assert "1.200" in issue.message


def test_track_weight_sum_tolerates_float_noise() -> None:
    result = validate_profile(
        make_profile(project_data_weight=0.1 + 0.2, organiser_expertise_weight=0.7)
    )

    assert "weight_sum" not in _codes(result)


def test_track_weight_out_of_range() -> None:
    result = validate_profile(
        make_profile(project_data_weight=1.5, organiser_expertise_weight=-0.5)
    )

    assert "weight_range" in _codes(result)


def test_category_weights_must_sum_to_one() -> None:
    result = validate_profile(
        make_profile(
            compliance_category_weights=MappingProxyType({"cbus_status": 0.5, "eba_status": 0.3})
        )
    )

    [issue] = [issue for issue in result.errors if issue.code == "category_weight_sum"]
    assert issue.field == "compliance_category_weights"
    assert "0.800" in issue.message


def test_empty_category_map_is_rejected() -> None:
    result = validate_profile(make_profile(expertise_category_weights=MappingProxyType({})))

    assert "category_weight_sum" in _codes(result)


def test_confidence_thresholds_must_be_strictly_ordered() -> None:
    result = validate_profile(
        make_profile(confidence_thresholds=ConfidenceThresholds(high_min=0.5, medium_min=0.6))
    )

    assert "threshold_order" in _codes(result)


def test_engine_settings_are_range_checked() -> None:
    result = validate_profile(
        make_profile(
            confidence_adjustment=1,
            default_organiser_multiplier=2.5,
            max_expertise_per_category=0,
            severity_discount=-0.1,
            score_bands=ScoreBands(green_min=60.0, amber_min=70.0),
        )
    )

    assert {
        "confidence_adjustment",
        "organiser_multiplier",
        "window_size",
        "severity_discount",
        "score_bands",
    } <= _codes(result)


def test_confidence_adjustment_cannot_lower_more_than_three_tiers() -> None:
    assert validate_profile(make_profile(confidence_adjustment=-3)).is_valid
    assert "confidence_adjustment" in _codes(
        validate_profile(make_profile(confidence_adjustment=-4))
    )


def test_negative_requirements_and_bad_decay_are_rejected() -> None:
    result = validate_profile(
        make_profile(
            min_data_requirements=MinDataRequirements(min_compliance_assessments=-1),
            compliance_decay=DecaySettings(half_life_days=0.0),
        )
    )

    assert "negative_requirement" in _codes(result)
    decay_issues = [issue for issue in result.errors if issue.code == "decay_settings"]
    assert [issue.field for issue in decay_issues] == ["compliance_decay"]


def test_extreme_category_weight_is_a_warning_only() -> None:
    result = validate_profile(
        make_profile(
            compliance_category_weights=MappingProxyType(
                {"cbus_status": 0.6, "eba_status": 0.2, "safety_incidents": 0.2}
            )
        )
    )

    assert result.is_valid
    [warning] = result.warnings
    assert warning.code == "extreme_weighting"
    assert warning.field == "compliance_category_weights.cbus_status"


def test_unreachable_required_categories_warn() -> None:
    result = validate_profile(
        make_profile(
            min_data_requirements=MinDataRequirements(
                required_compliance_categories=("cbus_status", "site_audits", "wage_theft"),
            )
        )
    )

    assert result.is_valid
    assert "unreachable_confidence" in _warning_codes(result)


def test_zero_minimum_warns() -> None:
    result = validate_profile(
        make_profile(min_data_requirements=MinDataRequirements(min_expertise_assessments=0))
    )

    assert result.is_valid
    [warning] = result.warnings
    assert warning.code == "permissive_minimum"
    assert warning.field == "min_data_requirements.min_expertise_assessments"


def test_validation_is_pure() -> None:
    profile = make_profile(project_data_weight=0.7, organiser_expertise_weight=0.5)

    assert validate_profile(profile) == validate_profile(profile)
