"""Tests for Track 1 compliance aggregation."""

from __future__ import annotations

import random

import pytest

from employer_rating_engine.domain.compliance_track import aggregate_compliance, severity_factor
from tests.support.builders import AS_OF, compliance, make_profile


def test_no_assessments_gives_insufficient_track() -> None:
    result = aggregate_compliance("emp-1", [], AS_OF, make_profile())

    assert result.track_score is None
    assert not result.has_data
    assert result.sample_count == 0
    assert result.confidence_score == 0.0
    assert result.contributing_ids == ()


def test_filters_other_employers_future_stale_and_unweighted_assessments() -> None:
    assessments = [
        compliance("keep", score=60.0),
        compliance("other-employer", employer_id="emp-2"),
        compliance("future", days_ago=-1),
        compliance("stale", days_ago=400),
        compliance("unweighted", category="site_audits"),
    ]

    result = aggregate_compliance("emp-1", assessments, AS_OF, make_profile())

    assert result.contributing_ids == ("keep",)
    assert result.per_category_scores == {"cbus_status": pytest.approx(80.0)}


def test_missing_categories_are_redistributed_not_zeroed() -> None:
    result = aggregate_compliance("emp-1", [compliance("c1", score=60.0)], AS_OF, make_profile())

    assert result.track_score == pytest.approx(80.0)
    assert result.data_completeness == pytest.approx(1 / 3)


def test_category_score_is_confidence_weighted_average() -> None:
    assessments = [
        compliance("c1", score=100.0, confidence="high"),
        compliance("c2", score=-100.0, confidence="low"),
    ]

    result = aggregate_compliance("emp-1", assessments, AS_OF, make_profile())

    assert result.per_category_scores["cbus_status"] == pytest.approx(100.0 / 1.6)


def test_recent_assessments_outweigh_old_ones() -> None:
    assessments = [
        compliance("recent", score=100.0),
        compliance("old", score=-100.0, days_ago=180),
    ]

    result = aggregate_compliance("emp-1", assessments, AS_OF, make_profile())

    assert result.track_score == pytest.approx(100.0 / 1.5)


def test_severity_discounts_negative_findings_only() -> None:
    assert severity_factor(compliance("neg", score=-50.0, severity=4), 0.1) == pytest.approx(
        1 / 1.4
    )
    assert severity_factor(compliance("pos", score=50.0, severity=4), 0.1) == 1.0
    assert severity_factor(compliance("none", score=-50.0), 0.1) == 1.0


def test_track_score_is_category_weighted() -> None:
    assessments = [
        compliance("c1", category="cbus_status", score=100.0),
        compliance("c2", category="eba_status", score=0.0),
        compliance("c3", category="safety_incidents", score=-100.0),
    ]

    result = aggregate_compliance("emp-1", assessments, AS_OF, make_profile())

    assert result.track_score == pytest.approx(0.4 * 100.0 + 0.3 * 50.0 + 0.3 * 0.0)
    assert result.data_completeness == 1.0
    assert result.confidence_score == 1.0
    assert result.sample_count == 3


def test_confidence_scales_with_sample_sufficiency() -> None:
    result = aggregate_compliance("emp-1", [compliance("c1")], AS_OF, make_profile())

    assert result.confidence_score == pytest.approx((1 / 3) * (1 / 3))


def test_result_does_not_depend_on_input_order() -> None:
    assessments = [
        compliance(f"c{index}", category=category, score=float(score), days_ago=index * 11)
        for index, (category, score) in enumerate(
            [
                ("cbus_status", 40),
                ("eba_status", -20),
                ("safety_incidents", 75),
                ("cbus_status", -5),
                ("eba_status", 90),
            ]
        )
    ]
    shuffled = list(assessments)
    random.Random(7).shuffle(shuffled)

    assert aggregate_compliance("emp-1", assessments, AS_OF, make_profile()) == (
        aggregate_compliance("emp-1", shuffled, AS_OF, make_profile())
    )
