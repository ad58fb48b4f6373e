"""Tests for discrepancy detection between the two tracks."""

from __future__ import annotations

from itertools import product
from types import MappingProxyType

from employer_rating_engine.domain.assessments import TrackName, TrackResult
from employer_rating_engine.domain.bands import RatingBand
from employer_rating_engine.domain.discrepancy import detect_discrepancy


def _track(
    track: TrackName,
    scores: dict[str, float] | None = None,
    confidence: float = 0.5,
) -> TrackResult:
    per_category = scores or {}
    return TrackResult(
        track=track,
        track_score=sum(per_category.values()) / len(per_category) if per_category else None,
        per_category_scores=MappingProxyType(per_category),
        data_completeness=1.0,
        sample_count=len(per_category),
        confidence_score=confidence,
        contributing_ids=(),
    )


def test_matching_bands_are_not_a_discrepancy() -> None:
    result = detect_discrepancy("amber", "amber", _track("compliance"), _track("expertise"))

    assert not result.detected
    assert result.severity == "none"


def test_one_band_apart_is_minor_two_is_major() -> None:
    track1, track2 = _track("compliance"), _track("expertise")

    assert detect_discrepancy("green", "amber", track1, track2).severity == "minor"
    assert detect_discrepancy("green", "red", track1, track2).severity == "major"


def test_confident_disagreement_escalates() -> None:
    track1 = _track("compliance", confidence=0.9)
    track2 = _track("expertise", confidence=0.95)

    assert detect_discrepancy("green", "amber", track1, track2).severity == "major"
    critical = detect_discrepancy("green", "red", track1, track2)
    assert critical.severity == "critical"
    assert "Both tracks are high confidence." in critical.explanation


def test_one_confident_track_does_not_escalate() -> None:
    track1 = _track("compliance", confidence=0.9)
    track2 = _track("expertise", confidence=0.7)

    assert detect_discrepancy("green", "red", track1, track2).severity == "major"


def test_unknown_band_is_never_compared() -> None:
    result = detect_discrepancy("unknown", "red", _track("compliance"), _track("expertise"))

    assert not result.detected
    assert result.severity == "none"


def test_explanation_ranks_categories_by_divergence() -> None:
    track1 = _track(
        "compliance",
        {"cbus_status": 90.0, "eba_status": 50.0, "safety": 70.0, "site_access": 10.0},
    )
    track2 = _track(
        "expertise",
        {"cbus_status": 10.0, "eba_status": 45.0, "safety": 40.0, "site_access": 30.0},
    )

    result = detect_discrepancy("green", "red", track1, track2)

    assert result.diverging_categories == ("cbus_status", "safety", "site_access")
    assert "cbus_status (90.0 vs 10.0)" in result.explanation
    assert "eba_status" not in result.explanation


def test_explanation_without_shared_categories() -> None:
    result = detect_discrepancy(
        "green",
        "red",
        _track("compliance", {"cbus_status": 90.0}),
        _track("expertise", {"union_relationship": 10.0}),
    )

    assert result.diverging_categories == ()
    assert "share no assessed categories" in result.explanation


def test_detection_is_direction_independent() -> None:
    bands: tuple[RatingBand, ...] = ("green", "amber", "red", "unknown")
    for band_a, band_b, conf_a, conf_b in product(bands, bands, (0.3, 0.9), (0.3, 0.9)):
        track_a = _track("compliance", {"cbus_status": 80.0}, conf_a)
        track_b = _track("expertise", {"cbus_status": 20.0}, conf_b)

        forward = detect_discrepancy(band_a, band_b, track_a, track_b)
        backward = detect_discrepancy(band_b, band_a, track_b, track_a)

        assert (forward.detected, forward.severity) == (backward.detected, backward.severity)
