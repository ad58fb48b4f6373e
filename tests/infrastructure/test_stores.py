"""Tests for the CSV rating store and audit sink."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from pathlib import Path

import pytest

from employer_rating_engine.application.audit import AuditEntry
from employer_rating_engine.application.rating import StoredRating
from employer_rating_engine.domain.weighting import FinalRating, calculate_rating
from employer_rating_engine.exceptions import AssessmentDataError
from employer_rating_engine.infrastructure import CsvAuditSink, CsvRatingStore, LocalFileSystem
from tests.support.builders import (
    AS_OF,
    expertise,
    single_category_profile,
    well_evidenced_compliance,
)


def _rating(employer_id: str = "emp-1", raw_score: float = 60.0) -> FinalRating:
    return calculate_rating(
        employer_id,
        single_category_profile(),
        AS_OF,
        well_evidenced_compliance(employer_id, raw_score),
        [expertise("ea-1", employer_id=employer_id, scores={"union_relationship": 40.0})],
    )


def test_rating_round_trips_through_csv(tmp_path: Path) -> None:
    store = CsvRatingStore(tmp_path, LocalFileSystem())
    rating = _rating()

    store.save(StoredRating(rating=rating))
    loaded = store.latest("emp-1", "balanced")

    assert loaded is not None
    assert loaded.superseded_profile is False
    restored = loaded.rating
    assert restored.final_score == rating.final_score
    assert restored.final_rating_band == rating.final_rating_band
    assert restored.calculation_date == AS_OF
    assert restored.overall_confidence == rating.overall_confidence
    assert restored.discrepancy_severity == rating.discrepancy_severity
    assert restored.discrepancy_explanation == rating.discrepancy_explanation
    assert restored.weighting_profile_version == 1
    assert restored.inputs_snapshot == rating.inputs_snapshot
    assert restored.compliance_result.track_score == rating.compliance_result.track_score
    assert dict(restored.expertise_result.per_category_scores) == dict(
        rating.expertise_result.per_category_scores
    )


def test_latest_returns_newest_row_for_employer_and_profile(tmp_path: Path) -> None:
    store = CsvRatingStore(tmp_path, LocalFileSystem())
    first = _rating(raw_score=60.0)
    second = replace(_rating(raw_score=-20.0), calculation_date=AS_OF + timedelta(days=1))

    store.save(StoredRating(rating=first))
    store.save(StoredRating(rating=_rating("emp-2")))
    store.save(StoredRating(rating=second, superseded_profile=True))

    loaded = store.latest("emp-1", "balanced")

    assert loaded is not None
    assert loaded.rating.final_score == second.final_score
    assert loaded.superseded_profile is True
    assert store.latest("emp-1", "organiser-led") is None


def test_unknown_rating_keeps_empty_score(tmp_path: Path) -> None:
    store = CsvRatingStore(tmp_path, LocalFileSystem())
    rating = calculate_rating("emp-9", single_category_profile(), AS_OF, [], [])

    store.save(StoredRating(rating=rating))
    loaded = store.latest("emp-9", "balanced")

    assert loaded is not None
    assert loaded.rating.final_score is None
    assert loaded.rating.final_rating_band == "unknown"
    assert loaded.rating.insufficient_data is True
    assert loaded.rating.compliance_result.track_score is None


def test_latest_without_file_returns_none(tmp_path: Path) -> None:
    assert CsvRatingStore(tmp_path, LocalFileSystem()).latest("emp-1", "balanced") is None


def test_corrupted_rating_row_is_reported(tmp_path: Path) -> None:
    store = CsvRatingStore(tmp_path, LocalFileSystem())
    unknown = calculate_rating("emp-9", single_category_profile(), AS_OF, [], [])
    store.save(StoredRating(rating=unknown))
    path = tmp_path / "ratings.csv"
    path.write_text(path.read_text(encoding="utf-8").replace(",unknown,", ",teal,"), "utf-8")

    with pytest.raises(AssessmentDataError):
        store.latest("emp-9", "balanced")


def test_audit_entries_round_trip(tmp_path: Path) -> None:
    sink = CsvAuditSink(tmp_path, LocalFileSystem())
    edited = AuditEntry(
        entry_id="entry-1",
        kind="profile_edited",
        actor="alex",
        timestamp=AS_OF,
        subject_id="balanced",
        before={"version": 1, "project_data_weight": 0.6},
        after={"version": 2, "project_data_weight": 0.5},
        reason="More weight on organiser knowledge, per branch meeting",
    )
    calculated = AuditEntry(
        entry_id="entry-2",
        kind="rating_calculated",
        actor="system",
        timestamp=AS_OF + timedelta(minutes=5),
        subject_id="emp-1",
        before=None,
        after={"final_rating_band": "green"},
    )

    sink.append(edited)
    sink.append(calculated)

    assert sink.entries() == [edited, calculated]


def test_audit_entries_without_file_is_empty(tmp_path: Path) -> None:
    assert CsvAuditSink(tmp_path, LocalFileSystem()).entries() == []
