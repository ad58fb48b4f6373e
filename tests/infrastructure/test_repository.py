"""Tests for the CSV-backed assessment repository."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from employer_rating_engine.exceptions import AssessmentDataError
from employer_rating_engine.infrastructure import CsvAssessmentRepository, LocalFileSystem

EMPLOYERS_CSV = "employer_id,name\nemp-1,Harbour Civil\nemp-2,Northside Formwork\n"
COMPLIANCE_CSV = (
    "assessment_id,employer_id,assessment_type,score,confidence_level,assessment_date,"
    "severity_level,project_id\n"
    "ca-1,emp-1,cbus_status,80,high,2026-05-01T00:00:00+00:00,,proj-1\n"
    "ca-2,emp-1,eba_status,-40,medium,2026-05-02,3,\n"
    "ca-3,emp-1,cbus_status,10,low,2026-07-01T00:00:00+00:00,,\n"
)
EXPERTISE_CSV = (
    "assessment_id,employer_id,assessor_id,overall_score,category_scores,confidence_level,"
    "assessment_date,rationale\n"
    'ea-1,emp-2,org-7,60,"{""union_relationship"": 70, ""site_access"": 50}",high,'
    "2026-04-01T00:00:00+00:00,Cooperative\n"
)
AS_OF = datetime(2026, 6, 1, tzinfo=UTC)


def _write_data(data_dir: Path, *, organisers: str | None = None) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "employers.csv").write_text(EMPLOYERS_CSV, encoding="utf-8")
    (data_dir / "compliance_assessments.csv").write_text(COMPLIANCE_CSV, encoding="utf-8")
    (data_dir / "expertise_assessments.csv").write_text(EXPERTISE_CSV, encoding="utf-8")
    if organisers is not None:
        (data_dir / "organisers.csv").write_text(organisers, encoding="utf-8")


def test_repository_parses_assessments(tmp_path: Path) -> None:
    _write_data(tmp_path, organisers="organiser_id,confidence_multiplier\norg-7,1.2\n")
    repository = CsvAssessmentRepository(tmp_path, LocalFileSystem())

    assert repository.list_employer_ids() == ["emp-1", "emp-2"]
    assert repository.employer_exists("emp-2")
    assert not repository.employer_exists("emp-9")

    first, second = repository.compliance_assessments("emp-1", AS_OF)
    assert first.assessment_id == "ca-1"
    assert first.score == 80.0
    assert first.severity_level is None
    assert first.project_id == "proj-1"
    assert second.severity_level == 3
    assert second.project_id is None
    assert second.assessment_date == datetime(2026, 5, 2, tzinfo=UTC)

    [expertise] = repository.expertise_assessments("emp-2", AS_OF)
    assert dict(expertise.category_scores) == {"union_relationship": 70.0, "site_access": 50.0}
    assert expertise.rationale == "Cooperative"
    assert repository.organiser_multipliers() == {"org-7": 1.2}


def test_repository_hides_assessments_after_as_of(tmp_path: Path) -> None:
    _write_data(tmp_path)
    repository = CsvAssessmentRepository(tmp_path, LocalFileSystem())

    later = datetime(2026, 8, 1, tzinfo=UTC)

    assert len(repository.compliance_assessments("emp-1", AS_OF)) == 2
    assert len(repository.compliance_assessments("emp-1", later)) == 3
    assert repository.expertise_assessments("emp-1", later) == ()


def test_organisers_file_is_optional(tmp_path: Path) -> None:
    _write_data(tmp_path)

    assert CsvAssessmentRepository(tmp_path, LocalFileSystem()).organiser_multipliers() == {}


def test_missing_required_file_is_reported(tmp_path: Path) -> None:
    _write_data(tmp_path)
    (tmp_path / "expertise_assessments.csv").unlink()
    repository = CsvAssessmentRepository(tmp_path, LocalFileSystem())

    with pytest.raises(AssessmentDataError) as excinfo:
        repository.list_employer_ids()

    assert "file not found" in str(excinfo.value)


def test_malformed_row_is_reported_with_row_number(tmp_path: Path) -> None:
    _write_data(tmp_path)
    (tmp_path / "compliance_assessments.csv").write_text(
        COMPLIANCE_CSV + "ca-4,emp-2,cbus_status,lots,high,2026-05-01,,\n", encoding="utf-8"
    )
    repository = CsvAssessmentRepository(tmp_path, LocalFileSystem())

    with pytest.raises(AssessmentDataError) as excinfo:
        repository.employer_exists("emp-1")

    assert "compliance_assessments.csv row 4" in str(excinfo.value)


def test_missing_columns_are_reported(tmp_path: Path) -> None:
    _write_data(tmp_path)
    (tmp_path / "employers.csv").write_text("name\nHarbour Civil\n", encoding="utf-8")
    repository = CsvAssessmentRepository(tmp_path, LocalFileSystem())

    with pytest.raises(AssessmentDataError):
        repository.list_employer_ids()


def test_reload_picks_up_new_rows(tmp_path: Path) -> None:
    _write_data(tmp_path)
    repository = CsvAssessmentRepository(tmp_path, LocalFileSystem())
    assert repository.list_employer_ids() == ["emp-1", "emp-2"]

    (tmp_path / "employers.csv").write_text(EMPLOYERS_CSV + "emp-3,Ridge\n", encoding="utf-8")

    assert repository.list_employer_ids() == ["emp-1", "emp-2"]
    repository.reload()
    assert repository.list_employer_ids() == ["emp-1", "emp-2", "emp-3"]
