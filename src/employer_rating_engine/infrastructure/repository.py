"""CSV-backed, read-only assessment repository.

Expected layout under the data directory:

- ``employers.csv``
- ``compliance_assessments.csv``
- ``expertise_assessments.csv`` (``category_scores`` holds a JSON object)
- ``organisers.csv`` (optional; missing organisers use the profile default)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import MappingProxyType

import pandas as pd

from ..domain.assessments import ComplianceAssessment, ExpertiseAssessment
from ..exceptions import AssessmentDataError
from ..observability import get_logger
from ..protocols import AssessmentRepository, FileSystem
from ..schemas import (
    COMPLIANCE_REQUIRED_COLUMNS,
    EMPLOYER_COLUMNS,
    EXPERTISE_REQUIRED_COLUMNS,
    ORGANISER_COLUMNS,
    validate_columns,
)
from .io.validation import (
    IncomingDataError,
    parse_compliance_row,
    parse_expertise_row,
    parse_organiser_row,
)

EMPLOYERS_FILE = "employers.csv"
COMPLIANCE_FILE = "compliance_assessments.csv"
EXPERTISE_FILE = "expertise_assessments.csv"
ORGANISERS_FILE = "organisers.csv"


@dataclass(frozen=True)
class _Snapshot:
    employer_ids: tuple[str, ...]
    compliance: MappingProxyType[str, tuple[ComplianceAssessment, ...]]
    expertise: MappingProxyType[str, tuple[ExpertiseAssessment, ...]]
    multipliers: MappingProxyType[str, float]


class CsvAssessmentRepository(AssessmentRepository):
    """Reads the assessment CSVs once and serves immutable views of them."""

    def __init__(self, data_dir: Path, fs: FileSystem) -> None:
        self._data_dir = data_dir
        self._fs = fs
        self._lock = threading.Lock()
        self._snapshot: _Snapshot | None = None
        self._logger = get_logger("employer_rating_engine.repository")

    def employer_exists(self, employer_id: str) -> bool:
        return employer_id in self._load().employer_ids

    def list_employer_ids(self) -> list[str]:
        return list(self._load().employer_ids)

    def compliance_assessments(
        self, employer_id: str, as_of: datetime
    ) -> tuple[ComplianceAssessment, ...]:
        return tuple(
            assessment
            for assessment in self._load().compliance.get(employer_id, ())
            if assessment.assessment_date <= as_of
        )

    def expertise_assessments(
        self, employer_id: str, as_of: datetime
    ) -> tuple[ExpertiseAssessment, ...]:
        return tuple(
            assessment
            for assessment in self._load().expertise.get(employer_id, ())
            if assessment.assessment_date <= as_of
        )

    def organiser_multipliers(self) -> MappingProxyType[str, float]:
        return self._load().multipliers

    def reload(self) -> None:
        with self._lock:
            self._snapshot = None

    def _load(self) -> _Snapshot:
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._read_all()
            return self._snapshot

    def _read(self, filename: str, required: frozenset[str]) -> pd.DataFrame:
        path = self._data_dir / filename
        if not self._fs.exists(path):
            raise AssessmentDataError(str(path), "file not found")
        df = self._fs.read_csv(path).fillna("")
        try:
            validate_columns(list(df.columns), required, filename)
        except ValueError as exc:
            raise AssessmentDataError(str(path), str(exc)) from exc
        return df

    def _read_all(self) -> _Snapshot:
        employers = self._read(EMPLOYERS_FILE, frozenset(EMPLOYER_COLUMNS[:1]))
        names = (str(value).strip() for value in employers["employer_id"])
        employer_ids = tuple(dict.fromkeys(name for name in names if name))

        compliance: dict[str, list[ComplianceAssessment]] = {}
        for index, row in enumerate(
            self._read(COMPLIANCE_FILE, COMPLIANCE_REQUIRED_COLUMNS).to_dict(orient="records")
        ):
            try:
                parsed = parse_compliance_row(row)
            except IncomingDataError as exc:
                raise AssessmentDataError(f"{COMPLIANCE_FILE} row {index + 1}", str(exc)) from exc
            compliance.setdefault(parsed["employer_id"], []).append(
                ComplianceAssessment(
                    assessment_id=parsed["assessment_id"],
                    employer_id=parsed["employer_id"],
                    assessment_type=parsed["assessment_type"],
                    score=parsed["score"],
                    confidence_level=parsed["confidence_level"],
                    assessment_date=parsed["assessment_date"],
                    severity_level=parsed["severity_level"],
                    project_id=parsed["project_id"],
                )
            )

        expertise: dict[str, list[ExpertiseAssessment]] = {}
        for index, row in enumerate(
            self._read(EXPERTISE_FILE, EXPERTISE_REQUIRED_COLUMNS).to_dict(orient="records")
        ):
            try:
                parsed_expertise = parse_expertise_row(row)
            except IncomingDataError as exc:
                raise AssessmentDataError(f"{EXPERTISE_FILE} row {index + 1}", str(exc)) from exc
            expertise.setdefault(parsed_expertise["employer_id"], []).append(
                ExpertiseAssessment(
                    assessment_id=parsed_expertise["assessment_id"],
                    employer_id=parsed_expertise["employer_id"],
                    assessor_id=parsed_expertise["assessor_id"],
                    overall_score=parsed_expertise["overall_score"],
                    category_scores=MappingProxyType(parsed_expertise["category_scores"]),
                    confidence_level=parsed_expertise["confidence_level"],
                    assessment_date=parsed_expertise["assessment_date"],
                    rationale=parsed_expertise["rationale"],
                )
            )

        multipliers: dict[str, float] = {}
        if self._fs.exists(self._data_dir / ORGANISERS_FILE):
            organisers = self._read(ORGANISERS_FILE, frozenset(ORGANISER_COLUMNS))
            for index, row in enumerate(organisers.to_dict(orient="records")):
                try:
                    organiser = parse_organiser_row(row)
                except IncomingDataError as exc:
                    raise AssessmentDataError(
                        f"{ORGANISERS_FILE} row {index + 1}", str(exc)
                    ) from exc
                multipliers[organiser["organiser_id"]] = organiser["confidence_multiplier"]

        self._logger.info(
            "Loaded %s employers, %s compliance and %s expertise assessments",
            len(employer_ids),
            sum(len(rows) for rows in compliance.values()),
            sum(len(rows) for rows in expertise.values()),
        )
        return _Snapshot(
            employer_ids=employer_ids,
            compliance=MappingProxyType({key: tuple(rows) for key, rows in compliance.items()}),
            expertise=MappingProxyType({key: tuple(rows) for key, rows in expertise.items()}),
            multipliers=MappingProxyType(multipliers),
        )
