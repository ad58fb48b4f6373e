"""CSV-backed stores for ratings and audit entries (append-only)."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from types import MappingProxyType

import pandas as pd

from ..application.audit import AuditEntry
from ..application.rating import StoredRating
from ..domain.assessments import TrackResult
from ..domain.weighting import FinalRating, InputsSnapshot
from ..exceptions import AssessmentDataError
from ..io_contracts import TrackResultIO
from ..protocols import AuditSink, FileSystem, RatingStore
from ..schemas import AUDIT_LOG_COLUMNS, RATING_COLUMNS, validate_columns
from .io.validation import IncomingDataError, parse_audit_row, parse_rating_row

RATINGS_FILE = "ratings.csv"
AUDIT_LOG_FILE = "audit_log.csv"


def _json(value: object) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def rating_to_record(stored: StoredRating) -> dict[str, str]:
    """Flatten a stored rating into one CSV row of strings."""
    rating = stored.rating
    return {
        "employer_id": rating.employer_id,
        "calculation_date": rating.calculation_date.isoformat(),
        "final_score": "" if rating.final_score is None else repr(rating.final_score),
        "final_rating_band": rating.final_rating_band,
        "project_based_rating": rating.project_based_rating,
        "expertise_based_rating": rating.expertise_based_rating,
        "overall_confidence": rating.overall_confidence,
        "data_completeness": repr(rating.data_completeness),
        "discrepancy_detected": _flag(rating.discrepancy_detected),
        "discrepancy_severity": rating.discrepancy_severity,
        "discrepancy_explanation": rating.discrepancy_explanation,
        "profile_id": rating.profile_id,
        "weighting_profile_version": str(rating.weighting_profile_version),
        "compliance_ids": _json(list(rating.inputs_snapshot.compliance_ids)),
        "expertise_ids": _json(list(rating.inputs_snapshot.expertise_ids)),
        "track_results": _json([track.to_snapshot() for track in rating.track_results]),
        "insufficient_data": _flag(rating.insufficient_data),
        "superseded_profile": _flag(stored.superseded_profile),
    }


def _track_from_record(record: TrackResultIO, contributing_ids: list[str]) -> TrackResult:
    return TrackResult(
        track=record["track"],
        track_score=record["track_score"],
        per_category_scores=MappingProxyType(dict(record["per_category_scores"])),
        data_completeness=record["data_completeness"],
        sample_count=record["sample_count"],
        confidence_score=record["confidence_score"],
        contributing_ids=tuple(contributing_ids),
    )


def rating_from_record(row: dict[str, object]) -> StoredRating:
    """Rebuild a stored rating from a CSV row.

    Raises:
        IncomingDataError: If the row is malformed.
    """
    record = parse_rating_row(row)
    tracks = {track["track"]: track for track in record["track_results"]}
    if set(tracks) != {"compliance", "expertise"}:
        raise IncomingDataError("track_results must hold one compliance and one expertise track.")
    rating = FinalRating(
        employer_id=record["employer_id"],
        calculation_date=record["calculation_date"],
        final_score=record["final_score"],
        final_rating_band=record["final_rating_band"],
        project_based_rating=record["project_based_rating"],
        expertise_based_rating=record["expertise_based_rating"],
        overall_confidence=record["overall_confidence"],
        data_completeness=record["data_completeness"],
        discrepancy_detected=record["discrepancy_detected"],
        discrepancy_severity=record["discrepancy_severity"],
        discrepancy_explanation=record["discrepancy_explanation"],
        profile_id=record["profile_id"],
        weighting_profile_version=record["weighting_profile_version"],
        inputs_snapshot=InputsSnapshot(
            compliance_ids=tuple(record["compliance_ids"]),
            expertise_ids=tuple(record["expertise_ids"]),
        ),
        track_results=(
            _track_from_record(tracks["compliance"], record["compliance_ids"]),
            _track_from_record(tracks["expertise"], record["expertise_ids"]),
        ),
        insufficient_data=record["insufficient_data"],
    )
    return StoredRating(rating=rating, superseded_profile=record["superseded_profile"])


class CsvRatingStore(RatingStore):
    """Appends ratings to ``ratings.csv``; the newest row wins."""

    def __init__(self, data_dir: Path, fs: FileSystem) -> None:
        self._path = data_dir / RATINGS_FILE
        self._fs = fs
        self._lock = threading.Lock()

    def save(self, stored: StoredRating) -> None:
        row = pd.DataFrame([rating_to_record(stored)], columns=list(RATING_COLUMNS))
        with self._lock:
            self._fs.append_csv(row, self._path)

    def latest(self, employer_id: str, profile_id: str) -> StoredRating | None:
        with self._lock:
            if not self._fs.exists(self._path):
                return None
            df = self._fs.read_csv(self._path).fillna("")
        validate_columns(list(df.columns), frozenset(RATING_COLUMNS), RATINGS_FILE)
        matches = df[(df["employer_id"] == employer_id) & (df["profile_id"] == profile_id)]
        if matches.empty:
            return None
        row = {str(key): value for key, value in matches.iloc[-1].to_dict().items()}
        try:
            return rating_from_record(row)
        except IncomingDataError as exc:
            raise AssessmentDataError(str(self._path), str(exc)) from exc


class CsvAuditSink(AuditSink):
    """Appends audit entries to ``audit_log.csv`` with JSON snapshots."""

    def __init__(self, data_dir: Path, fs: FileSystem) -> None:
        self._path = data_dir / AUDIT_LOG_FILE
        self._fs = fs
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        row = pd.DataFrame(
            [
                {
                    "entry_id": entry.entry_id,
                    "kind": entry.kind,
                    "actor": entry.actor,
                    "timestamp": entry.timestamp.isoformat(),
                    "subject_id": entry.subject_id,
                    "before": "" if entry.before is None else _json(dict(entry.before)),
                    "after": "" if entry.after is None else _json(dict(entry.after)),
                    "reason": entry.reason,
                }
            ],
            columns=list(AUDIT_LOG_COLUMNS),
        )
        with self._lock:
            self._fs.append_csv(row, self._path)

    def entries(self) -> list[AuditEntry]:
        with self._lock:
            if not self._fs.exists(self._path):
                return []
            df = self._fs.read_csv(self._path).fillna("")
        validate_columns(list(df.columns), frozenset(AUDIT_LOG_COLUMNS), AUDIT_LOG_FILE)
        entries: list[AuditEntry] = []
        for index, row in enumerate(df.to_dict(orient="records")):
            try:
                parsed = parse_audit_row(row)
            except IncomingDataError as exc:
                raise AssessmentDataError(f"{AUDIT_LOG_FILE} row {index + 1}", str(exc)) from exc
            entries.append(
                AuditEntry(
                    entry_id=parsed["entry_id"],
                    kind=parsed["kind"],
                    actor=parsed["actor"],
                    timestamp=parsed["timestamp"],
                    subject_id=parsed["subject_id"],
                    before=parsed["before"],
                    after=parsed["after"],
                    reason=parsed["reason"],
                )
            )
        return entries
