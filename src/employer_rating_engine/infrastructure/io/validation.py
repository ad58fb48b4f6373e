"""Pydantic-based validation helpers for stored rows and inbound payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from ...io_contracts import (
    AuditEntryIO,
    ComplianceAssessmentIO,
    ExpertiseAssessmentIO,
    OrganiserIO,
    RatingRecordIO,
    TrackResultIO,
)


SchemaT = TypeVar("SchemaT")


class IncomingDataError(ValueError):
    """Raised when inbound data fails validation."""


def _first_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{location}: {first.get('msg', 'invalid value')}"


def validate_as(schema: type[SchemaT], payload: object) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        message = f"Invalid payload for {schema} ({_first_error(exc)})."
        raise IncomingDataError(message) from exc


def validate_json_as(schema: type[SchemaT], payload: str | bytes | bytearray) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_json(payload)
    except ValidationError as exc:
        message = f"Invalid JSON payload for {schema} ({_first_error(exc)})."
        raise IncomingDataError(message) from exc


def _blank_to_none(value: object) -> object:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _as_str(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _require_text(row: Mapping[str, object], *keys: str) -> None:
    for key in keys:
        if not _as_str(row.get(key)):
            raise IncomingDataError(f"Missing value for {key}.")


def _json_column(value: object, default: str) -> str:
    text = _as_str(value)
    return text or default


def parse_compliance_row(row: Mapping[str, object]) -> ComplianceAssessmentIO:
    _require_text(row, "assessment_id", "employer_id", "assessment_type")
    parsed = validate_as(
        ComplianceAssessmentIO,
        {
            "assessment_id": _as_str(row.get("assessment_id")),
            "employer_id": _as_str(row.get("employer_id")),
            "assessment_type": _as_str(row.get("assessment_type")),
            "score": row.get("score"),
            "confidence_level": _as_str(row.get("confidence_level")),
            "assessment_date": row.get("assessment_date"),
            "severity_level": _blank_to_none(row.get("severity_level")),
            "project_id": _blank_to_none(row.get("project_id")),
        },
    )
    parsed["assessment_date"] = _as_utc(parsed["assessment_date"])
    return parsed


def parse_expertise_row(row: Mapping[str, object]) -> ExpertiseAssessmentIO:
    _require_text(row, "assessment_id", "employer_id", "assessor_id")
    category_scores = validate_json_as(
        dict[str, float], _json_column(row.get("category_scores"), "{}")
    )
    parsed = validate_as(
        ExpertiseAssessmentIO,
        {
            "assessment_id": _as_str(row.get("assessment_id")),
            "employer_id": _as_str(row.get("employer_id")),
            "assessor_id": _as_str(row.get("assessor_id")),
            "overall_score": row.get("overall_score"),
            "category_scores": category_scores,
            "confidence_level": _as_str(row.get("confidence_level")),
            "assessment_date": row.get("assessment_date"),
            "rationale": _as_str(row.get("rationale")),
        },
    )
    parsed["assessment_date"] = _as_utc(parsed["assessment_date"])
    return parsed


def parse_organiser_row(row: Mapping[str, object]) -> OrganiserIO:
    _require_text(row, "organiser_id")
    return validate_as(
        OrganiserIO,
        {
            "organiser_id": _as_str(row.get("organiser_id")),
            "confidence_multiplier": row.get("confidence_multiplier"),
        },
    )


def parse_rating_row(row: Mapping[str, object]) -> RatingRecordIO:
    _require_text(row, "employer_id", "profile_id")
    payload = dict(row)
    payload["final_score"] = _blank_to_none(row.get("final_score"))
    payload["compliance_ids"] = validate_json_as(
        list[str], _json_column(row.get("compliance_ids"), "[]")
    )
    payload["expertise_ids"] = validate_json_as(
        list[str], _json_column(row.get("expertise_ids"), "[]")
    )
    payload["track_results"] = validate_json_as(
        list[TrackResultIO], _json_column(row.get("track_results"), "[]")
    )
    parsed = validate_as(RatingRecordIO, payload)
    parsed["calculation_date"] = _as_utc(parsed["calculation_date"])
    return parsed


def parse_audit_row(row: Mapping[str, object]) -> AuditEntryIO:
    _require_text(row, "entry_id", "kind")
    payload = dict(row)
    for key in ("before", "after"):
        text = _as_str(row.get(key))
        payload[key] = validate_json_as(dict[str, object], text) if text else None
    payload["reason"] = _as_str(row.get("reason"))
    parsed = validate_as(AuditEntryIO, payload)
    parsed["timestamp"] = _as_utc(parsed["timestamp"])
    return parsed
