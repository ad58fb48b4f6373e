"""Append-only audit trail for profile changes, overrides and calculations."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from ..protocols import AuditSink

AuditKind = Literal[
    "rating_calculated",
    "profile_created",
    "profile_edited",
    "profile_archived",
    "validation_override",
]


@dataclass(frozen=True)
class AuditEntry:
    entry_id: str
    kind: AuditKind
    actor: str
    timestamp: datetime
    subject_id: str
    before: Mapping[str, object] | None
    after: Mapping[str, object] | None
    reason: str = ""


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _new_entry_id() -> str:
    return uuid4().hex


class AuditLog:
    """Records who changed what, when and why."""

    def __init__(
        self,
        sink: AuditSink,
        *,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_entry_id,
    ) -> None:
        self._sink = sink
        self._clock = clock
        self._id_factory = id_factory

    def record(
        self,
        kind: AuditKind,
        *,
        actor: str,
        subject_id: str,
        before: Mapping[str, object] | None = None,
        after: Mapping[str, object] | None = None,
        reason: str = "",
    ) -> AuditEntry:
        entry = AuditEntry(
            entry_id=self._id_factory(),
            kind=kind,
            actor=actor,
            timestamp=self._clock(),
            subject_id=subject_id,
            before=dict(before) if before is not None else None,
            after=dict(after) if after is not None else None,
            reason=reason,
        )
        self._sink.append(entry)
        return entry

    def entries(
        self,
        *,
        kind: AuditKind | None = None,
        subject_id: str | None = None,
    ) -> list[AuditEntry]:
        """Return recorded entries, optionally filtered by kind and subject."""
        return [
            entry
            for entry in self._sink.entries()
            if (kind is None or entry.kind == kind)
            and (subject_id is None or entry.subject_id == subject_id)
        ]
