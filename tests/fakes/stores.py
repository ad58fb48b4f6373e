"""Rating store and audit sink fakes for tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing_extensions import override

from employer_rating_engine.application.audit import AuditEntry
from employer_rating_engine.application.rating import StoredRating
from employer_rating_engine.protocols import AuditSink, RatingStore


def _empty_ratings() -> list[StoredRating]:
    return []


def _empty_entries() -> list[AuditEntry]:
    return []


@dataclass
class InMemoryRatingStore(RatingStore):
    """Append-only in-memory rating store."""

    saved: list[StoredRating] = field(default_factory=_empty_ratings)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @override
    def latest(self, employer_id: str, profile_id: str) -> StoredRating | None:
        with self._lock:
            for stored in reversed(self.saved):
                if (
                    stored.rating.employer_id == employer_id
                    and stored.rating.profile_id == profile_id
                ):
                    return stored
        return None

    @override
    def save(self, stored: StoredRating) -> None:
        with self._lock:
            self.saved.append(stored)


@dataclass
class InMemoryAuditSink(AuditSink):
    """Append-only in-memory audit sink."""

    recorded: list[AuditEntry] = field(default_factory=_empty_entries)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @override
    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            self.recorded.append(entry)

    @override
    def entries(self) -> list[AuditEntry]:
        with self._lock:
            return list(self.recorded)
