"""Single-employer rating: load inputs, compute, and persist with an audit trail."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime

from ..domain.assessments import ComplianceAssessment, ExpertiseAssessment
from ..domain.weighting import FinalRating, calculate_rating
from ..domain.weighting_profiles import WeightingProfile
from ..exceptions import CalculationTimeoutError, EmployerNotFoundError, ProfileArchivedError
from ..observability import get_logger
from ..protocols import AssessmentRepository, RatingStore
from .audit import AuditLog
from .weighting_profiles import ProfileRegistry


@dataclass(frozen=True)
class StoredRating:
    """A persisted rating plus the optimistic-concurrency tag."""

    rating: FinalRating
    superseded_profile: bool = False


@dataclass(frozen=True)
class RatingInputs:
    compliance: Sequence[ComplianceAssessment]
    expertise: Sequence[ExpertiseAssessment]
    organiser_multipliers: Mapping[str, float]


def ensure_profile_active(profile: WeightingProfile) -> None:
    if profile.archived:
        raise ProfileArchivedError(profile.profile_id, profile.version)


def load_inputs(
    repository: AssessmentRepository,
    employer_id: str,
    as_of: datetime,
) -> RatingInputs:
    """Read everything one calculation needs, as of a fixed instant."""
    if not repository.employer_exists(employer_id):
        raise EmployerNotFoundError(employer_id)
    return RatingInputs(
        compliance=tuple(repository.compliance_assessments(employer_id, as_of)),
        expertise=tuple(repository.expertise_assessments(employer_id, as_of)),
        organiser_multipliers=dict(repository.organiser_multipliers()),
    )


def compute_rating(
    repository: AssessmentRepository,
    employer_id: str,
    profile: WeightingProfile,
    as_of: datetime,
) -> FinalRating:
    inputs = load_inputs(repository, employer_id, as_of)
    return calculate_rating(
        employer_id,
        profile,
        as_of,
        inputs.compliance,
        inputs.expertise,
        inputs.organiser_multipliers,
    )


def compute_with_timeout(
    repository: AssessmentRepository,
    employer_id: str,
    profile: WeightingProfile,
    as_of: datetime,
    *,
    timeout_seconds: float,
) -> FinalRating:
    """Run ``compute_rating`` on a worker thread, abandoning it after the timeout.

    Raises:
        CalculationTimeoutError: When the computation does not finish in time.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rating")
    try:
        future = executor.submit(compute_rating, repository, employer_id, profile, as_of)
        try:
            return future.result(timeout=timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            raise CalculationTimeoutError(employer_id, timeout_seconds) from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def matches_stored(stored: StoredRating | None, rating: FinalRating) -> bool:
    """True when a stored rating used the same profile version and inputs."""
    if stored is None:
        return False
    return (
        stored.rating.profile_id == rating.profile_id
        and stored.rating.weighting_profile_version == rating.weighting_profile_version
        and stored.rating.inputs_snapshot == rating.inputs_snapshot
    )


def summarise_rating(rating: FinalRating) -> dict[str, object]:
    """Compact JSON-compatible view of a rating for audit entries."""
    return {
        "employer_id": rating.employer_id,
        "calculation_date": rating.calculation_date.isoformat(),
        "final_score": rating.final_score,
        "final_rating_band": rating.final_rating_band,
        "overall_confidence": rating.overall_confidence,
        "discrepancy_severity": rating.discrepancy_severity,
        "profile_id": rating.profile_id,
        "weighting_profile_version": rating.weighting_profile_version,
        "compliance_ids": list(rating.inputs_snapshot.compliance_ids),
        "expertise_ids": list(rating.inputs_snapshot.expertise_ids),
    }


class RatingRecorder:
    """Persists computed ratings and writes their audit entries.

    A rating computed against an older profile version than the registry's
    latest is still written, tagged ``superseded_profile``.
    """

    def __init__(
        self,
        *,
        store: RatingStore,
        audit_log: AuditLog,
        registry: ProfileRegistry,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._audit_log = audit_log
        self._registry = registry
        self._logger = logger or get_logger("employer_rating_engine.rating")

    def latest(self, employer_id: str, profile_id: str) -> StoredRating | None:
        return self._store.latest(employer_id, profile_id)

    def persist(self, rating: FinalRating, *, actor: str, reason: str = "") -> StoredRating:
        previous = self._store.latest(rating.employer_id, rating.profile_id)
        latest_version = self._registry.latest_version(rating.profile_id)
        superseded = latest_version > rating.weighting_profile_version
        if superseded:
            self._logger.warning(
                "Rating for %s used profile %s v%s but v%s is now current",
                rating.employer_id,
                rating.profile_id,
                rating.weighting_profile_version,
                latest_version,
            )
        stored = StoredRating(rating=rating, superseded_profile=superseded)
        self._store.save(stored)
        self._audit_log.record(
            "rating_calculated",
            actor=actor,
            subject_id=rating.employer_id,
            before=summarise_rating(previous.rating) if previous else None,
            after={**summarise_rating(rating), "superseded_profile": superseded},
            reason=reason,
        )
        return stored
