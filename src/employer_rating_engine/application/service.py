"""Application facade: the operations a caller (CLI, API) performs on the engine."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime

from ..domain.discrepancy import DiscrepancyResult
from ..domain.profile_validation import ValidationResult, validate_profile
from ..domain.weighting import FinalRating
from ..domain.weighting_profiles import WeightingProfile
from ..observability import get_logger
from ..protocols import AssessmentRepository, ProgressReporter
from .batch import BatchCalculator, BatchCancellation, BatchHandle, BatchOptions, BatchResult
from .impact import ImpactPreview, preview_profile_change
from .rating import (
    RatingRecorder,
    StoredRating,
    compute_with_timeout,
    ensure_profile_active,
    matches_stored,
)
from .weighting_profiles import ProfileRef, ProfileRegistry, validate_profile_payload


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RatingService:
    """Loads inputs, runs the weighting engine and persists results.

    Repositories are read-only here; creating assessments belongs to the
    collaborator that owns them.
    """

    def __init__(
        self,
        *,
        repository: AssessmentRepository,
        registry: ProfileRegistry,
        recorder: RatingRecorder,
        max_workers: int = 4,
        timeout_seconds: float = 30.0,
        default_actor: str = "system",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._repository = repository
        self._registry = registry
        self._recorder = recorder
        self._max_workers = max_workers
        self._timeout_seconds = timeout_seconds
        self._default_actor = default_actor
        self._clock = clock
        self._logger = get_logger("employer_rating_engine.service")

    @property
    def registry(self) -> ProfileRegistry:
        return self._registry

    def resolve_profile(self, profile_ref: ProfileRef | None = None) -> WeightingProfile:
        profile = self._registry.get(profile_ref)
        ensure_profile_active(profile)
        return profile

    def _compute(
        self, employer_id: str, profile: WeightingProfile, as_of: datetime
    ) -> FinalRating:
        return compute_with_timeout(
            self._repository,
            employer_id,
            profile,
            as_of,
            timeout_seconds=self._timeout_seconds,
        )

    def calculate_final_rating(
        self,
        employer_id: str,
        profile_ref: ProfileRef | None = None,
        as_of: datetime | None = None,
        *,
        actor: str | None = None,
    ) -> FinalRating:
        """Compute and persist a rating.

        Raises:
            EmployerNotFoundError: If the employer is unknown.
            ProfileInvalidError: If the profile fails hard validation.
            ProfileArchivedError: If the profile is archived.
            CalculationTimeoutError: If the computation exceeds the timeout.
        """
        profile = self.resolve_profile(profile_ref)
        rating = self._compute(employer_id, profile, as_of or self._clock())
        stored = self._recorder.persist(
            rating, actor=actor or self._default_actor, reason="calculate"
        )
        self._log_rating(stored)
        return stored.rating

    def compare_tracks(
        self,
        employer_id: str,
        profile_ref: ProfileRef | None = None,
        as_of: datetime | None = None,
    ) -> DiscrepancyResult:
        """Compare the two tracks for an employer without persisting anything."""
        profile = self.resolve_profile(profile_ref)
        rating = self._compute(employer_id, profile, as_of or self._clock())
        return rating.discrepancy

    def recalculate(
        self,
        employer_id: str,
        profile_ref: ProfileRef | None = None,
        *,
        force: bool = False,
        as_of: datetime | None = None,
        actor: str | None = None,
    ) -> FinalRating:
        """Recompute a rating, reusing the stored one when nothing has changed."""
        profile = self.resolve_profile(profile_ref)
        rating = self._compute(employer_id, profile, as_of or self._clock())
        if not force:
            previous = self._recorder.latest(employer_id, profile.profile_id)
            if matches_stored(previous, rating):
                assert previous is not None
                self._logger.warning(
                    "Skipped %s: stored rating already uses %s v%s with the same inputs",
                    employer_id,
                    profile.profile_id,
                    profile.version,
                )
                return previous.rating
        stored = self._recorder.persist(
            rating,
            actor=actor or self._default_actor,
            reason="recalculate (forced)" if force else "recalculate",
        )
        self._log_rating(stored)
        return stored.rating

    def batch_calculator(self, progress: ProgressReporter | None = None) -> BatchCalculator:
        return BatchCalculator(
            repository=self._repository,
            recorder=self._recorder,
            max_workers=self._max_workers,
            timeout_seconds=self._timeout_seconds,
            progress=progress,
        )

    def run_batch(
        self,
        employer_ids: Iterable[str],
        profile_ref: ProfileRef | None = None,
        options: BatchOptions | None = None,
        *,
        as_of: datetime | None = None,
        actor: str | None = None,
        progress: ProgressReporter | None = None,
        cancellation: BatchCancellation | None = None,
    ) -> BatchResult:
        """Run a batch on the calling thread."""
        profile = self.resolve_profile(profile_ref)
        return self.batch_calculator(progress).run(
            employer_ids,
            profile,
            options,
            as_of=as_of or self._clock(),
            actor=actor or self._default_actor,
            cancellation=cancellation,
        )

    def batch_calculate(
        self,
        employer_ids: Iterable[str],
        profile_ref: ProfileRef | None = None,
        options: BatchOptions | None = None,
        *,
        as_of: datetime | None = None,
        actor: str | None = None,
        progress: ProgressReporter | None = None,
    ) -> BatchHandle:
        """Start a batch on a background thread and return a handle to it."""
        profile = self.resolve_profile(profile_ref)
        ids = list(employer_ids)
        batch_as_of = as_of or self._clock()
        calculator = self.batch_calculator(progress)

        def _run(cancellation: BatchCancellation) -> BatchResult:
            return calculator.run(
                ids,
                profile,
                options,
                as_of=batch_as_of,
                actor=actor or self._default_actor,
                cancellation=cancellation,
            )

        return BatchHandle(_run)

    def all_employer_ids(self) -> list[str]:
        return self._repository.list_employer_ids()

    def validate_profile(
        self, profile_or_payload: WeightingProfile | Mapping[str, object]
    ) -> ValidationResult:
        """Validate a typed profile or an untyped editor payload."""
        if isinstance(profile_or_payload, WeightingProfile):
            return validate_profile(profile_or_payload)
        return validate_profile_payload(profile_or_payload)

    def preview_profile_change(
        self,
        employer_ids: Iterable[str],
        current_ref: ProfileRef | None,
        proposed_profile: WeightingProfile,
        as_of: datetime | None = None,
    ) -> ImpactPreview:
        """Dry-run a proposed profile against the current one; persists nothing."""
        return preview_profile_change(
            self._repository,
            employer_ids,
            self._registry.get(current_ref),
            proposed_profile,
            as_of or self._clock(),
        )

    def _log_rating(self, stored: StoredRating) -> None:
        rating = stored.rating
        score = "n/a" if rating.final_score is None else f"{rating.final_score:.1f}"
        self._logger.info(
            "Rated %s: %s (score %s, confidence %s, profile %s v%s)",
            rating.employer_id,
            rating.final_rating_band,
            score,
            rating.overall_confidence,
            rating.profile_id,
            rating.weighting_profile_version,
        )
