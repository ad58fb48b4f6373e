"""Batch recalculation across many employers with isolated failures.

Usage example:
    from employer_rating_engine.application.batch import BatchCalculator, BatchOptions

    calculator = BatchCalculator(repository=repository, recorder=recorder, max_workers=4)
    result = calculator.run(["employer-1", "employer-2"], profile, BatchOptions(dry_run=True))
    print(result.summary.succeeded, result.summary.failed)
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from ..domain.weighting import FinalRating
from ..domain.weighting_profiles import WeightingProfile
from ..observability import get_logger
from ..protocols import AssessmentRepository, ProgressReporter
from .rating import RatingRecorder, compute_rating, ensure_profile_active, matches_stored

BatchStatus = Literal["succeeded", "failed", "skipped", "timed_out", "not_started"]


@dataclass(frozen=True)
class BatchOptions:
    dry_run: bool = False
    force_recalculate: bool = False


@dataclass(frozen=True)
class EmployerBatchStatus:
    employer_id: str
    status: BatchStatus
    rating: FinalRating | None = None
    error: str | None = None
    superseded_profile: bool = False


@dataclass(frozen=True)
class BatchSummary:
    total: int
    succeeded: int
    failed: int
    skipped: int
    timed_out: int
    not_started: int
    cancelled: bool
    superseded: int
    duration_seconds: float


@dataclass(frozen=True)
class BatchResult:
    statuses: tuple[EmployerBatchStatus, ...]
    summary: BatchSummary
    dry_run: bool = False

    def status_for(self, employer_id: str) -> EmployerBatchStatus:
        for status in self.statuses:
            if status.employer_id == employer_id:
                return status
        raise KeyError(employer_id)


class BatchCancellation:
    """Thread-safe cancellation flag checked between employer submissions."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class BatchHandle:
    """A batch running on a background thread."""

    def __init__(self, runner: Callable[[BatchCancellation], BatchResult]) -> None:
        self._cancellation = BatchCancellation()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rating-batch")
        self._future = executor.submit(runner, self._cancellation)
        executor.shutdown(wait=False)

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> None:
        self._cancellation.cancel()

    def result(self, timeout: float | None = None) -> BatchResult:
        """Block until the batch finishes; re-raises coordinator failures."""
        return self._future.result(timeout=timeout)


def _unique(employer_ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for employer_id in employer_ids:
        if employer_id not in seen:
            seen.add(employer_id)
            ordered.append(employer_id)
    return ordered


class BatchCalculator:
    """Rates many employers on a bounded worker pool.

    Workers only compute. The coordinating thread collects results from
    futures, applies the cache check and persists, so a timed-out or failed
    computation never leaves a partial record behind.
    """

    def __init__(
        self,
        *,
        repository: AssessmentRepository,
        recorder: RatingRecorder,
        max_workers: int = 4,
        timeout_seconds: float = 30.0,
        progress: ProgressReporter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self._recorder = recorder
        self._max_workers = max(1, max_workers)
        self._timeout_seconds = timeout_seconds
        self._progress = progress
        self._clock = clock
        self._logger = get_logger("employer_rating_engine.batch")

    def run(
        self,
        employer_ids: Iterable[str],
        profile: WeightingProfile,
        options: BatchOptions | None = None,
        *,
        as_of: datetime | None = None,
        actor: str = "system",
        cancellation: BatchCancellation | None = None,
    ) -> BatchResult:
        """Rate every employer and return one status per employer.

        Raises:
            ProfileArchivedError: If the profile is archived (nothing is scheduled).
        """
        ensure_profile_active(profile)
        options = options or BatchOptions()
        cancellation = cancellation or BatchCancellation()
        # Fixed for the whole batch so assessments arriving mid-run are ignored.
        as_of = as_of or datetime.now(UTC)
        ordered = _unique(employer_ids)
        queue = deque(ordered)
        statuses: dict[str, EmployerBatchStatus] = {}
        pending: dict[Future[FinalRating], tuple[str, float]] = {}
        # Timed-out computations still occupy a worker until they return.
        abandoned: set[Future[FinalRating]] = set()
        started = self._clock()

        self._logger.info(
            "Batch start: %s employers, profile %s v%s, workers=%s, dry_run=%s",
            len(ordered),
            profile.profile_id,
            profile.version,
            self._max_workers,
            options.dry_run,
        )
        if self._progress is not None:
            self._progress.start("Rating employers", len(ordered))

        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="rating-worker"
        )
        try:
            while queue or pending:
                abandoned = {future for future in abandoned if not future.done()}
                capacity = self._max_workers - len(pending) - len(abandoned)
                while queue and capacity > 0 and not cancellation.is_cancelled:
                    employer_id = queue.popleft()
                    future = executor.submit(
                        compute_rating, self._repository, employer_id, profile, as_of
                    )
                    pending[future] = (employer_id, self._clock() + self._timeout_seconds)
                    capacity -= 1

                if not pending:
                    if queue and not cancellation.is_cancelled and abandoned:
                        # Every worker is stuck on an abandoned computation.
                        done_abandoned, _ = wait(
                            abandoned, timeout=self._timeout_seconds, return_when=FIRST_COMPLETED
                        )
                        if done_abandoned:
                            continue
                        for employer_id in queue:
                            statuses[employer_id] = self._timed_out(employer_id)
                            self._advance()
                        queue.clear()
                    break

                nearest_deadline = min(deadline for _, deadline in pending.values())
                done, _ = wait(
                    pending,
                    timeout=max(0.0, nearest_deadline - self._clock()),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    employer_id, _ = pending.pop(future)
                    statuses[employer_id] = self._collect(
                        employer_id, future, profile, options, actor
                    )
                    self._advance()

                now = self._clock()
                for future, (employer_id, deadline) in list(pending.items()):
                    if deadline <= now:
                        del pending[future]
                        if not future.cancel():
                            abandoned.add(future)
                        statuses[employer_id] = self._timed_out(employer_id)
                        self._advance()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
            if self._progress is not None:
                self._progress.finish()

        cancelled = cancellation.is_cancelled
        for employer_id in queue:
            statuses[employer_id] = EmployerBatchStatus(
                employer_id=employer_id, status="not_started"
            )

        ordered_statuses = tuple(statuses[employer_id] for employer_id in ordered)
        summary = _summarise(ordered_statuses, cancelled, self._clock() - started)
        self._logger.info(
            "Batch done: %s succeeded, %s skipped, %s failed, %s timed out, %s not started",
            summary.succeeded,
            summary.skipped,
            summary.failed,
            summary.timed_out,
            summary.not_started,
        )
        return BatchResult(statuses=ordered_statuses, summary=summary, dry_run=options.dry_run)

    def _collect(
        self,
        employer_id: str,
        future: Future[FinalRating],
        profile: WeightingProfile,
        options: BatchOptions,
        actor: str,
    ) -> EmployerBatchStatus:
        try:
            rating = future.result()
            if not options.force_recalculate:
                previous = self._recorder.latest(employer_id, profile.profile_id)
                if previous is not None and matches_stored(previous, rating):
                    return EmployerBatchStatus(
                        employer_id=employer_id,
                        status="skipped",
                        rating=previous.rating,
                        superseded_profile=previous.superseded_profile,
                    )
            if options.dry_run:
                return EmployerBatchStatus(
                    employer_id=employer_id, status="succeeded", rating=rating
                )
            reason = "batch (forced)" if options.force_recalculate else "batch"
            stored = self._recorder.persist(rating, actor=actor, reason=reason)
        except Exception as exc:
            self._logger.warning("Rating failed for %s: %s", employer_id, exc)
            return EmployerBatchStatus(employer_id=employer_id, status="failed", error=str(exc))
        return EmployerBatchStatus(
            employer_id=employer_id,
            status="succeeded",
            rating=stored.rating,
            superseded_profile=stored.superseded_profile,
        )

    def _timed_out(self, employer_id: str) -> EmployerBatchStatus:
        self._logger.warning(
            "Rating timed out for %s after %.1fs", employer_id, self._timeout_seconds
        )
        return EmployerBatchStatus(
            employer_id=employer_id,
            status="timed_out",
            error=f"exceeded {self._timeout_seconds:g} seconds",
        )

    def _advance(self) -> None:
        if self._progress is not None:
            self._progress.advance(1)


def _summarise(
    statuses: tuple[EmployerBatchStatus, ...],
    cancelled: bool,
    duration_seconds: float,
) -> BatchSummary:
    def count(status: BatchStatus) -> int:
        return sum(1 for item in statuses if item.status == status)

    return BatchSummary(
        total=len(statuses),
        succeeded=count("succeeded"),
        failed=count("failed"),
        skipped=count("skipped"),
        timed_out=count("timed_out"),
        not_started=count("not_started"),
        cancelled=cancelled,
        superseded=sum(
            1 for item in statuses if item.status == "succeeded" and item.superseded_profile
        ),
        duration_seconds=duration_seconds,
    )
