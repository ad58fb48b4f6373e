"""CLI for the Employer Rating Engine.

Commands:
- validate-profile: Check a weighting profile JSON payload
- calculate: Compute and store a final rating for one employer
- compare: Show how the compliance and expertise tracks disagree
- recalculate: Recompute a rating, reusing the stored one if nothing changed
- batch: Recalculate many employers on a bounded worker pool
- preview: Dry-run a proposed profile against the current one
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Protocol

import typer
from rich import print as rprint

from .application.batch import BatchOptions, BatchResult
from .application.service import RatingService
from .application.weighting_profiles import ProfileRef, profile_from_payload
from .cli_progress import CliProgressReporter
from .config import EngineConfig
from .config_file import EngineConfigFile
from .domain.weighting import FinalRating
from .exceptions import RatingEngineError
from .protocols import FileSystem

BAND_STYLES = {"green": "green", "amber": "yellow", "red": "red", "unknown": "dim"}


class DependenciesBuilder(Protocol):
    """Protocol for constructing CLI dependencies."""

    def __call__(self, *, config: EngineConfig) -> CliDependencies:
        """Build dependencies for CLI commands."""
        ...


@dataclass(frozen=True)
class CliDependencies:
    """Concrete dependencies required by the CLI."""

    fs: FileSystem
    service: RatingService


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: EngineConfig
    deps_builder: DependenciesBuilder

    def build_dependencies(self, *, config: EngineConfig | None = None) -> CliDependencies:
        """Return dependencies using the configured builder."""
        return self.deps_builder(config=config or self.config)


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the employer-rating entry point.")


class EmployerSelectionError(typer.BadParameter):
    """Raised when a batch names no employers."""

    def __init__(self) -> None:
        super().__init__("Pass at least one --employer or use --all.")


class AsOfFormatError(typer.BadParameter):
    """Raised when --as-of is not an ISO 8601 date or datetime."""

    def __init__(self, value: str) -> None:
        super().__init__(f"--as-of must be an ISO 8601 date or datetime (got {value!r}).")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _parse_as_of(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise AsOfFormatError(value) from exc
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _profile_ref(config: EngineConfig, profile: str | None, version: int | None) -> ProfileRef:
    return ProfileRef(profile_id=(profile or config.default_profile).strip(), version=version)


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Render engine errors as a red message and exit code 1."""
    try:
        yield
    except RatingEngineError as exc:
        rprint(f"[red]✗ {exc}[/red]")
        raise typer.Exit(code=1) from exc


def _format_score(score: float | None) -> str:
    return "n/a" if score is None else f"{score:.1f}"


def _print_rating(rating: FinalRating) -> None:
    style = BAND_STYLES[rating.final_rating_band]
    rprint(
        f"[{style}]● {rating.final_rating_band.upper()}[/{style}] "
        f"{rating.employer_id}: score {_format_score(rating.final_score)}, "
        f"confidence {rating.overall_confidence}"
    )
    rprint(
        f"  Compliance: {rating.project_based_rating} "
        f"({_format_score(rating.compliance_result.track_score)}, "
        f"{rating.compliance_result.sample_count} assessments)"
    )
    rprint(
        f"  Expertise: {rating.expertise_based_rating} "
        f"({_format_score(rating.expertise_result.track_score)}, "
        f"{rating.expertise_result.sample_count} assessments)"
    )
    rprint(f"  Completeness: {rating.data_completeness:.0%}")
    rprint(f"  Profile: {rating.profile_id} v{rating.weighting_profile_version}")
    if rating.discrepancy_detected:
        rprint(
            f"[yellow]  Discrepancy ({rating.discrepancy_severity}): "
            f"{rating.discrepancy_explanation}[/yellow]"
        )


def _print_batch(result: BatchResult) -> None:
    summary = result.summary
    heading = "Batch dry run complete" if result.dry_run else "Batch complete"
    rprint(f"[green]✓ {heading}:[/green] {summary.total} employers")
    rprint(f"  succeeded: {summary.succeeded}")
    rprint(f"  skipped (unchanged): {summary.skipped}")
    rprint(f"  failed: {summary.failed}")
    rprint(f"  timed out: {summary.timed_out}")
    if summary.cancelled:
        rprint(f"[yellow]  cancelled, not started: {summary.not_started}[/yellow]")
    if summary.superseded:
        rprint(f"[yellow]  written against a superseded profile: {summary.superseded}[/yellow]")
    for status in result.statuses:
        if status.error:
            rprint(f"[red]  {status.employer_id}: {status.status} ({status.error})[/red]")
    rprint(f"  Duration: {summary.duration_seconds:.1f}s")


def create_app(
    deps_builder: DependenciesBuilder,
    config_loader: Callable[[Path], EngineConfigFile] | None = None,
) -> typer.Typer:
    """Create a Typer app wired with the provided dependencies builder."""
    app = typer.Typer(
        add_completion=False,
        help="Employer rating engine: combine compliance data and organiser expertise.",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="TOML config file (overrides environment)"),
        ] = None,
    ) -> None:
        """Initialise CLI context."""
        config = EngineConfig.from_env()
        if config_path is not None:
            if config_loader is None:
                raise typer.BadParameter("Config files are not supported by this entry point.")
            with _engine_errors():
                config = config.with_file_overrides(config_loader(config_path))
        ctx.obj = CliContext(config=config, deps_builder=deps_builder)

    @app.command(name="validate-profile")
    def validate_profile_command(
        ctx: typer.Context,
        path: Annotated[Path, typer.Argument(help="Weighting profile JSON payload")],
    ) -> None:
        """Validate a weighting profile payload; exit code 1 on hard errors."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        if not deps.fs.exists(path):
            rprint(f"[red]✗ Profile payload not found: {path}[/red]")
            raise typer.Exit(code=1)
        result = deps.service.validate_profile(deps.fs.read_json(path))
        for issue in result.errors:
            rprint(f"[red]✗ {issue.field} ({issue.code}): {issue.message}[/red]")
        for issue in result.warnings:
            rprint(f"[yellow]! {issue.field} ({issue.code}): {issue.message}[/yellow]")
        if not result.is_valid:
            raise typer.Exit(code=1)
        rprint(f"[green]✓ Profile is valid[/green] ({len(result.warnings)} warnings)")

    @app.command()
    def calculate(
        ctx: typer.Context,
        employer_id: Annotated[str, typer.Argument(help="Employer identifier")],
        profile: Annotated[
            str | None, typer.Option("--profile", "-p", help="Weighting profile ID")
        ] = None,
        version: Annotated[
            int | None, typer.Option("--version", help="Profile version (default: latest)")
        ] = None,
        as_of: Annotated[
            str | None, typer.Option("--as-of", help="Rate as of this ISO date (default: now)")
        ] = None,
    ) -> None:
        """Calculate and store the final rating for one employer."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _engine_errors():
            rating = deps.service.calculate_final_rating(
                employer_id,
                _profile_ref(state.config, profile, version),
                _parse_as_of(as_of),
                actor=state.config.actor,
            )
        _print_rating(rating)

    @app.command()
    def compare(
        ctx: typer.Context,
        employer_id: Annotated[str, typer.Argument(help="Employer identifier")],
        profile: Annotated[
            str | None, typer.Option("--profile", "-p", help="Weighting profile ID")
        ] = None,
        as_of: Annotated[
            str | None, typer.Option("--as-of", help="Compare as of this ISO date (default: now)")
        ] = None,
    ) -> None:
        """Compare the compliance and expertise tracks without storing anything."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _engine_errors():
            result = deps.service.compare_tracks(
                employer_id,
                _profile_ref(state.config, profile, None),
                _parse_as_of(as_of),
            )
        if result.detected:
            rprint(f"[yellow]! Discrepancy ({result.severity})[/yellow]")
        else:
            rprint("[green]✓ No discrepancy[/green]")
        rprint(f"  {result.explanation}")

    @app.command()
    def recalculate(
        ctx: typer.Context,
        employer_id: Annotated[str, typer.Argument(help="Employer identifier")],
        profile: Annotated[
            str | None, typer.Option("--profile", "-p", help="Weighting profile ID")
        ] = None,
        force: Annotated[
            bool, typer.Option("--force", help="Recompute even when nothing changed")
        ] = False,
    ) -> None:
        """Recalculate one employer's rating."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        with _engine_errors():
            rating = deps.service.recalculate(
                employer_id,
                _profile_ref(state.config, profile, None),
                force=force,
                actor=state.config.actor,
            )
        _print_rating(rating)

    @app.command()
    def batch(
        ctx: typer.Context,
        employer: Annotated[
            list[str] | None,
            typer.Option("--employer", "-e", help="Employer ID (repeatable)"),
        ] = None,
        all_employers: Annotated[
            bool, typer.Option("--all", help="Rate every known employer")
        ] = False,
        profile: Annotated[
            str | None, typer.Option("--profile", "-p", help="Weighting profile ID")
        ] = None,
        dry_run: Annotated[
            bool, typer.Option("--dry-run", help="Compute without storing ratings")
        ] = False,
        force: Annotated[
            bool, typer.Option("--force", help="Recompute unchanged employers too")
        ] = False,
        workers: Annotated[
            int | None, typer.Option("--workers", min=1, help="Concurrent calculations")
        ] = None,
    ) -> None:
        """Recalculate ratings for many employers with isolated failures."""
        state = _get_context(ctx)
        config = state.config.with_overrides(batch_max_workers=workers)
        deps = state.build_dependencies(config=config)
        with _engine_errors():
            employer_ids = deps.service.all_employer_ids() if all_employers else employer or []
            if not employer_ids:
                raise EmployerSelectionError()
            handle = deps.service.batch_calculate(
                employer_ids,
                _profile_ref(config, profile, None),
                BatchOptions(dry_run=dry_run, force_recalculate=force),
                actor=config.actor,
                progress=CliProgressReporter(),
            )
            try:
                result = handle.result()
            except KeyboardInterrupt:
                rprint("[yellow]Cancelling: in-flight employers will finish[/yellow]")
                handle.cancel()
                result = handle.result()
        _print_batch(result)
        if result.summary.failed or result.summary.timed_out:
            raise typer.Exit(code=1)

    @app.command()
    def preview(
        ctx: typer.Context,
        proposed_path: Annotated[Path, typer.Argument(help="Proposed profile JSON payload")],
        employer: Annotated[
            list[str] | None,
            typer.Option("--employer", "-e", help="Employer ID (default: all employers)"),
        ] = None,
        profile: Annotated[
            str | None, typer.Option("--profile", "-p", help="Current weighting profile ID")
        ] = None,
        output: Annotated[
            Path | None, typer.Option("--output", "-o", help="Write per-employer changes CSV")
        ] = None,
    ) -> None:
        """Preview how a proposed profile would change ratings; stores nothing."""
        state = _get_context(ctx)
        deps = state.build_dependencies()
        if not deps.fs.exists(proposed_path):
            rprint(f"[red]✗ Profile payload not found: {proposed_path}[/red]")
            raise typer.Exit(code=1)
        with _engine_errors():
            proposed = profile_from_payload(deps.fs.read_json(proposed_path))
            employer_ids = employer or deps.service.all_employer_ids()
            result = deps.service.preview_profile_change(
                employer_ids,
                _profile_ref(state.config, profile, None),
                proposed,
            )
        rprint(
            f"[green]✓ Preview complete:[/green] {result.employers_evaluated} employers, "
            f"impact {result.overall_impact_level}"
        )
        rprint(f"  improved: {result.ratings_improved}")
        rprint(f"  declined: {result.ratings_declined}")
        rprint(f"  unchanged: {result.ratings_unchanged}")
        rprint(f"  band changes: {result.band_changes}")
        rprint(f"  average score change: {result.average_score_change:+.1f}")
        for issue in result.proposed_validation.warnings:
            rprint(f"[yellow]! {issue.field}: {issue.message}[/yellow]")
        for recommendation in result.recommendations:
            rprint(f"  → {recommendation}")
        if output is not None:
            deps.fs.write_csv(result.changes, output)
            rprint(f"  Changes: {output}")

    return app
