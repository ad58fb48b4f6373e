"""Composition root for wiring CLI dependencies."""

from __future__ import annotations

from pathlib import Path

from .application.audit import AuditLog
from .application.rating import RatingRecorder
from .application.service import RatingService
from .application.weighting_profiles import open_profile_registry
from .cli import CliDependencies, create_app
from .config import EngineConfig
from .config_file import EngineConfigFile, load_engine_config_file
from .infrastructure import CsvAssessmentRepository, CsvAuditSink, CsvRatingStore, LocalFileSystem


def build_cli_dependencies(*, config: EngineConfig) -> CliDependencies:
    """Build concrete dependencies for CLI commands.

    Args:
        config: Engine configuration (data locations, pool size, timeouts).
    """
    fs = LocalFileSystem()
    data_dir = Path(config.data_dir)
    audit_log = AuditLog(CsvAuditSink(data_dir, fs))
    registry = open_profile_registry(path=Path(config.profiles_path), fs=fs, audit_log=audit_log)
    recorder = RatingRecorder(
        store=CsvRatingStore(data_dir, fs),
        audit_log=audit_log,
        registry=registry,
    )
    service = RatingService(
        repository=CsvAssessmentRepository(data_dir, fs),
        registry=registry,
        recorder=recorder,
        max_workers=config.batch_max_workers,
        timeout_seconds=config.timeout_seconds,
        default_actor=config.actor,
    )
    return CliDependencies(fs=fs, service=service)


def load_config_file(path: Path) -> EngineConfigFile:
    return load_engine_config_file(path=path, fs=LocalFileSystem())


app = create_app(build_cli_dependencies, load_config_file)
