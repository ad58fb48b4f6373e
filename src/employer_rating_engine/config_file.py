"""Typed parsing and validation for engine config files.

Example ``rating.toml``:

    schema_version = 1

    [engine]
    data_dir = "data"
    batch_max_workers = 8
    timeout_seconds = 45.0
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError
from .protocols import FileSystem

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class EngineConfigFile:
    """Validated engine config values loaded from a TOML file."""

    data_dir: str | None = None
    profiles_path: str | None = None
    default_profile: str | None = None
    batch_max_workers: int | None = None
    timeout_seconds: float | None = None
    actor: str | None = None


class _EngineSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    data_dir: str | None = None
    profiles_path: str | None = None
    default_profile: str | None = None
    batch_max_workers: int | None = None
    timeout_seconds: float | None = None
    actor: str | None = None

    @field_validator("data_dir", "profiles_path", "default_profile", "actor")
    @classmethod
    def _validate_non_empty_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        if not text:
            raise ValueError
        return text

    @field_validator("batch_max_workers")
    @classmethod
    def _validate_positive_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 1:
            raise ValueError
        return value

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_positive_float(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0.0:
            raise ValueError
        return value


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    engine: _EngineSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_engine_config_file(*, path: Path, fs: FileSystem) -> EngineConfigFile:
    """Load and validate an engine TOML config file."""
    if not fs.exists(path):
        raise ConfigFileNotFoundError(str(path))

    raw_payload = fs.read_text(path)
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    section = model.engine
    return EngineConfigFile(
        data_dir=section.data_dir,
        profiles_path=section.profiles_path,
        default_profile=section.default_profile,
        batch_max_workers=section.batch_max_workers,
        timeout_seconds=section.timeout_seconds,
        actor=section.actor,
    )
