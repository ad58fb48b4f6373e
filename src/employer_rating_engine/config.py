"""Centralised, injectable configuration for the Employer Rating Engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import EngineConfigFile

DEFAULT_DATA_DIR = "data"
DEFAULT_PROFILES_PATH = "data/reference/weighting_profiles.json"


class PositiveIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a positive integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive integer.")


class PositiveFloatEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration object for the rating engine.

    Load from environment with `EngineConfig.from_env()` or construct directly for testing.
    """

    data_dir: str = DEFAULT_DATA_DIR
    profiles_path: str = DEFAULT_PROFILES_PATH
    default_profile: str = ""  # empty: the catalogue default
    batch_max_workers: int = 4
    timeout_seconds: float = 30.0
    actor: str = "system"

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            EngineConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            data_dir=os.getenv("RATING_DATA_DIR", DEFAULT_DATA_DIR).strip() or DEFAULT_DATA_DIR,
            profiles_path=os.getenv("RATING_PROFILES_PATH", DEFAULT_PROFILES_PATH).strip()
            or DEFAULT_PROFILES_PATH,
            default_profile=os.getenv("RATING_DEFAULT_PROFILE", "").strip(),
            batch_max_workers=_parse_positive_int(
                os.getenv("RATING_BATCH_MAX_WORKERS", "4"), env_name="RATING_BATCH_MAX_WORKERS"
            ),
            timeout_seconds=_parse_positive_float(
                os.getenv("RATING_TIMEOUT_SECONDS", "30"), env_name="RATING_TIMEOUT_SECONDS"
            ),
            actor=os.getenv("RATING_ACTOR", "system").strip() or "system",
        )

    def with_overrides(
        self,
        *,
        data_dir: str | None = None,
        profiles_path: str | None = None,
        default_profile: str | None = None,
        batch_max_workers: int | None = None,
        timeout_seconds: float | None = None,
        actor: str | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            data_dir=self.data_dir if data_dir is None else data_dir.strip(),
            profiles_path=self.profiles_path if profiles_path is None else profiles_path.strip(),
            default_profile=self.default_profile
            if default_profile is None
            else default_profile.strip(),
            batch_max_workers=self.batch_max_workers
            if batch_max_workers is None
            else batch_max_workers,
            timeout_seconds=self.timeout_seconds if timeout_seconds is None else timeout_seconds,
            actor=self.actor if actor is None else actor.strip(),
        )

    def with_file_overrides(self, file_config: EngineConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        return replace(
            self,
            data_dir=self.data_dir if file_config.data_dir is None else file_config.data_dir,
            profiles_path=self.profiles_path
            if file_config.profiles_path is None
            else file_config.profiles_path,
            default_profile=self.default_profile
            if file_config.default_profile is None
            else file_config.default_profile,
            batch_max_workers=self.batch_max_workers
            if file_config.batch_max_workers is None
            else file_config.batch_max_workers,
            timeout_seconds=self.timeout_seconds
            if file_config.timeout_seconds is None
            else file_config.timeout_seconds,
            actor=self.actor if file_config.actor is None else file_config.actor,
        )


def _parse_positive_int(value: str, *, env_name: str) -> int:
    """Parse a positive integer from an environment variable."""
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise PositiveIntegerEnvVarError(env_name) from exc
    if parsed < 1:
        raise PositiveIntegerEnvVarError(env_name)
    return parsed


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a positive float from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveFloatEnvVarError(env_name) from exc
    if parsed <= 0.0:
        raise PositiveFloatEnvVarError(env_name)
    return parsed
