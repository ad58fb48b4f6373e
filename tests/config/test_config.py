"""Tests for EngineConfig behaviour."""

import pytest

import employer_rating_engine.config as config_module
from employer_rating_engine.config import (
    DEFAULT_DATA_DIR,
    DEFAULT_PROFILES_PATH,
    EngineConfig,
    PositiveFloatEnvVarError,
    PositiveIntegerEnvVarError,
)
from employer_rating_engine.config_file import EngineConfigFile


def _patch_env(monkeypatch: pytest.MonkeyPatch, env: dict[str, str]) -> None:
    def fake_getenv(key: str, default: str = "") -> str:
        return env.get(key, default)

    def fake_load_dotenv(dotenv_path: str | None = None) -> bool:
        _ = dotenv_path
        return True

    monkeypatch.setattr(config_module.os, "getenv", fake_getenv)
    monkeypatch.setattr(config_module, "load_dotenv", fake_load_dotenv)


def test_from_env_uses_defaults_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(monkeypatch, {})

    config = EngineConfig.from_env()

    assert config == EngineConfig()
    assert config.data_dir == DEFAULT_DATA_DIR
    assert config.profiles_path == DEFAULT_PROFILES_PATH
    assert config.default_profile == ""
    assert config.batch_max_workers == 4
    assert config.timeout_seconds == 30.0
    assert config.actor == "system"


def test_from_env_reads_rating_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(
        monkeypatch,
        {
            "RATING_DATA_DIR": "/srv/ratings ",
            "RATING_PROFILES_PATH": "/srv/ratings/profiles.json",
            "RATING_DEFAULT_PROFILE": " organiser-led",
            "RATING_BATCH_MAX_WORKERS": "12",
            "RATING_TIMEOUT_SECONDS": "2.5",
            "RATING_ACTOR": "nightly-batch",
        },
    )

    config = EngineConfig.from_env()

    assert config.data_dir == "/srv/ratings"
    assert config.profiles_path == "/srv/ratings/profiles.json"
    assert config.default_profile == "organiser-led"
    assert config.batch_max_workers == 12
    assert config.timeout_seconds == 2.5
    assert config.actor == "nightly-batch"


def test_from_env_treats_blank_paths_as_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(monkeypatch, {"RATING_DATA_DIR": "  ", "RATING_ACTOR": ""})

    config = EngineConfig.from_env()

    assert config.data_dir == DEFAULT_DATA_DIR
    assert config.actor == "system"


@pytest.mark.parametrize("value", ["0", "-2", "four", "1.5"])
def test_from_env_rejects_invalid_worker_count(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    _patch_env(monkeypatch, {"RATING_BATCH_MAX_WORKERS": value})

    with pytest.raises(PositiveIntegerEnvVarError, match="RATING_BATCH_MAX_WORKERS"):
        EngineConfig.from_env()


@pytest.mark.parametrize("value", ["0", "-1.0", "soon"])
def test_from_env_rejects_invalid_timeout(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    _patch_env(monkeypatch, {"RATING_TIMEOUT_SECONDS": value})

    with pytest.raises(PositiveFloatEnvVarError, match="RATING_TIMEOUT_SECONDS"):
        EngineConfig.from_env()


def test_with_overrides_preserves_fields() -> None:
    base = EngineConfig(
        data_dir="data",
        profiles_path="data/reference/weighting_profiles.json",
        default_profile="balanced",
        batch_max_workers=3,
        timeout_seconds=10.0,
        actor="alex",
    )

    updated = base.with_overrides(batch_max_workers=8, default_profile=" organiser-led ")

    assert updated.batch_max_workers == 8
    assert updated.default_profile == "organiser-led"
    assert updated.data_dir == base.data_dir
    assert updated.profiles_path == base.profiles_path
    assert updated.timeout_seconds == base.timeout_seconds
    assert updated.actor == base.actor
    assert base.batch_max_workers == 3


def test_with_file_overrides_only_replaces_present_values() -> None:
    base = EngineConfig(actor="alex", timeout_seconds=10.0)

    updated = base.with_file_overrides(
        EngineConfigFile(data_dir="/srv/ratings", batch_max_workers=16)
    )

    assert updated.data_dir == "/srv/ratings"
    assert updated.batch_max_workers == 16
    assert updated.actor == "alex"
    assert updated.timeout_seconds == 10.0
    assert updated.profiles_path == DEFAULT_PROFILES_PATH
