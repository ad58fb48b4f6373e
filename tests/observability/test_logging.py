"""Tests for shared observability logging."""

import logging
import time

import pytest

from employer_rating_engine.observability.logging import get_logger


def test_get_logger_formats_utc_timestamps(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    fixed = time.struct_time((2026, 6, 1, 3, 4, 5, 0, 152, 0))

    def fake_gmtime(_: float | None = None) -> time.struct_time:
        return fixed

    monkeypatch.setattr(time, "gmtime", fake_gmtime)

    name = "employer_rating_engine.test.logging"
    logger = get_logger(name)
    logger.info("Rated %s employers", 3)

    captured = capsys.readouterr()
    assert (
        "2026-06-01T03:04:05+0000 INFO employer_rating_engine.test.logging: Rated 3 employers"
        in captured.err
    )


def test_get_logger_is_singleton_per_name() -> None:
    name = "employer_rating_engine.test.logging.singleton"
    logger = get_logger(name)
    logger_again = get_logger(name, level=logging.DEBUG)

    assert logger is logger_again
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert logger.propagate is False


def test_get_logger_applies_level_on_first_configuration(
    capsys: pytest.CaptureFixture[str],
) -> None:
    logger = get_logger("employer_rating_engine.test.logging.quiet", level=logging.WARNING)

    logger.info("hidden")
    logger.warning("shown")

    captured = capsys.readouterr()
    assert "hidden" not in captured.err
    assert "WARNING employer_rating_engine.test.logging.quiet: shown" in captured.err
