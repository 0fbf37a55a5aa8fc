from __future__ import annotations

import logging
import os
from datetime import timedelta

import pytest

from soulsmith.config import (
    ConfigurationError,
    MissingConfigurationError,
    PipelineConfig,
    configure_logging,
    get_pipeline_config,
    require_env_vars,
)
from soulsmith.config.env import env_float, env_int, optional_env


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " value ")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)
    assert exc.value.names == ("BLANK_VAR", "MISSING_VAR")


def test_optional_env_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEMP_VAR", "  ")

    assert optional_env("TEMP_VAR") is None
    assert os.getenv("TEMP_VAR") == "  "


def test_numeric_env_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INT_VAR", "12")
    monkeypatch.setenv("FLOAT_VAR", "1.5")
    monkeypatch.setenv("BAD_VAR", "twelve")

    assert env_int("INT_VAR", 3) == 12
    assert env_float("FLOAT_VAR", 3.0) == 1.5
    assert env_int("UNSET_VAR_FOR_TEST", 3) == 3
    with pytest.raises(ConfigurationError):
        env_int("BAD_VAR", 3)


def test_pipeline_defaults() -> None:
    config = PipelineConfig()

    assert config.fallback_confidence == pytest.approx(0.70)
    assert config.condensation_threshold == 10
    assert config.max_score_delta == 15
    assert config.pending_timeout == timedelta(minutes=30)
    assert config.max_souls_per_owner == 5


def test_pipeline_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONDENSATION_THRESHOLD", "4")
    monkeypatch.setenv("LEDGER_DISPATCH_INTERVAL_SECONDS", "2.5")

    config = get_pipeline_config()

    assert config.condensation_threshold == 4
    assert config.dispatch_interval == 2.5


def test_configure_logging_quiets_http_stack() -> None:
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        configure_logging(level=logging.DEBUG, force=True)

        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("soulsmith").getEffectiveLevel() == logging.DEBUG
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)
        logging.getLogger("httpx").setLevel(logging.NOTSET)
