"""
Tests for environment-driven settings.
"""

import pytest

from parallelizer.config import (
    DEFAULT_MAX_PROCESSES,
    DEFAULT_POLL_INTERVAL,
    ENV_LOG_LEVEL,
    ENV_MAX_PROCESSES,
    ENV_POLL_INTERVAL,
    load_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (ENV_MAX_PROCESSES, ENV_POLL_INTERVAL, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings()

        assert settings.max_processes == DEFAULT_MAX_PROCESSES
        assert settings.poll_interval == DEFAULT_POLL_INTERVAL
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv(ENV_MAX_PROCESSES, "8")
        monkeypatch.setenv(ENV_POLL_INTERVAL, "0.5")
        monkeypatch.setenv(ENV_LOG_LEVEL, "debug")

        settings = load_settings()

        assert settings.max_processes == 8
        assert settings.poll_interval == 0.5
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize("raw", ["zero", "0", "-2", "1.5", "  "])
    def test_invalid_max_processes_falls_back(self, monkeypatch, raw):
        monkeypatch.setenv(ENV_MAX_PROCESSES, raw)

        assert load_settings().max_processes == DEFAULT_MAX_PROCESSES

    def test_invalid_poll_interval_falls_back(self, monkeypatch):
        monkeypatch.setenv(ENV_POLL_INTERVAL, "-1")

        assert load_settings().poll_interval == DEFAULT_POLL_INTERVAL
