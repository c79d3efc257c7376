"""Tests for oneclick.core.settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from oneclick.core.settings import OneClickSettings, get_settings


class TestOneClickSettings:
    """Defaults, environment and derived paths."""

    def test_defaults(self, monkeypatch):
        for key in ("ONECLICK_STATE_DIR", "ONECLICK_MARKER_BACKEND", "ONECLICK_LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)
        settings = OneClickSettings(_env_file=None)
        assert settings.state_dir == Path("/var/lib/genai-oneclick")
        assert settings.marker_backend == "files"
        assert settings.default_max_attempts == 5
        assert settings.default_base_delay == 5.0
        assert settings.readiness_timeout == 900.0
        assert settings.readiness_interval == 5.0
        assert "Database configuration failed" in settings.tolerated_signals

    def test_marker_locations_follow_state_dir(self, tmp_path):
        settings = OneClickSettings(_env_file=None, state_dir=tmp_path)
        assert settings.marker_dir == tmp_path / "markers"
        assert settings.marker_db == tmp_path / "markers.db"

    def test_environment_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ONECLICK_STATE_DIR", str(tmp_path))
        monkeypatch.setenv("ONECLICK_MARKER_BACKEND", "sqlite")
        monkeypatch.setenv("ONECLICK_DEFAULT_MAX_ATTEMPTS", "7")
        settings = OneClickSettings(_env_file=None)
        assert settings.state_dir == tmp_path
        assert settings.marker_backend == "sqlite"
        assert settings.default_max_attempts == 7

    def test_log_level_is_uppercased(self):
        assert OneClickSettings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError):
            OneClickSettings(_env_file=None, marker_backend="redis")

    def test_rejects_non_positive_readiness_timeout(self):
        with pytest.raises(ValidationError):
            OneClickSettings(_env_file=None, readiness_timeout=0)


class TestGetSettings:
    """Process-wide cached settings."""

    def test_cached_until_cleared(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ONECLICK_STATE_DIR", str(tmp_path / "a"))
        first = get_settings()
        monkeypatch.setenv("ONECLICK_STATE_DIR", str(tmp_path / "b"))
        assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings().state_dir == tmp_path / "b"
