"""Tests for configuration management.

Tests cover:
- Settings defaults
- Environment variable overrides
- Field validators (log_level, log_format, spawn_timeout)
- Settings caching (lru_cache)
"""

import os
import sys

import pytest
from pydantic import ValidationError

from osquery_client.config import DEFAULT_SOCKET_PATH, Settings, get_settings

pytestmark = pytest.mark.unit


class TestSettingsDefaults:
    """Test Settings has correct default values."""

    def test_socket_path_default(self, settings):
        assert settings.socket_path == DEFAULT_SOCKET_PATH

    def test_platform_default_socket(self):
        if sys.platform == "win32":
            assert DEFAULT_SOCKET_PATH == r"\\.\pipe\osquery-client"
        else:
            assert DEFAULT_SOCKET_PATH == "/tmp/osquery-client"

    def test_readiness_wait_is_unbounded_by_default(self, settings):
        """No deadline and no sleep between probes unless configured."""
        assert settings.spawn_timeout is None
        assert settings.poll_interval == 0.0

    def test_executable_default(self, settings):
        assert settings.executable is None

    def test_log_defaults(self, settings):
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"


class TestEnvironmentOverrides:
    """Test Settings can be overridden via OSQUERY_* environment variables."""

    def test_socket_path_override(self, monkeypatch):
        monkeypatch.setenv("OSQUERY_SOCKET_PATH", "/var/osquery/osquery.em")

        assert Settings(_env_file=None).socket_path == "/var/osquery/osquery.em"

    def test_spawn_timeout_override(self, monkeypatch):
        monkeypatch.setenv("OSQUERY_SPAWN_TIMEOUT", "2.5")

        assert Settings(_env_file=None).spawn_timeout == 2.5

    def test_poll_interval_override(self, monkeypatch):
        monkeypatch.setenv("OSQUERY_POLL_INTERVAL", "0.01")

        assert Settings(_env_file=None).poll_interval == 0.01

    def test_executable_override(self, monkeypatch):
        monkeypatch.setenv("OSQUERY_EXECUTABLE", "/opt/osquery/bin/osqueryd")

        assert Settings(_env_file=None).executable == "/opt/osquery/bin/osqueryd"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("OSQUERY_SOCKET_PATH=/from/dotenv.em\n")

        assert Settings(_env_file=str(env_file)).socket_path == "/from/dotenv.em"


class TestValidators:
    def test_log_level_normalised(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_log_level_rejects_unknown(self):
        with pytest.raises(ValidationError, match="log_level"):
            Settings(_env_file=None, log_level="LOUD")

    def test_log_format_normalised(self):
        assert Settings(_env_file=None, log_format="JSON").log_format == "json"

    def test_log_format_rejects_unknown(self):
        with pytest.raises(ValidationError, match="log_format"):
            Settings(_env_file=None, log_format="xml")

    def test_spawn_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="spawn_timeout"):
            Settings(_env_file=None, spawn_timeout=0)

    def test_poll_interval_not_negative(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, poll_interval=-1)


class TestSettingsCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_environment(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("OSQUERY_SOCKET_PATH", "/tmp/other.em")
        get_settings.cache_clear()

        second = get_settings()

        assert second is not first
        assert second.socket_path == "/tmp/other.em"
        assert os.environ["OSQUERY_SOCKET_PATH"] == "/tmp/other.em"
