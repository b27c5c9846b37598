"""
Unit tests for static configuration loading.
"""

import pytest

from src.core.config.config import Config, Environment


@pytest.fixture
def reload_config(monkeypatch):
    """Apply environment overrides, then restore Config after the test."""

    def _apply(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        Config.load()

    yield _apply

    monkeypatch.undo()
    Config.load()


@pytest.mark.unit
class TestConfigLoading:
    def test_testing_environment_is_active(self):
        assert Config.environment() == Environment.TESTING
        assert Config.is_testing() is True
        assert Config.is_production() is False

    def test_values_read_from_environment(self, reload_config):
        reload_config(
            CACHE_TTL_PROFILE_SECONDS="120",
            CACHE_KEY_PREFIX="staging",
            ADMIN_EMAIL="admin@cortex.test",
            AUTH_SERVICE_URL="http://auth.internal/",
        )

        assert Config.CACHE_TTL_PROFILE_SECONDS == 120
        assert Config.CACHE_KEY_PREFIX == "staging"
        assert Config.ADMIN_EMAIL == "admin@cortex.test"
        assert Config.AUTH_SERVICE_URL == "http://auth.internal"

    @pytest.mark.parametrize("raw", ["abc", "0", "-5"])
    def test_invalid_integer_falls_back_to_default(self, reload_config, raw):
        reload_config(CACHE_TTL_CATALOG_SECONDS=raw)

        assert Config.CACHE_TTL_CATALOG_SECONDS == 86400

    def test_fetch_limit_clamped_to_max(self, reload_config):
        reload_config(QUESTION_FETCH_LIMIT="80", QUESTION_MAX_LIMIT="20")

        assert Config.QUESTION_FETCH_LIMIT == 20

    def test_boolean_parsing(self, reload_config):
        reload_config(DATABASE_ECHO="yes", DEBUG="maybe")

        assert Config.DATABASE_ECHO is True
        assert Config.DEBUG is False

    def test_unknown_environment_defaults_to_development(self):
        assert Environment.from_string("qa") == Environment.DEVELOPMENT

    def test_summary_hides_connection_strings(self):
        summary = Config.get_config_summary()

        assert summary["environment"] == "testing"
        assert "://" not in summary["database_scheme"]
        assert "://" not in summary["redis_scheme"]
