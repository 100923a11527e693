"""
Tests for environment configuration.
"""

import pytest

from perp_bot.config import BotConfig, reload_config


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:ABCDEFGHIJ")
    monkeypatch.setenv("TELEGRAM_BOT_USERNAME", "@perp_test_bot")
    monkeypatch.setenv("API_BASE_URL", "https://api.example.com/")
    return monkeypatch


class TestBotConfig:
    """BotConfig loading."""

    def test_required_values(self, env):
        config = BotConfig()

        assert config.is_valid()
        assert config.bot_username == "perp_test_bot"
        assert config.api_base_url == "https://api.example.com"

    def test_missing_values(self, monkeypatch):
        for name in ("TELEGRAM_BOT_TOKEN", "TELEGRAM_BOT_USERNAME", "API_BASE_URL"):
            monkeypatch.setenv(name, "")

        assert BotConfig().get_missing() == ["TELEGRAM_BOT_TOKEN", "TELEGRAM_BOT_USERNAME", "API_BASE_URL"]

    def test_numeric_overrides(self, env):
        env.setenv("SESSION_TTL_SECONDS", "120")
        env.setenv("API_TIMEOUT", "not-a-number")

        config = BotConfig()

        assert config.session_ttl_seconds == 120
        assert config.api_timeout == 30.0

    def test_unsupported_default_locale(self, env):
        env.setenv("DEFAULT_LOCALE", "fr")
        assert BotConfig().default_locale == "en"

    def test_mask_token(self, env):
        config = BotConfig()
        assert config.mask_token() == "1234...GHIJ"
        assert config.mask_token("short") == "***"

    def test_reload_picks_up_changes(self, env):
        env.setenv("LOG_LEVEL", "debug")
        assert reload_config().log_level == "DEBUG"
