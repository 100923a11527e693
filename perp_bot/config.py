"""
Configuration for the perp trading bot.

Values come from the environment only. A `.env` file next to the project
root (or in the working directory) is loaded first so local runs do not
need exported variables. Secrets never appear in logs: use mask_token().
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()


SUPPORTED_LOCALES: Tuple[str, ...] = ("en", "zh-CN", "ko")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class BotConfig:
    """Telegram bot configuration."""

    # === REQUIRED ===
    telegram_token: str = field(default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN", "").strip())
    bot_username: str = field(
        default_factory=lambda: os.getenv("TELEGRAM_BOT_USERNAME", "").strip().lstrip("@")
    )
    api_base_url: str = field(default_factory=lambda: os.getenv("API_BASE_URL", "").strip().rstrip("/"))

    # === BACKEND API ===
    api_timeout: float = field(default_factory=lambda: _env_float("API_TIMEOUT", 30.0))
    api_max_retries: int = field(default_factory=lambda: _env_int("API_MAX_RETRIES", 2))
    api_retry_delay: float = field(default_factory=lambda: _env_float("API_RETRY_DELAY", 1.0))

    # === SESSIONS ===
    # Abandoned flows are evicted after this many idle seconds
    session_ttl_seconds: int = field(default_factory=lambda: _env_int("SESSION_TTL_SECONDS", 300))
    session_sweep_interval: int = field(default_factory=lambda: _env_int("SESSION_SWEEP_INTERVAL", 60))

    # === LOCALIZATION ===
    default_locale: str = field(default_factory=lambda: os.getenv("DEFAULT_LOCALE", "en"))
    supported_locales: Tuple[str, ...] = SUPPORTED_LOCALES

    # === LOGGING ===
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # === SUPPORT ===
    support_contact: str = field(default_factory=lambda: os.getenv("SUPPORT_CONTACT", "@support"))

    def __post_init__(self):
        if self.default_locale not in self.supported_locales:
            self.default_locale = "en"

    def is_valid(self) -> bool:
        """Check if minimum required config is set."""
        return not self.get_missing()

    def get_missing(self) -> List[str]:
        """Get list of missing required config."""
        missing = []
        if not self.telegram_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.bot_username:
            missing.append("TELEGRAM_BOT_USERNAME")
        if not self.api_base_url:
            missing.append("API_BASE_URL")
        return missing

    def mask_token(self, token: Optional[str] = None) -> str:
        """Mask a secret for safe logging."""
        key = self.telegram_token if token is None else token
        if not key or len(key) < 8:
            return "***"
        return f"{key[:4]}...{key[-4:]}"


_config: Optional[BotConfig] = None


def get_config() -> BotConfig:
    """Get singleton config instance."""
    global _config
    if _config is None:
        _config = BotConfig()
    return _config


def reload_config() -> BotConfig:
    """Reload config from the environment and reset the singleton."""
    global _config
    _config = BotConfig()
    return _config
