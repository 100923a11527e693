"""
Per-user language preference.

New users get the locale detected from Telegram's ``language_code``;
the choice is stored for a year under ``user:lang:{id}`` and can be
changed with /language.
"""

import logging
from typing import Any, Optional

from perp_bot.cache import Cache
from perp_bot.i18n import Translator, normalize_locale

logger = logging.getLogger(__name__)

LANGUAGE_TTL_SECONDS = 365 * 24 * 60 * 60

LANGUAGE_NAMES = {
    "en": "English",
    "zh-CN": "简体中文",
    "ko": "한국어",
}


def language_key(user_id: int) -> str:
    return f"user:lang:{user_id}"


class LanguageResolver:
    """
    Resolves and persists user locales.

    Args:
        cache: Cache holding preferences
        translator: Translator whose locales are considered supported
    """

    def __init__(self, cache: Cache, translator: Translator):
        self._cache = cache
        self._translator = translator

    async def resolve(self, user: Optional[Any]) -> str:
        """Locale for a telegram.User; the default locale when unknown."""
        default = self._translator.default_locale
        if user is None:
            return default

        stored = await self._cache.get(language_key(user.id))
        if stored and self._translator.has_locale(stored):
            return stored

        detected = normalize_locale(getattr(user, "language_code", None), self._translator.locales)
        await self._cache.set(language_key(user.id), detected, ttl_seconds=LANGUAGE_TTL_SECONDS)
        logger.debug(f"Detected locale {detected} for user {user.id}")
        return detected

    async def set_language(self, user_id: int, locale: str) -> bool:
        """Store an explicit choice. False if the locale is unsupported."""
        if not self._translator.has_locale(locale):
            return False
        await self._cache.set(language_key(user_id), locale, ttl_seconds=LANGUAGE_TTL_SECONDS)
        logger.info(f"User {user_id} switched language to {locale}")
        return True
