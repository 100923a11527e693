"""
Localization lookup.

``Translator.translate(key, locale, **params)`` formats a catalog string
with ``str.format`` parameters. Lookups fall back to the default locale
and finally to the key itself, so a missing string is visible but never
fatal.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from perp_bot.locales import CATALOG

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"


def normalize_locale(language_code: Optional[str], supported: Iterable[str] = ("en", "zh-CN", "ko")) -> str:
    """Map a Telegram ``language_code`` to a supported locale."""
    supported = tuple(supported)
    if not language_code:
        return DEFAULT_LOCALE

    code = language_code.strip().replace("_", "-").lower()
    if code.startswith("zh") and "zh-CN" in supported:
        return "zh-CN"
    if code.startswith("ko") and "ko" in supported:
        return "ko"
    for locale in supported:
        if locale.lower() == code:
            return locale
    return DEFAULT_LOCALE


class Translator:
    """
    Catalog-backed translator.

    Args:
        catalog: Mapping of locale -> {key: template}
        default_locale: Locale used when a key is missing elsewhere
    """

    def __init__(self, catalog: Mapping[str, Mapping[str, str]] = None, default_locale: str = DEFAULT_LOCALE):
        self._catalog: Mapping[str, Mapping[str, str]] = CATALOG if catalog is None else catalog
        self.default_locale = default_locale

    @property
    def locales(self) -> tuple:
        return tuple(self._catalog.keys())

    def has_locale(self, locale: str) -> bool:
        return locale in self._catalog

    def translate(self, key: str, locale: Optional[str] = None, **params: Any) -> str:
        template = self._lookup(key, locale or self.default_locale)
        if template is None:
            logger.warning(f"Missing translation key: {key}")
            return key
        if not params:
            return template
        try:
            return template.format(**params)
        except (KeyError, IndexError, ValueError) as exc:
            logger.warning(f"Bad parameters for translation key {key}: {exc}")
            return template

    def _lookup(self, key: str, locale: str) -> Optional[str]:
        strings: Dict[str, str] = self._catalog.get(locale) or {}
        if key in strings:
            return strings[key]
        return (self._catalog.get(self.default_locale) or {}).get(key)
