"""
Group auto-binding.

When a group's creator is active in a group, that group becomes the
destination of the creator's push notifications. Runs as a detached side
effect of message handling: it never delays or fails the user's request.
"""

import logging
from typing import Any, Optional

from telegram import Update
from telegram.constants import ChatMemberStatus, ParseMode
from telegram.ext import ContextTypes

from perp_bot.api_client import BackendClient
from perp_bot.auth import TokenProvider
from perp_bot.cache import Cache
from perp_bot.i18n import Translator, normalize_locale
from perp_bot.security import GROUP_CHAT_TYPES
from perp_bot.telegram_utils import send_with_retry

logger = logging.getLogger(__name__)

BINDING_TTL_SECONDS = 24 * 60 * 60
COOLDOWN_TTL_SECONDS = 5 * 60
CREATOR_CACHE_TTL_SECONDS = 30 * 60

_PRESENT = (ChatMemberStatus.MEMBER, ChatMemberStatus.ADMINISTRATOR)
_ABSENT = (ChatMemberStatus.LEFT, ChatMemberStatus.BANNED)


def bound_key(chat_id: int) -> str:
    return f"group:bound:{chat_id}"


def attempt_key(user_id: int, chat_id: int) -> str:
    return f"group:bind_attempt:{user_id}:{chat_id}"


def creator_key(user_id: int, chat_id: int) -> str:
    return f"group:creator:{user_id}:{chat_id}"


class GroupBindingService:
    """
    Binds groups to their creator's push settings.

    Args:
        cache: Cache holding binding markers and cooldowns
        client: Backend client
        tokens: Access token provider
        translator: Translator for the welcome message
    """

    def __init__(self, cache: Cache, client: BackendClient, tokens: TokenProvider, translator: Translator):
        self._cache = cache
        self._client = client
        self._tokens = tokens
        self._translator = translator

    async def on_group_activity(self, bot: Any, chat: Any, user: Any) -> bool:
        """
        Bind ``chat`` if ``user`` created it. Returns True when a binding was made.

        Never raises.
        """
        if chat is None or user is None or chat.type not in GROUP_CHAT_TYPES:
            return False

        try:
            if await self._cache.exists(bound_key(chat.id)):
                return False
            if await self._cache.exists(attempt_key(user.id, chat.id)):
                logger.debug(f"Group binding for {chat.id} in cooldown")
                return False

            if not await self._is_creator(bot, chat.id, user.id):
                return False

            await self._bind(chat, user)
            return True
        except Exception as e:
            logger.warning(f"Group auto-binding failed for chat {chat.id}: {e}")
            try:
                await self._cache.set(attempt_key(user.id, chat.id), True, ttl_seconds=COOLDOWN_TTL_SECONDS)
            except Exception as cache_error:
                logger.debug(f"Could not set binding cooldown: {cache_error}")
            return False

    async def _is_creator(self, bot: Any, chat_id: int, user_id: int) -> bool:
        """
        Whether ``user_id`` owns the chat, remembered for 30 minutes.

        Raises:
            TelegramError: admin lookup failed (caller starts the cooldown)
        """
        key = creator_key(user_id, chat_id)
        cached = await self._cache.get(key)
        if cached is not None:
            return cached

        admins = await bot.get_chat_administrators(chat_id)
        is_creator = any(a.status == ChatMemberStatus.OWNER and a.user.id == user_id for a in admins)
        await self._cache.set(key, is_creator, ttl_seconds=CREATOR_CACHE_TTL_SECONDS)
        return is_creator

    async def _bind(self, chat: Any, user: Any) -> None:
        title = getattr(chat, "title", None)
        logger.info(f"[AUTO_BIND] Binding group {chat.id} ({title}) to user {user.id}")
        await self._tokens.call_with_token(
            user, lambda token: self._client.bind_group_push(token, str(chat.id), title)
        )
        await self._cache.set(bound_key(chat.id), user.id, ttl_seconds=BINDING_TTL_SECONDS)
        logger.info(f"[AUTO_BIND] Group {chat.id} bound")

    async def clear(self, chat_id: int) -> None:
        await self._cache.delete(bound_key(chat_id))

    async def on_my_chat_member(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Welcome on join; forget the binding on removal."""
        member_update = update.my_chat_member
        if member_update is None or member_update.chat.type not in GROUP_CHAT_TYPES:
            return

        chat = member_update.chat
        old_status = member_update.old_chat_member.status
        new_status = member_update.new_chat_member.status

        if old_status in _ABSENT and new_status in _PRESENT:
            logger.info(f"Added to group {chat.id} ({chat.title})")
            locale = self._locale_for(member_update.from_user)
            text = self._translator.translate("group.welcome", locale, bot=context.bot.username)
            await send_with_retry(
                lambda: context.bot.send_message(chat_id=chat.id, text=text, parse_mode=ParseMode.HTML)
            )
        elif new_status in _ABSENT:
            logger.info(f"Removed from group {chat.id}")
            await self.clear(chat.id)

    def _locale_for(self, user: Optional[Any]) -> str:
        code = getattr(user, "language_code", None) if user else None
        return normalize_locale(code, self._translator.locales)
