"""
Access token provider.

Tokens are issued by the backend's user-init endpoint and cached per
Telegram user for 24 hours under ``user:token:{id}``.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from perp_bot.api_client import BackendClient, UserInit
from perp_bot.cache import Cache
from perp_bot.errors.classification import ErrorKind, classify
from perp_bot.errors.exceptions import ApiError

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 24 * 60 * 60

T = TypeVar("T")


def token_key(user_id: int) -> str:
    return f"user:token:{user_id}"


def profile_key(user_id: int) -> str:
    return f"user:profile:{user_id}"


class TokenProvider:
    """
    Resolves backend access tokens for Telegram users.

    Args:
        client: Backend client used for user initialization
        cache: Cache holding tokens and user records
    """

    def __init__(self, client: BackendClient, cache: Cache):
        self._client = client
        self._cache = cache

    async def get_user(self, user: Any, force_refresh: bool = False, invitation_code: Optional[str] = None) -> UserInit:
        """Backend user record for a telegram.User, initializing it if needed."""
        if not force_refresh and invitation_code is None:
            cached = await self._cache.get(profile_key(user.id))
            if cached is not None:
                return cached

        logger.info(f"Initializing backend user for {user.id} (refresh={force_refresh})")
        record = await self._client.init_user(
            telegram_id=str(user.id),
            username=getattr(user, "username", None),
            first_name=getattr(user, "first_name", None),
            last_name=getattr(user, "last_name", None),
            invitation_code=invitation_code,
        )
        await self._cache.set(profile_key(user.id), record, ttl_seconds=TOKEN_TTL_SECONDS)
        await self._cache.set(token_key(user.id), record.access_token, ttl_seconds=TOKEN_TTL_SECONDS)
        return record

    async def get_token(self, user: Any, force_refresh: bool = False) -> str:
        """Cached access token, or a fresh one from user init."""
        if not force_refresh:
            token = await self._cache.get(token_key(user.id))
            if token:
                return token
        record = await self.get_user(user, force_refresh=True)
        return record.access_token

    async def invalidate(self, user_id: int) -> None:
        await self._cache.delete(token_key(user_id))
        await self._cache.delete(profile_key(user_id))

    async def call_with_token(self, user: Any, call: Callable[[str], Awaitable[T]]) -> T:
        """Call with the cached token; if the backend rejects it, refresh once and retry."""
        token = await self.get_token(user)
        try:
            return await call(token)
        except ApiError as e:
            if classify(e).kind != ErrorKind.AUTH_FAILED:
                raise
            logger.info(f"Access token rejected for user {user.id}, refreshing")
            token = await self.get_token(user, force_refresh=True)
            return await call(token)
