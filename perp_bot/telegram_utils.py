"""Telegram send/delete helpers with retry on rate limits and flaky networks."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Iterable, Optional

from telegram.error import BadRequest, NetworkError, RetryAfter, TelegramError, TimedOut

logger = logging.getLogger(__name__)

SEND_RETRY_ATTEMPTS = 3


def _retry_seconds(error: RetryAfter) -> float:
    value = error.retry_after
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


async def send_with_retry(
    send: Callable[[], Awaitable[Any]],
    max_retries: int = SEND_RETRY_ATTEMPTS,
) -> Optional[Any]:
    """
    Run a Telegram send call, retrying rate limits and transient failures.

    Returns the call's result (usually a Message), or None if it never
    succeeded. Non-transient errors are logged and return None.
    """
    for attempt in range(max_retries):
        try:
            return await send()
        except RetryAfter as e:
            wait_time = _retry_seconds(e) + 1
            logger.warning(f"Rate limited, waiting {wait_time}s (attempt {attempt + 1}/{max_retries})")
            await asyncio.sleep(wait_time)
        except BadRequest as e:
            # Subclass of NetworkError, but retrying cannot help
            logger.error(f"Telegram rejected message: {e}")
            return None
        except TimedOut:
            logger.warning(f"Timed out, retrying (attempt {attempt + 1}/{max_retries})")
            await asyncio.sleep(2)
        except NetworkError as e:
            logger.warning(f"Network error: {e}, retrying (attempt {attempt + 1}/{max_retries})")
            await asyncio.sleep(2)
        except TelegramError as e:
            logger.error(f"Failed to send message: {e}")
            return None

    logger.error(f"Failed to send message after {max_retries} attempts")
    return None


async def delete_messages(bot: Any, chat_id: Optional[int], message_ids: Iterable[int]) -> int:
    """Best-effort deletion of bot prompts. Returns how many were deleted."""
    if chat_id is None:
        return 0

    deleted = 0
    for message_id in message_ids:
        try:
            await bot.delete_message(chat_id=chat_id, message_id=message_id)
            deleted += 1
        except TelegramError as e:
            # Already deleted, or older than 48h
            logger.debug(f"Could not delete message {message_id} in {chat_id}: {e}")
    return deleted
