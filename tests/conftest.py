"""
Perp Trade Bot Test Configuration

Shared fixtures: a translator, mocked Telegram updates and contexts, and
flow dependencies wired around a mocked backend client.
"""

import itertools
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ChatType

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from perp_bot.api_client import Balance, BackendClient, TokenQuote, UserInit
from perp_bot.auth import TokenProvider
from perp_bot.cache import Cache
from perp_bot.commands import BotRequest
from perp_bot.errors import ErrorRenderer, ErrorReporter
from perp_bot.i18n import Translator
from perp_bot.state_machine import SessionStore

BOT_USERNAME = "perp_test_bot"
USER_ID = 4242
PRIVATE_CHAT_ID = 4242
GROUP_CHAT_ID = -100777
VALID_ADDRESS = "0x" + "a1" * 20


# =============================================================================
# Telegram doubles
# =============================================================================

def make_user(user_id: int = USER_ID, language_code: str = "en"):
    user = MagicMock()
    user.id = user_id
    user.username = "trader"
    user.first_name = "Test"
    user.last_name = None
    user.language_code = language_code
    return user


def make_chat(chat_type: str = ChatType.PRIVATE, chat_id: int = None):
    chat = MagicMock()
    chat.type = chat_type
    if chat_id is None:
        chat_id = PRIVATE_CHAT_ID if chat_type == ChatType.PRIVATE else GROUP_CHAT_ID
    chat.id = chat_id
    chat.title = None if chat_type == ChatType.PRIVATE else "Test Group"
    return chat


def make_update(text: str = None, chat_type: str = ChatType.PRIVATE, callback_data: str = None, user=None):
    """Mock Update carrying either a text message or a callback query."""
    update = MagicMock()
    user = user or make_user()
    chat = make_chat(chat_type)
    update.effective_user = user
    update.effective_chat = chat

    if callback_data is not None:
        query = MagicMock()
        query.data = callback_data
        query.answer = AsyncMock()
        query.edit_message_text = AsyncMock()
        update.callback_query = query
        update.effective_message = MagicMock(text=None)
    else:
        update.callback_query = None
        message = MagicMock()
        message.text = text
        message.chat = chat
        message.from_user = user
        message.reply_text = AsyncMock()
        update.effective_message = message
    return update


def sent_texts(context) -> list:
    """Texts of every bot.send_message call, in order."""
    return [c.kwargs["text"] for c in context.bot.send_message.call_args_list]


@pytest.fixture
def mock_context():
    """Mock Telegram context whose bot hands out increasing message ids."""
    context = MagicMock()
    counter = itertools.count(1000)
    bot = MagicMock()
    bot.username = BOT_USERNAME
    bot.send_message = AsyncMock(side_effect=lambda **kwargs: MagicMock(message_id=next(counter)))
    bot.edit_message_text = AsyncMock()
    bot.delete_message = AsyncMock(return_value=True)
    bot.get_chat_administrators = AsyncMock(return_value=[])
    context.bot = bot
    context.args = []
    return context


@pytest.fixture
def translator():
    return Translator()


@pytest.fixture
def make_request(mock_context, translator):
    """Factory for BotRequest objects sharing one context."""

    def _make(text=None, command=None, args=None, chat_type=ChatType.PRIVATE, callback_data=None, locale="en"):
        update = make_update(text=text, chat_type=chat_type, callback_data=callback_data)
        return BotRequest(
            update=update,
            context=mock_context,
            locale=locale,
            translator=translator,
            command=command,
            args=list(args or []),
            text=callback_data if callback_data is not None else text,
        )

    return _make


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def mock_client():
    """Backend client double with sensible defaults."""
    client = AsyncMock(spec=BackendClient)
    client.init_user.return_value = UserInit(
        user_id=7, wallet_address="0xwallet", access_token="tok-1", is_new_user=False
    )
    client.get_token_price.return_value = TokenQuote(symbol="BTC", price=50000.0)
    client.get_balance.return_value = Balance(account_value=120.0, withdrawable=80.0)
    return client


@pytest.fixture
def cache():
    return Cache()


@pytest.fixture
def tokens(mock_client, cache):
    return TokenProvider(mock_client, cache)


@pytest.fixture
def reporter(translator):
    return ErrorReporter(ErrorRenderer(translator, support_contact="@perp_support"))


@pytest.fixture
def store():
    return SessionStore(ttl_seconds=300)
