"""
Tests for the group chat security gate.

Covers:
- Sensitive commands in groups are redirected with a private-chat button
- Non-sensitive commands and private chats pass through
- Deep-link payload encoding, truncation and decoding
- Fallback notice when the redirect cannot be sent
"""

from unittest.mock import AsyncMock

import pytest
from telegram.constants import ChatType

from conftest import BOT_USERNAME, make_update
from perp_bot.security import (
    DEEP_LINK_LIMIT,
    DEEP_LINK_PREFIX,
    FALLBACK_REDIRECT_TEXT,
    GateOutcome,
    SecurityGate,
    build_deep_link,
    decode_payload,
    encode_payload,
    parse_command,
)


@pytest.fixture
def gate(translator):
    return SecurityGate(BOT_USERNAME, translator)


def _group_message(text, chat_type=ChatType.GROUP):
    return make_update(text=text, chat_type=chat_type).effective_message


# =============================================================================
# Codec
# =============================================================================

class TestDeepLinkCodec:
    """Payload encoding and decoding."""

    def test_round_trip(self):
        payload, truncated = encode_payload("/long", ["BTC", "10x", "200"])

        assert truncated is False
        assert payload.startswith(DEEP_LINK_PREFIX)
        assert len(payload) - len(DEEP_LINK_PREFIX) <= DEEP_LINK_LIMIT
        assert "=" not in payload

        link = decode_payload(payload)
        assert link.cmd == "/long"
        assert link.args == ("BTC", "10x", "200")

    def test_long_args_are_dropped(self):
        """Oversized payloads keep the command and drop every argument."""
        args = ["0x" + "f" * 40, "123456.789"]
        payload, truncated = encode_payload("/withdraw", args)

        assert truncated is True
        link = decode_payload(payload)
        assert link.cmd == "/withdraw"
        assert link.args == ()

    @pytest.mark.parametrize("payload", [
        None,
        "",
        "ref_12345",
        "cmd_",
        "cmd_!!!not-base64!!!",
        "cmd_" + "bm90IGpzb24",  # "not json"
    ])
    def test_junk_decodes_to_none(self, payload):
        assert decode_payload(payload) is None

    def test_standard_alphabet_is_accepted(self):
        payload, _ = encode_payload("/pnl", [])
        body = payload[len(DEEP_LINK_PREFIX):].replace("-", "+").replace("_", "/")
        assert decode_payload(DEEP_LINK_PREFIX + body).cmd == "/pnl"

    def test_build_deep_link(self):
        assert build_deep_link("@my_bot", "cmd_abc") == "https://t.me/my_bot?start=cmd_abc"

    def test_build_deep_link_requires_username(self):
        with pytest.raises(ValueError):
            build_deep_link("", "cmd_abc")


class TestParseCommand:
    """Command text parsing."""

    def test_bot_suffix_is_stripped(self):
        assert parse_command("/Long@Perp_Test_Bot BTC") == ("/long@perp_test_bot", "/long", ["BTC"])

    def test_plain_text_is_not_a_command(self):
        assert parse_command("hello") is None
        assert parse_command("/") is None
        assert parse_command(None) is None


# =============================================================================
# Gate
# =============================================================================

class TestSecurityGate:
    """Group interception."""

    @pytest.mark.asyncio
    async def test_sensitive_group_command_is_redirected(self, gate):
        message = _group_message("/long BTC 10x 200")

        result = await gate.intercept(message)

        assert result.outcome == GateOutcome.REDIRECTED
        assert result.command == "/long"
        assert result.truncated is False
        message.reply_text.assert_awaited_once()

        markup = message.reply_text.await_args.kwargs["reply_markup"]
        button = markup.inline_keyboard[0][0]
        assert button.url == result.link
        assert button.url.startswith(f"https://t.me/{BOT_USERNAME}?start=cmd_")

        link = decode_payload(button.url.split("start=", 1)[1])
        assert link.cmd == "/long"
        assert link.args == ("BTC", "10x", "200")

    @pytest.mark.asyncio
    async def test_supergroup_with_bot_suffix(self, gate):
        message = _group_message(f"/wallet@{BOT_USERNAME}", chat_type=ChatType.SUPERGROUP)

        result = await gate.intercept(message)

        assert result.redirected
        assert result.command == "/wallet"

    @pytest.mark.asyncio
    async def test_non_sensitive_command_passes(self, gate):
        message = _group_message("/help")

        result = await gate.intercept(message)

        assert result.outcome == GateOutcome.NOT_APPLICABLE
        message.reply_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invite_stats_are_private(self, gate):
        result = await gate.intercept(_group_message("/invite"))

        assert result.redirected
        assert result.command == "/invite"

    @pytest.mark.asyncio
    async def test_market_data_passes_in_group(self, gate):
        for text in ("/price BTC", "/markets"):
            result = await gate.intercept(_group_message(text))
            assert result.outcome == GateOutcome.NOT_APPLICABLE, text

    @pytest.mark.asyncio
    async def test_private_chat_passes(self, gate):
        message = make_update(text="/long BTC 5x 100").effective_message

        result = await gate.intercept(message)

        assert result.outcome == GateOutcome.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_truncated_payload_tells_user(self, gate):
        message = _group_message("/withdraw 0x" + "b" * 40 + " 1000000")

        result = await gate.intercept(message)

        assert result.truncated is True
        text = message.reply_text.await_args.args[0]
        assert "enter them again" in text

    @pytest.mark.asyncio
    async def test_send_failure_uses_fallback(self, gate):
        """The command is still considered handled when the button cannot be sent."""
        message = _group_message("/positions")
        message.reply_text = AsyncMock(side_effect=[RuntimeError("forbidden"), None])

        result = await gate.intercept(message)

        assert result.outcome == GateOutcome.REDIRECTED
        assert result.fallback_used is True
        assert message.reply_text.await_args_list[1].args[0] == FALLBACK_REDIRECT_TEXT

    @pytest.mark.asyncio
    async def test_fallback_failure_still_redirected(self, gate):
        message = _group_message("/pnl")
        message.reply_text = AsyncMock(side_effect=RuntimeError("chat not found"))

        result = await gate.intercept(message)

        assert result.redirected
        assert message.reply_text.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_username_falls_back(self, translator):
        gate = SecurityGate("", translator)
        message = _group_message("/short ETH")

        result = await gate.intercept(message)

        assert result.redirected
        assert result.fallback_used is True

    @pytest.mark.asyncio
    async def test_username_with_at_sign(self, translator):
        gate = SecurityGate(f"@{BOT_USERNAME}", translator)
        message = _group_message("/positions")

        result = await gate.intercept(message)

        assert gate.bot_username == BOT_USERNAME
        assert result.link.startswith(f"https://t.me/{BOT_USERNAME}?start=cmd_")
