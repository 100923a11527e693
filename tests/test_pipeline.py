"""
Tests for the per-update pipeline.

Covers:
- Sensitive group commands never reach their handler
- Non-sensitive group commands are dispatched
- Callback queries in groups are refused
- Free text is routed to the active flow in private chats
- Deep links continue the original command
- Group binding runs as a background task
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ChatMemberStatus, ChatType

from conftest import BOT_USERNAME, GROUP_CHAT_ID, USER_ID, VALID_ADDRESS, make_update, sent_texts
from perp_bot.commands import CommandRegistry
from perp_bot.flows import TradingFlow, WithdrawFlow
from perp_bot.group_binding import GroupBindingService, bound_key
from perp_bot.handlers import AccountHandlers, build_registry
from perp_bot.language import LanguageResolver
from perp_bot.pipeline import Pipeline
from perp_bot.security import SecurityGate, decode_payload, encode_payload
from perp_bot.state_machine import FlowKind, Step


@pytest.fixture
def language(cache, translator):
    return LanguageResolver(cache, translator)


@pytest.fixture
def pipeline(store, mock_client, tokens, reporter, cache, translator, language):
    trading = TradingFlow(store, mock_client, tokens, reporter)
    withdraw = WithdrawFlow(store, mock_client, tokens, reporter)
    flows = {FlowKind.TRADING_ENTRY: trading, FlowKind.WITHDRAWAL: withdraw}

    registry = CommandRegistry()
    handlers = AccountHandlers(registry, store, flows, mock_client, tokens, reporter, language)
    build_registry(registry, handlers, trading=trading, withdraw=withdraw)

    return Pipeline(
        registry=registry,
        store=store,
        flows=flows,
        gate=SecurityGate(BOT_USERNAME, translator),
        language=language,
        translator=translator,
        binding=GroupBindingService(cache, mock_client, tokens, translator),
        unknown_command=handlers.unknown,
    )


def _owner(user_id=USER_ID):
    admin = MagicMock()
    admin.status = ChatMemberStatus.OWNER
    admin.user.id = user_id
    return admin


# =============================================================================
# Group security
# =============================================================================

class TestGroupCommands:
    """Commands sent in group chats."""

    @pytest.mark.asyncio
    async def test_sensitive_command_is_redirected(self, pipeline, store, mock_context, mock_client):
        update = make_update(text="/long", chat_type=ChatType.GROUP)

        await pipeline.handle_update(update, mock_context)
        await pipeline.drain()

        mock_client.get_token_price.assert_not_awaited()
        mock_client.init_user.assert_not_awaited()
        assert store.get(USER_ID) is None
        mock_context.bot.send_message.assert_not_awaited()

        markup = update.effective_message.reply_text.await_args.kwargs["reply_markup"]
        payload = markup.inline_keyboard[0][0].url.split("start=", 1)[1]
        link = decode_payload(payload)
        assert link.cmd == "/long"
        assert link.args == ()

    @pytest.mark.asyncio
    async def test_non_sensitive_command_runs(self, pipeline, mock_context):
        update = make_update(text="/help", chat_type=ChatType.SUPERGROUP)

        await pipeline.handle_update(update, mock_context)
        await pipeline.drain()

        update.effective_message.reply_text.assert_not_awaited()
        text = sent_texts(mock_context)[-1]
        assert "Commands" in text
        assert "/withdraw [address] [amount]" in text

    @pytest.mark.asyncio
    async def test_group_text_is_not_routed_to_flow(self, pipeline, store, mock_context):
        store.start(USER_ID, FlowKind.WITHDRAWAL)
        update = make_update(text=VALID_ADDRESS, chat_type=ChatType.GROUP)

        await pipeline.handle_update(update, mock_context)
        await pipeline.drain()

        assert store.get(USER_ID).step == Step.ADDRESS

    @pytest.mark.asyncio
    async def test_group_cancel_leaves_private_prompts(self, pipeline, store, mock_context):
        """/cancel in a group never deletes message ids from the private chat."""
        store.start(USER_ID, FlowKind.WITHDRAWAL, chat_id=USER_ID)
        store.track_message(USER_ID, 11)
        store.track_message(USER_ID, 12)

        await pipeline.handle_update(make_update(text="/cancel", chat_type=ChatType.GROUP), mock_context)
        await pipeline.drain()

        mock_context.bot.delete_message.assert_not_awaited()
        assert store.get(USER_ID).pending_message_ids == [11, 12]
        assert "private chat" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_unknown_command_silent_in_group(self, pipeline, mock_context):
        await pipeline.handle_update(make_update(text="/dance", chat_type=ChatType.GROUP), mock_context)
        await pipeline.drain()

        mock_context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_group_callback_is_refused(self, pipeline, store, mock_context, mock_client):
        store.start(USER_ID, FlowKind.WITHDRAWAL)
        update = make_update(callback_data="withdraw_confirm", chat_type=ChatType.GROUP)

        await pipeline.handle_update(update, mock_context)
        await pipeline.drain()

        update.callback_query.answer.assert_awaited_once_with()
        mock_client.withdraw.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_language_callback_allowed_in_group(self, pipeline, language, mock_context):
        update = make_update(callback_data="lang_ko", chat_type=ChatType.GROUP)

        await pipeline.handle_update(update, mock_context)
        await pipeline.drain()

        assert await language.resolve(update.effective_user) == "ko"
        update.callback_query.edit_message_text.assert_awaited_once()


# =============================================================================
# Private chats
# =============================================================================

class TestPrivateDispatch:
    """Routing in private chats."""

    @pytest.mark.asyncio
    async def test_text_goes_to_active_flow(self, pipeline, store, mock_context):
        store.start(USER_ID, FlowKind.WITHDRAWAL)

        await pipeline.handle_update(make_update(text=VALID_ADDRESS), mock_context)

        assert store.get(USER_ID).step == Step.AMOUNT

    @pytest.mark.asyncio
    async def test_text_without_flow_is_ignored(self, pipeline, mock_context):
        await pipeline.handle_update(make_update(text="hello"), mock_context)

        mock_context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_command(self, pipeline, mock_context):
        await pipeline.handle_update(make_update(text="/dance"), mock_context)

        assert "Unknown command /dance" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_command_for_other_bot_is_ignored(self, pipeline, mock_context):
        await pipeline.handle_update(make_update(text="/help@some_other_bot"), mock_context)

        mock_context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_command_with_own_suffix(self, pipeline, mock_context):
        await pipeline.handle_update(make_update(text=f"/help@{BOT_USERNAME}"), mock_context)

        assert "Commands" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_own_suffix_with_configured_at_sign(self, pipeline, translator, mock_context):
        pipeline.gate = SecurityGate(f"@{BOT_USERNAME}", translator)

        await pipeline.handle_update(make_update(text=f"/help@{BOT_USERNAME}"), mock_context)

        assert "Commands" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_update_without_user_is_dropped(self, pipeline, mock_context):
        update = make_update(text="/help")
        update.effective_user = None

        await pipeline.handle_update(update, mock_context)

        mock_context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unrouted_callback_is_answered(self, pipeline, mock_context):
        update = make_update(callback_data="mystery_button")

        await pipeline.handle_update(update, mock_context)

        update.callback_query.answer.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_language_failure_uses_default(self, pipeline, language, mock_context):
        language.resolve = AsyncMock(side_effect=RuntimeError("cache down"))

        await pipeline.handle_update(make_update(text="/help"), mock_context)

        assert "Commands" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_deep_link_continues_command(self, pipeline, store, mock_context, mock_client):
        """The private /start picks up the command typed in the group."""
        payload, _ = encode_payload("/long", ["BTC"])

        await pipeline.handle_update(make_update(text=f"/start {payload}"), mock_context)

        texts = sent_texts(mock_context)
        assert "Continuing <b>/long</b>" in texts[0]
        mock_client.get_token_price.assert_awaited_once_with("BTC")
        state = store.get(USER_ID)
        assert state.step == Step.LEVERAGE
        assert state.fields["symbol"] == "BTC"


# =============================================================================
# Group binding
# =============================================================================

class TestGroupBindingSideEffect:
    """Background binding after group activity."""

    @pytest.mark.asyncio
    async def test_creator_activity_binds_group(self, pipeline, cache, mock_context, mock_client):
        mock_context.bot.get_chat_administrators.return_value = [_owner()]

        await pipeline.handle_update(make_update(text="/help", chat_type=ChatType.GROUP), mock_context)
        await pipeline.drain()

        mock_client.bind_group_push.assert_awaited_once_with("tok-1", str(GROUP_CHAT_ID), "Test Group")
        assert await cache.get(bound_key(GROUP_CHAT_ID)) == USER_ID

    @pytest.mark.asyncio
    async def test_binding_failure_does_not_affect_reply(self, pipeline, mock_context, mock_client):
        mock_context.bot.get_chat_administrators.return_value = [_owner()]
        mock_client.bind_group_push.side_effect = RuntimeError("backend down")

        await pipeline.handle_update(make_update(text="/help", chat_type=ChatType.GROUP), mock_context)
        await pipeline.drain()

        assert "Commands" in sent_texts(mock_context)[-1]

    @pytest.mark.asyncio
    async def test_private_chat_schedules_nothing(self, pipeline, mock_context):
        await pipeline.handle_update(make_update(text="/help"), mock_context)
        await pipeline.drain()

        mock_context.bot.get_chat_administrators.assert_not_awaited()
