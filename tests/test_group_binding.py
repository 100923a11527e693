"""
Tests for group auto-binding.

Covers:
- Only the group creator triggers a binding
- Bound marker and failure cooldown suppress repeat attempts
- Creator lookups are cached
- Bot join/leave handling
"""

from unittest.mock import MagicMock

import pytest
from telegram.constants import ChatMemberStatus, ChatType
from telegram.error import TelegramError

from conftest import GROUP_CHAT_ID, USER_ID, make_chat, make_user, sent_texts
from perp_bot.group_binding import GroupBindingService, attempt_key, bound_key, creator_key


@pytest.fixture
def binding(cache, mock_client, tokens, translator):
    return GroupBindingService(cache, mock_client, tokens, translator)


def _member(status, user_id=USER_ID):
    member = MagicMock()
    member.status = status
    member.user.id = user_id
    return member


def _membership_update(old_status, new_status, chat_type=ChatType.GROUP):
    update = MagicMock()
    change = update.my_chat_member
    change.chat = make_chat(chat_type)
    change.old_chat_member.status = old_status
    change.new_chat_member.status = new_status
    change.from_user = make_user(language_code="ko")
    return update


# =============================================================================
# Activity
# =============================================================================

class TestGroupActivity:
    """Binding on creator activity."""

    @pytest.mark.asyncio
    async def test_creator_binds(self, binding, cache, mock_context, mock_client):
        mock_context.bot.get_chat_administrators.return_value = [
            _member(ChatMemberStatus.ADMINISTRATOR, user_id=1),
            _member(ChatMemberStatus.OWNER),
        ]

        bound = await binding.on_group_activity(mock_context.bot, make_chat(ChatType.GROUP), make_user())

        assert bound is True
        mock_client.bind_group_push.assert_awaited_once_with("tok-1", str(GROUP_CHAT_ID), "Test Group")
        assert await cache.exists(bound_key(GROUP_CHAT_ID))

    @pytest.mark.asyncio
    async def test_bound_group_is_skipped(self, binding, cache, mock_context):
        await cache.set(bound_key(GROUP_CHAT_ID), USER_ID)

        bound = await binding.on_group_activity(mock_context.bot, make_chat(ChatType.GROUP), make_user())

        assert bound is False
        mock_context.bot.get_chat_administrators.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_is_not_creator(self, binding, mock_context, mock_client):
        mock_context.bot.get_chat_administrators.return_value = [_member(ChatMemberStatus.ADMINISTRATOR)]

        bound = await binding.on_group_activity(mock_context.bot, make_chat(ChatType.GROUP), make_user())

        assert bound is False
        mock_client.bind_group_push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_private_chat_ignored(self, binding, mock_context):
        bound = await binding.on_group_activity(mock_context.bot, make_chat(ChatType.PRIVATE), make_user())

        assert bound is False
        mock_context.bot.get_chat_administrators.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_sets_cooldown(self, binding, cache, mock_context, mock_client):
        mock_context.bot.get_chat_administrators.return_value = [_member(ChatMemberStatus.OWNER)]
        mock_client.bind_group_push.side_effect = RuntimeError("backend down")
        chat = make_chat(ChatType.SUPERGROUP)

        assert await binding.on_group_activity(mock_context.bot, chat, make_user()) is False
        assert await cache.exists(attempt_key(USER_ID, GROUP_CHAT_ID))
        assert not await cache.exists(bound_key(GROUP_CHAT_ID))

        # Cooldown suppresses the next attempt
        assert await binding.on_group_activity(mock_context.bot, chat, make_user()) is False
        assert mock_context.bot.get_chat_administrators.await_count == 1

    @pytest.mark.asyncio
    async def test_admin_lookup_failure(self, binding, cache, mock_context, mock_client):
        mock_context.bot.get_chat_administrators.side_effect = TelegramError("not enough rights")

        bound = await binding.on_group_activity(mock_context.bot, make_chat(ChatType.GROUP), make_user())

        assert bound is False
        mock_client.bind_group_push.assert_not_awaited()
        assert await cache.exists(attempt_key(USER_ID, GROUP_CHAT_ID))

    @pytest.mark.asyncio
    async def test_non_creator_lookup_is_cached(self, binding, cache, mock_context):
        """Repeated activity from a non-creator costs one admin lookup."""
        mock_context.bot.get_chat_administrators.return_value = [_member(ChatMemberStatus.ADMINISTRATOR)]
        chat = make_chat(ChatType.GROUP)

        for _ in range(5):
            assert await binding.on_group_activity(mock_context.bot, chat, make_user()) is False

        assert mock_context.bot.get_chat_administrators.await_count == 1
        assert await cache.get(creator_key(USER_ID, GROUP_CHAT_ID)) is False


# =============================================================================
# Membership
# =============================================================================

class TestMembership:
    """Bot added to or removed from groups."""

    @pytest.mark.asyncio
    async def test_join_sends_welcome(self, binding, mock_context):
        update = _membership_update(ChatMemberStatus.LEFT, ChatMemberStatus.MEMBER)

        await binding.on_my_chat_member(update, mock_context)

        text = sent_texts(mock_context)[-1]
        assert "@perp_test_bot" in text
        assert mock_context.bot.send_message.call_args.kwargs["chat_id"] == GROUP_CHAT_ID

    @pytest.mark.asyncio
    async def test_removal_clears_binding(self, binding, cache, mock_context):
        await cache.set(bound_key(GROUP_CHAT_ID), USER_ID)
        update = _membership_update(ChatMemberStatus.MEMBER, ChatMemberStatus.BANNED)

        await binding.on_my_chat_member(update, mock_context)

        assert not await cache.exists(bound_key(GROUP_CHAT_ID))
        mock_context.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_private_membership_ignored(self, binding, mock_context):
        update = _membership_update(ChatMemberStatus.BANNED, ChatMemberStatus.MEMBER, chat_type=ChatType.PRIVATE)

        await binding.on_my_chat_member(update, mock_context)

        mock_context.bot.send_message.assert_not_awaited()
