"""
Per-update entry point.

Every text message and callback query goes through the same ordered
stages:

1. tag the update with a request ID and start time
2. resolve the user's language
3. drop updates without a user
4. run the security gate (a redirect ends processing)
5. dispatch to a command, a callback route or the active flow
6. schedule best-effort side effects (group binding) as detached tasks
"""

import asyncio
import logging
import time
from typing import Dict, Optional, Set

from telegram import Update
from telegram.ext import ContextTypes

from perp_bot.commands import BotRequest, CommandRegistry, Handler
from perp_bot.flows.base import FlowOrchestrator
from perp_bot.group_binding import GroupBindingService
from perp_bot.i18n import Translator
from perp_bot.language import LanguageResolver
from perp_bot.log_context import clear_request_id, new_request_id, set_request_id
from perp_bot.security import GROUP_CHAT_TYPES, SecurityGate, parse_command
from perp_bot.state_machine import FlowKind, SessionStore

logger = logging.getLogger(__name__)

# Callback routes that may be pressed inside a group
GROUP_CALLBACK_PREFIXES = ("lang_",)


class Pipeline:
    """
    Sequences the per-update stages.

    Args:
        registry: Frozen command and callback table
        store: Session store, for routing free text to the active flow
        flows: Flow orchestrators by kind
        gate: Security gate for group commands
        language: Language resolver
        translator: Translator passed to handlers
        binding: Group binding service, run after each group update
        unknown_command: Handler for commands not in the registry
    """

    def __init__(
        self,
        registry: CommandRegistry,
        store: SessionStore,
        flows: Dict[FlowKind, FlowOrchestrator],
        gate: SecurityGate,
        language: LanguageResolver,
        translator: Translator,
        binding: Optional[GroupBindingService] = None,
        unknown_command: Optional[Handler] = None,
    ):
        self.registry = registry
        self.store = store
        self.flows = flows
        self.gate = gate
        self.language = language
        self.translator = translator
        self.binding = binding
        self.unknown_command = unknown_command
        self._background: Set[asyncio.Task] = set()

    async def handle_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        request_id = new_request_id()
        set_request_id(request_id)
        started_at = time.monotonic()
        try:
            user = update.effective_user
            locale = await self._resolve_locale(user)

            if user is None:
                logger.debug("Dropping update without a user")
                return

            req = BotRequest(
                update=update,
                context=context,
                locale=locale,
                translator=self.translator,
                request_id=request_id,
                started_at=started_at,
            )
            try:
                await self._dispatch(req)
            finally:
                self._schedule_side_effects(req)
                elapsed_ms = (time.monotonic() - started_at) * 1000
                logger.debug(f"Handled update from user {user.id} in {elapsed_ms:.0f}ms")
        finally:
            clear_request_id()

    async def _resolve_locale(self, user) -> str:
        try:
            return await self.language.resolve(user)
        except Exception as e:
            logger.warning(f"Language lookup failed, using default: {e}")
            return self.translator.default_locale

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _dispatch(self, req: BotRequest) -> None:
        if req.callback_query is not None:
            await self._dispatch_callback(req)
            return

        message = req.update.effective_message
        if message is None or not message.text:
            return

        result = await self.gate.intercept(message, req.locale)
        if result.redirected:
            return

        req.text = message.text
        parsed = parse_command(message.text)
        if parsed is not None:
            await self._dispatch_command(req, *parsed)
            return

        if not req.is_private:
            return

        state = self.store.get(req.user_id)
        if state is not None:
            await self.flows[state.flow].on_text(req, state)

    async def _dispatch_command(self, req: BotRequest, raw: str, command: str, args) -> None:
        # /help@other_bot is addressed to someone else
        if "@" in raw and raw.split("@", 1)[1] != self.gate.bot_username.lower():
            return

        req.command = command
        req.args = list(args)
        cmd = self.registry.get_command(command)
        if cmd is None:
            if self.unknown_command is not None:
                await self.unknown_command(req)
            return

        logger.info(f"{command} from user {req.user_id} in {req.chat.type if req.chat else '?'} chat")
        await cmd.handler(req)

    async def _dispatch_callback(self, req: BotRequest) -> None:
        query = req.callback_query
        req.text = query.data
        route = self.registry.resolve_callback(query.data)

        if route is None:
            logger.debug(f"No route for callback data {query.data!r}")
            await query.answer()
            return

        if not req.is_private and route.prefix not in GROUP_CALLBACK_PREFIXES:
            logger.warning(f"Refusing callback {route.prefix} in group {req.chat_id} from user {req.user_id}")
            await query.answer()
            return

        await route.handler(req)

    # =========================================================================
    # Side effects
    # =========================================================================

    def _schedule_side_effects(self, req: BotRequest) -> None:
        if self.binding is None or req.chat is None or req.chat.type not in GROUP_CHAT_TYPES:
            return
        task = asyncio.create_task(self.binding.on_group_activity(req.context.bot, req.chat, req.user))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for outstanding background tasks (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
