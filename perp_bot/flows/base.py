"""
Shared flow orchestration.

A flow collects one field per step, shows a confirmation preview and
then makes exactly one backend call. Failures of that call go through
the ErrorReporter; a retryable failure keeps the session at the confirm
step so the user can press confirm again, anything else ends the flow.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message
from telegram.error import TelegramError

from perp_bot.api_client import BackendClient
from perp_bot.auth import TokenProvider
from perp_bot.commands import BotRequest
from perp_bot.errors.exceptions import ValidationError
from perp_bot.errors.messages import ErrorContext
from perp_bot.errors.reporter import ErrorReporter
from perp_bot.state_machine import FlowKind, InvalidTransition, NoActiveFlow, SessionState, SessionStore
from perp_bot.telegram_utils import delete_messages

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FlowOrchestrator:
    """
    Base class for multi-step flows.

    Args:
        store: Session store shared by all flows
        client: Backend API client
        tokens: Access token provider
        reporter: Error reporter for backend failures
    """

    flow_kind: FlowKind
    cancel_callback: str = ""
    confirm_callback: str = ""

    def __init__(
        self,
        store: SessionStore,
        client: BackendClient,
        tokens: TokenProvider,
        reporter: ErrorReporter,
    ):
        self.store = store
        self.client = client
        self.tokens = tokens
        self.reporter = reporter

    # =========================================================================
    # Entry points (overridden)
    # =========================================================================

    async def on_text(self, req: BotRequest, state: SessionState) -> None:
        raise NotImplementedError

    async def on_callback(self, req: BotRequest) -> None:
        raise NotImplementedError

    # =========================================================================
    # Messaging helpers
    # =========================================================================

    async def prompt(self, req: BotRequest, text: str, reply_markup=None) -> Optional[Message]:
        """Send a prompt and track it for cleanup."""
        message = await req.reply(text, reply_markup=reply_markup)
        if message is not None and req.user_id is not None:
            self.store.track_message(req.user_id, message.message_id)
        return message

    async def reject(self, req: BotRequest, error: ValidationError) -> None:
        """Tell the user why input was rejected; the step stays unchanged."""
        await self.prompt(req, f"❌ {req.t(error.key, **error.params)}")

    async def answer(self, req: BotRequest, text: Optional[str] = None, alert: bool = False) -> None:
        query = req.callback_query
        if query is None:
            return
        try:
            await query.answer(text=text, show_alert=alert)
        except TelegramError as e:
            logger.debug(f"Could not answer callback query: {e}")

    def confirm_keyboard(self, req: BotRequest, extra_rows=None) -> InlineKeyboardMarkup:
        rows = [[
            InlineKeyboardButton(req.t("button.confirm"), callback_data=self.confirm_callback),
            InlineKeyboardButton(req.t("button.cancel"), callback_data=self.cancel_callback),
        ]]
        return InlineKeyboardMarkup(rows + list(extra_rows or []))

    async def cleanup(self, req: BotRequest, message_ids, chat_id: Optional[int] = None) -> None:
        """Delete tracked prompts in the chat that owns them."""
        await delete_messages(req.context.bot, req.chat_id if chat_id is None else chat_id, message_ids)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def already_active(self, req: BotRequest, state: SessionState) -> None:
        await req.reply(req.t("flow.already_active", flow=req.t(f"flow.name.{state.flow.value}")))

    async def cancel(self, req: BotRequest) -> bool:
        """Cancel the user's flow. Idempotent; False if nothing was active."""
        state = self.store.get(req.user_id)
        if state is not None and state.submitting:
            await req.reply(req.t("flow.busy"))
            return False

        had_state = state is not None
        message_ids = self.store.clear(req.user_id)
        await self.cleanup(req, message_ids, state.chat_id if had_state else None)

        if had_state:
            logger.info(f"User {req.user_id} cancelled {self.flow_kind.value} flow")
            await req.reply(req.t("flow.cancelled"))
        return had_state

    async def expired(self, req: BotRequest) -> None:
        """Callback for a flow that no longer exists."""
        await self.answer(req, req.t("flow.expired"), alert=True)

    async def submit(
        self,
        req: BotRequest,
        execute: Callable[[str, SessionState], Awaitable[T]],
        error_context: Optional[ErrorContext] = None,
    ) -> Optional[T]:
        """
        Run the confirm transition.

        Exactly one concurrent caller wins the confirm claim; others are
        told the request is already being handled and return None without
        touching the backend.
        """
        user_id = req.user_id
        try:
            state = self.store.begin_confirm(user_id, self.flow_kind)
        except NoActiveFlow:
            await self.expired(req)
            return None
        except InvalidTransition as e:
            logger.info(f"Ignoring duplicate confirm for user {user_id}: {e}")
            await self.answer(req, req.t("flow.busy"))
            return None

        await self.answer(req, req.t("flow.processing"))

        try:
            result = await self._call_with_auth(req, lambda token: execute(token, state))
        except Exception as exc:
            classification = await self.reporter.report(exc, req.reply, req.locale, error_context)
            if classification.retryable:
                self.store.release_confirm(user_id)
            else:
                await self.cleanup(req, self.store.clear(user_id), state.chat_id)
            return None

        await self.cleanup(req, self.store.clear(user_id), state.chat_id)
        return result

    async def _call_with_auth(self, req: BotRequest, call: Callable[[str], Awaitable[T]]) -> T:
        return await self.tokens.call_with_token(req.user, call)
