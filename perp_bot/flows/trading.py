"""
Trading entry flow for /long and /short.

Steps: symbol -> leverage -> amount -> confirm. The command can skip
ahead by carrying arguments:

    /long               ask for the symbol
    /long BTC           show the leverage keyboard
    /long BTC 10x       ask for the amount
    /long BTC 10x 200   show the order preview
"""

import html
import logging
import math
from typing import Dict, List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from perp_bot.commands import BotRequest
from perp_bot.errors.exceptions import ApiError, ValidationError
from perp_bot.errors.messages import ErrorContext
from perp_bot.flows.base import FlowOrchestrator
from perp_bot.flows.calculations import liquidation_price, order_size
from perp_bot.flows.validators import MIN_TRADE_AMOUNT, parse_amount, parse_leverage, validate_symbol
from perp_bot.state_machine import AlreadyInFlow, FlowKind, InvalidTransition, NoActiveFlow, SessionState, Step

logger = logging.getLogger(__name__)

DIRECTIONS = ("long", "short")
LEVERAGE_CHOICES = (1, 2, 3, 5, 10)

CONFIRM_CALLBACK = "trade_confirm"
CANCEL_CALLBACK = "trade_cancel"


def leverage_callback(direction: str, symbol: str, leverage: int) -> str:
    return f"{direction}_leverage_{symbol}_{leverage}x"


def parse_leverage_callback(data: str) -> Optional[tuple]:
    """(direction, symbol, leverage text) from ``long_leverage_BTC_3x``."""
    parts = data.split("_")
    if len(parts) != 4 or parts[0] not in DIRECTIONS or parts[1] != "leverage":
        return None
    return parts[0], parts[2], parts[3]


def _money(value) -> str:
    return f"{float(value):,.2f}"


def _price(value: float) -> str:
    if value >= 1:
        return f"{value:,.2f}"
    return f"{value:.6f}"


class TradingFlow(FlowOrchestrator):
    """Guided and one-shot position opening."""

    flow_kind = FlowKind.TRADING_ENTRY
    confirm_callback = CONFIRM_CALLBACK
    cancel_callback = CANCEL_CALLBACK

    # =========================================================================
    # Command entry
    # =========================================================================

    async def start_command(self, req: BotRequest) -> None:
        """Handle /long and /short."""
        direction = (req.command or "").lstrip("/")
        if direction not in DIRECTIONS:
            raise ValueError(f"TradingFlow cannot handle {req.command}")

        existing = self.store.get(req.user_id)
        if existing is not None:
            await self.already_active(req, existing)
            return

        args = req.args
        if len(args) > 3:
            await req.reply(req.t("trade.usage", command=f"/{direction}"))
            return

        # Validate everything given before creating the session
        try:
            symbol = validate_symbol(args[0]) if args else None
            leverage = parse_leverage(args[1]) if len(args) >= 2 else None
            amount = parse_amount(args[2], MIN_TRADE_AMOUNT) if len(args) == 3 else None
        except ValidationError as e:
            await req.reply(f"❌ {req.t(e.key, **e.params)}\n\n{req.t('trade.usage', command=f'/{direction}')}")
            return

        price = None
        if symbol is not None:
            price = await self._lookup_price(req, symbol, direction)
            if price is None:
                return

        try:
            self.store.start(req.user_id, self.flow_kind, chat_id=req.chat_id, fields={"direction": direction})
        except AlreadyInFlow as e:
            logger.info(f"Concurrent flow start for user {req.user_id}: {e}")
            await req.reply(req.t("flow.busy"))
            return

        logger.info(f"User {req.user_id} started {direction} flow with {len(args)} args")

        if symbol is None:
            await self.prompt(req, req.t("trade.ask_symbol", direction=req.t(f"trade.direction.{direction}")))
            return

        self.store.advance(req.user_id, {"symbol": symbol, "price": price}, Step.LEVERAGE)
        if leverage is None:
            await self._show_leverage_keyboard(req, direction, symbol, price)
            return

        state = self.store.advance(req.user_id, {"leverage": leverage}, Step.AMOUNT)
        if amount is None:
            await self._ask_amount(req, symbol, leverage)
            return

        try:
            await self._check_margin(req, state, amount)
        except ValidationError as e:
            # Session stays at the amount step so a smaller amount can be sent
            await self.reject(req, e)
            return

        state = self.store.advance(req.user_id, {"amount": amount}, Step.CONFIRM)
        await self._show_preview(req, state)

    # =========================================================================
    # Free-text input
    # =========================================================================

    async def on_text(self, req: BotRequest, state: SessionState) -> None:
        text = (req.text or "").strip()
        direction = state.fields.get("direction", "long")

        try:
            if state.step == Step.SYMBOL:
                symbol = validate_symbol(text)
                price = await self._lookup_price(req, symbol, direction)
                if price is None:
                    return
                self.store.advance(req.user_id, {"symbol": symbol, "price": price}, Step.LEVERAGE)
                await self._show_leverage_keyboard(req, direction, symbol, price)

            elif state.step == Step.LEVERAGE:
                leverage = parse_leverage(text)
                self.store.advance(req.user_id, {"leverage": leverage}, Step.AMOUNT)
                await self._ask_amount(req, state.fields["symbol"], leverage)

            elif state.step == Step.AMOUNT:
                amount = parse_amount(text, MIN_TRADE_AMOUNT)
                await self._check_margin(req, state, amount)
                state = self.store.advance(req.user_id, {"amount": amount}, Step.CONFIRM)
                await self._show_preview(req, state)

            else:
                await req.reply(req.t("flow.use_buttons"))

        except ValidationError as e:
            await self.reject(req, e)
        except (NoActiveFlow, InvalidTransition) as e:
            # Another update for this user moved the flow first
            logger.info(f"Stale trading input from user {req.user_id}: {e}")

    # =========================================================================
    # Callbacks
    # =========================================================================

    async def on_callback(self, req: BotRequest) -> None:
        data = req.text or ""

        if data == CONFIRM_CALLBACK:
            await self.confirm(req)
        elif data == CANCEL_CALLBACK:
            await self.answer(req)
            await self.cancel(req)
        elif "_leverage_" in data:
            await self._on_leverage_selected(req, data)
        else:
            logger.warning(f"Unknown trading callback: {data}")
            await self.answer(req)

    async def _on_leverage_selected(self, req: BotRequest, data: str) -> None:
        parsed = parse_leverage_callback(data)
        state = self.store.get(req.user_id)
        if parsed is None or state is None or state.flow != self.flow_kind:
            await self.expired(req)
            return

        _, symbol, leverage_text = parsed
        if state.step != Step.LEVERAGE or state.fields.get("symbol") != symbol:
            await self.expired(req)
            return

        try:
            leverage = parse_leverage(leverage_text)
            self.store.advance(req.user_id, {"leverage": leverage}, Step.AMOUNT)
        except ValidationError as e:
            await self.answer(req, req.t(e.key, **e.params), alert=True)
            return
        except (NoActiveFlow, InvalidTransition):
            await self.expired(req)
            return

        await self.answer(req, req.t("trade.leverage_selected", leverage=leverage))
        await self._ask_amount(req, symbol, leverage)

    async def confirm(self, req: BotRequest) -> None:
        state = self.store.get(req.user_id)
        context = ErrorContext(command="/long")
        if state is not None and state.flow == self.flow_kind:
            context = ErrorContext(
                symbol=state.fields.get("symbol"),
                amount=f"${_money(state.fields['amount'])}" if state.fields.get("amount") else None,
                command=f"/{state.fields.get('direction', 'long')}",
            )

        async def execute(token: str, claimed: SessionState):
            fields = claimed.fields
            size = order_size(fields["amount"], fields["price"])
            logger.info(
                f"[{fields['direction'].upper()} ORDER] user={req.user_id} {fields['symbol']} "
                f"{fields['leverage']}x ${fields['amount']} size={size:.6f}"
            )
            await self.client.open_position(
                token, fields["direction"], fields["symbol"], fields["leverage"], round(size, 6)
            )
            return fields, size

        result = await self.submit(req, execute, context)
        if result is None:
            return

        fields, size = result
        await req.reply(req.t(
            "trade.success",
            direction=req.t(f"trade.direction.{fields['direction']}"),
            symbol=fields["symbol"],
            size=f"{size:.6f}",
            leverage=fields["leverage"],
            amount=_money(fields["amount"]),
        ))

    # =========================================================================
    # Prompts
    # =========================================================================

    async def _lookup_price(self, req: BotRequest, symbol: str, direction: str) -> Optional[float]:
        """Current price, or None after telling the user why it is unavailable."""
        try:
            quote = await self.client.get_token_price(symbol)
        except ApiError as e:
            await self.reporter.report(e, req.reply, req.locale, ErrorContext(symbol=symbol, command=f"/{direction}"))
            return None
        return quote.price

    async def _available_margin(self, req: BotRequest) -> Optional[float]:
        """Withdrawable balance usable as margin, or None if it cannot be fetched."""
        try:
            balance = await self.tokens.call_with_token(
                req.user, lambda token: self.client.get_balance(token, str(req.user_id))
            )
        except Exception as e:
            # The backend still rejects underfunded orders
            logger.warning(f"Could not fetch available margin for user {req.user_id}: {e}")
            return None
        return balance.withdrawable

    async def _check_margin(self, req: BotRequest, state: SessionState, amount) -> None:
        """
        Reject an amount whose margin exceeds the available balance.

        Uses the balance shown with the leverage keyboard when there is one.

        Raises:
            ValidationError: margin required (amount / leverage) is above the balance
        """
        available = state.fields.get("available_margin")
        if available is None:
            available = await self._available_margin(req)
        if available is None:
            return

        leverage = state.fields["leverage"]
        required = float(amount) / leverage
        if required > available:
            logger.info(f"User {req.user_id} margin too low: need {required:.2f}, have {available:.2f}")
            raise ValidationError(
                "trade.insufficient_margin",
                required=_money(required),
                available=_money(available),
                maximum=_money(math.floor(available * leverage * 100) / 100),
            )

    async def _show_leverage_keyboard(self, req: BotRequest, direction: str, symbol: str, price: float) -> None:
        buttons = [
            InlineKeyboardButton(f"{lev}x", callback_data=leverage_callback(direction, symbol, lev))
            for lev in LEVERAGE_CHOICES
        ]
        markup = InlineKeyboardMarkup([buttons, [
            InlineKeyboardButton(req.t("button.cancel"), callback_data=CANCEL_CALLBACK),
        ]])
        text = req.t(
            "trade.choose_leverage",
            direction=req.t(f"trade.direction.{direction}"),
            symbol=html.escape(symbol),
            price=_price(price),
        )

        margin = await self._available_margin(req)
        if margin is not None:
            try:
                self.store.update_fields(req.user_id, {"available_margin": margin})
            except NoActiveFlow:
                return
            text = f"{text}\n{req.t('trade.available_margin', margin=_money(margin))}"

        await self.prompt(req, text, reply_markup=markup)

    async def _ask_amount(self, req: BotRequest, symbol: str, leverage: int) -> None:
        await self.prompt(req, req.t(
            "trade.ask_amount",
            symbol=html.escape(symbol),
            leverage=leverage,
            minimum=f"{MIN_TRADE_AMOUNT:.0f}",
        ))

    def preview_lines(self, req: BotRequest, fields: Dict) -> List[str]:
        direction = fields["direction"]
        amount = fields["amount"]
        price = fields["price"]
        leverage = fields["leverage"]
        return [
            req.t("trade.preview_title", direction=req.t(f"trade.direction.{direction}")),
            "",
            req.t("trade.preview_symbol", symbol=html.escape(fields["symbol"])),
            req.t("trade.preview_leverage", leverage=leverage),
            req.t("trade.preview_amount", amount=_money(amount)),
            req.t("trade.preview_price", price=_price(price)),
            req.t("trade.preview_size", size=f"{order_size(amount, price):.6f}"),
            req.t("trade.preview_margin", margin=_money(float(amount) / leverage)),
            req.t("trade.preview_liquidation", price=_price(liquidation_price(price, leverage, direction))),
            "",
            req.t("trade.preview_hint"),
        ]

    async def _show_preview(self, req: BotRequest, state: SessionState) -> None:
        text = "\n".join(self.preview_lines(req, state.fields))
        await self.prompt(req, text, reply_markup=self.confirm_keyboard(req))
