"""
Withdrawal flow for /withdraw.

Steps: address -> amount -> confirm. The amount prompt offers a Max
button that reads the withdrawable balance and jumps straight to the
confirmation.
"""

import logging
from decimal import ROUND_DOWN, Decimal

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from perp_bot.commands import BotRequest
from perp_bot.errors.exceptions import ValidationError
from perp_bot.errors.messages import ErrorContext
from perp_bot.flows.base import FlowOrchestrator
from perp_bot.flows.calculations import WITHDRAWAL_FEE, net_withdrawal
from perp_bot.flows.validators import MIN_WITHDRAW_AMOUNT, parse_amount, validate_address
from perp_bot.state_machine import AlreadyInFlow, FlowKind, InvalidTransition, NoActiveFlow, SessionState, Step

logger = logging.getLogger(__name__)

CONFIRM_CALLBACK = "withdraw_confirm"
CANCEL_CALLBACK = "withdraw_cancel"
MAX_CALLBACK = "withdraw_max"

NETWORK_NAME = "Arbitrum"


def short_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


class WithdrawFlow(FlowOrchestrator):
    """Guided USDC withdrawal to an external address."""

    flow_kind = FlowKind.WITHDRAWAL
    confirm_callback = CONFIRM_CALLBACK
    cancel_callback = CANCEL_CALLBACK

    async def start_command(self, req: BotRequest) -> None:
        """Handle /withdraw [address] [amount]."""
        existing = self.store.get(req.user_id)
        if existing is not None:
            await self.already_active(req, existing)
            return

        args = req.args
        if len(args) > 2:
            await req.reply(req.t("withdraw.usage"))
            return

        try:
            address = validate_address(args[0]) if args else None
            amount = parse_amount(args[1], MIN_WITHDRAW_AMOUNT) if len(args) == 2 else None
        except ValidationError as e:
            await req.reply(f"❌ {req.t(e.key, **e.params)}\n\n{req.t('withdraw.usage')}")
            return

        try:
            self.store.start(req.user_id, self.flow_kind, chat_id=req.chat_id)
        except AlreadyInFlow:
            await req.reply(req.t("flow.busy"))
            return

        logger.info(f"User {req.user_id} started withdrawal flow")

        if address is None:
            await self.prompt(req, req.t("withdraw.ask_address"), reply_markup=self._cancel_keyboard(req))
            return

        self.store.advance(req.user_id, {"address": address}, Step.AMOUNT)
        if amount is None:
            await self._ask_amount(req)
            return

        state = self.store.advance(req.user_id, {"amount": amount}, Step.CONFIRM)
        await self._show_preview(req, state)

    async def on_text(self, req: BotRequest, state: SessionState) -> None:
        text = (req.text or "").strip()
        try:
            if state.step == Step.ADDRESS:
                address = validate_address(text)
                self.store.advance(req.user_id, {"address": address}, Step.AMOUNT)
                await self._ask_amount(req)

            elif state.step == Step.AMOUNT:
                amount = parse_amount(text, MIN_WITHDRAW_AMOUNT)
                withdrawable = state.fields.get("withdrawable")
                if withdrawable is not None and amount > withdrawable:
                    raise ValidationError("validation.amount_exceeds_balance", balance=f"{withdrawable:.2f}")
                state = self.store.advance(req.user_id, {"amount": amount}, Step.CONFIRM)
                await self._show_preview(req, state)

            else:
                await req.reply(req.t("flow.use_buttons"))

        except ValidationError as e:
            await self.reject(req, e)
        except (NoActiveFlow, InvalidTransition) as e:
            logger.info(f"Stale withdrawal input from user {req.user_id}: {e}")

    async def on_callback(self, req: BotRequest) -> None:
        data = req.text or ""
        if data == CONFIRM_CALLBACK:
            await self.confirm(req)
        elif data == CANCEL_CALLBACK:
            await self.answer(req)
            await self.cancel(req)
        elif data == MAX_CALLBACK:
            await self.use_max(req)
        else:
            logger.warning(f"Unknown withdraw callback: {data}")
            await self.answer(req)

    async def use_max(self, req: BotRequest) -> None:
        """Fill the amount with the full withdrawable balance."""
        state = self.store.get(req.user_id)
        if state is None or state.flow != self.flow_kind or state.step != Step.AMOUNT:
            await self.expired(req)
            return

        await self.answer(req, req.t("withdraw.fetching_max"))
        try:
            balance = await self.tokens.call_with_token(
                req.user, lambda token: self.client.get_balance(token, str(req.user_id))
            )
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/withdraw"))
            return

        withdrawable = Decimal(str(balance.withdrawable)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
        try:
            # Typed amounts are checked against it from now on
            self.store.update_fields(req.user_id, {"withdrawable": withdrawable})
        except NoActiveFlow:
            await self.expired(req)
            return

        if withdrawable < MIN_WITHDRAW_AMOUNT:
            await self.prompt(req, req.t(
                "withdraw.max_too_low",
                balance=f"{withdrawable:.2f}",
                minimum=f"{MIN_WITHDRAW_AMOUNT:.0f}",
            ))
            return

        try:
            state = self.store.advance(
                req.user_id, {"amount": withdrawable, "withdrawable": withdrawable}, Step.CONFIRM
            )
        except (NoActiveFlow, InvalidTransition):
            # Cancelled or answered while the balance was loading
            await self.expired(req)
            return
        await self._show_preview(req, state)

    async def confirm(self, req: BotRequest) -> None:
        state = self.store.get(req.user_id)
        context = ErrorContext(command="/withdraw")
        if state is not None and state.fields.get("amount") is not None:
            context.amount = f"{state.fields['amount']:.2f} USDC"

        async def execute(token: str, claimed: SessionState):
            amount = claimed.fields["amount"]
            address = claimed.fields["address"]
            logger.info(f"[WITHDRAW] user={req.user_id} amount={amount} to={short_address(address)}")
            await self.client.withdraw(token, float(amount), address)
            return amount, address

        result = await self.submit(req, execute, context)
        if result is None:
            return

        amount, address = result
        await req.reply(req.t(
            "withdraw.success",
            amount=f"{amount:.2f}",
            net=f"{net_withdrawal(amount):.2f}",
            address=short_address(address),
        ))

    # =========================================================================
    # Prompts
    # =========================================================================

    def _cancel_keyboard(self, req: BotRequest) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup([[
            InlineKeyboardButton(req.t("button.cancel"), callback_data=CANCEL_CALLBACK),
        ]])

    async def _ask_amount(self, req: BotRequest) -> None:
        markup = InlineKeyboardMarkup([[
            InlineKeyboardButton(req.t("button.max"), callback_data=MAX_CALLBACK),
            InlineKeyboardButton(req.t("button.cancel"), callback_data=CANCEL_CALLBACK),
        ]])
        await self.prompt(req, req.t(
            "withdraw.ask_amount",
            minimum=f"{MIN_WITHDRAW_AMOUNT:.0f}",
            fee=f"{WITHDRAWAL_FEE:.2f}",
        ), reply_markup=markup)

    def preview_text(self, req: BotRequest, fields) -> str:
        amount = fields["amount"]
        return "\n".join([
            req.t("withdraw.preview_title"),
            "",
            req.t("withdraw.preview_amount", amount=f"{amount:.2f}"),
            req.t("withdraw.preview_address", address=fields["address"]),
            req.t("withdraw.preview_network", network=NETWORK_NAME),
            req.t("withdraw.preview_fee", fee=f"{WITHDRAWAL_FEE:.2f}"),
            req.t("withdraw.preview_net", net=f"{net_withdrawal(amount):.2f}"),
            "",
            req.t("withdraw.preview_warning"),
        ])

    async def _show_preview(self, req: BotRequest, state: SessionState) -> None:
        await self.prompt(req, self.preview_text(req, state.fields), reply_markup=self.confirm_keyboard(req))
