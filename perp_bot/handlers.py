"""
Single-shot command handlers.

/start (including deep links forwarded from group chats), /help,
/cancel, /language, the read-only account commands and market
data. Flow commands (/long, /short, /withdraw) live in perp_bot.flows.
"""

import dataclasses
import html
import logging
from typing import Dict, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.error import TelegramError

from perp_bot.api_client import BackendClient
from perp_bot.auth import TokenProvider
from perp_bot.commands import BotRequest, CommandRegistry
from perp_bot.errors.exceptions import ValidationError
from perp_bot.errors.messages import ErrorContext
from perp_bot.errors.reporter import ErrorReporter
from perp_bot.flows.base import FlowOrchestrator
from perp_bot.flows.validators import parse_close_amount, validate_symbol
from perp_bot.language import LANGUAGE_NAMES, LanguageResolver
from perp_bot.security import DEEP_LINK_PREFIX, build_deep_link, decode_payload
from perp_bot.state_machine import FlowKind, SessionStore

logger = logging.getLogger(__name__)

LANGUAGE_CALLBACK_PREFIX = "lang_"
INVITE_PREFIX = "invite_"
MARKETS_SHOWN = 10


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else '-'}${abs(value):,.2f}"


def _quote_price(value: float) -> str:
    return f"{value:,.2f}" if value >= 1 else f"{value:.6f}"


class AccountHandlers:
    """
    Handlers for commands that do not need a multi-step session.

    Args:
        registry: Command registry, used to forward deep-linked commands
        store: Session store, for /cancel
        flows: Flow orchestrators by kind, for /cancel
        client: Backend client
        tokens: Access token provider
        reporter: Error reporter
        language: Language resolver, for /language
    """

    def __init__(
        self,
        registry: CommandRegistry,
        store: SessionStore,
        flows: Dict[FlowKind, FlowOrchestrator],
        client: BackendClient,
        tokens: TokenProvider,
        reporter: ErrorReporter,
        language: LanguageResolver,
    ):
        self.registry = registry
        self.store = store
        self.flows = flows
        self.client = client
        self.tokens = tokens
        self.reporter = reporter
        self.language = language

    # =========================================================================
    # /start
    # =========================================================================

    async def start(self, req: BotRequest) -> None:
        """Initialize the account; forward deep-linked commands."""
        payload = req.args[0] if req.args else None

        if payload and payload.startswith(DEEP_LINK_PREFIX):
            await self._start_from_deep_link(req, payload)
            return

        # Links shared from /invite carry the referral code behind a prefix
        if payload and payload.startswith(INVITE_PREFIX):
            payload = payload[len(INVITE_PREFIX):] or None

        try:
            record = await self.tokens.get_user(req.user, invitation_code=payload)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/start"))
            return

        name = html.escape(req.user.first_name or req.user.username or "")
        key = "start.welcome_new" if record.is_new_user else "start.welcome_back"
        await req.reply(req.t(key, name=name, wallet=html.escape(record.wallet_address or "-")))

    async def _start_from_deep_link(self, req: BotRequest, payload: str) -> None:
        link = decode_payload(payload)
        target = self.registry.get_command(link.cmd) if link else None
        if link is None or target is None or target.name == "start":
            logger.warning(f"Unusable deep-link payload from user {req.user_id}")
            await req.reply(req.t("start.link_invalid"))
            return

        try:
            await self.tokens.get_user(req.user)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command=link.cmd))
            return

        logger.info(f"Continuing {link.cmd} from group redirect for user {req.user_id} ({len(link.args)} args)")
        await req.reply(req.t("start.continuing", command=html.escape(link.cmd)))

        forwarded = dataclasses.replace(req, command=link.cmd, args=list(link.args), text=None)
        await target.handler(forwarded)

    # =========================================================================
    # Utility
    # =========================================================================

    async def help(self, req: BotRequest) -> None:
        await req.reply(self.registry.get_help_text(req.translator, req.locale))

    async def cancel(self, req: BotRequest) -> None:
        state = self.store.get(req.user_id)
        if state is None:
            # Expired leftovers are left for the sweep, which deletes their prompts
            await req.reply(req.t("flow.nothing_to_cancel"))
            return
        if not req.is_private:
            # Flows live in the private chat; a group cannot cancel them
            await req.reply(req.t("flow.cancel_private"))
            return
        await self.flows[state.flow].cancel(req)

    async def unknown(self, req: BotRequest) -> None:
        if req.is_private:
            await req.reply(req.t("command.unknown", command=html.escape(req.command or "")))

    async def language_menu(self, req: BotRequest) -> None:
        rows = [[
            InlineKeyboardButton(label, callback_data=f"{LANGUAGE_CALLBACK_PREFIX}{code}")
            for code, label in LANGUAGE_NAMES.items()
        ]]
        await req.reply(req.t("language.choose"), reply_markup=InlineKeyboardMarkup(rows))

    async def language_selected(self, req: BotRequest) -> None:
        locale = (req.text or "")[len(LANGUAGE_CALLBACK_PREFIX):]
        changed = await self.language.set_language(req.user_id, locale)
        query = req.callback_query
        if not changed:
            if query is not None:
                await query.answer()
            return

        req.locale = locale
        if query is not None:
            try:
                await query.answer()
                await query.edit_message_text(req.t("language.changed", language=LANGUAGE_NAMES[locale]))
            except TelegramError as e:
                logger.debug(f"Could not update language message: {e}")

    # =========================================================================
    # Account commands
    # =========================================================================

    async def close(self, req: BotRequest) -> None:
        """/close <symbol> [percentage|amount]"""
        if not req.args or len(req.args) > 2:
            await req.reply(req.t("close.usage"))
            return

        try:
            symbol = validate_symbol(req.args[0])
            size, is_percentage = parse_close_amount(req.args[1]) if len(req.args) == 2 else ("100%", True)
        except ValidationError as e:
            await req.reply(f"❌ {req.t(e.key, **e.params)}\n\n{req.t('close.usage')}")
            return

        context = ErrorContext(symbol=symbol, amount=size, command="/close")
        await req.reply(req.t("close.processing", symbol=symbol, size=size))
        try:
            record = await self.tokens.get_user(req.user)
            await self.tokens.call_with_token(
                req.user, lambda token: self.client.close_position(token, record.user_id, symbol, size)
            )
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, context)
            return

        logger.info(f"[CLOSE] user={req.user_id} {symbol} {size}")
        key = "close.success_full" if size == "100%" else "close.success_partial"
        await req.reply(req.t(key, symbol=symbol, size=size))

    async def positions(self, req: BotRequest) -> None:
        try:
            positions = await self.tokens.call_with_token(req.user, self.client.get_positions)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/positions"))
            return

        if not positions:
            await req.reply(req.t("positions.empty"))
            return

        lines = [req.t("positions.title", count=len(positions)), ""]
        for p in positions:
            lines.append(req.t(
                "positions.item",
                symbol=html.escape(p.symbol),
                side=req.t(f"trade.direction.{p.side}") if p.side in ("long", "short") else html.escape(p.side),
                size=f"{p.size:g}",
                entry=f"{p.entry_price:,.4f}",
                mark=f"{p.mark_price:,.4f}",
                pnl=_signed(p.pnl),
                pnl_pct=f"{p.pnl_percentage:+.2f}",
            ))
        await req.reply("\n".join(lines))

    async def wallet(self, req: BotRequest) -> None:
        try:
            record = await self.tokens.get_user(req.user)
            balance = await self.tokens.call_with_token(
                req.user, lambda token: self.client.get_balance(token, str(req.user_id))
            )
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/wallet"))
            return

        await req.reply(req.t(
            "wallet.summary",
            address=html.escape(record.wallet_address or "-"),
            account_value=f"{balance.account_value:,.2f}",
            withdrawable=f"{balance.withdrawable:,.2f}",
        ))

    async def pnl(self, req: BotRequest) -> None:
        try:
            summary = await self.tokens.call_with_token(req.user, self.client.get_pnl)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/pnl"))
            return

        lines = [
            req.t("pnl.title"),
            "",
            req.t("pnl.total", pnl=_signed(summary.total_pnl)),
            req.t("pnl.trades", count=summary.total_trades),
        ]
        if summary.win_rate is not None:
            lines.append(req.t("pnl.win_rate", rate=f"{summary.win_rate:.1f}"))
        await req.reply("\n".join(lines))

    async def push(self, req: BotRequest) -> None:
        try:
            settings = await self.tokens.call_with_token(req.user, self.client.get_push_settings)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/push"))
            return

        lines = [req.t("push.title"), ""]
        toggles = {k: v for k, v in settings.items() if isinstance(v, bool)}
        if not toggles:
            lines.append(req.t("push.empty"))
        for name, enabled in sorted(toggles.items()):
            state = req.t("push.on") if enabled else req.t("push.off")
            lines.append(f"• {html.escape(name)}: {state}")
        await req.reply("\n".join(lines))

    async def invite(self, req: BotRequest) -> None:
        """Invitation count, invitee volume, points and the user's invite link."""
        try:
            record = await self.tokens.get_user(req.user)
            stats = await self.tokens.call_with_token(req.user, self.client.get_invite_stats)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/invite"))
            return

        link = stats.invitation_link
        code = stats.referral_code or record.referral_code
        if not link and code:
            link = build_deep_link(req.context.bot.username, f"{INVITE_PREFIX}{code}")

        await req.reply(req.t(
            "invite.summary",
            count=stats.invitee_count,
            volume=f"{stats.trading_volume:,.2f}",
            points=f"{stats.points:,.2f}",
            link=html.escape(link or "-"),
        ))

    # =========================================================================
    # Market data
    # =========================================================================

    async def price(self, req: BotRequest) -> None:
        """/price <symbol>"""
        if len(req.args) != 1:
            await req.reply(req.t("price.usage"))
            return

        try:
            symbol = validate_symbol(req.args[0])
        except ValidationError as e:
            await req.reply(f"❌ {req.t(e.key, **e.params)}\n\n{req.t('price.usage')}")
            return

        try:
            quote = await self.client.get_token_price(symbol)
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(symbol=symbol, command="/price"))
            return

        await req.reply(req.t(
            "price.summary",
            symbol=html.escape(quote.symbol),
            price=_quote_price(quote.price),
            change=f"{quote.change_24h:+.2f}",
        ))

    async def markets(self, req: BotRequest) -> None:
        try:
            markets = await self.client.get_markets()
        except Exception as exc:
            await self.reporter.report(exc, req.reply, req.locale, ErrorContext(command="/markets"))
            return

        lines = [req.t("markets.title"), ""]
        for quote in markets[:MARKETS_SHOWN]:
            lines.append(req.t(
                "markets.item",
                symbol=html.escape(quote.symbol),
                price=_quote_price(quote.price),
                change=f"{quote.change_24h:+.2f}",
            ))
        await req.reply("\n".join(lines))


def build_registry(
    registry: CommandRegistry,
    handlers: AccountHandlers,
    trading: Optional[FlowOrchestrator] = None,
    withdraw: Optional[FlowOrchestrator] = None,
) -> CommandRegistry:
    """Register every command and callback route, then freeze the table."""
    from perp_bot.commands import Command, CommandCategory

    registry.register(Command("start", handlers.start, "help.start", category=CommandCategory.UTILITY))
    registry.register(Command("help", handlers.help, "help.help", category=CommandCategory.UTILITY))
    registry.register(Command("cancel", handlers.cancel, "help.cancel", category=CommandCategory.UTILITY))
    registry.register(Command(
        "language", handlers.language_menu, "help.language", aliases=["lang"], category=CommandCategory.UTILITY,
    ))

    if trading is not None:
        registry.register(Command(
            "long", trading.start_command, "help.long", category=CommandCategory.TRADING,
            usage="/long [symbol] [leverage] [amount]",
        ))
        registry.register(Command(
            "short", trading.start_command, "help.short", category=CommandCategory.TRADING,
            usage="/short [symbol] [leverage] [amount]",
        ))
        registry.register_callback("long_leverage_", trading.on_callback)
        registry.register_callback("short_leverage_", trading.on_callback)
        registry.register_callback("trade_", trading.on_callback)

    registry.register(Command(
        "close", handlers.close, "help.close", category=CommandCategory.TRADING,
        usage="/close &lt;symbol&gt; [percent]",
    ))
    registry.register(Command("positions", handlers.positions, "help.positions", category=CommandCategory.ACCOUNT))
    registry.register(Command("wallet", handlers.wallet, "help.wallet", category=CommandCategory.ACCOUNT))
    registry.register(Command("pnl", handlers.pnl, "help.pnl", category=CommandCategory.ACCOUNT))
    registry.register(Command("push", handlers.push, "help.push", category=CommandCategory.ACCOUNT))
    registry.register(Command("invite", handlers.invite, "help.invite", category=CommandCategory.ACCOUNT))
    registry.register(Command(
        "price", handlers.price, "help.price", category=CommandCategory.MARKET, usage="/price &lt;symbol&gt;",
    ))
    registry.register(Command("markets", handlers.markets, "help.markets", category=CommandCategory.MARKET))

    if withdraw is not None:
        registry.register(Command(
            "withdraw", withdraw.start_command, "help.withdraw", category=CommandCategory.ACCOUNT,
            usage="/withdraw [address] [amount]",
        ))
        registry.register_callback("withdraw_", withdraw.on_callback)

    registry.register_callback(LANGUAGE_CALLBACK_PREFIX, handlers.language_selected)
    registry.freeze()
    return registry
