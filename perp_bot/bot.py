"""
Perp Trade Bot - Telegram Interface

Wires the services together and runs long polling:
- One MessageHandler and one CallbackQueryHandler feed the Pipeline
- ChatMemberHandler tracks the bot joining and leaving groups
- A repeating job evicts idle sessions and deletes their prompts
"""

import logging
import sys
import traceback
from dataclasses import dataclass

from telegram import Update
from telegram.error import NetworkError, RetryAfter, TimedOut
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    ChatMemberHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from perp_bot.api_client import BackendClient
from perp_bot.auth import TokenProvider
from perp_bot.cache import Cache
from perp_bot.commands import CommandRegistry
from perp_bot.config import BotConfig, get_config
from perp_bot.errors import ErrorRenderer, ErrorReporter
from perp_bot.errors.messages import FALLBACK_MESSAGE
from perp_bot.flows import TradingFlow, WithdrawFlow
from perp_bot.group_binding import GroupBindingService
from perp_bot.handlers import AccountHandlers, build_registry
from perp_bot.i18n import Translator
from perp_bot.language import LanguageResolver
from perp_bot.log_context import setup_logging
from perp_bot.pipeline import Pipeline
from perp_bot.security import SecurityGate
from perp_bot.state_machine import FlowKind, SessionStore
from perp_bot.telegram_utils import delete_messages, send_with_retry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Explicitly constructed service graph for one bot process."""
    config: BotConfig
    cache: Cache
    translator: Translator
    store: SessionStore
    client: BackendClient
    tokens: TokenProvider
    reporter: ErrorReporter
    registry: CommandRegistry
    binding: GroupBindingService
    pipeline: Pipeline


def build_services(config: BotConfig) -> Services:
    """Construct every service; nothing here touches the network."""
    cache = Cache()
    translator = Translator(default_locale=config.default_locale)
    reporter = ErrorReporter(ErrorRenderer(translator, support_contact=config.support_contact))
    store = SessionStore(ttl_seconds=config.session_ttl_seconds)
    client = BackendClient(
        config.api_base_url,
        timeout=config.api_timeout,
        max_retries=config.api_max_retries,
        retry_delay=config.api_retry_delay,
    )
    tokens = TokenProvider(client, cache)
    language = LanguageResolver(cache, translator)

    trading = TradingFlow(store, client, tokens, reporter)
    withdraw = WithdrawFlow(store, client, tokens, reporter)
    flows = {FlowKind.TRADING_ENTRY: trading, FlowKind.WITHDRAWAL: withdraw}

    registry = CommandRegistry()
    handlers = AccountHandlers(registry, store, flows, client, tokens, reporter, language)
    build_registry(registry, handlers, trading=trading, withdraw=withdraw)

    binding = GroupBindingService(cache, client, tokens, translator)
    pipeline = Pipeline(
        registry=registry,
        store=store,
        flows=flows,
        gate=SecurityGate(config.bot_username, translator),
        language=language,
        translator=translator,
        binding=binding,
        unknown_command=handlers.unknown,
    )
    return Services(config, cache, translator, store, client, tokens, reporter, registry, binding, pipeline)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Last-resort handler: log the failure and send the generic message."""
    error = context.error
    error_type = type(error).__name__

    update_info = ""
    if isinstance(update, Update):
        if update.callback_query:
            data = update.callback_query.data
            update_info = f" | callback_data={data[:50] if data else 'None'}"
        elif update.effective_message:
            text = update.effective_message.text
            update_info = f" | message={text[:50] if text else 'None'}"

    logger.error(f"Bot error: {error_type}: {error}{update_info}")
    logger.error(f"Traceback: {''.join(traceback.format_exception(type(error), error, error.__traceback__))[-500:]}")

    if isinstance(error, RetryAfter):
        logger.warning(f"Rate limited for {error.retry_after}s")
        return

    if isinstance(error, (TimedOut, NetworkError)):
        # Transient, don't spam the user
        return

    if isinstance(update, Update) and update.effective_chat:
        chat_id = update.effective_chat.id
        await send_with_retry(lambda: context.bot.send_message(chat_id=chat_id, text=FALLBACK_MESSAGE))


def make_sweep_job(store: SessionStore):
    """JobQueue callback evicting idle sessions and their prompts."""

    async def sweep_sessions(context: ContextTypes.DEFAULT_TYPE) -> None:
        for state, message_ids in store.evict():
            await delete_messages(context.bot, state.chat_id, message_ids)

    return sweep_sessions


def build_application(config: BotConfig) -> Application:
    services = build_services(config)

    async def post_init(app: Application) -> None:
        await services.client.connect()
        logger.info(f"Backend client ready: {config.api_base_url}")

    async def post_shutdown(app: Application) -> None:
        await services.pipeline.drain()
        await services.client.close()

    app = (
        Application.builder()
        .token(config.telegram_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    app.bot_data["services"] = services

    app.add_handler(MessageHandler(filters.TEXT, services.pipeline.handle_update))
    app.add_handler(CallbackQueryHandler(services.pipeline.handle_update))
    app.add_handler(ChatMemberHandler(services.binding.on_my_chat_member, ChatMemberHandler.MY_CHAT_MEMBER))
    app.add_error_handler(error_handler)

    job_queue = app.job_queue
    if job_queue:
        job_queue.run_repeating(
            make_sweep_job(services.store),
            interval=config.session_sweep_interval,
            first=config.session_sweep_interval,
            name="session_sweep",
        )
    else:
        logger.warning("JobQueue unavailable, idle sessions are evicted only on access")

    return app


def main():
    """Run the bot."""
    config = get_config()
    setup_logging(config.log_level)

    missing = config.get_missing()
    if missing:
        print("\n" + "=" * 50)
        print(f"ERROR: missing configuration: {', '.join(missing)}")
        print("=" * 50)
        print("\nSet them in the environment or a .env file.")
        sys.exit(1)

    print("\n" + "=" * 50)
    print("PERP TRADE BOT")
    print("=" * 50)
    print(f"Bot: @{config.bot_username} (token {config.mask_token()})")
    print(f"Backend: {config.api_base_url}")
    print(f"Locales: {', '.join(config.supported_locales)} (default {config.default_locale})")
    print(f"Session TTL: {config.session_ttl_seconds}s")
    print("=" * 50 + "\n")

    app = build_application(config)
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
