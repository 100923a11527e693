"""
Command and callback routing table.

Built once at startup: every command name and callback-data prefix maps
to a handler. After freeze() the table cannot change, so lookups during
request handling never depend on import order or late registration.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from telegram import Message, Update
from telegram.constants import ChatType, ParseMode
from telegram.ext import ContextTypes

from perp_bot.i18n import Translator
from perp_bot.telegram_utils import send_with_retry

logger = logging.getLogger(__name__)


@dataclass
class BotRequest:
    """Everything a handler needs about one inbound update."""

    update: Update
    context: ContextTypes.DEFAULT_TYPE
    locale: str
    translator: Translator
    request_id: str = "-"
    started_at: float = field(default_factory=time.monotonic)
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    text: Optional[str] = None

    @property
    def user(self):
        return self.update.effective_user

    @property
    def chat(self):
        return self.update.effective_chat

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user else None

    @property
    def chat_id(self) -> Optional[int]:
        return self.chat.id if self.chat else None

    @property
    def is_private(self) -> bool:
        return bool(self.chat) and self.chat.type == ChatType.PRIVATE

    @property
    def callback_query(self):
        return self.update.callback_query

    def t(self, key: str, **params: Any) -> str:
        return self.translator.translate(key, self.locale, **params)

    async def reply(self, text: str, reply_markup=None, parse_mode: str = ParseMode.HTML) -> Optional[Message]:
        """Send a message to the current chat."""
        bot = self.context.bot
        return await send_with_retry(
            lambda: bot.send_message(
                chat_id=self.chat_id, text=text, parse_mode=parse_mode, reply_markup=reply_markup
            )
        )

    async def edit(self, message_id: int, text: str, reply_markup=None) -> Optional[Any]:
        """Edit a previously sent bot message."""
        bot = self.context.bot
        return await send_with_retry(
            lambda: bot.edit_message_text(
                chat_id=self.chat_id,
                message_id=message_id,
                text=text,
                parse_mode=ParseMode.HTML,
                reply_markup=reply_markup,
            )
        )


Handler = Callable[[BotRequest], Awaitable[None]]


class CommandCategory(Enum):
    """Command categories for help output."""
    TRADING = "trading"
    MARKET = "market"
    ACCOUNT = "account"
    UTILITY = "utility"


@dataclass
class Command:
    """A bot command definition."""
    name: str
    handler: Handler
    description_key: str = ""
    aliases: List[str] = field(default_factory=list)
    category: CommandCategory = CommandCategory.UTILITY
    usage: str = ""
    # Listed in /help
    visible: bool = True


@dataclass
class CallbackRoute:
    """Callback data prefix -> handler."""
    prefix: str
    handler: Handler


class CommandRegistry:
    """
    Static registry of commands and callback prefixes.

    Usage:
        registry = CommandRegistry()
        registry.register(Command(name="help", handler=handlers.help))
        registry.register_callback("withdraw_", withdraw_flow.on_callback)
        registry.freeze()
    """

    def __init__(self):
        self._commands: Dict[str, Command] = {}
        self._aliases: Dict[str, str] = {}  # alias -> command name
        self._callbacks: List[CallbackRoute] = []
        self._frozen = False

    @staticmethod
    def _normalize(name: str) -> str:
        return name.lower().lstrip("/").split("@", 1)[0]

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("Command registry is frozen")

    def register(self, cmd: Command) -> None:
        """Register a command."""
        self._check_mutable()
        name = self._normalize(cmd.name)
        if name in self._commands or name in self._aliases:
            raise ValueError(f"Duplicate command: /{name}")
        self._commands[name] = cmd

        for alias in cmd.aliases:
            self._aliases[self._normalize(alias)] = name
            logger.debug(f"Registered alias '{alias}' -> '{name}'")

        logger.debug(f"Registered command: /{name}")

    def register_callback(self, prefix: str, handler: Handler) -> None:
        """Register a callback-data prefix."""
        self._check_mutable()
        if any(route.prefix == prefix for route in self._callbacks):
            raise ValueError(f"Duplicate callback prefix: {prefix}")
        self._callbacks.append(CallbackRoute(prefix, handler))
        # Longest prefix wins
        self._callbacks.sort(key=lambda r: len(r.prefix), reverse=True)

    def freeze(self) -> None:
        self._frozen = True
        logger.info(f"Command registry ready: {len(self._commands)} commands, {len(self._callbacks)} callback routes")

    def get_command(self, name: str) -> Optional[Command]:
        """Get command by name or alias (leading '/' and @botname optional)."""
        key = self._normalize(name)
        if key in self._commands:
            return self._commands[key]
        if key in self._aliases:
            return self._commands[self._aliases[key]]
        return None

    def resolve_callback(self, data: Optional[str]) -> Optional[CallbackRoute]:
        if not data:
            return None
        for route in self._callbacks:
            if data.startswith(route.prefix):
                return route
        return None

    def get_by_category(self, category: CommandCategory) -> List[Command]:
        return [c for c in self._commands.values() if c.category == category and c.visible]

    def get_help_text(self, translator: Translator, locale: str) -> str:
        """Localized command list."""
        lines = [translator.translate("help.title", locale), ""]

        for category in CommandCategory:
            cmds = self.get_by_category(category)
            if not cmds:
                continue
            lines.append(f"<b>{translator.translate(f'help.category.{category.value}', locale)}</b>")
            for cmd in cmds:
                description = translator.translate(cmd.description_key, locale) if cmd.description_key else ""
                usage = cmd.usage or f"/{cmd.name}"
                lines.append(f"{usage} - {description}")
            lines.append("")

        return "\n".join(lines).rstrip()
