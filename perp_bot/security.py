"""
Group chat security gate and deep-link codec.

Sensitive commands never run in group or supergroup chats. The gate
answers them with a button that opens a private chat with the bot; the
original command rides along in the ``/start`` parameter so the private
chat can pick up where the group message left off.

Payload format: ``cmd_`` + urlsafe base64 (no padding) of compact JSON
``{"cmd": "/long", "args": ["BTC", "10x", "200"]}``. When the encoded
JSON is longer than DEEP_LINK_LIMIT the arguments are dropped and the
user is told to re-enter them.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message
from telegram.constants import ChatType, ParseMode

from perp_bot.i18n import Translator

logger = logging.getLogger(__name__)

SENSITIVE_COMMANDS: FrozenSet[str] = frozenset({
    "/start",
    "/long",
    "/short",
    "/close",
    "/positions",
    "/wallet",
    "/pnl",
    "/push",
    "/withdraw",
    "/invite",
})

GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)

DEEP_LINK_PREFIX = "cmd_"
# Encoded JSON budget; Telegram caps start parameters at 64 characters
DEEP_LINK_LIMIT = 60

FALLBACK_REDIRECT_TEXT = (
    "❌ Unable to create private chat link\n\n"
    "Please start a private chat with the bot directly"
)

BUTTON_LABELS = {
    "/start": ("\U0001f680", "Start"),
    "/long": ("\U0001f4c8", "Long"),
    "/short": ("\U0001f4c9", "Short"),
    "/close": ("⏹️", "Close"),
    "/positions": ("\U0001f4ca", "Positions"),
    "/wallet": ("\U0001f4b0", "Wallet"),
    "/pnl": ("\U0001f4b9", "PnL"),
    "/push": ("\U0001f514", "Push"),
    "/withdraw": ("\U0001f4b8", "Withdraw"),
    "/invite": ("\U0001f381", "Invite"),
}


# =============================================================================
# Deep-link codec
# =============================================================================

@dataclass(frozen=True)
class DeepLinkCommand:
    """Command carried through a private-chat deep link."""
    cmd: str
    args: Tuple[str, ...] = ()


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    # Accept both alphabets and missing padding
    normalized = text.replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)
    return base64.urlsafe_b64decode(normalized)


def _encode_json(cmd: str, args: List[str]) -> str:
    body = json.dumps({"cmd": cmd, "args": list(args)}, separators=(",", ":"), ensure_ascii=False)
    return _b64encode(body.encode("utf-8"))


def encode_payload(cmd: str, args: List[str], limit: int = DEEP_LINK_LIMIT) -> Tuple[str, bool]:
    """
    Encode a command into a start parameter.

    Returns:
        (payload, truncated) where truncated is True if args were dropped
    """
    encoded = _encode_json(cmd, args)
    if len(encoded) <= limit:
        return DEEP_LINK_PREFIX + encoded, False

    logger.info(f"Deep-link payload for {cmd} is {len(encoded)} chars, dropping {len(args)} args")
    return DEEP_LINK_PREFIX + _encode_json(cmd, []), True


def decode_payload(payload: Optional[str]) -> Optional[DeepLinkCommand]:
    """Decode a ``cmd_`` start parameter. None if it is not one or is malformed."""
    if not payload or not payload.startswith(DEEP_LINK_PREFIX):
        return None

    try:
        data = json.loads(_b64decode(payload[len(DEEP_LINK_PREFIX):]).decode("utf-8"))
    except (binascii.Error, ValueError) as exc:
        logger.warning(f"Malformed deep-link payload: {exc}")
        return None

    if not isinstance(data, dict):
        return None
    cmd = data.get("cmd")
    args = data.get("args", [])
    if not isinstance(cmd, str) or not cmd.startswith("/"):
        return None
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        args = []
    return DeepLinkCommand(cmd=cmd.lower(), args=tuple(args))


def build_deep_link(bot_username: str, payload: str) -> str:
    """Private-chat URL carrying ``payload`` as the start parameter."""
    if not bot_username:
        raise ValueError("bot username is not configured")
    return f"https://t.me/{bot_username.lstrip('@')}?start={payload}"


# =============================================================================
# Command parsing
# =============================================================================

def parse_command(text: Optional[str]) -> Optional[Tuple[str, str, List[str]]]:
    """
    Split command text into (raw, stripped, args).

    ``raw`` keeps any ``@botname`` suffix, ``stripped`` removes it; both are
    lower-cased. None if the text is not a command.
    """
    if not text or not text.startswith("/"):
        return None
    parts = text.split()
    raw = parts[0].lower()
    stripped = raw.split("@", 1)[0]
    if stripped == "/":
        return None
    return raw, stripped, parts[1:]


def is_sensitive(raw: str, stripped: str) -> bool:
    return raw in SENSITIVE_COMMANDS or stripped in SENSITIVE_COMMANDS


# =============================================================================
# Gate
# =============================================================================

class GateOutcome(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    REDIRECTED = "redirected"


@dataclass
class GateResult:
    outcome: GateOutcome
    command: Optional[str] = None
    link: Optional[str] = None
    truncated: bool = False
    fallback_used: bool = False
    args: List[str] = field(default_factory=list)

    @property
    def redirected(self) -> bool:
        return self.outcome == GateOutcome.REDIRECTED


NOT_APPLICABLE = GateResult(GateOutcome.NOT_APPLICABLE)


class SecurityGate:
    """
    Redirects sensitive group commands to private chat.

    Args:
        bot_username: Bot username used in deep links
        translator: Translator for the redirect message
    """

    def __init__(self, bot_username: str, translator: Translator, limit: int = DEEP_LINK_LIMIT):
        self.bot_username = (bot_username or "").lstrip("@")
        self._translator = translator
        self._limit = limit

    def applies(self, chat_type: Optional[str], text: Optional[str]) -> bool:
        if chat_type not in GROUP_CHAT_TYPES:
            return False
        parsed = parse_command(text)
        return parsed is not None and is_sensitive(parsed[0], parsed[1])

    async def intercept(self, message: Message, locale: str = "en") -> GateResult:
        """
        Redirect ``message`` if it is a sensitive command in a group.

        Once a command is judged sensitive this always returns REDIRECTED,
        even if every send fails.
        """
        chat_type = message.chat.type if message.chat else None
        if not self.applies(chat_type, message.text):
            return NOT_APPLICABLE

        raw, command, args = parse_command(message.text)
        user_id = message.from_user.id if message.from_user else None
        logger.info(f"Redirecting {command} from group {message.chat.id} (user {user_id}) to private chat")

        try:
            payload, truncated = encode_payload(command, args, self._limit)
            link = build_deep_link(self.bot_username, payload)
            text, markup = self._compose(command, link, truncated, locale)
            await message.reply_text(text, parse_mode=ParseMode.HTML, reply_markup=markup)
            return GateResult(GateOutcome.REDIRECTED, command=command, link=link, truncated=truncated, args=args)
        except Exception as exc:
            logger.error(f"Failed to send private chat redirect for {command}: {exc}")
            await self._send_fallback(message)
            return GateResult(GateOutcome.REDIRECTED, command=command, fallback_used=True, args=args)

    def _compose(self, command: str, link: str, truncated: bool, locale: str) -> Tuple[str, InlineKeyboardMarkup]:
        t = self._translator.translate
        emoji, label = BUTTON_LABELS.get(command, ("⚡", command.lstrip("/")))

        lines = [
            t("security.redirect_title", locale),
            "",
            t("security.redirect_body", locale),
            t("security.redirect_cta", locale, button=label),
        ]
        if truncated:
            lines.append("")
            lines.append(t("security.args_dropped", locale))

        markup = InlineKeyboardMarkup([[InlineKeyboardButton(f"{emoji} {label}", url=link)]])
        return "\n".join(lines), markup

    async def _send_fallback(self, message: Message) -> None:
        try:
            await message.reply_text(FALLBACK_REDIRECT_TEXT)
        except Exception as exc:
            logger.error(f"Failed to send redirect fallback notice: {exc}")


__all__ = [
    "DEEP_LINK_LIMIT",
    "DEEP_LINK_PREFIX",
    "DeepLinkCommand",
    "GateOutcome",
    "GateResult",
    "SENSITIVE_COMMANDS",
    "SecurityGate",
    "build_deep_link",
    "decode_payload",
    "encode_payload",
    "is_sensitive",
    "parse_command",
]
