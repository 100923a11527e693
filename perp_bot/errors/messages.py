"""
User-facing error messages.

Every ErrorKind has exactly one template. The framing lines (labels,
retry hint, support line) go through the translator; template bodies
are data kept here.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from perp_bot.errors.classification import Classification, ErrorKind, is_user_fault
from perp_bot.i18n import Translator

logger = logging.getLogger(__name__)

# Used when rendering itself fails; must not depend on anything that can raise
FALLBACK_MESSAGE = "❌ Something went wrong. Please try again later."


@dataclass(frozen=True)
class ErrorTemplate:
    """Fixed wording for one error kind."""
    icon: str
    title: str
    description: str
    reasons: Tuple[str, ...]
    suggestions: Tuple[str, ...]


@dataclass
class ErrorContext:
    """Optional facts interpolated into a rendered error."""
    symbol: Optional[str] = None
    amount: Optional[str] = None
    command: Optional[str] = None
    details: Optional[str] = None


@dataclass
class RenderedError:
    """Structured error message, ready for HTML formatting."""
    kind: ErrorKind
    title: str
    description: str
    context_lines: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    retry_hint: Optional[str] = None
    support_line: Optional[str] = None
    reasons_label: str = "Possible reasons:"
    suggestions_label: str = "Suggested actions:"

    def to_html(self) -> str:
        lines = [f"<b>{self.title}</b>", ""]

        if self.context_lines:
            lines.extend(self.context_lines)
            lines.append("")

        lines.append(self.description)
        lines.append("")

        if self.reasons:
            lines.append(f"\U0001f914 <b>{self.reasons_label}</b>")
            lines.extend(f"• {r}" for r in self.reasons)
            lines.append("")

        lines.append(f"\U0001f4a1 <b>{self.suggestions_label}</b>")
        lines.extend(f"• {s}" for s in self.suggestions)

        if self.retry_hint:
            lines.append("")
            lines.append(self.retry_hint)

        if self.support_line:
            lines.append("")
            lines.append(f"<i>{self.support_line}</i>")

        return "\n".join(lines)


# =============================================================================
# Templates
# =============================================================================

ERROR_TEMPLATES: Dict[ErrorKind, ErrorTemplate] = {
    ErrorKind.POSITION_ABSENT: ErrorTemplate(
        icon="\U0001f4ed",
        title="No position found for this token",
        description="No position information was found for this token in your account.",
        reasons=(
            "You currently hold no position in this token",
            "The position has already been fully closed",
            "The token symbol was entered incorrectly",
        ),
        suggestions=(
            "Use /positions to view all current positions",
            "Check the symbol spelling (e.g. BTC, ETH, SOL)",
            "If you traded just now, wait a moment for data to sync",
        ),
    ),
    ErrorKind.INSUFFICIENT_FUNDS: ErrorTemplate(
        icon="\U0001f4b0",
        title="Insufficient account balance",
        description="Your account balance is not enough to complete this operation.",
        reasons=(
            "Available balance is too low",
            "Funds are held by other orders",
            "Margin is insufficient",
        ),
        suggestions=(
            "Use /wallet to check your balance",
            "Reduce the amount",
            "Deposit more funds",
        ),
    ),
    ErrorKind.INSUFFICIENT_POSITION: ErrorTemplate(
        icon="\U0001f4c9",
        title="Insufficient position amount",
        description="The amount you want to close exceeds your current position.",
        reasons=(
            "The position is smaller than the requested close amount",
            "Part of the position was closed by another order",
            "Several close operations ran at the same time",
        ),
        suggestions=(
            "Use /positions to check the latest position size",
            "Try a smaller percentage (e.g. 50%)",
            "Wait a few seconds and retry",
        ),
    ),
    ErrorKind.INVALID_AMOUNT: ErrorTemplate(
        icon="\U0001f522",
        title="Invalid amount",
        description="The amount you entered is malformed or out of range.",
        reasons=(
            "The amount is not a valid number",
            "The percentage is outside 0-100%",
            "The amount is zero, negative or below the minimum",
        ),
        suggestions=(
            "Amount format: 10, 25.5, 100",
            "Percentage format: 30%, 50%, 100%",
            "Make sure the value is positive and at least $10",
        ),
    ),
    ErrorKind.EXECUTION_FAILED: ErrorTemplate(
        icon="⚠️",
        title="Order execution failed",
        description="The order was submitted but could not be executed.",
        reasons=(
            "Market liquidity is temporarily insufficient",
            "The trading system is busy or under maintenance",
            "High price volatility prevented execution",
        ),
        suggestions=(
            "Wait 10-30 seconds and retry",
            "Try a smaller size",
            "Use /positions to confirm the current state",
        ),
    ),
    ErrorKind.FORMAT_ERROR: ErrorTemplate(
        icon="\U0001f4dd",
        title="Command format error",
        description="The command format you entered is incorrect.",
        reasons=(
            "A parameter does not match the expected format",
            "A required parameter is missing",
            "Parameters are in the wrong order",
        ),
        suggestions=(
            "Check the command format",
            "Refer to the usage examples",
            "Use /help to view command help",
        ),
    ),
    ErrorKind.MISSING_PARAMS: ErrorTemplate(
        icon="❓",
        title="Missing required parameters",
        description="The command is missing required parameters.",
        reasons=(
            "Required parameters were not provided",
            "Too few parameters were given",
        ),
        suggestions=(
            "Add the missing parameters",
            "Use /help to see the complete command format",
        ),
    ),
    ErrorKind.INVALID_SYMBOL: ErrorTemplate(
        icon="\U0001fa99",
        title="Invalid token symbol",
        description="The token symbol you entered does not exist or is not supported.",
        reasons=(
            "The token symbol does not exist",
            "This token is not tradable yet",
            "The symbol is misspelled",
        ),
        suggestions=(
            "Check the symbol spelling",
            "Try a major token such as BTC, ETH or SOL",
        ),
    ),
    ErrorKind.AUTH_FAILED: ErrorTemplate(
        icon="\U0001f510",
        title="Authentication failed",
        description="We could not verify your identity. Please log in again.",
        reasons=(
            "Your login session has expired",
            "Your account credentials are no longer valid",
        ),
        suggestions=(
            "Send /start to reinitialize your account",
            "Wait a few seconds and retry",
        ),
    ),
    ErrorKind.TOKEN_EXPIRED: ErrorTemplate(
        icon="⏰",
        title="Session expired",
        description="Your login session has expired.",
        reasons=(
            "No activity for a long time",
            "Security policy ended the session",
        ),
        suggestions=(
            "Restart with /start",
            "Authenticate again",
        ),
    ),
    ErrorKind.PERMISSION_DENIED: ErrorTemplate(
        icon="\U0001f6ab",
        title="Insufficient permissions",
        description="Your account is not allowed to perform this operation.",
        reasons=(
            "Account level restriction",
            "Risk control policy restriction",
        ),
        suggestions=(
            "Contact support to learn about the requirements",
            "Complete any pending verification",
        ),
    ),
    ErrorKind.NETWORK_ERROR: ErrorTemplate(
        icon="\U0001f310",
        title="Network connection problem",
        description="Unable to reach the server.",
        reasons=(
            "The network connection is unstable",
            "The server is temporarily unreachable",
        ),
        suggestions=(
            "Try again in a moment",
            "Check your network connection",
        ),
    ),
    ErrorKind.API_ERROR: ErrorTemplate(
        icon="\U0001f527",
        title="API error",
        description="The backend returned an error.",
        reasons=(
            "Backend interface exception",
            "Data processing error",
        ),
        suggestions=(
            "Try again later",
            "Check the parameters you entered",
        ),
    ),
    ErrorKind.SERVER_ERROR: ErrorTemplate(
        icon="\U0001f527",
        title="Internal server error",
        description="The server encountered an internal error.",
        reasons=(
            "Internal server exception",
            "Insufficient system resources",
        ),
        suggestions=(
            "Try again later",
            "Follow system status announcements",
        ),
    ),
    ErrorKind.SERVICE_UNAVAILABLE: ErrorTemplate(
        icon="\U0001f6a7",
        title="Service temporarily unavailable",
        description="The service is under maintenance or being upgraded.",
        reasons=(
            "System maintenance",
            "Traffic overload",
        ),
        suggestions=(
            "Try again later",
            "Follow maintenance announcements",
        ),
    ),
    ErrorKind.RATE_LIMITED: ErrorTemplate(
        icon="⏱️",
        title="Too many requests",
        description="You are sending requests too quickly.",
        reasons=(
            "Too many requests in a short time",
            "Rate limit triggered",
        ),
        suggestions=(
            "Wait a moment and retry",
            "Slow down",
        ),
    ),
    ErrorKind.NOT_FOUND: ErrorTemplate(
        icon="\U0001f50d",
        title="Data not found",
        description="The requested data does not exist.",
        reasons=(
            "The data was removed",
            "The query was incorrect",
            "Data synchronization delay",
        ),
        suggestions=(
            "Check the parameters",
            "Try again later",
        ),
    ),
    ErrorKind.INVALID_STATE: ErrorTemplate(
        icon="\U0001f504",
        title="Operation no longer valid",
        description="The current state does not allow this operation.",
        reasons=(
            "This confirmation has expired or was already handled",
            "Another operation changed the state",
        ),
        suggestions=(
            "Start the command again",
            "Use /cancel to reset and retry",
        ),
    ),
    ErrorKind.UNKNOWN: ErrorTemplate(
        icon="❌",
        title="Unknown error",
        description="An unexpected error occurred.",
        reasons=(
            "The system hit an unexpected condition",
            "Configuration problem",
        ),
        suggestions=(
            "Try again later",
            "Contact support with the time of the error",
        ),
    ),
}


def get_template(kind: ErrorKind) -> ErrorTemplate:
    """Template for ``kind``. A missing entry is a programming error."""
    return ERROR_TEMPLATES[kind]


class ErrorRenderer:
    """
    Renders classifications into localized HTML messages.

    Args:
        translator: Translator for framing lines
        support_contact: Named in the support line of system errors
    """

    def __init__(self, translator: Translator, support_contact: str = "@support"):
        self._translator = translator
        self._support_contact = support_contact

    def render(
        self,
        kind: ErrorKind,
        context: Optional[ErrorContext] = None,
        locale: str = "en",
        retryable: bool = False,
        force_retry_hint: bool = False,
    ) -> RenderedError:
        template = get_template(kind)
        t = self._translator.translate
        ctx = context or ErrorContext()

        context_lines = []
        if ctx.symbol:
            context_lines.append(t("error.token", locale, symbol=html.escape(ctx.symbol.upper())))
        if ctx.amount:
            context_lines.append(t("error.amount", locale, amount=html.escape(str(ctx.amount))))
        if ctx.details:
            context_lines.append(t("error.details", locale, details=html.escape(ctx.details)))

        return RenderedError(
            kind=kind,
            title=f"{template.icon} {template.title}",
            description=template.description,
            context_lines=context_lines,
            reasons=list(template.reasons),
            suggestions=list(template.suggestions),
            retry_hint=t("error.retry_hint", locale) if (retryable or force_retry_hint) else None,
            support_line=(
                None if is_user_fault(kind)
                else t("error.contact_support", locale, contact=html.escape(self._support_contact))
            ),
            reasons_label=t("error.reasons", locale),
            suggestions_label=t("error.suggestions", locale),
        )

    def render_classification(
        self,
        classification: Classification,
        context: Optional[ErrorContext] = None,
        locale: str = "en",
        force_retry_hint: bool = False,
    ) -> RenderedError:
        return self.render(
            classification.kind,
            context=context,
            locale=locale,
            retryable=classification.retryable,
            force_retry_hint=force_retry_hint,
        )


__all__ = [
    "ERROR_TEMPLATES",
    "FALLBACK_MESSAGE",
    "ErrorContext",
    "ErrorRenderer",
    "ErrorTemplate",
    "RenderedError",
    "get_template",
]
