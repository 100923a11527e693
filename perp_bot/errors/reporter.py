"""
Error reporting for command handlers.

Classifies a failure, logs it at a level derived from severity and fault
attribution, and sends the rendered message to the user. Raw upstream
error text is logged but never shown.
"""

import logging
from typing import Awaitable, Callable, Optional

from perp_bot.errors.classification import Classification, Severity, classify, classify_generic
from perp_bot.errors.exceptions import ApiError
from perp_bot.errors.messages import FALLBACK_MESSAGE, ErrorContext, ErrorRenderer
from perp_bot.log_context import get_request_id

logger = logging.getLogger(__name__)

Reply = Callable[[str], Awaitable[object]]


def log_level_for(classification: Classification) -> int:
    """Log level for a classification; never affects user-visible wording."""
    severity = classification.severity
    if classification.user_fault:
        if severity in (Severity.HIGH, Severity.CRITICAL):
            return logging.WARNING
        return logging.INFO
    if severity == Severity.CRITICAL:
        return logging.CRITICAL
    if severity == Severity.HIGH:
        return logging.ERROR
    return logging.WARNING


def classify_failure(failure: BaseException) -> Classification:
    """HTTP-aware classification for backend errors, generic otherwise."""
    if isinstance(failure, ApiError):
        return classify(failure)
    return classify_generic(failure)


class ErrorReporter:
    """
    Turns failures into user replies.

    Args:
        renderer: ErrorRenderer used to build the message
    """

    def __init__(self, renderer: ErrorRenderer):
        self._renderer = renderer

    async def report(
        self,
        failure: BaseException,
        reply: Reply,
        locale: str = "en",
        context: Optional[ErrorContext] = None,
        force_retry_hint: bool = False,
    ) -> Classification:
        """
        Classify ``failure``, log it and send the rendered message via ``reply``.

        Returns the classification so callers can decide whether to keep
        flow state for a retry.
        """
        classification = classify_failure(failure)
        command = context.command if context and context.command else "unknown"

        logger.log(
            log_level_for(classification),
            f"{command} failed: kind={classification.kind.value} "
            f"status={classification.http_status} retryable={classification.retryable} "
            f"user_fault={classification.user_fault} error={failure!r}",
        )

        try:
            rendered = self._renderer.render_classification(
                classification, context=context, locale=locale, force_retry_hint=force_retry_hint
            )
            await reply(rendered.to_html())
        except Exception as exc:
            logger.error(f"Error rendering failed for {command} (request {get_request_id()}): {exc}", exc_info=True)
            await self.send_fallback(reply)

        return classification

    async def send_fallback(self, reply: Reply) -> None:
        """Send the hard-coded generic message; failures are only logged."""
        try:
            await reply(FALLBACK_MESSAGE)
        except Exception as exc:
            logger.error(f"Failed to send fallback error message: {exc}")
