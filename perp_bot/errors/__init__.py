"""Error taxonomy, classification, rendering and reporting."""

from perp_bot.errors.classification import (
    Classification,
    ErrorKind,
    Severity,
    classify,
    classify_generic,
    is_user_fault,
)
from perp_bot.errors.exceptions import ApiError, PerpBotError, ValidationError
from perp_bot.errors.messages import (
    ERROR_TEMPLATES,
    FALLBACK_MESSAGE,
    ErrorContext,
    ErrorRenderer,
    RenderedError,
)
from perp_bot.errors.reporter import ErrorReporter, classify_failure, log_level_for

__all__ = [
    "ApiError",
    "Classification",
    "ERROR_TEMPLATES",
    "ErrorContext",
    "ErrorKind",
    "ErrorRenderer",
    "ErrorReporter",
    "FALLBACK_MESSAGE",
    "PerpBotError",
    "RenderedError",
    "Severity",
    "ValidationError",
    "classify",
    "classify_failure",
    "classify_generic",
    "is_user_fault",
    "log_level_for",
]
