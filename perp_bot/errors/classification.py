"""
Error classification.

Maps any failure to a closed taxonomy with retryability and severity.
``classify`` is a pure function: it keeps no state, so the same failure
always yields an equal ``Classification``.

HTTP status is the primary signal. Message text is only inspected for
400 responses and for failures that carry no status at all; the
substring tables below are checked in the order they are listed, so the
first matching kind wins when a message mentions several.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Tuple


class ErrorKind(str, Enum):
    """Closed taxonomy of failure kinds."""

    # Trading
    POSITION_ABSENT = "position_absent"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_POSITION = "insufficient_position"
    INVALID_AMOUNT = "invalid_amount"
    EXECUTION_FAILED = "execution_failed"

    # Input
    FORMAT_ERROR = "format_error"
    MISSING_PARAMS = "missing_params"
    INVALID_SYMBOL = "invalid_symbol"

    # Auth
    AUTH_FAILED = "auth_failed"
    TOKEN_EXPIRED = "token_expired"
    PERMISSION_DENIED = "permission_denied"

    # Network / service
    NETWORK_ERROR = "network_error"
    API_ERROR = "api_error"
    SERVER_ERROR = "server_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    RATE_LIMITED = "rate_limited"

    # Data / state
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"

    UNKNOWN = "unknown"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Kinds the user can fix by changing their input or waiting
USER_FAULT_KINDS = frozenset({
    ErrorKind.POSITION_ABSENT,
    ErrorKind.INSUFFICIENT_FUNDS,
    ErrorKind.INSUFFICIENT_POSITION,
    ErrorKind.INVALID_AMOUNT,
    ErrorKind.FORMAT_ERROR,
    ErrorKind.MISSING_PARAMS,
    ErrorKind.INVALID_SYMBOL,
    ErrorKind.RATE_LIMITED,
    ErrorKind.NOT_FOUND,
})


def is_user_fault(kind: ErrorKind) -> bool:
    """True when the condition stems from user input rather than system state."""
    return kind in USER_FAULT_KINDS


@dataclass(frozen=True)
class Classification:
    """Typed result of classifying a failure."""

    kind: ErrorKind
    retryable: bool
    severity: Severity
    http_status: Optional[int] = None

    @property
    def user_fault(self) -> bool:
        return is_user_fault(self.kind)


# =============================================================================
# Substring tables (priority order matters)
# =============================================================================

BAD_REQUEST_RULES: Tuple[Tuple[ErrorKind, bool, Severity, Tuple[str, ...]], ...] = (
    (ErrorKind.POSITION_ABSENT, False, Severity.LOW,
     ("no position", "position not found", "no positions found", "仓位不存在")),
    (ErrorKind.INSUFFICIENT_POSITION, False, Severity.LOW,
     ("insufficient position", "仓位不足")),
    (ErrorKind.INSUFFICIENT_FUNDS, False, Severity.MEDIUM,
     ("insufficient fund", "insufficient balance", "余额不足", "资金不足")),
    (ErrorKind.INVALID_AMOUNT, False, Severity.LOW,
     ("invalid amount", "invalid quantity", "amount must be", "数量无效")),
    (ErrorKind.EXECUTION_FAILED, True, Severity.HIGH,
     ("hyperliquid api returned null", "execution failed", "trade failed", "交易失败")),
    (ErrorKind.INVALID_SYMBOL, False, Severity.LOW,
     ("invalid symbol", "unknown symbol", "symbol not found", "代币不存在")),
    (ErrorKind.FORMAT_ERROR, False, Severity.LOW,
     ("invalid format", "format error", "malformed", "格式错误")),
    (ErrorKind.MISSING_PARAMS, False, Severity.LOW,
     ("missing parameter", "required parameter", "参数缺失", "缺少参数")),
)

NETWORK_VOCABULARY: Tuple[str, ...] = (
    "network", "connection", "timeout", "timed out", "econnrefused", "enotfound",
    "cannot connect", "网络",
)
AUTH_VOCABULARY: Tuple[str, ...] = ("unauthorized", "authentication", "token", "认证")
VALIDATION_VOCABULARY: Tuple[str, ...] = ("validation", "invalid", "format", "验证")


# =============================================================================
# Classifier
# =============================================================================

def _failure_status(failure: Any) -> Optional[int]:
    status = getattr(failure, "status", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def _failure_message(failure: Any) -> str:
    message = getattr(failure, "message", None)
    if not isinstance(message, str) or not message:
        message = str(failure)
    return message.lower()


def _contains_any(text: str, needles: Sequence[str]) -> bool:
    return any(n in text for n in needles)


def _classify_bad_request(message: str) -> Classification:
    for kind, retryable, severity, needles in BAD_REQUEST_RULES:
        if _contains_any(message, needles):
            return Classification(kind, retryable, severity, 400)
    return Classification(ErrorKind.API_ERROR, False, Severity.MEDIUM, 400)


def classify(failure: Any) -> Classification:
    """
    Classify a failure, using its HTTP status when it has one.

    Args:
        failure: Any exception; ``status`` and ``message`` attributes are
            used when present (see ApiError)

    Returns:
        Classification
    """
    status = _failure_status(failure)
    message = _failure_message(failure)

    if status is None:
        if _contains_any(message, NETWORK_VOCABULARY):
            return Classification(ErrorKind.NETWORK_ERROR, True, Severity.HIGH)
        return Classification(ErrorKind.UNKNOWN, False, Severity.MEDIUM)

    if status == 400:
        return _classify_bad_request(message)
    if status == 401:
        # A token refresh may resolve it
        return Classification(ErrorKind.AUTH_FAILED, True, Severity.MEDIUM, status)
    if status == 403:
        return Classification(ErrorKind.PERMISSION_DENIED, False, Severity.MEDIUM, status)
    if status == 404:
        return Classification(ErrorKind.NOT_FOUND, False, Severity.LOW, status)
    if status == 429:
        return Classification(ErrorKind.RATE_LIMITED, True, Severity.MEDIUM, status)
    if 500 <= status <= 599:
        return Classification(ErrorKind.SERVER_ERROR, True, Severity.HIGH, status)

    return Classification(ErrorKind.UNKNOWN, False, Severity.MEDIUM, status)


def classify_generic(failure: Any) -> Classification:
    """
    Classify a plain exception with no HTTP semantics.

    Network vocabulary is checked first, then authentication, then
    validation.
    """
    message = _failure_message(failure)

    if _contains_any(message, NETWORK_VOCABULARY):
        return Classification(ErrorKind.NETWORK_ERROR, True, Severity.HIGH)
    if _contains_any(message, AUTH_VOCABULARY):
        return Classification(ErrorKind.AUTH_FAILED, True, Severity.MEDIUM)
    if _contains_any(message, VALIDATION_VOCABULARY):
        return Classification(ErrorKind.FORMAT_ERROR, False, Severity.LOW)
    return Classification(ErrorKind.UNKNOWN, False, Severity.MEDIUM)


__all__ = [
    "ErrorKind",
    "Severity",
    "Classification",
    "USER_FAULT_KINDS",
    "is_user_fault",
    "classify",
    "classify_generic",
]
