"""Step validators for flow input. Each raises ValidationError on bad input."""

import re
from decimal import Decimal, InvalidOperation
from typing import Tuple

from perp_bot.errors.exceptions import ValidationError

MIN_TRADE_AMOUNT = Decimal("10")
MIN_WITHDRAW_AMOUNT = Decimal("10")
MIN_LEVERAGE = 1
MAX_LEVERAGE = 50

SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9]{1,12}$")
ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
ADDRESS_LENGTH = 42


def validate_symbol(text: str) -> str:
    """Normalized (upper-case) symbol; existence is checked against market data separately."""
    symbol = (text or "").strip().lstrip("$").upper()
    if not SYMBOL_PATTERN.match(symbol):
        raise ValidationError("validation.symbol_format", value=text)
    return symbol


def parse_leverage(text: str) -> int:
    """Accepts ``10`` or ``10x``."""
    raw = (text or "").strip().lower().rstrip("x")
    if not raw.isdigit():
        raise ValidationError("validation.leverage_format", value=text)
    leverage = int(raw)
    if not MIN_LEVERAGE <= leverage <= MAX_LEVERAGE:
        raise ValidationError("validation.leverage_range", min=MIN_LEVERAGE, max=MAX_LEVERAGE)
    return leverage


def parse_amount(text: str, minimum: Decimal) -> Decimal:
    """Positive USD amount, at least ``minimum``. Accepts a leading ``$``."""
    raw = (text or "").strip().lstrip("$").replace(",", "")
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("validation.amount_format", value=text)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("validation.amount_format", value=text)
    if amount < minimum:
        raise ValidationError("validation.amount_minimum", minimum=f"{minimum:.0f}")
    return amount


def validate_address(text: str) -> str:
    address = (text or "").strip()
    if len(address) != ADDRESS_LENGTH:
        raise ValidationError("validation.address_length", length=len(address), expected=ADDRESS_LENGTH)
    if not ADDRESS_PATTERN.match(address):
        raise ValidationError("validation.address_format")
    return address


def parse_close_amount(text: str) -> Tuple[str, bool]:
    """
    Close size for /close: ``50%`` or a positive number.

    Returns:
        (value, is_percentage) with value in backend format
    """
    raw = (text or "").strip()
    if raw.endswith("%"):
        try:
            pct = Decimal(raw[:-1])
        except InvalidOperation:
            raise ValidationError("validation.close_format", value=text)
        if not pct.is_finite() or pct <= 0 or pct > 100:
            raise ValidationError("validation.close_percentage")
        return f"{pct.normalize():f}%", True

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("validation.close_format", value=text)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("validation.close_format", value=text)
    return f"{amount.normalize():f}", False
