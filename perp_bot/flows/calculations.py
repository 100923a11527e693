"""Derived values shown in confirmation previews."""

from decimal import ROUND_HALF_UP, Decimal

MAINTENANCE_MARGIN_RATIO = 0.05
WITHDRAWAL_FEE = Decimal("1.00")


def liquidation_price(
    entry_price: float,
    leverage: float,
    direction: str,
    maintenance_margin_ratio: float = MAINTENANCE_MARGIN_RATIO,
) -> float:
    """
    Estimated liquidation price.

    The same offset applies to both directions; a long is liquidated below
    entry, a short above it.
    """
    if leverage <= 0:
        raise ValueError("leverage must be positive")
    if direction not in ("long", "short"):
        raise ValueError(f"Unknown direction: {direction}")

    ratio = (leverage - 1) / leverage * (1 - maintenance_margin_ratio)
    sign = -1 if direction == "long" else 1
    return entry_price * (1 + sign * ratio)


def order_size(amount: Decimal, price: float) -> float:
    """Token quantity for a USD amount."""
    if price <= 0:
        raise ValueError("price must be positive")
    return float(amount) / price


def net_withdrawal(amount: Decimal, fee: Decimal = WITHDRAWAL_FEE) -> Decimal:
    """Amount received after the flat fee, to cents."""
    return (amount - fee).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
