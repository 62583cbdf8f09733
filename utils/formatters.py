"""
utils/formatters.py - Amount Parsing and Formatting Utilities

Every amount in a snapshot, a ledger reply or an emitted action is a decimal
with four fractional digits. Amounts are held as Decimal end to end so the
running snapshot total does not depend on summation order.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

logger = logging.getLogger(__name__)

PRECISION = 4
_QUANTUM = Decimal(1).scaleb(-PRECISION)  # 0.0001
ZERO = Decimal("0")


def quantize(value: Decimal) -> Decimal:
    """Round to four decimals, half away from zero."""
    return value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """
    Format an amount at fixed precision.

    Example:
        format_amount(Decimal("12.5")) -> "12.5000"
    """
    return f"{quantize(value):.{PRECISION}f}"


def format_asset(value: Decimal, symbol: str) -> str:
    """
    Format an amount as a ledger asset string.

    Example:
        format_asset(Decimal("12.5"), "XEC") -> "12.5000 XEC"
    """
    return f"{format_amount(value)} {symbol}"


def parse_amount(text: Optional[str]) -> Decimal:
    """
    Parse a snapshot amount column.

    Args:
        text: Raw column value, possibly missing or empty

    Returns:
        The amount; zero for missing, empty or unparsable values. An
        unparsable value is logged so one bad column never aborts a snapshot.
    """
    if text is None:
        return ZERO
    text = text.strip()
    if not text:
        return ZERO
    try:
        value = Decimal(text)
    except InvalidOperation:
        logger.warning(f"Unparsable amount {text!r}, using 0")
        return ZERO
    if not value.is_finite():
        logger.warning(f"Non-finite amount {text!r}, using 0")
        return ZERO
    return value


def parse_asset(asset: Optional[str]) -> Decimal:
    """
    Parse a ledger asset string.

    Args:
        asset: Value such as "1000000.0000 XEC", or None when absent

    Returns:
        The numeric part; zero when the asset is absent

    Raises:
        ValueError: the asset is present but not a number, which means the
            ledger reply itself is unusable
    """
    if asset is None:
        return ZERO
    amount = str(asset).strip().split(" ")[0]
    if not amount:
        return ZERO
    try:
        return Decimal(amount)
    except InvalidOperation as e:
        raise ValueError(f"Malformed asset {asset!r}") from e
