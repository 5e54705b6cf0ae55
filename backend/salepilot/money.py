# Overview: Decimal parsing and rounding helpers for money and stock quantities.

"""
Money & Quantity Helpers

WHY: Ledger arithmetic must be exact. Floats never enter the core: every
amount is parsed into Decimal once at the service boundary and quantized to
a fixed scale (2 places for money, 3 for stock quantities).

ROUNDING: ROUND_HALF_UP everywhere, matching how receipts are printed.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidAmountError

ZERO = Decimal("0.00")
MONEY_PLACES = Decimal("0.01")
QTY_PLACES = Decimal("0.001")

# $9,999,999,999.99 fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")

# 999,999,999.999 fits Numeric(12, 3)
MAX_QUANTITY = Decimal("999999999.999")


def _to_decimal(value: Any, field: str) -> Decimal:
    if value is None:
        raise InvalidAmountError(f"{field} is required")
    if isinstance(value, bool):
        raise InvalidAmountError(f"{field} must be a number")
    if isinstance(value, float):
        # Go through str() so 0.1 becomes Decimal("0.1"), not the binary expansion
        value = str(value)
    try:
        result = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{field} must be a number", details={"value": str(value)})
    if not result.is_finite():
        raise InvalidAmountError(f"{field} must be finite")
    return result


def _quantize(value: Decimal, places: Decimal, field: str) -> Decimal:
    try:
        return value.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits for the context precision
        raise InvalidAmountError(f"{field} exceeds maximum allowed", details={field: str(value)})


def money(value: Any, field: str = "amount", *, allow_negative: bool = False) -> Decimal:
    """Parse a money amount and quantize to cents."""
    result = _quantize(_to_decimal(value, field), MONEY_PLACES, field)
    if not allow_negative and result < 0:
        raise InvalidAmountError(f"{field} cannot be negative", details={field: str(result)})
    if abs(result) > MAX_MONEY:
        raise InvalidAmountError(f"{field} exceeds maximum allowed", details={field: str(result)})
    return result


def positive_money(value: Any, field: str = "amount") -> Decimal:
    result = money(value, field)
    if result <= 0:
        raise InvalidAmountError(f"{field} must be positive", details={field: str(result)})
    return result


def optional_money(value: Any, field: str) -> Decimal:
    """None / "" -> 0.00, otherwise a non-negative money amount."""
    if value is None or value == "":
        return ZERO
    return money(value, field)


def quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Parse a stock quantity (3 decimal places). Must be > 0 unless allow_zero."""
    result = _quantize(_to_decimal(value, field), QTY_PLACES, field)
    if result < 0 or (result == 0 and not allow_zero):
        raise InvalidAmountError(
            f"{field} must be {'non-negative' if allow_zero else 'positive'}",
            details={field: str(result)},
        )
    if result > MAX_QUANTITY:
        raise InvalidAmountError(f"{field} exceeds maximum allowed", details={field: str(result)})
    return result


def round_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def as_str(value: Decimal | None) -> str | None:
    """Serialize a Decimal for to_dict() payloads without float drift."""
    if value is None:
        return None
    return str(value)
