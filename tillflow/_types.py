"""
Core types for tillflow.

Re-exports from kungfu + money aliases shared by every subpackage.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# Re-export from kungfu
from kungfu import Result, Ok, Error, Option, Some, Nothing, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Monetary amount in major currency units (rupees, dollars...)."""

ZERO: Money = Decimal("0")
CENT: Money = Decimal("0.01")


def to_money(value: object) -> Money:
    """
    Coerce a wire value into Decimal without float artifacts.

    Floats go through ``str`` so ``0.1`` stays ``Decimal("0.1")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, (int, str)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(f"Cannot convert {type(value).__name__} to money")


def to_minor_units(amount: Money) -> int:
    """Amount in minor units (paise, cents), rounded half-up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_amount(amount: Money) -> str:
    """Two-decimal string, as deep-link payment intents expect."""
    return str(amount.quantize(CENT, rounding=ROUND_HALF_UP))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "Option",
    "Some",
    "Nothing",
    "LazyCoroResult",
    # Money
    "Money",
    "ZERO",
    "CENT",
    "to_money",
    "to_minor_units",
    "format_amount",
)
