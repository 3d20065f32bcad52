"""
Pricing engine — cart snapshot + fee schedule → breakdown.

Pure: no I/O, no clock, no randomness. Same input, same Decimal output.
"""

from __future__ import annotations

from decimal import Decimal

from tillflow._types import Money, ZERO
from tillflow.pricing._types import (
    CartSnapshot,
    FeeSchedule,
    GstMode,
    PriceBreakdown,
    ZERO_BREAKDOWN,
)

_HUNDRED = Decimal(100)


def subtotal_of(cart: CartSnapshot) -> Money:
    return sum((line.total for line in cart), ZERO)


def discount_of(cart: CartSnapshot, subtotal: Money) -> Money:
    """List-price total minus what is actually charged, never negative."""
    list_total = sum((line.list_total for line in cart), ZERO)
    return max(ZERO, list_total - subtotal)


def average_gst_rate(cart: CartSnapshot) -> Decimal:
    """
    Mean of the positive GST rates, one entry per line.

    Lines without GST (None or 0) do not dilute the average.
    """
    rates = [line.gst_percent for line in cart if line.gst_percent is not None and line.gst_percent > 0]
    if not rates:
        return ZERO
    return sum(rates, ZERO) / len(rates)


def tax_of(cart: CartSnapshot, subtotal: Money, mode: GstMode) -> Money:
    match mode:
        case GstMode.WEIGHTED_AVERAGE:
            tax = subtotal * average_gst_rate(cart) / _HUNDRED
        case GstMode.PER_LINE:
            tax = sum(
                (line.total * line.gst_percent / _HUNDRED for line in cart if line.gst_percent),
                ZERO,
            )
    return max(ZERO, tax)


def compute_breakdown(cart: CartSnapshot, schedule: FeeSchedule) -> PriceBreakdown:
    """
    Compute the order breakdown.

    Weighted-average mode averages the *rates* of taxed lines and applies
    that mean to the whole subtotal; it is not a per-line tax sum.

    Example:
        cart = CartSnapshot.of([
            CartLine("Rice", quantity=2, unit_price=Decimal(100), gst_percent=Decimal(5)),
            CartLine("Salt", quantity=1, unit_price=Decimal(50), gst_percent=Decimal(0)),
        ])
        b = compute_breakdown(cart, FeeSchedule().with_shipping(20).with_platform_fee(2))
        # subtotal=250, tax=12.5, grand_total=284.5
    """
    if cart.is_empty:
        return ZERO_BREAKDOWN

    subtotal = subtotal_of(cart)
    discount = discount_of(cart, subtotal)
    tax = tax_of(cart, subtotal, schedule.gst_mode)
    shipping = schedule.shipping_flat
    platform_fee = schedule.platform_fee_flat

    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping=shipping,
        platform_fee=platform_fee,
        grand_total=subtotal + tax + shipping + platform_fee,
        line_count=len(cart),
    )


__all__ = (
    "subtotal_of",
    "discount_of",
    "average_gst_rate",
    "tax_of",
    "compute_breakdown",
)
