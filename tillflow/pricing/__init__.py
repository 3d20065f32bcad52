"""
Pricing — cart snapshot to monetary breakdown.

    from tillflow import pricing as P

    schedule = P.FeeSchedule().with_shipping("20").with_platform_fee("2")
    breakdown = P.compute_breakdown(cart, schedule)
"""

from tillflow.pricing._types import (
    Variation,
    CartLine,
    CartSnapshot,
    EMPTY_CART,
    GstMode,
    FeeSchedule,
    PriceBreakdown,
    ZERO_BREAKDOWN,
)
from tillflow.pricing._engine import (
    subtotal_of,
    discount_of,
    average_gst_rate,
    tax_of,
    compute_breakdown,
)

__all__ = (
    # Types
    "Variation",
    "CartLine",
    "CartSnapshot",
    "EMPTY_CART",
    "GstMode",
    "FeeSchedule",
    "PriceBreakdown",
    "ZERO_BREAKDOWN",
    # Engine
    "subtotal_of",
    "discount_of",
    "average_gst_rate",
    "tax_of",
    "compute_breakdown",
)
