"""
Pricing types — cart snapshot, fee schedule, breakdown.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from tillflow._types import Money, ZERO

# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Variation:
    """Selected product variation (size, weight, ...)."""

    name: str
    value: str


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One line of the cart as the cart API returned it.

    product: embedded product object, a plain product id, or None.
    product_id / id: alternate identifiers the order assembler falls back to.
    line_total: backend-computed total; None means unit_price * quantity.
    """

    name: str
    quantity: int
    unit_price: Money
    original_unit_price: Money | None = None
    gst_percent: Decimal | None = None
    line_total: Money | None = None
    product: Mapping[str, Any] | str | None = None
    product_id: str | None = None
    id: str | None = None
    variation: Variation | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"Cart line {self.name!r}: quantity must be positive, got {self.quantity}")
        for label, amount in (
            ("unit_price", self.unit_price),
            ("original_unit_price", self.original_unit_price),
            ("gst_percent", self.gst_percent),
            ("line_total", self.line_total),
        ):
            if amount is not None and amount < 0:
                raise ValueError(f"Cart line {self.name!r}: {label} must be >= 0, got {amount}")

    @property
    def total(self) -> Money:
        """Line total, falling back to unit price times quantity."""
        if self.line_total is not None:
            return self.line_total
        return self.unit_price * self.quantity

    @property
    def list_total(self) -> Money:
        """Pre-discount total (original price when present)."""
        base = self.original_unit_price if self.original_unit_price is not None else self.unit_price
        return base * self.quantity


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    """
    Ordered, immutable view of the cart.

    Replaced wholesale on every cart API response — never patched in place.
    """

    lines: tuple[CartLine, ...] = ()

    @classmethod
    def of(cls, lines: Sequence[CartLine]) -> CartSnapshot:
        return cls(tuple(lines))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)


EMPTY_CART = CartSnapshot()

# ═══════════════════════════════════════════════════════════════════════════════
# Fee Schedule — Configuration
# ═══════════════════════════════════════════════════════════════════════════════


class GstMode(Enum):
    """
    How GST is derived from the cart.

    WEIGHTED_AVERAGE: mean of the positive line rates applied to the subtotal.
    PER_LINE: each line taxed at its own rate.
    """

    WEIGHTED_AVERAGE = "weighted-average"
    PER_LINE = "per-line"


@dataclass(frozen=True, slots=True)
class FeeSchedule:
    """
    Flat fees and tax mode used by the pricing engine.

    The single source of truth for shipping and platform fees — no other
    module hard-codes them.

    Example:
        schedule = FeeSchedule().with_shipping("20").with_platform_fee("2")
    """

    gst_mode: GstMode = GstMode.WEIGHTED_AVERAGE
    shipping_flat: Money = ZERO
    platform_fee_flat: Money = ZERO

    def __post_init__(self) -> None:
        if self.shipping_flat < 0 or self.platform_fee_flat < 0:
            raise ValueError("Flat fees must be >= 0")

    def with_gst_mode(self, mode: GstMode | str) -> FeeSchedule:
        return replace(self, gst_mode=GstMode(mode))

    def with_shipping(self, amount: Money | str | int) -> FeeSchedule:
        return replace(self, shipping_flat=Decimal(amount))

    def with_platform_fee(self, amount: Money | str | int) -> FeeSchedule:
        return replace(self, platform_fee_flat=Decimal(amount))


# ═══════════════════════════════════════════════════════════════════════════════
# Breakdown — Result
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """Monetary breakdown of a cart. Derived, never persisted."""

    subtotal: Money = ZERO
    discount: Money = ZERO
    tax: Money = ZERO
    shipping: Money = ZERO
    platform_fee: Money = ZERO
    grand_total: Money = ZERO
    line_count: int = field(default=0, compare=False)


ZERO_BREAKDOWN = PriceBreakdown()

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Variation",
    "CartLine",
    "CartSnapshot",
    "EMPTY_CART",
    "GstMode",
    "FeeSchedule",
    "PriceBreakdown",
    "ZERO_BREAKDOWN",
)
