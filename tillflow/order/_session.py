"""
Checkout session — what the checkout screen loads on entry and re-entry.
"""

from __future__ import annotations

from dataclasses import dataclass

from tillflow._log import get_logger
from tillflow.pricing import CartSnapshot, FeeSchedule, PriceBreakdown, compute_breakdown
from tillflow.order._source import CartSource, CartState
from tillflow.order._types import Address, ValidationFailed

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CheckoutView:
    """Fresh cart, its breakdown and the address list, first address preselected."""

    cart: CartSnapshot
    breakdown: PriceBreakdown
    addresses: tuple[Address, ...]
    selected_address_id: str | None


class CheckoutSession:
    """
    Refetches cart and addresses every time checkout is entered.

    Example:
        session = CheckoutSession(StorefrontApi(client), cart_state, fees)
        match await session.enter():
            case CheckoutView() as view: ...
            case ValidationFailed(field="items"): ...  # back to cart
    """

    def __init__(
        self,
        source: CartSource,
        cart_state: CartState,
        fees: FeeSchedule | None = None,
    ) -> None:
        self._source = source
        self.cart_state = cart_state
        self.fees = fees or FeeSchedule()

    async def enter(self) -> CheckoutView | ValidationFailed:
        cart = await self._source.get_cart()
        await self.cart_state.replace(cart)
        if cart.is_empty:
            log.info("checkout.enter.empty_cart")
            return ValidationFailed("items", "Your cart is empty")

        addresses = tuple(await self._source.get_addresses())
        breakdown = compute_breakdown(cart, self.fees)
        log.info(
            "checkout.enter",
            lines=len(cart),
            addresses=len(addresses),
            grand_total=str(breakdown.grand_total),
        )
        return CheckoutView(
            cart=cart,
            breakdown=breakdown,
            addresses=addresses,
            selected_address_id=addresses[0].id if addresses else None,
        )


__all__ = ("CheckoutView", "CheckoutSession")
