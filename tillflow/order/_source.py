"""
Cart / address source and order backend boundaries, plus the process-wide
cart state.

Wire parsing lives here so both the HTTP client and test fakes produce the
same CartSnapshot / Address values.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from tillflow._log import get_logger
from tillflow._types import Money, to_money
from tillflow.pricing import CartLine, CartSnapshot, EMPTY_CART, Variation
from tillflow.order._types import Address, OrderRequest

log = get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Boundaries
# ═══════════════════════════════════════════════════════════════════════════════


class CartSource(Protocol):
    """Read side of the storefront: the cart and the saved addresses."""

    async def get_cart(self) -> CartSnapshot: ...

    async def get_addresses(self) -> list[Address]: ...


class OrderBackend(Protocol):
    """
    Order endpoint.

    Returns the created order id. Raises ``OrderBackendError`` on a non-2xx
    answer and ``httpx.TransportError`` (or ``OSError``) on transport faults.
    """

    async def create_order(self, request: OrderRequest) -> str: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Wire Parsing
# ═══════════════════════════════════════════════════════════════════════════════


def _money(value: Any) -> Money | None:
    if value is None or value == "":
        return None
    return to_money(value)


def _first(*candidates: Any) -> Any:
    return next((c for c in candidates if c is not None), None)


def _text(value: Any) -> str | None:
    return str(value) if value else None


def parse_cart_line(item: Mapping[str, Any]) -> CartLine:
    """
    One cart item as the storefront API returns it.

    Example:
        {"_id": "ci_1", "product": {"_id": "p_1", "name": "Tomato", "gst": 5},
         "quantity": 2, "price": 40, "originalPrice": 50,
         "variation": {"name": "weight", "value": "1kg"}}
    """
    product = item.get("product")
    embedded = product if isinstance(product, Mapping) else {}

    variation = item.get("variation")
    return CartLine(
        name=str(_first(item.get("name"), embedded.get("name"), "")),
        quantity=int(item.get("quantity", 0)),
        unit_price=to_money(_first(item.get("price"), embedded.get("price"), 0)),
        original_unit_price=_money(_first(item.get("originalPrice"), embedded.get("originalPrice"))),
        gst_percent=_money(_first(item.get("gst"), item.get("gstPercent"), embedded.get("gst"))),
        line_total=_money(_first(item.get("totalPrice"), item.get("itemTotal"))),
        product=dict(embedded) if embedded else (str(product) if product else None),
        product_id=_text(item.get("productId")),
        id=_text(_first(item.get("_id"), item.get("id"))),
        variation=(
            Variation(str(variation.get("name", "")), str(variation.get("value", "")))
            if isinstance(variation, Mapping)
            else None
        ),
    )


def parse_cart(items: Sequence[Mapping[str, Any]] | None) -> CartSnapshot:
    if not items:
        return EMPTY_CART
    return CartSnapshot.of([parse_cart_line(item) for item in items])


def parse_address(raw: Mapping[str, Any]) -> Address:
    return Address(
        id=str(_first(raw.get("_id"), raw.get("id"), "")),
        street=str(raw.get("street", "")),
        city=str(raw.get("city", "")),
        state=str(raw.get("state", "")),
        postal_code=str(_first(raw.get("postalCode"), raw.get("postal_code"), "")),
        country=str(raw.get("country", "")),
        phone=str(raw.get("phone") or ""),
    )


def parse_addresses(raw: Sequence[Mapping[str, Any]] | None) -> list[Address]:
    return [parse_address(a) for a in raw or ()]


# ═══════════════════════════════════════════════════════════════════════════════
# Cart State — Process-Wide Snapshot
# ═══════════════════════════════════════════════════════════════════════════════


class CartState:
    """
    Shared cart snapshot.

    Mutated only by a cart fetch (``replace``) and a confirmed order
    (``clear``); readers always get a whole snapshot.
    """

    def __init__(self, snapshot: CartSnapshot = EMPTY_CART) -> None:
        self._snapshot = snapshot
        self._lock = asyncio.Lock()

    @property
    def snapshot(self) -> CartSnapshot:
        return self._snapshot

    async def replace(self, snapshot: CartSnapshot) -> None:
        async with self._lock:
            self._snapshot = snapshot
        log.debug("cart.replaced", lines=len(snapshot))

    async def clear(self) -> None:
        async with self._lock:
            self._snapshot = EMPTY_CART
        log.info("cart.cleared")


__all__ = (
    "CartSource",
    "OrderBackend",
    "parse_cart_line",
    "parse_cart",
    "parse_address",
    "parse_addresses",
    "CartState",
)
