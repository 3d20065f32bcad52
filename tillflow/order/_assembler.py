"""
Order assembler — cart + address + payment outcome → OrderRequest.

Pure; no I/O. A line whose product cannot be resolved fails the whole
assembly so nothing is sent to the backend.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from kungfu import Result, Ok, Error

from tillflow.payment import PaymentMethod, PaymentOutcome, SessionContext, Succeeded
from tillflow.pricing import CartLine, CartSnapshot
from tillflow.order._types import (
    Address,
    DeliveryAddress,
    OrderItem,
    OrderRequest,
    PaymentConfirmation,
)


@dataclass(frozen=True, slots=True)
class MissingProduct:
    """Cart line with no resolvable product identifier."""

    index: int
    name: str

    @property
    def message(self) -> str:
        return f"Cart item {self.name!r} has no product id. Please refresh your cart."


# ═══════════════════════════════════════════════════════════════════════════════
# Resolution
# ═══════════════════════════════════════════════════════════════════════════════


def resolve_product(line: CartLine) -> str | None:
    """
    Product identifier for a cart line.

    Order: embedded product ``_id`` / ``id``, the plain product id,
    ``product_id``, then the line's own id.
    """
    match line.product:
        case Mapping() as embedded:
            for key in ("_id", "id"):
                value = embedded.get(key)
                if value:
                    return str(value)
        case str() as plain if plain.strip():
            return plain.strip()
        case _:
            pass

    if line.product_id:
        return line.product_id
    if line.id:
        return line.id
    return None


def select_address(addresses: Sequence[Address], address_id: str | None) -> Address | None:
    """Address with ``address_id`` from the fetched list."""
    if not address_id:
        return None
    return next((a for a in addresses if a.id == address_id), None)


def contact_phone(address: Address, session: SessionContext) -> str:
    """Address phone, falling back to the account phone."""
    return (address.phone or session.phone).strip()


# ═══════════════════════════════════════════════════════════════════════════════
# Assembly
# ═══════════════════════════════════════════════════════════════════════════════


def assemble_items(cart: CartSnapshot) -> Result[tuple[OrderItem, ...], MissingProduct]:
    items: list[OrderItem] = []
    for index, line in enumerate(cart):
        product = resolve_product(line)
        if product is None:
            return Error(MissingProduct(index, line.name))
        items.append(OrderItem(product=product, quantity=line.quantity, variation=line.variation))
    return Ok(tuple(items))


def assemble(
    cart: CartSnapshot,
    address: Address,
    phone: str,
    method: PaymentMethod,
    outcome: PaymentOutcome | None = None,
) -> Result[OrderRequest, MissingProduct]:
    """
    Build the order payload.

    outcome: the router's result for online methods, None for cash.
    A confirmation is attached only when the method is online and the
    outcome is ``Succeeded``.
    """
    confirmation: PaymentConfirmation | None = None
    match outcome:
        case Succeeded() if method.is_online:
            confirmation = PaymentConfirmation.from_outcome(outcome)
        case _:
            pass

    match assemble_items(cart):
        case Ok(items):
            return Ok(
                OrderRequest(
                    delivery_address=DeliveryAddress.from_address(address, phone),
                    payment_method=method.code,
                    items=items,
                    clear_cart=True,
                    payment_confirmation=confirmation,
                )
            )
        case Error(missing):
            return Error(missing)


__all__ = (
    "MissingProduct",
    "resolve_product",
    "select_address",
    "contact_phone",
    "assemble_items",
    "assemble",
)
