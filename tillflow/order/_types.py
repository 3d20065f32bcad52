"""
Order types — address, order payload, checkout states and results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any

from tillflow._types import Money
from tillflow.payment import PaymentMethod, Succeeded, FailureKind
from tillflow.pricing import PriceBreakdown, Variation

# ═══════════════════════════════════════════════════════════════════════════════
# Address
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Address:
    """Saved shipping address, as fetched. Never built locally."""

    id: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str = ""


@dataclass(frozen=True, slots=True)
class DeliveryAddress:
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    phone: str

    @classmethod
    def from_address(cls, address: Address, phone: str) -> DeliveryAddress:
        return cls(
            street=address.street,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            country=address.country,
            phone=phone,
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# Order Request — Backend Payload
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderItem:
    product: str
    quantity: int
    variation: Variation | None = None

    def to_payload(self) -> dict[str, Any]:
        item: dict[str, Any] = {"product": self.product, "quantity": self.quantity}
        if self.variation is not None:
            item["variation"] = {"name": self.variation.name, "value": self.variation.value}
        return item


@dataclass(frozen=True, slots=True)
class PaymentConfirmation:
    transaction_id: str
    amount: Money
    timestamp: datetime

    @classmethod
    def from_outcome(cls, outcome: Succeeded) -> PaymentConfirmation:
        return cls(outcome.transaction_id, outcome.amount, outcome.timestamp)

    def to_payload(self) -> dict[str, Any]:
        return {
            "transactionId": self.transaction_id,
            "amount": float(self.amount),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """
    Order-creation payload.

    payment_confirmation is present iff the method is online and the
    payment succeeded.
    """

    delivery_address: DeliveryAddress
    payment_method: str
    items: tuple[OrderItem, ...]
    clear_cart: bool = True
    payment_confirmation: PaymentConfirmation | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "deliveryAddress": self.delivery_address.to_payload(),
            "paymentMethod": self.payment_method,
            "items": [item.to_payload() for item in self.items],
            "clearCart": self.clear_cart,
        }
        if self.payment_confirmation is not None:
            payload["paymentConfirmation"] = self.payment_confirmation.to_payload()
        return payload


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout State Machine
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutState(Enum):
    """
    Lifecycle of one placement attempt:

        IDLE → VALIDATING → CREATING_ORDER → CONFIRMED            (cash)
        IDLE → VALIDATING → AWAITING_PAYMENT → CREATING_ORDER → CONFIRMED  (online)

    Failure exits are terminal; an attempt is never retried automatically.
    """

    IDLE = auto()
    VALIDATING = auto()
    AWAITING_PAYMENT = auto()
    CREATING_ORDER = auto()
    CONFIRMED = auto()
    VALIDATION_FAILED = auto()
    PAYMENT_FAILED = auto()
    PAYMENT_CANCELLED = auto()
    ORDER_CREATION_FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({
    CheckoutState.CONFIRMED,
    CheckoutState.VALIDATION_FAILED,
    CheckoutState.PAYMENT_FAILED,
    CheckoutState.PAYMENT_CANCELLED,
    CheckoutState.ORDER_CREATION_FAILED,
})

TRANSITIONS: dict[CheckoutState, frozenset[CheckoutState]] = {
    CheckoutState.IDLE: frozenset({CheckoutState.VALIDATING}),
    CheckoutState.VALIDATING: frozenset({
        CheckoutState.VALIDATION_FAILED,
        CheckoutState.AWAITING_PAYMENT,
        CheckoutState.CREATING_ORDER,
    }),
    CheckoutState.AWAITING_PAYMENT: frozenset({
        CheckoutState.PAYMENT_FAILED,
        CheckoutState.PAYMENT_CANCELLED,
        CheckoutState.CREATING_ORDER,
    }),
    CheckoutState.CREATING_ORDER: frozenset({
        CheckoutState.CONFIRMED,
        CheckoutState.ORDER_CREATION_FAILED,
    }),
}


class OrderFailureKind(Enum):
    MISSING_PRODUCT_ID = auto()  # Line without a resolvable product
    BACKEND_REJECTED = auto()  # Non-2xx from the order endpoint
    NETWORK = auto()  # Transport fault talking to the order endpoint
    INVALID_RESPONSE = auto()  # 2xx without an order id


# ═══════════════════════════════════════════════════════════════════════════════
# Order Result — Discriminated Union for the UI
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Confirmed:
    order_id: str
    breakdown: PriceBreakdown
    payment: Succeeded | None = None


@dataclass(frozen=True, slots=True)
class ValidationFailed:
    """User-correctable input problem; field names what is missing."""

    field: str
    message: str


@dataclass(frozen=True, slots=True)
class PaymentFailed:
    kind: FailureKind
    message: str


@dataclass(frozen=True, slots=True)
class PaymentCancelled:
    reason: str


@dataclass(frozen=True, slots=True)
class OrderCreationFailed:
    """
    Order was not created.

    charged is set when an online payment already succeeded; the caller must
    route the user to support instead of back to checkout.
    """

    kind: OrderFailureKind
    message: str
    charged: Succeeded | None = None
    reconciliation_id: str | None = None
    reconciliation_error: str | None = None

    @property
    def needs_support(self) -> bool:
        return self.charged is not None


type OrderResult = Confirmed | ValidationFailed | PaymentFailed | PaymentCancelled | OrderCreationFailed


@dataclass(frozen=True, slots=True)
class Transition:
    source: CheckoutState
    target: CheckoutState
    at: datetime


@dataclass(frozen=True, slots=True)
class CheckoutAttempt:
    """Trace of one placement attempt."""

    order_ref: str
    method: PaymentMethod
    transitions: tuple[Transition, ...]
    result: OrderResult

    @property
    def state(self) -> CheckoutState:
        return self.transitions[-1].target if self.transitions else CheckoutState.IDLE

    @property
    def path(self) -> tuple[CheckoutState, ...]:
        return (CheckoutState.IDLE, *(t.target for t in self.transitions))


__all__ = (
    "Address",
    "DeliveryAddress",
    "OrderItem",
    "PaymentConfirmation",
    "OrderRequest",
    "CheckoutState",
    "TRANSITIONS",
    "OrderFailureKind",
    "Confirmed",
    "ValidationFailed",
    "PaymentFailed",
    "PaymentCancelled",
    "OrderCreationFailed",
    "OrderResult",
    "Transition",
    "CheckoutAttempt",
)
