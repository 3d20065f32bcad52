"""Test doubles for payment boundaries, storefront and stores."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from kungfu import Error, Ok, Result

from tillflow import payment as Pay
from tillflow.order import Address, OrderRequest
from tillflow.pricing import CartLine, CartSnapshot, Variation
from tillflow.reconciliation import PendingReconciliation, StoreError

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


# ═══════════════════════════════════════════════════════════════════════════════
# Builders
# ═══════════════════════════════════════════════════════════════════════════════


def line(
    name: str = "Tomato",
    quantity: int = 1,
    price: str | int = 100,
    *,
    original: str | int | None = None,
    gst: str | int | None = None,
    product: Mapping[str, Any] | str | None = "prod-1",
    product_id: str | None = None,
    line_id: str | None = None,
    variation: Variation | None = None,
) -> CartLine:
    """Cart line with Decimal money from plain literals."""
    return CartLine(
        name=name,
        quantity=quantity,
        unit_price=Decimal(price),
        original_unit_price=Decimal(original) if original is not None else None,
        gst_percent=Decimal(gst) if gst is not None else None,
        product=product,
        product_id=product_id,
        id=line_id,
        variation=variation,
    )


def cart(*lines: CartLine) -> CartSnapshot:
    return CartSnapshot.of(lines or [line()])


def address(address_id: str = "addr-1", phone: str = "9876543210") -> Address:
    return Address(
        id=address_id,
        street="12 MG Road",
        city="Pune",
        state="MH",
        postal_code="411001",
        country="India",
        phone=phone,
    )


def session(
    session_id: str = "sess-1",
    *,
    name: str = "Asha Rao",
    email: str = "asha@example.com",
    phone: str = "9000000000",
) -> Pay.SessionContext:
    return Pay.SessionContext(session_id=session_id, user_id="user-1", name=name, email=email, phone=phone)


def request(
    method: Pay.PaymentMethod,
    amount: str = "250",
    order_ref: str = "ord_test",
) -> Pay.PaymentRequest:
    return Pay.PaymentRequest(
        amount=Decimal(amount),
        order_ref=order_ref,
        customer_name="Asha Rao",
        customer_email="asha@example.com",
        customer_phone="9000000000",
        description=f"Payment for order {order_ref}",
        method=method,
    )


def succeeded(method: Pay.PaymentMethod, amount: str = "250", txn: str = "txn-1") -> Pay.Succeeded:
    return Pay.Succeeded(transaction_id=txn, amount=Decimal(amount), method=method, timestamp=FIXED_NOW)


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Fakes
# ═══════════════════════════════════════════════════════════════════════════════


class ScriptedAdapter:
    """
    Adapter returning a fixed outcome (or raising) after an optional delay.

    Records every request it receives.
    """

    name = "scripted"

    def __init__(
        self,
        outcome: Any = None,
        *,
        raises: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.outcome = outcome
        self.raises = raises
        self.delay = delay
        self.requests: list[Pay.PaymentRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def execute(self, req: Pay.PaymentRequest) -> Pay.PaymentOutcome:
        self.requests.append(req)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.outcome is None:
            return Pay.Succeeded(
                transaction_id=f"txn-{len(self.requests)}",
                amount=req.amount,
                method=req.method,
                timestamp=FIXED_NOW,
            )
        return self.outcome


class FakeUpiDispatch:
    def __init__(self, response: Mapping[str, Any] | None) -> None:
        self.response = response
        self.intents: list[Pay.UpiIntent] = []

    async def initialize_payment(self, intent: Pay.UpiIntent) -> Mapping[str, Any] | None:
        self.intents.append(intent)
        return self.response


class FakeSdk:
    """
    Gateway SDK double.

    dismiss=True calls the dismissal handler first; without a response the
    sheet then never resolves. hang=True never resolves either. ``cancelled``
    records whether a pending call was cancelled.
    """

    def __init__(
        self,
        response: Mapping[str, Any] | None = None,
        *,
        dismiss: bool = False,
        hang: bool = False,
        raises: Exception | None = None,
    ) -> None:
        self.response = response
        self.dismiss = dismiss
        self.hang = hang
        self.raises = raises
        self.cancelled = False
        self.options: list[Mapping[str, Any]] = []

    async def open(self, options: Mapping[str, Any], on_dismiss: Callable[[], None]) -> Mapping[str, Any]:
        self.options.append(options)
        if self.dismiss:
            on_dismiss()
            await asyncio.sleep(0)
        if self.hang or (self.dismiss and self.response is None):
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.raises is not None:
            raise self.raises
        return self.response or {}


class FakeHostedCheckout:
    def __init__(self, params: Mapping[str, Any]) -> None:
        self.params = params
        self.urls: list[str] = []

    async def launch(self, url: str) -> Mapping[str, Any]:
        self.urls.append(url)
        return self.params


class FakeVerifier:
    def __init__(self, verdict: bool) -> None:
        self.verdict = verdict
        self.checked: list[tuple[str, str, str]] = []

    async def verify(self, payment_id: str, order_id: str, signature: str) -> bool:
        self.checked.append((payment_id, order_id, signature))
        return self.verdict


GATEWAY_SUCCESS = {"payment_id": "pay_123", "order_id": "ord_test", "signature": "sig_abc"}

# ═══════════════════════════════════════════════════════════════════════════════
# Storefront Fakes
# ═══════════════════════════════════════════════════════════════════════════════


class FakeBackend:
    """Order endpoint double; raises ``error`` when set."""

    def __init__(self, order_id: str = "order-42", *, error: Exception | None = None) -> None:
        self.order_id = order_id
        self.error = error
        self.requests: list[OrderRequest] = []

    async def create_order(self, req: OrderRequest) -> str:
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return self.order_id


class FakeSource:
    def __init__(self, snapshot: CartSnapshot, addresses: list[Address]) -> None:
        self.snapshot = snapshot
        self.addresses = addresses
        self.fetches = 0

    async def get_cart(self) -> CartSnapshot:
        self.fetches += 1
        return self.snapshot

    async def get_addresses(self) -> list[Address]:
        return list(self.addresses)


class BrokenStore:
    """Reconciliation store whose writes always fail."""

    async def record(self, entry: PendingReconciliation) -> Result[PendingReconciliation, StoreError]:
        return Error(StoreError("disk full"))

    async def get(self, record_id: str) -> Result[PendingReconciliation | None, StoreError]:
        return Error(StoreError("disk full"))

    async def open_entries(self) -> Result[list[PendingReconciliation], StoreError]:
        return Error(StoreError("disk full"))

    async def resolve(self, record_id: str, order_id: str) -> Result[PendingReconciliation, StoreError]:
        return Error(StoreError("disk full"))


def ok(result: Result[Any, Any]) -> Any:
    """Value of an ``Ok``; fails the test on ``Error``."""
    match result:
        case Ok(value):
            return value
        case Error(err):
            raise AssertionError(f"expected Ok, got Error({err!r})")
