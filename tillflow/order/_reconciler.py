"""
Order reconciler — validate, pay, create the order, clear the cart.

    IDLE → VALIDATING ─┬─ cash ──────────────────────────▶ CREATING_ORDER → CONFIRMED
                       └─ online → AWAITING_PAYMENT ─────▶ CREATING_ORDER
                                        │                        │
                    PAYMENT_FAILED / PAYMENT_CANCELLED   ORDER_CREATION_FAILED

Each attempt walks the table in ``TRANSITIONS`` exactly once. Nothing is
retried: a payment that succeeded without an order is written to the
reconciliation store and handed back with ``needs_support=True``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

import httpx
from combinators import lift as L
from kungfu import Result, Ok, Error

from tillflow._errors import IllegalTransitionError, OrderBackendError
from tillflow._log import get_logger
from tillflow.payment import (
    FailureKind,
    InFlightGuard,
    PaymentMethod,
    PaymentMethodRouter,
    SessionContext,
    Succeeded,
    Cancelled,
    Failed,
)
from tillflow.pricing import CartSnapshot, FeeSchedule, PriceBreakdown, compute_breakdown
from tillflow.reconciliation import PendingReconciliation, ReconciliationStore
from tillflow.order._assembler import assemble, contact_phone, select_address
from tillflow.order._source import CartState, OrderBackend
from tillflow.order._types import (
    Address,
    CheckoutAttempt,
    CheckoutState,
    Confirmed,
    OrderCreationFailed,
    OrderFailureKind,
    OrderRequest,
    OrderResult,
    PaymentCancelled,
    PaymentFailed,
    TRANSITIONS,
    Transition,
    ValidationFailed,
)

log = get_logger(__name__)


def new_order_ref() -> str:
    return f"ord_{uuid.uuid4().hex[:12]}"


def classify_order_fault(exc: Exception) -> tuple[OrderFailureKind, str]:
    """Map an order-endpoint exception onto a failure kind and user message."""
    match exc:
        case OrderBackendError():
            return OrderFailureKind.BACKEND_REJECTED, exc.message
        case httpx.TransportError() | OSError():
            return OrderFailureKind.NETWORK, "Network error. Please check your connection."
        case _:
            return OrderFailureKind.BACKEND_REJECTED, str(exc) or "Failed to place order"


# ═══════════════════════════════════════════════════════════════════════════════
# Attempt — Mutable Trace of One Placement
# ═══════════════════════════════════════════════════════════════════════════════


class _Attempt:
    def __init__(
        self,
        order_ref: str,
        method: PaymentMethod,
        clock: Callable[[], datetime],
    ) -> None:
        self.order_ref = order_ref
        self.method = method
        self.state = CheckoutState.IDLE
        self.transitions: list[Transition] = []
        self._clock = clock

    def advance(self, target: CheckoutState) -> None:
        if target not in TRANSITIONS.get(self.state, frozenset()):
            raise IllegalTransitionError(self.state, target)
        self.transitions.append(Transition(self.state, target, self._clock()))
        log.info(
            "checkout.transition",
            order_ref=self.order_ref,
            source=self.state.name,
            target=target.name,
        )
        self.state = target

    def finish[R: OrderResult](self, target: CheckoutState, result: R) -> R:
        self.advance(target)
        return result

    def trace(self, result: OrderResult) -> CheckoutAttempt:
        return CheckoutAttempt(
            order_ref=self.order_ref,
            method=self.method,
            transitions=tuple(self.transitions),
            result=result,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Reconciler
# ═══════════════════════════════════════════════════════════════════════════════


class OrderReconciler:
    """
    Sequences one checkout attempt end to end.

    Example:
        reconciler = OrderReconciler(router, StorefrontApi(client), store)
        match await reconciler.place(cart, address_id, Pay.UpiApp("phonepe"),
                                     addresses=addresses, session=session):
            case Confirmed(order_id=order_id): ...
            case OrderCreationFailed(charged=Succeeded()) as failed: ...  # support
    """

    def __init__(
        self,
        router: PaymentMethodRouter,
        backend: OrderBackend,
        store: ReconciliationStore,
        *,
        cart_state: CartState | None = None,
        fees: FeeSchedule | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.router = router
        self.cart_state = cart_state or CartState()
        self.fees = fees or FeeSchedule()
        self._backend = backend
        self._store = store
        self._clock = clock
        self._placing = InFlightGuard()
        self._history: list[CheckoutAttempt] = []

    @property
    def history(self) -> tuple[CheckoutAttempt, ...]:
        return tuple(self._history)

    def is_busy(self, session: SessionContext) -> bool:
        """True while an order or its payment is in flight; the place-order action stays disabled."""
        return self._placing.is_held(session.session_id) or self.router.is_in_flight(session)

    async def place(
        self,
        cart: CartSnapshot,
        address_id: str | None,
        method: PaymentMethod,
        *,
        addresses: Sequence[Address],
        session: SessionContext,
    ) -> OrderResult:
        """
        Run one placement attempt to a terminal state.

        Raises:
            UnsupportedMethodError: online method with no routed adapter.
        """
        attempt = _Attempt(new_order_ref(), method, self._clock)
        attempt.advance(CheckoutState.VALIDATING)

        async with self._placing.hold(session.session_id) as slot:
            if slot is None:
                result: OrderResult = attempt.finish(
                    CheckoutState.VALIDATION_FAILED,
                    ValidationFailed("attempt", "An order is already being placed"),
                )
            else:
                result = await self._place(attempt, cart, address_id, method, addresses, session)

        self._history.append(attempt.trace(result))
        log.info(
            "checkout.finished",
            order_ref=attempt.order_ref,
            state=attempt.state.name,
            result=type(result).__name__,
        )
        return result

    # ----- phases -----

    def _validate(
        self,
        cart: CartSnapshot,
        address_id: str | None,
        method: PaymentMethod,
        addresses: Sequence[Address],
        session: SessionContext,
        breakdown: PriceBreakdown,
    ) -> Result[tuple[Address, str], ValidationFailed]:
        if cart.is_empty:
            return Error(ValidationFailed("items", "Your cart is empty"))

        address = select_address(addresses, address_id)
        if address is None:
            return Error(ValidationFailed("address", "Please select a delivery address"))

        phone = contact_phone(address, session)
        if not phone:
            return Error(ValidationFailed("phone", "A contact phone number is required"))

        if method.is_online:
            rejected = self.router.check(method, breakdown.grand_total, session)
            if rejected is not None:
                field = "method" if rejected.kind is FailureKind.METHOD_DISABLED else "payment"
                return Error(ValidationFailed(field, rejected.message))
            self.router.adapter_for(method)

        return Ok((address, phone))

    async def _place(
        self,
        attempt: _Attempt,
        cart: CartSnapshot,
        address_id: str | None,
        method: PaymentMethod,
        addresses: Sequence[Address],
        session: SessionContext,
    ) -> OrderResult:
        breakdown = compute_breakdown(cart, self.fees)

        match self._validate(cart, address_id, method, addresses, session, breakdown):
            case Error(invalid):
                log.info("checkout.invalid", order_ref=attempt.order_ref, field=invalid.field)
                return attempt.finish(CheckoutState.VALIDATION_FAILED, invalid)
            case Ok((address, phone)):
                pass

        charged: Succeeded | None = None
        if method.is_online:
            attempt.advance(CheckoutState.AWAITING_PAYMENT)
            outcome = await self.router.pay(method, breakdown.grand_total, attempt.order_ref, session)
            match outcome:
                case Cancelled(reason=reason):
                    return attempt.finish(CheckoutState.PAYMENT_CANCELLED, PaymentCancelled(reason))
                case Failed(kind=kind, message=message):
                    return attempt.finish(CheckoutState.PAYMENT_FAILED, PaymentFailed(kind, message))
                case Succeeded():
                    charged = outcome

        attempt.advance(CheckoutState.CREATING_ORDER)

        match assemble(cart, address, phone, method, charged):
            case Error(missing):
                return await self._creation_failed(
                    attempt, session, OrderFailureKind.MISSING_PRODUCT_ID, missing.message, charged, None
                )
            case Ok(request):
                pass

        log.info(
            "checkout.order.submit",
            order_ref=attempt.order_ref,
            items=len(request.items),
            payment_method=request.payment_method,
        )
        submission = L.catching_async(
            lambda: self._backend.create_order(request),
            on_error=classify_order_fault,
        )
        match await submission:
            case Ok(order_id) if order_id:
                await self.cart_state.clear()
                log.info("checkout.order.created", order_ref=attempt.order_ref, order_id=order_id)
                return attempt.finish(
                    CheckoutState.CONFIRMED,
                    Confirmed(order_id=order_id, breakdown=breakdown, payment=charged),
                )
            case Ok(_):
                return await self._creation_failed(
                    attempt,
                    session,
                    OrderFailureKind.INVALID_RESPONSE,
                    "Order was not confirmed by the server",
                    charged,
                    request,
                )
            case Error((kind, message)):
                return await self._creation_failed(attempt, session, kind, message, charged, request)

    async def _creation_failed(
        self,
        attempt: _Attempt,
        session: SessionContext,
        kind: OrderFailureKind,
        message: str,
        charged: Succeeded | None,
        request: OrderRequest | None,
    ) -> OrderCreationFailed:
        log.error(
            "checkout.order.failed",
            order_ref=attempt.order_ref,
            kind=kind.name,
            message=message,
            charged=charged is not None,
        )
        if charged is None:
            return attempt.finish(CheckoutState.ORDER_CREATION_FAILED, OrderCreationFailed(kind, message))

        entry = PendingReconciliation.open(
            order_ref=attempt.order_ref,
            session_id=session.session_id,
            transaction_id=charged.transaction_id,
            amount=charged.amount,
            method=attempt.method.code,
            paid_at=charged.timestamp,
            failure_kind=kind.name,
            failure_message=message,
            request_payload=request.to_payload() if request is not None else None,
        )
        record_id: str | None = None
        record_error: str | None = None
        match await self._store.record(entry):
            case Ok(saved):
                record_id = saved.id
                log.warning(
                    "checkout.reconciliation.recorded",
                    order_ref=attempt.order_ref,
                    reconciliation_id=saved.id,
                    transaction_id=charged.transaction_id,
                )
            case Error(err):
                record_error = err.message
                log.critical(
                    "checkout.reconciliation.unrecorded",
                    order_ref=attempt.order_ref,
                    transaction_id=charged.transaction_id,
                    amount=str(charged.amount),
                    error=err.message,
                )

        return attempt.finish(
            CheckoutState.ORDER_CREATION_FAILED,
            OrderCreationFailed(
                kind,
                message,
                charged=charged,
                reconciliation_id=record_id,
                reconciliation_error=record_error,
            ),
        )


__all__ = (
    "new_order_ref",
    "classify_order_fault",
    "OrderReconciler",
)
