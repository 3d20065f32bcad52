"""
Payment method router — precondition checks, adapter dispatch, normalization.

    routes()
        .on(UpiApp, upi)
        .on(UpiCustomId, upi)
        .on(GatewayNative, native)
        .on(GatewayWeb, web)
        .watchdog(seconds=180)
        .build()

Callers only ever see ``PaymentOutcome``: adapter faults are classified,
stalled adapters are cut off by the watchdog, and a second attempt for the
same checkout session is refused while one is in flight.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta

from combinators import flow, lift as L
from kungfu import Ok, Error

from tillflow._errors import GatewayFault, UnsupportedMethodError
from tillflow._log import get_logger
from tillflow._types import Money, to_money
from tillflow.payment._adapter import PaymentAdapter
from tillflow.payment._guard import InFlightGuard
from tillflow.payment._settings import AmountLimits, is_valid_email, is_valid_vpa
from tillflow.payment._types import (
    PaymentMethod,
    PaymentRequest,
    PaymentOutcome,
    SessionContext,
    Succeeded,
    Cancelled,
    Failed,
    FailureKind,
    CashOnDelivery,
    UpiCustomId,
    GatewayNative,
    GatewayWeb,
    Card,
    Wallet,
)

log = get_logger(__name__)

DEFAULT_WATCHDOG = timedelta(minutes=3)

# ═══════════════════════════════════════════════════════════════════════════════
# Fault Classification
# ═══════════════════════════════════════════════════════════════════════════════


def classify_fault(exc: Exception) -> PaymentOutcome:
    """
    Map an adapter exception onto ``Cancelled`` or ``Failed``.

    Only a user-initiated cancellation code becomes ``Cancelled``.
    """
    match exc:
        case GatewayFault(code="PAYMENT_CANCELLED"):
            return Cancelled()
        case GatewayFault(code="NETWORK_ERROR"):
            return Failed(FailureKind.NETWORK, "Network error. Please check your connection.")
        case GatewayFault(code="INVALID_PAYMENT_METHOD"):
            return Failed(FailureKind.GATEWAY, "Invalid payment method selected.")
        case GatewayFault():
            return Failed(FailureKind.GATEWAY, exc.message)
        case TimeoutError():
            return Failed(FailureKind.TIMEOUT, "Payment timed out. Please try again.")
        case ConnectionError() | OSError():
            return Failed(FailureKind.NETWORK, "Network error. Please check your connection.")
        case _:
            return Failed(FailureKind.GATEWAY, str(exc) or "Payment failed. Please try again.")


# ═══════════════════════════════════════════════════════════════════════════════
# Router
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethodRouter:
    """Selects the adapter for a method and normalizes its result."""

    def __init__(
        self,
        adapters: Mapping[type, PaymentAdapter],
        *,
        limits: AmountLimits | None = None,
        watchdog: timedelta = DEFAULT_WATCHDOG,
        guard: InFlightGuard | None = None,
    ) -> None:
        self._adapters = dict(adapters)
        self.limits = limits or AmountLimits()
        self.watchdog = watchdog
        self._guard = guard or InFlightGuard()

    # ----- lookup -----

    def adapter_for(self, method: PaymentMethod) -> PaymentAdapter:
        if isinstance(method, CashOnDelivery):
            raise UnsupportedMethodError(method)
        adapter = self._adapters.get(type(method))
        if adapter is None:
            raise UnsupportedMethodError(method)
        return adapter

    def available_methods(self) -> tuple[type, ...]:
        """Enabled method types with a registered adapter, in registration order."""
        return tuple(t for t in self._adapters if getattr(t, "enabled", True))

    def is_in_flight(self, session: SessionContext) -> bool:
        return self._guard.is_held(session.session_id)

    # ----- preconditions -----

    def check(self, method: PaymentMethod, amount: Money, session: SessionContext) -> Failed | None:
        """Precondition failure for this attempt, or None if dispatch may proceed."""
        if isinstance(method, (Card, Wallet)) or not method.enabled:
            return Failed(FailureKind.METHOD_DISABLED, f"{method.label} payments are not available yet")

        if amount <= 0:
            return Failed(FailureKind.VALIDATION, "Invalid payment amount")
        if amount < self.limits.min_amount:
            return Failed(FailureKind.VALIDATION, f"Amount is below the minimum of {self.limits.min_amount}")
        if amount > self.limits.max_amount:
            return Failed(FailureKind.VALIDATION, f"Amount exceeds the maximum of {self.limits.max_amount}")

        match method:
            case UpiCustomId(vpa=vpa) if not vpa.strip():
                return Failed(FailureKind.VALIDATION, "UPI ID is required")
            case UpiCustomId(vpa=vpa) if not is_valid_vpa(vpa):
                return Failed(FailureKind.VALIDATION, "Invalid UPI ID format")
            case GatewayNative() | GatewayWeb():
                if not session.name.strip():
                    return Failed(FailureKind.VALIDATION, "Customer name is required")
                if not session.email.strip() or not is_valid_email(session.email):
                    return Failed(FailureKind.VALIDATION, "Valid customer email is required")
        return None

    # ----- dispatch -----

    def request_for(
        self,
        method: PaymentMethod,
        amount: Money,
        order_ref: str,
        session: SessionContext,
    ) -> PaymentRequest:
        return PaymentRequest(
            amount=amount,
            order_ref=order_ref,
            customer_name=session.name.strip(),
            customer_email=session.email.strip(),
            customer_phone=session.phone.strip(),
            description=f"Payment for order {order_ref}",
            method=method,
            metadata={"order_ref": order_ref, "session_id": session.session_id},
        )

    async def pay(
        self,
        method: PaymentMethod,
        amount: Money | int | str,
        order_ref: str,
        session: SessionContext,
    ) -> PaymentOutcome:
        """
        Obtain exactly one outcome for this payment attempt.

        Raises:
            UnsupportedMethodError: cash on delivery or an unrouted method.
        """
        adapter = self.adapter_for(method) if method.enabled else None
        amount = to_money(amount)

        rejected = self.check(method, amount, session)
        if rejected is not None:
            log.info("payment.rejected", method=method.label, kind=rejected.kind.name, reason=rejected.message)
            return rejected
        if adapter is None:
            raise UnsupportedMethodError(method)

        async with self._guard.hold(session.session_id) as slot:
            if slot is None:
                log.warning("payment.already_in_progress", session_id=session.session_id)
                return Failed(FailureKind.ALREADY_IN_PROGRESS, "A payment is already in progress")

            request = self.request_for(method, amount, order_ref, session)
            log.info(
                "payment.dispatch",
                method=method.label,
                adapter=adapter.name,
                amount=str(amount),
                order_ref=order_ref,
            )
            outcome = await self._run(adapter, request)

        log.info("payment.outcome", order_ref=order_ref, outcome=type(outcome).__name__)
        return outcome

    async def _run(self, adapter: PaymentAdapter, request: PaymentRequest) -> PaymentOutcome:
        seconds = self.watchdog.total_seconds()
        attempt = (
            flow(L.catching_async(lambda: adapter.execute(request), on_error=classify_fault))
            .timeout(seconds=seconds)
            .compile()
        )
        match await attempt:
            case Ok(Succeeded() | Cancelled() | Failed() as outcome):
                return outcome
            case Ok(other):
                log.error("payment.malformed_outcome", adapter=adapter.name, got=type(other).__name__)
                return Failed(FailureKind.INVALID_RESPONSE, "Payment backend returned an unexpected result")
            case Error(Cancelled() | Failed() as outcome):
                log.warning("payment.adapter_fault", adapter=adapter.name, outcome=repr(outcome))
                return outcome
            case Error(expired):
                log.warning("payment.watchdog_expired", adapter=adapter.name, seconds=seconds, error=repr(expired))
                return classify_fault(TimeoutError())


# ═══════════════════════════════════════════════════════════════════════════════
# Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class RouterBuilder:
    """Fluent router configuration. Last registration for a method wins."""

    _routes: tuple[tuple[type, PaymentAdapter], ...] = ()
    _limits: AmountLimits = field(default_factory=AmountLimits)
    _watchdog: timedelta = DEFAULT_WATCHDOG
    _guard: InFlightGuard | None = None

    def on(self, method_type: type, adapter: PaymentAdapter) -> RouterBuilder:
        """Route a method type to an adapter."""
        if method_type is CashOnDelivery:
            raise ValueError("Cash on delivery is not routed through a payment adapter")
        others = tuple(r for r in self._routes if r[0] is not method_type)
        return RouterBuilder(
            _routes=(*others, (method_type, adapter)),
            _limits=self._limits,
            _watchdog=self._watchdog,
            _guard=self._guard,
        )

    def limits(self, limits: AmountLimits) -> RouterBuilder:
        return RouterBuilder(self._routes, limits, self._watchdog, self._guard)

    def watchdog(
        self,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> RouterBuilder:
        """Upper bound on a single adapter call."""
        bound = delta if delta is not None else timedelta(seconds=seconds or 0)
        if bound <= timedelta(0):
            raise ValueError("Watchdog must be positive")
        return RouterBuilder(self._routes, self._limits, bound, self._guard)

    def guard(self, guard: InFlightGuard) -> RouterBuilder:
        return RouterBuilder(self._routes, self._limits, self._watchdog, guard)

    def build(self) -> PaymentMethodRouter:
        return PaymentMethodRouter(
            dict(self._routes),
            limits=self._limits,
            watchdog=self._watchdog,
            guard=self._guard,
        )


def routes() -> RouterBuilder:
    """Create router builder: routes().on(...).build()"""
    return RouterBuilder()


__all__ = (
    "DEFAULT_WATCHDOG",
    "classify_fault",
    "PaymentMethodRouter",
    "RouterBuilder",
    "routes",
)
