"""
UPI adapter — deep-link payment intents.

    intent {vpa, payee_name, amount, transaction_ref, app}
         │
         ▼
    UpiDispatch.initialize_payment  ──(absent)──▶  fallback (mock)
         │
         ▼
    {Status, TxnId?, ErrorMessage?} → PaymentOutcome
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from tillflow._log import get_logger
from tillflow._types import format_amount
from tillflow.payment._adapter import PaymentAdapter
from tillflow.payment._settings import UpiSettings
from tillflow.payment._types import (
    PaymentRequest,
    PaymentOutcome,
    Succeeded,
    Cancelled,
    Failed,
    FailureKind,
    UpiApp,
    UpiCustomId,
)

log = get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Dispatch Boundary
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class UpiIntent:
    vpa: str
    payee_name: str
    amount: str
    transaction_ref: str
    app: str

    def as_payload(self) -> dict[str, str]:
        return {
            "vpa": self.vpa,
            "payeeName": self.payee_name,
            "amount": self.amount,
            "transactionRef": self.transaction_ref,
            "app": self.app,
        }


class UpiDispatch(Protocol):
    """Platform UPI capability (intent launcher)."""

    async def initialize_payment(self, intent: UpiIntent) -> Mapping[str, Any]: ...


def dispatch_available(dispatch: object | None) -> bool:
    """Capability probe: the dispatch exists and exposes its entry point."""
    return dispatch is not None and callable(getattr(dispatch, "initialize_payment", None))


# ═══════════════════════════════════════════════════════════════════════════════
# Adapter
# ═══════════════════════════════════════════════════════════════════════════════


class UpiAdapter:
    """
    Pays through a UPI app chosen by the user or a custom VPA.

    Only apps listed in ``settings.apps`` are dispatched to. Missing dispatch
    capability degrades silently to ``fallback``.
    """

    name = "upi"

    def __init__(
        self,
        dispatch: UpiDispatch | None,
        fallback: PaymentAdapter,
        settings: UpiSettings | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._dispatch = dispatch
        self._fallback = fallback
        self.settings = settings or UpiSettings()
        self._clock = clock

    @property
    def available(self) -> bool:
        return dispatch_available(self._dispatch)

    @property
    def apps(self) -> tuple[str, ...]:
        """UPI apps the checkout may offer, in display order."""
        return self.settings.apps

    def intent_for(self, request: PaymentRequest) -> UpiIntent:
        method = request.method
        vpa = method.vpa.strip() if isinstance(method, UpiCustomId) else self.settings.merchant_vpa
        app = method.app_id if isinstance(method, UpiApp) else self.settings.default_app
        stamp = int(self._clock().timestamp() * 1000)
        return UpiIntent(
            vpa=vpa,
            payee_name=self.settings.merchant_name,
            amount=format_amount(request.amount),
            transaction_ref=f"{self.settings.transaction_prefix}{request.order_ref}_{stamp}",
            app=app,
        )

    async def execute(self, request: PaymentRequest) -> PaymentOutcome:
        match request.method:
            case UpiApp(app_id=app_id) if app_id not in self.settings.apps:
                log.info("payment.upi.unknown_app", app=app_id)
                return Failed(FailureKind.VALIDATION, f"UPI app is not supported: {app_id}")

        if self._dispatch is None or not self.available:
            log.warning("payment.upi.unavailable", fallback=self._fallback.name)
            return await self._fallback.execute(request)

        intent = self.intent_for(request)
        log.info(
            "payment.upi.initiate",
            app=intent.app,
            amount=intent.amount,
            transaction_ref=intent.transaction_ref,
        )
        response = await self._dispatch.initialize_payment(intent)
        return self.interpret(response, intent, request)

    def interpret(
        self,
        response: Mapping[str, Any] | None,
        intent: UpiIntent,
        request: PaymentRequest,
    ) -> PaymentOutcome:
        """Map the dispatch response onto an outcome."""
        if not isinstance(response, Mapping) or not response.get("Status"):
            return Failed(FailureKind.INVALID_RESPONSE, "Invalid payment response")

        status = str(response["Status"]).strip().lower()
        match status:
            case "success":
                return Succeeded(
                    transaction_id=str(response.get("TxnId") or intent.transaction_ref),
                    amount=request.amount,
                    method=request.method,
                    timestamp=self._clock(),
                    raw=dict(response),
                )
            case "failure":
                return Failed(
                    FailureKind.DECLINED,
                    str(response.get("ErrorMessage") or "Payment failed. Please try again."),
                )
            case "cancelled":
                return Cancelled()
            case _:
                return Failed(FailureKind.UNKNOWN_STATUS, f"Payment status unknown: {status}")


__all__ = ("UpiIntent", "UpiDispatch", "dispatch_available", "UpiAdapter")
