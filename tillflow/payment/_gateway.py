"""
Gateway adapters — native SDK and browser-hosted checkout.

    GatewayNativeAdapter ──(SDK missing)──▶ GatewayWebAdapter

Both build the same checkout options and accept the same success shape:
``{payment_id, order_id, signature}``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any, Protocol
from urllib.parse import urlencode

from combinators import NoError, race_ok, lift as L
from kungfu import Ok, Error, LazyCoroResult, Result

from tillflow._log import get_logger
from tillflow._types import to_minor_units
from tillflow.payment._settings import GatewaySettings
from tillflow.payment._types import (
    PaymentRequest,
    PaymentOutcome,
    Succeeded,
    Cancelled,
    Failed,
    FailureKind,
)

log = get_logger(__name__)

REQUIRED_FIELDS = ("payment_id", "order_id", "signature")

DISMISS_GRACE = timedelta(milliseconds=250)

# ═══════════════════════════════════════════════════════════════════════════════
# SDK / Browser / Verifier Boundaries
# ═══════════════════════════════════════════════════════════════════════════════


class GatewaySdk(Protocol):
    """
    In-process gateway SDK.

    on_dismiss is invoked when the user closes the payment sheet; it is a
    separate callback, not an error.
    """

    async def open(
        self,
        options: Mapping[str, Any],
        on_dismiss: Callable[[], None],
    ) -> Mapping[str, Any]: ...


class HostedCheckout(Protocol):
    """Opens the gateway's hosted page and returns the redirect parameters."""

    async def launch(self, url: str) -> Mapping[str, Any]: ...


class PaymentVerifier(Protocol):
    """Backend signature check for a gateway payment."""

    async def verify(self, payment_id: str, order_id: str, signature: str) -> bool: ...


def sdk_available(sdk: object | None) -> bool:
    """Capability probe: SDK loaded and exposes ``open``."""
    return sdk is not None and callable(getattr(sdk, "open", None))


# ═══════════════════════════════════════════════════════════════════════════════
# Shared Request / Response Handling
# ═══════════════════════════════════════════════════════════════════════════════


def checkout_options(request: PaymentRequest, settings: GatewaySettings) -> dict[str, Any]:
    """Gateway checkout options; amount in minor units."""
    return {
        "key": settings.key_id,
        "amount": to_minor_units(request.amount),
        "currency": settings.currency,
        "name": settings.merchant_name,
        "description": request.description or settings.description,
        "order_id": request.order_ref,
        "prefill": {
            "name": request.customer_name,
            "email": request.customer_email,
            "contact": request.customer_phone,
        },
        "notes": {"order_ref": request.order_ref, **request.metadata},
        "theme": {"color": settings.theme_color},
    }


def flatten_options(options: Mapping[str, Any]) -> list[tuple[str, str]]:
    """``{"prefill": {"name": x}}`` → ``[("prefill[name]", x)]`` for query strings."""
    pairs: list[tuple[str, str]] = []
    for key, value in options.items():
        if isinstance(value, Mapping):
            pairs.extend((f"{key}[{k}]", str(v)) for k, v in value.items())
        else:
            pairs.append((key, str(value)))
    return pairs


class _GatewayConfirmation:
    """Turns a gateway success response into an outcome."""

    def __init__(
        self,
        settings: GatewaySettings,
        verifier: PaymentVerifier | None,
        clock: Callable[[], datetime],
    ) -> None:
        self.settings = settings
        self._verifier = verifier
        self._clock = clock

    async def confirm(
        self,
        response: Mapping[str, Any] | None,
        request: PaymentRequest,
    ) -> PaymentOutcome:
        if not isinstance(response, Mapping):
            return Failed(FailureKind.INVALID_RESPONSE, "Invalid payment response from gateway")

        missing = [f for f in REQUIRED_FIELDS if not response.get(f)]
        if missing:
            return Failed(
                FailureKind.INVALID_RESPONSE,
                f"Invalid payment response from gateway: missing {', '.join(missing)}",
            )

        payment_id = str(response["payment_id"])
        if self._verifier is not None:
            verified = await self._verifier.verify(
                payment_id, str(response["order_id"]), str(response["signature"])
            )
            if not verified:
                log.warning("payment.gateway.verification_failed", payment_id=payment_id)
                return Failed(FailureKind.VERIFICATION, "Payment verification failed")

        return Succeeded(
            transaction_id=payment_id,
            amount=request.amount,
            method=request.method,
            timestamp=self._clock(),
            raw=dict(response),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Web Adapter — Browser-Hosted Checkout
# ═══════════════════════════════════════════════════════════════════════════════


class GatewayWebAdapter(_GatewayConfirmation):
    """Explicit user choice and the native adapter's fallback."""

    name = "gateway_web"

    def __init__(
        self,
        browser: HostedCheckout | None,
        settings: GatewaySettings | None = None,
        *,
        verifier: PaymentVerifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(settings or GatewaySettings(), verifier, clock)
        self._browser = browser

    def checkout_url(self, request: PaymentRequest) -> str:
        query = urlencode(flatten_options(checkout_options(request, self.settings)))
        separator = "&" if "?" in self.settings.web_checkout_url else "?"
        return f"{self.settings.web_checkout_url}{separator}{query}"

    async def execute(self, request: PaymentRequest) -> PaymentOutcome:
        if self._browser is None:
            return Failed(FailureKind.UNAVAILABLE, "Hosted checkout is not available on this device")

        url = self.checkout_url(request)
        log.info("payment.gateway_web.launch", order_ref=request.order_ref)
        params = await self._browser.launch(url)

        status = str((params or {}).get("status", "")).strip().lower()
        match status:
            case "cancelled" | "dismissed":
                return Cancelled()
            case "failed" | "failure":
                message = (params or {}).get("error_description") or "Payment failed. Please try again."
                return Failed(FailureKind.DECLINED, str(message))
            case _:
                return await self.confirm(params, request)


# ═══════════════════════════════════════════════════════════════════════════════
# Native Adapter — In-Process SDK
# ═══════════════════════════════════════════════════════════════════════════════


class GatewayNativeAdapter(_GatewayConfirmation):
    """
    Drives the in-process SDK; a dismissed sheet becomes ``Cancelled``.

    The SDK call races the dismissal callback. A dismissal only wins once
    ``dismiss_grace`` has passed without the SDK returning, so an SDK that
    closes its sheet right before reporting success is still confirmed.

    Note: the SDK is probed on every call, so an SDK that fails to load
    later still degrades to the web page.
    """

    name = "gateway_native"

    def __init__(
        self,
        sdk: GatewaySdk | None,
        web: GatewayWebAdapter,
        settings: GatewaySettings | None = None,
        *,
        verifier: PaymentVerifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
        dismiss_grace: timedelta = DISMISS_GRACE,
    ) -> None:
        super().__init__(settings or web.settings, verifier, clock)
        self._sdk = sdk
        self._web = web
        self._dismiss_grace = dismiss_grace

    @property
    def available(self) -> bool:
        return sdk_available(self._sdk)

    async def execute(self, request: PaymentRequest) -> PaymentOutcome:
        if self._sdk is None or not self.available:
            log.info("payment.gateway_native.unavailable", fallback=self._web.name)
            return await self._web.execute(request)

        sdk = self._sdk
        options = checkout_options(request, self.settings)
        dismissed = asyncio.Event()

        async def sheet() -> Result[Result[Mapping[str, Any], Exception], NoError]:
            opened = await L.catching_async(lambda: sdk.open(options, dismissed.set), on_error=lambda e: e)
            return Ok(opened)

        async def dismissal() -> Result[Cancelled, NoError]:
            await dismissed.wait()
            await asyncio.sleep(self._dismiss_grace.total_seconds())
            return Ok(Cancelled())

        log.info(
            "payment.gateway_native.open",
            order_ref=request.order_ref,
            amount_minor=options["amount"],
        )
        # First Ok wins; the losing call is cancelled.
        match await race_ok(LazyCoroResult(sheet), LazyCoroResult(dismissal)):
            case Ok(Ok(response)):
                return await self.confirm(response, request)
            case Ok(Error(exc)):
                raise exc
            case _:
                log.info("payment.gateway_native.dismissed", order_ref=request.order_ref)
                return Cancelled()


__all__ = (
    "DISMISS_GRACE",
    "GatewaySdk",
    "HostedCheckout",
    "PaymentVerifier",
    "sdk_available",
    "checkout_options",
    "flatten_options",
    "GatewayWebAdapter",
    "GatewayNativeAdapter",
)
