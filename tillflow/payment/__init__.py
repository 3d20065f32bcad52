"""
Payment — method routing over heterogeneous payment backends.

    from tillflow import payment as Pay

    mock = Pay.MockAdapter(Pay.MockSettings().with_seed(7))
    web = Pay.GatewayWebAdapter(browser, gateway_settings)
    router = (
        Pay.routes()
        .on(Pay.UpiApp, Pay.UpiAdapter(upi_dispatch, fallback=mock))
        .on(Pay.UpiCustomId, Pay.UpiAdapter(upi_dispatch, fallback=mock))
        .on(Pay.GatewayNative, Pay.GatewayNativeAdapter(sdk, web))
        .on(Pay.GatewayWeb, web)
        .watchdog(seconds=180)
        .build()
    )
    outcome = await router.pay(Pay.UpiApp("phonepe"), amount, order_ref, session)

Fallbacks:

    GatewayNative ──(SDK missing)──▶ GatewayWeb
    UpiApp / UpiCustomId ──(dispatch missing)──▶ Mock
"""

from tillflow.payment._types import (
    CashOnDelivery,
    UpiApp,
    UpiCustomId,
    GatewayNative,
    GatewayWeb,
    Card,
    Wallet,
    PaymentMethod,
    SessionContext,
    PaymentRequest,
    FailureKind,
    Succeeded,
    Cancelled,
    Failed,
    PaymentOutcome,
)
from tillflow.payment._settings import (
    AmountLimits,
    UpiSettings,
    GatewaySettings,
    MockSettings,
    DEFAULT_UPI_APPS,
    is_valid_vpa,
    is_valid_email,
)
from tillflow.payment._adapter import PaymentAdapter
from tillflow.payment._guard import InFlight, InFlightGuard
from tillflow.payment._mock import MockAdapter
from tillflow.payment._upi import (
    UpiIntent,
    UpiDispatch,
    UpiAdapter,
    dispatch_available,
)
from tillflow.payment._gateway import (
    DISMISS_GRACE,
    GatewaySdk,
    HostedCheckout,
    PaymentVerifier,
    GatewayNativeAdapter,
    GatewayWebAdapter,
    checkout_options,
    sdk_available,
)
from tillflow.payment._router import (
    DEFAULT_WATCHDOG,
    PaymentMethodRouter,
    RouterBuilder,
    classify_fault,
    routes,
)

__all__ = (
    # Methods
    "CashOnDelivery",
    "UpiApp",
    "UpiCustomId",
    "GatewayNative",
    "GatewayWeb",
    "Card",
    "Wallet",
    "PaymentMethod",
    # Context / request / outcome
    "SessionContext",
    "PaymentRequest",
    "FailureKind",
    "Succeeded",
    "Cancelled",
    "Failed",
    "PaymentOutcome",
    # Settings
    "AmountLimits",
    "UpiSettings",
    "GatewaySettings",
    "MockSettings",
    "DEFAULT_UPI_APPS",
    "is_valid_vpa",
    "is_valid_email",
    # Adapters
    "PaymentAdapter",
    "MockAdapter",
    "UpiIntent",
    "UpiDispatch",
    "UpiAdapter",
    "dispatch_available",
    "DISMISS_GRACE",
    "GatewaySdk",
    "HostedCheckout",
    "PaymentVerifier",
    "GatewayNativeAdapter",
    "GatewayWebAdapter",
    "checkout_options",
    "sdk_available",
    # Guard
    "InFlight",
    "InFlightGuard",
    # Router
    "DEFAULT_WATCHDOG",
    "PaymentMethodRouter",
    "RouterBuilder",
    "classify_fault",
    "routes",
)
