"""
Payment types — methods, request, outcome.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, ClassVar

from tillflow._types import Money

# ═══════════════════════════════════════════════════════════════════════════════
# Payment Method — User Choice
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class _Method:
    """
    Base for payment method variants.

    code: value of ``paymentMethod`` in the order payload.
    """

    code: ClassVar[str]
    is_online: ClassVar[bool] = True
    enabled: ClassVar[bool] = True

    @property
    def label(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class CashOnDelivery(_Method):
    code: ClassVar[str] = "cash_on_delivery"
    is_online: ClassVar[bool] = False


@dataclass(frozen=True, slots=True)
class UpiApp(_Method):
    """Deep-link into a specific UPI app (``google_pay``, ``phonepe``...)."""

    app_id: str
    code: ClassVar[str] = "upi"


@dataclass(frozen=True, slots=True)
class UpiCustomId(_Method):
    """Pay to a UPI virtual payment address typed by the user."""

    vpa: str
    code: ClassVar[str] = "upi"


@dataclass(frozen=True, slots=True)
class GatewayNative(_Method):
    code: ClassVar[str] = "gateway"


@dataclass(frozen=True, slots=True)
class GatewayWeb(_Method):
    code: ClassVar[str] = "gateway"


@dataclass(frozen=True, slots=True)
class Card(_Method):
    code: ClassVar[str] = "card"
    enabled: ClassVar[bool] = False


@dataclass(frozen=True, slots=True)
class Wallet(_Method):
    code: ClassVar[str] = "wallet"
    enabled: ClassVar[bool] = False


type PaymentMethod = (
    CashOnDelivery | UpiApp | UpiCustomId | GatewayNative | GatewayWeb | Card | Wallet
)

# ═══════════════════════════════════════════════════════════════════════════════
# Session Context — Billing Identity
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SessionContext:
    """
    Identity of the signed-in customer for one checkout session.

    Passed explicitly into the router and reconciler.
    """

    session_id: str
    user_id: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Request — Normalized Adapter Input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PaymentRequest:
    amount: Money
    order_ref: str
    customer_name: str
    customer_email: str
    customer_phone: str
    description: str
    method: PaymentMethod
    metadata: Mapping[str, str] = field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Outcome — Tagged Union
# ═══════════════════════════════════════════════════════════════════════════════


class FailureKind(Enum):
    """Why a payment attempt did not succeed."""

    VALIDATION = auto()  # Precondition rejected before dispatch
    ALREADY_IN_PROGRESS = auto()  # Another attempt in flight for this session
    METHOD_DISABLED = auto()  # Card / wallet not offered
    DECLINED = auto()  # Backend reported failure
    UNKNOWN_STATUS = auto()  # UPI status we do not understand
    INVALID_RESPONSE = auto()  # Success without required fields
    VERIFICATION = auto()  # Signature rejected by backend
    SIMULATED = auto()  # Mock adapter failure
    TIMEOUT = auto()  # Watchdog fired
    NETWORK = auto()  # Transport-level fault
    UNAVAILABLE = auto()  # No usable backend on this device
    GATEWAY = auto()  # Any other adapter fault


@dataclass(frozen=True, slots=True)
class Succeeded:
    transaction_id: str
    amount: Money
    method: PaymentMethod
    timestamp: datetime
    raw: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Cancelled:
    """User dismissed the payment UI. Not an error."""

    reason: str = "Payment was cancelled by user"


@dataclass(frozen=True, slots=True)
class Failed:
    kind: FailureKind
    message: str


type PaymentOutcome = Succeeded | Cancelled | Failed

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

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
    # Context / request
    "SessionContext",
    "PaymentRequest",
    # Outcome
    "FailureKind",
    "Succeeded",
    "Cancelled",
    "Failed",
    "PaymentOutcome",
)
