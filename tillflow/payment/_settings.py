"""
Payment settings — behavior configuration.

Immutable — each ``with_*`` method returns a new instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import timedelta
from decimal import Decimal

from tillflow._types import Money

# ═══════════════════════════════════════════════════════════════════════════════
# Amount Limits
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AmountLimits:
    """Bounds an online payment must respect before any adapter is invoked."""

    min_amount: Money = Decimal("1")
    max_amount: Money = Decimal("100000")

    def with_bounds(self, min_amount: Money | str | int, max_amount: Money | str | int) -> AmountLimits:
        lo, hi = Decimal(min_amount), Decimal(max_amount)
        if lo > hi:
            raise ValueError(f"min_amount {lo} exceeds max_amount {hi}")
        return AmountLimits(lo, hi)


# ═══════════════════════════════════════════════════════════════════════════════
# UPI
# ═══════════════════════════════════════════════════════════════════════════════

VPA_PATTERN = re.compile(r"^[a-zA-Z0-9._-]{2,256}@[a-zA-Z][a-zA-Z0-9.-]{1,64}$")

DEFAULT_UPI_APPS = ("google_pay", "phonepe", "paytm", "bhim", "amazon_pay", "whatsapp")


@dataclass(frozen=True, slots=True)
class UpiSettings:
    merchant_vpa: str = "merchant@upi"
    merchant_name: str = "Storefront"
    default_app: str = "google_pay"
    apps: tuple[str, ...] = DEFAULT_UPI_APPS
    transaction_prefix: str = "TF"

    def with_merchant(self, vpa: str, name: str) -> UpiSettings:
        if not is_valid_vpa(vpa):
            raise ValueError(f"Invalid merchant VPA: {vpa!r}")
        return replace(self, merchant_vpa=vpa, merchant_name=name)

    def with_apps(self, *apps: str, default: str | None = None) -> UpiSettings:
        chosen = default or (apps[0] if apps else self.default_app)
        return replace(self, apps=tuple(apps), default_app=chosen)


def is_valid_vpa(vpa: str) -> bool:
    """``localpart@handle`` check for UPI virtual payment addresses."""
    return bool(VPA_PATTERN.match(vpa.strip()))


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True, slots=True)
class GatewaySettings:
    """
    Merchant identity and presentation for the hosted payment gateway.

    key_id is the public checkout key; secrets never live on the client.
    """

    key_id: str = ""
    currency: str = "INR"
    merchant_name: str = "Storefront"
    description: str = "Order payment"
    theme_color: str = "#059669"
    web_checkout_url: str = "https://checkout.example.com/pay"

    def with_key(self, key_id: str) -> GatewaySettings:
        return replace(self, key_id=key_id)

    def with_currency(self, currency: str) -> GatewaySettings:
        return replace(self, currency=currency.upper())

    def with_web_checkout(self, url: str) -> GatewaySettings:
        return replace(self, web_checkout_url=url)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


# ═══════════════════════════════════════════════════════════════════════════════
# Mock
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MockSettings:
    """
    Simulated payment backend.

    success_rate in [0, 1]; seed makes the outcome sequence reproducible.
    """

    success_rate: float = 0.8
    delay: timedelta = timedelta(seconds=2)
    seed: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.success_rate <= 1.0:
            raise ValueError(f"success_rate must be within [0, 1], got {self.success_rate}")

    def with_success_rate(self, rate: float) -> MockSettings:
        return replace(self, success_rate=rate)

    def with_delay(
        self,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> MockSettings:
        """
        Set simulated processing delay.

        Example:
            MockSettings().with_delay(seconds=0)
        """
        delay = delta if delta is not None else timedelta(seconds=seconds or 0)
        return replace(self, delay=delay)

    def with_seed(self, seed: int | None) -> MockSettings:
        return replace(self, seed=seed)


__all__ = (
    "AmountLimits",
    "VPA_PATTERN",
    "DEFAULT_UPI_APPS",
    "UpiSettings",
    "is_valid_vpa",
    "EMAIL_PATTERN",
    "GatewaySettings",
    "is_valid_email",
    "MockSettings",
)
