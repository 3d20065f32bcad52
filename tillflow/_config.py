"""
Checkout configuration — one immutable object for every tunable.

    config = CheckoutConfig.from_env()            # .env + TILLFLOW_* variables
    config = CheckoutConfig().with_fees(FeeSchedule().with_shipping("20"))

    router = config.routes().on(Pay.UpiApp, upi).build()

Environment:

    TILLFLOW_GST_MODE              weighted-average | per-line
    TILLFLOW_SHIPPING_FLAT         decimal, default 0
    TILLFLOW_PLATFORM_FEE          decimal, default 0
    TILLFLOW_MIN_AMOUNT            decimal
    TILLFLOW_MAX_AMOUNT            decimal
    TILLFLOW_UPI_VPA               merchant VPA
    TILLFLOW_UPI_MERCHANT_NAME
    TILLFLOW_UPI_DEFAULT_APP
    TILLFLOW_GATEWAY_KEY           public checkout key
    TILLFLOW_GATEWAY_CURRENCY
    TILLFLOW_GATEWAY_CHECKOUT_URL
    TILLFLOW_MOCK_SUCCESS_RATE     float in [0, 1]
    TILLFLOW_MOCK_DELAY            seconds
    TILLFLOW_MOCK_SEED             int
    TILLFLOW_PAYMENT_TIMEOUT       seconds, watchdog per adapter call
    TILLFLOW_API_URL               storefront API base URL
    TILLFLOW_DATABASE_URL          reconciliation store URL
    TILLFLOW_LOG_LEVEL             debug | info | warning | ...
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv

from tillflow.payment import (
    DEFAULT_WATCHDOG,
    AmountLimits,
    GatewaySettings,
    MockSettings,
    RouterBuilder,
    UpiSettings,
    routes,
)
from tillflow.pricing import FeeSchedule, GstMode

PREFIX = "TILLFLOW_"

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class ConfigError(ValueError):
    """An environment variable holds a value that cannot be parsed."""

    def __init__(self, name: str, value: str, expected: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"{name}={value!r}: expected {expected}")


@dataclass(frozen=True, slots=True)
class CheckoutConfig:
    fees: FeeSchedule = field(default_factory=FeeSchedule)
    limits: AmountLimits = field(default_factory=AmountLimits)
    upi: UpiSettings = field(default_factory=UpiSettings)
    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    mock: MockSettings = field(default_factory=MockSettings)
    payment_timeout: timedelta = DEFAULT_WATCHDOG
    api_url: str = ""
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "info"

    def with_fees(self, fees: FeeSchedule) -> CheckoutConfig:
        return replace(self, fees=fees)

    def with_limits(self, limits: AmountLimits) -> CheckoutConfig:
        return replace(self, limits=limits)

    def with_upi(self, upi: UpiSettings) -> CheckoutConfig:
        return replace(self, upi=upi)

    def with_gateway(self, gateway: GatewaySettings) -> CheckoutConfig:
        return replace(self, gateway=gateway)

    def with_mock(self, mock: MockSettings) -> CheckoutConfig:
        return replace(self, mock=mock)

    def with_payment_timeout(
        self,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> CheckoutConfig:
        timeout = delta if delta is not None else timedelta(seconds=seconds or 0)
        if timeout <= timedelta(0):
            raise ValueError("Payment timeout must be positive")
        return replace(self, payment_timeout=timeout)

    def routes(self) -> RouterBuilder:
        """Router builder preloaded with limits and watchdog."""
        return routes().limits(self.limits).watchdog(delta=self.payment_timeout)

    @classmethod
    def from_env(
        cls,
        path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> CheckoutConfig:
        """
        Build configuration from ``TILLFLOW_*`` variables.

        When environ is None, ``.env`` (or path) is loaded into the process
        environment first; variables already set win.
        """
        if environ is None:
            load_dotenv(path)
            environ = os.environ
        env = _Env(environ)

        fees = FeeSchedule()
        if env.get("GST_MODE") is not None:
            fees = fees.with_gst_mode(env.choice("GST_MODE", [m.value for m in GstMode]))
        if (shipping := env.decimal("SHIPPING_FLAT")) is not None:
            fees = fees.with_shipping(shipping)
        if (platform_fee := env.decimal("PLATFORM_FEE")) is not None:
            fees = fees.with_platform_fee(platform_fee)

        defaults = AmountLimits()
        lo, hi = env.decimal("MIN_AMOUNT"), env.decimal("MAX_AMOUNT")
        limits = defaults.with_bounds(
            lo if lo is not None else defaults.min_amount,
            hi if hi is not None else defaults.max_amount,
        )

        upi = UpiSettings()
        vpa = env.get("UPI_VPA")
        merchant = env.get("UPI_MERCHANT_NAME")
        if vpa is not None or merchant is not None:
            upi = upi.with_merchant(vpa or upi.merchant_vpa, merchant or upi.merchant_name)
        if (app := env.get("UPI_DEFAULT_APP")) is not None:
            upi = upi.with_apps(*upi.apps, default=app)

        gateway = GatewaySettings()
        if (key := env.get("GATEWAY_KEY")) is not None:
            gateway = gateway.with_key(key)
        if (currency := env.get("GATEWAY_CURRENCY")) is not None:
            gateway = gateway.with_currency(currency)
        if (url := env.get("GATEWAY_CHECKOUT_URL")) is not None:
            gateway = gateway.with_web_checkout(url)

        mock = MockSettings()
        if (rate := env.number("MOCK_SUCCESS_RATE")) is not None:
            mock = mock.with_success_rate(rate)
        if (delay := env.number("MOCK_DELAY")) is not None:
            mock = mock.with_delay(seconds=delay)
        if (seed := env.integer("MOCK_SEED")) is not None:
            mock = mock.with_seed(seed)

        config = cls(
            fees=fees,
            limits=limits,
            upi=upi,
            gateway=gateway,
            mock=mock,
            api_url=env.get("API_URL") or "",
            database_url=env.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            log_level=(env.get("LOG_LEVEL") or "info").lower(),
        )
        if (timeout := env.number("PAYMENT_TIMEOUT")) is not None:
            config = config.with_payment_timeout(seconds=timeout)
        return config


class _Env:
    """Typed reads of prefixed variables; blank counts as unset."""

    def __init__(self, environ: Mapping[str, str]) -> None:
        self._environ = environ

    def get(self, name: str) -> str | None:
        value = self._environ.get(PREFIX + name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def decimal(self, name: str) -> Decimal | None:
        raw = self.get(name)
        if raw is None:
            return None
        try:
            return Decimal(raw)
        except InvalidOperation:
            raise ConfigError(PREFIX + name, raw, "a decimal") from None

    def number(self, name: str) -> float | None:
        raw = self.get(name)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            raise ConfigError(PREFIX + name, raw, "a number") from None

    def integer(self, name: str) -> int | None:
        raw = self.get(name)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(PREFIX + name, raw, "an integer") from None

    def choice(self, name: str, options: list[str]) -> str:
        raw = self.get(name) or ""
        if raw.lower() not in options:
            raise ConfigError(PREFIX + name, raw, " | ".join(options))
        return raw.lower()


__all__ = ("CheckoutConfig", "ConfigError", "DEFAULT_DATABASE_URL")
