"""
tillflow — checkout pricing, payment routing and order placement.

    from tillflow import pricing as P         # Cart → breakdown
    from tillflow import payment as Pay       # Method → adapter → outcome
    from tillflow import order as O           # Validate → pay → create order
    from tillflow import reconciliation as R  # Charged but no order
"""

from tillflow import pricing
from tillflow import payment
from tillflow import order
from tillflow import reconciliation
from tillflow._config import CheckoutConfig, ConfigError
from tillflow._log import configure_logging, get_logger
from tillflow._errors import (
    TillflowError,
    UnsupportedMethodError,
    GatewayFault,
    OrderBackendError,
    IllegalTransitionError,
)
from tillflow._types import Money, to_money

__version__ = "0.1.0"

__all__ = (
    "pricing",
    "payment",
    "order",
    "reconciliation",
    "CheckoutConfig",
    "ConfigError",
    "configure_logging",
    "get_logger",
    "TillflowError",
    "UnsupportedMethodError",
    "GatewayFault",
    "OrderBackendError",
    "IllegalTransitionError",
    "Money",
    "to_money",
)
