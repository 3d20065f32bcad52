"""
Exceptions that cross module seams.

Expected failures travel as values (``Failed``, ``OrderResult`` variants,
``kungfu.Error``). Only programming errors and transport-level faults at the
HTTP/SDK seams are raised.
"""

from __future__ import annotations


class TillflowError(Exception):
    """Base for tillflow exceptions."""


class UnsupportedMethodError(TillflowError):
    """
    A payment method reached the router with no adapter to serve it.

    Programming error — the checkout UI only offers routed methods.
    """

    def __init__(self, method: object) -> None:
        self.method = method
        super().__init__(f"Unsupported payment method: {method!r}")


class GatewayFault(TillflowError):
    """
    Adapter-level fault raised by an SDK or dispatch boundary.

    code mirrors the SDK's error code (``PAYMENT_CANCELLED``, ``NETWORK_ERROR``...).
    Never escapes the payment router.
    """

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or code
        super().__init__(self.message)


class OrderBackendError(TillflowError):
    """The order endpoint answered with a non-2xx status."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"[{status}] {message}")


class IllegalTransitionError(TillflowError):
    """Checkout state machine asked to move along an edge it does not have."""

    def __init__(self, source: object, target: object) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Illegal checkout transition: {source} -> {target}")


__all__ = (
    "TillflowError",
    "UnsupportedMethodError",
    "GatewayFault",
    "OrderBackendError",
    "IllegalTransitionError",
)
