"""
Payment adapter protocol.

One adapter per payment backend; each normalizes its backend's
request/response shape into ``PaymentOutcome``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tillflow.payment._types import PaymentRequest, PaymentOutcome


@runtime_checkable
class PaymentAdapter(Protocol):
    """
    Uniform payment backend.

    execute() may raise; the router classifies anything raised into
    ``Cancelled`` or ``Failed``. Returning an outcome is preferred.
    """

    name: str

    async def execute(self, request: PaymentRequest) -> PaymentOutcome: ...


__all__ = ("PaymentAdapter",)
