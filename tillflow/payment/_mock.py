"""
Mock adapter — deterministic simulated payment backend.

Universal fallback when a real backend is missing, and the test double for
every other adapter.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from datetime import datetime

from tillflow._log import get_logger
from tillflow.payment._settings import MockSettings
from tillflow.payment._types import (
    PaymentRequest,
    PaymentOutcome,
    Succeeded,
    Failed,
    FailureKind,
)

log = get_logger(__name__)


class MockAdapter:
    """
    Succeeds with probability ``success_rate`` after ``delay``.

    With a seed the sequence of outcomes and transaction ids is reproducible.
    """

    name = "mock"

    def __init__(
        self,
        settings: MockSettings | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings or MockSettings()
        self._rng = rng or random.Random(self.settings.seed)
        self._clock = clock
        self.call_count = 0

    async def execute(self, request: PaymentRequest) -> PaymentOutcome:
        self.call_count += 1
        await asyncio.sleep(self.settings.delay.total_seconds())

        now = self._clock()
        roll = self._rng.random()
        if roll < self.settings.success_rate:
            txn = f"MOCK_TXN_{int(now.timestamp() * 1000)}_{self._rng.getrandbits(36):09x}"
            log.info("payment.mock.succeeded", order_ref=request.order_ref, transaction_id=txn)
            return Succeeded(
                transaction_id=txn,
                amount=request.amount,
                method=request.method,
                timestamp=now,
                raw={"mock": True, "method": request.method.label},
            )

        log.info("payment.mock.failed", order_ref=request.order_ref)
        return Failed(FailureKind.SIMULATED, "Mock payment failed. Please try again.")


__all__ = ("MockAdapter",)
