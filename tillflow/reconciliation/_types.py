"""
Reconciliation types — the charged-but-no-order record.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from tillflow._types import Money

# ═══════════════════════════════════════════════════════════════════════════════
# Status — Record Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class ReconciliationStatus(Enum):
    """
    Lifecycle:
        OPEN → RESOLVED (support linked an order or refunded)
    """

    OPEN = "open"
    RESOLVED = "resolved"


# ═══════════════════════════════════════════════════════════════════════════════
# Pending Reconciliation — Stored State
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PendingReconciliation:
    """
    A payment that succeeded without a matching order.

    request_payload holds the order payload that could not be created, so
    support can replay it by hand.
    """

    id: str
    order_ref: str
    session_id: str
    transaction_id: str
    amount: Money
    method: str
    paid_at: datetime
    failure_kind: str
    failure_message: str
    request_payload: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    status: ReconciliationStatus = ReconciliationStatus.OPEN
    resolved_order_id: str | None = None
    resolved_at: datetime | None = None

    @classmethod
    def open(
        cls,
        *,
        order_ref: str,
        session_id: str,
        transaction_id: str,
        amount: Money,
        method: str,
        paid_at: datetime,
        failure_kind: str,
        failure_message: str,
        request_payload: Mapping[str, Any] | None = None,
    ) -> PendingReconciliation:
        return cls(
            id=f"rec_{uuid.uuid4().hex[:16]}",
            order_ref=order_ref,
            session_id=session_id,
            transaction_id=transaction_id,
            amount=amount,
            method=method,
            paid_at=paid_at,
            failure_kind=failure_kind,
            failure_message=failure_message,
            request_payload=dict(request_payload or {}),
        )

    @property
    def is_open(self) -> bool:
        return self.status == ReconciliationStatus.OPEN

    def resolved(self, order_id: str, at: datetime | None = None) -> PendingReconciliation:
        return replace(
            self,
            status=ReconciliationStatus.RESOLVED,
            resolved_order_id=order_id,
            resolved_at=at or datetime.now(),
        )


__all__ = ("ReconciliationStatus", "PendingReconciliation")
