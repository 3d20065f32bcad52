"""
Reconciliation store — typed storage protocol.

All methods return Result for explicit error handling.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol

from kungfu import Result, Ok, Error

from tillflow.reconciliation._types import PendingReconciliation

# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class ReconciliationStore(Protocol):
    """
    Durable home for pending reconciliation records.

    record() must be durable before it returns Ok: the caller has already
    been charged.
    """

    async def record(self, entry: PendingReconciliation) -> Result[PendingReconciliation, StoreError]:
        """Persist a new record. Error if the id already exists."""
        ...

    async def get(self, record_id: str) -> Result[PendingReconciliation | None, StoreError]:
        """Fetch by id. Ok(None) if not found."""
        ...

    async def open_entries(self) -> Result[list[PendingReconciliation], StoreError]:
        """Records still awaiting support, oldest first."""
        ...

    async def resolve(self, record_id: str, order_id: str) -> Result[PendingReconciliation, StoreError]:
        """Link a record to the order support created for it."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryStore:
    """
    In-memory reconciliation store.

    Note: single process, lost on restart. Tests and previews only.
    """

    def __init__(self) -> None:
        self._records: dict[str, PendingReconciliation] = {}
        self._lock = asyncio.Lock()

    async def record(self, entry: PendingReconciliation) -> Result[PendingReconciliation, StoreError]:
        async with self._lock:
            if entry.id in self._records:
                return Error(StoreError(f"Duplicate reconciliation id: {entry.id}"))
            self._records[entry.id] = entry
            return Ok(entry)

    async def get(self, record_id: str) -> Result[PendingReconciliation | None, StoreError]:
        async with self._lock:
            return Ok(self._records.get(record_id))

    async def open_entries(self) -> Result[list[PendingReconciliation], StoreError]:
        async with self._lock:
            entries = [r for r in self._records.values() if r.is_open]
            return Ok(sorted(entries, key=lambda r: r.created_at))

    async def resolve(self, record_id: str, order_id: str) -> Result[PendingReconciliation, StoreError]:
        async with self._lock:
            existing = self._records.get(record_id)
            if existing is None:
                return Error(StoreError(f"Record not found: {record_id}"))
            if not existing.is_open:
                return Error(StoreError(f"Record already resolved: {record_id}"))
            updated = existing.resolved(order_id)
            self._records[record_id] = updated
            return Ok(updated)


__all__ = ("StoreError", "ReconciliationStore", "MemoryStore")
