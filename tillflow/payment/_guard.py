"""
In-flight guard — at most one payment attempt per checkout session.

Compare-and-swap over an in-memory key set; a second acquire for the same
key fails fast instead of waiting.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class InFlight:
    """A held slot."""

    key: str
    acquired_at: datetime


class InFlightGuard:
    """
    Per-key mutual exclusion without queueing.

    Note: single event loop only — no distributed lock.
    """

    def __init__(self) -> None:
        self._held: dict[str, InFlight] = {}
        self._lock = asyncio.Lock()

    async def try_acquire(self, key: str) -> InFlight | None:
        """Atomically claim ``key``. Returns None if already held."""
        async with self._lock:
            if key in self._held:
                return None
            slot = InFlight(key=key, acquired_at=datetime.now())
            self._held[key] = slot
            return slot

    async def release(self, slot: InFlight) -> bool:
        """Release a slot. Returns True if it was held."""
        async with self._lock:
            if self._held.get(slot.key) is slot:
                del self._held[slot.key]
                return True
            return False

    def is_held(self, key: str) -> bool:
        return key in self._held

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[InFlight | None]:
        """
        Hold ``key`` for the duration of the block.

        Yields None when the key is already held; the block decides what to do.

        Example:
            async with guard.hold(session.session_id) as slot:
                if slot is None:
                    return Failed(FailureKind.ALREADY_IN_PROGRESS, "...")
                ...
        """
        slot = await self.try_acquire(key)
        try:
            yield slot
        finally:
            if slot is not None:
                await self.release(slot)


__all__ = ("InFlight", "InFlightGuard")
