"""Tests for reconciliation stores (memory and SQLAlchemy)."""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from fakes import FIXED_NOW, ok
from tillflow import reconciliation as R


def _entry(order_ref: str = "ord_1", amount: str = "284.50") -> R.PendingReconciliation:
    return R.PendingReconciliation.open(
        order_ref=order_ref,
        session_id="sess-1",
        transaction_id=f"txn-{order_ref}",
        amount=Decimal(amount),
        method="upi",
        paid_at=FIXED_NOW,
        failure_kind="BACKEND_REJECTED",
        failure_message="Product out of stock",
        request_payload={"paymentMethod": "upi", "items": [{"product": "p-1", "quantity": 2}]},
    )


@pytest.fixture(params=["memory", "sqlalchemy"])
def open_store(request, tmp_path):
    """Async factory returning (store, engine-or-None)."""

    async def factory():
        if request.param == "memory":
            return R.MemoryStore(), None
        session_factory, engine = await R.create_database(f"sqlite+aiosqlite:///{tmp_path / 'rec.db'}")
        return R.SQLAlchemyStore(session_factory), engine

    return factory


def _run(open_store, scenario):
    async def main():
        store, engine = await open_store()
        try:
            return await scenario(store)
        finally:
            if engine is not None:
                await engine.dispose()

    return asyncio.run(main())


class TestStore:
    def test_record_and_get(self, open_store):
        entry = _entry()

        async def scenario(store):
            ok(await store.record(entry))
            return ok(await store.get(entry.id))

        stored = _run(open_store, scenario)

        assert stored.id == entry.id
        assert stored.amount == Decimal("284.50")
        assert stored.paid_at == FIXED_NOW
        assert stored.request_payload["items"][0]["product"] == "p-1"
        assert stored.is_open

    def test_get_missing(self, open_store):
        async def scenario(store):
            return await store.get("rec_missing")

        assert ok(_run(open_store, scenario)) is None

    def test_duplicate_id(self, open_store):
        entry = _entry()

        async def scenario(store):
            ok(await store.record(entry))
            return await store.record(entry)

        match _run(open_store, scenario):
            case Error(err):
                assert "Duplicate" in err.message
            case Ok(_):
                raise AssertionError("duplicate insert should fail")

    def test_open_entries_exclude_resolved(self, open_store):
        first, second = _entry("ord_1"), _entry("ord_2")

        async def scenario(store):
            ok(await store.record(first))
            ok(await store.record(second))
            resolved = ok(await store.resolve(first.id, "order-9"))
            return resolved, ok(await store.open_entries())

        resolved, entries = _run(open_store, scenario)

        assert resolved.status is R.ReconciliationStatus.RESOLVED
        assert resolved.resolved_order_id == "order-9"
        assert isinstance(resolved.resolved_at, datetime)
        assert [e.id for e in entries] == [second.id]

    def test_resolve_twice(self, open_store):
        entry = _entry()

        async def scenario(store):
            ok(await store.record(entry))
            ok(await store.resolve(entry.id, "order-9"))
            return await store.resolve(entry.id, "order-10")

        assert isinstance(_run(open_store, scenario), Error)

    def test_resolve_missing(self, open_store):
        async def scenario(store):
            return await store.resolve("rec_missing", "order-9")

        assert isinstance(_run(open_store, scenario), Error)


class TestPendingReconciliation:
    def test_open_assigns_id(self):
        first, second = _entry(), _entry()

        assert first.id.startswith("rec_")
        assert first.id != second.id
        assert first.status is R.ReconciliationStatus.OPEN
