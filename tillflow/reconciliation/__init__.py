"""
Reconciliation — payments that succeeded without an order.

    from tillflow import reconciliation as R

    store = R.MemoryStore()                      # tests
    factory, engine = await R.create_database()  # durable
    store = R.SQLAlchemyStore(factory)

    match await store.open_entries():
        case Ok(entries): ...
"""

from tillflow.reconciliation._types import (
    ReconciliationStatus,
    PendingReconciliation,
)
from tillflow.reconciliation._store import (
    StoreError,
    ReconciliationStore,
    MemoryStore,
)
from tillflow.reconciliation._sqlalchemy import (
    Base,
    ReconciliationTable,
    SQLAlchemyStore,
    create_database,
)

__all__ = (
    # Types
    "ReconciliationStatus",
    "PendingReconciliation",
    # Store
    "StoreError",
    "ReconciliationStore",
    "MemoryStore",
    # SQLAlchemy
    "Base",
    "ReconciliationTable",
    "SQLAlchemyStore",
    "create_database",
)
