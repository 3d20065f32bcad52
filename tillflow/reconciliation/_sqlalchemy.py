"""
SQLAlchemy integration — durable reconciliation records.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///tillflow.db")
    store = SQLAlchemyStore(session_factory)

    reconciler = OrderReconciler(router, api, store)
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, String, DateTime, Text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from tillflow.reconciliation._store import StoreError
from tillflow.reconciliation._types import PendingReconciliation, ReconciliationStatus

# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class ReconciliationTable(Base):
    """
    Pending reconciliations.

    amount is stored as its Decimal string to keep paise exact on SQLite.
    """

    __tablename__ = "pending_reconciliations"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    order_ref: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[str] = mapped_column(String(32), nullable=False)
    method: Mapped[str] = mapped_column(String(40), nullable=False)
    paid_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    failure_kind: Mapped[str] = mapped_column(String(40), nullable=False)
    failure_message: Mapped[str] = mapped_column(Text, nullable=False)
    request_payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open", index=True)
    resolved_order_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


def _to_row(entry: PendingReconciliation) -> ReconciliationTable:
    return ReconciliationTable(
        id=entry.id,
        order_ref=entry.order_ref,
        session_id=entry.session_id,
        transaction_id=entry.transaction_id,
        amount=str(entry.amount),
        method=entry.method,
        paid_at=entry.paid_at,
        failure_kind=entry.failure_kind,
        failure_message=entry.failure_message,
        request_payload=json.dumps(dict(entry.request_payload), default=str),
        created_at=entry.created_at,
        status=entry.status.value,
        resolved_order_id=entry.resolved_order_id,
        resolved_at=entry.resolved_at,
    )


def _to_entry(row: ReconciliationTable) -> PendingReconciliation:
    return PendingReconciliation(
        id=row.id,
        order_ref=row.order_ref,
        session_id=row.session_id,
        transaction_id=row.transaction_id,
        amount=Decimal(row.amount),
        method=row.method,
        paid_at=row.paid_at,
        failure_kind=row.failure_kind,
        failure_message=row.failure_message,
        request_payload=json.loads(row.request_payload or "{}"),
        created_at=row.created_at,
        status=ReconciliationStatus(row.status),
        resolved_order_id=row.resolved_order_id,
        resolved_at=row.resolved_at,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStore:
    """Reconciliation store over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(self, entry: PendingReconciliation) -> Result[PendingReconciliation, StoreError]:
        """Insert and commit."""
        try:
            async with self._session_factory() as session:
                session.add(_to_row(entry))
                await session.commit()
                return Ok(entry)

        except IntegrityError as e:
            return Error(StoreError(f"Duplicate reconciliation id: {entry.id}", e))
        except Exception as e:
            return Error(StoreError(f"Failed to record: {e}", e))

    async def get(self, record_id: str) -> Result[PendingReconciliation | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ReconciliationTable, record_id)
                return Ok(_to_entry(row) if row is not None else None)

        except Exception as e:
            return Error(StoreError(f"Failed to get: {e}", e))

    async def open_entries(self) -> Result[list[PendingReconciliation], StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(ReconciliationTable)
                    .where(ReconciliationTable.status == ReconciliationStatus.OPEN.value)
                    .order_by(ReconciliationTable.created_at)
                )
                rows = (await session.execute(stmt)).scalars().all()
                return Ok([_to_entry(row) for row in rows])

        except Exception as e:
            return Error(StoreError(f"Failed to list: {e}", e))

    async def resolve(self, record_id: str, order_id: str) -> Result[PendingReconciliation, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ReconciliationTable, record_id)
                if row is None:
                    return Error(StoreError(f"Record not found: {record_id}"))
                if row.status != ReconciliationStatus.OPEN.value:
                    return Error(StoreError(f"Record already resolved: {record_id}"))

                row.status = ReconciliationStatus.RESOLVED.value
                row.resolved_order_id = order_id
                row.resolved_at = datetime.now()
                await session.commit()
                return Ok(_to_entry(row))

        except Exception as e:
            return Error(StoreError(f"Failed to resolve: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "ReconciliationTable",
    "SQLAlchemyStore",
    "create_database",
)
