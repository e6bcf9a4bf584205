"""
SQLAlchemy integration — session store backed by a single table.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///cart.db")
    store = SQLAlchemySessionStore(session_factory)

    controller = F.IdempotentFeeController(store)

Values are stored as JSON text, one row per (session_id, key).
"""

import json
from datetime import datetime, timezone
from typing import Any, cast

from sqlalchemy import DateTime, String, Text, delete, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from cartcore.fees._store import StoreError


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class SessionStateRow(Base):
    """One session value."""

    __tablename__ = "cartcore_session_state"

    session_id: Mapped[str] = mapped_column(String(191), primary_key=True)
    key: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemySessionStore:
    """
    SessionStore over SQLAlchemy async sessions.

    Note: Each call opens its own session and commits before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, session_id: str, key: str) -> Result[Any | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(SessionStateRow, (session_id, key))
                if row is None:
                    return Ok(None)
                return Ok(json.loads(row.value))
        except Exception as e:
            return Error(StoreError(f"Failed to get {key!r}: {e}", e))

    async def set(self, session_id: str, key: str, value: Any) -> Result[None, StoreError]:
        try:
            payload = json.dumps(value, default=str)
            async with self._session_factory() as session:
                row = await session.get(SessionStateRow, (session_id, key))
                if row is None:
                    session.add(
                        SessionStateRow(
                            session_id=session_id,
                            key=key,
                            value=payload,
                            updated_at=_now(),
                        )
                    )
                else:
                    row.value = payload
                    row.updated_at = _now()
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to set {key!r}: {e}", e))

    async def delete(self, session_id: str, key: str) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(SessionStateRow, (session_id, key))
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(StoreError(f"Failed to delete {key!r}: {e}", e))

    async def clear(self, session_id: str) -> Result[int, StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = delete(SessionStateRow).where(SessionStateRow.session_id == session_id)
                cursor = cast(CursorResult[Any], await session.execute(stmt))
                await session.commit()
                return Ok(cursor.rowcount)
        except Exception as e:
            return Error(StoreError(f"Failed to clear session: {e}", e))

    async def keys(self, session_id: str) -> Result[list[str], StoreError]:
        try:
            async with self._session_factory() as session:
                stmt = (
                    select(SessionStateRow.key)
                    .where(SessionStateRow.session_id == session_id)
                    .order_by(SessionStateRow.key)
                )
                result = await session.execute(stmt)
                return Ok(list(result.scalars()))
        except Exception as e:
            return Error(StoreError(f"Failed to list keys: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite://",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "SessionStateRow",
    "SQLAlchemySessionStore",
    "create_database",
)
