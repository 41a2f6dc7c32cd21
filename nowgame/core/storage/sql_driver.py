"""
SqlStorageDriver: key/value storage on a single SQL table.

Purpose
-------
Persist the string values repositories write into one `kv_store` table
through the SQLAlchemy 2.0 async engine. SQLite through aiosqlite is the
default; any async SQLAlchemy URL works.

Design Notes
------------
- `init()` creates the engine, the session factory and the table. It is
  idempotent and guarded by an asyncio.Lock.
- Every operation runs inside `get_transaction()`, which commits on success
  and rolls back on any exception.
- Backend exceptions are wrapped in `StorageError` with the original error
  chained; repositories decide whether to downgrade them.
- In-memory SQLite URLs use a StaticPool so every session sees the same
  database.

Dependencies
------------
- sqlalchemy[asyncio] + aiosqlite
- nowgame.core.logging.logger
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import DateTime, String, Text, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from nowgame.core.exceptions import StorageError
from nowgame.core.logging.logger import get_logger
from nowgame.core.storage.driver import StorageDriver

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class KeyValueEntry(Base):
    """One stored value. Keys follow the storage key layout (`wisdom_data`, ...)."""

    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class SqlStorageDriver(StorageDriver):
    """Async SQLAlchemy-backed storage driver."""

    name = "sql"

    def __init__(self, url: str, *, echo: bool = False) -> None:
        super().__init__()
        self._url = url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._init_lock = asyncio.Lock()

    @property
    def url_scheme(self) -> str:
        return self._url.split("://", 1)[0]

    async def init(self) -> None:
        async with self._init_lock:
            if self._initialized:
                logger.debug("SqlStorageDriver already initialized; skipping")
                return

            logger.info(
                "Initializing SqlStorageDriver",
                extra={"url_scheme": self.url_scheme},
            )

            engine_kwargs: dict[str, Any] = {"echo": self._echo}
            if ":memory:" in self._url:
                engine_kwargs["poolclass"] = StaticPool

            try:
                self._engine = create_async_engine(self._url, **engine_kwargs)
                self._session_factory = async_sessionmaker(
                    bind=self._engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                async with self._engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            except SQLAlchemyError as exc:
                logger.error(
                    "SqlStorageDriver initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                if self._engine is not None:
                    await self._engine.dispose()
                self._engine = None
                self._session_factory = None
                raise StorageError("init", None, exc) from exc

            self._initialized = True
            logger.info("SqlStorageDriver initialized successfully")

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session with automatic commit on success and rollback on error.

        Callers never call `commit()` or `rollback()` themselves.
        """
        self._ensure_initialized()
        assert self._session_factory is not None

        start = time.perf_counter()
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
                logger.debug(
                    "Storage transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )
            except Exception as exc:
                await session.rollback()
                logger.debug(
                    "Storage transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

    async def get_string(self, key: str) -> Optional[str]:
        self._ensure_initialized()
        try:
            async with self.get_transaction() as session:
                entry = await session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as exc:
            raise StorageError("get_string", key, exc) from exc

    async def set_string(self, key: str, value: str) -> None:
        self._ensure_initialized()
        try:
            async with self.get_transaction() as session:
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
        except SQLAlchemyError as exc:
            logger.error(
                "SqlStorageDriver write failed",
                extra={"storage_key": key, "error": str(exc)},
                exc_info=True,
            )
            raise StorageError("set_string", key, exc) from exc

    async def remove(self, key: str) -> None:
        self._ensure_initialized()
        try:
            async with self.get_transaction() as session:
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError as exc:
            raise StorageError("remove", key, exc) from exc

    async def get_keys(self) -> set[str]:
        self._ensure_initialized()
        try:
            async with self.get_transaction() as session:
                result = await session.scalars(select(KeyValueEntry.key))
                return set(result.all())
        except SQLAlchemyError as exc:
            raise StorageError("get_keys", None, exc) from exc

    async def clear(self) -> None:
        self._ensure_initialized()
        try:
            async with self.get_transaction() as session:
                await session.execute(delete(KeyValueEntry))
        except SQLAlchemyError as exc:
            raise StorageError("clear", None, exc) from exc

    async def close(self) -> None:
        async with self._init_lock:
            if self._engine is None:
                logger.debug("SqlStorageDriver not initialized; nothing to close")
                return
            logger.info("Shutting down SqlStorageDriver")
            try:
                await self._engine.dispose()
            finally:
                self._engine = None
                self._session_factory = None
                self._initialized = False
