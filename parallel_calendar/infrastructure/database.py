"""Database Session Manager — the store handle: pooled sessions, per-user locking, error mapping.

Invariants:
    - Every session auto-rolls-back on exception or cancellation (no partial commits leak)
    - Connection pool uses pool_pre_ping for stale connection detection
    - All SQLAlchemy exceptions mapped to StorageUnavailableError or
      IntegrityViolationError (core/errors.py)
    - user_transaction() holds a per-user lock from before BEGIN until after
      COMMIT/ROLLBACK: two writers for the same user never interleave their
      read-then-write

Design Decisions:
    - Explicit handle instead of a module singleton: constructed in the FastAPI
      lifespan, stored on app.state, passed by reference to repositories,
      disposed at shutdown
    - PostgreSQL: pg_advisory_xact_lock keyed by the user id, released by the
      server at transaction end (works across workers and hosts)
    - Other dialects (SQLite in tests/dev): in-process asyncio.Lock per user;
      single-process only
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager, nullcontext
from typing import AsyncGenerator
from uuid import UUID

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy import text

from parallel_calendar.core.errors import (
    IntegrityViolationError, StorageUnavailableError,
)

logger = logging.getLogger(__name__)

_ADVISORY_LOCK_SQL = text("SELECT pg_advisory_xact_lock(:key)")


def advisory_key(user_id: UUID) -> int:
    """Fold a UUID into the signed 64-bit key space of pg advisory locks."""
    folded = (user_id.int >> 64) ^ (user_id.int & 0xFFFF_FFFF_FFFF_FFFF)
    if folded >= 1 << 63:
        folded -= 1 << 64
    return folded


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, locking and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self._bind(create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        ))

    @classmethod
    def from_engine(
        cls, engine: AsyncEngine, advisory_locks: bool | None = None,
    ) -> "DatabaseSessionManager":
        """Wrap an existing engine (test fixtures, scripts).

        advisory_locks overrides the dialect default (on for PostgreSQL only).
        """
        manager = cls.__new__(cls)
        manager._bind(engine, advisory_locks)
        return manager

    def _bind(
        self, engine: AsyncEngine, advisory_locks: bool | None = None,
    ) -> None:
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if advisory_locks is None:
            advisory_locks = engine.dialect.name == "postgresql"
        self._advisory_locks = advisory_locks
        self._local_locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def session(
        self, operation: str = "query",
    ) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}", extra={"operation": operation})
            raise IntegrityViolationError(operation)
        except OperationalError as e:
            await session.rollback()
            logger.error(f"DB operational error: {e}", extra={"operation": operation})
            raise StorageUnavailableError("Connection or operational error", operation)
        except DBAPIError as e:
            await session.rollback()
            logger.error(f"DB driver error: {e}", extra={"operation": operation})
            raise StorageUnavailableError("Database driver error", operation)
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}", extra={"operation": operation})
            raise StorageUnavailableError("Database operation failed", operation)
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(
        self, operation: str = "write",
    ) -> AsyncGenerator[AsyncSession, None]:
        """Session with a transaction begun; commits on clean exit."""
        async with self.session(operation) as db:
            async with db.begin():
                yield db

    @asynccontextmanager
    async def user_transaction(
        self, user_id: UUID, operation: str = "write",
    ) -> AsyncGenerator[AsyncSession, None]:
        """Transaction serialized against every other user_transaction of user_id."""
        local = nullcontext() if self._advisory_locks else self._local_lock(user_id)
        async with local:
            async with self.transaction(operation) as db:
                if self._advisory_locks:
                    await db.execute(_ADVISORY_LOCK_SQL, {"key": advisory_key(user_id)})
                yield db

    def _local_lock(self, user_id: UUID) -> asyncio.Lock:
        lock = self._local_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._local_locks[user_id] = lock
        return lock

    async def health_check(self) -> bool:
        """Check database connectivity (for the readiness check)."""
        try:
            async with self.session("health_check") as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
