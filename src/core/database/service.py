"""
Database Service - Core Infrastructure Layer

Purpose
-------
Async database engine and session management for the Cortex catalog.
Provides atomic transactions and translation of driver errors into the
catalog's error taxonomy.

Responsibilities
----------------
- Own one AsyncEngine and its session factory per service instance
- Provide async context managers for read sessions and atomic transactions
- Enforce transaction discipline: commit on success, rollback on exception
- Translate constraint violations into domain errors at the boundary
- Create and drop the schema for tests and local development

Non-Responsibilities
--------------------
- Query construction (repositories and services)
- Cache coherence (services invalidate after their transaction commits)
- Schema migrations

Architecture Notes
------------------
**Transaction Model**:
- ``get_transaction()`` is the interface for all state mutations
- Never call ``session.commit()`` inside service code
- Cache invalidation runs after the ``get_transaction()`` block exits so a
  rolled-back write never evicts valid entries

**Error Translation**:
- unique-constraint ``IntegrityError`` -> ``ConflictError``
- foreign-key ``IntegrityError`` -> ``ValidationError``
- any other ``DBAPIError`` -> ``DatabaseError``

**Connection Pooling**:
- QueuePool with configured size/overflow for network databases
- StaticPool for in-memory SQLite so every session shares one database

Usage Example
-------------
>>> db = DatabaseService(Config.DATABASE_URL)
>>> await db.initialize()
>>> async with db.get_transaction() as session:
...     session.add(Provider(provider="Khan", provider_slug="khan"))
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.database.base import Base
from src.core.exceptions import DatabaseError
from src.core.logging.logger import get_logger
from src.modules.shared.exceptions import (
    ConflictError,
    CortexDomainException,
    ValidationError,
)

logger = get_logger(__name__)


_UNIQUE_MARKERS = ("unique", "duplicate key")
_FOREIGN_KEY_MARKERS = ("foreign key", "foreignkey")


def translate_database_error(error: DBAPIError, operation: str) -> Exception:
    """
    Map a driver error onto the catalog error taxonomy.

    Parameters
    ----------
    error:
        The SQLAlchemy-wrapped driver exception.
    operation:
        Short description of what was being done, for logs and details.

    Returns
    -------
    Exception
        ``ConflictError``, ``ValidationError`` or ``DatabaseError``.
    """
    detail = str(getattr(error, "orig", error)).lower()

    if isinstance(error, IntegrityError):
        if any(marker in detail for marker in _FOREIGN_KEY_MARKERS):
            return ValidationError("reference", "Referenced record does not exist")
        if any(marker in detail for marker in _UNIQUE_MARKERS):
            return ConflictError("record", "A record with this unique value already exists")

    return DatabaseError(operation, error)


class DatabaseService:
    """
    Async engine and session management for one database.

    Instances are created by the service container and injected into every
    repository-backed component; there is no process-wide engine.
    """

    _health_check_query: str = "SELECT 1"
    _slow_session_seconds: float = 5.0

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
    ) -> None:
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseService not initialized")
        return self._engine

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _engine_kwargs(self) -> Dict[str, Any]:
        if self.is_sqlite:
            return {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_pre_ping": True,
        }

    async def initialize(self) -> None:
        """Create the engine and session factory. Idempotent."""
        if self._engine is not None:
            logger.warning("DatabaseService already initialized")
            return

        self._engine = create_async_engine(
            self.database_url,
            echo=self.echo,
            **self._engine_kwargs(),
        )

        if self.is_sqlite:
            # SQLite leaves foreign keys unenforced unless asked per connection
            @event.listens_for(self._engine.sync_engine, "connect")
            def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info(
            "DatabaseService initialized",
            extra={"dialect": self._engine.dialect.name},
        )

    async def shutdown(self) -> None:
        """Dispose of the engine and every pooled connection."""
        if self._engine is None:
            return

        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("DatabaseService shutdown successfully")

    async def health_check(self) -> bool:
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text(self._health_check_query))
            return True
        except (DBAPIError, OSError) as e:
            logger.error(
                "Database health check failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return False

    async def create_tables(self) -> None:
        from src.database import models  # noqa: F401  registers mappers

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def drop_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database tables dropped")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _require_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseService not initialized")
        return self._session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session without automatic commit.

        Use for read-only queries. Driver errors are translated before they
        leave the block.
        """
        factory = self._require_factory()
        start_time = time.perf_counter()

        async with factory() as session:
            try:
                yield session
            except DBAPIError as e:
                await session.rollback()
                logger.error(
                    "Database error in read session",
                    exc_info=True,
                    extra={"error_type": type(e).__name__, "operation": "read"},
                )
                raise translate_database_error(e, "read") from e
            finally:
                self._log_if_slow(start_time, "read")

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session with automatic commit on success.

        Rolls back on any exception. Constraint violations raised while the
        block runs, or at commit, are translated into domain errors.
        """
        factory = self._require_factory()
        start_time = time.perf_counter()
        committed = False

        async with factory() as session:
            try:
                yield session
                await session.commit()
                committed = True
                logger.debug("Transaction committed successfully")

            except DBAPIError as e:
                await session.rollback()
                translated = translate_database_error(e, "transaction")
                log = logger.info if isinstance(translated, CortexDomainException) else logger.error
                log(
                    "Transaction rolled back",
                    exc_info=not isinstance(translated, CortexDomainException),
                    extra={
                        "error_type": type(e).__name__,
                        "translated_to": type(translated).__name__,
                        "operation": "transaction",
                    },
                )
                raise translated from e

            except BaseException:
                await session.rollback()
                raise

            finally:
                self._log_if_slow(start_time, "transaction", committed=committed)

    def _log_if_slow(self, start_time: float, operation: str, **extra: Any) -> None:
        duration = time.perf_counter() - start_time
        if duration > self._slow_session_seconds:
            logger.warning(
                f"Slow {operation} session: {duration:.2f}s",
                extra={"duration_seconds": duration, "operation": operation, **extra},
            )
