"""
Base Repository Pattern

Purpose
-------
Provides a type-safe, generic repository abstraction for database operations
following SQLAlchemy 2.0 async patterns. Repositories encapsulate data access
and give the catalog services one consistent vocabulary for the durable
store contract: find-unique, find-many (ordered, skip/take), count,
aggregate, bulk update, create and delete.

Design Notes
------------
This base repository provides:
- Type-safe lookups with optional pessimistic locking
- Ordered, paginated queries (``order_by`` / ``offset`` / ``limit``)
- Aggregates (``count``, ``exists``, ``max_value``)
- Bulk ``update_where`` executed as one UPDATE statement
- Full structured logging at DEBUG

What this class does NOT do:
- Manage transactions (``DatabaseService.get_transaction`` does)
- Contain business logic
- Touch the cache

Usage
-----
    class QuestionRepository(BaseRepository[Question]):
        async def find_by_slug(self, session, slug):
            return await self.find_one_where(session, Question.qn_slug == slug)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic base repository for type-safe database operations.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    async def get(
        self,
        session: AsyncSession,
        id_value: Any,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
    ) -> Optional[T]:
        """
        Get a single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value
            eager_load: Optional list of relationships to eagerly load
            for_update: If True, use SELECT FOR UPDATE

        Returns:
            Model instance or None if not found
        """
        return await self.find_one_where(
            session,
            self.model_class.id == id_value,  # type: ignore[attr-defined]
            eager_load=eager_load,
            for_update=for_update,
        )

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
    ) -> Optional[T]:
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update()
        for relationship in eager_load or ():
            stmt = stmt.options(selectinload(relationship))

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self.model_name}",
            extra={
                "model": self.model_name,
                "found": instance is not None,
                "locked": for_update,
            },
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        order_by: Optional[Sequence[Any]] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        """
        Find multiple records matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            eager_load: Optional list of relationships to eagerly load
            order_by: Columns/expressions to order by
            offset: Rows to skip
            limit: Optional maximum number of results

        Returns:
            List of model instances
        """
        stmt = select(self.model_class).where(*conditions)
        for relationship in eager_load or ():
            stmt = stmt.options(selectinload(relationship))
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_name}",
            extra={
                "model": self.model_name,
                "found_count": len(instances),
                "offset": offset,
                "limit": limit,
            },
        )
        return instances

    async def count(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        count = result.scalar_one()

        self.log.debug(
            f"Repository.count: {self.model_name}",
            extra={"model": self.model_name, "count": count},
        )
        return count

    async def exists(
        self, session: AsyncSession, *conditions: ColumnElement[bool]
    ) -> bool:
        return await self.count(session, *conditions) > 0

    async def max_value(
        self,
        session: AsyncSession,
        column: InstrumentedAttribute,
        *conditions: ColumnElement[bool],
    ) -> Optional[Any]:
        """Return ``max(column)`` over matching rows, or None when none match."""
        stmt = select(func.max(column)).where(*conditions)
        result = await session.execute(stmt)
        value = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.max_value: {self.model_name}",
            extra={"model": self.model_name, "column": column.key, "value": value},
        )
        return value

    async def update_where(
        self,
        session: AsyncSession,
        values: Dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> int:
        """
        Apply ``values`` to every matching row in a single UPDATE.

        Values may be SQL expressions (``Model.col + 1``) so the change is
        computed by the database, not read-modify-written by the caller.

        Returns:
            Number of rows matched
        """
        stmt = (
            update(self.model_class)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        rowcount = result.rowcount or 0

        self.log.debug(
            f"Repository.update_where: {self.model_name}",
            extra={
                "model": self.model_name,
                "columns": sorted(values),
                "rowcount": rowcount,
            },
        )
        return rowcount

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self.log.debug(
            f"Repository.add: {self.model_name}",
            extra={"model": self.model_name},
        )
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        self.log.debug(
            f"Repository.delete: {self.model_name}",
            extra={"model": self.model_name, "id": getattr(instance, "id", None)},
        )

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
