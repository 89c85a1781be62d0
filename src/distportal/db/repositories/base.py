"""Base repository with common CRUD operations.

Provides a generic repository pattern for SQLAlchemy models with async
support. Writes flush by default; the request-scoped session commits once
the handler completes.

Usage:
    from distportal.db.repositories.base import BaseRepository

    class DeviceRepository(BaseRepository[Device, UUID]):
        not_found_error = DeviceNotFoundError

    repo = DeviceRepository(db_session)
    device = await repo.get_or_raise(device_id)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import ColumnElement, func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.core.exceptions import ResourceNotFoundError
from distportal.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Generic repository for SQLAlchemy models.

    Type Parameters:
        ModelType: The SQLAlchemy model class
        PKType: The type of the primary key (UUID, int, or str)

    Attributes:
        model: The model class
        not_found_error: Exception raised by get_or_raise
        db: The database session
    """

    model: type[ModelType]
    not_found_error: type[ResourceNotFoundError] = ResourceNotFoundError

    def __init__(self, db: AsyncSession):
        self.db = db

    def __init_subclass__(cls, **kwargs):
        """Extract model type from generic parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args and len(args) >= 1:
                first_arg = args[0]
                if isinstance(first_arg, type) and issubclass(first_arg, Base):
                    cls.model = first_arg
                    break

    async def get(self, pk: PKType) -> ModelType | None:
        """Get a single record by primary key."""
        return await self.db.get(self.model, pk)

    async def get_or_raise(self, pk: PKType) -> ModelType:
        """Get a single record by primary key or raise.

        Raises:
            ResourceNotFoundError: The repository's ``not_found_error`` subclass
        """
        result = await self.get(pk)
        if result is None:
            if self.not_found_error is ResourceNotFoundError:
                raise ResourceNotFoundError(pk, resource=self.model.__tablename__)
            raise self.not_found_error(pk)
        return result

    async def get_many(self, pks: Sequence[PKType]) -> list[ModelType]:
        """Get multiple records by primary keys.

        Returns:
            List of found models (may be fewer than requested if some not found)
        """
        if not pks:
            return []

        pk_col = self._get_pk_column()
        stmt = select(self.model).where(pk_col.in_(pks))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list(
        self,
        *filters: ColumnElement[bool],
        limit: int = 100,
        offset: int = 0,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[ModelType]:
        """List records matching optional filter expressions.

        Args:
            filters: SQLAlchemy boolean expressions combined with AND
            limit: Maximum records to return
            offset: Number of records to skip
            order_by: Column name to order by (default: primary key)
            descending: Sort in descending order

        Returns:
            List of model instances
        """
        stmt = select(self.model).where(*filters)

        if order_by:
            col = getattr(self.model, order_by, None)
            if col is not None:
                stmt = stmt.order_by(col.desc() if descending else col)
        else:
            pk_col = self._get_pk_column()
            stmt = stmt.order_by(pk_col.desc() if descending else pk_col)

        stmt = stmt.limit(limit).offset(offset)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *filters: ColumnElement[bool]) -> int:
        """Count records matching optional filter expressions."""
        pk_col = self._get_pk_column()
        stmt = select(func.count(pk_col)).where(*filters)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_by(self, column: str, *filters: ColumnElement[bool]) -> dict[Any, int]:
        """Count records grouped by the values of one column."""
        col = getattr(self.model, column)
        stmt = select(col, func.count()).where(*filters).group_by(col)
        result = await self.db.execute(stmt)
        return {value: count for value, count in result.all()}

    async def create(self, obj: ModelType, *, commit: bool = False) -> ModelType:
        """Add a new record and flush (or commit) it."""
        self.db.add(obj)
        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()
        return obj

    async def update(
        self, obj: ModelType, updates: dict[str, Any], *, commit: bool = False
    ) -> ModelType:
        """Apply field updates to a record.

        Unknown keys are ignored.
        """
        for field, value in updates.items():
            if hasattr(obj, field):
                setattr(obj, field, value)

        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()

        return obj

    async def delete(self, obj: ModelType, *, commit: bool = False) -> None:
        """Delete a record."""
        await self.db.delete(obj)
        if commit:
            await self.db.commit()
        else:
            await self.db.flush()

    async def insert_ignoring_duplicates(
        self, rows: list[dict[str, Any]], conflict_columns: list[str]
    ) -> None:
        """Bulk insert rows, skipping any whose unique key already exists.

        Concurrent callers inserting the same key do not conflict on
        PostgreSQL and SQLite. Other backends filter against a prior read.
        """
        if not rows:
            return

        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(self.model).on_conflict_do_nothing(
                index_elements=conflict_columns
            )
        elif dialect == "sqlite":
            stmt = sqlite.insert(self.model).on_conflict_do_nothing(
                index_elements=conflict_columns
            )
        else:
            columns = [getattr(self.model, name) for name in conflict_columns]
            lead = {row[conflict_columns[0]] for row in rows}
            result = await self.db.execute(select(*columns).where(columns[0].in_(lead)))
            existing = {tuple(key) for key in result.all()}
            rows = [
                row
                for row in rows
                if tuple(row[name] for name in conflict_columns) not in existing
            ]
            stmt = insert(self.model)

        if rows:
            await self.db.execute(stmt, rows)

    async def exists(self, pk: PKType) -> bool:
        """Check if a record exists."""
        return await self.count(self._get_pk_column() == pk) > 0

    def _get_pk_column(self):
        """Get the primary key column for this model.

        Raises:
            ValueError: If no primary key found
        """
        mapper = self.model.__mapper__
        pk_cols = mapper.primary_key
        if not pk_cols:
            raise ValueError(f"No primary key found for {self.model.__name__}")
        return pk_cols[0]
