"""Base repository with common CRUD and upsert operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import BaseModel, utc_now

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession, model_class: type[ModelType]):
        """Initialize repository with database session and model class."""
        self.session = session
        self.model_class = model_class

    async def create(self, **kwargs: Any) -> ModelType:
        """Create a new entity."""
        entity = self.model_class(**kwargs)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity: ModelType, **kwargs: Any) -> ModelType:
        """Update an existing entity."""
        for key, value in kwargs.items():
            if hasattr(entity, key):
                setattr(entity, key, value)

        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def upsert(
        self,
        conflict_columns: list[str],
        update_columns: list[str] | None = None,
        **values: Any,
    ) -> ModelType:
        """Insert a row or update it when its natural key already exists.

        Args:
            conflict_columns: Columns of the unique constraint to match on
            update_columns: Columns overwritten on conflict; defaults to every
                given value outside the natural key
            **values: Column values

        Returns:
            The inserted or updated entity
        """
        stmt = sqlite_insert(self.model_class).values(**values)
        if update_columns is None:
            update_columns = [k for k in values if k not in conflict_columns]
        set_ = {column: stmt.excluded[column] for column in update_columns}
        if "updated_at" in self.model_class.__table__.c and "updated_at" not in set_:
            set_["updated_at"] = utc_now()

        stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
        stmt = stmt.returning(self.model_class)
        result = await self.session.scalars(
            stmt, execution_options={"populate_existing": True}
        )
        return result.one()

    async def insert_if_absent(
        self, conflict_columns: list[str], **values: Any
    ) -> bool:
        """Insert a row unless its natural key already exists.

        Returns:
            True if a new row was inserted
        """
        stmt = (
            sqlite_insert(self.model_class)
            .values(**values)
            .on_conflict_do_nothing(index_elements=conflict_columns)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def _execute_single_query(
        self, query: Select[tuple[ModelType]]
    ) -> ModelType | None:
        """Execute query and return single result."""
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
