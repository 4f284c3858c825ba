"""Base repository with common CRUD operations.

Model-specific repositories inherit from ``BaseRepository`` and add their own
queries. Repositories flush but never commit: the calling service owns the
transaction, usually through ``fxledger.db.session.transactional``.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fxledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic get/create/delete for any SQLAlchemy model.

    Type Parameters:
        ModelType: The SQLAlchemy model class

    Example:
        >>> class CurrencyRepository(BaseRepository[Currency]):
        ...     pass
        >>>
        >>> repo = CurrencyRepository(Currency, db)
        >>> currency = await repo.get(currency_id)
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        """Initialize repository.

        Args:
            model: The SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def get(self, id: Any) -> ModelType | None:
        """Get a single record by primary key.

        Args:
            id: Primary key value

        Returns:
            Model instance if found, None otherwise
        """
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.unique().scalar_one_or_none()

    async def create(self, *, obj_in: BaseModel | dict[str, Any]) -> ModelType:
        """Create a new record from a Pydantic model or a dictionary.

        Args:
            obj_in: Pydantic model or dictionary of field names and values

        Returns:
            Created model instance (flushed, not committed)

        Example:
            >>> currency = await repo.create(
            ...     obj_in={"code": "BTC", "name": "Bitcoin", "symbol": "₿", "owner_id": 1}
            ... )
        """
        if isinstance(obj_in, BaseModel):
            create_data = obj_in.model_dump(exclude_unset=True)
        else:
            create_data = obj_in

        db_obj = self.model(**create_data)
        self.db.add(db_obj)
        await self.db.flush()
        await self.db.refresh(db_obj)
        return db_obj

    async def delete(self, *, id: Any) -> ModelType:
        """Delete a record by primary key.

        Raises:
            ValueError: If record not found

        Note:
            Caller must commit the transaction.
        """
        db_obj = await self.get(id)
        if not db_obj:
            raise ValueError(f"{self.model.__name__} with id {id} not found")

        await self.db.delete(db_obj)
        await self.db.flush()
        return db_obj
