"""
Generic async repository shared by the listing and agent repositories.
"""

from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from homefinder.database import Base
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
import uuid
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    CRUD over one mapped class.

    Every write commits on its own; any failure rolls the session back and
    the original exception propagates to the service layer.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    @property
    def _name(self) -> str:
        return self.model.__name__

    @asynccontextmanager
    async def _writing(self, action: str):
        try:
            yield
        except Exception:
            await self.db.rollback()
            logger.exception("%s %s rolled back", self._name, action)
            raise

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Insert a row built from ``obj_in`` and return it refreshed.

        Unique violations surface as ``IntegrityError``.
        """
        async with self._writing("create"):
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
        logger.debug("%s %s inserted", self._name, db_obj.id)
        return db_obj

    async def get_by_id(self, id: uuid.UUID) -> Optional[ModelType]:
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        """Lookup on a unique column such as ``slug`` or ``email``."""
        column = getattr(self.model, field, None)
        if column is None:
            raise ValueError(f"{self._name} has no column {field!r}")
        result = await self.db.execute(select(self.model).where(column == value))
        return result.scalar_one_or_none()

    async def get_multi(
        self,
        skip: int = 0,
        limit: int = 100,
        order_by: Optional[str] = None,
    ) -> List[ModelType]:
        """
        A window of rows. ``order_by`` names a column, ``-`` prefix for
        descending; unknown names are ignored. Defaults to newest first.
        """
        query = select(self.model)
        if order_by is None:
            query = query.order_by(self.model.created_at.desc())
        else:
            column = getattr(self.model, order_by.lstrip("-"), None)
            if column is not None:
                query = query.order_by(column.desc() if order_by.startswith("-") else column.asc())

        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def update(self, id: uuid.UUID, values: Dict[str, Any]) -> Optional[ModelType]:
        """
        Write ``values`` verbatim; a ``None`` clears the column.

        Returns the refreshed row, or None when the id does not exist.
        """
        if not values:
            return await self.get_by_id(id)

        stmt = (
            update(self.model)
            .where(self.model.id == id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        async with self._writing("update"):
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                return None
            await self.db.commit()

        row = await self.get_by_id(id)
        if row is not None:
            await self.db.refresh(row)
        logger.debug("%s %s updated (%s)", self._name, id, ", ".join(sorted(values)))
        return row

    async def delete(self, id: uuid.UUID) -> bool:
        """True when a row was removed."""
        async with self._writing("delete"):
            result = await self.db.execute(delete(self.model).where(self.model.id == id))
            await self.db.commit()
        return result.rowcount > 0

    async def count(self) -> int:
        return (await self.db.execute(select(func.count(self.model.id)))).scalar()

    async def exists(self, id: uuid.UUID) -> bool:
        query = select(func.count(self.model.id)).where(self.model.id == id)
        return (await self.db.execute(query)).scalar() > 0
