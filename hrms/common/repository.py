"""Generic async repository over a SQLAlchemy model.

Per-entity subclasses add named query methods; criteria are always plain
SQLAlchemy column expressions, e.g.::

    repo = AttendanceRepository(db)
    await repo.find(AttendanceRecord.employee_id == emp_id)
"""

from __future__ import annotations

import uuid
from typing import Any, Generic, Optional, Sequence, TypeVar

from sqlalchemy import ColumnElement, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.database import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """Async CRUD bound to one session and one model class."""

    model: type[ModelT]

    def __init__(self, db: AsyncSession, model: Optional[type[ModelT]] = None) -> None:
        self.db = db
        if model is not None:
            self.model = model

    # ── Reads ───────────────────────────────────────────────────────

    async def get_by_id(self, entity_id: uuid.UUID) -> Optional[ModelT]:
        return await self.db.get(self.model, entity_id)

    async def get_all(self) -> Sequence[ModelT]:
        result = await self.db.execute(select(self.model))
        return result.scalars().all()

    async def find(
        self,
        *criteria: ColumnElement[bool],
        order_by: Any = None,
    ) -> Sequence[ModelT]:
        query = select(self.model).where(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        result = await self.db.execute(query)
        return result.scalars().all()

    async def first_or_default(
        self,
        *criteria: ColumnElement[bool],
    ) -> Optional[ModelT]:
        result = await self.db.execute(
            select(self.model).where(*criteria).limit(1)
        )
        return result.scalars().first()

    async def exists(self, *criteria: ColumnElement[bool]) -> bool:
        result = await self.db.execute(
            select(exists().where(*criteria).select_from(self.model))
        )
        return bool(result.scalar())

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(*criteria)
        )
        return result.scalar_one()

    # ── Writes (flush only; commit happens at the request boundary) ─

    async def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.flush()
