"""
Base repository.

Lookups shared by the ledger repositories. Anything that touches more
than one row at a time (tree walks, atomic balance updates) lives in the
concrete repository instead.
"""

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)

# Keeps IN (...) lists under driver parameter limits
DEFAULT_IN_BATCH = 500


class BaseRepository(Generic[ModelType]):
    """
    Repository bound to one model and one session.

    Subclasses pass their model to __init__:

        class PlanRepository(BaseRepository[MembershipPlan]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(MembershipPlan, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    async def get_by_id(
        self, id: int, for_update: bool = False
    ) -> ModelType | None:
        """
        Load a row by primary key.

        Args:
            id: Primary key
            for_update: Lock the row and overwrite any stale identity-map copy

        Returns:
            Entity or None
        """
        if not for_update:
            return await self.session.get(self.model, id)

        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(
        self, ids: Iterable[int], batch_size: int = DEFAULT_IN_BATCH
    ) -> dict[int, ModelType]:
        """Load rows by primary key, batch_size ids per query."""
        unique_ids = sorted(set(ids))
        found: dict[int, ModelType] = {}
        for start in range(0, len(unique_ids), batch_size):
            chunk = unique_ids[start:start + batch_size]
            result = await self.session.execute(
                select(self.model).where(self.model.id.in_(chunk))
            )
            found.update((row.id, row) for row in result.scalars().all())
        return found

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Single row matching unique column filters, or None."""
        result = await self.session.execute(
            select(self.model).filter_by(**filters)
        )
        return result.scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """Insert a row and flush so generated columns are populated."""
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model)
        if filters:
            stmt = stmt.filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def exists(self, **filters: Any) -> bool:
        return await self.count(**filters) > 0
