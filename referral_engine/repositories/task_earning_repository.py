"""
Task earning event repository.

Data access layer for TaskEarningEvent model.
"""

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.task_earning_event import TaskEarningEvent
from referral_engine.repositories.base import BaseRepository


class TaskEarningEventRepository(BaseRepository[TaskEarningEvent]):
    """Task earning event repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize task earning event repository."""
        super().__init__(TaskEarningEvent, session)

    async def get_for_day(
        self, member_id: int, earning_date: date
    ) -> TaskEarningEvent | None:
        """Get the credit recorded for a member on a calendar day."""
        return await self.get_by(member_id=member_id, earning_date=earning_date)

    async def count_for_member(self, member_id: int) -> int:
        """Count credited days for a member."""
        return await self.count(member_id=member_id)
