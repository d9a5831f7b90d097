"""
Commission event repository.

Data access layer for CommissionEvent model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.commission_event import CommissionEvent
from referral_engine.repositories.base import BaseRepository


class CommissionEventRepository(BaseRepository[CommissionEvent]):
    """Commission event repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission event repository."""
        super().__init__(CommissionEvent, session)

    async def settlement_exists(
        self, triggering_member_id: int, plan_name: str
    ) -> bool:
        """
        Check whether commissions were already paid for a signup.

        Args:
            triggering_member_id: New member ID
            plan_name: Purchased plan

        Returns:
            True if any level was recorded
        """
        return await self.exists(
            triggering_member_id=triggering_member_id, plan_name=plan_name
        )

    async def get_for_settlement(
        self, triggering_member_id: int, plan_name: str
    ) -> list[CommissionEvent]:
        """Get recorded levels of one settlement ordered by level."""
        stmt = (
            select(CommissionEvent)
            .where(
                CommissionEvent.triggering_member_id == triggering_member_id,
                CommissionEvent.plan_name == plan_name,
            )
            .order_by(CommissionEvent.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
