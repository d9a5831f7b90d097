"""
Membership plan repository.

Data access layer for MembershipPlan model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.plan import MembershipPlan
from referral_engine.repositories.base import BaseRepository


class MembershipPlanRepository(BaseRepository[MembershipPlan]):
    """Membership plan repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize plan repository."""
        super().__init__(MembershipPlan, session)

    async def get_by_name(self, name: str) -> MembershipPlan | None:
        """
        Get plan by its upper-case name.

        Commission rows are loaded eagerly with the plan.

        Args:
            name: Plan name

        Returns:
            Plan or None
        """
        return await self.get_by(name=name.upper())

    async def get_active_plans(self) -> list[MembershipPlan]:
        """
        Get active plans ordered by price.

        Returns:
            List of active plans
        """
        stmt = (
            select(MembershipPlan)
            .where(MembershipPlan.is_active.is_(True))
            .order_by(MembershipPlan.price, MembershipPlan.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
