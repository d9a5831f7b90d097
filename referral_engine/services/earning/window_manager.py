"""
Earning window manager.

A member may claim the daily task earning while
now <= earnings_continue_until. The deadline starts at
membership_end_date and moves out to start + extended_earning_days
when the member sponsors a signup of the same or a higher tier.
The deadline never moves backward.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import tier_rank
from referral_engine.models.enums import MembershipStatus
from referral_engine.models.member import Member
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService
from referral_engine.services.notifications import (
    NotificationEvent,
    NotificationKind,
)
from referral_engine.services.plans.plan_catalog import PlanCatalog
from referral_engine.utils.datetime_utils import (
    add_days,
    business_date,
    ensure_aware,
    remaining_days,
    utc_now,
)
from referral_engine.utils.exceptions import NotFoundError


def qualifies_for_extension(
    sponsor_tier: str | None, referred_tier: str | None
) -> bool:
    """
    Check tier gating for window extension.

    Args:
        sponsor_tier: Sponsor's plan name
        referred_tier: Plan bought by the referred member

    Returns:
        True if the referred tier is at least the sponsor's tier.
        Unknown tiers never qualify.
    """
    sponsor_rank = tier_rank(sponsor_tier)
    referred_rank = tier_rank(referred_tier)
    if sponsor_rank is None or referred_rank is None:
        return False
    return referred_rank >= sponsor_rank


@dataclass(frozen=True)
class ExtensionOutcome:
    changed: bool
    earnings_continue_until: datetime | None


@dataclass(frozen=True)
class EarningStatus:
    """Snapshot of a member's daily earning state."""

    can_earn_today: bool
    completed_today: bool
    daily_amount: Decimal
    task_earnings: Decimal
    referral_earnings: Decimal
    total_earnings: Decimal
    remaining_days: int
    earnings_continue_until: datetime | None
    is_extended_period: bool
    plan_name: str | None
    membership_status: str


class EarningWindowManager(BaseService):
    """Evaluate and extend member earning windows."""

    def __init__(
        self,
        session: AsyncSession,
        plan_catalog: PlanCatalog | None = None,
    ) -> None:
        super().__init__(session)
        self.members = MemberRepository(session)
        self.plans = plan_catalog or PlanCatalog(session)

    async def apply_referral_extension(
        self, sponsor: Member, referred_plan_name: str
    ) -> ExtensionOutcome:
        """
        Extend the sponsor's window after a qualifying referral.

        Runs inside the caller's transaction and does not commit.

        Args:
            sponsor: Level-1 sponsor of the new member
            referred_plan_name: Plan bought by the new member

        Returns:
            Whether the deadline moved, and the deadline now in effect
        """
        current = sponsor.earnings_continue_until

        if not qualifies_for_extension(
            sponsor.membership_plan, referred_plan_name
        ):
            return ExtensionOutcome(False, current)

        # Same eligibility rule as commission payout
        if (
            not sponsor.is_commission_eligible
            or sponsor.membership_start_date is None
        ):
            return ExtensionOutcome(False, current)

        plan = await self.plans.find_plan(sponsor.membership_plan)
        if plan is None:
            self.logger.warning(
                "Sponsor plan not found, window not extended",
                extra={
                    "sponsor_id": sponsor.id,
                    "plan": sponsor.membership_plan,
                },
            )
            return ExtensionOutcome(False, current)

        candidate = add_days(
            ensure_aware(sponsor.membership_start_date),
            plan.extended_earning_days,
        )
        updated = await self.members.extend_earning_window(sponsor.id, candidate)
        if not updated:
            return ExtensionOutcome(False, current)

        self.logger.info(
            "Earning window extended",
            extra={
                "sponsor_id": sponsor.id,
                "previous_until": current.isoformat() if current else None,
                "until": candidate.isoformat(),
            },
        )
        return ExtensionOutcome(True, candidate)

    @staticmethod
    def extension_event(
        sponsor_id: int, outcome: ExtensionOutcome
    ) -> NotificationEvent:
        until = outcome.earnings_continue_until
        return NotificationEvent(
            kind=NotificationKind.WINDOW_EXTENDED,
            member_id=sponsor_id,
            payload={"earnings_continue_until": until.isoformat() if until else None},
        )

    async def can_earn_today(
        self, member_id: int, now: datetime | None = None
    ) -> bool:
        """
        Check whether a daily credit would be accepted right now.

        Args:
            member_id: Member ID
            now: Current moment (defaults to utc_now)

        Returns:
            True if ACTIVE, inside the window and not yet credited today
        """
        member = await self._get_member(member_id)
        return self._can_earn(member, ensure_aware(now or utc_now()))

    async def earning_status(
        self, member_id: int, now: datetime | None = None
    ) -> EarningStatus:
        """
        Describe a member's daily earning state.

        Args:
            member_id: Member ID
            now: Current moment (defaults to utc_now)

        Returns:
            EarningStatus
        """
        now = ensure_aware(now or utc_now())
        member = await self._get_member(member_id)

        plan = None
        if member.membership_status == MembershipStatus.ACTIVE:
            plan = await self.plans.find_plan(member.membership_plan)

        end_date = member.membership_end_date
        return EarningStatus(
            can_earn_today=self._can_earn(member, now),
            completed_today=member.last_task_completion_date
            == business_date(now),
            daily_amount=plan.daily_task_earning if plan else Decimal("0"),
            task_earnings=member.task_earnings,
            referral_earnings=member.referral_earnings,
            total_earnings=member.total_earnings,
            remaining_days=remaining_days(member.earnings_continue_until, now),
            earnings_continue_until=member.earnings_continue_until,
            is_extended_period=end_date is not None
            and now > ensure_aware(end_date),
            plan_name=member.membership_plan,
            membership_status=member.membership_status,
        )

    async def _get_member(self, member_id: int) -> Member:
        member = await self.members.get_by_id(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    @staticmethod
    def _can_earn(member: Member, now: datetime) -> bool:
        until = member.earnings_continue_until
        return (
            member.membership_status == MembershipStatus.ACTIVE
            and until is not None
            and now <= ensure_aware(until)
            and member.last_task_completion_date != business_date(now)
        )
