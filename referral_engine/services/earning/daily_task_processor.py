"""
Daily task-earning processor.

Credits a member's plan daily earning at most once per calendar day
in the business timezone, and only inside the earning window.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError as StoreIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.enums import MembershipStatus, TransactionType
from referral_engine.models.task_earning_event import TaskEarningEvent
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.repositories.transaction_repository import (
    LedgerTransactionRepository,
)
from referral_engine.services.base_service import BaseService, transaction
from referral_engine.services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    NotificationKind,
)
from referral_engine.services.plans.plan_catalog import PlanCatalog
from referral_engine.utils.datetime_utils import (
    business_date,
    ensure_aware,
    remaining_days,
    utc_now,
)
from referral_engine.utils.exceptions import (
    AlreadyCreditedToday,
    EarningWindowExpired,
    MembershipInactive,
    NotFoundError,
)


@dataclass(frozen=True)
class DailyEarningResult:
    amount: Decimal
    task_earnings: Decimal
    total_earnings: Decimal
    balance: Decimal
    daily_tasks_completed: int
    remaining_days: int
    is_extended_period: bool
    can_earn_tomorrow: bool


class DailyTaskEarningProcessor(BaseService):
    """Once-per-day task earning credits."""

    def __init__(
        self,
        session: AsyncSession,
        plan_catalog: PlanCatalog | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        super().__init__(session)
        self.members = MemberRepository(session)
        self.transactions = LedgerTransactionRepository(session)
        self.plans = plan_catalog or PlanCatalog(session)
        self.dispatcher = dispatcher or NotificationDispatcher()

    async def credit_daily_earning(
        self, member_id: int, now: datetime | None = None
    ) -> DailyEarningResult:
        """
        Credit today's task earning.

        Args:
            member_id: Member ID
            now: Current moment (defaults to utc_now)

        Returns:
            DailyEarningResult with the updated counters

        Raises:
            NotFoundError: Member does not exist
            MembershipInactive: Membership is not ACTIVE
            InvalidPlan: Member's plan is unknown or disabled
            EarningWindowExpired: now is past earnings_continue_until
            AlreadyCreditedToday: Credit for today already exists
        """
        now = ensure_aware(now or utc_now())
        result = await self._credit(member_id, now)

        await self.dispatcher.dispatch(
            [
                NotificationEvent(
                    kind=NotificationKind.DAILY_EARNING_CREDITED,
                    member_id=member_id,
                    payload={
                        "amount": str(result.amount),
                        "remaining_days": result.remaining_days,
                    },
                )
            ]
        )
        return result

    @transaction
    async def _credit(self, member_id: int, now: datetime) -> DailyEarningResult:
        member = await self.members.get_by_id(member_id, for_update=True)
        if member is None:
            raise NotFoundError("Member", member_id)

        if member.membership_status != MembershipStatus.ACTIVE:
            raise MembershipInactive(member_id, member.membership_status)

        plan = await self.plans.get_plan(member.membership_plan)

        until = member.earnings_continue_until
        if until is None or now > ensure_aware(until):
            raise EarningWindowExpired(member_id, until)

        today = business_date(now)
        if member.last_task_completion_date == today:
            raise AlreadyCreditedToday(member_id, today)

        amount = plan.daily_task_earning
        # Date guard is re-checked by the UPDATE itself
        updated = await self.members.credit_task_earning(member_id, amount, today)
        if not updated:
            raise AlreadyCreditedToday(member_id, today)

        end_date = member.membership_end_date
        is_extended_period = end_date is not None and now > ensure_aware(end_date)

        self.session.add(
            TaskEarningEvent(
                member_id=member_id,
                plan_name=plan.name,
                amount=amount,
                tasks_completed=1,
                earning_date=today,
                is_extended_period=is_extended_period,
            )
        )
        try:
            await self.session.flush()
        except StoreIntegrityError as e:
            raise AlreadyCreditedToday(member_id, today) from e

        await self.transactions.record(
            member_id=member_id,
            kind=TransactionType.TASK_EARNING,
            amount=amount,
            description=f"Daily task earning ({plan.display_name})",
            reference=f"{member_id}:{today.isoformat()}",
        )

        await self.refresh(member)
        days_left = remaining_days(member.earnings_continue_until, now)

        self.logger.info(
            "Daily earning credited",
            extra={
                "member_id": member_id,
                "amount": str(amount),
                "earning_date": today.isoformat(),
                "remaining_days": days_left,
                "extended_period": is_extended_period,
            },
        )

        return DailyEarningResult(
            amount=amount,
            task_earnings=member.task_earnings,
            total_earnings=member.total_earnings,
            balance=member.balance,
            daily_tasks_completed=member.daily_tasks_completed,
            remaining_days=days_left,
            is_extended_period=is_extended_period,
            can_earn_tomorrow=days_left > 0,
        )
