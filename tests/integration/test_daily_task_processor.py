"""Integration tests for DailyTaskEarningProcessor."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.orm.attributes import set_committed_value

from referral_engine.models import Member, MembershipStatus
from referral_engine.models.enums import TransactionType
from referral_engine.repositories import (
    LedgerTransactionRepository,
    TaskEarningEventRepository,
)
from referral_engine.services.earning import DailyTaskEarningProcessor
from referral_engine.services.notifications import NotificationKind
from referral_engine.utils.exceptions import (
    AlreadyCreditedToday,
    EarningWindowExpired,
    InvalidPlan,
    MembershipInactive,
    NotFoundError,
)


class TestDailyCredit:
    """Once-per-day credit inside the earning window."""

    @pytest.mark.asyncio
    async def test_first_credit(
        self, session, plans, make_member, now, dispatcher, sink
    ):
        member = await make_member()
        processor = DailyTaskEarningProcessor(session, dispatcher=dispatcher)

        result = await processor.credit_daily_earning(member.id, now=now)

        assert result.amount == Decimal("50")
        assert result.task_earnings == Decimal("50")
        assert result.total_earnings == Decimal("50")
        assert result.balance == Decimal("50")
        assert result.daily_tasks_completed == 1
        assert result.remaining_days == 29
        assert result.is_extended_period is False
        assert result.can_earn_tomorrow is True
        assert sink.kinds() == [NotificationKind.DAILY_EARNING_CREDITED]

    @pytest.mark.asyncio
    async def test_second_credit_same_day_rejected(
        self, session, plans, make_member, now
    ):
        member = await make_member()
        member_id = member.id
        processor = DailyTaskEarningProcessor(session)
        await processor.credit_daily_earning(member_id, now=now)

        with pytest.raises(AlreadyCreditedToday):
            await processor.credit_daily_earning(
                member_id, now=now + timedelta(hours=3)
            )

        stored = await session.get(Member, member_id)
        await session.refresh(stored)
        assert stored.balance == Decimal("50")
        assert stored.daily_tasks_completed == 1

    @pytest.mark.asyncio
    async def test_next_day_credit(self, session, plans, make_member, now):
        member = await make_member()
        processor = DailyTaskEarningProcessor(session)
        await processor.credit_daily_earning(member.id, now=now)

        result = await processor.credit_daily_earning(
            member.id, now=now + timedelta(days=1)
        )

        assert result.daily_tasks_completed == 2
        assert result.balance == Decimal("100")
        assert result.remaining_days == 28
        events = TaskEarningEventRepository(session)
        assert await events.count_for_member(member.id) == 2

    @pytest.mark.asyncio
    async def test_records_event_and_ledger(self, session, plans, make_member, now):
        member = await make_member(plan="STANDARD")

        await DailyTaskEarningProcessor(session).credit_daily_earning(
            member.id, now=now
        )

        event = await TaskEarningEventRepository(session).get_for_day(
            member.id, now.date()
        )
        assert event is not None
        assert event.amount == Decimal("150")
        assert event.plan_name == "STANDARD"
        rows = await LedgerTransactionRepository(session).get_by_member(
            member.id, kind=TransactionType.TASK_EARNING
        )
        assert [r.reference for r in rows] == [f"{member.id}:{now.date()}"]

    @pytest.mark.asyncio
    async def test_last_window_day(self, session, plans, make_member, now):
        member = await make_member(
            start=now - timedelta(days=30), base_days=30
        )

        result = await DailyTaskEarningProcessor(session).credit_daily_earning(
            member.id, now=now
        )

        assert result.remaining_days == 0
        assert result.can_earn_tomorrow is False

    @pytest.mark.asyncio
    async def test_extended_period(self, session, plans, make_member, now):
        start = now - timedelta(days=40)
        member = await make_member(
            start=start,
            earnings_continue_until=start + timedelta(days=60),
        )

        result = await DailyTaskEarningProcessor(session).credit_daily_earning(
            member.id, now=now
        )

        assert result.is_extended_period is True
        event = await TaskEarningEventRepository(session).get_for_day(
            member.id, now.date()
        )
        assert event.is_extended_period is True


def _load_with_stale_date(processor):
    """Make the locked read miss today's credit, as a racing reader would."""
    load = processor.members.get_by_id

    async def get_by_id(member_id, for_update=False):
        member = await load(member_id, for_update=for_update)
        set_committed_value(member, "last_task_completion_date", None)
        return member

    processor.members.get_by_id = get_by_id


class TestDailyCreditStoreGuards:
    """Once-per-day holds in the store when the in-memory check misses."""

    @pytest.mark.asyncio
    async def test_conditional_update_rejects_same_day(
        self, session, plans, make_member, now
    ):
        member = await make_member()
        member_id = member.id
        processor = DailyTaskEarningProcessor(session)
        await processor.credit_daily_earning(member_id, now=now)
        _load_with_stale_date(processor)

        with pytest.raises(AlreadyCreditedToday):
            await processor.credit_daily_earning(
                member_id, now=now + timedelta(hours=1)
            )

        stored = await session.get(Member, member_id)
        await session.refresh(stored)
        assert stored.balance == Decimal("50")
        assert stored.daily_tasks_completed == 1
        events = TaskEarningEventRepository(session)
        assert await events.count_for_member(member_id) == 1

    @pytest.mark.asyncio
    async def test_unique_day_key_rejects_same_day(
        self, session, plans, make_member, now
    ):
        member = await make_member()
        member_id = member.id
        processor = DailyTaskEarningProcessor(session)
        await processor.credit_daily_earning(member_id, now=now)
        _load_with_stale_date(processor)
        # Counter update reports success, leaving only the event key
        processor.members.credit_task_earning = AsyncMock(return_value=1)

        with pytest.raises(AlreadyCreditedToday):
            await processor.credit_daily_earning(
                member_id, now=now + timedelta(hours=1)
            )

        stored = await session.get(Member, member_id)
        await session.refresh(stored)
        assert stored.balance == Decimal("50")
        events = TaskEarningEventRepository(session)
        assert await events.count_for_member(member_id) == 1


class TestDailyCreditRejections:
    """Rejected credits leave counters untouched."""

    @pytest.mark.asyncio
    async def test_window_elapsed(self, session, plans, make_member, now):
        member = await make_member(start=now - timedelta(days=31))
        member_id = member.id

        with pytest.raises(EarningWindowExpired):
            await DailyTaskEarningProcessor(session).credit_daily_earning(
                member_id, now=now
            )

        stored = await session.get(Member, member_id)
        await session.refresh(stored)
        assert stored.balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_expired_membership(self, session, plans, make_member, now):
        member = await make_member(status=MembershipStatus.EXPIRED)

        with pytest.raises(MembershipInactive):
            await DailyTaskEarningProcessor(session).credit_daily_earning(
                member.id, now=now
            )

    @pytest.mark.asyncio
    async def test_no_membership(self, session, plans, make_member, now):
        member = await make_member(status=MembershipStatus.NONE)

        with pytest.raises(MembershipInactive):
            await DailyTaskEarningProcessor(session).credit_daily_earning(
                member.id, now=now
            )

    @pytest.mark.asyncio
    async def test_unknown_plan(self, session, plans, make_member, now):
        member = await make_member(plan="GOLD")

        with pytest.raises(InvalidPlan):
            await DailyTaskEarningProcessor(session).credit_daily_earning(
                member.id, now=now
            )

    @pytest.mark.asyncio
    async def test_unknown_member(self, session, plans, now):
        with pytest.raises(NotFoundError):
            await DailyTaskEarningProcessor(session).credit_daily_earning(
                9999, now=now
            )
