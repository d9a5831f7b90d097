"""Integration tests for MembershipLifecycle."""

from datetime import timedelta
from decimal import Decimal

import pytest

from referral_engine.models import Member, MembershipStatus
from referral_engine.models.enums import TransactionType
from referral_engine.repositories import LedgerTransactionRepository
from referral_engine.services.earning import EarningWindowManager
from referral_engine.services.membership import MembershipLifecycle
from referral_engine.services.notifications import NotificationKind
from referral_engine.utils.exceptions import (
    InvalidMembershipTransition,
    InvalidPlan,
)


class TestActivation:
    """NONE/EXPIRED -> ACTIVE."""

    @pytest.mark.asyncio
    async def test_first_activation(
        self, session, plans, make_member, now, dispatcher, sink
    ):
        member = await make_member(status=MembershipStatus.NONE)

        result = await MembershipLifecycle(
            session, dispatcher=dispatcher
        ).activate(member.id, "basic", now=now)

        assert result.kind == TransactionType.MEMBERSHIP_ACTIVATION
        assert result.plan_name == "BASIC"
        assert result.price_charged == Decimal("1000")
        assert result.renewal_count == 0
        assert result.earnings_continue_until == now + timedelta(days=30)

        await session.refresh(member)
        assert member.membership_status == MembershipStatus.ACTIVE
        assert member.membership_start_date == now
        assert member.membership_end_date == now + timedelta(days=30)
        assert member.available_voucher == Decimal("500")
        assert member.minimum_withdrawal == Decimal("2000")
        assert member.tasks_enabled is True
        assert member.last_renewal_date is None
        assert sink.kinds() == [NotificationKind.MEMBERSHIP_ACTIVATED]

        rows = await LedgerTransactionRepository(session).get_by_member(member.id)
        assert [(r.kind, r.amount) for r in rows] == [
            (TransactionType.MEMBERSHIP_ACTIVATION, Decimal("1000"))
        ]

    @pytest.mark.asyncio
    async def test_first_renewal_full_price(self, session, plans, make_member, now):
        member = await make_member(
            status=MembershipStatus.EXPIRED, start=now - timedelta(days=40)
        )

        result = await MembershipLifecycle(session).activate(
            member.id, "BASIC", now=now
        )

        assert result.kind == TransactionType.MEMBERSHIP_RENEWAL
        assert result.price_charged == Decimal("1000")
        assert result.renewal_count == 1
        await session.refresh(member)
        assert member.last_renewal_date == now

    @pytest.mark.asyncio
    async def test_second_renewal_discounted(
        self, session, plans, make_member, now
    ):
        member = await make_member(
            status=MembershipStatus.EXPIRED,
            start=now - timedelta(days=40),
            renewal_count=1,
            available_voucher=Decimal("500"),
            notified_for_current_window=True,
        )

        result = await MembershipLifecycle(session).activate(
            member.id, "BASIC", now=now
        )

        assert result.price_charged == Decimal("900")
        assert result.discount_rate == Decimal("0.10")
        assert result.renewal_count == 2
        await session.refresh(member)
        assert member.available_voucher == Decimal("1000")
        assert member.notified_for_current_window is False

    @pytest.mark.asyncio
    async def test_upgrade_resets_renewal_count(
        self, session, plans, make_member, now
    ):
        member = await make_member(
            status=MembershipStatus.EXPIRED,
            start=now - timedelta(days=40),
            renewal_count=2,
        )

        result = await MembershipLifecycle(session).activate(
            member.id, "STANDARD", now=now
        )

        assert result.kind == TransactionType.MEMBERSHIP_UPGRADE
        assert result.price_charged == Decimal("2400")
        assert result.renewal_count == 0
        await session.refresh(member)
        assert member.membership_plan == "STANDARD"

    @pytest.mark.asyncio
    async def test_downgrade_counts_as_renewal(
        self, session, plans, make_member, now
    ):
        member = await make_member(
            plan="PREMIUM",
            status=MembershipStatus.EXPIRED,
            start=now - timedelta(days=40),
        )

        result = await MembershipLifecycle(session).activate(
            member.id, "BASIC", now=now
        )

        assert result.kind == TransactionType.MEMBERSHIP_RENEWAL
        assert result.renewal_count == 1

    @pytest.mark.asyncio
    async def test_active_member_rejected(self, session, plans, make_member, now):
        member = await make_member()
        member_id = member.id

        with pytest.raises(InvalidMembershipTransition):
            await MembershipLifecycle(session).activate(
                member_id, "BASIC", now=now
            )

    @pytest.mark.asyncio
    async def test_unknown_plan(self, session, plans, make_member, now):
        member = await make_member(status=MembershipStatus.NONE)
        member_id = member.id

        with pytest.raises(InvalidPlan):
            await MembershipLifecycle(session).activate(member_id, "GOLD", now=now)

        stored = await session.get(Member, member_id)
        await session.refresh(stored)
        assert stored.membership_status == MembershipStatus.NONE


class TestRenewalOptions:
    """Pricing of every plan for the next purchase."""

    @pytest.mark.asyncio
    async def test_options(self, session, plans, make_member):
        member = await make_member(renewal_count=1)

        options = await MembershipLifecycle(session).renewal_options(member.id)

        by_name = {o.plan_name: o for o in options}
        assert [o.plan_name for o in options] == ["BASIC", "STANDARD", "PREMIUM"]
        assert by_name["BASIC"].is_current_plan is True
        assert by_name["BASIC"].renewal_price == Decimal("900")
        assert by_name["BASIC"].savings == Decimal("100")
        assert by_name["STANDARD"].is_upgrade is True
        assert by_name["STANDARD"].renewal_price == Decimal("2700")
        assert all(o.discount_percentage == 10 for o in options)
        assert not any(o.is_downgrade for o in options)


class TestExpirationSweep:
    """ACTIVE -> EXPIRED once the window has elapsed."""

    @pytest.mark.asyncio
    async def test_expires_elapsed_only(
        self, session, plans, make_member, now, dispatcher, sink
    ):
        elapsed = await make_member(earnings_continue_until=now - timedelta(hours=1))
        running = await make_member(earnings_continue_until=now + timedelta(days=5))

        result = await MembershipLifecycle(
            session, dispatcher=dispatcher
        ).sweep_expirations(now=now)

        assert result.expired == 1
        assert result.failed == 0
        await session.refresh(elapsed)
        await session.refresh(running)
        assert elapsed.membership_status == MembershipStatus.EXPIRED
        assert elapsed.tasks_enabled is False
        assert running.membership_status == MembershipStatus.ACTIVE
        assert [e.member_id for e in sink.events] == [elapsed.id]
        assert sink.kinds() == [NotificationKind.MEMBERSHIP_EXPIRED]

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, session, plans, make_member, now):
        await make_member(earnings_continue_until=now - timedelta(hours=1))
        lifecycle = MembershipLifecycle(session)
        await lifecycle.sweep_expirations(now=now)

        again = await lifecycle.sweep_expirations(now=now)

        assert again.expired == 0

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_sweep(
        self, session, plans, make_member, now, monkeypatch
    ):
        broken = await make_member(earnings_continue_until=now - timedelta(days=2))
        fine = await make_member(earnings_continue_until=now - timedelta(days=1))
        broken_id, fine_id = broken.id, fine.id
        lifecycle = MembershipLifecycle(session)
        expire = lifecycle.members.expire_membership

        async def flaky_expire(member_id, at):
            if member_id == broken_id:
                raise RuntimeError("row locked")
            return await expire(member_id, at)

        monkeypatch.setattr(lifecycle.members, "expire_membership", flaky_expire)

        result = await lifecycle.sweep_expirations(now=now)

        assert result.expired == 1
        assert result.failed == 1
        stored_broken = await session.get(Member, broken_id)
        stored_fine = await session.get(Member, fine_id)
        await session.refresh(stored_broken)
        await session.refresh(stored_fine)
        assert stored_broken.membership_status == MembershipStatus.ACTIVE
        assert stored_fine.membership_status == MembershipStatus.EXPIRED


class TestExpiryNotices:
    """7-day notice once per window, 3-day notice every run."""

    @pytest.mark.asyncio
    async def test_notice_schedule(
        self, session, plans, make_member, now, dispatcher, sink
    ):
        week = await make_member(earnings_continue_until=now + timedelta(days=5))
        urgent = await make_member(earnings_continue_until=now + timedelta(days=2))
        await make_member(earnings_continue_until=now + timedelta(days=20))
        lifecycle = MembershipLifecycle(session, dispatcher=dispatcher)

        first = await lifecycle.send_expiry_notices(now=now)
        second = await lifecycle.send_expiry_notices(now=now)

        assert (first.seven_day, first.three_day) == (2, 1)
        assert (second.seven_day, second.three_day) == (0, 1)
        regular_ids = [
            e.member_id
            for e in sink.events
            if e.kind == NotificationKind.EXPIRY_NOTICE
        ]
        urgent_ids = [
            e.member_id
            for e in sink.events
            if e.kind == NotificationKind.URGENT_EXPIRY_NOTICE
        ]
        assert sorted(regular_ids) == sorted([week.id, urgent.id])
        assert urgent_ids == [urgent.id, urgent.id]

    @pytest.mark.asyncio
    async def test_extension_rearms_notice(self, session, plans, make_member, now):
        member = await make_member(start=now - timedelta(days=25))
        lifecycle = MembershipLifecycle(session)
        first = await lifecycle.send_expiry_notices(now=now)

        await EarningWindowManager(session).apply_referral_extension(
            member, "BASIC"
        )
        await session.commit()
        second = await lifecycle.send_expiry_notices(now=now + timedelta(days=30))

        assert first.seven_day == 1
        assert second.seven_day == 1
