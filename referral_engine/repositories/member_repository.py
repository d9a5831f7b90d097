"""
Member repository.

Data access layer for Member model, including the batched tree reads
and the atomic counter updates used by settlement and daily earning.
"""

from collections.abc import Iterable, Iterator, Sequence
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Integer, Row, case, func, literal, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from referral_engine.models.enums import MembershipStatus
from referral_engine.models.member import Member
from referral_engine.repositories.base import BaseRepository


def _chunks(ids: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    """Split ids into IN-clause sized batches."""
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class MemberRepository(BaseRepository[Member]):
    """Member repository with tree and ledger specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize member repository."""
        super().__init__(Member, session)

    # ------------------------------------------------------------------
    # Tree reads
    # ------------------------------------------------------------------

    async def get_sponsor_link(
        self, member_id: int
    ) -> tuple[bool, int | None]:
        """
        Read a single sponsor edge without loading the full row.

        Args:
            member_id: Member ID

        Returns:
            Tuple of (exists, sponsor_id)
        """
        stmt = select(Member.sponsor_id).where(Member.id == member_id)
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return False, None
        return True, row.sponsor_id

    async def get_ancestor_chain(
        self, member_id: int, max_levels: int
    ) -> list[tuple[Member, int]]:
        """
        Get sponsor chain with a recursive CTE.

        Fetches up to max_levels ancestors in one round trip.
        The CTE is bounded by level, so a corrupt cycle cannot recurse forever.

        Args:
            member_id: Member whose upline is requested
            max_levels: Chain depth to retrieve

        Returns:
            List of (member, level) ordered from direct sponsor upward
        """
        chain = (
            select(
                Member.id.label("id"),
                Member.sponsor_id.label("sponsor_id"),
                literal(0, Integer).label("level"),
            )
            .where(Member.id == member_id)
            .cte("sponsor_chain", recursive=True)
        )
        parent = aliased(Member)
        chain = chain.union_all(
            select(
                parent.id,
                parent.sponsor_id,
                (chain.c.level + 1).label("level"),
            )
            .join(chain, parent.id == chain.c.sponsor_id)
            .where(chain.c.level < max_levels)
        )

        stmt = (
            select(Member, chain.c.level)
            .join(chain, Member.id == chain.c.id)
            .where(chain.c.level > 0)
            .order_by(chain.c.level)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_children_rows(
        self, parent_ids: Iterable[int], batch_size: int
    ) -> list[Row]:
        """
        Get direct children of a set of members.

        One query per batch of parent ids; only the columns
        needed for traversal and rollups are loaded.

        Args:
            parent_ids: Sponsor IDs of the current tree level
            batch_size: Max ids per IN clause

        Returns:
            Rows with id, sponsor_id, total_earnings, is_active
        """
        ids = sorted(set(parent_ids))
        rows: list[Row] = []
        for batch in _chunks(ids, batch_size):
            stmt = (
                select(
                    Member.id,
                    Member.sponsor_id,
                    Member.total_earnings,
                    Member.is_active,
                )
                .where(Member.sponsor_id.in_(batch))
                .order_by(Member.id)
            )
            result = await self.session.execute(stmt)
            rows.extend(result.all())
        return rows

    async def get_root_rows(self) -> list[Row]:
        """
        Get members without a sponsor.

        Returns:
            Rows with id, sponsor_id, total_earnings, is_active
        """
        stmt = (
            select(
                Member.id,
                Member.sponsor_id,
                Member.total_earnings,
                Member.is_active,
            )
            .where(Member.sponsor_id.is_(None))
            .order_by(Member.id)
        )
        result = await self.session.execute(stmt)
        return list(result.all())

    async def get_node_row(self, member_id: int) -> Row | None:
        """Get traversal columns for a single member."""
        stmt = select(
            Member.id,
            Member.sponsor_id,
            Member.total_earnings,
            Member.is_active,
        ).where(Member.id == member_id)
        result = await self.session.execute(stmt)
        return result.first()

    async def set_sponsor(self, member_id: int, sponsor_id: int | None) -> int:
        """
        Update a sponsor edge.

        Args:
            member_id: Member to move
            sponsor_id: New sponsor ID or None for a root

        Returns:
            Number of updated rows
        """
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(sponsor_id=sponsor_id)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    # ------------------------------------------------------------------
    # Atomic ledger updates
    # ------------------------------------------------------------------

    async def credit_referral_commission(
        self, member_id: int, amount: Decimal
    ) -> int:
        """
        Atomically add a commission to a member's counters.

        Args:
            member_id: Beneficiary ID
            amount: Commission amount

        Returns:
            Number of updated rows
        """
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(
                referral_earnings=Member.referral_earnings + amount,
                total_earnings=Member.total_earnings + amount,
                balance=Member.balance + amount,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def credit_task_earning(
        self, member_id: int, amount: Decimal, today: date
    ) -> int:
        """
        Atomically credit a daily task earning.

        The date guard is part of the WHERE clause, so two concurrent
        calls for the same day cannot both succeed.

        Args:
            member_id: Member ID
            amount: Daily earning amount
            today: Business calendar day

        Returns:
            1 if credited, 0 if already credited today
        """
        stmt = (
            update(Member)
            .where(
                Member.id == member_id,
                or_(
                    Member.last_task_completion_date.is_(None),
                    Member.last_task_completion_date != today,
                ),
            )
            .values(
                task_earnings=Member.task_earnings + amount,
                total_earnings=Member.total_earnings + amount,
                balance=Member.balance + amount,
                daily_tasks_completed=Member.daily_tasks_completed + 1,
                last_task_completion_date=today,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def extend_earning_window(
        self, member_id: int, candidate: datetime
    ) -> int:
        """
        Move earnings_continue_until forward, never backward.

        Args:
            member_id: Sponsor ID
            candidate: Proposed new deadline

        Returns:
            1 if the deadline moved, 0 otherwise
        """
        stmt = (
            update(Member)
            .where(
                Member.id == member_id,
                Member.membership_status == MembershipStatus.ACTIVE,
                or_(
                    Member.earnings_continue_until.is_(None),
                    Member.earnings_continue_until < candidate,
                ),
            )
            .values(
                earnings_continue_until=candidate,
                notified_for_current_window=False,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def expire_membership(self, member_id: int, now: datetime) -> int:
        """
        Flip an elapsed ACTIVE membership to EXPIRED.

        Re-checks the state in the WHERE clause so a concurrent
        renewal is never overwritten.

        Args:
            member_id: Member ID
            now: Sweep time

        Returns:
            1 if expired, 0 if the member no longer qualifies
        """
        stmt = (
            update(Member)
            .where(
                Member.id == member_id,
                Member.membership_status == MembershipStatus.ACTIVE,
                Member.earnings_continue_until < now,
            )
            .values(
                membership_status=MembershipStatus.EXPIRED,
                tasks_enabled=False,
            )
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def mark_window_notified(self, member_id: int) -> int:
        """Record that the 7-day notice was sent for the current window."""
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(notified_for_current_window=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    # ------------------------------------------------------------------
    # Scheduler scans
    # ------------------------------------------------------------------

    async def find_elapsed_active_ids(self, now: datetime) -> list[int]:
        """
        Get ACTIVE members whose earning window has elapsed.

        Args:
            now: Sweep time

        Returns:
            Member IDs ordered by deadline
        """
        stmt = (
            select(Member.id)
            .where(
                Member.membership_status == MembershipStatus.ACTIVE,
                Member.earnings_continue_until < now,
            )
            .order_by(Member.earnings_continue_until, Member.id)
        )
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]

    async def find_expiring(
        self,
        now: datetime,
        until: datetime,
        only_unnotified: bool = False,
    ) -> list[Member]:
        """
        Get ACTIVE members whose window ends between now and until.

        Args:
            now: Scan time
            until: Upper bound of the notice window
            only_unnotified: Skip members already sent the 7-day notice

        Returns:
            Matching members
        """
        stmt = select(Member).where(
            Member.membership_status == MembershipStatus.ACTIVE,
            Member.earnings_continue_until >= now,
            Member.earnings_continue_until <= until,
        )
        if only_unnotified:
            stmt = stmt.where(Member.notified_for_current_window.is_(False))
        stmt = stmt.order_by(Member.earnings_continue_until, Member.id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def get_network_totals(self) -> dict:
        """
        Get platform-wide member counts and earnings in one query.

        Returns:
            Dict with total, active, active_memberships, with_sponsor,
            total_earnings
        """
        stmt = select(
            func.count(Member.id).label("total"),
            func.coalesce(
                func.sum(case((Member.is_active.is_(True), 1), else_=0)), 0
            ).label("active"),
            func.coalesce(
                func.sum(
                    case(
                        (Member.membership_status == MembershipStatus.ACTIVE, 1),
                        else_=0,
                    )
                ),
                0,
            ).label("active_memberships"),
            func.count(Member.sponsor_id).label("with_sponsor"),
            func.coalesce(
                func.sum(Member.total_earnings), Decimal("0")
            ).label("total_earnings"),
        )
        result = await self.session.execute(stmt)
        row = result.one()
        return {
            "total": row.total or 0,
            "active": int(row.active or 0),
            "active_memberships": row.active_memberships or 0,
            "with_sponsor": row.with_sponsor or 0,
            "total_earnings": Decimal(str(row.total_earnings or 0)),
        }

    async def get_top_earners(self, limit: int) -> list[Member]:
        """
        Get active members ordered by total earnings.

        Args:
            limit: Number of members to return

        Returns:
            Members with the highest total_earnings
        """
        stmt = (
            select(Member)
            .where(Member.is_active.is_(True))
            .order_by(Member.total_earnings.desc(), Member.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_direct_referrals(
        self, member_ids: Iterable[int], batch_size: int
    ) -> dict[int, int]:
        """
        Count direct referrals for many members with GROUP BY.

        Args:
            member_ids: Sponsor IDs
            batch_size: Max ids per IN clause

        Returns:
            Dict mapping sponsor ID to child count (missing means 0)
        """
        ids = sorted(set(member_ids))
        counts: dict[int, int] = {}
        for batch in _chunks(ids, batch_size):
            stmt = (
                select(Member.sponsor_id, func.count(Member.id).label("count"))
                .where(Member.sponsor_id.in_(batch))
                .group_by(Member.sponsor_id)
            )
            result = await self.session.execute(stmt)
            for row in result.all():
                counts[row.sponsor_id] = row.count
        return counts
