"""
Network analytics.

Read-only statistics over the sponsor forest: platform totals, level
distribution, top earners and per-member team views.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.settings import settings
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService
from referral_engine.services.network.sponsor_tree import LevelStats, SponsorTree
from referral_engine.utils.exceptions import IntegrityError, NotFoundError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class TopEarner:
    member_id: int
    username: str
    membership_plan: str | None
    total_earnings: Decimal
    direct_referrals: int


@dataclass(frozen=True)
class NetworkStats:
    total_members: int
    active_members: int
    active_memberships: int
    total_earnings: Decimal
    total_referrals: int
    average_earnings: Decimal
    max_depth: int
    level_distribution: list[LevelStats]
    top_earners: list[TopEarner]


@dataclass
class NetworkNode:
    """Member in a team view. team_* totals cover the full subtree."""

    member_id: int
    username: str
    level: int
    is_active: bool
    membership_plan: str | None
    total_earnings: Decimal
    direct_referrals: int
    team_size: int
    team_earnings: Decimal
    children: list["NetworkNode"] = field(default_factory=list)


class NetworkAnalytics(BaseService):
    """Network statistics for reporting and admin views."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.members = MemberRepository(session)
        self.tree = SponsorTree(session)

    async def network_stats(self, top_n: int | None = None) -> NetworkStats:
        """
        Platform-wide network statistics.

        Args:
            top_n: Number of top earners (defaults to settings.top_earners_limit)

        Returns:
            NetworkStats
        """
        top_n = top_n or settings.top_earners_limit

        totals = await self.members.get_network_totals()
        distribution = await self.tree.level_distribution()
        top = await self.members.get_top_earners(top_n)
        direct_counts = await self.members.count_direct_referrals(
            [m.id for m in top], self.tree.batch_size
        )

        total_members = totals["total"]
        average = Decimal("0")
        if total_members:
            average = (totals["total_earnings"] / total_members).quantize(
                CENT, rounding=ROUND_HALF_UP
            )

        return NetworkStats(
            total_members=total_members,
            active_members=totals["active"],
            active_memberships=totals["active_memberships"],
            total_earnings=totals["total_earnings"],
            total_referrals=totals["with_sponsor"],
            average_earnings=average,
            max_depth=len(distribution),
            level_distribution=distribution,
            top_earners=[
                TopEarner(
                    member_id=m.id,
                    username=m.username,
                    membership_plan=m.membership_plan,
                    total_earnings=m.total_earnings,
                    direct_referrals=direct_counts.get(m.id, 0),
                )
                for m in top
            ],
        )

    async def member_network(self, member_id: int, depth: int) -> NetworkNode:
        """
        Team view rooted at a member.

        The whole subtree is loaded level by level so rollups are exact,
        but only nodes within depth levels of the root are returned.

        Args:
            member_id: Root of the view
            depth: Levels below the root to include (0 = root only)

        Returns:
            Root NetworkNode with nested children
        """
        if depth < 0:
            raise ValueError(f"depth must be >= 0, got {depth}")

        root = await self.members.get_node_row(member_id)
        if root is None:
            raise NotFoundError("Member", member_id)

        # Arena: rows and levels by id, BFS order for the rollup
        rows = {member_id: root}
        levels = {member_id: 0}
        children_of: dict[int, list[int]] = {member_id: []}
        order = [member_id]

        frontier = [member_id]
        while frontier:
            batch = await self.members.get_children_rows(
                frontier, self.tree.batch_size
            )
            next_frontier = []
            for row in batch:
                if row.id in rows:
                    raise IntegrityError(
                        f"Sponsor cycle: member {row.id} reached twice",
                        member_id=row.id,
                    )
                rows[row.id] = row
                levels[row.id] = levels[row.sponsor_id] + 1
                children_of[row.id] = []
                children_of[row.sponsor_id].append(row.id)
                order.append(row.id)
                next_frontier.append(row.id)
            frontier = next_frontier

        team_size = {node_id: 0 for node_id in order}
        team_earnings = {node_id: Decimal("0") for node_id in order}
        for node_id in reversed(order):
            for child_id in children_of[node_id]:
                team_size[node_id] += 1 + team_size[child_id]
                team_earnings[node_id] += (
                    rows[child_id].total_earnings or Decimal("0")
                ) + team_earnings[child_id]

        shown = [node_id for node_id in order if levels[node_id] <= depth]
        members = await self.members.get_many(shown, self.tree.batch_size)

        nodes: dict[int, NetworkNode] = {}
        for node_id in shown:
            member = members[node_id]
            node = NetworkNode(
                member_id=node_id,
                username=member.username,
                level=levels[node_id],
                is_active=member.is_active,
                membership_plan=member.membership_plan,
                total_earnings=member.total_earnings,
                direct_referrals=len(children_of[node_id]),
                team_size=team_size[node_id],
                team_earnings=team_earnings[node_id],
            )
            nodes[node_id] = node
            if node_id != member_id:
                nodes[rows[node_id].sponsor_id].children.append(node)

        self.logger.debug(
            "Member network built",
            extra={
                "member_id": member_id,
                "depth": depth,
                "loaded": len(order),
                "shown": len(shown),
            },
        )
        return nodes[member_id]
