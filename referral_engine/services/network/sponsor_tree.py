"""
Sponsor tree service.

Traversal of the sponsor forest: upline chains for commission
settlement, batched breadth-first walks for team aggregates and
depth statistics, and safe sponsor reassignment.

Every walk keeps a visited set. Reaching a member twice means the
stored graph is no longer a forest and raises IntegrityError instead
of looping.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.settings import settings
from referral_engine.models.member import Member
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.services.base_service import BaseService, transaction
from referral_engine.utils.exceptions import IntegrityError, NotFoundError


@dataclass(frozen=True)
class Ancestor:
    """Upline member at a given level (1 = direct sponsor)."""

    level: int
    member: Member
    eligible: bool


@dataclass(frozen=True)
class TeamAggregate:
    """Totals over all descendants of a member."""

    team_size: int
    team_earnings: Decimal
    depth: int


@dataclass(frozen=True)
class LevelStats:
    """Members and earnings at one tree level (roots are level 1)."""

    level: int
    members: int
    earnings: Decimal


class SponsorTree(BaseService):
    """Read and maintain the sponsor forest."""

    def __init__(
        self,
        session: AsyncSession,
        batch_size: int | None = None,
    ) -> None:
        """
        Initialize sponsor tree.

        Args:
            session: Database session
            batch_size: Max parent ids per children query
        """
        super().__init__(session)
        self.members = MemberRepository(session)
        self.batch_size = batch_size or settings.tree_batch_size

    async def ancestors(
        self,
        member_id: int,
        max_levels: int,
        truncate_at_inactive: bool | None = None,
    ) -> list[Ancestor]:
        """
        Get the upline of a member, nearest first.

        Args:
            member_id: Starting member
            max_levels: Maximum number of ancestors
            truncate_at_inactive: Stop at the first ineligible ancestor.
                Defaults to settings.commission_truncate_at_inactive.

        Returns:
            Ancestors with eligibility flags

        Raises:
            NotFoundError: Member does not exist
            IntegrityError: A member repeats in the chain
        """
        if truncate_at_inactive is None:
            truncate_at_inactive = settings.commission_truncate_at_inactive

        exists, _ = await self.members.get_sponsor_link(member_id)
        if not exists:
            raise NotFoundError("Member", member_id)

        chain = await self.members.get_ancestor_chain(member_id, max_levels)

        seen = {member_id}
        result: list[Ancestor] = []
        for member, level in chain:
            if member.id in seen:
                self.logger.error(
                    "Sponsor cycle detected in upline",
                    extra={"member_id": member_id, "repeated_id": member.id},
                )
                raise IntegrityError(
                    f"Sponsor cycle: member {member.id} repeats in the "
                    f"upline of member {member_id}",
                    member_id=member.id,
                )
            seen.add(member.id)

            eligible = member.is_commission_eligible
            if truncate_at_inactive and not eligible:
                break
            result.append(Ancestor(level=level, member=member, eligible=eligible))

        return result

    async def subtree_aggregate(self, member_id: int) -> TeamAggregate:
        """
        Aggregate all descendants of a member.

        One batched children query per tree level.

        Args:
            member_id: Subtree root

        Returns:
            TeamAggregate; depth is the number of levels below the member
        """
        root = await self.members.get_node_row(member_id)
        if root is None:
            raise NotFoundError("Member", member_id)

        seen = {member_id}
        frontier = [member_id]
        team_size = 0
        team_earnings = Decimal("0")
        depth = 0

        while frontier:
            children = await self.members.get_children_rows(
                frontier, self.batch_size
            )
            if not children:
                break

            depth += 1
            next_frontier = []
            for row in children:
                self._visit(seen, row.id, member_id)
                team_size += 1
                team_earnings += row.total_earnings or Decimal("0")
                next_frontier.append(row.id)
            frontier = next_frontier

        return TeamAggregate(
            team_size=team_size, team_earnings=team_earnings, depth=depth
        )

    async def level_distribution(self) -> list[LevelStats]:
        """
        Walk the whole forest from its roots, one batched read per level.

        Returns:
            Per-level member counts and earnings, level 1 = roots

        Raises:
            IntegrityError: Some members are unreachable from any root,
                which means they sit on a sponsor cycle
        """
        frontier = await self.members.get_root_rows()
        seen: set[int] = set()
        levels: list[LevelStats] = []

        while frontier:
            earnings = Decimal("0")
            for row in frontier:
                self._visit(seen, row.id, row.sponsor_id)
                earnings += row.total_earnings or Decimal("0")
            levels.append(
                LevelStats(
                    level=len(levels) + 1,
                    members=len(frontier),
                    earnings=earnings,
                )
            )
            frontier = await self.members.get_children_rows(
                [row.id for row in frontier], self.batch_size
            )

        total = await self.members.count()
        if len(seen) < total:
            unreachable = total - len(seen)
            self.logger.error(
                "Members unreachable from any root",
                extra={"unreachable": unreachable},
            )
            raise IntegrityError(
                f"{unreachable} members are not reachable from any root; "
                "the sponsor graph contains a cycle"
            )

        return levels

    async def max_depth(self) -> int:
        """
        Greatest root-to-leaf length in levels.

        Returns:
            0 for an empty forest, 1 for lone roots
        """
        return len(await self.level_distribution())

    @transaction
    async def assign_sponsor(
        self, member_id: int, new_sponsor_id: int | None
    ) -> Member:
        """
        Attach a member to a new sponsor (or detach it to a root).

        Rejects self-sponsorship and any move that would put the member
        on its own upline.

        Args:
            member_id: Member to move
            new_sponsor_id: New sponsor, None to make the member a root

        Returns:
            Updated member

        Raises:
            NotFoundError: Member or sponsor does not exist
            IntegrityError: Assignment would create a cycle
        """
        member = await self.members.get_by_id(member_id, for_update=True)
        if member is None:
            raise NotFoundError("Member", member_id)

        if new_sponsor_id is not None:
            if new_sponsor_id == member_id:
                raise IntegrityError(
                    f"Member {member_id} cannot sponsor itself",
                    member_id=member_id,
                )
            await self._ensure_not_in_upline(member_id, new_sponsor_id)

        previous = member.sponsor_id
        await self.members.set_sponsor(member_id, new_sponsor_id)
        member.sponsor_id = new_sponsor_id

        self.logger.info(
            "Sponsor reassigned",
            extra={
                "member_id": member_id,
                "previous_sponsor_id": previous,
                "new_sponsor_id": new_sponsor_id,
            },
        )
        return member

    async def _ensure_not_in_upline(
        self, member_id: int, sponsor_id: int
    ) -> None:
        """Walk up from sponsor_id and fail if member_id is on the path."""
        exists, parent = await self.members.get_sponsor_link(sponsor_id)
        if not exists:
            raise NotFoundError("Member", sponsor_id)

        seen = {sponsor_id}
        while parent is not None:
            if parent == member_id:
                raise IntegrityError(
                    f"Member {member_id} is an ancestor of {sponsor_id}; "
                    "assignment would create a cycle",
                    member_id=member_id,
                )
            if parent in seen:
                raise IntegrityError(
                    f"Existing sponsor cycle above member {sponsor_id}",
                    member_id=parent,
                )
            seen.add(parent)
            _, parent = await self.members.get_sponsor_link(parent)

    def _visit(self, seen: set[int], node_id: int, parent_id: int | None) -> None:
        if node_id in seen:
            self.logger.error(
                "Sponsor cycle detected during traversal",
                extra={"member_id": node_id, "parent_id": parent_id},
            )
            raise IntegrityError(
                f"Sponsor cycle: member {node_id} reached twice",
                member_id=node_id,
            )
        seen.add(node_id)
