"""
Plan catalog.

Read-only view of membership plans and their commission tables.
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.business_constants import DEFAULT_PLANS
from referral_engine.models.plan import MembershipPlan, PlanCommission
from referral_engine.repositories.plan_repository import (
    MembershipPlanRepository,
)
from referral_engine.utils.exceptions import InvalidPlan


@dataclass(frozen=True)
class CommissionLevel:
    """Commission configured for one level of a plan."""

    level: int
    amount: Decimal
    description: str | None
    is_active: bool


@dataclass(frozen=True)
class PlanSnapshot:
    """Immutable copy of a plan taken at read time."""

    name: str
    display_name: str
    price: Decimal
    daily_task_earning: Decimal
    max_earning_days: int
    extended_earning_days: int
    minimum_withdrawal: Decimal
    voucher_amount: Decimal
    version: int
    commission_table: Mapping[int, CommissionLevel]

    def commission_amount(self, level: int) -> Decimal | None:
        """
        Active commission for a level.

        Args:
            level: Upline level (1 = direct sponsor)

        Returns:
            Amount, or None when the level is unset or disabled
        """
        entry = self.commission_table.get(level)
        if entry is None or not entry.is_active:
            return None
        return entry.amount

    @classmethod
    def from_model(cls, plan: MembershipPlan) -> "PlanSnapshot":
        """Build a snapshot from a loaded plan row."""
        table = {
            row.level: CommissionLevel(
                level=row.level,
                amount=row.amount,
                description=row.description,
                is_active=row.is_active,
            )
            for row in plan.commissions
        }
        return cls(
            name=plan.name,
            display_name=plan.display_name,
            price=plan.price,
            daily_task_earning=plan.daily_task_earning,
            max_earning_days=plan.max_earning_days,
            extended_earning_days=plan.extended_earning_days,
            minimum_withdrawal=plan.minimum_withdrawal,
            voucher_amount=plan.voucher_amount,
            version=plan.version,
            commission_table=MappingProxyType(table),
        )


class PlanCache:
    """
    Caller-owned snapshot cache with a time-to-live.

    Admin edits of a plan must call invalidate(); otherwise an edited
    plan is picked up once its entry expires.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, PlanSnapshot]] = {}

    def get(self, name: str) -> PlanSnapshot | None:
        entry = self._entries.get(name)
        if entry is None:
            return None
        expires_at, snapshot = entry
        if self._clock() >= expires_at:
            del self._entries[name]
            return None
        return snapshot

    def put(self, snapshot: PlanSnapshot) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[snapshot.name] = (
            self._clock() + self.ttl_seconds,
            snapshot,
        )

    def invalidate(self, name: str | None = None) -> None:
        """Drop one plan, or every plan when name is None."""
        if name is None:
            self._entries.clear()
        else:
            self._entries.pop(name.upper(), None)


class PlanCatalog:
    """Plan lookups by name."""

    def __init__(
        self, session: AsyncSession, cache: PlanCache | None = None
    ) -> None:
        """
        Initialize plan catalog.

        Args:
            session: Database session
            cache: Optional snapshot cache shared by the caller
        """
        self.plans = MembershipPlanRepository(session)
        self.cache = cache

    async def get_plan(self, name: str | None) -> PlanSnapshot:
        """
        Resolve an active plan.

        Args:
            name: Plan name, any case

        Returns:
            Plan snapshot

        Raises:
            InvalidPlan: Plan is unknown or disabled
        """
        if not name:
            raise InvalidPlan(name)
        key = name.strip().upper()

        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        plan = await self.plans.get_by_name(key)
        if plan is None or not plan.is_active:
            raise InvalidPlan(name)

        snapshot = PlanSnapshot.from_model(plan)
        if self.cache is not None:
            self.cache.put(snapshot)
        return snapshot

    async def find_plan(self, name: str | None) -> PlanSnapshot | None:
        """Resolve a plan, returning None instead of raising."""
        try:
            return await self.get_plan(name)
        except InvalidPlan:
            return None

    async def list_plans(self) -> list[PlanSnapshot]:
        """
        Get active plans ordered by price.

        Returns:
            Plan snapshots
        """
        plans = await self.plans.get_active_plans()
        return [PlanSnapshot.from_model(plan) for plan in plans]


async def seed_default_plans(session: AsyncSession) -> int:
    """
    Install the default plan catalog.

    Existing plans are left untouched. The caller commits.

    Args:
        session: Database session

    Returns:
        Number of plans created
    """
    repo = MembershipPlanRepository(session)
    created = 0

    for entry in DEFAULT_PLANS:
        if await repo.get_by_name(entry["name"]) is not None:
            logger.info(f"Plan {entry['name']} already exists, skipping")
            continue

        commissions = [
            PlanCommission(
                level=level,
                amount=amount,
                description=f"Level {level} commission",
            )
            for level, amount in enumerate(entry["commissions"], start=1)
        ]
        plan = MembershipPlan(
            name=entry["name"],
            display_name=entry["display_name"],
            price=entry["price"],
            daily_task_earning=entry["daily_task_earning"],
            max_earning_days=entry["max_earning_days"],
            extended_earning_days=entry["extended_earning_days"],
            minimum_withdrawal=entry["minimum_withdrawal"],
            voucher_amount=entry["voucher_amount"],
            commissions=commissions,
        )
        session.add(plan)
        created += 1
        logger.info(f"Seeded plan {entry['name']}")

    await session.flush()
    return created
