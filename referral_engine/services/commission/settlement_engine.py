"""
Commission settlement engine.

Pays the fixed per-level commissions of a new membership up the
sponsor chain and extends the direct sponsor's earning window.

Idempotency is enforced twice: a fast-path lookup of existing
CommissionEvent rows, and the unique (triggering member, plan, level)
key that rejects a concurrent duplicate at flush or commit time.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import IntegrityError as StoreIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.settings import settings
from referral_engine.models.commission_event import CommissionEvent
from referral_engine.models.enums import TransactionType
from referral_engine.repositories.commission_event_repository import (
    CommissionEventRepository,
)
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.repositories.transaction_repository import (
    LedgerTransactionRepository,
)
from referral_engine.services.base_service import BaseService, transaction
from referral_engine.services.earning.window_manager import (
    EarningWindowManager,
)
from referral_engine.services.network.sponsor_tree import SponsorTree
from referral_engine.services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    NotificationKind,
)
from referral_engine.services.plans.plan_catalog import PlanCatalog
from referral_engine.utils.exceptions import NotFoundError


@dataclass(frozen=True)
class CommissionCredit:
    beneficiary_id: int
    level: int
    amount: Decimal


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of one settlement call."""

    levels_paid: int = 0
    total_amount: Decimal = Decimal("0")
    credits: tuple[CommissionCredit, ...] = field(default_factory=tuple)
    extended: bool = False
    already_settled: bool = False


def settlement_reference(member_id: int, plan_name: str, level: int) -> str:
    """Ledger reference of one commission credit."""
    return f"{member_id}:{plan_name}:L{level}"


class CommissionSettlementEngine(BaseService):
    """
    Multi-level commission payout.

    Usage:
        engine = CommissionSettlementEngine(session)
        result = await engine.settle(new_member_id, "BASIC")
    """

    def __init__(
        self,
        session: AsyncSession,
        plan_catalog: PlanCatalog | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """
        Initialize settlement engine.

        Args:
            session: Database session
            plan_catalog: Plan lookups (optionally cache-backed)
            dispatcher: Post-commit notification delivery
        """
        super().__init__(session)
        self.members = MemberRepository(session)
        self.events = CommissionEventRepository(session)
        self.transactions = LedgerTransactionRepository(session)
        self.plans = plan_catalog or PlanCatalog(session)
        self.tree = SponsorTree(session)
        self.window_manager = EarningWindowManager(session, self.plans)
        self.dispatcher = dispatcher or NotificationDispatcher()

    async def settle(
        self, new_member_id: int, plan_name: str
    ) -> SettlementResult:
        """
        Settle commissions for a confirmed plan purchase.

        Safe to call again for the same member and plan: a repeat
        returns already_settled=True and credits nothing.

        Args:
            new_member_id: Member who bought the plan
            plan_name: Purchased plan

        Returns:
            SettlementResult

        Raises:
            NotFoundError: Member does not exist
            InvalidPlan: Plan is unknown or disabled
            IntegrityError: Sponsor chain contains a cycle
            sqlalchemy.exc.IntegrityError: A store constraint other than
                the settlement key rejected the write
            TransientStoreError: Store unavailable, safe to retry
        """
        try:
            result, notifications = await self._settle(
                new_member_id, plan_name
            )
        except StoreIntegrityError:
            # Only a committed duplicate settlement makes this a no-op
            if not await self._settlement_recorded(new_member_id, plan_name):
                self.logger.error(
                    "Settlement rejected by a store constraint",
                    extra={"member_id": new_member_id, "plan": plan_name},
                )
                raise
            self.logger.info(
                "Concurrent settlement detected, treating as already settled",
                extra={"member_id": new_member_id, "plan": plan_name},
            )
            return SettlementResult(already_settled=True)

        await self.dispatcher.dispatch(notifications)
        return result

    async def _settlement_recorded(
        self, new_member_id: int, plan_name: str
    ) -> bool:
        plan = await self.plans.get_plan(plan_name)
        recorded = await self.events.get_for_settlement(new_member_id, plan.name)
        return bool(recorded)

    @transaction
    async def _settle(
        self, new_member_id: int, plan_name: str
    ) -> tuple[SettlementResult, list[NotificationEvent]]:
        member = await self.members.get_by_id(new_member_id)
        if member is None:
            raise NotFoundError("Member", new_member_id)

        if member.sponsor_id is None:
            self.logger.debug(
                "Member has no sponsor, nothing to settle",
                extra={"member_id": new_member_id},
            )
            return SettlementResult(), []

        plan = await self.plans.get_plan(plan_name)

        if await self.events.settlement_exists(new_member_id, plan.name):
            self.logger.info(
                "Settlement already recorded",
                extra={"member_id": new_member_id, "plan": plan.name},
            )
            return SettlementResult(already_settled=True), []

        ancestors = await self.tree.ancestors(
            new_member_id, settings.commission_max_levels
        )

        credits: list[CommissionCredit] = []
        notifications: list[NotificationEvent] = []

        for ancestor in ancestors:
            beneficiary = ancestor.member
            if not ancestor.eligible:
                self.logger.debug(
                    f"Skipping ineligible ancestor at level {ancestor.level}",
                    extra={"beneficiary_id": beneficiary.id},
                )
                continue

            amount = plan.commission_amount(ancestor.level)
            if not amount:
                continue

            # Flushed before the balance update so a duplicate key
            # fails before any money moves
            self.session.add(
                CommissionEvent(
                    beneficiary_id=beneficiary.id,
                    triggering_member_id=new_member_id,
                    plan_name=plan.name,
                    level=ancestor.level,
                    amount=amount,
                )
            )
            await self.session.flush()

            await self.members.credit_referral_commission(beneficiary.id, amount)
            await self.transactions.record(
                member_id=beneficiary.id,
                kind=TransactionType.REFERRAL_COMMISSION,
                amount=amount,
                description=(
                    f"Level {ancestor.level} commission for "
                    f"{plan.display_name} purchase by member {new_member_id}"
                ),
                reference=settlement_reference(
                    new_member_id, plan.name, ancestor.level
                ),
            )

            credits.append(
                CommissionCredit(
                    beneficiary_id=beneficiary.id,
                    level=ancestor.level,
                    amount=amount,
                )
            )
            notifications.append(
                NotificationEvent(
                    kind=NotificationKind.COMMISSION_CREDITED,
                    member_id=beneficiary.id,
                    payload={
                        "level": ancestor.level,
                        "amount": str(amount),
                        "plan": plan.name,
                        "from_member_id": new_member_id,
                    },
                )
            )

        extended = False
        if ancestors and ancestors[0].level == 1:
            sponsor = ancestors[0].member
            outcome = await self.window_manager.apply_referral_extension(
                sponsor, plan.name
            )
            extended = outcome.changed
            if outcome.changed:
                notifications.append(
                    self.window_manager.extension_event(sponsor.id, outcome)
                )

        total = sum((credit.amount for credit in credits), Decimal("0"))
        self.logger.info(
            "Commission settlement complete",
            extra={
                "member_id": new_member_id,
                "plan": plan.name,
                "levels_paid": len(credits),
                "total_amount": str(total),
                "extended": extended,
            },
        )

        result = SettlementResult(
            levels_paid=len(credits),
            total_amount=total,
            credits=tuple(credits),
            extended=extended,
        )
        return result, notifications
