"""
Membership lifecycle.

NONE -> ACTIVE on a confirmed purchase, ACTIVE -> EXPIRED when the
sweep sees an elapsed earning window, EXPIRED -> ACTIVE on renewal.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.settings import settings
from referral_engine.models.enums import MembershipStatus, TransactionType
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.repositories.transaction_repository import (
    LedgerTransactionRepository,
)
from referral_engine.services.base_service import (
    BaseService,
    log_operation,
    transaction,
    with_rollback_on_error,
)
from referral_engine.services.membership.renewal_pricing import (
    RenewalQuote,
    renewal_price,
)
from referral_engine.services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    NotificationKind,
)
from referral_engine.services.plans.plan_catalog import PlanCatalog, PlanSnapshot
from referral_engine.utils.datetime_utils import (
    add_days,
    ensure_aware,
    remaining_days,
    utc_now,
)
from referral_engine.utils.exceptions import (
    InvalidMembershipTransition,
    NotFoundError,
)

ACTIVATABLE_STATUSES = (MembershipStatus.NONE, MembershipStatus.EXPIRED)


@dataclass(frozen=True)
class ActivationResult:
    member_id: int
    plan_name: str
    kind: TransactionType
    base_price: Decimal
    price_charged: Decimal
    discount_rate: Decimal
    renewal_count: int
    membership_start_date: datetime
    membership_end_date: datetime
    earnings_continue_until: datetime


@dataclass(frozen=True)
class RenewalOption:
    plan_name: str
    display_name: str
    base_price: Decimal
    renewal_price: Decimal
    discount_percentage: int
    savings: Decimal
    is_current_plan: bool
    is_upgrade: bool
    is_downgrade: bool
    daily_task_earning: Decimal
    max_earning_days: int
    extended_earning_days: int


@dataclass(frozen=True)
class SweepResult:
    expired: int
    failed: int


@dataclass(frozen=True)
class ExpiryNoticeResult:
    seven_day: int
    three_day: int


class MembershipLifecycle(BaseService):
    """Activation, renewal pricing, expiry sweep and expiry notices."""

    def __init__(
        self,
        session: AsyncSession,
        plan_catalog: PlanCatalog | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """
        Initialize lifecycle service.

        Args:
            session: Database session
            plan_catalog: Plan lookups (optionally cache-backed)
            dispatcher: Post-commit notification delivery
        """
        super().__init__(session)
        self.members = MemberRepository(session)
        self.transactions = LedgerTransactionRepository(session)
        self.plans = plan_catalog or PlanCatalog(session)
        self.dispatcher = dispatcher or NotificationDispatcher()

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    async def activate(
        self,
        member_id: int,
        plan_name: str,
        now: datetime | None = None,
    ) -> ActivationResult:
        """
        Start a membership period after a confirmed purchase.

        First purchase, renewal and upgrade all go through here.
        Charging is external; the returned price is what the checkout
        should have charged.

        Args:
            member_id: Member ID
            plan_name: Purchased plan
            now: Activation moment (defaults to utc_now)

        Returns:
            ActivationResult

        Raises:
            NotFoundError: Member does not exist
            InvalidPlan: Plan is unknown or disabled
            InvalidMembershipTransition: Membership is already ACTIVE
        """
        now = ensure_aware(now or utc_now())
        result = await self._activate(member_id, plan_name, now)

        await self.dispatcher.dispatch(
            [
                NotificationEvent(
                    kind=NotificationKind.MEMBERSHIP_ACTIVATED,
                    member_id=member_id,
                    payload={
                        "plan": result.plan_name,
                        "kind": str(result.kind),
                        "price": str(result.price_charged),
                        "earnings_continue_until": (
                            result.earnings_continue_until.isoformat()
                        ),
                    },
                )
            ]
        )
        return result

    @transaction
    async def _activate(
        self, member_id: int, plan_name: str, now: datetime
    ) -> ActivationResult:
        member = await self.members.get_by_id(member_id, for_update=True)
        if member is None:
            raise NotFoundError("Member", member_id)

        if member.membership_status not in ACTIVATABLE_STATUSES:
            raise InvalidMembershipTransition(
                member_id, member.membership_status, MembershipStatus.ACTIVE
            )

        plan = await self.plans.get_plan(plan_name)

        is_first = member.membership_start_date is None
        quote = renewal_price(plan.price, member.renewal_count)

        if is_first:
            kind = TransactionType.MEMBERSHIP_ACTIVATION
            new_renewal_count = member.renewal_count
            description = f"{plan.display_name} activation"
        elif await self._is_upgrade(member.membership_plan, plan):
            kind = TransactionType.MEMBERSHIP_UPGRADE
            new_renewal_count = 0
            description = (
                f"Upgraded to {plan.display_name} "
                f"({member.renewal_count} renewals)"
            )
        else:
            kind = TransactionType.MEMBERSHIP_RENEWAL
            new_renewal_count = member.renewal_count + 1
            description = (
                f"{plan.display_name} renewal #{new_renewal_count}"
            )

        end_date = add_days(now, plan.max_earning_days)

        member.membership_plan = plan.name
        member.membership_status = MembershipStatus.ACTIVE
        member.membership_start_date = now
        member.membership_end_date = end_date
        member.earnings_continue_until = end_date
        member.tasks_enabled = True
        member.notified_for_current_window = False
        member.minimum_withdrawal = plan.minimum_withdrawal
        member.available_voucher = member.available_voucher + plan.voucher_amount
        member.renewal_count = new_renewal_count
        if not is_first:
            member.last_renewal_date = now

        await self.transactions.record(
            member_id=member_id,
            kind=kind,
            amount=quote.renewal_price,
            description=description,
            reference=f"{member_id}:{plan.name}:{now.isoformat()}",
        )

        self.logger.info(
            f"Membership {kind.value.lower()}",
            extra={
                "member_id": member_id,
                "plan": plan.name,
                "price": str(quote.renewal_price),
                "discount_rate": str(quote.discount_rate),
                "renewal_count": new_renewal_count,
            },
        )

        return ActivationResult(
            member_id=member_id,
            plan_name=plan.name,
            kind=kind,
            base_price=plan.price,
            price_charged=quote.renewal_price,
            discount_rate=quote.discount_rate,
            renewal_count=new_renewal_count,
            membership_start_date=now,
            membership_end_date=end_date,
            earnings_continue_until=end_date,
        )

    async def _is_upgrade(
        self, previous_plan_name: str | None, plan: PlanSnapshot
    ) -> bool:
        if not previous_plan_name or previous_plan_name == plan.name:
            return False
        previous = await self.plans.find_plan(previous_plan_name)
        return previous is not None and plan.price > previous.price

    async def renewal_options(self, member_id: int) -> list[RenewalOption]:
        """
        Price every active plan for the member's next purchase.

        Args:
            member_id: Member ID

        Returns:
            One option per active plan, cheapest first
        """
        member = await self.members.get_by_id(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)

        plans = await self.plans.list_plans()
        current = next(
            (p for p in plans if p.name == member.membership_plan), None
        )
        current_price = current.price if current else Decimal("0")

        options = []
        for plan in plans:
            quote = renewal_price(plan.price, member.renewal_count)
            is_current = plan.name == member.membership_plan
            options.append(
                RenewalOption(
                    plan_name=plan.name,
                    display_name=plan.display_name,
                    base_price=plan.price,
                    renewal_price=quote.renewal_price,
                    discount_percentage=quote.discount_percentage,
                    savings=quote.savings,
                    is_current_plan=is_current,
                    is_upgrade=not is_current and plan.price > current_price,
                    is_downgrade=not is_current and plan.price < current_price,
                    daily_task_earning=plan.daily_task_earning,
                    max_earning_days=plan.max_earning_days,
                    extended_earning_days=plan.extended_earning_days,
                )
            )
        return options

    # ------------------------------------------------------------------
    # Scheduled maintenance
    # ------------------------------------------------------------------

    @log_operation
    @with_rollback_on_error
    async def sweep_expirations(self, now: datetime | None = None) -> SweepResult:
        """
        Expire ACTIVE memberships whose earning window has elapsed.

        Each member is expired in its own savepoint; a failure is logged
        and the sweep moves on.

        Args:
            now: Sweep time (defaults to utc_now)

        Returns:
            SweepResult with expired and failed counts
        """
        now = ensure_aware(now or utc_now())
        candidate_ids = await self.members.find_elapsed_active_ids(now)

        expired: list[tuple[int, str | None]] = []
        failed = 0
        for member_id in candidate_ids:
            try:
                async with self.session.begin_nested():
                    updated = await self.members.expire_membership(member_id, now)
                    if not updated:
                        continue
                    member = await self.members.get_by_id(member_id)
                    expired.append((member_id, member.membership_plan))
            except Exception as e:
                failed += 1
                self.logger.error(
                    "Failed to expire membership",
                    extra={"member_id": member_id, "error": str(e)},
                    exc_info=True,
                )

        await self.commit()

        await self.dispatcher.dispatch(
            NotificationEvent(
                kind=NotificationKind.MEMBERSHIP_EXPIRED,
                member_id=member_id,
                payload={"plan": plan_name},
            )
            for member_id, plan_name in expired
        )

        self.logger.info(
            "Membership expiration sweep complete",
            extra={
                "candidates": len(candidate_ids),
                "expired": len(expired),
                "failed": failed,
            },
        )
        return SweepResult(expired=len(expired), failed=failed)

    @log_operation
    @with_rollback_on_error
    async def send_expiry_notices(
        self, now: datetime | None = None
    ) -> ExpiryNoticeResult:
        """
        Warn members whose earning window is about to close.

        The regular notice goes out once per window; the urgent notice
        goes out on every run inside the urgent horizon.

        Args:
            now: Scan time (defaults to utc_now)

        Returns:
            ExpiryNoticeResult with notice counts
        """
        now = ensure_aware(now or utc_now())
        notifications: list[NotificationEvent] = []

        regular = await self.members.find_expiring(
            now,
            now + timedelta(days=settings.expiry_notice_days),
            only_unnotified=True,
        )
        for member in regular:
            plan = await self.plans.find_plan(member.membership_plan)
            quote: RenewalQuote | None = (
                renewal_price(plan.price, member.renewal_count) if plan else None
            )
            notifications.append(
                NotificationEvent(
                    kind=NotificationKind.EXPIRY_NOTICE,
                    member_id=member.id,
                    payload={
                        "plan": member.membership_plan,
                        "days_remaining": remaining_days(
                            member.earnings_continue_until, now
                        ),
                        "renewal_price": (
                            str(quote.renewal_price) if quote else None
                        ),
                        "discount_percentage": (
                            quote.discount_percentage if quote else 0
                        ),
                    },
                )
            )
            await self.members.mark_window_notified(member.id)

        urgent = await self.members.find_expiring(
            now, now + timedelta(days=settings.urgent_expiry_notice_days)
        )
        for member in urgent:
            notifications.append(
                NotificationEvent(
                    kind=NotificationKind.URGENT_EXPIRY_NOTICE,
                    member_id=member.id,
                    payload={
                        "plan": member.membership_plan,
                        "days_remaining": remaining_days(
                            member.earnings_continue_until, now
                        ),
                    },
                )
            )

        await self.commit()
        await self.dispatcher.dispatch(notifications)

        self.logger.info(
            "Expiry notices sent",
            extra={"seven_day": len(regular), "three_day": len(urgent)},
        )
        return ExpiryNoticeResult(seven_day=len(regular), three_day=len(urgent))
