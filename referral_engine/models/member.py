"""
Member model.

Represents one node of the sponsor tree together with its
financial counters and membership state.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.models.base import Base
from referral_engine.models.enums import MembershipStatus
from referral_engine.models.types import MoneyType, UTCDateTime
from referral_engine.utils.datetime_utils import utc_now


class Member(Base):
    """Member model - sponsor tree node."""

    __tablename__ = "members"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="check_member_balance_non_negative"),
        CheckConstraint(
            "total_earnings >= 0",
            name="check_member_total_earnings_non_negative",
        ),
        CheckConstraint(
            "task_earnings >= 0",
            name="check_member_task_earnings_non_negative",
        ),
        CheckConstraint(
            "referral_earnings >= 0",
            name="check_member_referral_earnings_non_negative",
        ),
        CheckConstraint(
            "pending_commission >= 0",
            name="check_member_pending_commission_non_negative",
        ),
        CheckConstraint(
            "renewal_count >= 0", name="check_member_renewal_count_non_negative"
        ),
        CheckConstraint("sponsor_id IS NULL OR sponsor_id != id", name="check_member_not_own_sponsor"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True, index=True
    )

    # Sponsor tree edge
    sponsor_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    tasks_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Financial counters
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False, index=True
    )
    task_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referral_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    pending_commission: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    available_voucher: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Product voucher credited on each plan activation",
    )
    minimum_withdrawal: Mapped[Decimal] = mapped_column(
        MoneyType,
        default=Decimal("0"),
        nullable=False,
        comment="Copied from the plan on activation",
    )

    # Membership state
    membership_plan: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    membership_status: Mapped[str] = mapped_column(
        String(20),
        default=MembershipStatus.NONE,
        nullable=False,
        index=True,
    )
    membership_start_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    membership_end_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    earnings_continue_until: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        index=True,
        comment="Live, possibly extended, earning deadline",
    )
    renewal_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_renewal_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    notified_for_current_window: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="7-day expiry notice already sent for this window",
    )

    # Daily earning bookkeeping
    last_task_completion_date: Mapped[date | None] = mapped_column(
        Date, nullable=True
    )
    daily_tasks_completed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    @property
    def is_membership_active(self) -> bool:
        """Check if membership is ACTIVE."""
        return self.membership_status == MembershipStatus.ACTIVE

    @property
    def is_commission_eligible(self) -> bool:
        """Active account with an active membership."""
        return self.is_active and self.is_membership_active

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Member(id={self.id}, sponsor_id={self.sponsor_id}, "
            f"plan={self.membership_plan}, status={self.membership_status})>"
        )
