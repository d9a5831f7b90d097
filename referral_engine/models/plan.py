"""
Membership plan models.

Plan definitions and their fixed-amount, per-level commission tables.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_engine.models.base import Base
from referral_engine.models.types import MoneyType, UTCDateTime
from referral_engine.utils.datetime_utils import utc_now


class MembershipPlan(Base):
    """Membership tier with its earning allowance."""

    __tablename__ = "membership_plans"
    __table_args__ = (
        CheckConstraint("price >= 0", name="check_plan_price_non_negative"),
        CheckConstraint(
            "max_earning_days > 0", name="check_plan_max_days_positive"
        ),
        CheckConstraint(
            "extended_earning_days >= max_earning_days",
            name="check_plan_extended_days_not_shorter",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    daily_task_earning: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    max_earning_days: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Base earning window in days"
    )
    extended_earning_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Window length after a qualifying referral",
    )
    minimum_withdrawal: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    voucher_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Bumped on every admin edit of the plan or its commissions",
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    commissions: Mapped[list["PlanCommission"]] = relationship(
        back_populates="plan",
        order_by="PlanCommission.level",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<MembershipPlan(name={self.name}, price={self.price})>"


class PlanCommission(Base):
    """Fixed commission paid to the ancestor at one level."""

    __tablename__ = "plan_commissions"
    __table_args__ = (
        UniqueConstraint("plan_id", "level", name="uq_plan_commission_level"),
        CheckConstraint(
            "level >= 1 AND level <= 5", name="check_plan_commission_level"
        ),
        CheckConstraint(
            "amount >= 0", name="check_plan_commission_amount_non_negative"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("membership_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    description: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    plan: Mapped[MembershipPlan] = relationship(back_populates="commissions")

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PlanCommission(plan_id={self.plan_id}, level={self.level}, "
            f"amount={self.amount})>"
        )
