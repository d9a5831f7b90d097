"""
Commission event model.

Append-only history of commissions paid for a new membership.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.models.base import Base
from referral_engine.models.types import MoneyType, UTCDateTime
from referral_engine.utils.datetime_utils import utc_now


class CommissionEvent(Base):
    """
    Commission credited to one ancestor.

    The (triggering_member_id, plan_name, level) key makes re-processing
    the same signup fail at the store instead of paying twice.
    """

    __tablename__ = "commission_events"
    __table_args__ = (
        UniqueConstraint(
            "triggering_member_id",
            "plan_name",
            "level",
            name="uq_commission_event_settlement_level",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    beneficiary_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    triggering_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan_name: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionEvent(beneficiary_id={self.beneficiary_id}, "
            f"trigger={self.triggering_member_id}, level={self.level}, "
            f"amount={self.amount})>"
        )
