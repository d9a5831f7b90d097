"""
Task earning event model.

Append-only history of daily task credits.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.models.base import Base
from referral_engine.models.types import MoneyType, UTCDateTime
from referral_engine.utils.datetime_utils import utc_now


class TaskEarningEvent(Base):
    """One daily earning credit. At most one per member per calendar day."""

    __tablename__ = "task_earning_events"
    __table_args__ = (
        UniqueConstraint(
            "member_id", "earning_date", name="uq_task_earning_member_day"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan_name: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    tasks_completed: Mapped[int] = mapped_column(
        Integer, default=1, nullable=False
    )
    earning_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_extended_period: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Credited after the base window, inside the extension",
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )
