"""
Ledger transaction model.

Generic append-only financial audit trail.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from referral_engine.models.base import Base
from referral_engine.models.enums import TransactionStatus
from referral_engine.models.types import MoneyType, UTCDateTime
from referral_engine.utils.datetime_utils import utc_now


class LedgerTransaction(Base):
    """Financial audit row. Never updated or deleted by the engine."""

    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=TransactionStatus.COMPLETED, nullable=False
    )
    reference: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerTransaction(member_id={self.member_id}, kind={self.kind}, "
            f"amount={self.amount})>"
        )
