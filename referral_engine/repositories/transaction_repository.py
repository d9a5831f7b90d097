"""
Ledger transaction repository.

Data access layer for LedgerTransaction model.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.models.enums import TransactionStatus, TransactionType
from referral_engine.models.transaction import LedgerTransaction
from referral_engine.repositories.base import BaseRepository


class LedgerTransactionRepository(BaseRepository[LedgerTransaction]):
    """Ledger transaction repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger transaction repository."""
        super().__init__(LedgerTransaction, session)

    async def record(
        self,
        member_id: int,
        kind: TransactionType,
        amount: Decimal,
        description: str,
        reference: str | None = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
    ) -> LedgerTransaction:
        """
        Append an audit row.

        Args:
            member_id: Member ID
            kind: Transaction type
            amount: Amount
            description: Human readable description
            reference: Idempotency or correlation reference
            status: Transaction status

        Returns:
            Created transaction
        """
        return await self.create(
            member_id=member_id,
            kind=kind,
            amount=amount,
            description=description,
            reference=reference,
            status=status,
        )

    async def get_by_member(
        self,
        member_id: int,
        kind: TransactionType | None = None,
        limit: int | None = None,
    ) -> list[LedgerTransaction]:
        """
        Get member transactions, newest first.

        Args:
            member_id: Member ID
            kind: Optional type filter
            limit: Max number of results

        Returns:
            List of transactions
        """
        stmt = select(LedgerTransaction).where(
            LedgerTransaction.member_id == member_id
        )
        if kind:
            stmt = stmt.where(LedgerTransaction.kind == kind)
        stmt = stmt.order_by(LedgerTransaction.id.desc())
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
