"""
Repositories.

Data access layer.
"""

from referral_engine.repositories.base import BaseRepository
from referral_engine.repositories.commission_event_repository import (
    CommissionEventRepository,
)
from referral_engine.repositories.member_repository import MemberRepository
from referral_engine.repositories.plan_repository import (
    MembershipPlanRepository,
)
from referral_engine.repositories.task_earning_repository import (
    TaskEarningEventRepository,
)
from referral_engine.repositories.transaction_repository import (
    LedgerTransactionRepository,
)


__all__ = [
    "BaseRepository",
    "CommissionEventRepository",
    "LedgerTransactionRepository",
    "MemberRepository",
    "MembershipPlanRepository",
    "TaskEarningEventRepository",
]
