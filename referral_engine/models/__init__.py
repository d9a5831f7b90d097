"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from referral_engine.models.base import Base
from referral_engine.models.commission_event import CommissionEvent
from referral_engine.models.enums import (
    MembershipStatus,
    TransactionStatus,
    TransactionType,
)
from referral_engine.models.member import Member
from referral_engine.models.plan import MembershipPlan, PlanCommission
from referral_engine.models.task_earning_event import TaskEarningEvent
from referral_engine.models.transaction import LedgerTransaction


__all__ = [
    "Base",
    "CommissionEvent",
    "LedgerTransaction",
    "Member",
    "MembershipPlan",
    "MembershipStatus",
    "PlanCommission",
    "TaskEarningEvent",
    "TransactionStatus",
    "TransactionType",
]
