"""
Model enums.

String enums stored as VARCHAR values.
"""

from enum import StrEnum


class MembershipStatus(StrEnum):
    """Membership lifecycle states."""

    NONE = "NONE"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class TransactionType(StrEnum):
    """Ledger transaction kinds."""

    REFERRAL_COMMISSION = "REFERRAL_COMMISSION"
    TASK_EARNING = "TASK_EARNING"
    REFUND = "REFUND"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    MEMBERSHIP_ACTIVATION = "MEMBERSHIP_ACTIVATION"
    MEMBERSHIP_RENEWAL = "MEMBERSHIP_RENEWAL"
    MEMBERSHIP_UPGRADE = "MEMBERSHIP_UPGRADE"


class TransactionStatus(StrEnum):
    """Ledger transaction status."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
