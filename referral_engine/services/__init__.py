"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from referral_engine.services.base_service import (
    BaseService,
    log_operation,
    transaction,
    with_rollback_on_error,
)

# Core Services
from referral_engine.services.commission import (
    CommissionRatePreview,
    CommissionSettlementEngine,
)
from referral_engine.services.earning import (
    DailyTaskEarningProcessor,
    EarningWindowManager,
)
from referral_engine.services.membership import MembershipLifecycle
from referral_engine.services.network import NetworkAnalytics, SponsorTree
from referral_engine.services.notifications import (
    LoggingNotificationSink,
    NotificationDispatcher,
    NotificationEvent,
    NotificationKind,
    NotificationSink,
)
from referral_engine.services.plans import PlanCache, PlanCatalog


__all__ = [
    # Base
    "BaseService",
    "log_operation",
    "transaction",
    "with_rollback_on_error",
    # Core
    "CommissionRatePreview",
    "CommissionSettlementEngine",
    "DailyTaskEarningProcessor",
    "EarningWindowManager",
    "MembershipLifecycle",
    "NetworkAnalytics",
    "PlanCache",
    "PlanCatalog",
    "SponsorTree",
    # Notifications
    "LoggingNotificationSink",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationKind",
    "NotificationSink",
]
