"""
Business logic constants for the referral engine.

Central location for business rules that are not deployment knobs.
This module can be imported by services and scripts without circular dependencies.
"""

from decimal import Decimal

# Membership tiers, lowest first.
# A sponsor's window is extended only by a referral of the same or higher tier.
TIER_ORDER: dict[str, int] = {
    "BASIC": 1,
    "STANDARD": 2,
    "PREMIUM": 3,
}

# Commission table depth supported by plan definitions
MAX_COMMISSION_LEVELS = 5

# Renewal discount ladder keyed by prior renewal count.
# Anything above the last key uses RENEWAL_DISCOUNT_MAX.
RENEWAL_DISCOUNTS: dict[int, Decimal] = {
    0: Decimal("0"),
    1: Decimal("0.10"),
}
RENEWAL_DISCOUNT_MAX = Decimal("0.20")

# Length of one earning day for remaining-days display
SECONDS_PER_DAY = 24 * 60 * 60

# Default plan catalog (seeded by scripts/seed_membership_plans.py)
DEFAULT_PLANS: list[dict] = [
    {
        "name": "BASIC",
        "display_name": "Basic Plan",
        "price": Decimal("1000"),
        "daily_task_earning": Decimal("50"),
        "max_earning_days": 30,
        "extended_earning_days": 60,
        "minimum_withdrawal": Decimal("2000"),
        "voucher_amount": Decimal("500"),
        "commissions": [
            Decimal("200"), Decimal("100"), Decimal("30"),
            Decimal("15"), Decimal("5"),
        ],
    },
    {
        "name": "STANDARD",
        "display_name": "Standard Plan",
        "price": Decimal("3000"),
        "daily_task_earning": Decimal("150"),
        "max_earning_days": 30,
        "extended_earning_days": 60,
        "minimum_withdrawal": Decimal("4000"),
        "voucher_amount": Decimal("1000"),
        "commissions": [
            Decimal("250"), Decimal("200"), Decimal("170"),
            Decimal("160"), Decimal("120"),
        ],
    },
    {
        "name": "PREMIUM",
        "display_name": "Premium Plan",
        "price": Decimal("8000"),
        "daily_task_earning": Decimal("400"),
        "max_earning_days": 30,
        "extended_earning_days": 60,
        "minimum_withdrawal": Decimal("10000"),
        "voucher_amount": Decimal("1500"),
        "commissions": [
            Decimal("700"), Decimal("600"), Decimal("500"),
            Decimal("400"), Decimal("300"),
        ],
    },
]


def tier_rank(plan_name: str | None) -> int | None:
    """
    Get tier rank for a plan name.

    Args:
        plan_name: Plan name (case-insensitive)

    Returns:
        Rank (1 = lowest) or None for unknown plans
    """
    if not plan_name:
        return None
    return TIER_ORDER.get(plan_name.upper())

# Max seconds one notification delivery may take before it is dropped
NOTIFICATION_TIMEOUT = 10
