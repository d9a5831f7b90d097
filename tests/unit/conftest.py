"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Plan snapshots built without a database
"""

from decimal import Decimal
from types import MappingProxyType

import pytest

from referral_engine.services.plans.plan_catalog import (
    CommissionLevel,
    PlanSnapshot,
)


def build_snapshot(
    name: str = "BASIC",
    price: str = "1000",
    commissions: tuple[str, ...] = ("200", "100", "30", "15", "5"),
    inactive_levels: tuple[int, ...] = (),
) -> PlanSnapshot:
    """Create a plan snapshot with the given commission amounts."""
    table = {
        level: CommissionLevel(
            level=level,
            amount=Decimal(amount),
            description=None,
            is_active=level not in inactive_levels,
        )
        for level, amount in enumerate(commissions, start=1)
    }
    return PlanSnapshot(
        name=name,
        display_name=f"{name.title()} Plan",
        price=Decimal(price),
        daily_task_earning=Decimal("50"),
        max_earning_days=30,
        extended_earning_days=60,
        minimum_withdrawal=Decimal("2000"),
        voucher_amount=Decimal("500"),
        version=1,
        commission_table=MappingProxyType(table),
    )


@pytest.fixture
def snapshot_factory():
    """Factory for custom plan snapshots."""
    return build_snapshot


@pytest.fixture
def basic_snapshot():
    """
    BASIC plan snapshot.

    Default values:
    - price: 1000
    - commissions: 200, 100, 30, 15, 5
    """
    return build_snapshot()
