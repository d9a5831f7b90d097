"""Unit tests for plan snapshots and the plan cache."""

from decimal import Decimal

import pytest

from referral_engine.services.plans.plan_catalog import PlanCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestCommissionAmount:
    """Test per-level commission lookup."""

    def test_configured_levels(self, basic_snapshot):
        assert basic_snapshot.commission_amount(1) == Decimal("200")
        assert basic_snapshot.commission_amount(5) == Decimal("5")

    def test_missing_level(self, basic_snapshot):
        assert basic_snapshot.commission_amount(6) is None

    def test_inactive_level(self, snapshot_factory):
        snapshot = snapshot_factory(inactive_levels=(2,))
        assert snapshot.commission_amount(2) is None
        assert snapshot.commission_amount(3) == Decimal("30")

    def test_table_is_read_only(self, basic_snapshot):
        with pytest.raises(TypeError):
            basic_snapshot.commission_table[1] = None


class TestPlanCache:
    """Test TTL and invalidation."""

    def test_hit_before_expiry(self, basic_snapshot):
        clock = FakeClock()
        cache = PlanCache(ttl_seconds=60, clock=clock)
        cache.put(basic_snapshot)

        clock.now += 59
        assert cache.get("BASIC") is basic_snapshot

    def test_miss_after_expiry(self, basic_snapshot):
        clock = FakeClock()
        cache = PlanCache(ttl_seconds=60, clock=clock)
        cache.put(basic_snapshot)

        clock.now += 60
        assert cache.get("BASIC") is None

    def test_invalidate_one(self, basic_snapshot, snapshot_factory):
        cache = PlanCache(ttl_seconds=60)
        premium = snapshot_factory(name="PREMIUM", price="8000")
        cache.put(basic_snapshot)
        cache.put(premium)

        cache.invalidate("basic")

        assert cache.get("BASIC") is None
        assert cache.get("PREMIUM") is premium

    def test_invalidate_all(self, basic_snapshot):
        cache = PlanCache(ttl_seconds=60)
        cache.put(basic_snapshot)

        cache.invalidate()

        assert cache.get("BASIC") is None

    def test_zero_ttl_disables_cache(self, basic_snapshot):
        cache = PlanCache(ttl_seconds=0)
        cache.put(basic_snapshot)
        assert cache.get("BASIC") is None
