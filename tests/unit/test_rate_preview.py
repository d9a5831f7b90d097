"""
Unit tests for the percentage commission preview.

Tests cover:
- Per-level amounts and rounding
- Preview lines built from the upline (tree mocked)
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from referral_engine.services.commission.rate_preview import (
    CommissionRateConfig,
    CommissionRatePreview,
)
from referral_engine.services.network.sponsor_tree import Ancestor


@pytest.fixture
def config():
    return CommissionRateConfig(
        version=3,
        rates=(
            Decimal("0.20"),
            Decimal("0.15"),
            Decimal("0.10"),
            Decimal("0.08"),
            Decimal("0.07"),
        ),
    )


class TestCommissionRateConfig:
    """Test rate configuration helpers."""

    def test_level_amounts(self, config):
        amounts = config.level_amounts(Decimal("1000"))
        assert amounts == [
            Decimal("200.00"),
            Decimal("150.00"),
            Decimal("100.00"),
            Decimal("80.00"),
            Decimal("70.00"),
        ]

    def test_rounds_half_up_to_cents(self):
        config = CommissionRateConfig(version=1, rates=(Decimal("0.15"),))
        # 0.15 * 33.3 = 4.995
        assert config.level_amounts(Decimal("33.3")) == [Decimal("5.00")]

    def test_rate_for_out_of_range(self, config):
        assert config.rate_for(0) == Decimal("0")
        assert config.rate_for(6) == Decimal("0")
        assert config.rate_for(1) == Decimal("0.20")

    def test_from_settings(self):
        config = CommissionRateConfig.from_settings()
        assert config.max_levels == 5
        assert config.rates[0] == Decimal("0.20")


class TestCommissionRatePreview:
    """Test preview lines with a mocked sponsor tree."""

    @pytest.mark.asyncio
    async def test_preview_lines(self, mock_session, config):
        preview = CommissionRatePreview(mock_session, config)
        preview.tree = AsyncMock()
        preview.tree.ancestors = AsyncMock(
            return_value=[
                Ancestor(level=1, member=SimpleNamespace(id=10), eligible=True),
                Ancestor(level=2, member=SimpleNamespace(id=20), eligible=False),
            ]
        )

        lines = await preview.preview(99, Decimal("500"))

        preview.tree.ancestors.assert_awaited_once_with(99, 5)
        assert [(line.level, line.beneficiary_id) for line in lines] == [
            (1, 10),
            (2, 20),
        ]
        assert lines[0].amount == Decimal("100.00")
        assert lines[1].amount == Decimal("75.00")
        assert lines[1].eligible is False
        # Preview never touches balances
        mock_session.commit.assert_not_called()
