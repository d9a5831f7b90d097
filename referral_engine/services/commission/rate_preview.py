"""
Percentage commission preview.

Admin tool that shows what a percentage-per-level model would pay up a
member's upline for a given amount. Nothing is credited; settlement
always uses the fixed per-plan commission tables.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_engine.config.settings import settings
from referral_engine.services.base_service import BaseService
from referral_engine.services.network.sponsor_tree import SponsorTree

CENT = Decimal("0.01")


@dataclass(frozen=True)
class CommissionRateConfig:
    """Versioned set of per-level rates (index 0 is level 1)."""

    version: int
    rates: tuple[Decimal, ...]

    @classmethod
    def from_settings(cls) -> "CommissionRateConfig":
        return cls(
            version=settings.commission_preview_version,
            rates=tuple(settings.commission_preview_rates),
        )

    @property
    def max_levels(self) -> int:
        return len(self.rates)

    def rate_for(self, level: int) -> Decimal:
        if level < 1 or level > len(self.rates):
            return Decimal("0")
        return self.rates[level - 1]

    def level_amounts(self, amount: Decimal) -> list[Decimal]:
        """Amount per level, rounded half-up to cents."""
        return [
            (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)
            for rate in self.rates
        ]


@dataclass(frozen=True)
class PreviewLine:
    level: int
    beneficiary_id: int
    eligible: bool
    rate: Decimal
    amount: Decimal


class CommissionRatePreview(BaseService):
    """Read-only percentage commission calculator."""

    def __init__(
        self,
        session: AsyncSession,
        config: CommissionRateConfig | None = None,
    ) -> None:
        super().__init__(session)
        self.config = config or CommissionRateConfig.from_settings()
        self.tree = SponsorTree(session)

    async def preview(
        self, member_id: int, amount: Decimal
    ) -> list[PreviewLine]:
        """
        Compute hypothetical commissions for the member's upline.

        Args:
            member_id: Member whose purchase is previewed
            amount: Purchase amount

        Returns:
            One line per ancestor with a non-zero amount
        """
        amounts = self.config.level_amounts(amount)
        ancestors = await self.tree.ancestors(member_id, self.config.max_levels)

        lines = []
        for ancestor in ancestors:
            value = amounts[ancestor.level - 1]
            if value <= 0:
                continue
            lines.append(
                PreviewLine(
                    level=ancestor.level,
                    beneficiary_id=ancestor.member.id,
                    eligible=ancestor.eligible,
                    rate=self.config.rate_for(ancestor.level),
                    amount=value,
                )
            )

        self.logger.debug(
            "Commission preview computed",
            extra={
                "member_id": member_id,
                "config_version": self.config.version,
                "lines": len(lines),
            },
        )
        return lines
