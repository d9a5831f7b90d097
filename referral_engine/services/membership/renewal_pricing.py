"""
Renewal pricing.

Loyalty discount ladder applied when a member buys a plan again.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from referral_engine.config.business_constants import (
    RENEWAL_DISCOUNT_MAX,
    RENEWAL_DISCOUNTS,
)

WHOLE_UNIT = Decimal("1")


@dataclass(frozen=True)
class RenewalQuote:
    base_price: Decimal
    renewal_price: Decimal
    discount_rate: Decimal

    @property
    def discount_percentage(self) -> int:
        return int(self.discount_rate * 100)

    @property
    def savings(self) -> Decimal:
        return self.base_price - self.renewal_price


def renewal_discount_rate(renewal_count: int) -> Decimal:
    """
    Discount for a member with the given number of prior renewals.

    0 renewals pay full price, 1 renewal gets 10 %, 2 or more get 20 %.
    """
    if renewal_count < 0:
        raise ValueError(f"renewal_count must be >= 0, got {renewal_count}")
    return RENEWAL_DISCOUNTS.get(renewal_count, RENEWAL_DISCOUNT_MAX)


def renewal_price(base_price: Decimal, renewal_count: int) -> RenewalQuote:
    """
    Price of a renewal, rounded half-up to whole currency units.

    Args:
        base_price: Plan list price
        renewal_count: Renewals before this purchase

    Returns:
        RenewalQuote
    """
    rate = renewal_discount_rate(renewal_count)
    if rate == 0:
        price = base_price
    else:
        price = (base_price * (1 - rate)).quantize(
            WHOLE_UNIT, rounding=ROUND_HALF_UP
        )
    return RenewalQuote(
        base_price=base_price, renewal_price=price, discount_rate=rate
    )
