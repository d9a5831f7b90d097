"""
Membership services.

Submodules:
- lifecycle: Activation, renewal options, expiry sweep and notices
- renewal_pricing: Loyalty discount ladder
"""

from .lifecycle import (
    ActivationResult,
    ExpiryNoticeResult,
    MembershipLifecycle,
    RenewalOption,
    SweepResult,
)
from .renewal_pricing import RenewalQuote, renewal_discount_rate, renewal_price


__all__ = [
    "ActivationResult",
    "ExpiryNoticeResult",
    "MembershipLifecycle",
    "RenewalOption",
    "RenewalQuote",
    "SweepResult",
    "renewal_discount_rate",
    "renewal_price",
]
