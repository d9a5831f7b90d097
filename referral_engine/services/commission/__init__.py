"""
Commission services.

Submodules:
- settlement_engine: Fixed per-plan, per-level commission payout
- rate_preview: Percentage-rate preview for admins (never credited)
"""

from .rate_preview import CommissionRateConfig, CommissionRatePreview, PreviewLine
from .settlement_engine import (
    CommissionCredit,
    CommissionSettlementEngine,
    SettlementResult,
)


__all__ = [
    "CommissionCredit",
    "CommissionRateConfig",
    "CommissionRatePreview",
    "CommissionSettlementEngine",
    "PreviewLine",
    "SettlementResult",
]
