"""
Earning services.

Submodules:
- window_manager: Earning window checks and referral extensions
- daily_task_processor: Once-per-day task earning credits
"""

from .daily_task_processor import DailyEarningResult, DailyTaskEarningProcessor
from .window_manager import (
    EarningStatus,
    EarningWindowManager,
    ExtensionOutcome,
    qualifies_for_extension,
)


__all__ = [
    "DailyEarningResult",
    "DailyTaskEarningProcessor",
    "EarningStatus",
    "EarningWindowManager",
    "ExtensionOutcome",
    "qualifies_for_extension",
]
