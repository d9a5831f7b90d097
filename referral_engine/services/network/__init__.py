"""
Network services.

Submodules:
- sponsor_tree: Upline chains, batched subtree walks, sponsor reassignment
- analytics: Read-only network statistics and team views
"""

from .analytics import NetworkAnalytics, NetworkNode, NetworkStats, TopEarner
from .sponsor_tree import Ancestor, LevelStats, SponsorTree, TeamAggregate


__all__ = [
    "Ancestor",
    "LevelStats",
    "NetworkAnalytics",
    "NetworkNode",
    "NetworkStats",
    "SponsorTree",
    "TeamAggregate",
    "TopEarner",
]
