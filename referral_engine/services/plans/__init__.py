"""Plan catalog services."""

from .plan_catalog import (
    CommissionLevel,
    PlanCache,
    PlanCatalog,
    PlanSnapshot,
    seed_default_plans,
)


__all__ = [
    "CommissionLevel",
    "PlanCache",
    "PlanCatalog",
    "PlanSnapshot",
    "seed_default_plans",
]
