"""Budget consumption and capacity rollups over completed work."""

from hours_modules.budget.models import (
    BonusStateTotal,
    BudgetFilter,
    BudgetLine,
    BudgetOverview,
    BudgetStatus,
    PerformanceCounts,
    ResourceLine,
)
from hours_modules.budget.rollup import budget_status, performance_counts

__all__ = [
    "BonusStateTotal",
    "BudgetFilter",
    "BudgetLine",
    "BudgetOverview",
    "BudgetStatus",
    "PerformanceCounts",
    "ResourceLine",
    "budget_status",
    "performance_counts",
]
