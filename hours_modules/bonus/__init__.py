"""
Bonus/penalty evaluation for completed tasks.

A completed task earns a bonus when it finishes under estimate, a smaller
bonus when it lands exactly on estimate, and a penalty when it overruns.
Records start pending and are approved, rejected or (for penalties)
remediated by a manager.
"""

from hours_modules.bonus.evaluator import classify_variance, evaluate
from hours_modules.bonus.models import (
    BonusClassification,
    BonusComputation,
    BonusFilter,
    BonusRecord,
    BonusStatus,
    DispositionAction,
    RemediationAction,
    ResourceBonusTotals,
)

__all__ = [
    "BonusClassification",
    "BonusComputation",
    "BonusFilter",
    "BonusRecord",
    "BonusStatus",
    "DispositionAction",
    "RemediationAction",
    "ResourceBonusTotals",
    "classify_variance",
    "evaluate",
]
