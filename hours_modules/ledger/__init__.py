"""
Hour ledger: credits, debits and redistribution.

A completed task that used fewer minutes than estimated holds a credit; one
that used more holds a debit.  Managers move credit minutes to other tasks
through redistribution records, which are append-only and can be cancelled
once.
"""

from hours_modules.ledger.models import (
    CreditPosition,
    DebitPosition,
    DestinationKind,
    ExistingTaskDestination,
    LedgerStatistics,
    NewTaskDestination,
    RedistributionEntry,
    RedistributionFilter,
    RedistributionPage,
    RedistributionRecord,
    RedistributionStatus,
    ResourceCreditSummary,
    resolve_destination,
)

__all__ = [
    "CreditPosition",
    "DebitPosition",
    "DestinationKind",
    "ExistingTaskDestination",
    "LedgerStatistics",
    "NewTaskDestination",
    "RedistributionEntry",
    "RedistributionFilter",
    "RedistributionPage",
    "RedistributionRecord",
    "RedistributionStatus",
    "ResourceCreditSummary",
    "resolve_destination",
]
