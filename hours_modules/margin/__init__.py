"""
Margin Cascade Module (``hours_modules.margin``).

Turns a resource's base hourly cost and nine stakeholder toggles into a
blended final hourly rate, and persists that rate when the resource is
assigned to a project.

Invariants enforced
-------------------
* Component weights sum to exactly 100 (validated by ``hours_config``).
* ``0 <= final_rate <= full_rate``; all toggles on gives the full rate,
  all off gives zero.
* A resource is assigned to a project at most once.
"""

from hours_modules.margin.cascade import compute_full_rate, compute_margin, resolve_toggles
from hours_modules.margin.models import (
    BareResourceEntry,
    ComponentBreakdown,
    MarginQuote,
    MarginRecord,
    ProjectMarginSummary,
    ResourceAllotment,
    ResourceMinutesEntry,
)

__all__ = [
    "BareResourceEntry",
    "ComponentBreakdown",
    "MarginQuote",
    "MarginRecord",
    "ProjectMarginSummary",
    "ResourceAllotment",
    "ResourceMinutesEntry",
    "compute_full_rate",
    "compute_margin",
    "resolve_toggles",
]
