"""
Margin Cascade Domain Models.

Frozen DTOs for margin previews, stored project assignments, and the
two shapes an assignment request may arrive in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping
from uuid import UUID

from hours_kernel.domain.values import cost_of_minutes, quantize_amount


@dataclass(frozen=True)
class ComponentBreakdown:
    """One component's slice of the full rate."""

    name: str
    label: str
    percentage: Decimal
    euro_value: Decimal
    active: bool


@dataclass(frozen=True)
class MarginQuote:
    """Result of running the cascade for one base cost and toggle set."""

    base_cost: Decimal
    full_rate: Decimal
    final_rate: Decimal
    components: tuple[ComponentBreakdown, ...]
    minutes: int | None = None
    total_cost: Decimal | None = None

    @property
    def disabled_total(self) -> Decimal:
        return sum(
            (c.euro_value for c in self.components if not c.active), Decimal("0")
        )

    @property
    def toggles(self) -> Mapping[str, bool]:
        return MappingProxyType({c.name: c.active for c in self.components})


@dataclass(frozen=True)
class MarginRecord:
    """A resource assigned to a project with its blended rate."""

    id: UUID
    project_id: UUID
    resource_id: UUID
    base_hourly_cost: Decimal
    assigned_minutes: int
    toggles: Mapping[str, bool]
    full_rate: Decimal
    final_rate: Decimal
    components: tuple[ComponentBreakdown, ...] = ()

    @property
    def total_cost(self) -> Decimal:
        return quantize_amount(cost_of_minutes(self.final_rate, self.assigned_minutes))


@dataclass(frozen=True)
class ProjectMarginSummary:
    project_id: UUID
    records: tuple[MarginRecord, ...]

    @property
    def total_cost(self) -> Decimal:
        return quantize_amount(sum((r.total_cost for r in self.records), Decimal("0")))

    @property
    def total_minutes(self) -> int:
        return sum(r.assigned_minutes for r in self.records)


# Assignment request variants.  Callers may pass either a bare resource id
# or a resource id with its own minutes; both are resolved once, at the
# service boundary, into a ResourceAllotment.


@dataclass(frozen=True)
class BareResourceEntry:
    resource_id: UUID


@dataclass(frozen=True)
class ResourceMinutesEntry:
    resource_id: UUID
    minutes: int


AssignmentEntry = BareResourceEntry | ResourceMinutesEntry


@dataclass(frozen=True)
class ResourceAllotment:
    """Canonical assignment request: who, and for how many minutes."""

    resource_id: UUID
    minutes: int
    toggles: Mapping[str, bool] = field(default_factory=dict)
