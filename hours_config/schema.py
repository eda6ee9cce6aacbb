"""
Configuration Schema (``hours_config.schema``).

Frozen dataclasses describing every tunable of the subsystem.  Instances
are produced by ``hours_config.loader`` from YAML and handed to services;
nothing else constructs them from files.

All numeric settings that feed money or percentage arithmetic are
``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class MarginComponentDef:
    """One slice of the billable hour."""

    name: str
    weight: Decimal
    label: str = ""


@dataclass(frozen=True)
class MarginSettings:
    components: tuple[MarginComponentDef, ...]
    base_component: str = "professional_costs"

    @property
    def component_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.components)

    @property
    def total_weight(self) -> Decimal:
        return sum((c.weight for c in self.components), Decimal("0"))

    def weight_of(self, name: str) -> Decimal:
        for component in self.components:
            if component.name == name:
                return component.weight
        raise KeyError(name)


@dataclass(frozen=True)
class BonusSettings:
    positive_percentage: Decimal = Decimal("5.0")
    zero_percentage: Decimal = Decimal("2.5")


@dataclass(frozen=True)
class CapacitySettings:
    default_annual_hours: Decimal = Decimal("1920")
    hours_per_day: Decimal = Decimal("8")
    weeks_per_year: int = 52
    overloaded_percentage: Decimal = Decimal("100")
    near_full_percentage: Decimal = Decimal("80")
    underutilized_percentage: Decimal = Decimal("20")
    counted_statuses: tuple[str, ...] = ("scheduled", "in_progress", "completed")


@dataclass(frozen=True)
class BudgetSettings:
    near_budget_ratio: Decimal = Decimal("0.9")
    over_budget_ratio: Decimal = Decimal("1.0")


@dataclass(frozen=True)
class LedgerSettings:
    holding_activity_name: str = "Reassignments"
    allow_asymmetric_grants: bool = False
    statistics_window_days: int = 30
    default_page_size: int = 50
    max_page_size: int = 500


@dataclass(frozen=True)
class RoleSettings:
    budget_bypass: frozenset[str] = frozenset({"super_admin"})


@dataclass(frozen=True)
class HoursSettings:
    """Root configuration object."""

    config_id: str
    version: int
    margin: MarginSettings
    bonus: BonusSettings
    capacity: CapacitySettings
    budget: BudgetSettings
    ledger: LedgerSettings
    roles: RoleSettings
    checksum: str = ""
