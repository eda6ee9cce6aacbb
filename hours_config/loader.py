"""
Configuration Loader (``hours_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses of
``hours_config.schema``.  The single public runtime entry point is
``hours_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys have no silent defaults.
* Margin component weights sum to exactly 100 and include the base
  component with a positive weight.
* Capacity thresholds are ordered: underutilized < near_full <= overloaded.
* ``compute_checksum`` gives a deterministic SHA-256 over the raw data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from hours_config.schema import (
    BonusSettings,
    BudgetSettings,
    CapacitySettings,
    HoursSettings,
    LedgerSettings,
    MarginComponentDef,
    MarginSettings,
    RoleSettings,
)

_KNOWN_TASK_STATUSES = frozenset({"scheduled", "in_progress", "completed"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a Decimal from a YAML scalar.  Strings are preferred over floats."""
    if isinstance(value, bool):
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field}: cannot parse decimal from {value!r}") from exc


def parse_margin(data: dict[str, Any]) -> MarginSettings:
    components = tuple(
        MarginComponentDef(
            name=c["name"],
            weight=parse_decimal(c["weight"], f"margin.components.{c['name']}.weight"),
            label=c.get("label", c["name"]),
        )
        for c in data["components"]
    )
    return MarginSettings(
        components=components,
        base_component=data.get("base_component", "professional_costs"),
    )


def parse_bonus(data: dict[str, Any]) -> BonusSettings:
    return BonusSettings(
        positive_percentage=parse_decimal(data["positive_percentage"], "bonus.positive_percentage"),
        zero_percentage=parse_decimal(data["zero_percentage"], "bonus.zero_percentage"),
    )


def parse_capacity(data: dict[str, Any]) -> CapacitySettings:
    return CapacitySettings(
        default_annual_hours=parse_decimal(
            data["default_annual_hours"], "capacity.default_annual_hours"
        ),
        hours_per_day=parse_decimal(data.get("hours_per_day", "8"), "capacity.hours_per_day"),
        weeks_per_year=int(data.get("weeks_per_year", 52)),
        overloaded_percentage=parse_decimal(
            data.get("overloaded_percentage", "100"), "capacity.overloaded_percentage"
        ),
        near_full_percentage=parse_decimal(
            data.get("near_full_percentage", "80"), "capacity.near_full_percentage"
        ),
        underutilized_percentage=parse_decimal(
            data.get("underutilized_percentage", "20"), "capacity.underutilized_percentage"
        ),
        counted_statuses=tuple(
            data.get("counted_statuses", ("scheduled", "in_progress", "completed"))
        ),
    )


def parse_budget(data: dict[str, Any]) -> BudgetSettings:
    return BudgetSettings(
        near_budget_ratio=parse_decimal(
            data.get("near_budget_ratio", "0.9"), "budget.near_budget_ratio"
        ),
        over_budget_ratio=parse_decimal(
            data.get("over_budget_ratio", "1.0"), "budget.over_budget_ratio"
        ),
    )


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    return LedgerSettings(
        holding_activity_name=data.get("holding_activity_name", "Reassignments"),
        allow_asymmetric_grants=bool(data.get("allow_asymmetric_grants", False)),
        statistics_window_days=int(data.get("statistics_window_days", 30)),
        default_page_size=int(data.get("default_page_size", 50)),
        max_page_size=int(data.get("max_page_size", 500)),
    )


def parse_roles(data: dict[str, Any]) -> RoleSettings:
    return RoleSettings(budget_bypass=frozenset(data.get("budget_bypass", ["super_admin"])))


def validate_settings(settings: HoursSettings) -> list[str]:
    """Return a list of validation errors (empty when valid)."""
    errors: list[str] = []

    margin = settings.margin
    names = margin.component_names
    if len(set(names)) != len(names):
        errors.append("margin.components: duplicate component names")
    if margin.total_weight != Decimal("100"):
        errors.append(
            f"margin.components: weights must sum to exactly 100, got {margin.total_weight}"
        )
    if any(c.weight < 0 for c in margin.components):
        errors.append("margin.components: weights must not be negative")
    if margin.base_component not in names:
        errors.append(f"margin.base_component: {margin.base_component!r} is not a component")
    elif margin.weight_of(margin.base_component) <= 0:
        errors.append("margin.base_component: weight must be greater than zero")

    bonus = settings.bonus
    if bonus.positive_percentage < 0 or bonus.zero_percentage < 0:
        errors.append("bonus: percentages must not be negative")

    capacity = settings.capacity
    if capacity.default_annual_hours < 0:
        errors.append("capacity.default_annual_hours: must not be negative")
    if capacity.weeks_per_year <= 0:
        errors.append("capacity.weeks_per_year: must be positive")
    if not (
        capacity.underutilized_percentage
        < capacity.near_full_percentage
        <= capacity.overloaded_percentage
    ):
        errors.append("capacity: thresholds must satisfy underutilized < near_full <= overloaded")
    unknown = set(capacity.counted_statuses) - _KNOWN_TASK_STATUSES
    if unknown:
        errors.append(f"capacity.counted_statuses: unknown statuses {sorted(unknown)}")

    budget = settings.budget
    if not (Decimal("0") < budget.near_budget_ratio <= budget.over_budget_ratio):
        errors.append("budget: ratios must satisfy 0 < near_budget_ratio <= over_budget_ratio")

    ledger = settings.ledger
    if not ledger.holding_activity_name.strip():
        errors.append("ledger.holding_activity_name: must not be empty")
    if ledger.statistics_window_days <= 0:
        errors.append("ledger.statistics_window_days: must be positive")
    if not (0 < ledger.default_page_size <= ledger.max_page_size):
        errors.append("ledger: page sizes must satisfy 0 < default_page_size <= max_page_size")

    return errors


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> HoursSettings:
    """
    Parse and validate a settings dict.

    Raises:
        KeyError: a required section or key is missing.
        ValueError: a value is malformed or validation fails.
    """
    settings = HoursSettings(
        config_id=data.get("config_id", "unnamed"),
        version=int(data.get("version", 1)),
        margin=parse_margin(data["margin"]),
        bonus=parse_bonus(data["bonus"]),
        capacity=parse_capacity(data["capacity"]),
        budget=parse_budget(data.get("budget", {})),
        ledger=parse_ledger(data.get("ledger", {})),
        roles=parse_roles(data.get("roles", {})),
        checksum=compute_checksum(data),
    )

    errors = validate_settings(settings)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
    return settings
