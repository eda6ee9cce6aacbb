"""
hours_config -- single public entrypoint for subsystem configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain margin
    weights, bonus tiers, capacity defaults and thresholds, budget ratios,
    and ledger policy.  YAML loading is internal to this package.

Invariants enforced:
    - Every returned ``HoursSettings`` has passed ``validate_settings``.
    - Same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema or validation failures.

Audit relevance:
    Every call emits an ``HOURS_CONFIG_TRACE`` log entry with the config id,
    version and checksum, tying computed rates and bonuses back to the
    settings that governed them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hours_config.loader import load_yaml_file, parse_settings
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

_logger = logging.getLogger("hours_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> HoursSettings:
    """
    Load, validate and return the active settings.

    Args:
        config_path: Override path to a settings YAML file.
            Defaults to hours_config/defaults.yaml.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "HOURS_CONFIG_TRACE",
        extra={
            "trace_type": "HOURS_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "component_count": len(settings.margin.components),
        },
    )
    return settings


__all__ = [
    "BonusSettings",
    "BudgetSettings",
    "CapacitySettings",
    "DEFAULT_CONFIG_PATH",
    "HoursSettings",
    "LedgerSettings",
    "MarginComponentDef",
    "MarginSettings",
    "RoleSettings",
    "get_active_config",
]
