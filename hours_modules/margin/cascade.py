"""
Margin Cascade -- pure computation of blended hourly rates.

Every billable hour is split across a fixed table of components whose
weights sum to 100.  The base hourly cost of a resource is exactly the
professional-costs slice, so the full rate is

    full  = base * 100 / weight(base_component)
    euro  = full * weight / 100                      (per component)
    final = full - sum(euro of disabled components)

Arithmetic is exact ``Decimal``; with weights summing to 100 the euro
values of all components add back to ``full`` exactly, so all-on gives
``final == full`` and all-off gives ``final == 0``.  Only the preview's
total cost is rounded (to cents).

No I/O, no ORM, no clock.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from hours_config.schema import MarginSettings
from hours_kernel.domain.values import (
    HUNDRED,
    cost_of_minutes,
    quantize_amount,
    require_minutes,
)
from hours_kernel.exceptions import InvalidHourlyCostError, UnknownMarginComponentError
from hours_modules.margin.models import ComponentBreakdown, MarginQuote


def resolve_toggles(
    toggles: Mapping[str, bool] | None,
    margin: MarginSettings,
) -> dict[str, bool]:
    """
    Fill in missing toggles as enabled and reject unknown names.

    Raises:
        UnknownMarginComponentError: a key is not a configured component.
    """
    known = margin.component_names
    provided = dict(toggles or {})
    for name in provided:
        if name not in known:
            raise UnknownMarginComponentError(name)
    return {name: bool(provided.get(name, True)) for name in known}


def compute_full_rate(base_cost: Decimal, margin: MarginSettings) -> Decimal:
    """
    Raises:
        InvalidHourlyCostError: base cost is not strictly positive.
    """
    base = Decimal(base_cost)
    if base <= 0:
        raise InvalidHourlyCostError(base_cost)
    return base * HUNDRED / margin.weight_of(margin.base_component)


def compute_margin(
    base_cost: Decimal,
    toggles: Mapping[str, bool] | None,
    margin: MarginSettings,
    minutes: int | None = None,
) -> MarginQuote:
    """Run the cascade and, when minutes are given, price them at the final rate."""
    full_rate = compute_full_rate(base_cost, margin)
    active = resolve_toggles(toggles, margin)

    components = tuple(
        ComponentBreakdown(
            name=c.name,
            label=c.label,
            percentage=c.weight,
            euro_value=full_rate * c.weight / HUNDRED,
            active=active[c.name],
        )
        for c in margin.components
    )
    final_rate = full_rate - sum(
        (c.euro_value for c in components if not c.active), Decimal("0")
    )

    total_cost = None
    if minutes is not None:
        require_minutes(minutes, "minutes", allow_zero=True)
        total_cost = quantize_amount(cost_of_minutes(final_rate, minutes))

    return MarginQuote(
        base_cost=Decimal(base_cost),
        full_rate=full_rate,
        final_rate=final_rate,
        components=components,
        minutes=minutes,
        total_cost=total_cost,
    )
