"""
Bonus/Penalty Evaluator -- pure computation.

    variance = estimated - actual

    variance > 0  positive  amount =  full_rate * actual/60 * positive_pct/100
    variance = 0  zero      amount =  full_rate * actual/60 * zero_pct/100
    variance < 0  negative  amount = -penalty_rate * |variance|/60

``full_rate`` is the resource's base cost grossed up by the margin cascade;
``penalty_rate`` is the project's final rate for the resource, or the base
cost when the resource has no margin record on the project.  Amounts are
rounded to cents.  No I/O.
"""

from __future__ import annotations

from decimal import Decimal

from hours_config.schema import BonusSettings, MarginSettings
from hours_kernel.domain.values import HUNDRED, cost_of_minutes, quantize_amount
from hours_modules.bonus.models import BonusClassification, BonusComputation
from hours_modules.margin.cascade import compute_full_rate


def classify_variance(variance_minutes: int) -> BonusClassification:
    if variance_minutes > 0:
        return BonusClassification.POSITIVE
    if variance_minutes == 0:
        return BonusClassification.ZERO
    return BonusClassification.NEGATIVE


def evaluate(
    estimated_minutes: int,
    actual_minutes: int,
    base_cost: Decimal,
    project_final_rate: Decimal | None,
    bonus: BonusSettings,
    margin: MarginSettings,
) -> BonusComputation:
    """Classify the variance and price the adjustment."""
    variance = estimated_minutes - actual_minutes
    classification = classify_variance(variance)
    full_rate = compute_full_rate(base_cost, margin) if base_cost > 0 else Decimal("0")

    if classification is BonusClassification.NEGATIVE:
        rate = project_final_rate if project_final_rate is not None else Decimal(base_cost)
        return BonusComputation(
            classification=classification,
            variance_minutes=variance,
            percentage=Decimal("0"),
            full_rate=full_rate,
            hourly_rate=rate,
            amount=-quantize_amount(cost_of_minutes(rate, abs(variance))),
        )

    percentage = (
        bonus.positive_percentage
        if classification is BonusClassification.POSITIVE
        else bonus.zero_percentage
    )
    return BonusComputation(
        classification=classification,
        variance_minutes=variance,
        percentage=percentage,
        full_rate=full_rate,
        hourly_rate=full_rate,
        amount=quantize_amount(cost_of_minutes(full_rate, actual_minutes) * percentage / HUNDRED),
    )
