"""
Hypothesis property tests.

Properties covered:
- Margin cascade: components sum to the full rate; final rate is the full
  rate minus the disabled components and never exceeds it.
- Bonus evaluator: the sign of the amount follows the classification.
- Credit conservation: any sequence of redistributions and cancellations
  run through RedistributionService keeps the active withdrawals from a
  task within its variance; rejected withdrawals are exactly those larger
  than the credit still available.
- Budget status: ordering of the three states is monotone in consumption.
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import func, select

from hours_config import get_active_config
from hours_kernel.exceptions import InsufficientCreditError
from hours_modules.bonus.evaluator import evaluate
from hours_modules.bonus.models import BonusClassification
from hours_modules.budget.models import BudgetStatus
from hours_modules.budget.rollup import budget_status
from hours_modules.ledger.models import NewTaskDestination, RedistributionStatus
from hours_modules.ledger.orm import RedistributionRecordModel
from hours_modules.margin.cascade import compute_margin

CONFIG = get_active_config()
COMPONENT_NAMES = CONFIG.margin.component_names

base_costs = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("10000"), places=2, allow_nan=False
)
toggle_sets = st.fixed_dictionaries(
    {}, optional={name: st.booleans() for name in COMPONENT_NAMES}
)
minutes = st.integers(min_value=1, max_value=100_000)


class TestMarginCascadeProperties:
    @given(base=base_costs, toggles=toggle_sets)
    @settings(max_examples=200)
    def test_final_rate_is_full_minus_disabled(self, base, toggles):
        quote = compute_margin(base, toggles, CONFIG.margin)

        disabled = sum(
            (c.euro_value for c in quote.components if not toggles.get(c.name, True)),
            Decimal("0"),
        )
        assert quote.final_rate == quote.full_rate - disabled
        assert Decimal("0") <= quote.final_rate <= quote.full_rate

    @given(base=base_costs)
    def test_components_add_up_to_full_rate(self, base):
        quote = compute_margin(base, None, CONFIG.margin)
        assert sum(c.percentage for c in quote.components) == Decimal("100")
        assert sum(c.euro_value for c in quote.components) == quote.full_rate
        assert quote.final_rate == quote.full_rate


class TestBonusProperties:
    @given(
        estimated=minutes,
        actual=minutes,
        base=base_costs,
        final_rate=st.one_of(st.none(), base_costs),
    )
    @settings(max_examples=200)
    def test_amount_sign_follows_classification(self, estimated, actual, base, final_rate):
        result = evaluate(estimated, actual, base, final_rate, CONFIG.bonus, CONFIG.margin)

        assert result.variance_minutes == estimated - actual
        if result.classification is BonusClassification.NEGATIVE:
            assert actual > estimated
            assert result.amount <= 0
            assert result.percentage == Decimal("0")
        else:
            assert actual <= estimated
            assert result.amount >= 0


operations = st.lists(
    st.one_of(
        st.tuples(st.just("withdraw"), st.integers(min_value=1, max_value=120)),
        st.tuples(st.just("cancel"), st.integers(min_value=0, max_value=50)),
    ),
    max_size=12,
)


def _active_withdrawn(session, source_id) -> int:
    total = session.execute(
        select(func.coalesce(func.sum(RedistributionRecordModel.withdraw_minutes), 0))
        .where(RedistributionRecordModel.source_task_id == source_id)
        .where(RedistributionRecordModel.status == RedistributionStatus.ACTIVE.value)
    ).scalar_one()
    return int(total)


class TestCreditConservationProperties:
    @given(
        estimated=st.integers(min_value=1, max_value=300),
        actual=st.integers(min_value=1, max_value=300),
        ops=operations,
    )
    @settings(
        max_examples=40,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_redistributions_never_overdraw(
        self,
        estimated,
        actual,
        ops,
        session,
        workspace,
        create_task,
        redistribution_service,
        ledger_selector,
        manager,
    ):
        project, activity, resource = workspace
        project_id = project.id
        source_id = create_task(activity, resource, estimated, actual_minutes=actual).id
        variance = max(estimated - actual, 0)
        active = []

        for kind, value in ops:
            if kind == "withdraw":
                position = ledger_selector.credit_for_task(source_id)
                available = position.available_minutes if position else 0
                try:
                    record = redistribution_service.create_redistribution(
                        source_id,
                        value,
                        value,
                        NewTaskDestination(project_id, "Spillover"),
                        "Rebalance",
                        manager,
                    )
                except InsufficientCreditError:
                    assert value > available
                else:
                    assert value <= available
                    active.append(record.id)
            elif active:
                record_id = active.pop(value % len(active))
                redistribution_service.cancel_redistribution(record_id, "Undo", manager)

            withdrawn = _active_withdrawn(session, source_id)
            assert withdrawn <= variance
            position = ledger_selector.credit_for_task(source_id)
            if position is None:
                assert variance == 0
                assert withdrawn == 0
            else:
                assert position.withdrawn_minutes == withdrawn
                assert position.available_minutes == variance - withdrawn


class TestBudgetStatusProperties:
    @given(
        budget=st.decimals(min_value=Decimal("0"), max_value=Decimal("1000000"), places=2),
        consumed=st.decimals(min_value=Decimal("0"), max_value=Decimal("2000000"), places=2),
    )
    def test_status_matches_thresholds(self, budget, consumed):
        status = budget_status(consumed, budget, CONFIG.budget)
        if consumed > budget:
            assert status is BudgetStatus.OVER_BUDGET
        elif budget > 0 and consumed >= budget * Decimal("0.9"):
            assert status is BudgetStatus.NEAR_BUDGET
        else:
            assert status is BudgetStatus.WITHIN_BUDGET
