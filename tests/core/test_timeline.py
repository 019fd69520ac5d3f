"""
Tests for the yearly cashflow and liquidation simulator.
"""

import pandas as pd
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from finplanlab.core.entities import (
    Asset,
    CashflowItem,
    DetailedIncome,
    FinanceState,
    Goal,
    GoalLoan,
    Loan,
    Profile,
    RelativeDate,
)
from finplanlab.core.kinds import AssetCategory, Bucket, FlowType
from finplanlab.core.timeline import ProjectionConfig, liquidate, project_timeline

CY = 2026


def _one_time_goal(goal_id, year, amount, **kwargs):
    return Goal(
        id=goal_id,
        start_date=RelativeDate("Year", year),
        end_date=RelativeDate("Year", year),
        target_amount_today=amount,
        inflation_rate=0.0,
        **kwargs,
    )


def _state(**kwargs):
    profile = kwargs.pop("profile", None) or Profile(dob="1996-01-01")
    return FinanceState(profile=profile, **kwargs)


def _liquid(asset_id, value, category=AssetCategory.LIQUID, growth=0.0):
    return Asset(id=asset_id, category=category, current_value=value, growth_rate=growth)


class TestLiquidate:
    """Ordered drawdown of bucket balances."""

    def test_draws_in_order(self):
        withdrawals = liquidate(
            {Bucket.SAVINGS: 100_000, Bucket.GOLD: 200_000},
            150_000,
            [Bucket.GOLD, Bucket.SAVINGS],
        )
        assert withdrawals[Bucket.GOLD] == 150_000
        assert withdrawals[Bucket.SAVINGS] == 0
        assert set(withdrawals) == set(Bucket)

    def test_spills_to_next_bucket(self):
        withdrawals = liquidate(
            {Bucket.SAVINGS: 100_000, Bucket.GOLD: 200_000},
            250_000,
            [Bucket.GOLD, Bucket.SAVINGS],
        )
        assert withdrawals[Bucket.GOLD] == 200_000
        assert withdrawals[Bucket.SAVINGS] == 50_000

    def test_unlisted_buckets_untouched(self):
        withdrawals = liquidate(
            {Bucket.SAVINGS: 100_000, Bucket.GOLD: 200_000}, 250_000, [Bucket.SAVINGS]
        )
        assert withdrawals[Bucket.SAVINGS] == 100_000
        assert withdrawals[Bucket.GOLD] == 0

    def test_negative_balances_and_shortfall(self):
        withdrawals = liquidate({Bucket.SAVINGS: -5.0}, 10.0, [Bucket.SAVINGS])
        assert withdrawals[Bucket.SAVINGS] == 0
        assert sum(liquidate({Bucket.SAVINGS: 10.0}, -1.0, [Bucket.SAVINGS]).values()) == 0

    def test_resolved_order_parses_and_dedupes(self):
        config = ProjectionConfig(liquidation_order=["gold", Bucket.GOLD, "netSavings", "savings"])
        assert config.resolved_order({}) == [Bucket.GOLD, Bucket.SAVINGS]


class TestProjectionRun:
    """Whole-run behavior of project_timeline."""

    def test_row_count_covers_current_year_to_life_expectancy(self):
        result = project_timeline(_state(), CY)
        assert len(result) == 55
        assert result[0].year == 2027
        assert result[-1].year == 2081
        assert result[0].age == 31

    def test_empty_when_life_expectancy_passed(self):
        state = _state(profile=Profile(dob="1940-01-01", life_expectancy=85))
        result = project_timeline(state, CY)
        assert len(result) == 0
        assert result.to_frame().empty
        assert result.summary()["years"] == 0

    def test_deterministic_and_pure(self):
        state = _state(
            profile=Profile(
                dob="1990-03-01",
                monthly_expenses=40_000,
                income=DetailedIncome(salary=150_000, expected_increase=5),
            ),
            assets=[_liquid("fd", 500_000, growth=7.0)],
            goals=[_one_time_goal("car", 2030, 1_000_000)],
        )
        before = state.to_dict()
        first = project_timeline(state, CY).to_frame()
        second = project_timeline(state, CY).to_frame()

        pd.testing.assert_frame_equal(first, second)
        assert state.to_dict() == before

    def test_liquidation_follows_order(self):
        state = _state(
            assets=[
                _liquid("fd", 100_000),
                _liquid("sgb", 200_000, category=AssetCategory.GOLD_SILVER),
            ],
            goals=[_one_time_goal("car", 2027, 150_000)],
        )
        result = project_timeline(
            state, CY, ProjectionConfig(liquidation_order=[Bucket.GOLD, Bucket.SAVINGS])
        )
        row = result.row_for(2027)

        assert row.opening[Bucket.SAVINGS] == 100_000
        assert row.opening[Bucket.GOLD] == 200_000
        assert row.withdrawals[Bucket.GOLD] == pytest.approx(150_000)
        assert row.withdrawals[Bucket.SAVINGS] == 0
        assert row.closing[Bucket.GOLD] == pytest.approx(50_000)
        assert row.closing[Bucket.SAVINGS] == pytest.approx(100_000)
        assert row.goal_funding_split["car"].assets == pytest.approx(150_000)
        assert row.achievement_pct == pytest.approx(100.0)

    def test_unlisted_bucket_never_drawn(self):
        state = _state(
            assets=[
                _liquid("fd", 100_000),
                _liquid("sgb", 1_000_000, category=AssetCategory.GOLD_SILVER),
            ],
            goals=[_one_time_goal("house", 2027, 500_000)],
        )
        result = project_timeline(state, CY, ProjectionConfig(liquidation_order=[Bucket.SAVINGS]))
        assert all(row.withdrawals[Bucket.GOLD] == 0 for row in result)
        row = result.row_for(2027)
        assert row.funded_total == pytest.approx(100_000)
        assert row.achievement_pct == pytest.approx(20.0)
        assert 2027 in result.summary()["shortfall_years"]

    def test_priority_decides_who_is_funded(self):
        state = _state(
            assets=[_liquid("fd", 100_000)],
            goals=[
                _one_time_goal("later", 2027, 80_000, priority=2),
                _one_time_goal("first", 2027, 80_000, priority=1),
            ],
        )
        row = project_timeline(state, CY).row_for(2027)
        assert row.goal_funding_split["first"].funded == pytest.approx(80_000)
        assert row.goal_funding_split["later"].funded == pytest.approx(20_000)
        assert row.goal_funding_split["later"].achievement_pct == pytest.approx(25.0)
        assert row.achievement_pct == pytest.approx(62.5)

    def test_equal_priority_keeps_entry_order(self):
        state = _state(
            assets=[_liquid("fd", 100_000)],
            goals=[
                _one_time_goal("a", 2027, 80_000),
                _one_time_goal("b", 2027, 80_000),
            ],
        )
        row = project_timeline(state, CY).row_for(2027)
        assert row.goal_funding_split["a"].funded == pytest.approx(80_000)
        assert row.goal_funding_split["b"].funded == pytest.approx(20_000)

    def test_cash_funds_goals_before_assets(self):
        state = _state(
            profile=Profile(dob="1996-01-01", income=DetailedIncome(salary=50_000)),
            assets=[_liquid("fd", 1_000_000)],
            goals=[_one_time_goal("trip", 2027, 400_000)],
        )
        row = project_timeline(state, CY).row_for(2027)
        split = row.goal_funding_split["trip"]
        assert split.cash == pytest.approx(400_000)
        assert split.assets == 0
        assert row.total_liquidated == 0

    def test_residual_cash_becomes_floating_corpus(self):
        state = _state(profile=Profile(dob="1996-01-01", income=DetailedIncome(salary=100_000)))
        result = project_timeline(state, CY, ProjectionConfig(return_rate_override=10.0))
        row = result.row_for(2027)
        assert row.contributions[Bucket.NET_SAVINGS] == pytest.approx(1_200_000)
        assert row.closing[Bucket.NET_SAVINGS] == pytest.approx(1_320_000)
        # The corpus flows back into next year's available cash
        assert result.row_for(2028).net_available == pytest.approx(1_200_000 + 1_320_000)

    def test_unfunded_deficit_is_reported(self):
        state = _state(profile=Profile(dob="1996-01-01", monthly_expenses=50_000))
        result = project_timeline(state, CY)
        row = result.row_for(2027)
        assert row.net_available == pytest.approx(-600_000 * 1.06)
        assert row.unfunded_deficit == pytest.approx(600_000 * 1.06)
        assert 2027 in result.summary()["deficit_years"]
        assert row.closing_total == 0

    def test_deficit_drains_assets_before_goals(self):
        state = _state(
            profile=Profile(dob="1996-01-01", monthly_expenses=10_000),
            assets=[_liquid("fd", 200_000)],
            goals=[_one_time_goal("gift", 2027, 100_000)],
        )
        row = project_timeline(state, CY).row_for(2027)
        deficit = 120_000 * 1.06
        assert row.total_liquidated == pytest.approx(200_000)
        assert row.goal_funding_split["gift"].assets == pytest.approx(200_000 - deficit)
        assert row.unfunded_deficit == 0


class TestCashComponents:
    """Income, expenses, debt service and bridge loans inside the run."""

    def test_earned_income_continues_by_default(self):
        profile = Profile(
            dob="1996-01-01",
            retirement_age=35,
            income=DetailedIncome(salary=100_000, rental=10_000),
        )
        result = project_timeline(_state(profile=profile), CY)
        assert result.row_for(2031).inflow == pytest.approx(1_320_000)

    def test_earned_income_can_stop_at_retirement(self):
        profile = Profile(
            dob="1996-01-01",
            retirement_age=35,
            income=DetailedIncome(salary=100_000, rental=10_000),
        )
        config = ProjectionConfig(stop_earned_income_at_retirement=True)
        result = project_timeline(_state(profile=profile), CY, config)
        assert result.row_for(2030).inflow == pytest.approx(1_320_000)
        assert result.row_for(2031).inflow == pytest.approx(120_000)

    def test_income_grows_with_expected_increase(self):
        profile = Profile(dob="1996-01-01", income=DetailedIncome(salary=100_000, expected_increase=10))
        result = project_timeline(_state(profile=profile), CY)
        assert result.row_for(2028).inflow == pytest.approx(1_200_000 * 1.1**2)

    def test_cashflow_items_replace_profile_income(self):
        state = _state(
            profile=Profile(dob="1996-01-01", income=DetailedIncome(salary=999_999)),
            cashflows=[
                CashflowItem(label="Consulting", flow_type=FlowType.INCOME, amount=50_000),
                CashflowItem(
                    label="School fees",
                    flow_type="Expense",
                    amount=100_000,
                    frequency="Yearly",
                    start_year=2028,
                ),
            ],
        )
        result = project_timeline(state, CY)
        assert result.row_for(2027).inflow == pytest.approx(600_000)
        assert result.row_for(2027).expenses == 0
        assert result.row_for(2028).expenses == pytest.approx(100_000)

    def test_living_expenses_continue_with_retirement_goal_by_default(self):
        profile = Profile(dob="1996-01-01", retirement_age=35, monthly_expenses=10_000)
        retirement = Goal(id="ret", type="Retirement", start_date=RelativeDate("Retirement", 0))
        result = project_timeline(_state(profile=profile, goals=[retirement]), CY)
        assert result.row_for(2031).expenses == pytest.approx(120_000 * 1.06**5)

    def test_living_expenses_can_stop_with_retirement_goal(self):
        profile = Profile(dob="1996-01-01", retirement_age=35, monthly_expenses=10_000)
        retirement = Goal(id="ret", type="Retirement", start_date=RelativeDate("Retirement", 0))
        config = ProjectionConfig(stop_expenses_at_retirement_goal=True)
        without_goal = project_timeline(_state(profile=profile), CY, config)
        with_goal = project_timeline(_state(profile=profile, goals=[retirement]), CY, config)

        assert without_goal.row_for(2031).expenses > 0
        assert with_goal.row_for(2031).expenses == 0
        assert with_goal.row_for(2030).expenses == pytest.approx(120_000 * 1.06**4)

    def test_expenses_run_until_retirement_goal_starts(self):
        profile = Profile(dob="1996-01-01", retirement_age=32, monthly_expenses=10_000)
        retirement = Goal(id="ret", type="Retirement", start_date=RelativeDate("Year", 2040))
        config = ProjectionConfig(stop_expenses_at_retirement_goal=True)
        result = project_timeline(_state(profile=profile, goals=[retirement]), CY, config)

        # Retired in 2028 but the goal only pays out from 2040
        assert result.row_for(2029).expenses == pytest.approx(120_000 * 1.06**3)
        assert result.row_for(2039).expenses == pytest.approx(120_000 * 1.06**13)
        assert result.row_for(2040).expenses == 0
        assert result.row_for(2029).net_available < 0

    def test_debt_service_reduces_cash(self):
        state = _state(
            profile=Profile(dob="1996-01-01", income=DetailedIncome(salary=100_000)),
            loans=[
                Loan(
                    id="car",
                    outstanding_amount=1_200_000,
                    interest_rate=0.0,
                    remaining_tenure=120,
                    start_year=2027,
                )
            ],
        )
        row = project_timeline(state, CY).row_for(2027)
        assert row.debt_service == pytest.approx(120_000)
        assert row.net_available == pytest.approx(1_200_000 - 120_000)

    def test_bridge_loan_reduces_goal_demand(self):
        goal = _one_time_goal(
            "home",
            2028,
            1_000_000,
            loan=GoalLoan(enabled=True, amount=600_000, interest_rate=9.0, tenure_months=120),
        )
        row = project_timeline(_state(goals=[goal]), CY).row_for(2028)
        assert row.goals["home"] == pytest.approx(400_000)


class TestFundingInvariants:
    """Properties that hold for any household."""

    @settings(max_examples=40, deadline=None)
    @given(
        salary=st.floats(min_value=0, max_value=500_000),
        expenses=st.floats(min_value=0, max_value=400_000),
        savings=st.floats(min_value=0, max_value=5_000_000),
        gold=st.floats(min_value=0, max_value=5_000_000),
        goal_amount=st.floats(min_value=0, max_value=10_000_000),
        goal_year=st.integers(min_value=2027, max_value=2036),
    )
    def test_funding_never_exceeds_sources(
        self, salary, expenses, savings, gold, goal_amount, goal_year
    ):
        state = _state(
            profile=Profile(
                dob="1996-01-01",
                life_expectancy=40,
                monthly_expenses=expenses,
                income=DetailedIncome(salary=salary),
            ),
            assets=[
                _liquid("fd", savings, growth=5.0),
                _liquid("sgb", gold, category=AssetCategory.GOLD_SILVER, growth=8.0),
            ],
            goals=[_one_time_goal("g", goal_year, goal_amount)],
        )
        eps = 1e-6 * (1 + salary + expenses + savings + gold + goal_amount) * 100
        for row in project_timeline(state, CY):
            if row.unfunded_deficit > 0:
                assert row.funded_total == 0
            else:
                assert row.funded_total <= row.net_available + row.total_liquidated + eps
            for split in row.goal_funding_split.values():
                assert split.funded <= split.required + eps
                assert 0.0 <= split.achievement_pct <= 100.0 + 1e-9
            assert all(value >= 0 for value in row.closing.values())
