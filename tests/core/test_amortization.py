"""
Tests for EMI, tenure inference, amortization schedules and goal-loan sync.
"""

import pytest

from finplanlab.core.amortization import (
    annual_debt_service,
    bridge_loan_id,
    build_amortization_schedule,
    build_yearly_amortization,
    calculate_emi,
    infer_tenure_months,
    prepayment_impact,
    sync_goal_loan,
)
from finplanlab.core.entities import Goal, GoalLoan, Loan, LumpSumRepayment, RelativeDate
from finplanlab.core.errors import FinPlanWarning, reset_warnings
from finplanlab.core.kinds import TenureBasis


@pytest.fixture(autouse=True)
def _fresh_warnings():
    reset_warnings()
    yield
    reset_warnings()


@pytest.fixture
def home_loan():
    return Loan(
        id="home",
        type="Home Loan",
        outstanding_amount=5_000_000,
        interest_rate=8.0,
        remaining_tenure=240,
        start_year=2026,
    )


class TestCalculateEmi:
    """EMI formula."""

    def test_reference_value(self):
        assert calculate_emi(2_500_000, 8.5, 240) == pytest.approx(21_696, abs=1)

    def test_zero_rate_is_straight_line(self):
        assert calculate_emi(120_000, 0, 12) == 10_000

    def test_non_positive_months(self):
        assert calculate_emi(100_000, 10, 0) == 0.0
        assert calculate_emi(100_000, 10, -5) == 0.0


class TestInferTenure:
    """Months-or-years disambiguation of remaining_tenure."""

    def test_small_value_without_emi_is_years(self):
        inference = infer_tenure_months(Loan(id="l", remaining_tenure=20))
        assert inference.months == 240
        assert inference.basis is TenureBasis.YEARS

    def test_large_value_without_emi_is_months(self):
        inference = infer_tenure_months(Loan(id="l", remaining_tenure=240))
        assert inference.months == 240
        assert inference.basis is TenureBasis.MONTHS

    def test_emi_matching_years_wins(self):
        emi = calculate_emi(1_000_000, 9.0, 180)
        loan = Loan(
            id="l", outstanding_amount=1_000_000, interest_rate=9.0, remaining_tenure=15, emi=emi
        )
        inference = infer_tenure_months(loan)
        assert inference.months == 180
        assert inference.basis is TenureBasis.YEARS

    def test_emi_matching_months_overrides_threshold(self):
        emi = calculate_emi(1_000_000, 9.0, 15)
        loan = Loan(
            id="l", outstanding_amount=1_000_000, interest_rate=9.0, remaining_tenure=15, emi=emi
        )
        inference = infer_tenure_months(loan)
        assert inference.months == 15
        assert inference.basis is TenureBasis.MONTHS


class TestAmortizationSchedule:
    """Month-by-month schedules."""

    def test_emi_round_trip_amortizes(self):
        emi = calculate_emi(2_500_000, 8.5, 240)
        loan = Loan(
            id="l", outstanding_amount=2_500_000, interest_rate=8.5, remaining_tenure=240, emi=emi
        )
        result = build_amortization_schedule(loan, current_year=2026)

        assert result.converged
        assert abs(result.months_remaining - 240) <= 1
        assert result.schedule[-1].closing_balance == 0.0
        assert sum(row.principal for row in result.schedule) == pytest.approx(2_500_000, rel=1e-6)
        assert not result.negative_amortization

    def test_negative_amortization_is_flagged(self):
        # Monthly interest is 10,000; an EMI of 5,000 never touches principal
        loan = Loan(
            id="neg", outstanding_amount=1_000_000, interest_rate=12.0, remaining_tenure=12, emi=5_000
        )
        with pytest.warns(FinPlanWarning, match="did not amortize"):
            result = build_amortization_schedule(loan, current_year=2026)

        assert not result.converged
        assert result.negative_amortization
        assert all(row.principal == 0 for row in result.schedule)
        assert all(row.negative_amortization for row in result.schedule)
        closings = [row.closing_balance for row in result.schedule]
        assert all(b >= a for a, b in zip(closings, closings[1:]))
        assert closings[-1] > 1_000_000

    def test_runaway_guard_terminates(self):
        loan = Loan(id="stuck", outstanding_amount=100_000, interest_rate=12.0, remaining_tenure=360, emi=1)
        with pytest.warns(FinPlanWarning):
            result = build_amortization_schedule(loan, current_year=2026)
        assert result.months_remaining == 360 + 600

    def test_lump_sum_shortens_loan(self, home_loan):
        baseline = build_amortization_schedule(home_loan)
        with_lump = Loan(
            **{
                **home_loan.__dict__,
                "lump_sum_repayments": [LumpSumRepayment(year=2028, amount=1_000_000)],
            }
        )
        prepaid = build_amortization_schedule(with_lump)

        assert prepaid.months_remaining < baseline.months_remaining
        assert prepaid.total_interest < baseline.total_interest
        lump_rows = [row for row in prepaid.schedule if row.extra_payment > 0]
        assert len(lump_rows) == 1
        assert lump_rows[0].year == 2028
        assert lump_rows[0].month == 25  # first month of the third year

    def test_lump_sum_before_start_is_ignored(self, home_loan):
        early = Loan(
            **{
                **home_loan.__dict__,
                "lump_sum_repayments": [LumpSumRepayment(year=2020, amount=1_000_000)],
            }
        )
        assert build_amortization_schedule(early).months_remaining == (
            build_amortization_schedule(home_loan).months_remaining
        )

    def test_extra_payment_applies_once(self, home_loan):
        result = build_amortization_schedule(home_loan, extra_payment=250_000)
        assert result.schedule[0].extra_payment == 250_000
        assert all(row.extra_payment == 0 for row in result.schedule[1:])

    def test_oversized_lump_sum_is_capped_at_balance(self):
        loan = Loan(
            id="small",
            outstanding_amount=100_000,
            interest_rate=10.0,
            remaining_tenure=120,
            start_year=2026,
            lump_sum_repayments=[LumpSumRepayment(year=2027, amount=1_000_000)],
        )
        result = build_amortization_schedule(loan)
        balance_2026 = result.schedule[11].closing_balance
        final = result.schedule[-1]

        assert final.year == 2027
        assert final.closing_balance == 0.0
        assert final.extra_payment == pytest.approx(
            final.opening_balance + final.interest - final.emi
        )
        assert final.payment == pytest.approx(final.opening_balance + final.interest)
        # Only what is owed at the start of 2027 (plus one month of interest) is paid
        paid_2027 = annual_debt_service(loan, 2027, 2026)
        assert paid_2027 == pytest.approx(balance_2026 * (1 + 10.0 / 1200))
        assert paid_2027 < 1_000_000

    def test_override_months(self, home_loan):
        result = build_amortization_schedule(home_loan, override_months=120)
        assert result.months_remaining == 120

    def test_start_year_falls_back_to_current_year(self):
        loan = Loan(id="l", outstanding_amount=100_000, interest_rate=10, remaining_tenure=60)
        result = build_amortization_schedule(loan, current_year=2030)
        assert result.schedule[0].year == 2030
        assert result.schedule[12].year == 2031

    def test_to_frame(self, home_loan):
        df = build_amortization_schedule(home_loan).to_frame()
        assert df.index.name == "month"
        assert len(df) == 240
        assert {"interest", "principal", "closing_balance"} <= set(df.columns)


class TestRollupsAndWhatIf:
    """Yearly rollup, prepayment impact and debt service."""

    def test_yearly_rollup_totals(self, home_loan):
        result = build_amortization_schedule(home_loan)
        yearly = build_yearly_amortization(result.schedule)

        assert len(yearly) == 20
        assert yearly[0].year == 2026
        assert yearly[0].year_index == 1
        assert sum(y.interest for y in yearly) == pytest.approx(result.total_interest)
        assert yearly[-1].closing_balance == 0.0
        assert yearly[1].opening_balance == pytest.approx(yearly[0].closing_balance)

    def test_prepayment_impact(self, home_loan):
        impact = prepayment_impact(home_loan, 500_000)
        assert impact.interest_saved > 0
        assert impact.months_saved > 0
        assert impact.baseline.months_remaining == 240

    def test_annual_debt_service(self, home_loan):
        emi = calculate_emi(5_000_000, 8.0, 240)
        assert annual_debt_service(home_loan, 2027, 2026) == pytest.approx(emi * 12)
        assert annual_debt_service(home_loan, 2050, 2026) == 0.0


class TestGoalLoanSync:
    """Explicit reconciliation of bridge loans."""

    @pytest.fixture
    def car_goal(self):
        return Goal(
            id="car",
            type="Car",
            description="New car",
            start_date=RelativeDate("Year", 2028),
            end_date=RelativeDate("Year", 2028),
            target_amount_today=1_000_000,
            loan=GoalLoan(enabled=True, amount=600_000, interest_rate=9.0, tenure_months=60),
        )

    def test_creates_linked_loan(self, car_goal):
        existing = [Loan(id="home", outstanding_amount=1)]
        loans = sync_goal_loan(car_goal, existing, start_year=2028)

        assert len(existing) == 1
        assert [loan.id for loan in loans] == ["home", "goal-car"]
        bridge = loans[1]
        assert bridge.type == "Car Loan"
        assert bridge.outstanding_amount == 600_000
        assert bridge.start_year == 2028
        assert bridge.emi == pytest.approx(calculate_emi(600_000, 9.0, 60))
        assert infer_tenure_months(bridge).months == 60

    def test_updates_keeping_user_fields(self, car_goal):
        first = sync_goal_loan(car_goal, [], start_year=2028)
        edited = [
            Loan(**{**first[0].__dict__, "source": "HDFC", "owner": "spouse"})
        ]
        car_goal.loan.amount = 500_000
        updated = sync_goal_loan(car_goal, edited, start_year=2028)

        assert len(updated) == 1
        assert updated[0].outstanding_amount == 500_000
        assert updated[0].source == "HDFC"
        assert updated[0].owner == "spouse"

    def test_disabled_bridge_removes_loan(self, car_goal):
        loans = sync_goal_loan(car_goal, [], start_year=2028)
        car_goal.loan.enabled = False
        assert sync_goal_loan(car_goal, loans) == []

    def test_explicit_loan_id(self, car_goal):
        car_goal.loan.loan_id = "bridge-1"
        assert bridge_loan_id(car_goal) == "bridge-1"
        assert sync_goal_loan(car_goal, [])[0].id == "bridge-1"

    def test_unlisted_goal_type_uses_personal_loan(self, car_goal):
        car_goal.type = "Wedding"
        assert sync_goal_loan(car_goal, [])[0].type == "Personal Loan"
