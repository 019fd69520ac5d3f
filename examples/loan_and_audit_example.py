#!/usr/bin/env python3
"""
Loan and Audit Example

Shows the home loan schedule, the effect of a what-if prepayment, the goal
bridge loan sync and the audit recommendations for the sample household.
"""

from pathlib import Path

from finplanlab import build_audit_summary, generate_recommendations, load_finance_state
from finplanlab.core.amortization import (
    build_amortization_schedule,
    build_yearly_amortization,
    prepayment_impact,
    sync_goal_loan,
)
from finplanlab.core.timeline import project_timeline

CURRENT_YEAR = 2026


def show_loan(state):
    home = next(loan for loan in state.loans if loan.id == "home")
    result = build_amortization_schedule(home, current_year=CURRENT_YEAR)
    print(f"Home loan: EMI {result.emi:,.0f}, tenure read as {result.basis.value}")
    for row in build_yearly_amortization(result.schedule)[:5]:
        print(
            f"  {row.year}: interest {row.interest:>10,.0f}  principal {row.principal:>10,.0f}"
            f"  balance {row.closing_balance:>12,.0f}"
        )

    impact = prepayment_impact(home, 500_000, current_year=CURRENT_YEAR)
    print(
        f"Prepaying 500,000 saves {impact.interest_saved:,.0f} interest "
        f"and {impact.months_saved} months"
    )


def show_bridge_loans(state):
    loans = list(state.loans)
    for goal in state.goals:
        if goal.loan is not None:
            loans = sync_goal_loan(goal, loans, start_year=CURRENT_YEAR + 3)
    print(f"Loans after syncing goal bridges: {[loan.id for loan in loans]}")


def show_audit(state):
    projection = project_timeline(state, CURRENT_YEAR)
    summary = build_audit_summary(state, CURRENT_YEAR, projection)
    print(f"Debt-to-income {summary.debt_to_income:.1f}%, savings rate {summary.savings_rate:.1f}%")
    for rec in generate_recommendations(summary):
        print(f"[{rec.severity}] {rec.title}: {rec.detail}")


if __name__ == "__main__":
    household = load_finance_state(Path(__file__).parent / "sample_state.yaml")
    show_loan(household)
    show_bridge_loans(household)
    show_audit(household)
