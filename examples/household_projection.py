#!/usr/bin/env python3
"""
Household Projection Example

Loads the sample household, prepares the retirement goal, validates the state
and compares two liquidation orders year by year.
"""

from dataclasses import replace
from pathlib import Path

from finplanlab import Bucket, ProjectionConfig, load_finance_state, project_timeline
from finplanlab.core.goals import prepare_goal
from finplanlab.core.validation import validate_state

CURRENT_YEAR = 2026
STATE_FILE = Path(__file__).parent / "sample_state.yaml"


def load_prepared_state():
    """Load the sample state and cache derived goal amounts."""
    state = load_finance_state(STATE_FILE)
    goals = [prepare_goal(goal, state, CURRENT_YEAR) for goal in state.goals]
    return replace(state, goals=goals)


def compare_orders(state):
    """Project the same household with a cautious and an aggressive drawdown order."""
    orders = {
        "cash first": [Bucket.SAVINGS, Bucket.GOLD, Bucket.MUTUAL_FUNDS, Bucket.DIRECT_EQUITY],
        "equity first": [Bucket.DIRECT_EQUITY, Bucket.MUTUAL_FUNDS, Bucket.SAVINGS, Bucket.GOLD],
    }
    for name, order in orders.items():
        result = project_timeline(state, CURRENT_YEAR, ProjectionConfig(liquidation_order=order))
        summary = result.summary()
        print(f"\n=== {name} ===")
        print(f"Goal achievement: {summary['achievement_pct']:.1f}%")
        print(f"Shortfall years:  {summary['shortfall_years'][:8]}")
        print(f"Final corpus:     {summary['final_corpus']:,.0f}")

        df = result.to_frame()
        print(df.loc[2030:2040, ["age", "inflow", "total_goal_demand", "achievement_pct"]].round(0))


def main():
    state = load_prepared_state()

    report = validate_state(state, CURRENT_YEAR)
    print(report)
    if not report.is_valid():
        return

    compare_orders(state)


if __name__ == "__main__":
    main()
