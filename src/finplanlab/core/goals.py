"""
Goal valuation for FinPlanLab.

Turns each goal into a nominal cash demand per projection year, honoring
one-time, recurring (monthly / yearly) and periodic-interval goals.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import replace

import pandas as pd

from .context import ProjectionContext
from .entities import FinanceState, Goal
from .inflation import inflate_in
from .kinds import GOAL_TYPE_RETIREMENT, RetirementHandling

_EVERY = re.compile(r"every", re.IGNORECASE)

# Preset frequencies that recur at a fixed interval of years
_PRESET_INTERVALS = {
    "Once in 10 years": 10,
    "Every 2-5 Years": 3,
    "Every 5-10 Years": 7,
    "Every 2-15 Years": 8,
    "Every 2–15 Years": 8,
}


def goal_interval_years(frequency: str | None, interval_override: int | None = None) -> int:
    """
    Years between occurrences of a recurring goal.

    A custom ``Every ...`` frequency uses ``interval_override`` when it is at
    least 2; presets map to fixed intervals; everything else recurs yearly.
    """
    if frequency and _EVERY.search(frequency) and interval_override is not None:
        rounded = round(interval_override)
        if rounded >= 2:
            return int(rounded)
    return _PRESET_INTERVALS.get(frequency or "", 1)


def goal_inflation_rate(goal: Goal, ctx: ProjectionContext) -> float:
    """Fallback inflation for a goal: global default under bucketed inflation, else the goal's own."""
    if ctx.settings is not None and ctx.settings.use_bucket_inflation:
        return ctx.settings.default_inflation_rate
    return goal.inflation_rate


def start_year_amount(goal: Goal, ctx: ProjectionContext) -> float:
    """Nominal amount of one occurrence in the goal's start year."""
    start = ctx.resolve(goal.start_date)
    if ctx.settings is not None and ctx.settings.use_bucket_inflation:
        return inflate_in(
            ctx,
            goal.target_amount_today,
            ctx.current_year,
            start,
            goal_inflation_rate(goal, ctx),
        )
    if goal.start_goal_amount is not None:
        return goal.start_goal_amount
    years = max(0, start - ctx.current_year)
    return goal.target_amount_today * (1 + goal.inflation_rate / 100) ** years


def goal_amount_for_year(goal: Goal, year: int, ctx: ProjectionContext) -> float:
    """
    Nominal cash demand of ``goal`` in ``year``.

    **Rules:**
    - 0 outside ``[start_year, end_year]``
    - one-time goals: the start-year amount, due only in the end year
    - interval goals: due when ``(year - start) % interval == 0``
    - monthly goals: the yearly amount is 12 installments
    - yearly goals: inflated further from the start-year amount each year

    **Example:**
        ```python
        ctx = ProjectionContext.from_state(state, 2026)
        demand = goal_amount_for_year(state.goals[0], 2056, ctx)
        ```
    """
    start = ctx.resolve(goal.start_date)
    end = ctx.resolve(goal.end_date)
    if year < start or year > end:
        return 0.0

    base = start_year_amount(goal, ctx)
    if not goal.is_recurring:
        return base if year == end else 0.0

    interval = goal_interval_years(goal.frequency, goal.frequency_interval_years)
    if interval > 1 and (year - start) % interval != 0:
        return 0.0

    amount = inflate_in(ctx, base, start, year, goal_inflation_rate(goal, ctx))
    if goal.frequency == "Monthly":
        return amount * 12
    return amount


def goal_demand_by_year(
    goals: Iterable[Goal], years: Iterable[int], ctx: ProjectionContext
) -> pd.DataFrame:
    """Demand matrix: one row per year, one column per goal id."""
    goals = list(goals)
    years = list(years)
    data = {
        goal.id: [goal_amount_for_year(goal, year, ctx) for year in years]
        for goal in goals
    }
    return pd.DataFrame(data, index=pd.Index(years, name="year"), columns=[g.id for g in goals])


def retirement_target_today(goal: Goal, state: FinanceState) -> float:
    """
    Yearly retirement spending in today's money, per the goal's handling mode.

    ``CurrentExpenses`` uses the profile's monthly expenses, ``Estimate`` the
    expected post-retirement monthly expenses and ``Detailed`` the sum of the
    breakdown items; all are annualized. Other goals keep their target.
    """
    handling = goal.retirement_handling
    if goal.type != GOAL_TYPE_RETIREMENT or handling is None:
        return goal.target_amount_today
    if handling is RetirementHandling.CURRENT_EXPENSES:
        return (state.profile.monthly_expenses or 0.0) * 12
    if handling is RetirementHandling.ESTIMATE:
        return (goal.expected_monthly_expenses_after_retirement or 0.0) * 12
    return sum(item.amount or 0.0 for item in goal.detailed_breakdown) * 12


def prepare_goal(goal: Goal, state: FinanceState, current_year: int) -> Goal:
    """
    Save-time computation of derived goal amounts.

    Fills ``target_amount_today`` for retirement goals and caches
    ``start_goal_amount`` (the target inflated at the goal's own rate to its
    start year). Returns a new Goal.
    """
    ctx = ProjectionContext.from_state(state, current_year)
    target = retirement_target_today(goal, state)
    years = max(0, ctx.resolve(goal.start_date) - current_year)
    cached = target * (1 + goal.inflation_rate / 100) ** years
    return replace(goal, target_amount_today=target, start_goal_amount=cached)
