"""
Cashflow and liquidation simulator for FinPlanLab.

Runs the household year by year from ``current_year + 1`` to the life
expectancy year: vests assets into buckets, nets income against expenses,
debt service and committed contributions, funds goals in priority order
(cash first, then liquidated buckets) and grows what is left.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .amortization import debt_service_by_year
from .buckets import (
    blended_bucket_returns,
    committed_outflow_for_year,
    contributions_for_year,
    default_liquidation_order,
    vesting_schedule,
)
from .context import ProjectionContext
from .entities import CashflowItem, FinanceState, Goal
from .goals import goal_amount_for_year
from .inflation import inflate_in, risk_return_assumption
from .kinds import GOAL_TYPE_RETIREMENT, Bucket, FlowType
from .results import GoalFunding, ProjectionResult, TimelineRow
from .utils import annualize_amount, safe_ratio

logger = logging.getLogger(__name__)


@dataclass
class ProjectionConfig:
    """
    Options for a projection run.

    Attributes:
        liquidation_order: Buckets drawn down first to last; only listed
            buckets are liquidated. None uses the lowest-yield-first order.
        return_rate_override: Growth rate (%) of the floating corpus; None
            uses the risk profile's implied return
        stop_earned_income_at_retirement: Drop salary/bonus/business income
            from the retirement year on (rental and investment income continue)
        stop_expenses_at_retirement_goal: Drop living expenses from the first
            year a Retirement goal pays out
    """

    liquidation_order: list[Bucket] | None = None
    return_rate_override: float | None = None
    stop_earned_income_at_retirement: bool = False
    stop_expenses_at_retirement_goal: bool = False

    def resolved_order(self, returns: dict[Bucket, float]) -> list[Bucket]:
        if self.liquidation_order is None:
            return default_liquidation_order(returns)
        order: list[Bucket] = []
        for item in self.liquidation_order:
            bucket = Bucket.parse(item)
            if bucket is not Bucket.NET_SAVINGS and bucket not in order:
                order.append(bucket)
        return order


def liquidate(
    balances: dict[Bucket, float], shortfall: float, order: list[Bucket]
) -> dict[Bucket, float]:
    """
    Draw ``shortfall`` from ``balances`` bucket by bucket in ``order``.

    Each bucket gives up to its full (non-negative) balance before the next
    one is touched. Buckets not listed in ``order`` are never touched.

    **Returns:**
        Withdrawal per bucket (every bucket present, 0 when untouched)

    **Example:**
        ```python
        liquidate(
            {Bucket.SAVINGS: 100_000, Bucket.GOLD: 200_000},
            150_000,
            [Bucket.GOLD, Bucket.SAVINGS],
        )
        # {GOLD: 150_000, SAVINGS: 0, ...}
        ```
    """
    withdrawals = {bucket: 0.0 for bucket in Bucket}
    remaining = max(0.0, shortfall)
    for bucket in order:
        if remaining <= 0:
            break
        take = min(max(0.0, balances.get(bucket, 0.0)), remaining)
        withdrawals[bucket] += take
        remaining -= take
    return withdrawals


def _household_income(state: FinanceState) -> tuple[float, float, float]:
    """Monthly (earned, passive, weighted expected increase %) across earners."""
    earners = [state.profile.income] + [member.income for member in state.family]
    earned = sum(income.earned() for income in earners)
    passive = sum(income.passive() for income in earners)
    total = earned + passive
    growth = safe_ratio(
        sum(income.total() * income.expected_increase for income in earners), total
    )
    return earned, passive, growth


def _item_amount(item: CashflowItem, year: int, current_year: int) -> float:
    start = item.start_year if item.start_year is not None else current_year
    if year < start or (item.end_year is not None and year > item.end_year):
        return 0.0
    rate = item.step_up or item.growth_rate or 0.0
    return annualize_amount(item.amount, item.frequency) * (1 + rate / 100) ** (
        year - max(start, current_year)
    )


class _Simulator:
    """Holds the per-run inputs that stay fixed across years."""

    def __init__(self, state: FinanceState, ctx: ProjectionContext, config: ProjectionConfig):
        self.state = state
        self.ctx = ctx
        self.config = config
        self.returns = blended_bucket_returns(state.assets)
        risk_level = state.risk_profile.level if state.risk_profile else None
        self.returns[Bucket.NET_SAVINGS] = (
            config.return_rate_override
            if config.return_rate_override is not None
            else risk_return_assumption(risk_level)
        )
        self.order = config.resolved_order(self.returns)
        self.vesting = vesting_schedule(state.assets, ctx.current_year)
        self.debt_by_loan = [debt_service_by_year(loan, ctx.current_year) for loan in state.loans]
        self.earned, self.passive, self.income_growth = _household_income(state)
        self.income_items = [c for c in state.cashflows if c.flow_type is FlowType.INCOME]
        self.expense_items = [c for c in state.cashflows if c.flow_type is FlowType.EXPENSE]
        retirement_starts = [
            ctx.resolve(g.start_date) for g in state.goals if g.type == GOAL_TYPE_RETIREMENT
        ]
        self.retirement_goal_start = min(retirement_starts) if retirement_starts else None
        # Stable funding order: priority first, then entry order
        self.funding_order = sorted(
            range(len(state.goals)), key=lambda i: (state.goals[i].priority, i)
        )
        self.bridge_years = {
            goal.id: ctx.resolve(goal.end_date)
            for goal in state.goals
            if goal.loan is not None and goal.loan.enabled and not goal.is_recurring
        }

    # --- cash components -------------------------------------------------

    def inflow(self, year: int) -> float:
        cy = self.ctx.current_year
        if self.income_items:
            return sum(_item_amount(item, year, cy) for item in self.income_items)
        growth = (1 + self.income_growth / 100) ** (year - cy)
        earned = self.earned
        if self.config.stop_earned_income_at_retirement and year >= self.ctx.retirement_year:
            earned = 0.0
        return (earned + self.passive) * 12 * growth

    def expenses(self, year: int) -> float:
        cy = self.ctx.current_year
        living = 0.0
        covered = (
            self.config.stop_expenses_at_retirement_goal
            and self.retirement_goal_start is not None
            and year >= self.retirement_goal_start
        )
        if not covered:
            if self.state.detailed_expenses:
                for item in self.state.detailed_expenses:
                    start = item.start_year if item.start_year is not None else cy
                    if year < start or (item.tenure and year >= start + item.tenure):
                        continue
                    living += (item.amount or 0.0) * 12 * (
                        1 + (item.inflation_rate or 0.0) / 100
                    ) ** (year - max(start, cy))
            else:
                settings = self.ctx.settings
                fallback = settings.default_inflation_rate if settings else 6.0
                living = inflate_in(
                    self.ctx, (self.state.profile.monthly_expenses or 0.0) * 12, cy, year, fallback
                )
        extra = sum(_item_amount(item, year, cy) for item in self.expense_items)
        return living + extra

    def debt_service(self, year: int) -> float:
        return sum(paid.get(year, 0.0) for paid in self.debt_by_loan)

    def goal_demand(self, goal: Goal, year: int) -> float:
        amount = goal_amount_for_year(goal, year, self.ctx)
        if amount > 0 and self.bridge_years.get(goal.id) == year:
            amount = max(0.0, amount - (goal.loan.amount or 0.0))
        return amount

    # --- one year ----------------------------------------------------------

    def step(self, year: int, previous: dict[Bucket, float]) -> TimelineRow:
        state = self.state
        cy = self.ctx.current_year

        # Step 1: vest asset values into opening balances
        vested = self.vesting.get(year, {})
        opening = {b: previous.get(b, 0.0) + vested.get(b, 0.0) for b in Bucket}

        # Steps 2-4: net cash for the year, floating corpus drawn into the pool
        inflow = self.inflow(year)
        expenses = self.expenses(year)
        debt = self.debt_service(year)
        committed = committed_outflow_for_year(state, year, cy)
        contributions = contributions_for_year(state, year, cy)
        contributions = {b: contributions.get(b, 0.0) for b in Bucket}
        net_available = inflow - expenses - debt - committed + opening[Bucket.NET_SAVINGS]

        # Step 5: demand
        goals = {goal.id: self.goal_demand(goal, year) for goal in state.goals}
        total_demand = sum(goals.values())

        # Step 6: liquidation covers a cash deficit first, then the goal shortfall
        cash_pool = max(0.0, net_available)
        deficit = max(0.0, -net_available)
        shortfall = max(0.0, total_demand - cash_pool)
        available = {
            b: opening[b] + contributions[b] for b in Bucket if b is not Bucket.NET_SAVINGS
        }
        withdrawals = liquidate(available, deficit + shortfall, self.order)
        total_liquidated = sum(withdrawals.values())
        asset_pool = max(0.0, total_liquidated - deficit)
        unfunded_deficit = max(0.0, deficit - total_liquidated)

        # Step 7: fund goals by priority, cash first
        split: dict[str, GoalFunding] = {}
        for i in self.funding_order:
            goal = state.goals[i]
            required = goals[goal.id]
            from_cash = min(required, cash_pool)
            cash_pool -= from_cash
            from_assets = min(required - from_cash, asset_pool)
            asset_pool -= from_assets
            pct = 100.0 if required <= 0 else (from_cash + from_assets) / required * 100
            split[goal.id] = GoalFunding(
                required=required, cash=from_cash, assets=from_assets, achievement_pct=pct
            )
        funded_total = sum(g.funded for g in split.values())

        # Steps 8-9: residual corpus and growth
        residual = max(0.0, net_available - total_demand)
        contributions[Bucket.NET_SAVINGS] = residual
        closing = {}
        for bucket in Bucket:
            base = (
                residual
                if bucket is Bucket.NET_SAVINGS
                else opening[bucket] + contributions[bucket] - withdrawals[bucket]
            )
            closing[bucket] = max(0.0, base) * (1 + self.returns[bucket] / 100)

        return TimelineRow(
            year=year,
            age=self.ctx.age_in(year),
            opening=opening,
            vested=dict(vested),
            contributions=contributions,
            inflow=inflow,
            expenses=expenses,
            debt_service=debt,
            committed=committed,
            net_available=net_available,
            goals=goals,
            total_goal_demand=total_demand,
            withdrawals=withdrawals,
            total_liquidated=total_liquidated,
            goal_funding_split=split,
            funded_total=funded_total,
            unfunded_deficit=unfunded_deficit,
            returns=dict(self.returns),
            closing=closing,
        )


def project_timeline(
    state: FinanceState,
    current_year: int,
    config: ProjectionConfig | None = None,
) -> ProjectionResult:
    """
    Project the household from ``current_year + 1`` to the life expectancy year.

    The run is a pure function of its inputs: the state is not mutated and
    ``current_year`` is never read from the clock.

    **Args:**
        state: Entity snapshot
        current_year: The projection's "today"
        config: Liquidation order, corpus return override and income options

    **Returns:**
        ProjectionResult with one TimelineRow per year (empty when the life
        expectancy year is not after ``current_year``)

    **Example:**
        ```python
        result = project_timeline(state, 2026, ProjectionConfig(
            liquidation_order=[Bucket.GOLD, Bucket.SAVINGS],
        ))
        df = result.to_frame()
        ```
    """
    config = config or ProjectionConfig()
    ctx = ProjectionContext.from_state(state, current_year)
    sim = _Simulator(state, ctx, config)
    logger.debug(
        "Projecting %d..%d, liquidation order %s",
        current_year + 1,
        ctx.life_expectancy_year,
        [b.value for b in sim.order],
    )

    rows: list[TimelineRow] = []
    balances = {bucket: 0.0 for bucket in Bucket}
    for year in range(current_year + 1, ctx.life_expectancy_year + 1):
        row = sim.step(year, balances)
        rows.append(row)
        balances = row.closing

    result = ProjectionResult(
        rows=rows,
        current_year=current_year,
        liquidation_order=list(sim.order),
        bucket_returns=dict(sim.returns),
    )
    if rows:
        logger.debug(
            "Projection done: %d years, final corpus %.2f, %d shortfall years",
            len(rows),
            rows[-1].closing_total,
            len(result.summary()["shortfall_years"]),
        )
    return result
