"""
KPI calculation utilities for household audits.

This module provides standalone functions computing the ratios shown on a
financial health check: debt-to-income, survival and savings ratios,
emergency-fund coverage, allocation, net worth and the Human-Life-Value
insurance gap. All ratios are guarded: a zero denominator resolves to a
documented sentinel, never NaN.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field

import numpy as np
import pandas as pd

from .core.amortization import calculate_emi, infer_tenure_months
from .core.buckets import committed_outflow_for_year
from .core.context import ProjectionContext
from .core.entities import FinanceState, Loan
from .core.goals import (
    goal_amount_for_year,
    goal_inflation_rate,
    goal_interval_years,
    start_year_amount,
)
from .core.inflation import build_discount_factors, inflate_in, pv_factor, real_rate
from .core.kinds import AssetCategory, FlowType
from .core.results import ProjectionResult
from .core.utils import annualize_amount, safe_ratio

# Asset categories counted as financial (usable) assets in the HLV calculation
FINANCIAL_CATEGORIES = (
    AssetCategory.LIQUID,
    AssetCategory.DEBT,
    AssetCategory.EQUITY,
    AssetCategory.GOLD_SILVER,
)

_ALLOCATION_KEYS = {
    AssetCategory.EQUITY: "equity",
    AssetCategory.DEBT: "debt",
    AssetCategory.GOLD_SILVER: "gold",
    AssetCategory.LIQUID: "liquid",
    AssetCategory.REAL_ESTATE: "real_estate",
    AssetCategory.PERSONAL: "personal",
}


@dataclass(frozen=True)
class HLVBreakdown:
    """Components of the Human-Life-Value insurance need."""

    immediate_needs: float
    expense_replacement_pv: float
    outstanding_debt: float
    goal_requirements: float
    existing_coverage: float
    discounted_assets: float

    @property
    def total_need(self) -> float:
        return (
            self.immediate_needs
            + self.expense_replacement_pv
            + self.outstanding_debt
            + self.goal_requirements
        )

    @property
    def gap(self) -> float:
        return max(0.0, self.total_need - self.existing_coverage - self.discounted_assets)


@dataclass(frozen=True)
class GoalCost:
    """
    Cost breakdown of one goal.

    Attributes:
        rank: Position in funding order (1 = funded first)
        corpus_at_start: One occurrence in the start year
        sum_corpus: Nominal sum of every occurrence in the goal window
        current_corpus_required: Present value of ``sum_corpus``
        corpus_today: Every occurrence inflated straight from today's target
        progress_pct: ``current_amount`` as % of ``sum_corpus``, capped at 100
    """

    rank: int
    goal_id: str
    goal_type: str
    priority: int
    start_year: int
    end_year: int
    corpus_at_start: float
    sum_corpus: float
    current_corpus_required: float
    corpus_today: float
    current_amount: float
    progress_pct: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AuditSummary:
    """
    Derived metric bundle consumed by recommendation rules.

    Monthly figures are in current-year money; ratios are percentages.
    """

    current_year: int
    monthly_income: float
    monthly_expenses: float
    monthly_emi: float
    monthly_commitments: float
    liquid_assets: float
    net_worth: float
    total_debt: float
    debt_to_income: float
    survival_ratio: float
    savings_rate: float
    emergency_fund_months: float
    allocation: dict[str, float]
    hlv: HLVBreakdown
    goal_count: int
    has_risk_profile: bool
    deficit_years: list[int] = field(default_factory=list)

    @property
    def monthly_surplus(self) -> float:
        return self.monthly_income - self.monthly_expenses - self.monthly_emi

    @property
    def insurance_gap(self) -> float:
        return self.hlv.gap

    def to_dict(self) -> dict:
        data = asdict(self)
        data["hlv"]["gap"] = self.hlv.gap
        data["monthly_surplus"] = self.monthly_surplus
        data["insurance_gap"] = self.insurance_gap
        if math.isinf(self.emergency_fund_months):
            data["emergency_fund_months"] = None
        return data


def _active(start: int | None, end: int | None, year: int) -> bool:
    return (start is None or start <= year) and (end is None or year <= end)


def household_monthly_income(state: FinanceState, current_year: int) -> float:
    """
    Monthly household income.

    Income cashflow items active this year take precedence; otherwise the
    detailed income of the profile and every family member is summed.
    """
    items = [c for c in state.cashflows if c.flow_type is FlowType.INCOME]
    if items:
        return sum(
            annualize_amount(c.amount, c.frequency) / 12
            for c in items
            if _active(c.start_year, c.end_year, current_year)
        )
    earners = [state.profile.income] + [m.income for m in state.family]
    return sum(income.total() for income in earners)


def household_monthly_expenses(state: FinanceState, current_year: int) -> float:
    """
    Monthly living expenses plus expense items.

    Detailed expense lines win when present; otherwise the profile figure plus
    each family member's own monthly expenses.
    """
    if state.detailed_expenses:
        living = 0.0
        for item in state.detailed_expenses:
            start = item.start_year if item.start_year is not None else current_year
            end = start + item.tenure - 1 if item.tenure else None
            if _active(start, end, current_year):
                living += item.amount or 0.0
    else:
        living = (state.profile.monthly_expenses or 0.0) + sum(
            member.monthly_expenses or 0.0 for member in state.family
        )
    extra = sum(
        annualize_amount(c.amount, c.frequency) / 12
        for c in state.cashflows
        if c.flow_type is FlowType.EXPENSE and _active(c.start_year, c.end_year, current_year)
    )
    return living + extra


def loan_emi(loan: Loan) -> float:
    """Stated EMI, or the one implied by outstanding, rate and inferred tenure."""
    if loan.emi > 0:
        return loan.emi
    months = infer_tenure_months(loan).months
    return calculate_emi(loan.outstanding_amount, loan.interest_rate, months)


def monthly_debt_service(state: FinanceState) -> float:
    """Sum of EMIs of loans with an outstanding balance."""
    return sum(loan_emi(loan) for loan in state.loans if (loan.outstanding_amount or 0) > 0)


def monthly_commitments(state: FinanceState, current_year: int) -> float:
    """Recurring investment contributions, per month."""
    return committed_outflow_for_year(state, current_year, current_year) / 12


def debt_to_income_ratio(monthly_emi: float, monthly_income: float) -> float:
    """EMIs as % of income; 0 when there is no income."""
    return safe_ratio(monthly_emi, monthly_income) * 100


def survival_ratio(monthly_expenses: float, monthly_income: float) -> float:
    """Expenses as % of income; 100 when expenses exist without income."""
    if monthly_income <= 0:
        return 100.0 if monthly_expenses > 0 else 0.0
    return monthly_expenses / monthly_income * 100


def success_ratio(monthly_surplus: float, monthly_income: float) -> float:
    """Savings rate: surplus as % of income; 0 when there is no income."""
    return safe_ratio(monthly_surplus, monthly_income) * 100


def emergency_fund_months(
    liquid_assets: float, monthly_expenses: float, monthly_emi: float
) -> float:
    """Months of expenses and EMIs covered by liquid assets; inf with no commitments."""
    outgoing = monthly_expenses + monthly_emi
    if outgoing <= 0:
        return math.inf
    return liquid_assets / outgoing


def liquid_assets(state: FinanceState) -> float:
    return sum(
        a.current_value or 0.0 for a in state.assets if a.category is AssetCategory.LIQUID
    )


def total_debt(state: FinanceState) -> float:
    return sum(loan.outstanding_amount or 0.0 for loan in state.loans)


def net_worth(state: FinanceState) -> float:
    """Assets at current value minus outstanding loans."""
    return sum(a.current_value or 0.0 for a in state.assets) - total_debt(state)


def allocation_breakdown(state: FinanceState) -> dict[str, float]:
    """
    Share (%) of asset value per class.

    **Returns:**
        Dict with ``equity``, ``debt``, ``gold``, ``liquid``, ``real_estate``
        and ``personal`` keys summing to 100 (all 0 when there are no assets)
    """
    values = dict.fromkeys(_ALLOCATION_KEYS.values(), 0.0)
    for asset in state.assets:
        values[_ALLOCATION_KEYS[asset.category]] += asset.current_value or 0.0
    total = sum(values.values())
    return {key: safe_ratio(value, total) * 100 for key, value in values.items()}


def _discount_fallback(state: FinanceState) -> float:
    settings = state.discount_settings
    if settings is not None and settings.default_discount_rate is not None:
        return settings.default_discount_rate
    return state.insurance_analysis.investment_rate


def goal_requirements_pv(state: FinanceState, current_year: int) -> float:
    """
    Present value of every future goal payment.

    Payments are discounted with the rolling discount factors (bucketed
    discount rates when enabled, else the default discount rate or the
    insurance investment rate).
    """
    ctx = ProjectionContext.from_state(state, current_year)
    end_year = ctx.life_expectancy_year
    if end_year < current_year or not state.goals:
        return 0.0
    factors = build_discount_factors(
        current_year,
        end_year,
        ctx.retirement_year,
        state.discount_settings,
        _discount_fallback(state),
    )
    return sum(
        goal_amount_for_year(goal, year, ctx) / factors[year]
        for goal in state.goals
        for year in range(current_year, end_year + 1)
    )


def goal_summary(state: FinanceState, current_year: int) -> list[GoalCost]:
    """
    Per-goal cost summary in funding order (priority, then entry order).

    Discounting uses the same factors as :func:`goal_requirements_pv`,
    extended to the last goal year when a goal outlives the life expectancy.
    """
    if not state.goals:
        return []
    ctx = ProjectionContext.from_state(state, current_year)
    windows = [(ctx.resolve(g.start_date), ctx.resolve(g.end_date)) for g in state.goals]
    end_year = max([ctx.life_expectancy_year] + [end for _, end in windows])
    factors = build_discount_factors(
        current_year,
        max(end_year, current_year),
        ctx.retirement_year,
        state.discount_settings,
        _discount_fallback(state),
    )

    order = sorted(range(len(state.goals)), key=lambda i: (state.goals[i].priority, i))
    rows = []
    for rank, i in enumerate(order, start=1):
        goal = state.goals[i]
        start, end = windows[i]
        sum_corpus = 0.0
        required = 0.0
        for year in range(start, end + 1):
            nominal = goal_amount_for_year(goal, year, ctx)
            if nominal <= 0:
                continue
            sum_corpus += nominal
            required += nominal / factors.get(year, 1.0)

        rate = goal_inflation_rate(goal, ctx)
        if not goal.is_recurring:
            corpus_today = inflate_in(ctx, goal.target_amount_today, current_year, end, rate)
        else:
            interval = goal_interval_years(goal.frequency, goal.frequency_interval_years)
            corpus_today = 0.0
            for year in range(start, end + 1):
                if interval > 1 and (year - start) % interval != 0:
                    continue
                amount = inflate_in(ctx, goal.target_amount_today, current_year, year, rate)
                corpus_today += amount * 12 if goal.frequency == "Monthly" else amount

        current = goal.current_amount or 0.0
        progress = min(100.0, current / sum_corpus * 100) if sum_corpus > 0 else 0.0
        rows.append(
            GoalCost(
                rank=rank,
                goal_id=goal.id,
                goal_type=goal.type,
                priority=goal.priority,
                start_year=start,
                end_year=end,
                corpus_at_start=start_year_amount(goal, ctx),
                sum_corpus=sum_corpus,
                current_corpus_required=required,
                corpus_today=corpus_today,
                current_amount=current,
                progress_pct=progress,
            )
        )
    return rows


def insurance_gap(state: FinanceState, current_year: int) -> HLVBreakdown:
    """
    Human-Life-Value breakdown.

    ``gap = max(0, immediate needs + PV of expense replacement + debt + goal PV
    - existing cover - discounted financial assets)``. Expense replacement
    is an annuity of current yearly expenses over ``replacement_years`` at
    the real (inflation-adjusted) investment rate.
    """
    config = state.insurance_analysis
    annual_expenses = household_monthly_expenses(state, current_year) * 12
    rate = real_rate(config.investment_rate, config.inflation)
    if config.existing_insurance is not None:
        coverage = config.existing_insurance
    else:
        coverage = sum(
            p.sum_assured or 0.0
            for p in state.insurance
            if "life" in (p.category or "").lower()
        )
    financial = sum(
        a.current_value or 0.0 for a in state.assets if a.category in FINANCIAL_CATEGORIES
    )
    return HLVBreakdown(
        immediate_needs=config.immediate_needs or 0.0,
        expense_replacement_pv=annual_expenses * pv_factor(rate, config.replacement_years),
        outstanding_debt=total_debt(state),
        goal_requirements=goal_requirements_pv(state, current_year),
        existing_coverage=coverage,
        discounted_assets=financial * (config.financial_asset_discount or 0.0) / 100,
    )


def corpus_drawdown(result: ProjectionResult) -> float:
    """
    Deepest fall (fraction, <= 0) of the total closing corpus from its running peak.
    """
    df = result.to_frame()
    if df.empty:
        return 0.0
    corpus = df["closing_total"]
    running_max = corpus.expanding().max()
    drawdown = np.where(running_max > 0, (corpus - running_max) / running_max, 0.0)
    return float(pd.Series(drawdown).min())


def build_audit_summary(
    state: FinanceState,
    current_year: int,
    projection: ProjectionResult | None = None,
) -> AuditSummary:
    """
    Compute the full audit bundle for ``state``.

    **Args:**
        state: Entity snapshot
        current_year: The audit's "today"
        projection: Optional projection whose unfunded-deficit years are carried
            into the summary

    **Example:**
        ```python
        summary = build_audit_summary(state, 2026)
        summary.debt_to_income, summary.emergency_fund_months
        ```
    """
    income = household_monthly_income(state, current_year)
    expenses = household_monthly_expenses(state, current_year)
    emi = monthly_debt_service(state)
    liquid = liquid_assets(state)
    surplus = income - expenses - emi
    deficit_years = (
        [row.year for row in projection if row.unfunded_deficit > 0] if projection else []
    )
    return AuditSummary(
        current_year=current_year,
        monthly_income=income,
        monthly_expenses=expenses,
        monthly_emi=emi,
        monthly_commitments=monthly_commitments(state, current_year),
        liquid_assets=liquid,
        net_worth=net_worth(state),
        total_debt=total_debt(state),
        debt_to_income=debt_to_income_ratio(emi, income),
        survival_ratio=survival_ratio(expenses, income),
        savings_rate=success_ratio(surplus, income),
        emergency_fund_months=emergency_fund_months(liquid, expenses, emi),
        allocation=allocation_breakdown(state),
        hlv=insurance_gap(state, current_year),
        goal_count=len(state.goals),
        has_risk_profile=state.risk_profile is not None,
        deficit_years=deficit_years,
    )
