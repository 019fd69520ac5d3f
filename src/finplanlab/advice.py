"""
Rule-based recommendations over an audit summary.

Each rule is an independent predicate/action pair. Rules are evaluated in a
fixed priority order and every rule that fires contributes one
recommendation; the "all clear" message is emitted only when none fired.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .kpi import AuditSummary

EMERGENCY_FUND_MIN_MONTHS = 6
DTI_MAX_PCT = 40.0
SAVINGS_RATE_MIN_PCT = 20.0


@dataclass(frozen=True)
class Recommendation:
    code: str
    severity: str  # critical | high | medium | low | info
    title: str
    detail: str


@dataclass(frozen=True)
class Rule:
    code: str
    applies: Callable[[AuditSummary], bool]
    build: Callable[[AuditSummary], Recommendation]


def _deficit(s: AuditSummary) -> Recommendation:
    if s.monthly_surplus < 0:
        detail = (
            f"Monthly outgoings exceed income by {-s.monthly_surplus:,.0f}. "
            "Cut discretionary spending or restructure debt before adding goals."
        )
    else:
        years = ", ".join(str(y) for y in s.deficit_years[:5])
        detail = f"The projection runs out of cash and assets in: {years}."
    return Recommendation("DEFICIT", "critical", "Cashflow deficit", detail)


def _emergency(s: AuditSummary) -> Recommendation:
    return Recommendation(
        "EMERGENCY_FUND",
        "high",
        "Build an emergency fund",
        f"Liquid assets cover {s.emergency_fund_months:.1f} months of expenses and "
        f"EMIs; aim for at least {EMERGENCY_FUND_MIN_MONTHS}.",
    )


def _debt_load(s: AuditSummary) -> Recommendation:
    return Recommendation(
        "DEBT_LOAD",
        "high",
        "Reduce debt load",
        f"EMIs take {s.debt_to_income:.1f}% of income (limit {DTI_MAX_PCT:.0f}%). "
        "Consider prepaying the costliest loan.",
    )


def _insurance(s: AuditSummary) -> Recommendation:
    return Recommendation(
        "INSURANCE_GAP",
        "high",
        "Close the life cover gap",
        f"Life cover falls short of the household's need by {s.insurance_gap:,.0f}.",
    )


def _savings(s: AuditSummary) -> Recommendation:
    return Recommendation(
        "SAVINGS_RATE",
        "medium",
        "Raise the savings rate",
        f"You save {s.savings_rate:.1f}% of income; target {SAVINGS_RATE_MIN_PCT:.0f}% or more.",
    )


def _no_goals(s: AuditSummary) -> Recommendation:
    return Recommendation(
        "NO_GOALS",
        "medium",
        "Define your goals",
        "No goals are recorded, so surplus cash has no plan.",
    )


def _no_risk_profile(s: AuditSummary) -> Recommendation:
    return Recommendation(
        "NO_RISK_PROFILE",
        "low",
        "Complete the risk profile",
        "Without a risk profile the corpus is projected at a balanced return.",
    )


# Evaluation order is the priority order
RULES: tuple[Rule, ...] = (
    Rule("DEFICIT", lambda s: s.monthly_surplus < 0 or bool(s.deficit_years), _deficit),
    Rule(
        "EMERGENCY_FUND",
        lambda s: s.emergency_fund_months < EMERGENCY_FUND_MIN_MONTHS,
        _emergency,
    ),
    Rule("DEBT_LOAD", lambda s: s.debt_to_income > DTI_MAX_PCT, _debt_load),
    Rule("INSURANCE_GAP", lambda s: s.insurance_gap > 0, _insurance),
    Rule("SAVINGS_RATE", lambda s: s.savings_rate < SAVINGS_RATE_MIN_PCT, _savings),
    Rule("NO_GOALS", lambda s: s.goal_count == 0, _no_goals),
    Rule("NO_RISK_PROFILE", lambda s: not s.has_risk_profile, _no_risk_profile),
)

ALL_CLEAR = Recommendation(
    "ALL_CLEAR",
    "info",
    "All clear",
    "Ratios are within healthy ranges. Review the plan once a year.",
)


def generate_recommendations(
    summary: AuditSummary, rules: tuple[Rule, ...] = RULES
) -> list[Recommendation]:
    """Evaluate ``rules`` in order; return what fired, or ``[ALL_CLEAR]``."""
    fired = [rule.build(summary) for rule in rules if rule.applies(summary)]
    return fired or [ALL_CLEAR]
