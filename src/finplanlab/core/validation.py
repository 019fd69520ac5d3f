"""
Pre-engine validation for FinPlanLab finance states.

The engine runs on whatever it is given; this module is the gate in front of
it. Range problems that make a projection meaningless are errors, suspicious
but computable inputs are warnings.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .context import ProjectionContext
from .entities import FinanceState
from .errors import StateValidationError

# Accepted ranges (inclusive, percentages)
GROWTH_RATE_RANGE = (0.0, 30.0)
INTEREST_RATE_RANGE = (1.0, 40.0)
INFLATION_RANGE = (0.0, 25.0)
GOAL_INFLATION_RANGE = (0.0, 15.0)
AGE_RANGE = (18, 100)


@dataclass
class ValidationReport:
    """
    Structured validation report for a finance state.

    Provides machine-readable results with a clear error/warning split for
    the CLI and for callers gating a projection.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def is_valid(self) -> bool:
        """Check if validation passed (no errors, warnings are OK)."""
        return not self.has_errors()

    def get_exit_code(self) -> int:
        """
        Get appropriate CLI exit code.

        Returns:
            0: Valid (no errors)
            1: Errors present
            2: Warnings only
        """
        if self.has_errors():
            return 1
        elif self.has_warnings():
            return 2
        else:
            return 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "has_errors": self.has_errors(),
            "has_warnings": self.has_warnings(),
            "is_valid": self.is_valid(),
            "exit_code": self.get_exit_code(),
        }

    def __str__(self) -> str:
        """Human-readable string representation."""
        lines = ["✅ Validation passed" if self.is_valid() else "❌ Validation failed"]
        lines.extend(f"  error: {msg}" for msg in self.errors)
        lines.extend(f"  warning: {msg}" for msg in self.warnings)
        return "\n".join(lines)


def _out_of(value: float | None, bounds: tuple[float, float]) -> bool:
    return value is not None and not bounds[0] <= value <= bounds[1]


def _check_duplicates(kind: str, ids: list[str], report: ValidationReport) -> None:
    for entity_id, count in Counter(ids).items():
        if count > 1:
            report.errors.append(f"Duplicate {kind} id '{entity_id}' ({count} records)")


def _check_window(label: str, start: int | None, end: int | None, report: ValidationReport):
    if start is not None and end is not None and start > end:
        report.errors.append(f"{label}: start year {start} is after end year {end}")


def validate_state(
    state: FinanceState, current_year: int, strict: bool = False
) -> ValidationReport:
    """
    Check a finance state before it is projected.

    **Args:**
        state: Entity snapshot
        current_year: The projection's "today"
        strict: Raise instead of returning a failing report

    **Returns:**
        ValidationReport with errors and warnings

    **Raises:**
        StateValidationError: If ``strict`` and any error was found
    """
    report = ValidationReport()
    profile = state.profile
    ctx = ProjectionContext.from_state(state, current_year)

    # Profile
    if _out_of(profile.retirement_age, AGE_RANGE):
        report.errors.append(f"Retirement age {profile.retirement_age} outside {AGE_RANGE}")
    if _out_of(profile.life_expectancy, AGE_RANGE):
        report.errors.append(f"Life expectancy {profile.life_expectancy} outside {AGE_RANGE}")
    if profile.retirement_age >= profile.life_expectancy:
        report.errors.append(
            f"Retirement age {profile.retirement_age} must be below "
            f"life expectancy {profile.life_expectancy}"
        )
    if not profile.dob:
        report.warnings.append(
            f"Profile has no date of birth; assuming birth year {ctx.birth_year}"
        )
    if ctx.life_expectancy_year <= current_year:
        report.warnings.append("Life expectancy year has passed; the projection is empty")
    if (profile.monthly_expenses or 0) < 0:
        report.errors.append("Monthly expenses cannot be negative")

    # Unique ids
    _check_duplicates("family member", [m.id for m in state.family], report)
    _check_duplicates("asset", [a.id for a in state.assets], report)
    _check_duplicates("loan", [loan.id for loan in state.loans], report)
    _check_duplicates("goal", [g.id for g in state.goals], report)
    _check_duplicates("insurance", [p.id for p in state.insurance], report)

    # Assets
    for asset in state.assets:
        if (asset.current_value or 0) < 0:
            report.errors.append(f"Asset '{asset.id}': current value cannot be negative")
        if _out_of(asset.growth_rate, GROWTH_RATE_RANGE):
            report.errors.append(
                f"Asset '{asset.id}': growth rate {asset.growth_rate}% outside {GROWTH_RATE_RANGE}"
            )
        _check_window(
            f"Asset '{asset.id}' contribution",
            asset.contribution_start_year,
            asset.contribution_end_year,
            report,
        )
        if asset.purchase_year is not None and asset.purchase_year > current_year:
            report.errors.append(
                f"Asset '{asset.id}': purchase year {asset.purchase_year} is in the future"
            )
        if (
            asset.available_from is not None
            and asset.purchase_year is not None
            and asset.available_from < asset.purchase_year
        ):
            report.errors.append(
                f"Asset '{asset.id}': available from {asset.available_from} "
                f"precedes purchase year {asset.purchase_year}"
            )

    # Loans
    for loan in state.loans:
        if (loan.outstanding_amount or 0) < 0:
            report.errors.append(f"Loan '{loan.id}': outstanding amount cannot be negative")
        if (loan.outstanding_amount or 0) > 0 and _out_of(
            loan.interest_rate, INTEREST_RATE_RANGE
        ):
            report.errors.append(
                f"Loan '{loan.id}': interest rate {loan.interest_rate}% "
                f"outside {INTEREST_RATE_RANGE}"
            )
        if 0 < loan.sanctioned_amount < (loan.outstanding_amount or 0):
            report.errors.append(
                f"Loan '{loan.id}': sanctioned amount {loan.sanctioned_amount:,.0f} "
                "is below the outstanding amount"
            )
        monthly_interest = (loan.outstanding_amount or 0) * (loan.interest_rate or 0) / 1200
        if 0 < loan.emi <= monthly_interest:
            report.warnings.append(
                f"Loan '{loan.id}': EMI {loan.emi:,.0f} does not cover monthly interest "
                f"{monthly_interest:,.0f}; the balance will grow"
            )
        for lump in loan.lump_sum_repayments:
            if loan.start_year is not None and lump.year < loan.start_year:
                report.warnings.append(
                    f"Loan '{loan.id}': lump sum in {lump.year} precedes the loan start "
                    "and is ignored"
                )

    # Goals
    for goal in state.goals:
        start = ctx.resolve(goal.start_date)
        end = ctx.resolve(goal.end_date)
        _check_window(f"Goal '{goal.id}'", start, end, report)
        if (goal.target_amount_today or 0) < 0:
            report.errors.append(f"Goal '{goal.id}': target amount cannot be negative")
        if _out_of(goal.inflation_rate, GOAL_INFLATION_RANGE):
            report.errors.append(
                f"Goal '{goal.id}': inflation {goal.inflation_rate}% "
                f"outside {GOAL_INFLATION_RANGE}"
            )
        if goal.priority < 1:
            report.errors.append(f"Goal '{goal.id}': priority must be 1 or higher")
        if end <= current_year:
            report.warnings.append(
                f"Goal '{goal.id}' ends in {end}, before the projection starts"
            )

    # Cashflows and commitments
    for item in state.cashflows:
        _check_window(f"Cashflow '{item.label}'", item.start_year, item.end_year, report)
    for commitment in state.investment_commitments:
        _check_window(
            f"Commitment '{commitment.label}'",
            commitment.start_year,
            commitment.end_year,
            report,
        )
    for expense in state.detailed_expenses:
        if _out_of(expense.inflation_rate, INFLATION_RANGE):
            report.errors.append(
                f"Expense '{expense.category}': inflation {expense.inflation_rate}% "
                f"outside {INFLATION_RANGE}"
            )

    if strict and report.has_errors():
        raise StateValidationError(report)
    return report
