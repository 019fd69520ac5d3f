"""
Command-line interface for FinPlanLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from enum import Enum

from finplanlab import __version__
from finplanlab.advice import generate_recommendations
from finplanlab.core.amortization import build_amortization_schedule, build_yearly_amortization
from finplanlab.core.entities import FinanceState
from finplanlab.core.errors import ConfigError
from finplanlab.core.risk import answer_scores, score_risk_profile
from finplanlab.core.store import load_finance_state
from finplanlab.core.timeline import ProjectionConfig, project_timeline
from finplanlab.core.validation import validate_state
from finplanlab.kpi import build_audit_summary, goal_summary

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars and arrays, pandas objects, enums and dataclasses."""

    def default(self, obj):
        import dataclasses

        import numpy as np
        import pandas as pd

        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, pd.DataFrame):
            return obj.to_dict("records")
        elif isinstance(obj, pd.Series):
            return obj.to_dict()
        elif isinstance(obj, Enum):
            return obj.value
        elif dataclasses.is_dataclass(obj):
            return dataclasses.asdict(obj)
        return super().default(obj)


def _dump(data) -> None:
    json.dump(data, sys.stdout, indent=2, cls=NumpyEncoder)
    sys.stdout.write("\n")


def _load_state(path: str) -> FinanceState:
    state = load_finance_state(path)
    if state is None:
        raise ConfigError(f"State file not found: {path}")
    return state


EXAMPLE_STATE = {
    "profile": {
        "firstName": "Asha",
        "dob": "1994-04-12",
        "retirementAge": 60,
        "lifeExpectancy": 85,
        "monthlyExpenses": 60000,
        "income": {"salary": 150000, "bonus": 10000, "expectedIncrease": 7},
    },
    "assets": [
        {"id": "bank", "category": "Liquid", "subCategory": "Savings Account",
         "currentValue": 400000, "growthRate": 3.5},
        {"id": "mf", "category": "Equity", "subCategory": "Mutual Funds",
         "currentValue": 1200000, "growthRate": 12,
         "monthlyContribution": 20000, "contributionStepUp": 5},
        {"id": "epf", "category": "Debt", "subCategory": "EPF",
         "currentValue": 900000, "growthRate": 8.1},
        {"id": "gold", "category": "Gold/Silver", "subCategory": "SGB",
         "currentValue": 300000, "growthRate": 7},
    ],
    "loans": [
        {"id": "home", "type": "Home Loan", "outstandingAmount": 4500000,
         "interestRate": 8.5, "remainingTenure": 216, "startYear": 2026,
         "lumpSumRepayments": [{"year": 2029, "amount": 500000}]},
    ],
    "goals": [
        {"id": "edu", "type": "Child Education", "priority": 1,
         "startDate": {"type": "Year", "value": 2036},
         "endDate": {"type": "Year", "value": 2036},
         "targetAmountToday": 2500000, "inflationRate": 8},
        {"id": "ret", "type": "Retirement", "priority": 2, "isRecurring": True,
         "frequency": "Yearly", "retirementHandling": "CurrentExpenses",
         "startDate": {"type": "Retirement", "value": 0},
         "endDate": {"type": "LifeExpectancy", "value": 0},
         "targetAmountToday": 720000, "inflationRate": 6},
    ],
    "insurance": [
        {"id": "term", "category": "Life Insurance", "type": "Term", "sumAssured": 10000000},
    ],
}


def cmd_example(_) -> int:
    """Print a minimal working finance state JSON."""
    _dump(EXAMPLE_STATE)
    return 0


def cmd_project(args) -> int:
    """Project a finance state year by year."""
    try:
        state = _load_state(args.input)
        config = ProjectionConfig(
            liquidation_order=args.liquidation_order,
            return_rate_override=args.return_rate,
            stop_earned_income_at_retirement=args.stop_income,
            stop_expenses_at_retirement_goal=args.stop_expenses,
        )
        result = project_timeline(state, args.current_year, config)
    except ConfigError as e:
        print(f"Error projecting state: {e}", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(
                {"summary": result.summary(), "timeline": result.to_frame().reset_index()},
                f,
                indent=2,
                cls=NumpyEncoder,
            )
        print(f"Results saved to {args.output}")

    if args.json:
        _dump({"summary": result.summary(), "goals": result.goal_frame()})
        return 0

    df = result.to_frame()
    if df.empty:
        print("Nothing to project: life expectancy year has passed.")
        return 0
    columns = [
        "age",
        "inflow",
        "expenses",
        "debt_service",
        "total_goal_demand",
        "funded_total",
        "total_liquidated",
        "closing_total",
        "achievement_pct",
    ]
    print(df[columns].round(0).to_string())
    summary = result.summary()
    print()
    print(f"Goal achievement: {summary['achievement_pct']:.1f}%")
    print(f"Final corpus: {summary['final_corpus']:,.0f}")
    if summary["deficit_years"]:
        print(f"Unfunded deficit in: {', '.join(map(str, summary['deficit_years']))}")
    return 0


def cmd_amortize(args) -> int:
    """Print the amortization schedule of one or all loans."""
    try:
        state = _load_state(args.input)
    except ConfigError as e:
        print(f"Error loading state: {e}", file=sys.stderr)
        return 1

    loans = [loan for loan in state.loans if args.loan is None or loan.id == args.loan]
    if not loans:
        print(f"No loan matching {args.loan!r}", file=sys.stderr)
        return 1

    output = {}
    for loan in loans:
        result = build_amortization_schedule(
            loan, extra_payment=args.extra, current_year=args.current_year
        )
        rows = build_yearly_amortization(result.schedule) if args.yearly else result.schedule
        output[loan.id] = {
            "emi": result.emi,
            "basis": result.basis,
            "months_remaining": result.months_remaining,
            "total_interest": result.total_interest,
            "converged": result.converged,
            "negative_amortization": result.negative_amortization,
            "schedule": rows,
        }

    if args.json:
        _dump(output)
        return 0

    for loan_id, info in output.items():
        print(
            f"{loan_id}: EMI {info['emi']:,.0f} ({info['basis'].value}), "
            f"{info['months_remaining']} months, interest {info['total_interest']:,.0f}"
        )
        if not info["converged"]:
            print("  warning: loan does not amortize")
    return 0


def cmd_audit(args) -> int:
    """Print audit ratios and recommendations."""
    try:
        state = _load_state(args.input)
    except ConfigError as e:
        print(f"Error loading state: {e}", file=sys.stderr)
        return 1

    projection = project_timeline(state, args.current_year)
    summary = build_audit_summary(state, args.current_year, projection)
    recommendations = generate_recommendations(summary)
    goals = goal_summary(state, args.current_year)

    if args.json:
        _dump(
            {
                "summary": summary.to_dict(),
                "goals": [g.to_dict() for g in goals],
                "recommendations": recommendations,
            }
        )
        return 0

    print(f"Monthly income:      {summary.monthly_income:,.0f}")
    print(f"Monthly expenses:    {summary.monthly_expenses:,.0f}")
    print(f"Monthly EMIs:        {summary.monthly_emi:,.0f}")
    print(f"Debt-to-income:      {summary.debt_to_income:.1f}%")
    print(f"Savings rate:        {summary.savings_rate:.1f}%")
    print(f"Emergency fund:      {summary.emergency_fund_months:.1f} months")
    print(f"Insurance gap:       {summary.insurance_gap:,.0f}")
    print()
    for g in goals:
        print(
            f"{g.rank}. {g.goal_id:<12} {g.start_year}-{g.end_year}  "
            f"total {g.sum_corpus:>14,.0f}  PV {g.current_corpus_required:>14,.0f}  "
            f"progress {g.progress_pct:5.1f}%"
        )
    if goals:
        print()
    for rec in recommendations:
        print(f"[{rec.severity}] {rec.title}: {rec.detail}")
    return 0


def cmd_validate(args) -> int:
    """Validate a finance state file."""
    try:
        state = _load_state(args.input)
    except ConfigError as e:
        if args.format == "json":
            _dump({"has_errors": True, "is_valid": False, "exit_code": 1, "error": str(e)})
        else:
            print(f"❌ Validation failed: {e}")
        return 1

    report = validate_state(state, args.current_year)
    if args.format == "json":
        _dump(report.to_dict())
    else:
        print(str(report))
    return report.get_exit_code()


def cmd_risk(args) -> int:
    """Score risk questionnaire answers (one option index per question)."""
    try:
        profile = score_risk_profile(
            answer_scores(args.answers), last_updated=date.today().isoformat()
        )
    except ConfigError as e:
        print(f"Error scoring answers: {e}", file=sys.stderr)
        return 1
    _dump(profile.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finplan", description="FinPlanLab - Household financial planning engine"
    )
    parser.add_argument("--version", action="version", version=f"FinPlanLab {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="cmd", required=True, help="Available commands")

    def with_state(sub: argparse.ArgumentParser) -> argparse.ArgumentParser:
        sub.add_argument("-i", "--input", required=True, help="Finance state file (YAML or JSON)")
        sub.add_argument(
            "--current-year",
            type=int,
            default=date.today().year,
            help="Year treated as today (default: this year)",
        )
        return sub

    example_parser = subparsers.add_parser(
        "example", help="Print a minimal working finance state JSON"
    )
    example_parser.set_defaults(func=cmd_example)

    project_parser = with_state(
        subparsers.add_parser("project", help="Project cashflows and goal funding")
    )
    project_parser.add_argument(
        "--liquidation-order",
        nargs="+",
        help="Buckets to draw down, first to last (e.g. savings gold mutualFunds)",
    )
    project_parser.add_argument(
        "--return-rate", type=float, help="Growth rate (%%) of the floating corpus"
    )
    project_parser.add_argument(
        "--stop-income",
        action="store_true",
        help="Stop salary, bonus and business income at retirement",
    )
    project_parser.add_argument(
        "--stop-expenses",
        action="store_true",
        help="Stop living expenses once a Retirement goal starts paying out",
    )
    project_parser.add_argument("-o", "--output", help="Write summary and timeline JSON here")
    project_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    project_parser.set_defaults(func=cmd_project)

    amortize_parser = with_state(
        subparsers.add_parser("amortize", help="Show loan amortization schedules")
    )
    amortize_parser.add_argument("--loan", help="Only this loan id")
    amortize_parser.add_argument("--extra", type=float, help="One-time what-if prepayment")
    amortize_parser.add_argument(
        "--yearly", action="store_true", help="Roll the schedule up by calendar year"
    )
    amortize_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    amortize_parser.set_defaults(func=cmd_amortize)

    audit_parser = with_state(
        subparsers.add_parser("audit", help="Show health ratios and recommendations")
    )
    audit_parser.add_argument("--json", action="store_true", help="Output in JSON format")
    audit_parser.set_defaults(func=cmd_audit)

    validate_parser = with_state(
        subparsers.add_parser("validate", help="Validate a finance state file")
    )
    validate_parser.add_argument(
        "--format", choices=["human", "json"], default="human", help="Output format"
    )
    validate_parser.set_defaults(func=cmd_validate)

    risk_parser = subparsers.add_parser("risk", help="Score the risk questionnaire")
    risk_parser.add_argument(
        "answers", nargs="+", type=int, help="Chosen option index (0-3) per question"
    )
    risk_parser.set_defaults(func=cmd_risk)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
