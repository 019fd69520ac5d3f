"""
Loan amortization for FinPlanLab.

EMI calculation, tenure-unit inference for the ambiguous ``remaining_tenure``
field, month-by-month schedules with lump-sum and what-if prepayments, yearly
rollups, per-year debt service for the simulator and goal-loan reconciliation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from .entities import Goal, Loan
from .errors import warn_once
from .kinds import DEFAULT_BRIDGE_LOAN_TYPE, LOAN_TYPE_BY_GOAL, TenureBasis
from .utils import js_round

logger = logging.getLogger(__name__)

# Extra months simulated past the nominal tenure before giving up
RUNAWAY_GUARD_MONTHS = 600
# Preferred interpretation must be this much closer to the stated EMI
DOMINANCE_MARGIN = 0.6
# remaining_tenure values up to this are read as years by the fallback heuristic
YEARS_THRESHOLD = 40
# Balances below this are treated as fully repaid
_SETTLED = 0.005


@dataclass(frozen=True)
class TenureInference:
    months: int
    basis: TenureBasis


@dataclass(frozen=True)
class ScheduleRow:
    """One month of a loan schedule."""

    month: int
    year: int
    opening_balance: float
    interest: float
    emi: float
    principal: float
    extra_payment: float
    closing_balance: float
    negative_amortization: bool = False

    @property
    def payment(self) -> float:
        """Cash actually paid this month (capped installment plus prepayment)."""
        return min(self.emi, self.opening_balance + self.interest) + self.extra_payment


@dataclass
class AmortizationResult:
    """
    Full schedule of a loan.

    Attributes:
        schedule: Month-by-month rows
        total_interest: Interest accrued over the schedule
        months_remaining: Number of scheduled months
        emi: Installment used (stated or auto-calculated)
        basis: How ``remaining_tenure`` was interpreted
        converged: False when the runaway guard stopped a loan that never amortizes
        negative_amortization: True when any month's EMI failed to cover interest
    """

    schedule: list[ScheduleRow]
    total_interest: float
    months_remaining: int
    emi: float
    basis: TenureBasis
    converged: bool = True
    negative_amortization: bool = False

    def to_frame(self) -> pd.DataFrame:
        """Schedule as a DataFrame indexed by month number."""
        columns = [
            "month",
            "year",
            "opening_balance",
            "interest",
            "emi",
            "principal",
            "extra_payment",
            "closing_balance",
            "negative_amortization",
        ]
        df = pd.DataFrame(
            [[getattr(row, c) for c in columns] for row in self.schedule],
            columns=columns,
        )
        return df.set_index("month")


@dataclass(frozen=True)
class YearlyAmortizationRow:
    year_index: int
    year: int
    opening_balance: float
    interest: float
    emi: float
    principal: float
    extra_payment: float
    closing_balance: float


@dataclass(frozen=True)
class PrepaymentImpact:
    """Effect of a one-time prepayment compared with the baseline schedule."""

    baseline: AmortizationResult
    with_prepayment: AmortizationResult
    interest_saved: float
    months_saved: int


def calculate_emi(principal: float, annual_rate_pct: float, months: int) -> float:
    """
    Fixed monthly installment that amortizes ``principal`` over ``months``.

    ``P * r * (1 + r)^n / ((1 + r)^n - 1)`` with ``r`` the monthly rate; a zero
    or negative rate degrades to ``principal / months``.

    **Example:**
        ```python
        calculate_emi(2_500_000, 8.5, 240)  # ~21,696
        ```
    """
    if months <= 0:
        return 0.0
    if annual_rate_pct <= 0:
        return principal / months
    r = annual_rate_pct / 12 / 100
    growth = (1 + r) ** months
    return principal * r * growth / (growth - 1)


def infer_tenure_months(loan: Loan) -> TenureInference:
    """
    Decide whether ``loan.remaining_tenure`` is in months or years.

    When EMI, outstanding amount and rate are all known, the implied EMI is
    computed under both readings and the one closer to the stated EMI wins,
    provided it is closer by the dominance margin. Otherwise values up to 40
    are read as years and larger values as months.
    """
    raw = max(1, js_round(loan.remaining_tenure or 0))
    as_months = raw
    as_years = raw * 12

    if loan.emi > 0 and loan.outstanding_amount > 0 and loan.interest_rate > 0:
        emi_months = calculate_emi(loan.outstanding_amount, loan.interest_rate, as_months)
        emi_years = calculate_emi(loan.outstanding_amount, loan.interest_rate, as_years)
        diff_months = abs(emi_months - loan.emi)
        diff_years = abs(emi_years - loan.emi)
        if diff_years < diff_months * DOMINANCE_MARGIN:
            return TenureInference(as_years, TenureBasis.YEARS)
        if diff_months < diff_years * DOMINANCE_MARGIN:
            return TenureInference(as_months, TenureBasis.MONTHS)

    if raw <= YEARS_THRESHOLD:
        return TenureInference(as_years, TenureBasis.YEARS)
    return TenureInference(as_months, TenureBasis.MONTHS)


def build_amortization_schedule(
    loan: Loan,
    extra_payment: float | None = None,
    override_months: int | None = None,
    *,
    current_year: int | None = None,
) -> AmortizationResult:
    """
    Simulate a loan month by month until it is repaid.

    Each month accrues ``opening * monthly_rate`` interest and applies the EMI.
    If the EMI does not cover the interest the principal part is 0, the
    balance grows and the row is flagged ``negative_amortization``. Lump-sum
    repayments apply in the first month of their calendar year; ``extra_payment``
    applies once, in the first month. The loop stops when the balance reaches 0
    or after ``total_months + 600`` months, in which case ``converged`` is False.

    **Args:**
        loan: The loan to schedule
        extra_payment: One-time what-if prepayment
        override_months: Tenure to use instead of the inferred one
        current_year: Start year when ``loan.start_year`` is not set

    **Returns:**
        AmortizationResult with the schedule and totals
    """
    inference = infer_tenure_months(loan)
    total_months = max(1, override_months if override_months else inference.months)
    monthly_rate = (loan.interest_rate or 0.0) / 12 / 100
    emi = (
        loan.emi
        if loan.emi > 0
        else calculate_emi(loan.outstanding_amount, loan.interest_rate, total_months)
    )
    start_year = loan.start_year or current_year or 0

    lump_sums: dict[int, float] = {}
    for ls in loan.lump_sum_repayments or []:
        if ls is None or ls.year is None or ls.year < start_year:
            continue
        lump_sums[ls.year] = lump_sums.get(ls.year, 0.0) + (ls.amount or 0.0)

    schedule: list[ScheduleRow] = []
    balance = float(loan.outstanding_amount or 0.0)
    total_interest = 0.0
    month = 0
    extra_applied = False
    any_negative = False
    limit = total_months + RUNAWAY_GUARD_MONTHS

    while balance > _SETTLED and month < limit:
        month += 1
        year = start_year + (month - 1) // 12
        month_of_year = (month - 1) % 12 + 1
        opening = balance

        interest = opening * monthly_rate
        principal = emi - interest
        negative = principal < 0
        if negative:
            principal = 0.0
            any_negative = True
        after_emi = opening + interest - emi

        extra = lump_sums.get(year, 0.0) if month_of_year == 1 else 0.0
        if not extra_applied and extra_payment and extra_payment > 0:
            extra += extra_payment
            extra_applied = True
        # Prepayment never exceeds what is still owed
        extra = min(extra, max(0.0, after_emi))

        closing = max(0.0, after_emi - extra)
        if closing <= _SETTLED:
            closing = 0.0

        schedule.append(
            ScheduleRow(
                month=month,
                year=year,
                opening_balance=opening,
                interest=interest,
                emi=emi,
                principal=min(opening, principal),
                extra_payment=extra,
                closing_balance=closing,
                negative_amortization=negative,
            )
        )
        total_interest += interest
        balance = closing

    converged = balance <= _SETTLED
    if not converged:
        warn_once(
            "NO_CONVERGENCE",
            loan.id,
            f"[{loan.id}] loan did not amortize within {limit} months "
            f"(EMI {emi:,.2f} vs first-month interest "
            f"{loan.outstanding_amount * monthly_rate:,.2f}).",
        )
    logger.debug(
        "Loan %s: %d months, basis=%s, total interest %.2f",
        loan.id,
        len(schedule),
        inference.basis.value,
        total_interest,
    )

    return AmortizationResult(
        schedule=schedule,
        total_interest=total_interest,
        months_remaining=len(schedule),
        emi=emi,
        basis=inference.basis,
        converged=converged,
        negative_amortization=any_negative,
    )


def build_yearly_amortization(schedule: list[ScheduleRow]) -> list[YearlyAmortizationRow]:
    """Roll a monthly schedule up into calendar years."""
    by_year: dict[int, dict[str, float]] = {}
    for row in schedule:
        acc = by_year.get(row.year)
        if acc is None:
            by_year[row.year] = {
                "opening_balance": row.opening_balance,
                "interest": row.interest,
                "emi": row.emi,
                "principal": row.principal,
                "extra_payment": row.extra_payment,
                "closing_balance": row.closing_balance,
            }
            continue
        acc["interest"] += row.interest
        acc["emi"] += row.emi
        acc["principal"] += row.principal
        acc["extra_payment"] += row.extra_payment
        acc["closing_balance"] = row.closing_balance

    return [
        YearlyAmortizationRow(year_index=i + 1, year=year, **by_year[year])
        for i, year in enumerate(sorted(by_year))
    ]


def prepayment_impact(
    loan: Loan, extra_payment: float, *, current_year: int | None = None
) -> PrepaymentImpact:
    """Compare the schedule with and without a one-time prepayment."""
    baseline = build_amortization_schedule(loan, current_year=current_year)
    prepaid = build_amortization_schedule(
        loan, extra_payment=extra_payment, current_year=current_year
    )
    return PrepaymentImpact(
        baseline=baseline,
        with_prepayment=prepaid,
        interest_saved=baseline.total_interest - prepaid.total_interest,
        months_saved=baseline.months_remaining - prepaid.months_remaining,
    )


def debt_service_by_year(loan: Loan, current_year: int) -> dict[int, float]:
    """
    Cash paid towards a loan per calendar year (installments plus lump sums).

    Loans without a ``start_year`` are assumed to start in ``current_year``.
    """
    result = build_amortization_schedule(loan, current_year=current_year)
    paid: dict[int, float] = {}
    for row in result.schedule:
        paid[row.year] = paid.get(row.year, 0.0) + row.payment
    return paid


@dataclass
class _BridgeDefaults:
    owner: str = "self"
    source: str = "Goal bridge"
    source_type: str = "Bank"
    lump_sum_repayments: list = field(default_factory=list)


def bridge_loan_id(goal: Goal) -> str:
    """Id of the loan record synced from a goal's bridge financing."""
    if goal.loan is not None and goal.loan.loan_id:
        return goal.loan.loan_id
    return f"goal-{goal.id}"


def sync_goal_loan(goal: Goal, loans: list[Loan], start_year: int | None = None) -> list[Loan]:
    """
    Reconcile the loan list with a goal's bridge financing.

    An enabled bridge with a positive amount creates the linked loan or
    updates it in place (keeping user-entered owner, source and lump sums);
    a disabled or missing bridge removes it. The input list is not mutated.

    **Args:**
        goal: Goal whose ``loan`` field drives the sync
        loans: Current loan records
        start_year: Year the loan is drawn (typically the goal's start year)

    **Returns:**
        New list of loans
    """
    loan_id = bridge_loan_id(goal)
    bridge = goal.loan
    if bridge is None or not bridge.enabled or (bridge.amount or 0) <= 0:
        return [loan for loan in loans if loan.id != loan_id]

    months = max(1, int(bridge.tenure_months or 0))
    emi = bridge.emi or calculate_emi(bridge.amount, bridge.interest_rate, months)
    existing = next((loan for loan in loans if loan.id == loan_id), None)
    keep = existing or _BridgeDefaults()
    synced = Loan(
        id=loan_id,
        type=LOAN_TYPE_BY_GOAL.get(goal.type, DEFAULT_BRIDGE_LOAN_TYPE),
        owner=keep.owner,
        source=keep.source,
        source_type=keep.source_type,
        sanctioned_amount=bridge.amount,
        outstanding_amount=bridge.amount,
        interest_rate=bridge.interest_rate,
        remaining_tenure=months,
        emi=emi,
        start_year=start_year,
        lump_sum_repayments=list(keep.lump_sum_repayments),
        notes=f"Linked to goal: {goal.description or goal.type}",
    )
    if existing is None:
        return [*loans, synced]
    return [synced if loan.id == loan_id else loan for loan in loans]


def annual_debt_service(loan: Loan, year: int, current_year: int) -> float:
    """Installments and lump sums paid towards ``loan`` during calendar ``year``."""
    return debt_service_by_year(loan, current_year).get(year, 0.0)
