"""
Entity dataclasses for FinPlanLab.

These are the already-validated, typed records handed to the engine by the
input layer: profile, family, income, expenses, assets, loans, goals, cashflow
items, commitments, discount settings, risk profile and insurance data.

Every class offers ``from_dict`` / ``to_dict``. ``from_dict`` accepts both
snake_case keys and the camelCase keys stored by the front-end, ignores unknown
keys and defaults missing numbers to 0.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar

from .errors import ConfigError
from .kinds import (
    AssetCategory,
    Bucket,
    FlowType,
    RelativeDateType,
    RetirementHandling,
    RiskLevel,
)
from .utils import clamp, snake_case


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping, got {type(data).__name__}")
    return {snake_case(k): v for k, v in data.items()}


def _to_plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else k): _to_plain(v)
            for k, v in value.items()
        }
    return value


class _Record:
    """Mixin implementing dict round-tripping for entity dataclasses."""

    # field name -> record class (or (list, record class)) for nested payloads
    _nested: ClassVar[dict[str, Any]] = {}
    # field name -> enum class parsed on load
    _enums: ClassVar[dict[str, type]] = {}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None):
        if data is None:
            return None
        if isinstance(data, cls):
            return data
        raw = _normalize_keys(data)
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in raw:
                continue
            value = raw[f.name]
            if value is None:
                # Fall back to the declared default (or factory) for nulls
                if f.default is not MISSING or f.default_factory is not MISSING:
                    continue
            elif f.name in cls._nested:
                target = cls._nested[f.name]
                if isinstance(target, tuple):
                    value = [target[1].from_dict(v) for v in value]
                else:
                    value = target.from_dict(value)
            elif f.name in cls._enums:
                value = cls._enums[f.name].parse(value)
            kwargs[f.name] = value
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigError(f"Invalid {cls.__name__} payload: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _to_plain(getattr(self, f.name)) for f in fields(self)}


@dataclass
class DetailedIncome(_Record):
    """Monthly income components of one earner plus expected yearly raise (%)."""

    salary: float = 0.0
    bonus: float = 0.0
    reimbursements: float = 0.0
    business: float = 0.0
    rental: float = 0.0
    investment: float = 0.0
    expected_increase: float = 0.0

    def __post_init__(self):
        self.expected_increase = clamp(float(self.expected_increase or 0.0), 0.0, 25.0)

    def earned(self) -> float:
        """Components that stop when work stops."""
        return (
            (self.salary or 0.0)
            + (self.bonus or 0.0)
            + (self.reimbursements or 0.0)
            + (self.business or 0.0)
        )

    def passive(self) -> float:
        """Components that continue after retirement."""
        return (self.rental or 0.0) + (self.investment or 0.0)

    def total(self) -> float:
        return self.earned() + self.passive()


@dataclass
class Profile(_Record):
    first_name: str = ""
    last_name: str = ""
    dob: str = ""
    retirement_age: int = 60
    life_expectancy: int = 85
    monthly_expenses: float = 0.0
    income: DetailedIncome = field(default_factory=DetailedIncome)
    country: str = ""

    _nested: ClassVar[dict[str, Any]] = {"income": DetailedIncome}


@dataclass
class FamilyMember(_Record):
    id: str
    name: str = ""
    relation: str = "Other"
    age: int = 0
    is_dependent: bool = False
    income: DetailedIncome = field(default_factory=DetailedIncome)
    monthly_expenses: float = 0.0

    _nested: ClassVar[dict[str, Any]] = {"income": DetailedIncome}


@dataclass
class ExpenseItem(_Record):
    """Monthly living-expense line; ``tenure`` in years, 0 means open-ended."""

    category: str = ""
    amount: float = 0.0
    inflation_rate: float = 6.0
    tenure: int = 0
    start_year: int | None = None


@dataclass
class Asset(_Record):
    id: str
    category: AssetCategory = AssetCategory.LIQUID
    sub_category: str = ""
    name: str = ""
    owner: str = "self"
    current_value: float = 0.0
    purchase_year: int | None = None
    growth_rate: float = 0.0
    available_for_goals: bool = True
    available_from: int | None = None
    monthly_contribution: float = 0.0
    contribution_frequency: str = "Monthly"
    contribution_step_up: float = 0.0
    contribution_start_year: int | None = None
    contribution_end_year: int | None = None

    _enums: ClassVar[dict[str, type]] = {"category": AssetCategory}

    def __post_init__(self):
        self.category = AssetCategory.parse(self.category)


@dataclass
class LumpSumRepayment(_Record):
    year: int
    amount: float = 0.0


@dataclass
class Loan(_Record):
    id: str
    type: str = "Others"
    owner: str = "self"
    source: str = ""
    source_type: str = "Bank"
    sanctioned_amount: float = 0.0
    outstanding_amount: float = 0.0
    interest_rate: float = 0.0
    remaining_tenure: float = 0.0  # months or years, see infer_tenure_months
    emi: float = 0.0  # 0 = auto-calculate
    start_year: int | None = None
    lump_sum_repayments: list[LumpSumRepayment] = field(default_factory=list)
    notes: str = ""

    _nested: ClassVar[dict[str, Any]] = {
        "lump_sum_repayments": (list, LumpSumRepayment)
    }


@dataclass
class RelativeDate(_Record):
    type: RelativeDateType = RelativeDateType.YEAR
    value: int = 0

    _enums: ClassVar[dict[str, type]] = {"type": RelativeDateType}


@dataclass
class GoalLoan(_Record):
    """Bridge financing attached to a goal; synced to a Loan record."""

    enabled: bool = False
    loan_id: str | None = None
    amount: float = 0.0
    interest_rate: float = 0.0
    tenure_months: int = 0
    emi: float = 0.0


@dataclass
class Goal(_Record):
    id: str
    type: str = "Others"
    description: str = ""
    priority: int = 1
    resource_buckets: list[str] = field(default_factory=list)
    is_recurring: bool = False
    frequency: str | None = None
    frequency_interval_years: int | None = None
    start_date: RelativeDate = field(default_factory=RelativeDate)
    end_date: RelativeDate = field(default_factory=RelativeDate)
    target_amount_today: float = 0.0
    start_goal_amount: float | None = None
    inflation_rate: float = 6.0
    current_amount: float = 0.0
    loan: GoalLoan | None = None
    retirement_handling: RetirementHandling | None = None
    expected_monthly_expenses_after_retirement: float = 0.0
    detailed_breakdown: list[ExpenseItem] = field(default_factory=list)

    _nested: ClassVar[dict[str, Any]] = {
        "start_date": RelativeDate,
        "end_date": RelativeDate,
        "loan": GoalLoan,
        "detailed_breakdown": (list, ExpenseItem),
    }
    _enums: ClassVar[dict[str, type]] = {"retirement_handling": RetirementHandling}


@dataclass
class DiscountBucket(_Record):
    """
    A phase of the projection with its own discount and inflation rates.

    ``start_type`` is ``Now`` (offset from the current year) or ``Retirement``
    (offset from the retirement year); ``end_type`` is ``Open``, ``Offset`` or
    ``Retirement``.
    """

    name: str = ""
    start_type: str = "Now"
    start_offset: int = 0
    end_type: str = "Open"
    end_offset: int | None = None
    discount_rate: float | None = None
    inflation_rate: float | None = None


@dataclass
class DiscountSettings(_Record):
    default_inflation_rate: float = 6.0
    default_discount_rate: float | None = None
    use_buckets: bool = False
    use_bucket_inflation: bool = False
    buckets: list[DiscountBucket] = field(default_factory=list)

    _nested: ClassVar[dict[str, Any]] = {"buckets": (list, DiscountBucket)}

    @classmethod
    def pre_post_retirement(
        cls,
        pre_inflation: float,
        post_inflation: float,
        *,
        pre_discount: float | None = None,
        post_discount: float | None = None,
    ) -> DiscountSettings:
        """Two-regime settings: one rate until retirement, another afterwards."""
        return cls(
            default_inflation_rate=pre_inflation,
            use_buckets=pre_discount is not None or post_discount is not None,
            use_bucket_inflation=True,
            buckets=[
                DiscountBucket(
                    name="Pre-retirement",
                    start_type="Now",
                    start_offset=0,
                    end_type="Retirement",
                    end_offset=-1,
                    discount_rate=pre_discount,
                    inflation_rate=pre_inflation,
                ),
                DiscountBucket(
                    name="Post-retirement",
                    start_type="Retirement",
                    start_offset=0,
                    end_type="Open",
                    discount_rate=post_discount,
                    inflation_rate=post_inflation,
                ),
            ],
        )


@dataclass
class CashflowItem(_Record):
    label: str = ""
    flow_type: FlowType = FlowType.INCOME
    amount: float = 0.0
    frequency: str = "Monthly"
    step_up: float = 0.0
    start_year: int | None = None
    end_year: int | None = None
    growth_rate: float = 0.0

    _enums: ClassVar[dict[str, type]] = {"flow_type": FlowType}

    def __post_init__(self):
        self.flow_type = FlowType.parse(self.flow_type)


@dataclass
class InvestmentCommitment(_Record):
    """Recurring investment (SIP, RD, ...) routed into a bucket by its label."""

    label: str = ""
    amount: float = 0.0
    frequency: str = "Monthly"
    step_up: float = 0.0
    start_year: int | None = None
    end_year: int | None = None
    bucket: Bucket | None = None

    _enums: ClassVar[dict[str, type]] = {"bucket": Bucket}


@dataclass
class RiskProfile(_Record):
    score: int = 0
    level: RiskLevel = RiskLevel.BALANCED
    recommended_allocation: dict[str, float] = field(default_factory=dict)
    last_updated: str = ""

    _enums: ClassVar[dict[str, type]] = {"level": RiskLevel}


@dataclass
class Insurance(_Record):
    id: str
    category: str = "Life Insurance"
    type: str = "Term"
    proposer: str = "self"
    insured: str = "self"
    sum_assured: float = 0.0
    premium: float = 0.0
    premium_end_year: int | None = None


@dataclass
class InsuranceAnalysisConfig(_Record):
    """Assumptions for the Human-Life-Value / insurance gap calculation."""

    inflation: float = 6.0
    investment_rate: float = 8.0
    replacement_years: int = 20
    immediate_needs: float = 0.0
    financial_asset_discount: float = 50.0  # % of financial assets counted
    existing_insurance: float | None = None  # None = sum of life policies


@dataclass
class FinanceState(_Record):
    """Full entity snapshot consumed by the engine."""

    profile: Profile = field(default_factory=Profile)
    family: list[FamilyMember] = field(default_factory=list)
    detailed_expenses: list[ExpenseItem] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)
    loans: list[Loan] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    cashflows: list[CashflowItem] = field(default_factory=list)
    investment_commitments: list[InvestmentCommitment] = field(default_factory=list)
    discount_settings: DiscountSettings | None = None
    risk_profile: RiskProfile | None = None
    insurance: list[Insurance] = field(default_factory=list)
    insurance_analysis: InsuranceAnalysisConfig = field(
        default_factory=InsuranceAnalysisConfig
    )

    _nested: ClassVar[dict[str, Any]] = {
        "profile": Profile,
        "family": (list, FamilyMember),
        "detailed_expenses": (list, ExpenseItem),
        "assets": (list, Asset),
        "loans": (list, Loan),
        "goals": (list, Goal),
        "cashflows": (list, CashflowItem),
        "investment_commitments": (list, InvestmentCommitment),
        "discount_settings": DiscountSettings,
        "risk_profile": RiskProfile,
        "insurance": (list, Insurance),
        "insurance_analysis": InsuranceAnalysisConfig,
    }
