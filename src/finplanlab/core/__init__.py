"""
Core module for FinPlanLab.

This module contains the projection engine: entities, relative dates,
inflation and discounting, amortization, goal valuation, bucket aggregation
and the yearly cashflow and liquidation simulator.
"""

from .amortization import (
    AmortizationResult,
    PrepaymentImpact,
    ScheduleRow,
    TenureInference,
    YearlyAmortizationRow,
    annual_debt_service,
    build_amortization_schedule,
    build_yearly_amortization,
    calculate_emi,
    infer_tenure_months,
    prepayment_impact,
    sync_goal_loan,
)
from .buckets import (
    DEFAULT_BUCKET_RETURNS,
    blended_bucket_returns,
    classify_asset,
    classify_label,
    default_liquidation_order,
    vesting_schedule,
)
from .context import ProjectionContext
from .entities import (
    Asset,
    CashflowItem,
    DetailedIncome,
    DiscountBucket,
    DiscountSettings,
    ExpenseItem,
    FamilyMember,
    FinanceState,
    Goal,
    GoalLoan,
    Insurance,
    InsuranceAnalysisConfig,
    InvestmentCommitment,
    Loan,
    LumpSumRepayment,
    Profile,
    RelativeDate,
    RiskProfile,
)
from .errors import ConfigError, FinPlanWarning, StateValidationError
from .goals import goal_amount_for_year, goal_demand_by_year, prepare_goal
from .inflation import build_discount_factors, inflate, pv_factor, real_rate
from .kinds import (
    AssetCategory,
    Bucket,
    FlowType,
    RelativeDateType,
    RetirementHandling,
    RiskLevel,
    TenureBasis,
)
from .results import GoalFunding, ProjectionResult, TimelineRow
from .risk import score_risk_profile
from .store import load_finance_state, save_finance_state
from .timeline import ProjectionConfig, liquidate, project_timeline
from .utils import resolve_year
from .validation import ValidationReport, validate_state

__all__ = [
    # Errors
    "ConfigError",
    "StateValidationError",
    "FinPlanWarning",
    # Kinds
    "AssetCategory",
    "Bucket",
    "FlowType",
    "RelativeDateType",
    "RetirementHandling",
    "RiskLevel",
    "TenureBasis",
    # Entities
    "Asset",
    "CashflowItem",
    "DetailedIncome",
    "DiscountBucket",
    "DiscountSettings",
    "ExpenseItem",
    "FamilyMember",
    "FinanceState",
    "Goal",
    "GoalLoan",
    "Insurance",
    "InsuranceAnalysisConfig",
    "InvestmentCommitment",
    "Loan",
    "LumpSumRepayment",
    "Profile",
    "RelativeDate",
    "RiskProfile",
    # Context
    "ProjectionContext",
    # Dates and inflation
    "resolve_year",
    "inflate",
    "build_discount_factors",
    "real_rate",
    "pv_factor",
    # Amortization
    "AmortizationResult",
    "PrepaymentImpact",
    "ScheduleRow",
    "TenureInference",
    "YearlyAmortizationRow",
    "annual_debt_service",
    "build_amortization_schedule",
    "build_yearly_amortization",
    "calculate_emi",
    "infer_tenure_months",
    "prepayment_impact",
    "sync_goal_loan",
    # Goals
    "goal_amount_for_year",
    "goal_demand_by_year",
    "prepare_goal",
    # Buckets
    "DEFAULT_BUCKET_RETURNS",
    "blended_bucket_returns",
    "classify_asset",
    "classify_label",
    "default_liquidation_order",
    "vesting_schedule",
    # Simulator
    "ProjectionConfig",
    "ProjectionResult",
    "TimelineRow",
    "GoalFunding",
    "liquidate",
    "project_timeline",
    # Risk, validation and storage
    "score_risk_profile",
    "ValidationReport",
    "validate_state",
    "load_finance_state",
    "save_finance_state",
]
