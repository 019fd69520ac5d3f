"""
FinPlanLab - Household Financial Planning Engine

FinPlanLab projects a household's finances year by year over several decades:
income, living expenses, loan repayments and investment contributions are
netted each year, goals are funded in priority order from cash first and then
from liquidated asset buckets, and whatever remains compounds as a floating
corpus.

Key Features:
- **Relative Dates**: Goals anchored on ages, retirement or life expectancy
- **Phase-based Inflation**: Different inflation and discount rates before and after retirement
- **Amortization**: EMI, tenure inference, lump-sum and what-if prepayments
- **Bucketed Assets**: Savings, equity, mutual funds, gold, real estate and a floating corpus
- **Prioritized Funding**: Deterministic goal ordering and user-ordered liquidation
- **Audit**: Debt-to-income, savings rate, emergency fund and Human-Life-Value gap
- **Rich Visualizations**: Interactive charts for projections and loans

Quick Start:
    ```python
    from finplanlab import FinanceState, ProjectionConfig, Bucket, project_timeline

    state = FinanceState.from_dict({
        "profile": {"dob": "1996-01-01", "retirementAge": 60, "monthlyExpenses": 50000,
                    "income": {"salary": 120000, "expectedIncrease": 6}},
        "assets": [{"id": "fd", "category": "Liquid", "currentValue": 500000, "growthRate": 7}],
        "goals": [{"id": "car", "type": "Car", "priority": 1,
                   "startDate": {"type": "Year", "value": 2030},
                   "endDate": {"type": "Year", "value": 2030},
                   "targetAmountToday": 1000000}],
    })

    result = project_timeline(state, 2026, ProjectionConfig(
        liquidation_order=[Bucket.SAVINGS, Bucket.GOLD],
    ))
    print(result.to_frame()[["inflow", "total_goal_demand", "achievement_pct"]])
    ```

License:
    This is a proof-of-concept for educational and research purposes.
"""

# Version information
__version__ = "0.1.0"
__author__ = "FinPlanLab Team"
__description__ = "Household financial planning engine"

from .advice import Recommendation, generate_recommendations
from .core import (
    Bucket,
    ConfigError,
    FinanceState,
    ProjectionConfig,
    ProjectionContext,
    ProjectionResult,
    ValidationReport,
    build_amortization_schedule,
    calculate_emi,
    inflate,
    load_finance_state,
    project_timeline,
    resolve_year,
    save_finance_state,
    sync_goal_loan,
    validate_state,
)
from .kpi import (
    AuditSummary,
    GoalCost,
    HLVBreakdown,
    build_audit_summary,
    goal_summary,
    insurance_gap,
)

# Import chart functions (optional - requires plotly)
from .charts import PLOTLY_AVAILABLE as CHARTS_AVAILABLE

__all__ = [
    # Engine
    "FinanceState",
    "Bucket",
    "ProjectionConfig",
    "ProjectionContext",
    "ProjectionResult",
    "project_timeline",
    "resolve_year",
    "inflate",
    "calculate_emi",
    "build_amortization_schedule",
    "sync_goal_loan",
    # Storage and validation
    "load_finance_state",
    "save_finance_state",
    "validate_state",
    "ValidationReport",
    "ConfigError",
    # Audit
    "AuditSummary",
    "GoalCost",
    "HLVBreakdown",
    "build_audit_summary",
    "goal_summary",
    "insurance_gap",
    "Recommendation",
    "generate_recommendations",
    # Charts
    "CHARTS_AVAILABLE",
    # Version info
    "__version__",
    "__author__",
    "__description__",
]

if CHARTS_AVAILABLE:
    from .charts import (
        bucket_balances_over_time,
        cashflow_bars,
        goal_achievement_heatmap,
        loan_amortization,
        save_chart,
    )

    __all__.extend(
        [
            "bucket_balances_over_time",
            "cashflow_bars",
            "goal_achievement_heatmap",
            "loan_amortization",
            "save_chart",
        ]
    )
