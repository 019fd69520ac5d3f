"""
FinPlanLab enumerations (closed sets of stored string values).
"""

from __future__ import annotations

from enum import Enum

from .errors import ConfigError


class _StrEnum(str, Enum):
    """String-valued enum that parses its stored value with a clear error."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value or member.name == value:
                return member
        raise ConfigError(
            f"Unknown {cls.__name__} {value!r}; expected one of "
            f"{[m.value for m in cls]}"
        )


class Bucket(_StrEnum):
    # === Liquidity buckets tracked by the simulator ===
    SAVINGS = "savings"
    DIRECT_EQUITY = "directEquity"
    MUTUAL_FUNDS = "mutualFunds"
    GOLD = "gold"
    REAL_ESTATE = "realEstate"
    NET_SAVINGS = "netSavings"  # Floating, un-earmarked corpus

    @classmethod
    def liquidatable(cls) -> list[Bucket]:
        """Buckets that can be drawn down to cover a shortfall."""
        return [b for b in cls if b is not cls.NET_SAVINGS]


class AssetCategory(_StrEnum):
    LIQUID = "Liquid"
    DEBT = "Debt"
    EQUITY = "Equity"
    REAL_ESTATE = "Real Estate"
    GOLD_SILVER = "Gold/Silver"
    PERSONAL = "Personal"


class RelativeDateType(_StrEnum):
    YEAR = "Year"
    AGE = "Age"
    RETIREMENT = "Retirement"
    LIFE_EXPECTANCY = "LifeExpectancy"


class FlowType(_StrEnum):
    INCOME = "Income"
    EXPENSE = "Expense"


class RetirementHandling(_StrEnum):
    CURRENT_EXPENSES = "CurrentExpenses"
    ESTIMATE = "Estimate"
    DETAILED = "Detailed"


class RiskLevel(_StrEnum):
    CONSERVATIVE = "Conservative"
    MODERATE = "Moderate"
    BALANCED = "Balanced"
    AGGRESSIVE = "Aggressive"
    VERY_AGGRESSIVE = "Very Aggressive"


class TenureBasis(_StrEnum):
    MONTHS = "months"
    YEARS = "years"


# Goal types with special handling
GOAL_TYPE_RETIREMENT = "Retirement"

# Loan types created by goal bridge financing
LOAN_TYPE_BY_GOAL = {
    "Land / Home": "Home Loan",
    "Holiday Home": "Home Loan",
    "Car": "Car Loan",
}
DEFAULT_BRIDGE_LOAN_TYPE = "Personal Loan"
