"""
Utility functions for FinPlanLab.

Relative date resolution, frequency annualization and small numeric helpers
shared by every engine module.
"""

from __future__ import annotations

import math
import re
from datetime import date

from .errors import ConfigError
from .kinds import RelativeDateType

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Multipliers turning a per-period amount into a yearly one
_ANNUALIZE = {
    "monthly": 12,
    "quarterly": 4,
    "half-yearly": 2,
    "half yearly": 2,
}


def resolve_year(rel, birth_year: int, retirement_age: int, life_expectancy: int) -> int:
    """
    Resolve a symbolic RelativeDate into a calendar year.

    **Args:**
        rel: RelativeDate (anything with ``type`` and ``value`` attributes)
        birth_year: Calendar year of birth of the primary profile
        retirement_age: Retirement age in years
        life_expectancy: Life expectancy in years

    **Returns:**
        The calendar year. Unknown types fall back to ``rel.value``.

    **Example:**
        ```python
        from finplanlab.core.entities import RelativeDate

        resolve_year(RelativeDate("Retirement", 2), 1990, 60, 85)  # 2052
        resolve_year(RelativeDate("Year", 2040), 1990, 60, 85)  # 2040
        ```
    """
    value = int(rel.value or 0)
    try:
        kind = RelativeDateType.parse(rel.type)
    except ConfigError:
        return value

    if kind is RelativeDateType.YEAR:
        return value
    if kind is RelativeDateType.AGE:
        return birth_year + value
    if kind is RelativeDateType.RETIREMENT:
        return birth_year + retirement_age + value
    if kind is RelativeDateType.LIFE_EXPECTANCY:
        return birth_year + life_expectancy + value
    return value


def birth_year_from_dob(dob: str | date | None) -> int | None:
    """Extract the birth year from an ISO date string, or None if unparseable."""
    if not dob:
        return None
    if isinstance(dob, date):
        return dob.year
    try:
        return date.fromisoformat(str(dob)[:10]).year
    except ValueError:
        return None


def resolve_birth_year(dob: str | date | None, current_year: int) -> int:
    """Birth year from ``dob``; assumes a 30-year-old when the date is missing."""
    year = birth_year_from_dob(dob)
    return year if year is not None else current_year - 30


def annualize_amount(amount: float, frequency: str | None) -> float:
    """Convert a per-period amount into a yearly amount."""
    multiplier = _ANNUALIZE.get((frequency or "").strip().lower(), 1)
    return (amount or 0.0) * multiplier


def js_round(value: float) -> int:
    """Round half away from zero for positives (half-up), like the stored data."""
    return int(math.floor(value + 0.5))


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Return ``numerator / denominator`` or ``default`` when the denominator is 0."""
    if not denominator:
        return default
    return numerator / denominator


def snake_case(key: str) -> str:
    """Convert camelCase keys (as stored by the front-end) to snake_case."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))
