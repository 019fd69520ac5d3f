"""
Inflation and discounting for FinPlanLab.

Flat compounding, phase-based ("bucketed") inflation and discount rates
relative to the retirement year, and the present-value helpers used by the
Human-Life-Value sizing.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from .errors import ConfigError
from .kinds import RiskLevel

if TYPE_CHECKING:
    from .context import ProjectionContext
    from .entities import DiscountBucket, DiscountSettings

# Used when a phase is open-ended or no retirement year is known
_FAR_OFFSET = 10_000

RISK_RETURN_ASSUMPTIONS = {
    RiskLevel.CONSERVATIVE: 8.8,
    RiskLevel.MODERATE: 9.5,
    RiskLevel.BALANCED: 10.15,
    RiskLevel.AGGRESSIVE: 13.2,
    RiskLevel.VERY_AGGRESSIVE: 14.5,
}


def risk_return_assumption(level: RiskLevel | str | None) -> float:
    """Expected portfolio return (%) implied by a risk level; Balanced when unknown."""
    if level is None:
        return RISK_RETURN_ASSUMPTIONS[RiskLevel.BALANCED]
    try:
        return RISK_RETURN_ASSUMPTIONS[RiskLevel.parse(level)]
    except ConfigError:
        return RISK_RETURN_ASSUMPTIONS[RiskLevel.BALANCED]


def resolve_bucket_range(
    bucket: DiscountBucket, retirement_offset: int
) -> tuple[float, float]:
    """
    Resolve a discount bucket into an inclusive ``(start, end)`` range of year offsets.

    Offsets count years from the current year; ``Retirement``-anchored bounds
    are shifted by ``retirement_offset``.
    """
    start = (
        retirement_offset + bucket.start_offset
        if bucket.start_type == "Retirement"
        else bucket.start_offset
    )
    end: float = math.inf
    if bucket.end_type == "Offset":
        end = bucket.end_offset if bucket.end_offset is not None else start
    elif bucket.end_type == "Retirement":
        end = retirement_offset + (bucket.end_offset or 0)
    return start, end


def bucket_rate_for_offset(
    offset: int,
    retirement_offset: int,
    settings: DiscountSettings | None,
    fallback_rate: float,
    rate_key: str,
) -> float:
    """
    Rate (%) applying to a given year offset.

    **Args:**
        offset: Years since the current year (negative offsets count as 0)
        retirement_offset: Years from the current year to retirement
        settings: Discount settings; ``None`` always yields ``fallback_rate``
        fallback_rate: Rate used when bucketing is disabled or no bucket matches
        rate_key: ``"discount_rate"`` or ``"inflation_rate"``
    """
    if settings is None:
        return fallback_rate
    if rate_key == "discount_rate" and not settings.use_buckets:
        return fallback_rate
    if rate_key == "inflation_rate" and not settings.use_bucket_inflation:
        return fallback_rate

    normalized = max(0, offset)
    for bucket in settings.buckets:
        start, end = resolve_bucket_range(bucket, retirement_offset)
        if start <= normalized <= end:
            rate = getattr(bucket, rate_key)
            if rate is None or not math.isfinite(rate):
                return fallback_rate
            return rate
    return fallback_rate


def inflate(
    base: float,
    from_year: int,
    to_year: int,
    settings: DiscountSettings | None = None,
    fallback_rate: float = 6.0,
    *,
    current_year: int | None = None,
    retirement_year: int | None = None,
) -> float:
    """
    Inflate ``base`` from ``from_year`` to ``to_year``.

    Without bucketed inflation this is flat compounding at ``fallback_rate``.
    With ``settings.use_bucket_inflation`` every elapsed year is compounded at
    the rate of the phase that year falls in, so a span crossing retirement
    picks up both regimes exactly.

    **Args:**
        base: Amount in ``from_year`` money
        from_year: Year the amount is expressed in
        to_year: Target year; ``to_year <= from_year`` returns ``base`` unchanged
        settings: Optional discount settings
        fallback_rate: Flat annual rate (%)
        current_year: Anchor for phase offsets (defaults to ``from_year``)
        retirement_year: Anchor for retirement-relative phases

    **Example:**
        ```python
        inflate(100_000, 2026, 2036, fallback_rate=6.0)  # ~179,085
        ```
    """
    if to_year <= from_year:
        return base
    if settings is None or not settings.use_bucket_inflation:
        return base * (1 + fallback_rate / 100) ** (to_year - from_year)

    anchor = from_year if current_year is None else current_year
    retirement_offset = (
        retirement_year - anchor if retirement_year is not None else _FAR_OFFSET
    )
    value = base
    for year in range(from_year, to_year):
        rate = bucket_rate_for_offset(
            year - anchor, retirement_offset, settings, fallback_rate, "inflation_rate"
        )
        value *= 1 + rate / 100
    return value


def inflate_in(
    ctx: ProjectionContext,
    base: float,
    from_year: int,
    to_year: int,
    fallback_rate: float,
) -> float:
    """:func:`inflate` anchored on a projection context."""
    return inflate(
        base,
        from_year,
        to_year,
        ctx.settings,
        fallback_rate,
        current_year=ctx.current_year,
        retirement_year=ctx.retirement_year,
    )


def build_discount_factors(
    current_year: int,
    end_year: int,
    retirement_year: int,
    settings: DiscountSettings | None,
    fallback_rate: float,
) -> dict[int, float]:
    """
    Rolling discount factor per year: ``factor[current_year] == 1`` and each
    following year compounds at that phase's discount rate.
    """
    factors: dict[int, float] = {}
    rolling = 1.0
    retirement_offset = retirement_year - current_year
    for year in range(current_year, end_year + 1):
        factors[year] = rolling
        rate = bucket_rate_for_offset(
            year - current_year, retirement_offset, settings, fallback_rate, "discount_rate"
        )
        rolling *= 1 + rate / 100
    return factors


def real_rate(investment_rate: float, inflation: float) -> float:
    """Inflation-adjusted rate (fraction) from nominal percentages."""
    return (1 + investment_rate / 100) / (1 + inflation / 100) - 1


def pv_factor(rate: float, years: float) -> float:
    """
    Present value factor of an annuity of 1 per year.

    ``(1 - (1 + r) ** -n) / r``, or ``n`` when ``r == 0``; ``rate`` is a fraction.
    """
    if years <= 0:
        return 0.0
    if rate == 0:
        return float(years)
    return (1 - (1 + rate) ** -years) / rate


def pv_annuity(annual: float, years: float, rate_pct: float) -> float:
    """Present value of ``annual`` paid for ``years`` at ``rate_pct`` percent."""
    return annual * pv_factor(rate_pct / 100, years)
