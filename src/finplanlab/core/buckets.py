"""
Bucketed asset and contribution aggregation for FinPlanLab.

Maps assets and free-text commitment labels onto the closed set of liquidity
buckets, derives blended bucket returns, schedules when asset values vest into
the simulator and apportions recurring contributions per year.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import numpy as np

from .entities import Asset, FinanceState
from .kinds import AssetCategory, Bucket
from .utils import annualize_amount

DEFAULT_BUCKET_RETURNS: dict[Bucket, float] = {
    Bucket.SAVINGS: 6.0,
    Bucket.DIRECT_EQUITY: 15.0,
    Bucket.MUTUAL_FUNDS: 12.0,
    Bucket.GOLD: 7.0,
    Bucket.REAL_ESTATE: 5.0,
}

# Locked retirement vehicles never fund goals
_RETIREMENT_VEHICLES = ("epf", "gpf", "dsop", "nps")
_FUND_KEYWORDS = ("mutual", "mf", "index")
_TOKEN = re.compile(r"[a-z]+")

# Label keywords checked in order; first hit wins
_LABEL_RULES: list[tuple[tuple[str, ...], Bucket]] = [
    (("mutual", "sip", "mf", "index", "elss"), Bucket.MUTUAL_FUNDS),
    (("stock", "share", "equity"), Bucket.DIRECT_EQUITY),
    (("gold", "silver", "sgb"), Bucket.GOLD),
    (("real estate", "property", "reit", "land"), Bucket.REAL_ESTATE),
    (("fd", "rd", "deposit", "ppf", "saving", "debt", "bond", "liquid"), Bucket.SAVINGS),
]


def classify_asset(category: AssetCategory | str, sub_category: str | None = "") -> Bucket | None:
    """
    Bucket an asset belongs to, or None when it never funds goals.

    **Rules:**
    - Equity: mutual funds / index funds -> mutualFunds, anything else -> directEquity
    - Debt: EPF, GPF, DSOP and NPS are excluded, anything else -> savings
    - Liquid -> savings, Gold/Silver -> gold, Real Estate -> realEstate
    - Personal -> None
    """
    category = AssetCategory.parse(category)
    sub = (sub_category or "").lower()
    if category is AssetCategory.EQUITY:
        if any(k in sub for k in _FUND_KEYWORDS):
            return Bucket.MUTUAL_FUNDS
        return Bucket.DIRECT_EQUITY
    if category is AssetCategory.DEBT:
        if any(k in sub for k in _RETIREMENT_VEHICLES):
            return None
        return Bucket.SAVINGS
    if category is AssetCategory.LIQUID:
        return Bucket.SAVINGS
    if category is AssetCategory.GOLD_SILVER:
        return Bucket.GOLD
    if category is AssetCategory.REAL_ESTATE:
        return Bucket.REAL_ESTATE
    return None


def _label_matches(keyword: str, text: str, tokens: set[str]) -> bool:
    # Short keywords ("fd", "rd", "mf") must match a whole word
    if len(keyword) <= 3:
        return keyword in tokens
    return keyword in text


def classify_label(label: str | None) -> Bucket | None:
    """Bucket for a free-text commitment label (``"Equity SIP"``, ``"Gold SGB"``...)."""
    text = (label or "").lower()
    tokens = set(_TOKEN.findall(text))
    if tokens.intersection(_RETIREMENT_VEHICLES):
        return None
    for keywords, bucket in _LABEL_RULES:
        if any(_label_matches(k, text, tokens) for k in keywords):
            return bucket
    return Bucket.SAVINGS


def blended_bucket_returns(assets: Iterable[Asset]) -> dict[Bucket, float]:
    """
    Value-weighted growth rate per bucket.

    Buckets holding no valued assets use :data:`DEFAULT_BUCKET_RETURNS`.
    """
    rates: dict[Bucket, list[float]] = {b: [] for b in DEFAULT_BUCKET_RETURNS}
    weights: dict[Bucket, list[float]] = {b: [] for b in DEFAULT_BUCKET_RETURNS}
    for asset in assets:
        bucket = classify_asset(asset.category, asset.sub_category)
        if bucket is None or (asset.current_value or 0) <= 0:
            continue
        rates[bucket].append(asset.growth_rate or 0.0)
        weights[bucket].append(asset.current_value)

    blended = {}
    for bucket, default in DEFAULT_BUCKET_RETURNS.items():
        if weights[bucket]:
            blended[bucket] = float(np.average(rates[bucket], weights=weights[bucket]))
        else:
            blended[bucket] = default
    return blended


def vest_year(asset: Asset, current_year: int) -> int:
    return max(asset.available_from or 0, current_year + 1)


def vesting_schedule(
    assets: Iterable[Asset], current_year: int
) -> dict[int, dict[Bucket, float]]:
    """
    Future values vesting into buckets, keyed by year.

    Only assets flagged ``available_for_goals`` and mapping to a bucket vest;
    each grows at its own rate from ``current_year`` to its vest year.
    """
    schedule: dict[int, dict[Bucket, float]] = {}
    for asset in assets:
        if not asset.available_for_goals:
            continue
        bucket = classify_asset(asset.category, asset.sub_category)
        if bucket is None:
            continue
        year = vest_year(asset, current_year)
        fv = (asset.current_value or 0.0) * (1 + (asset.growth_rate or 0.0) / 100) ** (
            year - current_year
        )
        per_year = schedule.setdefault(year, {})
        per_year[bucket] = per_year.get(bucket, 0.0) + fv
    return schedule


def _stepped_amount(
    amount: float,
    frequency: str | None,
    step_up: float,
    start_year: int | None,
    end_year: int | None,
    year: int,
    current_year: int,
) -> float:
    start = start_year if start_year is not None else current_year
    if year < start or (end_year is not None and year > end_year):
        return 0.0
    base = annualize_amount(amount or 0.0, frequency)
    return base * (1 + (step_up or 0.0) / 100) ** (year - max(start, current_year))


def contributions_for_year(
    state: FinanceState, year: int, current_year: int
) -> dict[Bucket, float]:
    """
    Recurring contributions landing in each bucket during ``year``.

    Asset contributions count only for goal-eligible assets with a bucket;
    commitments use their explicit bucket or one inferred from the label.
    """
    added: dict[Bucket, float] = {}
    for asset in state.assets:
        if not asset.monthly_contribution or not asset.available_for_goals:
            continue
        bucket = classify_asset(asset.category, asset.sub_category)
        if bucket is None:
            continue
        amount = _stepped_amount(
            asset.monthly_contribution,
            asset.contribution_frequency,
            asset.contribution_step_up,
            asset.contribution_start_year,
            asset.contribution_end_year,
            year,
            current_year,
        )
        added[bucket] = added.get(bucket, 0.0) + amount

    for commitment in state.investment_commitments:
        bucket = commitment.bucket or classify_label(commitment.label)
        if bucket is None or bucket is Bucket.NET_SAVINGS:
            continue
        amount = _stepped_amount(
            commitment.amount,
            commitment.frequency,
            commitment.step_up,
            commitment.start_year,
            commitment.end_year,
            year,
            current_year,
        )
        added[bucket] = added.get(bucket, 0.0) + amount
    return added


def committed_outflow_for_year(state: FinanceState, year: int, current_year: int) -> float:
    """Cash leaving the household for all contributions in ``year``, bucketed or not."""
    total = 0.0
    for asset in state.assets:
        if asset.monthly_contribution:
            total += _stepped_amount(
                asset.monthly_contribution,
                asset.contribution_frequency,
                asset.contribution_step_up,
                asset.contribution_start_year,
                asset.contribution_end_year,
                year,
                current_year,
            )
    for commitment in state.investment_commitments:
        total += _stepped_amount(
            commitment.amount,
            commitment.frequency,
            commitment.step_up,
            commitment.start_year,
            commitment.end_year,
            year,
            current_year,
        )
    return total


def default_liquidation_order(returns: dict[Bucket, float]) -> list[Bucket]:
    """Lowest-yield bucket first; ties keep enum order; netSavings never liquidated."""
    candidates = Bucket.liquidatable()
    return sorted(
        candidates,
        key=lambda b: (returns.get(b, DEFAULT_BUCKET_RETURNS.get(b, 0.0)), candidates.index(b)),
    )
