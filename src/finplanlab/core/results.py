"""
Result containers for FinPlanLab projections.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

import pandas as pd

from .kinds import Bucket
from .utils import safe_ratio


@dataclass(frozen=True)
class GoalFunding:
    """How one goal was funded in one year."""

    required: float
    cash: float
    assets: float
    achievement_pct: float

    @property
    def funded(self) -> float:
        return self.cash + self.assets


@dataclass(frozen=True)
class TimelineRow:
    """
    One simulated year.

    Bucket-indexed fields are keyed by :class:`Bucket`. ``achievement_pct``
    is derived from the per-goal splits and is the canonical funding ratio
    for the year.
    """

    year: int
    age: int
    opening: dict[Bucket, float]
    vested: dict[Bucket, float]
    contributions: dict[Bucket, float]
    inflow: float
    expenses: float
    debt_service: float
    committed: float
    net_available: float
    goals: dict[str, float]
    total_goal_demand: float
    withdrawals: dict[Bucket, float]
    total_liquidated: float
    goal_funding_split: dict[str, GoalFunding]
    funded_total: float
    unfunded_deficit: float
    returns: dict[Bucket, float]
    closing: dict[Bucket, float]

    @property
    def achievement_pct(self) -> float:
        required = sum(g.required for g in self.goal_funding_split.values())
        if required <= 0:
            return 100.0
        funded = sum(g.funded for g in self.goal_funding_split.values())
        return safe_ratio(funded, required) * 100

    @property
    def closing_total(self) -> float:
        return sum(self.closing.values())


@dataclass
class ProjectionResult:
    """
    Materialized timeline of one projection run.

    Attributes:
        rows: One row per simulated year
        current_year: Year the projection was anchored on
        liquidation_order: Bucket order used when drawing down assets
        bucket_returns: Return rate applied per bucket
    """

    rows: list[TimelineRow]
    current_year: int
    liquidation_order: list[Bucket] = field(default_factory=list)
    bucket_returns: dict[Bucket, float] = field(default_factory=dict)

    def __iter__(self) -> Iterator[TimelineRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __getitem__(self, index: int) -> TimelineRow:
        return self.rows[index]

    def row_for(self, year: int) -> TimelineRow | None:
        return next((row for row in self.rows if row.year == year), None)

    def to_frame(self) -> pd.DataFrame:
        """
        Timeline as a DataFrame indexed by year.

        Bucket dictionaries are flattened into ``opening_<bucket>``,
        ``contribution_<bucket>``, ``withdrawal_<bucket>`` and
        ``closing_<bucket>`` columns.
        """
        records = []
        for row in self.rows:
            record = {
                "year": row.year,
                "age": row.age,
                "inflow": row.inflow,
                "expenses": row.expenses,
                "debt_service": row.debt_service,
                "committed": row.committed,
                "net_available": row.net_available,
                "total_goal_demand": row.total_goal_demand,
                "total_liquidated": row.total_liquidated,
                "funded_total": row.funded_total,
                "unfunded_deficit": row.unfunded_deficit,
                "achievement_pct": row.achievement_pct,
            }
            for bucket in Bucket:
                record[f"opening_{bucket.value}"] = row.opening.get(bucket, 0.0)
                record[f"contribution_{bucket.value}"] = row.contributions.get(bucket, 0.0)
                record[f"withdrawal_{bucket.value}"] = row.withdrawals.get(bucket, 0.0)
                record[f"closing_{bucket.value}"] = row.closing.get(bucket, 0.0)
            record["closing_total"] = row.closing_total
            records.append(record)
        df = pd.DataFrame(records)
        if df.empty:
            return df
        return df.set_index("year")

    def goal_frame(self) -> pd.DataFrame:
        """Per-goal funding in long format: one row per (year, goal)."""
        records = [
            {
                "year": row.year,
                "goal_id": goal_id,
                "required": split.required,
                "cash": split.cash,
                "assets": split.assets,
                "funded": split.funded,
                "achievement_pct": split.achievement_pct,
            }
            for row in self.rows
            for goal_id, split in row.goal_funding_split.items()
        ]
        return pd.DataFrame(
            records,
            columns=["year", "goal_id", "required", "cash", "assets", "funded", "achievement_pct"],
        )

    def summary(self) -> dict:
        """Headline figures of the run."""
        if not self.rows:
            return {
                "years": 0,
                "start_year": None,
                "end_year": None,
                "total_goal_demand": 0.0,
                "total_funded": 0.0,
                "achievement_pct": 100.0,
                "shortfall_years": [],
                "deficit_years": [],
                "final_corpus": 0.0,
            }
        demand = sum(row.total_goal_demand for row in self.rows)
        funded = sum(row.funded_total for row in self.rows)
        return {
            "years": len(self.rows),
            "start_year": self.rows[0].year,
            "end_year": self.rows[-1].year,
            "total_goal_demand": demand,
            "total_funded": funded,
            "achievement_pct": safe_ratio(funded, demand, default=1.0) * 100,
            "shortfall_years": [
                row.year for row in self.rows if row.achievement_pct < 100 - 1e-9
            ],
            "deficit_years": [row.year for row in self.rows if row.unfunded_deficit > 0],
            "final_corpus": self.rows[-1].closing_total,
        }
