"""
Context classes for FinPlanLab projections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .utils import resolve_birth_year, resolve_year

if TYPE_CHECKING:
    from .entities import DiscountSettings, FinanceState, RelativeDate


@dataclass(frozen=True)
class ProjectionContext:
    """
    Resolved time anchors shared by every engine module during one run.

    Attributes:
        current_year: The "today" of the projection; passed in, never read from the clock
        birth_year: Birth year of the primary profile
        retirement_age: Retirement age of the primary profile
        life_expectancy: Life expectancy of the primary profile
        settings: Optional global discount/inflation settings

    Note:
        Building the context once per run keeps every module on the same
        anchors, which makes identical inputs yield identical timelines.
    """

    current_year: int
    birth_year: int
    retirement_age: int
    life_expectancy: int
    settings: DiscountSettings | None = None

    @classmethod
    def from_state(cls, state: FinanceState, current_year: int) -> ProjectionContext:
        profile = state.profile
        return cls(
            current_year=int(current_year),
            birth_year=resolve_birth_year(profile.dob, current_year),
            retirement_age=int(profile.retirement_age or 0),
            life_expectancy=int(profile.life_expectancy or 0),
            settings=state.discount_settings,
        )

    @property
    def retirement_year(self) -> int:
        return self.birth_year + self.retirement_age

    @property
    def life_expectancy_year(self) -> int:
        return self.birth_year + self.life_expectancy

    def resolve(self, rel: RelativeDate) -> int:
        """Resolve a RelativeDate against this context's profile anchors."""
        return resolve_year(rel, self.birth_year, self.retirement_age, self.life_expectancy)

    def age_in(self, year: int) -> int:
        return year - self.birth_year
