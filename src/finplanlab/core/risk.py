"""
Risk-profile questionnaire scoring.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .entities import RiskProfile
from .errors import ConfigError
from .kinds import RiskLevel
from .utils import js_round


@dataclass(frozen=True)
class RiskQuestion:
    text: str
    options: tuple[tuple[str, int], ...]


QUESTIONS: tuple[RiskQuestion, ...] = (
    RiskQuestion(
        "What is your primary goal for your investment portfolio?",
        (
            ("Preserving capital with zero risk of loss", 5),
            ("Stable income with minimal fluctuations", 10),
            ("Balanced growth and capital preservation", 20),
            ("Maximum long-term wealth growth", 30),
        ),
    ),
    RiskQuestion(
        "When do you plan to start withdrawing significant funds?",
        (
            ("Within 1-2 years", 5),
            ("In 3-7 years", 15),
            ("In 7-12 years", 25),
            ("15+ years from now", 35),
        ),
    ),
    RiskQuestion(
        "If your portfolio dropped by 20% in one month, how would you react?",
        (
            ("Sell everything immediately", 5),
            ("Shift most funds to safer cash", 15),
            ("Do nothing and wait for recovery", 25),
            ("Invest more to buy the dip", 40),
        ),
    ),
    RiskQuestion(
        "Comfort level with fluctuations for higher returns?",
        (
            ("None. I prefer guaranteed returns.", 0),
            ("Low. I can handle small, infrequent dips.", 15),
            ("Moderate. Ups/downs are part of the game.", 30),
            ("High. Volatility is an opportunity.", 45),
        ),
    ),
    RiskQuestion(
        "Monthly investable income after expenses?",
        (
            ("Less than 10%", 5),
            ("10% to 25%", 15),
            ("25% to 50%", 25),
            ("More than 50%", 35),
        ),
    ),
)

# Sum of the best option of every question
MAX_SCORE = 185

# (exclusive upper score, level, equity/debt/gold/liquid %)
_BANDS: tuple[tuple[int, RiskLevel, dict[str, float]], ...] = (
    (25, RiskLevel.CONSERVATIVE, {"equity": 15, "debt": 60, "gold": 5, "liquid": 20}),
    (45, RiskLevel.MODERATE, {"equity": 35, "debt": 45, "gold": 10, "liquid": 10}),
    (70, RiskLevel.BALANCED, {"equity": 55, "debt": 30, "gold": 10, "liquid": 5}),
    (90, RiskLevel.AGGRESSIVE, {"equity": 75, "debt": 15, "gold": 5, "liquid": 5}),
)
_TOP_BAND = (RiskLevel.VERY_AGGRESSIVE, {"equity": 90, "debt": 5, "gold": 5, "liquid": 0})


def answer_scores(choices: Sequence[int]) -> list[int]:
    """Map chosen option indexes (one per question) to their scores."""
    if len(choices) != len(QUESTIONS):
        raise ConfigError(f"Expected {len(QUESTIONS)} answers, got {len(choices)}")
    scores = []
    for question, choice in zip(QUESTIONS, choices):
        if not 0 <= choice < len(question.options):
            raise ConfigError(f"Answer {choice} out of range for {question.text!r}")
        scores.append(question.options[choice][1])
    return scores


def level_for_score(score: int) -> tuple[RiskLevel, dict[str, float]]:
    for upper, level, allocation in _BANDS:
        if score < upper:
            return level, dict(allocation)
    level, allocation = _TOP_BAND
    return level, dict(allocation)


def score_risk_profile(answers: Sequence[float], *, last_updated: str = "") -> RiskProfile:
    """
    Turn questionnaire answer scores into a RiskProfile.

    ``score = min(100, round(sum(answers) / 185 * 100))``; the level and the
    recommended allocation follow from the score band.

    **Example:**
        ```python
        profile = score_risk_profile([30, 35, 40, 45, 35])
        profile.level  # RiskLevel.VERY_AGGRESSIVE
        ```
    """
    total = sum(answers)
    score = min(100, js_round(total / MAX_SCORE * 100))
    level, allocation = level_for_score(score)
    return RiskProfile(
        score=score,
        level=level,
        recommended_allocation=allocation,
        last_updated=last_updated,
    )
