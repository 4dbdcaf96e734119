"""Formation statistics - skill spread and balance rating.

All functions are *pure*.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field

from teammate.participant_models import PERSONALITY_CATEGORIES, Participant
from teammate.team_models import Team


BalanceRating = Literal["excellent", "good", "fair", "needs_improvement"]

_RATING_LABELS: dict[BalanceRating, str] = {
    "excellent": "EXCELLENT - Highly Balanced",
    "good": "GOOD - Well Balanced",
    "fair": "FAIR - Moderately Balanced",
    "needs_improvement": "NEEDS IMPROVEMENT",
}


class TeamStatistics(BaseModel):
    """Skill distribution across formed teams."""

    team_count: int = Field(ge=0)
    lowest_average: float = 0.0
    highest_average: float = 0.0
    overall_average: float = 0.0
    std_dev: float = Field(default=0.0, ge=0.0)
    skill_range: float = Field(default=0.0, ge=0.0)
    rating: BalanceRating = "excellent"

    @property
    def rating_label(self) -> str:
        return _RATING_LABELS[self.rating]


def rate_balance(skill_range: float) -> BalanceRating:
    """Classify a skill range: ≤1 excellent, ≤2 good, ≤3 fair, else needs improvement."""
    if skill_range <= 1.0:
        return "excellent"
    if skill_range <= 2.0:
        return "good"
    if skill_range <= 3.0:
        return "fair"
    return "needs_improvement"


def summarize_teams(teams: Sequence[Team]) -> TeamStatistics:
    """Compute the team-average skill statistics of *teams*."""
    if not teams:
        return TeamStatistics(team_count=0)

    averages = np.array([team.average_skill for team in teams], dtype=float)
    low = float(np.min(averages))
    high = float(np.max(averages))
    spread = high - low

    return TeamStatistics(
        team_count=len(teams),
        lowest_average=round(low, 2),
        highest_average=round(high, 2),
        overall_average=round(float(np.mean(averages)), 2),
        std_dev=round(float(np.std(averages)), 3),
        skill_range=round(spread, 2),
        rating=rate_balance(spread),
    )


def personality_distribution(participants: Sequence[Participant]) -> dict[str, int]:
    """Count participants per personality category (all categories present)."""
    counts = Counter(p.personality_type for p in participants)
    return {category: counts.get(category, 0) for category in PERSONALITY_CATEGORIES}
