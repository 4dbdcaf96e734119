"""Participant record and personality classifier.

A participant is created once (by CSV import or by the survey) and never
mutated afterwards. The team formation engine only moves participants
between the shared pool and the teams it builds.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------
PersonalityCategory = Literal["Leader", "Balanced", "Thinker"]
PreferredRole = Literal["Strategist", "Attacker", "Defender", "Supporter", "Coordinator"]

PERSONALITY_CATEGORIES: tuple[PersonalityCategory, ...] = ("Leader", "Balanced", "Thinker")

ROLE_VOCABULARY: tuple[PreferredRole, ...] = (
    "Strategist",
    "Attacker",
    "Defender",
    "Supporter",
    "Coordinator",
)

GAME_CHOICES: tuple[str, ...] = (
    "Chess",
    "FIFA",
    "CS:GO",
    "DOTA 2",
    "Valorant",
    "Basketball",
)

# Raw survey total (five answers rated 1-5) is scaled to a 20-100 score.
SURVEY_SCORE_MULTIPLIER = 4

_LEADER_THRESHOLD = 90
_BALANCED_THRESHOLD = 70


def classify_personality(score: int) -> PersonalityCategory:
    """Map a personality score to its category.

    Args:
        score: Scaled personality score (survey total × 4).

    Returns:
        "Leader" for 90+, "Balanced" for 70-89, otherwise "Thinker".
    """
    if score >= _LEADER_THRESHOLD:
        return "Leader"
    if score >= _BALANCED_THRESHOLD:
        return "Balanced"
    return "Thinker"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
class Participant(BaseModel):
    """A single person to be placed into a team."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=80)
    email: str = ""
    preferred_game: str = Field(..., min_length=1)
    skill_level: int = Field(..., ge=1, le=10)
    preferred_role: PreferredRole
    personality_score: int = Field(default=0, ge=0)
    personality_type: PersonalityCategory

    @classmethod
    def from_survey_total(
        cls,
        *,
        id: str,
        name: str,
        email: str,
        preferred_game: str,
        skill_level: int,
        preferred_role: PreferredRole,
        raw_total: int,
    ) -> Participant:
        """Create a participant whose score and category derive from a survey total."""
        score = raw_total * SURVEY_SCORE_MULTIPLIER
        return cls(
            id=id,
            name=name,
            email=email,
            preferred_game=preferred_game,
            skill_level=skill_level,
            preferred_role=preferred_role,
            personality_score=score,
            personality_type=classify_personality(score),
        )

    @property
    def is_leader(self) -> bool:
        return self.personality_type == "Leader"

    @property
    def is_thinker(self) -> bool:
        return self.personality_type == "Thinker"

    def to_csv_row(self) -> list[str]:
        """Row in the participants file column order."""
        return [
            self.id,
            self.name,
            self.email,
            self.preferred_game,
            str(self.skill_level),
            self.preferred_role,
            str(self.personality_score),
            self.personality_type,
        ]

    def describe(self) -> str:
        return (
            f"{self.id:<6} | {self.name:<18} | {self.preferred_game:<10} | "
            f"{self.preferred_role:<12} | {self.skill_level:>2} | "
            f"{self.personality_type:<9} ({self.personality_score:>3})"
        )
