"""Personality & preference survey.

Five statements rated 1-5 give a raw total of 5-25; the participant's
personality score is that total × 4, classified once at creation.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

from teammate.participant_models import (
    GAME_CHOICES,
    Participant,
    PreferredRole,
)
from teammate.participant_repository import ParticipantRepository


logger = logging.getLogger(__name__)

SURVEY_QUESTIONS: tuple[str, ...] = (
    "I enjoy taking the lead in group situations",
    "I prefer analyzing situations before acting",
    "I work well in team environments",
    "I stay calm under pressure",
    "I like making quick decisions",
)


class SurveyAnswers(BaseModel):
    """One completed survey."""

    name: str = Field(..., min_length=1, max_length=80, pattern=r"^[A-Za-z\s]+$")
    email: str = Field(..., min_length=3)
    ratings: list[int] = Field(..., min_length=len(SURVEY_QUESTIONS), max_length=len(SURVEY_QUESTIONS))
    preferred_game: str
    preferred_role: PreferredRole
    skill_level: int = Field(..., ge=1, le=10)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Name cannot be empty")
        return stripped

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v or "." not in v:
            raise ValueError("Email must contain @ and a dot")
        return v

    @field_validator("ratings")
    @classmethod
    def _check_ratings(cls, v: list[int]) -> list[int]:
        if any(r < 1 or r > 5 for r in v):
            raise ValueError("Each rating must be between 1 and 5")
        return v

    @field_validator("preferred_game")
    @classmethod
    def _check_game(cls, v: str) -> str:
        if v not in GAME_CHOICES:
            raise ValueError(f"Game must be one of: {', '.join(GAME_CHOICES)}")
        return v

    @property
    def raw_total(self) -> int:
        return sum(self.ratings)


def create_participant(answers: SurveyAnswers, participant_id: str) -> Participant:
    """Turn *answers* into a participant with a derived personality category."""
    participant = Participant.from_survey_total(
        id=participant_id,
        name=answers.name,
        email=answers.email,
        preferred_game=answers.preferred_game,
        skill_level=answers.skill_level,
        preferred_role=answers.preferred_role,
        raw_total=answers.raw_total,
    )
    logger.info(
        "New participant created: %s | Score: %d | Type: %s",
        participant.name,
        participant.personality_score,
        participant.personality_type,
    )
    return participant


def register_survey_response(answers: SurveyAnswers, repo: ParticipantRepository) -> Participant:
    """Assign the next id, persist the new participant and return it."""
    return repo.register(lambda participant_id: create_participant(answers, participant_id))
