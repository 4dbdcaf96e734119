"""Formation settings loaded from the environment (.env supported).

Every operational knob of the engine and the organizer shell lives here:
team size range, the load and formation timeouts, worker count, random seed
and selection strategy.
"""

from __future__ import annotations

import logging
import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)

SelectionStrategy = Literal["random", "skill_balanced"]

_ENV_PREFIX = "TEAMMATE_"


class FormationSettings(BaseModel):
    """Configuration for team formation and the organizer shell."""

    team_size: int = Field(default=5, ge=1)
    min_team_size: int = Field(default=3, ge=1)
    max_team_size: int = Field(default=10, ge=1)
    formation_timeout: float = Field(default=60.0, ge=0.0)
    load_timeout: float = Field(default=15.0, ge=0.0)
    max_optimizer_iterations: int = Field(default=150, ge=0)
    max_workers: int | None = Field(default=None, ge=1)
    seed: int | None = None
    selection_strategy: SelectionStrategy = "random"
    allow_relaxed_thinkers: bool = False
    participants_file: str = "participants_sample.csv"
    teams_file: str = "formed_teams.csv"
    log_dir: str = "logs"

    @model_validator(mode="after")
    def _check_team_size_range(self) -> FormationSettings:
        if self.min_team_size > self.max_team_size:
            raise ValueError(
                f"min_team_size ({self.min_team_size}) exceeds max_team_size ({self.max_team_size})"
            )
        if not self.is_valid_team_size(self.team_size):
            raise ValueError(
                f"team_size must be between {self.min_team_size} and {self.max_team_size}"
            )
        return self

    def is_valid_team_size(self, size: int) -> bool:
        return self.min_team_size <= size <= self.max_team_size


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------
_INT_FIELDS = ("team_size", "min_team_size", "max_team_size", "max_optimizer_iterations", "max_workers", "seed")
_FLOAT_FIELDS = ("formation_timeout", "load_timeout")
_BOOL_FIELDS = ("allow_relaxed_thinkers",)
_STR_FIELDS = ("selection_strategy", "participants_file", "teams_file", "log_dir")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_name(field_name: str) -> str:
    return f"{_ENV_PREFIX}{field_name.upper()}"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got '{raw}'")


def settings_from_env() -> FormationSettings:
    """Build settings from ``TEAMMATE_*`` environment variables.

    Unset or empty variables keep their defaults.

    Raises:
        ValueError: If a variable cannot be parsed.
        pydantic.ValidationError: If a parsed value breaks a constraint.
    """
    values: dict[str, object] = {}

    for field_name in _INT_FIELDS:
        name = _env_name(field_name)
        raw = os.getenv(name, "")
        if raw.strip():
            try:
                values[field_name] = int(raw)
            except ValueError as e:
                raise ValueError(f"{name} must be an integer, got '{raw}'") from e

    for field_name in _FLOAT_FIELDS:
        name = _env_name(field_name)
        raw = os.getenv(name, "")
        if raw.strip():
            try:
                values[field_name] = float(raw)
            except ValueError as e:
                raise ValueError(f"{name} must be a number, got '{raw}'") from e

    for field_name in _BOOL_FIELDS:
        name = _env_name(field_name)
        raw = os.getenv(name, "")
        if raw.strip():
            values[field_name] = _parse_bool(name, raw)

    for field_name in _STR_FIELDS:
        raw = os.getenv(_env_name(field_name), "")
        if raw.strip():
            values[field_name] = raw.strip()

    return FormationSettings(**values)


def load_settings() -> FormationSettings:
    """Load ``.env`` (if present) and return the resulting settings."""
    load_dotenv()
    settings = settings_from_env()
    logger.info(
        "Formation settings: team_size=%d timeout=%.1fs load_timeout=%.1fs strategy=%s",
        settings.team_size,
        settings.formation_timeout,
        settings.load_timeout,
        settings.selection_strategy,
    )
    return settings
