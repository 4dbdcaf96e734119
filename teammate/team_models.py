"""Team and formation request/report records."""

from __future__ import annotations

from collections import Counter
from typing import Literal

from pydantic import BaseModel, Field

from teammate.participant_models import PERSONALITY_CATEGORIES, Participant


RuleMode = Literal["strict", "relaxed"]
FormationStatus = Literal["formed", "rejected", "infeasible", "timeout"]


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------
class Team(BaseModel):
    """A numbered group of participants.

    Derived attributes are computed from the current membership on every
    access so they never go stale after an optimizer swap.
    """

    team_number: int = Field(..., ge=1)
    members: list[Participant] = Field(default_factory=list)
    rule_mode: RuleMode = "strict"

    def add_member(self, participant: Participant) -> None:
        self.members.append(participant)

    def replace_member(self, old: Participant, new: Participant) -> None:
        """Put *new* in the seat held by *old*."""
        idx = next(i for i, m in enumerate(self.members) if m.id == old.id)
        self.members[idx] = new

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def average_skill(self) -> float:
        if not self.members:
            return 0.0
        return sum(m.skill_level for m in self.members) / len(self.members)

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    @property
    def leader_count(self) -> int:
        return sum(1 for m in self.members if m.is_leader)

    @property
    def thinker_count(self) -> int:
        return sum(1 for m in self.members if m.is_thinker)

    @property
    def distinct_roles(self) -> set[str]:
        return {m.preferred_role for m in self.members}

    def personality_counts(self) -> dict[str, int]:
        counter = Counter(m.personality_type for m in self.members)
        return {category: counter.get(category, 0) for category in PERSONALITY_CATEGORIES}

    def summary(self) -> str:
        """One-line description: number, average skill and personality mix."""
        if not self.members:
            return f"TEAM {self.team_number} | Empty"
        counts = self.personality_counts()
        thinkers = counts["Thinker"]
        mix = ", ".join(
            part for part in (
                f"{counts['Leader']} Leader" if counts["Leader"] else "",
                f"{counts['Balanced']} Balanced" if counts["Balanced"] else "",
                f"{thinkers} Thinker{'s' if thinkers > 1 else ''}" if thinkers else "",
            ) if part
        )
        label = " (relaxed)" if self.rule_mode == "relaxed" else ""
        return (
            f"TEAM {self.team_number:<2} | Avg Skill: {self.average_skill:4.1f} | "
            f"Personality: {mix}{label}"
        )


# ---------------------------------------------------------------------------
# Optimizer result records
# ---------------------------------------------------------------------------
class SwapRecord(BaseModel):
    """One accepted optimizer swap."""

    iteration: int = Field(ge=1)
    weak_team: int
    strong_team: int
    moved_to_strong: str  # participant id leaving the weakest team
    moved_to_weak: str  # participant id leaving the strongest team
    range_before: float = Field(ge=0.0)
    range_after: float = Field(ge=0.0)


class OptimizationResult(BaseModel):
    """Outcome of a skill balance optimization pass."""

    iterations: int = 0
    swaps: list[SwapRecord] = Field(default_factory=list)
    initial_range: float = 0.0
    final_range: float = 0.0
    converged: bool = True


# ---------------------------------------------------------------------------
# Formation request / report
# ---------------------------------------------------------------------------
class FormationRequest(BaseModel):
    """Participants to allocate plus the desired team size."""

    participants: list[Participant] = Field(default_factory=list)
    team_size: int


class FormationReport(BaseModel):
    """Formed teams plus everyone who could not be placed."""

    status: FormationStatus
    reason: str = ""
    teams: list[Team] = Field(default_factory=list)
    unassigned: list[Participant] = Field(default_factory=list)
    team_size: int = 0
    requested_teams: int = 0
    failed_slots: int = 0
    elapsed_seconds: float = 0.0
    optimization: OptimizationResult | None = None

    @property
    def is_success(self) -> bool:
        return self.status == "formed"

    @property
    def assigned_count(self) -> int:
        return sum(team.size for team in self.teams)
