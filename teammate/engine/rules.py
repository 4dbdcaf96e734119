"""Team composition rules.

All functions are *pure*. The allocator uses ``meets_requirements`` while
picking candidates and ``find_violations`` before accepting a team; the
optimizer re-checks both teams of every tentative swap.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel, Field

from teammate.participant_models import Participant
from teammate.team_models import Team


# ---------------------------------------------------------------------------
# Rule constants
# ---------------------------------------------------------------------------
ACTIVITY_CAP = 2
MIN_DISTINCT_ROLES = 3
ROLE_DIVERSITY_MIN_TEAM_SIZE = 4
STRICT_MAX_THINKERS = 2
RELAXED_MAX_THINKERS = 3


def thinker_cap(allow_relaxed: bool = False) -> int:
    return RELAXED_MAX_THINKERS if allow_relaxed else STRICT_MAX_THINKERS


def target_thinkers(team_size: int) -> int:
    """Thinkers a new team aims for: two from size 5 upwards, otherwise one."""
    return 2 if team_size >= 5 else 1


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------
RuleName = Literal[
    "size",
    "duplicate_member",
    "leader_count",
    "thinker_count",
    "activity_cap",
    "role_diversity",
    "double_assignment",
    "conservation",
    "team_numbering",
]


class RuleViolation(BaseModel):
    """A single broken composition rule."""

    rule: RuleName
    message: str
    team_number: int | None = None
    participant_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Candidate screening
# ---------------------------------------------------------------------------
def meets_requirements(
    candidate: Participant,
    current: Sequence[Participant],
    team_size: int,
) -> bool:
    """Return True if *candidate* may join the partially built team *current*.

    Rejects a candidate who would be the third member sharing a preferred
    game, and, for teams of four or more, a candidate who would take the last
    seat with an already-present role while fewer than three roles exist.
    """
    game = candidate.preferred_game.casefold()
    same_game = sum(1 for p in current if p.preferred_game.casefold() == game)
    if same_game >= ACTIVITY_CAP:
        return False

    if team_size >= ROLE_DIVERSITY_MIN_TEAM_SIZE:
        remaining_slots = team_size - len(current) - 1
        roles = {p.preferred_role for p in current}
        if remaining_slots < 2 and len(roles) < MIN_DISTINCT_ROLES:
            if candidate.preferred_role in roles and remaining_slots == 0:
                return False

    return True


# ---------------------------------------------------------------------------
# Team validation
# ---------------------------------------------------------------------------
def find_violations(
    members: Sequence[Participant],
    team_size: int,
    max_thinkers: int = STRICT_MAX_THINKERS,
    team_number: int | None = None,
) -> list[RuleViolation]:
    """Return every rule *members* breaks as a finished team of *team_size*."""
    violations: list[RuleViolation] = []

    if len(members) != team_size:
        violations.append(RuleViolation(
            rule="size",
            message=f"team has {len(members)} members, expected {team_size}",
            team_number=team_number,
        ))

    id_counts = Counter(m.id for m in members)
    duplicated = sorted(pid for pid, c in id_counts.items() if c > 1)
    if duplicated:
        violations.append(RuleViolation(
            rule="duplicate_member",
            message="participant listed more than once",
            team_number=team_number,
            participant_ids=duplicated,
        ))

    leaders = [m.id for m in members if m.is_leader]
    if len(leaders) != 1:
        violations.append(RuleViolation(
            rule="leader_count",
            message=f"team has {len(leaders)} Leaders, expected exactly 1",
            team_number=team_number,
            participant_ids=leaders,
        ))

    thinkers = [m.id for m in members if m.is_thinker]
    if not 1 <= len(thinkers) <= max_thinkers:
        violations.append(RuleViolation(
            rule="thinker_count",
            message=f"team has {len(thinkers)} Thinkers, expected 1-{max_thinkers}",
            team_number=team_number,
            participant_ids=thinkers,
        ))

    games = Counter(m.preferred_game.casefold() for m in members)
    for game, count in games.items():
        if count > ACTIVITY_CAP:
            violations.append(RuleViolation(
                rule="activity_cap",
                message=f"{count} members prefer '{game}' (max {ACTIVITY_CAP})",
                team_number=team_number,
                participant_ids=[m.id for m in members if m.preferred_game.casefold() == game],
            ))

    if team_size >= ROLE_DIVERSITY_MIN_TEAM_SIZE:
        roles = {m.preferred_role for m in members}
        if len(roles) < MIN_DISTINCT_ROLES:
            violations.append(RuleViolation(
                rule="role_diversity",
                message=f"only {len(roles)} distinct roles (min {MIN_DISTINCT_ROLES})",
                team_number=team_number,
            ))

    return violations


def is_team_valid(
    members: Sequence[Participant],
    team_size: int,
    max_thinkers: int = STRICT_MAX_THINKERS,
) -> bool:
    return not find_violations(members, team_size, max_thinkers)


def team_max_thinkers(team: Team) -> int:
    """Thinker cap that applies to *team* given the rule mode it was formed under."""
    return RELAXED_MAX_THINKERS if team.rule_mode == "relaxed" else STRICT_MAX_THINKERS


# ---------------------------------------------------------------------------
# Whole-formation audit
# ---------------------------------------------------------------------------
def check_formation(
    teams: Sequence[Team],
    unassigned: Sequence[Participant],
    participants: Sequence[Participant],
    team_size: int,
) -> list[RuleViolation]:
    """Audit a finished formation against every cross-team invariant.

    Checks conservation of the input (every participant exactly once in a
    team or in *unassigned*), contiguous team numbers from 1 and each team's
    own composition rules.
    """
    violations: list[RuleViolation] = []

    seen: Counter[str] = Counter()
    for team in teams:
        seen.update(team.member_ids)
    double = sorted(pid for pid, c in seen.items() if c > 1)
    if double:
        violations.append(RuleViolation(
            rule="double_assignment",
            message="participant placed in more than one team",
            participant_ids=double,
        ))

    seen.update(p.id for p in unassigned)
    expected = Counter(p.id for p in participants)
    if seen != expected:
        missing = sorted((expected - seen).keys())
        extra = sorted((seen - expected).keys())
        violations.append(RuleViolation(
            rule="conservation",
            message=f"missing={missing} extra={extra}",
            participant_ids=[*missing, *extra],
        ))

    numbers = [team.team_number for team in teams]
    if numbers != list(range(1, len(teams) + 1)):
        violations.append(RuleViolation(
            rule="team_numbering",
            message=f"team numbers {numbers} are not contiguous from 1",
        ))

    for team in teams:
        violations.extend(find_violations(
            team.members,
            team_size,
            team_max_thinkers(team),
            team_number=team.team_number,
        ))

    return violations
