"""Skill balance optimizer.

Local search over already formed teams: each iteration tries to swap a
non-Leader member of the weakest team with a non-Leader member of the
strongest team. A swap is kept only if the spread of team-average skill
strictly shrinks and both teams still satisfy every composition rule.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from teammate.engine.rules import is_team_valid, team_max_thinkers
from teammate.participant_models import Participant
from teammate.team_models import OptimizationResult, SwapRecord, Team


logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 150


def skill_range(teams: Sequence[Team]) -> float:
    """Highest minus lowest team-average skill (0.0 for no teams)."""
    if not teams:
        return 0.0
    averages = [team.average_skill for team in teams]
    return max(averages) - min(averages)


def _swap(weak_team: Team, strong_team: Team, weak: Participant, strong: Participant) -> None:
    weak_team.replace_member(weak, strong)
    strong_team.replace_member(strong, weak)


def _swap_candidates(team: Team, descending: bool) -> list[Participant]:
    return sorted(
        (m for m in team.members if not m.is_leader),
        key=lambda m: m.skill_level,
        reverse=descending,
    )


def optimize_skill_balance(
    teams: list[Team],
    team_size: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> OptimizationResult:
    """Rebalance *teams* in place by swapping members between extreme teams.

    Leaders never move, so every team keeps exactly one. The list itself is
    re-sorted by average skill during the search and restored to team-number
    order before returning.

    Args:
        teams: Formed teams; fewer than two makes this a no-op.
        team_size: Size every team was formed with.
        max_iterations: Hard cap on outer iterations.

    Returns:
        OptimizationResult with every accepted swap.
    """
    initial = round(skill_range(teams), 4)
    if len(teams) < 2:
        logger.info("Optimization skipped (need at least 2 teams)")
        return OptimizationResult(initial_range=initial, final_range=initial)

    swaps: list[SwapRecord] = []
    iterations = 0
    converged = False

    while iterations < max_iterations:
        iterations += 1
        teams.sort(key=lambda t: t.average_skill)
        weakest, strongest = teams[0], teams[-1]
        before = skill_range(teams)

        accepted = False
        for weak in _swap_candidates(weakest, descending=False):
            for strong in _swap_candidates(strongest, descending=True):
                _swap(weakest, strongest, weak, strong)
                after = skill_range(teams)
                if (
                    after < before
                    and is_team_valid(weakest.members, team_size, team_max_thinkers(weakest))
                    and is_team_valid(strongest.members, team_size, team_max_thinkers(strongest))
                ):
                    swaps.append(SwapRecord(
                        iteration=iterations,
                        weak_team=weakest.team_number,
                        strong_team=strongest.team_number,
                        moved_to_strong=weak.id,
                        moved_to_weak=strong.id,
                        range_before=round(before, 4),
                        range_after=round(after, 4),
                    ))
                    accepted = True
                    break
                _swap(weakest, strongest, strong, weak)
            if accepted:
                break

        if not accepted:
            converged = True
            break

    teams.sort(key=lambda t: t.team_number)
    final = round(skill_range(teams), 4)
    logger.info(
        "Skill balance optimization: iterations=%d swaps=%d range %.2f -> %.2f",
        iterations,
        len(swaps),
        initial,
        final,
    )
    return OptimizationResult(
        iterations=iterations,
        swaps=swaps,
        initial_range=initial,
        final_range=final,
        converged=converged,
    )
