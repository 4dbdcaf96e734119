"""Concurrent team allocator.

Partitions a participant list into teams of exactly ``team_size`` members.
One worker task builds one team: it reserves a Leader, one or two Thinkers
and then fills the remaining seats, preferring Balanced participants. Each
seat is a short critical section on the shared pool. A team that cannot be
completed or breaks a composition rule is abandoned and its members go back
to the pool. Failed slots never affect their siblings.

After all workers finish, the skill balance optimizer swaps members between
the weakest and strongest teams.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
import logging
import os
import random
import threading
import time

from teammate.config import FormationSettings
from teammate.engine.optimizer import optimize_skill_balance
from teammate.engine.pool import Chooser, ParticipantPool
from teammate.engine.rules import (
    RELAXED_MAX_THINKERS,
    STRICT_MAX_THINKERS,
    check_formation,
    find_violations,
    is_team_valid,
    meets_requirements,
    target_thinkers,
    thinker_cap,
)
from teammate.participant_models import Participant, PersonalityCategory
from teammate.team_models import (
    FormationReport,
    FormationRequest,
    FormationStatus,
    Team,
)


logger = logging.getLogger(__name__)

_FILL_FALLBACK: tuple[PersonalityCategory, ...] = ("Balanced", "Thinker")


class _AbandonedError(Exception):
    """Raised inside a worker once the formation attempt has been abandoned."""


# ---------------------------------------------------------------------------
# Per-invocation state
# ---------------------------------------------------------------------------
class _FormationRun:
    """State of one formation attempt, shared by its worker tasks.

    The pool lock and the finished-team lock are independent, so committing
    a team never waits behind another worker's seat selection. The random
    source is only touched inside ``ParticipantPool.claim`` and is therefore
    serialized by the pool lock.
    """

    def __init__(
        self,
        participants: Sequence[Participant],
        team_size: int,
        settings: FormationSettings,
        rng: random.Random,
    ) -> None:
        self.team_size = team_size
        self.settings = settings
        self.pool = ParticipantPool(participants)
        self.stop = threading.Event()
        self._rng = rng
        self._max_thinkers = thinker_cap(settings.allow_relaxed_thinkers)
        self._target_skill = sum(p.skill_level for p in participants) / len(participants)
        self._finished: list[Team] = []
        self._teams_lock = threading.Lock()

    def finished_teams(self) -> list[Team]:
        with self._teams_lock:
            return sorted(self._finished, key=lambda t: t.team_number)

    # ------------------------------------------------------------------
    # Worker entry point
    # ------------------------------------------------------------------
    def build_slot(self, team_number: int) -> Team | None:
        """Build one team; returns None when the slot cannot be completed."""
        selected: list[Participant] = []
        try:
            team = self._assemble(team_number, selected)
        except _AbandonedError:
            logger.debug("Team %d abandoned after formation timeout", team_number)
            team = None
        except Exception:
            logger.error("Unexpected failure while forming team %d", team_number, exc_info=True)
            team = None

        if team is None:
            self.pool.release(selected)
            return None

        with self._teams_lock:
            self._finished.append(team)
        return team

    # ------------------------------------------------------------------
    # Single-team selection
    # ------------------------------------------------------------------
    def _assemble(self, team_number: int, selected: list[Participant]) -> Team | None:
        if self.pool.size() < self.team_size:
            logger.info("Team %d: fewer than %d participants remain", team_number, self.team_size)
            return None

        leader = self._claim(selected, self._pick_leader)
        if leader is None:
            logger.info("Team %d: no Leader left", team_number)
            return None

        for i in range(target_thinkers(self.team_size)):
            thinker = self._claim(selected, lambda available: self._best_match(available, selected, ("Thinker",)))
            if thinker is None:
                if i == 0:
                    logger.info("Team %d: no suitable Thinker left", team_number)
                    return None
                break

        while len(selected) < self.team_size:
            member = self._claim(selected, lambda available: self._best_match(available, selected, ("Balanced",)))
            if member is None:
                member = self._claim(
                    selected,
                    lambda available: self._best_match(available, selected, self._fallback_categories(selected)),
                )
            if member is None:
                logger.info(
                    "Team %d: could not fill seat %d of %d",
                    team_number,
                    len(selected) + 1,
                    self.team_size,
                )
                return None

        rule_mode = "strict"
        violations = find_violations(selected, self.team_size, STRICT_MAX_THINKERS, team_number)
        if violations:
            if self.settings.allow_relaxed_thinkers and is_team_valid(
                selected, self.team_size, RELAXED_MAX_THINKERS
            ):
                rule_mode = "relaxed"
                logger.info("Team %d accepted under relaxed Thinker cap", team_number)
            else:
                logger.info(
                    "Team %d rejected: %s",
                    team_number,
                    "; ".join(v.message for v in violations),
                )
                return None

        if not self.pool.remove_all(selected):
            logger.warning("Team %d: selected members no longer in pool", team_number)
            return None

        return Team(team_number=team_number, members=list(selected), rule_mode=rule_mode)

    def _claim(self, selected: list[Participant], chooser: Chooser) -> Participant | None:
        if self.stop.is_set():
            raise _AbandonedError
        chosen = self.pool.claim(chooser)
        if chosen is not None:
            selected.append(chosen)
        return chosen

    def _fallback_categories(self, selected: list[Participant]) -> tuple[PersonalityCategory, ...]:
        thinkers = sum(1 for p in selected if p.is_thinker)
        if thinkers < self._max_thinkers:
            return _FILL_FALLBACK
        return ("Balanced",)

    # ------------------------------------------------------------------
    # Candidate choosers (run under the pool lock)
    # ------------------------------------------------------------------
    def _pick_leader(self, available: list[Participant]) -> Participant | None:
        leaders = [p for p in available if p.is_leader]
        if not leaders:
            return None
        return self._rng.choice(leaders)

    def _best_match(
        self,
        available: list[Participant],
        current: list[Participant],
        categories: tuple[PersonalityCategory, ...],
    ) -> Participant | None:
        candidates = [p for p in available if p.personality_type in categories]
        if not candidates:
            return None
        self._rng.shuffle(candidates)
        passing = (c for c in candidates if meets_requirements(c, current, self.team_size))

        if self.settings.selection_strategy == "skill_balanced":
            pool = list(passing)
            if not pool:
                return None
            total = sum(p.skill_level for p in current)
            n = len(current) + 1
            return min(pool, key=lambda c: abs((total + c.skill_level) / n - self._target_skill))

        return next(passing, None)


# ---------------------------------------------------------------------------
# Allocator
# ---------------------------------------------------------------------------
class TeamAllocator:
    """Forms teams from a participant list under the configured rules.

    The allocator holds no state between calls; every ``form`` call builds
    its own pool, locks and result list.
    """

    def __init__(
        self,
        settings: FormationSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or FormationSettings()
        self._rng = rng if rng is not None else random.Random(self.settings.seed)

    def form(self, request: FormationRequest) -> FormationReport:
        started = time.monotonic()
        participants = list(request.participants)
        team_size = request.team_size

        rejection = self._rejection_reason(participants, team_size)
        if rejection:
            logger.warning("Team formation rejected: %s", rejection)
            return _empty_report("rejected", rejection, participants, team_size, started)

        logger.info(
            "Starting concurrent team formation: participants=%d team_size=%d",
            len(participants),
            team_size,
        )

        teams_needed = len(participants) // team_size
        if teams_needed == 0:
            reason = f"Not enough participants to form even one team (need at least {team_size})"
            logger.warning("Cannot form teams: %s", reason)
            return _empty_report("infeasible", reason, participants, team_size, started)

        counts = Counter(p.personality_type for p in participants)
        leaders, thinkers = counts.get("Leader", 0), counts.get("Thinker", 0)
        logger.info(
            "Personality distribution -> Leaders: %d, Thinkers: %d, Balanced: %d",
            leaders,
            thinkers,
            counts.get("Balanced", 0),
        )
        if leaders < 1 or thinkers < 1:
            reason = "Every team needs 1 Leader and at least 1 Thinker"
            logger.warning("Cannot form teams: %s", reason)
            return _empty_report("infeasible", reason, participants, team_size, started)

        total_teams = min(teams_needed, leaders)
        logger.info("Teams to form: %d", total_teams)

        run = _FormationRun(participants, team_size, self.settings, self._rng)
        failed, timed_out = self._dispatch(run, total_teams, started)

        if timed_out:
            reason = (
                f"Team formation did not finish within {self.settings.formation_timeout:g}s; "
                "retry with a larger timeout or fewer participants"
            )
            logger.error("Team formation timed out: %s", reason)
            report = _empty_report("timeout", reason, participants, team_size, started)
            report.requested_teams = total_teams
            return report

        teams = run.finished_teams()
        for number, team in enumerate(teams, start=1):
            team.team_number = number

        logger.info("Successfully formed %d teams, failed %d", len(teams), failed)

        optimization = None
        if len(teams) >= 2:
            optimization = optimize_skill_balance(
                teams,
                team_size,
                max_iterations=self.settings.max_optimizer_iterations,
            )

        unassigned = run.pool.unassigned()
        violations = check_formation(teams, unassigned, participants, team_size)
        if violations:
            logger.error(
                "Formation audit failed: %s",
                "; ".join(v.message for v in violations),
            )

        if teams:
            status: FormationStatus = "formed"
            reason = ""
            if unassigned:
                reason = (
                    f"{len(unassigned)} participants could not be placed: not enough remaining "
                    "participants, or team constraints (Leader/Thinker/role/game) prevented "
                    "a valid team"
                )
        else:
            status = "infeasible"
            reason = "No team could satisfy the composition rules with the available participants"

        return FormationReport(
            status=status,
            reason=reason,
            teams=teams,
            unassigned=unassigned,
            team_size=team_size,
            requested_teams=total_teams,
            failed_slots=failed,
            elapsed_seconds=round(time.monotonic() - started, 4),
            optimization=optimization,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _rejection_reason(self, participants: list[Participant], team_size: int) -> str:
        if not participants:
            return "No participants available to form teams"
        if not self.settings.is_valid_team_size(team_size):
            return (
                f"Team size must be between {self.settings.min_team_size} "
                f"and {self.settings.max_team_size}"
            )
        ids = Counter(p.id for p in participants)
        duplicates = sorted(pid for pid, c in ids.items() if c > 1)
        if duplicates:
            return f"Duplicate participant ids: {', '.join(duplicates)}"
        return ""

    def _dispatch(
        self,
        run: _FormationRun,
        total_teams: int,
        started: float,
    ) -> tuple[int, bool]:
        """Run one task per team slot. Returns (failed slot count, timed out)."""
        workers = min(total_teams, self.settings.max_workers or os.cpu_count() or 1)
        logger.info("Using %d threads for parallel processing", workers)

        deadline = started + self.settings.formation_timeout
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="team-builder")
        futures = [executor.submit(run.build_slot, n) for n in range(1, total_teams + 1)]

        _, not_done = wait(futures, timeout=max(0.0, deadline - time.monotonic()))
        if not_done or time.monotonic() >= deadline:
            run.stop.set()
            executor.shutdown(wait=False, cancel_futures=True)
            return len(futures), True
        executor.shutdown(wait=True)

        failed = 0
        for future in futures:
            exc = future.exception()
            if exc is not None:
                logger.error("Team builder task failed: %s", exc)
                failed += 1
            elif future.result() is None:
                failed += 1
        return failed, False


def _empty_report(
    status: FormationStatus,
    reason: str,
    participants: list[Participant],
    team_size: int,
    started: float,
) -> FormationReport:
    return FormationReport(
        status=status,
        reason=reason,
        teams=[],
        unassigned=list(participants),
        team_size=team_size,
        elapsed_seconds=round(time.monotonic() - started, 4),
    )


def form_teams(
    participants: Sequence[Participant],
    team_size: int,
    settings: FormationSettings | None = None,
    rng: random.Random | None = None,
) -> FormationReport:
    """Form teams of *team_size* from *participants* (convenience wrapper)."""
    allocator = TeamAllocator(settings, rng)
    return allocator.form(FormationRequest(participants=list(participants), team_size=team_size))
