"""Repository for participant and formed-team persistence (CSV files)."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
import csv
import logging
from pathlib import Path
import re
import threading

from pydantic import ValidationError

from teammate.participant_models import Participant
from teammate.team_models import Team


logger = logging.getLogger(__name__)

_DEFAULT_PATH = "participants_sample.csv"
_DEFAULT_TEAMS_PATH = "formed_teams.csv"

PARTICIPANT_COLUMNS = [
    "ID", "Name", "Email", "PreferredGame", "SkillLevel",
    "PreferredRole", "PersonalityScore", "PersonalityType",
]
TEAM_COLUMNS = [
    "TeamNumber", "MemberID", "Name", "Email", "Game",
    "Role", "Skill", "Score", "PersonalityType",
]

_ID_PATTERN = re.compile(r"^P(\d+)$")


class ParticipantLoadTimeout(TimeoutError):
    """Loading the participants file took longer than the configured limit."""


class ParticipantRepository:
    """Thread-safe persistence layer for the participants CSV file."""

    def __init__(self, path: str = _DEFAULT_PATH) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load_participants(self) -> list[Participant]:
        """Read every participant row.

        The header, blank lines and rows with fewer than eight columns are
        skipped.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If a row holds an invalid value.
        """
        with self._lock:
            return self._read()

    def save_participants(self, participants: Sequence[Participant]) -> None:
        """Overwrite the file with *participants* (atomic write)."""
        with self._lock:
            self._write(participants)
        logger.info("Saved %d participants to %s", len(participants), self._path)

    def append_participant(self, participant: Participant) -> list[Participant]:
        """Add *participant* to the file and return the updated list."""
        with self._lock:
            existing = self._read() if self._path.exists() else []
            if any(p.id == participant.id for p in existing):
                raise ValueError(f"Participant with id '{participant.id}' already exists")
            updated = [*existing, participant]
            self._write(updated)
        logger.info("Participant saved: %s (%s)", participant.id, participant.name)
        return updated

    def register(self, factory: Callable[[str], Participant]) -> Participant:
        """Allocate the next id, build a participant with *factory* and append it.

        Id allocation and the write happen under one lock acquisition, so
        concurrent registrations always receive distinct ids.
        """
        with self._lock:
            existing = self._read() if self._path.exists() else []
            participant = factory(next_participant_id(existing))
            if any(p.id == participant.id for p in existing):
                raise ValueError(f"Participant with id '{participant.id}' already exists")
            self._write([*existing, participant])
        logger.info("Participant registered: %s (%s)", participant.id, participant.name)
        return participant

    def next_participant_id(self) -> str:
        """Next free ``P###`` id, one past the highest existing one."""
        with self._lock:
            existing = self._read() if self._path.exists() else []
        return next_participant_id(existing)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _read(self) -> list[Participant]:
        participants: list[Participant] = []
        with open(self._path, newline="", encoding="utf-8") as fh:
            reader = csv.reader(fh)
            next(reader, None)
            for line_no, row in enumerate(reader, start=2):
                if not row or not "".join(row).strip():
                    continue
                if len(row) < len(PARTICIPANT_COLUMNS):
                    logger.warning("Skipping short row %d in %s", line_no, self._path)
                    continue
                participants.append(_parse_row(row, line_no))
        logger.info("Loaded %d participants from %s", len(participants), self._path)
        return participants

    def _write(self, participants: Sequence[Participant]) -> None:
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                writer.writerow(PARTICIPANT_COLUMNS)
                for p in participants:
                    writer.writerow(p.to_csv_row())
            tmp.replace(self._path)
        except Exception as exc:
            if tmp.exists():
                tmp.unlink()
            raise ValueError(f"Failed to save participants: {exc}") from exc


def _parse_row(row: list[str], line_no: int) -> Participant:
    fields = [value.strip() for value in row]
    try:
        return Participant(
            id=fields[0],
            name=fields[1],
            email=fields[2],
            preferred_game=fields[3],
            skill_level=int(fields[4]),
            preferred_role=fields[5],
            personality_score=int(fields[6]),
            personality_type=fields[7],
        )
    except (ValueError, ValidationError) as exc:
        raise ValueError(f"Invalid participant on line {line_no}: {exc}") from exc


def next_participant_id(participants: Sequence[Participant]) -> str:
    highest = 0
    for p in participants:
        match = _ID_PATTERN.match(p.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"P{highest + 1:03d}"


# ---------------------------------------------------------------------------
# Formed teams export
# ---------------------------------------------------------------------------
def save_formed_teams(teams: Sequence[Team], path: str = _DEFAULT_TEAMS_PATH) -> str:
    """Write one row per team member. Returns the path written."""
    target = Path(path)
    tmp = target.with_suffix(".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(TEAM_COLUMNS)
            for team in sorted(teams, key=lambda t: t.team_number):
                for p in team.members:
                    writer.writerow([
                        team.team_number,
                        p.id,
                        p.name,
                        p.email,
                        p.preferred_game,
                        p.preferred_role,
                        p.skill_level,
                        p.personality_score,
                        p.personality_type,
                    ])
        tmp.replace(target)
    except Exception as exc:
        if tmp.exists():
            tmp.unlink()
        raise ValueError(f"Failed to save teams: {exc}") from exc

    logger.info("All teams saved to %s", target)
    return str(target)


# ---------------------------------------------------------------------------
# Bounded background load
# ---------------------------------------------------------------------------
def load_participants_with_timeout(
    repo: ParticipantRepository,
    timeout: float,
) -> list[Participant]:
    """Load participants on a background thread, giving up after *timeout* seconds.

    Raises:
        ParticipantLoadTimeout: If loading does not finish in time.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="participant-loader")
    future = executor.submit(repo.load_participants)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as exc:
        logger.error("Loading %s timed out after %.1fs", repo.path, timeout)
        raise ParticipantLoadTimeout(
            f"Loading {repo.path} took longer than {timeout:g}s"
        ) from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
