"""Organizer session - the state behind the organizer shell.

Holds the loaded participants, the chosen team size and the most recent
formation result. The Streamlit app keeps one session per browser session.
"""

from __future__ import annotations

import logging
import random

from teammate.config import FormationSettings
from teammate.engine.allocator import TeamAllocator
from teammate.participant_models import Participant
from teammate.participant_repository import (
    ParticipantRepository,
    load_participants_with_timeout,
    save_formed_teams,
)
from teammate.team_models import FormationReport, FormationRequest, Team


logger = logging.getLogger(__name__)


class OrganizerSession:
    """Load participants, form teams and save them."""

    def __init__(
        self,
        settings: FormationSettings | None = None,
        repo: ParticipantRepository | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or FormationSettings()
        self.repo = repo or ParticipantRepository(self.settings.participants_file)
        self.team_size = self.settings.team_size
        self._rng = rng
        self._participants: list[Participant] = []
        self._formed_teams: list[Team] = []
        self._last_report: FormationReport | None = None

    @property
    def participants(self) -> list[Participant]:
        return list(self._participants)

    @property
    def formed_teams(self) -> list[Team]:
        return sorted(self._formed_teams, key=lambda t: t.team_number)

    @property
    def last_report(self) -> FormationReport | None:
        return self._last_report

    def load_participants(self, path: str | None = None) -> list[Participant]:
        """Load participants from *path* (default: the configured file).

        Raises:
            FileNotFoundError: If the file does not exist.
            ParticipantLoadTimeout: If loading exceeds the load timeout.
            ValueError: If the file holds invalid rows.
        """
        repo = ParticipantRepository(path) if path else self.repo
        if not repo.path.exists():
            logger.error("CSV not found: %s", repo.path.resolve())
            raise FileNotFoundError(f"File not found: {repo.path}")

        self._participants = load_participants_with_timeout(repo, self.settings.load_timeout)
        logger.info("Successfully loaded %d participants", len(self._participants))
        return self.participants

    def set_team_size(self, size: int) -> None:
        if not self.settings.is_valid_team_size(size):
            logger.warning("Invalid team size entered: %d", size)
            raise ValueError(
                f"Team size must be between {self.settings.min_team_size} "
                f"and {self.settings.max_team_size}"
            )
        self.team_size = size
        logger.info("Team size updated to: %d", size)

    def form_teams(self) -> FormationReport:
        """Run the allocator on the loaded participants.

        A timed-out attempt is reported but leaves previously formed teams
        in place.
        """
        allocator = TeamAllocator(self.settings, self._rng)
        report = allocator.form(FormationRequest(
            participants=self.participants,
            team_size=self.team_size,
        ))
        self._last_report = report
        if report.status == "timeout":
            logger.error("Team formation timed out")
            return report

        self._formed_teams = list(report.teams)
        logger.info("Teams formed: %d, unassigned: %d", len(report.teams), len(report.unassigned))
        return report

    def save_teams(self, path: str | None = None) -> str:
        if not self._formed_teams:
            raise ValueError("No teams to save")
        return save_formed_teams(self.formed_teams, path or self.settings.teams_file)
