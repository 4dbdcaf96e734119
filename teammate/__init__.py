"""Team formation library: participants, teams and the concurrent allocator."""

from .participant_models import Participant, classify_personality
from .team_models import FormationReport, FormationRequest, Team

__all__ = [
    "FormationReport",
    "FormationRequest",
    "Participant",
    "Team",
    "classify_personality",
]
