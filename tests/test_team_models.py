"""Tests for teammate/team_models.py."""

from teammate.participant_models import Participant
from teammate.team_models import FormationReport, Team


_SCORES = {"Leader": 95, "Balanced": 75, "Thinker": 50}


def _p(pid: str, ptype: str, skill: int = 5, role: str = "Attacker", game: str = "Chess") -> Participant:
    return Participant(
        id=pid,
        name=f"Member {pid}",
        email=f"{pid.lower()}@example.com",
        preferred_game=game,
        skill_level=skill,
        preferred_role=role,
        personality_score=_SCORES[ptype],
        personality_type=ptype,
    )


class TestTeam:
    """Test Team derived attributes and summary."""

    def test_empty_team(self):
        """Test an empty team averages zero and says Empty."""
        team = Team(team_number=1)
        assert team.average_skill == 0.0
        assert team.summary() == "TEAM 1 | Empty"

    def test_average_tracks_membership(self):
        """Test the average follows membership changes."""
        team = Team(team_number=1, members=[_p("a", "Leader", 4), _p("b", "Thinker", 8)])
        assert team.average_skill == 6.0
        team.add_member(_p("c", "Balanced", 9))
        assert team.average_skill == 7.0

    def test_replace_member_keeps_seat(self):
        """Test a replacement takes the same seat."""
        a, b, c = _p("a", "Leader"), _p("b", "Thinker"), _p("c", "Balanced")
        team = Team(team_number=2, members=[a, b])
        team.replace_member(b, c)
        assert team.member_ids == ["a", "c"]

    def test_personality_counts_include_all_categories(self):
        """Test counts list every category."""
        team = Team(team_number=1, members=[_p("a", "Leader"), _p("b", "Thinker"), _p("c", "Thinker")])
        assert team.personality_counts() == {"Leader": 1, "Balanced": 0, "Thinker": 2}
        assert team.leader_count == 1
        assert team.thinker_count == 2

    def test_distinct_roles(self):
        """Test distinct roles collapse duplicates."""
        team = Team(team_number=1, members=[
            _p("a", "Leader", role="Strategist"),
            _p("b", "Thinker", role="Defender"),
            _p("c", "Balanced", role="Defender"),
        ])
        assert team.distinct_roles == {"Strategist", "Defender"}

    def test_summary_mentions_mix(self):
        """Test the summary shows number, average and mix."""
        team = Team(team_number=3, members=[
            _p("a", "Leader", 6),
            _p("b", "Balanced", 6),
            _p("c", "Thinker", 6),
            _p("d", "Thinker", 6),
        ])
        summary = team.summary()
        assert summary.startswith("TEAM 3")
        assert "1 Leader" in summary
        assert "2 Thinkers" in summary
        assert "6.0" in summary

    def test_relaxed_label_in_summary(self):
        """Test relaxed teams are labelled."""
        team = Team(team_number=1, members=[_p("a", "Leader")], rule_mode="relaxed")
        assert "(relaxed)" in team.summary()


class TestFormationReport:
    """Test FormationReport helpers."""

    def test_assigned_count_and_success(self):
        """Test assigned count and success flag."""
        team = Team(team_number=1, members=[_p("a", "Leader"), _p("b", "Thinker")])
        report = FormationReport(status="formed", teams=[team], unassigned=[_p("c", "Balanced")])
        assert report.is_success
        assert report.assigned_count == 2

    def test_empty_report_not_success(self):
        """Test non-formed reports are not successes."""
        report = FormationReport(status="infeasible", reason="no leaders")
        assert not report.is_success
        assert report.teams == []
