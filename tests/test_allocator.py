"""Tests for teammate/engine/allocator.py - concurrent team formation."""

import random

import pytest

from teammate.config import FormationSettings
from teammate.engine.allocator import TeamAllocator, _FormationRun, form_teams
from teammate.engine.rules import check_formation
from teammate.participant_models import ROLE_VOCABULARY, Participant, classify_personality
from teammate.team_models import FormationRequest


_SCORES = {"Leader": 95, "Balanced": 75, "Thinker": 50}


def _p(pid: str, ptype: str, game: str, role: str, skill: int = 5) -> Participant:
    return Participant(
        id=pid,
        name=f"Member {pid}",
        preferred_game=game,
        skill_level=skill,
        preferred_role=role,
        personality_score=_SCORES[ptype],
        personality_type=ptype,
    )


def _settings(**overrides) -> FormationSettings:
    data = {"seed": 42}
    data.update(overrides)
    return FormationSettings(**data)


def _ids(participants) -> set[str]:
    return {p.id for p in participants}


def _scenario_a() -> list[Participant]:
    people = [_p(f"L{i}", "Leader", f"Game L{i}", "Strategist", skill=i + 2) for i in range(1, 4)]
    people += [_p(f"T{i}", "Thinker", f"Game T{i}", "Defender", skill=i + 1) for i in range(1, 5)]
    balanced_roles = ["Attacker", "Supporter", "Coordinator", "Attacker", "Supporter"]
    people += [
        _p(f"B{i}", "Balanced", f"Game B{i}", role, skill=min(10, i * 2))
        for i, role in enumerate(balanced_roles, start=1)
    ]
    return people


def _random_participants(rng: random.Random, count: int) -> list[Participant]:
    games = ["Chess", "FIFA", "CS:GO", "DOTA 2", "Valorant", "Basketball"]
    people = []
    for i in range(1, count + 1):
        score = rng.randint(5, 25) * 4
        people.append(Participant(
            id=f"P{i:03d}",
            name=f"Player {i}",
            preferred_game=rng.choice(games),
            skill_level=rng.randint(1, 10),
            preferred_role=rng.choice(ROLE_VOCABULARY),
            personality_score=score,
            personality_type=classify_personality(score),
        ))
    return people


class TestScenarios:
    """Test the reference formation scenarios."""

    def test_teams_capped_by_leaders(self):
        """Test 12 participants with 3 Leaders give 3 full teams of 4."""
        people = _scenario_a()
        report = form_teams(people, 4, settings=_settings())

        assert report.status == "formed"
        assert report.requested_teams == 3
        assert len(report.teams) == 3
        assert report.unassigned == []
        for team in report.teams:
            assert team.size == 4
            assert team.leader_count == 1
            assert 1 <= team.thinker_count <= 2
        assert sum(team.thinker_count for team in report.teams) == 4
        assert check_formation(report.teams, report.unassigned, people, 4) == []

    def test_single_leader_single_team(self):
        """Test one Leader and one Thinker make exactly one team."""
        people = [
            _p("L1", "Leader", "Chess", "Strategist"),
            _p("T1", "Thinker", "FIFA", "Defender"),
            _p("B1", "Balanced", "CS:GO", "Attacker"),
            _p("B2", "Balanced", "DOTA 2", "Supporter"),
            _p("B3", "Balanced", "Valorant", "Coordinator"),
        ]
        report = form_teams(people, 5, settings=_settings())

        assert report.status == "formed"
        assert len(report.teams) == 1
        assert report.teams[0].team_number == 1
        assert _ids(report.teams[0].members) == _ids(people)
        assert report.unassigned == []

    def test_single_leader_without_thinker(self):
        """Test no Thinker means no team and everyone unassigned."""
        people = [
            _p("L1", "Leader", "Chess", "Strategist"),
            _p("B1", "Balanced", "FIFA", "Defender"),
            _p("B2", "Balanced", "CS:GO", "Attacker"),
            _p("B3", "Balanced", "DOTA 2", "Supporter"),
            _p("B4", "Balanced", "Valorant", "Coordinator"),
        ]
        report = form_teams(people, 5, settings=_settings())

        assert report.status == "infeasible"
        assert report.teams == []
        assert _ids(report.unassigned) == _ids(people)

    def test_shared_activity_aborts_team(self):
        """Test a team that would break the activity cap is abandoned."""
        people = [
            _p("L1", "Leader", "Chess", "Strategist"),
            _p("T1", "Thinker", "Chess", "Defender"),
            _p("B1", "Balanced", "Chess", "Attacker"),
            _p("B2", "Balanced", "Chess", "Supporter"),
            _p("B3", "Balanced", "Chess", "Coordinator"),
            _p("B4", "Balanced", "Chess", "Attacker"),
        ]
        report = form_teams(people, 4, settings=_settings())

        assert report.teams == []
        assert report.status == "infeasible"
        assert report.failed_slots == 1
        assert _ids(report.unassigned) == _ids(people)

    def test_zero_timeout_reports_timeout(self):
        """Test a zero time budget commits no teams."""
        people = _scenario_a()
        report = form_teams(people, 4, settings=_settings(formation_timeout=0))

        assert report.status == "timeout"
        assert report.teams == []
        assert _ids(report.unassigned) == _ids(people)
        assert report.requested_teams == 3
        assert "did not finish" in report.reason


class TestRejectedRequests:
    """Test input that is refused before any work starts."""

    def test_empty_input(self):
        """Test an empty participant list is rejected."""
        report = form_teams([], 4, settings=_settings())
        assert report.status == "rejected"
        assert report.reason == "No participants available to form teams"

    @pytest.mark.parametrize("size", [2, 11])
    def test_team_size_out_of_range(self, size):
        """Test team sizes outside 3-10 are rejected."""
        report = form_teams(_scenario_a(), size, settings=_settings())
        assert report.status == "rejected"
        assert "between 3 and 10" in report.reason
        assert len(report.unassigned) == 12

    def test_duplicate_ids(self):
        """Test duplicate participant ids are rejected and named."""
        people = _scenario_a()
        people.append(people[0])
        report = form_teams(people, 4, settings=_settings())
        assert report.status == "rejected"
        assert "L1" in report.reason


class TestInfeasibleRequests:
    """Test input that can never produce a team."""

    def test_no_leaders(self):
        """Test a pool without Leaders is infeasible."""
        people = [p for p in _scenario_a() if not p.is_leader]
        report = form_teams(people, 3, settings=_settings())
        assert report.status == "infeasible"
        assert "Leader" in report.reason
        assert len(report.unassigned) == len(people)

    def test_too_few_participants(self):
        """Test fewer participants than one team is infeasible."""
        report = form_teams(_scenario_a()[:3], 4, settings=_settings())
        assert report.status == "infeasible"
        assert "need at least 4" in report.reason


class TestPartialFormation:
    """Test slots that fail without affecting the others."""

    def test_failed_slot_leaves_members_unassigned(self):
        """Test a slot short of Thinkers fails and its members stay unassigned."""
        people = [
            _p("L1", "Leader", "Chess", "Strategist"),
            _p("L2", "Leader", "FIFA", "Strategist"),
            _p("T1", "Thinker", "CS:GO", "Defender"),
            _p("B1", "Balanced", "DOTA 2", "Attacker"),
            _p("B2", "Balanced", "Valorant", "Supporter"),
            _p("B3", "Balanced", "Basketball", "Coordinator"),
            _p("B4", "Balanced", "Go", "Attacker"),
            _p("B5", "Balanced", "Tennis", "Supporter"),
        ]
        report = form_teams(people, 4, settings=_settings())

        assert report.status == "formed"
        assert report.requested_teams == 2
        assert report.failed_slots == 1
        assert len(report.teams) == 1
        assert report.teams[0].team_number == 1
        assert len(report.unassigned) == 4
        assert "could not be placed" in report.reason
        assert check_formation(report.teams, report.unassigned, people, 4) == []

    def test_crashing_worker_leaves_siblings_intact(self, monkeypatch):
        """Test one worker raising mid-team does not stop the other teams."""
        original = _FormationRun._assemble

        def crash_second_slot(self, team_number, selected):
            if team_number == 2:
                self._claim(selected, self._pick_leader)
                raise RuntimeError("worker crashed")
            return original(self, team_number, selected)

        monkeypatch.setattr(_FormationRun, "_assemble", crash_second_slot)
        people = _scenario_a()
        report = form_teams(people, 4, settings=_settings())

        assert report.status == "formed"
        assert report.failed_slots == 1
        assert [t.team_number for t in report.teams] == [1, 2]
        assert len(report.unassigned) == 4
        # the crashed slot's Leader went back to the pool
        assert sum(1 for p in report.unassigned if p.is_leader) == 1
        assert check_formation(report.teams, report.unassigned, people, 4) == []

    def test_every_worker_failing_returns_everyone(self, monkeypatch):
        """Test participants come back when every worker raises."""
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("teammate.engine.allocator.meets_requirements", broken)
        people = _scenario_a()
        report = form_teams(people, 4, settings=_settings())

        assert report.teams == []
        assert report.failed_slots == 3
        assert _ids(report.unassigned) == _ids(people)


class TestRelaxedThinkers:
    """Test the opt-in relaxed Thinker cap."""

    def _people(self):
        return [
            _p("L1", "Leader", "Chess", "Strategist"),
            _p("T1", "Thinker", "FIFA", "Defender"),
            _p("T2", "Thinker", "CS:GO", "Attacker"),
            _p("T3", "Thinker", "DOTA 2", "Supporter"),
            _p("B1", "Balanced", "Valorant", "Coordinator"),
        ]

    def test_strict_mode_refuses_third_thinker(self):
        """Test strict mode never places a third Thinker."""
        report = form_teams(self._people(), 5, settings=_settings())
        assert report.status == "infeasible"
        assert report.teams == []

    def test_relaxed_mode_labels_team(self):
        """Test relaxed mode accepts three Thinkers and labels the team."""
        report = form_teams(self._people(), 5, settings=_settings(allow_relaxed_thinkers=True))
        assert report.status == "formed"
        assert len(report.teams) == 1
        team = report.teams[0]
        assert team.rule_mode == "relaxed"
        assert team.thinker_count == 3
        assert "(relaxed)" in team.summary()


class TestSelectionStrategy:
    """Test seat selection strategies and seeding."""

    def test_skill_balanced_picks_closest_to_mean(self):
        """Test skill_balanced picks the candidate nearest the pool mean."""
        people = [
            _p("L1", "Leader", "Chess", "Strategist", skill=5),
            _p("T1", "Thinker", "FIFA", "Defender", skill=5),
            _p("B1", "Balanced", "CS:GO", "Attacker", skill=1),
            _p("B5", "Balanced", "DOTA 2", "Attacker", skill=5),
            _p("B9", "Balanced", "Valorant", "Attacker", skill=9),
        ]
        report = form_teams(people, 3, settings=_settings(selection_strategy="skill_balanced"))

        assert len(report.teams) == 1
        assert set(report.teams[0].member_ids) == {"L1", "T1", "B5"}
        assert _ids(report.unassigned) == {"B1", "B9"}

    def test_single_worker_with_seed_is_repeatable(self):
        """Test one worker and a fixed seed give identical teams."""
        people = _scenario_a()
        settings = _settings(max_workers=1, seed=7)
        first = form_teams(people, 4, settings=settings)
        second = form_teams(people, 4, settings=settings)
        assert [t.member_ids for t in first.teams] == [t.member_ids for t in second.teams]


class TestFormationInvariants:
    """Test formation invariants over generated input."""

    @pytest.mark.parametrize("strategy", ["random", "skill_balanced"])
    @pytest.mark.parametrize("seed", range(8))
    def test_random_inputs_never_break_rules(self, seed, strategy):
        """Test random pools always pass the whole-formation audit."""
        rng = random.Random(seed)
        people = _random_participants(rng, rng.randint(10, 40))
        team_size = rng.randint(3, 6)
        settings = _settings(seed=seed, selection_strategy=strategy)

        report = TeamAllocator(settings).form(FormationRequest(participants=people, team_size=team_size))

        assert report.status in ("formed", "infeasible")
        assert check_formation(report.teams, report.unassigned, people, team_size) == []
        assert len(report.teams) <= report.requested_teams or report.requested_teams == 0

    def test_allocator_is_reentrant(self):
        """Test repeated calls share no state."""
        allocator = TeamAllocator(_settings())
        people = _scenario_a()
        first = allocator.form(FormationRequest(participants=people, team_size=4))
        second = allocator.form(FormationRequest(participants=people, team_size=4))
        assert len(first.teams) == len(second.teams) == 3
        assert first.teams[0] is not second.teams[0]
