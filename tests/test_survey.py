"""Tests for teammate/survey.py."""

import threading
import time

from pydantic import ValidationError
import pytest

from teammate import survey
from teammate.participant_repository import ParticipantRepository
from teammate.survey import (
    SURVEY_QUESTIONS,
    SurveyAnswers,
    create_participant,
    register_survey_response,
)


def _answers(**overrides) -> SurveyAnswers:
    data = {
        "name": "Grace Hopper",
        "email": "grace@example.com",
        "ratings": [4, 4, 4, 3, 3],
        "preferred_game": "Chess",
        "preferred_role": "Coordinator",
        "skill_level": 8,
    }
    data.update(overrides)
    return SurveyAnswers(**data)


class TestSurveyAnswers:
    """Test survey answer validation."""

    def test_five_questions(self):
        """Test the survey asks exactly five questions."""
        assert len(SURVEY_QUESTIONS) == 5

    def test_name_is_stripped(self):
        """Test surrounding whitespace is removed from the name."""
        assert _answers(name="  Grace Hopper ").name == "Grace Hopper"

    @pytest.mark.parametrize("name", ["", "   ", "R2D2", "Grace_Hopper"])
    def test_invalid_name(self, name):
        """Test names must be non-empty letters and spaces."""
        with pytest.raises(ValidationError):
            _answers(name=name)

    @pytest.mark.parametrize("email", ["grace", "grace@example", "grace.example.com"])
    def test_invalid_email(self, email):
        """Test emails need both @ and a dot."""
        with pytest.raises(ValidationError):
            _answers(email=email)

    @pytest.mark.parametrize("ratings", [[4, 4, 4, 4], [4, 4, 4, 4, 4, 4], [0, 4, 4, 4, 4], [6, 4, 4, 4, 4]])
    def test_invalid_ratings(self, ratings):
        """Test exactly five ratings, each between 1 and 5."""
        with pytest.raises(ValidationError):
            _answers(ratings=ratings)

    def test_unknown_game(self):
        """Test games outside the choice list are rejected."""
        with pytest.raises(ValidationError):
            _answers(preferred_game="Minecraft")

    def test_skill_out_of_range(self):
        """Test skill above 10 is rejected."""
        with pytest.raises(ValidationError):
            _answers(skill_level=11)


class TestCreateParticipant:
    """Test turning answers into a participant."""

    @pytest.mark.parametrize(
        "ratings, score, category",
        [
            ([5, 5, 5, 4, 4], 92, "Leader"),
            ([5, 5, 4, 4, 4], 88, "Balanced"),
            ([4, 4, 4, 3, 3], 72, "Balanced"),
            ([4, 4, 3, 3, 3], 68, "Thinker"),
        ],
    )
    def test_score_and_category(self, ratings, score, category):
        """Test score is the raw total times four, classified at the boundaries."""
        participant = create_participant(_answers(ratings=ratings), "P007")
        assert participant.id == "P007"
        assert participant.personality_score == score
        assert participant.personality_type == category

    def test_preferences_carried_over(self):
        """Test contact details and preferences are copied unchanged."""
        participant = create_participant(_answers(), "P001")
        assert participant.name == "Grace Hopper"
        assert participant.email == "grace@example.com"
        assert participant.preferred_game == "Chess"
        assert participant.preferred_role == "Coordinator"
        assert participant.skill_level == 8


class TestRegisterSurveyResponse:
    """Test persisting survey responses."""

    def test_assigns_sequential_ids(self, tmp_path):
        """Test consecutive registrations receive P001 then P002."""
        repo = ParticipantRepository(str(tmp_path / "participants.csv"))

        first = register_survey_response(_answers(), repo)
        second = register_survey_response(_answers(name="Alan Turing", email="alan@example.com"), repo)

        assert first.id == "P001"
        assert second.id == "P002"
        assert [p.id for p in repo.load_participants()] == ["P001", "P002"]

    def test_concurrent_registrations_get_distinct_ids(self, tmp_path, monkeypatch):
        """Test two simultaneous submissions never share an id."""
        repo = ParticipantRepository(str(tmp_path / "participants.csv"))
        original = survey.create_participant

        def slow_create(answers, participant_id):
            # widen the gap between id allocation and the write
            time.sleep(0.05)
            return original(answers, participant_id)

        monkeypatch.setattr(survey, "create_participant", slow_create)

        results: list[str] = []
        errors: list[str] = []
        start = threading.Barrier(2)

        def submit(name: str) -> None:
            start.wait()
            try:
                participant = register_survey_response(_answers(name=name), repo)
                results.append(participant.id)
            except ValueError as e:
                errors.append(str(e))

        threads = [
            threading.Thread(target=submit, args=(name,))
            for name in ("Grace Hopper", "Alan Turing")
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(results) == ["P001", "P002"]
        assert sorted(p.id for p in repo.load_participants()) == ["P001", "P002"]
