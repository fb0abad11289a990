"""
Unit Tests for the Spelling Quiz

Tests the per-play session state machine and stored quiz records.
"""

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "explorer_portal", "src"))
sys.path.insert(0, os.path.join(project_root, "tests"))

from explorer_portal.spelling import BLANK, SpellingQuestion
from explorer_portal.spelling_quiz import (
    FALLBACK_QUESTIONS,
    QuizRecordManager,
    SpellingQuizSession,
)
from fakes import FakeSupabase


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


QUESTIONS = [
    SpellingQuestion("Towels can __________ water.", "absorb", "Soak up"),
    SpellingQuestion("A snake is a __________.", "Reptile", "Group of animals"),
]


class TestSpellingQuizSession:
    """Test suite for SpellingQuizSession."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def quiz(self, clock):
        return SpellingQuizSession(QUESTIONS, clock=clock)

    def test_correct_answer_scores(self, quiz):
        """Test answers are trimmed and case-insensitive."""
        feedback = quiz.check_answer("  ABSORB ")

        assert feedback.correct is True
        assert feedback.message == "Correct! Well done!"
        assert quiz.score == 1

    def test_tries_count_down_then_reveal(self, quiz):
        """Test two wrong tries leave hints, the third reveals the answer."""
        first = quiz.check_answer("absob")
        second = quiz.check_answer("absorbe")
        third = quiz.check_answer("abzorb")

        assert first.tries_left == 2
        assert first.message == "Not quite right. You have 2 tries left!"
        assert second.message == "Not quite right. You have 1 try left!"
        assert third.revealed is True
        assert third.message == "The correct answer is: absorb"
        assert quiz.score == 0

    def test_cannot_answer_twice(self, quiz):
        quiz.check_answer("absorb")
        with pytest.raises(ValueError):
            quiz.check_answer("absorb")

    def test_next_requires_answer(self, quiz):
        with pytest.raises(ValueError):
            quiz.next_question()

    def test_full_play_through(self, quiz, clock):
        """Test score, percentage, elapsed time and attempt log."""
        quiz.check_answer("absorb")
        assert quiz.next_question() is True

        assert quiz.use_hint() == "Group of animals"
        for guess in ("lizard", "snake", "amphibian"):
            quiz.check_answer(guess)
        clock.now = 42.0
        assert quiz.next_question() is False

        assert quiz.completed is True
        assert quiz.percentage == 50
        assert quiz.elapsed_seconds == 42
        assert quiz.attempt_log[1] == {
            "sentence": "A snake is a __________.",
            "answer": "Reptile",
            "correct": False,
            "tries": 3,
            "hint_used": True,
        }
        with pytest.raises(ValueError):
            quiz.check_answer("absorb")

    def test_empty_quiz_rejected(self):
        with pytest.raises(ValueError):
            SpellingQuizSession([])

    def test_fallback_questions_are_well_formed(self):
        """Test every fallback question has one blank and a unique answer."""
        answers = [q.answer for q in FALLBACK_QUESTIONS]
        assert len(FALLBACK_QUESTIONS) == 15
        assert len(set(answers)) == len(answers)
        assert all(BLANK in q.sentence for q in FALLBACK_QUESTIONS)


class TestQuizRecordManager:
    """Test suite for QuizRecordManager."""

    @pytest.fixture
    def db(self):
        return FakeSupabase()

    @pytest.fixture
    def manager(self, db):
        return QuizRecordManager(db)

    def test_save_record_computes_percentage(self, manager):
        record = manager.save_record("sec3", score=7, total_questions=10, student_name="alice")
        assert record.percentage == 70
        assert record.student_name == "alice"

    def test_save_record_validates_score(self, manager):
        with pytest.raises(ValueError):
            manager.save_record("sec3", score=11, total_questions=10)

    def test_save_session(self, manager):
        """Test a finished session is stored with its log."""
        quiz = SpellingQuizSession(QUESTIONS[:1], clock=FakeClock())
        quiz.check_answer("absorb")
        quiz.next_question()

        record = manager.save_session("sec3", quiz)

        assert record.score == 1
        assert record.percentage == 100
        assert record.questions_attempted[0]["correct"] is True

    def test_save_unfinished_session(self, manager):
        quiz = SpellingQuizSession(QUESTIONS, clock=FakeClock())
        with pytest.raises(ValueError):
            manager.save_session("sec3", quiz)

    def test_best_score_and_total_attempts(self, manager):
        for score in (3, 9, 6):
            manager.save_record("sec3", score=score, total_questions=10)
        manager.save_record("p5", score=10, total_questions=10)

        assert manager.best_score("sec3") == 90
        assert manager.total_attempts("sec3") == 3
        assert manager.best_score("nobody") is None

    def test_list_records_newest_first(self, manager):
        for score in (1, 2, 3):
            manager.save_record("sec3", score=score, total_questions=3)

        records = manager.list_records("sec3", limit=2)

        assert [r.score for r in records] == [3, 2]

    def test_average_score_trend(self, db, manager):
        """Test daily averages over the window, oldest first."""
        now = datetime.now(timezone.utc)
        yesterday = (now - timedelta(days=1)).isoformat()
        for pct, created in ((60, yesterday), (80, yesterday), (100, now.isoformat()),
                             (10, (now - timedelta(days=45)).isoformat())):
            db.add("spelling_quiz_records", {"tutee_id": "sec3", "percentage": pct, "created_at": created})

        trend = manager.average_score_trend("sec3", days=30)

        assert [t["avg_percentage"] for t in trend] == [70, 100]
        assert trend[0]["quiz_count"] == 2
        assert trend[0]["date"] == yesterday[:10]
