"""
Spelling quiz bookkeeping: the per-play session state machine and the
stored quiz results (`spelling_quiz_records`).
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from explorer_portal.spelling import SpellingQuestion

logger = logging.getLogger(__name__)

MAX_TRIES = 3

# Used when a tutee has no active questions yet
FALLBACK_QUESTIONS: List[SpellingQuestion] = [
    SpellingQuestion("Towels can __________ water after a shower.", "absorb", "Soak up"),
    SpellingQuestion("A snake is a cold-blooded __________.", "reptile", "Group of animals"),
    SpellingQuestion("The soil in the garden feels __________ after the rain.", "moist", "A little wet"),
    SpellingQuestion("__________ grow on dead trees and help break them down.", "fungi", "Plural of fungus"),
    SpellingQuestion("Bakers use __________ to make bread fluffy and soft.", "yeast", "Starts with Y"),
    SpellingQuestion("Some dust particles can be seen with the __________.", "microscope", "Tool for seeing small things"),
    SpellingQuestion("Old bread may grow __________ if left for too long.", "mould", "Fuzzy growth"),
    SpellingQuestion("Desert plants can __________ with little water.", "survive", "Stay alive"),
    SpellingQuestion("The __________ help us breathe in oxygen and breathe out carbon dioxide.", "lungs", "Body organs for breathing"),
    SpellingQuestion("Water is a __________ because it flows and takes the shape of its container.", "liquid", "State of matter that flows"),
    SpellingQuestion("We use a __________ to measure how hot or cold something is.", "thermometer", "Temperature measuring tool"),
    SpellingQuestion("Magnets can __________ certain metals.", "attract", "Pull towards"),
    SpellingQuestion("Glass is __________ so we can see through it.", "transparent", "See-through"),
    SpellingQuestion("A brick wall is __________ because light cannot pass through it.", "opaque", "Not see-through"),
    SpellingQuestion("Mirrors __________ light to show our reflection.", "reflect", "Bounce back"),
]


@dataclass
class AnswerFeedback:
    correct: bool
    revealed: bool
    tries_left: int
    message: str


class SpellingQuizSession:
    """
    One play-through of a question list.

    Each question allows `max_tries` attempts; the last wrong attempt reveals
    the answer and the player moves on with no point scored.
    """

    def __init__(
        self,
        questions: List[SpellingQuestion],
        max_tries: int = MAX_TRIES,
        clock: Callable[[], float] = time.monotonic
    ):
        if not questions:
            raise ValueError("A quiz needs at least one question")
        self.questions = list(questions)
        self.max_tries = max_tries
        self.clock = clock
        self.current_index = 0
        self.score = 0
        self.tries = 0
        self.hint_shown = False
        self.answered = False
        self.completed = False
        self.attempt_log: List[Dict[str, Any]] = []
        self.started_at = datetime.now(timezone.utc)
        self._start = clock()
        self._end: Optional[float] = None

    @property
    def current_question(self) -> SpellingQuestion:
        return self.questions[self.current_index]

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def percentage(self) -> int:
        return round(self.score / self.total_questions * 100)

    @property
    def elapsed_seconds(self) -> int:
        end = self._end if self._end is not None else self.clock()
        return int(end - self._start)

    def use_hint(self) -> str:
        self.hint_shown = True
        return self.current_question.hint

    def check_answer(self, text: str) -> AnswerFeedback:
        if self.completed:
            raise ValueError("Quiz already completed")
        if self.answered:
            raise ValueError("Question already answered; move to the next one")

        question = self.current_question
        guess = (text or "").strip().lower()
        correct = guess == question.answer.strip().lower()
        self.tries += 1

        if correct:
            self.score += 1
            self.answered = True
            feedback = AnswerFeedback(True, False, self.max_tries - self.tries, "Correct! Well done!")
        elif self.tries >= self.max_tries:
            self.answered = True
            feedback = AnswerFeedback(False, True, 0, f"The correct answer is: {question.answer}")
        else:
            left = self.max_tries - self.tries
            feedback = AnswerFeedback(
                False, False, left,
                f"Not quite right. You have {left} {'try' if left == 1 else 'tries'} left!",
            )

        if self.answered:
            self.attempt_log.append({
                "sentence": question.sentence,
                "answer": question.answer,
                "correct": correct,
                "tries": self.tries,
                "hint_used": self.hint_shown,
            })
        return feedback

    def next_question(self) -> bool:
        """
        Advance to the next question.

        Returns:
            False once the quiz is complete
        """
        if not self.answered:
            raise ValueError("Answer the current question first")

        if self.current_index < self.total_questions - 1:
            self.current_index += 1
            self.tries = 0
            self.hint_shown = False
            self.answered = False
            return True

        self.completed = True
        self._end = self.clock()
        return False


@dataclass
class QuizRecord:
    id: str
    tutee_id: str
    score: int
    total_questions: int
    percentage: int
    student_name: Optional[str] = None
    time_spent: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    questions_attempted: List[Dict[str, Any]] = field(default_factory=list)
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "QuizRecord":
        return cls(
            id=row["id"],
            tutee_id=row["tutee_id"],
            student_name=row.get("student_name"),
            score=int(row.get("score") or 0),
            total_questions=int(row.get("total_questions") or 0),
            percentage=int(row.get("percentage") or 0),
            time_spent=row.get("time_spent"),
            start_time=row.get("start_time"),
            end_time=row.get("end_time"),
            questions_attempted=row.get("questions_attempted") or [],
            created_at=row.get("created_at"),
        )


class QuizRecordManager:
    def __init__(self, supabase_client):
        self.supabase = supabase_client

    def save_record(
        self,
        tutee_id: str,
        score: int,
        total_questions: int,
        percentage: Optional[int] = None,
        student_name: Optional[str] = None,
        time_spent: Optional[int] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        questions_attempted: Optional[List[Dict[str, Any]]] = None
    ) -> QuizRecord:
        if total_questions <= 0 or score < 0 or score > total_questions:
            raise ValueError("Score must be between 0 and the number of questions")
        if percentage is None:
            percentage = round(score / total_questions * 100)

        row = {
            "tutee_id": tutee_id,
            "student_name": student_name,
            "score": score,
            "total_questions": total_questions,
            "percentage": percentage,
            "time_spent": time_spent,
            "start_time": start_time,
            "end_time": end_time,
            "questions_attempted": questions_attempted or [],
        }
        try:
            result = self.supabase.table('spelling_quiz_records').insert(row).execute()
            logger.info(f"🏆 [QuizRecordManager] Saved quiz record for {tutee_id}: {score}/{total_questions}")
            return QuizRecord.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [QuizRecordManager] Error saving quiz record: {e}")
            raise

    def save_session(self, tutee_id: str, session: SpellingQuizSession, student_name: Optional[str] = None) -> QuizRecord:
        """Persist a finished SpellingQuizSession."""
        if not session.completed:
            raise ValueError("Quiz is not finished yet")
        return self.save_record(
            tutee_id=tutee_id,
            student_name=student_name,
            score=session.score,
            total_questions=session.total_questions,
            percentage=session.percentage,
            time_spent=session.elapsed_seconds,
            start_time=session.started_at.isoformat(),
            end_time=(session.started_at + timedelta(seconds=session.elapsed_seconds)).isoformat(),
            questions_attempted=session.attempt_log,
        )

    def list_records(self, tutee_id: str, student_name: Optional[str] = None, limit: Optional[int] = None) -> List[QuizRecord]:
        try:
            query = self.supabase.table('spelling_quiz_records') \
                .select('*') \
                .eq('tutee_id', tutee_id)
            if student_name:
                query = query.eq('student_name', student_name)
            query = query.order('created_at', desc=True)
            if limit:
                query = query.limit(limit)
            return [QuizRecord.from_row(row) for row in query.execute().data or []]
        except Exception as e:
            logger.error(f"❌ [QuizRecordManager] Error fetching quiz records: {e}")
            raise

    def best_score(self, tutee_id: str, student_name: Optional[str] = None) -> Optional[int]:
        try:
            query = self.supabase.table('spelling_quiz_records') \
                .select('percentage') \
                .eq('tutee_id', tutee_id)
            if student_name:
                query = query.eq('student_name', student_name)
            data = query.order('percentage', desc=True).limit(1).execute().data
            return data[0]["percentage"] if data else None
        except Exception as e:
            logger.error(f"❌ [QuizRecordManager] Error fetching best score: {e}")
            raise

    def total_attempts(self, tutee_id: str, student_name: Optional[str] = None) -> int:
        try:
            query = self.supabase.table('spelling_quiz_records') \
                .select('id', count='exact') \
                .eq('tutee_id', tutee_id)
            if student_name:
                query = query.eq('student_name', student_name)
            result = query.execute()
            return result.count if result.count is not None else len(result.data or [])
        except Exception as e:
            logger.error(f"❌ [QuizRecordManager] Error fetching total attempts: {e}")
            raise

    def average_score_trend(
        self,
        tutee_id: str,
        student_name: Optional[str] = None,
        days: int = 30
    ) -> List[Dict[str, Any]]:
        """Average percentage per day over the last `days` days, oldest first."""
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
        try:
            query = self.supabase.table('spelling_quiz_records') \
                .select('percentage, created_at') \
                .eq('tutee_id', tutee_id) \
                .gte('created_at', since)
            if student_name:
                query = query.eq('student_name', student_name)
            rows = query.order('created_at', desc=False).execute().data or []
        except Exception as e:
            logger.error(f"❌ [QuizRecordManager] Error fetching score trend: {e}")
            raise

        grouped: Dict[str, List[int]] = OrderedDict()
        for row in rows:
            day = str(row["created_at"])[:10]
            grouped.setdefault(day, []).append(int(row["percentage"]))

        return [
            {"date": day, "avg_percentage": round(sum(values) / len(values)), "quiz_count": len(values)}
            for day, values in grouped.items()
        ]
