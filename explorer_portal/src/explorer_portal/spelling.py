"""
Spelling Bank Manager

Word banks per tutee/student, AI-generated fill-in-the-blank questions, and
per-word attempt statistics.

Question lifecycle:
    draft --confirm--> active
    Saving a new generation or confirming a set demotes the previous active
    questions for that tutee/student back to draft.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from explorer_portal.chat_completion import ChatCompletionClient, parse_json_payload

logger = logging.getLogger(__name__)

BLANK = "_" * 10

QUESTION_SYSTEM_PROMPT = f"""You are a helpful assistant that creates Singapore primary school science spelling quiz questions.
You must return your response as a valid JSON array only, with no additional text before or after.

Each question should be a fill-in-the-blank sentence where the blank is represented by "{BLANK}".
The sentences should be appropriate for Singapore primary school students and involve science concepts.
The sentences should be clear, age-appropriate, and educational."""

HINT_SYSTEM_PROMPT = """You are a helpful assistant that creates Singapore primary school science spelling quiz hints.
You must return your response as a valid JSON object only, where keys are the words and values are the hints.
The hints should be brief, educational, and appropriate for primary school students.
Do not include the word itself in the hint."""


class QuestionStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    ACTIVE = "active"


@dataclass
class SpellingWord:
    id: str
    word: str
    hint: Optional[str] = None
    tutee_id: Optional[str] = None
    student_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SpellingWord":
        return cls(
            id=row["id"],
            word=row["word"],
            hint=row.get("hint") or None,
            tutee_id=row.get("tutee_id"),
            student_name=row.get("student_name"),
        )


@dataclass
class SpellingQuestion:
    """A generated question before it is stored."""
    sentence: str
    answer: str
    hint: str


@dataclass
class SpellingQuestionRecord:
    id: str
    word_id: Optional[str]
    tutee_id: Optional[str]
    student_name: Optional[str]
    sentence: str
    answer: str
    hint: str
    status: QuestionStatus

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SpellingQuestionRecord":
        return cls(
            id=row["id"],
            word_id=row.get("word_id"),
            tutee_id=row.get("tutee_id"),
            student_name=row.get("student_name"),
            sentence=row.get("sentence") or "",
            answer=row.get("answer") or "",
            hint=row.get("hint") or "",
            status=QuestionStatus(row.get("status") or "draft"),
        )


@dataclass
class WordStatistics:
    word_id: str
    word: str
    total_attempts: int
    correct_count: int
    incorrect_count: int
    accuracy: int
    last_attempted: Optional[str] = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def filter_generated_questions(raw: Iterable[Any], count: int) -> List[SpellingQuestion]:
    """
    Keep well-formed questions, one per answer word (first wins,
    case-insensitive), up to `count`.
    """
    questions: List[SpellingQuestion] = []
    seen_answers = set()

    for item in raw:
        if not isinstance(item, dict):
            continue
        sentence = str(item.get("sentence") or "").strip()
        answer = str(item.get("answer") or "").strip()
        hint = str(item.get("hint") or "").strip()
        if not (sentence and answer and hint):
            continue

        key = answer.lower()
        if key in seen_answers:
            continue
        seen_answers.add(key)

        questions.append(SpellingQuestion(sentence=sentence, answer=answer, hint=hint))
        if len(questions) >= count:
            break

    return questions


class SpellingBankManager:
    """
    Args:
        supabase_client: Supabase client
        chat_client: ChatCompletionClient used for question and hint generation
    """

    def __init__(self, supabase_client, chat_client: Optional[ChatCompletionClient] = None):
        self.supabase = supabase_client
        self.chat_client = chat_client or ChatCompletionClient()

    # ==================== Words ====================

    def list_words(self, tutee_id: Optional[str] = None, student_name: Optional[str] = None) -> List[SpellingWord]:
        try:
            query = self.supabase.table('spelling_words').select('*')
            if tutee_id:
                query = query.eq('tutee_id', tutee_id)
            if student_name:
                query = query.eq('student_name', student_name)
            result = query.order('word', desc=False).execute()
            return [SpellingWord.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error fetching spelling words: {e}")
            raise

    def create_word(
        self,
        word: str,
        hint: Optional[str] = None,
        tutee_id: Optional[str] = None,
        student_name: Optional[str] = None
    ) -> SpellingWord:
        word = (word or "").strip()
        if not word:
            raise ValueError("Word is required")

        row = {
            "word": word,
            "hint": hint.strip() if hint and hint.strip() else None,
            "tutee_id": tutee_id,
            "student_name": student_name,
        }
        try:
            result = self.supabase.table('spelling_words').insert(row).execute()
            return SpellingWord.from_row(result.data[0])
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error creating spelling word: {e}")
            raise

    def update_word(self, word_id: str, word: Optional[str] = None, hint: Optional[str] = None) -> Optional[SpellingWord]:
        update_data: Dict[str, Any] = {"updated_at": _now_iso()}
        if word is not None:
            if not word.strip():
                raise ValueError("Word cannot be empty")
            update_data["word"] = word.strip()
        if hint is not None:
            update_data["hint"] = hint.strip() or None

        try:
            result = self.supabase.table('spelling_words').update(update_data).eq('id', word_id).execute()
            return SpellingWord.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error updating spelling word: {e}")
            raise

    def delete_word(self, word_id: str) -> None:
        try:
            self.supabase.table('spelling_words').delete().eq('id', word_id).execute()
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error deleting spelling word: {e}")
            raise

    # ==================== Statistics ====================

    def record_word_attempt(
        self,
        word_id: str,
        tutee_id: str,
        is_correct: bool,
        student_name: Optional[str] = None
    ) -> None:
        try:
            self.supabase.table('spelling_word_stats').insert({
                "word_id": word_id,
                "tutee_id": tutee_id,
                "student_name": student_name,
                "is_correct": bool(is_correct),
            }).execute()
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error recording word attempt: {e}")
            raise

    def word_statistics(self, tutee_id: str, student_name: Optional[str] = None) -> List[WordStatistics]:
        """Per-word attempt summary for a tutee (optionally one student)."""
        words = self.list_words(tutee_id, student_name)
        stats = []

        for word in words:
            try:
                query = self.supabase.table('spelling_word_stats') \
                    .select('*') \
                    .eq('word_id', word.id) \
                    .eq('tutee_id', tutee_id)
                if student_name:
                    query = query.eq('student_name', student_name)
                attempts = query.execute().data or []
            except Exception as e:
                logger.error(f"❌ [SpellingBankManager] Error fetching word statistics: {e}")
                raise

            total = len(attempts)
            correct = sum(1 for a in attempts if a.get("is_correct"))
            timestamps = [a.get("attempted_at") or a.get("created_at") for a in attempts]
            timestamps = [t for t in timestamps if t]

            stats.append(WordStatistics(
                word_id=word.id,
                word=word.word,
                total_attempts=total,
                correct_count=correct,
                incorrect_count=total - correct,
                accuracy=round(correct / total * 100) if total else 0,
                last_attempted=max(timestamps) if timestamps else None,
            ))

        return stats

    # ==================== Generation ====================

    async def generate_questions(self, words: List[str], count: int = 10) -> List[SpellingQuestion]:
        """
        Ask the model for fill-in-the-blank questions over the given words.

        Raises:
            ValueError: no words, unparseable reply, or nothing usable
        """
        if not words:
            raise ValueError("At least one word is required")

        user_prompt = f"""Generate {count} different fill-in-the-blank spelling questions for a Singapore primary school science quiz.

CRITICAL: You MUST ONLY use words from this specific list: {', '.join(words)}
DO NOT generate questions for any other words. Each question's "answer" MUST be exactly one of the words from the list above.

For each word, create a sentence where the word fits naturally in the blank. Make sure:
1. The sentence is about science concepts appropriate for primary school
2. The blank is represented by "{BLANK}"
3. Each sentence is different and educational
4. The sentences are clear and age-appropriate

Return ONLY a valid JSON array in this exact format:
[
  {{
    "sentence": "Sentence with {BLANK} blank",
    "answer": "word",
    "hint": "Brief helpful hint"
  }}
]"""

        result = await self.chat_client.complete(
            user_prompt,
            system_prompt=QUESTION_SYSTEM_PROMPT,
            temperature=0.8,
        )

        try:
            raw = parse_json_payload(result.response, expect=list)
        except ValueError:
            logger.error(f"❌ [SpellingBankManager] Could not parse questions: {result.response[:200]}")
            raise ValueError("Failed to parse the generated questions. Please try again.")

        questions = filter_generated_questions(raw, count)
        if not questions:
            raise ValueError("No valid questions were generated")

        logger.info(f"✨ [SpellingBankManager] Generated {len(questions)} question(s) for {len(words)} word(s)")
        return questions

    async def generate_hints(self, words: List[str]) -> Dict[str, str]:
        if not words:
            raise ValueError("At least one word is required")

        user_prompt = (
            f"Generate a brief science-related hint for each of these words: {', '.join(words)}.\n"
            "Return ONLY a valid JSON object where the keys are the words and the values are the hints.\n"
            'Example: {"Skeleton": "The framework of bones that supports our body"}'
        )
        result = await self.chat_client.complete(
            user_prompt,
            system_prompt=HINT_SYSTEM_PROMPT,
            temperature=0.5,
        )

        try:
            hints = parse_json_payload(result.response, expect=dict)
        except ValueError:
            raise ValueError("Failed to parse the generated hints.")

        return {str(k): str(v) for k, v in hints.items() if v}

    # ==================== Questions ====================

    def _demote_active(self, tutee_id: Optional[str], student_name: Optional[str]) -> None:
        query = self.supabase.table('spelling_questions') \
            .update({"status": QuestionStatus.DRAFT.value}) \
            .eq('tutee_id', tutee_id) \
            .eq('status', QuestionStatus.ACTIVE.value)
        if student_name:
            query = query.eq('student_name', student_name)
        query.execute()

    def save_generated_questions(
        self,
        questions: List[SpellingQuestion],
        words: List[SpellingWord],
        tutee_id: str,
        student_name: Optional[str] = None
    ) -> List[SpellingQuestionRecord]:
        """Store generated questions as drafts, skipping answers outside the word bank."""
        by_word = {w.word.lower(): w for w in words}
        rows = []
        for question in questions:
            word = by_word.get(question.answer.lower())
            if word is None:
                logger.warning(
                    f"⚠️ [SpellingBankManager] Generated question for unknown word '{question.answer}', skipping"
                )
                continue
            rows.append({
                "word_id": word.id,
                "tutee_id": tutee_id,
                "student_name": student_name,
                "sentence": question.sentence,
                "answer": question.answer,
                "hint": question.hint,
                "status": QuestionStatus.DRAFT.value,
            })

        if not rows:
            raise ValueError("No valid questions matching your word bank were generated. Please try again.")

        try:
            self._demote_active(tutee_id, student_name)
            result = self.supabase.table('spelling_questions').insert(rows).execute()
            return [SpellingQuestionRecord.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error saving generated questions: {e}")
            raise

    def confirm_questions(self, question_ids: List[str]) -> List[SpellingQuestionRecord]:
        """Make the given questions the active set for their tutee/student."""
        if not question_ids:
            raise ValueError("No questions to confirm")

        try:
            selected = self.supabase.table('spelling_questions') \
                .select('*') \
                .in_('id', question_ids) \
                .execute().data or []

            owners = {(row.get("tutee_id"), row.get("student_name")) for row in selected}
            for tutee_id, student_name in owners:
                self._demote_active(tutee_id, student_name)

            result = self.supabase.table('spelling_questions') \
                .update({"status": QuestionStatus.ACTIVE.value, "updated_at": _now_iso()}) \
                .in_('id', question_ids) \
                .execute()
            logger.info(f"✅ [SpellingBankManager] Activated {len(result.data or [])} question(s)")
            return [SpellingQuestionRecord.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error confirming questions: {e}")
            raise

    def list_active_questions(self, tutee_id: str, student_name: Optional[str] = None) -> List[SpellingQuestionRecord]:
        try:
            query = self.supabase.table('spelling_questions') \
                .select('*') \
                .eq('tutee_id', tutee_id) \
                .eq('status', QuestionStatus.ACTIVE.value)
            if student_name:
                query = query.eq('student_name', student_name)
            result = query.order('created_at', desc=False).execute()
            return [SpellingQuestionRecord.from_row(row) for row in result.data or []]
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error fetching active questions: {e}")
            raise

    def update_question(
        self,
        question_id: str,
        sentence: Optional[str] = None,
        answer: Optional[str] = None,
        hint: Optional[str] = None
    ) -> Optional[SpellingQuestionRecord]:
        update_data: Dict[str, Any] = {"updated_at": _now_iso()}
        if sentence is not None:
            update_data["sentence"] = sentence.strip()
        if answer is not None:
            update_data["answer"] = answer.strip()
        if hint is not None:
            update_data["hint"] = hint.strip()

        try:
            result = self.supabase.table('spelling_questions').update(update_data).eq('id', question_id).execute()
            return SpellingQuestionRecord.from_row(result.data[0]) if result.data else None
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error updating spelling question: {e}")
            raise

    def delete_question(self, question_id: str) -> None:
        try:
            self.supabase.table('spelling_questions').delete().eq('id', question_id).execute()
        except Exception as e:
            logger.error(f"❌ [SpellingBankManager] Error deleting spelling question: {e}")
            raise
