"""
Spelling word banks, generated questions and quiz records
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from lib.auth import get_admin_user, get_portal_user, require_tutee_access
from lib.logger import get_logger
from dependencies import get_quiz_record_manager, get_spelling_manager

from explorer_portal.spelling import SpellingBankManager, SpellingQuestion
from explorer_portal.spelling_quiz import FALLBACK_QUESTIONS, QuizRecordManager

logger = get_logger("backend.routers.spelling")

router = APIRouter(prefix="/api/spelling", tags=["spelling"])


class WordRequest(BaseModel):
    word: str
    hint: Optional[str] = None
    student_name: Optional[str] = None


class WordUpdateRequest(BaseModel):
    word: Optional[str] = None
    hint: Optional[str] = None


class GenerateRequest(BaseModel):
    student_name: Optional[str] = None
    count: int = Field(default=10, ge=1, le=50)


class QuestionIn(BaseModel):
    sentence: str
    answer: str
    hint: str


class SaveQuestionsRequest(BaseModel):
    questions: List[QuestionIn]
    student_name: Optional[str] = None


class ConfirmRequest(BaseModel):
    question_ids: List[str]


class QuestionUpdateRequest(BaseModel):
    sentence: Optional[str] = None
    answer: Optional[str] = None
    hint: Optional[str] = None


class AttemptRequest(BaseModel):
    word_id: str
    is_correct: bool
    student_name: Optional[str] = None


class QuizRecordRequest(BaseModel):
    score: int = Field(..., ge=0)
    total_questions: int = Field(..., gt=0)
    percentage: Optional[int] = Field(default=None, ge=0, le=100)
    student_name: Optional[str] = None
    time_spent: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    questions_attempted: Optional[List[Dict[str, Any]]] = None


# ==================== Word bank ====================

@router.get("/{tutee_id}/words")
async def list_words(
    tutee_id: str,
    student_name: Optional[str] = None,
    user: dict = Depends(get_portal_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    require_tutee_access(user, tutee_id)
    return {"words": [asdict(w) for w in manager.list_words(tutee_id, student_name)]}


@router.post("/{tutee_id}/words", status_code=201)
async def create_word(
    tutee_id: str,
    body: WordRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    return asdict(manager.create_word(body.word, body.hint, tutee_id, body.student_name))


@router.put("/words/{word_id}")
async def update_word(
    word_id: str,
    body: WordUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    word = manager.update_word(word_id, body.word, body.hint)
    if word is None:
        raise HTTPException(status_code=404, detail="Word not found")
    return asdict(word)


@router.delete("/words/{word_id}")
async def delete_word(
    word_id: str,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    manager.delete_word(word_id)
    return {"status": "deleted", "word_id": word_id}


# ==================== Statistics ====================

@router.post("/{tutee_id}/attempts", status_code=201)
async def record_attempt(
    tutee_id: str,
    body: AttemptRequest,
    user: dict = Depends(get_portal_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    require_tutee_access(user, tutee_id)
    manager.record_word_attempt(body.word_id, tutee_id, body.is_correct, body.student_name)
    return {"status": "recorded"}


@router.get("/{tutee_id}/statistics")
async def word_statistics(
    tutee_id: str,
    student_name: Optional[str] = None,
    user: dict = Depends(get_portal_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    require_tutee_access(user, tutee_id)
    return {"statistics": [asdict(s) for s in manager.word_statistics(tutee_id, student_name)]}


# ==================== Questions ====================

@router.post("/{tutee_id}/questions/generate")
async def generate_questions(
    tutee_id: str,
    body: GenerateRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    """Preview AI questions for the word bank; nothing is stored yet."""
    words = manager.list_words(tutee_id, body.student_name)
    if not words:
        raise HTTPException(status_code=400, detail="Add words to the word bank first")

    questions = await manager.generate_questions([w.word for w in words], body.count)
    return {"questions": [asdict(q) for q in questions]}


@router.post("/{tutee_id}/hints/generate")
async def generate_hints(
    tutee_id: str,
    body: GenerateRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    words = manager.list_words(tutee_id, body.student_name)
    if not words:
        raise HTTPException(status_code=400, detail="Add words to the word bank first")
    return {"hints": await manager.generate_hints([w.word for w in words])}


@router.post("/{tutee_id}/questions", status_code=201)
async def save_questions(
    tutee_id: str,
    body: SaveQuestionsRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    """Store reviewed questions as drafts."""
    words = manager.list_words(tutee_id, body.student_name)
    questions = [SpellingQuestion(q.sentence, q.answer, q.hint) for q in body.questions]
    records = manager.save_generated_questions(questions, words, tutee_id, body.student_name)
    return {"questions": [asdict(r) for r in records]}


@router.post("/questions/confirm")
async def confirm_questions(
    body: ConfirmRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    records = manager.confirm_questions(body.question_ids)
    return {"questions": [asdict(r) for r in records]}


@router.get("/{tutee_id}/questions/active")
async def active_questions(
    tutee_id: str,
    student_name: Optional[str] = None,
    user: dict = Depends(get_portal_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    """Questions for the quiz; falls back to the built-in set when none are active."""
    require_tutee_access(user, tutee_id)
    records = manager.list_active_questions(tutee_id, student_name)
    if records:
        return {"source": "active", "questions": [asdict(r) for r in records]}
    return {"source": "fallback", "questions": [asdict(q) for q in FALLBACK_QUESTIONS]}


@router.put("/questions/{question_id}")
async def update_question(
    question_id: str,
    body: QuestionUpdateRequest,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    record = manager.update_question(question_id, body.sentence, body.answer, body.hint)
    if record is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return asdict(record)


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: str,
    admin: dict = Depends(get_admin_user),
    manager: SpellingBankManager = Depends(get_spelling_manager),
):
    manager.delete_question(question_id)
    return {"status": "deleted", "question_id": question_id}


# ==================== Quiz records ====================

@router.post("/{tutee_id}/quiz-records", status_code=201)
async def save_quiz_record(
    tutee_id: str,
    body: QuizRecordRequest,
    user: dict = Depends(get_portal_user),
    records: QuizRecordManager = Depends(get_quiz_record_manager),
):
    require_tutee_access(user, tutee_id)
    record = records.save_record(tutee_id=tutee_id, **body.model_dump())
    return asdict(record)


@router.get("/{tutee_id}/quiz-records")
async def quiz_records(
    tutee_id: str,
    student_name: Optional[str] = None,
    limit: Optional[int] = None,
    user: dict = Depends(get_portal_user),
    records: QuizRecordManager = Depends(get_quiz_record_manager),
):
    require_tutee_access(user, tutee_id)
    return {
        "records": [asdict(r) for r in records.list_records(tutee_id, student_name, limit)],
        "best_score": records.best_score(tutee_id, student_name),
        "total_attempts": records.total_attempts(tutee_id, student_name),
    }


@router.get("/{tutee_id}/quiz-records/trend")
async def quiz_trend(
    tutee_id: str,
    student_name: Optional[str] = None,
    days: int = 30,
    user: dict = Depends(get_portal_user),
    records: QuizRecordManager = Depends(get_quiz_record_manager),
):
    require_tutee_access(user, tutee_id)
    return {"trend": records.average_score_trend(tutee_id, student_name, days)}
