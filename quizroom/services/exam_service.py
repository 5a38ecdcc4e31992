from typing import Any, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import EXAM_CODE_MAX_LENGTH
from ..errors import Conflict, Forbidden, InvalidInput, NotFound, QuizroomError
from ..models.exam_model import Exam, ExamStatus
from ..models.question_model import Question
from ..models.exam_session_model import ExamSession
from ..models.submission_model import Submission
from ..schemas.exam_schema import ExamCreate, ExamUpdate
from .exam_ref import ExamRef
from .question_validation import QuestionPayload, validate_questions_payload

logger = logging.getLogger(__name__)

EXAM_STATUSES = [s.value for s in ExamStatus]
DEFAULT_EXAM_STATUS = ExamStatus.DRAFT
INVALID_STATUS_MESSAGE = f"Invalid status. Accepted values: {', '.join(EXAM_STATUSES)}."


def normalize_exam_status(value: Optional[str]) -> Optional[ExamStatus]:
    if not value or not isinstance(value, str):
        return None
    upper = value.strip().upper()
    for s in ExamStatus:
        if s.value == upper:
            return s
    return None


def normalize_duration(value: Any) -> Optional[int]:
    """Positive whole number of minutes, anything else means "no time limit"."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    return None


async def get_exam_questions(session: AsyncSession, exam_id) -> List[Question]:
    stmt = select(Question).where(Question.exam_id == exam_id).order_by(Question.position, Question.created_at)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def load_exam(session: AsyncSession, ref: ExamRef) -> Exam:
    res = await session.execute(select(Exam).where(ref.where()))
    exam = res.scalar_one_or_none()
    if not exam:
        raise NotFound("Exam not found")
    return exam


def _question_to_dict(q: Question) -> dict:
    return {
        'id': q.id,
        'content': q.content,
        'options': list(q.options or []),
        'correct_idx': q.correct_idx,
        'explanation': q.explanation,
        'position': q.position,
    }


def _sanitize_question(q: Question) -> dict:
    # remove correct_idx and explanation to prevent leaking the answer key
    return {
        'id': q.id,
        'content': q.content,
        'options': list(q.options or []),
    }


def _exam_to_read_dict(exam: Exam, questions: List[Question]) -> dict:
    return {
        "id": exam.id,
        "code": exam.code,
        "title": exam.title,
        "status": exam.status.value,
        "duration_minutes": exam.duration_minutes,
        "author_id": exam.author_id,
        "created_at": exam.created_at,
        "updated_at": exam.updated_at,
        "question_count": len(questions),
        "questions": [_question_to_dict(q) for q in questions],
    }


def exam_snapshot(exam: Exam, questions: List[Question]) -> dict:
    return {
        "id": exam.id,
        "code": exam.code,
        "title": exam.title,
        "duration_minutes": exam.duration_minutes,
        "questions": [_sanitize_question(q) for q in questions],
    }


def _check_code(code: str, errors: List[str]):
    if len(code) > EXAM_CODE_MAX_LENGTH:
        errors.append(f"Exam code must be at most {EXAM_CODE_MAX_LENGTH} characters.")


async def _code_taken(session: AsyncSession, code: str) -> bool:
    res = await session.execute(select(Exam.id).where(Exam.code == code))
    return res.first() is not None


def _new_question(exam_id, item: QuestionPayload, position: int) -> Question:
    return Question(
        exam_id=exam_id,
        content=item.content,
        options=item.options,
        correct_idx=item.correct_idx,
        explanation=item.explanation,
        position=position,
    )


def _require_owner(exam: Exam, caller_id: UUID):
    if exam.author_id is None or exam.author_id != caller_id:
        raise Forbidden("You do not have access to this exam")


async def create_exam(session: AsyncSession, payload: ExamCreate, author_id: UUID) -> dict:
    code = payload.code.strip() if isinstance(payload.code, str) else ""
    title = payload.title.strip() if isinstance(payload.title, str) else ""
    status = DEFAULT_EXAM_STATUS if payload.status is None else normalize_exam_status(payload.status)

    errors: List[str] = []
    if not code:
        errors.append("Exam code is required.")
    else:
        _check_code(code, errors)
    if not title:
        errors.append("Exam title is required.")
    if status is None:
        errors.append(INVALID_STATUS_MESSAGE)

    questions, question_errors = validate_questions_payload(payload.questions)
    errors.extend(question_errors)
    if errors:
        raise InvalidInput.from_errors(errors)

    # check-then-insert; the unique index on code catches the race
    if await _code_taken(session, code):
        raise Conflict("Exam code already exists")

    exam = Exam(
        code=code,
        title=title,
        status=status,
        duration_minutes=normalize_duration(payload.duration_minutes),
        author_id=author_id,
    )
    session.add(exam)
    try:
        await session.flush()
        for idx, item in enumerate(questions):
            session.add(_new_question(exam.id, item, idx))
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise Conflict("Exam code already exists")

    await session.refresh(exam)
    logger.info("Exam created id=%s code=%s author_id=%s questions=%d", exam.id, exam.code, author_id, len(questions))
    return _exam_to_read_dict(exam, await get_exam_questions(session, exam.id))


async def list_exams(session: AsyncSession, author_id: UUID, status: Optional[str] = None) -> List[dict]:
    stmt = select(Exam).where(Exam.author_id == author_id)
    if status:
        normalized = normalize_exam_status(status)
        if normalized is None:
            raise InvalidInput(INVALID_STATUS_MESSAGE)
        stmt = stmt.where(Exam.status == normalized)
    stmt = stmt.order_by(Exam.created_at.desc())

    res = await session.execute(stmt)
    out = []
    for exam in res.scalars().all():
        out.append(_exam_to_read_dict(exam, await get_exam_questions(session, exam.id)))
    return out


async def get_exam(session: AsyncSession, ref: ExamRef, caller_id: UUID) -> tuple[bool, dict]:
    """
    Returns (is_owner, exam_dict).
    The owner sees the answer key; everyone else only sees published exams, stripped.
    """
    exam = await load_exam(session, ref)
    questions = await get_exam_questions(session, exam.id)
    if exam.author_id is not None and exam.author_id == caller_id:
        return True, _exam_to_read_dict(exam, questions)
    if exam.status != ExamStatus.PUBLISHED:
        raise Forbidden("Exam is not available")
    return False, exam_snapshot(exam, questions)


async def _sync_questions(session: AsyncSession, exam: Exam, items: List[QuestionPayload]):
    # delete questions missing from the new set, update the rest by id, insert new ones
    existing = {str(q.id): q for q in await get_exam_questions(session, exam.id)}

    def _key(raw_id: str) -> str:
        try:
            return str(UUID(raw_id))
        except ValueError:
            return raw_id

    keep = {_key(item.id) for item in items if item.id}
    for qid, q in existing.items():
        if qid not in keep:
            await session.delete(q)

    for position, item in enumerate(items):
        if item.id:
            q = existing.get(_key(item.id))
            if q is None:
                raise InvalidInput(f"Question {item.id} does not belong to this exam.")
            q.content = item.content
            q.options = item.options
            q.correct_idx = item.correct_idx
            q.explanation = item.explanation
            q.position = position
        else:
            session.add(_new_question(exam.id, item, position))


async def update_exam(session: AsyncSession, ref: ExamRef, caller_id: UUID, payload: ExamUpdate) -> dict:
    # update only fields sent and replace the question set if provided
    exam = await load_exam(session, ref)
    _require_owner(exam, caller_id)
    sent = payload.model_fields_set

    title = payload.title.strip() if payload.title is not None else None
    code = payload.code.strip() if payload.code is not None else None
    status = normalize_exam_status(payload.status) if payload.status is not None else None

    errors: List[str] = []
    if title is not None and not title:
        errors.append("Title cannot be empty.")
    if code is not None:
        if not code:
            errors.append("Code cannot be empty.")
        else:
            _check_code(code, errors)
    if payload.status is not None and status is None:
        errors.append(INVALID_STATUS_MESSAGE)

    sync = "questions" in sent and payload.questions is not None
    questions, question_errors = validate_questions_payload(payload.questions if sync else None)
    errors.extend(question_errors)
    if errors:
        raise InvalidInput.from_errors(errors)

    if code and code != exam.code and await _code_taken(session, code):
        raise Conflict("Exam code already exists")

    try:
        if title is not None:
            exam.title = title
        if code:
            exam.code = code
        if status is not None:
            if status != exam.status:
                logger.info("Exam %s status %s -> %s", exam.id, exam.status.value, status.value)
            exam.status = status
        if "duration_minutes" in sent:
            exam.duration_minutes = normalize_duration(payload.duration_minutes)
        if sync:
            await _sync_questions(session, exam, questions)
        await session.commit()
    except QuizroomError:
        await session.rollback()
        raise
    except IntegrityError:
        await session.rollback()
        raise Conflict("Exam code already exists")

    await session.refresh(exam)
    return _exam_to_read_dict(exam, await get_exam_questions(session, exam.id))


async def delete_exam(session: AsyncSession, ref: ExamRef, caller_id: UUID):
    # delete exam together with its questions, sessions and submissions
    exam = await load_exam(session, ref)
    _require_owner(exam, caller_id)

    await session.execute(delete(Submission).where(Submission.exam_id == exam.id))
    await session.execute(delete(ExamSession).where(ExamSession.exam_id == exam.id))
    await session.execute(delete(Question).where(Question.exam_id == exam.id))
    await session.delete(exam)
    await session.commit()
    logger.info("Exam deleted id=%s code=%s", exam.id, exam.code)
