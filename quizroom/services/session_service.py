"""
Exam session lifecycle: create, read, heartbeat, autosave, submit, history.

Expiry is checked lazily at the start of every write path (autosave, submit);
nothing closes a session in the background. Every function takes ``now`` so the
caller decides which clock is authoritative.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID
import enum
import logging
import math

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import Forbidden, InvalidState, NotFound
from ..models.exam_model import Exam, ExamStatus
from ..models.exam_session_model import ExamSession
from ..models.submission_model import Submission
from .exam_ref import ExamRef
from .exam_service import exam_snapshot, get_exam_questions, load_exam
from .grading_service import calculate_score

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED_PENDING_SUBMIT = "EXPIRED_PENDING_SUBMIT"
    SUBMITTED = "SUBMITTED"


def compute_end_time(start_time: datetime, duration_minutes: int) -> datetime:
    return start_time + timedelta(minutes=duration_minutes)


def seconds_remaining(end_time: datetime, now: datetime) -> int:
    return max(0, math.floor((end_time - now).total_seconds()))


def seconds_elapsed(start_time: datetime, now: datetime) -> int:
    return math.floor((now - start_time).total_seconds())


def is_expired(exam_session: ExamSession, now: datetime) -> bool:
    return now > exam_session.end_time


def session_state(exam_session: ExamSession, now: datetime) -> SessionState:
    if exam_session.is_submitted:
        return SessionState.SUBMITTED
    if is_expired(exam_session, now):
        return SessionState.EXPIRED_PENDING_SUBMIT
    return SessionState.ACTIVE


async def _get_owned_session(session: AsyncSession, session_id: UUID, user_id: UUID) -> ExamSession:
    res = await session.execute(select(ExamSession).where(ExamSession.id == session_id))
    exam_session = res.scalar_one_or_none()
    if not exam_session:
        raise NotFound("Session not found")
    if exam_session.user_id != user_id:
        raise Forbidden("Unauthorized access to this session")
    return exam_session


async def _get_exam_by_id(session: AsyncSession, exam_id) -> Exam:
    res = await session.execute(select(Exam).where(Exam.id == exam_id))
    exam = res.scalar_one_or_none()
    if not exam:
        raise NotFound("Exam not found")
    return exam


async def create_session(session: AsyncSession, ref: ExamRef, user_id: UUID, now: datetime) -> dict:
    # Ensure exam exists, is published and has a time limit
    exam = await load_exam(session, ref)
    if exam.status != ExamStatus.PUBLISHED:
        raise Forbidden(
            f"Exam is not available. Current status: {exam.status.value}. "
            f"Only {ExamStatus.PUBLISHED.value} exams can be taken."
        )
    if not exam.duration_minutes or exam.duration_minutes <= 0:
        raise InvalidState("Exam does not have a valid duration configured.")

    new_session = ExamSession(
        exam_id=exam.id,
        user_id=user_id,
        start_time=now,
        end_time=compute_end_time(now, exam.duration_minutes),
        answers={},
        is_submitted=False,
    )
    session.add(new_session)
    await session.commit()
    await session.refresh(new_session)
    logger.info("Session created id=%s exam_id=%s user_id=%s end_time=%s",
                new_session.id, exam.id, user_id, new_session.end_time.isoformat())

    # questions without correct_idx / explanation
    questions = await get_exam_questions(session, exam.id)
    return {
        'session_id': new_session.id,
        'start_time': new_session.start_time,
        'end_time': new_session.end_time,
        'exam': exam_snapshot(exam, questions),
    }


async def get_session_state(session: AsyncSession, session_id: UUID, user_id: UUID, now: datetime) -> dict:
    exam_session = await _get_owned_session(session, session_id, user_id)
    exam = await _get_exam_by_id(session, exam_session.exam_id)
    questions = await get_exam_questions(session, exam.id)
    return {
        'session_id': exam_session.id,
        'start_time': exam_session.start_time,
        'end_time': exam_session.end_time,
        'answers': dict(exam_session.answers or {}),
        'is_submitted': exam_session.is_submitted,
        'status': session_state(exam_session, now).value,
        'exam': exam_snapshot(exam, questions),
    }


async def heartbeat(session: AsyncSession, session_id: UUID, user_id: UUID, now: datetime) -> dict:
    # read only: expiry is reported, the client is expected to call submit
    exam_session = await _get_owned_session(session, session_id, user_id)
    remaining = seconds_remaining(exam_session.end_time, now)
    return {
        'server_time': now,
        'end_time': exam_session.end_time,
        'time_remaining_seconds': remaining,
        'is_expired': remaining <= 0,
        'is_submitted': exam_session.is_submitted,
    }


async def autosave_answers(session: AsyncSession, session_id: UUID, user_id: UUID,
                           answers: Dict[str, Any], now: datetime) -> dict:
    exam_session = await _get_owned_session(session, session_id, user_id)
    if exam_session.is_submitted:
        raise InvalidState("Session is already submitted")
    if is_expired(exam_session, now):
        logger.warning("Autosave rejected, session expired id=%s user_id=%s", session_id, user_id)
        raise InvalidState("Session has expired")

    # last write wins: the stored map is replaced, never merged
    exam_session.answers = {str(k): v for k, v in answers.items()}
    exam_session.updated_at = now
    session.add(exam_session)
    await session.commit()
    await session.refresh(exam_session)

    return {
        'session_id': exam_session.id,
        'answers': dict(exam_session.answers or {}),
        'updated_at': exam_session.updated_at,
    }


async def submit_session(session: AsyncSession, session_id: UUID, user_id: UUID, now: datetime,
                         answers_override: Optional[Dict[str, Any]] = None) -> dict:
    exam_session = await _get_owned_session(session, session_id, user_id)
    if exam_session.is_submitted:
        raise InvalidState("Session is already submitted")

    expired = is_expired(exam_session, now)
    # measured to the submit call, even when the deadline already passed
    time_spent = seconds_elapsed(exam_session.start_time, now)

    if answers_override is not None:
        answers = {str(k): v for k, v in answers_override.items()}
    else:
        answers = dict(exam_session.answers or {})

    questions = await get_exam_questions(session, exam_session.exam_id)
    result = calculate_score(questions, answers)

    submission = Submission(
        exam_id=exam_session.exam_id,
        user_id=user_id,
        session_id=exam_session.id,
        answers=answers,
        score=result.score,
        time_spent=time_spent,
        submitted_at=now,
    )
    # submission insert and the is_submitted flip commit together or not at all
    try:
        session.add(submission)
        exam_session.is_submitted = True
        session.add(exam_session)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Duplicate submission rejected for session id=%s", session_id)
        raise InvalidState("Session is already submitted")
    except Exception:
        await session.rollback()
        raise

    logger.info("Session submitted id=%s submission_id=%s score=%.2f expired=%s",
                exam_session.id, submission.id, result.score, expired)
    return {
        'submission_id': submission.id,
        'session_id': exam_session.id,
        'score': result.score,
        'correct_count': result.correct_count,
        'total': result.total,
        'percentage': result.percentage,
        'time_spent': time_spent,
        'is_expired': expired,
        'submitted_at': submission.submitted_at,
    }


async def session_history(session: AsyncSession, ref: ExamRef, user_id: UUID, now: datetime) -> List[dict]:
    exam = await load_exam(session, ref)
    stmt = (
        select(ExamSession, Submission)
        .outerjoin(Submission, Submission.session_id == ExamSession.id)
        .where(ExamSession.exam_id == exam.id, ExamSession.user_id == user_id)
        .order_by(ExamSession.start_time.desc(), ExamSession.created_at.desc())
    )
    res = await session.execute(stmt)

    out = []
    for exam_session, submission in res.all():
        out.append({
            'session_id': exam_session.id,
            'start_time': exam_session.start_time,
            'end_time': exam_session.end_time,
            'is_submitted': exam_session.is_submitted,
            'status': session_state(exam_session, now).value,
            'submission_id': submission.id if submission else None,
            'score': submission.score if submission else None,
            'time_spent': submission.time_spent if submission else None,
            'submitted_at': submission.submitted_at if submission else None,
        })
    return out


def _graded_view(submission: Submission, exam: Exam, questions) -> dict:
    answers = dict(submission.answers or {})
    # recomputed from the stored answers; must agree with the stored score
    result = calculate_score(questions, answers)
    if not math.isclose(result.score, submission.score):
        logger.warning("Stored score %.4f differs from recomputed %.4f for submission id=%s",
                       submission.score, result.score, submission.id)

    graded = []
    for q, correct in zip(questions, result.per_question_correct):
        graded.append({
            'id': q.id,
            'content': q.content,
            'options': list(q.options or []),
            'correct_idx': q.correct_idx,
            'explanation': q.explanation,
            'position': q.position,
            'selected_idx': answers.get(str(q.id)),
            'is_correct': correct,
        })

    return {
        'id': submission.id,
        'session_id': submission.session_id,
        'answers': answers,
        'score': submission.score,
        'correct_count': result.correct_count,
        'total': result.total,
        'percentage': result.percentage,
        'per_question_correct': result.per_question_correct,
        'time_spent': submission.time_spent,
        'submitted_at': submission.submitted_at,
        'exam': {
            'id': exam.id,
            'code': exam.code,
            'title': exam.title,
            'questions': graded,
        },
    }


async def _graded_submission(session: AsyncSession, submission: Submission) -> dict:
    exam = await _get_exam_by_id(session, submission.exam_id)
    questions = await get_exam_questions(session, exam.id)
    return _graded_view(submission, exam, questions)


async def get_submission(session: AsyncSession, submission_id: UUID, user_id: UUID) -> dict:
    res = await session.execute(select(Submission).where(Submission.id == submission_id))
    submission = res.scalar_one_or_none()
    if not submission:
        raise NotFound("Submission not found")
    if submission.user_id != user_id:
        raise Forbidden("Unauthorized access to this submission")
    return await _graded_submission(session, submission)


async def get_submission_for_session(session: AsyncSession, session_id: UUID, user_id: UUID) -> dict:
    exam_session = await _get_owned_session(session, session_id, user_id)
    res = await session.execute(select(Submission).where(Submission.session_id == exam_session.id))
    submission = res.scalar_one_or_none()
    if not submission:
        raise NotFound("Submission not found")
    return await _graded_submission(session, submission)
