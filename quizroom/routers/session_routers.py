from fastapi import APIRouter, Body, Depends
from typing import Optional
from uuid import UUID
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import get_now
from ..schemas.common import ERROR_RESPONSES, Envelope
from ..schemas.exam_session_schema import (
    AutoSaveResult, HeartbeatResult, SessionAutoSave, SessionDetail, SubmitPayload, SubmitResult,
)
from ..schemas.submission_schema import SubmissionRead
from ..security import current_active_user
from ..services import session_service

router = APIRouter(prefix="/sessions", tags=["Sessions"], responses=ERROR_RESPONSES)


@router.get("/{session_id}", response_model=Envelope[SessionDetail])
async def get_session(session_id: UUID, session: AsyncSession = Depends(get_async_session),
                      user=Depends(current_active_user), now: datetime = Depends(get_now)):
    detail = await session_service.get_session_state(session, session_id, user.id, now)
    return {"success": True, "data": detail}


@router.patch("/{session_id}", response_model=Envelope[AutoSaveResult])
async def autosave_session(session_id: UUID, payload: SessionAutoSave,
                           session: AsyncSession = Depends(get_async_session),
                           user=Depends(current_active_user), now: datetime = Depends(get_now)):
    saved = await session_service.autosave_answers(session, session_id, user.id, payload.answers, now)
    return {"success": True, "data": saved}


@router.get("/{session_id}/heartbeat", response_model=Envelope[HeartbeatResult])
async def session_heartbeat(session_id: UUID, session: AsyncSession = Depends(get_async_session),
                            user=Depends(current_active_user), now: datetime = Depends(get_now)):
    beat = await session_service.heartbeat(session, session_id, user.id, now)
    return {"success": True, "data": beat}


@router.post("/{session_id}/submit", response_model=Envelope[SubmitResult])
async def submit_session(session_id: UUID, payload: Optional[SubmitPayload] = Body(default=None),
                         session: AsyncSession = Depends(get_async_session),
                         user=Depends(current_active_user), now: datetime = Depends(get_now)):
    # body is optional; without answers the autosaved ones are graded
    answers = payload.answers if payload else None
    result = await session_service.submit_session(session, session_id, user.id, now, answers)
    return {"success": True, "data": result}


@router.get("/{session_id}/submission", response_model=Envelope[SubmissionRead])
async def get_session_submission(session_id: UUID, session: AsyncSession = Depends(get_async_session),
                                 user=Depends(current_active_user)):
    graded = await session_service.get_submission_for_session(session, session_id, user.id)
    return {"success": True, "data": graded}
