from fastapi import APIRouter, Depends, status
from typing import List, Optional, Union
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import exam_ref_param, get_now
from ..schemas.common import ERROR_RESPONSES, Envelope
from ..schemas.exam_schema import ExamCreate, ExamRead, ExamSnapshot, ExamUpdate
from ..schemas.exam_session_schema import SessionCreated, SessionHistoryItem
from ..security import current_active_user
from ..services import exam_service, session_service
from ..services.exam_ref import ExamRef

router = APIRouter(prefix="/exams", tags=["Exams"], responses=ERROR_RESPONSES)


@router.get("", response_model=Envelope[List[ExamRead]])
async def list_exams(status: Optional[str] = None, session: AsyncSession = Depends(get_async_session),
                     user=Depends(current_active_user)):
    # caller's own exams, newest first
    exams = await exam_service.list_exams(session, user.id, status)
    return {"success": True, "data": exams}


@router.post("", response_model=Envelope[ExamRead], status_code=status.HTTP_201_CREATED)
async def create_exam(payload: ExamCreate, session: AsyncSession = Depends(get_async_session),
                      user=Depends(current_active_user)):
    exam = await exam_service.create_exam(session, payload, user.id)
    return {"success": True, "data": exam}


@router.get("/{ref}", response_model=Envelope[Union[ExamRead, ExamSnapshot]])
async def get_exam(ref: ExamRef = Depends(exam_ref_param), session: AsyncSession = Depends(get_async_session),
                   user=Depends(current_active_user)):
    #  owner gets the answer key, other callers a stripped published exam
    is_owner, exam = await exam_service.get_exam(session, ref, user.id)
    data = ExamRead.model_validate(exam) if is_owner else ExamSnapshot.model_validate(exam)
    return {"success": True, "data": data}


@router.patch("/{ref}", response_model=Envelope[ExamRead])
async def update_exam(payload: ExamUpdate, ref: ExamRef = Depends(exam_ref_param),
                      session: AsyncSession = Depends(get_async_session), user=Depends(current_active_user)):
    exam = await exam_service.update_exam(session, ref, user.id, payload)
    return {"success": True, "data": exam}


@router.delete("/{ref}")
async def delete_exam(ref: ExamRef = Depends(exam_ref_param), session: AsyncSession = Depends(get_async_session),
                      user=Depends(current_active_user)):
    await exam_service.delete_exam(session, ref, user.id)
    return {"success": True, "message": "Exam deleted successfully"}


@router.post("/{ref}/sessions", response_model=Envelope[SessionCreated], status_code=status.HTTP_201_CREATED)
async def start_session(ref: ExamRef = Depends(exam_ref_param), session: AsyncSession = Depends(get_async_session),
                        user=Depends(current_active_user), now: datetime = Depends(get_now)):
    created = await session_service.create_session(session, ref, user.id, now)
    return {"success": True, "data": created}


@router.get("/{ref}/sessions", response_model=Envelope[List[SessionHistoryItem]])
async def list_sessions(ref: ExamRef = Depends(exam_ref_param), session: AsyncSession = Depends(get_async_session),
                        user=Depends(current_active_user), now: datetime = Depends(get_now)):
    history = await session_service.session_history(session, ref, user.id, now)
    return {"success": True, "data": history}
