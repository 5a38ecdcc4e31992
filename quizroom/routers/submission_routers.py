from fastapi import APIRouter, Depends
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..schemas.common import ERROR_RESPONSES, Envelope
from ..schemas.submission_schema import SubmissionRead
from ..security import current_active_user
from ..services import session_service

router = APIRouter(prefix="/submissions", tags=["Submissions"], responses=ERROR_RESPONSES)


@router.get("/{submission_id}", response_model=Envelope[SubmissionRead])
async def get_submission(submission_id: UUID, session: AsyncSession = Depends(get_async_session),
                         user=Depends(current_active_user)):
    # full graded view including answer key, owner only
    graded = await session_service.get_submission(session, submission_id, user.id)
    return {"success": True, "data": graded}
