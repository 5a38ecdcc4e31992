from pydantic import field_validator
from typing import Any, Optional, Dict
from uuid import UUID

from .common import CamelModel, UtcDatetime
from .exam_schema import ExamSnapshot


class SessionCreated(CamelModel):
    session_id: UUID
    start_time: UtcDatetime
    end_time: UtcDatetime
    exam: ExamSnapshot


class SessionDetail(CamelModel):
    session_id: UUID
    start_time: UtcDatetime
    end_time: UtcDatetime
    answers: Dict[str, Any] = {}
    is_submitted: bool
    status: str
    exam: ExamSnapshot


class SessionAutoSave(CamelModel):
    answers: Dict[str, Any]


class AutoSaveResult(CamelModel):
    session_id: UUID
    answers: Dict[str, Any]
    updated_at: UtcDatetime


class HeartbeatResult(CamelModel):
    server_time: UtcDatetime
    end_time: UtcDatetime
    time_remaining_seconds: int
    is_expired: bool
    is_submitted: bool


class SubmitPayload(CamelModel):
    answers: Optional[Dict[str, Any]] = None

    @field_validator("answers", mode="before")
    @classmethod
    def ignore_malformed_answers(cls, v):
        # anything but an object falls back to the autosaved answers
        return v if isinstance(v, dict) else None


class SubmitResult(CamelModel):
    submission_id: UUID
    session_id: UUID
    score: float
    correct_count: int
    total: int
    percentage: float
    time_spent: int
    is_expired: bool
    submitted_at: UtcDatetime


class SessionHistoryItem(CamelModel):
    session_id: UUID
    start_time: UtcDatetime
    end_time: UtcDatetime
    is_submitted: bool
    status: str
    submission_id: Optional[UUID] = None
    score: Optional[float] = None
    time_spent: Optional[int] = None
    submitted_at: Optional[UtcDatetime] = None
