from pydantic import field_validator
from typing import Any, Optional, List
from uuid import UUID

from .common import CamelModel, UtcDatetime
from .question_schema import QuestionPublic, QuestionRead


class ExamCreate(CamelModel):
    # code/title/status and the question list are checked together by the
    # catalog service so every problem is reported in a single response
    code: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    duration_minutes: Optional[Any] = None
    questions: Optional[Any] = None


class ExamUpdate(CamelModel):
    title: Optional[str] = None
    code: Optional[str] = None
    status: Optional[str] = None
    # explicit null clears the time limit; absence leaves it untouched
    duration_minutes: Optional[Any] = None
    # Replace the whole question set when provided
    questions: Optional[Any] = None

    @field_validator("title", "code", mode="before")
    @classmethod
    def must_be_text(cls, v):
        if v is not None and not isinstance(v, str):
            raise ValueError("must be a string")
        return v


class ExamRead(CamelModel):
    id: UUID
    code: str
    title: str
    status: str
    duration_minutes: Optional[int] = None
    author_id: Optional[UUID] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
    question_count: int = 0
    questions: List[QuestionRead] = []


class ExamSnapshot(CamelModel):
    """Exam as seen by a candidate: answer key stripped."""
    id: UUID
    code: str
    title: str
    duration_minutes: Optional[int] = None
    questions: List[QuestionPublic] = []
