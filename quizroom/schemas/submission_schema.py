from typing import Any, Dict, List
from uuid import UUID

from .common import CamelModel, UtcDatetime
from .question_schema import GradedQuestion


class GradedExam(CamelModel):
    id: UUID
    code: str
    title: str
    questions: List[GradedQuestion] = []


class SubmissionRead(CamelModel):
    id: UUID
    session_id: UUID
    answers: Dict[str, Any] = {}
    score: float
    correct_count: int
    total: int
    percentage: float
    per_question_correct: List[bool] = []
    time_spent: int
    submitted_at: UtcDatetime
    exam: GradedExam
