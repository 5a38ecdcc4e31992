from typing import Any, List, Optional
from uuid import UUID

from .common import CamelModel


class QuestionPublic(CamelModel):
    """A question as shown during an attempt: no answer key."""
    id: UUID
    content: str
    options: List[str]


class QuestionRead(QuestionPublic):
    correct_idx: int
    explanation: Optional[str] = None
    position: int = 0


class GradedQuestion(QuestionRead):
    selected_idx: Optional[Any] = None
    is_correct: bool = False
