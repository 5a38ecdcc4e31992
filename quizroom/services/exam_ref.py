from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from ..errors import InvalidInput
from ..models.exam_model import Exam


@dataclass(frozen=True)
class ExamRef:
    """An exam addressed either by primary key or by its join code."""
    kind: Literal["id", "code"]
    value: str

    def where(self):
        if self.kind == "id":
            return Exam.id == UUID(self.value)
        return Exam.code == self.value

    def __str__(self):
        return f"{self.kind}={self.value}"


def resolve_exam_ref(raw: str | None) -> ExamRef:
    value = (raw or "").strip()
    if not value:
        raise InvalidInput("Exam identifier is required.")
    try:
        return ExamRef("id", str(UUID(value)))
    except ValueError:
        return ExamRef("code", value)
