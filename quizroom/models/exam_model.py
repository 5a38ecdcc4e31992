from ..db import Base


"""
Exams Model
| Column | Type | Notes |
| :--- | :--- | :--- |
| `id` | UUID | Primary Key |
| `code` | VARCHAR | Unique, human readable join code |
| `title` | VARCHAR | |
| `status` | ENUM | DRAFT / PUBLISHED / ENDED, default DRAFT |
| `duration_minutes` | INTEGER | Nullable, time limit for a session |
| `author_id` | UUID | FK -> users |
| `created_at` | TIMESTAMP | naive UTC |
| `updated_at` | TIMESTAMP | naive UTC |

Questions belong to exactly one exam (see question_model) and are
ordered by their `position` column.
"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid, Enum as SAEnum
import uuid
import enum
from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, the shape every timestamp column stores
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ExamStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ENDED = "ENDED"


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    status = Column(SAEnum(ExamStatus), default=ExamStatus.DRAFT, nullable=False)
    duration_minutes = Column(Integer, nullable=True)  # in minutes
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
