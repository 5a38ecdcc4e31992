from ..db import Base, JSONType
from .exam_model import utcnow
from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.ext.mutable import MutableDict
import uuid


class ExamSession(Base):
    """One timed attempt by one user at one exam.

    ``end_time`` is computed once at creation and never changes. ``is_submitted``
    only ever goes from False to True, together with the Submission insert.
    """
    __tablename__ = "exam_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # ensure exam_id is a proper foreign key so DB-level ON DELETE CASCADE can remove sessions
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    # use MutableDict so SQLAlchemy detects in-place changes to JSON fields
    answers = Column(MutableDict.as_mutable(JSONType), nullable=False, default=dict)
    is_submitted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
