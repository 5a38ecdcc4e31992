from ..db import Base, JSONType
from sqlalchemy import Column, Float, Integer, DateTime, ForeignKey, Uuid
import uuid


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # unique: at most one submission per session, enforced by the store as well
    session_id = Column(Uuid, ForeignKey("exam_sessions.id", ondelete="CASCADE"), nullable=False, unique=True)

    answers = Column(JSONType, nullable=False, default=dict)  # snapshot at submit time
    score = Column(Float, nullable=False)  # 0-100
    time_spent = Column(Integer, nullable=False)  # seconds
    submitted_at = Column(DateTime, nullable=False)
