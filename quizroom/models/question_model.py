from ..db import Base, JSONType
from .exam_model import utcnow
import uuid
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Uuid


class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    exam_id = Column(Uuid, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    options = Column(JSONType, nullable=False)  # exactly 4 option strings
    correct_idx = Column(Integer, nullable=False)
    explanation = Column(String, nullable=True)
    # order of the question inside its exam
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
