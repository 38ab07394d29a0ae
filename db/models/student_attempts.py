from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from db.database import Base


class StudentAttempt(Base):
    __tablename__ = "attempts"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255))

    # question id (as str) -> list of normalized answers
    answers = Column(JSON, default=dict)
    correct_answers = Column(JSON, default=dict)
    # question id (as str) -> section code
    sections = Column(JSON, default=dict)

    score = Column(Float, default=0)
    total_marks = Column(Integer, default=0)
    obtained_marks = Column(Integer, default=0)
    passing_score = Column(Integer, default=0)
    passed = Column(Boolean, default=False)

    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)

    quiz = relationship("Quiz")
