from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, JSON, UniqueConstraint
from db.database import Base


class QuizProgress(Base):
    __tablename__ = "quiz_progress"
    __table_args__ = (UniqueConstraint("quiz_id", "user_id", name="uq_quiz_progress_quiz_user"),)

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    answers = Column(JSON, default=dict)
    flagged = Column(JSON, default=dict)
    bookmarked = Column(JSON, default=dict)
    marked_for_review = Column(JSON, default=dict)

    start_time = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow)
