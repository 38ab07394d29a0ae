from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from db.database import Base


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    quiz_title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    total_marks = Column(Integer, default=0)
    duration = Column(Integer, default=60)  # minutes
    passing_score = Column(Integer, nullable=True)  # marks

    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)

    shuffle_questions = Column(Boolean, default=False)
    shuffle_options = Column(Boolean, default=False)
    max_attempts = Column(Integer, default=1)
    preview_mode = Column(Boolean, default=False)
    show_correct_answers = Column(Boolean, default=False)

    access_code = Column(String(12), unique=True, index=True)
    status = Column(String(20), default="draft")  # draft / published

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.position",
        cascade="all, delete-orphan",
    )

    @property
    def is_draft(self):
        return self.status != "published"
