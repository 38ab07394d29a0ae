from sqlalchemy import Column, Integer, String, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from db.database import Base


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=1)

    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), default="single")  # single / multiple
    section = Column(String(10), nullable=True)
    marks = Column(Integer, default=1)
    explanation = Column(Text, default="")
    image_url = Column(String(500), nullable=True)

    # [{"text": ..., "image": ...}, ...]
    options = Column(JSON, default=list)
    # ["option text", ...]
    correct_answers = Column(JSON, default=list)

    quiz = relationship("Quiz", back_populates="questions")
