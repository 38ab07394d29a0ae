from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime
from db.database import Base


class Message(Base):
    __tablename__ = "message"

    id = Column(Integer, primary_key=True, index=True)
    fname = Column(String(150), nullable=False)
    feedback = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
