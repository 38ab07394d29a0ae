from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=True)
    password_hash = Column(String(255), nullable=True)  # null for Google accounts
    role = Column(String(50), nullable=False, default="student")  # student / teacher / admin

    email = Column(String(255), unique=True, index=True, nullable=True)
    google_id = Column(String(255), unique=True, nullable=True)

    first_name = Column(String(150))
    last_name = Column(String(150))
    dob = Column(String(20))
    gender = Column(String(20))
    image_url = Column(String(500))

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def full_name(self):
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.username or self.email or "Unknown User"
