import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from db.models.announcements import Announcement
from db.models.messages import Message
from db.models.users import User

from .exceptions import NotFoundError, ValidationError
from .schemas import AnnouncementIn, MessageIn

logger = logging.getLogger(__name__)

# role -> audiences it can see
AUDIENCE_FOR_ROLE = {
    "student": ["all", "students"],
    "teacher": ["all", "teachers"],
}


def serialize_announcement(a: Announcement) -> Dict[str, Any]:
    return {
        "id": a.id,
        "author_id": a.author_id,
        "title": a.title,
        "message": a.message,
        "target_audience": a.target_audience,
        "is_active": a.is_active,
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }


def serialize_message(m: Message) -> Dict[str, Any]:
    return {
        "id": m.id,
        "fname": m.fname,
        "feedback": m.feedback,
        "created_at": m.created_at.isoformat() if m.created_at else None,
    }


class AnnouncementManager:
    def create(self, db: Session, author: User, data: AnnouncementIn) -> Announcement:
        if not data.title.strip() or not data.message.strip():
            raise ValidationError("Title and message are required.")

        announcement = Announcement(
            author_id=author.id,
            title=data.title.strip(),
            message=data.message.strip(),
            target_audience=data.target_audience,
            is_active=data.is_active,
        )
        db.add(announcement)
        db.commit()
        db.refresh(announcement)

        logger.info("Announcement %s posted to '%s' by user %s", announcement.id, announcement.target_audience, author.id)
        return announcement

    def list_for(self, db: Session, user: User) -> List[Announcement]:
        query = db.query(Announcement)
        if user.role != "admin":
            query = query.filter(
                Announcement.is_active.is_(True),
                Announcement.target_audience.in_(AUDIENCE_FOR_ROLE.get(user.role, ["all"])),
            )
        return query.order_by(Announcement.created_at.desc(), Announcement.id.desc()).all()

    def deactivate(self, db: Session, announcement_id: int) -> Announcement:
        announcement = db.query(Announcement).filter(Announcement.id == announcement_id).first()
        if not announcement:
            raise NotFoundError("announcement", announcement_id)

        announcement.is_active = False
        db.commit()
        db.refresh(announcement)
        return announcement


class MessageManager:
    def add(self, db: Session, data: MessageIn) -> Message:
        if not (data.fname or "").strip() or not (data.feedback or "").strip():
            raise ValidationError("Name and feedback are required.")

        message = Message(fname=data.fname.strip(), feedback=data.feedback.strip())
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    def list_all(self, db: Session) -> List[Message]:
        return db.query(Message).order_by(Message.created_at.desc(), Message.id.desc()).all()


announcement_manager = AnnouncementManager()
message_manager = MessageManager()
