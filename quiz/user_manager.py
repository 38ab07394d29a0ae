import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from auth.security import hash_password, verify_password
from db.models.announcements import Announcement
from db.models.quiz_progress import QuizProgress
from db.models.quizzes import Quiz
from db.models.refresh_tokens import RefreshToken
from db.models.student_attempts import StudentAttempt
from db.models.users import User

from .config import ROLES
from .exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "dob": user.dob,
        "gender": user.gender,
        "image_url": user.image_url,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


class UserManager:
    def _ensure_unique(self, db: Session, username: Optional[str], email: Optional[str]):
        if username and db.query(User).filter(User.username == username).first():
            raise ConflictError("Username already exists.", field="username")
        if email and db.query(User).filter(User.email == email).first():
            raise ConflictError("Email already exists.", field="email")

    def _free_username(self, db: Session, base: str) -> str:
        username = base
        suffix = 1
        while db.query(User).filter(User.username == username).first():
            suffix += 1
            username = f"{base}{suffix}"
        return username

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("user", user_id)
        return user

    def authenticate(self, db: Session, username: str, password: str) -> Optional[User]:
        user = db.query(User).filter(User.username == username).first()
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    def register_student(self, db: Session, data) -> User:
        if data.password != data.confirm_password:
            raise ValidationError("Password did not match.", field="confirm_password")
        if not data.username.strip() or not data.password:
            raise ValidationError("Username and password are required.")

        username = data.username.strip()
        self._ensure_unique(db, username, data.email)

        user = User(
            username=username,
            password_hash=hash_password(data.password),
            role="student",
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            dob=data.dob,
            gender=data.gender,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info("Registered student %s (id=%s)", user.username, user.id)
        return user

    def create_user(self, db: Session, data) -> User:
        """Admin-side account creation for any role."""
        if not data.email or not data.password or not data.role or not data.first_name or not data.last_name:
            raise ValidationError("Missing required fields")
        if data.role not in ROLES:
            raise ValidationError(f"Invalid role '{data.role}'", field="role")

        username = data.username or data.email
        self._ensure_unique(db, username, data.email)

        user = User(
            username=username,
            password_hash=hash_password(data.password),
            role=data.role,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info("Created %s account %s (id=%s)", user.role, user.username, user.id)
        return user

    def get_or_create_google_user(self, db: Session, google_id: str, email: Optional[str], name: Optional[str]) -> User:
        user = db.query(User).filter(User.google_id == google_id).first()
        if user:
            return user

        # link an existing local account with the same email
        if email:
            user = db.query(User).filter(User.email == email).first()
            if user:
                user.google_id = google_id
                db.commit()
                return user

        first, _, last = (name or "").partition(" ")
        user = User(
            username=self._free_username(db, email.split("@")[0] if email else google_id),
            email=email,
            google_id=google_id,
            role="student",
            password_hash=None,
            first_name=first or None,
            last_name=last or None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info("Created Google student account %s (id=%s)", user.username, user.id)
        return user

    def list_users(self, db: Session, limit: int = 10, offset: int = 0) -> List[User]:
        return db.query(User).order_by(User.id).offset(offset).limit(limit).all()

    def list_by_role(self, db: Session, role: str) -> List[User]:
        return db.query(User).filter(User.role == role).order_by(User.id).all()

    def delete_user(self, db: Session, actor: User, user_id: int):
        user = self.get_user(db, user_id)
        if user.id == actor.id:
            raise ValidationError("Admins cannot delete themselves.")

        db.query(RefreshToken).filter(RefreshToken.user_id == user.id).delete()
        db.query(QuizProgress).filter(QuizProgress.user_id == user.id).delete()
        db.query(StudentAttempt).filter(StudentAttempt.user_id == user.id).delete()
        db.query(Quiz).filter(Quiz.author_id == user.id).update({Quiz.author_id: None})
        db.query(Announcement).filter(Announcement.author_id == user.id).update({Announcement.author_id: None})
        db.delete(user)
        db.commit()

        logger.info("User %s deleted by admin %s", user_id, actor.id)

    def update_role(self, db: Session, actor: User, user_id: int, role: str) -> User:
        if actor.role != "admin":
            raise PermissionDeniedError("Forbidden: Only admins can change roles.")
        if user_id == actor.id:
            raise ValidationError("Admins cannot change their own role.")
        if role not in ROLES:
            raise ValidationError(f"Invalid role '{role}'", field="role")

        user = self.get_user(db, user_id)
        old_role = user.role
        user.role = role
        db.commit()
        db.refresh(user)

        logger.info("User %s role changed %s -> %s by admin %s", user.id, old_role, role, actor.id)
        return user

    def role_for_email(self, db: Session, email: str) -> str:
        if not email:
            raise ValidationError("No email", field="email")
        user = db.query(User).filter(User.email == email).first()
        if not user:
            raise NotFoundError("user", message="Not found")
        return user.role

    def update_profile(self, db: Session, user: User, data) -> User:
        if not data.first_name or not data.email or not data.dob or not data.gender:
            raise ValidationError("All fields are required.")

        if data.email != user.email and db.query(User).filter(User.email == data.email).first():
            raise ConflictError("Email already exists.", field="email")

        user.first_name = data.first_name
        user.email = data.email
        user.dob = data.dob
        user.gender = data.gender
        db.commit()
        db.refresh(user)
        return user

    def update_profile_image(self, db: Session, user: User, image_url: Optional[str]) -> User:
        if not image_url:
            raise ValidationError("Missing imageUrl", field="image_url")
        user.image_url = image_url
        db.commit()
        db.refresh(user)
        return user

    def role_counts(self, db: Session) -> Dict[str, int]:
        counts = {role: db.query(User).filter(User.role == role).count() for role in ROLES}
        counts["quizzes"] = db.query(Quiz).count()
        return counts


user_manager = UserManager()
