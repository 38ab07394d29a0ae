import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from db.models.quiz_progress import QuizProgress

from .quiz_manager import to_naive_utc
from .schemas import ProgressUpdate

logger = logging.getLogger(__name__)


def serialize_progress(progress: Optional[QuizProgress]) -> Optional[Dict[str, Any]]:
    if progress is None:
        return None
    return {
        "quiz_id": progress.quiz_id,
        "user_id": progress.user_id,
        "answers": progress.answers or {},
        "flagged": progress.flagged or {},
        "bookmarked": progress.bookmarked or {},
        "marked_for_review": progress.marked_for_review or {},
        "start_time": progress.start_time.isoformat() if progress.start_time else None,
        "updated_at": progress.updated_at.isoformat() if progress.updated_at else None,
    }


class ProgressManager:
    """Autosaved state of a quiz a user is still working on."""

    def _find(self, db: Session, quiz_id: int, user_id: int) -> Optional[QuizProgress]:
        return (
            db.query(QuizProgress)
            .filter(QuizProgress.quiz_id == quiz_id, QuizProgress.user_id == user_id)
            .first()
        )

    def save_progress(self, db: Session, quiz_id: int, user_id: int, update: ProgressUpdate) -> QuizProgress:
        progress = self._find(db, quiz_id, user_id)
        if progress is None:
            progress = QuizProgress(
                quiz_id=quiz_id,
                user_id=user_id,
                answers={},
                flagged={},
                bookmarked={},
                marked_for_review={},
            )
            db.add(progress)

        # answers merge; the marker maps are replaced when sent
        if update.answers:
            merged = dict(progress.answers or {})
            merged.update(update.answers)
            progress.answers = merged
        if update.flagged is not None:
            progress.flagged = update.flagged
        if update.bookmarked is not None:
            progress.bookmarked = update.bookmarked
        if update.marked_for_review is not None:
            progress.marked_for_review = update.marked_for_review
        if update.start_time is not None:
            progress.start_time = to_naive_utc(update.start_time)

        progress.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(progress)

        logger.debug("Saved progress for quiz %s user %s", quiz_id, user_id)
        return progress

    def get_progress(self, db: Session, quiz_id: int, user_id: int) -> Optional[QuizProgress]:
        return self._find(db, quiz_id, user_id)

    def clear_progress(self, db: Session, quiz_id: int, user_id: int) -> bool:
        deleted = (
            db.query(QuizProgress)
            .filter(QuizProgress.quiz_id == quiz_id, QuizProgress.user_id == user_id)
            .delete()
        )
        db.commit()
        return deleted > 0


progress_manager = ProgressManager()
