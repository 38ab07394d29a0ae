# python -m db.init_db

import logging

from db.database import Base, engine
from db.models.users import User  # noqa: F401
from db.models.refresh_tokens import RefreshToken  # noqa: F401
from db.models.quizzes import Quiz  # noqa: F401
from db.models.questions import Question  # noqa: F401
from db.models.student_attempts import StudentAttempt  # noqa: F401
from db.models.quiz_progress import QuizProgress  # noqa: F401
from db.models.announcements import Announcement  # noqa: F401
from db.models.messages import Message  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind=engine):
    Base.metadata.create_all(bind=bind)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Creating tables...")
    init_db()
    logger.info("Done")
