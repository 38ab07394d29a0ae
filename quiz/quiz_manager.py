import logging
import random
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from db.models.questions import Question
from db.models.quiz_progress import QuizProgress
from db.models.quizzes import Quiz
from db.models.student_attempts import StudentAttempt
from db.models.users import User

from .config import ACCESS_CODE_LENGTH, SECTIONS, STAFF_ROLES
from .exceptions import NotFoundError, PermissionDeniedError, QuizUnavailableError, ValidationError
from .schemas import QuizIn

logger = logging.getLogger(__name__)

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_question(question: Question, include_answers: bool = True) -> Dict[str, Any]:
    correct = set(question.correct_answers or [])
    options = []
    for opt in question.options or []:
        item = {"text": opt.get("text"), "image": opt.get("image")}
        if include_answers:
            item["is_correct"] = opt.get("text") in correct
        options.append(item)

    data = {
        "id": question.id,
        "position": question.position,
        "question_text": question.question_text,
        "question_type": question.question_type,
        "section": question.section,
        "section_name": SECTIONS.get(question.section) if question.section else None,
        "marks": question.marks or 1,
        "image_url": question.image_url,
        "options": options,
    }
    if include_answers:
        data["explanation"] = question.explanation or ""
        data["correct_answers"] = list(question.correct_answers or [])
    return data


def serialize_quiz(quiz: Quiz, questions: Optional[List[Dict[str, Any]]] = None, include_code: bool = True) -> Dict[str, Any]:
    data = {
        "id": quiz.id,
        "author_id": quiz.author_id,
        "quiz_title": quiz.quiz_title,
        "description": quiz.description or "",
        "total_marks": quiz.total_marks,
        "duration": quiz.duration,
        "passing_score": quiz.passing_score,
        "start_time": _iso(quiz.start_time),
        "end_time": _iso(quiz.end_time),
        "shuffle_questions": quiz.shuffle_questions,
        "shuffle_options": quiz.shuffle_options,
        "max_attempts": quiz.max_attempts,
        "preview_mode": quiz.preview_mode,
        "show_correct_answers": quiz.show_correct_answers,
        "status": quiz.status,
        "is_draft": quiz.is_draft,
        "num_questions": len(quiz.questions),
        "created_at": _iso(quiz.created_at),
    }
    if include_code:
        data["access_code"] = quiz.access_code
    if questions is not None:
        data["questions"] = questions
    return data


class QuizManager:
    def generate_access_code(self, db: Session) -> str:
        while True:
            code = "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))
            if not db.query(Quiz).filter(Quiz.access_code == code).first():
                return code

    def _build_questions(self, payload: QuizIn) -> List[Question]:
        questions = []
        for i, q in enumerate(payload.questions, start=1):
            questions.append(
                Question(
                    position=i,
                    question_text=q.question,
                    question_type=q.question_type,
                    section=q.section,
                    marks=q.marks,
                    explanation=q.explanation or "",
                    image_url=q.image,
                    options=[{"text": o.text, "image": o.image} for o in q.options],
                    correct_answers=[o.text for o in q.options if o.is_correct],
                )
            )
        return questions

    def _apply_fields(self, quiz: Quiz, payload: QuizIn):
        quiz.quiz_title = payload.quiz_title
        quiz.description = payload.description
        quiz.total_marks = payload.computed_total_marks()
        quiz.duration = payload.duration
        quiz.passing_score = payload.passing_score
        quiz.start_time = to_naive_utc(payload.start_time)
        quiz.end_time = to_naive_utc(payload.end_time)
        quiz.shuffle_questions = payload.shuffle_questions
        quiz.shuffle_options = payload.shuffle_options
        quiz.max_attempts = payload.max_attempts
        quiz.preview_mode = payload.preview_mode
        quiz.show_correct_answers = payload.show_correct_answers
        quiz.status = payload.status

    def _check_can_edit(self, quiz: Quiz, user: User):
        if user.role == "admin":
            return
        if user.role != "teacher" or quiz.author_id != user.id:
            raise PermissionDeniedError("Only the quiz author or an admin can modify this quiz.")

    def create_quiz(self, db: Session, author: User, payload: QuizIn) -> Quiz:
        quiz = Quiz(author_id=author.id, access_code=self.generate_access_code(db))
        self._apply_fields(quiz, payload)
        quiz.questions = self._build_questions(payload)

        db.add(quiz)
        db.commit()
        db.refresh(quiz)

        logger.info("Created quiz %s '%s' with %d questions", quiz.id, quiz.quiz_title, len(quiz.questions))
        return quiz

    def get_quiz(self, db: Session, quiz_id: int) -> Quiz:
        quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise NotFoundError("quiz", quiz_id)
        return quiz

    def list_quizzes(self, db: Session, user: User) -> List[Dict[str, Any]]:
        if user.role in STAFF_ROLES:
            quizzes = db.query(Quiz).order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()
            return [serialize_quiz(q) for q in quizzes]

        quizzes = db.query(Quiz).filter(Quiz.status == "published").order_by(Quiz.id).all()
        attempts = db.query(StudentAttempt.quiz_id).filter(StudentAttempt.user_id == user.id).all()
        counts: Dict[int, int] = {}
        for (quiz_id,) in attempts:
            counts[quiz_id] = counts.get(quiz_id, 0) + 1

        result = []
        for q in quizzes:
            data = serialize_quiz(q, include_code=False)
            data["attempts_used"] = counts.get(q.id, 0)
            result.append(data)
        return result

    def update_quiz(self, db: Session, user: User, quiz_id: int, payload: QuizIn) -> Quiz:
        quiz = self.get_quiz(db, quiz_id)
        self._check_can_edit(quiz, user)

        self._apply_fields(quiz, payload)
        # full replacement of the question set
        quiz.questions = self._build_questions(payload)
        db.commit()
        db.refresh(quiz)

        logger.info("Updated quiz %s (%d questions)", quiz.id, len(quiz.questions))
        return quiz

    def delete_quiz(self, db: Session, user: User, quiz_id: int):
        quiz = self.get_quiz(db, quiz_id)
        self._check_can_edit(quiz, user)

        db.query(QuizProgress).filter(QuizProgress.quiz_id == quiz.id).delete()
        db.query(StudentAttempt).filter(StudentAttempt.quiz_id == quiz.id).delete()
        db.delete(quiz)
        db.commit()

        logger.info("Deleted quiz %s", quiz_id)

    def regenerate_access_code(self, db: Session, user: User, quiz_id: int) -> Quiz:
        quiz = self.get_quiz(db, quiz_id)
        self._check_can_edit(quiz, user)

        quiz.access_code = self.generate_access_code(db)
        db.commit()
        db.refresh(quiz)

        logger.info("Regenerated access code for quiz %s", quiz.id)
        return quiz

    def check_available(self, quiz: Quiz, now: Optional[datetime] = None):
        now = now or datetime.utcnow()
        if quiz.status != "published":
            raise QuizUnavailableError("Quiz is not published.", quiz.id)
        if quiz.start_time and now < quiz.start_time:
            raise QuizUnavailableError("Quiz not started.", quiz.id)
        if quiz.end_time and now > quiz.end_time:
            raise QuizUnavailableError("Quiz ended.", quiz.id)

    def join_by_code(self, db: Session, access_code: str, now: Optional[datetime] = None) -> Quiz:
        code = (access_code or "").strip()
        if not code:
            raise ValidationError("Enter a code.", field="access_code")

        quiz = db.query(Quiz).filter(Quiz.access_code == code.upper()).first()
        if not quiz:
            raise NotFoundError("quiz", message="Invalid code.")

        self.check_available(quiz, now)
        return quiz

    def quiz_for_attempt(self, quiz: Quiz, rng: Optional[random.Random] = None) -> Dict[str, Any]:
        """Student view: no correctness data, shuffled when the quiz asks for it."""
        rng = rng or random.Random()

        questions = list(quiz.questions)
        if quiz.shuffle_questions:
            rng.shuffle(questions)

        serialized = []
        for q in questions:
            data = serialize_question(q, include_answers=False)
            if quiz.shuffle_options:
                rng.shuffle(data["options"])
            serialized.append(data)

        return serialize_quiz(quiz, serialized, include_code=False)

    def get_quiz_for_user(self, db: Session, user: User, quiz_id: int) -> Dict[str, Any]:
        quiz = self.get_quiz(db, quiz_id)
        if user.role in STAFF_ROLES:
            return self.preview_quiz(quiz)

        if quiz.status != "published":
            raise NotFoundError("quiz", quiz_id)
        return self.quiz_for_attempt(quiz)

    def preview_quiz(self, quiz: Quiz) -> Dict[str, Any]:
        return serialize_quiz(quiz, [serialize_question(q) for q in quiz.questions])


quiz_manager = QuizManager()
