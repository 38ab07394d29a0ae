import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models.announcements import Announcement
from db.models.quiz_progress import QuizProgress
from db.models.quizzes import Quiz
from db.models.student_attempts import StudentAttempt
from db.models.users import User

from .config import SECTIONS, STAFF_ROLES
from .exceptions import AttemptLimitError, NotFoundError, PermissionDeniedError, ValidationError
from .quiz_manager import quiz_manager
from .scoring import (
    GradingEngine,
    UNSECTIONED,
    is_passing_percentage,
    is_question_correct,
    parse_answer_list,
    percentage,
    section_breakdown,
)

logger = logging.getLogger(__name__)


def serialize_attempt(attempt: StudentAttempt) -> Dict[str, Any]:
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "user_id": attempt.user_id,
        "user_name": attempt.user_name,
        "score": attempt.score,
        "total_marks": attempt.total_marks,
        "obtained_marks": attempt.obtained_marks,
        "passing_score": attempt.passing_score,
        "passed": attempt.passed,
        "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
    }


class AttemptManager:
    def __init__(self):
        self.grading_engine = GradingEngine()

    def attempt_count(self, db: Session, quiz_id: int, user_id: int) -> int:
        return (
            db.query(StudentAttempt)
            .filter(StudentAttempt.quiz_id == quiz_id, StudentAttempt.user_id == user_id)
            .count()
        )

    def submit_attempt(
        self,
        db: Session,
        quiz: Quiz,
        student: User,
        answers: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> StudentAttempt:
        quiz_manager.check_available(quiz, now)

        used = self.attempt_count(db, quiz.id, student.id)
        if used >= quiz.max_attempts:
            raise AttemptLimitError(quiz.id, quiz.max_attempts)

        result = self.grading_engine.grade(quiz.questions, answers, quiz.passing_score)

        attempt = StudentAttempt(
            quiz_id=quiz.id,
            user_id=student.id,
            user_name=student.full_name,
            answers=result["answers"],
            correct_answers=result["correct_answers"],
            sections=result["sections"],
            score=result["score"],
            total_marks=result["total_marks"],
            obtained_marks=result["obtained_marks"],
            passing_score=result["passing_score"],
            passed=result["passed"],
            submitted_at=now or datetime.utcnow(),
        )
        db.add(attempt)

        # the saved in-progress state is consumed by the submission
        db.query(QuizProgress).filter(
            QuizProgress.quiz_id == quiz.id,
            QuizProgress.user_id == student.id,
        ).delete()

        db.commit()
        db.refresh(attempt)

        logger.info(
            "Attempt %s submitted for quiz %s by user %s: %s/%s",
            attempt.id, quiz.id, student.id, result["score"], result["num_questions"],
        )
        return attempt

    def get_attempt(self, db: Session, attempt_id: int) -> StudentAttempt:
        attempt = db.query(StudentAttempt).filter(StudentAttempt.id == attempt_id).first()
        if not attempt:
            raise NotFoundError("attempt", attempt_id, message="Attempt not found")
        return attempt

    def get_result(self, db: Session, attempt_id: int, user: User) -> Dict[str, Any]:
        attempt = self.get_attempt(db, attempt_id)

        is_staff = user.role in STAFF_ROLES
        if not is_staff and attempt.user_id != user.id:
            raise PermissionDeniedError("You can only view your own results.")

        quiz = attempt.quiz
        reveal = is_staff or bool(quiz.show_correct_answers)

        answers = attempt.answers or {}
        correct_answers = attempt.correct_answers or {}
        sections = attempt.sections or {}

        # the stored maps define what was graded; questions edited since are ignored
        total = len(correct_answers)
        score = attempt.score or 0

        question_by_id = {str(q.id): q for q in quiz.questions}
        review = []
        for qid in correct_answers:
            user_ans = parse_answer_list(answers.get(qid, []))
            correct = parse_answer_list(correct_answers.get(qid, []))
            question = question_by_id.get(qid)

            item = {
                "question_id": int(qid),
                "question_text": question.question_text if question else None,
                "section": sections.get(qid) or UNSECTIONED,
                "your_answers": user_ans,
                "is_correct": is_question_correct(user_ans, correct),
            }
            if reveal:
                item["correct_answers"] = correct
                item["explanation"] = (question.explanation or "") if question else ""
                if question:
                    correct_set = set(correct)
                    item["options"] = [
                        {
                            "text": o.get("text"),
                            "is_correct": (o.get("text") or "").strip().lower() in correct_set,
                            "selected": (o.get("text") or "").strip().lower() in user_ans,
                        }
                        for o in question.options or []
                    ]
            review.append(item)

        breakdown = section_breakdown(correct_answers.keys(), answers, correct_answers, sections)
        section_scores = {
            code: dict(counts, name=SECTIONS.get(code, "Other"))
            for code, counts in breakdown.items()
        }

        return {
            "attempt": serialize_attempt(attempt),
            "quiz_title": quiz.quiz_title or "Untitled Quiz",
            "score": score,
            "total": total,
            "percentage": percentage(score, total),
            "passed": bool(attempt.passed),
            "section_scores": section_scores,
            "questions": review,
        }

    def list_attempts_for_quiz(self, db: Session, quiz_id: int) -> Dict[str, Any]:
        quiz = quiz_manager.get_quiz(db, quiz_id)
        attempts = (
            db.query(StudentAttempt)
            .filter(StudentAttempt.quiz_id == quiz.id)
            .order_by(StudentAttempt.submitted_at.desc())
            .all()
        )
        scores = [a.score or 0 for a in attempts]
        average = round(sum(scores) / len(scores), 2) if scores else 0

        return {
            "quiz_id": quiz.id,
            "quiz_title": quiz.quiz_title,
            "num_attempts": len(attempts),
            "average_score": average,
            "attempts": [serialize_attempt(a) for a in attempts],
        }

    def update_score(self, db: Session, attempt_id: int, score: float, actor: User) -> StudentAttempt:
        attempt = self.get_attempt(db, attempt_id)

        max_score = len(attempt.correct_answers or {})
        if score < 0 or score > max_score:
            raise ValidationError(f"Score must be between 0 and {max_score}", field="score")

        old = attempt.score
        attempt.score = score
        attempt.passed = is_passing_percentage(score, max_score)
        db.commit()
        db.refresh(attempt)

        logger.info("Attempt %s score changed %s -> %s by user %s", attempt.id, old, score, actor.id)
        return attempt

    def list_student_attempts(self, db: Session, student: User) -> List[Dict[str, Any]]:
        attempts = (
            db.query(StudentAttempt)
            .filter(StudentAttempt.user_id == student.id)
            .order_by(StudentAttempt.submitted_at.desc(), StudentAttempt.id.desc())
            .all()
        )

        results = []
        for a in attempts:
            data = serialize_attempt(a)
            data["quiz"] = {
                "quiz_title": a.quiz.quiz_title if a.quiz else None,
                "total_marks": a.quiz.total_marks if a.quiz else None,
                "duration": a.quiz.duration if a.quiz else None,
            }
            results.append(data)
        return results

    def student_stats(self, db: Session, student: User) -> Dict[str, Any]:
        attempts = (
            db.query(StudentAttempt)
            .filter(StudentAttempt.user_id == student.id)
            .order_by(StudentAttempt.submitted_at, StudentAttempt.id)
            .all()
        )
        exams = db.query(Quiz).filter(Quiz.status == "published").count()
        announcements = (
            db.query(Announcement)
            .filter(
                Announcement.is_active.is_(True),
                Announcement.target_audience.in_(["all", "students"]),
            )
            .count()
        )

        stats = {
            "student_id": student.id,
            "exams_available": exams,
            "num_attempts": len(attempts),
            "announcements": announcements,
            "average_score": 0,
        }
        if attempts:
            scores = [a.score or 0 for a in attempts]
            stats["average_score"] = round(sum(scores) / len(scores), 2)
            stats["last_score"] = scores[-1]
        return stats

    def attempts_by_day(self, db: Session) -> List[Dict[str, Any]]:
        day = func.date(StudentAttempt.submitted_at)
        rows = db.query(day, func.count(StudentAttempt.id)).group_by(day).order_by(day).all()

        return [{"date": str(date_value), "count": count} for date_value, count in rows]


attempt_manager = AttemptManager()
