import json
import math
from typing import Any, Dict, Iterable, List, Optional

from .config import DEFAULT_PASSING_RATIO, PASS_THRESHOLD

UNSECTIONED = "other"


def normalize_answer(value: Any) -> str:
    if isinstance(value, str):
        return value.strip().lower()
    if isinstance(value, dict):
        text = value.get("text")
        if isinstance(text, str):
            return text.strip().lower()
    if isinstance(value, (bool, int, float)):
        return str(value).lower()
    return ""


def parse_answer_list(raw: Any) -> List[str]:
    """
    Coerce a stored or submitted answer into a list of normalized strings.

    Accepts a list, a JSON-encoded list, a bare string or an option dict.
    """
    if raw is None:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raw = [raw]

    if not isinstance(raw, list):
        raw = [raw]

    return [normalize_answer(item) for item in raw]


def is_question_correct(user_answers: List[str], correct_answers: List[str]) -> bool:
    # same count, no repeated picks, and every pick is a correct one
    if len(user_answers) != len(correct_answers):
        return False
    if len(set(user_answers)) != len(user_answers):
        return False
    correct = set(correct_answers)
    return all(a in correct for a in user_answers)


def percentage(score: float, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(score / total * 100, 2)


def is_passing_percentage(score: float, total: int) -> bool:
    return total > 0 and (score / total) * 100 >= PASS_THRESHOLD


def default_passing_score(total_marks: int) -> int:
    return math.ceil(total_marks * DEFAULT_PASSING_RATIO)


def _key(question_id: Any) -> str:
    # JSON columns come back with string keys
    return str(question_id)


def section_breakdown(
    question_ids: Iterable[Any],
    answers: Dict[str, Any],
    correct_answers: Dict[str, Any],
    sections: Dict[str, Any],
) -> Dict[str, Dict[str, int]]:
    """Per-section ``{"correct", "total"}`` counts for a stored attempt."""
    breakdown: Dict[str, Dict[str, int]] = {}

    for qid in question_ids:
        key = _key(qid)
        section = sections.get(key) or UNSECTIONED
        bucket = breakdown.setdefault(section, {"correct": 0, "total": 0})
        bucket["total"] += 1

        user = parse_answer_list(answers.get(key, []))
        correct = parse_answer_list(correct_answers.get(key, []))
        if is_question_correct(user, correct):
            bucket["correct"] += 1

    return breakdown


class GradingEngine:
    """Scores a submission against the stored correct-answer sets."""

    def grade(
        self,
        questions: Iterable[Any],
        answers: Dict[Any, Any],
        passing_score: Optional[int] = None,
    ) -> Dict[str, Any]:
        submitted = {_key(k): v for k, v in (answers or {}).items()}

        score = 0
        total_marks = 0
        obtained_marks = 0
        user_map: Dict[str, List[str]] = {}
        correct_map: Dict[str, List[str]] = {}
        section_map: Dict[str, str] = {}
        per_question = []

        for q in questions:
            key = _key(q.id)
            user = parse_answer_list(submitted.get(key))
            correct = parse_answer_list(q.correct_answers)
            marks = q.marks or 1

            user_map[key] = user
            correct_map[key] = correct
            section_map[key] = q.section or UNSECTIONED
            total_marks += marks

            is_correct = is_question_correct(user, correct)
            if is_correct:
                score += 1
                obtained_marks += marks

            per_question.append({
                "question_id": q.id,
                "is_correct": is_correct,
                "marks": marks,
            })

        if passing_score is None:
            passing_score = default_passing_score(total_marks)

        return {
            "score": score,
            "num_questions": len(per_question),
            "total_marks": total_marks,
            "obtained_marks": obtained_marks,
            "passing_score": passing_score,
            "passed": obtained_marks >= passing_score,
            "answers": user_map,
            "correct_answers": correct_map,
            "sections": section_map,
            "questions": per_question,
        }
