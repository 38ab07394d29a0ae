from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .config import SECTIONS


# ============ Quiz authoring ============

class OptionIn(BaseModel):
    text: str
    image: Optional[str] = None
    is_correct: bool = False

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Option cannot be empty")
        return v.strip()


class QuestionIn(BaseModel):
    question: str
    question_type: Literal["single", "multiple"] = "single"
    section: Optional[str] = None
    marks: int = Field(1, ge=1)
    explanation: str = ""
    image: Optional[str] = None
    options: List[OptionIn]

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Question cannot be empty")
        return v.strip()

    @field_validator("section")
    @classmethod
    def known_section(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if v not in SECTIONS:
            raise ValueError(f"Unknown section '{v}'")
        return v

    @model_validator(mode="after")
    def check_options(self):
        if len(self.options) < 2:
            raise ValueError("At least two options are required")

        # compared the way answers are graded
        texts = [o.text.lower() for o in self.options]
        if len(set(texts)) != len(texts):
            raise ValueError("Options must be unique")

        num_correct = sum(1 for o in self.options if o.is_correct)
        if num_correct == 0:
            raise ValueError("At least one correct option is required")
        if self.question_type == "single" and num_correct != 1:
            raise ValueError("Single-select questions must have exactly one correct answer")

        return self


class QuizIn(BaseModel):
    quiz_title: str
    description: str = ""
    duration: int = Field(60, ge=1)
    total_marks: Optional[int] = Field(None, ge=0)
    passing_score: Optional[int] = Field(None, ge=0)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    shuffle_questions: bool = False
    shuffle_options: bool = False
    max_attempts: int = Field(1, ge=1)
    preview_mode: bool = False
    show_correct_answers: bool = False
    status: Literal["draft", "published"] = "draft"
    questions: List[QuestionIn]

    @field_validator("quiz_title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Quiz title is required")
        return v.strip()

    @model_validator(mode="after")
    def check_quiz(self):
        if not self.questions:
            raise ValueError("At least one question is required")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End date must be after start date")
        return self

    def computed_total_marks(self) -> int:
        if self.total_marks:
            return self.total_marks
        return sum(q.marks for q in self.questions)


# ============ Attempting ============

class JoinRequest(BaseModel):
    access_code: str = ""


class AttemptSubmission(BaseModel):
    # question id -> selected option text(s)
    answers: Dict[str, Union[List[str], str]] = {}


class ScoreUpdate(BaseModel):
    score: float = Field(..., ge=0)


class ProgressUpdate(BaseModel):
    answers: Optional[Dict[str, Any]] = None
    flagged: Optional[Dict[str, Any]] = None
    bookmarked: Optional[Dict[str, Any]] = None
    marked_for_review: Optional[Dict[str, Any]] = None
    start_time: Optional[datetime] = None


# ============ Announcements / messages ============

class AnnouncementIn(BaseModel):
    title: str
    message: str
    target_audience: Literal["all", "students", "teachers"] = "all"
    is_active: bool = True


class MessageIn(BaseModel):
    fname: Optional[str] = None
    feedback: Optional[str] = None
