"""
Quiz schemas for learnpath.

Defines Pydantic models for:
- Quiz definitions with a closed set of question types
- Per-question grading results
- Quiz results (one immutable record per submitted attempt)
- Retake options
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


# -----------------------------------------------------------------------------
# Question types
# -----------------------------------------------------------------------------

class QuestionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    question: str
    points: float = Field(default=1.0, ge=0)
    order: int = 0
    explanation: Optional[str] = None
    remediation_clip_id: Optional[str] = None  # shown to the learner on a wrong answer


class MultipleChoiceQuestion(QuestionBase):
    """Single or multi-select question. A list answer must match as a set."""
    type: Literal["multiple_choice"] = "multiple_choice"
    options: list[str] = Field(..., min_length=2)
    correct_answer: Union[str, list[str]]

    @model_validator(mode="after")
    def answer_in_options(self):
        expected = [self.correct_answer] if isinstance(self.correct_answer, str) else self.correct_answer
        unknown = [a for a in expected if a not in self.options]
        if not expected or unknown:
            raise ValueError(f"correct_answer must be among options, got {unknown or expected}")
        return self


class TrueFalseQuestion(QuestionBase):
    type: Literal["true_false"] = "true_false"
    correct_answer: bool


class ShortAnswerQuestion(QuestionBase):
    """Free-text question compared after trimming whitespace."""
    type: Literal["short_answer"] = "short_answer"
    correct_answer: str = Field(..., min_length=1)
    accepted_answers: list[str] = []  # alternative spellings
    case_sensitive: bool = False


QuizQuestion = Annotated[
    Union[MultipleChoiceQuestion, TrueFalseQuestion, ShortAnswerQuestion],
    Field(discriminator="type"),
]


# -----------------------------------------------------------------------------
# Quiz definition
# -----------------------------------------------------------------------------

class QuizSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: Optional[int] = Field(default=None, ge=1)  # overrides the course setting
    cooldown_hours: float = Field(default=0.0, ge=0)
    time_limit: Optional[int] = Field(default=None, gt=0)   # minutes
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = True
    allow_review: bool = True


class Quiz(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    questions: list[QuizQuestion] = []
    settings: QuizSettings = QuizSettings()

    @model_validator(mode="after")
    def question_ids_unique(self):
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate question ids in quiz {self.id}")
        return self

    @computed_field
    @property
    def max_score(self) -> float:
        return sum(q.points for q in self.questions)

    def ordered_questions(self) -> list:
        return sorted(self.questions, key=lambda q: q.order)


# -----------------------------------------------------------------------------
# Submission and results
# -----------------------------------------------------------------------------

AnswerValue = Union[str, bool, list[str]]


class QuizAnswer(BaseModel):
    question_id: str
    answer: AnswerValue


class QuestionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    question: str
    type: Literal["multiple_choice", "true_false", "short_answer"]
    user_answer: Optional[AnswerValue] = None
    correct_answer: AnswerValue
    is_correct: bool
    points_earned: float = Field(..., ge=0)
    max_points: float = Field(..., ge=0)
    explanation: Optional[str] = None
    remediation_clip_id: Optional[str] = None


class QuizResult(BaseModel):
    """One completed attempt. Never updated; later attempts supersede it."""
    model_config = ConfigDict(frozen=True)

    quiz_id: str
    attempt_id: str
    learner_id: str
    course_id: str
    node_id: str
    score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    percentage: float = Field(..., ge=0, le=100)
    passed: bool
    attempts_used: int = Field(..., ge=1)
    max_attempts: int = Field(..., ge=1)
    time_taken: int = Field(default=0, ge=0)  # seconds
    completed_at: datetime
    questions: list[QuestionResult] = []
    certificate_eligible: bool = False
    certificate_id: Optional[str] = None

    @computed_field
    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts_used)

    @property
    def remediation_clip_ids(self) -> list[str]:
        """Remediation clips for the questions answered incorrectly."""
        return [
            q.remediation_clip_id for q in self.questions
            if not q.is_correct and q.remediation_clip_id
        ]


def compute_percentage(score: float, max_score: float) -> float:
    """Percentage of max_score earned; an empty quiz counts as 100."""
    if max_score <= 0:
        return 100.0
    return min(100.0, 100.0 * score / max_score)


class RetakeOptions(BaseModel):
    allowed: bool
    attempts_used: int
    max_attempts: int
    attempts_remaining: int
    cooldown_hours: float = 0.0
    next_attempt_allowed_at: Optional[datetime] = None
    reason: Optional[str] = None
