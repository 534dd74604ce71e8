"""
Error types for the learnpath progression engine.

All errors derive from ProgressionError so UI code can catch one base class.
Derivation never raises MissingPrerequisiteData or (by default) InvalidOrdering;
those are attached to DerivedState.issues instead.
"""

from datetime import datetime, timedelta
from typing import Optional


class ProgressionError(Exception):
    """Base class for progression engine errors."""


class InvalidOrdering(ProgressionError):
    """Module or node `order` values collide within their parent scope."""

    def __init__(self, scope_id: str, order: int, ids: list[str]):
        self.scope_id = scope_id
        self.order = order
        self.ids = ids
        super().__init__(
            f"Duplicate order {order} in {scope_id}: {', '.join(ids)}"
        )


class AttemptLimitExceeded(ProgressionError):
    """Quiz submission attempted with no attempts remaining."""

    def __init__(self, quiz_id: str, max_attempts: int):
        self.quiz_id = quiz_id
        self.max_attempts = max_attempts
        super().__init__(
            f"Quiz {quiz_id} allows {max_attempts} attempt(s); none remaining"
        )


class CooldownActive(ProgressionError):
    """Retake attempted before the cooldown window has elapsed."""

    def __init__(self, quiz_id: str, available_at: datetime, remaining: timedelta):
        self.quiz_id = quiz_id
        self.available_at = available_at
        self.remaining = remaining
        minutes = int(remaining.total_seconds() // 60)
        super().__init__(
            f"Quiz {quiz_id} can be retaken in {minutes} min (at {available_at.isoformat()})"
        )


class MissingPrerequisiteData(ProgressionError):
    """Event log references ids the course does not contain."""

    def __init__(self, missing_ids: list[str], course_id: Optional[str] = None):
        self.missing_ids = missing_ids
        self.course_id = course_id
        where = f" in course {course_id}" if course_id else ""
        super().__init__(
            f"Events reference unknown node(s){where}: {', '.join(missing_ids)}"
        )


class UnknownNode(ProgressionError, KeyError):
    """Lookup of a node or module id that is not part of the course."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"Unknown node: {self.node_id}"


class ConcurrentSubmission(ProgressionError):
    """Another submission already claimed this attempt number."""

    def __init__(self, quiz_id: str, attempt_number: int):
        self.quiz_id = quiz_id
        self.attempt_number = attempt_number
        super().__init__(
            f"Attempt {attempt_number} of quiz {quiz_id} was already submitted"
        )


class QuizAlreadyPassed(ProgressionError):
    """Submission or new attempt on a quiz the learner has already passed."""

    def __init__(self, quiz_id: str):
        self.quiz_id = quiz_id
        super().__init__(f"Quiz {quiz_id} is already passed")
