"""
QuizAttemptTracker - Attempt limits, retakes, scoring and certificate eligibility.

The tracker re-validates every submission against the stored attempt history
instead of trusting the caller's view of `attempts_remaining`. Only submitted
attempts count; a begun attempt that is abandoned costs nothing.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from learnpath.errors import (
    AttemptLimitExceeded,
    ConcurrentSubmission,
    CooldownActive,
    QuizAlreadyPassed,
    UnknownNode,
)
from learnpath.schemas import (
    CompletionEvent,
    Course,
    Node,
    QuizAnswer,
    QuizResult,
    RetakeOptions,
)

from .grading import grade_quiz
from .progress import ProgressTracker

logger = logging.getLogger(__name__)


class QuizNodeState(str, Enum):
    """Lifecycle of a quiz node for one learner."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"                          # terminal
    FAILED = "failed"
    RETAKING = "retaking"                      # new attempt begun after a failure
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"  # terminal


def quiz_state(results: list[QuizResult], max_attempts: int, in_flight: bool = False) -> QuizNodeState:
    """Current quiz state from submitted results and the in-flight marker."""
    if any(r.passed for r in results):
        return QuizNodeState.PASSED
    if len(results) >= max_attempts:
        return QuizNodeState.ATTEMPTS_EXHAUSTED
    if in_flight:
        return QuizNodeState.RETAKING if results else QuizNodeState.IN_PROGRESS
    if not results:
        return QuizNodeState.NOT_STARTED
    return QuizNodeState.FAILED


def is_terminal_required_assessment(course: Course, node: Node) -> bool:
    """True if node is the last required quiz of its module."""
    module = course.get_module_for_node(node.id)
    if module is None:
        return False
    required_quizzes = [n for n in module.ordered_nodes() if n.type == "quiz" and n.is_required]
    return bool(required_quizzes) and required_quizzes[-1].id == node.id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizAttemptTracker:
    """
    Govern quiz attempts for one learner in one course.

    Combines the Course (quiz definitions, thresholds) with a ProgressTracker
    (submitted results, event log).
    """

    def __init__(
        self,
        store: ProgressTracker,
        course: Course,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize attempt tracker.

        Args:
            store: ProgressTracker holding the learner's results and events
            course: Course containing the quiz nodes
            clock: Returns the current time (injectable for tests)
        """
        self.store = store
        self.course = course
        self.clock = clock

    @property
    def learner_id(self) -> str:
        return self.store.learner_id

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_quiz_node(self, quiz_id: str) -> Node:
        """Resolve a quiz node by quiz id or node id."""
        node = self.course.find_quiz_node(quiz_id)
        if node is None:
            raise UnknownNode(quiz_id)
        return node

    def max_attempts_for(self, node: Node) -> int:
        return node.quiz.settings.max_attempts or self.course.settings.max_attempts

    def get_results(self, quiz_id: str) -> list[QuizResult]:
        node = self.get_quiz_node(quiz_id)
        return self.store.get_quiz_results(self.course.id, node.quiz.id)

    def get_latest_result(self, quiz_id: str) -> Optional[QuizResult]:
        results = self.get_results(quiz_id)
        return results[-1] if results else None

    def get_state(self, quiz_id: str) -> QuizNodeState:
        node = self.get_quiz_node(quiz_id)
        results = self.store.get_quiz_results(self.course.id, node.quiz.id)
        in_flight = self.store.get_inflight_attempt(self.course.id, node.quiz.id) is not None
        return quiz_state(results, self.max_attempts_for(node), in_flight)

    # -------------------------------------------------------------------------
    # Retake Rules
    # -------------------------------------------------------------------------

    def _next_allowed_at(self, node: Node, results: list[QuizResult]) -> Optional[datetime]:
        cooldown = node.quiz.settings.cooldown_hours
        if cooldown <= 0 or not results:
            return None
        return results[-1].completed_at + timedelta(hours=cooldown)

    def get_retake_options(self, quiz_id: str, now: Optional[datetime] = None) -> RetakeOptions:
        """
        Whether another attempt may be submitted right now.

        Returns:
            RetakeOptions; `allowed` requires an unpassed quiz with attempts
            remaining and, when a cooldown is configured, that the cooldown
            has elapsed
        """
        node = self.get_quiz_node(quiz_id)
        results = self.store.get_quiz_results(self.course.id, node.quiz.id)
        max_attempts = self.max_attempts_for(node)
        remaining = max(0, max_attempts - len(results))
        next_at = self._next_allowed_at(node, results)
        now = now or self.clock()

        passed = any(r.passed for r in results)
        allowed = remaining > 0 and not passed
        reason = None
        if passed:
            reason = "Quiz already passed"
        elif not allowed:
            reason = "No attempts remaining"
        elif next_at is not None and now < next_at:
            allowed = False
            reason = f"Cooldown active until {next_at.isoformat()}"

        return RetakeOptions(
            allowed=allowed,
            attempts_used=len(results),
            max_attempts=max_attempts,
            attempts_remaining=remaining,
            cooldown_hours=node.quiz.settings.cooldown_hours,
            next_attempt_allowed_at=next_at,
            reason=reason,
        )

    def is_retry_eligible(self, quiz_id: str) -> bool:
        """Retry is offered while attempts remain and the quiz is not passed."""
        return self.get_retake_options(quiz_id).allowed

    def _check_can_attempt(self, node: Node, results: list[QuizResult], now: datetime):
        if any(r.passed for r in results):
            raise QuizAlreadyPassed(node.quiz.id)
        max_attempts = self.max_attempts_for(node)
        if len(results) >= max_attempts:
            raise AttemptLimitExceeded(node.quiz.id, max_attempts)
        next_at = self._next_allowed_at(node, results)
        if next_at is not None and now < next_at:
            raise CooldownActive(node.quiz.id, next_at, next_at - now)

    # -------------------------------------------------------------------------
    # Attempt Lifecycle
    # -------------------------------------------------------------------------

    def begin_attempt(self, quiz_id: str) -> str:
        """
        Start (or resume) the single in-flight attempt for this quiz.

        Raises:
            QuizAlreadyPassed: If a previous attempt passed
            AttemptLimitExceeded: If no attempts remain
            CooldownActive: If the retake cooldown has not elapsed
        """
        node = self.get_quiz_node(quiz_id)
        results = self.store.get_quiz_results(self.course.id, node.quiz.id)
        self._check_can_attempt(node, results, self.clock())
        return self.store.set_inflight_attempt(self.course.id, node.quiz.id, uuid.uuid4().hex)

    def abandon_attempt(self, quiz_id: str) -> bool:
        """Discard the in-flight attempt without using up an attempt."""
        node = self.get_quiz_node(quiz_id)
        return self.store.clear_inflight_attempt(self.course.id, node.quiz.id)

    def submit_attempt(
        self,
        quiz_id: str,
        answers: list[QuizAnswer],
        time_taken: int = 0,
    ) -> QuizResult:
        """
        Grade and record one attempt.

        Args:
            quiz_id: Quiz id or id of the node hosting it
            answers: Learner answers (unanswered questions score 0)
            time_taken: Seconds spent on the attempt

        Returns:
            The new immutable QuizResult

        Raises:
            QuizAlreadyPassed: If a previous attempt passed (nothing is stored)
            AttemptLimitExceeded: If no attempts remain (nothing is stored)
            CooldownActive: If the retake cooldown has not elapsed
            ConcurrentSubmission: If another submission took this attempt number
        """
        node = self.get_quiz_node(quiz_id)
        quiz = node.quiz
        now = self.clock()
        results = self.store.get_quiz_results(self.course.id, quiz.id)
        self._check_can_attempt(node, results, now)

        question_results, score, max_score, percentage = grade_quiz(quiz, answers)
        passed = percentage >= self.course.settings.passing_threshold
        attempt_id = self.store.get_inflight_attempt(self.course.id, quiz.id) or uuid.uuid4().hex

        result = QuizResult(
            quiz_id=quiz.id,
            attempt_id=attempt_id,
            learner_id=self.learner_id,
            course_id=self.course.id,
            node_id=node.id,
            score=score,
            max_score=max_score,
            percentage=percentage,
            passed=passed,
            attempts_used=len(results) + 1,
            max_attempts=self.max_attempts_for(node),
            time_taken=time_taken,
            completed_at=now,
            questions=question_results,
            certificate_eligible=passed and is_terminal_required_assessment(self.course, node),
        )

        try:
            self.store.store_quiz_result(result)
        except sqlite3.IntegrityError as exc:
            raise ConcurrentSubmission(quiz.id, result.attempts_used) from exc

        logger.info(
            f"Stored attempt {result.attempts_used}/{result.max_attempts} for quiz {quiz.id}: "
            f"{percentage:.1f}% ({'passed' if passed else 'failed'})"
        )

        if passed or result.attempts_remaining == 0:
            completed = self.store.get_event_log(self.course.id).completed_node_ids()
            if node.id not in completed:
                self.store.record_completion(
                    self.course.id,
                    CompletionEvent(node_id=node.id, completed_at=now, time_spent=time_taken),
                )

        return result
