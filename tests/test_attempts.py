"""
Quiz attempt tests: limits, retakes, cooldowns and completion events.
"""

from datetime import timedelta

import pytest

from builders import (
    FakeClock,
    answers_scoring,
    clip,
    course,
    make_quiz,
    module,
    quiz_node,
    scenario_course,
)
from learnpath.classroom.attempts import (
    QuizAttemptTracker,
    QuizNodeState,
    is_terminal_required_assessment,
    quiz_state,
)
from learnpath.classroom.engine import derive_state
from learnpath.classroom.progress import ProgressTracker
from learnpath.errors import AttemptLimitExceeded, CooldownActive, QuizAlreadyPassed, UnknownNode


@pytest.fixture
def store(tmp_path):
    return ProgressTracker(tmp_path / "progress.db", learner_id="alice")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(store, clock):
    return QuizAttemptTracker(store, scenario_course(passing_threshold=80, max_attempts=3), clock)


@pytest.fixture
def quiz(tracker):
    return tracker.get_quiz_node("quiz-1").quiz


class TestScenarioB:
    """A failed first attempt leaves two retakes."""

    def test_first_attempt_fails(self, tracker, quiz):
        result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 60))
        assert result.percentage == 60.0
        assert not result.passed
        assert result.attempts_used == 1
        assert result.attempts_remaining == 2

        options = tracker.get_retake_options("quiz-1")
        assert options.allowed
        assert options.attempts_remaining == 2
        assert tracker.get_state("quiz-1") == QuizNodeState.FAILED

    def test_passing_on_threshold(self, tracker, quiz):
        result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 80))
        assert result.passed
        assert tracker.get_state("quiz-1") == QuizNodeState.PASSED


class TestScenarioC:
    """Submission with no attempts remaining is rejected."""

    def test_rejected_without_new_result(self, tracker, store, quiz):
        for percent in (60, 70, 75):
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, percent))

        with pytest.raises(AttemptLimitExceeded) as excinfo:
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        assert excinfo.value.max_attempts == 3
        assert store.count_attempts("course-1", "quiz-1") == 3
        assert tracker.get_state("quiz-1") == QuizNodeState.ATTEMPTS_EXHAUSTED
        assert not tracker.get_retake_options("quiz-1").allowed


class TestAttemptConservation:

    def test_attempts_used_counts_submissions(self, tracker, quiz):
        for k in range(1, 4):
            result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 50))
            assert result.attempts_used == k
            assert result.attempts_remaining == 3 - k

    def test_quiz_setting_overrides_course(self, store, clock):
        c = course(module("m1", 1, quiz_node("n1", 1, make_quiz("quiz-1", max_attempts=1))), max_attempts=5)
        tracker = QuizAttemptTracker(store, c, clock)
        quiz = tracker.get_quiz_node("quiz-1").quiz
        result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 0))
        assert result.max_attempts == 1
        assert result.attempts_remaining == 0
        with pytest.raises(AttemptLimitExceeded):
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))

    def test_lookup_by_node_id(self, tracker, quiz):
        result = tracker.submit_attempt("n2", answers_scoring(quiz, 100))
        assert result.quiz_id == "quiz-1"
        assert result.node_id == "n2"

    def test_unknown_quiz(self, tracker):
        with pytest.raises(UnknownNode):
            tracker.submit_attempt("quiz-404", [])


class TestCooldown:

    @pytest.fixture
    def cooldown_tracker(self, store, clock):
        c = course(module("m1", 1, quiz_node("n1", 1, make_quiz("quiz-1", cooldown_hours=2))))
        return QuizAttemptTracker(store, c, clock)

    def test_retake_blocked_during_cooldown(self, cooldown_tracker, clock):
        quiz = cooldown_tracker.get_quiz_node("quiz-1").quiz
        cooldown_tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))

        clock.advance(minutes=30)
        options = cooldown_tracker.get_retake_options("quiz-1")
        assert not options.allowed
        assert options.next_attempt_allowed_at == clock.now + timedelta(minutes=90)

        with pytest.raises(CooldownActive) as excinfo:
            cooldown_tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        assert excinfo.value.remaining == timedelta(minutes=90)

    def test_retake_allowed_after_cooldown(self, cooldown_tracker, clock):
        quiz = cooldown_tracker.get_quiz_node("quiz-1").quiz
        cooldown_tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))
        clock.advance(hours=2)
        assert cooldown_tracker.get_retake_options("quiz-1").allowed
        assert cooldown_tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100)).passed


class TestInFlightAttempts:

    def test_abandon_does_not_use_attempt(self, tracker, store):
        tracker.begin_attempt("quiz-1")
        assert tracker.get_state("quiz-1") == QuizNodeState.IN_PROGRESS
        assert tracker.abandon_attempt("quiz-1")
        assert store.count_attempts("course-1", "quiz-1") == 0
        assert tracker.get_state("quiz-1") == QuizNodeState.NOT_STARTED

    def test_single_inflight_attempt(self, tracker):
        first = tracker.begin_attempt("quiz-1")
        assert tracker.begin_attempt("quiz-1") == first

    def test_submission_uses_inflight_id(self, tracker, store, quiz):
        attempt_id = tracker.begin_attempt("quiz-1")
        result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        assert result.attempt_id == attempt_id
        assert store.get_inflight_attempt("course-1", "quiz-1") is None

    def test_retaking_state(self, tracker, quiz):
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 0))
        tracker.begin_attempt("quiz-1")
        assert tracker.get_state("quiz-1") == QuizNodeState.RETAKING

    def test_begin_rejected_when_exhausted(self, tracker, quiz):
        for _ in range(3):
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 0))
        with pytest.raises(AttemptLimitExceeded):
            tracker.begin_attempt("quiz-1")


class TestCompletionEvents:
    """Passing or exhausting a quiz appends one completion event."""

    def test_pass_completes_node(self, tracker, store, quiz):
        store.complete_node("course-1", "n1")
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 90))
        state = derive_state(tracker.course, store.get_event_log("course-1"))
        assert state.node("n2").is_completed
        assert not state.node("n3").is_locked
        assert state.module("m1").is_completed

    def test_fail_does_not_complete(self, tracker, store, quiz):
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))
        assert "n2" not in store.get_event_log("course-1").completed_node_ids()

    def test_exhaustion_completes_once(self, tracker, store, quiz):
        for _ in range(3):
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))
        log = store.get_event_log("course-1")
        assert [e.node_id for e in log.completions] == ["n2"]

    def test_pass_completes_once(self, tracker, store, quiz):
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        with pytest.raises(QuizAlreadyPassed):
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        assert [e.node_id for e in store.get_event_log("course-1").completions] == ["n2"]


class TestPassedIsTerminal:
    """No further attempts are accepted once a quiz is passed."""

    def test_submission_after_pass_rejected(self, tracker, store, quiz):
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        with pytest.raises(QuizAlreadyPassed) as excinfo:
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))
        assert excinfo.value.quiz_id == "quiz-1"
        assert store.count_attempts("course-1", "quiz-1") == 1
        assert tracker.get_latest_result("quiz-1").passed
        assert tracker.get_state("quiz-1") == QuizNodeState.PASSED

    def test_retake_options_after_pass(self, tracker, quiz):
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        options = tracker.get_retake_options("quiz-1")
        assert not options.allowed
        assert options.reason == "Quiz already passed"
        assert options.attempts_used == 1
        assert options.attempts_remaining == 2
        assert not tracker.is_retry_eligible("quiz-1")

    def test_begin_rejected_after_pass(self, tracker, store, quiz):
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        with pytest.raises(QuizAlreadyPassed):
            tracker.begin_attempt("quiz-1")
        assert store.get_inflight_attempt("course-1", "quiz-1") is None

    def test_pass_on_last_attempt_reports_passed(self, store, clock):
        c = course(module("m1", 1, quiz_node("n1", 1, make_quiz("quiz-1", max_attempts=1))))
        tracker = QuizAttemptTracker(store, c, clock)
        quiz = tracker.get_quiz_node("quiz-1").quiz
        tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        with pytest.raises(QuizAlreadyPassed):
            tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        assert tracker.get_retake_options("quiz-1").reason == "Quiz already passed"



class TestRemediation:

    def test_remediation_for_wrong_answers(self, tracker, quiz):
        result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 90))
        assert result.remediation_clip_ids == ["remedial-19", "remedial-20"]


class TestCertificateEligibility:

    def test_last_required_quiz_in_module(self):
        c = course(module(
            "m1", 1,
            quiz_node("a", 1, make_quiz("quiz-a")),
            quiz_node("b", 2, make_quiz("quiz-b")),
            quiz_node("c", 3, make_quiz("quiz-c"), required=False),
            clip("d", 4),
        ))
        assert not is_terminal_required_assessment(c, c.get_node("a"))
        assert is_terminal_required_assessment(c, c.get_node("b"))
        assert not is_terminal_required_assessment(c, c.get_node("c"))

    def test_eligible_only_when_passed(self, tracker, quiz):
        failed = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))
        assert not failed.certificate_eligible
        passed = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 100))
        assert passed.certificate_eligible


class TestQuizState:

    def test_transitions(self, tracker, quiz):
        assert quiz_state([], 3) == QuizNodeState.NOT_STARTED
        assert quiz_state([], 3, in_flight=True) == QuizNodeState.IN_PROGRESS
        result = tracker.submit_attempt("quiz-1", answers_scoring(quiz, 10))
        assert quiz_state([result], 3) == QuizNodeState.FAILED
        assert quiz_state([result], 3, in_flight=True) == QuizNodeState.RETAKING
        assert quiz_state([result], 1) == QuizNodeState.ATTEMPTS_EXHAUSTED
