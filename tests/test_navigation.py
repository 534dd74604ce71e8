"""
Back/Next resolution tests.
"""

import pytest

from builders import clip, course, done, module, quiz_node, scenario_course
from learnpath.classroom.engine import (
    NextButtonState,
    derive_state,
    locate_node,
    resolve_navigation,
)
from learnpath.errors import UnknownNode


class TestNextButton:
    """Next button state machine."""

    def test_locked_next(self):
        c = scenario_course()
        nav = resolve_navigation(c, derive_state(c), 0, 0)
        assert nav.next_node.id == "n2"
        assert nav.next_button == NextButtonState.LOCKED
        assert nav.next_button.disabled
        assert nav.next_button.label == "Locked"
        assert nav.lock_reason == "Complete the current lesson to unlock the next one."

    def test_enabled_after_completion(self):
        c = scenario_course()
        nav = resolve_navigation(c, derive_state(c, done("n1")), 0, 0)
        assert nav.next_button == NextButtonState.ENABLED
        assert not nav.next_button.disabled
        assert nav.next_button.label == "Next"
        assert nav.lock_reason == ""

    def test_complete_current_first(self):
        # b is unlocked through completion while the required current node a is not done
        c = course(module("m1", 1, clip("a", 1), clip("b", 2)))
        nav = resolve_navigation(c, derive_state(c, done("b")), 0, 0)
        assert nav.next_button == NextButtonState.COMPLETE_CURRENT_FIRST
        assert nav.next_button.label == "Complete Current"
        assert nav.lock_reason == "Complete the current lesson before proceeding."

    def test_optional_current_does_not_block(self):
        c = course(module("m1", 1, clip("a", 1, required=False), clip("b", 2)))
        nav = resolve_navigation(c, derive_state(c), 0, 0)
        assert nav.next_button == NextButtonState.ENABLED

    def test_course_complete_at_last_node(self):
        c = scenario_course()
        nav = resolve_navigation(c, derive_state(c, done("n1", "n2")), 1, 0)
        assert nav.next_node is None
        assert nav.next_button == NextButtonState.COURSE_COMPLETE
        assert nav.next_button.disabled
        assert nav.lock_reason == "This is the last lesson in the course."

    def test_next_crosses_module_boundary(self):
        c = scenario_course()
        nav = resolve_navigation(c, derive_state(c, done("n1", "n2")), 0, 1)
        assert nav.next_node.id == "n3"
        assert nav.next_button == NextButtonState.ENABLED


class TestPreviousButton:

    def test_disabled_only_at_start(self):
        c = scenario_course()
        state = derive_state(c, done("n1", "n2"))
        assert not resolve_navigation(c, state, 0, 0).can_go_previous
        assert resolve_navigation(c, state, 0, 1).can_go_previous
        assert resolve_navigation(c, state, 1, 0).can_go_previous

    def test_previous_crosses_module_boundary(self):
        c = scenario_course()
        nav = resolve_navigation(c, derive_state(c, done("n1", "n2")), 1, 0)
        assert nav.previous_node.id == "n2"

    def test_previous_skips_empty_module(self):
        c = course(module("m1", 1, clip("a", 1)), module("m2", 2), module("m3", 3, clip("b", 1)))
        nav = resolve_navigation(c, derive_state(c, done("a")), 2, 0)
        assert nav.previous_node.id == "a"
        assert nav.can_go_previous


class TestRetry:

    def test_retry_only_for_quiz(self):
        c = scenario_course()
        state = derive_state(c, done("n1"))
        assert resolve_navigation(c, state, 0, 1, retry_eligible=True).retry_available
        assert not resolve_navigation(c, state, 0, 1, retry_eligible=False).retry_available
        assert not resolve_navigation(c, state, 0, 0, retry_eligible=True).retry_available


class TestPositions:

    def test_out_of_range_module(self):
        c = scenario_course()
        with pytest.raises(IndexError):
            resolve_navigation(c, derive_state(c), 5, 0)
        with pytest.raises(IndexError):
            resolve_navigation(c, derive_state(c), -1, 0)

    def test_out_of_range_node(self):
        c = scenario_course()
        with pytest.raises(IndexError):
            resolve_navigation(c, derive_state(c), 1, 1)

    def test_empty_module_has_no_position(self):
        c = course(module("m1", 1))
        with pytest.raises(IndexError):
            resolve_navigation(c, derive_state(c), 0, 0)

    def test_locate_node(self):
        c = course(
            module("m2", 2, quiz_node("q", 1)),
            module("m1", 1, clip("a", 1), clip("b", 2)),
        )
        assert locate_node(c, "b") == (0, 1)
        assert locate_node(c, "q") == (1, 0)
        with pytest.raises(UnknownNode):
            locate_node(c, "ghost")
