"""
learnpath Classroom - Runtime components for progression through a course.

This module provides:
- Engine: Derive lock/completion state and resolve Back/Next navigation
- CourseLoader: Load courses from catalog.db
- ProgressTracker: Store learner events, quiz results and certificates
- QuizAttemptTracker: Attempt limits, cooldowns and scoring
- CertificateIssuer: Issue certificates once per learner and course
- Navigator: Node sequencing and learner actions
- ScheduledRefresh: Consumer-owned periodic refresh
"""

from .engine import (
    NodeState,
    ModuleState,
    DerivedState,
    NextButtonState,
    NodeView,
    NavigationContext,
    flatten_course,
    ordering_errors,
    validate_ordering,
    derive_state,
    module_progress,
    locate_node,
    next_button_state,
    resolve_navigation,
)

from .grading import (
    is_answer_correct,
    grade_question,
    grade_quiz,
)

from .loader import (
    CourseLoader,
    CourseSummary,
    write_catalog,
)

from .progress import (
    ProgressTracker,
    DEFAULT_PROGRESS_DIR,
    DEFAULT_PROGRESS_DB,
)

from .attempts import (
    QuizAttemptTracker,
    QuizNodeState,
    quiz_state,
    is_terminal_required_assessment,
)

from .certificates import CertificateIssuer

from .navigator import (
    Navigator,
    NavigationNode,
    NavigationModule,
    ActionOutcome,
    SubmissionOutcome,
)

from .refresh import ScheduledRefresh

__all__ = [
    # Engine
    "NodeState",
    "ModuleState",
    "DerivedState",
    "NextButtonState",
    "NodeView",
    "NavigationContext",
    "flatten_course",
    "ordering_errors",
    "validate_ordering",
    "derive_state",
    "module_progress",
    "locate_node",
    "next_button_state",
    "resolve_navigation",
    # Grading
    "is_answer_correct",
    "grade_question",
    "grade_quiz",
    # Loader
    "CourseLoader",
    "CourseSummary",
    "write_catalog",
    # Progress
    "ProgressTracker",
    "DEFAULT_PROGRESS_DIR",
    "DEFAULT_PROGRESS_DB",
    # Attempts
    "QuizAttemptTracker",
    "QuizNodeState",
    "quiz_state",
    "is_terminal_required_assessment",
    # Certificates
    "CertificateIssuer",
    # Navigator
    "Navigator",
    "NavigationNode",
    "NavigationModule",
    "ActionOutcome",
    "SubmissionOutcome",
    # Refresh
    "ScheduledRefresh",
]
