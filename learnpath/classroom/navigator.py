"""
Navigator - Node sequencing, lock checking and learner actions.

Provides:
- Next/previous node navigation
- Node availability from derived state
- Course tree with status indicators
- Clip completion and quiz submission as typed outcomes
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from learnpath.errors import ProgressionError, UnknownNode
from learnpath.schemas import (
    Certificate,
    Course,
    Module,
    Node,
    NodeStatus,
    ProgressSnapshot,
    QuizAnswer,
    QuizResult,
    RetakeOptions,
)

from .attempts import QuizAttemptTracker
from .certificates import CertificateIssuer
from .engine import (
    DerivedState,
    ModuleState,
    NavigationContext,
    NodeState,
    derive_state,
    locate_node,
    resolve_navigation,
)
from .progress import ProgressTracker


@dataclass
class NavigationNode:
    """Node with navigation metadata."""
    node: Node
    state: NodeState
    is_current: bool


@dataclass
class NavigationModule:
    """Module with nodes and navigation metadata."""
    module: Module
    state: ModuleState
    nodes: list[NavigationNode]
    completed_count: int
    total_count: int


@dataclass
class ActionOutcome:
    """Result of a learner action; exactly one of value/error is meaningful."""
    value: Any = None
    error: Optional[ProgressionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SubmissionOutcome:
    """Result of a quiz submission."""
    result: Optional[QuizResult] = None
    certificate: Optional[Certificate] = None
    error: Optional[ProgressionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Navigator:
    """
    Navigate through a course with lock checking.

    Combines a Course (content) with a ProgressTracker (learner events) and
    re-derives state from the full event log on every call.
    """

    def __init__(
        self,
        course: Course,
        progress: ProgressTracker,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize navigator.

        Args:
            course: Course from the content provider
            progress: ProgressTracker for the learner
            clock: Returns the current time (injectable for tests)
        """
        self.course = course
        self.progress = progress
        self.clock = clock
        self.attempts = QuizAttemptTracker(progress, course, clock)
        self.certificates = CertificateIssuer(progress, clock)
        self._order = [node.id for _, node in course.iter_nodes()]
        self._index = {nid: idx for idx, nid in enumerate(self._order)}

    @property
    def total_nodes(self) -> int:
        return len(self._order)

    def derive(self) -> DerivedState:
        """Derive current state from the learner's full event log."""
        return derive_state(
            self.course,
            self.progress.get_event_log(self.course.id),
            quiz_results=self.progress.get_quiz_results(self.course.id),
        )

    def _require_node(self, node_id: str) -> Node:
        node = self.course.get_node(node_id)
        if node is None:
            raise UnknownNode(node_id)
        return node

    # -------------------------------------------------------------------------
    # Availability Checking
    # -------------------------------------------------------------------------

    def get_node_status(self, node_id: str) -> NodeStatus:
        return self.derive().node(node_id).status

    def is_node_available(self, node_id: str) -> bool:
        """Check if a node can be opened."""
        return not self.derive().node(node_id).is_locked

    def get_available_nodes(self) -> list[Node]:
        """Get all nodes that can be opened or revisited."""
        state = self.derive()
        return [node for _, node in self.course.iter_nodes() if not state.nodes[node.id].is_locked]

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def get_first_node_id(self) -> Optional[str]:
        return self._order[0] if self._order else None

    def get_next_node_id(self, current_id: str) -> Optional[str]:
        """Get the ID of the next node in order."""
        if current_id not in self._index:
            return None
        idx = self._index[current_id] + 1
        return self._order[idx] if idx < len(self._order) else None

    def get_previous_node_id(self, current_id: str) -> Optional[str]:
        """Get the ID of the previous node in order."""
        if current_id not in self._index:
            return None
        idx = self._index[current_id] - 1
        return self._order[idx] if idx >= 0 else None

    def get_next_available_node_id(self, current_id: str) -> Optional[str]:
        """Get the next node that is not locked."""
        state = self.derive()
        next_id = self.get_next_node_id(current_id)
        while next_id:
            if not state.nodes[next_id].is_locked:
                return next_id
            next_id = self.get_next_node_id(next_id)
        return None

    def get_recommended_node_id(self) -> Optional[str]:
        """
        Get the node the learner should work on.

        Priority:
        1. Current node if unlocked and not completed
        2. First unlocked node that is not completed
        3. First node
        """
        state = self.derive()
        current_id = self.progress.get_current_node_id(self.course.id)
        if current_id in state.nodes and state.nodes[current_id].status == NodeStatus.IN_PROGRESS:
            return current_id

        for node_id in self._order:
            if state.nodes[node_id].status == NodeStatus.IN_PROGRESS:
                return node_id

        return self.get_first_node_id()

    def get_node_position(self, node_id: str) -> tuple[int, int]:
        """
        Get node position as (current, total).

        Returns (0, total) if node not found.
        """
        if node_id not in self._index:
            return (0, len(self._order))
        return (self._index[node_id] + 1, len(self._order))

    def get_navigation(self, node_id: Optional[str] = None) -> NavigationContext:
        """
        Back/Next context for a node (default: the recommended node).

        Retry is offered for quiz nodes the attempt tracker marks eligible.
        """
        node_id = node_id or self.get_recommended_node_id()
        if node_id is None:
            raise UnknownNode("<empty course>")
        node = self._require_node(node_id)
        module_index, node_index = locate_node(self.course, node_id)
        retry = node.type == "quiz" and self.attempts.is_retry_eligible(node.id)
        return resolve_navigation(self.course, self.derive(), module_index, node_index, retry)

    # -------------------------------------------------------------------------
    # Course Tree
    # -------------------------------------------------------------------------

    def get_navigation_tree(self) -> list[NavigationModule]:
        """
        Get full course tree with navigation metadata.

        Returns list of modules with nodes, each annotated with:
        - Derived state
        - Whether it's the current node
        """
        state = self.derive()
        current_id = self.progress.get_current_node_id(self.course.id)

        tree = []
        for module in self.course.ordered_modules():
            nodes = module.ordered_nodes()
            nav_nodes = [
                NavigationNode(node=n, state=state.nodes[n.id], is_current=n.id == current_id)
                for n in nodes
            ]
            tree.append(NavigationModule(
                module=module,
                state=state.modules[module.id],
                nodes=nav_nodes,
                completed_count=sum(1 for n in nav_nodes if n.state.is_completed),
                total_count=len(nodes),
            ))
        return tree

    def get_status_indicator(self, node_id: str) -> str:
        """
        Get status indicator for sidebar display.

        Returns:
            ✓ for completed
            → for current
            ○ for available
            ◌ for locked
        """
        current_id = self.progress.get_current_node_id(self.course.id)
        status = self.get_node_status(node_id)

        if status == NodeStatus.COMPLETED:
            return "✓"
        elif node_id == current_id and status == NodeStatus.IN_PROGRESS:
            return "→"
        elif status == NodeStatus.IN_PROGRESS:
            return "○"
        else:
            return "◌"

    # -------------------------------------------------------------------------
    # Learner Actions
    # -------------------------------------------------------------------------

    def open_node(self, node_id: str) -> bool:
        """
        Make a node current if it is not locked.

        Returns True if the node was opened, False if locked.
        """
        if not self.is_node_available(node_id):
            return False
        self.progress.set_current_node_id(self.course.id, node_id)
        return True

    def complete_node(self, node_id: str, time_spent: int = 0) -> Optional[str]:
        """
        Record a clip as watched to completion.

        Args:
            node_id: ID of the clip node
            time_spent: Seconds spent on the clip

        Returns:
            ID of the next unlocked node, or None if the course is finished

        Raises:
            ValueError: For quiz nodes, which complete through submit_quiz
        """
        node = self._require_node(node_id)
        if node.type == "quiz":
            raise ValueError(f"Quiz node {node_id} completes through quiz submission")
        self.progress.complete_node(self.course.id, node_id, time_spent, self.clock())
        return self.get_next_available_node_id(node_id)

    def start_quiz(self, quiz_id: str) -> ActionOutcome:
        """Begin an attempt; value is the attempt id."""
        try:
            return ActionOutcome(value=self.attempts.begin_attempt(quiz_id))
        except ProgressionError as exc:
            return ActionOutcome(error=exc)

    def abandon_quiz(self, quiz_id: str) -> bool:
        """Leave a quiz mid-attempt without using an attempt."""
        return self.attempts.abandon_attempt(quiz_id)

    def submit_quiz(
        self,
        quiz_id: str,
        answers: list[QuizAnswer],
        time_taken: int = 0,
    ) -> SubmissionOutcome:
        """
        Submit a quiz attempt and issue a certificate when eligible.

        Errors are returned in the outcome rather than raised.
        """
        try:
            result = self.attempts.submit_attempt(quiz_id, answers, time_taken)
        except ProgressionError as exc:
            return SubmissionOutcome(error=exc)

        certificate = self.certificates.issue_if_eligible(self.course, result)
        if certificate is not None:
            result = result.model_copy(update={"certificate_id": certificate.id})
        return SubmissionOutcome(result=result, certificate=certificate)

    def get_retake_options(self, quiz_id: str) -> RetakeOptions:
        return self.attempts.get_retake_options(quiz_id)

    # -------------------------------------------------------------------------
    # Progress History
    # -------------------------------------------------------------------------

    def record_progress_snapshot(self) -> list[ProgressSnapshot]:
        """Append the current per-module progress to the learner's history."""
        state = self.derive()
        now = self.clock()
        snapshots = [
            ProgressSnapshot(module_id=mid, progress=m.progress, recorded_at=now)
            for mid, m in state.modules.items()
        ]
        self.progress.record_snapshots(self.course.id, snapshots)
        return snapshots

    def course_with_history(self) -> Course:
        """The course with the learner's stored progress snapshots attached."""
        return self.course.append_progress(self.progress.get_snapshots(self.course.id))

    # -------------------------------------------------------------------------
    # Progress Summary
    # -------------------------------------------------------------------------

    def get_progress_summary(self) -> dict:
        """Get progress summary for display."""
        state = self.derive()
        completed = sum(1 for s in state.nodes.values() if s.is_completed)
        locked = sum(1 for s in state.nodes.values() if s.is_locked)

        module_stats = []
        for nav_module in self.get_navigation_tree():
            module_stats.append({
                "id": nav_module.module.id,
                "title": nav_module.module.title,
                "completed": nav_module.completed_count,
                "total": nav_module.total_count,
                "progress": round(nav_module.state.progress, 1),
                "is_locked": nav_module.state.is_locked,
                "is_completed": nav_module.state.is_completed,
            })

        certificate = self.certificates.get_certificate(self.course)
        return {
            "total_nodes": self.total_nodes,
            "completed": completed,
            "locked": locked,
            "in_progress": self.total_nodes - completed - locked,
            "completion_percent": round(state.progress, 1),
            "total_time_spent": sum(s.time_spent for s in state.nodes.values()),
            "modules": module_stats,
            "current_node_id": self.progress.get_current_node_id(self.course.id),
            "recommended_node_id": self.get_recommended_node_id(),
            "certificate_number": certificate.certificate_number if certificate else None,
            "issues": [str(issue) for issue in state.issues],
        }
