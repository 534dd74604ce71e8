"""
Progression engine - derive lock/completion state and resolve navigation.

Everything here is a pure function of (course, event log). Nothing is cached
and nothing is read back from stored flags, so derived state cannot drift
from the events that produced it.

Rules:
- Global order is (Module.order, Node.order) ascending.
- The first node is always unlocked.
- Any other node is locked unless its immediate predecessor is optional or
  completed. Only one step back is considered.
- A completed node is never locked.
- A module is locked iff its first node is locked; an empty module is
  unlocked and complete.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Union

from learnpath.errors import InvalidOrdering, MissingPrerequisiteData, ProgressionError, UnknownNode
from learnpath.schemas import (
    CompletionEvent,
    Course,
    LearnerEventLog,
    Module,
    Node,
    NodeStatus,
    QuizResult,
    node_status,
)

logger = logging.getLogger(__name__)


@dataclass
class NodeState:
    """Derived state of one node."""
    node_id: str
    module_id: str
    is_completed: bool
    is_locked: bool
    status: NodeStatus
    time_spent: int = 0   # seconds
    attempts: int = 0


@dataclass
class ModuleState:
    """Derived state of one module."""
    module_id: str
    is_completed: bool
    is_locked: bool
    progress: float  # 0..100, share of required nodes completed


@dataclass
class DerivedState:
    """Full derived state for one learner in one course."""
    order: list[str]
    nodes: dict[str, NodeState]
    modules: dict[str, ModuleState]
    progress: float
    is_completed: bool
    issues: list[ProgressionError] = field(default_factory=list)

    def node(self, node_id: str) -> NodeState:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNode(node_id) from None

    def module(self, module_id: str) -> ModuleState:
        try:
            return self.modules[module_id]
        except KeyError:
            raise UnknownNode(module_id) from None

    @property
    def completed_node_ids(self) -> set[str]:
        return {nid for nid, s in self.nodes.items() if s.is_completed}


# -----------------------------------------------------------------------------
# Ordering
# -----------------------------------------------------------------------------

def flatten_course(course: Course) -> list[tuple[Module, Node]]:
    """(module, node) pairs in global traversal order."""
    return list(course.iter_nodes())


def _find_ordering_problems(course: Course) -> tuple[Optional[int], list[InvalidOrdering]]:
    """
    Locate duplicate `order` values.

    Returns:
        Tuple of (global index of the first ambiguous node or None,
        list of InvalidOrdering errors)
    """
    modules = course.ordered_modules()
    starts = []
    position = 0
    for module in modules:
        starts.append(position)
        position += len(module.nodes)

    errors = []
    candidates = []

    for i in range(1, len(modules)):
        if modules[i].order == modules[i - 1].order:
            ids = [m.id for m in modules if m.order == modules[i].order]
            if not any(e.scope_id == course.id and e.order == modules[i].order for e in errors):
                errors.append(InvalidOrdering(course.id, modules[i].order, ids))
            candidates.append(starts[i - 1])

    for module, start in zip(modules, starts):
        nodes = module.ordered_nodes()
        for j in range(1, len(nodes)):
            if nodes[j].order == nodes[j - 1].order:
                ids = [n.id for n in nodes if n.order == nodes[j].order]
                if not any(e.scope_id == module.id and e.order == nodes[j].order for e in errors):
                    errors.append(InvalidOrdering(module.id, nodes[j].order, ids))
                candidates.append(start + j - 1)

    return (min(candidates) if candidates else None), errors


def ordering_errors(course: Course) -> list[InvalidOrdering]:
    """Every duplicate module or node `order` in the course."""
    return _find_ordering_problems(course)[1]


def validate_ordering(course: Course) -> None:
    """Raise InvalidOrdering if any module or node order collides."""
    errors = ordering_errors(course)
    if errors:
        raise errors[0]


# -----------------------------------------------------------------------------
# Derivation
# -----------------------------------------------------------------------------

def derive_state(
    course: Course,
    events: Union[LearnerEventLog, Iterable[CompletionEvent]] = (),
    *,
    quiz_results: Iterable[QuizResult] = (),
    strict: bool = False,
) -> DerivedState:
    """
    Derive node and module state from a course and a learner's events.

    Args:
        course: Course definition from the content provider
        events: Event log or iterable of completion events
        quiz_results: Submitted quiz results, used only for attempt counts
        strict: Raise InvalidOrdering instead of failing closed

    Returns:
        DerivedState for every node and module in the course
    """
    if isinstance(events, LearnerEventLog):
        completions = list(events.completions)
    else:
        completions = list(events)

    pairs = flatten_course(course)
    known_ids = {node.id for _, node in pairs}
    issues: list[ProgressionError] = []

    completed_ids: set[str] = set()
    time_spent: dict[str, int] = {}
    stray: list[str] = []
    for event in completions:
        if event.node_id not in known_ids:
            if event.node_id not in stray:
                stray.append(event.node_id)
            continue
        completed_ids.add(event.node_id)
        time_spent[event.node_id] = time_spent.get(event.node_id, 0) + event.time_spent

    if stray:
        issue = MissingPrerequisiteData(stray, course.id)
        logger.warning(str(issue))
        issues.append(issue)

    attempts: dict[str, int] = {}
    for result in quiz_results:
        attempts[result.node_id] = attempts.get(result.node_id, 0) + 1

    ambiguity, ordering_errors = _find_ordering_problems(course)
    if ordering_errors:
        if strict:
            raise ordering_errors[0]
        logger.warning(f"Failing closed from position {ambiguity}: {ordering_errors[0]}")
        issues.extend(ordering_errors)

    nodes: dict[str, NodeState] = {}
    previous: Optional[Node] = None
    for index, (module, node) in enumerate(pairs):
        if ambiguity is not None and index >= ambiguity:
            is_completed, is_locked = False, True
        else:
            is_completed = node.id in completed_ids
            if previous is None or is_completed:
                is_locked = False
            else:
                is_locked = previous.is_required and not nodes[previous.id].is_completed

        nodes[node.id] = NodeState(
            node_id=node.id,
            module_id=module.id,
            is_completed=is_completed,
            is_locked=is_locked,
            status=node_status(is_completed, is_locked),
            time_spent=time_spent.get(node.id, 0),
            attempts=attempts.get(node.id, 0),
        )
        previous = node

    modules: dict[str, ModuleState] = {}
    for module in course.ordered_modules():
        modules[module.id] = _derive_module(module, nodes)

    required = [node for _, node in pairs if node.is_required]
    if required:
        done = sum(1 for node in required if nodes[node.id].is_completed)
        progress = 100.0 * done / len(required)
    else:
        progress = 100.0

    return DerivedState(
        order=[node.id for _, node in pairs],
        nodes=nodes,
        modules=modules,
        progress=progress,
        is_completed=all(m.is_completed for m in modules.values()),
        issues=issues,
    )


def _derive_module(module: Module, nodes: dict[str, NodeState]) -> ModuleState:
    ordered = module.ordered_nodes()
    if not ordered:
        return ModuleState(module_id=module.id, is_completed=True, is_locked=False, progress=100.0)

    required = [n for n in ordered if n.is_required]
    done = sum(1 for n in required if nodes[n.id].is_completed)
    return ModuleState(
        module_id=module.id,
        is_completed=done == len(required),
        is_locked=nodes[ordered[0].id].is_locked,
        progress=100.0 * done / len(required) if required else 100.0,
    )


def module_progress(state: DerivedState) -> dict[str, float]:
    """Per-module progress percentages keyed by module id."""
    return {mid: m.progress for mid, m in state.modules.items()}


# -----------------------------------------------------------------------------
# Navigation
# -----------------------------------------------------------------------------

class NextButtonState(str, Enum):
    """State of the Next control."""
    LOCKED = "locked"                                   # next node is locked
    COMPLETE_CURRENT_FIRST = "complete_current_first"   # current required node unfinished
    COURSE_COMPLETE = "course_complete"                 # no next node
    ENABLED = "enabled"

    @property
    def label(self) -> str:
        return {
            NextButtonState.LOCKED: "Locked",
            NextButtonState.COMPLETE_CURRENT_FIRST: "Complete Current",
            NextButtonState.COURSE_COMPLETE: "Course Complete",
            NextButtonState.ENABLED: "Next",
        }[self]

    @property
    def disabled(self) -> bool:
        return self is not NextButtonState.ENABLED


@dataclass
class NodeView:
    """A node paired with its derived state."""
    node: Node
    state: NodeState

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def is_required(self) -> bool:
        return self.node.is_required

    @property
    def is_completed(self) -> bool:
        return self.state.is_completed

    @property
    def is_locked(self) -> bool:
        return self.state.is_locked


@dataclass
class NavigationContext:
    """Previous/current/next nodes plus Back/Next control state."""
    previous_node: Optional[NodeView]
    current_node: NodeView
    next_node: Optional[NodeView]
    next_button: NextButtonState
    can_go_previous: bool
    retry_available: bool
    lock_reason: str


def locate_node(course: Course, node_id: str) -> tuple[int, int]:
    """(module_index, node_index) of a node in traversal order."""
    for m_idx, module in enumerate(course.ordered_modules()):
        for n_idx, node in enumerate(module.ordered_nodes()):
            if node.id == node_id:
                return m_idx, n_idx
    raise UnknownNode(node_id)


def next_button_state(current: NodeView, next_node: Optional[NodeView]) -> NextButtonState:
    if next_node is None:
        return NextButtonState.COURSE_COMPLETE
    if next_node.is_locked:
        return NextButtonState.LOCKED
    if current.is_required and not current.is_completed:
        return NextButtonState.COMPLETE_CURRENT_FIRST
    return NextButtonState.ENABLED


def _lock_reason(current: NodeView, next_node: Optional[NodeView]) -> str:
    if next_node is None:
        return "This is the last lesson in the course."
    if next_node.is_locked:
        if next_node.is_required and not current.is_completed:
            return "Complete the current lesson to unlock the next one."
        return "This lesson is locked. Complete previous lessons to unlock it."
    if current.is_required and not current.is_completed:
        return "Complete the current lesson before proceeding."
    return ""


def resolve_navigation(
    course: Course,
    state: DerivedState,
    current_module_index: int,
    current_node_index: int,
    retry_eligible: bool = False,
) -> NavigationContext:
    """
    Resolve previous/current/next nodes for a player position.

    Args:
        course: Course definition
        state: Derived state for the learner
        current_module_index: Position in the ordered module list
        current_node_index: Position in that module's ordered node list
        retry_eligible: Whether the caller allows a retry of the current node

    Returns:
        NavigationContext for rendering Back/Next controls

    Raises:
        IndexError: If the position does not exist
    """
    modules = course.ordered_modules()
    if not 0 <= current_module_index < len(modules):
        raise IndexError(f"Module index {current_module_index} out of range")
    module_nodes = modules[current_module_index].ordered_nodes()
    if not 0 <= current_node_index < len(module_nodes):
        raise IndexError(f"Node index {current_node_index} out of range")

    position = sum(len(m.nodes) for m in modules[:current_module_index]) + current_node_index
    pairs = flatten_course(course)

    def view(index: int) -> Optional[NodeView]:
        if 0 <= index < len(pairs):
            node = pairs[index][1]
            return NodeView(node=node, state=state.node(node.id))
        return None

    current = view(position)
    previous_node = view(position - 1)
    next_node = view(position + 1)

    return NavigationContext(
        previous_node=previous_node,
        current_node=current,
        next_node=next_node,
        next_button=next_button_state(current, next_node),
        can_go_previous=current_module_index > 0 or current_node_index > 0,
        retry_available=retry_eligible and current.node.type == "quiz",
        lock_reason=_lock_reason(current, next_node),
    )
