"""
Course structure schemas for learnpath.

Defines Pydantic models for the content a learner moves through:
- Node (clip or quiz), the smallest unit of content
- Module, an ordered group of nodes
- Course, an ordered group of modules plus course-level settings

Lock and completion flags are NOT part of these models. They are derived
from the learner's event log by learnpath.classroom.engine.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .progress import ProgressSnapshot
from .quiz import Quiz


class CourseSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    passing_threshold: float = Field(default=80.0, ge=0, le=100)  # percentage
    max_attempts: int = Field(default=3, ge=1)
    certificate_template_id: Optional[str] = None
    is_self_paced: bool = True
    due_date: Optional[datetime] = None
    prerequisites: frozenset[str] = frozenset()  # course IDs
    visibility: Literal["public", "private", "organization"] = "organization"


class Node(BaseModel):
    """A clip or quiz inside a module."""
    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["clip", "quiz"]
    order: int
    title: str = ""
    description: str = ""
    is_required: bool = True
    estimated_duration: float = Field(default=1.0, gt=0)  # minutes
    clip_id: Optional[str] = None
    quiz: Optional[Quiz] = None

    @model_validator(mode="after")
    def content_matches_type(self):
        if self.type == "quiz" and self.quiz is None:
            raise ValueError(f"Quiz node {self.id} has no quiz definition")
        if self.type == "clip" and self.quiz is not None:
            raise ValueError(f"Clip node {self.id} cannot carry a quiz")
        return self


class Module(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    order: int
    title: str = ""
    description: str = ""
    is_required: bool = True
    nodes: list[Node] = []

    def ordered_nodes(self) -> list[Node]:
        """Nodes in traversal order (insertion order is irrelevant)."""
        return sorted(self.nodes, key=lambda n: n.order)

    @computed_field
    @property
    def estimated_duration(self) -> float:
        return sum(n.estimated_duration for n in self.nodes)


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    description: str = ""
    modules: list[Module] = []
    settings: CourseSettings = CourseSettings()
    enrollment_date: Optional[datetime] = None
    progress: tuple[ProgressSnapshot, ...] = ()  # append-only history

    @model_validator(mode="after")
    def ids_unique(self):
        # Duplicate `order` values are tolerated here; derivation fails closed on them.
        module_ids = [m.id for m in self.modules]
        node_ids = [n.id for m in self.modules for n in m.nodes]
        if len(module_ids) != len(set(module_ids)):
            raise ValueError(f"Duplicate module ids in course {self.id}")
        if len(node_ids) != len(set(node_ids)):
            raise ValueError(f"Duplicate node ids in course {self.id}")
        return self

    def ordered_modules(self) -> list[Module]:
        return sorted(self.modules, key=lambda m: m.order)

    @computed_field
    @property
    def estimated_duration(self) -> float:
        return sum(m.estimated_duration for m in self.modules)

    def iter_nodes(self):
        """Yield (module, node) pairs in global traversal order."""
        for module in self.ordered_modules():
            for node in module.ordered_nodes():
                yield module, node

    def get_node(self, node_id: str) -> Optional[Node]:
        for _, node in self.iter_nodes():
            if node.id == node_id:
                return node
        return None

    def get_module_for_node(self, node_id: str) -> Optional[Module]:
        for module, node in self.iter_nodes():
            if node.id == node_id:
                return module
        return None

    def find_quiz_node(self, quiz_id: str) -> Optional[Node]:
        """Find the node that hosts a quiz, by quiz id or node id."""
        for _, node in self.iter_nodes():
            if node.quiz is not None and (node.quiz.id == quiz_id or node.id == quiz_id):
                return node
        return None

    def append_progress(self, snapshots: list[ProgressSnapshot]) -> "Course":
        """Return a copy with snapshots appended; this course is unchanged."""
        return self.model_copy(update={"progress": self.progress + tuple(snapshots)})
