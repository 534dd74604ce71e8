"""
Progress tracking schemas for learnpath.

Defines Pydantic models for learner progress including:
- Node status values
- Completion events (the event log is the only source of truth)
- Per-module progress snapshots
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeStatus(str, Enum):
    LOCKED = "locked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def node_status(is_completed: bool, is_locked: bool) -> NodeStatus:
    """Status shown on node badges; completion wins over locking."""
    if is_completed:
        return NodeStatus.COMPLETED
    if is_locked:
        return NodeStatus.LOCKED
    return NodeStatus.IN_PROGRESS


class CompletionEvent(BaseModel):
    """A node was finished (clip watched through, quiz passed or exhausted)."""
    model_config = ConfigDict(frozen=True)

    node_id: str
    completed_at: datetime
    time_spent: int = Field(default=0, ge=0)  # seconds


class LearnerEventLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    learner_id: str = "default"
    course_id: Optional[str] = None
    completions: tuple[CompletionEvent, ...] = ()

    def with_event(self, event: CompletionEvent) -> "LearnerEventLog":
        return self.model_copy(update={"completions": self.completions + (event,)})

    def completed_node_ids(self) -> set[str]:
        return {e.node_id for e in self.completions}


class ProgressSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    module_id: str
    progress: float = Field(..., ge=0, le=100)
    recorded_at: datetime
