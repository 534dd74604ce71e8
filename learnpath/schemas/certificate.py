"""
Certificate schema for learnpath.
"""

import hashlib
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Certificate(BaseModel):
    """Issued at most once per (learner, course)."""
    model_config = ConfigDict(frozen=True)

    id: str
    learner_id: str
    course_id: str
    certificate_number: str
    template_id: str
    quiz_id: Optional[str] = None
    attempt_id: Optional[str] = None
    score: float = Field(default=0.0, ge=0)
    percentage: float = Field(default=0.0, ge=0, le=100)
    issued_at: datetime

    @classmethod
    def compute_number(cls, learner_id: str, course_id: str) -> str:
        """Deterministic certificate number for a (learner, course) pair."""
        digest = hashlib.sha256(f"{learner_id}:{course_id}".encode("utf-8")).hexdigest()
        return f"CERT-{digest[:12].upper()}"
