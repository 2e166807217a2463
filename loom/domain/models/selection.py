"""Selection and director contracts.

ThreadSelectionResult is the SelectionScheduler output for one target
chapter. ChapterDirective turns that selection into per-thread constraints
(what must happen to each primary thread, what must not be resolved yet).
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from loom.domain.models.physics import EvaluatedThread


class ThreadSelectionResult(BaseModel):
    """Ranked next-chapter selection with advisory reasoning.

    `reasoning` holds one string per primary inclusion, in the same order as
    `primary_threads`.
    """

    target_chapter: int
    primary_threads: List[EvaluatedThread] = Field(default_factory=list)
    secondary_threads: List[EvaluatedThread] = Field(default_factory=list)
    reasoning: List[str] = Field(default_factory=list)

    @property
    def primary_ids(self) -> List[str]:
        return [e.thread_id for e in self.primary_threads]

    @property
    def secondary_ids(self) -> List[str]:
        return [e.thread_id for e in self.secondary_threads]


class RequiredAction(str, Enum):
    """How a primary thread must be touched in the next chapter."""

    PROGRESS = "PROGRESS"
    ESCALATE = "ESCALATE"
    RESOLVE = "RESOLVE"
    FORESHADOW = "FORESHADOW"
    TOUCH = "TOUCH"


class ThreadAnchor(BaseModel):
    """A constraint binding one selected thread to a required action."""

    thread_id: str
    signature: str
    required_action: RequiredAction
    urgency: float
    karma_weight: float
    detail: str


class ForbiddenResolution(BaseModel):
    """A thread that must not be resolved in the next chapter."""

    thread_id: str
    signature: str
    reason: str


class ResolutionCheck(BaseModel):
    """Advisory verdict on whether resolving a thread now is well-timed."""

    valid: bool
    reason: str = ""


class ChapterDirective(BaseModel):
    """Constraint set for the next chapter (no prose)."""

    chapter_number: int
    anchors: List[ThreadAnchor] = Field(default_factory=list)
    forbidden_resolutions: List[ForbiddenResolution] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
