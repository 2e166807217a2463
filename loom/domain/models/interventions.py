"""Author intervention commands and state-change outcomes.

Interventions arrive from the host as discrete commands, each targeting one
thread. They are applied atomically per thread and reported back as an
outcome: either the updated thread, or a rejection with a reason and the
thread left unchanged.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from loom.domain.models.thread import Thread, ThreadStatus


class ForceAttention(BaseModel):
    """Raise urgency so the thread leads the next selection pass."""

    kind: Literal["force_attention"] = "force_attention"
    thread_id: str


class AdjustKarmaWeight(BaseModel):
    """Bounded add to karma weight, re-clamped to [0, 100]."""

    kind: Literal["adjust_karma_weight"] = "adjust_karma_weight"
    thread_id: str
    delta: float


class MarkAbandoned(BaseModel):
    """Terminal transition to ABANDONED; a reason is required."""

    kind: Literal["mark_abandoned"] = "mark_abandoned"
    thread_id: str
    reason: str = Field(min_length=1)


class ResolveThread(BaseModel):
    """Record an explicit resolution event (terminal transition to CLOSED)."""

    kind: Literal["resolve"] = "resolve"
    thread_id: str
    note: Optional[str] = None


class ClearBloomingChapter(BaseModel):
    """Explicit author action unsetting the blooming chapter stamp."""

    kind: Literal["clear_blooming_chapter"] = "clear_blooming_chapter"
    thread_id: str


InterventionCommand = Annotated[
    Union[
        ForceAttention,
        AdjustKarmaWeight,
        MarkAbandoned,
        ResolveThread,
        ClearBloomingChapter,
    ],
    Field(discriminator="kind"),
]


class TransitionOutcome(BaseModel):
    """Result of a requested or automatic status transition."""

    thread: Thread
    previous_status: ThreadStatus
    new_status: ThreadStatus
    applied: bool
    reason: str = ""

    @property
    def changed(self) -> bool:
        return self.applied and self.previous_status != self.new_status


class InterventionOutcome(BaseModel):
    """Result of applying one author intervention.

    `thread` is None only when the targeted thread id was not found.
    """

    command_kind: str
    thread_id: str
    thread: Optional[Thread] = None
    applied: bool
    reason: str = ""
