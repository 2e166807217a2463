"""Thread domain model for narrative-promise tracking across a long-running story.

A Thread is the persisted record of one open story promise: a subplot,
mystery, relationship arc or planted setup. It carries identity, authorial
classification, lifecycle status and the accounting fields that the chapter
cycle updates. Physical quantities (velocity, entropy, gravity, urgency) are
NOT stored here; they are recomputed on every pass by PhysicsCalculator.

Core Fields:
    - Identity: id, title, signature
    - Classification: category (authorial tier), status (lifecycle)
    - Accounting: payoff_debt, mention/progress counts, chapter stamps
    - Narrative: summary, resolution_criteria, participants
    - Overrides: attention_forced, intentional_abandonment

Data-quality anomalies (negative counts, chapters out of order, karma out of
range) are clamped by the model validators instead of rejected, so corrupted
history never crashes an evaluation pass.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

log = structlog.get_logger(__name__)


def _as_number(value: Any) -> Optional[float]:
    """Numeric view of a stored field; None when pydantic should judge it."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ThreadCategory(str, Enum):
    """Authorial importance tier, set at creation and rarely changed."""

    SOVEREIGN = "SOVEREIGN"
    """Load-bearing to the whole work; never silently dropped."""
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    SEED = "SEED"


class ThreadStatus(str, Enum):
    """Lifecycle status governed by StatusTransitionEngine."""

    SEED = "SEED"  # Mentioned, no obligation yet
    OPEN = "OPEN"  # Obligation exists
    ACTIVE = "ACTIVE"  # Actively shaping scenes
    BLOOMING = "BLOOMING"  # Payoff window opened
    STALLED = "STALLED"  # Mentioned but not advanced
    CLOSED = "CLOSED"  # Resolved on-screen
    ABANDONED = "ABANDONED"  # Dropped by the author

    @property
    def is_terminal(self) -> bool:
        return self in (ThreadStatus.CLOSED, ThreadStatus.ABANDONED)


class ProgressType(str, Enum):
    """Kind of the most recent substantive touch on a thread."""

    NONE = "NONE"
    ADVANCE = "ADVANCE"
    ESCALATION = "ESCALATION"
    RESOLUTION = "RESOLUTION"
    REGRESSION = "REGRESSION"


# Category rank for deterministic tie-breaking (higher = more important)
CATEGORY_RANK: Dict[ThreadCategory, int] = {
    ThreadCategory.SOVEREIGN: 3,
    ThreadCategory.MAJOR: 2,
    ThreadCategory.MINOR: 1,
    ThreadCategory.SEED: 0,
}


class Thread(BaseModel):
    """Persisted narrative thread record.

    Instances are immutable snapshots. Every change goes through `evolve`,
    which re-runs validation so clamping invariants hold after each update.

    Invariants (enforced by `_clamp_anomalies`):
        - 0 <= karma_weight <= 100
        - payoff_debt >= 0, mention_count >= 0, progress_count >= 0
        - 0 <= first_chapter <= last_mentioned_chapter
    """

    model_config = ConfigDict(frozen=True)

    # Identity
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    signature: str = Field(default="", description="Compact descriptor for dense UIs")

    # Classification
    category: ThreadCategory = ThreadCategory.MINOR
    status: ThreadStatus = ThreadStatus.OPEN

    # Mass (authorial importance weight)
    karma_weight: float = Field(default=50.0, description="Bounded to [0, 100]")

    # Accounting
    payoff_debt: float = Field(default=0.0, description="Accumulated reader expectation")
    first_chapter: int = 0
    last_mentioned_chapter: int = 0
    blooming_chapter: Optional[int] = None
    mention_count: int = 0
    progress_count: int = 0
    progress_chapters: List[int] = Field(
        default_factory=list,
        description="Recent chapters with a progression event (trimmed history)",
    )
    last_progress_type: ProgressType = ProgressType.NONE

    # State machine bookkeeping
    status_chapter: Optional[int] = Field(
        default=None, description="Chapter at which the current status was entered"
    )
    last_processed_chapter: Optional[int] = Field(
        default=None, description="Last chapter whose activity was accounted"
    )

    # Narrative content
    summary: str = ""
    resolution_criteria: Optional[str] = None
    participants: List[str] = Field(default_factory=list)

    # Author overrides
    attention_forced: bool = False
    intentional_abandonment: bool = False
    abandonment_reason: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _clamp_anomalies(cls, data: Any) -> Any:
        """Clamp out-of-range stored fields to the nearest valid value."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        thread_id = data.get("id")

        def _clamp(key: str, low: float, high: Optional[float] = None) -> None:
            value = _as_number(data.get(key))
            if value is None:
                return
            clamped = max(low, value)
            if high is not None:
                clamped = min(high, clamped)
            if clamped != value:
                log.warning(
                    "thread_field_clamped",
                    thread_id=thread_id,
                    field=key,
                    stored=value,
                    clamped=clamped,
                )
                data[key] = clamped

        _clamp("karma_weight", 0.0, 100.0)
        _clamp("payoff_debt", 0.0)
        _clamp("mention_count", 0)
        _clamp("progress_count", 0)
        _clamp("first_chapter", 0)
        _clamp("last_mentioned_chapter", 0)

        first = _as_number(data.get("first_chapter"))
        last = _as_number(data.get("last_mentioned_chapter"))
        if first is not None and last is not None and last < first:
            log.warning(
                "thread_chapters_out_of_order",
                thread_id=thread_id,
                first_chapter=first,
                last_mentioned_chapter=last,
            )
            data["last_mentioned_chapter"] = data["first_chapter"]

        return data

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def last_progress_chapter(self) -> Optional[int]:
        """Most recent chapter with a progression event, if any."""
        return max(self.progress_chapters) if self.progress_chapters else None

    def evolve(self, **changes: Any) -> "Thread":
        """Return a re-validated copy with `changes` applied."""
        return type(self).model_validate({**self.model_dump(), **changes})
