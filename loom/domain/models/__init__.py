"""Domain models package."""

from .thread import Thread, ThreadCategory, ThreadStatus, ProgressType, CATEGORY_RANK
from .physics import (
    ThreadPhysics,
    ThreadHealth,
    EvaluatedThread,
    PayoffHorizon,
    PulseLevel,
)
from .selection import (
    ThreadSelectionResult,
    ChapterDirective,
    ThreadAnchor,
    ForbiddenResolution,
    RequiredAction,
    ResolutionCheck,
)
from .interventions import (
    ForceAttention,
    AdjustKarmaWeight,
    MarkAbandoned,
    ResolveThread,
    ClearBloomingChapter,
    InterventionCommand,
    InterventionOutcome,
    TransitionOutcome,
)
from .chapter import ChapterActivity, ChapterCycleResult
from .reports import IngestionResult, RejectedRecord, LoomHealthReport, LoomSnapshot

__all__ = [
    "Thread",
    "ThreadCategory",
    "ThreadStatus",
    "ProgressType",
    "CATEGORY_RANK",
    "ThreadPhysics",
    "ThreadHealth",
    "EvaluatedThread",
    "PayoffHorizon",
    "PulseLevel",
    "ThreadSelectionResult",
    "ChapterDirective",
    "ThreadAnchor",
    "ForbiddenResolution",
    "RequiredAction",
    "ResolutionCheck",
    "ForceAttention",
    "AdjustKarmaWeight",
    "MarkAbandoned",
    "ResolveThread",
    "ClearBloomingChapter",
    "InterventionCommand",
    "InterventionOutcome",
    "TransitionOutcome",
    "ChapterActivity",
    "ChapterCycleResult",
    "IngestionResult",
    "RejectedRecord",
    "LoomHealthReport",
    "LoomSnapshot",
]
