"""Population-wide reports: ingestion, health and full evaluation snapshots."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from loom.domain.models.physics import EvaluatedThread
from loom.domain.models.selection import ChapterDirective, ThreadSelectionResult
from loom.domain.models.thread import Thread


class RejectedRecord(BaseModel):
    """A raw record refused at ingestion, with the reason."""

    record: Dict[str, Any] = Field(default_factory=dict)
    reason: str
    missing_fields: List[str] = Field(default_factory=list)


class IngestionResult(BaseModel):
    """Outcome of batch ingestion: admitted threads plus rejected records."""

    threads: List[Thread] = Field(default_factory=list)
    rejected: List[RejectedRecord] = Field(default_factory=list)


class LoomHealthReport(BaseModel):
    """Whole-story health summary for dashboards and alerts."""

    chapter: int
    overall_health: float = Field(ge=0, le=100)
    active_thread_count: int = 0
    urgent_thread_ids: List[str] = Field(default_factory=list)
    blooming_thread_ids: List[str] = Field(default_factory=list)
    stalled_thread_ids: List[str] = Field(default_factory=list)
    overdue_thread_ids: List[str] = Field(default_factory=list)
    unintentional_abandonments: int = 0


class LoomSnapshot(BaseModel):
    """Everything one evaluation pass produces for a target chapter."""

    chapter: int
    evaluations: List[EvaluatedThread] = Field(default_factory=list)
    selection: ThreadSelectionResult
    directive: ChapterDirective
    health: LoomHealthReport
