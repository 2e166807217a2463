"""Chapter activity and chapter-cycle result contracts."""

from typing import List, Set

from pydantic import BaseModel, Field

from loom.domain.models.interventions import TransitionOutcome
from loom.domain.models.thread import Thread


class ChapterActivity(BaseModel):
    """What happened to each thread in one finished chapter.

    A thread id may appear in several sets; the strongest event wins
    (resolved > progressed/escalated > regressed > mentioned).
    """

    chapter_number: int = Field(ge=0)
    mentioned: Set[str] = Field(default_factory=set)
    progressed: Set[str] = Field(default_factory=set)
    escalated: Set[str] = Field(default_factory=set)
    regressed: Set[str] = Field(default_factory=set)
    resolved: Set[str] = Field(default_factory=set)

    @property
    def touched(self) -> Set[str]:
        return (
            self.mentioned
            | self.progressed
            | self.escalated
            | self.regressed
            | self.resolved
        )


class ChapterCycleResult(BaseModel):
    """Threads after one chapter of accounting plus the status changes it caused."""

    chapter: int
    threads: List[Thread] = Field(default_factory=list)
    transitions: List[TransitionOutcome] = Field(default_factory=list)
