"""Derived per-thread views: physics and health.

These are projections recomputed from a stored Thread and a chapter index on
every evaluation pass. They are never persisted or mutated independently of
the thread they were computed from.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from loom.domain.models.thread import Thread


class PayoffHorizon(str, Enum):
    """Payoff-timing classification relative to resolution readiness."""

    BUILDING = "building"
    PERFECT_WINDOW = "perfect_window"
    OVERDUE = "overdue"


class PulseLevel(str, Enum):
    """Categorical presentation hint for dashboards."""

    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"
    GOLD = "gold"


class ThreadPhysics(BaseModel):
    """Instantaneous physical quantities of a thread at one chapter."""

    model_config = ConfigDict(frozen=True)

    chapter: int = Field(description="Chapter the quantities were computed for")
    mass: float = Field(ge=0, le=100)
    velocity: float = Field(description="Signed progression rate")
    entropy: float = Field(ge=0, le=100)
    distance: int = Field(ge=0, description="Chapters of narrative silence")
    age: int = Field(ge=0, description="Chapters since introduction")
    gravity: float = Field(ge=0)
    urgency: float = Field(ge=0, description="Composite ranking key")


class ThreadHealth(BaseModel):
    """Read-only health lens over a thread's physics and status."""

    model_config = ConfigDict(frozen=True)

    thread_id: str
    signature: str
    health_score: float = Field(ge=0, le=100)
    pulse_level: PulseLevel
    crack_effect: bool = Field(description="Critically high entropy")
    gold_glow: bool = Field(description="BLOOMING and inside the perfect window")
    payoff_horizon: PayoffHorizon
    chapters_until_critical: Optional[int] = Field(
        default=None,
        description="Chapters of further silence until critical urgency",
    )


class EvaluatedThread(BaseModel):
    """A thread annotated with its physics and health for one chapter."""

    model_config = ConfigDict(frozen=True)

    thread: Thread
    physics: ThreadPhysics
    health: ThreadHealth

    @property
    def thread_id(self) -> str:
        return self.thread.id

    @property
    def urgency_score(self) -> float:
        return self.physics.urgency
