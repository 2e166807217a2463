"""StatusTransitionEngine: the thread lifecycle state machine.

States: SEED, OPEN, ACTIVE, BLOOMING, STALLED, CLOSED, ABANDONED.

Automatic edges (evaluated once per chapter-advance call):
    SEED     -> OPEN      first substantive mention after introduction
    OPEN     -> ACTIVE    progress_count reaches active_progress_threshold
    ACTIVE   -> BLOOMING  payoff horizon reaches the perfect window
    OPEN/ACTIVE/BLOOMING -> STALLED   silence exceeds stall threshold
    STALLED  -> ACTIVE    a progression event after stalling

Explicit edges (author / resolution events):
    any non-terminal -> CLOSED
    any non-terminal -> ABANDONED (sets intentional_abandonment)

CLOSED and ABANDONED are terminal. Automatic transitions fire at most once
per thread per chapter: a thread whose status was entered at the chapter
being evaluated is left alone, so repeated calls cannot oscillate.
"""

from typing import Dict, FrozenSet, Optional, Tuple

import structlog

from loom.core.config import LoomConfig
from loom.domain.models.interventions import TransitionOutcome
from loom.domain.models.physics import PayoffHorizon, ThreadPhysics
from loom.domain.models.thread import ProgressType, Thread, ThreadStatus
from loom.services.health_evaluator import HealthEvaluator
from loom.services.physics_calculator import PhysicsCalculator

log = structlog.get_logger(__name__)


VALID_TRANSITIONS: Dict[ThreadStatus, FrozenSet[ThreadStatus]] = {
    ThreadStatus.SEED: frozenset(
        {ThreadStatus.OPEN, ThreadStatus.CLOSED, ThreadStatus.ABANDONED}
    ),
    ThreadStatus.OPEN: frozenset(
        {
            ThreadStatus.ACTIVE,
            ThreadStatus.STALLED,
            ThreadStatus.CLOSED,
            ThreadStatus.ABANDONED,
        }
    ),
    ThreadStatus.ACTIVE: frozenset(
        {
            ThreadStatus.BLOOMING,
            ThreadStatus.STALLED,
            ThreadStatus.CLOSED,
            ThreadStatus.ABANDONED,
        }
    ),
    ThreadStatus.BLOOMING: frozenset(
        {ThreadStatus.STALLED, ThreadStatus.CLOSED, ThreadStatus.ABANDONED}
    ),
    ThreadStatus.STALLED: frozenset(
        {ThreadStatus.ACTIVE, ThreadStatus.CLOSED, ThreadStatus.ABANDONED}
    ),
    ThreadStatus.CLOSED: frozenset(),
    ThreadStatus.ABANDONED: frozenset(),
}

_STALLABLE = (ThreadStatus.OPEN, ThreadStatus.ACTIVE, ThreadStatus.BLOOMING)


def can_transition(current: ThreadStatus, target: ThreadStatus) -> bool:
    """Check whether `current -> target` is an edge of the state machine."""
    return target in VALID_TRANSITIONS[current]


def transition(
    thread: Thread,
    target: ThreadStatus,
    chapter: int,
    reason: Optional[str] = None,
) -> TransitionOutcome:
    """Apply one status transition if it is legal.

    Illegal requests are rejected: the thread is returned unchanged with
    applied=False and a reason.

    Side effects on the returned copy:
        - status_chapter stamped with `chapter`
        - BLOOMING: blooming_chapter stamped once, never overwritten
        - ABANDONED: intentional_abandonment set, reason recorded
        - terminal: forced attention cleared
    """
    current = thread.status

    if current == target:
        return TransitionOutcome(
            thread=thread,
            previous_status=current,
            new_status=current,
            applied=False,
            reason=f"Thread already {current.value}",
        )

    if not can_transition(current, target):
        log.warning(
            "status_transition_rejected",
            thread_id=thread.id,
            from_status=current.value,
            to_status=target.value,
        )
        return TransitionOutcome(
            thread=thread,
            previous_status=current,
            new_status=current,
            applied=False,
            reason=f"Illegal transition {current.value} -> {target.value}",
        )

    changes = {"status": target, "status_chapter": chapter}

    if target == ThreadStatus.BLOOMING and thread.blooming_chapter is None:
        changes["blooming_chapter"] = chapter
    if target == ThreadStatus.ABANDONED:
        changes["intentional_abandonment"] = True
        changes["abandonment_reason"] = reason
    if target == ThreadStatus.CLOSED:
        changes["last_progress_type"] = ProgressType.RESOLUTION
    if target.is_terminal:
        changes["attention_forced"] = False

    updated = thread.evolve(**changes)

    log.info(
        "status_transition_applied",
        thread_id=thread.id,
        from_status=current.value,
        to_status=target.value,
        chapter=chapter,
        reason=reason,
    )
    return TransitionOutcome(
        thread=updated,
        previous_status=current,
        new_status=target,
        applied=True,
        reason=reason or "",
    )


class StatusTransitionEngine:
    """Evaluates automatic lifecycle transitions for one thread per call."""

    def __init__(
        self,
        config: Optional[LoomConfig] = None,
        physics_calculator: Optional[PhysicsCalculator] = None,
        health_evaluator: Optional[HealthEvaluator] = None,
    ):
        self.config = config or LoomConfig()
        self.physics_calculator = physics_calculator or PhysicsCalculator(self.config)
        self.health_evaluator = health_evaluator or HealthEvaluator(self.config)

    def next_status(
        self,
        thread: Thread,
        physics: ThreadPhysics,
        horizon: PayoffHorizon,
    ) -> Optional[Tuple[ThreadStatus, str]]:
        """Decide the automatic transition for `thread`, if any.

        Returns:
            (target status, reason) or None when no edge fires
        """
        cfg = self.config
        status = thread.status
        stalled = physics.distance > cfg.stall_threshold_chapters

        if status.is_terminal:
            return None

        if status in _STALLABLE and stalled:
            return (
                ThreadStatus.STALLED,
                f"Silent for {physics.distance} chapters "
                f"(threshold {cfg.stall_threshold_chapters})",
            )

        if status == ThreadStatus.SEED:
            if (
                thread.last_mentioned_chapter > thread.first_chapter
                or thread.progress_count > 0
            ):
                return ThreadStatus.OPEN, "First substantive mention after introduction"
            return None

        if status == ThreadStatus.OPEN:
            if thread.progress_count >= cfg.active_progress_threshold:
                return (
                    ThreadStatus.ACTIVE,
                    f"Progress count {thread.progress_count} reached "
                    f"{cfg.active_progress_threshold}",
                )
            return None

        if status == ThreadStatus.ACTIVE:
            if horizon in (PayoffHorizon.PERFECT_WINDOW, PayoffHorizon.OVERDUE):
                return ThreadStatus.BLOOMING, f"Payoff horizon reached {horizon.value}"
            return None

        if status == ThreadStatus.BLOOMING:
            return None

        if status == ThreadStatus.STALLED:
            last_progress = thread.last_progress_chapter
            if (
                last_progress is not None
                and not stalled
                and (thread.status_chapter is None or last_progress > thread.status_chapter)
            ):
                return ThreadStatus.ACTIVE, f"Progressed at chapter {last_progress} after stalling"
            return None

        raise ValueError(f"Unhandled thread status: {status}")

    def advance(self, thread: Thread, chapter: int) -> TransitionOutcome:
        """Apply at most one automatic transition for `chapter`.

        Idempotent: advance(advance(t, c).thread, c) leaves the thread as is.
        """
        if thread.status_chapter is not None and thread.status_chapter >= chapter:
            return TransitionOutcome(
                thread=thread,
                previous_status=thread.status,
                new_status=thread.status,
                applied=False,
                reason=f"Status already changed at chapter {thread.status_chapter}",
            )

        physics = self.physics_calculator.calculate(thread, chapter)
        horizon = self.health_evaluator.payoff_horizon(thread, physics)
        decision = self.next_status(thread, physics, horizon)

        if decision is None:
            return TransitionOutcome(
                thread=thread,
                previous_status=thread.status,
                new_status=thread.status,
                applied=False,
                reason="No transition",
            )

        target, reason = decision
        return transition(thread, target, chapter, reason)

    def close(
        self, thread: Thread, chapter: int, note: Optional[str] = None
    ) -> TransitionOutcome:
        """Record an explicit resolution event."""
        return transition(thread, ThreadStatus.CLOSED, chapter, note or "Resolved")

    def abandon(self, thread: Thread, chapter: int, reason: str) -> TransitionOutcome:
        """Author-declared abandonment (terminal)."""
        return transition(thread, ThreadStatus.ABANDONED, chapter, reason)
