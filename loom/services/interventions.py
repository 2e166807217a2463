"""Author interventions: discrete commands applied to one thread each.

Every command returns an InterventionOutcome. Rejections leave the thread
unchanged and carry a reason; nothing here raises into the caller.
"""

from typing import Optional

import structlog

from loom.domain.models.interventions import (
    AdjustKarmaWeight,
    ClearBloomingChapter,
    ForceAttention,
    InterventionCommand,
    InterventionOutcome,
    MarkAbandoned,
    ResolveThread,
)
from loom.domain.models.thread import Thread, ThreadStatus
from loom.services.status_transitions import transition

log = structlog.get_logger(__name__)


def apply_intervention(
    thread: Thread, command: InterventionCommand, chapter: int
) -> InterventionOutcome:
    """Apply one author command to `thread` at `chapter`.

    Terminal threads reject every command.
    """
    if thread.is_terminal:
        return _rejected(thread, command, f"Thread is {thread.status.value} (terminal)")

    if isinstance(command, ForceAttention):
        updated = thread.evolve(attention_forced=True)
        return _applied(updated, command, "Attention forced for the next selection pass")

    elif isinstance(command, AdjustKarmaWeight):
        karma = min(100.0, max(0.0, thread.karma_weight + command.delta))
        updated = thread.evolve(karma_weight=karma)
        return _applied(
            updated,
            command,
            f"Karma weight {thread.karma_weight:g} -> {karma:g}",
        )

    elif isinstance(command, MarkAbandoned):
        outcome = transition(thread, ThreadStatus.ABANDONED, chapter, command.reason)
        if not outcome.applied:
            return _rejected(thread, command, outcome.reason)
        return _applied(outcome.thread, command, command.reason)

    elif isinstance(command, ResolveThread):
        outcome = transition(thread, ThreadStatus.CLOSED, chapter, command.note or "Resolved")
        if not outcome.applied:
            return _rejected(thread, command, outcome.reason)
        return _applied(outcome.thread, command, outcome.reason)

    elif isinstance(command, ClearBloomingChapter):
        if thread.blooming_chapter is None:
            return _rejected(thread, command, "No blooming chapter is set")
        updated = thread.evolve(blooming_chapter=None)
        return _applied(
            updated, command, f"Cleared blooming chapter {thread.blooming_chapter}"
        )

    raise TypeError(f"Unsupported intervention command: {type(command).__name__}")


def _applied(
    thread: Thread, command: InterventionCommand, reason: str
) -> InterventionOutcome:
    log.info(
        "intervention_applied",
        kind=command.kind,
        thread_id=thread.id,
        reason=reason,
    )
    return InterventionOutcome(
        command_kind=command.kind,
        thread_id=thread.id,
        thread=thread,
        applied=True,
        reason=reason,
    )


def _rejected(
    thread: Optional[Thread], command: InterventionCommand, reason: str
) -> InterventionOutcome:
    log.warning(
        "intervention_rejected",
        kind=command.kind,
        thread_id=command.thread_id,
        reason=reason,
    )
    return InterventionOutcome(
        command_kind=command.kind,
        thread_id=command.thread_id,
        thread=thread,
        applied=False,
        reason=reason,
    )


def reject_unknown(command: InterventionCommand) -> InterventionOutcome:
    """Outcome for a command whose thread id is not in the population."""
    return _rejected(None, command, f"Unknown thread id: {command.thread_id}")
