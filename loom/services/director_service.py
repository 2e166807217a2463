"""DirectorService: turns a selection into next-chapter constraints.

A directive is plain data: one anchor per primary thread saying what must
happen to it, the threads that must not be resolved yet, and the selection
reasoning carried over as warnings. Prompt text is the host's job.
"""

from typing import Iterable, List, Optional

import structlog

from loom.core.config import LoomConfig
from loom.domain.models.physics import EvaluatedThread, PayoffHorizon, ThreadHealth
from loom.domain.models.selection import (
    ChapterDirective,
    ForbiddenResolution,
    RequiredAction,
    ResolutionCheck,
    ThreadAnchor,
    ThreadSelectionResult,
)
from loom.domain.models.thread import Thread, ThreadCategory, ThreadStatus

log = structlog.get_logger(__name__)


class DirectorService:
    """Builds ChapterDirective constraint sets and checks resolution timing."""

    def __init__(self, config: Optional[LoomConfig] = None):
        self.config = config or LoomConfig()

    def build_directive(
        self,
        evaluations: Iterable[EvaluatedThread],
        selection: ThreadSelectionResult,
        chapter: int,
    ) -> ChapterDirective:
        """Build the constraint set for `chapter`.

        Args:
            evaluations: Every evaluated thread (forbidden resolutions are
                drawn from the whole population, not just the selection)
            selection: SelectionScheduler output for the same chapter
            chapter: Chapter being planned

        Returns:
            ChapterDirective
        """
        anchors = [self.anchor(e) for e in selection.primary_threads]

        forbidden: List[ForbiddenResolution] = []
        for evaluated in evaluations:
            thread = evaluated.thread
            if thread.is_terminal:
                continue
            reason = self._forbidden_reason(thread, evaluated.health)
            if reason:
                forbidden.append(
                    ForbiddenResolution(
                        thread_id=thread.id,
                        signature=thread.signature,
                        reason=reason,
                    )
                )

        log.info(
            "directive_built",
            chapter=chapter,
            anchors=len(anchors),
            forbidden=len(forbidden),
        )
        return ChapterDirective(
            chapter_number=chapter,
            anchors=anchors,
            forbidden_resolutions=forbidden,
            warnings=list(selection.reasoning),
        )

    def anchor(self, evaluated: EvaluatedThread) -> ThreadAnchor:
        thread = evaluated.thread
        physics = evaluated.physics
        return ThreadAnchor(
            thread_id=thread.id,
            signature=thread.signature,
            required_action=self.required_action(evaluated),
            urgency=physics.urgency,
            karma_weight=thread.karma_weight,
            detail=(
                f"Physics-selected: urgency {physics.urgency:.1f}, "
                f"karma {thread.karma_weight:g}, silent {physics.distance} chapters"
            ),
        )

    def required_action(self, evaluated: EvaluatedThread) -> RequiredAction:
        """What the next chapter must do with a primary thread.

        RESOLVE    blooming and inside or past the payoff window
        PROGRESS   stalled
        ESCALATE   urgency in the urgent band
        FORESHADOW still a seed
        TOUCH      seed-tier thread kept visible without obligation
        PROGRESS   otherwise
        """
        thread = evaluated.thread
        horizon = evaluated.health.payoff_horizon

        if thread.status == ThreadStatus.BLOOMING and horizon in (
            PayoffHorizon.PERFECT_WINDOW,
            PayoffHorizon.OVERDUE,
        ):
            return RequiredAction.RESOLVE
        if thread.status == ThreadStatus.STALLED:
            return RequiredAction.PROGRESS
        if evaluated.physics.urgency >= self.config.urgency_urgent_threshold:
            return RequiredAction.ESCALATE
        if thread.status == ThreadStatus.SEED:
            return RequiredAction.FORESHADOW
        if thread.category == ThreadCategory.SEED:
            return RequiredAction.TOUCH
        return RequiredAction.PROGRESS

    def check_resolution(self, thread: Thread, health: ThreadHealth) -> ResolutionCheck:
        """Advisory verdict on resolving `thread` now."""
        if thread.is_terminal:
            return ResolutionCheck(
                valid=False, reason=f"Thread is already {thread.status.value}"
            )

        forbidden = self._forbidden_reason(thread, health)
        if forbidden:
            return ResolutionCheck(valid=False, reason=forbidden)

        if health.payoff_horizon == PayoffHorizon.OVERDUE:
            reason = "Payoff is overdue; resolve as soon as possible"
        else:
            reason = "Thread is inside its payoff window"
        if thread.resolution_criteria:
            reason += f"; confirm criteria: {thread.resolution_criteria}"
        return ResolutionCheck(valid=True, reason=reason)

    @staticmethod
    def _forbidden_reason(thread: Thread, health: ThreadHealth) -> Optional[str]:
        if thread.status == ThreadStatus.SEED:
            return "Thread is still a seed; it carries no obligation yet"
        if health.payoff_horizon == PayoffHorizon.BUILDING:
            return "Payoff window not yet reached"
        return None
