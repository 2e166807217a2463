"""SelectionScheduler: bounded next-chapter thread selection.

Algorithm:
    1. Drop terminal and intentionally abandoned threads.
    2. Every non-terminal SOVEREIGN thread is primary, regardless of urgency.
       If there are more of them than max_primary_threads, all are still
       returned: the cap is a soft limit and SOVEREIGN is its one override.
    3. Rank the rest by urgency desc, category rank desc, payoff debt desc,
       id asc (a total order, so results are reproducible).
    4. Every thread with forced attention follows the SOVEREIGN entries, in
       ranking order. These may also push past max_primary_threads: the
       author asked for them in this chapter.
    5. Fill the remaining primary slots from the ranking. Threads with no
       obligation yet (SEED status or SEED category) never take a ranked
       primary slot.
    6. Fill secondary slots with the next-ranked entries.
    7. One reasoning string per primary inclusion.
"""

from typing import Iterable, List, Optional, Tuple

import structlog

from loom.core.config import LoomConfig
from loom.domain.models.physics import EvaluatedThread, PayoffHorizon
from loom.domain.models.selection import ThreadSelectionResult
from loom.domain.models.thread import (
    CATEGORY_RANK,
    Thread,
    ThreadCategory,
    ThreadStatus,
)
from loom.services.health_evaluator import HealthEvaluator
from loom.services.physics_calculator import PhysicsCalculator

log = structlog.get_logger(__name__)


def ranking_key(evaluated: EvaluatedThread) -> Tuple[float, int, float, str]:
    """Sort key for the ranked list (ascending sort gives the selection order)."""
    thread = evaluated.thread
    return (
        -evaluated.physics.urgency,
        -CATEGORY_RANK[thread.category],
        -thread.payoff_debt,
        thread.id,
    )


class SelectionScheduler:
    """Chooses primary and secondary threads for a target chapter."""

    def __init__(
        self,
        config: Optional[LoomConfig] = None,
        physics_calculator: Optional[PhysicsCalculator] = None,
        health_evaluator: Optional[HealthEvaluator] = None,
    ):
        self.config = config or LoomConfig()
        self.physics_calculator = physics_calculator or PhysicsCalculator(self.config)
        self.health_evaluator = health_evaluator or HealthEvaluator(self.config)

    def evaluate(self, thread: Thread, target_chapter: int) -> EvaluatedThread:
        physics = self.physics_calculator.calculate(thread, target_chapter)
        health = self.health_evaluator.evaluate(thread, physics)
        return EvaluatedThread(thread=thread, physics=physics, health=health)

    def select(
        self, threads: Iterable[Thread], target_chapter: int
    ) -> ThreadSelectionResult:
        """Select threads for `target_chapter` from raw thread records."""
        evaluations = [self.evaluate(t, target_chapter) for t in threads]
        return self.select_evaluated(evaluations, target_chapter)

    def select_evaluated(
        self, evaluations: Iterable[EvaluatedThread], target_chapter: int
    ) -> ThreadSelectionResult:
        """Select threads from already-evaluated threads.

        Args:
            evaluations: Threads with physics and health for `target_chapter`
            target_chapter: Chapter being planned

        Returns:
            ThreadSelectionResult (empty lists for an empty population)
        """
        cfg = self.config
        eligible = self._eligible(evaluations)

        sovereign = sorted(
            (e for e in eligible if e.thread.category == ThreadCategory.SOVEREIGN),
            key=ranking_key,
        )
        rest = sorted(
            (e for e in eligible if e.thread.category != ThreadCategory.SOVEREIGN),
            key=ranking_key,
        )
        forced = [e for e in rest if e.thread.attention_forced]
        ranked = [e for e in rest if not e.thread.attention_forced]

        if len(sovereign) > cfg.max_primary_threads:
            log.warning(
                "sovereign_cap_exceeded",
                target_chapter=target_chapter,
                sovereign_count=len(sovereign),
                max_primary_threads=cfg.max_primary_threads,
            )

        primary: List[EvaluatedThread] = sovereign + forced
        if forced and len(primary) > cfg.max_primary_threads:
            log.warning(
                "forced_attention_over_cap",
                target_chapter=target_chapter,
                forced=[e.thread_id for e in forced],
                primary_count=len(primary),
                max_primary_threads=cfg.max_primary_threads,
            )

        remaining: List[EvaluatedThread] = []
        for evaluated in ranked:
            if len(primary) < cfg.max_primary_threads and self._primary_eligible(
                evaluated
            ):
                primary.append(evaluated)
            else:
                remaining.append(evaluated)

        secondary = remaining[: cfg.max_secondary_threads]
        reasoning = [self.explain(e) for e in primary]

        log.info(
            "threads_selected",
            target_chapter=target_chapter,
            eligible=len(eligible),
            primary=[e.thread_id for e in primary],
            secondary=[e.thread_id for e in secondary],
        )

        return ThreadSelectionResult(
            target_chapter=target_chapter,
            primary_threads=primary,
            secondary_threads=secondary,
            reasoning=reasoning,
        )

    def explain(self, evaluated: EvaluatedThread) -> str:
        """Advisory reasoning for one primary inclusion."""
        cfg = self.config
        thread = evaluated.thread
        physics = evaluated.physics
        horizon = evaluated.health.payoff_horizon
        label = f"[{thread.id}] {thread.title}"

        if thread.category == ThreadCategory.SOVEREIGN:
            return f"SOVEREIGN MANDATE: {label} is load-bearing and never skippable"
        if thread.attention_forced:
            return f"FORCED ATTENTION: {label} was flagged by the author"
        if horizon == PayoffHorizon.OVERDUE:
            return (
                f"OVERDUE (high priority): {label} is past its payoff window "
                f"(debt {thread.payoff_debt:.1f}, silent {physics.distance} chapters)"
            )
        if thread.status == ThreadStatus.BLOOMING:
            return f"BLOOMING: {label} is in its resolution window"
        if thread.status == ThreadStatus.STALLED:
            return (
                f"STALLED RECOVERY: {label} has been silent for "
                f"{physics.distance} chapters"
            )
        if physics.urgency >= cfg.urgency_urgent_threshold:
            return f"HIGH URGENCY: {label} urgency {physics.urgency:.1f} crossed the urgent band"
        return f"RANKED: {label} urgency {physics.urgency:.1f}"

    def _eligible(self, evaluations: Iterable[EvaluatedThread]) -> List[EvaluatedThread]:
        seen = set()
        eligible = []
        for evaluated in evaluations:
            thread = evaluated.thread
            if thread.is_terminal or thread.intentional_abandonment:
                continue
            if thread.id in seen:
                log.warning("duplicate_thread_skipped", thread_id=thread.id)
                continue
            seen.add(thread.id)
            eligible.append(evaluated)
        return eligible

    @staticmethod
    def _primary_eligible(evaluated: EvaluatedThread) -> bool:
        thread = evaluated.thread
        return (
            thread.status != ThreadStatus.SEED
            and thread.category != ThreadCategory.SEED
        )


def select_threads(
    threads: Iterable[Thread],
    target_chapter: int,
    config: Optional[LoomConfig] = None,
) -> ThreadSelectionResult:
    """Convenience wrapper around SelectionScheduler.select."""
    return SelectionScheduler(config).select(threads, target_chapter)
