"""LoomHealthAggregator: whole-story health for dashboards and alerts."""

from typing import Iterable, List, Optional

import structlog

from loom.core.config import LoomConfig
from loom.domain.models.physics import EvaluatedThread, PayoffHorizon
from loom.domain.models.reports import LoomHealthReport
from loom.domain.models.thread import Thread, ThreadStatus
from loom.services.health_evaluator import HealthEvaluator
from loom.services.physics_calculator import PhysicsCalculator

log = structlog.get_logger(__name__)

# Returned when nothing is open
NEUTRAL_HEALTH = 100.0


class LoomHealthAggregator:
    """Rolls per-thread health into one category-weighted scalar."""

    def __init__(
        self,
        config: Optional[LoomConfig] = None,
        physics_calculator: Optional[PhysicsCalculator] = None,
        health_evaluator: Optional[HealthEvaluator] = None,
    ):
        self.config = config or LoomConfig()
        self.physics_calculator = physics_calculator or PhysicsCalculator(self.config)
        self.health_evaluator = health_evaluator or HealthEvaluator(self.config)

    def overall_health(self, threads: Iterable[Thread], current_chapter: int) -> float:
        """Weighted average health over non-terminal threads (0-100)."""
        return self.overall_health_evaluated(self._evaluate(threads, current_chapter))

    def overall_health_evaluated(self, evaluations: Iterable[EvaluatedThread]) -> float:
        weights = self.config.aggregate_category_weights
        total = 0.0
        weight_sum = 0.0
        for evaluated in evaluations:
            if evaluated.thread.is_terminal:
                continue
            weight = weights[evaluated.thread.category]
            total += evaluated.health.health_score * weight
            weight_sum += weight

        if weight_sum <= 0:
            return NEUTRAL_HEALTH
        return round(min(100.0, max(0.0, total / weight_sum)), 1)

    def report(
        self, threads: Iterable[Thread], current_chapter: int
    ) -> LoomHealthReport:
        """Health scalar plus the thread ids a dashboard should flag."""
        return self.report_evaluated(
            self._evaluate(threads, current_chapter), current_chapter
        )

    def report_evaluated(
        self, evaluations: Iterable[EvaluatedThread], current_chapter: int
    ) -> LoomHealthReport:
        evaluations = list(evaluations)
        cfg = self.config

        active = [e for e in evaluations if not e.thread.is_terminal]
        urgent = [
            e.thread_id
            for e in active
            if e.physics.urgency >= cfg.urgency_urgent_threshold
        ]
        blooming = [e.thread_id for e in active if e.thread.status == ThreadStatus.BLOOMING]
        stalled = [e.thread_id for e in active if e.thread.status == ThreadStatus.STALLED]
        overdue = [
            e.thread_id
            for e in active
            if e.health.payoff_horizon == PayoffHorizon.OVERDUE
        ]
        unintentional = sum(
            1
            for e in evaluations
            if e.thread.status == ThreadStatus.ABANDONED
            and not e.thread.intentional_abandonment
        )

        report = LoomHealthReport(
            chapter=current_chapter,
            overall_health=self.overall_health_evaluated(evaluations),
            active_thread_count=len(active),
            urgent_thread_ids=sorted(urgent),
            blooming_thread_ids=sorted(blooming),
            stalled_thread_ids=sorted(stalled),
            overdue_thread_ids=sorted(overdue),
            unintentional_abandonments=unintentional,
        )
        log.info(
            "loom_health_reported",
            chapter=current_chapter,
            overall_health=report.overall_health,
            active=report.active_thread_count,
            urgent=len(urgent),
            stalled=len(stalled),
        )
        return report

    def _evaluate(
        self, threads: Iterable[Thread], current_chapter: int
    ) -> List[EvaluatedThread]:
        evaluations = []
        for thread in threads:
            physics = self.physics_calculator.calculate(thread, current_chapter)
            health = self.health_evaluator.evaluate(thread, physics)
            evaluations.append(
                EvaluatedThread(thread=thread, physics=physics, health=health)
            )
        return evaluations


def overall_health(
    threads: Iterable[Thread],
    current_chapter: int,
    config: Optional[LoomConfig] = None,
) -> float:
    """Convenience wrapper around LoomHealthAggregator.overall_health."""
    return LoomHealthAggregator(config).overall_health(threads, current_chapter)
