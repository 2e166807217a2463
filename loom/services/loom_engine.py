"""LoomEngine: the single entry point a host application talks to.

Wires ingestion, physics, health, lifecycle, selection, aggregation,
interventions and director constraints around one immutable LoomConfig.
Every method is synchronous and pure over its inputs: thread records go in,
new records and reports come out, and nothing is cached between calls.
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence

import structlog

from loom.core.config import LoomConfig
from loom.core.exceptions import UnknownThreadError
from loom.core.logging import bind_context, clear_context
from loom.domain.models.chapter import ChapterActivity, ChapterCycleResult
from loom.domain.models.interventions import InterventionCommand, InterventionOutcome
from loom.domain.models.physics import EvaluatedThread
from loom.domain.models.reports import IngestionResult, LoomHealthReport, LoomSnapshot
from loom.domain.models.selection import ThreadSelectionResult
from loom.domain.models.thread import Thread
from loom.services.chapter_cycle import ChapterCycleService
from loom.services.director_service import DirectorService
from loom.services.health_evaluator import HealthEvaluator
from loom.services.interventions import apply_intervention, reject_unknown
from loom.services.loom_health import LoomHealthAggregator
from loom.services.physics_calculator import PhysicsCalculator
from loom.services.selection_scheduler import SelectionScheduler
from loom.services.status_transitions import StatusTransitionEngine
from loom.services.thread_model import ThreadModel

log = structlog.get_logger(__name__)


class LoomEngine:
    """Facade over the loom services for one configuration."""

    def __init__(self, config: Optional[LoomConfig] = None):
        self.config = config or LoomConfig()

        self.thread_model = ThreadModel()
        self.physics_calculator = PhysicsCalculator(self.config)
        self.health_evaluator = HealthEvaluator(self.config)
        self.transition_engine = StatusTransitionEngine(
            self.config, self.physics_calculator, self.health_evaluator
        )
        self.scheduler = SelectionScheduler(
            self.config, self.physics_calculator, self.health_evaluator
        )
        self.aggregator = LoomHealthAggregator(
            self.config, self.physics_calculator, self.health_evaluator
        )
        self.chapter_cycle = ChapterCycleService(self.config, self.transition_engine)
        self.director = DirectorService(self.config)

    # ==================== INGESTION ====================

    def ingest(
        self, records: Iterable[Mapping[str, Any]], current_chapter: int
    ) -> IngestionResult:
        return self.thread_model.normalize_many(records, current_chapter)

    # ==================== EVALUATION ====================

    def evaluate(
        self, threads: Iterable[Thread], current_chapter: int
    ) -> List[EvaluatedThread]:
        """Physics and health for every thread, terminal ones included."""
        return [self.scheduler.evaluate(t, current_chapter) for t in threads]

    def select(
        self, threads: Iterable[Thread], target_chapter: int
    ) -> ThreadSelectionResult:
        return self.scheduler.select(threads, target_chapter)

    def overall_health(self, threads: Iterable[Thread], current_chapter: int) -> float:
        return self.aggregator.overall_health(threads, current_chapter)

    def health_report(
        self, threads: Iterable[Thread], current_chapter: int
    ) -> LoomHealthReport:
        return self.aggregator.report(threads, current_chapter)

    def snapshot(self, threads: Sequence[Thread], target_chapter: int) -> LoomSnapshot:
        """Run a full evaluation pass for `target_chapter`.

        Threads are evaluated once and the same evaluations feed selection,
        director constraints and the health report.
        """
        bind_context(chapter=target_chapter)
        try:
            evaluations = self.evaluate(threads, target_chapter)
            selection = self.scheduler.select_evaluated(evaluations, target_chapter)
            directive = self.director.build_directive(
                evaluations, selection, target_chapter
            )
            health = self.aggregator.report_evaluated(evaluations, target_chapter)
            log.info(
                "loom_snapshot_built",
                threads=len(evaluations),
                primary=len(selection.primary_threads),
                overall_health=health.overall_health,
            )
        finally:
            clear_context()

        return LoomSnapshot(
            chapter=target_chapter,
            evaluations=evaluations,
            selection=selection,
            directive=directive,
            health=health,
        )

    # ==================== STATE CHANGES ====================

    def process_chapter_end(
        self, threads: Iterable[Thread], activity: ChapterActivity
    ) -> ChapterCycleResult:
        return self.chapter_cycle.process_chapter_end(threads, activity)

    def intervene(
        self,
        threads: Iterable[Thread],
        command: InterventionCommand,
        current_chapter: int,
    ) -> InterventionOutcome:
        """Apply one author command to the thread it targets.

        An unknown thread id yields a rejected outcome, not an exception.
        """
        try:
            thread = self.get_thread(threads, command.thread_id)
        except UnknownThreadError:
            return reject_unknown(command)
        return apply_intervention(thread, command, current_chapter)

    @staticmethod
    def get_thread(threads: Iterable[Thread], thread_id: str) -> Thread:
        """Find a thread by id.

        Raises:
            UnknownThreadError: If no thread has `thread_id`
        """
        for thread in threads:
            if thread.id == thread_id:
                return thread
        raise UnknownThreadError(f"Thread {thread_id} not found")
