"""ChapterCycleService: per-chapter accounting plus lifecycle advance.

Applies one finished chapter's activity to the stored thread records:

    progression / escalation   +1 mention, +1 progress, debt relieved
    mention without progress   +1 mention, debt grows
    regression                 mention accounting, last progress type REGRESSION
    silence                    debt grows once distance passes the grace period
    resolution                 explicit CLOSED transition

Any touch clears forced attention. Accounting is guarded by
last_processed_chapter, so replaying a chapter is a no-op. After
accounting, every thread gets one StatusTransitionEngine.advance call.
"""

from typing import Iterable, List, Optional

import structlog

from loom.core.config import LoomConfig
from loom.domain.models.chapter import ChapterActivity, ChapterCycleResult
from loom.domain.models.interventions import TransitionOutcome
from loom.domain.models.thread import ProgressType, Thread
from loom.services.status_transitions import StatusTransitionEngine

log = structlog.get_logger(__name__)


class ChapterCycleService:
    """Folds one chapter of activity into the thread population."""

    def __init__(
        self,
        config: Optional[LoomConfig] = None,
        transition_engine: Optional[StatusTransitionEngine] = None,
    ):
        self.config = config or LoomConfig()
        self.transition_engine = transition_engine or StatusTransitionEngine(self.config)

    def process_chapter_end(
        self, threads: Iterable[Thread], activity: ChapterActivity
    ) -> ChapterCycleResult:
        """Apply `activity` to every thread and advance their statuses.

        Args:
            threads: Current stored thread records
            activity: What happened in the finished chapter

        Returns:
            ChapterCycleResult with updated threads (input order kept) and
            every status change that was applied
        """
        chapter = activity.chapter_number
        threads = list(threads)

        known = {t.id for t in threads}
        unknown = sorted(activity.touched - known)
        if unknown:
            log.warning(
                "unknown_threads_in_activity",
                chapter=chapter,
                thread_ids=unknown,
            )

        updated: List[Thread] = []
        transitions: List[TransitionOutcome] = []

        for thread in threads:
            if thread.is_terminal:
                updated.append(thread)
                continue

            accounted = self.account(thread, activity)

            if thread.id in activity.resolved:
                outcome = self.transition_engine.close(accounted, chapter)
            else:
                outcome = self.transition_engine.advance(accounted, chapter)

            if outcome.changed:
                transitions.append(outcome)
            updated.append(outcome.thread)

        log.info(
            "chapter_processed",
            chapter=chapter,
            threads=len(updated),
            transitions=len(transitions),
        )
        return ChapterCycleResult(chapter=chapter, threads=updated, transitions=transitions)

    def account(self, thread: Thread, activity: ChapterActivity) -> Thread:
        """Update counters, chapter stamps and payoff debt for one thread."""
        chapter = activity.chapter_number

        if thread.last_processed_chapter is not None and thread.last_processed_chapter >= chapter:
            log.debug(
                "chapter_already_accounted",
                thread_id=thread.id,
                chapter=chapter,
                last_processed_chapter=thread.last_processed_chapter,
            )
            return thread
        if chapter < thread.first_chapter:
            return thread

        thread_id = thread.id
        if thread_id in activity.resolved:
            changes = self._progress(thread, chapter, ProgressType.RESOLUTION)
        elif thread_id in activity.escalated:
            changes = self._progress(thread, chapter, ProgressType.ESCALATION)
        elif thread_id in activity.progressed:
            changes = self._progress(thread, chapter, ProgressType.ADVANCE)
        elif thread_id in activity.regressed:
            changes = self._mention(thread, chapter)
            changes["last_progress_type"] = ProgressType.REGRESSION
        elif thread_id in activity.mentioned:
            changes = self._mention(thread, chapter)
        else:
            changes = self._silence(thread, chapter)

        changes["last_processed_chapter"] = chapter
        return thread.evolve(**changes)

    def _progress(self, thread: Thread, chapter: int, progress_type: ProgressType) -> dict:
        cfg = self.config
        relief = thread.karma_weight / cfg.progress_relief_divisor
        history = (thread.progress_chapters + [chapter])[-cfg.progress_history_limit:]
        return {
            "mention_count": thread.mention_count + 1,
            "progress_count": thread.progress_count + 1,
            "last_mentioned_chapter": max(thread.last_mentioned_chapter, chapter),
            "progress_chapters": history,
            "last_progress_type": progress_type,
            "payoff_debt": max(0.0, thread.payoff_debt - relief),
            "attention_forced": False,
        }

    def _mention(self, thread: Thread, chapter: int) -> dict:
        cfg = self.config
        growth = thread.karma_weight / cfg.mention_debt_divisor * cfg.payoff_debt_multiplier
        return {
            "mention_count": thread.mention_count + 1,
            "last_mentioned_chapter": max(thread.last_mentioned_chapter, chapter),
            "payoff_debt": thread.payoff_debt + growth,
            "attention_forced": False,
        }

    def _silence(self, thread: Thread, chapter: int) -> dict:
        cfg = self.config
        distance = chapter - thread.last_mentioned_chapter
        if distance <= cfg.silence_grace_chapters:
            return {}
        growth = cfg.silence_debt_per_chapter * thread.karma_weight / 100.0
        return {"payoff_debt": thread.payoff_debt + growth}
