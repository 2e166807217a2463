"""ThreadModel: ingestion of raw thread-like records into engine Threads.

Accepts two record shapes from the host's persistence layer:
1. Loom records (camelCase or snake_case keys) carrying the full field set
2. Legacy story-thread records (type, priority, paused/resolved status,
   introducedChapter, progressionNotes, chaptersInvolved, ...)

Every field of Thread receives a safe default when absent. The only hard
failure is missing identity (id, title): such records are rejected with
ThreadValidationError, never admitted under a fabricated id.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from loom.core.exceptions import ThreadValidationError
from loom.domain.models.reports import IngestionResult, RejectedRecord
from loom.domain.models.thread import (
    ProgressType,
    Thread,
    ThreadCategory,
    ThreadStatus,
)

log = structlog.get_logger(__name__)


# Legacy thread type -> category
LEGACY_TYPE_CATEGORIES: Dict[str, ThreadCategory] = {
    "enemy": ThreadCategory.MAJOR,
    "technique": ThreadCategory.MINOR,
    "item": ThreadCategory.MINOR,
    "location": ThreadCategory.MINOR,
    "sect": ThreadCategory.MAJOR,
    "promise": ThreadCategory.MAJOR,
    "mystery": ThreadCategory.SOVEREIGN,
    "relationship": ThreadCategory.MAJOR,
    "power": ThreadCategory.MAJOR,
    "quest": ThreadCategory.MAJOR,
    "revelation": ThreadCategory.SOVEREIGN,
    "conflict": ThreadCategory.MAJOR,
    "alliance": ThreadCategory.MINOR,
}

# Legacy priority -> base karma weight
PRIORITY_KARMA: Dict[str, float] = {
    "critical": 90.0,
    "high": 70.0,
    "medium": 50.0,
    "low": 30.0,
}

# Upward bias for load-bearing categories at ingestion
CATEGORY_KARMA_BIAS: Dict[ThreadCategory, float] = {
    ThreadCategory.SOVEREIGN: 15.0,
    ThreadCategory.MAJOR: 10.0,
    ThreadCategory.MINOR: 0.0,
    ThreadCategory.SEED: -10.0,
}

# Legacy status -> lifecycle status
LEGACY_STATUSES: Dict[str, ThreadStatus] = {
    "active": ThreadStatus.ACTIVE,
    "paused": ThreadStatus.STALLED,
    "resolved": ThreadStatus.CLOSED,
    "abandoned": ThreadStatus.ABANDONED,
}

DEFAULT_KARMA = 50.0
MAX_PARTICIPANTS = 10

_NAME_PATTERN = re.compile(r"[A-Z][a-z]+(?:\s[A-Z][a-z]+)?")


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-None value among `keys`."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _enum_value(enum_cls, value: Any):
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        return None


def generate_signature(title: str, prefix: str) -> str:
    """Build a compact semantic signature from a title.

    Example: ("The Sun Family's Revenge", "MAJOR") -> "MAJ_THE_SUN_FAMILYS_REVENGE"
    """
    words = re.sub(r"[^A-Z0-9\s]", "", title.upper()).split()
    normalized = "_".join([w for w in words if len(w) > 2][:4])
    type_prefix = prefix.upper()[:3]
    return f"{type_prefix}_{normalized}" if normalized else type_prefix


class ThreadModel:
    """Normalizes raw thread records into engine Threads.

    Side-effect-free: the same record and chapter always produce the same
    Thread.
    """

    def normalize(self, raw: Mapping[str, Any], current_chapter: int) -> Thread:
        """Admit one raw record as a Thread.

        Args:
            raw: Loom or legacy thread record
            current_chapter: Chapter index at ingestion; chapter stamps are
                clamped so that first <= last mentioned <= current_chapter

        Returns:
            Fully populated Thread

        Raises:
            ThreadValidationError: If id or title is missing or blank
        """
        if not isinstance(raw, Mapping):
            raise ThreadValidationError(
                f"Thread record must be a mapping, got {type(raw).__name__}",
                missing_fields=["id", "title"],
            )

        missing = [
            key
            for key in ("id", "title")
            if raw.get(key) is None or not str(raw[key]).strip()
        ]
        if missing:
            raise ThreadValidationError(
                f"Thread record missing required fields: {', '.join(missing)}",
                missing_fields=missing,
                record=raw,
            )

        thread_id = str(raw["id"]).strip()
        title = str(raw["title"]).strip()
        current_chapter = max(0, current_chapter)

        legacy_type = raw.get("type")
        category = self._category(raw, legacy_type)
        karma = self._karma(raw, category)
        status = self._status(raw)

        chapters_involved = [
            _as_int(c, 0) for c in raw.get("chaptersInvolved") or raw.get("chapters_involved") or []
        ]
        notes = raw.get("progressionNotes") or raw.get("progression_notes") or []

        first_chapter = _as_int(
            _pick(raw, "firstChapter", "first_chapter", "introducedChapter", "introduced_chapter"),
            min(chapters_involved) if chapters_involved else current_chapter,
        )
        last_mentioned = _as_int(
            _pick(
                raw,
                "lastMentionedChapter",
                "last_mentioned_chapter",
                "lastUpdatedChapter",
                "last_updated_chapter",
            ),
            max(chapters_involved) if chapters_involved else first_chapter,
        )
        first_chapter, last_mentioned = self._clamp_chapters(
            thread_id, first_chapter, last_mentioned, current_chapter
        )

        progress_chapters = self._progress_chapters(raw, notes, current_chapter)
        mention_count = _as_int(
            _pick(raw, "mentionCount", "mention_count"),
            len(chapters_involved) or 1,
        )
        progress_count = _as_int(
            _pick(raw, "progressCount", "progress_count"),
            len(notes) or len(progress_chapters),
        )

        payoff_debt = _pick(raw, "payoffDebt", "payoff_debt")
        if payoff_debt is None:
            payoff_debt = max(0, mention_count - progress_count) * karma / 10
        else:
            payoff_debt = _as_float(payoff_debt, 0.0)

        signature = _pick(raw, "signature") or generate_signature(
            title, legacy_type or category.value
        )

        blooming_chapter = _pick(raw, "bloomingChapter", "blooming_chapter")
        if blooming_chapter is not None:
            blooming_chapter = _as_int(blooming_chapter, current_chapter)

        status_chapter = _pick(raw, "statusChapter", "status_chapter")
        if status_chapter is not None:
            status_chapter = _as_int(status_chapter, current_chapter)
        elif status == ThreadStatus.STALLED:
            # Recovery needs progress after the stall was recorded
            status_chapter = current_chapter

        thread = Thread(
            id=thread_id,
            title=title,
            signature=str(signature),
            category=category,
            status=status,
            karma_weight=karma,
            payoff_debt=payoff_debt,
            first_chapter=first_chapter,
            last_mentioned_chapter=last_mentioned,
            blooming_chapter=blooming_chapter,
            status_chapter=status_chapter,
            mention_count=mention_count,
            progress_count=progress_count,
            progress_chapters=progress_chapters,
            last_progress_type=self._last_progress_type(raw, status, notes),
            summary=str(_pick(raw, "summary", "description", default="")),
            resolution_criteria=_pick(
                raw, "resolutionCriteria", "resolution_criteria", "resolutionNotes"
            ),
            participants=self._participants(raw, notes),
            attention_forced=bool(
                _pick(raw, "directorAttentionForced", "attention_forced", default=False)
            ),
            intentional_abandonment=bool(
                _pick(raw, "intentionalAbandonment", "intentional_abandonment", default=False)
            ),
            abandonment_reason=_pick(raw, "abandonmentReason", "abandonment_reason"),
        )

        log.debug(
            "thread_normalized",
            thread_id=thread.id,
            category=thread.category.value,
            status=thread.status.value,
            karma_weight=thread.karma_weight,
            legacy=legacy_type is not None,
        )
        return thread

    def normalize_many(
        self, records: Iterable[Mapping[str, Any]], current_chapter: int
    ) -> IngestionResult:
        """Admit a batch of records; rejected records are collected, not raised.

        Duplicate ids are rejected after the first occurrence.
        """
        threads: List[Thread] = []
        rejected: List[RejectedRecord] = []
        seen: set = set()

        for raw in records:
            try:
                thread = self.normalize(raw, current_chapter)
            except ThreadValidationError as e:
                log.warning(
                    "thread_record_rejected",
                    reason=e.message,
                    missing_fields=e.missing_fields,
                )
                rejected.append(
                    RejectedRecord(
                        record=dict(raw) if isinstance(raw, Mapping) else {},
                        reason=e.message,
                        missing_fields=e.missing_fields,
                    )
                )
                continue

            if thread.id in seen:
                log.warning("thread_record_duplicate", thread_id=thread.id)
                rejected.append(
                    RejectedRecord(
                        record=dict(raw),
                        reason=f"Duplicate thread id: {thread.id}",
                    )
                )
                continue

            seen.add(thread.id)
            threads.append(thread)

        log.info(
            "threads_ingested",
            chapter=current_chapter,
            admitted=len(threads),
            rejected=len(rejected),
        )
        return IngestionResult(threads=threads, rejected=rejected)

    # ==================== FIELD DERIVATION ====================

    def _category(self, raw: Mapping[str, Any], legacy_type: Optional[str]) -> ThreadCategory:
        category = _enum_value(ThreadCategory, raw.get("category"))
        if category is not None:
            return category
        if legacy_type:
            return LEGACY_TYPE_CATEGORIES.get(str(legacy_type).lower(), ThreadCategory.MINOR)
        return ThreadCategory.MINOR

    def _karma(self, raw: Mapping[str, Any], category: ThreadCategory) -> float:
        explicit = _pick(raw, "karmaWeight", "karma_weight")
        if explicit is not None:
            return _as_float(explicit, DEFAULT_KARMA)

        priority = str(raw.get("priority") or "medium").lower()
        base = PRIORITY_KARMA.get(priority, DEFAULT_KARMA)
        return min(100.0, max(0.0, base + CATEGORY_KARMA_BIAS[category]))

    def _status(self, raw: Mapping[str, Any]) -> ThreadStatus:
        explicit = _enum_value(ThreadStatus, _pick(raw, "loomStatus", "loom_status"))
        if explicit is not None:
            return explicit

        status_value = raw.get("status")
        if status_value is not None:
            legacy = LEGACY_STATUSES.get(str(status_value).lower())
            if legacy is not None:
                return legacy
            explicit = _enum_value(ThreadStatus, status_value)
            if explicit is not None:
                return explicit

        if raw.get("resolved") or _pick(raw, "resolvedChapter", "resolved_chapter") is not None:
            return ThreadStatus.CLOSED
        return ThreadStatus.OPEN

    def _clamp_chapters(
        self, thread_id: str, first: int, last: int, current: int
    ) -> Tuple[int, int]:
        clamped_first = min(max(0, first), current)
        clamped_last = min(max(clamped_first, last), current)
        if (clamped_first, clamped_last) != (first, last):
            log.warning(
                "thread_chapters_clamped",
                thread_id=thread_id,
                first_chapter=first,
                last_mentioned_chapter=last,
                current_chapter=current,
            )
        return clamped_first, clamped_last

    def _progress_chapters(
        self, raw: Mapping[str, Any], notes: List[Any], current: int
    ) -> List[int]:
        explicit = _pick(raw, "progressChapters", "progress_chapters")
        if explicit is not None:
            chapters = [_as_int(c, 0) for c in explicit]
        else:
            chapters = [
                _as_int(note.get("chapterNumber", note.get("chapter_number")), 0)
                for note in notes
                if isinstance(note, Mapping)
            ]
        return sorted(c for c in chapters if 0 <= c <= current)

    def _last_progress_type(
        self, raw: Mapping[str, Any], status: ThreadStatus, notes: List[Any]
    ) -> ProgressType:
        explicit = _enum_value(ProgressType, _pick(raw, "lastProgressType", "last_progress_type"))
        if explicit is not None:
            return explicit
        if status == ThreadStatus.CLOSED:
            return ProgressType.RESOLUTION
        if not notes:
            return ProgressType.NONE
        last_note = notes[-1]
        if isinstance(last_note, Mapping) and last_note.get("significance") == "major":
            return ProgressType.ESCALATION
        return ProgressType.ADVANCE

    def _participants(self, raw: Mapping[str, Any], notes: List[Any]) -> List[str]:
        explicit = raw.get("participants")
        if explicit is not None:
            return [str(p) for p in explicit]

        participants: List[str] = []
        for note in notes:
            text = note.get("note", "") if isinstance(note, Mapping) else ""
            for name in _NAME_PATTERN.findall(text):
                if name not in participants:
                    participants.append(name)
        return participants[:MAX_PARTICIPANTS]
