"""End-to-end tests through the LoomEngine facade."""

import pytest

from loom.core.exceptions import UnknownThreadError
from loom.domain.models import (
    AdjustKarmaWeight,
    ChapterActivity,
    ForceAttention,
    MarkAbandoned,
    PayoffHorizon,
    ThreadCategory,
    ThreadStatus,
)


def advance_silently(engine, threads, start, end):
    """Run empty chapters start..end inclusive; return threads and per-chapter statuses."""
    history = {}
    for chapter in range(start, end + 1):
        threads = engine.process_chapter_end(
            threads, ChapterActivity(chapter_number=chapter)
        ).threads
        history[chapter] = {t.id: t.status for t in threads}
    return threads, history


class TestScenarios:
    def test_neglected_seed_thread_stalls(self, engine):
        ingestion = engine.ingest(
            [
                {
                    "id": "strange-bird",
                    "title": "A strange bird over the sect",
                    "category": "SEED",
                    "firstChapter": 1,
                    "lastMentionedChapter": 1,
                },
                {
                    "id": "mandate",
                    "title": "The Heavenly Mandate",
                    "category": "SOVEREIGN",
                    "firstChapter": 1,
                    "lastMentionedChapter": 1,
                },
            ],
            current_chapter=1,
        )
        threads, history = advance_silently(engine, ingestion.threads, 2, 40)

        assert history[11]["strange-bird"] == ThreadStatus.OPEN
        assert history[12]["strange-bird"] == ThreadStatus.STALLED

        evaluated = {e.thread_id: e for e in engine.evaluate(threads, 40)}
        assert evaluated["strange-bird"].physics.distance == 39

        selection = engine.select(threads, 40)
        assert "strange-bird" not in selection.primary_ids
        assert "mandate" in selection.primary_ids

    def test_neglected_sovereign_seed_tier_is_still_primary(self, engine, make_thread):
        thread = make_thread(
            "load-bearing",
            category=ThreadCategory.SOVEREIGN,
            first_chapter=1,
            last_mentioned_chapter=1,
        )
        threads, _ = advance_silently(engine, [thread], 2, 40)

        assert threads[0].status == ThreadStatus.STALLED
        assert engine.select(threads, 40).primary_ids == ["load-bearing"]

    def test_overdue_blooming_major(self, engine, make_thread):
        thread = make_thread(
            "duel",
            category=ThreadCategory.MAJOR,
            status=ThreadStatus.BLOOMING,
            payoff_debt=100.0,
            first_chapter=10,
            last_mentioned_chapter=38,
            blooming_chapter=30,
        )

        snapshot = engine.snapshot([thread], 40)
        health = snapshot.evaluations[0].health

        assert health.payoff_horizon == PayoffHorizon.OVERDUE
        assert health.gold_glow is False
        assert snapshot.selection.primary_ids == ["duel"]
        assert "OVERDUE (high priority)" in snapshot.selection.reasoning[0]
        assert snapshot.health.overdue_thread_ids == ["duel"]

    def test_empty_population(self, engine):
        snapshot = engine.snapshot([], 12)

        assert snapshot.selection.primary_threads == []
        assert snapshot.selection.secondary_threads == []
        assert snapshot.selection.reasoning == []
        assert snapshot.health.overall_health == 100.0
        assert engine.overall_health([], 12) == 100.0


class TestFacade:
    def test_ingest_collects_rejections(self, engine):
        result = engine.ingest([{"id": "a", "title": "Alpha"}, {"id": "b"}], current_chapter=3)

        assert [t.id for t in result.threads] == ["a"]
        assert result.rejected[0].missing_fields == ["title"]

    def test_evaluation_is_deterministic(self, engine, make_thread):
        threads = [make_thread(f"t{i}", payoff_debt=float(i * 11), mention_count=i) for i in range(6)]

        assert engine.snapshot(threads, 17) == engine.snapshot(threads, 17)

    def test_intervene_targets_thread(self, engine, make_thread):
        threads = [make_thread("a"), make_thread("b")]

        outcome = engine.intervene(threads, AdjustKarmaWeight(thread_id="b", delta=25), 5)

        assert outcome.applied is True
        assert outcome.thread.id == "b"
        assert outcome.thread.karma_weight == 75.0

    def test_intervene_unknown_thread_rejected(self, engine, make_thread):
        outcome = engine.intervene([make_thread("a")], ForceAttention(thread_id="ghost"), 5)

        assert outcome.applied is False
        assert outcome.thread is None
        assert "ghost" in outcome.reason

    def test_get_thread_raises_for_unknown_id(self, engine, make_thread):
        with pytest.raises(UnknownThreadError):
            engine.get_thread([make_thread("a")], "ghost")

    def test_abandoned_thread_leaves_selection(self, engine, make_thread):
        threads = [make_thread("a", payoff_debt=60.0), make_thread("b")]

        outcome = engine.intervene(threads, MarkAbandoned(thread_id="a", reason="Dropped arc"), 8)
        threads = [outcome.thread, threads[1]]

        selection = engine.select(threads, 9)
        assert "a" not in selection.primary_ids + selection.secondary_ids

        report = engine.health_report(threads, 9)
        assert report.unintentional_abandonments == 0
        assert report.active_thread_count == 1

    def test_snapshot_bundles_directive(self, engine, make_thread):
        threads = [
            make_thread("a", payoff_debt=50.0, last_mentioned_chapter=6),
            make_thread("b", status=ThreadStatus.SEED, last_mentioned_chapter=6),
        ]

        snapshot = engine.snapshot(threads, 7)

        assert snapshot.chapter == 7
        assert len(snapshot.evaluations) == 2
        assert [a.thread_id for a in snapshot.directive.anchors] == snapshot.selection.primary_ids
        assert "b" in {f.thread_id for f in snapshot.directive.forbidden_resolutions}
