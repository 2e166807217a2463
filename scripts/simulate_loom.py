#!/usr/bin/env python3
"""
Run the loom engine over a synthetic story.

Builds a small thread population, plays a fixed activity schedule chapter by
chapter, and prints the selection, directive anchors and health at each
checkpoint. Useful for calibrating LoomConfig against a target pacing.

USAGE:
    python scripts/simulate_loom.py
    python scripts/simulate_loom.py --chapters 60 --every 10
    python scripts/simulate_loom.py --config config/loom_config.yaml
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Configure logging first (before importing other modules)
from loom.core.logging import configure_logging

configure_logging()

from loom.core.config import load_loom_config
from loom.domain.models import ChapterActivity, ForceAttention
from loom.services.loom_engine import LoomEngine

RECORDS = [
    {
        "id": "heavenly-mandate",
        "title": "Who forged the Heavenly Mandate",
        "category": "SOVEREIGN",
        "karmaWeight": 95,
        "firstChapter": 1,
        "lastMentionedChapter": 1,
    },
    {
        "id": "sun-family-revenge",
        "title": "Revenge against the Sun family",
        "type": "enemy",
        "priority": "high",
        "introducedChapter": 2,
        "lastUpdatedChapter": 2,
    },
    {
        "id": "jade-pendant",
        "title": "The cracked jade pendant",
        "type": "item",
        "priority": "medium",
        "introducedChapter": 3,
        "lastUpdatedChapter": 3,
    },
    {
        "id": "masked-stranger",
        "title": "The masked stranger at the gate",
        "category": "SEED",
        "status": "SEED",
        "firstChapter": 4,
        "lastMentionedChapter": 4,
    },
]

# chapter -> (mentioned, progressed)
SCHEDULE = {
    5: ({"jade-pendant"}, {"sun-family-revenge"}),
    8: ({"masked-stranger"}, {"sun-family-revenge"}),
    12: (set(), {"heavenly-mandate", "jade-pendant"}),
    18: ({"sun-family-revenge"}, set()),
    25: (set(), {"sun-family-revenge"}),
}


def print_checkpoint(engine: LoomEngine, threads, chapter: int) -> None:
    snapshot = engine.snapshot(threads, chapter + 1)

    print(f"=== Chapter {chapter} (planning {chapter + 1}) ===")
    print(f"Overall health: {snapshot.health.overall_health}")
    for evaluated in snapshot.evaluations:
        t, p, h = evaluated.thread, evaluated.physics, evaluated.health
        print(
            f"  {t.id:<22} {t.status.value:<9} urgency={p.urgency:>7.2f} "
            f"debt={t.payoff_debt:>6.1f} health={h.health_score:>5.1f} "
            f"pulse={h.pulse_level.value:<6} horizon={h.payoff_horizon.value}"
        )
    print("  Primary:  ", ", ".join(snapshot.selection.primary_ids) or "-")
    print("  Secondary:", ", ".join(snapshot.selection.secondary_ids) or "-")
    for anchor in snapshot.directive.anchors:
        print(f"  Anchor: {anchor.thread_id} -> {anchor.required_action.value}")
    for line in snapshot.selection.reasoning:
        print(f"  Why: {line}")
    print()


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate the loom over a synthetic story")
    parser.add_argument("--chapters", type=int, default=40, help="Chapters to simulate")
    parser.add_argument("--every", type=int, default=5, help="Print every N chapters")
    parser.add_argument("--config", type=Path, default=None, help="Path to loom_config.yaml")
    parser.add_argument(
        "--force",
        default=None,
        help="Thread id to force attention on at the halfway chapter",
    )
    args = parser.parse_args()

    engine = LoomEngine(load_loom_config(args.config))

    ingestion = engine.ingest(RECORDS, current_chapter=4)
    for rejected in ingestion.rejected:
        print(f"Rejected: {rejected.reason}")
    threads = ingestion.threads

    for chapter in range(5, args.chapters + 1):
        mentioned, progressed = SCHEDULE.get(chapter, (set(), set()))
        result = engine.process_chapter_end(
            threads,
            ChapterActivity(
                chapter_number=chapter, mentioned=mentioned, progressed=progressed
            ),
        )
        threads = result.threads
        for outcome in result.transitions:
            print(
                f"[ch {chapter}] {outcome.thread.id}: "
                f"{outcome.previous_status.value} -> {outcome.new_status.value} "
                f"({outcome.reason})"
            )

        if args.force and chapter == args.chapters // 2:
            outcome = engine.intervene(threads, ForceAttention(thread_id=args.force), chapter)
            print(f"[ch {chapter}] force attention: {outcome.reason}")
            if outcome.applied:
                threads = [outcome.thread if t.id == outcome.thread_id else t for t in threads]

        if chapter % args.every == 0:
            print_checkpoint(engine, threads, chapter)

    return 0


if __name__ == "__main__":
    sys.exit(main())
