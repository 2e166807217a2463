"""Thread physics: instantaneous quantities from stored history.

Treats a narrative thread like a physical body:
- mass: authorial importance (karma weight)
- distance: chapters of narrative silence
- velocity: windowed progression rate, negative while regressing
- entropy: unresolved narrative noise (silence plus mention/progress imbalance)
- gravity: pull toward resolution, grows with mass and distance
- urgency: composite ranking key consumed by SelectionScheduler

Every quantity is a pure function of the stored thread fields, the chapter
index and the LoomConfig. Corrupted history (chapter stamps after the current
chapter, negative values) is clamped and the calculation proceeds.
"""

from typing import Optional

import structlog

from loom.core.config import LoomConfig
from loom.domain.models.physics import ThreadPhysics
from loom.domain.models.thread import ProgressType, Thread

log = structlog.get_logger(__name__)

# Decimal places kept on derived floats
PRECISION = 2


class PhysicsCalculator:
    """Computes ThreadPhysics for one thread at one chapter."""

    def __init__(self, config: Optional[LoomConfig] = None):
        self.config = config or LoomConfig()

    def calculate(self, thread: Thread, current_chapter: int) -> ThreadPhysics:
        """Compute all physical quantities for `thread` at `current_chapter`.

        Args:
            thread: Stored thread record
            current_chapter: Chapter index the quantities are evaluated at

        Returns:
            ThreadPhysics (identical for identical inputs)
        """
        current_chapter = max(0, current_chapter)
        last_mentioned = min(max(0, thread.last_mentioned_chapter), current_chapter)
        first_chapter = min(max(0, thread.first_chapter), last_mentioned)

        if last_mentioned != thread.last_mentioned_chapter:
            log.debug(
                "physics_distance_clamped",
                thread_id=thread.id,
                last_mentioned_chapter=thread.last_mentioned_chapter,
                current_chapter=current_chapter,
            )

        distance = current_chapter - last_mentioned
        age = current_chapter - first_chapter
        mass = min(100.0, max(0.0, thread.karma_weight))

        velocity = self.velocity(thread, current_chapter, age)
        entropy = self.entropy(thread, distance)
        gravity = self.gravity(mass, distance)
        urgency = self.urgency(thread, gravity, entropy)

        return ThreadPhysics(
            chapter=current_chapter,
            mass=mass,
            velocity=velocity,
            entropy=entropy,
            distance=distance,
            age=age,
            gravity=gravity,
            urgency=urgency,
        )

    def velocity(self, thread: Thread, current_chapter: int, age: int) -> float:
        """Progress events per chapter over the trailing window, scaled.

        Falls back to the lifetime rate when no per-chapter history exists
        (records ingested from the legacy format). Negated while the last
        touch was a regression.
        """
        cfg = self.config
        window = max(1, min(cfg.velocity_window_chapters, age))

        if thread.progress_chapters:
            recent = sum(
                1
                for chapter in thread.progress_chapters
                if current_chapter - window < chapter <= current_chapter
            )
            rate = recent / window
        else:
            rate = max(0, thread.progress_count) / max(1, age)

        velocity = min(cfg.max_velocity, rate * cfg.velocity_scale)

        if thread.last_progress_type == ProgressType.REGRESSION:
            velocity = -max(velocity, cfg.velocity_scale / window)
            velocity = max(-cfg.max_velocity, velocity)

        return round(velocity, PRECISION)

    def entropy(self, thread: Thread, distance: int) -> float:
        """Narrative chaos in [0, 100]: silence plus mentions without progress."""
        cfg = self.config
        mentions = max(0, thread.mention_count)
        progress = max(0, thread.progress_count)

        excess_ratio = max(0.0, mentions / max(1, progress) - 1.0)
        noise = min(cfg.entropy_noise_cap, excess_ratio * cfg.entropy_noise_rate)

        entropy = distance * cfg.entropy_per_silent_chapter + noise
        return round(min(100.0, max(0.0, entropy)), PRECISION)

    def gravity(self, mass: float, distance: int) -> float:
        """Pull toward resolution: heavier, longer-neglected threads pull harder."""
        return round(mass * distance / self.config.gravity_distance_scale, PRECISION)

    def urgency(self, thread: Thread, gravity: float, entropy: float) -> float:
        """Composite ranking key, clamped to [0, max_urgency].

        urgency = (gravity + debt * multiplier + entropy * weight) * category weight

        Forced attention scales urgency up and floors it at the critical band.
        Intentionally abandoned threads have zero urgency.
        """
        cfg = self.config
        if thread.intentional_abandonment:
            return 0.0

        base = (
            gravity
            + max(0.0, thread.payoff_debt) * cfg.payoff_debt_multiplier
            + entropy * cfg.entropy_urgency_weight
        )
        urgency = base * cfg.category_urgency_weights[thread.category]

        if thread.attention_forced:
            urgency = max(
                urgency * cfg.force_attention_multiplier,
                cfg.urgency_critical_threshold,
            )

        return round(min(cfg.max_urgency, max(0.0, urgency)), PRECISION)


def calculate_physics(
    thread: Thread, current_chapter: int, config: Optional[LoomConfig] = None
) -> ThreadPhysics:
    """Convenience wrapper around PhysicsCalculator.calculate."""
    return PhysicsCalculator(config).calculate(thread, current_chapter)
