"""HealthEvaluator: read-only health lens over thread physics.

Maps a thread's physics plus its status to a bounded health score and the
categorical hints dashboards and alerts consume (pulse level, crack effect,
gold glow), and classifies the payoff horizon. Never mutates the thread.
"""

import math
from typing import Optional

from loom.core.config import LoomConfig
from loom.domain.models.physics import (
    PayoffHorizon,
    PulseLevel,
    ThreadHealth,
    ThreadPhysics,
)
from loom.domain.models.thread import Thread, ThreadStatus


class HealthEvaluator:
    """Derives ThreadHealth from a thread and its ThreadPhysics."""

    def __init__(self, config: Optional[LoomConfig] = None):
        self.config = config or LoomConfig()

    def evaluate(self, thread: Thread, physics: ThreadPhysics) -> ThreadHealth:
        """Compute health metrics for one thread.

        Args:
            thread: Stored thread record (status and identity are read)
            physics: PhysicsCalculator output for the same thread

        Returns:
            ThreadHealth
        """
        horizon = self.payoff_horizon(thread, physics)
        return ThreadHealth(
            thread_id=thread.id,
            signature=thread.signature,
            health_score=self.health_score(physics),
            pulse_level=self.pulse_level(thread, physics),
            crack_effect=physics.entropy > self.config.crack_entropy_threshold,
            gold_glow=(
                thread.status == ThreadStatus.BLOOMING
                and horizon == PayoffHorizon.PERFECT_WINDOW
            ),
            payoff_horizon=horizon,
            chapters_until_critical=self.chapters_until_critical(thread, physics),
        )

    def health_score(self, physics: ThreadPhysics) -> float:
        """0-100: falls with entropy and silence, rises with forward velocity."""
        cfg = self.config
        score = (
            100.0
            - physics.entropy * cfg.entropy_health_weight
            - physics.distance * cfg.distance_health_weight
            + max(0.0, physics.velocity) * cfg.velocity_health_bonus
        )
        return round(min(100.0, max(0.0, score)), 1)

    def payoff_horizon(self, thread: Thread, physics: ThreadPhysics) -> PayoffHorizon:
        """Classify resolution timing.

        Overdue once debt, silence or age passes its configured limit.
        Perfect window when debt or gravity says payoff is due and the thread
        is old enough for its category. Building otherwise.
        """
        cfg = self.config
        window = cfg.payoff_window(thread.category)

        if (
            thread.payoff_debt > cfg.overdue_debt_threshold
            or physics.distance > cfg.overdue_distance_chapters
            or physics.age > window.max_age
        ):
            return PayoffHorizon.OVERDUE

        due = (
            thread.payoff_debt >= cfg.bloom_debt_threshold
            or physics.gravity >= cfg.bloom_gravity_threshold
        )
        if due and physics.age >= window.min_age:
            return PayoffHorizon.PERFECT_WINDOW

        return PayoffHorizon.BUILDING

    def pulse_level(self, thread: Thread, physics: ThreadPhysics) -> PulseLevel:
        cfg = self.config
        if thread.status == ThreadStatus.BLOOMING:
            return PulseLevel.GOLD
        if thread.status in (ThreadStatus.STALLED, ThreadStatus.ABANDONED):
            return PulseLevel.RED
        if physics.urgency >= cfg.urgency_critical_threshold:
            return PulseLevel.RED
        if physics.urgency >= cfg.urgency_urgent_threshold:
            return PulseLevel.ORANGE
        if physics.urgency >= cfg.urgency_watch_threshold:
            return PulseLevel.YELLOW
        return PulseLevel.GREEN

    def chapters_until_critical(
        self, thread: Thread, physics: ThreadPhysics
    ) -> Optional[int]:
        """Estimate further silent chapters until urgency reaches the critical band.

        Uses the per-chapter urgency growth of silence (gravity plus entropy
        terms). Returns 0 when already critical and None when urgency cannot
        grow (terminal, intentionally abandoned, or zero growth).
        """
        cfg = self.config
        if thread.is_terminal or thread.intentional_abandonment:
            return None
        if physics.urgency >= cfg.urgency_critical_threshold:
            return 0

        entropy_growth = (
            cfg.entropy_per_silent_chapter * cfg.entropy_urgency_weight
            if physics.entropy < 100.0
            else 0.0
        )
        per_chapter = (
            physics.mass / cfg.gravity_distance_scale + entropy_growth
        ) * cfg.category_urgency_weights[thread.category]

        if per_chapter <= 0:
            return None
        return math.ceil((cfg.urgency_critical_threshold - physics.urgency) / per_chapter)

