# noqa
from loom.services.thread_model import ThreadModel
from loom.services.physics_calculator import PhysicsCalculator
from loom.services.health_evaluator import HealthEvaluator
from loom.services.status_transitions import StatusTransitionEngine
from loom.services.selection_scheduler import SelectionScheduler
from loom.services.loom_health import LoomHealthAggregator
from loom.services.chapter_cycle import ChapterCycleService
from loom.services.director_service import DirectorService
from loom.services.loom_engine import LoomEngine

__all__ = [
    "ThreadModel",
    "PhysicsCalculator",
    "HealthEvaluator",
    "StatusTransitionEngine",
    "SelectionScheduler",
    "LoomHealthAggregator",
    "ChapterCycleService",
    "DirectorService",
    "LoomEngine",
]
