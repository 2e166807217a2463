"""
Shared test fixtures for the loom engine.

Minimal fixture set: default config, a thread factory and the wired engine.
"""

import pytest

from loom.core.config import LoomConfig
from loom.domain.models import Thread, ThreadCategory, ThreadStatus
from loom.services.loom_engine import LoomEngine


@pytest.fixture
def config():
    """Default engine tunables."""
    return LoomConfig()


@pytest.fixture
def make_thread():
    """Factory for Thread records with sensible defaults.

    Usage:
        thread = make_thread("t1", category=ThreadCategory.MAJOR, payoff_debt=40)
    """

    def _make(
        thread_id: str = "t1",
        title: str = None,
        category: ThreadCategory = ThreadCategory.MINOR,
        status: ThreadStatus = ThreadStatus.OPEN,
        **fields,
    ) -> Thread:
        return Thread(
            id=thread_id,
            title=title or f"Thread {thread_id}",
            signature=f"SIG_{thread_id.upper()}",
            category=category,
            status=status,
            **fields,
        )

    return _make


@pytest.fixture
def engine(config):
    """LoomEngine wired with the default config."""
    return LoomEngine(config)
