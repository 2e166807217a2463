"""Tests for logging configuration."""

import os
import time

import structlog

from loom.core.logging import (
    _prune_run_logs,
    bind_context,
    clear_context,
    configure_logging,
)


class TestLoggingConfiguration:
    def test_configure_console_only(self):
        configure_logging(log_to_file=False, debug=False)

        log = structlog.get_logger("loom.test")
        log.info("thread_touched", thread_id="t-1", chapter=5)

    def test_debug_mode_uses_console_renderer(self):
        configure_logging(log_to_file=False, debug=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

        configure_logging(log_to_file=False, debug=False)

    def test_context_helpers(self):
        bind_context(chapter=42)
        assert structlog.contextvars.get_contextvars()["chapter"] == 42

        clear_context()
        assert "chapter" not in structlog.contextvars.get_contextvars()


def test_file_logging_writes_run_file(tmp_path, monkeypatch):
    from loom.core import logging as loom_logging

    monkeypatch.setattr(loom_logging.settings, "log_dir", tmp_path)

    configure_logging(log_to_file=True, log_sessions_to_keep=3)

    assert list(tmp_path.glob("loom_*.log"))

    # Back to console-only for the rest of the suite
    configure_logging(log_to_file=False)


def test_prune_keeps_newest_runs(tmp_path):
    now = time.time()
    for i in range(5):
        path = tmp_path / f"loom_2026010{i}_000000.log"
        path.write_text("x")
        os.utime(path, (now + i, now + i))

    removed = _prune_run_logs(tmp_path, keep=2)

    remaining = sorted(p.name for p in tmp_path.glob("loom_*.log"))
    assert remaining == ["loom_20260103_000000.log", "loom_20260104_000000.log"]
    assert len(removed) == 3


def test_prune_with_nothing_to_remove(tmp_path):
    (tmp_path / "loom_20260101_000000.log").write_text("x")

    assert _prune_run_logs(tmp_path, keep=4) == []
