"""
structlog setup for hosts that embed the engine.

The engine never configures logging on import. A host (or a script under
scripts/) calls configure_logging() once; services then log through
structlog.get_logger(__name__) and pick up whatever was configured.

Console output is colored in debug mode and JSON otherwise. With
log_to_file enabled, each run writes loom_<timestamp>.log under
settings.log_dir and only the newest runs are kept.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.typing import Processor

from loom.core.config import settings

LOG_FILE_PATTERN = "loom_*.log"


def _prune_run_logs(logs_dir: Path, keep: int) -> List[Path]:
    """Remove all but the `keep` newest run logs; return the removed paths."""
    runs = sorted(logs_dir.glob(LOG_FILE_PATTERN), key=lambda p: p.stat().st_mtime)
    stale = runs[: max(len(runs) - keep, 0)]
    removed = []
    for path in stale:
        try:
            path.unlink()
        except OSError as e:
            structlog.get_logger(__name__).warning(
                "run_log_prune_failed", path=str(path), error=str(e)
            )
            continue
        removed.append(path)
    return removed


def _renderers(debug: bool) -> List[Processor]:
    if debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def configure_logging(
    log_to_file: Optional[bool] = None,
    log_sessions_to_keep: Optional[int] = None,
    debug: Optional[bool] = None,
) -> None:
    """Install structlog processors and stdlib handlers.

    Arguments default to the matching fields on `settings`. Calling this
    again replaces the handlers installed by the previous call.
    """
    debug = settings.debug if debug is None else debug
    log_to_file = settings.log_to_file if log_to_file is None else log_to_file
    if log_sessions_to_keep is None:
        log_sessions_to_keep = settings.log_sessions_to_keep

    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        logs_dir = Path(settings.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        _prune_run_logs(logs_dir, keep=log_sessions_to_keep - 1)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(logs_dir / f"loom_{stamp}.log", mode="w"))

    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderers(debug),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_context(**kwargs) -> None:
    """Attach key/values (e.g. chapter=42) to every log line until cleared."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
