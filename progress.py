from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

from config import CFG

# ------------------------------
# Run logger
# ------------------------------


def _log_file_path() -> Path:
    configured = CFG.LOG_FILE or os.environ.get("SD_LOG_FILE")
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / "logs" / "solver_runs.log"


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("sudoku.solver")
    if logger.handlers:
        return logger

    log_path = _log_file_path()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(threadName)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except Exception:
        # A read-only install location must not break solving.
        logger.handlers.clear()
    return logger


RUN_LOGGER = _init_logger()


def _log_enabled() -> bool:
    return bool(RUN_LOGGER.handlers)


def _fmt_seconds(seconds: Optional[float]) -> Optional[str]:
    if seconds is None:
        return None
    try:
        return f"{float(seconds):.3f}s"
    except Exception:
        return None


def _emit_log(event: str, **fields: Any) -> None:
    if not _log_enabled():
        return
    extras = [
        f"{key}={value}"
        for key, value in fields.items()
        if value is not None and value != ""
    ]
    try:
        if extras:
            RUN_LOGGER.info("%s | %s", event, " ".join(extras))
        else:
            RUN_LOGGER.info("%s", event)
    except Exception:
        # Logging failures must never bubble back to callers.
        pass


# ------------------------------
# Thread-safe per-run statistics
# ------------------------------

class SolveStats:
    """Counters shared by every thread working on one resolve() call."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started: Optional[float] = None
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._started = None
            self.elapsed = 0.0
            self.branches = 0
            self.dead_ends = 0
            self.solutions = 0
            self.threads_started = 0
            self.max_depth = 0

    def start(self) -> None:
        with self._lock:
            self._started = time.time()

    def stop(self) -> None:
        with self._lock:
            if self._started is not None:
                self.elapsed = max(0.0, time.time() - self._started)
                self._started = None

    def record_branch(self, depth: int) -> None:
        with self._lock:
            self.branches += 1
            if depth > self.max_depth:
                self.max_depth = depth

    def record_dead_end(self) -> None:
        with self._lock:
            self.dead_ends += 1

    def record_solution(self) -> None:
        with self._lock:
            self.solutions += 1

    def record_thread(self) -> None:
        with self._lock:
            self.threads_started += 1

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "elapsed": self.elapsed,
                "branches": self.branches,
                "dead_ends": self.dead_ends,
                "solutions": self.solutions,
                "threads_started": self.threads_started,
                "max_depth": self.max_depth,
            }


def log_run(event: str, stats: SolveStats, **fields: Any) -> None:
    snap = stats.snapshot()
    _emit_log(
        event,
        duration=_fmt_seconds(snap.pop("elapsed")),
        **fields,
        **snap,
    )
