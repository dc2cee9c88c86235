# solver/cp_isolate.py
"""Run the CP-SAT solution count in a spawned child so native crashes stay contained."""

import multiprocessing as mp
import queue
import traceback
from typing import List, NamedTuple, Optional

# Extra seconds granted beyond the model timebox for interpreter start-up.
_STARTUP_GRACE = 10.0


class IsolatedCount(NamedTuple):
    count: int
    reason: Optional[str]
    crash_note: Optional[str] = None


def _count_worker(q, dimension: int, digits: List[int], limit: int, max_seconds: float) -> None:
    # Top-level so the spawn context can pickle it.
    try:
        from models import Grid
        from solver.cp_sat import count_solutions

        count, _solutions, reason = count_solutions(Grid(dimension, digits), limit, max_seconds)
        q.put(("ok", count, reason))
    except MemoryError:
        q.put(("err", -1, "child ran out of memory"))
    except Exception as e:
        q.put(("exc", -1, f"{e}\n{traceback.format_exc()}"))


def run_cp_sat_isolated(dimension: int, digits: List[int], limit: int, max_seconds: float) -> IsolatedCount:
    """Count up to ``limit`` solutions in a child process.

    ``count`` is ``-1`` whenever the child gave no usable answer; ``crash_note``
    is set only when the child timed out, died, or returned nothing.
    """
    ctx = mp.get_context("spawn")
    q = ctx.Queue()
    p = ctx.Process(
        target=_count_worker,
        args=(q, int(dimension), [int(d) for d in digits], int(limit), float(max_seconds)),
        name="cp-sat-count",
        daemon=True,
    )
    p.start()

    try:
        tag, count, reason = q.get(timeout=float(max_seconds) + _STARTUP_GRACE)
    except queue.Empty:
        if p.is_alive():
            p.terminate()
            p.join(2.0)
            return IsolatedCount(-1, "stopped before answer (timebox)", "killed: timeout")
        p.join(2.0)
        if p.exitcode not in (0, None):
            return IsolatedCount(-1, f"stopped before answer (child exit {p.exitcode})", "child crashed")
        return IsolatedCount(-1, "no result from child process", "no-result")

    p.join(2.0)
    if tag != "ok":
        return IsolatedCount(-1, reason)
    return IsolatedCount(count, reason)
