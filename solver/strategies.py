# solver/strategies.py
"""Pluggable policies for exploring the branches of a pivot cell.

Every strategy returns the same solution set for the same grid; they differ
only in which threads do the work and how many may run at once.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable, List, Optional, Set

from config import CFG
from models import BLANK, ElementType, Grid, SolutionSet, element_peers
from progress import SolveStats, _emit_log
from solver.constraints import CandidateLedger, candidates

Recurse = Callable[[Grid, int], Set[Grid]]

SEQUENTIAL = "sequential"
THROTTLED = "throttled"
DEPTH_CAPPED = "depth-capped"


def _branch_clone(grid: Grid, pivot_index: int, digit: int) -> Grid:
    clone = grid.clone()
    clone.digits[pivot_index] = digit
    return clone


def _branch_in_place(grid: Grid, depth: int, pivot_index: int, alternatives: Iterable[int], recurse: Recurse) -> Set[Grid]:
    result = SolutionSet()
    for digit in sorted(alternatives):
        result.update(recurse(_branch_clone(grid, pivot_index, digit), depth + 1))
    return result.to_set()


class BranchingStrategy:
    """Base capability: anti-solutions from the ledger, branching left to subclasses."""

    name = ""

    def anti_solutions(
        self,
        grid: Grid,
        element_type: ElementType,
        index: int,
        ledger: CandidateLedger,
    ) -> Set[int]:
        return ledger.anti_solutions(element_type, index)

    def branch(
        self,
        grid: Grid,
        depth: int,
        pivot_index: int,
        alternatives: Iterable[int],
        recurse: Recurse,
        stats: SolveStats,
    ) -> Set[Grid]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SequentialStrategy(BranchingStrategy):
    """Explores every alternative on the calling thread, one after another."""

    name = SEQUENTIAL

    def branch(self, grid, depth, pivot_index, alternatives, recurse, stats):
        return _branch_in_place(grid, depth, pivot_index, alternatives, recurse)


class ThrottledParallelStrategy(BranchingStrategy):
    """Recomputes peer candidates on worker threads gated by a permit pool.

    A permit is taken before each worker thread starts and handed back when it
    exits. The caller then drains the whole pool, which only succeeds once every
    worker of the pass has finished, before reading the shared result. Drains
    are serialized so two callers can never each hold part of the pool.
    Branching stays on the calling thread.
    """

    name = THROTTLED

    def __init__(self, workers: Optional[int] = None) -> None:
        workers = CFG.WORKERS if workers is None else int(workers)
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self._permits = threading.Semaphore(workers)
        self._drain_lock = threading.Lock()
        self._active_lock = threading.Lock()
        self.active = 0
        self.peak_active = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(workers={self.workers})"

    def _enter(self) -> None:
        with self._active_lock:
            self.active += 1
            if self.active > self.peak_active:
                self.peak_active = self.active

    def _leave(self) -> None:
        with self._active_lock:
            self.active -= 1

    def _drain(self) -> None:
        with self._drain_lock:
            for _ in range(self.workers):
                self._permits.acquire()
            for _ in range(self.workers):
                self._permits.release()

    def anti_solutions(self, grid, element_type, index, ledger):
        if not isinstance(element_type, ElementType):
            raise ValueError(f"unknown element type {element_type!r}")
        if index < 0 or index >= len(grid.digits):
            raise IndexError(f"cell index {index} outside [0, {len(grid.digits)})")

        result: Set[int] = set()
        result_lock = threading.Lock()
        errors: List[BaseException] = []

        def _collect(peer: int) -> None:
            try:
                self._enter()
                found = candidates(grid, peer)
                with result_lock:
                    result.update(found)
            except BaseException as exc:
                with result_lock:
                    errors.append(exc)
            finally:
                self._leave()
                self._permits.release()

        digits = grid.digits
        for peer in element_peers(grid.dimension, element_type, index):
            if digits[peer] != BLANK:
                continue
            self._permits.acquire()
            try:
                worker = threading.Thread(target=_collect, args=(peer,), name=f"peer-{peer}", daemon=True)
                worker.start()
            except BaseException:
                self._permits.release()
                raise

        self._drain()
        if errors:
            raise errors[0]
        return result

    def branch(self, grid, depth, pivot_index, alternatives, recurse, stats):
        return _branch_in_place(grid, depth, pivot_index, alternatives, recurse)


class _Countdown:
    """Blocks waiters until ``count`` completions have been signalled."""

    def __init__(self, count: int) -> None:
        self._count = count
        self._cond = threading.Condition()

    def count_down(self) -> None:
        with self._cond:
            self._count -= 1
            if self._count <= 0:
                self._cond.notify_all()

    def wait(self) -> None:
        with self._cond:
            while self._count > 0:
                self._cond.wait()


class DepthCappedParallelStrategy(BranchingStrategy):
    """One thread per alternative while ``depth <= depth_cutoff``, sequential below.

    Near the root the branching factor is widest and each branch still has
    most of the search ahead of it; deeper down propagation dominates and a
    thread per branch costs more than it returns. The cutoff is configurable
    and not assumed to suit every dimension.
    """

    name = DEPTH_CAPPED

    def __init__(self, depth_cutoff: Optional[int] = None) -> None:
        self.depth_cutoff = CFG.DEPTH_CUTOFF if depth_cutoff is None else int(depth_cutoff)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(depth_cutoff={self.depth_cutoff})"

    def branch(self, grid, depth, pivot_index, alternatives, recurse, stats):
        if depth > self.depth_cutoff:
            return _branch_in_place(grid, depth, pivot_index, alternatives, recurse)

        ordered = sorted(alternatives)
        result = SolutionSet()
        done = _Countdown(len(ordered))
        errors: List[BaseException] = []
        errors_lock = threading.Lock()

        def _explore(clone: Grid) -> None:
            try:
                result.update(recurse(clone, depth + 1))
            except BaseException as exc:
                with errors_lock:
                    errors.append(exc)
            finally:
                done.count_down()

        started = 0
        try:
            for digit in ordered:
                clone = _branch_clone(grid, pivot_index, digit)
                worker = threading.Thread(
                    target=_explore,
                    args=(clone,),
                    name=f"branch-d{depth}-c{pivot_index}-{digit}",
                    daemon=True,
                )
                worker.start()
                started += 1
                stats.record_thread()
        except BaseException:
            # Tasks that never started still owe their completion signal.
            for _ in range(len(ordered) - started):
                done.count_down()
            done.wait()
            raise

        done.wait()
        if errors:
            _emit_log("Branch task failed", depth=depth, pivot=pivot_index, error=repr(errors[0]))
            raise errors[0]
        return result.to_set()


def make_strategy(
    name: Optional[str] = None,
    *,
    workers: Optional[int] = None,
    depth_cutoff: Optional[int] = None,
) -> BranchingStrategy:
    """Build the strategy named by ``name`` or, when omitted, by ``CFG.STRATEGY``."""
    key = (name or CFG.STRATEGY or SEQUENTIAL).strip().lower().replace("_", "-")
    if key == SEQUENTIAL:
        return SequentialStrategy()
    if key == THROTTLED:
        return ThrottledParallelStrategy(workers)
    if key == DEPTH_CAPPED:
        return DepthCappedParallelStrategy(depth_cutoff)
    raise ValueError(
        f"unknown strategy {name!r}; expected one of {SEQUENTIAL}, {THROTTLED}, {DEPTH_CAPPED}"
    )

