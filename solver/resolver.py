# solver/resolver.py
"""Constraint propagation to a fixed point, then branching on the tightest cell."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import islice
from typing import FrozenSet, Iterator, Optional, Set

from models import BLANK, ElementType, Grid
from progress import SolveStats, log_run
from solver.constraints import CandidateLedger
from solver.strategies import BranchingStrategy, make_strategy

# Forcing deductions are tried against these elements, in this order.
_FORCING_ORDER = (ElementType.ROW, ElementType.COLUMN, ElementType.SECTOR)


class SolverNotAttachedError(RuntimeError):
    """Raised when a resolve-family call is made before attach()."""


@dataclass(frozen=True)
class Outcome:
    """Where propagation stopped.

    ``dead`` marks a contradiction. Otherwise ``pivot_index`` is ``-1`` when the
    grid is fully resolved, or the cell to branch on together with its
    ``alternatives``.
    """
    dead: bool
    pivot_index: int = -1
    alternatives: FrozenSet[int] = frozenset()

    @property
    def solved(self) -> bool:
        return not self.dead and self.pivot_index < 0


_DEAD = Outcome(dead=True)
_SOLVED = Outcome(dead=False)


class Solver:
    """Solves the attached grid with the configured branching strategy."""

    def __init__(self, strategy: Optional[BranchingStrategy] = None, stats: Optional[SolveStats] = None) -> None:
        self.strategy = strategy if strategy is not None else make_strategy()
        self.stats = stats if stats is not None else SolveStats()
        self.grid: Optional[Grid] = None

    def attach(self, grid: Grid) -> "Solver":
        if grid is None:
            raise TypeError("cannot attach None")
        self.grid = grid
        return self

    def _attached(self) -> Grid:
        if self.grid is None:
            raise SolverNotAttachedError("solver is not attached to a grid")
        return self.grid

    # ---------- propagation ----------

    def propagate(self, grid: Grid) -> Outcome:
        """Resolve forced cells of ``grid`` in place until a fixed point.

        Any resolution restarts the scan from the first cell, since it can make
        earlier cells resolvable.
        """
        ledger = CandidateLedger(grid)
        digits = grid.digits
        size = len(digits)
        pivot_index = -1
        pivot_alternatives: Optional[Set[int]] = None
        index = 0
        while index < size:
            if digits[index] != BLANK:
                index += 1
                continue
            alternatives = ledger.get(index)
            if not alternatives:
                return _DEAD
            if len(alternatives) == 1:
                ledger.assign(index, next(iter(alternatives)))
                index, pivot_index, pivot_alternatives = 0, -1, None
                continue

            forced: Optional[Set[int]] = None
            for element_type in _FORCING_ORDER:
                remainder = alternatives - self.strategy.anti_solutions(grid, element_type, index, ledger)
                if remainder:
                    forced = remainder
                    break
            if forced is not None:
                if len(forced) > 1:
                    # Several digits have no other home in this element.
                    return _DEAD
                ledger.assign(index, next(iter(forced)))
                index, pivot_index, pivot_alternatives = 0, -1, None
                continue

            if pivot_alternatives is None or len(alternatives) < len(pivot_alternatives):
                pivot_index = index
                pivot_alternatives = alternatives
            index += 1

        if pivot_alternatives is None:
            return _SOLVED
        return Outcome(dead=False, pivot_index=pivot_index, alternatives=frozenset(pivot_alternatives))

    # ---------- full resolution ----------

    def resolve(self) -> Set[Grid]:
        """Every solution of the attached grid; the attached grid is left untouched."""
        grid = self._attached()
        self.stats.reset()
        self.stats.start()
        try:
            if not grid.is_consistent():
                # Conflicting givens are never revisited by propagation.
                self.stats.record_dead_end()
                return set()
            return self._resolve(grid.clone(), 0)
        finally:
            self.stats.stop()
            log_run(
                "Resolve finished",
                self.stats,
                strategy=self.strategy.name,
                dimension=grid.dimension,
                givens=len(grid.digits) - grid.unresolved_count(),
            )

    def _resolve(self, grid: Grid, depth: int) -> Set[Grid]:
        self.stats.record_branch(depth)
        outcome = self.propagate(grid)
        if outcome.dead:
            self.stats.record_dead_end()
            return set()
        if outcome.solved:
            self.stats.record_solution()
            return {grid}
        return self.strategy.branch(
            grid,
            depth,
            outcome.pivot_index,
            outcome.alternatives,
            self._resolve,
            self.stats,
        )

    # ---------- lazy enumeration ----------

    def iter_solutions(self) -> Iterator[Grid]:
        """Depth-first, single-threaded enumeration that stops when the caller does."""
        grid = self._attached()
        if not grid.is_consistent():
            return iter(())
        return self._iter(grid.clone())

    def _iter(self, grid: Grid) -> Iterator[Grid]:
        outcome = self.propagate(grid)
        if outcome.dead:
            return
        if outcome.solved:
            yield grid
            return
        for digit in sorted(outcome.alternatives):
            clone = grid.clone()
            clone.digits[outcome.pivot_index] = digit
            yield from self._iter(clone)

    def find_first(self) -> Optional[Grid]:
        return next(self.iter_solutions(), None)

    def count(self, limit: Optional[int] = None) -> int:
        """Number of distinct solutions, stopping early once ``limit`` is reached."""
        solutions = self.iter_solutions()
        if limit is not None:
            solutions = islice(solutions, limit)
        return len(set(solutions))
