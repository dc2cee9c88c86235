# app.py: solve / check / generate entry points and the command line
from __future__ import annotations

import argparse
import random
import sys
import time
from typing import Dict, List, Optional, Protocol, Sequence, Set, Tuple

from config import CFG
from models import Grid
from progress import SolveStats, _emit_log
from solver.generator import generate_pair
from solver.resolver import Solver
from solver.strategies import BranchingStrategy, make_strategy

Digits = Tuple[int, ...]


class SolutionCache(Protocol):
    """Lookups served by the external solution cache, keyed by puzzle fingerprint."""

    def solution_exists(self, fingerprint: bytes) -> bool: ...

    def get_solution(self, fingerprint: bytes) -> Optional[Sequence[int]]: ...

    def store_solution(self, fingerprint: bytes, digits: Sequence[int]) -> None: ...


class MemorySolutionCache:
    """Dict-backed stand-in for the remote cache."""

    def __init__(self) -> None:
        self._store: Dict[bytes, Digits] = {}

    def solution_exists(self, fingerprint: bytes) -> bool:
        return fingerprint in self._store

    def get_solution(self, fingerprint: bytes) -> Optional[Digits]:
        return self._store.get(fingerprint)

    def store_solution(self, fingerprint: bytes, digits: Sequence[int]) -> None:
        self._store[bytes(fingerprint)] = tuple(int(d) for d in digits)

    def __len__(self) -> int:
        return len(self._store)


def _strategy(strategy: "BranchingStrategy | str | None") -> BranchingStrategy:
    if isinstance(strategy, BranchingStrategy):
        return strategy
    return make_strategy(strategy)


def solve(
    digits: Sequence[int],
    dimension: int,
    strategy: "BranchingStrategy | str | None" = None,
) -> Set[Digits]:
    """All full solutions of the puzzle, each as a tuple of ``radix²`` digits."""
    grid = Grid(dimension, digits)
    solver = Solver(_strategy(strategy)).attach(grid)
    return {tuple(solution.digits) for solution in solver.resolve()}


def check(digits: Sequence[int], dimension: int) -> bool:
    """True when the puzzle has at least one solution; stops at the first one."""
    grid = Grid(dimension, digits)
    return Solver(make_strategy("sequential")).attach(grid).find_first() is not None


def generate(
    dimension: int,
    strategy: "BranchingStrategy | str | None" = None,
    seed: Optional[int] = None,
) -> Tuple[List[int], List[int]]:
    """A uniquely solvable puzzle and its solution, as flat digit lists."""
    rng = random.Random(CFG.RANDOM_SEED if seed is None else seed)
    puzzle, solution = generate_pair(dimension, Solver(_strategy(strategy)), rng)
    return puzzle.to_list(), solution.to_list()


def solve_cached(
    digits: Sequence[int],
    dimension: int,
    cache: SolutionCache,
    strategy: "BranchingStrategy | str | None" = None,
) -> Set[Digits]:
    """Serve a cached solution when one exists, otherwise solve and cache a unique result."""
    grid = Grid(dimension, digits)
    fingerprint = grid.fingerprint()
    if cache.solution_exists(fingerprint):
        cached = cache.get_solution(fingerprint)
        if cached is not None:
            _emit_log("Cache hit", dimension=dimension)
            solution = Grid(dimension, cached)
            if not solution.is_complete() or not solution.is_consistent():
                raise ValueError(f"cached solution for this puzzle is not a valid full grid: {solution!r}")
            return {tuple(solution.digits)}
    solutions = solve(digits, dimension, strategy)
    if len(solutions) == 1:
        cache.store_solution(fingerprint, next(iter(solutions)))
        _emit_log("Cache store", dimension=dimension)
    return solutions


# ---------- command line ----------

USAGE_EXAMPLES = """examples:
  app.py create 3
  app.py check 5 --strategy throttled
  app.py solve 2 . 0 . .  . . 3 .  . . . 2  0 . . . --strategy depth-capped
"""


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="app.py",
        description="Generate, check and solve Sudoku grids of dimension 2-6.",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("command", choices=("create", "check", "solve"))
    ap.add_argument("dimension", type=int, help="sector side length, 2-6")
    ap.add_argument("digits", nargs="*", help="puzzle digits (0-9, a-z, '.' for blank) for solve")
    ap.add_argument("--strategy", default=None, help="sequential | throttled | depth-capped")
    ap.add_argument("--workers", type=int, default=None, help="permit pool size for throttled")
    ap.add_argument("--depth-cutoff", type=int, default=None, help="thread fan-out depth for depth-capped")
    ap.add_argument("--seed", type=int, default=None, help="random seed for create/check")
    ap.add_argument("--verify", action="store_true", help="cross-check the solution count with CP-SAT")
    return ap


def _verify(grid: Grid, expected: int, out) -> bool:
    from solver.cp_isolate import run_cp_sat_isolated

    count, reason, crash = run_cp_sat_isolated(grid.dimension, grid.to_list(), 2, CFG.CP_SAT_SECONDS)
    if count < 0:
        print(f"CP-SAT cross-check unavailable: {reason} {crash or ''}".rstrip(), file=out)
        return False
    agreed = count == min(expected, 2)
    print(f"CP-SAT cross-check: {'agrees' if agreed else 'DISAGREES'} ({reason})", file=out)
    return agreed


def main(argv: Optional[List[str]] = None, out=None) -> int:
    out = out or sys.stdout
    ap = _build_parser()
    args = ap.parse_args(argv)

    try:
        strategy = make_strategy(args.strategy, workers=args.workers, depth_cutoff=args.depth_cutoff)
        if args.command == "solve":
            grid = Grid.parse(args.dimension, args.digits)
        elif args.digits:
            raise ValueError(f"{args.command} takes no digits, received {len(args.digits)}")
        else:
            grid = Grid(args.dimension)
    except (TypeError, ValueError) as exc:
        print(str(exc), file=out)
        ap.print_usage(out)
        return 2

    t0 = time.time()
    stats = SolveStats()
    solver = Solver(strategy, stats)
    if args.command != "solve":
        rng = random.Random(CFG.RANDOM_SEED if args.seed is None else args.seed)
        grid, _solution = generate_pair(args.dimension, solver, rng)

    print(f"puzzle [{grid.dimension}]", file=out)
    print(grid.render(), file=out)

    ok = True
    if args.command in ("check", "solve"):
        solutions = solver.attach(grid).resolve()
        ordered = sorted(solutions, key=lambda g: g.to_list())
        for solution in ordered:
            print(f"solution [{solution.dimension}]", file=out)
            print(solution.render(), file=out)
        print(f"{len(ordered)} solution(s), strategy={strategy.name}, "
              f"branches={stats.branches}, threads={stats.threads_started}", file=out)
        ok = bool(ordered)
        if args.verify:
            ok = _verify(grid, len(ordered), out) and ok

    print(f"{int((time.time() - t0) * 1000)} ms", file=out)
    return 0 if ok else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
