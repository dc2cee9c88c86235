import time
from typing import Dict, List, Optional, Sequence, Tuple

from ortools.sat.python import cp_model as _cp

from config import CFG
from models import BLANK, ElementType, Grid, element_indices

# ---------------- model ----------------

def build_model(grid: Grid) -> Tuple[_cp.CpModel, List[_cp.IntVar]]:
    """One integer variable per cell, AllDifferent per row, column and sector, givens fixed."""
    m = _cp.CpModel()
    radix = grid.radix
    cells: List[_cp.IntVar] = []
    for index, digit in enumerate(grid.digits):
        if digit == BLANK:
            cells.append(m.NewIntVar(0, radix - 1, f"c{index}"))
        else:
            cells.append(m.NewIntVar(int(digit), int(digit), f"c{index}"))
    for element_type in ElementType:
        for k in range(radix):
            m.AddAllDifferent([cells[i] for i in element_indices(grid.dimension, element_type, k)])
    return m, cells


class _SolutionCollector(_cp.CpSolverSolutionCallback):
    def __init__(self, cells: Sequence[_cp.IntVar], limit: int) -> None:
        super().__init__()
        self._cells = cells
        self._limit = limit
        self.solutions: List[List[int]] = []

    def on_solution_callback(self) -> None:
        self.solutions.append([int(self.Value(v)) for v in self._cells])
        if len(self.solutions) >= self._limit:
            self.StopSearch()


_STATUS_NAMES: Dict[int, str] = {
    _cp.OPTIMAL: "OPTIMAL",
    _cp.FEASIBLE: "FEASIBLE",
    _cp.INFEASIBLE: "INFEASIBLE",
    _cp.MODEL_INVALID: "MODEL_INVALID",
    _cp.UNKNOWN: "UNKNOWN",
}


def count_solutions(
    grid: Grid,
    limit: int = 2,
    max_seconds: Optional[float] = None,
) -> Tuple[int, List[List[int]], str]:
    """Enumerate up to ``limit`` solutions with CP-SAT.

    Returns ``(count, solutions, reason)``; ``count`` is capped at ``limit`` and
    ``reason`` names the final solver status.
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    seconds = CFG.CP_SAT_SECONDS if max_seconds is None else float(max_seconds)

    m, cells = build_model(grid)
    solver = _cp.CpSolver()
    solver.parameters.max_time_in_seconds = float(seconds)
    # Enumerating every solution requires a single search worker.
    solver.parameters.num_search_workers = 1
    solver.parameters.enumerate_all_solutions = True
    solver.parameters.log_search_progress = False

    collector = _SolutionCollector(cells, limit)
    t0 = time.time()
    res = solver.Solve(m, collector)
    elapsed = time.time() - t0

    status = _STATUS_NAMES.get(res, str(res))
    if res == _cp.MODEL_INVALID:
        return 0, [], f"CP-SAT model invalid ({elapsed:.2f}s)"
    if res == _cp.UNKNOWN and not collector.solutions:
        return 0, [], f"CP-SAT stopped before a solution (timebox {seconds:g}s)"
    return len(collector.solutions), collector.solutions, f"CP-SAT {status} ({elapsed:.2f}s)"
