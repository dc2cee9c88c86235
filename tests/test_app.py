import io

import pytest

import app
from app import MemorySolutionCache, check, generate, main, solve, solve_cached
from models import Grid
from solver.strategies import DepthCappedParallelStrategy
from tests.data import (
    CLASSIC_PUZZLE,
    CLASSIC_SOLUTION,
    SMALL_CONTRADICTION,
    SMALL_OPEN_PUZZLE,
    SMALL_OPEN_SOLUTION_COUNT,
    SMALL_PUZZLE_TEXT,
    SMALL_SOLUTION,
)

SMALL_PUZZLE = Grid.parse(2, SMALL_PUZZLE_TEXT).to_list()


def test_solve_returns_digit_tuples():
    assert solve(SMALL_PUZZLE, 2) == {tuple(SMALL_SOLUTION)}
    assert solve(CLASSIC_PUZZLE, 3, "depth-capped") == {tuple(CLASSIC_SOLUTION)}
    assert len(solve(SMALL_OPEN_PUZZLE, 2, DepthCappedParallelStrategy(0))) == SMALL_OPEN_SOLUTION_COUNT
    assert solve(SMALL_CONTRADICTION, 2) == set()


def test_solve_validates_input():
    with pytest.raises(ValueError):
        solve([0] * 15, 2)
    with pytest.raises(ValueError):
        solve(SMALL_PUZZLE, 2, "nonsense")


def test_check_reports_solvability():
    assert check(SMALL_PUZZLE, 2)
    assert check(SMALL_OPEN_PUZZLE, 2)
    assert not check(SMALL_CONTRADICTION, 2)


def test_generate_returns_unique_puzzle_and_its_solution():
    puzzle, solution = generate(2, seed=3)
    assert len(puzzle) == len(solution) == 16
    assert solve(puzzle, 2) == {tuple(solution)}
    assert generate(2, seed=3) == (puzzle, solution)


class _CountingCache(MemorySolutionCache):
    def __init__(self):
        super().__init__()
        self.gets = 0

    def get_solution(self, fingerprint):
        self.gets += 1
        return super().get_solution(fingerprint)


def test_solve_cached_stores_unique_solutions_and_serves_them(monkeypatch):
    cache = _CountingCache()
    assert solve_cached(SMALL_PUZZLE, 2, cache) == {tuple(SMALL_SOLUTION)}
    assert len(cache) == 1
    assert cache.solution_exists(Grid(2, SMALL_PUZZLE).fingerprint())

    def _no_solving(*args, **kwargs):
        raise AssertionError("cache hit must not solve")

    monkeypatch.setattr(app, "solve", _no_solving)
    assert solve_cached(SMALL_PUZZLE, 2, cache) == {tuple(SMALL_SOLUTION)}
    assert cache.gets == 1


def test_solve_cached_skips_ambiguous_and_unsolvable_puzzles():
    cache = MemorySolutionCache()
    assert len(solve_cached(SMALL_OPEN_PUZZLE, 2, cache)) == SMALL_OPEN_SOLUTION_COUNT
    assert solve_cached(SMALL_CONTRADICTION, 2, cache) == set()
    assert len(cache) == 0


def _run(argv):
    out = io.StringIO()
    code = main(argv, out)
    return code, out.getvalue()


def test_cli_solves_the_usage_example():
    code, text = _run(["solve", "2"] + SMALL_PUZZLE_TEXT.split() + ["--strategy", "depth-capped"])
    assert code == 0
    assert "puzzle [2]" in text
    assert "solution [2]" in text
    assert "3 0  2 1" in text
    assert "1 solution(s), strategy=depth-capped" in text
    assert text.rstrip().endswith("ms")


def test_cli_reports_unsolvable_puzzle_with_exit_one():
    code, text = _run(["solve", "2", "0", "0"] + ["."] * 14)
    assert code == 1
    assert "0 solution(s)" in text


@pytest.mark.parametrize(
    "argv",
    [
        ["solve", "2", "4"] + ["."] * 15,
        ["solve", "2", "."],
        ["create", "7"],
        ["solve", "2"] + ["."] * 16 + ["--strategy", "bogus"],
        ["check", "2", "--workers", "0", "--strategy", "throttled"],
    ],
)
def test_cli_rejects_bad_input_with_exit_two(argv):
    code, text = _run(argv)
    assert code == 2
    assert "usage:" in text


def test_cli_create_prints_a_puzzle_only():
    code, text = _run(["create", "2", "--seed", "4"])
    assert code == 0
    assert "puzzle [2]" in text
    assert "solution" not in text


def test_cli_check_generates_then_solves():
    code, text = _run(["check", "2", "--seed", "8", "--strategy", "throttled", "--workers", "2"])
    assert code == 0
    assert "1 solution(s), strategy=throttled" in text


@pytest.mark.parametrize(
    "entry",
    [
        SMALL_SOLUTION[:15],
        [4] + SMALL_SOLUTION[1:],
        [-1] + SMALL_SOLUTION[1:],
        [0] * 16,
    ],
    ids=["short", "out-of-range", "blank", "repeats"],
)
def test_solve_cached_rejects_malformed_cache_entries(entry):
    class _RawCache(MemorySolutionCache):
        def get_solution(self, fingerprint):
            return entry

    cache = _RawCache()
    cache.store_solution(Grid(2, SMALL_PUZZLE).fingerprint(), SMALL_SOLUTION)
    with pytest.raises(ValueError):
        solve_cached(SMALL_PUZZLE, 2, cache)


@pytest.mark.parametrize("command", ["create", "check"])
def test_cli_generating_commands_reject_digits(command):
    code, text = _run([command, "2"] + SMALL_PUZZLE_TEXT.split())
    assert code == 2
    assert "takes no digits" in text
    assert "usage:" in text
    assert "puzzle [2]" not in text


def test_cli_verify_cross_checks_with_cp_sat():
    pytest.importorskip("ortools")
    code, text = _run(["solve", "2"] + SMALL_PUZZLE_TEXT.split() + ["--verify"])
    assert code == 0
    assert "1 solution(s)" in text
    assert "CP-SAT cross-check: agrees" in text


def test_cli_verify_reports_a_disagreement(monkeypatch):
    import solver.cp_isolate as cp_isolate

    monkeypatch.setattr(cp_isolate, "run_cp_sat_isolated", lambda *args: cp_isolate.IsolatedCount(2, "CP-SAT FEASIBLE (0.01s)"))
    code, text = _run(["solve", "2"] + SMALL_PUZZLE_TEXT.split() + ["--verify"])
    assert code == 1
    assert "CP-SAT cross-check: DISAGREES" in text


def test_cli_verify_reports_an_unavailable_cross_check(monkeypatch):
    import solver.cp_isolate as cp_isolate

    monkeypatch.setattr(
        cp_isolate,
        "run_cp_sat_isolated",
        lambda *args: cp_isolate.IsolatedCount(-1, "stopped before answer (timebox)", "killed: timeout"),
    )
    code, text = _run(["solve", "2"] + SMALL_PUZZLE_TEXT.split() + ["--verify"])
    assert code == 1
    assert "CP-SAT cross-check unavailable" in text
