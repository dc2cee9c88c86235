import random

import pytest

from models import ElementType, Grid
from solver.constraints import CandidateLedger, anti_solutions, candidates
from tests.data import CLASSIC_PUZZLE, SMALL_PUZZLE_TEXT


def test_candidates_remove_row_column_and_sector_digits():
    grid = Grid.parse(2, SMALL_PUZZLE_TEXT)
    # r0c0: row has 0, column has 0 (r3), sector has 0
    assert candidates(grid, 0) == {1, 2, 3}
    # r1c1: row has 3, column has 0, sector has 0
    assert candidates(grid, 5) == {1, 2}
    # r2c2: row has 2, column has 3
    assert candidates(grid, 10) == {0, 1}


def test_candidates_of_resolved_cell_is_none():
    grid = Grid.parse(2, SMALL_PUZZLE_TEXT)
    assert candidates(grid, 1) is None


def test_candidates_reject_out_of_range_index():
    grid = Grid(2)
    with pytest.raises(IndexError):
        candidates(grid, 16)
    with pytest.raises(IndexError):
        candidates(grid, -1)


def test_candidates_do_not_modify_grid():
    grid = Grid(3, CLASSIC_PUZZLE)
    before = grid.to_list()
    for index in range(81):
        candidates(grid, index)
    assert grid.to_list() == before


def test_anti_solutions_union_other_unresolved_cells():
    grid = Grid.parse(2, SMALL_PUZZLE_TEXT)
    # Row 0 peers of r0c0: r0c2 {1,2} and r0c3 {1}; r0c1 is resolved.
    assert candidates(grid, 2) == {1, 2}
    assert candidates(grid, 3) == {1}
    assert anti_solutions(grid, ElementType.ROW, 0) == {1, 2}
    # Column 0 peers: r1c0 {1,2}, r2c0 {1,3}; r3c0 resolved.
    assert anti_solutions(grid, ElementType.COLUMN, 0) == {1, 2, 3}


def test_anti_solutions_of_fully_resolved_element_is_empty():
    grid = Grid(2, [0, 1, 2, 3] + [-1] * 12)
    assert anti_solutions(grid, ElementType.ROW, 0) == set()


def test_anti_solutions_reject_bad_arguments():
    grid = Grid(2)
    with pytest.raises(ValueError):
        anti_solutions(grid, "diagonal", 0)
    with pytest.raises(IndexError):
        anti_solutions(grid, ElementType.ROW, 99)


def test_ledger_matches_fresh_candidates_after_assignments():
    grid = Grid(3, CLASSIC_PUZZLE)
    ledger = CandidateLedger(grid)
    rng = random.Random(7)
    for index in range(81):
        ledger.get(index)

    for _ in range(15):
        blanks = [i for i in range(81) if grid.digits[i] == -1]
        options = [(i, ledger.get(i)) for i in blanks if ledger.get(i)]
        if not options:
            break
        index, alternatives = rng.choice(options)
        ledger.assign(index, min(alternatives))
        for i in range(81):
            assert ledger.get(i) == candidates(grid, i)
        for element_type in ElementType:
            for i in blanks:
                if grid.digits[i] == -1:
                    assert ledger.anti_solutions(element_type, i) == anti_solutions(grid, element_type, i)
