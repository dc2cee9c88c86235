# solver/generator.py
"""Puzzle generation: a closed-form solved grid, shuffled, then stripped of clues."""

from __future__ import annotations

import random
from typing import Optional, Tuple

from config import CFG
from models import BLANK, ElementType, Grid
from progress import _emit_log
from solver.resolver import Solver


class IllegalStateError(RuntimeError):
    """Raised when an operation's precondition on the grid's state does not hold."""


def _rng(rng: Optional[random.Random]) -> random.Random:
    if rng is not None:
        return rng
    return random.Random(CFG.RANDOM_SEED)


def base_pattern(grid: Grid) -> None:
    """Fill ``grid`` with the canonical solved pattern.

    Each row is the alphabet shifted by ``dimension`` against the row above,
    with an extra shift of one at every band boundary, which keeps every
    sector free of repeats.
    """
    dimension, radix = grid.dimension, grid.radix
    band = dimension * radix
    digit = radix - dimension - 1
    for index in range(len(grid.digits)):
        if index % radix == 0:
            digit += dimension
        if index % band == 0:
            digit += 1
        if digit >= radix:
            digit -= radix
        grid.digits[index] = digit
        digit += 1


def swap_digits(grid: Grid, first: int, second: int) -> None:
    """Relabel: every ``first`` becomes ``second`` and vice versa."""
    digits = grid.digits
    for index, digit in enumerate(digits):
        if digit == first:
            digits[index] = second
        elif digit == second:
            digits[index] = first


def swap_elements(grid: Grid, element_type: ElementType, first: int, second: int) -> None:
    """Swap two rows or two columns; both must lie in the same band."""
    if element_type is ElementType.SECTOR:
        raise ValueError("only rows and columns can be swapped")
    if first // grid.dimension != second // grid.dimension:
        raise ValueError(f"{element_type.value}s {first} and {second} lie in different bands")
    saved = grid.element(element_type, first)
    grid.set_element(element_type, first, grid.element(element_type, second))
    grid.set_element(element_type, second, saved)


def populate(grid: Grid, rng: Optional[random.Random] = None, rounds: Optional[int] = None) -> Grid:
    """Overwrite ``grid`` with a randomized, fully solved assignment.

    Digit relabelling and intra-band row/column swaps are bijections on the
    solution space, so the result stays a valid grid.
    """
    rng = _rng(rng)
    if rounds is None:
        rounds = CFG.SHUFFLE_ROUNDS
    if rounds < 0:
        rounds = len(grid.digits)

    base_pattern(grid)
    radix, dimension = grid.radix, grid.dimension
    for _ in range(rounds):
        if rng.random() < 0.5:
            first = rng.randrange(radix)
            second = first
            while second == first:
                second = rng.randrange(radix)
            swap_digits(grid, first, second)
        else:
            element_type = ElementType.ROW if rng.random() < 0.5 else ElementType.COLUMN
            first = rng.randrange(radix)
            band_start = first // dimension * dimension
            second = first
            while second == first:
                second = band_start + rng.randrange(dimension)
            swap_elements(grid, element_type, first, second)
    return grid


def reduce(grid: Grid, solver: Optional[Solver] = None, rng: Optional[random.Random] = None) -> Grid:
    """Clear as many clues of ``grid`` as possible while keeping one solution.

    Cells are tried once each, in random order. A cleared cell stays blank when
    the grid still has exactly one solution and is restored when it gains more.
    Only the distinction between 0, 1 and more solutions matters, so each
    check stops counting at two.
    """
    rng = _rng(rng)
    solver = solver if solver is not None else Solver()
    solver.attach(grid)
    if solver.count(limit=2) != 1:
        raise IllegalStateError("reduce() requires a grid with exactly one solution")

    order = list(range(len(grid.digits)))
    rng.shuffle(order)
    cleared = 0
    for index in order:
        digit = grid.digits[index]
        if digit == BLANK:
            continue
        grid.digits[index] = BLANK
        count = solver.count(limit=2)
        if count < 1:
            raise AssertionError(
                f"clearing cell {index} removed every solution; propagation or shuffling is broken"
            )
        if count > 1:
            grid.digits[index] = digit
        else:
            cleared += 1

    _emit_log(
        "Reduce finished",
        dimension=grid.dimension,
        cleared=cleared,
        givens=len(grid.digits) - grid.unresolved_count(),
    )
    return grid


def generate_pair(
    dimension: int,
    solver: Optional[Solver] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[Grid, Grid]:
    """Return ``(puzzle, solution)`` with the puzzle uniquely solvable."""
    rng = _rng(rng)
    solution = populate(Grid(dimension), rng)
    puzzle = reduce(solution.clone(), solver, rng)
    return puzzle, solution
