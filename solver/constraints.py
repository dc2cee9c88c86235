# solver/constraints.py
"""Candidate and anti-solution deduction for a single grid."""

from __future__ import annotations

from typing import Dict, Optional, Set

from models import BLANK, ElementType, Grid, cell_peers, element_peers


def _check_cell(grid: Grid, index: int) -> None:
    if index < 0 or index >= len(grid.digits):
        raise IndexError(f"cell index {index} outside [0, {len(grid.digits)})")


def _check_element_type(element_type: ElementType) -> None:
    if not isinstance(element_type, ElementType):
        raise ValueError(f"unknown element type {element_type!r}")


def candidates(grid: Grid, index: int) -> Optional[Set[int]]:
    """Digits still possible at ``index``, or ``None`` when the cell is resolved.

    Starts from the full alphabet and strips every digit already placed in the
    cell's row, column and sector.
    """
    _check_cell(grid, index)
    digits = grid.digits
    if digits[index] != BLANK:
        return None
    result = set(range(grid.radix))
    result.difference_update(digits[i] for i in cell_peers(grid.dimension, index))
    return result


def anti_solutions(grid: Grid, element_type: ElementType, index: int) -> Set[int]:
    """Union of the candidates of every other unresolved cell in the element."""
    _check_cell(grid, index)
    _check_element_type(element_type)
    digits = grid.digits
    result: Set[int] = set()
    for peer in element_peers(grid.dimension, element_type, index):
        if digits[peer] == BLANK:
            result |= candidates(grid, peer)
    return result


class CandidateLedger:
    """Candidate sets of one grid, kept current while cells get assigned.

    Entries are filled lazily from :func:`candidates`. Assigning a digit drops
    it from the cached entries of that cell's peers, so every cached set equals
    what a fresh :func:`candidates` call would return.
    """

    __slots__ = ("grid", "_cache")

    def __init__(self, grid: Grid) -> None:
        self.grid = grid
        self._cache: Dict[int, Set[int]] = {}

    def get(self, index: int) -> Optional[Set[int]]:
        cached = self._cache.get(index)
        if cached is not None:
            return cached
        fresh = candidates(self.grid, index)
        if fresh is not None:
            self._cache[index] = fresh
        return fresh

    def assign(self, index: int, digit: int) -> None:
        self.grid.digits[index] = digit
        self._cache.pop(index, None)
        for peer in cell_peers(self.grid.dimension, index):
            entry = self._cache.get(peer)
            if entry is not None:
                entry.discard(digit)

    def anti_solutions(self, element_type: ElementType, index: int) -> Set[int]:
        _check_cell(self.grid, index)
        _check_element_type(element_type)
        digits = self.grid.digits
        result: Set[int] = set()
        for peer in element_peers(self.grid.dimension, element_type, index):
            if digits[peer] == BLANK:
                result |= self.get(peer)
        return result
