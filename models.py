"""Grid data model, digit text codec and cell addressing helpers."""

from __future__ import annotations

import threading
from array import array
from enum import Enum
from functools import lru_cache
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple

MIN_DIMENSION = 2
MAX_DIMENSION = 6

# Dimension 2 uses 0-3, 3 uses 0-8, 4 uses 0-9a-f, 5 uses 0-9a-o, 6 uses 0-9a-z.
DIGIT_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
BLANK = -1
BLANK_TEXT = "."


class ElementType(str, Enum):
    """The three kinds of cell groups that must hold distinct digits."""
    ROW = "row"
    COLUMN = "column"
    SECTOR = "sector"


def check_dimension(dimension: int) -> int:
    if isinstance(dimension, bool) or not isinstance(dimension, int):
        raise TypeError(f"dimension must be an int, got {dimension!r}")
    if dimension < MIN_DIMENSION or dimension > MAX_DIMENSION:
        raise ValueError(
            f"dimension must lie in [{MIN_DIMENSION}, {MAX_DIMENSION}], got {dimension}"
        )
    return dimension


# ---------- addressing ----------

@lru_cache(maxsize=None)
def element_indices(dimension: int, element_type: ElementType, element_index: int) -> Tuple[int, ...]:
    """Linear cell indices of one row, column or sector, in reading order."""
    radix = dimension * dimension
    if element_index < 0 or element_index >= radix:
        raise IndexError(f"element index {element_index} outside [0, {radix})")
    if element_type is ElementType.ROW:
        start = element_index * radix
        return tuple(range(start, start + radix))
    if element_type is ElementType.COLUMN:
        return tuple(range(element_index, radix * radix, radix))
    if element_type is ElementType.SECTOR:
        base = (element_index // dimension * radix + element_index % dimension) * dimension
        return tuple(
            base + row * radix + col
            for row in range(dimension)
            for col in range(dimension)
        )
    raise ValueError(f"unknown element type {element_type!r}")


def element_of(dimension: int, element_type: ElementType, index: int) -> int:
    radix = dimension * dimension
    row, col = divmod(index, radix)
    if element_type is ElementType.ROW:
        return row
    if element_type is ElementType.COLUMN:
        return col
    if element_type is ElementType.SECTOR:
        return row // dimension * dimension + col // dimension
    raise ValueError(f"unknown element type {element_type!r}")


@lru_cache(maxsize=None)
def element_peers(dimension: int, element_type: ElementType, index: int) -> Tuple[int, ...]:
    """Cells sharing the given element with ``index``, excluding ``index`` itself."""
    members = element_indices(dimension, element_type, element_of(dimension, element_type, index))
    return tuple(i for i in members if i != index)


@lru_cache(maxsize=None)
def cell_peers(dimension: int, index: int) -> Tuple[int, ...]:
    """All distinct cells sharing a row, column or sector with ``index``."""
    seen: Set[int] = set()
    out: List[int] = []
    for element_type in ElementType:
        for i in element_peers(dimension, element_type, index):
            if i not in seen:
                seen.add(i)
                out.append(i)
    return tuple(out)


# ---------- digit text ----------

def digit_to_text(digit: int, radix: int) -> str:
    if digit == BLANK:
        return BLANK_TEXT
    if digit < 0 or digit >= radix:
        raise ValueError(f"digit {digit} outside [0, {radix})")
    return DIGIT_ALPHABET[digit]


def text_to_digit(token: str, radix: int) -> int:
    if not isinstance(token, str) or len(token) != 1:
        raise ValueError(f"Digit error, digits must be single character but {token!r} isn't!")
    ch = token.lower()
    if ch == BLANK_TEXT:
        return BLANK
    digit = DIGIT_ALPHABET.find(ch)
    if digit < 0 or digit >= radix:
        raise ValueError(f"Digit error, character {token!r} isn't a valid digit!")
    return digit


def _split_tokens(text: "str | Iterable[str]") -> List[str]:
    if isinstance(text, str):
        stripped = text.strip()
        if any(ch.isspace() for ch in stripped):
            return stripped.split()
        return list(stripped)
    return [str(t) for t in text]


# ---------- grid ----------

class Grid:
    """A ``radix × radix`` digit array with ``radix = dimension²``.

    ``-1`` marks an unresolved cell; resolved cells hold ``0 .. radix-1``.
    Digits live in a signed-byte :class:`array.array`, so :meth:`clone` is a
    full copy and :meth:`fingerprint` is the byte-exact digit sequence.
    """

    __slots__ = ("dimension", "radix", "digits")

    def __init__(self, dimension: int, digits: Optional[Iterable[int]] = None) -> None:
        self.dimension = check_dimension(dimension)
        self.radix = dimension * dimension
        size = self.radix * self.radix
        if digits is None:
            self.digits = array("b", [BLANK]) * size
            return
        values = list(digits)
        if len(values) != size:
            raise ValueError(
                f"Digit error, expecting {size} digits but received {len(values)}!"
            )
        for value in values:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"digits must be ints, got {value!r}")
            if value < BLANK or value >= self.radix:
                raise ValueError(f"digit {value} outside [-1, {self.radix})")
        self.digits = array("b", values)

    @classmethod
    def parse(cls, dimension: int, text: "str | Iterable[str]") -> "Grid":
        """Build a grid from digit text; ``.`` marks a blank cell."""
        grid = cls(dimension)
        tokens = _split_tokens(text)
        if len(tokens) != len(grid.digits):
            raise ValueError(
                f"Digit error, expecting {len(grid.digits)} digits but received {len(tokens)}!"
            )
        grid.digits = array("b", (text_to_digit(t, grid.radix) for t in tokens))
        return grid

    def clone(self) -> "Grid":
        twin = Grid.__new__(Grid)
        twin.dimension = self.dimension
        twin.radix = self.radix
        twin.digits = array("b", self.digits)
        return twin

    # ----- addressing -----

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.digits):
            raise IndexError(f"cell index {index} outside [0, {len(self.digits)})")

    def row_of(self, index: int) -> int:
        self._check_index(index)
        return index // self.radix

    def column_of(self, index: int) -> int:
        self._check_index(index)
        return index % self.radix

    def sector_of(self, index: int) -> int:
        self._check_index(index)
        return element_of(self.dimension, ElementType.SECTOR, index)

    def element(self, element_type: ElementType, element_index: int) -> List[int]:
        """Digits of one row, column or sector."""
        return [self.digits[i] for i in element_indices(self.dimension, ElementType(element_type), element_index)]

    def set_element(self, element_type: ElementType, element_index: int, values: Sequence[int]) -> None:
        if len(values) != self.radix:
            raise ValueError(f"expecting {self.radix} digits but received {len(values)}")
        for i, value in zip(element_indices(self.dimension, ElementType(element_type), element_index), values):
            self.digits[i] = value

    # ----- status -----

    def unresolved_count(self) -> int:
        return self.digits.count(BLANK)

    def is_complete(self) -> bool:
        return BLANK not in self.digits

    def is_consistent(self) -> bool:
        """True when no resolved digit repeats inside any row, column or sector."""
        for element_type in ElementType:
            for k in range(self.radix):
                seen = [d for d in self.element(element_type, k) if d != BLANK]
                if len(seen) != len(set(seen)):
                    return False
        return True

    # ----- encodings -----

    def fingerprint(self) -> bytes:
        return self.digits.tobytes()

    def to_list(self) -> List[int]:
        return self.digits.tolist()

    def to_text(self) -> str:
        return "".join(digit_to_text(d, self.radix) for d in self.digits)

    def render(self) -> str:
        lines: List[str] = []
        for row in range(self.radix):
            cells = []
            for col in range(self.radix):
                cells.append(digit_to_text(self.digits[row * self.radix + col], self.radix))
                if col % self.dimension == self.dimension - 1 and col != self.radix - 1:
                    cells.append("")
            lines.append(" ".join(cells))
            if row % self.dimension == self.dimension - 1 and row != self.radix - 1:
                lines.append("")
        return "\n".join(lines) + "\n"

    # ----- value semantics -----

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.dimension == other.dimension and self.digits == other.digits

    def __hash__(self) -> int:
        return hash((self.dimension, self.digits.tobytes()))

    def __repr__(self) -> str:
        return f"Grid(dimension={self.dimension}, digits={self.to_text()!r})"


class SolutionSet:
    """Value-deduplicated terminal grids; insertion is safe from many threads."""

    def __init__(self, grids: Iterable[Grid] = ()) -> None:
        self._lock = threading.Lock()
        self._grids: Set[Grid] = set(grids)

    def add(self, grid: Grid) -> None:
        with self._lock:
            self._grids.add(grid)

    def update(self, grids: Iterable[Grid]) -> None:
        batch = list(grids)
        with self._lock:
            self._grids.update(batch)

    def to_set(self) -> Set[Grid]:
        with self._lock:
            return set(self._grids)

    def __len__(self) -> int:
        with self._lock:
            return len(self._grids)

    def __iter__(self) -> Iterator[Grid]:
        return iter(self.to_set())

    def __contains__(self, grid: object) -> bool:
        with self._lock:
            return grid in self._grids


