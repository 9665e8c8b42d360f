"""
2D grid container and cardinal directions.

Cells are addressed by (x, y) with 0 <= x < w and 0 <= y < h; y grows
southward. Out-of-bounds reads return None, which is also how an empty
position is represented, so neighbor lookup needs no special casing.
"""

import numpy as np
from enum import Enum
from typing import Any, Callable, Generic, Iterator, List, NamedTuple, Optional, Sequence, TypeVar

T = TypeVar('T')
S = TypeVar('S')


class Direction(Enum):
    """Cardinal directions; value is (dx, dy, block index)."""
    N = (0, -1, 0)
    E = (1, 0, 1)
    S = (0, 1, 2)
    W = (-1, 0, 3)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]

    @property
    def index(self) -> int:
        return self.value[2]

    def opposite(self) -> 'Direction':
        return _OPPOSITES[self]


_OPPOSITES = {
    Direction.N: Direction.S,
    Direction.E: Direction.W,
    Direction.S: Direction.N,
    Direction.W: Direction.E,
}


class Entry(NamedTuple):
    x: int
    y: int
    value: Any


def _same(a, b) -> bool:
    # cells may hold numpy arrays, whose == is elementwise
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        return np.array_equal(a, b)
    return a == b


class Grid(Generic[T]):
    """
    Fixed-size W x H grid stored as a flat list.

    Iteration yields Entry(x, y, value) with x as the outer loop; this
    "grid order" is used everywhere cells are enumerated.
    """

    def __init__(self, w: int, h: int, fill: Optional[T] = None):
        if w < 0 or h < 0:
            raise ValueError(f"Grid size must be non-negative: {w}x{h}")
        self.w = w
        self.h = h
        self._values: List[Optional[T]] = [fill] * (w * h)

    @classmethod
    def create(cls, w: int, h: int, filler: Callable[[int, int], T]) -> 'Grid[T]':
        grid = cls(w, h)
        for x in range(w):
            for y in range(h):
                grid.set(x, y, filler(x, y))
        return grid

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[T]]) -> 'Grid[T]':
        """Build from a list of rows, rows[y][x], first row is the northmost."""
        h = len(rows)
        w = len(rows[0]) if h else 0
        if any(len(r) != w for r in rows):
            raise ValueError("All rows must have the same length")
        return cls.create(w, h, lambda x, y: rows[y][x])

    @property
    def shape(self):
        return self.w, self.h

    def _index(self, x: int, y: int) -> int:
        return x * self.h + y

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.w and 0 <= y < self.h

    def get(self, x: int, y: int) -> Optional[T]:
        if not self.in_bounds(x, y):
            return None
        return self._values[self._index(x, y)]

    def set(self, x: int, y: int, value: Optional[T]) -> None:
        if not self.in_bounds(x, y):
            raise IndexError(f"({x},{y}) is outside a {self.w}x{self.h} grid")
        self._values[self._index(x, y)] = value

    def neighbor(self, x: int, y: int, direction: Direction) -> Optional[T]:
        return self.get(x + direction.dx, y + direction.dy)

    def __getitem__(self, key) -> Optional[T]:
        x, y = key
        return self.get(x, y)

    def __setitem__(self, key, value) -> None:
        x, y = key
        self.set(x, y, value)

    def __iter__(self) -> Iterator[Entry]:
        for x in range(self.w):
            for y in range(self.h):
                yield Entry(x, y, self._values[self._index(x, y)])

    def occupied(self) -> Iterator[Entry]:
        """Entries whose value is not None, in grid order."""
        return (e for e in self if e.value is not None)

    def values(self) -> List[Optional[T]]:
        return [e.value for e in self]

    def count(self, predicate: Callable[[Optional[T]], bool] = lambda v: v is not None) -> int:
        return sum(1 for v in self._values if predicate(v))

    def map(self, fn: Callable[[T], S], keep_none: bool = True) -> 'Grid[S]':
        """New grid with fn applied to each value; None stays None unless keep_none is False."""
        return Grid.create(
            self.w, self.h,
            lambda x, y: None if (keep_none and self.get(x, y) is None) else fn(self.get(x, y)),
        )

    def copy(self) -> 'Grid[T]':
        grid = Grid(self.w, self.h)
        grid._values = list(self._values)
        return grid

    def rows(self) -> List[List[Optional[T]]]:
        return [[self.get(x, y) for x in range(self.w)] for y in range(self.h)]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.shape == other.shape and all(
            _same(a, b) for a, b in zip(self._values, other._values)
        )

    def __repr__(self) -> str:
        return f"Grid({self.w}x{self.h}, {self.count()} occupied)"

    def to_string(self, mark: Callable[[Optional[T]], str] = lambda v: '#' if v is not None else '.') -> str:
        return "\n".join("".join(mark(v) for v in row) for row in self.rows())
