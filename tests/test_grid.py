"""
Tests for the grid container and directions.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest

from voxnet import Direction, Grid


def test_direction_opposites():
    for d in Direction:
        assert d.opposite().opposite() is d
        assert (d.dx + d.opposite().dx, d.dy + d.opposite().dy) == (0, 0)
    assert Direction.N.opposite() is Direction.S
    assert Direction.E.opposite() is Direction.W
    assert [d.index for d in Direction] == [0, 1, 2, 3]


def test_bounds_checked_access():
    grid = Grid.from_rows([[1, 2, 3], [4, None, 6]])
    assert grid.shape == (3, 2)
    assert grid.get(0, 0) == 1
    assert grid.get(2, 1) == 6
    assert grid[1, 1] is None
    assert grid.get(-1, 0) is None
    assert grid.get(3, 0) is None
    with pytest.raises(IndexError):
        grid.set(0, 2, 7)


def test_neighbors():
    grid = Grid.from_rows([[1, 2], [3, 4]])
    assert grid.neighbor(0, 0, Direction.E) == 2
    assert grid.neighbor(0, 0, Direction.S) == 3
    assert grid.neighbor(0, 0, Direction.N) is None
    assert grid.neighbor(1, 1, Direction.W) == 3


def test_grid_order_is_x_outer():
    grid = Grid.from_rows([[1, 2], [3, 4]])
    assert [e.value for e in grid] == [1, 3, 2, 4]
    assert [(e.x, e.y) for e in grid.occupied()] == [(0, 0), (0, 1), (1, 0), (1, 1)]


def test_map_count_copy():
    grid = Grid.from_rows([[1, None], [3, 4]])
    doubled = grid.map(lambda v: v * 2)
    assert doubled.rows() == [[2, None], [6, 8]]
    assert grid.count() == 3
    assert grid.count(lambda v: v is not None and v > 2) == 2

    copy = grid.copy()
    copy.set(0, 0, 9)
    assert grid.get(0, 0) == 1
    assert copy != grid
    assert grid == Grid.from_rows([[1, None], [3, 4]])
    assert grid.to_string() == "#.\n##"


def test_equality_with_array_cells():
    assert Grid.from_rows([[np.zeros(2)]]) == Grid.from_rows([[np.zeros(2)]])
    assert Grid.from_rows([[np.zeros(2), None]]) != Grid.from_rows([[np.ones(2), None]])
    assert Grid.from_rows([[np.zeros(2)]]) != Grid.from_rows([[np.zeros(3)]])
    assert Grid.from_rows([[np.zeros(2)]]) != Grid.from_rows([[None]])


def test_create_and_invalid():
    grid = Grid.create(2, 3, lambda x, y: x + 10 * y)
    assert grid.get(1, 2) == 21
    with pytest.raises(ValueError):
        Grid.from_rows([[1, 2], [3]])
