"""Tests for the in-memory symbol grid."""

import numpy as np
import pytest

from slotflow.grid.view import EMPTY, SymbolGrid

LANDED = "KKKQP;AQPAP;JAPJA;PPKPQ"


class TestSymbolGrid:
    """Instance pools, slots and layout commits."""

    def test_pools_and_spares(self):
        """Each column owns rows + spares instances; spares start hidden"""
        grid = SymbolGrid(rows=4, cols=5, spares_per_column=2)

        assert len(list(grid.instances())) == 30
        pool = grid.column_pool(0)
        assert len(pool) == 6
        spares = [grid.instance(h) for h in pool[4:]]
        assert all(not s.visible and s.alpha == 0 for s in spares)
        assert all(s.y < grid.row_to_y(0) for s in spares)

    def test_geometry(self):
        """Row and column centres follow cell size plus spacing"""
        grid = SymbolGrid(rows=4, cols=5, cell_width=100, cell_height=80, spacing=10)
        assert grid.row_pitch == 90
        assert grid.row_to_y(0) == 40
        assert grid.row_to_y(2) == 220
        assert grid.col_to_x(1) == 160
        assert grid.row_to_y(-1) < 0

    def test_load_matrix_round_trips(self):
        """Loaded symbols read back as the same matrix"""
        grid = SymbolGrid(rows=4, cols=5, matrix=LANDED)
        assert grid.to_matrix() == LANDED
        assert grid.instance(grid.slot_handle(0, 0)).scale == pytest.approx(0.82)

    def test_slot_handles_is_a_copy(self):
        """Mutating the returned array leaves the grid untouched"""
        grid = SymbolGrid(rows=2, cols=2)
        handles = grid.slot_handles()
        handles[0, 0] = EMPTY
        assert grid.slot_handle(0, 0) != EMPTY

    def test_commit_layout_hides_unowned_instances(self):
        """Instances not in the committed arena are hidden above the grid"""
        grid = SymbolGrid(rows=2, cols=2, matrix="AB;CD")
        arena = grid.slot_handles()
        dropped = int(arena[0, 0])
        arena[0, 0] = grid.column_pool(0)[2]

        grid.commit_layout(arena)

        assert not grid.instance(dropped).visible
        assert grid.instance(dropped).y == grid.row_to_y(-1)
        assert grid.slot_handle(0, 0) == arena[0, 0]

    def test_commit_layout_rejects_wrong_shape(self):
        """An arena of another shape is refused"""
        grid = SymbolGrid(rows=2, cols=2)
        with pytest.raises(ValueError):
            grid.commit_layout(np.zeros((3, 2), dtype=np.int32))

    def test_invalid_size(self):
        """Grids need at least one row and column"""
        with pytest.raises(ValueError):
            SymbolGrid(rows=0, cols=3)

    def test_out_of_range_lookups(self):
        """Out-of-range handles and cells are reported as missing"""
        grid = SymbolGrid(rows=2, cols=2)
        assert grid.instance(999) is None
        assert grid.slot_handle(5, 5) == EMPTY
        assert grid.column_pool(9) == []
        assert not grid.in_bounds(2, 0)
