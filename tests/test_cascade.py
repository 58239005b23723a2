"""Tests for position dedup and gravity derivation."""

from slotflow.presentation.cascade import (
    Drop,
    deduplicate_movements,
    deduplicate_positions,
    derive_gravity_drops,
)
from slotflow.presentation.protocol import Movement, Position

DUPLICATED_TOP_ROW = [(0, 0), (0, 1), (0, 2), (0, 0), (0, 1), (0, 2)]


class TestDeduplicatePositions:
    """Repeated cells from overlapping wins."""

    def test_keeps_first_occurrences_in_order(self):
        """Six reported cells collapse to the first three"""
        assert deduplicate_positions(DUPLICATED_TOP_ROW) == [(0, 0), (0, 1), (0, 2)]

    def test_idempotent(self):
        """Deduplicating twice changes nothing"""
        once = deduplicate_positions(DUPLICATED_TOP_ROW)
        assert deduplicate_positions(once) == once

    def test_never_grows(self):
        """Output is never longer than input"""
        cells = [(3, 1), (2, 1), (3, 1), (0, 4)]
        result = deduplicate_positions(cells)
        assert len(result) <= len(cells)
        assert result == [(3, 1), (2, 1), (0, 4)]

    def test_accepts_position_models(self):
        """Objects with row/col are deduplicated by cell"""
        positions = [Position(row=1, col=2), Position(row=1, col=2), Position(row=0, col=2)]
        result = deduplicate_positions(positions)
        assert [p.key for p in result] == [(1, 2), (0, 2)]

    def test_deduplicates_movements(self):
        """Repeated from/to pairs are dropped"""
        move = {"from": {"row": 0, "col": 1}, "to": {"row": 1, "col": 1}}
        movements = [Movement.model_validate(move), Movement.model_validate(move)]
        assert len(deduplicate_movements(movements)) == 1


class TestGravityDrops:
    """Fallback drop derivation when the server sent no movements."""

    def test_survivors_shift_by_removed_count(self):
        """Two removals at the bottom shift the two survivors down by two"""
        plan = derive_gravity_drops([(2, 0), (3, 0)], rows=4, cols=5)

        assert plan.overflow == []
        assert plan.drops == [Drop(col=0, from_row=0, to_row=2), Drop(col=0, from_row=1, to_row=3)]

    def test_top_row_removal_moves_nothing(self):
        """Removing only the top row leaves survivors in place"""
        plan = derive_gravity_drops([(0, 0), (0, 1), (0, 2)], rows=4, cols=5)
        assert plan.drops == []
        assert plan.overflow == []

    def test_deduplicated_input_stays_in_bounds(self):
        """No target row reaches the grid height once input is deduped"""
        removed = deduplicate_positions([(1, 3), (3, 3), (1, 3), (0, 4), (2, 4), (0, 4)])
        plan = derive_gravity_drops(removed, rows=4, cols=5)

        assert plan.overflow == []
        assert all(drop.to_row < 4 for drop in plan.drops)

    def test_raw_duplicates_overflow(self):
        """Counting duplicated removals pushes survivors past the bottom row"""
        plan = derive_gravity_drops(DUPLICATED_TOP_ROW, rows=4, cols=5)

        assert plan.overflow
        assert all(drop.to_row >= 4 for drop in plan.overflow)

    def test_unoccupied_cells_are_not_survivors(self):
        """Empty cells are skipped when collecting survivors"""
        plan = derive_gravity_drops(
            [(3, 0)],
            rows=4,
            cols=1,
            occupied=lambda row, col: row != 1,
        )
        assert plan.drops == [Drop(col=0, from_row=0, to_row=1)]
