"""Cascade geometry: position dedup and gravity-drop derivation.

These are pure functions over ``(row, col)`` pairs. The server reports a
cell once per win it belongs to, so a cell in two simultaneous wins shows
up twice in ``removedPositions``. Counting those duplicates as separate
gaps shifts every survivor in the column down by the duplicate count,
which can push it past the bottom row. Always dedupe before counting.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Sequence, Tuple, TypeVar
import logging

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]
T = TypeVar("T")


def _cell_of(item) -> Cell:
    if isinstance(item, tuple):
        return (int(item[0]), int(item[1]))
    return (int(item.row), int(item.col))


def deduplicate_positions(positions: Iterable[T], key: Callable[[T], Cell] = _cell_of) -> List[T]:
    """Drop repeated cells, keeping the first occurrence and input order.

    Accepts ``(row, col)`` tuples or objects with ``row``/``col``.
    """
    seen = set()
    unique: List[T] = []
    for position in positions:
        cell = key(position)
        if cell in seen:
            continue
        seen.add(cell)
        unique.append(position)
    return unique


def deduplicate_movements(movements: Iterable[T]) -> List[T]:
    """Drop repeated ``from -> to`` moves, keeping the first occurrence."""
    seen = set()
    unique: List[T] = []
    for move in movements:
        key = (_cell_of(move.from_), _cell_of(move.to))
        if key in seen:
            continue
        seen.add(key)
        unique.append(move)
    return unique


@dataclass(frozen=True)
class Drop:
    """One survivor moving down its column."""

    col: int
    from_row: int
    to_row: int


@dataclass
class GravityPlan:
    """Result of a gravity derivation.

    Attributes:
        drops: Survivors that change row
        overflow: Survivors whose computed target fell outside the grid
    """

    drops: List[Drop] = field(default_factory=list)
    overflow: List[Drop] = field(default_factory=list)


def derive_gravity_drops(
    removed: Sequence[Cell],
    rows: int,
    cols: int,
    occupied: Callable[[int, int], bool] = lambda row, col: True,
) -> GravityPlan:
    """Work out where survivors land when the server sent no movements.

    For each column with removals, the surviving (not removed, occupied)
    cells are taken top to bottom and survivor ``i`` lands on row
    ``removed_in_column + i``. ``removed`` is used as given: callers are
    expected to dedupe it first. A target at or past ``rows`` is recorded
    in ``overflow`` and stops that column.
    """
    removed_set = set(removed)
    removed_per_col = [0] * cols
    for row, col in removed:
        if 0 <= col < cols:
            removed_per_col[col] += 1

    plan = GravityPlan()
    for col in range(cols):
        removed_in_col = removed_per_col[col]
        if removed_in_col == 0:
            continue

        survivors = [
            row for row in range(rows)
            if (row, col) not in removed_set and occupied(row, col)
        ]
        for i, from_row in enumerate(survivors):
            target = removed_in_col + i
            if target >= rows:
                plan.overflow.append(Drop(col, from_row, target))
                break
            if from_row != target:
                plan.drops.append(Drop(col, from_row, target))

    return plan
