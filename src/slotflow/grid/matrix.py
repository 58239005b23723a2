"""Matrix-string parsing.

A matrix string is the server's textual grid: rows joined by ``;`` and
one-character symbol ids, except the two-character id ``10``.
"""

from typing import List

ROW_SEPARATOR = ";"
TEN = "10"


def parse_matrix_row(row: str) -> List[str]:
    """Split one matrix row into symbol ids, matching ``10`` greedily."""
    symbols: List[str] = []
    i = 0
    while i < len(row):
        if row.startswith(TEN, i):
            symbols.append(TEN)
            i += 2
        else:
            symbols.append(row[i])
            i += 1
    return symbols


def parse_matrix(matrix: str) -> List[List[str]]:
    """Parse a full matrix string into rows of symbol ids.

    Empty input yields an empty grid.
    """
    if not matrix:
        return []
    return [parse_matrix_row(row) for row in matrix.strip().split(ROW_SEPARATOR)]


def format_matrix(rows: List[List[str]]) -> str:
    return ROW_SEPARATOR.join("".join(row) for row in rows)
