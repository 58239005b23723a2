"""Symbol grid model: matrix strings and the grid view capability."""

from slotflow.grid.matrix import format_matrix, parse_matrix, parse_matrix_row
from slotflow.grid.view import EMPTY, GridView, SymbolGrid, SymbolInstance

__all__ = [
    "EMPTY",
    "GridView",
    "SymbolGrid",
    "SymbolInstance",
    "format_matrix",
    "parse_matrix",
    "parse_matrix_row",
]
