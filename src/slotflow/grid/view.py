"""Grid view interface and the in-memory symbol grid.

The presentation pipeline never holds references to visual objects. It
works with integer *handles* into the view's instance table, and keeps
its own arena (a ``rows x cols`` array of handles) while a spin is being
presented. The view is consulted to seed the arena and is told to adopt
the arena once a cascade step commits.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Iterator, List, Optional
import logging

import numpy as np

from slotflow.animation.easing import Easing
from slotflow.animation.tween import Tweener
from slotflow.grid.matrix import parse_matrix

logger = logging.getLogger(__name__)

EMPTY = -1


@dataclass
class SymbolInstance:
    """A visual symbol owned by one reel column.

    Attributes:
        handle: Index in the view's instance table
        col: Reel column the instance belongs to
        symbol_id: Symbol currently shown
        x, y: Centre position in grid pixels
        alpha: Opacity (0-1)
        scale: Uniform scale
        visible: Whether the instance is drawn
    """

    handle: int
    col: int
    symbol_id: str = ""
    x: float = 0.0
    y: float = 0.0
    alpha: float = 1.0
    scale: float = 1.0
    visible: bool = True


class GridView(ABC):
    """Capability the step presenter needs from a grid renderer."""

    @property
    @abstractmethod
    def rows(self) -> int:
        pass

    @property
    @abstractmethod
    def cols(self) -> int:
        pass

    @property
    @abstractmethod
    def row_pitch(self) -> float:
        """Vertical distance between two row centres."""
        pass

    @property
    @abstractmethod
    def symbol_scale(self) -> float:
        """Resting scale of a displayed symbol."""
        pass

    @abstractmethod
    def row_to_y(self, row: int) -> float:
        """Canonical centre y of ``row``. Negative rows lie above the grid."""
        pass

    @abstractmethod
    def col_to_x(self, col: int) -> float:
        pass

    @abstractmethod
    def instance(self, handle: int) -> Optional[SymbolInstance]:
        pass

    @abstractmethod
    def slot_handles(self) -> np.ndarray:
        """Copy of the ``rows x cols`` handle array bound to the grid cells."""
        pass

    @abstractmethod
    def column_pool(self, col: int) -> List[int]:
        """Every instance handle belonging to ``col``, slots and spares."""
        pass

    @abstractmethod
    def animate(
        self,
        handle: int,
        duration_ms: float,
        ease: Easing | str = Easing.LINEAR,
        delay_ms: float = 0.0,
        **props: float,
    ) -> Awaitable[None]:
        """Tween instance properties; the awaitable settles on finish or kill."""
        pass

    @abstractmethod
    def kill_tweens(self, handle: int) -> None:
        pass

    @abstractmethod
    def commit_layout(self, arena: np.ndarray) -> None:
        """Bind grid cells to ``arena`` handles and hide every other instance."""
        pass

    def slot_handle(self, row: int, col: int) -> int:
        if 0 <= row < self.rows and 0 <= col < self.cols:
            return int(self.slot_handles()[row, col])
        return EMPTY

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols


class SymbolGrid(GridView):
    """In-memory grid of symbol instances driven by a ``Tweener``.

    Each column owns ``rows + spares_per_column`` instances. The first
    ``rows`` are bound to the cells at construction; the spares start
    hidden above the grid and serve as the refill pool.
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        cell_width: float = 120.0,
        cell_height: float = 120.0,
        spacing: float = 8.0,
        symbol_scale: float = 0.82,
        spares_per_column: int = 2,
        tweener: Optional[Tweener] = None,
        matrix: str = "",
    ) -> None:
        if rows <= 0 or cols <= 0:
            raise ValueError(f"Grid must be at least 1x1, got {rows}x{cols}")

        self._rows = rows
        self._cols = cols
        self.cell_width = cell_width
        self.cell_height = cell_height
        self.spacing = spacing
        self._symbol_scale = symbol_scale
        self.tweener = tweener or Tweener()

        self._instances: List[SymbolInstance] = []
        self._pools: List[List[int]] = [[] for _ in range(cols)]
        self._slots = np.full((rows, cols), EMPTY, dtype=np.int32)

        for col in range(cols):
            for i in range(rows + spares_per_column):
                handle = len(self._instances)
                inst = SymbolInstance(
                    handle=handle,
                    col=col,
                    x=self.col_to_x(col),
                    scale=symbol_scale,
                )
                if i < rows:
                    inst.y = self.row_to_y(i)
                    self._slots[i, col] = handle
                else:
                    inst.y = self.row_to_y(-1)
                    inst.visible = False
                    inst.alpha = 0.0
                self._instances.append(inst)
                self._pools[col].append(handle)

        if matrix:
            self.load_matrix(matrix)

        logger.debug(f"SymbolGrid created: {rows}x{cols}, {len(self._instances)} instances")

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def row_pitch(self) -> float:
        return self.cell_height + self.spacing

    @property
    def symbol_scale(self) -> float:
        return self._symbol_scale

    def row_to_y(self, row: int) -> float:
        return row * self.row_pitch + self.cell_height / 2

    def col_to_x(self, col: int) -> float:
        return col * (self.cell_width + self.spacing) + self.cell_width / 2

    @property
    def width(self) -> float:
        return self._cols * (self.cell_width + self.spacing) - self.spacing

    @property
    def height(self) -> float:
        return self._rows * self.row_pitch - self.spacing

    def instance(self, handle: int) -> Optional[SymbolInstance]:
        if 0 <= handle < len(self._instances):
            return self._instances[handle]
        return None

    def instances(self) -> Iterator[SymbolInstance]:
        return iter(self._instances)

    def slot_handles(self) -> np.ndarray:
        return self._slots.copy()

    def column_pool(self, col: int) -> List[int]:
        if 0 <= col < self._cols:
            return list(self._pools[col])
        return []

    def animate(
        self,
        handle: int,
        duration_ms: float,
        ease: Easing | str = Easing.LINEAR,
        delay_ms: float = 0.0,
        **props: float,
    ) -> Awaitable[None]:
        inst = self._instances[handle]
        return self.tweener.to(inst, duration_ms, ease, delay_ms, **props)

    def kill_tweens(self, handle: int) -> None:
        inst = self.instance(handle)
        if inst is not None:
            self.tweener.kill(inst)

    def commit_layout(self, arena: np.ndarray) -> None:
        if arena.shape != self._slots.shape:
            raise ValueError(f"Arena shape {arena.shape} does not match grid {self._slots.shape}")

        self._slots = arena.astype(np.int32, copy=True)
        owned = set(int(h) for h in self._slots.flat if h != EMPTY)
        for inst in self._instances:
            if inst.handle not in owned:
                self.tweener.kill(inst)
                inst.visible = False
                inst.alpha = 0.0
                inst.y = self.row_to_y(-1)

    def load_matrix(self, matrix: str) -> None:
        """Show ``matrix`` immediately on the bound slots, without animation."""
        for row, symbols in enumerate(parse_matrix(matrix)[:self._rows]):
            for col, symbol_id in enumerate(symbols[:self._cols]):
                handle = int(self._slots[row, col])
                if handle == EMPTY:
                    continue
                inst = self._instances[handle]
                self.tweener.kill(inst)
                inst.symbol_id = symbol_id
                inst.visible = True
                inst.alpha = 1.0
                inst.scale = self._symbol_scale
                inst.x = self.col_to_x(col)
                inst.y = self.row_to_y(row)

    def to_matrix(self) -> str:
        """Matrix string of what the bound slots currently show."""
        rows = []
        for row in range(self._rows):
            symbols = []
            for col in range(self._cols):
                handle = int(self._slots[row, col])
                inst = self.instance(handle)
                symbols.append(inst.symbol_id if inst is not None and inst.visible else "-")
            rows.append("".join(symbols))
        return ";".join(rows)
