"""Character-cell buffers.

A :class:`Layer` is a grid of :class:`Cell` values.  Every view owns one
sized to its frame; the compositor owns a screen-sized one.  A wide
grapheme occupies its cell plus a *continuation* cell whose text is the
empty string.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from pi.termkit.attributes import Attribute
from pi.termkit.geometry import Rect, Size


@dataclass(frozen=True)
class Cell:
    text: str = " "
    attribute: Attribute | None = None

    @property
    def is_continuation(self) -> bool:
        return self.text == ""


BLANK = Cell()
CONTINUATION = Cell("")


class Layer:
    """Row-major cell storage with per-row dirty flags."""

    def __init__(self, size: Size, fill: Cell = BLANK) -> None:
        self.size = size
        self._cells: list[list[Cell]] = [[fill] * size.width for _ in range(size.height)]
        self.dirty_rows: list[bool] = [True] * size.height

    @property
    def width(self) -> int:
        return self.size.width

    @property
    def height(self) -> int:
        return self.size.height

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.size.width, self.size.height)

    def in_bounds(self, col: int, row: int) -> bool:
        return 0 <= col < self.size.width and 0 <= row < self.size.height

    def get(self, col: int, row: int) -> Cell:
        return self._cells[row][col]

    def put(self, col: int, row: int, cell: Cell) -> None:
        """Store *cell*; writes outside the layer are ignored."""
        if not self.in_bounds(col, row):
            return
        line = self._cells[row]
        if line[col] != cell:
            line[col] = cell
            self.dirty_rows[row] = True

    def fill(self, rect: Rect, cell: Cell = BLANK) -> None:
        area = rect.intersection(self.bounds)
        for row in range(area.top, area.bottom):
            for col in range(area.left, area.right):
                self.put(col, row, cell)

    def clear_dirty(self) -> None:
        self.dirty_rows = [False] * self.size.height

    def row(self, row: int) -> list[Cell]:
        return self._cells[row]

    def rows(self) -> Iterator[list[Cell]]:
        return iter(self._cells)

    def row_text(self, row: int) -> str:
        return "".join(cell.text for cell in self._cells[row])

    def text(self) -> str:
        """The whole layer as plain text, trailing blanks trimmed per line."""
        return "\n".join(self.row_text(r).rstrip() for r in range(self.size.height))
