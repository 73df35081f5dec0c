"""Compositing view layers into a screen and flushing the difference.

:meth:`Compositor.compose` blits every view's layer, back to front, into a
screen-sized layer.  Each view is clipped by its own frame and by every
ancestor's frame, which is what blitting the layers into their parents
first would produce.  :meth:`Compositor.flush` compares the result with
the previously flushed screen and sends only the cells that changed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from pi.termkit.attributes import Attribute
from pi.termkit.geometry import Rect, Size
from pi.termkit.layer import Cell, Layer
from pi.termkit.text import grapheme_width

if TYPE_CHECKING:
    from pi.termkit.drivers.base import ConsoleDriver
    from pi.termkit.view import View


class Compositor:
    def __init__(self) -> None:
        self.screen: Layer | None = None
        self._previous: list[list[Cell]] | None = None

    def invalidate(self) -> None:
        """Forget the flushed screen so the next flush repaints every cell."""
        self._previous = None

    def compose(
        self,
        toplevels: Sequence[View],
        size: Size,
        background: Attribute | None = None,
    ) -> Layer:
        screen = Layer(size, Cell(" ", background))
        for top in toplevels:
            self._blit(top, screen, screen.bounds, top.frame.x, top.frame.y)
        _repair_wide_cells(screen)
        self.screen = screen
        return screen

    def _blit(self, view: View, screen: Layer, clip: Rect, left: int, top: int) -> None:
        if not view.is_drawable:
            return
        frame = Rect(left, top, view.frame.width, view.frame.height)
        area = clip.intersection(frame)
        if area.is_empty:
            return
        layer = view.layer
        for row in range(area.top, area.bottom):
            source = layer.row(row - top)
            for col in range(area.left, area.right):
                cell = source[col - left]
                if cell.is_continuation and col == area.left:
                    # Lead cell clipped away
                    cell = Cell(" ", cell.attribute)
                elif (
                    col == area.right - 1
                    and col - left + 1 < layer.width
                    and source[col - left + 1].is_continuation
                ):
                    # Continuation cell clipped away
                    cell = Cell(" ", cell.attribute)
                screen.put(col, row, cell)
        for child in view.subviews:
            self._blit(child, screen, area, left + child.frame.x, top + child.frame.y)

    def flush(self, driver: ConsoleDriver) -> int:
        """Emit the cells that differ from the last flush; return how many.

        Nothing is written, and the driver is not refreshed, when the
        screen is unchanged.
        """
        screen = self.screen
        if screen is None:
            return 0
        previous = self._previous
        if previous is not None and (
            len(previous) != screen.height
            or (previous and len(previous[0]) != screen.width)
        ):
            previous = None

        emitted = 0
        for row in range(screen.height):
            cells = screen.row(row)
            old = previous[row] if previous is not None else None
            changed = [col for col in range(screen.width) if old is None or old[col] != cells[col]]
            columns = set()
            for col in changed:
                if cells[col].is_continuation:
                    if col > 0:
                        columns.add(col - 1)
                else:
                    columns.add(col)
            for col in sorted(columns):
                cell = cells[col]
                if cell.is_continuation:
                    continue
                driver.move_to(col, row)
                driver.set_attribute(cell.attribute)
                driver.add_rune(cell.text)
                emitted += 1

        self._previous = [list(row) for row in screen.rows()]
        screen.clear_dirty()
        if emitted:
            driver.refresh()
        return emitted


def _repair_wide_cells(screen: Layer) -> None:
    # An overlapping view can split a wide cluster; blank both halves' leftovers
    for row in range(screen.height):
        cells = screen.row(row)
        for col, cell in enumerate(cells):
            if cell.is_continuation:
                lead = cells[col - 1] if col > 0 else None
                if lead is None or lead.is_continuation or grapheme_width(lead.text) != 2:
                    screen.put(col, row, Cell(" ", cell.attribute))
            elif grapheme_width(cell.text) == 2:
                if col + 1 >= screen.width or not cells[col + 1].is_continuation:
                    screen.put(col, row, Cell(" ", cell.attribute))
