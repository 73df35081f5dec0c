"""The drawing context handed to :meth:`View.draw_content`.

A :class:`Painter` writes into the layer of one view.  It keeps a local
cursor and a current attribute, and drops every cell that falls outside
its clip: the view's bounds intersected with the bounds of each ancestor,
expressed in the view's own coordinates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pi.termkit.attributes import Attribute, ColorScheme
from pi.termkit.geometry import Point, Rect
from pi.termkit.layer import Cell, Layer
from pi.termkit.text import grapheme_width, graphemes

if TYPE_CHECKING:
    from pi.termkit.view import View

# Box drawing runes used by draw_frame
UL_CORNER = "┌"
LL_CORNER = "└"
UR_CORNER = "┐"
LR_CORNER = "┘"
H_LINE = "─"
V_LINE = "│"


class Painter:
    """Clipped drawing operations on a view's layer.

    The cursor may sit outside the clip; output there is simply dropped
    while the cursor keeps advancing.
    """

    def __init__(
        self,
        view: View,
        layer: Layer,
        clip: Rect,
        attribute: Attribute | None = None,
    ) -> None:
        self.view = view
        self.layer = layer
        self.clip = clip.intersection(layer.bounds)
        self.attribute = attribute
        self.col = 0
        self.row = 0

    # ------------------------------------------------------------------
    # Cursor and colors
    # ------------------------------------------------------------------

    def goto(self, col: int, row: int) -> None:
        self.col = col
        self.row = row

    def go(self, to: Point) -> None:
        self.goto(to.x, to.y)

    @property
    def position(self) -> Point:
        return Point(self.col, self.row)

    def color_normal(self) -> None:
        scheme = self.view.color_scheme
        if scheme is not None:
            self.attribute = scheme.normal

    def color_selection(self) -> None:
        """Use the focus color when the view has focus, the normal one otherwise."""
        scheme = self.view.color_scheme
        if scheme is not None:
            self.attribute = scheme.focus if self.view.has_focus else scheme.normal

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def add_str(self, text: str) -> None:
        for cluster in graphemes(text):
            self.add_character(cluster)

    def add_rune(self, rune: str) -> None:
        self.add_character(rune)

    def add_character(self, cluster: str) -> None:
        """Write one grapheme cluster at the cursor and advance.

        ``"\\n"`` moves to the start of the next row.  A wide cluster fills
        its cell and a continuation cell; if only one half is inside the
        clip, that half is drawn as a space.
        """
        if cluster == "\n":
            self.col = 0
            self.row += 1
            return
        width = grapheme_width(cluster)
        if width == 0:
            return
        col, row = self.col, self.row
        self.col += width
        if width == 1:
            self._put(col, row, Cell(cluster, self.attribute))
            return
        first = self.clip.contains(Point(col, row))
        second = self.clip.contains(Point(col + 1, row))
        if first and second:
            self._put(col, row, Cell(cluster, self.attribute))
            self._put(col + 1, row, Cell("", self.attribute))
        elif first:
            self._put(col, row, Cell(" ", self.attribute))
        elif second:
            self._put(col + 1, row, Cell(" ", self.attribute))

    def _put(self, col: int, row: int, cell: Cell) -> None:
        if not self.clip.contains(Point(col, row)):
            return
        layer = self.layer
        old = layer.get(col, row)
        # Never leave half of a wide cluster behind
        if old.is_continuation and not cell.is_continuation and col > 0:
            left = layer.get(col - 1, row)
            layer.put(col - 1, row, Cell(" ", left.attribute))
        if not cell.is_continuation and col + 1 < layer.width:
            right = layer.get(col + 1, row)
            if right.is_continuation and grapheme_width(old.text) == 2:
                layer.put(col + 1, row, Cell(" ", right.attribute))
        layer.put(col, row, cell)

    # ------------------------------------------------------------------
    # Regions
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Fill the whole view with spaces in the current attribute."""
        self.clear_region(self.view.bounds)

    def clear_region(self, rect: Rect) -> None:
        area = rect.intersection(self.clip)
        blank = Cell(" ", self.attribute)
        for row in range(area.top, area.bottom):
            for col in range(area.left, area.right):
                self._put(col, row, blank)

    def draw_frame(self, region: Rect, padding: int = 0, fill: bool = False) -> None:
        """Draw a single-line box inside *region*, *padding* cells in.

        The padding ring is cleared.  With *fill* the inside of the box is
        cleared too, otherwise it is left untouched.
        """
        padding = max(0, padding)
        if padding:
            inner = region.inset(padding, padding)
            for row in range(region.top, region.bottom):
                for col in range(region.left, region.right):
                    if not inner.contains(Point(col, row)):
                        self._put(col, row, Cell(" ", self.attribute))
            region = inner
        if region.width < 2 or region.height < 2:
            return
        left, top = region.left, region.top
        right, bottom = region.right - 1, region.bottom - 1

        self.goto(left, top)
        self.add_str(UL_CORNER + H_LINE * (region.width - 2) + UR_CORNER)
        for row in range(top + 1, bottom):
            self.goto(left, row)
            self.add_rune(V_LINE)
            if fill:
                self.add_str(" " * (region.width - 2))
            self.goto(right, row)
            self.add_rune(V_LINE)
        self.goto(left, bottom)
        self.add_str(LL_CORNER + H_LINE * (region.width - 2) + LR_CORNER)

    # ------------------------------------------------------------------
    # Hot strings
    # ------------------------------------------------------------------

    def draw_hot_string(
        self,
        text: str,
        hot: Attribute | None = None,
        normal: Attribute | None = None,
        *,
        focused: bool | None = None,
        scheme: ColorScheme | None = None,
    ) -> None:
        """Draw *text*, where ``_`` marks the next character as the hot key.

        Pass explicit *hot* and *normal* attributes, or *focused* with an
        optional *scheme* (defaulting to the view's) to pick them.
        """
        if hot is None or normal is None:
            scheme = scheme or self.view.color_scheme
            if scheme is None:
                raise ValueError("draw_hot_string needs attributes or a color scheme")
            is_focused = self.view.has_focus if focused is None else focused
            hot = scheme.hot_focus if is_focused else scheme.hot_normal
            normal = scheme.focus if is_focused else scheme.normal
        self.attribute = normal
        for cluster in graphemes(text):
            if cluster == "_":
                self.attribute = hot
                continue
            self.add_character(cluster)
            self.attribute = normal
