"""The console driver contract shared by every backend.

A driver owns the device: it reports the screen extent, accepts cell writes
at a current position with a current attribute, allocates attributes for
the color depth it supports, and delivers decoded input events to the
application through a sink callback.
"""

from __future__ import annotations

import abc
import enum
import logging
from typing import Callable, Mapping

from pi.termkit.attributes import (
    Attribute,
    CellFlags,
    Color,
    Colors,
    ColorScheme,
    ColorValue,
    Rgb,
)
from pi.termkit.events import Event
from pi.termkit.geometry import Point, Rect, Size
from pi.termkit.terminfo import rgb_to_palette16, rgb_to_xterm256
from pi.termkit.text import grapheme_width, graphemes

logger = logging.getLogger(__name__)


class ColorSupport(enum.Enum):
    BLACK_AND_WHITE = "black-and-white"
    ANSI16 = "ansi16"
    ANSI256 = "ansi256"
    RGB = "rgb"


def detect_color_support(environ: Mapping[str, str], colors: int | None = None) -> ColorSupport:
    """Pick the color depth from ``COLORTERM``, the terminfo color count and ``TERM``."""
    if environ.get("COLORTERM", "").lower() in ("truecolor", "24bit"):
        return ColorSupport.RGB
    if colors is not None:
        if colors <= 1:
            return ColorSupport.BLACK_AND_WHITE
        if colors <= 16:
            return ColorSupport.ANSI16
        if colors <= 256:
            return ColorSupport.ANSI256
        return ColorSupport.RGB
    term = environ.get("TERM", "")
    if "256" in term:
        return ColorSupport.ANSI256
    if term in ("", "dumb"):
        return ColorSupport.BLACK_AND_WHITE
    return ColorSupport.ANSI16


def color_index(color: ColorValue, support: ColorSupport) -> int | Rgb | None:
    """Translate a logical color to what a terminal of *support* depth can show.

    Returns a palette index, the ``Rgb`` itself for direct color, or
    ``None`` when the terminal shows no color.
    """
    if support is ColorSupport.BLACK_AND_WHITE:
        return None
    if isinstance(color, Color):
        return color.ansi_index
    if support is ColorSupport.RGB:
        return color
    if support is ColorSupport.ANSI256:
        return rgb_to_xterm256(color.red, color.green, color.blue)
    return rgb_to_palette16(color.red, color.green, color.blue)


def ansi_color_code(value: int | Rgb | None, background: bool) -> str:
    if value is None:
        return ""
    if isinstance(value, Rgb):
        return f"{48 if background else 38};2;{value.red};{value.green};{value.blue}"
    if value < 8:
        return str((40 if background else 30) + value)
    if value < 16:
        return str((100 if background else 90) + value - 8)
    return f"{48 if background else 38};5;{value}"


_FLAG_CODES = (
    (CellFlags.BOLD, "1"),
    (CellFlags.DIM, "2"),
    (CellFlags.UNDERLINE, "4"),
    (CellFlags.BLINK, "5"),
    (CellFlags.INVERT, "7"),
    (CellFlags.STANDOUT, "7"),
)


def ansi_attribute_sequence(attribute: Attribute, support: ColorSupport) -> str:
    """A single SGR sequence that resets and then applies *attribute*."""
    codes = ["0"]
    for flag, code in _FLAG_CODES:
        if attribute.flags & flag and code not in codes:
            codes.append(code)
    for value, background in (
        (color_index(attribute.foreground, support), False),
        (color_index(attribute.background, support), True),
    ):
        code = ansi_color_code(value, background)
        if code:
            codes.append(code)
    return "\x1b[" + ";".join(codes) + "m"


class ConsoleDriver(abc.ABC):
    """Base class of every backend.

    Subclasses implement :meth:`_write_cell` plus the screen operations;
    this class handles the current position, clipping, grapheme iteration,
    attribute allocation and the lifecycle bookkeeping that makes
    :meth:`end` safe to call more than once.
    """

    name = "console"

    def __init__(self, cols: int = 80, rows: int = 24) -> None:
        self.cols = cols
        self.rows = rows
        self.clip = Rect(0, 0, cols, rows)
        self._col = 0
        self._row = 0
        self._attribute: Attribute | None = None
        self._attributes: dict[tuple[ColorValue, ColorValue, CellFlags], Attribute] = {}
        self._next_pair = 1
        self._sink: Callable[[Event | Exception], None] | None = None
        self._end_listeners: list[Callable[[], None]] = []
        self._started = False
        self._ended = False

    # -- lifecycle ----------------------------------------------------------

    def start(self, sink: Callable[[Event | Exception], None]) -> None:
        """Take over the device; decoded events and I/O failures go to *sink*."""
        self._sink = sink
        self._started = True
        self._ended = False
        logger.info("%s driver started", self.name)

    def end(self) -> None:
        """Restore the device.  Safe to call repeatedly and before start()."""
        if self._ended:
            return
        self._ended = True
        try:
            if self._started:
                self._shutdown()
                logger.info("%s driver ended", self.name)
        finally:
            self._started = False
            listeners, self._end_listeners = self._end_listeners, []
            for listener in listeners:
                listener()

    def add_end_listener(self, listener: Callable[[], None]) -> None:
        self._end_listeners.append(listener)

    @property
    def running(self) -> bool:
        return self._started and not self._ended

    def suspend(self) -> bool:
        """Hand the terminal back to the shell; ``False`` if unsupported."""
        return False

    def _shutdown(self) -> None:
        pass

    def _emit(self, event: Event | Exception) -> None:
        if self._sink is not None:
            self._sink(event)

    def update_size(self, cols: int, rows: int) -> Size:
        self.cols = max(0, cols)
        self.rows = max(0, rows)
        self.clip = Rect(0, 0, self.cols, self.rows)
        return Size(self.cols, self.rows)

    # -- cell primitives ----------------------------------------------------

    def move_to(self, col: int, row: int) -> None:
        self._col = col
        self._row = row

    def set_attribute(self, attribute: Attribute | None) -> None:
        self._attribute = attribute

    @property
    def position(self) -> Point:
        return Point(self._col, self._row)

    def add_character(self, cluster: str) -> None:
        """Write one grapheme cluster at the current position and advance."""
        width = grapheme_width(cluster)
        if width == 0:
            return
        col, row = self._col, self._row
        inside = self.clip.contains(Point(col, row)) and (
            width == 1 or self.clip.contains(Point(col + 1, row))
        )
        if inside:
            self._write_cell(col, row, cluster, width, self._attribute)
        self._col += width

    def add_rune(self, rune: str) -> None:
        self.add_character(rune)

    def add_str(self, text: str) -> None:
        for cluster in graphemes(text):
            self.add_character(cluster)

    @abc.abstractmethod
    def _write_cell(
        self, col: int, row: int, text: str, width: int, attribute: Attribute | None
    ) -> None: ...

    # -- screen -------------------------------------------------------------

    @abc.abstractmethod
    def refresh(self) -> None:
        """Make everything written so far visible."""

    @abc.abstractmethod
    def update_screen(self) -> None:
        """Forget what is on the device; the next flush repaints it entirely."""

    @abc.abstractmethod
    def update_cursor(self, point: Point | None) -> None:
        """Place the hardware cursor at *point*, or hide it for ``None``."""

    # -- attributes ---------------------------------------------------------

    @abc.abstractmethod
    def color_support(self) -> ColorSupport: ...

    def make_attribute(
        self,
        foreground: ColorValue,
        background: ColorValue,
        flags: CellFlags = CellFlags.NONE,
    ) -> Attribute:
        key = (foreground, background, CellFlags(flags))
        attr = self._attributes.get(key)
        if attr is None:
            attr = Attribute(self._next_pair, foreground, background, CellFlags(flags), maker=self)
            self._attributes[key] = attr
            self._next_pair += 1
        return attr

    def change_attribute(
        self,
        attribute: Attribute,
        foreground: ColorValue | None = None,
        background: ColorValue | None = None,
        flags: CellFlags | None = None,
    ) -> Attribute:
        return self.make_attribute(
            attribute.foreground if foreground is None else foreground,
            attribute.background if background is None else background,
            attribute.flags if flags is None else flags,
        )

    def select_colors(self, colors: Colors) -> None:
        """Install the default base, menu, dialog and error schemes."""
        make = self.make_attribute
        if self.color_support() is ColorSupport.BLACK_AND_WHITE:
            normal = make(Color.WHITE, Color.BLACK)
            focus = make(Color.WHITE, Color.BLACK, CellFlags.INVERT)
            hot = make(Color.WHITE, Color.BLACK, CellFlags.BOLD | CellFlags.UNDERLINE)
            hot_focus = make(Color.WHITE, Color.BLACK, CellFlags.INVERT | CellFlags.UNDERLINE)
            scheme = ColorScheme(normal, focus, hot, hot_focus)
            colors.base = colors.menu = colors.dialog = colors.error = scheme
            return

        colors.base = ColorScheme(
            make(Color.GRAY, Color.BLUE),
            make(Color.BLACK, Color.CYAN),
            make(Color.BRIGHT_YELLOW, Color.BLUE),
            make(Color.BRIGHT_YELLOW, Color.CYAN),
        )
        colors.menu = ColorScheme(
            make(Color.WHITE, Color.CYAN),
            make(Color.WHITE, Color.BLACK),
            make(Color.BRIGHT_YELLOW, Color.CYAN),
            make(Color.BRIGHT_YELLOW, Color.BLACK),
        )
        colors.dialog = ColorScheme(
            make(Color.BLACK, Color.GRAY),
            make(Color.BLACK, Color.CYAN),
            make(Color.BLUE, Color.GRAY),
            make(Color.BLUE, Color.CYAN),
        )
        colors.error = ColorScheme(
            make(Color.WHITE, Color.RED),
            make(Color.BLACK, Color.WHITE),
            make(Color.BRIGHT_YELLOW, Color.RED),
            make(Color.BRIGHT_YELLOW, Color.RED),
        )

