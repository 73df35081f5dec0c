"""Headless driver: an in-memory screen for tests and scripted runs.

Nothing touches the real terminal.  Input is injected with
:meth:`HeadlessDriver.feed_input` or :meth:`HeadlessDriver.post_event`, the
run ends by itself after ``timeout_ms``, and every refresh writes the
screen as plain text to the configured output.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable, TextIO

from pi.termkit.attributes import Attribute
from pi.termkit.drivers.base import ColorSupport, ConsoleDriver
from pi.termkit.events import Event, ResizeEvent
from pi.termkit.geometry import Point
from pi.termkit.input import InputDecoder

logger = logging.getLogger(__name__)

ScreenCell = tuple[str, "Attribute | None"]


class HeadlessDriver(ConsoleDriver):
    """In-memory driver.

    Parameters
    ----------
    cols, rows:
        Screen size.
    timeout_ms:
        Run time after which the driver ends itself; ``None`` runs until
        the application stops.
    output:
        Where :meth:`refresh` writes the screen: a path (rewritten on
        every refresh), ``"-"`` for stdout, an open text stream, or
        ``None`` for nowhere.
    color_support:
        Depth reported to the application.
    """

    name = "headless"

    def __init__(
        self,
        cols: int = 80,
        rows: int = 24,
        timeout_ms: int | None = 1000,
        output: str | TextIO | None = None,
        color_support: ColorSupport = ColorSupport.RGB,
    ) -> None:
        super().__init__(cols, rows)
        self.timeout_ms = timeout_ms
        self.output = output
        self._color_support = color_support
        self.screen: list[list[ScreenCell]] = self._blank()
        self.cursor: Point | None = None
        self.cells_written = 0
        self.refresh_count = 0
        self.timed_out = False
        self._decoder = InputDecoder(self._emit)
        self._timer: asyncio.TimerHandle | None = None

    def _blank(self) -> list[list[ScreenCell]]:
        return [[(" ", None) for _ in range(self.cols)] for _ in range(self.rows)]

    # -- lifecycle ----------------------------------------------------------

    def start(self, sink: Callable[[Event | Exception], None]) -> None:
        super().start(sink)
        if self.timeout_ms is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("no running loop; headless timeout disabled")
            else:
                self._timer = loop.call_later(self.timeout_ms / 1000, self._on_timeout)

    def _on_timeout(self) -> None:
        self._timer = None
        self.timed_out = True
        logger.info("headless run time of %d ms elapsed", self.timeout_ms)
        self.end()

    def _shutdown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._decoder.reset()

    def _write_output(self) -> None:
        if self.output is None:
            return
        text = self.snapshot() + "\n"
        if self.output == "-":
            sys.stdout.write(text)
            sys.stdout.flush()
        elif isinstance(self.output, str):
            with open(self.output, "w") as f:
                f.write(text)
        else:
            self.output.write(text)

    # -- input injection ----------------------------------------------------

    def feed_input(self, data: str) -> None:
        """Decode *data* as if it had been typed on a terminal."""
        self._decoder.feed(data)

    def post_event(self, event: Event) -> None:
        self._emit(event)

    def resize(self, cols: int, rows: int) -> None:
        size = self.update_size(cols, rows)
        self.screen = self._blank()
        self._emit(ResizeEvent(size))

    # -- ConsoleDriver ------------------------------------------------------

    def color_support(self) -> ColorSupport:
        return self._color_support

    def _write_cell(
        self, col: int, row: int, text: str, width: int, attribute: Attribute | None
    ) -> None:
        line = self.screen[row]
        line[col] = (text, attribute)
        if width == 2 and col + 1 < self.cols:
            line[col + 1] = ("", attribute)
        self.cells_written += 1

    def refresh(self) -> None:
        self.refresh_count += 1
        self._write_output()

    def update_screen(self) -> None:
        self.screen = self._blank()

    def update_cursor(self, point: Point | None) -> None:
        self.cursor = point

    # -- inspection ---------------------------------------------------------

    def cell(self, col: int, row: int) -> ScreenCell:
        return self.screen[row][col]

    def line(self, row: int) -> str:
        return "".join(text for text, _ in self.screen[row]).rstrip()

    def snapshot(self) -> str:
        """The screen as plain text, one line per row, trailing blanks trimmed."""
        return "\n".join(self.line(row) for row in range(self.rows))
