"""Shared machinery of the drivers that talk to a real terminal."""

from __future__ import annotations

import abc
import os
import signal
from typing import Callable, Mapping

from pi.termkit.attributes import Attribute
from pi.termkit.drivers.base import ConsoleDriver
from pi.termkit.events import Event, ResizeEvent
from pi.termkit.geometry import Point
from pi.termkit.input import InputDecoder
from pi.termkit.terminal import ProcessTerminal, Terminal

MOUSE_ENABLE = "\x1b[?1003h\x1b[?1006h"
MOUSE_DISABLE = "\x1b[?1003l\x1b[?1006l"
BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
BRACKETED_PASTE_DISABLE = "\x1b[?2004l"


class TerminalDriver(ConsoleDriver):
    """A driver that writes escape sequences to a :class:`Terminal`.

    Output is accumulated and written in one piece by :meth:`refresh`.
    Subclasses decide which sequences to use for cursor movement,
    attributes and entering or leaving full-screen mode.
    """

    def __init__(
        self,
        terminal: Terminal | None = None,
        environ: Mapping[str, str] | None = None,
        write_log_path: str | None = None,
    ) -> None:
        super().__init__()
        self._environ = dict(os.environ if environ is None else environ)
        self._terminal: Terminal = terminal or ProcessTerminal(write_log_path=write_log_path)
        self._out: list[str] = []
        self._cursor: tuple[int, int] | None = None
        self._emitted_attribute: int | None = None
        self._cursor_visible = True
        self._decoder: InputDecoder | None = None

    # -- sequences provided by subclasses ------------------------------------

    @abc.abstractmethod
    def _cursor_sequence(self, col: int, row: int) -> str: ...

    @abc.abstractmethod
    def _attribute_sequence(self, attribute: Attribute) -> str: ...

    @abc.abstractmethod
    def _setup_sequence(self) -> str: ...

    @abc.abstractmethod
    def _teardown_sequence(self) -> str: ...

    @abc.abstractmethod
    def _clear_sequence(self) -> str: ...

    @abc.abstractmethod
    def _cursor_visibility_sequence(self, visible: bool) -> str: ...

    # -- lifecycle ----------------------------------------------------------

    def start(self, sink: Callable[[Event | Exception], None]) -> None:
        self._decoder = InputDecoder(self._emit)
        # Mark started first so end() restores the terminal if attaching fails
        super().start(sink)
        self._attach()

    def _attach(self) -> None:
        assert self._decoder is not None
        self._terminal.start(self._decoder.feed, self._on_resize, self._emit)
        self.update_size(self._terminal.columns, self._terminal.rows)
        self._out.append(self._setup_sequence())
        self.update_screen()
        self.refresh()

    def _shutdown(self) -> None:
        if self._decoder is not None:
            self._decoder.reset()
        try:
            self._out.append(self._teardown_sequence())
            self.refresh()
        finally:
            self._terminal.stop()

    def suspend(self) -> bool:
        if not hasattr(signal, "SIGTSTP") or not self.running:
            return False
        self._shutdown()
        os.kill(os.getpid(), signal.SIGTSTP)
        # Resumed by SIGCONT
        self._attach()
        self._emit(ResizeEvent(self.update_size(self._terminal.columns, self._terminal.rows)))
        return True

    def _on_resize(self) -> None:
        size = self.update_size(self._terminal.columns, self._terminal.rows)
        self._emit(ResizeEvent(size))

    # -- output -------------------------------------------------------------

    def _write_cell(
        self, col: int, row: int, text: str, width: int, attribute: Attribute | None
    ) -> None:
        if self._cursor != (col, row):
            self._out.append(self._cursor_sequence(col, row))
        if attribute is not None and attribute.value != self._emitted_attribute:
            self._out.append(self._attribute_sequence(attribute))
            self._emitted_attribute = attribute.value
        self._out.append(text)
        self._cursor = (col + width, row)

    def refresh(self) -> None:
        if not self._out:
            return
        data = "".join(self._out)
        self._out.clear()
        self._terminal.write(data)

    def update_screen(self) -> None:
        self._out.append(self._clear_sequence())
        self._cursor = None
        self._emitted_attribute = None

    def update_cursor(self, point: Point | None) -> None:
        if point is None:
            if self._cursor_visible:
                self._out.append(self._cursor_visibility_sequence(False))
                self._cursor_visible = False
        else:
            self._out.append(self._cursor_sequence(point.x, point.y))
            self._cursor = (point.x, point.y)
            if not self._cursor_visible:
                self._out.append(self._cursor_visibility_sequence(True))
                self._cursor_visible = True
        self.refresh()
