"""Full-screen driver: every escape sequence comes from the terminfo entry."""

from __future__ import annotations

from typing import Mapping

from pi.termkit.attributes import Attribute, CellFlags, Rgb
from pi.termkit.drivers.base import ColorSupport, ansi_color_code, color_index, detect_color_support
from pi.termkit.drivers.tty import (
    BRACKETED_PASTE_DISABLE,
    BRACKETED_PASTE_ENABLE,
    MOUSE_DISABLE,
    MOUSE_ENABLE,
    TerminalDriver,
)
from pi.termkit.terminal import Terminal
from pi.termkit.terminfo import Capability, get_capability

_FLAG_CAPABILITIES = (
    (CellFlags.BOLD, "bold"),
    (CellFlags.DIM, "dim"),
    (CellFlags.UNDERLINE, "smul"),
    (CellFlags.BLINK, "blink"),
    (CellFlags.INVERT, "rev"),
    (CellFlags.STANDOUT, "smso"),
)


class FullScreenDriver(TerminalDriver):
    """Drives an interactive terminal on the alternate screen.

    Capabilities are looked up for ``$TERM`` (or *term*); a missing entry
    falls back to the built-in xterm profile.
    """

    name = "full-screen"

    def __init__(
        self,
        terminal: Terminal | None = None,
        environ: Mapping[str, str] | None = None,
        term: str | None = None,
        capability: Capability | None = None,
        write_log_path: str | None = None,
    ) -> None:
        super().__init__(terminal, environ, write_log_path)
        self.capability = capability or get_capability(term, self._environ)
        self._color_support = detect_color_support(self._environ, self.capability.get_number("colors"))
        self._sequences: dict[int, str] = {}

    def color_support(self) -> ColorSupport:
        return self._color_support

    def _string(self, name: str, default: str = "") -> str:
        value = self.capability.get_string(name)
        return default if value is None else value

    def _cursor_sequence(self, col: int, row: int) -> str:
        return self.capability.move_cursor(row, col)

    def _attribute_sequence(self, attribute: Attribute) -> str:
        cached = self._sequences.get(attribute.value)
        if cached is not None:
            return cached
        parts = [self._string("sgr0", "\x1b[0m")]
        for flag, name in _FLAG_CAPABILITIES:
            if attribute.flags & flag:
                parts.append(self._string(name))
        for color, background in ((attribute.foreground, False), (attribute.background, True)):
            value = color_index(color, self._color_support)
            if isinstance(value, Rgb):
                # terminfo has no standard direct-color capability
                parts.append(f"\x1b[{ansi_color_code(value, background)}m")
            elif value is not None:
                cap = self.capability
                parts.append(
                    cap.set_background_color(value) if background else cap.set_foreground_color(value)
                )
        sequence = "".join(parts)
        self._sequences[attribute.value] = sequence
        return sequence

    def _setup_sequence(self) -> str:
        return (
            self._string("smcup", "\x1b[?1049h")
            + self._string("home", "\x1b[H")
            + MOUSE_ENABLE
            + BRACKETED_PASTE_ENABLE
        )

    def _teardown_sequence(self) -> str:
        return (
            MOUSE_DISABLE
            + BRACKETED_PASTE_DISABLE
            + self._string("sgr0", "\x1b[0m")
            + self._string("cnorm", "\x1b[?25h")
            + self._string("rmcup", "\x1b[?1049l")
        )

    def _clear_sequence(self) -> str:
        return self._string("clear", "\x1b[H\x1b[2J")

    def _cursor_visibility_sequence(self, visible: bool) -> str:
        if visible:
            return self._string("cnorm", "\x1b[?25h")
        return self._string("civis", "\x1b[?25l")
