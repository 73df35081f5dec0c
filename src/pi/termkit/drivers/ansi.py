"""Raw ANSI driver: hard-coded xterm sequences, no capability database."""

from __future__ import annotations

from typing import Mapping

from pi.termkit.attributes import Attribute
from pi.termkit.drivers.base import ColorSupport, ansi_attribute_sequence, detect_color_support
from pi.termkit.drivers.tty import (
    BRACKETED_PASTE_DISABLE,
    BRACKETED_PASTE_ENABLE,
    MOUSE_DISABLE,
    MOUSE_ENABLE,
    TerminalDriver,
)
from pi.termkit.terminal import Terminal

ALT_SCREEN_ENABLE = "\x1b[?1049h"
ALT_SCREEN_DISABLE = "\x1b[?1049l"
CLEAR_SCREEN = "\x1b[H\x1b[2J"
RESET_ATTRIBUTES = "\x1b[0m"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"


class AnsiDriver(TerminalDriver):
    """Drives any VT100-compatible terminal with literal escape sequences.

    Color depth comes from ``COLORTERM`` and ``TERM`` only.
    """

    name = "raw-ansi"

    def __init__(
        self,
        terminal: Terminal | None = None,
        environ: Mapping[str, str] | None = None,
        write_log_path: str | None = None,
    ) -> None:
        super().__init__(terminal, environ, write_log_path)
        self._color_support = detect_color_support(self._environ)

    def color_support(self) -> ColorSupport:
        return self._color_support

    def _cursor_sequence(self, col: int, row: int) -> str:
        return f"\x1b[{row + 1};{col + 1}H"

    def _attribute_sequence(self, attribute: Attribute) -> str:
        return ansi_attribute_sequence(attribute, self._color_support)

    def _setup_sequence(self) -> str:
        return ALT_SCREEN_ENABLE + MOUSE_ENABLE + BRACKETED_PASTE_ENABLE

    def _teardown_sequence(self) -> str:
        return (
            MOUSE_DISABLE
            + BRACKETED_PASTE_DISABLE
            + RESET_ATTRIBUTES
            + SHOW_CURSOR
            + ALT_SCREEN_DISABLE
        )

    def _clear_sequence(self) -> str:
        return RESET_ATTRIBUTES + CLEAR_SCREEN

    def _cursor_visibility_sequence(self, visible: bool) -> str:
        return SHOW_CURSOR if visible else HIDE_CURSOR
