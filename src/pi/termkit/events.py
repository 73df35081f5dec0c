"""Abstract input events delivered to the responder chain."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Union

from pi.termkit.geometry import Point, Size

if TYPE_CHECKING:
    from pi.termkit.view import View


class Key(enum.Enum):
    """Keys the input decoder recognizes.

    Printable input is reported as ``LETTER`` with the text in
    :attr:`KeyEvent.char`; bracketed paste as ``PASTE``.  Anything the
    decoder cannot classify is ``UNKNOWN`` with the raw sequence attached.
    """

    CONTROL_SPACE = "control_space"
    CONTROL_A = "control_a"
    CONTROL_B = "control_b"
    CONTROL_C = "control_c"
    CONTROL_D = "control_d"
    CONTROL_E = "control_e"
    CONTROL_F = "control_f"
    CONTROL_G = "control_g"
    CONTROL_H = "control_h"
    CONTROL_I = "control_i"
    CONTROL_J = "control_j"
    CONTROL_K = "control_k"
    CONTROL_L = "control_l"
    CONTROL_M = "control_m"
    CONTROL_N = "control_n"
    CONTROL_O = "control_o"
    CONTROL_P = "control_p"
    CONTROL_Q = "control_q"
    CONTROL_R = "control_r"
    CONTROL_S = "control_s"
    CONTROL_T = "control_t"
    CONTROL_U = "control_u"
    CONTROL_V = "control_v"
    CONTROL_W = "control_w"
    CONTROL_X = "control_x"
    CONTROL_Y = "control_y"
    CONTROL_Z = "control_z"
    ESC = "esc"
    FS = "fs"
    GS = "gs"
    RS = "rs"
    US = "us"
    DELETE = "delete"
    CURSOR_UP = "cursor_up"
    CURSOR_DOWN = "cursor_down"
    CURSOR_LEFT = "cursor_left"
    CURSOR_RIGHT = "cursor_right"
    SHIFT_CURSOR_UP = "shift_cursor_up"
    SHIFT_CURSOR_DOWN = "shift_cursor_down"
    SHIFT_CURSOR_LEFT = "shift_cursor_left"
    SHIFT_CURSOR_RIGHT = "shift_cursor_right"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    DELETE_CHAR = "delete_char"
    INSERT_CHAR = "insert_char"
    F1 = "f1"
    F2 = "f2"
    F3 = "f3"
    F4 = "f4"
    F5 = "f5"
    F6 = "f6"
    F7 = "f7"
    F8 = "f8"
    F9 = "f9"
    F10 = "f10"
    F11 = "f11"
    F12 = "f12"
    BACKTAB = "backtab"
    LETTER = "letter"
    PASTE = "paste"
    UNKNOWN = "unknown"

    # aliases
    TAB = "control_i"
    ENTER = "control_m"


_CONTROL_KEYS = [Key(f"control_{chr(c)}") for c in range(ord("a"), ord("z") + 1)]


def control_key(letter: str) -> Key:
    """``control_key("c")`` is :attr:`Key.CONTROL_C`."""
    return _CONTROL_KEYS[ord(letter.lower()) - ord("a")]


@dataclass(frozen=True)
class KeyEvent:
    key: Key
    char: str = ""
    is_alt: bool = False
    is_control: bool = False
    raw: str = ""

    @classmethod
    def letter(cls, char: str, is_alt: bool = False) -> KeyEvent:
        return cls(Key.LETTER, char=char, is_alt=is_alt, raw=char)

    def __str__(self) -> str:
        prefix = ("ctrl+" if self.is_control else "") + ("alt+" if self.is_alt else "")
        if self.key is Key.LETTER:
            return prefix + self.char
        return prefix + self.key.value


class MouseFlags(enum.IntFlag):
    NONE = 0
    BUTTON1_RELEASED = 0x1
    BUTTON1_PRESSED = 0x2
    BUTTON1_CLICKED = 0x4
    BUTTON1_DOUBLE_CLICKED = 0x8
    BUTTON1_TRIPLE_CLICKED = 0x10
    BUTTON2_RELEASED = 0x40
    BUTTON2_PRESSED = 0x80
    BUTTON2_CLICKED = 0x100
    BUTTON2_DOUBLE_CLICKED = 0x200
    BUTTON2_TRIPLE_CLICKED = 0x400
    BUTTON3_RELEASED = 0x1000
    BUTTON3_PRESSED = 0x2000
    BUTTON3_CLICKED = 0x4000
    BUTTON3_DOUBLE_CLICKED = 0x8000
    BUTTON3_TRIPLE_CLICKED = 0x10000
    BUTTON4_RELEASED = 0x40000
    BUTTON4_PRESSED = 0x80000
    BUTTON4_CLICKED = 0x100000
    BUTTON4_DOUBLE_CLICKED = 0x200000
    BUTTON4_TRIPLE_CLICKED = 0x400000
    BUTTON_CTRL = 0x1000000
    BUTTON_SHIFT = 0x2000000
    BUTTON_ALT = 0x4000000
    MOUSE_POSITION = 0x8000000
    WHEELED_UP = 0x10000000
    WHEELED_DOWN = 0x20000000


_MODIFIERS = MouseFlags.BUTTON_CTRL | MouseFlags.BUTTON_SHIFT | MouseFlags.BUTTON_ALT


@dataclass(frozen=True)
class MouseEvent:
    """A mouse event.

    ``pos`` is relative to ``view`` once the event has been routed; before
    routing it equals ``abs_pos``, the screen position.
    """

    pos: Point
    flags: MouseFlags
    abs_pos: Point | None = None
    view: View | None = None

    def __post_init__(self) -> None:
        if self.abs_pos is None:
            object.__setattr__(self, "abs_pos", self.pos)

    def retarget(self, pos: Point, view: View | None) -> MouseEvent:
        return replace(self, pos=pos, view=view)

    @property
    def is_motion(self) -> bool:
        """True for a position report with no button held."""
        return self.flags & ~_MODIFIERS == MouseFlags.MOUSE_POSITION


@dataclass(frozen=True)
class ResizeEvent:
    size: Size


Event = Union[KeyEvent, MouseEvent, ResizeEvent]
