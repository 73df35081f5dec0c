"""Colors, cell flags, attributes and color schemes.

An :class:`Attribute` pairs the logical colors and flags with the value the
driver that created it uses to encode them.  Attributes are immutable;
:meth:`Attribute.change` asks the originating driver for a new one.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field, replace
from typing import Protocol, Union

from pi.termkit.errors import ColorsFrozenError, TermkitError


class Color(enum.Enum):
    """The sixteen named terminal colors."""

    BLACK = "black"
    BLUE = "blue"
    GREEN = "green"
    CYAN = "cyan"
    RED = "red"
    MAGENTA = "magenta"
    BROWN = "brown"
    GRAY = "gray"
    DARK_GRAY = "dark_gray"
    BRIGHT_BLUE = "bright_blue"
    BRIGHT_GREEN = "bright_green"
    BRIGHT_CYAN = "bright_cyan"
    BRIGHT_RED = "bright_red"
    BRIGHT_MAGENTA = "bright_magenta"
    BRIGHT_YELLOW = "bright_yellow"
    WHITE = "white"

    @staticmethod
    def rgb(red: int, green: int, blue: int) -> Rgb:
        return Rgb(red, green, blue)

    @staticmethod
    def parse(name: str) -> ColorValue:
        """Parse a color name (``"bright-red"``, ``"Dark Gray"``) or ``#rrggbb``."""
        text = name.strip()
        m = _HEX_RE.match(text)
        if m:
            return Rgb(int(m.group(1), 16), int(m.group(2), 16), int(m.group(3), 16))
        key = re.sub(r"[\s\-]+", "_", text.lower())
        if key == "yellow":
            return Color.BRIGHT_YELLOW
        try:
            return Color(key)
        except ValueError:
            raise ValueError(f"unknown color name {name!r}") from None

    @property
    def ansi_index(self) -> int:
        """Index of the color in the standard 16-entry terminal palette."""
        return _ANSI_INDEX[self]


_HEX_RE = re.compile(r"^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")

_ANSI_INDEX = {
    Color.BLACK: 0,
    Color.RED: 1,
    Color.GREEN: 2,
    Color.BROWN: 3,
    Color.BLUE: 4,
    Color.MAGENTA: 5,
    Color.CYAN: 6,
    Color.GRAY: 7,
    Color.DARK_GRAY: 8,
    Color.BRIGHT_RED: 9,
    Color.BRIGHT_GREEN: 10,
    Color.BRIGHT_YELLOW: 11,
    Color.BRIGHT_BLUE: 12,
    Color.BRIGHT_MAGENTA: 13,
    Color.BRIGHT_CYAN: 14,
    Color.WHITE: 15,
}


@dataclass(frozen=True)
class Rgb:
    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        for channel in (self.red, self.green, self.blue):
            if not 0 <= channel <= 255:
                raise ValueError(f"RGB channel out of range 0..255: {channel}")


ColorValue = Union[Color, Rgb]


class CellFlags(enum.IntFlag):
    NONE = 0
    BOLD = 1
    UNDERLINE = 2
    DIM = 4
    STANDOUT = 8
    BLINK = 16
    INVERT = 32


class AttributeMaker(Protocol):
    def make_attribute(
        self,
        foreground: ColorValue,
        background: ColorValue,
        flags: CellFlags = CellFlags.NONE,
    ) -> Attribute: ...


@dataclass(frozen=True)
class Attribute:
    """A driver encoded cell attribute.

    ``value`` is driver specific (a color-pair number for the bundled
    drivers).  Two attributes compare equal when their value and logical
    colors match, regardless of which driver produced them.
    """

    value: int
    foreground: ColorValue
    background: ColorValue
    flags: CellFlags = CellFlags.NONE
    maker: AttributeMaker | None = field(default=None, compare=False, repr=False)

    def change(
        self,
        foreground: ColorValue | None = None,
        background: ColorValue | None = None,
        flags: CellFlags | None = None,
    ) -> Attribute:
        fore = self.foreground if foreground is None else foreground
        back = self.background if background is None else background
        new_flags = self.flags if flags is None else flags
        if self.maker is not None:
            return self.maker.make_attribute(fore, back, new_flags)
        return replace(self, foreground=fore, background=back, flags=new_flags)


@dataclass(frozen=True)
class ColorScheme:
    normal: Attribute
    focus: Attribute
    hot_normal: Attribute
    hot_focus: Attribute


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


def _scheme(name: str) -> property:
    def getter(self: Colors) -> ColorScheme:
        self._frozen = True
        try:
            return self._schemes[name]
        except KeyError:
            raise TermkitError(f"color scheme {name!r} has not been installed") from None

    def setter(self: Colors, scheme: ColorScheme) -> None:
        if self._frozen:
            raise ColorsFrozenError(
                f"color scheme {name!r} cannot change once rendering has read it"
            )
        self._schemes[name] = scheme

    return property(getter, setter)


class Colors:
    """The four named color schemes of an application.

    Filled in by the driver when it starts; the first read freezes the
    set, after which rebinding a scheme raises
    :class:`~pi.termkit.errors.ColorsFrozenError`.
    """

    base = _scheme("base")
    dialog = _scheme("dialog")
    menu = _scheme("menu")
    error = _scheme("error")

    def __init__(self) -> None:
        self._schemes: dict[str, ColorScheme] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_installed(self, name: str) -> bool:
        return name in self._schemes
