"""pi-termkit: a terminal UI toolkit.

Views laid out with ``Pos``/``Dim`` expressions, a responder chain for keys
and mouse, per-view layers composited and diffed onto the screen, and
pluggable console drivers backed by a terminfo interpreter.
"""

from pi.termkit.application import Application, MouseHandlerToken
from pi.termkit.attributes import (
    Attribute,
    CellFlags,
    Color,
    Colors,
    ColorScheme,
    ColorValue,
    Rgb,
)
from pi.termkit.compositor import Compositor
from pi.termkit.config import TermkitConfig
from pi.termkit.drivers import (
    AnsiDriver,
    ColorSupport,
    ConsoleDriver,
    FullScreenDriver,
    HeadlessDriver,
    create_driver,
)
from pi.termkit.errors import (
    CapabilityNotFoundError,
    ColorsFrozenError,
    ConfigError,
    DriverError,
    LayoutError,
    LayoutRangeError,
    ParameterError,
    ReentrantDrawError,
    TerminfoFormatError,
    TermkitError,
)
from pi.termkit.events import Event, Key, KeyEvent, MouseEvent, MouseFlags, ResizeEvent
from pi.termkit.geometry import Point, Rect, Size
from pi.termkit.input import InputDecoder
from pi.termkit.layer import Cell, Layer
from pi.termkit.layout import Dim, Pos
from pi.termkit.log import configure_logging
from pi.termkit.painter import Painter
from pi.termkit.responder import Drawable, Responder
from pi.termkit.terminal import ProcessTerminal, Terminal
from pi.termkit.terminfo import (
    Capability,
    get_capability,
    load_capability,
    process_parametrized_string,
    reset_capability_cache,
)
from pi.termkit.text import grapheme_width, text_width
from pi.termkit.toplevel import Toplevel
from pi.termkit.view import LayoutStyle, View

__all__ = [
    # application
    "Application",
    "MouseHandlerToken",
    "TermkitConfig",
    "configure_logging",
    # geometry and layout
    "Point",
    "Size",
    "Rect",
    "Pos",
    "Dim",
    "LayoutStyle",
    # views
    "View",
    "Toplevel",
    "Responder",
    "Drawable",
    # rendering
    "Attribute",
    "CellFlags",
    "Color",
    "Colors",
    "ColorScheme",
    "ColorValue",
    "Rgb",
    "Cell",
    "Layer",
    "Painter",
    "Compositor",
    "grapheme_width",
    "text_width",
    # events and input
    "Event",
    "Key",
    "KeyEvent",
    "MouseEvent",
    "MouseFlags",
    "ResizeEvent",
    "InputDecoder",
    # drivers
    "ConsoleDriver",
    "ColorSupport",
    "FullScreenDriver",
    "AnsiDriver",
    "HeadlessDriver",
    "create_driver",
    "Terminal",
    "ProcessTerminal",
    # terminfo
    "Capability",
    "get_capability",
    "load_capability",
    "process_parametrized_string",
    "reset_capability_cache",
    # errors
    "TermkitError",
    "LayoutRangeError",
    "LayoutError",
    "CapabilityNotFoundError",
    "TerminfoFormatError",
    "ParameterError",
    "DriverError",
    "ConfigError",
    "ColorsFrozenError",
    "ReentrantDrawError",
]
