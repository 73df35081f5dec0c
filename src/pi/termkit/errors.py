"""Exception hierarchy shared by every termkit subsystem."""

from __future__ import annotations


class TermkitError(Exception):
    """Base class for all errors raised by termkit."""


class LayoutRangeError(TermkitError, ValueError):
    """A ``Pos``/``Dim`` expression was built from an out-of-range value.

    Raised at construction time, never while resolving.
    """


class LayoutError(TermkitError):
    """The layout pass cannot order views because their expressions form a cycle."""

    def __init__(self, message: str, cycle: tuple[object, ...] = ()) -> None:
        super().__init__(message)
        self.cycle = cycle


class CapabilityNotFoundError(TermkitError):
    """No compiled terminfo entry exists for the requested terminal type."""

    def __init__(self, term: str, searched: list[str] | None = None) -> None:
        super().__init__(f"no terminfo entry found for terminal {term!r}")
        self.term = term
        self.searched = searched or []


class TerminfoFormatError(TermkitError):
    """A compiled terminfo file is truncated or has an unknown magic number."""


class ParameterError(TermkitError, ValueError):
    """A parametrized capability string is malformed."""


class DriverError(TermkitError):
    """The terminal driver failed to read from or write to the device."""


class ConfigError(TermkitError):
    """The environment requested an unknown driver or an invalid option."""


class ColorsFrozenError(TermkitError):
    """A color scheme was rebound after the rendering path started reading it."""


class ReentrantDrawError(TermkitError):
    """``draw_content`` was entered again for a view that is already drawing."""
