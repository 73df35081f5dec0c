"""Small protocols describing what the application asks of a view."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pi.termkit.events import KeyEvent, MouseEvent
from pi.termkit.geometry import Point, Rect

if TYPE_CHECKING:
    from pi.termkit.painter import Painter


@runtime_checkable
class Responder(Protocol):
    """Receives input.

    Each handler returns ``True`` when it consumed the event, which stops
    the current routing phase.
    """

    can_focus: bool

    @property
    def has_focus(self) -> bool: ...

    def process_hot_key(self, event: KeyEvent) -> bool: ...

    def process_key(self, event: KeyEvent) -> bool: ...

    def process_cold_key(self, event: KeyEvent) -> bool: ...

    def mouse_event(self, event: MouseEvent) -> bool: ...


@runtime_checkable
class Drawable(Protocol):
    """Renders itself into a painter and may place the hardware cursor."""

    def draw_content(self, region: Rect, painter: Painter) -> None: ...

    def position_cursor(self) -> Point | None: ...
