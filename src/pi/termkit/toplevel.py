"""Root views managed by the application's toplevel stack."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pi.termkit.attributes import ColorScheme
from pi.termkit.events import Key, KeyEvent
from pi.termkit.geometry import Rect
from pi.termkit.layout import Dim, DimLike, Pos, PosLike
from pi.termkit.view import View

if TYPE_CHECKING:
    from pi.termkit.application import Application

_NEXT_KEYS = frozenset({Key.TAB, Key.CURSOR_DOWN, Key.CURSOR_RIGHT})
_PREV_KEYS = frozenset({Key.BACKTAB, Key.CURSOR_UP, Key.CURSOR_LEFT})


class Toplevel(View):
    """A view with no superview that the application can run.

    By default it covers the whole screen.  It drives keyboard focus
    navigation (Tab, Shift-Tab and the cursor keys), suspends on Ctrl-Z and
    repaints the screen on Ctrl-L, all in the cold-key phase so focused
    views see those keys first.
    """

    def __init__(
        self,
        frame: Rect | None = None,
        *,
        x: PosLike | None = None,
        y: PosLike | None = None,
        width: DimLike | None = None,
        height: DimLike | None = None,
        id: str = "",
    ) -> None:
        super().__init__(
            frame,
            x=Pos.at(0) if x is None else x,
            y=Pos.at(0) if y is None else y,
            width=Dim.fill() if width is None else width,
            height=Dim.fill() if height is None else height,
            id=id,
        )
        self.running = False
        self.wants_cold_keys = True
        self._application: Application | None = None

    @property
    def application(self) -> Application | None:
        return self._application

    @application.setter
    def application(self, app: Application | None) -> None:
        self._application = app

    @property
    def color_scheme(self) -> ColorScheme | None:
        if self._color_scheme is not None:
            return self._color_scheme
        app = self._application
        if app is not None and app.colors.is_installed("base"):
            return app.colors.base
        return None

    @color_scheme.setter
    def color_scheme(self, scheme: ColorScheme | None) -> None:
        self._color_scheme = scheme
        self.set_needs_display()

    def will_present(self) -> None:
        """Called by the application right before the first frame."""
        if self.most_focused() is None:
            self.focus_first()

    def request_stop(self) -> None:
        """Stop running this toplevel; the application pops it next."""
        self.running = False
        app = self._application
        if app is not None:
            app.wake()

    def process_cold_key(self, event: KeyEvent) -> bool:
        key = event.key
        if key in _NEXT_KEYS:
            self.focus_next()
            return True
        if key in _PREV_KEYS:
            self.focus_prev()
            return True
        app = self._application
        if app is None:
            return False
        if key is Key.CONTROL_Z:
            app.suspend()
            return True
        if key is Key.CONTROL_L:
            app.refresh()
            return True
        return False
