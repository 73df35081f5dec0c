"""The application: driver ownership, the toplevel stack and the run loop.

The loop is single-threaded and runs on asyncio.  Drivers post decoded
events to an :class:`asyncio.Queue`; the loop takes one item at a time,
routes it, pops toplevels that stopped running, and renders a frame when
anything is flagged for layout or display.  Ending the driver posts a
sentinel that stops the loop, and the driver is always ended on the way
out.

Example
-------
::

    top = Toplevel()
    top.add_subview(View(x=Pos.center(), y=Pos.center(), width=10, height=3))
    Application.main(top)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Mapping, Union

from pi.termkit.attributes import Colors
from pi.termkit.config import TermkitConfig
from pi.termkit.compositor import Compositor
from pi.termkit.drivers import create_driver
from pi.termkit.drivers.base import ConsoleDriver
from pi.termkit.errors import ConfigError, TermkitError
from pi.termkit.events import Event, KeyEvent, MouseEvent, ResizeEvent
from pi.termkit.geometry import Point, Size
from pi.termkit.layout import compute_frame
from pi.termkit.log import configure_logging
from pi.termkit.toplevel import Toplevel
from pi.termkit.view import LayoutStyle, View

logger = logging.getLogger(__name__)


class _Signal:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


# Posted when the driver ends; stops the loop
_END = _Signal("end")
# Posted to re-check the toplevel stack and render
_WAKE = _Signal("wake")

_QueueItem = Union[Event, Exception, _Signal]


@dataclass(frozen=True)
class MouseHandlerToken:
    token: int


class Application:
    """Owns one driver, the toplevel stack and the color schemes.

    Parameters
    ----------
    driver:
        The console driver.  When omitted one is created from *config*.
    config:
        Configuration; read from the environment when omitted.
    """

    def __init__(
        self,
        driver: ConsoleDriver | None = None,
        config: TermkitConfig | None = None,
    ) -> None:
        if config is None:
            config = TermkitConfig.from_env() if driver is None else TermkitConfig()
        self.config = config
        self.driver: ConsoleDriver = driver if driver is not None else create_driver(config)
        self.colors = Colors()
        self.toplevels: list[Toplevel] = []
        self.compositor = Compositor()
        self.frames_rendered = 0
        self._queue: asyncio.Queue[_QueueItem] | None = None
        self._grab: View | None = None
        self._root_mouse_handlers: dict[int, Callable[[MouseEvent], None]] = {}
        self._next_token = 0
        self._force_render = False

    @property
    def current(self) -> Toplevel | None:
        return self.toplevels[-1] if self.toplevels else None

    @property
    def screen_size(self) -> Size:
        return Size(self.driver.cols, self.driver.rows)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @classmethod
    def main(cls, toplevel: Toplevel | None = None, environ: Mapping[str, str] | None = None) -> None:
        """Configure from the environment and run *toplevel*.

        A configuration error is printed to stderr and exits with status 2.
        """
        try:
            config = TermkitConfig.from_env(environ)
            configure_logging(config)
            app = cls(config=config)
        except ConfigError as exc:
            print(f"pi-termkit: {exc}", file=sys.stderr)
            sys.exit(2)
        app.run(toplevel if toplevel is not None else Toplevel())

    def run(self, toplevel: Toplevel) -> None:
        """Run *toplevel* until the stack empties or the driver ends."""
        asyncio.run(self.run_async(toplevel))

    async def run_async(self, toplevel: Toplevel) -> None:
        queue: asyncio.Queue[_QueueItem] = asyncio.Queue()
        self._queue = queue
        self.driver.add_end_listener(self._on_driver_end)
        try:
            self.driver.start(self._post)
            if not self.colors.frozen:
                self.driver.select_colors(self.colors)
            self.begin(toplevel)
            while self.toplevels:
                if self.needs_render:
                    self.render()
                item = await queue.get()
                if item is _END:
                    logger.debug("driver ended; leaving the run loop")
                    break
                if isinstance(item, Exception):
                    raise item
                if not isinstance(item, _Signal):
                    self.dispatch(item)
                self._pop_finished()
        finally:
            self._queue = None
            self.driver.end()

    def _post(self, item: _QueueItem) -> None:
        if self._queue is not None:
            self._queue.put_nowait(item)

    def _on_driver_end(self) -> None:
        self._post(_END)

    def wake(self) -> None:
        """Ask the loop to re-check the toplevel stack and render."""
        self._post(_WAKE)

    # ------------------------------------------------------------------
    # Toplevel stack
    # ------------------------------------------------------------------

    def begin(self, toplevel: Toplevel) -> None:
        """Push *toplevel*, lay it out and give it its initial focus."""
        toplevel.application = self
        toplevel.running = True
        self.toplevels.append(toplevel)
        self._layout(toplevel)
        toplevel.will_present()
        toplevel.set_needs_display()
        self.wake()

    def end(self, toplevel: Toplevel) -> None:
        """Pop *toplevel*, which must be the current one."""
        if self.current is not toplevel:
            raise TermkitError(f"{toplevel!r} is not the current toplevel")
        self.toplevels.pop()
        toplevel.running = False
        if self._grab is not None and self._grab.root is toplevel:
            self._grab = None
        toplevel.application = None
        if self.toplevels:
            self.refresh()

    def request_stop(self) -> None:
        """Stop the current toplevel."""
        top = self.current
        if top is not None:
            top.request_stop()

    def _pop_finished(self) -> None:
        while self.toplevels and not self.toplevels[-1].running:
            self.end(self.toplevels[-1])

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _layout(self, toplevel: Toplevel) -> None:
        if toplevel.layout_style is LayoutStyle.COMPUTED:
            toplevel.frame = compute_frame(
                toplevel.x, toplevel.y, toplevel.width, toplevel.height, self.screen_size
            )
        toplevel.layout_subviews()

    @property
    def needs_render(self) -> bool:
        return self._force_render or any(
            top.needs_layout or top.needs_display for top in self.toplevels
        )

    def render(self) -> int:
        """Lay out, draw, composite and flush one frame.

        Returns the number of cells sent to the driver.
        """
        for top in self.toplevels:
            self._layout(top)
            top.draw()
        background = self.colors.base.normal if self.colors.is_installed("base") else None
        self.compositor.compose(self.toplevels, self.screen_size, background)
        emitted = self.compositor.flush(self.driver)
        self.driver.update_cursor(self._cursor_position())
        self._force_render = False
        self.frames_rendered += 1
        return emitted

    def _cursor_position(self) -> Point | None:
        top = self.current
        if top is None:
            return None
        view = top.most_focused()
        if view is None:
            return None
        local = view.position_cursor()
        if local is None:
            return None
        point = view.view_to_screen(local)
        if not self.driver.clip.contains(point):
            return None
        return point

    def refresh(self) -> None:
        """Repaint the whole screen on the next frame."""
        self.driver.update_screen()
        self.compositor.invalidate()
        for top in self.toplevels:
            top.set_needs_display()
        self._force_render = True
        self.wake()

    def terminal_resized(self) -> None:
        """Re-lay out every toplevel for the driver's new size."""
        logger.debug("terminal resized to %dx%d", self.driver.cols, self.driver.rows)
        for top in self.toplevels:
            top.set_needs_layout()
            self._layout(top)
        self.refresh()

    def suspend(self) -> None:
        if self.driver.suspend():
            self.refresh()

    # ------------------------------------------------------------------
    # Event routing
    # ------------------------------------------------------------------

    def dispatch(self, event: Event) -> None:
        if isinstance(event, KeyEvent):
            self.process_key_event(event)
        elif isinstance(event, MouseEvent):
            self.process_mouse_event(event)
        elif isinstance(event, ResizeEvent):
            self.terminal_resized()

    def process_key_event(self, event: KeyEvent) -> bool:
        """Route a keystroke through the hot, normal and cold phases.

        Hot keys go to the focused view and then each of its ancestors;
        the normal phase asks the focused view alone; the cold phase asks
        every view that wants cold keys, outermost first.
        """
        top = self.current
        if top is None:
            return False
        target: View = top.most_focused() or top
        for view in (target, *target.ancestors()):
            if view.process_hot_key(event):
                return True
        if target.process_key(event):
            return True
        for view in top.walk():
            if view.wants_cold_keys and view.process_cold_key(event):
                return True
        return False

    def process_mouse_event(self, event: MouseEvent) -> bool:
        """Deliver a mouse event; returns whether a view handled it.

        Root handlers see every event first.  A grabbing view receives
        everything; otherwise the deepest view under the pointer gets it,
        bubbling to the superview while unhandled.  Pure motion reports
        skip views that did not ask for them.
        """
        for handler in list(self._root_mouse_handlers.values()):
            handler(event)
        top = self.current
        if top is None:
            return False
        screen_pos = event.abs_pos if event.abs_pos is not None else event.pos

        if self._grab is not None:
            view = self._grab
            return view.mouse_event(event.retarget(view.screen_to_view(screen_pos), view))

        hit = top.hit_test(screen_pos - top.frame.origin)
        if hit is None:
            return False
        current: View | None
        current, local = hit
        while current is not None:
            if not event.is_motion or current.wants_mouse_position_reports:
                if current.mouse_event(event.retarget(local, current)):
                    return True
            local = local + current.frame.origin
            current = current.superview
        return False

    def grab_mouse(self, view: View) -> None:
        """Send every mouse event to *view* until :meth:`ungrab_mouse`."""
        self._grab = view

    def ungrab_mouse(self) -> None:
        self._grab = None

    @property
    def mouse_grab_view(self) -> View | None:
        return self._grab

    def add_root_mouse_handler(self, handler: Callable[[MouseEvent], None]) -> MouseHandlerToken:
        token = MouseHandlerToken(self._next_token)
        self._root_mouse_handlers[token.token] = handler
        self._next_token += 1
        return token

    def remove_root_mouse_handler(self, token: MouseHandlerToken) -> None:
        self._root_mouse_handlers.pop(token.token, None)
