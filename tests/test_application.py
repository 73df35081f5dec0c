"""Tests for the application: event routing, rendering and the run loop.

Everything runs on the headless driver, so no real terminal is touched.
"""

from __future__ import annotations

import asyncio
import io

import pytest

from pi.termkit.application import Application
from pi.termkit.drivers import HeadlessDriver
from pi.termkit.errors import DriverError, TermkitError
from pi.termkit.events import Key, KeyEvent, MouseEvent, MouseFlags
from pi.termkit.geometry import Point, Rect
from pi.termkit.layout import Dim
from pi.termkit.painter import Painter
from pi.termkit.toplevel import Toplevel
from pi.termkit.view import View


# ---------------------------------------------------------------------------
# Test views
# ---------------------------------------------------------------------------


class KeyView(View):
    """Logs every key phase it is asked about and handles chosen letters."""

    def __init__(
        self,
        frame: Rect,
        id: str,
        log: list[tuple[str, str]],
        *,
        hot: str = "",
        normal: str = "",
        cold: str = "",
    ) -> None:
        super().__init__(frame, id=id)
        self.log = log
        self.hot = hot
        self.normal = normal
        self.cold = cold

    def process_hot_key(self, event: KeyEvent) -> bool:
        self.log.append((self.id, "hot"))
        return bool(event.char) and event.char in self.hot

    def process_key(self, event: KeyEvent) -> bool:
        self.log.append((self.id, "key"))
        return bool(event.char) and event.char in self.normal

    def process_cold_key(self, event: KeyEvent) -> bool:
        self.log.append((self.id, "cold"))
        return bool(event.char) and event.char in self.cold


class MouseView(View):
    """Records mouse events; handles them when ``handles`` is set."""

    def __init__(self, frame: Rect, handles: bool = False) -> None:
        super().__init__(frame)
        self.handles = handles
        self.events: list[MouseEvent] = []

    def mouse_event(self, event: MouseEvent) -> bool:
        self.events.append(event)
        return self.handles


class Label(View):
    def __init__(self, frame: Rect, text: str) -> None:
        super().__init__(frame)
        self.text = text

    def draw_content(self, region: Rect, painter: Painter) -> None:
        painter.color_normal()
        painter.clear_region(region)
        painter.goto(0, 0)
        painter.add_str(self.text)


class Entry(View):
    """Focusable view that keeps the cursor after its text and stops on ``q``."""

    def __init__(self, frame: Rect, text: str = "") -> None:
        super().__init__(frame)
        self.can_focus = True
        self.text = text

    def draw_content(self, region: Rect, painter: Painter) -> None:
        painter.clear_region(region)
        painter.goto(0, 0)
        painter.add_str(self.text)

    def position_cursor(self) -> Point | None:
        return Point(len(self.text), 0)

    def process_key(self, event: KeyEvent) -> bool:
        if event.key is Key.LETTER and event.char == "q":
            top = self.toplevel
            assert top is not None
            top.request_stop()
            return True
        if event.key is Key.LETTER:
            self.text += event.char
            self.set_needs_display()
            return True
        return False


class Exploding(View):
    def __init__(self) -> None:
        super().__init__(Rect(0, 0, 1, 1))
        self.can_focus = True

    def process_key(self, event: KeyEvent) -> bool:
        raise RuntimeError("boom")


def headless_app(cols: int = 20, rows: int = 5, timeout_ms: int | None = None) -> Application:
    return Application(HeadlessDriver(cols, rows, timeout_ms=timeout_ms))


def key(char: str) -> KeyEvent:
    return KeyEvent.letter(char)


# ---------------------------------------------------------------------------
# Toplevel stack
# ---------------------------------------------------------------------------


class TestToplevelStack:
    def test_begin_lays_out_and_focuses(self) -> None:
        app = headless_app(20, 5)
        top = Toplevel()
        entry = Entry(Rect(0, 0, 5, 1))
        top.add_subview(entry)
        app.begin(top)
        assert app.current is top
        assert top.running
        assert top.application is app
        assert top.frame == Rect(0, 0, 20, 5)
        assert top.most_focused() is entry

    def test_end_must_be_current(self) -> None:
        app = headless_app()
        first, second = Toplevel(), Toplevel()
        app.begin(first)
        app.begin(second)
        with pytest.raises(TermkitError):
            app.end(first)
        app.end(second)
        assert app.current is first
        assert second.application is None
        assert not second.running

    def test_keys_go_to_current_toplevel(self) -> None:
        app = headless_app()
        log: list[tuple[str, str]] = []
        first, second = Toplevel(), Toplevel()
        below = KeyView(Rect(0, 0, 1, 1), "below", log, normal="x")
        below.can_focus = True
        first.add_subview(below)
        app.begin(first)
        app.begin(second)
        assert not app.process_key_event(key("x"))
        assert log == []


# ---------------------------------------------------------------------------
# Key routing
# ---------------------------------------------------------------------------


class TestKeyRouting:
    def build(self) -> tuple[Application, list[tuple[str, str]]]:
        app = headless_app()
        log: list[tuple[str, str]] = []
        top = Toplevel()
        parent = KeyView(Rect(0, 0, 10, 3), "parent", log, hot="h")
        child = KeyView(Rect(0, 0, 5, 1), "child", log, normal="n")
        child.can_focus = True
        other = KeyView(Rect(0, 3, 5, 1), "other", log, cold="c")
        other.wants_cold_keys = True
        parent.add_subview(child)
        top.add_subviews(parent, other)
        app.begin(top)
        return app, log

    def test_hot_keys_walk_up_from_focus(self) -> None:
        app, log = self.build()
        assert app.process_key_event(key("h"))
        assert log == [("child", "hot"), ("parent", "hot")]

    def test_normal_phase_asks_focused_view(self) -> None:
        app, log = self.build()
        assert app.process_key_event(key("n"))
        assert log == [("child", "hot"), ("parent", "hot"), ("child", "key")]

    def test_cold_phase_reaches_views_that_want_it(self) -> None:
        app, log = self.build()
        assert app.process_key_event(key("c"))
        assert log[-1] == ("other", "cold")
        assert ("parent", "cold") not in log

    def test_unhandled(self) -> None:
        app, _ = self.build()
        assert not app.process_key_event(key("z"))

    def test_tab_moves_focus(self) -> None:
        app = headless_app()
        top = Toplevel()
        a, b = Entry(Rect(0, 0, 5, 1)), Entry(Rect(0, 1, 5, 1))
        top.add_subviews(a, b)
        app.begin(top)
        assert top.most_focused() is a
        assert app.process_key_event(KeyEvent(Key.TAB, is_control=True))
        assert top.most_focused() is b
        assert app.process_key_event(KeyEvent(Key.BACKTAB))
        assert top.most_focused() is a

    def test_focused_view_sees_keys_before_navigation(self) -> None:
        app = headless_app()
        log: list[tuple[str, str]] = []
        top = Toplevel()
        grabby = KeyView(Rect(0, 0, 5, 1), "grabby", log)
        grabby.can_focus = True
        grabby.process_key = lambda event: True  # type: ignore[method-assign]
        top.add_subviews(grabby, Entry(Rect(0, 1, 5, 1)))
        app.begin(top)
        app.process_key_event(KeyEvent(Key.TAB, is_control=True))
        assert top.most_focused() is grabby

    def test_ctrl_l_forces_full_repaint(self) -> None:
        app = headless_app(6, 2)
        app.begin(Toplevel())
        app.render()
        assert not app.needs_render
        assert app.process_key_event(KeyEvent(Key.CONTROL_L, is_control=True))
        assert app.needs_render
        assert app.render() == 12

    def test_ctrl_z_without_job_control(self) -> None:
        app = headless_app()
        app.begin(Toplevel())
        assert app.process_key_event(KeyEvent(Key.CONTROL_Z, is_control=True))


# ---------------------------------------------------------------------------
# Mouse routing
# ---------------------------------------------------------------------------


class TestMouseRouting:
    def build(self) -> tuple[Application, MouseView, MouseView]:
        app = headless_app()
        top = Toplevel()
        parent = MouseView(Rect(2, 1, 10, 4))
        child = MouseView(Rect(1, 1, 3, 1))
        parent.add_subview(child)
        top.add_subview(parent)
        app.begin(top)
        return app, parent, child

    def test_deepest_view_gets_local_position(self) -> None:
        app, parent, child = self.build()
        child.handles = True
        assert app.process_mouse_event(MouseEvent(Point(4, 2), MouseFlags.BUTTON1_CLICKED))
        (event,) = child.events
        assert event.pos == Point(1, 0)
        assert event.abs_pos == Point(4, 2)
        assert event.view is child
        assert parent.events == []

    def test_unhandled_event_bubbles_up(self) -> None:
        app, parent, child = self.build()
        parent.handles = True
        assert app.process_mouse_event(MouseEvent(Point(4, 2), MouseFlags.BUTTON1_PRESSED))
        assert len(child.events) == 1
        (event,) = parent.events
        assert event.pos == Point(2, 1)
        assert event.view is parent

    def test_motion_only_for_views_that_ask(self) -> None:
        app, parent, child = self.build()
        parent.wants_mouse_position_reports = True
        parent.handles = True
        assert app.process_mouse_event(MouseEvent(Point(4, 2), MouseFlags.MOUSE_POSITION))
        assert child.events == []
        assert len(parent.events) == 1

    def test_outside_every_view(self) -> None:
        app, parent, child = self.build()
        assert not app.process_mouse_event(MouseEvent(Point(19, 4), MouseFlags.BUTTON1_CLICKED))
        assert parent.events == [] and child.events == []

    def test_grab_receives_everything(self) -> None:
        app, parent, child = self.build()
        app.grab_mouse(child)
        assert app.mouse_grab_view is child
        app.process_mouse_event(MouseEvent(Point(0, 0), MouseFlags.BUTTON1_RELEASED))
        (event,) = child.events
        assert event.pos == Point(-3, -2)
        app.ungrab_mouse()
        app.process_mouse_event(MouseEvent(Point(0, 0), MouseFlags.BUTTON1_RELEASED))
        assert len(child.events) == 1

    def test_grab_released_when_toplevel_ends(self) -> None:
        app, parent, child = self.build()
        app.grab_mouse(child)
        app.end(app.current)  # type: ignore[arg-type]
        assert app.mouse_grab_view is None

    def test_grab_released_when_view_removed(self) -> None:
        app, parent, child = self.build()
        top = app.current
        assert top is not None
        other = MouseView(Rect(0, 0, 2, 4), handles=True)
        top.add_subview(other)
        app.grab_mouse(child)
        top.remove_subview(parent)
        assert app.mouse_grab_view is None
        assert app.process_mouse_event(MouseEvent(Point(1, 2), MouseFlags.BUTTON1_CLICKED))
        assert len(other.events) == 1
        assert child.events == []

    def test_grab_kept_when_unrelated_view_removed(self) -> None:
        app, parent, child = self.build()
        top = app.current
        assert top is not None
        bystander = View(Rect(15, 0, 2, 2))
        top.add_subview(bystander)
        app.grab_mouse(child)
        top.remove_subview(bystander)
        assert app.mouse_grab_view is child

    def test_root_handlers_see_events_first(self) -> None:
        app, parent, child = self.build()
        seen: list[MouseEvent] = []
        token = app.add_root_mouse_handler(seen.append)
        event = MouseEvent(Point(4, 2), MouseFlags.BUTTON1_CLICKED)
        app.process_mouse_event(event)
        assert seen == [event]
        app.remove_root_mouse_handler(token)
        app.process_mouse_event(event)
        assert len(seen) == 1


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRender:
    def test_frame_reaches_driver(self) -> None:
        app = headless_app(12, 3)
        top = Toplevel()
        top.add_subview(Label(Rect(1, 1, 8, 1), "hello"))
        app.begin(top)
        assert app.render() == 36
        assert app.driver.snapshot() == "\n hello\n"  # type: ignore[attr-defined]
        assert app.render() == 0
        assert app.frames_rendered == 2

    def test_cursor_follows_focused_view(self) -> None:
        app = headless_app(12, 3)
        top = Toplevel()
        top.add_subview(Entry(Rect(3, 1, 5, 1), "ab"))
        app.begin(top)
        app.render()
        assert app.driver.cursor == Point(5, 1)  # type: ignore[attr-defined]

    def test_cursor_hidden_without_focus(self) -> None:
        app = headless_app(12, 3)
        app.begin(Toplevel())
        app.render()
        assert app.driver.cursor is None  # type: ignore[attr-defined]

    def test_schemes_color_the_screen(self) -> None:
        app = headless_app(4, 1)
        app.driver.select_colors(app.colors)
        top = Toplevel()
        top.add_subview(Label(Rect(0, 0, 2, 1), "ab"))
        app.begin(top)
        app.render()
        _, attribute = app.driver.cell(0, 0)  # type: ignore[attr-defined]
        assert attribute == app.colors.base.normal


# ---------------------------------------------------------------------------
# Run loop
# ---------------------------------------------------------------------------


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_layout_end_to_end(self) -> None:
        driver = HeadlessDriver(20, 20, timeout_ms=20)
        top = Toplevel()
        child = View(width=Dim.fill(0), height=Dim.sized(3))
        top.add_subview(child)
        app = Application(driver)
        await app.run_async(top)
        assert top.frame == Rect(0, 0, 20, 20)
        assert child.frame == Rect(0, 0, 20, 3)
        assert driver.timed_out
        assert not driver.running
        assert app.frames_rendered >= 1

    @pytest.mark.asyncio
    async def test_output_written_on_refresh(self) -> None:
        out = io.StringIO()
        driver = HeadlessDriver(10, 2, timeout_ms=20, output=out)
        top = Toplevel()
        top.add_subview(Label(Rect(0, 0, 10, 1), "screen"))
        await Application(driver).run_async(top)
        assert out.getvalue().startswith("screen\n")

    @pytest.mark.asyncio
    async def test_request_stop_ends_run(self) -> None:
        driver = HeadlessDriver(10, 2, timeout_ms=5000)
        top = Toplevel()
        entry = Entry(Rect(0, 0, 10, 1))
        top.add_subview(entry)
        app = Application(driver)
        asyncio.get_running_loop().call_later(0.01, driver.feed_input, "hiq")
        await app.run_async(top)
        assert entry.text == "hi"
        assert driver.line(0) == "hi"
        assert not driver.timed_out
        assert not driver.running
        assert app.toplevels == []
        assert not top.running

    @pytest.mark.asyncio
    async def test_handler_exception_propagates_and_restores(self) -> None:
        driver = HeadlessDriver(10, 2, timeout_ms=5000)
        ended: list[bool] = []
        driver.add_end_listener(lambda: ended.append(True))
        top = Toplevel()
        top.add_subview(Exploding())
        asyncio.get_running_loop().call_later(0.01, driver.feed_input, "x")
        with pytest.raises(RuntimeError, match="boom"):
            await Application(driver).run_async(top)
        assert ended == [True]
        assert not driver.running

    @pytest.mark.asyncio
    async def test_driver_failure_is_raised(self) -> None:
        driver = HeadlessDriver(10, 2, timeout_ms=5000)
        asyncio.get_running_loop().call_later(0.01, driver._emit, DriverError("terminal input closed"))
        with pytest.raises(DriverError):
            await Application(driver).run_async(Toplevel())
        assert not driver.running

    @pytest.mark.asyncio
    async def test_resize_relayouts(self) -> None:
        driver = HeadlessDriver(10, 4, timeout_ms=50)
        top = Toplevel()
        child = View(width=Dim.fill(), height=Dim.sized(1))
        top.add_subview(child)
        asyncio.get_running_loop().call_later(0.01, driver.resize, 30, 8)
        await Application(driver).run_async(top)
        assert top.frame == Rect(0, 0, 30, 8)
        assert child.frame == Rect(0, 0, 30, 1)

    def test_run_wraps_asyncio(self) -> None:
        driver = HeadlessDriver(5, 1, timeout_ms=10)
        Application(driver).run(Toplevel())
        assert driver.timed_out
