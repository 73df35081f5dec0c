"""The view hierarchy.

A :class:`View` is a rectangle inside its superview.  It computes its frame
from ``Pos``/``Dim`` expressions during the layout pass, paints itself into
its own :class:`~pi.termkit.layer.Layer`, takes part in the focus chain and
answers the key and mouse handlers of the responder chain.

Parent links are weak; the tree is owned from the top down.
"""

from __future__ import annotations

import enum
import logging
import weakref
from typing import TYPE_CHECKING, Iterator

from pi.termkit.attributes import ColorScheme
from pi.termkit.errors import LayoutError, ReentrantDrawError
from pi.termkit.events import KeyEvent, MouseEvent
from pi.termkit.geometry import Point, Rect
from pi.termkit.layer import Layer
from pi.termkit.layout import Dim, DimLike, Pos, PosLike, compute_frame, order_views, to_dim, to_pos
from pi.termkit.painter import Painter

if TYPE_CHECKING:
    from pi.termkit.application import Application
    from pi.termkit.toplevel import Toplevel

logger = logging.getLogger(__name__)


class LayoutStyle(enum.Enum):
    """``FIXED`` views keep the frame they were given; ``COMPUTED`` views
    recompute it from ``x``, ``y``, ``width`` and ``height`` on every
    layout pass."""

    FIXED = "fixed"
    COMPUTED = "computed"


class View:
    """Base class of everything on screen.

    Parameters
    ----------
    frame:
        A fixed frame in superview coordinates.  Passing one selects
        :attr:`LayoutStyle.FIXED`; otherwise the frame is computed.
    x, y, width, height:
        Layout expressions; plain ``int`` values are absolute.
    id:
        A name used in diagnostics such as layout cycle errors.
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
        self.id = id
        self.subviews: list[View] = []
        self.focused: View | None = None
        self.can_focus = False
        self.wants_cold_keys = False
        self.wants_mouse_position_reports = False

        self._superview: weakref.ref[View] | None = None
        self._frame = frame if frame is not None else Rect.ZERO
        self._layout_style = LayoutStyle.FIXED if frame is not None else LayoutStyle.COMPUTED
        self._x: Pos | None = None if x is None else to_pos(x)
        self._y: Pos | None = None if y is None else to_pos(y)
        self._width: Dim | None = None if width is None else to_dim(width)
        self._height: Dim | None = None if height is None else to_dim(height)
        self._layout_needed = True
        self._needs_display = self.bounds
        self._child_needs_display = False
        self._has_focus = False
        self._color_scheme: ColorScheme | None = None
        self._layer: Layer | None = None
        self._in_draw = False

    def __repr__(self) -> str:
        name = f" {self.id!r}" if self.id else ""
        return f"<{type(self).__name__}{name} frame={self._frame}>"

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    @property
    def superview(self) -> View | None:
        return self._superview() if self._superview is not None else None

    def add_subview(self, view: View) -> None:
        """Append *view* as the front-most child, detaching it from any
        previous superview."""
        previous = view.superview
        if previous is not None:
            previous.remove_subview(view)
        self.subviews.append(view)
        view._superview = weakref.ref(self)
        self.set_needs_layout()
        view.set_needs_display()

    def add_subviews(self, *views: View) -> None:
        for view in views:
            self.add_subview(view)

    def remove_subview(self, view: View) -> None:
        """Detach *view*; a focus path or mouse grab inside it is released."""
        if view not in self.subviews:
            return
        if view.has_focus:
            self.root._clear_focus_path()
        app = self.application
        if app is not None:
            grab = app.mouse_grab_view
            if grab is not None and (grab is view or grab.is_descendant_of(view)):
                app.ungrab_mouse()
        touched = view.frame
        self.subviews.remove(view)
        view._superview = None
        self.set_needs_layout()
        self.set_needs_display(touched)

    def remove_all_subviews(self) -> None:
        while self.subviews:
            self.remove_subview(self.subviews[0])

    @property
    def root(self) -> View:
        view = self
        while True:
            parent = view.superview
            if parent is None:
                return view
            view = parent

    def ancestors(self) -> Iterator[View]:
        """Superviews from the nearest outwards."""
        parent = self.superview
        while parent is not None:
            yield parent
            parent = parent.superview

    def is_descendant_of(self, view: View) -> bool:
        return any(a is view for a in self.ancestors())

    def walk(self) -> Iterator[View]:
        """This view and every descendant, pre-order in subview order."""
        yield self
        for child in self.subviews:
            yield from child.walk()

    @property
    def toplevel(self) -> Toplevel | None:
        from pi.termkit.toplevel import Toplevel

        root = self.root
        return root if isinstance(root, Toplevel) else None

    @property
    def application(self) -> Application | None:
        top = self.toplevel
        return top.application if top is not None else None

    # ------------------------------------------------------------------
    # Geometry and layout
    # ------------------------------------------------------------------

    @property
    def layout_style(self) -> LayoutStyle:
        return self._layout_style

    @layout_style.setter
    def layout_style(self, style: LayoutStyle) -> None:
        if style is not self._layout_style:
            self._layout_style = style
            self.set_needs_layout()

    @property
    def x(self) -> Pos | None:
        return self._x

    @x.setter
    def x(self, value: PosLike | None) -> None:
        self._x = None if value is None else to_pos(value)
        self._expression_changed()

    @property
    def y(self) -> Pos | None:
        return self._y

    @y.setter
    def y(self, value: PosLike | None) -> None:
        self._y = None if value is None else to_pos(value)
        self._expression_changed()

    @property
    def width(self) -> Dim | None:
        return self._width

    @width.setter
    def width(self, value: DimLike | None) -> None:
        self._width = None if value is None else to_dim(value)
        self._expression_changed()

    @property
    def height(self) -> Dim | None:
        return self._height

    @height.setter
    def height(self, value: DimLike | None) -> None:
        self._height = None if value is None else to_dim(value)
        self._expression_changed()

    def _expression_changed(self) -> None:
        self.set_needs_layout()

    def fill(self, padding: int = 0) -> None:
        """Make the view cover its superview, *padding* cells in."""
        self.x = Pos.at(padding)
        self.y = Pos.at(padding)
        self.width = Dim.fill(padding)
        self.height = Dim.fill(padding)

    @property
    def frame(self) -> Rect:
        """The view's rectangle in superview coordinates."""
        return self._frame

    @frame.setter
    def frame(self, value: Rect) -> None:
        if value != self._frame:
            self._set_frame(value)
            self.set_needs_layout()

    def _set_frame(self, value: Rect) -> None:
        old = self._frame
        if value == old:
            return
        parent = self.superview
        if parent is not None:
            parent.set_needs_display(old.union(value))
        self._frame = value
        self._layout_needed = True
        self.set_needs_display()

    @property
    def bounds(self) -> Rect:
        """The view's rectangle in its own coordinates."""
        return Rect(0, 0, self._frame.width, self._frame.height)

    @property
    def is_drawable(self) -> bool:
        return not self._frame.is_empty

    @property
    def needs_layout(self) -> bool:
        return self._layout_needed

    def set_needs_layout(self) -> None:
        self._layout_needed = True
        for ancestor in self.ancestors():
            if ancestor._layout_needed:
                break
            ancestor._layout_needed = True

    def layout_subviews(self) -> None:
        """Resolve the frames of the subviews, then lay each one out.

        Siblings are resolved so that any view referenced by another
        sibling's expressions is placed first.
        """
        if not self._layout_needed:
            return
        try:
            ordered = order_views(self.subviews)
        except LayoutError as exc:
            logger.error("layout of %r failed: %s", self, exc)
            raise
        host = self._frame.size
        for view in ordered:
            if view._layout_style is LayoutStyle.COMPUTED:
                view._set_frame(compute_frame(view._x, view._y, view._width, view._height, host))
            view.layout_subviews()
        self._layout_needed = False

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------

    def screen_origin(self) -> Point:
        origin = self._frame.origin
        for ancestor in self.ancestors():
            origin = origin + ancestor._frame.origin
        return origin

    def view_to_screen(self, point: Point) -> Point:
        return point + self.screen_origin()

    def screen_to_view(self, point: Point) -> Point:
        return point - self.screen_origin()

    def rect_to_screen(self, rect: Rect) -> Rect:
        origin = self.screen_origin()
        return rect.offset(origin.x, origin.y)

    def visible_bounds(self) -> Rect:
        """The part of the view not clipped away by an ancestor, in view
        coordinates."""
        visible = self.rect_to_screen(self.bounds)
        for ancestor in self.ancestors():
            visible = visible.intersection(ancestor.rect_to_screen(ancestor.bounds))
        origin = self.screen_origin()
        return visible.offset(-origin.x, -origin.y)

    def hit_test(self, point: Point) -> tuple[View, Point] | None:
        """Find the deepest drawable view under *point* (view coordinates).

        Later subviews are in front of earlier ones.  Returns the view and
        the point translated into its coordinates.
        """
        if not self.is_drawable or not self.bounds.contains(point):
            return None
        for child in reversed(self.subviews):
            if child.is_drawable and child.frame.contains(point):
                hit = child.hit_test(point - child.frame.origin)
                if hit is not None:
                    return hit
        return self, point

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    @property
    def color_scheme(self) -> ColorScheme | None:
        """The view's scheme, inherited from the superview when unset."""
        if self._color_scheme is not None:
            return self._color_scheme
        parent = self.superview
        return parent.color_scheme if parent is not None else None

    @color_scheme.setter
    def color_scheme(self, scheme: ColorScheme | None) -> None:
        self._color_scheme = scheme
        self.set_needs_display()

    @property
    def layer(self) -> Layer:
        size = self._frame.size
        if self._layer is None or self._layer.size != size:
            self._layer = Layer(size)
        return self._layer

    @property
    def needs_display(self) -> bool:
        return not self._needs_display.is_empty or self._child_needs_display

    @property
    def display_region(self) -> Rect:
        return self._needs_display

    def set_needs_display(self, region: Rect | None = None) -> None:
        """Flag *region* (view coordinates, default the whole view) for
        repainting.

        The part of the region covered by each subview is flagged on that
        subview as well.
        """
        if region is None:
            region = self.bounds
        if region.is_empty:
            return
        self._needs_display = self._needs_display.union(region)
        for ancestor in self.ancestors():
            ancestor._child_needs_display = True
        for child in self.subviews:
            frame = child.frame
            if frame.intersects(region):
                child.set_needs_display(frame.intersection(region).offset(-frame.x, -frame.y))

    def clear_needs_display(self) -> None:
        self._needs_display = Rect.ZERO
        self._child_needs_display = False

    def draw(self) -> None:
        """Run the draw pass for this view and its flagged descendants.

        :meth:`draw_content` is called at most once per view per pass and
        never for a view with an empty frame.
        """
        if self._in_draw:
            raise ReentrantDrawError(f"{self!r} is already drawing")
        self._in_draw = True
        try:
            if not self.is_drawable:
                self.clear_needs_display()
                return
            region = self._needs_display.intersection(self.bounds)
            self._needs_display = Rect.ZERO
            if not region.is_empty:
                self.draw_content(region, self.painter())
            if self._child_needs_display:
                self._child_needs_display = False
                for child in self.subviews:
                    if child.needs_display:
                        child.draw()
        finally:
            self._in_draw = False

    def painter(self) -> Painter:
        scheme = self.color_scheme
        return Painter(
            self,
            self.layer,
            self.visible_bounds(),
            scheme.normal if scheme is not None else None,
        )

    def draw_content(self, region: Rect, painter: Painter) -> None:
        """Paint *region* of the view.  The default clears it."""
        painter.clear_region(region)

    def position_cursor(self) -> Point | None:
        """Where the hardware cursor goes when this view has focus, in view
        coordinates; ``None`` hides it."""
        return None

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------

    @property
    def has_focus(self) -> bool:
        return self._has_focus

    def _set_has_focus(self, value: bool) -> None:
        if self._has_focus != value:
            self._has_focus = value
            self.set_needs_display()

    def _clear_focus_path(self) -> None:
        view: View | None = self
        while view is not None:
            following = view.focused
            view.focused = None
            view._set_has_focus(False)
            view = following

    def set_focus(self, view: View | None) -> bool:
        """Give focus to *view*, a focusable descendant of this view.

        Every view between the root and *view* ends up on the focus path.
        Returns ``False`` when *view* cannot take focus here.
        """
        if view is None or not view.can_focus or not view.is_descendant_of(self):
            return False
        path = [view, *view.ancestors()]
        path.reverse()
        on_path = {id(v) for v in path}

        current = path[0].focused
        while current is not None:
            following = current.focused
            if id(current) not in on_path:
                current.focused = None
                current._set_has_focus(False)
            current = following

        for parent, child in zip(path, path[1:]):
            parent.focused = child
        view.focused = None
        for member in path:
            member._set_has_focus(True)
        return True

    def most_focused(self) -> View | None:
        """The deepest view on the focus path below this one."""
        view = self.focused
        if view is None:
            return None
        while view.focused is not None:
            view = view.focused
        return view

    def focus_chain(self) -> list[View]:
        """Focusable descendants in pre-order.

        Views with an empty frame, and everything inside them, are skipped.
        """
        chain: list[View] = []
        for child in self.subviews:
            if child.is_drawable:
                if child.can_focus:
                    chain.append(child)
                chain.extend(child.focus_chain())
        return chain

    def focus_first(self) -> bool:
        chain = self.focus_chain()
        return bool(chain) and self.set_focus(chain[0])

    def focus_last(self) -> bool:
        chain = self.focus_chain()
        return bool(chain) and self.set_focus(chain[-1])

    def focus_next(self) -> bool:
        """Move focus to the next focusable descendant, wrapping around."""
        return self._focus_step(1)

    def focus_prev(self) -> bool:
        return self._focus_step(-1)

    def _focus_step(self, step: int) -> bool:
        chain = self.focus_chain()
        if not chain:
            return False
        current = self.most_focused()
        index = next((i for i, v in enumerate(chain) if v is current), None)
        if index is None:
            target = chain[0] if step > 0 else chain[-1]
        else:
            target = chain[(index + step) % len(chain)]
        return self.set_focus(target)

    # ------------------------------------------------------------------
    # Responder chain
    # ------------------------------------------------------------------

    def process_hot_key(self, event: KeyEvent) -> bool:
        return False

    def process_key(self, event: KeyEvent) -> bool:
        return False

    def process_cold_key(self, event: KeyEvent) -> bool:
        return False

    def mouse_event(self, event: MouseEvent) -> bool:
        return False
