"""Declarative layout algebra: ``Pos`` and ``Dim`` expressions.

A view's ``x``/``y`` are ``Pos`` expressions and its ``width``/``height`` are
``Dim`` expressions.  Each expression resolves against the extent of the
containing view (its width for horizontal values, its height for vertical
ones).  Expressions that refer to another view (``Pos.right(of=...)``,
``Dim.width(of=...)``) read that view's *current* frame, so the layout pass
must resolve the referenced view first; :func:`order_views` produces that
ordering and raises :class:`~pi.termkit.errors.LayoutError` on cycles.

Examples
--------
>>> Pos.percent(50).resolve(81)
40
>>> (Pos.at(3) + 4).resolve(100)
7
>>> Dim.fill(2).resolve(10)
8
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Iterator, Protocol, Sequence, Union

from pi.termkit.errors import LayoutError, LayoutRangeError
from pi.termkit.geometry import Rect, Size

if TYPE_CHECKING:
    from pi.termkit.view import View


class _Framed(Protocol):
    frame: Rect


# ---------------------------------------------------------------------------
# Pos
# ---------------------------------------------------------------------------


class Pos:
    """Base class of every position expression.

    Use the factory helpers (:meth:`at`, :meth:`percent`, :meth:`center`,
    :meth:`anchor_end`, :meth:`left`, ...) rather than the subclasses.
    Integers are accepted wherever a ``Pos`` operand is expected.
    """

    def resolve(self, extent: int) -> int:
        raise NotImplementedError

    def references(self) -> Iterator[_Framed]:
        """Yield every view this expression reads a frame from."""
        return iter(())

    def __add__(self, other: PosLike) -> Pos:
        return PosCombine(self, to_pos(other), subtract=False)

    def __radd__(self, other: PosLike) -> Pos:
        return PosCombine(to_pos(other), self, subtract=False)

    def __sub__(self, other: PosLike) -> Pos:
        return PosCombine(self, to_pos(other), subtract=True)

    def __rsub__(self, other: PosLike) -> Pos:
        return PosCombine(to_pos(other), self, subtract=True)

    # -- factories ----------------------------------------------------------

    @staticmethod
    def at(n: int) -> Pos:
        return PosAbsolute(n)

    @staticmethod
    def percent(n: float) -> Pos:
        return PosPercent(n)

    @staticmethod
    def center() -> Pos:
        return PosCenter()

    @staticmethod
    def anchor_end(margin: int = 0) -> Pos:
        return PosAnchorEnd(margin)

    @staticmethod
    def left(of: _Framed) -> Pos:
        return ViewEdge(of, Edge.LEFT)

    @staticmethod
    def top(of: _Framed) -> Pos:
        return ViewEdge(of, Edge.TOP)

    @staticmethod
    def right(of: _Framed) -> Pos:
        return ViewEdge(of, Edge.RIGHT)

    @staticmethod
    def bottom(of: _Framed) -> Pos:
        return ViewEdge(of, Edge.BOTTOM)

    # ``x``/``y`` read the same edge as ``left``/``top``.
    x = left
    y = top


class PosAbsolute(Pos):
    def __init__(self, n: int) -> None:
        self.n = int(n)

    def resolve(self, extent: int) -> int:
        return self.n

    def __repr__(self) -> str:
        return f"Pos.at({self.n})"


class PosPercent(Pos):
    def __init__(self, n: float) -> None:
        if not 0 <= n <= 100:
            raise LayoutRangeError(f"Pos.percent expects 0..100, got {n}")
        self.n = n

    def resolve(self, extent: int) -> int:
        return int(extent * self.n // 100)

    def __repr__(self) -> str:
        return f"Pos.percent({self.n})"


class PosCenter(Pos):
    def resolve(self, extent: int) -> int:
        return extent // 2

    def __repr__(self) -> str:
        return "Pos.center()"


class PosAnchorEnd(Pos):
    """``extent - margin``; the result may be negative and is kept as is."""

    def __init__(self, margin: int = 0) -> None:
        self.margin = max(0, int(margin))

    def resolve(self, extent: int) -> int:
        return extent - self.margin

    def __repr__(self) -> str:
        return f"Pos.anchor_end({self.margin})"


class Edge(enum.Enum):
    LEFT = "left"
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"


class ViewEdge(Pos):
    """One edge of another view's frame, in the shared container's space."""

    def __init__(self, view: _Framed, edge: Edge) -> None:
        self.view = view
        self.edge = edge

    def resolve(self, extent: int) -> int:
        frame = self.view.frame
        if self.edge is Edge.LEFT:
            return frame.left
        if self.edge is Edge.TOP:
            return frame.top
        if self.edge is Edge.RIGHT:
            return frame.right
        return frame.bottom

    def references(self) -> Iterator[_Framed]:
        yield self.view

    def __repr__(self) -> str:
        return f"Pos.{self.edge.value}(of={_describe(self.view)})"


class PosCombine(Pos):
    def __init__(self, left: Pos, right: Pos, subtract: bool) -> None:
        self.left = left
        self.right = right
        self.subtract = subtract

    def resolve(self, extent: int) -> int:
        a = self.left.resolve(extent)
        b = self.right.resolve(extent)
        return a - b if self.subtract else a + b

    def references(self) -> Iterator[_Framed]:
        yield from self.left.references()
        yield from self.right.references()

    def __repr__(self) -> str:
        op = "-" if self.subtract else "+"
        return f"({self.left!r} {op} {self.right!r})"


PosLike = Union[Pos, int]


def to_pos(value: PosLike) -> Pos:
    if isinstance(value, Pos):
        return value
    if isinstance(value, int):
        return PosAbsolute(value)
    raise TypeError(f"expected Pos or int, got {type(value).__name__}")


# ---------------------------------------------------------------------------
# Dim
# ---------------------------------------------------------------------------


class Dim:
    """Base class of every dimension expression."""

    def resolve(self, extent: int) -> int:
        raise NotImplementedError

    def references(self) -> Iterator[_Framed]:
        return iter(())

    def __add__(self, other: DimLike) -> Dim:
        return DimCombine(self, to_dim(other), subtract=False)

    def __radd__(self, other: DimLike) -> Dim:
        return DimCombine(to_dim(other), self, subtract=False)

    def __sub__(self, other: DimLike) -> Dim:
        return DimCombine(self, to_dim(other), subtract=True)

    def __rsub__(self, other: DimLike) -> Dim:
        return DimCombine(to_dim(other), self, subtract=True)

    @staticmethod
    def absolute(n: int) -> Dim:
        return DimAbsolute(n)

    @staticmethod
    def sized(n: int) -> Dim:
        return DimSized(n)

    @staticmethod
    def percent(n: float) -> Dim:
        return DimPercent(n)

    @staticmethod
    def fill(margin: int = 0) -> Dim:
        return DimFill(margin)

    @staticmethod
    def width(of: _Framed) -> Dim:
        return ViewExtent(of, horizontal=True)

    @staticmethod
    def height(of: _Framed) -> Dim:
        return ViewExtent(of, horizontal=False)


class DimAbsolute(Dim):
    def __init__(self, n: int) -> None:
        self.n = int(n)

    def resolve(self, extent: int) -> int:
        return self.n

    def __repr__(self) -> str:
        return f"Dim.absolute({self.n})"


class DimSized(DimAbsolute):
    def __repr__(self) -> str:
        return f"Dim.sized({self.n})"


class DimPercent(Dim):
    def __init__(self, n: float) -> None:
        if not 0 <= n <= 100:
            raise LayoutRangeError(f"Dim.percent expects 0..100, got {n}")
        self.n = n

    def resolve(self, extent: int) -> int:
        return int(extent * self.n // 100)

    def __repr__(self) -> str:
        return f"Dim.percent({self.n})"


class DimFill(Dim):
    """Whatever is left of the extent after *margin*, never negative."""

    def __init__(self, margin: int = 0) -> None:
        self.margin = int(margin)

    def resolve(self, extent: int) -> int:
        return max(0, extent - self.margin)

    def __repr__(self) -> str:
        return f"Dim.fill({self.margin})"


class ViewExtent(Dim):
    def __init__(self, view: _Framed, horizontal: bool) -> None:
        self.view = view
        self.horizontal = horizontal

    def resolve(self, extent: int) -> int:
        frame = self.view.frame
        return frame.width if self.horizontal else frame.height

    def references(self) -> Iterator[_Framed]:
        yield self.view

    def __repr__(self) -> str:
        name = "width" if self.horizontal else "height"
        return f"Dim.{name}(of={_describe(self.view)})"


class DimCombine(Dim):
    def __init__(self, left: Dim, right: Dim, subtract: bool) -> None:
        self.left = left
        self.right = right
        self.subtract = subtract

    def resolve(self, extent: int) -> int:
        a = self.left.resolve(extent)
        b = self.right.resolve(extent)
        return a - b if self.subtract else a + b

    def references(self) -> Iterator[_Framed]:
        yield from self.left.references()
        yield from self.right.references()

    def __repr__(self) -> str:
        op = "-" if self.subtract else "+"
        return f"({self.left!r} {op} {self.right!r})"


DimLike = Union[Dim, int]


def to_dim(value: DimLike) -> Dim:
    if isinstance(value, Dim):
        return value
    if isinstance(value, int):
        return DimAbsolute(value)
    raise TypeError(f"expected Dim or int, got {type(value).__name__}")


# ---------------------------------------------------------------------------
# Layout pass helpers
# ---------------------------------------------------------------------------


def compute_frame(
    x: Pos | None,
    y: Pos | None,
    width: Dim | None,
    height: Dim | None,
    host: Size,
) -> Rect:
    """Resolve the four expressions of a view against its container size.

    A centered axis resolves its extent first and centers within the space
    that remains; otherwise the position resolves first and the extent is
    resolved against what is left after it.  Missing positions default to 0
    and missing extents to the whole container.
    """
    left, w = _resolve_axis(x, width, host.width)
    top, h = _resolve_axis(y, height, host.height)
    return Rect(left, top, max(0, w), max(0, h))


def _resolve_axis(pos: Pos | None, dim: Dim | None, extent: int) -> tuple[int, int]:
    if isinstance(pos, PosCenter):
        size = dim.resolve(extent) if dim is not None else extent
        return pos.resolve(extent - size), size
    start = pos.resolve(extent) if pos is not None else 0
    size = dim.resolve(extent - start) if dim is not None else extent
    return start, size


def view_references(view: View) -> Iterator[_Framed]:
    for expr in (view.x, view.y, view.width, view.height):
        if expr is not None:
            yield from expr.references()


def order_views(views: Sequence[View]) -> list[View]:
    """Topologically order sibling *views* by their frame references.

    A view is placed after every sibling its ``Pos``/``Dim`` expressions
    read from; references to views outside *views* are ignored.  Ties keep
    subview order.  Raises :class:`LayoutError` naming the cycle if the
    references are cyclic.
    """
    members = {id(v): v for v in views}
    depends_on: dict[int, set[int]] = {id(v): set() for v in views}
    for view in views:
        for ref in view_references(view):
            if id(ref) in members:
                depends_on[id(view)].add(id(ref))

    ordered: list[View] = []
    placed: set[int] = set()
    pending = list(views)
    while pending:
        ready = [v for v in pending if depends_on[id(v)] <= placed]
        if not ready:
            cycle = _find_cycle(pending, depends_on, members)
            names = " -> ".join(_describe(v) for v in cycle)
            raise LayoutError(
                f"recursive cycle in the relative Pos/Dim expressions: {names}",
                cycle=tuple(cycle),
            )
        for view in ready:
            ordered.append(view)
            placed.add(id(view))
        pending = [v for v in pending if id(v) not in placed]
    return ordered


def _find_cycle(
    pending: list[View],
    depends_on: dict[int, set[int]],
    members: dict[int, View],
) -> list[View]:
    # Every pending view has an unplaced dependency, so walking any chain
    # of unplaced dependencies must revisit a view.
    pending_ids = {id(v) for v in pending}
    path: list[int] = []
    seen: dict[int, int] = {}
    current = id(pending[0])
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        current = min(
            (d for d in depends_on[current] if d in pending_ids),
            key=lambda d: [id(v) for v in pending].index(d),
        )
    loop = path[seen[current]:] + [current]
    return [members[i] for i in loop]


def _describe(view: object) -> str:
    name = getattr(view, "id", None)
    return name or f"{type(view).__name__}@{id(view):x}"
