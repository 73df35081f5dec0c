"""Plain geometry value types: ``Point``, ``Size`` and ``Rect``.

All three are immutable.  ``Rect`` uses half-open edges: ``right`` and
``bottom`` are the first column and row *outside* the rectangle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Point:
    x: int = 0
    y: int = 0

    ZERO: ClassVar[Point]

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def offset(self, dx: int, dy: int) -> Point:
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size:
    width: int = 0
    height: int = 0

    EMPTY: ClassVar[Size]

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Size extents must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle.

    Constructed from ``x, y, width, height``; ``origin`` and ``size`` are
    derived.  A rectangle with zero area is *empty*: it contains no point
    and intersects nothing.
    """

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    ZERO: ClassVar[Rect]

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Rect extents must be non-negative, got {self.width}x{self.height}"
            )

    @classmethod
    def from_origin(cls, origin: Point, size: Size) -> Rect:
        return cls(origin.x, origin.y, size.width, size.height)

    @classmethod
    def from_ltrb(cls, left: int, top: int, right: int, bottom: int) -> Rect:
        """Build a rectangle from its edges; inverted edges give an empty rect."""
        return cls(left, top, max(0, right - left), max(0, bottom - top))

    # -- derived edges ------------------------------------------------------

    @property
    def origin(self) -> Point:
        return Point(self.x, self.y)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def left(self) -> int:
        return self.x

    @property
    def top(self) -> int:
        return self.y

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    min_x = left
    min_y = top
    max_x = right
    max_y = bottom

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    # -- queries ------------------------------------------------------------

    def contains(self, point: Point) -> bool:
        if self.is_empty:
            return False
        return self.left <= point.x < self.right and self.top <= point.y < self.bottom

    def intersects(self, other: Rect) -> bool:
        if self.is_empty or other.is_empty:
            return False
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )

    def intersection(self, other: Rect) -> Rect:
        """Return the overlapping area, or an empty rect when there is none."""
        if not self.intersects(other):
            return Rect(max(self.left, other.left), max(self.top, other.top), 0, 0)
        return Rect.from_ltrb(
            max(self.left, other.left),
            max(self.top, other.top),
            min(self.right, other.right),
            min(self.bottom, other.bottom),
        )

    def union(self, other: Rect) -> Rect:
        """Smallest rectangle covering both; empty operands are ignored."""
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return Rect.from_ltrb(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def offset(self, dx: int, dy: int) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def inset(self, dx: int, dy: int) -> Rect:
        """Shrink by *dx* on the left and right and *dy* on top and bottom."""
        return Rect(
            self.x + dx,
            self.y + dy,
            max(0, self.width - 2 * dx),
            max(0, self.height - 2 * dy),
        )


Point.ZERO = Point()
Size.EMPTY = Size()
Rect.ZERO = Rect()
