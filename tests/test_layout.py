"""Tests for the Pos/Dim layout algebra and the layout pass."""

from __future__ import annotations

import pytest

from pi.termkit.errors import LayoutError, LayoutRangeError
from pi.termkit.geometry import Rect, Size
from pi.termkit.layout import Dim, Pos, compute_frame, order_views
from pi.termkit.view import LayoutStyle, View


# ---------------------------------------------------------------------------
# Expression resolution
# ---------------------------------------------------------------------------


class TestPos:
    def test_absolute(self) -> None:
        assert Pos.at(7).resolve(100) == 7

    def test_percent_truncates(self) -> None:
        assert Pos.percent(50).resolve(81) == 40
        assert Pos.percent(0).resolve(81) == 0
        assert Pos.percent(100).resolve(81) == 81

    @pytest.mark.parametrize("value", [-1, 100.5, 250])
    def test_percent_out_of_range(self, value: float) -> None:
        with pytest.raises(LayoutRangeError):
            Pos.percent(value)

    def test_center(self) -> None:
        assert Pos.center().resolve(11) == 5

    def test_anchor_end_may_go_negative(self) -> None:
        assert Pos.anchor_end(3).resolve(10) == 7
        assert Pos.anchor_end(12).resolve(10) == -2

    def test_anchor_end_clamps_negative_margin(self) -> None:
        pos = Pos.anchor_end(-3)
        assert pos.resolve(10) == 10
        assert repr(pos) == "Pos.anchor_end(0)"

    def test_combination_with_ints(self) -> None:
        assert (Pos.at(3) + 4).resolve(100) == 7
        assert (Pos.anchor_end() - 2).resolve(10) == 8
        assert (5 + Pos.percent(10)).resolve(50) == 10
        assert (20 - Pos.at(5)).resolve(0) == 15

    def test_view_edges(self) -> None:
        other = View(Rect(2, 3, 4, 5))
        assert Pos.left(other).resolve(0) == 2
        assert Pos.top(other).resolve(0) == 3
        assert Pos.right(other).resolve(0) == 6
        assert Pos.bottom(other).resolve(0) == 8
        assert list(Pos.right(other).references()) == [other]

    def test_rejects_other_types(self) -> None:
        with pytest.raises(TypeError):
            Pos.at(1) + "2"  # type: ignore[operator]


class TestDim:
    def test_fill(self) -> None:
        assert Dim.fill(2).resolve(10) == 8
        assert Dim.fill(20).resolve(10) == 0

    def test_percent(self) -> None:
        assert Dim.percent(25).resolve(10) == 2

    @pytest.mark.parametrize("value", [-0.5, 101])
    def test_percent_out_of_range(self, value: float) -> None:
        with pytest.raises(LayoutRangeError):
            Dim.percent(value)

    def test_view_extent(self) -> None:
        other = View(Rect(0, 0, 12, 3))
        assert Dim.width(other).resolve(0) == 12
        assert Dim.height(other).resolve(0) == 3

    def test_combination(self) -> None:
        assert (Dim.fill() - 2).resolve(10) == 8
        assert (Dim.sized(3) + Dim.percent(50)).resolve(10) == 8


# ---------------------------------------------------------------------------
# Frame computation
# ---------------------------------------------------------------------------


class TestComputeFrame:
    def test_fill_after_position(self) -> None:
        frame = compute_frame(Pos.at(2), Pos.at(1), Dim.fill(), Dim.fill(1), Size(20, 10))
        assert frame == Rect(2, 1, 18, 8)

    def test_center(self) -> None:
        frame = compute_frame(Pos.center(), Pos.center(), Dim.sized(4), Dim.sized(2), Size(10, 6))
        assert frame == Rect(3, 2, 4, 2)

    def test_defaults(self) -> None:
        assert compute_frame(None, None, None, None, Size(5, 4)) == Rect(0, 0, 5, 4)

    def test_negative_extents_clamp(self) -> None:
        frame = compute_frame(Pos.at(0), Pos.at(0), Dim.sized(3) - 5, Dim.sized(1), Size(10, 10))
        assert frame.width == 0


class TestLayoutPass:
    def test_computed_subview_resolves_against_host(self) -> None:
        host = View(Rect(0, 0, 20, 20))
        child = View(width=Dim.fill(0), height=Dim.sized(3))
        host.add_subview(child)
        assert child.layout_style is LayoutStyle.COMPUTED
        host.layout_subviews()
        assert child.frame == Rect(0, 0, 20, 3)
        assert not host.needs_layout

    def test_fixed_frame_untouched(self) -> None:
        host = View(Rect(0, 0, 20, 20))
        child = View(Rect(1, 2, 3, 4))
        host.add_subview(child)
        host.layout_subviews()
        assert child.layout_style is LayoutStyle.FIXED
        assert child.frame == Rect(1, 2, 3, 4)

    def test_relative_reference_resolved_first(self) -> None:
        host = View(Rect(0, 0, 30, 10))
        label = View(x=Pos.at(1), y=Pos.at(0), width=Dim.sized(6), height=Dim.sized(1))
        field = View(y=Pos.at(0), height=Dim.sized(1))
        field.x = Pos.right(label) + 1
        field.width = Dim.fill(1)
        # Dependent first so only ordering makes this work
        host.add_subviews(field, label)
        host.layout_subviews()
        assert label.frame == Rect(1, 0, 6, 1)
        assert field.frame == Rect(8, 0, 21, 1)

    def test_changing_expression_relayouts(self) -> None:
        host = View(Rect(0, 0, 10, 10))
        child = View(width=Dim.sized(2), height=Dim.sized(2))
        host.add_subview(child)
        host.layout_subviews()
        child.width = Dim.fill()
        assert host.needs_layout
        host.layout_subviews()
        assert child.frame.width == 10


class TestOrderViews:
    def test_ties_keep_subview_order(self) -> None:
        views = [View(id="a"), View(id="b"), View(id="c")]
        assert order_views(views) == views

    def test_cycle_raises(self) -> None:
        a = View(id="a", height=Dim.sized(1))
        b = View(id="b", height=Dim.sized(1))
        a.x = Pos.right(b)
        b.x = Pos.right(a)
        with pytest.raises(LayoutError) as info:
            order_views([a, b])
        assert "a" in str(info.value) and "b" in str(info.value)
        assert set(info.value.cycle) == {a, b}

    def test_layout_pass_reports_cycle(self) -> None:
        host = View(Rect(0, 0, 10, 10))
        a = View(id="a")
        b = View(id="b")
        a.width = Dim.width(b)
        b.width = Dim.width(a)
        host.add_subviews(a, b)
        with pytest.raises(LayoutError):
            host.layout_subviews()
