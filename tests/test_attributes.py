"""Tests for colors, attributes and color schemes."""

from __future__ import annotations

import pytest

from pi.termkit.attributes import Attribute, CellFlags, Color, Colors, ColorScheme, Rgb
from pi.termkit.errors import ColorsFrozenError, TermkitError


def _scheme(value: int = 1) -> ColorScheme:
    attr = Attribute(value, Color.WHITE, Color.BLACK)
    return ColorScheme(attr, attr, attr, attr)


class TestColorParse:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("red", Color.RED),
            ("Bright-Red", Color.BRIGHT_RED),
            ("dark gray", Color.DARK_GRAY),
            ("yellow", Color.BRIGHT_YELLOW),
            ("  white ", Color.WHITE),
        ],
    )
    def test_names(self, name: str, expected: Color) -> None:
        assert Color.parse(name) is expected

    def test_hex(self) -> None:
        assert Color.parse("#ff8000") == Rgb(255, 128, 0)

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="unknown color"):
            Color.parse("chartreuse")

    def test_rgb_channel_range(self) -> None:
        with pytest.raises(ValueError):
            Color.rgb(0, 256, 0)

    def test_ansi_index(self) -> None:
        assert Color.BLACK.ansi_index == 0
        assert Color.BROWN.ansi_index == 3
        assert Color.WHITE.ansi_index == 15


class TestAttribute:
    def test_equality_ignores_maker(self) -> None:
        a = Attribute(3, Color.RED, Color.BLUE, CellFlags.BOLD)
        b = Attribute(3, Color.RED, Color.BLUE, CellFlags.BOLD, maker=object())  # type: ignore[arg-type]
        assert a == b

    def test_change_without_maker(self) -> None:
        a = Attribute(3, Color.RED, Color.BLUE)
        changed = a.change(background=Color.GREEN, flags=CellFlags.UNDERLINE)
        assert changed.foreground is Color.RED
        assert changed.background is Color.GREEN
        assert changed.flags == CellFlags.UNDERLINE


class TestColors:
    def test_missing_scheme(self) -> None:
        with pytest.raises(TermkitError):
            _ = Colors().base

    def test_set_before_read(self) -> None:
        colors = Colors()
        colors.base = _scheme(1)
        colors.base = _scheme(2)
        assert colors.base.normal.value == 2
        assert colors.is_installed("base")
        assert not colors.is_installed("menu")

    def test_frozen_after_first_read(self) -> None:
        colors = Colors()
        colors.dialog = _scheme()
        assert not colors.frozen
        _ = colors.dialog
        assert colors.frozen
        with pytest.raises(ColorsFrozenError):
            colors.menu = _scheme()
