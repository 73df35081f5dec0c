"""Tests for pi.termkit.terminfo: lookup, parsing and string evaluation."""

from __future__ import annotations

import pytest

from pi.termkit.errors import CapabilityNotFoundError, ParameterError, TerminfoFormatError
from pi.termkit.terminfo import (
    get_capability,
    load_capability,
    map_color_index,
    parse_terminfo,
    process_parametrized_string,
    rgb_to_xterm256,
    unescape_source,
    xterm_capability,
)

from .conftest import TEST_TERM
from .terminfo_data import compile_terminfo, install_terminfo


# ---------------------------------------------------------------------------
# Parametrized strings
# ---------------------------------------------------------------------------


class TestParametrizedStrings:
    def test_print_parameter(self) -> None:
        assert process_parametrized_string("%p1%d", [5]) == "5"

    def test_arithmetic(self) -> None:
        assert process_parametrized_string("%p1%{2}%+%d", [3]) == "5"
        assert process_parametrized_string("%p1%p2%-%d", [3, 10]) == "-7"
        assert process_parametrized_string("%p1%{3}%/%d", [-7]) == "-2"
        assert process_parametrized_string("%p1%{3}%m%d", [-7]) == "-1"

    def test_literal_text_passes_through(self) -> None:
        assert process_parametrized_string("\x1b[H") == "\x1b[H"
        assert process_parametrized_string("100%%") == "100%"

    def test_cursor_address_increments(self) -> None:
        assert process_parametrized_string("\x1b[%i%p1%d;%p2%dH", [4, 9]) == "\x1b[5;10H"

    def test_conditional(self) -> None:
        template = "%?%p1%{8}%<%t3%p1%d%e%p1%{16}%<%t9%p1%{8}%-%d%e38;5;%p1%d%;"
        assert process_parametrized_string(template, [2]) == "32"
        assert process_parametrized_string(template, [12]) == "94"
        assert process_parametrized_string(template, [200]) == "38;5;200"

    def test_variables(self) -> None:
        assert process_parametrized_string("%p1%Pa%ga%ga%+%d", [4]) == "8"
        assert process_parametrized_string("%gZ%d") == "0"

    def test_character_and_string_output(self) -> None:
        assert process_parametrized_string("%'A'%c") == "A"
        assert process_parametrized_string("%p1%s", ["hi"]) == "hi"
        assert process_parametrized_string("%p1%l%d", ["four"]) == "4"

    def test_printf_formats(self) -> None:
        assert process_parametrized_string("%p1%03d", [7]) == "007"
        assert process_parametrized_string("%p1%x", [255]) == "ff"
        assert process_parametrized_string("%p1%:-3d|", [1]) == "1  |"

    def test_padding_removed(self) -> None:
        assert process_parametrized_string("\x1b[J$<50>") == "\x1b[J"

    def test_empty_stack_pops_zero(self) -> None:
        assert process_parametrized_string("%d") == "0"

    @pytest.mark.parametrize("template", ["%", "%p0", "%{12", "%'a", "%y"])
    def test_malformed(self, template: str) -> None:
        with pytest.raises(ParameterError):
            process_parametrized_string(template)


class TestUnescapeSource:
    def test_escapes(self) -> None:
        assert unescape_source(r"\E[%p1%dm") == "\x1b[%p1%dm"
        assert unescape_source("^G^M") == "\x07\r"
        assert unescape_source(r"\0") == "\x80"
        assert unescape_source(r"\n\\") == "\n\\"


# ---------------------------------------------------------------------------
# Compiled entries
# ---------------------------------------------------------------------------


class TestParseTerminfo:
    def test_legacy_format(self) -> None:
        cap = parse_terminfo(
            compile_terminfo(
                "demo|demo terminal",
                flags=["am"],
                numbers={"cols": 132, "colors": 8},
                strings={"clear": "\x1b[2J", "cup": "\x1b[%i%p1%d;%p2%dH"},
            )
        )
        assert cap.name == "demo"
        assert cap.names == ["demo", "demo terminal"]
        assert cap.get_flag("am")
        assert not cap.get_flag("bce")
        assert cap.get_number("cols") == 132
        assert cap.get_number("lines") is None
        assert cap.get_string("clear") == "\x1b[2J"
        assert cap.get_string("el") is None
        assert cap.move_cursor(0, 0) == "\x1b[1;1H"

    def test_extended_number_format(self) -> None:
        cap = parse_terminfo(
            compile_terminfo("wide", numbers={"colors": 0x1000000}, wide_numbers=True)
        )
        assert cap.colors == 0x1000000

    def test_empty_string_is_present(self) -> None:
        cap = parse_terminfo(compile_terminfo("x", strings={"bel": ""}))
        assert cap.get_string("bel") == ""

    def test_bad_magic(self) -> None:
        data = b"\x00\x00" + compile_terminfo("x")[2:]
        with pytest.raises(TerminfoFormatError):
            parse_terminfo(data)

    def test_truncated(self) -> None:
        with pytest.raises(TerminfoFormatError):
            parse_terminfo(b"\x1a\x01")
        data = compile_terminfo("x", strings={"clear": "\x1b[2J"})
        with pytest.raises(TerminfoFormatError):
            parse_terminfo(data[:-3])


class TestLookup:
    def test_load_from_terminfo_dir(self, terminfo_environ: dict[str, str]) -> None:
        cap = load_capability(TEST_TERM, terminfo_environ)
        assert cap.name == TEST_TERM
        assert cap.colors == 8
        assert not cap.fallback

    def test_hex_directory_layout(self, tmp_path) -> None:
        data = compile_terminfo("hexterm", numbers={"colors": 16})
        hex_dir = tmp_path / f"{ord('h'):02x}"
        hex_dir.mkdir()
        (hex_dir / "hexterm").write_bytes(data)
        cap = load_capability("hexterm", {"TERMINFO": str(tmp_path)})
        assert cap.colors == 16

    def test_term_from_environment(self, terminfo_environ: dict[str, str]) -> None:
        assert load_capability(None, terminfo_environ).name == TEST_TERM

    def test_missing_entry(self, tmp_path) -> None:
        with pytest.raises(CapabilityNotFoundError):
            load_capability("no-such-terminal-type", {"TERMINFO": str(tmp_path)})

    def test_entries_are_cached(self, terminfo_environ: dict[str, str]) -> None:
        first = get_capability(TEST_TERM, terminfo_environ)
        assert get_capability(TEST_TERM, terminfo_environ) is first

    def test_fallback_profile(self, tmp_path) -> None:
        cap = get_capability("no-such-terminal-256color", {"TERMINFO": str(tmp_path)})
        assert cap.fallback
        assert cap.colors == 256
        assert cap.get_string("clear") == "\x1b[H\x1b[2J"

    def test_corrupt_entry_falls_back(self, tmp_path) -> None:
        install_terminfo(str(tmp_path), "brokenterm", b"garbage!!!!!!!!")
        cap = get_capability("brokenterm", {"TERMINFO": str(tmp_path)})
        assert cap.fallback


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


class TestColorMapping:
    def test_index_within_range(self) -> None:
        assert map_color_index(5, 8) == 5
        assert map_color_index(200, 256) == 200

    def test_bright_folds_onto_eight(self) -> None:
        assert map_color_index(9, 8) == 1
        assert map_color_index(15, 8) == 7

    def test_cube_maps_to_palette(self) -> None:
        # 196 is pure red in the 256-color cube
        assert map_color_index(196, 16) == 9

    def test_no_colors(self) -> None:
        assert map_color_index(3, 0) is None

    def test_rgb_to_xterm256(self) -> None:
        assert rgb_to_xterm256(255, 0, 0) == 196
        assert rgb_to_xterm256(0, 0, 0) == 16

    def test_setaf_through_profile(self) -> None:
        cap = xterm_capability("xterm-256color")
        assert cap.set_foreground_color(1) == "\x1b[31m"
        assert cap.set_foreground_color(9) == "\x1b[91m"
        assert cap.set_background_color(100) == "\x1b[48;5;100m"

    def test_legacy_setf_is_bgr(self) -> None:
        cap = parse_terminfo(
            compile_terminfo("old", numbers={"colors": 8}, strings={"setf": "\x1b[3%p1%dm"})
        )
        # Red is 1 in ANSI order and 4 in the BGR order of setf
        assert cap.set_foreground_color(1) == "\x1b[34m"
