"""Shared fixtures for the termkit tests."""

from __future__ import annotations

from typing import Iterator

import pytest

from pi.termkit.terminfo import reset_capability_cache

from .terminfo_data import compile_terminfo, install_terminfo

TEST_TERM = "termkit-test"

TEST_STRINGS = {
    "clear": "\x1b[H\x1b[2J",
    "cup": "\x1b[%i%p1%d;%p2%dH",
    "home": "\x1b[H",
    "civis": "\x1b[?25l",
    "cnorm": "\x1b[?25h",
    "bold": "\x1b[1m",
    "smul": "\x1b[4m",
    "rev": "\x1b[7m",
    "sgr0": "\x1b[m",
    "smcup": "\x1b[?1049h",
    "rmcup": "\x1b[?1049l",
    "setaf": "\x1b[3%p1%dm",
    "setab": "\x1b[4%p1%dm",
}


@pytest.fixture(autouse=True)
def _fresh_capability_cache() -> Iterator[None]:
    reset_capability_cache()
    yield
    reset_capability_cache()


@pytest.fixture()
def terminfo_environ(tmp_path) -> dict[str, str]:
    """An environment whose ``TERMINFO`` holds an 8-color test entry."""
    data = compile_terminfo(
        f"{TEST_TERM}|terminal used by the termkit tests",
        flags=["am", "xenl"],
        numbers={"cols": 80, "lines": 24, "colors": 8, "pairs": 64},
        strings=TEST_STRINGS,
    )
    install_terminfo(str(tmp_path), TEST_TERM, data)
    return {"TERM": TEST_TERM, "TERMINFO": str(tmp_path)}
