"""Terminal capability lookup and the parametrized-string interpreter.

Two responsibilities live here:

* **Lookup** -- :func:`load_capability` reads a compiled terminfo entry
  (legacy 16-bit and the 32-bit number format) and exposes its booleans,
  numbers and strings by standard short name.  :func:`get_capability`
  caches entries per terminal name and substitutes a conservative xterm
  profile when no entry can be found.
* **Evaluation** -- :func:`process_parametrized_string` runs the small
  stack machine that terminfo templates such as ``setaf`` and ``cup`` are
  written for.

Only the capabilities needed to drive color, cursor movement, attributes
and screen clearing are mapped; extended capabilities are not parsed.
"""

from __future__ import annotations

import logging
import operator
import os
import re
import struct
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence, Union

from pi.termkit.errors import CapabilityNotFoundError, ParameterError, TerminfoFormatError

logger = logging.getLogger(__name__)

Param = Union[int, str]

# ---------------------------------------------------------------------------
# Standard capability names (ncurses ordering)
# ---------------------------------------------------------------------------

BOOLEAN_NAMES: tuple[str, ...] = (
    "bw", "am", "xsb", "xhp", "xenl", "eo", "gn", "hc", "km", "hs",
    "in", "da", "db", "mir", "msgr", "os", "eslok", "xt", "hz", "ul",
    "xon", "nxon", "mc5i", "chts", "nrrmc", "npc", "ndscr", "ccc", "bce",
)

NUMBER_NAMES: tuple[str, ...] = (
    "cols", "it", "lines", "lm", "xmc", "pb", "vt", "wsl", "nlab", "lh",
    "lw", "ma", "wnum", "colors", "pairs", "ncv",
)

STRING_NAMES: dict[int, str] = {
    0: "cbt",
    1: "bel",
    2: "cr",
    3: "csr",
    4: "tbc",
    5: "clear",
    6: "el",
    7: "ed",
    8: "hpa",
    9: "cmdch",
    10: "cup",
    11: "cud1",
    12: "home",
    13: "civis",
    14: "cub1",
    15: "mrcup",
    16: "cnorm",
    17: "cuf1",
    18: "ll",
    19: "cuu1",
    20: "cvvis",
    21: "dch1",
    22: "dl1",
    23: "dsl",
    24: "hd",
    25: "smacs",
    26: "blink",
    27: "bold",
    28: "smcup",
    29: "smdc",
    30: "dim",
    31: "smir",
    32: "invis",
    33: "prot",
    34: "rev",
    35: "smso",
    36: "smul",
    37: "ech",
    38: "rmacs",
    39: "sgr0",
    40: "rmcup",
    41: "rmdc",
    42: "rmir",
    43: "rmso",
    44: "rmul",
    45: "flash",
    52: "ich1",
    53: "il1",
    88: "rmkx",
    89: "smkx",
    103: "nel",
    105: "dch",
    106: "dl",
    107: "cud",
    108: "ich",
    109: "indn",
    110: "il",
    111: "cub",
    112: "cuf",
    113: "rin",
    114: "cuu",
    121: "rep",
    126: "rc",
    127: "vpa",
    128: "sc",
    129: "ind",
    130: "ri",
    131: "sgr",
    134: "ht",
    297: "op",
    298: "oc",
    302: "setf",
    303: "setb",
    359: "setaf",
    360: "setab",
}

_LEGACY_MAGIC = 0o432
_EXTENDED_NUMBERS_MAGIC = 0o1036

_DEFAULT_DIRS = (
    "/etc/terminfo",
    "/lib/terminfo",
    "/usr/share/terminfo",
    "/usr/lib/terminfo",
    "/usr/local/share/terminfo",
)

# ---------------------------------------------------------------------------
# Capability record
# ---------------------------------------------------------------------------

# RGB values of the 16 standard palette entries, used to map colors a
# terminal cannot show onto the closest one it can.
_PALETTE16: tuple[tuple[int, int, int], ...] = (
    (0, 0, 0), (205, 0, 0), (0, 205, 0), (205, 205, 0),
    (0, 0, 238), (205, 0, 205), (0, 205, 205), (229, 229, 229),
    (127, 127, 127), (255, 0, 0), (0, 255, 0), (255, 255, 0),
    (92, 92, 255), (255, 0, 255), (0, 255, 255), (255, 255, 255),
)
_CUBE_LEVELS = (0, 95, 135, 175, 215, 255)


@dataclass
class Capability:
    """The capabilities of one terminal type.

    Absent capabilities are ``None`` (or ``False`` for flags), which is
    distinct from a capability that is present but empty.
    """

    names: list[str]
    flags: dict[str, bool] = field(default_factory=dict)
    numbers: dict[str, int] = field(default_factory=dict)
    strings: dict[str, str] = field(default_factory=dict)
    fallback: bool = False

    @property
    def name(self) -> str:
        return self.names[0] if self.names else ""

    def get_flag(self, name: str) -> bool:
        return self.flags.get(name, False)

    def get_number(self, name: str) -> int | None:
        return self.numbers.get(name)

    def get_string(self, name: str) -> str | None:
        return self.strings.get(name)

    @property
    def colors(self) -> int:
        return self.numbers.get("colors", 0)

    def format(self, name: str, *params: Param) -> str | None:
        """Evaluate string capability *name* with *params*; ``None`` if absent."""
        template = self.strings.get(name)
        if template is None:
            return None
        return process_parametrized_string(template, params)

    def move_cursor(self, row: int, col: int) -> str:
        seq = self.format("cup", row, col)
        if seq is None:
            return f"\x1b[{row + 1};{col + 1}H"
        return seq

    def set_foreground_color(self, index: int) -> str:
        return self._set_color(index, "setaf", "setf")

    def set_background_color(self, index: int) -> str:
        return self._set_color(index, "setab", "setb")

    def _set_color(self, index: int, ansi_name: str, legacy_name: str) -> str:
        mapped = map_color_index(index, self.colors)
        if mapped is None:
            return ""
        template = self.strings.get(ansi_name)
        if template is not None:
            return process_parametrized_string(template, (mapped,))
        template = self.strings.get(legacy_name)
        if template is not None:
            # setf/setb number colors BGR rather than RGB
            if mapped < 8:
                mapped = (mapped & 2) | ((mapped & 1) << 2) | ((mapped & 4) >> 2)
            return process_parametrized_string(template, (mapped,))
        return ""


def map_color_index(index: int, count: int) -> int | None:
    """Map palette *index* onto a terminal that shows *count* colors.

    Indices the terminal can show are returned unchanged.  Larger ones go
    to the nearest of the 16 standard colors, then fold onto the 8 base
    colors when only 8 are available.  ``None`` means the terminal has no
    color support at all.
    """
    if count <= 0:
        return None
    index = max(0, index)
    if index < count:
        return index
    if index >= 16:
        index = _nearest_palette16(_xterm256_rgb(index))
    if index >= count:
        index = index - 8 if index >= 8 else index
    return index % count


def _xterm256_rgb(index: int) -> tuple[int, int, int]:
    if index < 16:
        return _PALETTE16[index]
    if index >= 232:
        level = 8 + (min(index, 255) - 232) * 10
        return (level, level, level)
    n = index - 16
    return (_CUBE_LEVELS[n // 36], _CUBE_LEVELS[(n // 6) % 6], _CUBE_LEVELS[n % 6])


def _nearest_palette16(rgb: tuple[int, int, int]) -> int:
    r, g, b = rgb
    return min(
        range(16),
        key=lambda i: (_PALETTE16[i][0] - r) ** 2
        + (_PALETTE16[i][1] - g) ** 2
        + (_PALETTE16[i][2] - b) ** 2,
    )


def rgb_to_xterm256(red: int, green: int, blue: int) -> int:
    """Closest entry of the 256-color cube or gray ramp."""
    if red == green == blue:
        if red < 8:
            return 16
        if red > 247:
            return 231
        return 232 + ((red - 8) * 23) // 239
    return 16 + 36 * (red * 5 // 255) + 6 * (green * 5 // 255) + blue * 5 // 255


def rgb_to_palette16(red: int, green: int, blue: int) -> int:
    return _nearest_palette16((red, green, blue))


# ---------------------------------------------------------------------------
# Compiled terminfo parsing
# ---------------------------------------------------------------------------


def parse_terminfo(data: bytes) -> Capability:
    """Parse a compiled terminfo entry."""
    try:
        magic, names_size, bool_count, num_count, str_count, table_size = struct.unpack_from(
            "<6h", data, 0
        )
    except struct.error:
        raise TerminfoFormatError("terminfo header is truncated") from None

    if magic == _LEGACY_MAGIC:
        num_format, num_size = "h", 2
    elif magic == _EXTENDED_NUMBERS_MAGIC:
        num_format, num_size = "i", 4
    else:
        raise TerminfoFormatError(f"unknown terminfo magic number {magic:#o}")

    pos = 12
    names = data[pos:pos + names_size].rstrip(b"\0").decode("ascii", "replace").split("|")
    pos += names_size

    bool_bytes = data[pos:pos + bool_count]
    pos += bool_count
    if pos % 2:
        pos += 1

    try:
        numbers = struct.unpack_from(f"<{num_count}{num_format}", data, pos)
        pos += num_count * num_size
        offsets = struct.unpack_from(f"<{str_count}h", data, pos)
        pos += str_count * 2
    except struct.error:
        raise TerminfoFormatError("terminfo number or string section is truncated") from None

    table = data[pos:pos + table_size]
    if len(table) < table_size:
        raise TerminfoFormatError("terminfo string table is truncated")

    cap = Capability(names=names)
    for i, value in enumerate(bool_bytes[: len(BOOLEAN_NAMES)]):
        if value == 1:
            cap.flags[BOOLEAN_NAMES[i]] = True
    for i, value in enumerate(numbers[: len(NUMBER_NAMES)]):
        if value >= 0:
            cap.numbers[NUMBER_NAMES[i]] = value
    for i, offset in enumerate(offsets):
        name = STRING_NAMES.get(i)
        if name is None or offset < 0 or offset >= len(table):
            continue
        end = table.find(b"\0", offset)
        if end == -1:
            end = len(table)
        cap.strings[name] = table[offset:end].decode("latin-1")
    return cap


def terminfo_search_dirs(environ: Mapping[str, str] | None = None) -> list[str]:
    env = os.environ if environ is None else environ
    dirs: list[str] = []
    if env.get("TERMINFO"):
        dirs.append(env["TERMINFO"])
    home = env.get("HOME")
    if home:
        dirs.append(os.path.join(home, ".terminfo"))
    dirs.extend(d for d in env.get("TERMINFO_DIRS", "").split(":") if d)
    dirs.extend(_DEFAULT_DIRS)
    return dirs


def find_terminfo_file(term: str, environ: Mapping[str, str] | None = None) -> str | None:
    """Locate the compiled entry for *term* in the ``x/`` or ``78/`` layout."""
    if not term or "/" in term:
        return None
    for directory in terminfo_search_dirs(environ):
        for sub in (term[0], f"{ord(term[0]):02x}"):
            path = os.path.join(directory, sub, term)
            if os.path.isfile(path):
                return path
    return None


_capability_cache: dict[str, Capability] = {}


def load_capability(term: str | None = None, environ: Mapping[str, str] | None = None) -> Capability:
    """Load and cache the capability record for *term*.

    *term* defaults to ``$TERM`` and then ``"xterm"``.  Raises
    :class:`CapabilityNotFoundError` when no compiled entry exists.
    """
    env = os.environ if environ is None else environ
    name = term or env.get("TERM") or "xterm"
    cached = _capability_cache.get(name)
    if cached is not None and not cached.fallback:
        return cached

    path = find_terminfo_file(name, env)
    if path is None:
        raise CapabilityNotFoundError(name, terminfo_search_dirs(env))
    with open(path, "rb") as f:
        cap = parse_terminfo(f.read())
    logger.debug("loaded terminfo entry %s from %s", cap.name, path)
    _capability_cache[name] = cap
    return cap


def get_capability(term: str | None = None, environ: Mapping[str, str] | None = None) -> Capability:
    """Like :func:`load_capability` but never fails: misses use the xterm profile."""
    env = os.environ if environ is None else environ
    name = term or env.get("TERM") or "xterm"
    cached = _capability_cache.get(name)
    if cached is not None:
        return cached
    try:
        return load_capability(name, env)
    except (CapabilityNotFoundError, TerminfoFormatError, OSError) as exc:
        logger.warning("using built-in xterm capabilities for %r: %s", name, exc)
        cap = xterm_capability(name)
        _capability_cache[name] = cap
        return cap


def reset_capability_cache() -> None:
    _capability_cache.clear()


# ---------------------------------------------------------------------------
# Built-in xterm profile
# ---------------------------------------------------------------------------

_XTERM_STRINGS = {
    "bel": "^G",
    "cr": "^M",
    "clear": r"\E[H\E[2J",
    "cup": r"\E[%i%p1%d;%p2%dH",
    "home": r"\E[H",
    "civis": r"\E[?25l",
    "cnorm": r"\E[?12l\E[?25h",
    "cuu1": r"\E[A",
    "cud1": "^J",
    "cub1": "^H",
    "cuf1": r"\E[C",
    "cuu": r"\E[%p1%dA",
    "cud": r"\E[%p1%dB",
    "cub": r"\E[%p1%dD",
    "cuf": r"\E[%p1%dC",
    "el": r"\E[K",
    "ed": r"\E[J",
    "ind": "^J",
    "bold": r"\E[1m",
    "dim": r"\E[2m",
    "smul": r"\E[4m",
    "rmul": r"\E[24m",
    "blink": r"\E[5m",
    "rev": r"\E[7m",
    "smso": r"\E[7m",
    "rmso": r"\E[27m",
    "sgr0": r"\E(B\E[m",
    "smcup": r"\E[?1049h\E[22;0;0t",
    "rmcup": r"\E[?1049l\E[23;0;0t",
    "smkx": r"\E[?1h\E=",
    "rmkx": r"\E[?1l\E>",
    "op": r"\E[39;49m",
    "setaf": r"\E[%?%p1%{8}%<%t3%p1%d%e%p1%{16}%<%t9%p1%{8}%-%d%e38;5;%p1%d%;m",
    "setab": r"\E[%?%p1%{8}%<%t4%p1%d%e%p1%{16}%<%t10%p1%{8}%-%d%e48;5;%p1%d%;m",
}


def xterm_capability(term: str = "xterm") -> Capability:
    """The conservative profile used when no terminfo entry is available."""
    colors = 256 if "256color" in term else 8
    return Capability(
        names=[term, "built-in xterm profile"],
        flags={"am": True, "bce": True, "km": True, "mir": True, "msgr": True, "xenl": True},
        numbers={"cols": 80, "it": 8, "lines": 24, "colors": colors, "pairs": colors * colors},
        strings={name: unescape_source(value) for name, value in _XTERM_STRINGS.items()},
        fallback=True,
    )


_SOURCE_ESCAPES = {
    "E": "\x1b",
    "e": "\x1b",
    "n": "\n",
    "l": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "s": " ",
    "\\": "\\",
    "^": "^",
    ",": ",",
    ":": ":",
}


def unescape_source(text: str) -> str:
    """Decode terminfo source escapes (``\\E``, ``^X``, octal) into characters."""
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "^" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append("\x7f" if nxt == "?" else chr(ord(nxt.upper()) & 0x1F))
            i += 2
        elif ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt in _SOURCE_ESCAPES:
                out.append(_SOURCE_ESCAPES[nxt])
                i += 2
            elif nxt.isdigit():
                digits = re.match(r"[0-7]{1,3}", text[i + 1:])
                value = int(digits.group(0), 8) if digits else 0
                out.append(chr(value or 0x80))
                i += 1 + (len(digits.group(0)) if digits else 1)
            else:
                out.append(nxt)
                i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


# ---------------------------------------------------------------------------
# Parametrized string interpreter
# ---------------------------------------------------------------------------

_PADDING_RE = re.compile(r"\$<\d*(?:\.\d+)?[*/]*>")
_FORMAT_RE = re.compile(r":?([-+# 0]*)(\d*)(?:\.(\d+))?([doxXs])")


def _c_div(a: int, b: int) -> int:
    if b == 0:
        return 0
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _c_mod(a: int, b: int) -> int:
    if b == 0:
        return 0
    return a - b * _c_div(a, b)


_BINARY: dict[str, Callable[[int, int], int]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _c_div,
    "m": _c_mod,
    "&": operator.and_,
    "|": operator.or_,
    "^": operator.xor,
    "=": lambda a, b: int(a == b),
    "<": lambda a, b: int(a < b),
    ">": lambda a, b: int(a > b),
    "A": lambda a, b: int(bool(a) and bool(b)),
    "O": lambda a, b: int(bool(a) or bool(b)),
}


def process_parametrized_string(template: str, params: Sequence[Param] = ()) -> str:
    """Evaluate a terminfo parametrized string.

    Parameters
    ----------
    template:
        The capability string, e.g. ``"\\x1b[%i%p1%d;%p2%dH"``.
    params:
        Up to nine integer or string parameters; missing ones are 0.

    Returns
    -------
    str
        The literal text to send to the terminal.  Padding specifications
        (``$<5>``) are removed.

    Raises
    ------
    ParameterError
        On unknown operators or unterminated constructs.  Popping an empty
        stack yields 0, as terminals have always tolerated.

    Examples
    --------
    >>> process_parametrized_string("%p1%d", [5])
    '5'
    >>> process_parametrized_string("%p1%{2}%+%d", [3])
    '5'
    """
    args: list[Param] = list(params[:9]) + [0] * (9 - min(len(params), 9))
    text = _PADDING_RE.sub("", template)
    out: list[str] = []
    stack: list[Param] = []
    dynamic: dict[str, Param] = {}
    static: dict[str, Param] = {}

    def pop() -> Param:
        return stack.pop() if stack else 0

    def pop_int() -> int:
        value = pop()
        return value if isinstance(value, int) else 0

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch != "%":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= n:
            raise ParameterError(f"dangling '%' at end of {template!r}")
        op = text[i + 1]
        i += 2

        if op == "%":
            out.append("%")
        elif op == "p":
            if i >= n or not "1" <= text[i] <= "9":
                raise ParameterError(f"%p needs a parameter number 1-9 in {template!r}")
            stack.append(args[int(text[i]) - 1])
            i += 1
        elif op in ("P", "g"):
            if i >= n or not text[i].isalpha():
                raise ParameterError(f"%{op} needs a variable name in {template!r}")
            var = text[i]
            store = dynamic if var.islower() else static
            if op == "P":
                store[var] = pop()
            else:
                stack.append(store.get(var, 0))
            i += 1
        elif op == "'":
            if i + 1 >= n or text[i + 1] != "'":
                raise ParameterError(f"unterminated character constant in {template!r}")
            stack.append(ord(text[i]))
            i += 2
        elif op == "{":
            end = text.find("}", i)
            if end == -1:
                raise ParameterError(f"unterminated integer constant in {template!r}")
            try:
                stack.append(int(text[i:end]))
            except ValueError:
                raise ParameterError(f"bad integer constant {text[i:end]!r}") from None
            i = end + 1
        elif op == "l":
            value = pop()
            stack.append(len(value) if isinstance(value, str) else 0)
        elif op in _BINARY:
            b = pop_int()
            a = pop_int()
            stack.append(_BINARY[op](a, b))
        elif op == "!":
            stack.append(int(not pop_int()))
        elif op == "~":
            stack.append(~pop_int())
        elif op == "i":
            for k in (0, 1):
                if isinstance(args[k], int):
                    args[k] += 1
        elif op == "c":
            value = pop()
            out.append(chr(value) if isinstance(value, int) else value[:1])
        elif op in ("?", ";"):
            pass
        elif op == "t":
            if not pop_int():
                i = _skip_branch(text, i, stop_at_else=True)
        elif op == "e":
            i = _skip_branch(text, i, stop_at_else=False)
        else:
            m = _FORMAT_RE.match(text, i - 1)
            if m is None:
                raise ParameterError(f"unknown operator %{op} in {template!r}")
            out.append(_printf(m, pop()))
            i = m.end()
    return "".join(out)


def _skip_branch(text: str, i: int, stop_at_else: bool) -> int:
    """Advance past the rest of a branch, returning the index after the
    matching ``%e`` (when *stop_at_else*) or ``%;``."""
    level = 0
    n = len(text)
    while i < n:
        if text[i] != "%":
            i += 1
            continue
        if i + 1 >= n:
            return n
        op = text[i + 1]
        i += 2
        if op == "'":
            i += 2
        elif op == "?":
            level += 1
        elif op == ";":
            if level == 0:
                return i
            level -= 1
        elif op == "e" and stop_at_else and level == 0:
            return i
    return n


def _printf(m: re.Match[str], value: Param) -> str:
    flags, width, precision, conv = m.groups()
    if conv == "s":
        arg: Param = value if isinstance(value, str) else str(value)
    else:
        arg = value if isinstance(value, int) else 0
    if conv == "o" and "#" in flags:
        # C prints a single leading zero where Python prints "0o"
        body = "0" + format(arg, "o") if arg else "0"
        w = int(width) if width else 0
        return body.ljust(w) if "-" in flags else body.rjust(w)
    spec = "%" + flags + width + (f".{precision}" if precision else "") + conv
    return spec % arg
