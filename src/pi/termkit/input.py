"""Input decoding: raw terminal text to :mod:`pi.termkit.events`.

Terminal input arrives in arbitrary chunks, so an escape sequence may be
split across reads.  :class:`InputDecoder` buffers partial sequences,
extracts bracketed paste, and turns every complete sequence into one or
more events.  A lone ``ESC`` is held for a short timeout before it is
reported as the Escape key.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, Literal

from pi.termkit.events import Event, Key, KeyEvent, MouseEvent, MouseFlags, control_key
from pi.termkit.geometry import Point

logger = logging.getLogger(__name__)

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

SequenceStatus = Literal["complete", "incomplete", "not-escape"]

_SGR_MOUSE_RE = re.compile(r"^\x1b\[<(\d+);(\d+);(\d+)([Mm])$")
_MODIFIED_CSI_RE = re.compile(r"^\x1b\[1;(\d+)([ABCDHFPQRS])$")
_MODIFIED_TILDE_RE = re.compile(r"^\x1b\[(\d+);(\d+)~$")

# ---------------------------------------------------------------------------
# Sequence tables
# ---------------------------------------------------------------------------

_SEQUENCES: dict[str, Key] = {
    "\x1b[A": Key.CURSOR_UP,
    "\x1b[B": Key.CURSOR_DOWN,
    "\x1b[C": Key.CURSOR_RIGHT,
    "\x1b[D": Key.CURSOR_LEFT,
    "\x1bOA": Key.CURSOR_UP,
    "\x1bOB": Key.CURSOR_DOWN,
    "\x1bOC": Key.CURSOR_RIGHT,
    "\x1bOD": Key.CURSOR_LEFT,
    "\x1b[H": Key.HOME,
    "\x1bOH": Key.HOME,
    "\x1b[1~": Key.HOME,
    "\x1b[7~": Key.HOME,
    "\x1b[F": Key.END,
    "\x1bOF": Key.END,
    "\x1b[4~": Key.END,
    "\x1b[8~": Key.END,
    "\x1b[2~": Key.INSERT_CHAR,
    "\x1b[3~": Key.DELETE_CHAR,
    "\x1b[5~": Key.PAGE_UP,
    "\x1b[6~": Key.PAGE_DOWN,
    "\x1b[Z": Key.BACKTAB,
    "\x1bOP": Key.F1,
    "\x1bOQ": Key.F2,
    "\x1bOR": Key.F3,
    "\x1bOS": Key.F4,
    "\x1b[11~": Key.F1,
    "\x1b[12~": Key.F2,
    "\x1b[13~": Key.F3,
    "\x1b[14~": Key.F4,
    "\x1b[15~": Key.F5,
    "\x1b[17~": Key.F6,
    "\x1b[18~": Key.F7,
    "\x1b[19~": Key.F8,
    "\x1b[20~": Key.F9,
    "\x1b[21~": Key.F10,
    "\x1b[23~": Key.F11,
    "\x1b[24~": Key.F12,
}

_CSI_FINAL_KEYS = {
    "A": Key.CURSOR_UP,
    "B": Key.CURSOR_DOWN,
    "C": Key.CURSOR_RIGHT,
    "D": Key.CURSOR_LEFT,
    "H": Key.HOME,
    "F": Key.END,
    "P": Key.F1,
    "Q": Key.F2,
    "R": Key.F3,
    "S": Key.F4,
}

_TILDE_KEYS = {
    int(seq[2:-1]): key for seq, key in _SEQUENCES.items() if seq.endswith("~")
}

_SHIFTED = {
    Key.CURSOR_UP: Key.SHIFT_CURSOR_UP,
    Key.CURSOR_DOWN: Key.SHIFT_CURSOR_DOWN,
    Key.CURSOR_LEFT: Key.SHIFT_CURSOR_LEFT,
    Key.CURSOR_RIGHT: Key.SHIFT_CURSOR_RIGHT,
}

_MOD_SHIFT = 1
_MOD_ALT = 2
_MOD_CTRL = 4

_SPECIAL_CONTROLS = {
    0: Key.CONTROL_SPACE,
    27: Key.ESC,
    28: Key.FS,
    29: Key.GS,
    30: Key.RS,
    31: Key.US,
    127: Key.DELETE,
}


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


def sequence_status(data: str) -> SequenceStatus:
    """Classify *data* as a complete or incomplete escape sequence."""
    if not data.startswith(ESC):
        return "not-escape"
    if len(data) == 1:
        return "incomplete"

    introducer = data[1]
    if introducer == "[":
        if data.startswith("\x1b[M"):
            # X10 mouse: three raw bytes follow the introducer
            return "complete" if len(data) >= 6 else "incomplete"
        if len(data) < 3:
            return "incomplete"
        if not 0x40 <= ord(data[-1]) <= 0x7E:
            return "incomplete"
        if data[2] == "<":
            if _SGR_MOUSE_RE.match(data):
                return "complete"
            return "incomplete" if data[-1] not in "Mm" else "complete"
        return "complete"
    if introducer in "]P_":
        # OSC, DCS, APC: terminated by ST, OSC also by BEL
        if data.endswith("\x1b\\") and len(data) > 3:
            return "complete"
        if introducer == "]" and data.endswith("\x07"):
            return "complete"
        return "incomplete"
    if introducer == "O":
        return "complete" if len(data) >= 3 else "incomplete"
    return "complete"


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences plus an incomplete remainder."""
    sequences: list[str] = []
    pos = 0
    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue
        end = pos + 1
        while True:
            status = sequence_status(buffer[pos:end])
            if status == "complete":
                break
            if end >= len(buffer):
                return sequences, buffer[pos:]
            end += 1
        sequences.append(buffer[pos:end])
        pos = end
    return sequences, ""


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_sequence(data: str) -> list[Event]:
    """Translate one complete sequence into events.

    Unrecognized sequences become ``Key.UNKNOWN`` events carrying the raw
    text so higher layers can decide to ignore them.
    """
    if not data:
        return []

    key = _SEQUENCES.get(data)
    if key is not None:
        return [KeyEvent(key, raw=data)]

    if data.startswith("\x1b[<") or data.startswith("\x1b[M"):
        mouse = decode_mouse(data)
        if mouse:
            return mouse

    m = _MODIFIED_CSI_RE.match(data)
    if m:
        return [_modified(_CSI_FINAL_KEYS[m.group(2)], int(m.group(1)), data)]

    m = _MODIFIED_TILDE_RE.match(data)
    if m and int(m.group(1)) in _TILDE_KEYS:
        return [_modified(_TILDE_KEYS[int(m.group(1))], int(m.group(2)), data)]

    if len(data) == 1:
        return [_decode_char(data)]

    if len(data) == 2 and data[0] == ESC:
        inner = _decode_char(data[1])
        if inner.key is Key.UNKNOWN:
            return [KeyEvent(Key.UNKNOWN, raw=data)]
        return [KeyEvent(inner.key, inner.char, True, inner.is_control, data)]

    return [KeyEvent(Key.UNKNOWN, raw=data)]


def _decode_char(ch: str) -> KeyEvent:
    code = ord(ch)
    special = _SPECIAL_CONTROLS.get(code)
    if special is not None:
        return KeyEvent(special, is_control=code != 127, raw=ch)
    if 1 <= code <= 26:
        return KeyEvent(control_key(chr(code + ord("a") - 1)), is_control=True, raw=ch)
    if ch.isprintable():
        return KeyEvent.letter(ch)
    return KeyEvent(Key.UNKNOWN, raw=ch)


def _modified(key: Key, modifier: int, raw: str) -> KeyEvent:
    bits = modifier - 1
    if bits & _MOD_SHIFT and key in _SHIFTED:
        key = _SHIFTED[key]
    return KeyEvent(
        key,
        is_alt=bool(bits & _MOD_ALT),
        is_control=bool(bits & _MOD_CTRL),
        raw=raw,
    )


def decode_mouse(data: str) -> list[MouseEvent]:
    """Decode an SGR (``ESC[<b;x;yM``) or X10 (``ESC[M...``) mouse report.

    Coordinates are converted to 0-based.  Releasing button 1 also yields
    a ``BUTTON1_CLICKED`` event.
    """
    m = _SGR_MOUSE_RE.match(data)
    if m:
        button, x, y = int(m.group(1)), int(m.group(2)) - 1, int(m.group(3)) - 1
        release = m.group(4) == "m"
    elif data.startswith("\x1b[M") and len(data) == 6:
        button = ord(data[3]) - 32
        x, y = ord(data[4]) - 33, ord(data[5]) - 33
        release = (button & 3) == 3
    else:
        return []

    flags = MouseFlags.NONE
    if button & 4:
        flags |= MouseFlags.BUTTON_SHIFT
    if button & 8:
        flags |= MouseFlags.BUTTON_ALT
    if button & 16:
        flags |= MouseFlags.BUTTON_CTRL

    pos = Point(max(0, x), max(0, y))
    if button & 64:
        wheel = MouseFlags.WHEELED_DOWN if button & 1 else MouseFlags.WHEELED_UP
        return [MouseEvent(pos, flags | wheel)]

    which = button & 3
    if button & 32:
        flags |= MouseFlags.MOUSE_POSITION
        pressed = {
            0: MouseFlags.BUTTON1_PRESSED,
            1: MouseFlags.BUTTON2_PRESSED,
            2: MouseFlags.BUTTON3_PRESSED,
        }.get(which)
        if pressed is not None:
            flags |= pressed
        return [MouseEvent(pos, flags)]

    if which == 3:
        # X10 reports every release as button 3
        return [MouseEvent(pos, flags | MouseFlags.BUTTON1_RELEASED)]
    pressed, released, clicked = (
        (MouseFlags.BUTTON1_PRESSED, MouseFlags.BUTTON1_RELEASED, MouseFlags.BUTTON1_CLICKED),
        (MouseFlags.BUTTON2_PRESSED, MouseFlags.BUTTON2_RELEASED, MouseFlags.BUTTON2_CLICKED),
        (MouseFlags.BUTTON3_PRESSED, MouseFlags.BUTTON3_RELEASED, MouseFlags.BUTTON3_CLICKED),
    )[which]
    if not release:
        return [MouseEvent(pos, flags | pressed)]
    events = [MouseEvent(pos, flags | released)]
    if which == 0:
        events.append(MouseEvent(pos, flags | clicked))
    return events


# ---------------------------------------------------------------------------
# InputDecoder
# ---------------------------------------------------------------------------


class InputDecoder:
    """Buffers raw input and emits decoded events through a callback.

    Parameters
    ----------
    on_event:
        Called once per decoded event, in input order.
    timeout:
        Seconds to wait for the rest of a partial escape sequence before
        flushing what has arrived.
    """

    def __init__(self, on_event: Callable[[Event], None], *, timeout: float = 0.01) -> None:
        self._on_event = on_event
        self._timeout = timeout
        self._buffer = ""
        self._paste: str | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, data: str) -> None:
        self._cancel_timeout()
        self._buffer += data

        while self._buffer:
            if self._paste is not None:
                end = self._buffer.find(BRACKETED_PASTE_END)
                if end == -1:
                    self._paste += self._buffer
                    self._buffer = ""
                    return
                text = self._paste + self._buffer[:end]
                self._buffer = self._buffer[end + len(BRACKETED_PASTE_END):]
                self._paste = None
                self._emit(KeyEvent(Key.PASTE, char=text, raw=text))
                continue

            start = self._buffer.find(BRACKETED_PASTE_START)
            head = self._buffer if start == -1 else self._buffer[:start]
            sequences, remainder = split_sequences(head)
            for sequence in sequences:
                self._emit_all(decode_sequence(sequence))
            if start == -1:
                self._buffer = remainder
                break
            if remainder:
                # A partial sequence right before a paste marker is noise
                self._emit(KeyEvent(Key.UNKNOWN, raw=remainder))
            self._buffer = self._buffer[start + len(BRACKETED_PASTE_START):]
            self._paste = ""

        if self._buffer:
            self._schedule_timeout()

    def flush(self) -> None:
        """Report whatever is buffered as-is (a lone ESC becomes Escape)."""
        self._cancel_timeout()
        pending, self._buffer = self._buffer, ""
        if not pending:
            return
        if pending == ESC:
            self._emit(KeyEvent(Key.ESC, is_control=True, raw=ESC))
        else:
            logger.debug("flushing incomplete input sequence %r", pending)
            self._emit(KeyEvent(Key.UNKNOWN, raw=pending))

    def reset(self) -> None:
        self._cancel_timeout()
        self._buffer = ""
        self._paste = None

    def _emit(self, event: Event) -> None:
        self._on_event(event)

    def _emit_all(self, events: list[Event]) -> None:
        for event in events:
            self._on_event(event)

    def _schedule_timeout(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop to wait on
            self.flush()
            return
        self._timeout_handle = loop.call_later(self._timeout, self.flush)

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
