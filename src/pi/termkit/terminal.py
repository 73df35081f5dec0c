"""Raw-mode access to the controlling terminal.

Provides a ``Terminal`` protocol and ``ProcessTerminal``, which puts the
terminal into raw mode with :mod:`tty`/:mod:`termios`, reports input
through an asyncio reader registered on stdin, and turns ``SIGWINCH`` into
resize callbacks.  Drivers layer escape-sequence generation on top.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import sys
import termios
import tty
from typing import Callable, Protocol

from pi.termkit.errors import DriverError

logger = logging.getLogger(__name__)


class Terminal(Protocol):
    """What a driver needs from the device it draws on."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...


class ProcessTerminal:
    """Terminal backed by the process's stdin/stdout file descriptors.

    Parameters
    ----------
    input_fd, output_fd:
        Descriptors to read from and write to; default to stdin/stdout.
    write_log_path:
        When set, every string written to the terminal is also appended to
        this file.
    """

    def __init__(
        self,
        input_fd: int | None = None,
        output_fd: int | None = None,
        write_log_path: str | None = None,
    ) -> None:
        self._input_fd = input_fd
        self._output_fd = output_fd
        self._write_log_path = write_log_path or ""
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._error_handler: Callable[[Exception], None] | None = None
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    # -- properties ---------------------------------------------------------

    @property
    def input_fd(self) -> int:
        return sys.stdin.fileno() if self._input_fd is None else self._input_fd

    @property
    def output_fd(self) -> int:
        return sys.stdout.fileno() if self._output_fd is None else self._output_fd

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self.output_fd).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(self.output_fd).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        """Enter raw mode and start delivering input and resize callbacks.

        Must be called from inside a running event loop.  Read failures are
        reported through *on_error* since they happen inside a loop callback.
        """
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            raise DriverError("the terminal must be started from a running event loop") from None

        self._input_handler = on_input
        self._resize_handler = on_resize
        self._error_handler = on_error

        try:
            self._original_termios = termios.tcgetattr(self.input_fd)
            tty.setraw(self.input_fd)
        except (termios.error, OSError) as exc:
            raise DriverError(f"cannot enter raw mode: {exc}") from exc

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._loop.add_reader(self.input_fd, self._on_readable)

    def stop(self) -> None:
        """Restore the terminal mode and remove every handler installed by start()."""
        if self._loop is not None:
            try:
                self._loop.remove_reader(self.input_fd)
            except (RuntimeError, ValueError):
                # loop already closed
                pass
            self._loop = None

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        if self._original_termios is not None:
            try:
                termios.tcsetattr(self.input_fd, termios.TCSADRAIN, self._original_termios)
            except termios.error as exc:
                logger.warning("could not restore terminal mode: %s", exc)
            self._original_termios = None

        self._input_handler = None
        self._resize_handler = None
        self._error_handler = None

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write *data* completely; failures raise :class:`DriverError`."""
        payload = data.encode("utf-8")
        try:
            while payload:
                written = os.write(self.output_fd, payload)
                payload = payload[written:]
        except OSError as exc:
            raise DriverError(f"terminal write failed: {exc}") from exc

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a") as f:
                    f.write(data)
            except OSError:
                pass

    # -- callbacks ----------------------------------------------------------

    def _on_readable(self) -> None:
        try:
            raw = os.read(self.input_fd, 4096)
        except BlockingIOError:
            return
        except OSError as exc:
            self._fail(DriverError(f"terminal read failed: {exc}"))
            return

        if not raw:
            self._fail(DriverError("terminal input closed"))
            return
        data = self._decoder.decode(raw)
        if data and self._input_handler is not None:
            self._input_handler(data)

    def _fail(self, exc: DriverError) -> None:
        if self._loop is not None:
            self._loop.remove_reader(self.input_fd)
        if self._error_handler is None:
            raise exc
        self._error_handler(exc)

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        # Signal context: defer to the loop
        if self._resize_handler is not None and self._loop is not None:
            self._loop.call_soon_threadsafe(self._resize_handler)
