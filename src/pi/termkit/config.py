"""Environment-driven configuration."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping

from pi.termkit.errors import ConfigError

DRIVER_NAMES = ("full-screen", "raw-ansi", "headless")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_SIZE_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


@dataclass
class TermkitConfig:
    """Toolkit configuration.

    Every field has a default, so ``TermkitConfig()`` selects the
    full-screen driver with logging disabled.
    """

    driver: str = "full-screen"
    headless_timeout_ms: int = 1000
    headless_output: str | None = None
    headless_cols: int = 80
    headless_rows: int = 24
    log_path: str | None = None
    log_level: str = "INFO"
    write_log_path: str | None = None
    term: str | None = None
    colorterm: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TermkitConfig:
        """Read the ``PI_TERMKIT_*`` variables plus ``TERM`` and ``COLORTERM``.

        Raises
        ------
        ConfigError
            For an unknown driver name, log level, timeout or size.
        """
        env = os.environ if environ is None else environ

        driver = env.get("PI_TERMKIT_DRIVER", "").strip().lower() or "full-screen"
        if driver not in DRIVER_NAMES:
            raise ConfigError(
                f"PI_TERMKIT_DRIVER={driver!r} is not one of: {', '.join(DRIVER_NAMES)}"
            )

        timeout_text = env.get("PI_TERMKIT_HEADLESS_TIMEOUT_MS", "").strip()
        timeout = 1000
        if timeout_text:
            try:
                timeout = int(timeout_text)
            except ValueError:
                raise ConfigError(
                    f"PI_TERMKIT_HEADLESS_TIMEOUT_MS must be an integer, got {timeout_text!r}"
                ) from None
            if timeout < 0:
                raise ConfigError("PI_TERMKIT_HEADLESS_TIMEOUT_MS must not be negative")

        cols, rows = 80, 24
        size_text = env.get("PI_TERMKIT_HEADLESS_SIZE", "").strip()
        if size_text:
            m = _SIZE_RE.match(size_text)
            if not m:
                raise ConfigError(
                    f"PI_TERMKIT_HEADLESS_SIZE must look like 80x24, got {size_text!r}"
                )
            cols, rows = int(m.group(1)), int(m.group(2))

        level = env.get("PI_TERMKIT_LOG_LEVEL", "").strip().upper() or "INFO"
        if level not in LOG_LEVELS:
            raise ConfigError(f"PI_TERMKIT_LOG_LEVEL={level!r} is not a logging level")

        return cls(
            driver=driver,
            headless_timeout_ms=timeout,
            headless_output=env.get("PI_TERMKIT_HEADLESS_OUTPUT") or None,
            headless_cols=cols,
            headless_rows=rows,
            log_path=env.get("PI_TERMKIT_LOG") or None,
            log_level=level,
            write_log_path=env.get("PI_TERMKIT_WRITE_LOG") or None,
            term=env.get("TERM") or None,
            colorterm=env.get("COLORTERM") or None,
        )

    def environ(self) -> dict[str, str]:
        """The terminal variables in the form the drivers read them."""
        env: dict[str, str] = {}
        if self.term:
            env["TERM"] = self.term
        if self.colorterm:
            env["COLORTERM"] = self.colorterm
        for name in ("TERMINFO", "TERMINFO_DIRS", "HOME"):
            value = os.environ.get(name)
            if value:
                env[name] = value
        return env
