"""Console drivers and driver selection."""

from __future__ import annotations

import logging

from pi.termkit.config import TermkitConfig
from pi.termkit.drivers.ansi import AnsiDriver
from pi.termkit.drivers.base import ColorSupport, ConsoleDriver, detect_color_support
from pi.termkit.drivers.fullscreen import FullScreenDriver
from pi.termkit.drivers.headless import HeadlessDriver
from pi.termkit.errors import ConfigError

logger = logging.getLogger(__name__)


def create_driver(config: TermkitConfig) -> ConsoleDriver:
    """Instantiate the driver named by ``config.driver``."""
    logger.info("selected driver %s", config.driver)
    if config.driver == "full-screen":
        return FullScreenDriver(
            environ=config.environ(),
            term=config.term,
            write_log_path=config.write_log_path,
        )
    if config.driver == "raw-ansi":
        return AnsiDriver(environ=config.environ(), write_log_path=config.write_log_path)
    if config.driver == "headless":
        return HeadlessDriver(
            config.headless_cols,
            config.headless_rows,
            timeout_ms=config.headless_timeout_ms,
            output=config.headless_output,
        )
    raise ConfigError(f"unknown driver {config.driver!r}")


__all__ = [
    "AnsiDriver",
    "ColorSupport",
    "ConsoleDriver",
    "FullScreenDriver",
    "HeadlessDriver",
    "create_driver",
    "detect_color_support",
]
