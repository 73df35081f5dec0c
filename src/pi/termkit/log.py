"""Logging setup.

The terminal belongs to the UI, so log records never go to stdout or
stderr: they go to the file named by ``PI_TERMKIT_LOG`` or nowhere.
"""

from __future__ import annotations

import logging

from pi.termkit.config import TermkitConfig

LOGGER_NAME = "pi.termkit"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config: TermkitConfig) -> logging.Logger:
    """Attach the toolkit's handler to the ``pi.termkit`` logger.

    Replaces any handler installed by an earlier call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        if getattr(old, "_pi_termkit", False):
            logger.removeHandler(old)
            old.close()

    handler: logging.Handler
    if config.log_path:
        handler = logging.FileHandler(config.log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.setLevel(getattr(logging, config.log_level.upper()))
    else:
        handler = logging.NullHandler()
    handler._pi_termkit = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = not config.log_path
    return logger
