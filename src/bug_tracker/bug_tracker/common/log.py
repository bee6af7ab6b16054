from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# "<package>.common.log" -> "<package>", whichever way the package was imported
PACKAGE_LOGGER = __name__.rsplit(".", 2)[0]


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger once (stdout, one line per record)."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper())

    # Avoid duplicate handlers when the app factory runs more than once
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    return logger
