"""Logging configuration for the aisle navigation engine."""

import logging
import sys
from typing import Union

PACKAGE_LOGGER = "aisle_nav"


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Attach a stdout handler to the package logger and return it."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Re-running setup must not stack handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)

    return logger
