"""
Log routing for the ``entapi`` command line.

Command results are printed to stdout. Debug and info records from the ``entapi``
package share stdout with them; warnings and errors go to stderr, so a failing
``entapi check`` stays separable when its output is piped.

Only the ``entapi`` logger is touched. Applications that import entapi keep full
control of the root logger.
"""

from __future__ import annotations

import logging
import sys

__all__ = ["CLI_LOGGER", "configure_cli_logging"]

CLI_LOGGER = "entapi"

_FORMAT = "%(levelname)s %(name)s: %(message)s"


class _BelowLevel(logging.Filter):
    """Pass records strictly below ``level``."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def configure_cli_logging(level: int = logging.WARNING) -> logging.Logger:
    """
    Install stdout/stderr handlers on the ``entapi`` logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Threshold for the ``entapi`` logger (ApiSettings.log_level_value, or
            DEBUG for ``--verbose``).

    Returns:
        logging.Logger: The configured ``entapi`` logger.
    """
    logger = logging.getLogger(CLI_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(level)

    formatter = logging.Formatter(_FORMAT)

    out = logging.StreamHandler(sys.stdout)
    out.addFilter(_BelowLevel(logging.WARNING))
    out.setFormatter(formatter)

    err = logging.StreamHandler(sys.stderr)
    err.setLevel(logging.WARNING)
    err.setFormatter(formatter)

    logger.addHandler(out)
    logger.addHandler(err)
    return logger
