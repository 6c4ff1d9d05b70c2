"""Logging setup for the ``dbcompare`` command.

Every module logs through the ``dbcompare`` logger. The console handler
writes to stderr, so a report piped from stdout never picks up progress
lines. Worker stderr is logged at DEBUG and only shows with ``-v`` or in
the ``--log-file`` output.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "dbcompare"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Route the ``dbcompare`` logger to stderr and, optionally, a file.

    Calling it again replaces the handlers from the previous call. The
    logger does not propagate, so a host application's root handlers
    never duplicate the per-run progress lines.

    Args:
        verbose: Show DEBUG on the console (worker stderr included).
            Takes precedence over *quiet*.
        quiet: Show only warnings (failed runs) and errors.
        log_file: Also write a DEBUG log of the whole comparison here.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    if verbose:
        console_level = logging.DEBUG
    elif quiet:
        console_level = logging.WARNING
    else:
        console_level = logging.INFO

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger
