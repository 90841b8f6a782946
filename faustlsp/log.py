"""Set-up of the server's file logger."""

from __future__ import annotations

import logging
import os
import sys

LOGGER_NAME = "faustlsp"
LOG_FILE_NAME = "faust-lsp-log.txt"
_UNIX_PLATFORMS = ("linux", "darwin", "freebsd", "openbsd", "netbsd", "plan9")
_FORMAT = "faust-lsp: %(asctime)s %(message)s"
_DATE_FORMAT = "%H:%M:%S"


def default_log_path(platform: str | None = None) -> str:
    """Return the log file path used on ``platform`` (default: this one)."""
    platform = sys.platform if platform is None else platform
    if platform.startswith(_UNIX_PLATFORMS):
        return "/tmp/" + LOG_FILE_NAME
    return LOG_FILE_NAME


def init_logging(path: str | os.PathLike[str] | None = None) -> logging.Logger:
    """Point the package logger at a freshly truncated file and return it.

    Raises OSError when the file cannot be opened.
    """
    target = default_log_path() if path is None else path
    handler = logging.FileHandler(target, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger