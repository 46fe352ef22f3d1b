"""Logging configuration for the gitclock command line.

Records go to stderr and to a size-rotated file in the XDG cache directory,
so a long-running `gitclock watch` leaves a trail that survives the
terminal. Library modules only ever call `logging.getLogger(__name__)`.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import GeneralConfig
from .paths import paths

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_CONFIGURED = False


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper().strip())
    return level if isinstance(level, int) else logging.INFO


def _has_console_handler(root: logging.Logger) -> bool:
    # RotatingFileHandler is itself a StreamHandler subclass.
    return any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    )


def _has_file_handler(root: logging.Logger, log_path: Path) -> bool:
    return any(
        isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(log_path)
        for h in root.handlers
    )


def _rotating_file_handler(general: GeneralConfig, log_path: Path) -> RotatingFileHandler | None:
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            filename=str(log_path),
            maxBytes=general.log_max_bytes,
            backupCount=general.log_backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        logging.getLogger(__name__).warning("File logging disabled (%s): %s", log_path, exc)
        return None


def configure_logging(general: GeneralConfig, *, log_path: Path | None = None) -> None:
    """Install the stderr and rotating-file handlers once per process.

    A log file that cannot be opened only disables file logging.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    level = _resolve_level(general.log_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    if not _has_console_handler(root):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    target = log_path or paths.log_path
    if not _has_file_handler(root, target):
        file_handler = _rotating_file_handler(general, target)
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _CONFIGURED = True
