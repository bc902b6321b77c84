"""Logging setup for the backlog tracker.

Every module logs through a child of the ``backlogtracker`` logger
(``backlogtracker.catalog``, ``backlogtracker.library`` and so on), so one
call to setup_logging() configures the whole package.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

__all__ = ["logger", "setup_logging"]

logger = logging.getLogger("backlogtracker")

# HTTP stacks that log every request at DEBUG/INFO
_NOISY_LIBRARIES = ("urllib3", "httpx", "httpcore", "openai")

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Path | None = None,
    quiet_libraries: bool = True,
) -> logging.Logger:
    """Attaches console (and optionally file) handlers to ``backlogtracker``.

    Handlers are attached only once; later calls just change the level.

    Args:
        level: Console level, as a number or a name such as ``"debug"``.
        log_file: Optional file that receives everything at DEBUG.
        quiet_libraries: Raise request-level loggers of the HTTP and
            OpenAI clients to WARNING.

    Returns:
        The package logger.

    Raises:
        ValueError: If ``level`` is an unknown level name.
    """
    level = _resolve_level(level)
    logger.setLevel(min(level, logging.DEBUG) if log_file is not None else level)

    if quiet_libraries:
        for name in _NOISY_LIBRARIES:
            logging.getLogger(name).setLevel(logging.WARNING)

    if logger.handlers:
        for handler in logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(level)
        return logger

    formatter = logging.Formatter(fmt=_FORMAT, datefmt="%H:%M:%S")

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
