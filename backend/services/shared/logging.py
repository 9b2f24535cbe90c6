"""Logging for BeatCut.

Every service logs under ``beatcut.<area>.<module>``; one call to
:func:`setup_logging` (or :func:`configure_from`) sets the level and handlers
for the whole tree.
"""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

_ROOT = "beatcut"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_LEVEL_ENV = "BEATCUT_LOG_LEVEL"


def _level(name: str) -> int:
    upper = str(name).upper()
    if upper not in _LEVELS:
        raise ValueError(f"Invalid log level: {name!r}. Must be one of {list(_LEVELS)}")
    return getattr(logging, upper)


def _with_format(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Point the ``beatcut`` logger at stderr and, optionally, a rotating file.

    Safe to call repeatedly: previous handlers are closed and replaced.

    Raises:
        ValueError: If ``level`` is not a standard level name.
    """
    numeric = _level(level)
    root = logging.getLogger(_ROOT)
    root.setLevel(numeric)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.addHandler(_with_format(logging.StreamHandler(), numeric))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        root.addHandler(_with_format(
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8",
            ),
            numeric,
        ))

    # Service records stop here; the root logger's handlers never see them
    root.propagate = False
    return root


def configure_from(config) -> logging.Logger:
    """Apply the ``logging`` section of a Config; ``$BEATCUT_LOG_LEVEL`` wins."""
    level = config.get_env(_LEVEL_ENV) or config.get("logging.level", "INFO")
    return setup_logging(
        level=level,
        log_file=config.get("logging.file"),
        max_bytes=int(config.get("logging.max_bytes", 10 * 1024 * 1024)),
        backup_count=int(config.get("logging.backup_count", 5)),
    )


def get_logger(name: str) -> logging.Logger:
    """``get_logger("video.timeline")`` -> ``beatcut.video.timeline``.

    Names already inside the namespace are returned unchanged.
    """
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT}.{name}")
