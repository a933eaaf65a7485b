from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import sys


_LOGGER: logging.Logger | None = None


def _default_log_dir() -> Path:
    return Path.home() / "AWMS" / "logs"


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the configured application logger writing to <log_dir>/app.log.

    Creates the directory if needed. Uses rotating file handler.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    if log_dir is None:
        base = _default_log_dir()
    else:
        base = Path(log_dir)
    base.mkdir(parents=True, exist_ok=True)
    log_path = base / "app.log"

    logger = logging.getLogger("awms")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    logger.addHandler(console)

    _LOGGER = logger
    return logger


def configure_logger(log_dir: Path) -> logging.Logger:
    """Point the application logger at *log_dir*, replacing earlier handlers.

    Module-level ``LOGGER`` references stay valid: they hold the same named
    ``awms`` logger, only its handlers change.
    """
    reset_logger()
    return get_logger(log_dir)


def set_level(level: str | int) -> None:
    """Apply a level (name or number) to the application logger."""

    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    get_logger().setLevel(level)


def reset_logger() -> None:
    """Drop the cached logger so the next call reconfigures it."""

    global _LOGGER
    if _LOGGER is not None:
        for handler in _LOGGER.handlers[:]:
            _LOGGER.removeHandler(handler)
            handler.close()
    _LOGGER = None
