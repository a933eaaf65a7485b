"""Logging helper for the awms_io package."""

# Module responsibilities:
# - Hand out ``awms.io.<name>`` loggers that share the application handlers.
# - Keep parser and CSV writer records in the same app.log as the rest of AWMS.

from __future__ import annotations

import logging

from awms.core.logger import get_logger as core_get_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger scoped under ``awms.io``.

    Records propagate to the core ``awms`` logger, so they follow wherever the
    CLI points its log directory.
    """

    return core_get_logger().getChild(f"io.{name}")
