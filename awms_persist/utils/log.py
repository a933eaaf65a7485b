"""
RESPONSIBILITIES
- Provide ``awms.persist.<name>`` loggers for the stores and tools.
PROCESS OVERVIEW
1. Callers request get_logger(name) once per module or store.
2. The core awms logger is created on first use; its handlers decide where records go.
"""

from __future__ import annotations

import logging

from awms.core.logger import get_logger as core_get_logger


def get_logger(name: str) -> logging.Logger:
    return core_get_logger().getChild(f"persist.{name}")
