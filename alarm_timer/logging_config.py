"""Logging configuration helpers for the countdown timer."""

from __future__ import annotations

import logging
from logging import Logger
from typing import Union


def configure_logging(level: Union[int, str] = logging.INFO) -> Logger:
    """Configure basic logging for the application and return the package logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("alarm_timer")
    logger.setLevel(level)
    return logger
