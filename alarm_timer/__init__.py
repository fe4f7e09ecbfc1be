"""Countdown timer that plays an alarm clip when it reaches zero."""

from .config import AppConfig, load_config
from .countdown import (
    CountdownState,
    TimerController,
    TimerStatus,
    duration_from_fields,
    format_time,
    parse_time_field,
)
from .errors import PlaybackError, PlaybackInitError, TimerError
from .scheduling import ThreadingScheduler
from .sound import PlayerState, SoundPlayer

__all__ = [
    "AppConfig",
    "CountdownState",
    "PlaybackError",
    "PlaybackInitError",
    "PlayerState",
    "SoundPlayer",
    "ThreadingScheduler",
    "TimerController",
    "TimerError",
    "TimerStatus",
    "duration_from_fields",
    "format_time",
    "load_config",
    "parse_time_field",
]
