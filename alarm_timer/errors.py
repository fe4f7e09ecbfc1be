from __future__ import annotations

from pathlib import Path
from typing import Optional


class TimerError(Exception):
    """Base class for countdown timer errors."""


class PlaybackError(TimerError):
    """An audio resource could not be played."""

    action = "play"

    def __init__(self, path: Optional[Path], reason: str) -> None:
        self.path = path
        self.reason = reason
        target = path if path else "audio"
        super().__init__(f"Unable to {self.action} {target}: {reason}")


class PlaybackInitError(PlaybackError):
    """An audio resource could not be opened for playback."""

    action = "open"
