"""Read-only application settings loaded from an optional JSON file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

APP_DIR = Path.home() / ".alarm_timer"
CONFIG_FILE = APP_DIR / "config.json"


@dataclass
class AppConfig:
    tick_interval_ms: int = 1000
    completion_poll_ms: int = 100
    sample_rate: int = 44100
    sound_dir: Path = field(default_factory=lambda: APP_DIR / "sounds")
    default_clip_name: str = "alarm.wav"
    window_title: str = "Countdown Timer"
    always_on_top: bool = True
    tray_icon: bool = True
    log_level: str = "INFO"

    @property
    def default_clip_path(self) -> Path:
        return self.sound_dir / self.default_clip_name

    def merged(self, overrides: dict) -> "AppConfig":
        """Return a copy with ``overrides`` applied, skipping unknown or mistyped keys."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for key, value in overrides.items():
            if key not in values:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            current = values[key]
            if isinstance(current, Path):
                if not isinstance(value, str):
                    logger.warning("Config key %r expects a path, got %r", key, value)
                    continue
                value = Path(value).expanduser()
            elif isinstance(current, bool):
                if not isinstance(value, bool):
                    logger.warning("Config key %r expects true/false, got %r", key, value)
                    continue
            elif isinstance(current, int):
                if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                    logger.warning("Config key %r expects a positive integer, got %r", key, value)
                    continue
            elif not isinstance(value, type(current)):
                logger.warning("Config key %r has the wrong type: %r", key, value)
                continue
            values[key] = value
        return AppConfig(**values)


def load_config(path: Optional[Path] = None) -> AppConfig:
    config = AppConfig()
    config_path = Path(path) if path is not None else CONFIG_FILE
    if not config_path.exists():
        return config
    try:
        data = json.loads(config_path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Unable to read config %s, using defaults: %s", config_path, exc)
        return config
    if not isinstance(data, dict):
        logger.warning("Config %s is not a JSON object, using defaults", config_path)
        return config
    return config.merged(data)
