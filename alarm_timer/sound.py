"""Single-clip alarm playback on top of pygame's mixer or simpleaudio."""

from __future__ import annotations

import enum
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .config import AppConfig
from .errors import PlaybackError, PlaybackInitError
from .tones import ensure_default_clip

try:
    from pygame import error as pygame_error, mixer  # type: ignore
except ImportError:  # pragma: no cover
    pygame_error = None
    mixer = None

try:
    import simpleaudio as sa  # type: ignore
except ImportError:  # pragma: no cover
    sa = None

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {
    ".wav",
    ".mp3",
    ".ogg",
    ".oga",
    ".flac",
    ".aac",
    ".m4a",
    ".m4r",
    ".wma",
    ".aif",
    ".aiff",
    ".aifc",
}
AUDIO_FILE_TYPES = [
    ("Audio files", " ".join(f"*{ext}" for ext in sorted(AUDIO_EXTENSIONS))),
    ("All files", "*.*"),
]

AudioReference = Optional[Union[str, Path]]


def is_supported_audio_file(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


class MixerHandle:
    def __init__(self, sound: "mixer.Sound", path: Path) -> None:
        self._sound = sound
        self._path = path

    def play(self) -> None:
        if self._sound.play(loops=0) is None:
            raise PlaybackError(self._path, "no free mixer channel")

    def stop(self) -> None:
        self._sound.stop()

    def is_playing(self) -> bool:
        return self._sound.get_num_channels() > 0


class MixerBackend:
    name = "pygame.mixer"
    min_channels = 4

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = sample_rate

    def available(self) -> bool:
        """Start the mixer on first use; False when pygame or the audio device is missing."""
        if mixer is None:
            return False
        if mixer.get_init():
            return True
        try:  # pragma: no cover - needs an audio device
            mixer.init(frequency=self.sample_rate, size=-16, channels=2)
        except pygame_error as exc:  # pragma: no cover
            logger.warning("pygame mixer unavailable: %s", exc)
            return False
        mixer.set_num_channels(max(mixer.get_num_channels(), self.min_channels))
        return True

    def load(self, path: Path) -> MixerHandle:
        return MixerHandle(mixer.Sound(str(path)), path)

class SimpleAudioHandle:
    def __init__(self, wave_obj: "sa.WaveObject") -> None:
        self._wave_obj = wave_obj
        self._play_obj: Optional["sa.PlayObject"] = None

    def play(self) -> None:
        self._play_obj = self._wave_obj.play()

    def stop(self) -> None:
        if self._play_obj is not None:
            self._play_obj.stop()
            self._play_obj = None

    def is_playing(self) -> bool:
        return self._play_obj is not None and self._play_obj.is_playing()


class SimpleAudioBackend:
    name = "simpleaudio"

    def available(self) -> bool:
        return sa is not None

    def load(self, path: Path) -> SimpleAudioHandle:
        if path.suffix.lower() != ".wav":
            raise ValueError("only WAV files are supported")
        return SimpleAudioHandle(sa.WaveObject.from_wave_file(str(path)))


def default_backends(config: AppConfig) -> list:
    return [MixerBackend(config.sample_rate), SimpleAudioBackend()]


def resolve_audio_path(audio_ref: AudioReference, config: AppConfig) -> Path:
    """Map an audio reference to a playable file, falling back to the default clip."""
    if audio_ref is None:
        try:
            return ensure_default_clip(config)
        except OSError as exc:
            raise PlaybackInitError(config.default_clip_path, f"cannot write default clip ({exc})") from exc
    path = Path(audio_ref).expanduser()
    if not path.is_file():
        raise PlaybackInitError(path, "file not found")
    if not is_supported_audio_file(path):
        raise PlaybackInitError(path, "unsupported audio format")
    return path


def load_handle(path: Path, backends: list) -> Tuple[object, object]:
    """Return ``(handle, backend)`` from the first backend able to load ``path``."""
    errors: List[str] = []
    for backend in backends:
        if not backend.available():
            continue
        try:
            handle = backend.load(path)
        except Exception as exc:  # backend libraries raise their own error types
            errors.append(f"{backend.name}: {exc}")
            continue
        logger.debug("Loaded %s via %s", path, backend.name)
        return handle, backend
    if not errors:
        raise PlaybackInitError(path, "no audio backend is available")
    raise PlaybackInitError(path, "; ".join(errors))


class PlayerState(enum.Enum):
    UNBOUND = "unbound"
    READY = "ready"
    PLAYING = "playing"
    STOPPED = "stopped"


class SoundPlayer:
    """Plays one clip to completion or until stopped.

    While playing, the handle is polled through ``scheduler`` so that natural
    completion moves the player to ``STOPPED`` and fires ``on_complete``
    without the caller having to poll. If the loaded backend refuses to play,
    the clip is reloaded with the next backend in line.
    """

    def __init__(
        self,
        audio_ref: AudioReference = None,
        *,
        scheduler,
        config: Optional[AppConfig] = None,
        backends: Optional[list] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.scheduler = scheduler
        self.on_complete = on_complete
        self.audio_ref = audio_ref
        self._lock = threading.RLock()
        self._state = PlayerState.UNBOUND
        self._handle = None
        self._backend = None
        self._watch_id = None
        self._play_token = 0

        self.path = resolve_audio_path(audio_ref, self.config)
        self._backends = list(backends) if backends is not None else default_backends(self.config)
        self._handle, self._backend = load_handle(self.path, self._backends)
        self._state = PlayerState.READY

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlayerState.PLAYING

    @property
    def backend_name(self) -> Optional[str]:
        return self._backend.name if self._backend is not None else None

    def start_playback(self) -> None:
        with self._lock:
            if self._handle is None:
                logger.warning("Ignoring playback request for %s, nothing is loaded", self.path)
                return
            self._cancel_watch()
            if self._state is PlayerState.PLAYING:
                self._stop_handle()
            self._play_with_fallback()
            self._state = PlayerState.PLAYING
            self._play_token += 1
            logger.info("Playing alarm %s via %s", self.path.name, self._backend.name)
            self._schedule_watch(self._play_token)

    def stop_playback(self) -> None:
        with self._lock:
            self._cancel_watch()
            self._play_token += 1
            if self._handle is None:
                return
            self._stop_handle()
            if self._state is PlayerState.PLAYING:
                self._state = PlayerState.STOPPED
                logger.info("Stopped alarm %s", self.path.name)

    def release(self) -> None:
        with self._lock:
            self.stop_playback()
            self._handle = None
            self._backend = None
            self._state = PlayerState.UNBOUND

    def _play_with_fallback(self) -> None:
        while True:
            try:
                self._handle.play()
                return
            except PlaybackError as exc:
                logger.warning("%s could not play %s: %s", self._backend.name, self.path.name, exc.reason)
                remaining = self._backends[self._backends.index(self._backend) + 1:]
                try:
                    handle, backend = load_handle(self.path, remaining)
                except PlaybackInitError as init_exc:
                    raise PlaybackError(self.path, f"{exc.reason}; {init_exc.reason}") from exc
                self._handle, self._backend = handle, backend

    def _stop_handle(self) -> None:
        try:
            self._handle.stop()
        except Exception as exc:  # pragma: no cover - depends on audio device
            logger.debug("Ignoring error while stopping %s: %s", self.path, exc)

    def _schedule_watch(self, token: int) -> None:
        self._watch_id = self.scheduler.after(
            self.config.completion_poll_ms, lambda: self._check_completion(token)
        )

    def _cancel_watch(self) -> None:
        if self._watch_id is not None:
            self.scheduler.after_cancel(self._watch_id)
            self._watch_id = None

    def _check_completion(self, token: int) -> None:
        with self._lock:
            if token != self._play_token or self._state is not PlayerState.PLAYING:
                return
            self._watch_id = None
            if self._handle.is_playing():
                self._schedule_watch(token)
                return
            self._stop_handle()
            self._state = PlayerState.STOPPED
            logger.info("Alarm %s finished", self.path.name)
        # Outside the lock: the callback may call back into the player or its owner.
        if self.on_complete:
            self.on_complete()
