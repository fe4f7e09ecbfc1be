"""Countdown state and the controller that turns expiry into an alarm."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import AppConfig
from .sound import AudioReference, SoundPlayer

logger = logging.getLogger(__name__)


def format_time(total_seconds: int) -> str:
    """Render seconds as ``HH:MM:SS``; hours grow past two digits rather than wrap."""
    total = max(int(total_seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_time_field(text: Optional[str]) -> int:
    """Read one input field; blank, non-numeric and negative entries count as 0."""
    if text is None:
        return 0
    text = text.strip()
    try:
        value = int(text)
    except ValueError:
        return 0
    return max(value, 0)


def duration_from_fields(hours: int, minutes: int, seconds: int) -> int:
    return max(hours, 0) * 3600 + max(minutes, 0) * 60 + max(seconds, 0)


class TimerStatus(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CountdownState:
    remaining_seconds: int = 0
    status: TimerStatus = TimerStatus.IDLE

    @property
    def running(self) -> bool:
        return self.status is TimerStatus.RUNNING

    @property
    def formatted(self) -> str:
        return format_time(self.remaining_seconds)


PlayerFactory = Callable[[AudioReference], SoundPlayer]
StateCallback = Callable[[CountdownState], None]


class TimerController:
    """Runs one countdown at a time and starts the alarm when it reaches zero.

    ``scheduler`` is anything with ``after(ms, callback)`` and
    ``after_cancel(id)``, typically the Tk root. ``player_factory`` builds the
    :class:`SoundPlayer` for a run; it is called before the run begins so a
    bad audio reference is reported by :meth:`start` itself. All state changes
    happen under one lock so ticks delivered on scheduler threads cannot
    interleave with :meth:`start` or :meth:`stop`.
    """

    def __init__(
        self,
        scheduler,
        player_factory: Optional[PlayerFactory] = None,
        *,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.scheduler = scheduler
        self.config = config or AppConfig()
        self._player_factory = player_factory or self._default_player
        self._state = CountdownState()
        self._subscribers: List[StateCallback] = []
        self._tick_id = None
        self._generation = 0
        self._player: Optional[SoundPlayer] = None
        self._closed = False
        self._lock = threading.RLock()

    def _default_player(self, audio_ref: AudioReference) -> SoundPlayer:
        return SoundPlayer(audio_ref, scheduler=self.scheduler, config=self.config)

    @property
    def state(self) -> CountdownState:
        return self._state

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    @property
    def status(self) -> TimerStatus:
        return self._state.status

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def player(self) -> Optional[SoundPlayer]:
        return self._player

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """Call ``callback`` with every new state; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def start(self, duration_seconds: int, audio_ref: AudioReference = None) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("TimerController has been closed")
            duration = max(int(duration_seconds), 0)
            player = self._player_factory(audio_ref)

            self._cancel_tick()
            if self._player is not None:
                self._player.release()
            self._player = player
            self._generation += 1
            logger.info("Countdown started for %s", format_time(duration))

            if duration == 0:
                self._expire()
                return
            self._set_state(CountdownState(duration, TimerStatus.RUNNING))
            self._schedule_tick(self._generation)

    def stop(self) -> None:
        with self._lock:
            self._cancel_tick()
            self._generation += 1
            if self._player is not None:
                self._player.stop_playback()
            if self._state.status is not TimerStatus.IDLE:
                logger.info("Countdown stopped with %s left", self._state.formatted)
            self._set_state(CountdownState(0, TimerStatus.IDLE))

    def close(self) -> None:
        """Tear down: stop the run, free the player and drop subscribers."""
        with self._lock:
            if self._closed:
                return
            self.stop()
            if self._player is not None:
                self._player.release()
                self._player = None
            self._subscribers.clear()
            self._closed = True

    def _schedule_tick(self, generation: int) -> None:
        self._tick_id = self.scheduler.after(
            self.config.tick_interval_ms, lambda: self._tick(generation)
        )

    def _cancel_tick(self) -> None:
        if self._tick_id is not None:
            self.scheduler.after_cancel(self._tick_id)
            self._tick_id = None

    def _tick(self, generation: int) -> None:
        with self._lock:
            # A callback from a cancelled run may still be delivered; it must not touch state.
            if generation != self._generation or not self._state.running:
                return
            self._tick_id = None
            remaining = self._state.remaining_seconds - 1
            logger.debug("Tick: %d seconds left", remaining)
            if remaining > 0:
                self._set_state(CountdownState(remaining, TimerStatus.RUNNING))
                self._schedule_tick(generation)
                return
            self._expire()

    def _expire(self) -> None:
        # The expired run's own player must sound before subscribers can start a new run.
        player = self._player
        self._state = CountdownState(0, TimerStatus.EXPIRED)
        logger.info("Countdown expired")
        try:
            if player is not None:
                player.start_playback()
        finally:
            self._notify(self._state)

    def _set_state(self, state: CountdownState) -> None:
        if state == self._state:
            return
        self._state = state
        self._notify(state)

    def _notify(self, state: CountdownState) -> None:
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("State subscriber %r failed", callback)
