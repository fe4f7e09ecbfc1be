import itertools
from pathlib import Path

import pytest

from alarm_timer.config import AppConfig
from alarm_timer.countdown import TimerController
from alarm_timer.errors import PlaybackError
from alarm_timer.sound import SoundPlayer


class FakeScheduler:
    """Manual clock with the after/after_cancel interface of a Tk root."""

    def __init__(self):
        self.now = 0
        self._ids = itertools.count(1)
        self._pending = {}

    def after(self, ms, func):
        after_id = f"after#{next(self._ids)}"
        self._pending[after_id] = (self.now + ms, after_id, func)
        return after_id

    def after_cancel(self, after_id):
        self._pending.pop(after_id, None)

    def pending(self):
        return len(self._pending)

    def advance(self, ms):
        target = self.now + ms
        while True:
            due = [entry for entry in self._pending.values() if entry[0] <= target]
            if not due:
                break
            when, after_id, func = min(due, key=lambda entry: (entry[0], int(entry[1].split("#")[1])))
            del self._pending[after_id]
            self.now = when
            func()
        self.now = target


class FakeHandle:
    def __init__(self, path, refuse_play=False):
        self.path = path
        self.refuse_play = refuse_play
        self.plays = 0
        self.stops = 0
        self.playing = False

    def play(self):
        if self.refuse_play:
            raise PlaybackError(self.path, "no free mixer channel")
        self.plays += 1
        self.playing = True

    def stop(self):
        self.stops += 1
        self.playing = False

    def is_playing(self):
        return self.playing

    def finish(self):
        self.playing = False


class FakeBackend:
    def __init__(self, name="fake", available=True, error=None, refuse_play=False):
        self.name = name
        self.refuse_play = refuse_play
        self._available = available
        self.error = error
        self.handles = []

    def available(self):
        return self._available

    def load(self, path):
        if self.error is not None:
            raise self.error
        handle = FakeHandle(Path(path), refuse_play=self.refuse_play)
        self.handles.append(handle)
        return handle


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def config(tmp_path):
    return AppConfig(sound_dir=tmp_path / "sounds")


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "song.mp3"
    path.write_bytes(b"ID3")
    return path


@pytest.fixture
def player_refs():
    return []


@pytest.fixture
def controller(scheduler, config, backend, player_refs):
    def factory(audio_ref):
        player_refs.append(audio_ref)
        return SoundPlayer(audio_ref, scheduler=scheduler, config=config, backends=[backend])

    ctl = TimerController(scheduler, factory, config=config)
    yield ctl
    ctl.close()
