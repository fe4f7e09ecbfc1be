from pathlib import Path

import pytest

from alarm_timer import sound
from alarm_timer.config import AppConfig
from alarm_timer.errors import PlaybackError, PlaybackInitError, TimerError
from alarm_timer.sound import (
    PlayerState,
    SimpleAudioBackend,
    SoundPlayer,
    is_supported_audio_file,
    load_handle,
    resolve_audio_path,
)

from conftest import FakeBackend


@pytest.fixture
def make_player(scheduler, config, backend):
    def make(audio_ref=None, **kwargs):
        kwargs.setdefault("backends", [backend])
        return SoundPlayer(audio_ref, scheduler=scheduler, config=config, **kwargs)

    return make


class TestResolve:
    def test_default_clip_is_written(self, config):
        path = resolve_audio_path(None, config)
        assert path == config.default_clip_path
        assert path.read_bytes().startswith(b"RIFF")

    def test_default_clip_unwritable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        config = AppConfig(sound_dir=blocker / "sounds")
        with pytest.raises(PlaybackInitError, match="cannot write default clip") as excinfo:
            resolve_audio_path(None, config)
        assert excinfo.value.path == config.default_clip_path
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_missing_file(self, config, tmp_path):
        with pytest.raises(PlaybackInitError) as excinfo:
            resolve_audio_path(tmp_path / "nope.mp3", config)
        assert excinfo.value.path == tmp_path / "nope.mp3"
        assert isinstance(excinfo.value, TimerError)

    def test_unsupported_extension(self, config, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("not audio")
        with pytest.raises(PlaybackInitError, match="unsupported"):
            resolve_audio_path(notes, config)

    def test_accepts_string_reference(self, config, audio_file):
        assert resolve_audio_path(str(audio_file), config) == audio_file

    @pytest.mark.parametrize("name, expected", [("a.WAV", True), ("b.flac", True), ("c.mid", False)])
    def test_supported_extensions(self, name, expected):
        assert is_supported_audio_file(Path(name)) is expected


class TestLoadHandle:
    def test_skips_unavailable_backends(self, audio_file):
        off = FakeBackend("off", available=False)
        on = FakeBackend("on")
        handle, backend = load_handle(audio_file, [off, on])
        assert backend is on
        assert on.handles == [handle]
        assert off.handles == []

    def test_falls_back_after_load_error(self, audio_file):
        broken = FakeBackend("broken", error=RuntimeError("bad codec"))
        good = FakeBackend("good")
        assert load_handle(audio_file, [broken, good]) == (good.handles[0], good)

    def test_collects_errors(self, audio_file):
        first = FakeBackend("first", error=RuntimeError("bad codec"))
        second = FakeBackend("second", error=ValueError("only WAV files are supported"))
        with pytest.raises(PlaybackInitError) as excinfo:
            load_handle(audio_file, [first, second])
        message = str(excinfo.value)
        assert "first: bad codec" in message
        assert "second: only WAV files are supported" in message

    def test_no_backend_available(self, audio_file):
        with pytest.raises(PlaybackInitError, match="no audio backend"):
            load_handle(audio_file, [FakeBackend(available=False)])

    def test_simpleaudio_rejects_non_wav(self, audio_file, monkeypatch):
        monkeypatch.setattr(sound, "sa", object())
        with pytest.raises(ValueError):
            SimpleAudioBackend().load(audio_file)


class TestSoundPlayer:
    def test_ready_after_construction(self, make_player):
        assert make_player().state is PlayerState.READY

    def test_construction_failure_propagates(self, make_player):
        with pytest.raises(PlaybackInitError):
            make_player(backends=[FakeBackend(error=RuntimeError("corrupt"))])

    def test_start_and_natural_completion(self, make_player, scheduler, backend):
        completed = []
        player = make_player(on_complete=lambda: completed.append(True))
        player.start_playback()
        handle = backend.handles[0]
        assert player.state is PlayerState.PLAYING
        assert handle.plays == 1

        scheduler.advance(500)
        assert player.state is PlayerState.PLAYING

        handle.finish()
        scheduler.advance(100)
        assert player.state is PlayerState.STOPPED
        assert completed == [True]
        assert scheduler.pending() == 0

        scheduler.advance(1000)
        assert completed == [True]

    def test_stop_before_start_is_safe(self, make_player):
        player = make_player()
        player.stop_playback()
        player.stop_playback()
        assert player.state is PlayerState.READY

    def test_stop_while_playing(self, make_player, scheduler, backend):
        completed = []
        player = make_player(on_complete=lambda: completed.append(True))
        player.start_playback()
        player.stop_playback()

        assert player.state is PlayerState.STOPPED
        assert not backend.handles[0].playing
        assert scheduler.pending() == 0
        assert completed == []

    def test_replay_after_stop(self, make_player, backend):
        player = make_player()
        player.start_playback()
        player.stop_playback()
        player.start_playback()
        assert player.state is PlayerState.PLAYING
        assert backend.handles[0].plays == 2

    def test_restart_while_playing_rewinds(self, make_player, scheduler, backend):
        player = make_player()
        player.start_playback()
        player.start_playback()
        handle = backend.handles[0]
        assert handle.plays == 2
        assert handle.stops == 1
        assert scheduler.pending() == 1

    def test_released_player_ignores_requests(self, make_player, backend):
        player = make_player()
        player.release()
        player.start_playback()
        player.stop_playback()
        assert player.state is PlayerState.UNBOUND
        assert backend.handles[0].plays == 0

    def test_falls_back_when_backend_refuses_to_play(self, make_player, scheduler):
        busy = FakeBackend("busy", refuse_play=True)
        spare = FakeBackend("spare")
        player = make_player(backends=[busy, spare])
        assert player.backend_name == "busy"

        player.start_playback()

        assert player.state is PlayerState.PLAYING
        assert player.backend_name == "spare"
        assert spare.handles[0].plays == 1
        assert scheduler.pending() == 1

    def test_reports_when_no_backend_can_play(self, make_player, scheduler):
        player = make_player(backends=[FakeBackend("busy", refuse_play=True)])
        with pytest.raises(PlaybackError, match="no free mixer channel"):
            player.start_playback()
        assert player.state is PlayerState.READY
        assert scheduler.pending() == 0

    def test_stopped_watch_never_reports_completion(self, make_player, scheduler, backend):
        completed = []
        player = make_player(on_complete=lambda: completed.append(True))
        player.start_playback()
        watch = player._check_completion
        token = player._play_token
        player.stop_playback()
        backend.handles[0].finish()

        watch(token)
        assert completed == []
        assert player.state is PlayerState.STOPPED
