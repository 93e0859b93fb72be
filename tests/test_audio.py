"""
Tests for audio source resolution and availability probing.
"""

import asyncio
import sys
import threading

import ffmpeg
import pytest

import audio
from audio import (
    AudioResolver,
    Availability,
    AvailabilityCache,
    FFPlayPlayer,
    PlayerError,
    atempo_filter,
    build_audio_path,
    fallback_audio_url,
    probe_local_audio,
)
from navigation import Navigator, for_ayah
from playback import PlaybackEngine, PlaybackState


class TestPaths:
    def test_local_directory(self):
        assert build_audio_path("assets/audio", "qari", 2, 7) == "assets/audio/qari/002/007.mp3"

    def test_served_root(self):
        assert (
            build_audio_path("http://localhost:8000/audio/", "qari", 114, 6)
            == "http://localhost:8000/audio/qari/114/006.mp3"
        )

    def test_fallback_lookup(self, urls_table):
        url = fallback_audio_url(urls_table, "abdelbasset_abdessamad", 2, 2)
        assert url == "https://cdn.example.org/abdelbasset/002/002.mp3"

    @pytest.mark.parametrize("reciter,sura,aya", [
        ("abdelbasset_abdessamad", 2, 9),
        ("abdelbasset_abdessamad", 3, 1),
        ("someone_else", 2, 1),
    ])
    def test_fallback_misses(self, urls_table, reciter, sura, aya):
        assert fallback_audio_url(urls_table, reciter, sura, aya) is None

    def test_fallback_without_table(self):
        assert fallback_audio_url({}, "qari", 1, 1) is None
        assert fallback_audio_url(None, "qari", 1, 1) is None


class TestAvailabilityCache:
    def test_tri_state(self):
        cache = AvailabilityCache()
        assert cache.lookup("qari", 1) is Availability.UNKNOWN

        cache.record("qari", 1, True)
        cache.record("qari", 2, False)
        assert cache.lookup("qari", 1) is Availability.AVAILABLE
        assert cache.lookup("qari", 2) is Availability.UNAVAILABLE
        assert cache.lookup("other", 1) is Availability.UNKNOWN

        cache.clear()
        assert cache.lookup("qari", 1) is Availability.UNKNOWN


class TestResolver:
    def test_local_when_available(self, resolver, probe):
        assert resolver.resolve("abdelbasset_abdessamad", 2, 5) == "audio/abdelbasset_abdessamad/002/005.mp3"
        assert probe.calls == ["audio/abdelbasset_abdessamad/002/001.mp3"]

    def test_probe_result_is_cached(self, resolver, probe):
        for aya in range(1, 6):
            resolver.resolve("abdelbasset_abdessamad", 2, aya)
        resolver.resolve("abdelbasset_abdessamad", 3, 1)
        assert len(probe.calls) == 2

    def test_remote_then_local_when_unavailable(self, resolver, probe):
        probe.unavailable.add("audio/abdelbasset_abdessamad/002/001.mp3")
        assert resolver.resolve("abdelbasset_abdessamad", 2, 1) == "https://cdn.example.org/abdelbasset/002/001.mp3"
        assert resolver.resolve("abdelbasset_abdessamad", 2, 9) == "audio/abdelbasset_abdessamad/002/009.mp3"

    def test_probe_exception_counts_as_unavailable(self, urls_table):
        def broken(location):
            raise RuntimeError("network down")

        resolver = AudioResolver("audio", urls_table, probe=broken)
        assert resolver.is_local_available("abdelbasset_abdessamad", 2) is False
        assert resolver.cache.lookup("abdelbasset_abdessamad", 2) is Availability.UNAVAILABLE

    def test_pending_suras(self, resolver):
        resolver.cache.record("qari", 2, False)
        assert resolver.pending_suras("qari", [1, 1, 2, 3, 1]) == [1, 3]

    def test_prime_probes_in_worker_thread(self, resolver, probe):
        threads = []

        def probe_in_thread(location):
            threads.append(threading.current_thread())
            return probe(location)

        resolver.probe = probe_in_thread
        asyncio.run(resolver.prime("qari", [1, 2, 1]))

        assert len(probe.calls) == 2
        assert threading.main_thread() not in threads
        assert resolver.cache.lookup("qari", 2) is Availability.AVAILABLE

    def test_async_check_uses_cache(self, resolver, probe):
        resolver.cache.record("qari", 5, False)
        assert asyncio.run(resolver.check_local_available("qari", 5)) is False
        assert probe.calls == []


class TestProbe:
    def test_missing_file(self, tmp_path):
        assert probe_local_audio(str(tmp_path / "nope.mp3")) is False

    def test_empty_file(self, tmp_path):
        path = tmp_path / "001.mp3"
        path.write_bytes(b"")
        assert probe_local_audio(str(path)) is False

    def test_file_with_audio_stream(self, tmp_path, monkeypatch):
        path = tmp_path / "001.mp3"
        path.write_bytes(b"ID3")
        monkeypatch.setattr(audio.ffmpeg, "probe", lambda p: {"streams": [{"codec_type": "audio"}]})
        assert probe_local_audio(str(path)) is True

    def test_file_without_audio_stream(self, tmp_path, monkeypatch):
        path = tmp_path / "001.mp3"
        path.write_bytes(b"<html>")
        monkeypatch.setattr(audio.ffmpeg, "probe", lambda p: {"streams": [{"codec_type": "video"}]})
        assert probe_local_audio(str(path)) is False

    def test_file_rejected_by_ffprobe(self, tmp_path, monkeypatch):
        path = tmp_path / "001.mp3"
        path.write_bytes(b"garbage")

        def fail(p):
            raise ffmpeg.Error("ffprobe", b"", b"Invalid data found")

        monkeypatch.setattr(audio.ffmpeg, "probe", fail)
        assert probe_local_audio(str(path)) is False

    def test_http_head_checks_content_type(self, monkeypatch):
        class Response:
            def __init__(self, content_type):
                self.headers = {"Content-Type": content_type}

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

        seen = []

        def fake_urlopen(request, timeout):
            seen.append(request.get_method())
            return Response("audio/mpeg" if request.full_url.endswith("001.mp3") else "text/html")

        monkeypatch.setattr(audio.urllib.request, "urlopen", fake_urlopen)
        assert probe_local_audio("http://localhost/audio/q/001/001.mp3") is True
        assert probe_local_audio("http://localhost/audio/q/001/index.html") is False
        assert seen == ["HEAD", "HEAD"]

    def test_http_error_is_unavailable(self, monkeypatch):
        def fake_urlopen(request, timeout):
            raise audio.urllib.error.URLError("refused")

        monkeypatch.setattr(audio.urllib.request, "urlopen", fake_urlopen)
        assert probe_local_audio("http://localhost/audio/q/001/001.mp3") is False


class TestFFPlay:
    @pytest.mark.parametrize("rate,expected", [
        (1.0, "atempo=1"),
        (1.5, "atempo=1.5"),
        (3.0, "atempo=2,atempo=1.5"),
        (0.25, "atempo=0.5,atempo=0.5"),
    ])
    def test_atempo_filter(self, rate, expected):
        assert atempo_filter(rate) == expected

    def test_command(self):
        player = FFPlayPlayer(binary="ffplay")
        cmd = player._command("a.mp3", 1.25)
        assert cmd[0] == "ffplay"
        assert "-nodisp" in cmd and "-autoexit" in cmd
        assert cmd[-1] == "a.mp3"
        assert cmd[cmd.index("-af") + 1] == "atempo=1.25"

    def test_missing_binary(self):
        player = FFPlayPlayer(binary="definitely-not-ffplay")
        with pytest.raises(PlayerError):
            player.play("a.mp3")
        assert not player.has_source

    def test_stop_without_track(self):
        player = FFPlayPlayer()
        states = []
        player.on_state_change = states.append
        player.stop()
        assert player.paused
        assert states == [False]


FAKE_FFPLAY = """#!/bin/sh
for last; do :; done
case "$last" in
  *fail*) echo boom >&2; exit 1 ;;
  *slow*) exec sleep 5 ;;
esac
exit 0
"""


@pytest.fixture
def fake_ffplay(tmp_path):
    script = tmp_path / "ffplay"
    script.write_text(FAKE_FFPLAY)
    script.chmod(0o755)
    return str(script)


def recording_player(binary, events, done=None):
    player = FFPlayPlayer(binary=binary)

    def ended():
        events.append("ended")
        if done:
            done.set()

    def failed(error):
        events.append(("error", str(error)))
        if done:
            done.set()

    player.on_ended = ended
    player.on_error = failed
    return player


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell and job-control signals")
class TestFFPlayLifecycle:
    def test_clean_exit_reports_end(self, fake_ffplay):
        events = []

        async def scenario():
            done = asyncio.Event()
            player = recording_player(fake_ffplay, events, done)
            player.play("a.mp3", 1.5)
            assert not player.paused
            await asyncio.wait_for(done.wait(), 5)
            return player

        player = asyncio.run(scenario())
        assert events == ["ended"]
        assert player.paused

    def test_failed_exit_reports_stderr(self, fake_ffplay):
        events = []

        async def scenario():
            done = asyncio.Event()
            recording_player(fake_ffplay, events, done).play("fail.mp3")
            await asyncio.wait_for(done.wait(), 5)

        asyncio.run(scenario())
        assert events == [("error", "fail.mp3: boom")]

    def test_stop_cancels_pending_completion(self, fake_ffplay):
        events = []

        async def scenario():
            player = recording_player(fake_ffplay, events)
            player.play("slow.mp3")
            await asyncio.sleep(0.2)
            assert player._process is not None
            player.stop()
            await asyncio.sleep(0.3)
            return player

        player = asyncio.run(scenario())
        assert events == []
        assert player._process is None
        assert player._watcher is None
        assert not player.has_source

    def test_new_track_replaces_running_one(self, fake_ffplay):
        events = []

        async def scenario():
            done = asyncio.Event()
            player = recording_player(fake_ffplay, events, done)
            player.play("slow.mp3")
            await asyncio.sleep(0.2)
            player.play("b.mp3")
            await asyncio.wait_for(done.wait(), 5)
            return player

        player = asyncio.run(scenario())
        assert events == ["ended"]
        assert player.source == "b.mp3"

    def test_pause_and_resume(self, fake_ffplay):
        states = []

        async def scenario():
            player = recording_player(fake_ffplay, [])
            player.on_state_change = states.append
            player.play("slow.mp3")
            await asyncio.sleep(0.2)
            player.pause()
            paused = player.paused
            player.resume()
            resumed = not player.paused
            player.stop()
            return paused, resumed

        assert asyncio.run(scenario()) == (True, True)
        assert states == [True, False, True, False]

    def test_engine_drives_queue_through_ffplay(self, fake_ffplay, store, resolver, settings):
        state = PlaybackState()
        navigator = Navigator(store, state, settings)
        player = FFPlayPlayer(binary=fake_ffplay)
        engine = PlaybackEngine(store, state, resolver, player, settings, navigator)
        settings.update({"playMode": "aya", "repeat": "2", "playModeRepeat": "1"})
        navigator.apply(for_ayah(store.find(2, 3)))
        started = []
        engine.on_ayah_started = lambda ayah, page_changed: started.append(ayah.aya_no)

        async def scenario():
            engine.play()
            for _ in range(100):
                await asyncio.sleep(0.05)
                if not state.play_queue:
                    break

        asyncio.run(scenario())
        assert state.play_queue == []
        assert started == [3, 3]
        assert state.is_playing is False
        assert player.source is None
