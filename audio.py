"""
Audio module: resolves ayah audio sources and drives playback.

Local assets live under LOCAL_AUDIO_ROOT as {reciter}/{sura:03d}/{aya:03d}.mp3.
When a reciter/sura pair has no usable local audio, the remote URL table
is consulted instead.
"""

import asyncio
import logging
import shutil
import signal
import urllib.error
import urllib.request
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import ffmpeg

from config import FFPLAY_BIN, PROBE_TIMEOUT

logger = logging.getLogger(__name__)


class PlayerError(Exception):
    """Raised when a track cannot be started."""
    pass


# ---------------------------------------------------------------------------
# Source resolution
# ---------------------------------------------------------------------------

def _is_url(root: str) -> bool:
    return str(root).startswith(("http://", "https://"))


def build_audio_path(root: str, reciter: str, sura: int, aya: int) -> str:
    """Local asset path (or URL under a served root) for one ayah."""
    relative = f"{reciter}/{sura:03d}/{aya:03d}.mp3"
    if _is_url(root):
        return f"{str(root).rstrip('/')}/{relative}"
    return str(Path(root) / relative)


def fallback_audio_url(table: dict[str, Any], reciter: str, sura: int, aya: int) -> str | None:
    """Look up the remote URL for an ayah in the fallback table."""
    reciters = (table or {}).get("reciters")
    if not reciters:
        return None
    ayahs = (reciters.get(reciter) or {}).get(f"{sura:03d}")
    if not ayahs:
        return None
    aya_key = f"{aya:03d}"
    found = next((a for a in ayahs if a.get("ayah") == aya_key), None)
    return found.get("url") if found else None


def probe_local_audio(location: str) -> bool:
    """
    Check that a local asset exists and is audio.

    Served roots get a HEAD request that must answer with an audio
    Content-Type; files must be non-empty and carry an audio stream.
    Failures count as "unavailable" and are never raised.
    """
    if _is_url(location):
        request = urllib.request.Request(location, method="HEAD")
        try:
            with urllib.request.urlopen(request, timeout=PROBE_TIMEOUT) as response:
                content_type = response.headers.get("Content-Type", "")
                return "audio" in content_type
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.debug(f"Audio probe failed for {location}: {e}")
            return False

    path = Path(location)
    if not path.exists() or path.stat().st_size == 0:
        return False
    try:
        info = ffmpeg.probe(str(path))
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
        logger.warning(f"ffprobe rejected {path}: {stderr}")
        return False
    except FileNotFoundError:
        # ffprobe not installed; trust the file
        logger.debug("ffprobe not found, accepting non-empty file")
        return True
    return any(s.get("codec_type") == "audio" for s in info.get("streams", []))


class Availability(Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class AvailabilityCache:
    """Session cache of local-audio availability per (reciter, sura)."""

    def __init__(self):
        self._results: dict[tuple[str, int], bool] = {}

    def lookup(self, reciter: str, sura: int) -> Availability:
        result = self._results.get((reciter, sura))
        if result is None:
            return Availability.UNKNOWN
        return Availability.AVAILABLE if result else Availability.UNAVAILABLE

    def record(self, reciter: str, sura: int, available: bool) -> None:
        self._results[(reciter, sura)] = bool(available)

    def clear(self) -> None:
        self._results.clear()


class AudioResolver:
    """Picks a playable source for an ayah: local first, remote fallback."""

    def __init__(
        self,
        root: str,
        urls_table: dict[str, Any] | None = None,
        probe: Callable[[str], bool] = probe_local_audio,
        cache: AvailabilityCache | None = None,
    ):
        self.root = root
        self.urls_table = urls_table or {}
        self.probe = probe
        self.cache = cache or AvailabilityCache()

    def is_local_available(self, reciter: str, sura: int) -> bool:
        """Probe ayah 1 of the sura once; later calls hit the cache."""
        state = self.cache.lookup(reciter, sura)
        if state is not Availability.UNKNOWN:
            return state is Availability.AVAILABLE

        location = build_audio_path(self.root, reciter, sura, 1)
        try:
            available = bool(self.probe(location))
        except Exception as e:
            logger.warning(f"Availability probe error for {reciter}/{sura}: {e}")
            available = False
        return self._record(reciter, sura, available)

    async def check_local_available(self, reciter: str, sura: int) -> bool:
        """Same as is_local_available, with the probe run in a worker thread."""
        state = self.cache.lookup(reciter, sura)
        if state is not Availability.UNKNOWN:
            return state is Availability.AVAILABLE

        location = build_audio_path(self.root, reciter, sura, 1)
        try:
            available = bool(await asyncio.to_thread(self.probe, location))
        except Exception as e:
            logger.warning(f"Availability probe error for {reciter}/{sura}: {e}")
            available = False
        return self._record(reciter, sura, available)

    def _record(self, reciter: str, sura: int, available: bool) -> bool:
        self.cache.record(reciter, sura, available)
        logger.info(f"Local audio for {reciter}/{sura:03d}: {'yes' if available else 'no'}")
        return available

    def pending_suras(self, reciter: str, suras) -> list[int]:
        """Suras (in first-seen order) whose availability is still unknown."""
        pending = []
        for sura in suras:
            if sura not in pending and self.cache.lookup(reciter, sura) is Availability.UNKNOWN:
                pending.append(sura)
        return pending

    async def prime(self, reciter: str, suras) -> None:
        for sura in suras:
            await self.check_local_available(reciter, sura)

    def resolve(self, reciter: str, sura: int, aya: int) -> str:
        local = build_audio_path(self.root, reciter, sura, aya)
        if self.is_local_available(reciter, sura):
            return local
        return fallback_audio_url(self.urls_table, reciter, sura, aya) or local


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

class Player:
    """
    Minimal media element interface.

    The owner sets on_ended / on_error / on_state_change; a concrete
    player calls them from the event loop when a track finishes, fails,
    or flips between playing and paused.
    """

    def __init__(self):
        self.source: str | None = None
        self.rate: float = 1.0
        self.paused: bool = True
        self.on_ended: Callable[[], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None
        self.on_state_change: Callable[[bool], None] | None = None

    @property
    def has_source(self) -> bool:
        return bool(self.source)

    def play(self, source: str, rate: float = 1.0) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def resume(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def set_rate(self, rate: float) -> None:
        self.rate = rate

    def _set_paused(self, paused: bool) -> None:
        self.paused = paused
        if self.on_state_change:
            self.on_state_change(not paused)


def atempo_filter(rate: float) -> str:
    """ffmpeg atempo accepts 0.5-2.0 per stage; chain stages outside that."""
    stages = []
    while rate > 2.0:
        stages.append(2.0)
        rate /= 2.0
    while rate < 0.5:
        stages.append(0.5)
        rate /= 0.5
    stages.append(rate)
    return ",".join(f"atempo={s:g}" for s in stages)


class FFPlayPlayer(Player):
    """Plays one track at a time through an ffplay subprocess."""

    def __init__(self, binary: str = FFPLAY_BIN):
        super().__init__()
        self.binary = binary
        self._process: asyncio.subprocess.Process | None = None
        self._watcher: asyncio.Task | None = None

    def _command(self, source: str, rate: float) -> list[str]:
        return [
            self.binary, "-nodisp", "-autoexit", "-loglevel", "error",
            "-af", atempo_filter(rate), source,
        ]

    def play(self, source: str, rate: float = 1.0) -> None:
        self._kill()
        if shutil.which(self.binary) is None:
            raise PlayerError(f"{self.binary} not found")
        self.source = source
        self.rate = rate
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise PlayerError("ffplay needs a running event loop") from e
        self._watcher = loop.create_task(self._run(source, rate))
        self._set_paused(False)

    async def _run(self, source: str, rate: float) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command(source, rate),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Could not start {self.binary}: {e}")
            self._finish(PlayerError(str(e)))
            return

        _, stderr = await self._process.communicate()
        code = self._process.returncode
        self._process = None
        if code == 0:
            self._finish(None)
        else:
            message = stderr.decode(errors="replace").strip() if stderr else f"exit {code}"
            self._finish(PlayerError(f"{source}: {message}"))

    def _finish(self, error: Exception | None) -> None:
        self._watcher = None
        self._set_paused(True)
        if error is None:
            if self.on_ended:
                self.on_ended()
        elif self.on_error:
            self.on_error(error)

    def _signal(self, sig: int) -> bool:
        if self._process is None or self._process.returncode is not None:
            return False
        try:
            self._process.send_signal(sig)
        except ProcessLookupError:
            return False
        return True

    def pause(self) -> None:
        if self._signal(signal.SIGSTOP):
            self._set_paused(True)

    def resume(self) -> None:
        if self._signal(signal.SIGCONT):
            self._set_paused(False)

    def set_rate(self, rate: float) -> None:
        # ffplay cannot retime a running stream; applies from the next track
        self.rate = rate

    def _kill(self) -> None:
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
        if self._process is not None and self._process.returncode is None:
            self._signal(signal.SIGCONT)
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        self._process = None

    def stop(self) -> None:
        self._kill()
        self.source = None
        self._set_paused(True)
