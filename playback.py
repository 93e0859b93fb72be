"""
Playback queue engine.

A play mode picks the unit to voice (one ayah, the page, the sura or the
juz). The engine walks that queue ayah by ayah with two repeat levels:
each ayah is repeated `repeat` times, then the whole unit is repeated
`playModeRepeat` times before playback stops.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from audio import AudioResolver, Player, PlayerError
from config import SPEEDS
from data import AyahRecord, QuranStore
from navigation import Navigator
from settings import Settings

logger = logging.getLogger(__name__)

INFINITE = math.inf


class PlaybackError(Exception):
    """Base class for playback problems shown to the user as a notice."""

    notice = "error"


class MissingSelectionError(PlaybackError):
    """No reciter or no ayah selected."""

    def __init__(self, what: str):
        super().__init__(f"No {what} selected")
        self.what = what
        self.notice = f"choose_{what}"


class EmptyQueueError(PlaybackError):
    notice = "no_audio"


class PlayMode(str, Enum):
    AYA = "aya"
    PAGE = "page"
    SURA = "sura"
    JUZ = "juz"

    @classmethod
    def parse(cls, value: str | None) -> "PlayMode":
        if isinstance(value, cls):
            return value
        if value == "single-ayah":
            return cls.AYA
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown play mode {value!r}, using sura")
            return cls.SURA


def parse_repeat(value) -> int | float:
    """Parse a repeat target: a positive integer or "infinite"."""
    if value is None:
        return 1
    if isinstance(value, (int, float)):
        return value if value >= 1 else 1
    text = str(value).strip().lower()
    if text in ("infinite", "inf", "∞"):
        return INFINITE
    try:
        return max(1, int(text))
    except ValueError:
        return 1


@dataclass
class PlaybackState:
    """Mutable session state shared by the engine and the navigator."""
    play_queue: list[AyahRecord] = field(default_factory=list)
    current_play_index: int = 0
    current_repeat_count: int = 0
    current_play_mode_repeat_count: int = 0
    current_ayah: AyahRecord | None = None
    current_page: int = 1
    current_sura: int = 1
    current_juz: int = 1
    reciter: str = ""
    is_playing: bool = False

    @property
    def playing_ayah(self) -> AyahRecord | None:
        if 0 <= self.current_play_index < len(self.play_queue):
            return self.play_queue[self.current_play_index]
        return None

    def reset_playback(self) -> None:
        self.play_queue = []
        self.current_play_index = 0
        self.current_repeat_count = 0
        self.current_play_mode_repeat_count = 0
        self.is_playing = False


def build_queue(
    store: QuranStore,
    mode: PlayMode,
    current_ayah: AyahRecord | None,
    page: int,
    sura: int,
    juz: int,
    full: bool = False,
) -> list[AyahRecord]:
    """
    Ayahs to voice for *mode*, in canonical order.

    Unless *full* is set the queue starts at *current_ayah*; an ayah that is
    not part of the unit leaves the whole unit in place.
    """
    mode = PlayMode.parse(mode)
    if mode is PlayMode.AYA:
        return [current_ayah] if current_ayah else []

    if mode is PlayMode.PAGE:
        ayahs = store.ayahs_on_page(page)
    elif mode is PlayMode.SURA:
        ayahs = store.ayahs_in_sura(sura)
    else:
        ayahs = store.ayahs_in_juz(juz)

    if full or current_ayah is None:
        return ayahs
    start = next((i for i, a in enumerate(ayahs) if a.id == current_ayah.id), None)
    if start is None:
        logger.warning(
            f"Ayah {current_ayah.sura_no}:{current_ayah.aya_no} not in {mode.value} queue, playing from start"
        )
        return ayahs
    return ayahs[start:]


class PlaybackEngine:
    def __init__(
        self,
        store: QuranStore,
        state: PlaybackState,
        resolver: AudioResolver,
        player: Player,
        settings: Settings,
        navigator: Navigator,
    ):
        self.store = store
        self.state = state
        self.resolver = resolver
        self.player = player
        self.settings = settings
        self.navigator = navigator

        # Called with (ayah, page_changed) whenever a queue item starts
        self.on_ayah_started: Callable[[AyahRecord, bool], None] | None = None
        # Pending availability probe that will start or resume playback
        self.starting: asyncio.Task | None = None

        player.on_ended = self.on_track_ended
        player.on_error = self.on_track_failed
        player.on_state_change = self._on_player_state

    # -- configuration ------------------------------------------------------

    @property
    def mode(self) -> PlayMode:
        return PlayMode.parse(self.settings.get("playMode"))

    @property
    def item_repeat(self) -> int | float:
        return parse_repeat(self.settings.get("repeat"))

    @property
    def queue_repeat(self) -> int | float:
        return parse_repeat(self.settings.get("playModeRepeat", self.settings.get("repeat")))

    @property
    def speed(self) -> float:
        return self.settings.get_float("speed", 1.0)

    def _build(self, full: bool = False) -> list[AyahRecord]:
        st = self.state
        return build_queue(
            self.store, self.mode, st.current_ayah,
            st.current_page, st.current_sura, st.current_juz, full=full,
        )

    # -- transport ----------------------------------------------------------

    def play(self) -> None:
        """Start playback from the current ayah according to the play mode."""
        reciter = self.settings.get("reciter")
        if not reciter:
            raise MissingSelectionError("reciter")
        if self.state.current_ayah is None:
            raise MissingSelectionError("ayah")

        self._cancel_start()
        self.state.reciter = reciter
        queue = self._build()
        if not queue:
            raise EmptyQueueError("Nothing to play")

        self.state.play_queue = queue
        self.state.current_play_index = 0
        self.state.current_repeat_count = 0
        self.state.current_play_mode_repeat_count = 0
        logger.info(f"Playing {len(queue)} ayah(s) in {self.mode.value} mode with {reciter}")
        self._play_current()

    def _ready_or_defer(self, then: Callable[[], None]) -> bool:
        """
        True when every sura left in the queue has a known local-audio state.
        Otherwise the unknown ones are probed in a worker thread and *then*
        runs once they are cached. Without a running loop the probe happens
        inline on the first resolve.
        """
        st = self.state
        pending = self.resolver.pending_suras(
            st.reciter, [a.sura_no for a in st.play_queue[st.current_play_index:]]
        )
        if not pending:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return True
        self._cancel_start()
        self.starting = loop.create_task(self._probe_then(st.reciter, pending, then))
        return False

    async def _probe_then(self, reciter: str, suras: list[int], then: Callable[[], None]) -> None:
        await self.resolver.prime(reciter, suras)
        self.starting = None
        then()

    def _cancel_start(self) -> None:
        if self.starting is not None:
            self.starting.cancel()
            self.starting = None

    def _play_current(self) -> None:
        if not self._ready_or_defer(self._play_current):
            return
        st = self.state
        while st.current_play_index < len(st.play_queue):
            ayah = st.play_queue[st.current_play_index]
            source = self.resolver.resolve(st.reciter, ayah.sura_no, ayah.aya_no)
            self._move_to(ayah)
            try:
                self.player.play(source, self.speed)
            except PlayerError as e:
                logger.error(f"Error playing {ayah.sura_no}:{ayah.aya_no}: {e}")
                st.current_repeat_count = 0
                st.current_play_index += 1
                continue
            st.is_playing = True
            return
        self.stop()

    def _move_to(self, ayah: AyahRecord) -> None:
        page_changed = self.navigator.follow(ayah)
        if self.on_ayah_started:
            self.on_ayah_started(ayah, page_changed)

    def on_track_ended(self) -> None:
        """Completion handler: repeat the ayah, advance, repeat the queue, or stop."""
        st = self.state
        if not st.play_queue:
            return

        st.current_repeat_count += 1
        if st.current_repeat_count < self.item_repeat:
            self._play_current()
            return

        st.current_repeat_count = 0
        st.current_play_index += 1
        if st.current_play_index < len(st.play_queue):
            self._play_current()
            return

        st.current_play_mode_repeat_count += 1
        if st.current_play_mode_repeat_count < self.queue_repeat:
            st.play_queue = self._build(full=True)
            st.current_play_index = 0
            st.current_repeat_count = 0
            logger.debug(f"Repeating queue ({st.current_play_mode_repeat_count})")
            self._play_current()
        else:
            self.stop()

    def on_track_failed(self, error: Exception) -> None:
        """Skip an item the player could not decode or fetch."""
        st = self.state
        if not st.play_queue:
            return
        ayah = st.playing_ayah
        where = f"{ayah.sura_no}:{ayah.aya_no}" if ayah else "?"
        logger.error(f"Playback failed for {where}: {error}")
        st.current_repeat_count = 0
        st.current_play_index += 1
        self._play_current()

    def stop(self) -> None:
        self._cancel_start()
        self.player.stop()
        self.state.reset_playback()

    def toggle_pause(self) -> None:
        if self.starting is not None:
            self.stop()
            return
        if not self.player.has_source:
            self.play()
            return
        if self.player.paused:
            self.player.resume()
            if self.player.paused:
                self.play()
        else:
            self.player.pause()

    def _on_player_state(self, playing: bool) -> None:
        self.state.is_playing = playing

    # -- live changes -------------------------------------------------------

    def change_reciter(self, reciter: str) -> None:
        """Switch reciter, re-sourcing the current item when audio is running."""
        self.settings.set("reciter", reciter)
        self.state.reciter = reciter
        if not self.state.is_playing or self.player.paused or self.state.playing_ayah is None:
            return
        if self._ready_or_defer(self._restart_current):
            self._restart_current()

    def _restart_current(self) -> None:
        ayah = self.state.playing_ayah
        if ayah is None:
            return
        source = self.resolver.resolve(self.state.reciter, ayah.sura_no, ayah.aya_no)
        try:
            self.player.play(source, self.speed)
        except PlayerError as e:
            logger.error(f"Error playing audio with new reciter: {e}")

    def set_speed(self, rate: float) -> None:
        self.settings.set("speed", f"{rate:g}")
        self.player.set_rate(rate)

    def change_speed(self, direction: int) -> float | None:
        """Step through SPEEDS; returns the new rate or None at either end."""
        current = self.speed
        index = min(range(len(SPEEDS)), key=lambda i: abs(SPEEDS[i] - current))
        new_index = max(0, min(len(SPEEDS) - 1, index + direction))
        if SPEEDS[new_index] == current:
            return None
        self.set_speed(SPEEDS[new_index])
        return SPEEDS[new_index]
