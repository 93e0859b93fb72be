"""
reader.py — one reading/listening session.

Wires the data store, session state, settings, audio resolver, player,
navigator and playback engine together and exposes the user actions.
Selector actions stop running audio before moving, then start playback
from the new position.
"""
import logging
from typing import Callable

from audio import AudioResolver, FFPlayPlayer, Player
from config import AUDIO_URLS_FILE, LOCAL_AUDIO_ROOT, QURAN_DATA_FILE
from data import AyahRecord, QuranStore, load_audio_urls, open_store
import navigation
from navigation import Navigator, Selection
from playback import PlaybackEngine, PlaybackError, PlaybackState
from renderer import Block, format_blocks, page_info, render_html, render_page
from settings import Settings

logger = logging.getLogger(__name__)


class Reader:
    def __init__(
        self,
        store: QuranStore,
        settings: Settings,
        resolver: AudioResolver,
        player: Player,
        notify: Callable[[str], None] | None = None,
    ):
        self.store = store
        self.settings = settings
        self.resolver = resolver
        self.player = player
        self.notify = notify or (lambda key: logger.info(f"notice: {key}"))

        self.state = PlaybackState()
        self.navigator = Navigator(store, self.state, settings)
        self.engine = PlaybackEngine(store, self.state, resolver, player, settings, self.navigator)

        # Called with the freshly rendered blocks whenever the page changes
        self.on_page_rendered: Callable[[list[Block]], None] | None = None
        self.engine.on_ayah_started = self._ayah_started

        self.blocks: list[Block] = []
        if store.is_empty:
            self.notify("data_load_error")
        else:
            self.navigator.restore()
            self._render()

    @classmethod
    def from_config(cls, notify: Callable[[str], None] | None = None) -> "Reader":
        store = open_store(QURAN_DATA_FILE)
        resolver = AudioResolver(LOCAL_AUDIO_ROOT, load_audio_urls(AUDIO_URLS_FILE))
        return cls(store, Settings(), resolver, FFPlayPlayer(), notify=notify)

    # -- rendering ----------------------------------------------------------

    def _render(self) -> list[Block]:
        self.blocks = render_page(self.store, self.state.current_page)
        if self.on_page_rendered:
            self.on_page_rendered(self.blocks)
        return self.blocks

    def _ayah_started(self, ayah: AyahRecord, page_changed: bool) -> None:
        if page_changed:
            self._render()

    def page_text(self) -> str:
        header = page_info(self.state.current_ayah, self.state.current_page)
        return f"{header}\n\n{format_blocks(self.blocks, self.state.current_ayah)}"

    def page_html(self) -> str:
        return render_html(self.blocks, self.state.current_ayah, self.settings.get_int("fontSize", 28))

    # -- playback -----------------------------------------------------------

    @property
    def audio_active(self) -> bool:
        return self.state.is_playing or self.player.has_source or self.engine.starting is not None

    def play(self) -> bool:
        try:
            self.engine.play()
        except PlaybackError as e:
            logger.info(f"Playback not started: {e}")
            self.notify(e.notice)
            return False
        return True

    def stop(self) -> None:
        self.engine.stop()

    def toggle_pause(self) -> None:
        try:
            self.engine.toggle_pause()
        except PlaybackError as e:
            self.notify(e.notice)

    # -- navigation ---------------------------------------------------------

    def _navigate(self, selection: Selection | None, play: bool | None = None) -> Selection | None:
        """
        Stop audio, write the selection, re-render, then play when asked
        (or, with play=None, when audio was active before the move).
        """
        if selection is None:
            return None
        was_active = self.audio_active
        if was_active:
            self.engine.stop()

        page_changed = selection.page != self.state.current_page
        self.navigator.apply(selection)
        if page_changed or not self.blocks:
            self._render()

        if was_active if play is None else play:
            self.play()
        return selection

    def select_page(self, page: int) -> Selection | None:
        return self._navigate(navigation.for_page(self.store, page, self.state.current_sura), play=True)

    def select_sura(self, sura: int) -> Selection | None:
        return self._navigate(navigation.for_sura(self.store, sura), play=True)

    def select_juz(self, juz: int) -> Selection | None:
        return self._navigate(navigation.for_juz(self.store, juz), play=True)

    def select_ayah(self, aya: int, sura: int | None = None) -> Selection | None:
        ayah = self.store.find(sura or self.state.current_sura, aya)
        if ayah is None:
            self.notify("not_found")
            return None
        return self._navigate(navigation.for_ayah(ayah, self.state.current_page), play=True)

    def click_ayah(self, sura: int, aya: int) -> None:
        """Same ayah toggles pause; another ayah restarts playback from it."""
        current = self.state.current_ayah
        if current and current.sura_no == sura and current.aya_no == aya:
            self.toggle_pause()
            return
        ayah = self.store.find(sura, aya)
        if ayah is not None:
            self._navigate(navigation.for_ayah(ayah, self.state.current_page), play=True)

    def _step_to(self, ayah: AyahRecord | None) -> Selection | None:
        if ayah is None:
            return None
        return self._navigate(navigation.for_ayah(ayah, self.state.current_page))

    def next_ayah(self):
        return self._step_to(navigation.next_ayah(self.store, self.state.current_ayah))

    def previous_ayah(self):
        return self._step_to(navigation.previous_ayah(self.store, self.state.current_ayah))

    def next_sura(self):
        return self._step_to(navigation.next_sura(self.store, self.state.current_ayah))

    def previous_sura(self):
        return self._step_to(navigation.previous_sura(self.store, self.state.current_ayah))

    def _step_page(self, page: int | None) -> Selection | None:
        if page is None:
            return None
        return self._navigate(navigation.for_page(self.store, page, self.state.current_sura))

    def next_page(self):
        return self._step_page(navigation.next_page(self.state.current_page))

    def previous_page(self):
        return self._step_page(navigation.previous_page(self.state.current_page))

    def button_states(self) -> dict[str, bool]:
        states = navigation.nav_button_states(self.store, self.state.current_ayah)
        states["prev_page"] = navigation.previous_page(self.state.current_page) is not None
        states["next_page"] = navigation.next_page(self.state.current_page) is not None
        return states
