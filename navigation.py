"""
navigation.py — keeps the sura / juz / page / ayah selectors consistent.

Every user action is turned into one Selection holding all four axes,
computed up front, and written once. Nothing here re-enters another
selector's handler.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from config import TOTAL_PAGES
from data import AyahRecord, QuranStore

if TYPE_CHECKING:
    from playback import PlaybackState
    from settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    sura: int
    juz: int
    page: int
    ayah: AyahRecord | None


# ---------------------------------------------------------------------------
# Reconcilers
# ---------------------------------------------------------------------------

def for_page(store: QuranStore, page: int, previous_sura: int | None = None) -> Selection | None:
    """
    Select a page. The previous sura stays selected when it appears on the
    page; otherwise the first sura on the page (lowest ayah id) is taken.
    """
    ayahs = store.ayahs_on_page(page)
    if not ayahs:
        return None
    same_sura = [a for a in ayahs if a.sura_no == previous_sura]
    ayah = same_sura[0] if same_sura else ayahs[0]
    return Selection(sura=ayah.sura_no, juz=ayah.jozz, page=page, ayah=ayah)


def for_sura(store: QuranStore, sura: int) -> Selection | None:
    ayah = store.first_ayah_of_sura(sura)
    if ayah is None:
        return None
    return Selection(sura=sura, juz=ayah.jozz, page=ayah.first_page, ayah=ayah)


def for_juz(store: QuranStore, juz: int) -> Selection | None:
    ayah = store.first_ayah_of_juz(juz)
    if ayah is None:
        return None
    return Selection(sura=ayah.sura_no, juz=juz, page=ayah.first_page, ayah=ayah)


def for_ayah(ayah: AyahRecord, current_page: int | None = None) -> Selection:
    """Select an ayah, staying on the current page when the ayah is on it."""
    page = current_page if current_page and ayah.on_page(current_page) else ayah.first_page
    return Selection(sura=ayah.sura_no, juz=ayah.jozz, page=page, ayah=ayah)


# ---------------------------------------------------------------------------
# Stepping
# ---------------------------------------------------------------------------

def next_ayah(store: QuranStore, ayah: AyahRecord | None) -> AyahRecord | None:
    """Next ayah, or the first ayah of the next sura at a sura end."""
    return store.next_ayah(ayah) if ayah else None


def previous_ayah(store: QuranStore, ayah: AyahRecord | None) -> AyahRecord | None:
    """Previous ayah, or the last ayah of the previous sura at a sura start."""
    return store.previous_ayah(ayah) if ayah else None


def next_sura(store: QuranStore, ayah: AyahRecord | None) -> AyahRecord | None:
    if ayah is None:
        return None
    return store.first_ayah_of_sura(ayah.sura_no + 1)


def previous_sura(store: QuranStore, ayah: AyahRecord | None) -> AyahRecord | None:
    if ayah is None or ayah.sura_no <= 1:
        return None
    return store.first_ayah_of_sura(ayah.sura_no - 1)


def next_page(page: int) -> int | None:
    return page + 1 if page < TOTAL_PAGES else None


def previous_page(page: int) -> int | None:
    return page - 1 if page > 1 else None


def nav_button_states(store: QuranStore, ayah: AyahRecord | None) -> dict[str, bool]:
    """Which of the prev/next ayah and sura controls can be used."""
    if ayah is None:
        return {"prev_sura": False, "prev_ayah": False, "next_ayah": False, "next_sura": False}
    return {
        "prev_sura": previous_sura(store, ayah) is not None,
        "prev_ayah": previous_ayah(store, ayah) is not None,
        "next_ayah": next_ayah(store, ayah) is not None,
        "next_sura": next_sura(store, ayah) is not None,
    }


# ---------------------------------------------------------------------------
# Navigator
# ---------------------------------------------------------------------------

class Navigator:
    """Writes selections into the session state and mirrors them to settings."""

    def __init__(self, store: QuranStore, state: "PlaybackState", settings: "Settings"):
        self.store = store
        self.state = state
        self.settings = settings

    def apply(self, selection: Selection | None) -> Selection | None:
        if selection is None:
            return None
        self.state.current_sura = selection.sura
        self.state.current_juz = selection.juz
        self.state.current_page = selection.page
        self.state.current_ayah = selection.ayah
        self._persist()
        return selection

    def follow(self, ayah: AyahRecord) -> bool:
        """Move to an ayah reached by playback; returns True if the page changed."""
        selection = for_ayah(ayah, self.state.current_page)
        page_changed = selection.page != self.state.current_page
        self.apply(selection)
        return page_changed

    def restore(self) -> Selection | None:
        """Restore the last saved position, falling back to the saved sura's start."""
        if self.store.is_empty:
            return None

        page = self.settings.get_int("currentPage", 1)
        sura = self.settings.get_int("currentSura", 1)
        aya  = self.settings.get_int("currentAyah")

        ayah = self.store.find(sura, aya) if aya else None
        if ayah is not None:
            return self.apply(for_ayah(ayah, page))

        selection = for_sura(self.store, sura)
        if selection is None:
            logger.warning(f"Saved sura {sura} not in data, starting from page {page}")
            selection = for_page(self.store, page) or for_page(self.store, self.store.records[0].first_page)
        return self.apply(selection)

    def _persist(self) -> None:
        ayah = self.state.current_ayah
        self.settings.update({
            "currentPage": self.state.current_page,
            "currentSura": self.state.current_sura,
            "currentJuz":  self.state.current_juz,
            "currentAyah": ayah.aya_no if ayah else None,
        })
