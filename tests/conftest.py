"""
Shared fixtures: a small synthetic mushaf, a throwaway settings database,
and stand-ins for the audio player and the local-audio probe.
"""

import pytest

import database
from audio import AudioResolver, Player, PlayerError
from data import AyahRecord, QuranStore
from navigation import Navigator, for_ayah
from playback import PlaybackEngine, PlaybackState
from reader import Reader
from settings import Settings


FATIHA = [
    "بِسْمِ ٱللَّهِ ٱلرَّحْمَٰنِ ٱلرَّحِيمِ",
    "ٱلْحَمْدُ لِلَّهِ رَبِّ ٱلْعَٰلَمِينَ",
    "ٱلرَّحْمَٰنِ ٱلرَّحِيمِ",
    "مَٰلِكِ يَوْمِ ٱلدِّينِ",
    "إِيَّاكَ نَعْبُدُ وَإِيَّاكَ نَسْتَعِينُ",
    "ٱهْدِنَا ٱلصِّرَٰطَ ٱلْمُسْتَقِيمَ",
    "صِرَٰطَ ٱلَّذِينَ أَنْعَمْتَ عَلَيْهِمْ",
]

BAQARAH_PAGES = {1: "2", 2: "2", 3: "2", 4: "2", 5: "2-3"}
BAQARAH_LINES = {1: (2, 2), 2: (2, 3), 3: (3, 3), 4: (4, 5), 5: (6, 6)}


def _build_records() -> list[AyahRecord]:
    records = []
    next_id = 1

    def add(sura, aya, name, page, juz, lines, text):
        nonlocal next_id
        records.append(AyahRecord(
            id=next_id, sura_no=sura, aya_no=aya, sura_name_ar=name, page=page,
            jozz=juz, line_start=lines[0], line_end=lines[1], aya_text=text,
        ))
        next_id += 1

    # Page 1: Al-Fatiha, one ayah per line
    for aya, text in enumerate(FATIHA, 1):
        add(1, aya, "الفاتحة", "1", 1, (aya + 1, aya + 1), text)

    # Pages 2-3: Al-Baqarah 1-10, ayah 5 spans both pages, juz 2 from ayah 9
    for aya in range(1, 11):
        text = "الٓمٓ" if aya == 1 else f"ذَٰلِكَ ٱلْكِتَٰبُ آية {aya}"
        add(
            2, aya, "البقرة", BAQARAH_PAGES.get(aya, "3"), 1 if aya <= 8 else 2,
            BAQARAH_LINES.get(aya, (aya, aya)), text,
        )

    # Page 4: end of Al-Anfal then the start of At-Tawbah (no Basmala)
    add(8, 74, "الأنفال", "4", 10, (1, 2), "وَٱلَّذِينَ ءَامَنُوا۟ وَهَاجَرُوا۟")
    add(8, 75, "الأنفال", "4", 10, (3, 3), "إِنَّ ٱللَّهَ بِكُلِّ شَىْءٍ عَلِيمٌۢ")
    add(9, 1, "التوبة", "4", 10, (5, 5), "بَرَآءَةٌ مِّنَ ٱللَّهِ وَرَسُولِهِۦٓ")
    add(9, 2, "التوبة", "4", 10, (6, 6), "فَسِيحُوا۟ فِى ٱلْأَرْضِ")
    add(9, 3, "التوبة", "4", 10, (6, 7), "وَأَذَٰنٌ مِّنَ ٱللَّهِ وَرَسُولِهِۦٓ")

    # Page 5: Yunus
    add(10, 1, "يونس", "5", 11, (1, 1), "الٓر تِلْكَ ءَايَٰتُ ٱلْكِتَٰبِ ٱلْحَكِيمِ")
    add(10, 2, "يونس", "5", 11, (2, 2), "أَكَانَ لِلنَّاسِ عَجَبًا")
    return records


class FakePlayer(Player):
    """Records play requests; sources in `failing` raise PlayerError."""

    def __init__(self, failing=()):
        super().__init__()
        self.calls: list[tuple[str, float]] = []
        self.failing = set(failing)
        self.stops = 0

    def play(self, source, rate=1.0):
        if source in self.failing:
            raise PlayerError(f"cannot decode {source}")
        self.calls.append((source, rate))
        self.source = source
        self.rate = rate
        self._set_paused(False)

    def pause(self):
        self._set_paused(True)

    def resume(self):
        if self.source:
            self._set_paused(False)

    def stop(self):
        self.stops += 1
        self.source = None
        self._set_paused(True)

    @property
    def played(self) -> list[str]:
        """Played sources as 'sura:aya' taken from the .../SSS/AAA.mp3 path."""
        keys = []
        for source, _ in self.calls:
            parts = source.rstrip("/").split("/")
            keys.append(f"{int(parts[-2])}:{int(parts[-1].split('.')[0])}")
        return keys


class FakeProbe:
    """Availability probe answering from a set of unavailable locations."""

    def __init__(self, unavailable=()):
        self.unavailable = set(unavailable)
        self.calls: list[str] = []

    def __call__(self, location):
        self.calls.append(location)
        return location not in self.unavailable


@pytest.fixture
def records():
    return _build_records()


@pytest.fixture
def store(records):
    return QuranStore(records)


@pytest.fixture
def settings(tmp_path):
    database.init_db(f"sqlite:///{tmp_path / 'settings.db'}")
    return Settings()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def probe():
    return FakeProbe()


@pytest.fixture
def urls_table():
    return {
        "reciters": {
            "abdelbasset_abdessamad": {
                "002": [
                    {"ayah": "001", "url": "https://cdn.example.org/abdelbasset/002/001.mp3"},
                    {"ayah": "002", "url": "https://cdn.example.org/abdelbasset/002/002.mp3"},
                ]
            }
        }
    }


@pytest.fixture
def resolver(probe, urls_table):
    return AudioResolver("audio", urls_table, probe=probe)


@pytest.fixture
def state():
    return PlaybackState()


@pytest.fixture
def navigator(store, state, settings):
    return Navigator(store, state, settings)


@pytest.fixture
def engine(store, state, resolver, player, settings, navigator):
    return PlaybackEngine(store, state, resolver, player, settings, navigator)


@pytest.fixture
def at(store, navigator):
    """Position the session on sura:aya."""
    def _at(sura, aya):
        ayah = store.find(sura, aya)
        navigator.apply(for_ayah(ayah))
        return ayah
    return _at


@pytest.fixture
def notices():
    return []


@pytest.fixture
def reader(store, settings, resolver, player, notices):
    return Reader(store, settings, resolver, player, notify=notices.append)
