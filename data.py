import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def parse_pages(value: Any) -> tuple[int, ...]:
    """Parse a page field such as ``"2"`` or ``"2-3"`` into page numbers."""
    pages = []
    for part in str(value).split("-"):
        part = part.strip()
        if part.isdigit():
            pages.append(int(part))
    return tuple(pages)


@dataclass(frozen=True)
class AyahRecord:
    id: int
    sura_no: int
    aya_no: int
    sura_name_ar: str
    page: str
    jozz: int
    line_start: int
    line_end: int
    aya_text: str
    pages: tuple[int, ...] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "page", str(self.page))
        object.__setattr__(self, "pages", parse_pages(self.page))

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AyahRecord":
        return cls(
            id=int(raw["id"]),
            sura_no=int(raw["sura_no"]),
            aya_no=int(raw["aya_no"]),
            sura_name_ar=raw.get("sura_name_ar", ""),
            page=str(raw["page"]),
            jozz=int(raw["jozz"]),
            line_start=int(raw.get("line_start") or 0),
            line_end=int(raw.get("line_end") or 0),
            aya_text=raw.get("aya_text", ""),
        )

    @property
    def first_page(self) -> int:
        return self.pages[0] if self.pages else 1

    def on_page(self, page: int) -> bool:
        return page in self.pages


def load_ayahs(path: Path) -> list[AyahRecord]:
    """Load the ayah feed from a JSON array of records."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return [AyahRecord.from_dict(item) for item in raw]


def load_audio_urls(path: Path) -> dict[str, Any]:
    """
    Load the remote audio fallback table.

    Shape: {"reciters": {reciter: {"001": [{"ayah": "001", "url": ...}]}}}
    A missing or broken file only disables the remote fallback.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Audio URL table not found: {path}")
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load audio URL table {path}: {e}")
        return {}


class QuranStore:
    """Read-only, id-ordered collection of ayah records with lookup indexes."""

    def __init__(self, records: list[AyahRecord] | None = None, load_error: str | None = None):
        self.records: list[AyahRecord] = sorted(records or [], key=lambda a: a.id)
        self.load_error = load_error

        self._by_key: dict[tuple[int, int], AyahRecord] = {}
        self._by_page: dict[int, list[AyahRecord]] = {}
        self._by_sura: dict[int, list[AyahRecord]] = {}
        self._by_juz: dict[int, list[AyahRecord]] = {}
        self._position: dict[int, int] = {}

        for index, ayah in enumerate(self.records):
            self._by_key[(ayah.sura_no, ayah.aya_no)] = ayah
            self._position[ayah.id] = index
            self._by_sura.setdefault(ayah.sura_no, []).append(ayah)
            self._by_juz.setdefault(ayah.jozz, []).append(ayah)
            for page in ayah.pages:
                self._by_page.setdefault(page, []).append(ayah)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def find(self, sura: int, aya: int) -> AyahRecord | None:
        return self._by_key.get((sura, aya))

    def ayahs_on_page(self, page: int) -> list[AyahRecord]:
        return list(self._by_page.get(page, []))

    def ayahs_in_sura(self, sura: int) -> list[AyahRecord]:
        return list(self._by_sura.get(sura, []))

    def ayahs_in_juz(self, juz: int) -> list[AyahRecord]:
        return list(self._by_juz.get(juz, []))

    def first_ayah_of_sura(self, sura: int) -> AyahRecord | None:
        return self.find(sura, 1) or next(iter(self._by_sura.get(sura, [])), None)

    def last_ayah_of_sura(self, sura: int) -> AyahRecord | None:
        ayahs = self._by_sura.get(sura)
        return ayahs[-1] if ayahs else None

    def first_ayah_of_juz(self, juz: int) -> AyahRecord | None:
        return next(iter(self._by_juz.get(juz, [])), None)

    def suras(self) -> list[tuple[int, str]]:
        return [(no, ayahs[0].sura_name_ar) for no, ayahs in sorted(self._by_sura.items())]

    def sura_name(self, sura: int) -> str:
        ayahs = self._by_sura.get(sura)
        return ayahs[0].sura_name_ar if ayahs else f"Sura {sura}"

    def pages_for_sura(self, sura: int) -> list[int]:
        pages = {p for ayah in self._by_sura.get(sura, []) for p in ayah.pages}
        return sorted(pages)

    def next_ayah(self, ayah: AyahRecord) -> AyahRecord | None:
        """Following ayah in canonical order, crossing into the next sura."""
        index = self._position.get(ayah.id)
        if index is None or index + 1 >= len(self.records):
            return None
        return self.records[index + 1]

    def previous_ayah(self, ayah: AyahRecord) -> AyahRecord | None:
        index = self._position.get(ayah.id)
        if not index:
            return None
        return self.records[index - 1]


def open_store(path: Path) -> QuranStore:
    """Load the store; a failed load yields an empty store instead of raising."""
    try:
        records = load_ayahs(path)
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.error(f"Error loading Quran data from {path}: {e}")
        return QuranStore([], load_error=str(e))
    logger.info(f"Loaded {len(records)} ayahs from {path}")
    return QuranStore(records)
