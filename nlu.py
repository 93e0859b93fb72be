"""
nlu.py — turns free-text navigation input into a structured intent.

  - page:   quran page      { page }
  - juz:    juz number      { juz }
  - aya:    specific verse  { sura, aya }
  - surah:  full surah      { sura }
  - search: text search     { query }
"""
import re
from rapidfuzz import process, fuzz

from config import TOTAL_JUZ, TOTAL_PAGES, TOTAL_SURAS
from data import QuranStore
from search import normalize_arabic
from utils import convert_arabic_digits


# ---------------------------------------------------------------------------
# Surah name helpers
# ---------------------------------------------------------------------------

def _build_sura_names(store: QuranStore) -> list[dict]:
    """Return a list of {name, sura} entries, raw and normalized."""
    names = []
    for sura, name in store.suras():
        names.append({"name": name,                   "sura": sura})
        names.append({"name": normalize_arabic(name), "sura": sura})
    return names


def _match_sura_name(text: str, sura_names: list[dict]) -> int | None:
    """
    Fuzzy-match *text* against known surah names.
    Returns the sura number on a confident match (score > 80), else None.
    """
    if not text.strip() or not sura_names:
        return None
    choices = [x["name"] for x in sura_names]
    best    = process.extractOne(text, choices, scorer=fuzz.WRatio)
    if best and best[1] > 80:
        return sura_names[best[2]]["sura"]
    return None


# ---------------------------------------------------------------------------
# Intent detectors
# ---------------------------------------------------------------------------

def _detect_page(text: str) -> dict | None:
    """Detect 'page N' intent."""
    m = re.search(r"(page|صفحه|صفحة)\s*(\d+)", text, flags=re.IGNORECASE)
    if m:
        page_num = int(m.group(2))
        if 1 <= page_num <= TOTAL_PAGES:
            return {"type": "page", "page": page_num}
    return None


def _detect_juz(text: str) -> dict | None:
    """Detect 'juz N' intent."""
    m = re.search(r"(juz|jozz|جزء|الجزء)\s*(\d+)", text, flags=re.IGNORECASE)
    if m:
        juz = int(m.group(2))
        if 1 <= juz <= TOTAL_JUZ:
            return {"type": "juz", "juz": juz}
    return None


def _detect_colon_notation(text: str) -> dict | None:
    """Detect 'S:A' notation, e.g. '2:255'."""
    m = re.search(r"(\d+)\s*:\s*(\d+)", text)
    if not m:
        return None
    sura, aya = int(m.group(1)), int(m.group(2))
    if not 1 <= sura <= TOTAL_SURAS:
        return None
    return {"type": "aya", "sura": sura, "aya": aya}


def _detect_single(text: str, sura_names: list[dict]) -> dict | None:
    """
    Detect a single aya or full surah reference.
      - Pure numbers:     "2 255"  → sura=2, aya=255
      - Name + number:    "البقرة 255" → sura=2, aya=255
      - Name only:        "البقرة"  → sura=2
    """
    clean     = re.sub(r"(SURAH|AYAH|VERSE|SURA|AYA|سوره|سورة|ايه|اية|آية)", "", text, flags=re.IGNORECASE).strip()
    numbers   = re.findall(r"\d+", clean)
    text_part = re.sub(r"\d+", "", clean).strip()

    if not text_part and numbers:
        sura = int(numbers[0])
        if not 1 <= sura <= TOTAL_SURAS:
            return None
        if len(numbers) > 1:
            return {"type": "aya", "sura": sura, "aya": int(numbers[1])}
        return {"type": "surah", "sura": sura}

    sura = _match_sura_name(text_part, sura_names)
    if sura:
        if numbers:
            return {"type": "aya", "sura": sura, "aya": int(numbers[0])}
        return {"type": "surah", "sura": sura}
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_message(text: str, store: QuranStore) -> dict:
    """
    Parse user input into a structured intent dict.

    Returns one of:
      {"type": "page",   "page": int}
      {"type": "juz",    "juz": int}
      {"type": "aya",    "sura": int, "aya": int}
      {"type": "surah",  "sura": int}
      {"type": "search", "query": str}
    """
    original   = text.strip()
    normalized = normalize_arabic(convert_arabic_digits(original))

    for detector in (_detect_page, _detect_juz, _detect_colon_notation):
        result = detector(normalized)
        if result:
            return result

    result = _detect_single(normalized, _build_sura_names(store))
    if result:
        return result

    return {"type": "search", "query": original}
