import re

from rapidfuzz import fuzz, process

from data import AyahRecord, QuranStore


def normalize_arabic(text):
    """Comprehensive Arabic text normalization."""

    # 1. Normalize Alif variations to plain Alif
    # Covers: Alif with Hamza above (أ), Hamza below (إ), Madda (آ), Alif Wasla (ٱ)
    text = re.sub(r'[إأآٱ]', 'ا', text)

    # 2. Normalize Alif Maksura (ى) to Ya (ي)
    text = re.sub(r'ى', 'ي', text)

    # 3. Normalize Hamza variations
    text = re.sub(r'[ؤئ]', 'ء', text)

    # 4. Remove Arabic diacritics (Tashkeel), superscript Alif and Quranic marks
    text = re.sub(r'[\u064B-\u065F\u0670\u06D6-\u06ED]', '', text)

    # 5. Remove Tatweel/Kashida (elongation character ـ)
    text = re.sub(r'\u0640', '', text)

    # 6. Remove zero-width characters
    text = re.sub(r'[\u200B\u200C\u200D\uFEFF]', '', text)

    # 7. Normalize whitespace
    text = re.sub(r'\s+', ' ', text)

    return text.strip()


def search(store: QuranStore, query: str, limit: int = 20) -> list[AyahRecord]:
    """
    Find ayahs containing *query*, ignoring diacritics.
    Falls back to fuzzy matching when nothing contains it literally.
    """
    if len(query.strip()) < 3:
        return []

    norm_query = normalize_arabic(query)
    normalized = [normalize_arabic(a.aya_text) for a in store.records]

    results = [
        ayah for ayah, text in zip(store.records, normalized)
        if norm_query in text
    ]
    if results:
        return results[:limit]

    matches = process.extract(
        norm_query, normalized, scorer=fuzz.partial_ratio, limit=limit, score_cutoff=80
    )
    return [store.records[index] for _, _, index in matches]
