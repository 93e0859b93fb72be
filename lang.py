"""
lang.py — localized user notices and menu text.

Each file in locales/ is one language keyed by its code (ar.json, en.json).
Arabic is the reference language: keys missing from another locale fall
back to the Arabic text, and unknown keys come back unchanged.
"""
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

LOCALE_DIR = Path(__file__).parent / "locales"
FALLBACK_LANG = "ar"

_strings: dict[str, dict[str, str]] = {}


def load_locales(directory: Path = LOCALE_DIR) -> None:
    """(Re)load every locale JSON file from *directory*."""
    _strings.clear()
    for file in sorted(Path(directory).glob("*.json")):
        try:
            _strings[file.stem] = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading locale {file.stem}: {e}")


load_locales()


def available_languages() -> list[str]:
    return sorted(_strings)


def resolve_lang(code: str | None) -> str:
    """Map a code such as "en_US" or "ar-EG" onto a loaded locale."""
    if not code:
        return FALLBACK_LANG
    base = code.replace("_", "-").split("-")[0].lower()
    return base if base in _strings else FALLBACK_LANG


def t(key: str, lang: str = FALLBACK_LANG, **kwargs) -> str:
    """Get a localized string, formatted with *kwargs* when given."""
    text = _strings.get(resolve_lang(lang), {}).get(key)
    if text is None:
        text = _strings.get(FALLBACK_LANG, {}).get(key, key)

    if kwargs:
        try:
            return text.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            return text
    return text
