"""
Settings management module: user preferences and last reading position.
"""

import logging
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError

import database
from config import DEFAULT_RECITER, DEFAULT_RIWAYA

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS = {
    "reciter": DEFAULT_RECITER,
    "speed": "1",
    "repeat": "1",
    "playMode": "sura",
    "fontSize": "28",
    "riwaya": DEFAULT_RIWAYA,
    "currentPage": "1",
    "currentSura": "1",
    "currentJuz": "1",
}


class Settings:
    """Manages user settings with database persistence."""

    def __init__(self):
        self.data = self._load()

    def _load(self) -> Dict[str, str]:
        """Load stored settings over the defaults."""
        data = DEFAULT_SETTINGS.copy()
        try:
            data.update(database.read_settings())
        except SQLAlchemyError as e:
            logger.error(f"Could not read settings, using defaults: {e}")
        return data

    def _save(self, values: Dict[str, str]) -> None:
        try:
            database.write_settings(values)
        except SQLAlchemyError as e:
            # A failed write never interrupts reading or playback
            logger.error(f"Could not save settings {list(values)}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value."""
        return self.data.get(key, default)

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Get a setting parsed as int, or *default* when unset or invalid."""
        try:
            return int(self.data[key])
        except (KeyError, TypeError, ValueError):
            return default

    def get_float(self, key: str, default: float) -> float:
        try:
            return float(self.data[key])
        except (KeyError, TypeError, ValueError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set a setting value and save."""
        self.update({key: value})

    def update(self, updates: Dict[str, Any]) -> None:
        """Update multiple settings at once."""
        values = {k: str(v) for k, v in updates.items() if v is not None}
        self.data.update(values)
        self._save(values)

    def reset(self) -> None:
        """Reset settings to defaults."""
        try:
            database.clear_settings()
        except SQLAlchemyError as e:
            logger.error(f"Could not clear settings: {e}")
        self.data = DEFAULT_SETTINGS.copy()

    def __getitem__(self, key: str) -> Any:
        """Allow dict-like access."""
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        """Allow dict-like assignment."""
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return key in self.data
