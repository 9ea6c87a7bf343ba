"""High level local storage API that uses the state adapters."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Iterable

from .adapters import StateAdapter
from .models import MoodEntry, UserPreferences

logger = logging.getLogger(__name__)

MOOD_ENTRIES_KEY = "moodEntries"
PREFERENCES_KEY = "preferences"

# Failures that mean "no usable saved state" rather than a bug.
_DECODE_ERRORS = (json.JSONDecodeError, KeyError, TypeError, ValueError)
_STORAGE_ERRORS = (OSError, sqlite3.Error)


@dataclass(slots=True)
class LocalStorage:
    """Facade over a :class:`StateAdapter` storing the two application blobs.

    Reads never raise: corrupted or unreadable blobs are logged and reported
    as missing so the application starts from defaults.
    """

    adapter: StateAdapter

    def __post_init__(self) -> None:
        """Ensure the backing schema is present."""
        self.adapter.ensure_schema()

    # Mood entries -----------------------------------------------------
    def load_entries(self) -> list[MoodEntry]:
        """Return saved entries or an empty list when nothing usable is stored."""
        raw = self._read(MOOD_ENTRIES_KEY)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
            return [MoodEntry.from_dict(item) for item in items]
        except _DECODE_ERRORS as exc:
            logger.warning("Ignoring unreadable mood entries blob: %s", exc)
            return []

    def save_entries(self, entries: Iterable[MoodEntry]) -> bool:
        """Persist the whole entry collection.

        Returns:
            ``True`` when the blob was written.

        """
        payload = json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)
        return self._write(MOOD_ENTRIES_KEY, payload)

    # Preferences ------------------------------------------------------
    def load_preferences(self) -> UserPreferences:
        """Return saved preferences or defaults."""
        raw = self._read(PREFERENCES_KEY)
        if raw is None:
            return UserPreferences()
        try:
            return UserPreferences.from_dict(json.loads(raw))
        except _DECODE_ERRORS as exc:
            logger.warning("Ignoring unreadable preferences blob: %s", exc)
            return UserPreferences()

    def save_preferences(self, preferences: UserPreferences) -> bool:
        """Persist preferences, returning ``True`` when written."""
        return self._write(PREFERENCES_KEY, json.dumps(preferences.to_dict()))

    # Internal ---------------------------------------------------------
    def _read(self, key: str) -> str | None:
        try:
            return self.adapter.read(key)
        except _STORAGE_ERRORS as exc:
            logger.warning("Failed to read %s from local storage: %s", key, exc)
            return None

    def _write(self, key: str, value: str) -> bool:
        try:
            self.adapter.write(key, value)
        except _STORAGE_ERRORS as exc:
            logger.warning("Failed to write %s to local storage: %s", key, exc)
            return False
        return True


__all__ = ["LocalStorage", "MOOD_ENTRIES_KEY", "PREFERENCES_KEY"]
