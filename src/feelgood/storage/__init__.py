"""Storage layer exports."""

from __future__ import annotations

from .adapters import MemoryAdapter, SQLiteAdapter, StateAdapter
from .core import LocalStorage
from .models import (
    CheckInType,
    Identity,
    MoodBucket,
    MoodEntry,
    UserPreferences,
    mood_bucket,
    mood_emoji,
)

__all__ = [
    "StateAdapter",
    "MemoryAdapter",
    "SQLiteAdapter",
    "LocalStorage",
    "CheckInType",
    "Identity",
    "MoodBucket",
    "MoodEntry",
    "UserPreferences",
    "mood_bucket",
    "mood_emoji",
]
