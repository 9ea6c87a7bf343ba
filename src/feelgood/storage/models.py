"""Dataclasses describing the mood journal domain."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional

MIN_RATING = 0
MAX_RATING = 10

# Named themes offered in settings; only the index is persisted.
THEME_NAMES = (
    "calmPurple",
    "sereneBlue",
    "soothingGreen",
    "warmPeach",
    "gentleLavender",
    "softTeal",
    "tranquilRose",
    "comfortOrange",
    "mindfulIndigo",
    "blissfulMint",
)


class CheckInType(str, Enum):
    """Kinds of mood reports."""

    MORNING = "morning"
    EVENING = "evening"
    QUICK_UPDATE = "quickUpdate"

    @property
    def is_scheduled(self) -> bool:
        """Morning and evening check-ins are limited to one per day."""
        return self is not CheckInType.QUICK_UPDATE


class MoodBucket(str, Enum):
    """Coarse mood category derived from a rating."""

    UNSET = "unset"
    LOW = "low"
    MID = "mid"
    GOOD = "good"
    HIGH = "high"

    @property
    def emoji(self) -> str:
        return _BUCKET_EMOJI[self]

    @property
    def label(self) -> str:
        return _BUCKET_LABEL[self]


_BUCKET_EMOJI = {
    MoodBucket.UNSET: "🙂",
    MoodBucket.LOW: "😔",
    MoodBucket.MID: "😐",
    MoodBucket.GOOD: "🙂",
    MoodBucket.HIGH: "😄",
}

_BUCKET_LABEL = {
    MoodBucket.UNSET: "No rating",
    MoodBucket.LOW: "Not great",
    MoodBucket.MID: "Okay",
    MoodBucket.GOOD: "Pretty good",
    MoodBucket.HIGH: "Amazing!",
}


def mood_bucket(rating: int) -> MoodBucket:
    """Map a rating onto its :class:`MoodBucket`.

    Args:
        rating: Mood rating, normally within ``0..10``.

    Returns:
        The bucket; ``0`` and out-of-range values map to ``UNSET``.

    """
    if 1 <= rating <= 3:
        return MoodBucket.LOW
    if 4 <= rating <= 6:
        return MoodBucket.MID
    if 7 <= rating <= 8:
        return MoodBucket.GOOD
    if 9 <= rating <= 10:
        return MoodBucket.HIGH
    return MoodBucket.UNSET


def mood_emoji(rating: int) -> str:
    """Return the emoji shown for ``rating``."""
    return mood_bucket(rating).emoji


def validate_rating(rating: int) -> int:
    """Ensure ``rating`` is an integer within the supported range.

    Raises:
        ValueError: If the rating is not an integer in ``0..10``.

    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValueError(f"Rating must be an integer, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return rating


def _parse_timestamp(value: Any) -> datetime:
    """Convert stored timestamps to aware :class:`datetime` instances."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    elif isinstance(value, str):
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp value {value!r}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


@dataclass(slots=True)
class MoodEntry:
    """One user-reported mood observation."""

    rating: int
    check_in_type: CheckInType
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    note: Optional[str] = None
    transcription: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def bucket(self) -> MoodBucket:
        return mood_bucket(self.rating)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the entry to a JSON-serialisable dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "rating": self.rating,
            "note": self.note,
            "checkInType": self.check_in_type.value,
            "transcription": self.transcription,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MoodEntry":
        """Rebuild an entry from :meth:`to_dict` output.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field holds an unsupported value.

        """
        return cls(
            id=str(data["id"]),
            timestamp=_parse_timestamp(data["timestamp"]),
            rating=validate_rating(int(data["rating"])),
            note=data.get("note"),
            check_in_type=CheckInType(data["checkInType"]),
            transcription=data.get("transcription"),
        )

    def to_document(self) -> Dict[str, Any]:
        """Fields stored in the remote mood entry document."""
        document: Dict[str, Any] = {
            "date": self.timestamp,
            "rating": self.rating,
            "checkInType": self.check_in_type.value,
        }
        if self.note is not None:
            document["note"] = self.note
        if self.transcription is not None:
            document["transcription"] = self.transcription
        return document

    @classmethod
    def from_document(cls, entry_id: str, document: Dict[str, Any]) -> "MoodEntry":
        """Rebuild an entry from a remote document keyed by ``entry_id``."""
        return cls(
            id=entry_id,
            timestamp=_parse_timestamp(document["date"]),
            rating=int(document.get("rating", 0)),
            note=document.get("note"),
            check_in_type=CheckInType(document["checkInType"]),
            transcription=document.get("transcription"),
        )


@dataclass(slots=True)
class Identity:
    """Authenticated user reference used to key remote storage."""

    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the dataclass to a serialisable dictionary."""
        return {
            "uid": self.uid,
            "email": self.email,
            "id_token": self.id_token,
            "refresh_token": self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        return cls(
            uid=str(data["uid"]),
            email=data.get("email"),
            id_token=data.get("id_token"),
            refresh_token=data.get("refresh_token"),
        )


@dataclass(slots=True)
class UserPreferences:
    """Local settings persisted between launches."""

    is_onboarded: bool = False
    theme_index: int = 0
    identity: Optional[Identity] = None

    @property
    def theme_name(self) -> str:
        return THEME_NAMES[self.theme_index]

    def to_dict(self) -> Dict[str, Any]:
        """Convert the dataclass to a serialisable dictionary."""
        return {
            "isOnboarded": self.is_onboarded,
            "selectedThemeIndex": self.theme_index,
            "identity": self.identity.to_dict() if self.identity else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        """Rebuild preferences, resetting an unknown theme index to the default."""
        theme_index = data.get("selectedThemeIndex", 0)
        if not isinstance(theme_index, int) or not 0 <= theme_index < len(THEME_NAMES):
            theme_index = 0
        identity = data.get("identity")
        return cls(
            is_onboarded=bool(data.get("isOnboarded", False)),
            theme_index=theme_index,
            identity=Identity.from_dict(identity) if identity else None,
        )
