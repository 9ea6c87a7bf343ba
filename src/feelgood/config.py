"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, tzinfo
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_DB_PATH = "feelgood.db"


@dataclass(slots=True)
class Settings:
    """Application settings; unset integrations stay disabled."""

    db_path: str = DEFAULT_DB_PATH
    timezone: str = "UTC"
    firebase_api_key: str | None = None
    firestore_project: str | None = None
    openai_api_key: str | None = None
    transcription_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Raises:
            ValueError: If a numeric variable cannot be parsed.

        """
        env = os.environ if environ is None else environ
        return cls(
            db_path=env.get("FEELGOOD_DB", DEFAULT_DB_PATH),
            timezone=env.get("FEELGOOD_TZ", "UTC"),
            firebase_api_key=env.get("FIREBASE_API_KEY") or None,
            firestore_project=env.get("FEELGOOD_FIRESTORE_PROJECT") or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            transcription_timeout=float(env.get("FEELGOOD_TRANSCRIPTION_TIMEOUT", 30)),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )

    def tzinfo(self) -> tzinfo:
        """Resolve :attr:`timezone`.

        Raises:
            ValueError: If the zone name is unknown.

        """
        if self.timezone.upper() == "UTC":
            return UTC
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown time zone {self.timezone!r}") from exc


__all__ = ["Settings"]
