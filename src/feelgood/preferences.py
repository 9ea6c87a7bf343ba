"""User preferences persisted locally and mirrored to the user document."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from feelgood.event_bus import Event, EventBus
from feelgood.remote import DocumentStore, RemoteStoreError
from feelgood.result import Result
from feelgood.storage import Identity, LocalStorage, UserPreferences
from feelgood.storage.models import THEME_NAMES

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PreferencesStore:
    """Holds :class:`UserPreferences` and saves them after every change."""

    bus: EventBus
    storage: LocalStorage
    remote: DocumentStore | None = None
    preferences: UserPreferences = field(init=False, default_factory=UserPreferences)
    error_message: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Load saved preferences and cache identities as they change."""
        self.load()
        self.bus.subscribe("session.changed", self.handle_session_changed)

    def load(self) -> UserPreferences:
        """Replace the in-memory preferences with the saved ones."""
        self.preferences = self.storage.load_preferences()
        return self.preferences

    @property
    def cached_identity(self) -> Identity | None:
        return self.preferences.identity

    async def handle_session_changed(self, event: Event) -> None:
        """Cache the new identity and mirror preferences when signed in."""
        payload = event.payload.get("identity")
        await self.set_identity(Identity.from_dict(payload) if payload else None)

    async def set_identity(self, identity: Identity | None) -> Result[UserPreferences]:
        self.preferences.identity = identity
        return await self._save()

    async def set_onboarded(self, onboarded: bool = True) -> Result[UserPreferences]:
        self.preferences.is_onboarded = onboarded
        return await self._save()

    async def select_theme(self, index: int) -> Result[UserPreferences]:
        """Select the theme at ``index`` among the named themes."""
        if not 0 <= index < len(THEME_NAMES):
            message = f"Theme index must be between 0 and {len(THEME_NAMES) - 1}"
            self.error_message = message
            return Result.failure(message)
        self.preferences.theme_index = index
        return await self._save()

    async def _save(self) -> Result[UserPreferences]:
        self.storage.save_preferences(self.preferences)
        await self.bus.publish("preferences.saved", self.preferences.to_dict())
        identity = self.preferences.identity
        if self.remote is None or identity is None:
            return Result.success(self.preferences)
        try:
            await self.remote.save_preferences(
                identity.uid,
                {
                    "themeIndex": self.preferences.theme_index,
                    "isOnboarded": self.preferences.is_onboarded,
                },
            )
        except RemoteStoreError as exc:
            self.error_message = f"Failed to sync preferences: {exc}"
            logger.warning(self.error_message)
            await self.bus.publish("preferences.error", {"message": self.error_message})
            return Result.failure(self.error_message)
        return Result.success(self.preferences)


__all__ = ["PreferencesStore"]
