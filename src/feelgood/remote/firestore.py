"""Remote document store mirroring mood entries and preferences."""

from __future__ import annotations

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Callable, TypeVar

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from feelgood.storage.models import MoodEntry

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
MOOD_ENTRIES_SUBCOLLECTION = "moodEntries"
# Firestore rejects write batches with more operations than this.
MAX_BATCH_SIZE = 500

T = TypeVar("T")


class RemoteStoreError(RuntimeError):
    """Raised when the remote document store rejects or fails a call."""


class DocumentStore(ABC):
    """Per-user document collections used as a replicated mirror."""

    @abstractmethod
    async def upsert_entry(self, uid: str, entry: MoodEntry) -> None:
        """Replace the mood entry document keyed by its id with ``entry``."""

    @abstractmethod
    async def fetch_entries(self, uid: str) -> list[MoodEntry]:
        """Return all mood entries of ``uid`` ordered by date descending."""

    @abstractmethod
    async def write_entries(self, uid: str, entries: Iterable[MoodEntry]) -> None:
        """Write many entries in batches; any failure fails the whole call."""

    @abstractmethod
    async def save_preferences(self, uid: str, fields: Mapping[str, Any]) -> None:
        """Merge ``fields`` into the user's preferences document."""


class FirestoreDocumentStore(DocumentStore):
    """Google Cloud Firestore implementation of :class:`DocumentStore`.

    The synchronous Firestore client runs in the default executor so callers
    stay on the event loop.
    """

    def __init__(self, client: Any | None = None, *, project: str | None = None) -> None:
        """Wrap an existing client or create one for ``project``.

        Args:
            client: Pre-configured ``firestore.Client`` (or compatible object).
            project: Google Cloud project used when ``client`` is omitted.

        Raises:
            RemoteStoreError: If default credentials cannot be resolved.

        """
        if client is None:
            try:
                client = firestore.Client(project=project)
            except auth_exceptions.GoogleAuthError as exc:
                raise RemoteStoreError(f"Cannot connect to Firestore: {exc}") from exc
        self._client = client

    def _user(self, uid: str) -> Any:
        return self._client.collection(USERS_COLLECTION).document(uid)

    def _entries(self, uid: str) -> Any:
        return self._user(uid).collection(MOOD_ENTRIES_SUBCOLLECTION)

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking client call and translate library errors."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(func, *args))
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise RemoteStoreError(str(exc)) from exc

    async def upsert_entry(self, uid: str, entry: MoodEntry) -> None:
        # The entry id owns the whole document, so cleared fields must disappear.
        doc_ref = self._entries(uid).document(entry.id)
        await self._call(functools.partial(doc_ref.set, entry.to_document()))
        logger.debug("Upserted entry %s for user %s", entry.id, uid)

    async def fetch_entries(self, uid: str) -> list[MoodEntry]:
        query = self._entries(uid).order_by("date", direction=firestore.Query.DESCENDING)

        def _collect() -> list[MoodEntry]:
            entries: list[MoodEntry] = []
            for snapshot in query.stream():
                try:
                    entries.append(MoodEntry.from_document(snapshot.id, snapshot.to_dict()))
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning("Skipping malformed remote entry %s: %s", snapshot.id, exc)
            return entries

        return await self._call(_collect)

    async def write_entries(self, uid: str, entries: Iterable[MoodEntry]) -> None:
        pending = list(entries)
        collection = self._entries(uid)

        def _commit() -> None:
            for start in range(0, len(pending), MAX_BATCH_SIZE):
                batch = self._client.batch()
                for entry in pending[start:start + MAX_BATCH_SIZE]:
                    batch.set(collection.document(entry.id), entry.to_document())
                batch.commit()

        await self._call(_commit)
        logger.info("Wrote %d entries for user %s", len(pending), uid)

    async def save_preferences(self, uid: str, fields: Mapping[str, Any]) -> None:
        document = {**fields, "updatedAt": firestore.SERVER_TIMESTAMP}
        user_ref = self._user(uid)
        await self._call(functools.partial(user_ref.set, document, merge=True))
