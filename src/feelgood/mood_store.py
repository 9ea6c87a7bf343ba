"""Authoritative in-memory mood journal mirrored to local and remote storage."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Callable

from feelgood.event_bus import Event, EventBus
from feelgood.remote import DocumentStore, RemoteStoreError
from feelgood.result import Result
from feelgood.storage import CheckInType, Identity, LocalStorage, MoodEntry
from feelgood.storage.models import validate_rating

logger = logging.getLogger(__name__)

SAMPLE_NOTES = (
    "Slept well",
    "Busy day at work",
    "Went for a walk",
    "Feeling a bit tired",
    "Caught up with friends",
    None,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class MoodStore:
    """Owns the entry collection and keeps local and remote mirrors in step.

    Local storage is the authority: every mutation is written locally first
    and then pushed to the remote collection of the current identity. Remote
    failures never raise; they end up in :attr:`error_message` and a
    ``mood.error`` event.
    """

    bus: EventBus
    storage: LocalStorage
    remote: DocumentStore | None = None
    tz: tzinfo = UTC
    clock: Callable[[], datetime] = _utcnow
    entries: list[MoodEntry] = field(init=False, default_factory=list)
    identity: Identity | None = field(init=False, default=None)
    error_message: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Load saved entries and follow identity changes."""
        self.load_from_local()
        self.bus.subscribe("session.changed", self.handle_session_changed)

    # Mutations --------------------------------------------------------
    async def record_check_in(
        self,
        rating: int,
        note: str | None = None,
        check_in_type: CheckInType | str = CheckInType.MORNING,
        transcription: str | None = None,
    ) -> MoodEntry | None:
        """Save a morning or evening check-in for today.

        An existing check-in of the same type today is overwritten in place;
        its transcription only changes when a new one is supplied.

        Args:
            rating: Mood rating in ``0..10``.
            note: Optional typed or transcribed note.
            check_in_type: Kind of check-in; quick updates are delegated to
                :meth:`record_quick_update`.
            transcription: Text of the voice note, when the note came from speech.

        Returns:
            The created or updated entry, or ``None`` if validation failed.

        """
        try:
            check_in_type = CheckInType(check_in_type)
            validate_rating(rating)
        except ValueError as exc:
            await self._fail(str(exc))
            return None
        if not check_in_type.is_scheduled:
            if transcription is not None:
                logger.warning("Quick updates keep no transcription; ignoring it")
            return await self.record_quick_update(rating, note)

        now = self._now()
        entry = next(
            (
                candidate
                for candidate in self.query_by_day(now)
                if candidate.check_in_type is check_in_type
            ),
            None,
        )
        created = entry is None
        if entry is None:
            entry = MoodEntry(
                rating=rating,
                check_in_type=check_in_type,
                timestamp=now,
                note=note,
                transcription=transcription,
            )
            self.entries.append(entry)
        else:
            entry.rating = rating
            entry.note = note
            if transcription is not None:
                entry.transcription = transcription
        await self._commit(entry, created=created)
        return entry

    async def record_quick_update(
        self, rating: int | None = None, note: str | None = None
    ) -> MoodEntry | None:
        """Append an unscheduled update; a missing rating is stored as ``0``."""
        rating = 0 if rating is None else rating
        try:
            validate_rating(rating)
        except ValueError as exc:
            await self._fail(str(exc))
            return None
        entry = MoodEntry(
            rating=rating,
            check_in_type=CheckInType.QUICK_UPDATE,
            timestamp=self._now(),
            note=note,
        )
        self.entries.append(entry)
        await self._commit(entry, created=True)
        return entry

    async def _commit(self, entry: MoodEntry, *, created: bool) -> None:
        self.save_to_local()
        logger.info(
            "%s %s entry %s", "Created" if created else "Updated", entry.check_in_type.value, entry.id
        )
        await self.bus.publish("mood.saved", {"entry": entry.to_dict(), "created": created})
        await self.push_entry(entry)

    # Queries ----------------------------------------------------------
    def query_by_day(self, day: date | datetime) -> list[MoodEntry]:
        """Return entries recorded on the calendar day of ``day``, newest first."""
        start = self.start_of_day(day)
        end = start + timedelta(hours=24)
        matching = [entry for entry in self.entries if start <= entry.timestamp < end]
        return sorted(matching, key=lambda entry: entry.timestamp, reverse=True)

    def query_by_day_and_type(
        self, day: date | datetime, check_in_type: CheckInType | str | None = None
    ) -> list[MoodEntry]:
        """Like :meth:`query_by_day`, optionally filtered by check-in type."""
        entries = self.query_by_day(day)
        if check_in_type is None:
            return entries
        wanted = CheckInType(check_in_type)
        return [entry for entry in entries if entry.check_in_type is wanted]

    def average_rating_for_day(self, day: date | datetime) -> float | None:
        """Mean rating of the day's entries or ``None`` when there are none."""
        return _mean(entry.rating for entry in self.query_by_day(day))

    def average_rating(self, window_days: int) -> float | None:
        """Mean rating over the trailing ``window_days`` or ``None`` when empty."""
        start = self._now() - timedelta(days=window_days)
        return _mean(entry.rating for entry in self.entries if entry.timestamp >= start)

    def rating_for(self, day: date | datetime, check_in_type: CheckInType | str) -> int | None:
        """Rating of the day's check-in of ``check_in_type`` if one exists."""
        entries = self.query_by_day_and_type(day, check_in_type)
        return entries[0].rating if entries else None

    def overall_rating(self, day: date | datetime) -> int:
        """Combine the day's morning and evening ratings; ``0`` when neither is set."""
        ratings = [
            rating
            for rating in (
                self.rating_for(day, CheckInType.MORNING),
                self.rating_for(day, CheckInType.EVENING),
            )
            if rating
        ]
        if not ratings:
            return 0
        return sum(ratings) // len(ratings)

    def last_entry(self) -> MoodEntry | None:
        """Return the most recent entry."""
        return max(self.entries, key=lambda entry: entry.timestamp, default=None)

    def start_of_day(self, day: date | datetime) -> datetime:
        """Midnight of ``day`` in the store's time zone."""
        if isinstance(day, datetime):
            if day.tzinfo is None:
                day = day.replace(tzinfo=self.tz)
            day = day.astimezone(self.tz).date()
        return datetime.combine(day, time.min, tzinfo=self.tz)

    # Local mirror -----------------------------------------------------
    def load_from_local(self) -> None:
        """Replace the in-memory collection with the locally saved one."""
        self.entries = self.storage.load_entries()
        logger.debug("Loaded %d entries from local storage", len(self.entries))

    def save_to_local(self) -> bool:
        """Write the whole collection to local storage (best effort)."""
        return self.storage.save_entries(self.entries)

    # Remote mirror ----------------------------------------------------
    async def handle_session_changed(self, event: Event) -> None:
        """Track the current identity and run the one-shot sync on sign-in."""
        payload = event.payload.get("identity")
        if not payload:
            self.identity = None
            return
        self.identity = Identity.from_dict(payload)
        await self.pull_from_remote(self.identity)

    async def pull_from_remote(self, identity: Identity) -> Result[str]:
        """Reconcile local entries with the remote collection once.

        Local entries win whenever they exist. An empty local journal is
        seeded from the remote collection; an empty remote collection receives
        every local entry.

        Returns:
            Result whose value names the action taken: ``"pulled"``,
            ``"pushed"``, ``"skipped"`` or ``"disabled"``.

        """
        if self.remote is None:
            return Result.success("disabled")
        try:
            remote_entries = await self.remote.fetch_entries(identity.uid)
        except RemoteStoreError as exc:
            return await self._fail(f"Failed to load mood entries: {exc}")

        if not self.entries and remote_entries:
            self.entries = list(remote_entries)
            self.save_to_local()
            logger.info("Seeded %d entries from remote for %s", len(remote_entries), identity.uid)
            await self.bus.publish("mood.reloaded", {"count": len(self.entries)})
            return Result.success("pulled")
        if self.entries and not remote_entries:
            try:
                await self.remote.write_entries(identity.uid, self.entries)
            except RemoteStoreError as exc:
                return await self._fail(f"Failed to upload mood entries: {exc}")
            return Result.success("pushed")
        return Result.success("skipped")

    async def push_entry(self, entry: MoodEntry) -> Result[None]:
        """Upsert ``entry`` into the remote collection of the current identity."""
        if self.remote is None or self.identity is None:
            logger.debug("Skipping remote push of %s: no remote identity", entry.id)
            return Result.success()
        try:
            await self.remote.upsert_entry(self.identity.uid, entry)
        except RemoteStoreError as exc:
            return await self._fail(f"Failed to sync mood entry: {exc}")
        self.error_message = None
        return Result.success()

    async def seed_sample_entries(
        self, days: int = 30, rng: random.Random | None = None
    ) -> Result[int]:
        """Generate past check-ins for demos and write them in one remote batch.

        Days that already hold a check-in of a given type are left alone.

        Returns:
            Result carrying the number of generated entries.

        """
        rng = rng or random.Random()
        today = self.start_of_day(self._now())
        generated: list[MoodEntry] = []
        for offset in range(1, days + 1):
            day = today - timedelta(days=offset)
            for check_in_type, hour in ((CheckInType.MORNING, 8), (CheckInType.EVENING, 20)):
                if self.query_by_day_and_type(day, check_in_type):
                    continue
                generated.append(
                    MoodEntry(
                        rating=rng.randint(3, 10),
                        check_in_type=check_in_type,
                        timestamp=day + timedelta(hours=hour, minutes=rng.randint(0, 59)),
                        note=rng.choice(SAMPLE_NOTES),
                    )
                )
        self.entries.extend(generated)
        self.save_to_local()
        await self.bus.publish("mood.reloaded", {"count": len(self.entries)})
        if self.remote is not None and self.identity is not None:
            try:
                await self.remote.write_entries(self.identity.uid, generated)
            except RemoteStoreError as exc:
                return await self._fail(f"Failed to upload sample entries: {exc}")
        return Result.success(len(generated))

    # Internal ---------------------------------------------------------
    def _now(self) -> datetime:
        return self.clock().astimezone(self.tz)

    async def _fail(self, message: str) -> Result:
        logger.warning(message)
        self.error_message = message
        await self.bus.publish("mood.error", {"message": message})
        return Result.failure(message)


def _mean(values) -> float | None:
    items = list(values)
    if not items:
        return None
    return sum(items) / len(items)


__all__ = ["MoodStore"]
