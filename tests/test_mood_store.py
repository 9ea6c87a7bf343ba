"""Behaviour of the mood journal store and its local and remote mirrors."""

from __future__ import annotations

import asyncio
import random
from datetime import UTC, date, datetime, timedelta, timezone

from feelgood.event_bus import EventBus
from feelgood.mood_store import MoodStore
from feelgood.storage import CheckInType, Identity, LocalStorage, MoodEntry, SQLiteAdapter

ALICE = Identity(uid="alice", email="alice@example.com")


def _store(clock, storage, remote=None, recorder=None, **kwargs) -> MoodStore:
    bus = EventBus()
    if recorder is not None:
        recorder.attach(bus)
    return MoodStore(bus, storage, remote, clock=clock, **kwargs)


async def _sign_in(store: MoodStore, identity: Identity = ALICE) -> None:
    await store.bus.publish("session.changed", {"identity": identity.to_dict()})


def test_second_morning_check_in_overwrites_first(clock, storage, recorder) -> None:
    async def _run() -> None:
        store = _store(clock, storage, recorder=recorder)
        first = await store.record_check_in(6, "slow start", CheckInType.MORNING)
        clock.advance(hours=2)
        second = await store.record_check_in(8, "felt good", CheckInType.MORNING)

        assert first is not None and second is not None
        assert len(store.entries) == 1
        assert second.id == first.id
        assert second.rating == 8
        assert second.note == "felt good"
        assert [p["created"] for p in recorder.payloads("mood.saved")] == [True, False]

    asyncio.run(_run())


def test_overwrite_keeps_transcription_unless_replaced(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        await store.record_check_in(5, "spoken", CheckInType.EVENING, transcription="spoken")
        entry = await store.record_check_in(7, "typed", CheckInType.EVENING)
        assert entry is not None
        assert entry.transcription == "spoken"
        entry = await store.record_check_in(7, "again", "evening", transcription="again")
        assert entry.transcription == "again"
        assert len(store.entries) == 1

    asyncio.run(_run())


def test_morning_and_evening_are_separate_entries(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        await store.record_check_in(8, None, CheckInType.MORNING)
        clock.advance(hours=10)
        await store.record_check_in(5, None, CheckInType.EVENING)

        assert len(store.entries) == 2
        assert store.rating_for(clock.now, CheckInType.MORNING) == 8
        assert store.rating_for(clock.now, "evening") == 5
        assert store.overall_rating(clock.now) == 6

    asyncio.run(_run())


def test_check_in_on_next_day_appends(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        await store.record_check_in(4, None, CheckInType.MORNING)
        clock.advance(days=1)
        await store.record_check_in(9, None, CheckInType.MORNING)
        assert [entry.rating for entry in store.entries] == [4, 9]

    asyncio.run(_run())


def test_quick_updates_always_append(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        first = await store.record_quick_update(note="coffee")
        clock.advance(minutes=5)
        second = await store.record_quick_update(7, "coffee")
        routed = await store.record_check_in(3, "meeting", CheckInType.QUICK_UPDATE)

        assert len(store.entries) == 3
        assert first.rating == 0
        assert first.id != second.id
        assert routed.check_in_type is CheckInType.QUICK_UPDATE
        assert {entry.id for entry in store.entries} == {first.id, second.id, routed.id}

    asyncio.run(_run())


def test_invalid_rating_has_no_side_effects(clock, storage, recorder) -> None:
    async def _run() -> None:
        store = _store(clock, storage, recorder=recorder)
        assert await store.record_check_in(11, "too happy") is None
        assert await store.record_quick_update(-1) is None
        assert await store.record_check_in(5, None, "afternoon") is None

        assert store.entries == []
        assert storage.load_entries() == []
        assert "between 0 and 10" in recorder.payloads("mood.error")[0]["message"]
        assert "mood.saved" not in recorder.names()

    asyncio.run(_run())


def test_query_by_day_respects_day_bounds(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        clock.now = datetime(2024, 5, 15, 23, 59, 59, tzinfo=UTC)
        late = await store.record_quick_update(5)
        clock.now = datetime(2024, 5, 16, 0, 0, tzinfo=UTC)
        early = await store.record_quick_update(6)

        assert store.query_by_day(date(2024, 5, 15)) == [late]
        assert store.query_by_day(date(2024, 5, 16)) == [early]

    asyncio.run(_run())


def test_query_by_day_uses_store_time_zone(clock, storage) -> None:
    async def _run() -> None:
        eastern = timezone(timedelta(hours=-5))
        store = _store(clock, storage, tz=eastern)
        clock.now = datetime(2024, 5, 16, 3, 0, tzinfo=UTC)
        entry = await store.record_quick_update(5)

        assert store.query_by_day(date(2024, 5, 15)) == [entry]
        assert store.query_by_day(date(2024, 5, 16)) == []

    asyncio.run(_run())


def test_query_results_are_newest_first(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        morning = await store.record_check_in(7, None, CheckInType.MORNING)
        clock.advance(hours=3)
        quick = await store.record_quick_update(5)

        assert store.query_by_day(clock.now) == [quick, morning]
        assert store.query_by_day_and_type(clock.now, CheckInType.MORNING) == [morning]
        assert store.last_entry() is quick

    asyncio.run(_run())


def test_averages(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        assert store.average_rating_for_day(clock.now) is None
        assert store.average_rating(7) is None
        assert store.overall_rating(clock.now) == 0

        await store.record_check_in(8, None, CheckInType.MORNING)
        await store.record_quick_update(None, "no rating")
        assert store.average_rating_for_day(clock.now) == 4.0

        clock.advance(days=10)
        await store.record_quick_update(6)
        assert store.average_rating(7) == 6.0
        assert store.average_rating(30) == 14 / 3

    asyncio.run(_run())


def test_local_only_operation_makes_no_remote_calls(clock, storage, remote) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote)
        await store.record_check_in(8, "felt good", CheckInType.MORNING)
        await store.record_quick_update(4)
        assert remote.calls == []

    asyncio.run(_run())


def test_signed_in_mutation_upserts_affected_entry(clock, storage, remote) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote)
        await _sign_in(store)
        entry = await store.record_check_in(8, "felt good", CheckInType.MORNING)

        assert remote.calls == [("fetch_entries", "alice"), ("upsert_entry", "alice")]
        assert remote.collections["alice"][entry.id].rating == 8

    asyncio.run(_run())


def test_remote_failure_keeps_local_save(clock, storage, remote, recorder) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote, recorder=recorder)
        await _sign_in(store)
        remote.fail_with = "offline"
        entry = await store.record_check_in(6, None, CheckInType.EVENING)

        assert entry is not None
        assert store.error_message == "Failed to sync mood entry: offline"
        assert recorder.payloads("mood.error") == [{"message": store.error_message}]
        assert [saved.id for saved in storage.load_entries()] == [entry.id]

    asyncio.run(_run())


def test_sign_in_pulls_remote_entries_into_empty_journal(clock, storage, remote, recorder) -> None:
    async def _run() -> None:
        existing = MoodEntry(7, CheckInType.MORNING, clock.now - timedelta(days=1), "from phone")
        remote.seed("alice", [existing])
        store = _store(clock, storage, remote, recorder=recorder)
        await _sign_in(store)

        assert [entry.id for entry in store.entries] == [existing.id]
        assert [entry.id for entry in storage.load_entries()] == [existing.id]
        assert recorder.payloads("mood.reloaded") == [{"count": 1}]

    asyncio.run(_run())


def test_first_sync_pushes_local_entries(clock, storage, remote) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote)
        morning = await store.record_check_in(7, None, CheckInType.MORNING)
        quick = await store.record_quick_update(3)

        result = await store.pull_from_remote(ALICE)

        assert result.value == "pushed"
        assert set(remote.collections["alice"]) == {morning.id, quick.id}

    asyncio.run(_run())


def test_local_entries_win_when_both_sides_have_data(clock, storage, remote) -> None:
    async def _run() -> None:
        remote.seed("alice", [MoodEntry(2, CheckInType.EVENING, clock.now - timedelta(days=3))])
        store = _store(clock, storage, remote)
        local = await store.record_check_in(9, None, CheckInType.MORNING)

        result = await store.pull_from_remote(ALICE)

        assert result.value == "skipped"
        assert store.entries == [local]

    asyncio.run(_run())


def test_pull_without_remote_is_disabled(clock, storage) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        result = await store.pull_from_remote(ALICE)
        assert result.ok and result.value == "disabled"

    asyncio.run(_run())


def test_failed_pull_reports_error(clock, storage, remote) -> None:
    async def _run() -> None:
        remote.fail_with = "permission denied"
        store = _store(clock, storage, remote)
        result = await store.pull_from_remote(ALICE)
        assert not result.ok
        assert store.error_message == "Failed to load mood entries: permission denied"

    asyncio.run(_run())


def test_sign_out_stops_remote_pushes(clock, storage, remote) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote)
        await _sign_in(store)
        await store.bus.publish("session.changed", {"identity": None})
        await store.record_quick_update(5)

        assert store.identity is None
        assert remote.calls == [("fetch_entries", "alice")]

    asyncio.run(_run())


def test_restart_reloads_identical_collection(clock, tmp_path) -> None:
    async def _run() -> None:
        path = str(tmp_path / "journal.db")
        store = _store(clock, LocalStorage(SQLiteAdapter(path)))
        await store.record_check_in(8, "felt good", CheckInType.MORNING, transcription="felt good")
        await store.record_quick_update(None, "walk")

        reloaded = _store(clock, LocalStorage(SQLiteAdapter(path)))

        assert [entry.to_dict() for entry in reloaded.entries] == [
            entry.to_dict() for entry in store.entries
        ]

    asyncio.run(_run())


def test_seed_sample_entries_fills_missing_days(clock, storage, remote) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote)
        await _sign_in(store)
        result = await store.seed_sample_entries(3, rng=random.Random(7))

        assert result.value == 6
        assert all(3 <= entry.rating <= 10 for entry in store.entries)
        assert remote.calls[-1] == ("write_entries", "alice")
        assert len(remote.collections["alice"]) == 6
        assert len(storage.load_entries()) == 6

        again = await store.seed_sample_entries(3, rng=random.Random(7))
        assert again.value == 0

    asyncio.run(_run())


def test_seed_batch_failure_is_single_error(clock, storage, remote) -> None:
    async def _run() -> None:
        store = _store(clock, storage, remote)
        await _sign_in(store)
        remote.fail_with = "quota exceeded"
        result = await store.seed_sample_entries(2, rng=random.Random(1))

        assert result.error == "Failed to upload sample entries: quota exceeded"
        assert len(store.entries) == 4

    asyncio.run(_run())


def test_quick_update_ignores_transcription_with_warning(clock, storage, caplog) -> None:
    async def _run() -> None:
        store = _store(clock, storage)
        entry = await store.record_check_in(
            4, "on the bus", CheckInType.QUICK_UPDATE, transcription="on the bus"
        )

        assert entry.check_in_type is CheckInType.QUICK_UPDATE
        assert entry.note == "on the bus"
        assert entry.transcription is None
        assert "Quick updates keep no transcription" in caplog.text

    asyncio.run(_run())
