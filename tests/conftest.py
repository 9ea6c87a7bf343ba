"""Pytest configuration and shared doubles for external boundaries."""

from __future__ import annotations

import asyncio
import inspect
import sys
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from feelgood.event_bus import Event, EventBus  # noqa: E402
from feelgood.remote import DocumentStore, RemoteStoreError  # noqa: E402
from feelgood.storage import LocalStorage, MemoryAdapter, MoodEntry  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used across the test suite."""

    config.addinivalue_line(
        "markers", "asyncio: run test coroutine inside a dedicated event loop"
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute ``@pytest.mark.asyncio`` tests using ``asyncio`` event loops."""

    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None

    func = pyfuncitem.obj
    if not asyncio.iscoroutinefunction(func):
        return None

    loop = asyncio.new_event_loop()
    try:
        signature = inspect.signature(func)
        kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in signature.parameters
            if name in pyfuncitem.funcargs
        }
        loop.run_until_complete(func(**kwargs))
    finally:
        loop.close()

    return True


class FakeClock:
    """Controllable replacement for ``datetime.now``."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeDocumentStore(DocumentStore):
    """In-memory stand-in for the Firestore mirror that records every call."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, MoodEntry]] = {}
        self.preferences: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_with: str | None = None

    def seed(self, uid: str, entries: Iterable[MoodEntry]) -> None:
        self.collections.setdefault(uid, {}).update({entry.id: entry for entry in entries})

    def _record(self, method: str, uid: str) -> None:
        self.calls.append((method, uid))
        if self.fail_with is not None:
            raise RemoteStoreError(self.fail_with)

    async def upsert_entry(self, uid: str, entry: MoodEntry) -> None:
        self._record("upsert_entry", uid)
        self.collections.setdefault(uid, {})[entry.id] = MoodEntry.from_dict(entry.to_dict())

    async def fetch_entries(self, uid: str) -> list[MoodEntry]:
        self._record("fetch_entries", uid)
        stored = self.collections.get(uid, {}).values()
        return sorted(stored, key=lambda entry: entry.timestamp, reverse=True)

    async def write_entries(self, uid: str, entries: Iterable[MoodEntry]) -> None:
        self._record("write_entries", uid)
        self.seed(uid, [MoodEntry.from_dict(entry.to_dict()) for entry in entries])

    async def save_preferences(self, uid: str, fields: Mapping[str, Any]) -> None:
        self._record("save_preferences", uid)
        self.preferences.setdefault(uid, {}).update(fields)


@pytest.fixture
def clock() -> FakeClock:
    # A Wednesday morning.
    return FakeClock(datetime(2024, 5, 15, 9, 30, tzinfo=UTC))


@pytest.fixture
def storage() -> LocalStorage:
    return LocalStorage(MemoryAdapter())


@pytest.fixture
def remote() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def recorder() -> "EventRecorder":
    return EventRecorder()


class EventRecorder:
    """Collects events published on a bus for assertions."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def attach(self, bus: EventBus) -> EventBus:
        bus.subscribe("*", self.events.append)
        return bus

    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def payloads(self, name: str) -> list[dict[str, Any]]:
        return [event.payload for event in self.events if event.name == name]
