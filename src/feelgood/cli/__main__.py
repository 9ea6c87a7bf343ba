"""Command line entry-point for the FeelGood journal."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Sequence

from feelgood import __version__
from feelgood.auth import FirebaseIdentityProvider, IdentityProvider, Session
from feelgood.config import Settings
from feelgood.event_bus import Event, EventBus
from feelgood.insights import InsightsReport, TimeRange, build_report
from feelgood.mood_store import MoodStore
from feelgood.preferences import PreferencesStore
from feelgood.remote import DocumentStore, FirestoreDocumentStore, RemoteStoreError
from feelgood.storage import (
    CheckInType,
    LocalStorage,
    MoodEntry,
    SQLiteAdapter,
    StateAdapter,
    mood_bucket,
)
from feelgood.transcription import TranscriptionClient, TranscriptionService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Application:
    """Explicitly wired application state shared by the commands."""

    bus: EventBus
    storage: LocalStorage
    moods: MoodStore
    preferences: PreferencesStore
    tz: tzinfo
    session: Session | None = None
    transcription: TranscriptionService | None = None


def build_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser for journal commands."""
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description="FeelGood mood journal")
    parser.add_argument("--db", default=settings.db_path, help="Local state database path")
    parser.add_argument("--tz", default=settings.timezone, help="Time zone for calendar days")
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--version", action="version", version=f"feelgood {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    for name in ("login", "signup"):
        auth = commands.add_parser(name, help=f"{name.title()} with email and password")
        auth.add_argument("--email", required=True)
        auth.add_argument("--password", required=True)
    commands.add_parser("logout", help="Sign out")

    checkin = commands.add_parser("checkin", help="Record a morning or evening check-in")
    checkin.add_argument(
        "--type",
        dest="check_in_type",
        choices=[CheckInType.MORNING.value, CheckInType.EVENING.value],
        default=CheckInType.MORNING.value,
    )
    checkin.add_argument("--rating", type=int, required=True)
    checkin.add_argument("--note")
    checkin.add_argument("--audio", help="Voice note to transcribe into the note")

    quick = commands.add_parser("quick", help="Record a quick update")
    quick.add_argument("--rating", type=int)
    quick.add_argument("--note")

    commands.add_parser("today", help="Show today's timeline")

    insights = commands.add_parser("insights", help="Show aggregate insights")
    insights.add_argument(
        "--range", dest="time_range", choices=[item.value for item in TimeRange], default="week"
    )

    transcribe = commands.add_parser("transcribe", help="Transcribe a voice note")
    transcribe.add_argument("audio")

    commands.add_parser("sync", help="Reconcile entries with the remote store")

    seed = commands.add_parser("seed", help="Generate sample entries")
    seed.add_argument("--days", type=int, default=30)

    theme = commands.add_parser("theme", help="Select a theme by index")
    theme.add_argument("index", type=int)
    return parser


def create_remote(settings: Settings) -> DocumentStore | None:
    """Instantiate the Firestore mirror when a project is configured.

    Returns:
        The store, or ``None`` when no project is set or the client cannot
        be created; the journal then works locally only.

    """
    if not settings.firestore_project:
        return None
    try:
        return FirestoreDocumentStore(project=settings.firestore_project)
    except RemoteStoreError as exc:
        logger.warning("Remote sync disabled: %s", exc)
        return None


def bootstrap(
    settings: Settings,
    *,
    adapter: StateAdapter | None = None,
    remote: DocumentStore | None = None,
    provider: IdentityProvider | None = None,
    transcription_client: TranscriptionClient | None = None,
) -> Application:
    """Wire stores and clients to a shared event bus.

    Args:
        settings: Resolved configuration.
        adapter: Local state adapter, defaults to SQLite at ``settings.db_path``.
        remote: Remote document store, ``None`` disables remote sync.
        provider: Identity provider, defaults to Firebase when configured.
        transcription_client: Speech-to-text client, defaults to OpenAI when configured.

    Returns:
        The wired :class:`Application`.

    """
    bus = EventBus()
    storage = LocalStorage(adapter or SQLiteAdapter(settings.db_path))
    tz = settings.tzinfo()
    preferences = PreferencesStore(bus, storage, remote)
    moods = MoodStore(bus, storage, remote, tz=tz)

    if provider is None and settings.firebase_api_key:
        provider = FirebaseIdentityProvider(settings.firebase_api_key)
    session = Session(bus, provider) if provider is not None else None

    if transcription_client is None and settings.openai_api_key:
        transcription_client = TranscriptionClient(
            settings.openai_api_key, timeout=settings.transcription_timeout
        )
    transcription = (
        TranscriptionService(bus, transcription_client) if transcription_client else None
    )

    async def log_error(event: Event) -> None:
        logger.debug("%s: %s", event.name, event.payload.get("message"))

    bus.subscribe(("mood.error", "session.error", "preferences.error"), log_error)
    return Application(
        bus=bus,
        storage=storage,
        moods=moods,
        preferences=preferences,
        tz=tz,
        session=session,
        transcription=transcription,
    )


def stage_recording(path: str | Path) -> Path:
    """Copy a user's audio file to a temporary file the transcriber may delete."""
    source = Path(path)
    with tempfile.NamedTemporaryFile(
        prefix="voice_memo_", suffix=source.suffix or ".m4a", delete=False
    ) as staged:
        target = Path(staged.name)
    if source.is_file():
        shutil.copyfile(source, target)
    else:
        target.unlink(missing_ok=True)
    return target


def format_entry(entry: MoodEntry, tz: tzinfo) -> str:
    """Render one entry as a timeline line."""
    bucket = mood_bucket(entry.rating)
    rating = f"{entry.rating}/10" if entry.rating else "-"
    line = (
        f"{entry.timestamp.astimezone(tz):%I:%M %p} {bucket.emoji} {rating} "
        f"[{entry.check_in_type.value}]"
    )
    text = entry.note or entry.transcription
    return f"{line} {text}" if text else line


def format_report(report: InsightsReport, tz: tzinfo) -> list[str]:
    """Render an insights report as lines of text."""
    average = f"{report.average:.1f}" if report.average is not None else "N/A"
    lines = [
        f"Range: {report.time_range.value}",
        f"Average mood: {average}" + (f" ({report.trend})" if report.trend else ""),
        f"Consistency: {report.consistency}%",
    ]
    if report.today_average is not None:
        lines.append(f"Today's average: {report.today_average:.1f}")
    if report.mood_range is not None:
        lines.append(f"Mood range: {report.mood_range[0]}-{report.mood_range[1]}")
    if report.patterns:
        lines.extend(f"* {pattern}" for pattern in report.patterns)
    else:
        lines.append("Not enough data to identify patterns")
    lines.extend(format_entry(entry, tz) for entry in report.recent_entries)
    return lines


async def run_command(app: Application, args: argparse.Namespace) -> int:
    """Execute the parsed command against ``app``.

    Returns:
        Process exit status.

    """
    command = args.command
    if command in {"login", "signup", "logout"}:
        if app.session is None:
            print("Sign-in is not configured (set FIREBASE_API_KEY)")
            return 2
        if command == "logout":
            result = await app.session.sign_out()
        elif command == "login":
            result = await app.session.sign_in(args.email, args.password)
        else:
            result = await app.session.sign_up(args.email, args.password)
        print(result.error or "OK")
        return 0 if result.ok else 1

    if command == "checkin":
        note, transcription = args.note, None
        if args.audio:
            if app.transcription is None:
                print("Transcription is not configured (set OPENAI_API_KEY)")
                return 2
            outcome = await app.transcription.transcribe_recording(stage_recording(args.audio))
            if not outcome.ok:
                print(outcome.error)
                return 1
            note = transcription = outcome.value
        entry = await app.moods.record_check_in(
            args.rating, note, CheckInType(args.check_in_type), transcription
        )
        return _report_entry(app, entry)

    if command == "quick":
        entry = await app.moods.record_quick_update(args.rating, args.note)
        return _report_entry(app, entry)

    if command == "today":
        now = datetime.now(app.tz)
        entries = app.moods.query_by_day(now)
        overall = app.moods.overall_rating(now)
        print(f"{now:%A, %B %d} {mood_bucket(overall).emoji} ({len(entries)} updates)")
        for entry in entries:
            print(format_entry(entry, app.tz))
        return 0

    if command == "insights":
        report = build_report(app.moods.entries, args.time_range, tz=app.tz)
        for line in format_report(report, app.tz):
            print(line)
        return 0

    if command == "transcribe":
        if app.transcription is None:
            print("Transcription is not configured (set OPENAI_API_KEY)")
            return 2
        outcome = await app.transcription.transcribe_recording(stage_recording(args.audio))
        print(outcome.value if outcome.ok else outcome.error)
        return 0 if outcome.ok else 1

    if command == "sync":
        identity = app.session.identity if app.session else None
        if identity is None:
            print("Not signed in")
            return 1
        result = await app.moods.pull_from_remote(identity)
        print(result.value if result.ok else result.error)
        return 0 if result.ok else 1

    if command == "seed":
        result = await app.moods.seed_sample_entries(args.days)
        print(f"Generated {result.value} entries" if result.ok else result.error)
        return 0 if result.ok else 1

    if command == "theme":
        result = await app.preferences.select_theme(args.index)
        print(app.preferences.preferences.theme_name if result.ok else result.error)
        return 0 if result.ok else 1

    raise ValueError(f"Unsupported command {command}")  # pragma: no cover - argparse


def _report_entry(app: Application, entry: MoodEntry | None) -> int:
    if entry is None:
        print(app.moods.error_message)
        return 1
    print(format_entry(entry, app.tz))
    if app.moods.error_message:
        print(f"Warning: {app.moods.error_message}")
    return 0


async def async_main(args: argparse.Namespace) -> int:
    """Build the application, restore the cached identity and run one command."""
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    settings = Settings.from_env()
    settings.db_path = args.db
    settings.timezone = args.tz
    app = bootstrap(settings, remote=create_remote(settings))
    cached = app.preferences.cached_identity
    if app.session is not None and cached is not None:
        await app.session.restore(cached)
    return await run_command(app, args)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and run the async entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        Settings(timezone=args.tz).tzinfo()
    except ValueError as exc:
        parser.error(str(exc))
    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:  # pragma: no cover - manual interruption
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
