"""Aggregate statistics and simple pattern heuristics over mood entries."""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from enum import Enum

from feelgood.storage import CheckInType, MoodEntry

# Patterns are only reported once there is this much data in range.
MIN_ENTRIES_FOR_PATTERNS = 10
MIN_ENTRIES_FOR_TREND = 14
RECENT_ENTRY_COUNT = 5


class TimeRange(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def days(self) -> int:
        """Number of days used for the consistency percentage."""
        return {TimeRange.WEEK: 7, TimeRange.MONTH: 30, TimeRange.YEAR: 365}[self]

    def start(self, now: datetime) -> datetime:
        """Beginning of the range ending at ``now``."""
        if self is TimeRange.WEEK:
            return now - timedelta(days=7)
        if self is TimeRange.MONTH:
            return shift_months(now, -1)
        return shift_months(now, -12)

    def previous_period(self, now: datetime) -> tuple[datetime, datetime]:
        """Bounds of the period preceding the current one."""
        if self is TimeRange.WEEK:
            return now - timedelta(days=14), now - timedelta(days=8)
        if self is TimeRange.MONTH:
            return shift_months(now, -2), self.start(now) - timedelta(days=1)
        return shift_months(now, -24), self.start(now) - timedelta(days=1)


@dataclass(slots=True)
class InsightsReport:
    """Everything the insights dashboard displays for one time range."""

    time_range: TimeRange
    entries: list[MoodEntry]
    average: float | None
    today_average: float | None
    trend: str | None
    consistency: int
    mood_range: tuple[int, int] | None
    recent_entries: list[MoodEntry] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole months, clamping the day to the month length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def mean_rating(entries: Iterable[MoodEntry]) -> float | None:
    ratings = [entry.rating for entry in entries]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def entries_in_range(
    entries: Iterable[MoodEntry], time_range: TimeRange, now: datetime
) -> list[MoodEntry]:
    """Entries inside ``time_range`` ending at ``now``, newest first."""
    start = time_range.start(now)
    selected = [entry for entry in entries if start <= entry.timestamp <= now]
    return sorted(selected, key=lambda entry: entry.timestamp, reverse=True)


def trend_text(
    entries: Sequence[MoodEntry], time_range: TimeRange, now: datetime
) -> str | None:
    """Describe the change of the average against the previous period.

    Returns:
        ``None`` when the current period has no entries.

    """
    current = mean_rating(entries_in_range(entries, time_range, now))
    if current is None:
        return None
    previous_start, previous_end = time_range.previous_period(now)
    previous = mean_rating(
        entry for entry in entries if previous_start <= entry.timestamp <= previous_end
    )
    if not previous:
        return "No previous data"
    difference = (current - previous) / previous * 100
    if difference > 0:
        return f"↑ {abs(difference):.1f}% from previous"
    if difference < 0:
        return f"↓ {abs(difference):.1f}% from previous"
    return "No change from previous"


def consistency_percentage(
    entries: Iterable[MoodEntry], time_range: TimeRange, tz: tzinfo = UTC
) -> int:
    """Share of days in the range that have at least one entry."""
    days = {entry.timestamp.astimezone(tz).date() for entry in entries}
    if not days:
        return 0
    return int(len(days) / time_range.days * 100)


def mood_patterns(entries: Sequence[MoodEntry], tz: tzinfo = UTC) -> list[str]:
    """Detect simple patterns in ``entries`` (expected newest first).

    Group averages use integer division, so a pattern needs a gap of more
    than one whole rating point.
    """
    if len(entries) < MIN_ENTRIES_FOR_PATTERNS:
        return []
    patterns: list[str] = []

    morning = [e.rating for e in entries if e.check_in_type is CheckInType.MORNING]
    evening = [e.rating for e in entries if e.check_in_type is CheckInType.EVENING]
    if morning and evening:
        morning_avg = sum(morning) // len(morning)
        evening_avg = sum(evening) // len(evening)
        if morning_avg > evening_avg + 1:
            patterns.append("Your mood tends to be better in the mornings")
        elif evening_avg > morning_avg + 1:
            patterns.append("Your mood tends to improve in the evenings")

    weekday = [e.rating for e in entries if e.timestamp.astimezone(tz).weekday() < 5]
    weekend = [e.rating for e in entries if e.timestamp.astimezone(tz).weekday() >= 5]
    if weekday and weekend:
        weekday_avg = sum(weekday) // len(weekday)
        weekend_avg = sum(weekend) // len(weekend)
        if weekend_avg > weekday_avg + 1:
            patterns.append("Your mood is typically higher on weekends")
        elif weekday_avg > weekend_avg + 1:
            patterns.append("Your mood is typically higher on weekdays")

    if len(entries) >= MIN_ENTRIES_FOR_TREND:
        recent = [e.rating for e in entries[:7]]
        older = [e.rating for e in entries[7:14]]
        recent_avg = sum(recent) // len(recent)
        older_avg = sum(older) // len(older)
        if recent_avg >= older_avg + 1:
            patterns.append("Your mood has been improving recently")
        elif older_avg >= recent_avg + 1:
            patterns.append("Your mood has been declining recently")
        else:
            patterns.append("Your mood has been stable recently")

    return patterns


def build_report(
    entries: Sequence[MoodEntry],
    time_range: TimeRange | str = TimeRange.WEEK,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> InsightsReport:
    """Compute the insights dashboard for ``time_range``.

    Args:
        entries: Every journal entry.
        time_range: Range to summarise.
        now: Reference time, defaults to the current time.
        tz: Time zone defining calendar days.

    Returns:
        The populated :class:`InsightsReport`.

    """
    time_range = TimeRange(time_range)
    now = (now or datetime.now(UTC)).astimezone(tz)
    in_range = entries_in_range(entries, time_range, now)
    today = now.date()
    ratings = [entry.rating for entry in in_range]
    return InsightsReport(
        time_range=time_range,
        entries=in_range,
        average=mean_rating(in_range),
        today_average=mean_rating(
            entry for entry in entries if entry.timestamp.astimezone(tz).date() == today
        ),
        trend=trend_text(entries, time_range, now),
        consistency=consistency_percentage(in_range, time_range, tz),
        mood_range=(min(ratings), max(ratings)) if ratings else None,
        recent_entries=sorted(entries, key=lambda entry: entry.timestamp, reverse=True)[
            :RECENT_ENTRY_COUNT
        ],
        patterns=mood_patterns(in_range, tz),
    )


__all__ = [
    "InsightsReport",
    "TimeRange",
    "build_report",
    "consistency_percentage",
    "entries_in_range",
    "mood_patterns",
    "shift_months",
    "trend_text",
]
