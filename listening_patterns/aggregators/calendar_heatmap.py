"""Calendar heatmap of daily listening intensity"""
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional

from listening_patterns.aggregators.timeutils import TimezoneLike, resolve_timezone, to_local
from listening_patterns.models.summary import CalendarDay, CalendarSummary

CALENDAR_WEEKS = 12


def intensity_level(count: int, max_count: int) -> int:
    """
    Bucket a day's play count into a 0-4 tier relative to the busiest day.

    0 is reserved for days without plays; otherwise the share of the maximum
    maps to 1 (up to 25%), 2 (up to 50%), 3 (up to 75%) and 4 (above 75%).
    """
    if count <= 0 or max_count <= 0:
        return 0
    ratio = count / max_count
    if ratio <= 0.25:
        return 1
    if ratio <= 0.5:
        return 2
    if ratio <= 0.75:
        return 3
    return 4


def week_start(day: date) -> date:
    """Sunday on or before day"""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def calendar_summary(entries: Iterable[Any], timezone: TimezoneLike, today: Optional[date] = None,
                     weeks: int = CALENDAR_WEEKS) -> CalendarSummary:
    """
    Lay out the trailing weeks ending at today as Sunday-first rows of day cells.

    Args:
        entries: History entries with played_at instants
        timezone: IANA name or tzinfo used for the local date
        today: Current local date; defaults to now in timezone
        weeks: Number of week rows

    Returns:
        CalendarSummary with week rows of CalendarDay cells
    """
    tz = resolve_timezone(timezone)
    if today is None:
        today = datetime.now(tz).date()
    weeks = max(1, int(weeks))

    entries = list(entries)
    counts = Counter(to_local(entry.played_at, tz).date() for entry in entries)

    start = week_start(today) - timedelta(weeks=weeks - 1)
    days = [start + timedelta(days=offset) for offset in range(weeks * 7)]
    max_count = max((counts.get(day, 0) for day in days if day <= today), default=0)

    rows: List[List[CalendarDay]] = []
    for row_start in range(0, len(days), 7):
        row = []
        for day in days[row_start:row_start + 7]:
            future = day > today
            count = 0 if future else counts.get(day, 0)
            row.append(CalendarDay(
                day=day,
                count=count,
                level=intensity_level(count, max_count),
                future=future,
            ))
        rows.append(row)

    return CalendarSummary(
        sample_size=len(entries),
        weeks=rows,
        max_count=max_count,
        start_date=start,
        end_date=today,
    )
