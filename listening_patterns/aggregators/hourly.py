"""Hourly listening distribution"""
from collections import Counter
from typing import Any, Iterable, List, Optional

from listening_patterns.aggregators.timeutils import (
    TimezoneLike,
    hour_label,
    normalize_limit,
    resolve_timezone,
    to_local,
)
from listening_patterns.models.summary import HourBucket, HourlySummary

TOP_HOURS = 5


def empty_hourly_summary(limit: Any = None, error: Optional[str] = None) -> HourlySummary:
    """Result used when the play source could not be read at all"""
    return HourlySummary(limit=normalize_limit(limit), sample_size=0, chart=None, top_hours=[], error=error)


def hourly_summary(entries: Iterable[Any], timezone: TimezoneLike, limit: Any = None,
                   top: int = TOP_HOURS) -> HourlySummary:
    """
    Build a 24-slot histogram of plays by local hour.

    Args:
        entries: History entries, newest first; anything with a played_at instant
        timezone: IANA name or tzinfo used for the local hour
        limit: Requested sample size, clamped to the allowed tiers
        top: How many of the busiest hours to rank

    Returns:
        HourlySummary with the chart series and the ranked top hours
    """
    tz = resolve_timezone(timezone)
    limit = normalize_limit(limit)
    sample = list(entries)[:limit]

    counts = Counter(to_local(entry.played_at, tz).hour for entry in sample)
    sample_size = len(sample)

    hours: List[HourBucket] = []
    for hour in range(24):
        count = counts.get(hour, 0)
        hours.append(HourBucket(
            hour=hour,
            label=hour_label(hour),
            count=count,
            percentage=round(count * 100 / sample_size, 1) if sample_size else 0.0,
        ))

    ranked = sorted((b for b in hours if b.count > 0), key=lambda b: (-b.count, b.hour))

    chart = {
        'labels': [b.label for b in hours],
        'datasets': [{'label': 'Plays', 'data': [b.count for b in hours]}],
    }

    return HourlySummary(
        limit=limit,
        sample_size=sample_size,
        chart=chart,
        hours=hours,
        top_hours=ranked[:top],
    )
