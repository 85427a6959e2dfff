"""Month-over-month listening trend"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from listening_patterns.aggregators.timeutils import TimezoneLike, hours_from_ms, resolve_timezone, to_local
from listening_patterns.config import MAX_MONTHLY_LIMIT
from listening_patterns.models.summary import MonthBucket, MonthlySummary
from listening_patterns.services.history import parse_duration_ms, parse_played_at, read_field

logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_LIMIT = 500

# Fixed English abbreviations so labels do not depend on the process locale
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def normalize_monthly_limit(value: Any, default: int = DEFAULT_MONTHLY_LIMIT) -> int:
    """Positive limits are kept (capped at MAX_MONTHLY_LIMIT); anything else is the default."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    if limit <= 0:
        return default
    return min(limit, MAX_MONTHLY_LIMIT)


def month_label(month: datetime) -> str:
    return f"{MONTH_ABBR[month.month - 1]} {month.year}"


def empty_monthly_summary(limit: Any = None, error: Optional[str] = None) -> MonthlySummary:
    """Result used when the play source could not be read at all"""
    return MonthlySummary(limit=normalize_monthly_limit(limit), chart=None, error=error)


class MonthlyListeningStats:
    """Buckets recently played tracks by local calendar month with duration totals"""

    def __init__(self, client, time_zone: TimezoneLike):
        """
        Args:
            client: Anything with recently_played(limit=...) returning plays that
                carry played_at and duration_ms
            time_zone: IANA name or tzinfo used for the local month
        """
        self.client = client
        self.time_zone = resolve_timezone(time_zone)

    def chart_data(self, limit: Any = None) -> MonthlySummary:
        """
        Fetch plays from the client and summarize them per month.

        Client errors are not handled here.
        """
        limit = normalize_monthly_limit(limit)
        plays = self.client.recently_played(limit=limit)
        return self.summarize(plays, limit)

    def summarize(self, plays: List[Any], limit: int) -> MonthlySummary:
        buckets: Dict[Tuple[int, int], MonthBucket] = {}
        instants: List[datetime] = []

        for play in plays:
            played_at = parse_played_at(read_field(play, 'played_at'))
            if played_at is None:
                continue
            instants.append(played_at)
            local = to_local(played_at, self.time_zone)
            key = (local.year, local.month)
            bucket = buckets.get(key)
            if bucket is None:
                month = datetime(local.year, local.month, 1, tzinfo=self.time_zone)
                bucket = MonthBucket(label=month_label(month), month=month)
                buckets[key] = bucket
            bucket.duration_ms += parse_duration_ms(read_field(play, 'duration_ms')) or 0
            bucket.play_count += 1

        ordered = [buckets[key] for key in sorted(buckets)]
        for bucket in ordered:
            bucket.hours = hours_from_ms(bucket.duration_ms)

        total_duration_ms = sum(b.duration_ms for b in ordered)
        window = (min(instants), max(instants)) if instants else (None, None)

        logger.debug(f"Monthly summary: {len(instants)} plays across {len(ordered)} months")

        return MonthlySummary(
            limit=limit,
            chart={
                'labels': [b.label for b in ordered],
                'datasets': [{'label': 'Hours listened', 'data': [b.hours for b in ordered]}],
            },
            buckets=ordered,
            sample_size=len(instants),
            total_duration_ms=total_duration_ms,
            total_hours=hours_from_ms(total_duration_ms),
            history_window=window,
            previous_month=ordered[0] if ordered else None,
        )
