"""Timezone, limit and label helpers shared by the aggregators"""
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

HOURLY_LIMITS = (10, 25, 50, 100)
DEFAULT_HOURLY_LIMIT = 100

MS_PER_HOUR = Decimal(3_600_000)

TimezoneLike = Union[str, tzinfo]


def resolve_timezone(tz: TimezoneLike) -> tzinfo:
    """Turn an IANA name (or an existing tzinfo) into a tzinfo."""
    if isinstance(tz, tzinfo):
        return tz
    if not tz or not isinstance(tz, str):
        raise ValueError(f"Invalid timezone: {tz!r}")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {tz!r}") from e


def to_local(instant: datetime, tz: tzinfo) -> datetime:
    """Convert a stored instant to wall-clock time in tz; naive instants are UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz)


def normalize_limit(value: Any, allowed: Iterable[int] = HOURLY_LIMITS, default: int = DEFAULT_HOURLY_LIMIT) -> int:
    """Accept only values from the allow-list; everything else becomes the default."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return limit if limit in tuple(allowed) else default


def hour_label(hour: int) -> str:
    """12-hour clock label: 0 -> '12 AM', 12 -> '12 PM', 17 -> '5 PM'."""
    suffix = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display} {suffix}"


def hours_from_ms(ms: int) -> float:
    """Milliseconds to hours, rounded half-up to one decimal place."""
    hours = Decimal(int(ms or 0)) / MS_PER_HOUR
    return float(hours.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
