"""Summary response models produced by the aggregators"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field

class HourBucket(BaseModel):
    """Plays that fell into one local wall-clock hour"""
    hour: int = Field(description="Local hour, 0-23")
    label: str = Field(description="12-hour clock label, e.g. '5 PM'")
    count: int = 0
    percentage: float = Field(0.0, description="Share of the sample, in percent")

class HourlySummary(BaseModel):
    """
    Hourly listening distribution.

    chart is None only when the upstream source could not be read; an empty
    history still yields a 24-slot chart of zeros.
    """
    limit: int
    sample_size: int = 0
    chart: Optional[Dict[str, Any]] = None
    hours: List[HourBucket] = []
    top_hours: List[HourBucket] = []
    error: Optional[str] = None

class CalendarDay(BaseModel):
    """One cell of the calendar heatmap"""
    day: date
    count: int = 0
    level: int = Field(0, description="Intensity tier 0-4")
    future: bool = False

class CalendarSummary(BaseModel):
    """Week-aligned heatmap of daily play counts"""
    sample_size: int = 0
    weeks: List[List[CalendarDay]] = []
    max_count: int = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    error: Optional[str] = None

class MonthBucket(BaseModel):
    """Accumulated listening for one local calendar month"""
    label: str = Field(description="'Mon YYYY'")
    month: datetime = Field(description="First instant of the month in the target timezone")
    duration_ms: int = 0
    play_count: int = 0
    hours: float = 0.0

class MonthlySummary(BaseModel):
    """
    Month-over-month listening trend.

    previous_month is the first bucket of the chronologically ordered
    sequence, which is the earliest month in the sample rather than the
    calendar month before the current one.
    """
    limit: int
    chart: Optional[Dict[str, Any]] = None
    buckets: List[MonthBucket] = []
    sample_size: int = 0
    total_duration_ms: int = 0
    total_hours: float = 0.0
    history_window: Tuple[Optional[datetime], Optional[datetime]] = (None, None)
    previous_month: Optional[MonthBucket] = None
    error: Optional[str] = None

class JourneyTrack(BaseModel):
    """A top track with its engagement badge"""
    id: str
    name: Optional[str] = None
    artists: List[str] = []
    album_image_url: Optional[str] = None
    spotify_url: Optional[str] = None
    badge: str
    ranks: Dict[str, int] = Field(default_factory=dict, description="1-based rank per time range")

    @property
    def best_rank(self) -> int:
        return min(self.ranks.values())
