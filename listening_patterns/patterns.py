"""Listening pattern views: refresh history from Spotify, then aggregate"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from listening_patterns.aggregators.calendar_heatmap import calendar_summary
from listening_patterns.aggregators.hourly import empty_hourly_summary, hourly_summary
from listening_patterns.aggregators.monthly import MonthlyListeningStats, empty_monthly_summary
from listening_patterns.aggregators.timeutils import TimezoneLike, normalize_limit, resolve_timezone
from listening_patterns.config import settings
from listening_patterns.journey import TrackJourney
from listening_patterns.models.summary import CalendarSummary, HourlySummary, JourneyTrack, MonthlySummary
from listening_patterns.services.history import ListeningHistory
from listening_patterns.services.spotify import SpotifyError, UnauthorizedError

logger = logging.getLogger(__name__)

HISTORY_UNAVAILABLE = "We weren't able to load your listening history from Spotify right now."


class ListeningPatterns:
    """
    Builds the listening views for one user.

    Every view first pulls the latest plays from Spotify into the event store,
    then aggregates stored or fetched plays in the user's timezone.
    UnauthorizedError always propagates so the caller can restart the auth
    flow; any other SpotifyError yields an empty summary with error set.
    """

    def __init__(self, client, session: Session, user_id: str, time_zone: Optional[TimezoneLike] = None):
        self.client = client
        self.user_id = user_id
        self.time_zone = resolve_timezone(time_zone or settings.TIMEZONE)
        self.history = ListeningHistory(session, user_id)

    def total_plays(self) -> int:
        return self.history.count()

    def _refresh(self, action: str) -> None:
        """Fetch recent plays and store them. Storage failures are logged, not raised."""
        plays = self.client.recently_played(limit=settings.INGEST_LIMIT)
        try:
            self.history.ingest(plays)
        except SQLAlchemyError as e:
            logger.error(f"Could not store recently played tracks before {action}: {e}")

    def hourly(self, limit: Any = None) -> HourlySummary:
        limit = normalize_limit(limit if limit is not None else settings.HOURLY_LIMIT)
        try:
            self._refresh("hourly view")
        except UnauthorizedError:
            raise
        except SpotifyError as e:
            logger.warning(f"Failed to fetch Spotify listening history for hourly view: {e}")
            return empty_hourly_summary(limit, error=HISTORY_UNAVAILABLE)

        entries = self.history.recent_entries(limit=limit)
        return hourly_summary(entries, self.time_zone, limit)

    def calendar(self, today: Optional[date] = None) -> CalendarSummary:
        try:
            self._refresh("calendar view")
        except UnauthorizedError:
            raise
        except SpotifyError as e:
            logger.warning(f"Failed to fetch Spotify listening history for calendar view: {e}")
            return CalendarSummary(sample_size=0, weeks=[], error=HISTORY_UNAVAILABLE)

        entries = self.history.recent_entries(limit=settings.CALENDAR_LIMIT)
        return calendar_summary(entries, self.time_zone, today, weeks=settings.CALENDAR_WEEKS)

    def monthly(self, limit: Any = None) -> MonthlySummary:
        stats = MonthlyListeningStats(client=self.client, time_zone=self.time_zone)
        try:
            return stats.chart_data(limit=limit if limit is not None else settings.MONTHLY_LIMIT)
        except UnauthorizedError:
            raise
        except SpotifyError as e:
            logger.warning(f"Failed to fetch Spotify listening history for monthly view: {e}")
            return empty_monthly_summary(limit, error=HISTORY_UNAVAILABLE)

    def journey(self, max_per_badge: Optional[int] = None) -> Dict[str, List[JourneyTrack]]:
        try:
            return TrackJourney(self.client).grouped_by_badge(max_per_badge=max_per_badge)
        except UnauthorizedError:
            raise
        except SpotifyError as e:
            logger.warning(f"Failed to fetch Spotify top tracks for track journey: {e}")
            return {}
