"""
Tests for the ListeningPatterns views.

Uses a mocked Spotify client against a real in-memory store to check the
refresh-then-aggregate flow and the failure policy of each view.
"""

import datetime as dt
import logging
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import make_recent_play, utc
from listening_patterns.journey import EVERGREEN
from listening_patterns.models.listening import TopTrack
from listening_patterns.patterns import HISTORY_UNAVAILABLE, ListeningPatterns
from listening_patterns.services.history import ListeningHistory
from listening_patterns.services.spotify import SpotifyError, UnauthorizedError


@pytest.fixture
def client():
    client = MagicMock()
    client.recently_played.return_value = [
        make_recent_play(utc(2025, 1, 1, 11, 0, 0), "t2"),
        make_recent_play(utc(2025, 1, 1, 10, 30, 0), "t1"),
        make_recent_play(utc(2025, 1, 1, 10, 0, 0), "t1"),
    ]
    return client


@pytest.fixture
def patterns(client, session):
    return ListeningPatterns(client, session, "user-1", "America/Chicago")


class TestHourly:
    """Test the hourly view."""

    def test_refreshes_then_aggregates(self, patterns, client):
        """Test that fetched plays are stored and bucketed in local time."""
        summary = patterns.hourly(limit=50)

        client.recently_played.assert_called_once()
        assert summary.error is None
        assert summary.limit == 50
        assert summary.sample_size == 3
        assert summary.top_hours[0].hour == 4
        assert summary.top_hours[0].count == 2
        assert patterns.total_plays() == 2

    def test_invalid_limit_falls_back(self, patterns):
        """Test that a limit outside the allowed list becomes 100."""
        assert patterns.hourly(limit=999).limit == 100

    def test_repeat_refresh_does_not_duplicate(self, patterns):
        """Test that calling a view twice leaves the history unchanged."""
        patterns.hourly(limit=50)
        summary = patterns.hourly(limit=50)

        assert summary.sample_size == 3

    def test_spotify_failure_returns_empty_summary(self, patterns, client, caplog):
        """Test that upstream errors yield a zero summary with a message."""
        client.recently_played.side_effect = SpotifyError("API timeout")

        with caplog.at_level(logging.WARNING):
            summary = patterns.hourly(limit=50)

        assert summary.sample_size == 0
        assert summary.chart is None
        assert summary.top_hours == []
        assert summary.error == HISTORY_UNAVAILABLE
        assert "Failed to fetch" in caplog.text

    def test_unauthorized_propagates(self, patterns, client):
        """Test that expired tokens surface to the caller."""
        client.recently_played.side_effect = UnauthorizedError("expired", status_code=401)

        with pytest.raises(UnauthorizedError):
            patterns.hourly(limit=50)

    def test_storage_failure_is_logged_and_view_still_renders(self, patterns, caplog):
        """Test that a failed write does not break the view."""
        error = OperationalError("INSERT", {}, Exception("database is locked"))
        with patch.object(ListeningHistory, "ingest", side_effect=error):
            with caplog.at_level(logging.ERROR):
                summary = patterns.hourly(limit=50)

        assert summary.error is None
        assert summary.sample_size == 0
        assert "Could not store" in caplog.text


class TestCalendar:
    """Test the calendar view."""

    def test_counts_local_days(self, patterns):
        """Test that stored plays land on their Chicago dates."""
        summary = patterns.calendar(today=dt.date(2025, 1, 5))

        cells = {cell.day: cell for week in summary.weeks for cell in week}
        assert summary.sample_size == 3
        assert cells[dt.date(2025, 1, 1)].count == 3
        assert cells[dt.date(2025, 1, 1)].level == 4

    def test_spotify_failure_returns_empty_summary(self, patterns, client):
        """Test the zero-value calendar on upstream errors."""
        client.recently_played.side_effect = SpotifyError("boom", status_code=503)

        summary = patterns.calendar(today=dt.date(2025, 1, 5))

        assert summary.sample_size == 0
        assert summary.weeks == []
        assert summary.error == HISTORY_UNAVAILABLE

    def test_unauthorized_propagates(self, patterns, client):
        """Test that expired tokens surface to the caller."""
        client.recently_played.side_effect = UnauthorizedError("expired", status_code=401)

        with pytest.raises(UnauthorizedError):
            patterns.calendar()


class TestMonthly:
    """Test the monthly view."""

    def test_uses_requested_limit(self, patterns, client):
        """Test that the provided limit is passed to the client."""
        summary = patterns.monthly(limit=250)

        client.recently_played.assert_called_once_with(limit=250)
        assert summary.limit == 250
        assert [b.label for b in summary.buckets] == ["Jan 2025"]

    def test_default_limit(self, patterns, client):
        """Test the 500-play default."""
        patterns.monthly()

        client.recently_played.assert_called_once_with(limit=500)

    def test_spotify_failure_returns_empty_summary(self, patterns, client, caplog):
        """Test the zero-value trend on upstream errors."""
        client.recently_played.side_effect = SpotifyError("API timeout")

        with caplog.at_level(logging.WARNING):
            summary = patterns.monthly(limit=250)

        assert summary.chart is None
        assert summary.sample_size == 0
        assert summary.error == HISTORY_UNAVAILABLE
        assert "Failed to fetch" in caplog.text

    def test_unauthorized_propagates(self, patterns, client):
        """Test that expired tokens surface to the caller."""
        client.recently_played.side_effect = UnauthorizedError("expired", status_code=401)

        with pytest.raises(UnauthorizedError):
            patterns.monthly()


class TestJourney:
    """Test the track journey view."""

    def test_groups_tracks(self, patterns, client):
        """Test that top tracks are grouped by badge."""
        track = TopTrack(id="e1", name="Song", artists=[], album_image_url=None, spotify_url=None, rank=1)
        client.top_tracks.side_effect = lambda time_range, limit: [track] if time_range != "medium_term" else []

        grouped = patterns.journey()

        assert list(grouped) == [EVERGREEN]

    def test_spotify_failure_returns_no_groups(self, patterns, client):
        """Test that upstream errors give an empty grouping."""
        client.top_tracks.side_effect = SpotifyError("boom")

        assert patterns.journey() == {}

    def test_unauthorized_propagates(self, patterns, client):
        """Test that expired tokens surface to the caller."""
        client.top_tracks.side_effect = UnauthorizedError("expired", status_code=401)

        with pytest.raises(UnauthorizedError):
            patterns.journey()


def test_total_plays_counts_distinct_tracks(patterns):
    """Test the distinct-track total after a refresh."""
    assert patterns.total_plays() == 0
    patterns.calendar(today=dt.date(2025, 1, 5))
    assert patterns.total_plays() == 2
