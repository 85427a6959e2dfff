"""Tests for the calendar heatmap."""

import datetime as dt

import pytest

from conftest import make_entry, utc
from listening_patterns.aggregators.calendar_heatmap import (
    calendar_summary,
    intensity_level,
    week_start,
)

TODAY = dt.date(2025, 1, 5)  # Sunday


def _cells(summary):
    return {cell.day: cell for week in summary.weeks for cell in week}


@pytest.fixture
def new_year_plays():
    return [
        make_entry(utc(2025, 1, 1, 10, 0, 0), "t1"),
        make_entry(utc(2025, 1, 1, 11, 0, 0), "t2"),
        make_entry(utc(2025, 1, 2, 12, 0, 0), "t3"),
    ]


class TestCalendarSummary:
    """Test calendar_summary grid layout and intensity."""

    def test_grid_shape(self, new_year_plays):
        """Test twelve Sunday-first week rows ending with the current week."""
        summary = calendar_summary(new_year_plays, "UTC", TODAY)

        assert summary.sample_size == 3
        assert len(summary.weeks) == 12
        assert all(len(week) == 7 for week in summary.weeks)
        assert all(week[0].day.weekday() == 6 for week in summary.weeks)
        assert summary.weeks[-1][0].day == TODAY
        assert summary.start_date == dt.date(2024, 10, 20)
        assert summary.end_date == TODAY

    def test_counts_and_levels(self, new_year_plays):
        """Test per-day counts and intensity relative to the busiest day."""
        cells = _cells(calendar_summary(new_year_plays, "UTC", TODAY))

        assert cells[dt.date(2025, 1, 1)].count == 2
        assert cells[dt.date(2025, 1, 1)].level == 4
        assert cells[dt.date(2025, 1, 2)].count == 1
        assert cells[dt.date(2025, 1, 2)].level == 2
        assert cells[dt.date(2025, 1, 3)].level == 0

    def test_days_after_today_are_future(self, new_year_plays):
        """Test that the current week is padded with empty future days."""
        summary = calendar_summary(new_year_plays, "UTC", TODAY)
        last_week = summary.weeks[-1]

        assert last_week[0].future is False
        assert all(cell.future and cell.count == 0 and cell.level == 0 for cell in last_week[1:])

    def test_uses_local_date(self):
        """Test that a late-evening Chicago play counts for the local day."""
        entries = [make_entry(utc(2025, 1, 2, 3, 0, 0))]  # 21:00 on Jan 1 in Chicago

        cells = _cells(calendar_summary(entries, "America/Chicago", TODAY))

        assert cells[dt.date(2025, 1, 1)].count == 1
        assert cells[dt.date(2025, 1, 2)].count == 0

    def test_plays_outside_window_are_ignored(self):
        """Test that older plays count toward the sample but not the grid."""
        entries = [make_entry(utc(2024, 6, 1, 12)), make_entry(utc(2025, 1, 3, 12))]

        summary = calendar_summary(entries, "UTC", TODAY)

        assert summary.sample_size == 2
        assert summary.max_count == 1
        assert sum(cell.count for week in summary.weeks for cell in week) == 1

    def test_empty_window_has_no_intensity(self):
        """Test that zero plays produce all level-0 cells without dividing by zero."""
        summary = calendar_summary([], "UTC", TODAY)

        assert summary.sample_size == 0
        assert summary.max_count == 0
        assert all(cell.level == 0 for week in summary.weeks for cell in week)

    def test_today_defaults_to_local_now(self):
        """Test that the grid ends at the current date in the zone."""
        summary = calendar_summary([], "UTC")

        assert summary.end_date == dt.datetime.now(dt.timezone.utc).date()

    def test_weeks_parameter(self):
        """Test a custom number of week rows."""
        assert len(calendar_summary([], "UTC", TODAY, weeks=4).weeks) == 4


class TestIntensityLevel:
    """Test intensity_level tiers."""

    @pytest.mark.parametrize(
        "count,max_count,level",
        [
            (0, 10, 0),
            (0, 0, 0),
            (5, 0, 0),
            (1, 10, 1),
            (2, 10, 1),
            (3, 10, 2),
            (5, 10, 2),
            (6, 10, 3),
            (7, 10, 3),
            (8, 10, 4),
            (10, 10, 4),
        ],
    )
    def test_tiers(self, count, max_count, level):
        """Test the 25% tier boundaries."""
        assert intensity_level(count, max_count) == level


def test_week_start_is_sunday():
    """Test week alignment."""
    assert week_start(dt.date(2025, 1, 1)) == dt.date(2024, 12, 29)
    assert week_start(dt.date(2025, 1, 5)) == dt.date(2025, 1, 5)
    assert week_start(dt.date(2025, 1, 11)) == dt.date(2025, 1, 5)
