"""Tests for date parsing and fetch-window planning."""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from prcadence.errors import ConfigurationError, DateRangeError
from prcadence.models import TimeWindow
from prcadence.windows import parse_date, plan_windows


def test_parse_date_accepts_iso_strings_dates_and_datetimes():
    """Verify date parsing accepts strings, dates and datetimes."""
    assert parse_date("2024-03-15") == date(2024, 3, 15)
    assert parse_date(date(2024, 3, 15)) == date(2024, 3, 15)
    assert parse_date(datetime(2024, 3, 15, 13, 45)) == date(2024, 3, 15)


def test_parse_date_treats_none_and_blank_as_unbounded():
    """Verify missing or blank bounds parse to None."""
    assert parse_date(None) is None
    assert parse_date("") is None
    assert parse_date("   ") is None


@pytest.mark.parametrize("value", ["2024/03/15", "15-03-2024", "2024-13-01", "yesterday"])
def test_parse_date_rejects_malformed_values(value):
    """Verify malformed date strings raise DateRangeError."""
    with pytest.raises(DateRangeError):
        parse_date(value)


def test_date_range_error_is_a_configuration_error():
    """Verify date errors are reported through the configuration error path."""
    assert issubclass(DateRangeError, ConfigurationError)


def test_plan_windows_without_bounds_returns_single_unbounded_window():
    """Verify an unbounded range is fetched as one window."""
    assert plan_windows(None, None) == [TimeWindow(start=None, end=None)]


def test_plan_windows_with_one_bound_returns_single_window():
    """Verify a half-bounded range is fetched as one window."""
    assert plan_windows("2024-01-01", None) == [TimeWindow(start=date(2024, 1, 1), end=None)]
    assert plan_windows(None, "2024-01-01") == [TimeWindow(start=None, end=date(2024, 1, 1))]


def test_plan_windows_short_range_returns_single_window():
    """Verify ranges shorter than the chunk size are not split."""
    windows = plan_windows("2024-01-01", "2024-01-20")

    assert windows == [TimeWindow(start=date(2024, 1, 1), end=date(2024, 1, 20))]


def test_plan_windows_empty_range_returns_single_empty_window():
    """Verify since == until yields one empty window instead of an error."""
    windows = plan_windows("2024-01-01", "2024-01-01")

    assert windows == [TimeWindow(start=date(2024, 1, 1), end=date(2024, 1, 1))]


def test_plan_windows_splits_long_range_into_monthly_windows():
    """Verify a four-month range becomes four consecutive monthly windows."""
    windows = plan_windows("2024-01-01", "2024-05-01")

    assert windows == [
        TimeWindow(start=date(2024, 1, 1), end=date(2024, 2, 1)),
        TimeWindow(start=date(2024, 2, 1), end=date(2024, 3, 1)),
        TimeWindow(start=date(2024, 3, 1), end=date(2024, 4, 1)),
        TimeWindow(start=date(2024, 4, 1), end=date(2024, 5, 1)),
    ]


def test_plan_windows_truncates_last_window_at_until():
    """Verify the final window ends exactly at the requested end date."""
    windows = plan_windows(date(2024, 1, 15), date(2024, 3, 20))

    assert windows[-1] == TimeWindow(start=date(2024, 3, 15), end=date(2024, 3, 20))
    assert len(windows) == 3


def test_plan_windows_are_contiguous_and_cover_the_range():
    """Verify windows tile the requested range without gaps or overlaps."""
    since = date(2023, 1, 31)
    until = date(2024, 2, 29)

    windows = plan_windows(since, until)

    assert windows[0].start == since
    assert windows[-1].end == until
    for previous, current in zip(windows, windows[1:]):
        assert previous.end == current.start
    for window in windows:
        assert window.start < window.end


def test_plan_windows_honours_chunk_days():
    """Verify a range shorter than a custom chunk size stays a single window."""
    windows = plan_windows("2024-01-01", "2024-03-01", chunk_days=90)

    assert len(windows) == 1


def test_plan_windows_rejects_inverted_range():
    """Verify since after until raises DateRangeError."""
    with pytest.raises(DateRangeError):
        plan_windows("2024-02-01", "2024-01-01")


def test_plan_windows_rejects_malformed_bound_before_planning():
    """Verify a malformed bound raises instead of producing a partial plan."""
    with pytest.raises(DateRangeError):
        plan_windows("2024-01-01", "not-a-date")


def test_time_window_str_marks_open_bounds():
    """Verify window rendering uses '*' for unbounded sides."""
    assert str(TimeWindow(start=date(2024, 1, 1), end=date(2024, 2, 1))) == "2024-01-01..2024-02-01"
    assert str(TimeWindow(start=None, end=date(2024, 2, 1))) == "*..2024-02-01"
    assert str(TimeWindow(start=None, end=None)) == "*..*"
