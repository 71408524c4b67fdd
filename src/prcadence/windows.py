"""Time-window planning for parallel pull request retrieval.

A requested ``[since, until)`` range is partitioned into contiguous,
non-overlapping month-long windows so each window can be fetched
independently. Short or unbounded ranges stay a single window.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Union

from dateutil.relativedelta import relativedelta

from .errors import DateRangeError
from .models import TimeWindow

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_CHUNK_DAYS = 30


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string into a ``date``.

    ``None`` and blank strings mean "unbounded" and return ``None``. ``date``
    and ``datetime`` values are accepted as-is (datetimes are truncated).

    Raises:
        DateRangeError: If ``value`` is a malformed date string.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if not text:
        return None

    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError as exc:
        raise DateRangeError(f"Invalid date '{value}': expected the YYYY-MM-DD format.") from exc


def plan_windows(
    since: Union[str, date, None],
    until: Union[str, date, None],
    chunk_days: int = DEFAULT_CHUNK_DAYS,
) -> List[TimeWindow]:
    """Split ``[since, until)`` into windows sized for parallel retrieval.

    - If either bound is absent, or the range is shorter than ``chunk_days``,
      a single window covering the full range is returned.
    - Otherwise the range is cut into consecutive one-month windows, the last
      one truncated at ``until``.

    Both bounds are parsed before any window is built, so a malformed date
    never yields a partial plan.

    Raises:
        DateRangeError: If a bound cannot be parsed or ``since > until``.
    """
    start = parse_date(since)
    end = parse_date(until)

    if start is not None and end is not None and start > end:
        raise DateRangeError(
            f"Invalid date range: since {start.isoformat()} is after until {end.isoformat()}."
        )

    if start is None or end is None or (end - start).days < chunk_days:
        return [TimeWindow(start=start, end=end)]

    windows: List[TimeWindow] = []
    current = start
    while current < end:
        window_end = min(current + relativedelta(months=1), end)
        windows.append(TimeWindow(start=current, end=window_end))
        current = window_end

    logger.debug(
        "Planned fetch windows",
        extra={"since": start.isoformat(), "until": end.isoformat(), "windows": len(windows)},
    )
    return windows
