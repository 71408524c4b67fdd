"""Per-record normalization: merged flag and lead time."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional

from .models import PullRequestRecord

MERGED_STATE = "MERGED"


def compute_lead_time(record: PullRequestRecord, merged: bool) -> Optional[float]:
    """Return seconds from creation to the terminal event, or ``None`` while open."""
    if merged and record.merged_at is not None:
        return (record.merged_at - record.created_at).total_seconds()
    if record.closed_at is not None:
        return (record.closed_at - record.created_at).total_seconds()
    return None


def normalize_record(record: PullRequestRecord) -> PullRequestRecord:
    """Return a copy of ``record`` with ``merged`` and ``lead_time_seconds`` set.

    The derived fields depend only on raw state and timestamps, so applying
    this twice gives the same result as applying it once.
    """
    merged = record.state == MERGED_STATE
    return replace(record, merged=merged, lead_time_seconds=compute_lead_time(record, merged))


def normalize_records(records: Iterable[PullRequestRecord]) -> List[PullRequestRecord]:
    """Normalize every record, preserving order. Open records are kept."""
    return [normalize_record(record) for record in records]
