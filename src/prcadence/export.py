"""CSV export of normalized pull request records."""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import ExportError
from .models import PullRequestRecord

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Number",
    "Title",
    "CreatedAt",
    "MergedAt",
    "ClosedAt",
    "Merged",
    "LeadTime (Hours)",
    "Author",
    "Additions",
    "Deletions",
    "ChangedFiles",
    "IsDraft",
    "State",
    "MergedBy",
    "BaseRef",
    "HeadRef",
    "ReviewComments",
]


def default_csv_filename(repository: str) -> str:
    """Return ``pr-cadence_<owner>-<repo>.csv`` for a repository."""
    return f"pr-cadence_{repository.replace('/', '-')}.csv"


def _format_timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def format_csv_row(record: PullRequestRecord) -> List[str]:
    lead_time_hours = (
        f"{record.lead_time_seconds / 3600:.2f}" if record.lead_time_seconds is not None else ""
    )
    return [
        str(record.number),
        record.title,
        _format_timestamp(record.created_at),
        _format_timestamp(record.merged_at),
        _format_timestamp(record.closed_at),
        str(record.merged).lower(),
        lead_time_hours,
        record.author or "",
        str(record.additions),
        str(record.deletions),
        str(record.changed_files),
        str(record.is_draft).lower(),
        record.state,
        record.merged_by or "",
        record.base_ref_name,
        record.head_ref_name,
        str(record.review_comment_count),
    ]


def write_pull_requests_csv(path: str, records: Sequence[PullRequestRecord]) -> Path:
    """Write one CSV row per record and return the written path.

    Raises:
        ExportError: If the file or its parent directory cannot be written.
    """
    output_path = Path(path)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as csv_file:
            writer = csv.writer(csv_file)
            writer.writerow(CSV_HEADERS)
            for record in records:
                writer.writerow(format_csv_row(record))
    except OSError as exc:
        raise ExportError(f"Failed to write CSV file '{output_path}': {exc}") from exc

    logger.info("Wrote CSV export", extra={"path": str(output_path), "rows": len(records)})
    return output_path
