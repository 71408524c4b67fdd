"""Review-comment enrichment for fetched pull requests.

Counting review comments costs one REST call per pull request, so only a
sample of large record sets is enriched: the first 80 records, 10 from the
middle and the last 10. Failures and timeouts for a single record are not
fatal; that record simply keeps a zero count.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Dict, List, Protocol, Sequence

import requests

from .errors import PRCadenceError
from .models import PullRequestRecord

logger = logging.getLogger(__name__)

SAMPLE_THRESHOLD = 100
SAMPLE_HEAD = 80
SAMPLE_MIDDLE = 10
SAMPLE_TAIL = 10
DEFAULT_ENRICH_WORKERS = 5

_ENRICHABLE_STATE = "CLOSED"


class ReviewCommentSource(Protocol):
    def count_review_comments(self, repository: str, number: int) -> int:
        ...


def select_enrichment_sample(
    records: Sequence[PullRequestRecord],
    threshold: int = SAMPLE_THRESHOLD,
) -> List[PullRequestRecord]:
    """Pick the records to enrich.

    Up to ``threshold`` records are all selected. Above it, the selection is
    the first 80, then 10 starting at the middle index (when they fit before
    the end), then the last 10. The middle slice may overlap the head.
    """
    if len(records) <= threshold:
        return list(records)

    selected = list(records[:SAMPLE_HEAD])

    middle = len(records) // 2
    if middle + SAMPLE_MIDDLE < len(records):
        selected.extend(records[middle:middle + SAMPLE_MIDDLE])

    if len(records) >= SAMPLE_TAIL:
        selected.extend(records[-SAMPLE_TAIL:])

    return selected


def _is_enrichable(record: PullRequestRecord) -> bool:
    return record.merged or record.state == _ENRICHABLE_STATE


def _safe_count(client: ReviewCommentSource, repository: str, number: int) -> int:
    try:
        return client.count_review_comments(repository, number)
    except (PRCadenceError, requests.RequestException) as exc:
        logger.debug(
            "Review comment lookup failed; using zero",
            extra={"repository": repository, "pr_number": number, "error": str(exc)},
        )
        return 0


def enrich_review_comments(
    client: ReviewCommentSource,
    repository: str,
    records: Sequence[PullRequestRecord],
    max_workers: int = DEFAULT_ENRICH_WORKERS,
    threshold: int = SAMPLE_THRESHOLD,
) -> List[PullRequestRecord]:
    """Return copies of ``records`` with ``review_comment_count`` filled in.

    Only sampled records that are merged or closed are looked up. Records
    outside the sample, and lookups that fail, keep a zero count. Input order
    is preserved.
    """
    numbers: List[int] = []
    seen = set()
    for record in select_enrichment_sample(records, threshold=threshold):
        if _is_enrichable(record) and record.number not in seen:
            seen.add(record.number)
            numbers.append(record.number)

    counts: Dict[int, int] = {}
    if numbers:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(_safe_count, client, repository, number): number
                for number in numbers
            }
            for future in as_completed(futures):
                counts[futures[future]] = future.result()

    logger.info(
        "Enriched review comment counts",
        extra={
            "repository": repository,
            "prs_total": len(records),
            "prs_checked": len(numbers),
            "prs_with_review_comments": sum(1 for count in counts.values() if count > 0),
        },
    )

    return [
        replace(record, review_comment_count=counts.get(record.number, 0))
        for record in records
    ]
