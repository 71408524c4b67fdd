"""Statistics engine for pull request process metrics.

This module provides:
- Central tendency helpers (average, median, linear-interpolation percentile).
- Per-record duration derivations (review time, merge wait, approval to
  merge, reopen to merge).
- Nearest-prior-release matching for hotfix merges.
- :func:`compute_aggregate_stats`, which turns a normalized record set into
  an immutable :class:`~prcadence.models.AggregateStats` snapshot.

Nothing here performs I/O or raises on missing data: every ratio guards its
denominator and empty inputs produce zero-valued metrics. Every duration
metric is summarized through :func:`compute_statistics`, so negative samples
from clock skew are dropped the same way for all of them.
"""

from __future__ import annotations

import logging
import math
from bisect import bisect_left
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .classify import (
    is_hotfix,
    is_hotfix_branch,
    is_release,
    is_release_target,
    is_revert_like,
    is_self_merge,
    merge_type,
)
from .models import AggregateStats, PullRequestRecord, Review

logger = logging.getLogger(__name__)

APPROVED_STATE = "APPROVED"
OPEN_STATE = "OPEN"

# PR-to-commit scaling used by the commit frequency estimate. Commit data is
# not fetched, so the estimate is PR arrival rate times this constant.
ESTIMATED_COMMITS_PER_PR = 3.5

_SECONDS_PER_WEEK = 7 * 24 * 3600


def calculate_percentile(sorted_values: Sequence[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    - Empty input returns ``None``.
    - ``p <= 0`` returns the first value.
    - ``p >= 100`` returns the last value.
    - Otherwise, percentile is linearly interpolated between adjacent ranks.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return sorted_values[0]

    if p >= 100:
        return sorted_values[-1]

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return sorted_values[int(position)]

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def calculate_average(values: Sequence[float]) -> float:
    """Return ``sum / len``, or ``0.0`` for an empty list."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def calculate_median(values: Iterable[float]) -> float:
    """Return the median, or ``0.0`` for an empty list.

    Odd-length lists give the middle element of the ascending order, even
    lengths the mean of the two central elements (the 50th percentile under
    linear interpolation).
    """
    median = calculate_percentile(sorted(values), 50)
    return 0.0 if median is None else median


def compute_statistics(samples: Iterable[Optional[float]]) -> Dict[str, float]:
    """Summarize samples as count, average, median and P90.

    ``None``, NaN and negative samples are ignored. All values are ``0`` when
    no valid samples exist.
    """
    clean_samples = sorted(
        sample
        for sample in samples
        if sample is not None and not math.isnan(sample) and sample >= 0
    )
    p90 = calculate_percentile(clean_samples, 90)

    return {
        "count": len(clean_samples),
        "average": calculate_average(clean_samples),
        "median": calculate_median(clean_samples),
        "p90": 0.0 if p90 is None else p90,
    }


def sort_reviews(reviews: Iterable[Review]) -> List[Review]:
    """Sort reviews by submission time; ties keep their fetch order."""
    return sorted(reviews, key=lambda review: review.submitted_at)


def review_time_seconds(record: PullRequestRecord, ordered_reviews: Optional[List[Review]] = None) -> Optional[float]:
    """Seconds from creation to the first submitted review, if positive."""
    reviews = ordered_reviews if ordered_reviews is not None else sort_reviews(record.reviews)
    if not reviews:
        return None

    duration = (reviews[0].submitted_at - record.created_at).total_seconds()
    return duration if duration > 0 else None


def merge_wait_start(record: PullRequestRecord, ordered_reviews: List[Review]) -> Optional[datetime]:
    """Return the instant a merged record started waiting for its merge.

    Normally this is the last review. Drafts targeting ``main``/``master``
    (other than hotfix branches) start no earlier than their first review, so
    drafting dwell time is not counted as waiting.
    """
    if not ordered_reviews:
        return None

    start = ordered_reviews[-1].submitted_at

    if is_release_target(record) and record.is_draft and not is_hotfix_branch(record):
        ready = ordered_reviews[0].submitted_at
        if start < ready:
            start = ready

    return start


def merge_wait_seconds(record: PullRequestRecord, ordered_reviews: Optional[List[Review]] = None) -> Optional[float]:
    """Seconds from the wait start to the merge, if the record merged and the result is positive."""
    if not record.merged or record.merged_at is None:
        return None

    reviews = ordered_reviews if ordered_reviews is not None else sort_reviews(record.reviews)
    start = merge_wait_start(record, reviews)
    if start is None or record.merged_at <= start:
        return None

    return (record.merged_at - start).total_seconds()


def approval_to_merge_seconds(record: PullRequestRecord) -> Optional[float]:
    """Seconds from the latest approving review to the merge, if positive."""
    if not record.merged or record.merged_at is None:
        return None

    approvals = [
        review.submitted_at for review in record.reviews if review.state.upper() == APPROVED_STATE
    ]
    if not approvals:
        return None

    last_approval = max(approvals)
    if record.merged_at <= last_approval:
        return None

    return (record.merged_at - last_approval).total_seconds()


def reopen_to_merge_seconds(record: PullRequestRecord) -> Optional[float]:
    """Seconds from the first reopen to the merge for reopened, merged records."""
    if not (record.is_reopened and record.merged):
        return None
    if record.first_reopened_at is None or record.merged_at is None:
        return None
    if record.merged_at <= record.first_reopened_at:
        return None

    return (record.merged_at - record.first_reopened_at).total_seconds()


def match_hotfixes_to_releases(
    release_times: Iterable[datetime],
    hotfix_times: Iterable[datetime],
) -> Tuple[List[float], int]:
    """Match each hotfix merge to the latest release merged strictly before it.

    Release times are sorted once and searched with ``bisect_left``, so a
    release at exactly the hotfix instant does not count as prior.

    Returns:
        ``(gaps_seconds, hotfixes_without_prior_release)``.
    """
    releases = sorted(release_times)
    gaps: List[float] = []
    without_release = 0

    for hotfix_at in hotfix_times:
        index = bisect_left(releases, hotfix_at)
        if index == 0:
            without_release += 1
            continue
        gaps.append((hotfix_at - releases[index - 1]).total_seconds())

    return gaps, without_release


def estimate_commit_frequency_per_week(records: Sequence[PullRequestRecord]) -> float:
    """Estimate commits per week from PR arrival rate.

    This is not measured commit data: the number of PRs per week across the
    observed creation span is scaled by :data:`ESTIMATED_COMMITS_PER_PR`.
    """
    if not records:
        return 0.0

    created = [record.created_at for record in records]
    weeks = (max(created) - min(created)).total_seconds() / _SECONDS_PER_WEEK
    if weeks <= 0:
        return 0.0

    return len(records) / weeks * ESTIMATED_COMMITS_PER_PR


def _percent(part: float, whole: float) -> float:
    return part / whole * 100.0 if whole else 0.0


def compute_aggregate_stats(records: Sequence[PullRequestRecord]) -> AggregateStats:
    """Compute every metric for a normalized record set.

    Returns an all-zero snapshot for an empty input.
    """
    total = len(records)
    if total == 0:
        return AggregateStats()

    lead_times: List[float] = []
    review_times: List[float] = []
    merge_waits: List[float] = []
    approval_to_merge: List[float] = []
    reopen_to_merge: List[float] = []
    release_times: List[datetime] = []
    hotfix_times: List[datetime] = []
    comment_counts: List[int] = []
    review_comment_counts: List[int] = []
    merge_types: Counter = Counter()

    merged_count = 0
    wip_count = 0
    reopened_count = 0
    release_count = 0
    hotfix_count = 0
    revert_count = 0
    self_merge_count = 0
    total_reviewers = 0
    total_files = 0
    total_additions = 0
    total_deletions = 0

    for record in records:
        ordered_reviews = sort_reviews(record.reviews)

        total_files += record.changed_files
        total_additions += record.additions
        total_deletions += record.deletions
        total_reviewers += len({review.author for review in ordered_reviews})
        comment_counts.append(record.comment_count)
        review_comment_counts.append(record.review_comment_count)

        if record.state == OPEN_STATE and record.is_draft:
            wip_count += 1

        if record.is_reopened:
            reopened_count += 1

        review_time = review_time_seconds(record, ordered_reviews)
        if review_time is not None:
            review_times.append(review_time)

        if not record.merged:
            continue

        merged_count += 1
        if record.lead_time_seconds is not None:
            lead_times.append(record.lead_time_seconds)

        for samples, value in (
            (merge_waits, merge_wait_seconds(record, ordered_reviews)),
            (approval_to_merge, approval_to_merge_seconds(record)),
            (reopen_to_merge, reopen_to_merge_seconds(record)),
        ):
            if value is not None:
                samples.append(value)

        if is_release(record):
            release_count += 1
            if record.merged_at is not None:
                release_times.append(record.merged_at)

        if is_hotfix(record):
            hotfix_count += 1
            if record.merged_at is not None:
                hotfix_times.append(record.merged_at)

        if is_revert_like(record):
            revert_count += 1
        if is_self_merge(record):
            self_merge_count += 1

        merge_types[merge_type(record)] += 1

    hotfix_gaps, hotfix_without_release = match_hotfixes_to_releases(release_times, hotfix_times)

    lead_stats = compute_statistics(lead_times)
    review_stats = compute_statistics(review_times)
    merge_wait_stats = compute_statistics(merge_waits)
    approval_stats = compute_statistics(approval_to_merge)
    reopen_stats = compute_statistics(reopen_to_merge)
    hotfix_gap_stats = compute_statistics(hotfix_gaps)
    total_changed_lines = total_additions + total_deletions
    total_comments = sum(comment_counts)
    total_review_comments = sum(review_comment_counts)
    prs_with_review_comments = sum(1 for count in review_comment_counts if count > 0)
    prs_with_comments = sum(1 for count in comment_counts if count > 0)

    stats = AggregateStats(
        total_prs=total,
        merged_prs=merged_count,
        wip_prs=wip_count,
        merge_rate=_percent(merged_count, total),
        average_lead_time=lead_stats["average"],
        median_lead_time=lead_stats["median"],
        p90_lead_time=lead_stats["p90"],
        average_files_changed=total_files / total,
        average_additions=total_additions / total,
        average_deletions=total_deletions / total,
        average_review_time=review_stats["average"],
        median_review_time=review_stats["median"],
        p90_review_time=review_stats["p90"],
        average_merge_wait_time=merge_wait_stats["average"],
        median_merge_wait_time=merge_wait_stats["median"],
        average_approval_to_merge=approval_stats["average"],
        median_approval_to_merge=approval_stats["median"],
        reopened_prs=reopened_count,
        reopen_rate=_percent(reopened_count, total),
        average_reopen_to_merge=reopen_stats["average"],
        median_reopen_to_merge=reopen_stats["median"],
        release_count=release_count,
        hotfix_merges=hotfix_count,
        revert_like_merges=revert_count,
        average_hotfix_after_release=hotfix_gap_stats["average"],
        median_hotfix_after_release=hotfix_gap_stats["median"],
        hotfix_without_release_context=hotfix_without_release,
        average_reviewers_per_pr=total_reviewers / total,
        self_merge_rate=_percent(self_merge_count, merged_count),
        merge_type_trend={
            category: _percent(count, merged_count) for category, count in merge_types.items()
        },
        average_comments_per_pr=total_comments / total,
        median_comments_per_pr=calculate_median(comment_counts),
        max_comments_in_pr=max(comment_counts),
        prs_with_comments=prs_with_comments,
        prs_without_comments=total - prs_with_comments,
        comment_density=_percent(total_comments, total_changed_lines),
        average_review_comments_per_pr=total_review_comments / total,
        median_review_comments_per_pr=calculate_median(review_comment_counts),
        max_review_comments_in_pr=max(review_comment_counts),
        prs_with_review_comments=prs_with_review_comments,
        prs_without_review_comments=total - prs_with_review_comments,
        review_coverage=_percent(prs_with_review_comments, total),
        review_comment_density=_percent(total_review_comments, total_changed_lines),
        estimated_commit_frequency_per_week=estimate_commit_frequency_per_week(records),
    )

    logger.info(
        "Computed aggregate statistics",
        extra={
            "prs_total": total,
            "prs_merged": merged_count,
            "lead_time_samples": len(lead_times),
            "review_time_samples": len(review_times),
            "merge_wait_samples": len(merge_waits),
            "hotfix_gap_samples": len(hotfix_gaps),
        },
    )

    return stats
