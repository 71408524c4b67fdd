"""Tests for statistical helpers and aggregate pull request metrics."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from prcadence.models import AggregateStats, PullRequestRecord, Review
from prcadence.normalize import normalize_record
from prcadence.stats import (
    ESTIMATED_COMMITS_PER_PR,
    approval_to_merge_seconds,
    calculate_average,
    calculate_median,
    calculate_percentile,
    compute_aggregate_stats,
    compute_statistics,
    estimate_commit_frequency_per_week,
    match_hotfixes_to_releases,
    merge_wait_seconds,
    reopen_to_merge_seconds,
    review_time_seconds,
    sort_reviews,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
HOUR = 3600.0
DAY = 24 * HOUR


def _record(number: int = 1, state: str = "MERGED", merged_after=None, **overrides) -> PullRequestRecord:
    fields = {
        "number": number,
        "title": f"PR {number}",
        "state": state,
        "created_at": T0,
        "base_ref_name": "develop",
        "head_ref_name": f"feature/{number}",
        "author": "alice",
        "merged_by": "bob",
    }
    if state == "MERGED":
        fields["merged_at"] = T0 + (merged_after if merged_after is not None else timedelta(hours=1))
        fields["closed_at"] = fields["merged_at"]
    fields.update(overrides)
    return normalize_record(PullRequestRecord(**fields))


def _review(offset: timedelta, state: str = "COMMENTED", author: str = "carol") -> Review:
    return Review(author=author, submitted_at=T0 + offset, state=state)


def test_calculate_percentile_empty_returns_none():
    """Verify percentile calculation returns None when sample list is empty."""
    assert calculate_percentile([], 50) is None


def test_calculate_percentile_single_value_returns_same_for_common_percentiles():
    """Verify all common percentiles return the only value in a single-item sample."""
    values = [42.0]
    assert calculate_percentile(values, 50) == 42.0
    assert calculate_percentile(values, 90) == 42.0


def test_calculate_percentile_multiple_values_p50_p75_p90():
    """Verify linear interpolation percentile values for a multi-value sorted sample."""
    values = [10.0, 20.0, 30.0, 40.0]
    assert calculate_percentile(values, 50) == pytest.approx(25.0)
    assert calculate_percentile(values, 75) == pytest.approx(32.5)
    assert calculate_percentile(values, 90) == pytest.approx(37.0)


def test_calculate_percentile_rejects_out_of_range_p():
    """Verify percentiles outside [0, 100] raise ValueError."""
    with pytest.raises(ValueError):
        calculate_percentile([1.0], 101)


@pytest.mark.parametrize(
    "values, expected",
    [
        ([], 0.0),
        ([10 * HOUR], 10 * HOUR),
        ([10 * HOUR, 20 * HOUR], 15 * HOUR),
        ([10 * HOUR, 20 * HOUR, 30 * HOUR], 20 * HOUR),
        ([30 * HOUR, 10 * HOUR, 20 * HOUR], 20 * HOUR),
    ],
)
def test_calculate_median_examples(values, expected):
    """Verify the median of empty, odd and even sized samples."""
    assert calculate_median(values) == pytest.approx(expected)


def test_calculate_average_empty_is_zero():
    """Verify averages over no samples are zero rather than an error."""
    assert calculate_average([]) == 0.0
    assert calculate_average([1.0, 2.0, 6.0]) == pytest.approx(3.0)


def test_compute_statistics_filters_invalid_and_computes_summary():
    """Verify statistics ignore invalid samples and compute count, average, median and P90."""
    stats = compute_statistics([10.0, 20.0, None, -5.0, float("nan"), 30.0])

    assert stats["count"] == 3
    assert stats["average"] == pytest.approx(20.0)
    assert stats["median"] == pytest.approx(20.0)
    assert stats["p90"] == pytest.approx(28.0)


def test_compute_statistics_empty_returns_zeroes():
    """Verify empty samples produce zero-valued statistics."""
    assert compute_statistics([]) == {"count": 0, "average": 0.0, "median": 0.0, "p90": 0.0}


def test_sort_reviews_is_stable_for_equal_timestamps():
    """Verify reviews submitted at the same instant keep their fetch order."""
    first = _review(timedelta(hours=1), author="first")
    second = _review(timedelta(hours=1), author="second")
    earlier = _review(timedelta(minutes=5), author="earlier")

    ordered = sort_reviews([first, second, earlier])

    assert [review.author for review in ordered] == ["earlier", "first", "second"]


def test_review_time_uses_first_review_and_ignores_non_positive():
    """Verify review time measures to the earliest review and drops non-positive results."""
    record = _record(reviews=[_review(timedelta(hours=5)), _review(timedelta(hours=2))])
    assert review_time_seconds(record) == pytest.approx(2 * HOUR)

    assert review_time_seconds(_record(reviews=[_review(timedelta(0))])) is None
    assert review_time_seconds(_record(reviews=[])) is None


def test_merge_wait_draft_on_main_starts_no_earlier_than_first_review():
    """Verify a draft on main first reviewed at 2d, also reviewed at 1d, merged at 5d waits 3d."""
    record = _record(
        merged_after=timedelta(days=5),
        base_ref_name="main",
        is_draft=True,
        reviews=[_review(timedelta(days=2)), _review(timedelta(days=1))],
    )

    assert merge_wait_seconds(record) == pytest.approx(3 * DAY)


def test_merge_wait_uses_last_review_for_regular_records():
    """Verify merge wait runs from the latest review to the merge."""
    record = _record(
        merged_after=timedelta(hours=10),
        reviews=[_review(timedelta(hours=1)), _review(timedelta(hours=4))],
    )

    assert merge_wait_seconds(record) == pytest.approx(6 * HOUR)


def test_merge_wait_skips_unmerged_unreviewed_and_non_positive():
    """Verify merge wait is absent when there is nothing positive to measure."""
    assert merge_wait_seconds(_record(state="OPEN", reviews=[_review(timedelta(hours=1))])) is None
    assert merge_wait_seconds(_record(reviews=[])) is None
    late_review = _record(merged_after=timedelta(hours=1), reviews=[_review(timedelta(hours=2))])
    assert merge_wait_seconds(late_review) is None


def test_approval_to_merge_uses_latest_approval():
    """Verify approval-to-merge starts at the latest APPROVED review."""
    record = _record(
        merged_after=timedelta(hours=10),
        reviews=[
            _review(timedelta(hours=2), state="APPROVED"),
            _review(timedelta(hours=6), state="APPROVED"),
            _review(timedelta(hours=8), state="COMMENTED"),
        ],
    )

    assert approval_to_merge_seconds(record) == pytest.approx(4 * HOUR)


def test_approval_to_merge_without_approval_is_skipped():
    """Verify records without approvals contribute no approval-to-merge sample."""
    record = _record(reviews=[_review(timedelta(minutes=5), state="CHANGES_REQUESTED")])

    assert approval_to_merge_seconds(record) is None


def test_reopen_to_merge_for_reopened_merged_records():
    """Verify reopen-to-merge runs from the first reopen to the merge."""
    record = _record(
        merged_after=timedelta(days=3),
        is_reopened=True,
        first_reopened_at=T0 + timedelta(days=1),
    )

    assert reopen_to_merge_seconds(record) == pytest.approx(2 * DAY)
    assert reopen_to_merge_seconds(_record(is_reopened=False)) is None


def test_match_hotfixes_to_releases_uses_latest_prior_release():
    """Verify a hotfix at 15d matches the 10d release and one at -1d has no release context."""
    releases = [T0 + timedelta(days=10), T0]
    hotfixes = [T0 + timedelta(days=15), T0 - timedelta(days=1)]

    gaps, without_release = match_hotfixes_to_releases(releases, hotfixes)

    assert gaps == [pytest.approx(5 * DAY)]
    assert without_release == 1


def test_match_hotfixes_to_releases_requires_strictly_prior_release():
    """Verify a release at the same instant as a hotfix is not treated as prior."""
    gaps, without_release = match_hotfixes_to_releases([T0], [T0])

    assert gaps == []
    assert without_release == 1


def test_estimate_commit_frequency_scales_pr_rate():
    """Verify the commit estimate is PRs per week times the commits-per-PR constant."""
    records = [
        _record(number=1, created_at=T0),
        _record(number=2, created_at=T0 + timedelta(days=7)),
        _record(number=3, created_at=T0 + timedelta(days=14)),
    ]

    assert estimate_commit_frequency_per_week(records) == pytest.approx(1.5 * ESTIMATED_COMMITS_PER_PR)
    assert estimate_commit_frequency_per_week(records[:1]) == 0.0


def test_compute_aggregate_stats_empty_input_returns_zero_snapshot():
    """Verify empty input yields an all-zero snapshot without raising."""
    assert compute_aggregate_stats([]) == AggregateStats()


def test_compute_aggregate_stats_self_merge_rate_is_thirty_percent():
    """Verify three self merges among ten merged records give a 30.0 rate."""
    records = [
        _record(number=i, merged_by="alice" if i < 3 else "bob")
        for i in range(10)
    ]

    stats = compute_aggregate_stats(records)

    assert stats.merged_prs == 10
    assert stats.self_merge_rate == pytest.approx(30.0)


def test_compute_aggregate_stats_volume_and_lead_time():
    """Verify volume counts, merge rate and lead times over merged records only."""
    records = [
        _record(number=1, merged_after=timedelta(hours=10)),
        _record(number=2, merged_after=timedelta(hours=20)),
        _record(number=3, state="CLOSED", closed_at=T0 + timedelta(hours=100)),
        _record(number=4, state="OPEN", is_draft=True),
    ]

    stats = compute_aggregate_stats(records)

    assert stats.total_prs == 4
    assert stats.merged_prs == 2
    assert stats.wip_prs == 1
    assert stats.merge_rate == pytest.approx(50.0)
    assert stats.average_lead_time == pytest.approx(15 * HOUR)
    assert stats.median_lead_time == pytest.approx(15 * HOUR)


def test_compute_aggregate_stats_release_hotfix_and_revert_counts():
    """Verify release, hotfix and revert counts plus the hotfix-after-release gap."""
    records = [
        _record(number=1, base_ref_name="main", merged_after=timedelta(days=10)),
        _record(number=2, head_ref_name="hotfix/crash", merged_after=timedelta(days=15)),
        _record(number=3, title="Revert broken change", merged_after=timedelta(days=1)),
        _record(number=4, head_ref_name="hotfix/early", merged_after=timedelta(hours=1)),
    ]

    stats = compute_aggregate_stats(records)

    assert stats.release_count == 1
    assert stats.hotfix_merges == 2
    assert stats.revert_like_merges == 1
    assert stats.average_hotfix_after_release == pytest.approx(5 * DAY)
    assert stats.hotfix_without_release_context == 1


def test_compute_aggregate_stats_merge_type_and_reopen_rate():
    """Verify merge-type shares over merged records and reopen rate over all records."""
    records = [
        _record(number=1, merge_commit_oid="abc"),
        _record(number=2, merge_commit_oid="def"),
        _record(number=3, merge_commit_oid="", is_reopened=True, first_reopened_at=T0),
        _record(number=4, state="OPEN"),
    ]

    stats = compute_aggregate_stats(records)

    assert stats.merge_type_trend == {
        "merge/squash": pytest.approx(200 / 3),
        "rebase/other": pytest.approx(100 / 3),
    }
    assert stats.reopened_prs == 1
    assert stats.reopen_rate == pytest.approx(25.0)


def test_compute_aggregate_stats_comment_and_review_comment_metrics():
    """Verify comment counters, review coverage and densities."""
    records = [
        _record(number=1, comment_count=4, review_comment_count=2, additions=80, deletions=20),
        _record(number=2, comment_count=0, review_comment_count=0, additions=50, deletions=50),
    ]

    stats = compute_aggregate_stats(records)

    assert stats.average_comments_per_pr == pytest.approx(2.0)
    assert stats.max_comments_in_pr == 4
    assert stats.prs_with_comments == 1
    assert stats.prs_without_comments == 1
    assert stats.comment_density == pytest.approx(2.0)
    assert stats.prs_with_review_comments == 1
    assert stats.prs_without_review_comments == 1
    assert stats.review_coverage == pytest.approx(50.0)
    assert stats.review_comment_density == pytest.approx(1.0)
    assert stats.average_additions == pytest.approx(65.0)


def test_compute_aggregate_stats_counts_distinct_reviewers():
    """Verify reviewers per PR counts distinct review authors."""
    records = [
        _record(
            number=1,
            reviews=[
                _review(timedelta(minutes=1), author="carol"),
                _review(timedelta(minutes=2), author="carol"),
                _review(timedelta(minutes=3), author="dave"),
            ],
        ),
        _record(number=2, reviews=[]),
    ]

    stats = compute_aggregate_stats(records)

    assert stats.average_reviewers_per_pr == pytest.approx(1.0)


def test_compute_aggregate_stats_without_merges_has_zero_rates():
    """Verify ratios over the merged count default to zero when nothing merged."""
    stats = compute_aggregate_stats([_record(number=1, state="OPEN")])

    assert stats.total_prs == 1
    assert stats.self_merge_rate == 0.0
    assert stats.merge_type_trend == {}
    assert stats.average_lead_time == 0.0


def test_aggregate_stats_as_dict_exposes_every_metric():
    """Verify the snapshot flattens into a metric-name mapping."""
    stats = compute_aggregate_stats([_record(number=1, merge_commit_oid="abc")])

    values = stats.as_dict()

    assert values["total_prs"] == 1
    assert values["merge_type_trend"] == {"merge/squash": 100.0}
    assert "estimated_commit_frequency_per_week" in values


def test_compute_aggregate_stats_drops_negative_durations_consistently():
    """Verify clock-skewed negative lead times are ignored like other durations."""
    records = [
        _record(number=1, merged_after=timedelta(hours=4)),
        _record(number=2, merged_after=timedelta(hours=-2)),
    ]

    stats = compute_aggregate_stats(records)

    assert stats.merged_prs == 2
    assert stats.average_lead_time == pytest.approx(4 * HOUR)
    assert stats.median_lead_time == pytest.approx(4 * HOUR)
