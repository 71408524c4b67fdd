"""Plain-text rendering of pull request and workflow-run metrics."""

from __future__ import annotations

from typing import List, Optional

from .models import AggregateStats, WorkflowAnalytics


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as ``HH:MM:SS``.

    Args:
        seconds: Duration in seconds.

    Returns:
        ``"n/a"`` when ``seconds`` is ``None``; otherwise a rounded
        ``HH:MM:SS`` string. Hours are not wrapped at 24.
    """
    if seconds is None:
        return "n/a"

    total_seconds = int(round(seconds))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    remaining_seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{remaining_seconds:02d}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def _timing_line(label: str, average: float, median: float) -> str:
    return f"   {label}: avg {format_duration(average)} | median {format_duration(median)}"


def generate_report(repository: str, stats: AggregateStats) -> str:
    """Generate a human-readable metrics report for a repository.

    Sections: volume, timing, code change, collaboration, review comments,
    release and hotfix cadence, merge type distribution.
    """
    lines: List[str] = [
        f"Repository: {repository}",
        "Pull Request Metrics Report",
        "",
        "1) Volume",
        f"   Total PRs: {stats.total_prs}",
        f"   Merged PRs: {stats.merged_prs}",
        f"   WIP PRs (open drafts): {stats.wip_prs}",
        f"   Merge rate: {format_percent(stats.merge_rate)}",
        f"   Reopened PRs: {stats.reopened_prs} ({format_percent(stats.reopen_rate)})",
        "",
        "2) Timing",
        _timing_line("Lead time", stats.average_lead_time, stats.median_lead_time),
        f"   Lead time P90: {format_duration(stats.p90_lead_time)}",
        _timing_line("Review time", stats.average_review_time, stats.median_review_time),
        f"   Review time P90: {format_duration(stats.p90_review_time)}",
        _timing_line("Merge wait", stats.average_merge_wait_time, stats.median_merge_wait_time),
        _timing_line("Approval to merge", stats.average_approval_to_merge, stats.median_approval_to_merge),
        _timing_line("Reopen to merge", stats.average_reopen_to_merge, stats.median_reopen_to_merge),
        "",
        "3) Code Changes",
        f"   Files changed per PR: {stats.average_files_changed:.1f}",
        f"   Lines added per PR: {stats.average_additions:.1f}",
        f"   Lines deleted per PR: {stats.average_deletions:.1f}",
        f"   Commit frequency/week (estimate from PR rate): {stats.estimated_commit_frequency_per_week:.1f}",
        "",
        "4) Collaboration",
        f"   Reviewers per PR: {stats.average_reviewers_per_pr:.1f}",
        f"   Self-merge rate: {format_percent(stats.self_merge_rate)}",
        f"   Comments per PR: avg {stats.average_comments_per_pr:.1f}"
        f" | median {stats.median_comments_per_pr:.1f} | max {stats.max_comments_in_pr}",
        "",
        "5) Code Review Comments",
    ]

    if stats.prs_with_review_comments > 0:
        lines.extend(
            [
                f"   Review comments per PR: avg {stats.average_review_comments_per_pr:.1f}"
                f" | median {stats.median_review_comments_per_pr:.1f}"
                f" | max {stats.max_review_comments_in_pr}",
                f"   PRs with review comments: {stats.prs_with_review_comments}"
                f" ({format_percent(stats.review_coverage)})",
                f"   PRs without review comments: {stats.prs_without_review_comments}"
                f" ({format_percent(100.0 - stats.review_coverage)})",
                f"   Review comment density: {stats.review_comment_density:.2f} comments/100 lines",
            ]
        )
    else:
        lines.append(f"   No code review comments found ({stats.total_prs} PRs analyzed)")

    lines.extend(
        [
            "",
            "6) Releases and Hotfixes",
            f"   Releases (main/master merges): {stats.release_count}",
            f"   Hotfix merges: {stats.hotfix_merges}",
            f"   Revert-like merges: {stats.revert_like_merges}",
            _timing_line(
                "Hotfix after release",
                stats.average_hotfix_after_release,
                stats.median_hotfix_after_release,
            ),
            f"   Hotfixes without prior release: {stats.hotfix_without_release_context}",
        ]
    )

    if stats.merge_type_trend:
        lines.extend(["", "7) Merge Type Distribution"])
        for category in sorted(stats.merge_type_trend):
            lines.append(f"   {category}: {format_percent(stats.merge_type_trend[category])}")

    return "\n".join(lines)


def generate_actions_report(repository: str, analytics: WorkflowAnalytics) -> str:
    """Generate a human-readable workflow-run report for a repository."""
    success_rate = (
        analytics.total_successes / analytics.total_runs * 100.0 if analytics.total_runs else 0.0
    )
    lines: List[str] = [
        f"Repository: {repository}",
        "Workflow Run Report",
        "",
        f"   Total runs: {analytics.total_runs}",
        f"   Successes: {analytics.total_successes}",
        f"   Failures: {analytics.total_failures}",
        f"   Success rate: {format_percent(success_rate)}",
        f"   Average duration: {format_duration(analytics.average_duration_seconds)}",
    ]

    if analytics.workflow_stats:
        lines.extend(["", "Workflows"])
        for name in sorted(analytics.workflow_stats):
            stats = analytics.workflow_stats[name]
            lines.append(
                f"   {name}: {stats.total_runs} runs | {stats.successes} ok | {stats.failures} failed"
                f" | avg {format_duration(stats.average_duration_seconds)}"
            )

    if analytics.event_stats:
        lines.extend(["", "Trigger Events"])
        for event in sorted(analytics.event_stats):
            stats = analytics.event_stats[event]
            lines.append(
                f"   {event}: {stats.total_runs} runs | {stats.successes} ok | {stats.failures} failed"
            )

    if analytics.failure_details:
        lines.extend(["", "Recent Failures"])
        for failure in analytics.failure_details:
            location = " / ".join(part for part in (failure.failed_job, failure.failed_step) if part)
            suffix = f" [{location}]" if location else ""
            lines.append(
                f"   {failure.created_at:%Y-%m-%d %H:%M} {failure.workflow_name}: "
                f"{failure.display_title}{suffix}"
            )

    return "\n".join(lines)
