"""Domain models for pull request metrics processing.

These dataclasses model only the subset of GitHub payload fields that the
metrics pipeline reads. Durations are expressed in seconds as ``float``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class Review:
    """A submitted pull request review."""

    author: Optional[str]
    submitted_at: datetime
    state: str


@dataclass(slots=True)
class PullRequestRecord:
    """One observed pull request plus the fields derived by normalization."""

    number: int
    title: str
    state: str
    created_at: datetime
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    is_draft: bool = False
    is_reopened: bool = False
    first_reopened_at: Optional[datetime] = None
    base_ref_name: str = ""
    head_ref_name: str = ""
    author: Optional[str] = None
    merged_by: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    merge_commit_oid: str = ""
    reviews: List[Review] = field(default_factory=list)
    comment_count: int = 0
    review_comment_count: int = 0

    # Derived by normalize.normalize_record
    merged: bool = False
    lead_time_seconds: Optional[float] = None


@dataclass(frozen=True)
class TimeWindow:
    """A ``[start, end)`` calendar-date range; ``None`` leaves a side unbounded."""

    start: Optional[date]
    end: Optional[date]

    def __str__(self) -> str:
        start = self.start.isoformat() if self.start else "*"
        end = self.end.isoformat() if self.end else "*"
        return f"{start}..{end}"


@dataclass(frozen=True)
class FetchFilters:
    """Filters passed unchanged to every window request."""

    author: Optional[str] = None
    label: Optional[str] = None
    include_open: bool = True


@dataclass(frozen=True)
class AggregateStats:
    """Immutable snapshot of the metrics computed from one record set."""

    total_prs: int = 0
    merged_prs: int = 0
    wip_prs: int = 0
    merge_rate: float = 0.0

    average_lead_time: float = 0.0
    median_lead_time: float = 0.0
    p90_lead_time: float = 0.0

    average_files_changed: float = 0.0
    average_additions: float = 0.0
    average_deletions: float = 0.0

    average_review_time: float = 0.0
    median_review_time: float = 0.0
    p90_review_time: float = 0.0
    average_merge_wait_time: float = 0.0
    median_merge_wait_time: float = 0.0
    average_approval_to_merge: float = 0.0
    median_approval_to_merge: float = 0.0

    reopened_prs: int = 0
    reopen_rate: float = 0.0
    average_reopen_to_merge: float = 0.0
    median_reopen_to_merge: float = 0.0

    release_count: int = 0
    hotfix_merges: int = 0
    revert_like_merges: int = 0
    average_hotfix_after_release: float = 0.0
    median_hotfix_after_release: float = 0.0
    hotfix_without_release_context: int = 0

    average_reviewers_per_pr: float = 0.0
    self_merge_rate: float = 0.0
    merge_type_trend: Dict[str, float] = field(default_factory=dict)

    average_comments_per_pr: float = 0.0
    median_comments_per_pr: float = 0.0
    max_comments_in_pr: int = 0
    prs_with_comments: int = 0
    prs_without_comments: int = 0
    comment_density: float = 0.0

    average_review_comments_per_pr: float = 0.0
    median_review_comments_per_pr: float = 0.0
    max_review_comments_in_pr: int = 0
    prs_with_review_comments: int = 0
    prs_without_review_comments: int = 0
    review_coverage: float = 0.0
    review_comment_density: float = 0.0

    # Estimate only: PR arrival rate scaled by a fixed commits-per-PR constant.
    estimated_commit_frequency_per_week: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        """Return the snapshot as a flat ``{metric: value}`` mapping."""
        return asdict(self)


@dataclass(slots=True)
class WorkflowRun:
    """A GitHub Actions workflow run."""

    id: int
    workflow_name: str
    display_title: str
    event: str
    head_branch: str
    status: str
    conclusion: Optional[str]
    created_at: datetime
    run_started_at: Optional[datetime]
    updated_at: Optional[datetime]
    url: str = ""


@dataclass(slots=True)
class WorkflowStep:
    """A step within a workflow job."""

    name: str
    conclusion: Optional[str]


@dataclass(slots=True)
class WorkflowJob:
    """A job within a workflow run, reduced to what failure analysis needs."""

    name: str
    conclusion: Optional[str]
    steps: List[WorkflowStep] = field(default_factory=list)


@dataclass(slots=True)
class WorkflowStats:
    """Run counters and mean duration for one workflow or trigger event."""

    total_runs: int = 0
    successes: int = 0
    failures: int = 0
    average_duration_seconds: float = 0.0


@dataclass(slots=True)
class FailureDetail:
    """A failed run, optionally annotated with its first failed job and step."""

    run_id: int
    workflow_name: str
    display_title: str
    created_at: datetime
    duration_seconds: Optional[float]
    url: str
    failed_job: Optional[str] = None
    failed_step: Optional[str] = None


@dataclass(slots=True)
class WorkflowAnalytics:
    """Aggregated workflow-run analytics for one repository and window."""

    total_runs: int = 0
    total_successes: int = 0
    total_failures: int = 0
    average_duration_seconds: float = 0.0
    workflow_stats: Dict[str, WorkflowStats] = field(default_factory=dict)
    event_stats: Dict[str, WorkflowStats] = field(default_factory=dict)
    failure_details: List[FailureDetail] = field(default_factory=list)
