"""GitHub Actions workflow-run analytics."""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import requests

from .errors import PRCadenceError
from .models import FailureDetail, TimeWindow, WorkflowAnalytics, WorkflowJob, WorkflowRun, WorkflowStats
from .stats import calculate_average

logger = logging.getLogger(__name__)

SUCCESS_CONCLUSION = "success"
FAILURE_CONCLUSIONS = frozenset({"failure", "cancelled", "timed_out"})
COMPLETED_STATUS = "completed"
FAILURE_DETAIL_LIMIT = 5


class WorkflowJobSource(Protocol):
    def list_run_jobs(self, repository: str, run_id: int) -> List[WorkflowJob]:
        ...


def _in_window(run: WorkflowRun, window: TimeWindow) -> bool:
    created = run.created_at.date()
    if window.start is not None and created < window.start:
        return False
    if window.end is not None and created >= window.end:
        return False
    return True


def run_duration_seconds(run: WorkflowRun) -> Optional[float]:
    """Wall-clock seconds from run start to last update, or ``None`` if unknown."""
    if run.run_started_at is None or run.updated_at is None:
        return None
    return (run.updated_at - run.run_started_at).total_seconds()


def _build_stats(runs: List[WorkflowRun]) -> WorkflowStats:
    durations = [
        duration
        for duration in (run_duration_seconds(run) for run in runs if run.status == COMPLETED_STATUS)
        if duration is not None
    ]
    return WorkflowStats(
        total_runs=len(runs),
        successes=sum(1 for run in runs if run.conclusion == SUCCESS_CONCLUSION),
        failures=sum(1 for run in runs if run.conclusion in FAILURE_CONCLUSIONS),
        average_duration_seconds=calculate_average(durations),
    )


def analyze_workflow_runs(runs: Iterable[WorkflowRun], window: TimeWindow) -> WorkflowAnalytics:
    """Aggregate success/failure counts and durations for runs inside ``window``.

    Failures are runs concluded as failed, cancelled or timed out; durations
    only count completed runs.
    """
    selected = [run for run in runs if _in_window(run, window)]
    overall = _build_stats(selected)

    by_workflow: Dict[str, List[WorkflowRun]] = defaultdict(list)
    by_event: Dict[str, List[WorkflowRun]] = defaultdict(list)
    for run in selected:
        by_workflow[run.workflow_name].append(run)
        by_event[run.event].append(run)

    failures = [
        FailureDetail(
            run_id=run.id,
            workflow_name=run.workflow_name,
            display_title=run.display_title,
            created_at=run.created_at,
            duration_seconds=run_duration_seconds(run),
            url=run.url,
        )
        for run in selected
        if run.conclusion in FAILURE_CONCLUSIONS
    ]

    return WorkflowAnalytics(
        total_runs=overall.total_runs,
        total_successes=overall.successes,
        total_failures=overall.failures,
        average_duration_seconds=overall.average_duration_seconds,
        workflow_stats={name: _build_stats(group) for name, group in by_workflow.items()},
        event_stats={event: _build_stats(group) for event, group in by_event.items()},
        failure_details=failures,
    )


def find_failed_job(jobs: Iterable[WorkflowJob]) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(job_name, step_name)`` for the first failed job, or ``(None, None)``."""
    for job in jobs:
        if job.conclusion not in FAILURE_CONCLUSIONS:
            continue
        for step in job.steps:
            if step.conclusion in FAILURE_CONCLUSIONS:
                return job.name, step.name
        return job.name, None
    return None, None


def attach_failure_details(
    client: WorkflowJobSource,
    repository: str,
    analytics: WorkflowAnalytics,
    limit: int = FAILURE_DETAIL_LIMIT,
) -> WorkflowAnalytics:
    """Annotate the first ``limit`` failures with their failed job and step.

    Lookups run concurrently; a failed lookup leaves that failure unannotated.
    """
    targets = analytics.failure_details[:limit]
    if not targets:
        return analytics

    with ThreadPoolExecutor(max_workers=len(targets)) as executor:
        futures = {
            executor.submit(client.list_run_jobs, repository, failure.run_id): failure
            for failure in targets
        }
        for future in as_completed(futures):
            failure = futures[future]
            try:
                jobs = future.result()
            except (PRCadenceError, requests.RequestException) as exc:
                logger.debug(
                    "Job lookup failed for workflow run",
                    extra={"repository": repository, "run_id": failure.run_id, "error": str(exc)},
                )
                continue
            failure.failed_job, failure.failed_step = find_failed_job(jobs)

    return analytics
