"""Concurrent, time-windowed pull request retrieval.

Each window is fetched independently by a bounded worker pool. Failures are
reported loudly: if any window fails, the caller gets that error and none of
the records fetched by the other windows.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from .models import FetchFilters, PullRequestRecord, TimeWindow

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5

WindowObserver = Callable[[TimeWindow, int], None]


class RecordSource(Protocol):
    """Anything that can list the pull requests of one repository window."""

    def list_pull_requests(
        self,
        repository: str,
        window: TimeWindow,
        filters: FetchFilters,
    ) -> List[PullRequestRecord]:
        ...


def fetch_pull_requests(
    source: RecordSource,
    repository: str,
    windows: Sequence[TimeWindow],
    filters: FetchFilters,
    max_workers: int = DEFAULT_MAX_WORKERS,
    on_window_fetched: Optional[WindowObserver] = None,
) -> List[PullRequestRecord]:
    """Fetch every window and return the union of their records.

    - A single window is fetched directly, without a pool.
    - Otherwise a fixed-size pool of ``max_workers`` threads consumes the
      windows. Completed results are drained until every window finished.
    - If any window fails, the first error observed is raised once all
      windows are done; in-flight peers are not cancelled and their records
      are discarded.

    Records are returned grouped in window order.

    Raises:
        Exception: Whatever the record source raised for the first failed window.
    """
    if not windows:
        return []

    if len(windows) == 1:
        window = windows[0]
        records = source.list_pull_requests(repository, window, filters)
        if on_window_fetched is not None:
            on_window_fetched(window, len(records))
        return records

    logger.info(
        "Fetching pull requests in parallel",
        extra={"repository": repository, "windows": len(windows), "workers": max_workers},
    )

    results: Dict[int, List[PullRequestRecord]] = {}
    first_error: Optional[BaseException] = None
    failed_windows = 0

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures: Dict[Future, int] = {
            executor.submit(source.list_pull_requests, repository, window, filters): index
            for index, window in enumerate(windows)
        }

        for future in as_completed(futures):
            index = futures[future]
            window = windows[index]
            error = future.exception()

            if error is not None:
                failed_windows += 1
                logger.warning(
                    "Window fetch failed",
                    extra={"repository": repository, "window": str(window), "error": str(error)},
                )
                if first_error is None:
                    first_error = error
                continue

            records = future.result()
            results[index] = records
            if on_window_fetched is not None:
                on_window_fetched(window, len(records))

    if first_error is not None:
        logger.error(
            "Aborting fetch after window failures",
            extra={
                "repository": repository,
                "failed_windows": failed_windows,
                "completed_windows": len(results),
            },
        )
        raise first_error

    all_records: List[PullRequestRecord] = []
    for index in range(len(windows)):
        all_records.extend(results[index])

    logger.info(
        "Fetched pull requests",
        extra={"repository": repository, "records": len(all_records), "windows": len(windows)},
    )
    return all_records
