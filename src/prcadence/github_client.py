"""GitHub API client for pull request and workflow-run retrieval."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .errors import ApiError, AuthenticationError, DataValidationError
from .models import (
    FetchFilters,
    PullRequestRecord,
    Review,
    TimeWindow,
    WorkflowJob,
    WorkflowRun,
    WorkflowStep,
)

logger = logging.getLogger(__name__)

_PULL_REQUEST_FIELDS = """
        number
        title
        state
        isDraft
        createdAt
        mergedAt
        closedAt
        baseRefName
        headRefName
        additions
        deletions
        changedFiles
        author { login }
        mergedBy { login }
        mergeCommit { oid }
        comments { totalCount }
        reviews(first: 100) {
          nodes {
            author { login }
            submittedAt
            state
          }
        }
        timelineItems(itemTypes: [REOPENED_EVENT], first: 1) {
          totalCount
          nodes { ... on ReopenedEvent { createdAt } }
        }
"""

_SEARCH_QUERY = (
    """
query($searchQuery: String!, $pageSize: Int!, $cursor: String) {
  search(query: $searchQuery, type: ISSUE, first: $pageSize, after: $cursor) {
    issueCount
    pageInfo { hasNextPage endCursor }
    nodes {
      ... on PullRequest {"""
    + _PULL_REQUEST_FIELDS
    + """      }
    }
  }
}
"""
)


class GitHubClient:
    """Small, typed client for the GitHub GraphQL and REST APIs."""

    _API_URL = "https://api.github.com"
    _SEARCH_PAGE_SIZE = 50
    _SEARCH_RESULT_CAP = 1000
    _REST_PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30
    ENRICHMENT_TIMEOUT_SECONDS = 10

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including the token.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {config.token}",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the API root."""
        return f"{self._API_URL}/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes.

        Raises:
            DataValidationError: If the value is not an ISO8601 timestamp.
        """
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(normalized)
        except (TypeError, ValueError) as exc:
            raise DataValidationError(f"GitHub returned an invalid timestamp: {value!r}") from exc
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _request_json(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        """Execute a request with retry logic for 429/5xx responses.

        Raises:
            AuthenticationError: If GitHub rejects the token (HTTP 401).
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return valid JSON.
        """
        url = self._build_url(path)
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        attempts = max_retries if max_retries is not None else self._MAX_RETRIES

        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                response = self._session.request(
                    method, url, params=params, json=json_body, timeout=timeout
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == attempts:
                    raise ApiError(f"GitHub request failed after retries: {method} {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < attempts:
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code == 401:
                raise AuthenticationError(
                    "GitHub rejected the provided token. Check 'GITHUB_TOKEN' or 'GH_TOKEN'."
                )

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"{method} {url} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"GitHub API returned invalid JSON: {method} {url}") from exc

            if not isinstance(payload, (dict, list)):
                raise ApiError(f"GitHub API returned unexpected payload shape: {method} {url}")

            return payload

        raise ApiError(f"GitHub request failed after retries: {method} {url}") from last_error

    def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object.

        Raises:
            ApiError: If the response carries GraphQL errors or no data.
        """
        payload = self._request_json("POST", "graphql", json_body={"query": query, "variables": variables})
        if not isinstance(payload, dict):
            raise ApiError("GitHub GraphQL API returned unexpected payload shape.")

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(error.get("message", error)) for error in errors)
            raise ApiError(f"GitHub GraphQL errors: {messages}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ApiError("GitHub GraphQL API returned no data.")
        return data

    def build_search_query(self, repository: str, window: TimeWindow, filters: FetchFilters) -> str:
        """Build the issue-search query string for one repository window.

        The window is half-open; the exclusive end date is turned into an
        inclusive search bound by stepping back one day.
        """
        qualifiers = [f"repo:{repository}", "is:pr"]

        if window.start is not None and window.end is not None:
            last_day = window.end - timedelta(days=1)
            qualifiers.append(f"created:{window.start.isoformat()}..{last_day.isoformat()}")
        elif window.start is not None:
            qualifiers.append(f"created:>={window.start.isoformat()}")
        elif window.end is not None:
            qualifiers.append(f"created:<{window.end.isoformat()}")

        if not filters.include_open:
            qualifiers.append("is:closed")
        if filters.author:
            qualifiers.append(f"author:{filters.author}")
        if filters.label:
            label = filters.label
            qualifiers.append(f'label:"{label}"' if " " in label else f"label:{label}")

        return " ".join(qualifiers)

    def list_pull_requests(
        self,
        repository: str,
        window: TimeWindow,
        filters: FetchFilters,
    ) -> List[PullRequestRecord]:
        """List pull requests created inside ``window`` that match ``filters``.

        Uses the GraphQL ``search`` connection with cursor pagination.
        """
        search_query = self.build_search_query(repository, window, filters)
        records: List[PullRequestRecord] = []
        cursor: Optional[str] = None
        warned_about_cap = False

        while True:
            data = self._graphql(
                _SEARCH_QUERY,
                {"searchQuery": search_query, "pageSize": self._SEARCH_PAGE_SIZE, "cursor": cursor},
            )
            search = data.get("search") or {}

            issue_count = search.get("issueCount") or 0
            if issue_count > self._SEARCH_RESULT_CAP and not warned_about_cap:
                warned_about_cap = True
                logger.warning(
                    "Search results exceed the GitHub search cap; some pull requests will be missing",
                    extra={"window": str(window), "issue_count": issue_count},
                )

            for node in search.get("nodes") or []:
                if not node:
                    continue
                records.append(self._parse_pull_request(repository, node))

            page_info = search.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

        return records

    def _parse_pull_request(self, repository: str, node: Dict[str, Any]) -> PullRequestRecord:
        """Convert one GraphQL pull request node into a ``PullRequestRecord``."""
        number = node.get("number")
        created_at = self._parse_datetime(node.get("createdAt"))
        state = node.get("state")

        if number is None or created_at is None or not state:
            raise DataValidationError(
                "GitHub pull request payload is missing required fields: "
                f"repository={repository}, payload={node}"
            )

        reviews: List[Review] = []
        for item in (node.get("reviews") or {}).get("nodes") or []:
            submitted_at = self._parse_datetime(item.get("submittedAt"))
            if submitted_at is None:
                continue
            reviews.append(
                Review(
                    author=(item.get("author") or {}).get("login"),
                    submitted_at=submitted_at,
                    state=str(item.get("state") or ""),
                )
            )

        timeline = node.get("timelineItems") or {}
        reopened_events = [event for event in timeline.get("nodes") or [] if event]
        first_reopened_at = (
            self._parse_datetime(reopened_events[0].get("createdAt")) if reopened_events else None
        )

        return PullRequestRecord(
            number=int(number),
            title=str(node.get("title") or ""),
            state=str(state),
            created_at=created_at,
            merged_at=self._parse_datetime(node.get("mergedAt")),
            closed_at=self._parse_datetime(node.get("closedAt")),
            is_draft=bool(node.get("isDraft")),
            is_reopened=(timeline.get("totalCount") or 0) > 0,
            first_reopened_at=first_reopened_at,
            base_ref_name=str(node.get("baseRefName") or ""),
            head_ref_name=str(node.get("headRefName") or ""),
            author=(node.get("author") or {}).get("login"),
            merged_by=(node.get("mergedBy") or {}).get("login"),
            additions=int(node.get("additions") or 0),
            deletions=int(node.get("deletions") or 0),
            changed_files=int(node.get("changedFiles") or 0),
            merge_commit_oid=str((node.get("mergeCommit") or {}).get("oid") or ""),
            reviews=reviews,
            comment_count=int((node.get("comments") or {}).get("totalCount") or 0),
        )

    def count_review_comments(self, repository: str, number: int) -> int:
        """Count top-level code review comments on a pull request.

        Replies (comments with ``in_reply_to_id``) are excluded. Each page is a
        single attempt bounded by ``ENRICHMENT_TIMEOUT_SECONDS``.
        """
        count = 0
        page = 1

        while True:
            payload = self._request_json(
                "GET",
                f"repos/{repository}/pulls/{number}/comments",
                params={"per_page": self._REST_PAGE_SIZE, "page": page},
                timeout_seconds=self.ENRICHMENT_TIMEOUT_SECONDS,
                max_retries=1,
            )
            if not isinstance(payload, list):
                raise ApiError(
                    f"GitHub review comments payload is not a list: repository={repository}, pr={number}"
                )

            if not all(isinstance(comment, dict) for comment in payload):
                raise DataValidationError(
                    f"GitHub review comments payload has non-object items: repository={repository}, pr={number}"
                )

            count += sum(1 for comment in payload if comment.get("in_reply_to_id") is None)

            if len(payload) < self._REST_PAGE_SIZE:
                break
            page += 1

        return count

    def list_workflow_runs(
        self,
        repository: str,
        window: TimeWindow,
        limit: int = 500,
    ) -> List[WorkflowRun]:
        """List workflow runs created inside ``window``, newest first, up to ``limit``."""
        params: Dict[str, Any] = {"per_page": self._REST_PAGE_SIZE}
        if window.start is not None and window.end is not None:
            last_day = window.end - timedelta(days=1)
            params["created"] = f"{window.start.isoformat()}..{last_day.isoformat()}"
        elif window.start is not None:
            params["created"] = f">={window.start.isoformat()}"
        elif window.end is not None:
            params["created"] = f"<{window.end.isoformat()}"

        runs: List[WorkflowRun] = []
        page = 1

        while len(runs) < limit:
            payload = self._request_json(
                "GET",
                f"repos/{repository}/actions/runs",
                params={**params, "page": page},
            )
            page_items = payload.get("workflow_runs", []) if isinstance(payload, dict) else []

            for item in page_items:
                run_id = item.get("id")
                created_at = self._parse_datetime(item.get("created_at"))
                if run_id is None or created_at is None:
                    raise DataValidationError(
                        "GitHub workflow run payload is missing required fields: "
                        f"repository={repository}, payload={item}"
                    )
                runs.append(
                    WorkflowRun(
                        id=int(run_id),
                        workflow_name=str(item.get("name") or ""),
                        display_title=str(item.get("display_title") or ""),
                        event=str(item.get("event") or ""),
                        head_branch=str(item.get("head_branch") or ""),
                        status=str(item.get("status") or ""),
                        conclusion=item.get("conclusion"),
                        created_at=created_at,
                        run_started_at=self._parse_datetime(item.get("run_started_at")),
                        updated_at=self._parse_datetime(item.get("updated_at")),
                        url=str(item.get("html_url") or ""),
                    )
                )

            if len(page_items) < self._REST_PAGE_SIZE:
                break
            page += 1

        return runs[:limit]

    def list_run_jobs(self, repository: str, run_id: int) -> List[WorkflowJob]:
        """List the jobs (with steps) of one workflow run."""
        payload = self._request_json(
            "GET",
            f"repos/{repository}/actions/runs/{run_id}/jobs",
            params={"per_page": self._REST_PAGE_SIZE},
        )
        jobs: List[WorkflowJob] = []

        for item in payload.get("jobs", []) if isinstance(payload, dict) else []:
            if not isinstance(item, dict) or not all(isinstance(step, dict) for step in item.get("steps") or []):
                raise DataValidationError(
                    f"GitHub workflow job payload is malformed: repository={repository}, run_id={run_id}"
                )
            steps = [
                WorkflowStep(name=str(step.get("name") or ""), conclusion=step.get("conclusion"))
                for step in item.get("steps") or []
            ]
            jobs.append(
                WorkflowJob(
                    name=str(item.get("name") or ""),
                    conclusion=item.get("conclusion"),
                    steps=steps,
                )
            )

        return jobs
