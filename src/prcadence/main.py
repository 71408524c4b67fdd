"""Entry point wiring CLI, configuration, retrieval, statistics and output."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from .actions import analyze_workflow_runs, attach_failure_details
from .cli import parse_args
from .config import Config, load_config
from .enrich import enrich_review_comments
from .errors import ApiError, AuthenticationError, ConfigurationError, ExportError
from .export import default_csv_filename, write_pull_requests_csv
from .fetch import fetch_pull_requests
from .git_remote import detect_repository
from .github_client import GitHubClient
from .models import FetchFilters, TimeWindow
from .normalize import normalize_records
from .report import generate_actions_report, generate_report
from .stats import compute_aggregate_stats
from .windows import plan_windows

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4
EXIT_EXPORT = 5


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _describe_range(config: Config) -> str:
    if config.since is None and config.until is None:
        return "all time"
    return str(TimeWindow(start=config.since, end=config.until))


def _print_window_progress(window: TimeWindow, count: int) -> None:
    print(f"Fetched {count} PRs for {window}")


def run_pull_request_analysis(client: GitHubClient, config: Config, csv_path: Optional[str]) -> int:
    """Fetch, normalize, enrich and summarize pull requests, then print the report."""
    windows = plan_windows(config.since, config.until, chunk_days=config.chunk_days)
    filters = FetchFilters(author=config.author, label=config.label, include_open=config.include_open)

    print(
        f"Fetching PRs for repository '{config.repository}' ({_describe_range(config)}, "
        f"{len(windows)} window(s), {config.max_workers} workers)..."
    )
    records = fetch_pull_requests(
        client,
        config.repository,
        windows,
        filters,
        max_workers=config.max_workers,
        on_window_fetched=_print_window_progress if len(windows) > 1 else None,
    )
    print(f"Total PRs fetched: {len(records)}")

    records = normalize_records(records)
    if config.enrich and records:
        print(f"Analyzing review comments for {len(records)} PRs...")
        records = enrich_review_comments(client, config.repository, records)

    stats = compute_aggregate_stats(records)
    print(generate_report(config.repository, stats))

    if csv_path is not None:
        written = write_pull_requests_csv(csv_path or default_csv_filename(config.repository), records)
        print(f"CSV output: {written}")

    return EXIT_OK


def run_actions_analysis(client: GitHubClient, config: Config) -> int:
    """Fetch and summarize workflow runs, then print the report."""
    window = TimeWindow(start=config.since, end=config.until)
    print(f"Fetching workflow runs for repository '{config.repository}' ({_describe_range(config)})...")

    runs = client.list_workflow_runs(config.repository, window)
    analytics = analyze_workflow_runs(runs, window)
    analytics = attach_failure_details(client, config.repository, analytics)

    print(generate_actions_report(config.repository, analytics))
    return EXIT_OK


def orchestrate_metrics_generation(argv: Optional[Sequence[str]] = None) -> int:
    """Run the full application flow and return a process exit code.

    Exit codes: 0 success, 1 unexpected error, 2 configuration error,
    3 authentication error, 4 GitHub API error, 5 export error.
    """
    try:
        args = parse_args(argv)
        _configure_logging(args.verbose)

        repository = args.repo or detect_repository()
        if not repository:
            raise ConfigurationError(
                "No repository given and none could be detected from the git remote. Use --repo owner/repo."
            )

        config = load_config(
            repository=repository,
            since=args.since,
            until=args.until,
            days=args.days,
            author=args.author,
            label=args.label,
            include_open=not args.closed_only,
            max_workers=args.workers,
            enrich=not args.no_enrich,
        )
        client = GitHubClient(config=config)

        if args.actions:
            return run_actions_analysis(client, config)
        return run_pull_request_analysis(client, config, args.csv)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        print(f"Authentication error: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except ApiError as exc:
        print(f"GitHub API error: {exc}", file=sys.stderr)
        return EXIT_API
    except ExportError as exc:
        print(f"Export error: {exc}", file=sys.stderr)
        return EXIT_EXPORT
    except Exception:
        logger.exception("Unexpected error while generating metrics")
        print("Unexpected error while generating metrics.", file=sys.stderr)
        return EXIT_UNEXPECTED


def main() -> None:
    sys.exit(orchestrate_metrics_generation())


if __name__ == "__main__":
    main()
