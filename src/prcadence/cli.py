"""Command-line argument parsing for pr-cadence."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .fetch import DEFAULT_MAX_WORKERS


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for metrics generation.

    Returns:
        Parsed CLI arguments: repository, date range, filters, worker count
        and output options.
    """
    parser = argparse.ArgumentParser(
        prog="pr-cadence",
        description=(
            "Analyze a GitHub repository's pull requests (lead time, review latency, "
            "merge wait, release and hotfix cadence) or its workflow runs."
        ),
    )

    parser.add_argument(
        "--repo",
        help="GitHub repository in 'owner/repo' format (default: detected from the git remote).",
    )

    range_group = parser.add_mutually_exclusive_group()
    range_group.add_argument(
        "--since",
        help="Analyze PRs created on or after this date (YYYY-MM-DD).",
    )
    range_group.add_argument(
        "--days",
        type=_positive_int,
        help="Analyze PRs created in the last N days.",
    )
    parser.add_argument(
        "--until",
        help="Analyze PRs created before this date (YYYY-MM-DD, exclusive).",
    )

    parser.add_argument("--author", help="Only include PRs opened by this login.")
    parser.add_argument("--label", help="Only include PRs carrying this label.")
    parser.add_argument(
        "--closed-only",
        action="store_true",
        help="Skip open PRs (by default open PRs are included).",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=DEFAULT_MAX_WORKERS,
        help=f"Parallel window fetches (default: {DEFAULT_MAX_WORKERS}).",
    )
    parser.add_argument(
        "--no-enrich",
        action="store_true",
        help="Skip the per-PR review comment lookups.",
    )
    parser.add_argument(
        "--csv",
        nargs="?",
        const="",
        default=None,
        metavar="PATH",
        help="Export PR rows to CSV (default path: pr-cadence_<owner>-<repo>.csv).",
    )
    parser.add_argument(
        "--actions",
        action="store_true",
        help="Analyze GitHub Actions workflow runs instead of pull requests.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )

    return parser.parse_args(argv)
