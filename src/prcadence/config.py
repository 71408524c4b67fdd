"""Configuration parsing and validation for pr-cadence."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Union

from .errors import AuthenticationError, ConfigurationError, DateRangeError
from .fetch import DEFAULT_MAX_WORKERS
from .windows import DEFAULT_CHUNK_DAYS, parse_date

_REPOSITORY_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics generator."""

    repository: str
    since: Optional[date]
    until: Optional[date]
    author: Optional[str]
    label: Optional[str]
    include_open: bool
    max_workers: int
    chunk_days: int
    enrich: bool
    token: str

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.repository.split("/", 1)[1]


def _resolve_token() -> str:
    for env_var in _TOKEN_ENV_VARS:
        token = os.getenv(env_var, "").strip()
        if token:
            return token
    return ""


def load_config(
    repository: str,
    since: Union[str, date, None] = None,
    until: Union[str, date, None] = None,
    days: Optional[int] = None,
    author: Optional[str] = None,
    label: Optional[str] = None,
    include_open: bool = True,
    max_workers: int = DEFAULT_MAX_WORKERS,
    enrich: bool = True,
    today: Optional[date] = None,
) -> Config:
    """Build and validate application configuration.

    Args:
        repository: GitHub repository in ``owner/repo`` form.
        since: Inclusive start date (``YYYY-MM-DD`` or ``date``).
        until: Exclusive end date (``YYYY-MM-DD`` or ``date``).
        days: Look-back shorthand; sets ``since`` to ``today - days`` and
            ``until`` to tomorrow. Cannot be combined with ``since``.
        author: Optional author login filter.
        label: Optional label filter.
        include_open: Whether open pull requests are fetched too.
        max_workers: Worker pool size for window fetches.
        enrich: Whether review-comment enrichment runs.
        today: Reference date for ``days``; defaults to the local date.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If the repository or numeric settings are invalid.
        DateRangeError: If a date cannot be parsed or the range is inverted.
        AuthenticationError: If neither ``GITHUB_TOKEN`` nor ``GH_TOKEN`` is set.
    """
    repository = (repository or "").strip()
    if not _REPOSITORY_RE.match(repository):
        raise ConfigurationError(
            f"Invalid repository '{repository}': expected the 'owner/repo' format."
        )

    if max_workers <= 0:
        raise ConfigurationError("Invalid value for 'workers': expected an integer greater than 0.")

    since_date = parse_date(since)
    until_date = parse_date(until)

    if days is not None:
        if days <= 0:
            raise ConfigurationError("Invalid value for 'days': expected an integer greater than 0.")
        if since_date is not None:
            raise ConfigurationError("'days' and 'since' cannot be used together.")
        reference = today or date.today()
        since_date = reference - timedelta(days=days)
        if until_date is None:
            until_date = reference + timedelta(days=1)

    if since_date is not None and until_date is not None and since_date > until_date:
        raise DateRangeError(
            f"Invalid date range: since {since_date.isoformat()} is after until {until_date.isoformat()}."
        )

    token = _resolve_token()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' or 'GH_TOKEN' environment variable before running pr-cadence."
        )

    return Config(
        repository=repository,
        since=since_date,
        until=until_date,
        author=author or None,
        label=label or None,
        include_open=include_open,
        max_workers=max_workers,
        chunk_days=DEFAULT_CHUNK_DAYS,
        enrich=enrich,
        token=token,
    )
