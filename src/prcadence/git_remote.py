"""Repository detection from the local git ``origin`` remote."""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)

_SSH_REMOTE_RE = re.compile(r"^git@github\.com:([^/]+)/(.+?)(?:\.git)?/?$")
_HTTPS_REMOTE_RE = re.compile(r"^(?:https?|ssh)://(?:[^@/]+@)?github\.com/([^/]+)/(.+?)(?:\.git)?/?$")


def parse_remote_url(url: str) -> Optional[str]:
    """Extract ``owner/repo`` from a GitHub SSH or HTTPS remote URL.

    Returns ``None`` when the URL does not point at github.com.
    """
    for pattern in (_SSH_REMOTE_RE, _HTTPS_REMOTE_RE):
        match = pattern.match(url.strip())
        if match:
            return f"{match.group(1)}/{match.group(2)}"
    return None


def detect_repository(path: str = ".") -> Optional[str]:
    """Detect ``owner/repo`` from the ``origin`` remote of the git checkout at ``path``.

    Returns ``None`` if git is missing, ``path`` is not a checkout, or the
    remote is not hosted on GitHub.
    """
    try:
        result = subprocess.run(
            ["git", "-C", path, "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError) as exc:
        logger.debug("Could not read git remote", extra={"path": path, "error": str(exc)})
        return None

    return parse_remote_url(result.stdout)
