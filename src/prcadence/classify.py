"""Heuristic pull request classifications.

Every function here is a pure predicate over a single normalized record, so
aggregation in :mod:`prcadence.stats` never needs to know how a release or a
hotfix is recognised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import PullRequestRecord

RELEASE_BRANCHES = frozenset({"main", "master"})
HOTFIX_PREFIX = "hotfix"
REVERT_MARKER = "revert"

MERGE_TYPE_MERGE_OR_SQUASH = "merge/squash"
MERGE_TYPE_REBASE_OR_OTHER = "rebase/other"


@dataclass(frozen=True)
class Classification:
    """All heuristic tags for one record."""

    release: bool
    hotfix: bool
    revert_like: bool
    self_merge: bool
    merge_type: Optional[str]


def is_release_target(record: PullRequestRecord) -> bool:
    """True when the base branch is ``main`` or ``master`` (case-insensitive)."""
    return record.base_ref_name.lower() in RELEASE_BRANCHES


def is_hotfix_branch(record: PullRequestRecord) -> bool:
    """True when the head branch starts with ``hotfix`` (case-insensitive)."""
    return record.head_ref_name.lower().startswith(HOTFIX_PREFIX)


def is_release(record: PullRequestRecord) -> bool:
    return record.merged and is_release_target(record)


def is_hotfix(record: PullRequestRecord) -> bool:
    return record.merged and is_hotfix_branch(record)


def is_revert_like(record: PullRequestRecord) -> bool:
    return record.merged and REVERT_MARKER in record.title.lower()


def is_self_merge(record: PullRequestRecord) -> bool:
    """True when a merged record was merged by its own (known) author."""
    return record.merged and record.author is not None and record.author == record.merged_by


def merge_type(record: PullRequestRecord) -> Optional[str]:
    """Guess the merge method from merge-commit presence.

    GitHub does not expose the merge method directly; a merge commit id
    suggests a merge or squash, its absence a rebase or something else.
    Unmerged records have no merge type.
    """
    if not record.merged:
        return None
    if record.merge_commit_oid:
        return MERGE_TYPE_MERGE_OR_SQUASH
    return MERGE_TYPE_REBASE_OR_OTHER


def classify(record: PullRequestRecord) -> Classification:
    return Classification(
        release=is_release(record),
        hotfix=is_hotfix(record),
        revert_like=is_revert_like(record),
        self_merge=is_self_merge(record),
        merge_type=merge_type(record),
    )
