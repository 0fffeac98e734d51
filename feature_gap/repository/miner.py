"""Merge commit mining: which merges landed on a branch since a baseline commit."""

from __future__ import annotations

import logging
from typing import Any

from git.exc import BadName, BadObject

from feature_gap.core.config import MERGE_INTO_TEMPLATE
from feature_gap.core.models import Commit

logger = logging.getLogger(__name__)


def to_commit(raw: Any) -> Commit:
    """Convert a GitPython commit into the read-only :class:`Commit` model."""
    message = raw.message if isinstance(raw.message, str) else raw.message.decode("utf-8", "replace")
    summary = raw.summary if isinstance(raw.summary, str) else raw.summary.decode("utf-8", "replace")
    return Commit(
        sha=raw.hexsha,
        message=message,
        short_message=summary,
        author_timestamp=int(raw.authored_date),
        parent_count=len(raw.parents),
    )


def is_merge_into(commit: Commit, branch_name: str) -> bool:
    return commit.parent_count > 1 and MERGE_INTO_TEMPLATE.format(branch=branch_name) in commit.message


def find_branch(repo: Any, branch_name: str) -> Any | None:
    """Return the first local or remote-tracking ref whose name contains ``branch_name``.

    Containment rather than equality lets ``main`` resolve to ``origin/main``.
    A branch name that is contained in another branch's name can resolve to the
    wrong ref; local heads are searched first to limit that.
    """
    refs = list(repo.heads)
    for remote in repo.remotes:
        refs.extend(remote.refs)
    return next((ref for ref in refs if branch_name in ref.name), None)


def find_commit(repo: Any, sha: str) -> Commit | None:
    try:
        raw = repo.commit(sha)
    except (BadName, BadObject, ValueError):
        return None
    if raw.hexsha != sha.lower():
        return None
    return to_commit(raw)


def mine_merge_commits(
    repo: Any,
    branch_name: str,
    start_sha: str,
    *,
    repository_name: str = "",
) -> list[Commit]:
    """Merges into ``branch_name`` authored at or after the baseline commit, newest first.

    A missing branch or baseline is reported and yields an empty list.
    """
    branch = find_branch(repo, branch_name)
    if branch is None:
        logger.warning("Repository '%s': Branch '%s' not found.", repository_name, branch_name)
        return []

    merges = [
        commit
        for commit in (to_commit(raw) for raw in repo.iter_commits(branch, date_order=True))
        if is_merge_into(commit, branch_name)
    ]

    start = find_commit(repo, start_sha)
    if start is None:
        logger.warning(
            "Repository '%s': Could not find start commit with SHA %s, branch '%s' will be skipped.",
            repository_name,
            start_sha,
            branch_name,
        )
        return []

    return [commit for commit in merges if commit.author_timestamp >= start.author_timestamp]
