"""Feature sets per branch group and the missing-feature difference between two groups."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

import pytz

from feature_gap.core.config import DEFAULT_TIMEZONE
from feature_gap.core.mappers import issue_line
from feature_gap.core.models import Commit, FeatureSet, Issue
from feature_gap.core.resolver import IssueResolver
from feature_gap.repository.miner import mine_merge_commits

logger = logging.getLogger(__name__)


def format_local(ts: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Render an aware timestamp in ``tz_name`` (falls back to UTC for unknown zones)."""
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return ts.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %z")


def collect_features(
    commits: Iterable[Commit],
    resolver: IssueResolver,
    *,
    repository_name: str = "",
    group: str = "",
    tz_name: str = DEFAULT_TIMEZONE,
) -> FeatureSet:
    """Resolve merge commits into a de-duplicated FeatureSet.

    Commits without an issue reference are kept as unknown features (by their
    short message, once per literal text). A reference the tracker cannot
    resolve is dropped. Issues are kept once per id, first occurrence wins.
    """
    features = FeatureSet()
    seen_ids: set[int] = set()
    seen_unknown: set[str] = set()
    for commit in commits:
        issue_id = resolver.resolve_issue_id(commit.message)
        if issue_id is None:
            logger.warning(
                "Repository '%s' (%s): Could not find Redmine issue for merge commit: %s",
                repository_name,
                group,
                commit.short_message,
            )
            if commit.short_message not in seen_unknown:
                seen_unknown.add(commit.short_message)
                features.unknown.append(commit.short_message)
            continue
        if issue_id in seen_ids:
            continue
        issue = resolver.resolve_issue(issue_id, repository=repository_name)
        if issue is None or issue.id in seen_ids:
            continue
        seen_ids.update({issue_id, issue.id})
        features.issues.append(issue)
        logger.info("- %s|%s", format_local(commit.authored_at, tz_name), issue_line(issue))
    return features


def build_feature_set(
    repo: Any,
    branches: Sequence[str],
    start_sha: str,
    resolver: IssueResolver,
    *,
    repository_name: str = "",
    group: str = "",
    tz_name: str = DEFAULT_TIMEZONE,
) -> FeatureSet:
    """Mine every branch of a group, then resolve the concatenated merges."""
    commits: list[Commit] = []
    for branch in branches:
        mined = mine_merge_commits(repo, branch, start_sha, repository_name=repository_name)
        logger.debug("Repository '%s' (%s): %d merge commits on '%s'", repository_name, group, len(mined), branch)
        commits.extend(mined)
    return collect_features(commits, resolver, repository_name=repository_name, group=group, tz_name=tz_name)


def missing_features(from_set: FeatureSet, to_set: FeatureSet) -> list[Issue]:
    """Issues of ``from_set`` whose id is absent from ``to_set``, in ``from_set`` order."""
    to_ids = to_set.ids
    return [issue for issue in from_set.issues if issue.id not in to_ids]
