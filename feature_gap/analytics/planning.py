"""Split missing features into planned (an open marker child exists) and unplanned."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from feature_gap.core.config import DEFAULT_OPEN_STATUS_ID
from feature_gap.core.models import ChildRef, Issue
from feature_gap.core.resolver import IssueResolver

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlanningSplit:
    unplanned: list[Issue] = field(default_factory=list)
    planned: list[Issue] = field(default_factory=list)


def find_planned_child(issue: Issue, markers: Sequence[str]) -> ChildRef | None:
    active = [m for m in markers if m]
    if not active:
        return None
    return next((child for child in issue.children if any(m in child.subject for m in active)), None)


def is_planned(
    issue: Issue,
    markers: Sequence[str],
    resolver: IssueResolver,
    *,
    open_status_id: int = DEFAULT_OPEN_STATUS_ID,
) -> bool:
    child = find_planned_child(issue, markers)
    if child is None:
        return False
    # Child refs carry no status: fetch the child itself from the open issues
    result = resolver.lookup_open(child.id)
    if not result.found or result.issue is None:
        return False
    return result.issue.status.id == open_status_id


def classify_unplanned(
    missing: Sequence[Issue],
    markers: Sequence[str],
    resolver: IssueResolver,
    *,
    open_status_id: int = DEFAULT_OPEN_STATUS_ID,
    repository_name: str = "",
) -> PlanningSplit:
    split = PlanningSplit()
    for issue in missing:
        if is_planned(issue, markers, resolver, open_status_id=open_status_id):
            logger.info("Repository '%s': feature #%s already planned, skipped.", repository_name, issue.id)
            split.planned.append(issue)
        else:
            split.unplanned.append(issue)
    return split
