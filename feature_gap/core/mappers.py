"""Mapping raw Redmine issue JSON into Issue instances, and issues into display lines."""

from __future__ import annotations

from typing import Any

from .config import FEATURE_LINE_PREFIX
from .models import ChildRef, Issue, IssueStatus


def _name(node: Any) -> str:
    if isinstance(node, dict):
        name = node.get("name")
        if isinstance(name, str):
            return name
    return ""


def map_status(raw: Any) -> IssueStatus:
    if not isinstance(raw, dict):
        return IssueStatus(id=0, name="Unknown")
    try:
        status_id = int(raw.get("id", 0))
    except (TypeError, ValueError):
        status_id = 0
    return IssueStatus(id=status_id, name=_name(raw) or "Unknown", is_closed=bool(raw.get("is_closed", False)))


def map_children(raw_children: Any) -> list[ChildRef]:
    children: list[ChildRef] = []
    if not isinstance(raw_children, list):
        return children
    for child in raw_children:
        if not isinstance(child, dict) or child.get("id") is None:
            continue
        children.append(ChildRef(id=int(child["id"]), subject=str(child.get("subject") or "")))
    return children


def map_issue(raw: dict[str, Any]) -> Issue:
    return Issue(
        id=int(raw["id"]),
        tracker_name=_name(raw.get("tracker")),
        subject=str(raw.get("subject") or ""),
        status=map_status(raw.get("status")),
        children=map_children(raw.get("children")),
    )


def issue_line(issue: Issue) -> str:
    """Render an issue the way the comparison note lists it: `` - Bug #12: Subject``."""
    return f"{FEATURE_LINE_PREFIX}{issue.tracker_name} #{issue.id}: {issue.subject}"
