"""Domain data models for commits, tracker issues, and comparison results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(slots=True)
class RepositoryComparison:
    name: str
    start_sha: str
    compare_from: list[str] = field(default_factory=list)
    compare_to: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Commit:
    sha: str
    message: str
    short_message: str
    author_timestamp: int
    parent_count: int

    @property
    def authored_at(self) -> datetime:
        return datetime.fromtimestamp(self.author_timestamp, tz=UTC)


@dataclass(slots=True)
class ChildRef:
    id: int
    subject: str


@dataclass(slots=True)
class IssueStatus:
    id: int
    name: str
    is_closed: bool = False


@dataclass(slots=True)
class Issue:
    id: int
    tracker_name: str
    subject: str
    status: IssueStatus
    children: list[ChildRef] = field(default_factory=list)


@dataclass(slots=True)
class FeatureSet:
    """Issues and unresolved merge summaries collected for one branch group."""

    issues: list[Issue] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)

    @property
    def ids(self) -> set[int]:
        return {issue.id for issue in self.issues}


@dataclass(slots=True)
class RepositoryResult:
    missing: list[Issue] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)
    # Missing features dropped because an open planned child exists
    planned: list[Issue] = field(default_factory=list)


# Repository name -> result, in comparison order
MissingFeatureResult = dict[str, RepositoryResult]
