"""In-memory stand-ins for the tracker and git collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field

from feature_gap.core.errors import TrackerError
from feature_gap.core.redmine_client import RedmineAPI

BASE_TS = 1_700_000_000


def raw_issue(issue_id, subject=None, tracker="Feature", status_id=1, status="New", closed=False, children=()):
    return {
        "id": issue_id,
        "tracker": {"id": 2, "name": tracker},
        "status": {"id": status_id, "name": status, "is_closed": closed},
        "subject": subject or f"Issue {issue_id}",
        "children": [{"id": cid, "tracker": {"id": 3, "name": "Task"}, "subject": subj} for cid, subj in children],
    }


class DummyRedmineAPI(RedmineAPI):
    def __init__(self, open_issues=(), closed_issues=(), failing=()):
        self.server = "https://redmine.example.com"
        self.open_issues = {raw["id"]: raw for raw in open_issues}
        self.closed_issues = {raw["id"]: raw for raw in closed_issues}
        self.failing = set(failing)
        self.calls: list[tuple[str, int]] = []

    def query_open_issue(self, issue_id, include_children=True):
        self.calls.append(("open", issue_id))
        if issue_id in self.failing:
            raise TrackerError("connection refused")
        return self.open_issues.get(issue_id)

    def query_closed_issue(self, issue_id, include_children=True):
        self.calls.append(("closed", issue_id))
        if issue_id in self.failing:
            raise TrackerError("connection refused")
        return self.closed_issues.get(issue_id)


@dataclass
class FakeGitCommit:
    hexsha: str
    message: str
    authored_date: int
    parents: tuple = ()

    @property
    def summary(self) -> str:
        return self.message.split("\n", 1)[0]


def merge(sha, message, ts=BASE_TS + 100, parents=2):
    return FakeGitCommit(hexsha=sha, message=message, authored_date=ts, parents=tuple(range(parents)))


def baseline(sha="a" * 40, ts=BASE_TS):
    return FakeGitCommit(hexsha=sha, message="Initial commit", authored_date=ts, parents=(0,))


@dataclass
class FakeRef:
    name: str
    commits: list = field(default_factory=list)


@dataclass
class FakeRemote:
    refs: list = field(default_factory=list)


class FakeRepo:
    """Branches map a name to its history, newest first."""

    def __init__(self, branches=None, remote_branches=None):
        self.heads = [FakeRef(name, list(commits)) for name, commits in (branches or {}).items()]
        self.remotes = []
        if remote_branches:
            self.remotes.append(
                FakeRemote([FakeRef(f"origin/{name}", list(commits)) for name, commits in remote_branches.items()])
            )
        self.closed = False
        self.iter_kwargs: list[dict] = []

    def _refs(self):
        refs = list(self.heads)
        for remote in self.remotes:
            refs.extend(remote.refs)
        return refs

    def iter_commits(self, rev, **kwargs):
        self.iter_kwargs.append(kwargs)
        return iter(rev.commits)

    def commit(self, sha):
        for ref in self._refs():
            for commit in ref.commits:
                if commit.hexsha.startswith(sha):
                    return commit
        raise ValueError(f"Bad object {sha}")

    def close(self):
        self.closed = True
