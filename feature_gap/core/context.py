"""Per-run shared state: the issue cache and the synced repository handles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import ComparatorError
from .models import Issue

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunContext:
    """Owned by the comparator for one run and discarded afterwards.

    ``issues`` is append-only: the first successful fetch of an id is kept for
    the whole run, across repositories and branch groups.
    """

    issues: dict[int, Issue] = field(default_factory=dict)
    repositories: dict[str, Any] = field(default_factory=dict)

    def cached_issue(self, issue_id: int) -> Issue | None:
        return self.issues.get(issue_id)

    def cache_issue(self, issue: Issue) -> Issue:
        return self.issues.setdefault(issue.id, issue)

    def add_repository(self, key: str, repo: Any) -> None:
        self.repositories[key] = repo

    def get_repository(self, key: str) -> Any:
        try:
            return self.repositories[key]
        except KeyError:
            raise ComparatorError(f"Repository '{key}' was not synchronized before comparison") from None

    def close(self) -> None:
        for key, repo in self.repositories.items():
            close = getattr(repo, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as exc:  # pragma: no cover - best effort release
                logger.debug("Failed to close repository %s: %s", key, exc)
        self.repositories.clear()
