"""Issue resolution: commit message -> issue id -> cached or fetched Issue.

Lookups run through an ordered list of strategies (open query, then closed
query). Each strategy reports FOUND, NOT_FOUND or FAILED so callers can tell a
tracker outage apart from a missing issue; the resolver itself still treats a
failed tier as "not found" and moves on to the next one.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import ISSUE_ID_PATTERN
from .context import RunContext
from .errors import TrackerError
from .mappers import map_issue
from .models import Issue
from .redmine_client import RedmineAPI

logger = logging.getLogger(__name__)

_ISSUE_ID_RE = re.compile(ISSUE_ID_PATTERN)


class LookupOutcome(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(slots=True)
class LookupResult:
    outcome: LookupOutcome
    issue: Issue | None = None
    error: Exception | None = None

    @property
    def found(self) -> bool:
        return self.outcome is LookupOutcome.FOUND


LookupStrategy = Callable[[int], LookupResult]


def extract_issue_id(message: str | None) -> int | None:
    """Return the digits of the first ``#<digits>`` in ``message``, or None."""
    if not message:
        return None
    match = _ISSUE_ID_RE.search(message)
    if match is None:
        return None
    return int(match.group(1))


def first_found(issue_id: int, strategies: Sequence[LookupStrategy]) -> LookupResult:
    """Run ``strategies`` in order and return the first FOUND result.

    Without a hit the result is FAILED when any tier failed, else NOT_FOUND.
    """
    failure: LookupResult | None = None
    for strategy in strategies:
        result = strategy(issue_id)
        if result.found:
            return result
        if result.outcome is LookupOutcome.FAILED and failure is None:
            failure = result
    return failure or LookupResult(LookupOutcome.NOT_FOUND)


class IssueResolver:
    def __init__(self, api: RedmineAPI, context: RunContext, *, include_children: bool = True):
        self.api = api
        self.context = context
        self.include_children = include_children

    # ------------------ Lookup strategies ------------------
    def _lookup(self, tier: str, query: Callable[..., dict[str, Any] | None], issue_id: int) -> LookupResult:
        try:
            raw = query(issue_id, include_children=self.include_children)
            if raw is None:
                return LookupResult(LookupOutcome.NOT_FOUND)
            return LookupResult(LookupOutcome.FOUND, issue=map_issue(raw))
        except (TrackerError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Lookup of issue #%s among %s issues failed: %s", issue_id, tier, exc)
            return LookupResult(LookupOutcome.FAILED, error=exc)

    def lookup_open(self, issue_id: int) -> LookupResult:
        return self._lookup("open", self.api.query_open_issue, issue_id)

    def lookup_closed(self, issue_id: int) -> LookupResult:
        return self._lookup("closed", self.api.query_closed_issue, issue_id)

    @property
    def strategies(self) -> list[LookupStrategy]:
        return [self.lookup_open, self.lookup_closed]

    # ------------------ Public API ------------------
    def resolve_issue_id(self, message: str | None) -> int | None:
        return extract_issue_id(message)

    def resolve_issue(self, issue_id: int, *, repository: str | None = None) -> Issue | None:
        """Resolve ``issue_id`` through the run cache, then the open and closed queries."""
        cached = self.context.cached_issue(issue_id)
        if cached is not None:
            return cached
        result = first_found(issue_id, self.strategies)
        if result.found and result.issue is not None:
            return self.context.cache_issue(result.issue)
        logger.error("Repository '%s': Could not find Redmine issue #%s", repository or "?", issue_id)
        return None
