"""Redmine REST client wrapper (issue lookups by id, split into open and closed queries)."""

from __future__ import annotations

from typing import Any

import requests

from .config import REDMINE_API_KEY_HEADER, REDMINE_TIMEOUT_SECONDS
from .errors import TrackerError


class RedmineAPI:
    def __init__(
        self,
        server: str,
        api_key: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float = REDMINE_TIMEOUT_SECONDS,
    ):
        self.server = server.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._children_cache: dict[int, list[dict[str, Any]]] = {}
        if api_key:
            self.session.headers[REDMINE_API_KEY_HEADER] = api_key

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.server}{path}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TrackerError(f"Redmine request failed for {url}: {exc}") from exc
        if resp.status_code >= 400:
            raise TrackerError(f"Redmine request failed {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as exc:
            raise TrackerError(f"Redmine returned a non-JSON payload for {url}") from exc

    def _children(self, issue_id: int) -> list[dict[str, Any]]:
        """Children of ``issue_id`` from the show endpoint, fetched once per issue."""
        if issue_id not in self._children_cache:
            detail = self._get(f"/issues/{issue_id}.json", params={"include": "children"})
            # Redmine leaves the key out for issues without children
            self._children_cache[issue_id] = (detail.get("issue") or {}).get("children") or []
        return self._children_cache[issue_id]

    def _query_issue(self, issue_id: int, status: str, include_children: bool) -> dict[str, Any] | None:
        params: dict[str, Any] = {"issue_id": issue_id, "status_id": status}
        if include_children:
            params["include"] = "children"
        data = self._get("/issues.json", params=params)
        issues = data.get("issues") or []
        if not issues:
            return None
        raw = issues[0]
        # The list endpoint ignores include=children; the show endpoint honors it
        if include_children and "children" not in raw:
            raw = dict(raw)
            raw["children"] = self._children(issue_id)
        return raw

    def query_open_issue(self, issue_id: int, include_children: bool = True) -> dict[str, Any] | None:
        """Return the raw open issue with id ``issue_id`` or None when no open issue matches."""
        return self._query_issue(issue_id, "open", include_children)

    def query_closed_issue(self, issue_id: int, include_children: bool = True) -> dict[str, Any] | None:
        """Return the raw closed issue with id ``issue_id`` or None when no closed issue matches."""
        return self._query_issue(issue_id, "closed", include_children)
