"""Central configuration: constants, settings dataclasses, and the YAML loader."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .models import RepositoryComparison

# =============================================================================
# Commit conventions
# =============================================================================
# A merge into branch X carries "into 'X'" in its message
MERGE_INTO_TEMPLATE = "into '{branch}'"
# First "#<digits>" in a merge message is the tracker issue id
ISSUE_ID_PATTERN = r"#([0-9]+)"

# =============================================================================
# Git Settings
# =============================================================================
GIT_REPOSITORY_EXTENSION = ".git"
REMOTE_NAME = "origin"
COMPARE_FROM_FOLDER = "from"
COMPARE_TO_FOLDER = "to"

# =============================================================================
# Redmine Settings
# =============================================================================
# Redmine's default "New" status id; a planned child must still be in it
DEFAULT_OPEN_STATUS_ID = 1
REDMINE_API_KEY_HEADER = "X-Redmine-API-Key"
REDMINE_TIMEOUT_SECONDS = 30.0

# =============================================================================
# Comparison note format
# =============================================================================
REPOSITORY_HEADER_MARKER = "## "
MISSING_SECTION_LABEL = "- Missing features:"
UNKNOWN_SECTION_LABEL = "- Unknown features:"
FEATURE_LINE_PREFIX = " - "
NOTE_ENCODING = "utf-8-sig"

# Suffixes read/written through pandas instead of plain text
SPREADSHEET_SUFFIXES: frozenset[str] = frozenset({".xlsx", ".xls", ".csv"})
TASK_SHEET_COLUMNS: Sequence[str] = ("repository", "tracker", "id", "subject", "status")

# =============================================================================
# Defaults and environment overrides
# =============================================================================
DEFAULT_CONFIG_PATH = "comparator.yaml"
DEFAULT_NOTE_PATH = "comparison_note.md"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_LOG_LEVEL = "INFO"
ENV_GIT_PAT = "FEATURE_GAP_GIT_PAT"
ENV_REDMINE_API_KEY = "FEATURE_GAP_REDMINE_API_KEY"


@dataclass(slots=True)
class GitSettings:
    username: str
    repository_url_prefix: str
    clone_dir: str
    repositories: list[RepositoryComparison] = field(default_factory=list)
    pat: str | None = None

    def repository_url(self, name: str) -> str:
        return f"{self.repository_url_prefix}{name}{GIT_REPOSITORY_EXTENSION}"


@dataclass(slots=True)
class RedmineSettings:
    server_url: str
    api_key: str | None = None
    open_status_id: int = DEFAULT_OPEN_STATUS_ID
    planned_feature_subjects: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ReportSettings:
    comparison_note_path: str = DEFAULT_NOTE_PATH
    existing_report_path: str | None = None
    planned_tasks_path: str | None = None
    unplanned_tasks_path: str | None = None


@dataclass(slots=True)
class AppSettings:
    git: GitSettings
    redmine: RedmineSettings
    report: ReportSettings = field(default_factory=ReportSettings)
    timezone: str = DEFAULT_TIMEZONE
    log_level: str = DEFAULT_LOG_LEVEL


def _require(section: dict[str, Any], key: str, where: str) -> Any:
    value = section.get(key)
    if value is None or value == "":
        raise ConfigError(f"Missing required setting '{where}.{key}'")
    return value


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _parse_repository(raw: dict[str, Any], index: int) -> RepositoryComparison:
    where = f"git.repositories[{index}]"
    name = str(_require(raw, "name", where))
    compare_from = _as_list(raw.get("compare_from"))
    compare_to = _as_list(raw.get("compare_to"))
    if not compare_from or not compare_to:
        raise ConfigError(f"Repository '{name}' needs both compare_from and compare_to branches")
    return RepositoryComparison(
        name=name,
        start_sha=str(_require(raw, "start_sha", where)),
        compare_from=compare_from,
        compare_to=compare_to,
    )


def is_log_level(name: str | None) -> bool:
    return bool(name) and name.upper() in logging.getLevelNamesMapping()


def parse_settings(data: dict[str, Any]) -> AppSettings:
    """Build :class:`AppSettings` from an already-parsed mapping.

    Secrets left empty in the mapping are taken from the environment
    (``FEATURE_GAP_GIT_PAT`` and ``FEATURE_GAP_REDMINE_API_KEY``).
    """
    git_raw = data.get("git") or {}
    redmine_raw = data.get("redmine") or {}
    report_raw = data.get("report") or {}

    repositories = [
        _parse_repository(r or {}, i) for i, r in enumerate(git_raw.get("repositories") or [])
    ]
    if not repositories:
        raise ConfigError("No repository comparison configured under 'git.repositories'")

    git = GitSettings(
        username=str(_require(git_raw, "username", "git")),
        repository_url_prefix=str(_require(git_raw, "repository_url_prefix", "git")),
        clone_dir=str(_require(git_raw, "clone_dir", "git")),
        repositories=repositories,
        pat=git_raw.get("pat") or os.environ.get(ENV_GIT_PAT),
    )
    try:
        open_status_id = int(redmine_raw.get("open_status_id", DEFAULT_OPEN_STATUS_ID))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid redmine.open_status_id: {exc}") from exc
    redmine = RedmineSettings(
        server_url=str(_require(redmine_raw, "server_url", "redmine")),
        api_key=redmine_raw.get("api_key") or os.environ.get(ENV_REDMINE_API_KEY),
        open_status_id=open_status_id,
        planned_feature_subjects=_as_list(redmine_raw.get("planned_feature_subjects")),
    )
    report = ReportSettings(
        comparison_note_path=str(report_raw.get("comparison_note_path") or DEFAULT_NOTE_PATH),
        existing_report_path=report_raw.get("existing_report_path"),
        planned_tasks_path=report_raw.get("planned_tasks_path"),
        unplanned_tasks_path=report_raw.get("unplanned_tasks_path"),
    )
    log_level = str(data.get("log_level") or DEFAULT_LOG_LEVEL).upper()
    if not is_log_level(log_level):
        raise ConfigError(f"Invalid log_level: {data.get('log_level')!r}")
    return AppSettings(
        git=git,
        redmine=redmine,
        report=report,
        timezone=str(data.get("timezone") or DEFAULT_TIMEZONE),
        log_level=log_level,
    )


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> AppSettings:
    yaml_path = Path(path)
    if not yaml_path.exists():
        raise ConfigError(f"Configuration file not found: {yaml_path}")
    try:
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {yaml_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{yaml_path} must contain a mapping at top level")
    return parse_settings(data)
