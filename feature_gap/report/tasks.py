"""Planned/unplanned task sheets: one row per missing feature, written with pandas.

The sheets can be passed back as the existing report of the next run; the
loader recognises the column header row.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from feature_gap.core.config import NOTE_ENCODING, TASK_SHEET_COLUMNS
from feature_gap.core.errors import ReportError
from feature_gap.core.models import Issue, MissingFeatureResult

from . import staging
from .note import sort_missing

logger = logging.getLogger(__name__)


def tasks_to_dataframe(issues_by_repo: dict[str, list[Issue]]) -> pd.DataFrame:
    rows = [
        {
            "repository": name,
            "tracker": issue.tracker_name,
            "id": issue.id,
            "subject": issue.subject,
            "status": issue.status.name,
        }
        for name, issues in issues_by_repo.items()
        for issue in sort_missing(issues)
    ]
    return pd.DataFrame(rows, columns=list(TASK_SHEET_COLUMNS))


def task_sheet_targets(
    results: MissingFeatureResult,
    *,
    planned_path: str | Path | None = None,
    unplanned_path: str | Path | None = None,
) -> list[tuple[str | Path, dict[str, list[Issue]]]]:
    targets: list[tuple[str | Path, dict[str, list[Issue]]]] = []
    if planned_path:
        targets.append((planned_path, {name: r.planned for name, r in results.items()}))
    if unplanned_path:
        targets.append((unplanned_path, {name: r.missing for name, r in results.items()}))
    return targets


def stage_task_sheet(path: str | Path, issues_by_repo: dict[str, list[Issue]]) -> staging.StagedFile:
    """Write a task sheet (CSV for ``.csv``, Excel otherwise) next to ``path``."""
    staged = staging.prepare(path)
    tmp, target = staged
    df = tasks_to_dataframe(issues_by_repo)
    try:
        if target.suffix.lower() == ".csv":
            df.to_csv(tmp, index=False, encoding=NOTE_ENCODING)
        else:
            df.to_excel(tmp, index=False)
    except (OSError, ValueError) as exc:
        staging.discard([staged])
        raise ReportError(f"Could not write task sheet {target}: {exc}") from exc
    logger.debug("Task sheet for %s staged (%d rows).", target, len(df))
    return staged


def write_task_sheet(path: str | Path, issues_by_repo: dict[str, list[Issue]]) -> Path:
    staged = stage_task_sheet(path, issues_by_repo)
    staging.commit([staged])
    logger.info("Task sheet written to %s.", staged[1])
    return staged[1]


def write_task_sheets(
    results: MissingFeatureResult,
    *,
    planned_path: str | Path | None = None,
    unplanned_path: str | Path | None = None,
) -> None:
    staged: list[staging.StagedFile] = []
    try:
        for path, issues_by_repo in task_sheet_targets(
            results, planned_path=planned_path, unplanned_path=unplanned_path
        ):
            staged.append(stage_task_sheet(path, issues_by_repo))
    except ReportError:
        staging.discard(staged)
        raise
    staging.commit(staged)
