"""Comparator: orchestrates sync, mining, resolution, classification, filtering and rendering."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from feature_gap.analytics.features import build_feature_set, missing_features
from feature_gap.analytics.planning import classify_unplanned
from feature_gap.core.config import COMPARE_FROM_FOLDER, COMPARE_TO_FOLDER, AppSettings
from feature_gap.core.context import RunContext
from feature_gap.core.errors import ComparatorError
from feature_gap.core.models import MissingFeatureResult, RepositoryComparison, RepositoryResult
from feature_gap.core.redmine_client import RedmineAPI
from feature_gap.core.resolver import IssueResolver
from feature_gap.repository.sync import Credentials, sync_branch
from feature_gap.report import staging
from feature_gap.report.incremental import apply_existing_report
from feature_gap.report.note import stage_note
from feature_gap.report.tasks import stage_task_sheet, task_sheet_targets

logger = logging.getLogger(__name__)

Synchronizer = Callable[[str, str, Path, str, Credentials | None], Any]


def repository_key(name: str, group: str) -> str:
    return f"{name}/{group}"


class Comparator:
    def __init__(
        self,
        settings: AppSettings,
        api: RedmineAPI,
        *,
        credentials: Credentials | None = None,
        synchronizer: Synchronizer = sync_branch,
        context: RunContext | None = None,
    ):
        self.settings = settings
        self.credentials = credentials
        self.synchronizer = synchronizer
        self.context = context or RunContext()
        self.resolver = IssueResolver(api, self.context)

    # ------------------ Sync ------------------
    def sync_repositories(self) -> None:
        git = self.settings.git
        for comparison in git.repositories:
            url = git.repository_url(comparison.name)
            for group, branches in (
                (COMPARE_FROM_FOLDER, comparison.compare_from),
                (COMPARE_TO_FOLDER, comparison.compare_to),
            ):
                local_path = Path(git.clone_dir) / comparison.name / group
                repo = None
                for branch in branches:
                    repo = self.synchronizer(comparison.name, branch, local_path, url, self.credentials)
                if repo is not None:
                    self.context.add_repository(repository_key(comparison.name, group), repo)

    # ------------------ Compare ------------------
    def compare_repository(self, comparison: RepositoryComparison) -> RepositoryResult:
        name = comparison.name
        logger.info(
            "Start comparing features for git repo '%s', from branches %s to branches %s:",
            name,
            comparison.compare_from,
            comparison.compare_to,
        )
        from_set = build_feature_set(
            self.context.get_repository(repository_key(name, COMPARE_FROM_FOLDER)),
            comparison.compare_from,
            comparison.start_sha,
            self.resolver,
            repository_name=name,
            group=COMPARE_FROM_FOLDER,
            tz_name=self.settings.timezone,
        )
        to_set = build_feature_set(
            self.context.get_repository(repository_key(name, COMPARE_TO_FOLDER)),
            comparison.compare_to,
            comparison.start_sha,
            self.resolver,
            repository_name=name,
            group=COMPARE_TO_FOLDER,
            tz_name=self.settings.timezone,
        )
        missing = missing_features(from_set, to_set)
        split = classify_unplanned(
            missing,
            self.settings.redmine.planned_feature_subjects,
            self.resolver,
            open_status_id=self.settings.redmine.open_status_id,
            repository_name=name,
        )
        logger.info(
            "End comparing features for git repo '%s': %d missing (%d planned), %d unknown.",
            name,
            len(missing),
            len(split.planned),
            len(from_set.unknown),
        )
        return RepositoryResult(missing=split.unplanned, unknown=list(from_set.unknown), planned=split.planned)

    def compare_all(self) -> MissingFeatureResult:
        return {c.name: self.compare_repository(c) for c in self.settings.git.repositories}

    # ------------------ Run ------------------
    def write_reports(self, results: MissingFeatureResult) -> None:
        """Stage the task sheets and the note, then replace the targets.

        A write failure while staging leaves every previous report file as it was.
        """
        report = self.settings.report
        staged: list[staging.StagedFile] = []
        try:
            for path, issues_by_repo in task_sheet_targets(
                results,
                planned_path=report.planned_tasks_path,
                unplanned_path=report.unplanned_tasks_path,
            ):
                staged.append(stage_task_sheet(path, issues_by_repo))
            staged.append(stage_note(report.comparison_note_path, results))
        except ComparatorError:
            staging.discard(staged)
            raise
        staging.commit(staged)
        logger.info(
            "Comparison note written to %s (%d repositories).", report.comparison_note_path, len(results)
        )

    def run(self) -> MissingFeatureResult:
        """Run one full comparison and write the note.

        Nothing is written before every repository has been compared and every
        report file has been staged, so a failure leaves the previous note untouched.
        """
        report = self.settings.report
        try:
            self.sync_repositories()
            results = self.compare_all()
            results = apply_existing_report(results, report.existing_report_path)
            self.write_reports(results)
            return results
        except ComparatorError as exc:
            logger.error("Comparison aborted: %s", exc)
            raise
        finally:
            self.context.close()
