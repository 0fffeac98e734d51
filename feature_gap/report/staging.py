"""Staged report writes.

Every report file is first written to a hidden sibling of its target. Targets
are only replaced (``os.replace``) once all files of a run have been staged,
so a failing write leaves the previous reports untouched.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from feature_gap.core.errors import ReportError

logger = logging.getLogger(__name__)

StagedFile = tuple[Path, Path]  # (staged sibling, target)


def staged_path(target: Path) -> Path:
    # Suffix kept last so pandas still picks the right writer engine
    return target.with_name(f".{target.stem}.tmp{target.suffix}")


def prepare(target: str | Path) -> StagedFile:
    target_path = Path(target)
    if target_path.is_dir():
        raise ReportError(f"Report target {target_path} is a directory")
    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ReportError(f"Could not create report directory {target_path.parent}: {exc}") from exc
    return staged_path(target_path), target_path


def discard(staged: Iterable[StagedFile]) -> None:
    for tmp, _ in staged:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:  # pragma: no cover
            logger.warning("Could not remove staged file %s", tmp, exc_info=True)


def commit(staged: list[StagedFile]) -> None:
    """Move each staged file over its target, in order."""
    for index, (tmp, target) in enumerate(staged):
        try:
            os.replace(tmp, target)
        except OSError as exc:
            discard(staged[index:])
            raise ReportError(f"Could not replace {target}: {exc}") from exc
