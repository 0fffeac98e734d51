"""Comparison note rendering.

The note is re-read by the next run (see ``report.existing``), so its line
format must stay stable: a header line starting with ``## ``, and every feature
line starting with `` - ``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from feature_gap.core.config import (
    FEATURE_LINE_PREFIX,
    MISSING_SECTION_LABEL,
    NOTE_ENCODING,
    REPOSITORY_HEADER_MARKER,
    UNKNOWN_SECTION_LABEL,
)
from feature_gap.core.errors import ReportError
from feature_gap.core.mappers import issue_line
from feature_gap.core.models import Issue, MissingFeatureResult

from . import staging

logger = logging.getLogger(__name__)


def capitalize_first(name: str) -> str:
    return name[:1].upper() + name[1:]


def sort_missing(issues: list[Issue]) -> list[Issue]:
    # Tracker ascending, newest (highest) id first within a tracker
    return sorted(issues, key=lambda issue: (issue.tracker_name, -issue.id))


def render_note(results: MissingFeatureResult) -> str:
    lines: list[str] = []
    for name, result in results.items():
        lines.append(f"{REPOSITORY_HEADER_MARKER}{capitalize_first(name)}")
        lines.append(MISSING_SECTION_LABEL)
        lines.extend(issue_line(issue) for issue in sort_missing(result.missing))
        lines.append(UNKNOWN_SECTION_LABEL)
        lines.extend(f"{FEATURE_LINE_PREFIX}{text}" for text in result.unknown)
        lines.append("")
    return "".join(f"{line}\n" for line in lines)


def stage_note(path: str | Path, results: MissingFeatureResult) -> staging.StagedFile:
    """Write the rendered note (UTF-8 with BOM) next to ``path`` without touching ``path``."""
    staged = staging.prepare(path)
    payload = render_note(results).encode(NOTE_ENCODING)
    try:
        staged[0].write_bytes(payload)
    except OSError as exc:
        staging.discard([staged])
        raise ReportError(f"Could not write comparison note {staged[1]}: {exc}") from exc
    return staged


def write_note(path: str | Path, results: MissingFeatureResult) -> Path:
    """Replace the file at ``path`` with the rendered note."""
    staged = stage_note(path, results)
    staging.commit([staged])
    logger.info("Comparison note written to %s (%d repositories).", staged[1], len(results))
    return staged[1]
