"""Read a previously produced report into ``{repository: [already reported fragments]}``.

A repository section starts at a line (or spreadsheet cell) containing the
header marker; the non-blank lines that follow, up to the next marker, are the
fragments already reported for that repository. The two section labels of the
note format are not fragments.

A task sheet (first row equal to the task sheet columns) is read row by row:
each row becomes one feature line under its repository.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from feature_gap.core.config import (
    FEATURE_LINE_PREFIX,
    MISSING_SECTION_LABEL,
    NOTE_ENCODING,
    REPOSITORY_HEADER_MARKER,
    SPREADSHEET_SUFFIXES,
    TASK_SHEET_COLUMNS,
    UNKNOWN_SECTION_LABEL,
)
from feature_gap.core.errors import ReportError

logger = logging.getLogger(__name__)

_SECTION_LABELS = frozenset({MISSING_SECTION_LABEL, UNKNOWN_SECTION_LABEL})


def parse_report_lines(lines: Iterable[str]) -> dict[str, list[str]]:
    sections: dict[str, list[str]] = {}
    current: list[str] | None = None
    for line in lines:
        text = line.rstrip("\r\n")
        if REPOSITORY_HEADER_MARKER in text:
            name = text.split(REPOSITORY_HEADER_MARKER, 1)[1].strip().lower()
            current = sections.setdefault(name, [])
            continue
        if current is None or not text.strip() or text.strip() in _SECTION_LABELS:
            continue
        current.append(text)
    return sections


def _cell_text(cell) -> str:
    if cell is None or pd.isna(cell):
        return ""
    return str(cell)


def _is_task_sheet(df: pd.DataFrame) -> bool:
    if df.empty or df.shape[1] < len(TASK_SHEET_COLUMNS):
        return False
    header = [_cell_text(cell).strip().lower() for cell in df.iloc[0, : len(TASK_SHEET_COLUMNS)]]
    return header == list(TASK_SHEET_COLUMNS)


def _task_sheet_lines(df: pd.DataFrame) -> list[str]:
    """Turn task sheet rows back into note-style header and feature lines."""
    lines: list[str] = []
    for row in df.iloc[1:, : len(TASK_SHEET_COLUMNS)].itertuples(index=False):
        values = dict(zip(TASK_SHEET_COLUMNS, (_cell_text(cell).strip() for cell in row)))
        if not values["repository"] or not values["id"]:
            continue
        lines.append(f"{REPOSITORY_HEADER_MARKER}{values['repository']}")
        lines.append(f"{FEATURE_LINE_PREFIX}{values['tracker']} #{values['id']}: {values['subject']}")
    return lines


def _spreadsheet_lines(path: Path) -> list[str]:
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, encoding=NOTE_ENCODING)
    else:
        df = pd.read_excel(path, header=None, dtype=str)
    if _is_task_sheet(df):
        return _task_sheet_lines(df)
    cells: list[str] = []
    for row in df.itertuples(index=False):
        for cell in row:
            text = _cell_text(cell)
            if text.strip():
                cells.append(text)
    return cells


def load_existing_report(path: str | Path) -> dict[str, list[str]]:
    """Load the prior report at ``path``; a missing file counts as an empty report."""
    report_path = Path(path)
    if not report_path.exists():
        logger.warning("Existing report %s not found, nothing will be filtered.", report_path)
        return {}
    try:
        if report_path.suffix.lower() in SPREADSHEET_SUFFIXES:
            lines = _spreadsheet_lines(report_path)
        else:
            lines = report_path.read_text(encoding=NOTE_ENCODING).splitlines()
    except (OSError, ValueError) as exc:
        raise ReportError(f"Could not read existing report {report_path}: {exc}") from exc
    sections = parse_report_lines(lines)
    logger.info(
        "Loaded existing report %s: %d repositories, %d entries.",
        report_path,
        len(sections),
        sum(len(v) for v in sections.values()),
    )
    return sections
