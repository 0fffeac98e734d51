"""Drop features that a previous report already listed, so each run only reports new ones."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from feature_gap.core.models import MissingFeatureResult, RepositoryResult

from .existing import load_existing_report

logger = logging.getLogger(__name__)


def already_reported(text: str, fragments: Sequence[str]) -> bool:
    return any(text in fragment for fragment in fragments)


def filter_already_reported(
    results: MissingFeatureResult,
    reported: Mapping[str, Sequence[str]],
) -> MissingFeatureResult:
    """Return a copy of ``results`` without entries found in ``reported``.

    ``reported`` is keyed by lower-cased repository name. An issue is dropped
    when its id appears in a fragment, an unknown summary when it is contained
    in one. Repositories absent from ``reported`` pass through unchanged.
    """
    out: MissingFeatureResult = {}
    for name, result in results.items():
        fragments = reported.get(name.lower(), ())
        missing = [issue for issue in result.missing if not already_reported(str(issue.id), fragments)]
        unknown = [text for text in result.unknown if not already_reported(text, fragments)]
        dropped = len(result.missing) - len(missing) + len(result.unknown) - len(unknown)
        if dropped:
            logger.info("Repository '%s': %d entries already reported, skipped.", name, dropped)
        out[name] = RepositoryResult(missing=missing, unknown=unknown, planned=list(result.planned))
    return out


def apply_existing_report(results: MissingFeatureResult, path: str | Path | None) -> MissingFeatureResult:
    if not path:
        return results
    return filter_already_reported(results, load_existing_report(path))
