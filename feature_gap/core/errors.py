"""Exception hierarchy for the comparator run."""

from __future__ import annotations


class ComparatorError(Exception):
    """Base class for every error raised by the comparator."""


class ConfigError(ComparatorError):
    """Configuration file missing, unreadable, or incomplete."""


class SyncError(ComparatorError):
    """A repository could not be cloned or brought up to date with its remote."""


class TrackerError(ComparatorError):
    """The issue tracker answered with an error or could not be reached."""


class ReportError(ComparatorError):
    """The comparison note or a task sheet could not be written."""
