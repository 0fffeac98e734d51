"""Command-line entry point.

Usage:
  python -m feature_gap --config comparator.yaml
  python -m feature_gap --config comparator.yaml --existing previous_note.md --output note.md
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from collections.abc import Sequence

from feature_gap.comparator import Comparator
from feature_gap.core.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_LEVEL,
    AppSettings,
    is_log_level,
    load_settings,
)
from feature_gap.core.errors import ComparatorError
from feature_gap.core.redmine_client import RedmineAPI
from feature_gap.repository.sync import Credentials

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feature-gap",
        description="Report tracker features merged into one branch group but missing from another.",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML settings file")
    parser.add_argument("--output", help="Comparison note path (overrides report.comparison_note_path)")
    parser.add_argument("--existing", help="Previous report to skip already reported features")
    parser.add_argument("--log-level", help="Logging level (overrides log_level setting)")
    return parser


def ask_password(username: str) -> str:
    print("--------------------------------")
    print("Please enter your credentials:")
    print(f"Username: {username}")
    password = getpass.getpass("Password: ")
    print("--------------------------------")
    return password


def resolve_credentials(settings: AppSettings) -> Credentials:
    password = settings.git.pat or ask_password(settings.git.username)
    return Credentials(username=settings.git.username, password=password)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level and not is_log_level(args.log_level):
        logging.basicConfig(level=DEFAULT_LOG_LEVEL, format=LOG_FORMAT)
        logger.error("Invalid log level: %s", args.log_level)
        return 1
    logging.basicConfig(level=(args.log_level or DEFAULT_LOG_LEVEL).upper(), format=LOG_FORMAT)
    try:
        settings = load_settings(args.config)
    except ComparatorError as exc:
        logger.error("%s", exc)
        return 1
    if not args.log_level:
        logging.getLogger().setLevel(settings.log_level)
    if args.output:
        settings.report.comparison_note_path = args.output
    if args.existing:
        settings.report.existing_report_path = args.existing

    api = RedmineAPI(settings.redmine.server_url, settings.redmine.api_key)
    comparator = Comparator(settings, api, credentials=resolve_credentials(settings))
    try:
        comparator.run()
    except ComparatorError:
        # Already logged by the comparator
        return 1
    except Exception:
        logger.critical("Critical app failure", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
