#!/usr/bin/env python3
"""
Club Classification Updater

Fetches the live standings table of every configured competition group and
keeps the last good copy in the classification cache. Tables that could not
be fetched are served from the cache and flagged as CACHED (or NONE) in the
status file read by the site.

Usage:
    python update_classifications.py
    python update_classifications.py --config other.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from club_calendars.config import load_config
from club_calendars.runner import update_classifications


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--config", default="calendars.json", help="JSON config file")
    parser.add_argument("--output-dir", help="override output_dir from the config")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING, ERROR")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger = logging.getLogger("update_classifications")

    config = load_config(args.config)
    if args.output_dir:
        config = replace(config, output_dir=Path(args.output_dir))

    report = update_classifications(config)
    for key, provenance in sorted(report.provenance.items()):
        logger.info("  %s: %s", key, provenance.value)

    if report.errors:
        logger.warning("Classification update completed with %d issue(s)", len(report.errors))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
