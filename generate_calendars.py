#!/usr/bin/env python3
"""
Club Match Calendar Generator

Scrapes the federation and municipal league pages for every configured
club team and writes one ICS calendar per team, category and competition.

Usage:
    python generate_calendars.py                      # uses calendars.json
    python generate_calendars.py --config other.json --output-dir public
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from club_calendars.config import load_config
from club_calendars.runner import generate_calendars


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
    logger = logging.getLogger("generate_calendars")

    config = load_config(args.config)
    if args.output_dir:
        config = replace(config, output_dir=Path(args.output_dir))

    report = generate_calendars(config)

    if report.errors:
        logger.warning("Errors encountered: %d", len(report.errors))
        for err in report.errors:
            logger.warning("  - %s", err)
        return 1

    logger.info("Done: all calendars generated successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
