"""Run the calendar and classification pipelines over every configured source.

Every network call and every file write is isolated: a failure is logged and
recorded, and the run carries on with the next source or team. Callers turn
the returned error list into an exit code.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import requests

from club_calendars import (
    ClassificationRow,
    Competition,
    Provenance,
    RawMatchRecord,
    TeamCalendar,
)
from club_calendars.aggregate import build_calendars, count_by_kind
from club_calendars.cache import (
    ClassificationCache,
    competition_key,
    fetch_or_fallback,
    write_status,
)
from club_calendars.calendar_gen import calendar_filename, serialize, validate_ics, write_calendar
from club_calendars.config import (
    ClassificationSource,
    ClubConfig,
    FederatedGroup,
    MunicipalTeam,
    RunConfig,
)
from club_calendars.scraper import fetch_classification, fetch_federated, fetch_municipal
from club_calendars.teams import resolve

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """What a run produced and what went wrong along the way."""

    written: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    provenance: dict[str, Provenance] = field(default_factory=dict)


class _Throttle:
    """Sleeps between consecutive upstream requests, not before the first."""

    def __init__(self, delay: float, sleep: Callable[[float], None]) -> None:
        self.delay = delay
        self.sleep = sleep
        self.calls = 0

    def __call__(self) -> None:
        if self.calls and self.delay > 0:
            self.sleep(self.delay)
        self.calls += 1


def write_team_calendars(
    calendars: Iterable[TeamCalendar],
    output_dir: Path,
    club: ClubConfig,
    report: RunReport,
) -> None:
    """Serialize and overwrite one .ics per calendar; a failed write only loses that file."""
    for calendar in calendars:
        path = output_dir / calendar_filename(calendar, club)
        try:
            ics_bytes = serialize(calendar, club)
            if not validate_ics(ics_bytes):
                raise ValueError("Generated ICS failed validation")
            write_calendar(path, ics_bytes)
        except (OSError, ValueError) as e:
            error_msg = f"Failed to write {path.name}: {e}"
            logger.error(error_msg)
            report.errors.append(error_msg)
            continue

        all_day, timed = count_by_kind(calendar)
        logger.info("Saved %s (%d timed, %d all-day)", path, timed, all_day)
        report.written.append(path)


def _collect(
    label: str,
    fetch: Callable[[], Sequence[RawMatchRecord]],
    throttle: _Throttle,
    report: RunReport,
) -> list[RawMatchRecord]:
    throttle()
    try:
        records = list(fetch())
    except Exception as e:
        error_msg = f"Failed to fetch {label}: {e}"
        logger.error(error_msg)
        report.errors.append(error_msg)
        return []
    logger.info("%s: %d row(s)", label, len(records))
    if not records:
        logger.warning("%s: no rows found (page structure may have changed)", label)
    return records


def _by_category(items: Iterable, key: Callable) -> dict[str, list]:
    grouped: dict[str, list] = {}
    for item in items:
        grouped.setdefault(key(item), []).append(item)
    return grouped


def generate_calendars(
    config: RunConfig,
    federated_fetch: Callable[[FederatedGroup], Sequence[RawMatchRecord]] | None = None,
    municipal_fetch: Callable[[MunicipalTeam], Sequence[RawMatchRecord]] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunReport:
    """Scrape every configured source and rewrite all team calendars."""
    report = RunReport()
    club = config.club
    throttle = _Throttle(config.request_delay, sleep)

    with requests.Session() as session:
        federated_fetch = federated_fetch or (lambda g: fetch_federated(g, session))
        municipal_fetch = municipal_fetch or (lambda t: fetch_municipal(t, session))

        for category, groups in _by_category(config.federated, lambda g: g.category).items():
            records: list[RawMatchRecord] = []
            for group in groups:
                label = f"federated {group.tournament}/{group.group}"
                records.extend(_collect(label, lambda: federated_fetch(group), throttle, report))
            calendars = build_calendars(records, Competition.FEDERATED, category, club)
            write_team_calendars(calendars, config.output_dir, club, report)

        for category, teams in _by_category(config.municipal, lambda t: t.category).items():
            records = []
            for team in teams:
                label = f"municipal {team.name} ({category})"
                records.extend(_collect(label, lambda: municipal_fetch(team), throttle, report))
            # Only listed teams get a file: a match against another club team
            # must not overwrite that team's own listing.
            listed = {resolve(t.name, club).slug_key for t in teams}
            calendars = [
                c for c in build_calendars(records, Competition.MUNICIPAL, category, club)
                if c.identity.slug_key in listed
            ]
            write_team_calendars(calendars, config.output_dir, club, report)

    logger.info("Generated %d calendar(s)", len(report.written))
    return report


def update_classifications(
    config: RunConfig,
    fetch: Callable[[ClassificationSource], Sequence[ClassificationRow]] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunReport:
    """Refresh every configured standings table, falling back to the cache."""
    report = RunReport()
    cache = ClassificationCache(config.classification_cache)
    throttle = _Throttle(config.request_delay, sleep)
    statuses: dict[str, tuple[Provenance, int]] = {}

    with requests.Session() as session:
        fetch = fetch or (lambda s: fetch_classification(s, session))

        for source in config.classifications:
            key = competition_key(source.competition, source.category, source.group)
            throttle()
            try:
                rows, provenance = fetch_or_fallback(key, lambda: fetch(source), cache)
            except OSError as e:
                # Live data was fine but the cache could not be written.
                error_msg = f"Failed to store classification {key}: {e}"
                logger.error(error_msg)
                report.errors.append(error_msg)
                rows, provenance = cache.get(key) or [], Provenance.NONE
                if rows:
                    provenance = Provenance.CACHED

            statuses[key] = (provenance, len(rows))
            report.provenance[key] = provenance
            if provenance is not Provenance.LIVE:
                report.errors.append(f"Classification {key} is {provenance.value}")

    try:
        write_status(config.classification_status, statuses)
    except OSError as e:
        error_msg = f"Failed to write {config.classification_status}: {e}"
        logger.error(error_msg)
        report.errors.append(error_msg)
    return report
