"""Group synthesized events into one calendar per club team."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from club_calendars import (
    AllDayEvent,
    CalendarEvent,
    Competition,
    RawMatchRecord,
    TeamCalendar,
    TeamIdentity,
    TimedEvent,
)
from club_calendars.config import DEFAULT_CLUB, ClubConfig
from club_calendars.events import synthesize
from club_calendars.teams import resolve

logger = logging.getLogger(__name__)


def event_sort_key(event: CalendarEvent) -> tuple:
    """All-day events first, then chronological, then by content."""
    text = (event.summary, event.location or "", event.description or "")
    if isinstance(event, AllDayEvent):
        return (0, event.start_date.isoformat(), event.end_date.isoformat()) + text
    return (1, event.instant_utc.isoformat(), "") + text


def aggregate(
    pairs: Iterable[tuple[CalendarEvent, Iterable[TeamIdentity]]],
    competition: Competition,
    category: str,
) -> list[TeamCalendar]:
    """Bucket each event under every club identity it involves."""
    buckets: dict[str, tuple[TeamIdentity, set[CalendarEvent]]] = {}
    for event, identities in pairs:
        for identity in identities:
            if not identity.is_club:
                continue
            _, events = buckets.setdefault(identity.slug_key, (identity, set()))
            events.add(event)

    return [
        TeamCalendar(
            identity=identity,
            competition=competition,
            category=category,
            events=sorted(events, key=event_sort_key),
        )
        for _, (identity, events) in sorted(buckets.items())
    ]


def build_calendars(
    records: Iterable[RawMatchRecord],
    competition: Competition,
    category: str,
    club: ClubConfig = DEFAULT_CLUB,
) -> list[TeamCalendar]:
    """Resolve, synthesize and aggregate one batch of scraped rows."""
    pairs: list[tuple[CalendarEvent, tuple[TeamIdentity, TeamIdentity]]] = []
    skipped = 0
    for record in records:
        home, away = resolve(record.home_text, club), resolve(record.away_text, club)
        if not (home.is_club or away.is_club):
            continue
        event = synthesize(record, home, away, club)
        if event is None:
            skipped += 1
            continue
        pairs.append((event, (home, away)))

    if skipped:
        logger.info("Dropped %d unparseable %s %s row(s)", skipped, competition.value, category)
    return aggregate(pairs, competition, category)


def count_by_kind(calendar: TeamCalendar) -> tuple[int, int]:
    """(all-day, timed) event counts, for progress logging."""
    timed = sum(1 for e in calendar.events if isinstance(e, TimedEvent))
    return len(calendar.events) - timed, timed
