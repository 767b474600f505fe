"""Turn scraped match rows into calendar events."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timezone

from club_calendars import (
    AllDayEvent,
    CalendarEvent,
    RawMatchRecord,
    RoundWindow,
    TeamIdentity,
    TimedEvent,
)
from club_calendars.config import DEFAULT_CLUB, ClubConfig

logger = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = " | "
PLACEHOLDERS = frozenset({"", "-", "--", "---", "POR CONFIRMAR", "PENDIENTE", "N/A"})

_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})\b")
_WINDOW_RE = re.compile(r"(\d{1,2}/\d{1,2}/\d{2,4})[^\d/]{1,10}(\d{1,2}/\d{1,2}/\d{2,4})")
_TIME_RE = re.compile(r"(\d{1,2})\s*[:.hH]\s*(\d{2})")


def parse_date(text: str | None) -> date | None:
    """Parse the first dd/mm/yyyy (or dd/mm/yy) date found in ``text``."""
    m = _DATE_RE.search(text or "")
    if not m:
        return None
    day, month, year = (int(g) for g in m.groups())
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_time(text: str | None) -> time | None:
    """Parse an HH:MM time. Out-of-range values count as no time at all."""
    m = _TIME_RE.search(text or "")
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def parse_round_window(text: str | None) -> RoundWindow | None:
    """Find a 'dd/mm/yy - dd/mm/yy' pair, as printed in round headers.

    Only two dates printed close together count; dates of separate match
    rows are further apart than that.
    """
    for m in _WINDOW_RE.finditer(text or ""):
        start, end = parse_date(m.group(1)), parse_date(m.group(2))
        if start is None or end is None:
            continue
        if end < start:
            start, end = end, start
        return RoundWindow(start=start, end=end)
    return None


def is_placeholder(value: str | None) -> bool:
    return value is None or value.strip().upper() in PLACEHOLDERS


def local_to_utc(day: date, wall_clock: time, club: ClubConfig = DEFAULT_CLUB) -> datetime:
    """Interpret a wall-clock time in the club's timezone and return the UTC instant.

    Ambiguous times (autumn fall-back) resolve to the first occurrence. Times
    inside the spring-forward gap use the offset in force before the gap, as
    RFC 5545 prescribes for non-existent local times.
    """
    local = datetime.combine(day, wall_clock, tzinfo=club.tz)
    instant = local.astimezone(timezone.utc)
    if instant.astimezone(club.tz).replace(tzinfo=None) != local.replace(tzinfo=None):
        logger.warning(
            "%s %s does not exist in %s (DST gap); using %s",
            day.isoformat(), wall_clock.strftime("%H:%M"), club.timezone,
            instant.astimezone(club.tz).strftime("%H:%M %Z"),
        )
    return instant


def build_summary(record: RawMatchRecord, home: TeamIdentity, away: TeamIdentity) -> str:
    return f"{home.canonical_name} vs {away.canonical_name} ({record.competition.value})"


def build_description(record: RawMatchRecord) -> str | None:
    parts = []
    if not is_placeholder(record.result_text):
        parts.append(f"Resultado: {record.result_text.strip()}")
    if not is_placeholder(record.notes_text):
        parts.append(record.notes_text.strip())
    return DESCRIPTION_SEPARATOR.join(parts) or None


def build_location(record: RawMatchRecord) -> str | None:
    if is_placeholder(record.venue_text):
        return None
    return record.venue_text.strip()


def _all_day_span(match_date: date | None, window: RoundWindow | None) -> tuple[date, date] | None:
    if window and (match_date is None or window.start <= match_date <= window.end):
        return window.start, window.end
    if match_date:
        return match_date, match_date
    return None


def synthesize(
    record: RawMatchRecord,
    home: TeamIdentity,
    away: TeamIdentity,
    club: ClubConfig = DEFAULT_CLUB,
) -> CalendarEvent | None:
    """Build the calendar event for one match, or None when the row has no usable date."""
    match_date = parse_date(record.date_text)
    match_time = parse_time(record.time_text)
    summary = build_summary(record, home, away)
    location = build_location(record)
    description = build_description(record)

    if match_date and match_time:
        return TimedEvent(
            instant_utc=local_to_utc(match_date, match_time, club),
            summary=summary,
            location=location,
            description=description,
        )

    span = _all_day_span(match_date, record.round_window)
    if span is None:
        logger.warning("Skipping %s: unparseable date %r", summary, record.date_text)
        return None

    return AllDayEvent(
        start_date=span[0],
        end_date=span[1],
        summary=summary,
        location=location,
        description=description,
    )
