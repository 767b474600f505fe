"""ICS calendar generation from team calendars."""

from __future__ import annotations

import hashlib
import os
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path

from icalendar import Calendar, Event

from club_calendars import AllDayEvent, CalendarEvent, TeamCalendar, TimedEvent
from club_calendars.config import DEFAULT_CLUB, ClubConfig
from club_calendars.teams import slug_for


def create_team_calendar(team_calendar: TeamCalendar, club: ClubConfig = DEFAULT_CLUB) -> Calendar:
    """Create an ICS calendar for one club team."""
    identity = team_calendar.identity
    cal = Calendar()
    cal.add("prodid", club.prodid)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add(
        "x-wr-calname",
        f"{identity.canonical_name} - {team_calendar.category} ({team_calendar.competition.value})",
    )
    cal.add("x-wr-timezone", club.timezone)
    # Refresh interval hint for calendar clients (4 hours)
    cal.add("x-published-ttl", "PT4H")

    seen_uids: set[str] = set()
    for event in team_calendar.events:
        uid = _event_uid(team_calendar, event)
        n = 2
        while uid in seen_uids:
            uid = f"{uid.split('@')[0]}-{n}@club-calendars"
            n += 1
        seen_uids.add(uid)
        cal.add_component(_create_event(event, uid, club))

    timed_years = [
        e.instant_utc.astimezone(club.tz).year for e in team_calendar.events if isinstance(e, TimedEvent)
    ]
    if timed_years:
        cal.add_missing_timezones(
            first_date=date(min(timed_years), 1, 1),
            last_date=date(max(timed_years) + 1, 1, 1),
        )
    return cal


def serialize(team_calendar: TeamCalendar, club: ClubConfig = DEFAULT_CLUB) -> bytes:
    """Render a team calendar as ICS bytes. Same input, same bytes."""
    return create_team_calendar(team_calendar, club).to_ical()


def _create_event(event: CalendarEvent, uid: str, club: ClubConfig) -> Event:
    """Create a VEVENT. Text escaping is left to icalendar at to_ical() time."""
    vevent = Event()
    vevent.add("uid", uid)
    vevent.add("summary", event.summary)

    if isinstance(event, TimedEvent):
        # Wall clock is derived from the instant now, not stored, so DST is
        # always whatever the tz database says for that day.
        start = event.instant_utc.astimezone(club.tz)
        end = (event.instant_utc + club.match_duration).astimezone(club.tz)
        vevent.add("dtstamp", event.instant_utc.astimezone(timezone.utc))
        vevent.add("dtstart", start)
        vevent.add("dtend", end)
    else:
        vevent.add("dtstamp", datetime.combine(event.start_date, time(0), tzinfo=timezone.utc))
        vevent.add("dtstart", event.start_date)
        vevent.add("dtend", event.end_date + timedelta(days=1))

    if event.location:
        vevent.add("location", event.location)
    if event.description:
        vevent.add("description", event.description)
    return vevent


def _event_uid(team_calendar: TeamCalendar, event: CalendarEvent) -> str:
    """Stable UID: survives result/notes updates, changes when the slot moves."""
    if isinstance(event, AllDayEvent):
        start = event.start_date.isoformat()
    else:
        start = event.instant_utc.isoformat()
    key = "|".join((
        team_calendar.competition.value,
        slug_for(team_calendar.category),
        team_calendar.identity.slug_key,
        start,
        event.summary,
    ))
    return f"{hashlib.sha1(key.encode('utf-8')).hexdigest()[:20]}@club-calendars"


def ics_filename(prefix: str, category: str, slug_key: str) -> str:
    """Deterministic artifact name, e.g. 'federado_cadete_las_flores_morado.ics'."""
    parts = [p for p in (prefix, slug_for(category), slug_key) if p]
    return "_".join(parts) + ".ics"


def calendar_filename(team_calendar: TeamCalendar, club: ClubConfig = DEFAULT_CLUB) -> str:
    return ics_filename(
        club.prefix_for(team_calendar.competition),
        team_calendar.category,
        team_calendar.identity.slug_key,
    )


def write_calendar(path: Path, ics_data: bytes) -> None:
    """Overwrite ``path`` with ``ics_data``; readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_bytes(ics_data)
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def validate_ics(data: bytes) -> bool:
    """Basic validation that ICS data is well-formed."""
    text = data.decode("utf-8", errors="replace")
    return text.startswith("BEGIN:VCALENDAR") and "END:VCALENDAR" in text
