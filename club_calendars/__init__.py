"""Club Calendars: shared data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime


class Competition(enum.Enum):
    """Upstream competition a match record was scraped from."""

    FEDERATED = "FEDERATED"
    MUNICIPAL = "MUNICIPAL"


class VariantColor(enum.Enum):
    """Colour suffix the club uses to tell its teams apart."""

    NONE = "NONE"
    PURPLE = "PURPLE"
    YELLOW = "YELLOW"
    MAGENTA = "MAGENTA"
    SAND = "SAND"


class Provenance(enum.Enum):
    """Where a classification table came from."""

    LIVE = "LIVE"
    CACHED = "CACHED"
    NONE = "NONE"


@dataclass(frozen=True)
class RoundWindow:
    """Inclusive date span of a competition round."""

    start: date
    end: date


@dataclass(frozen=True)
class RawMatchRecord:
    """A single scraped match row, as text."""

    date_text: str
    home_text: str
    away_text: str
    competition: Competition
    time_text: str | None = None
    venue_text: str | None = None
    result_text: str | None = None
    notes_text: str | None = None
    round_window: RoundWindow | None = None


@dataclass(frozen=True)
class TeamIdentity:
    """Canonical identity of a team name seen in scraped data."""

    canonical_name: str
    color: VariantColor
    is_youth: bool
    slug_key: str
    is_club: bool = True


@dataclass(frozen=True)
class TimedEvent:
    """Event anchored to an absolute instant (stored in UTC)."""

    instant_utc: datetime
    summary: str
    location: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class AllDayEvent:
    """Event spanning whole civil days; ``end_date`` is inclusive."""

    start_date: date
    end_date: date
    summary: str
    location: str | None = None
    description: str | None = None


CalendarEvent = TimedEvent | AllDayEvent


@dataclass
class TeamCalendar:
    """All events of one club team within one competition and category."""

    identity: TeamIdentity
    competition: Competition
    category: str
    events: list[CalendarEvent] = field(default_factory=list)


@dataclass(frozen=True)
class ClassificationRow:
    """One line of a standings table."""

    team: str
    played: int
    won: int
    lost: int
    points_for: int
    points_against: int
    points: int
    rank: int | None = None
