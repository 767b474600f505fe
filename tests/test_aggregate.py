"""Tests for per-team grouping and ordering."""

from __future__ import annotations

import random
from datetime import date

from club_calendars import AllDayEvent, Competition, RawMatchRecord, RoundWindow, TimedEvent
from club_calendars.aggregate import aggregate, build_calendars
from club_calendars.teams import resolve


def record(date_text: str, time_text: str | None, home: str, away: str, **extra) -> RawMatchRecord:
    return RawMatchRecord(
        date_text=date_text,
        time_text=time_text,
        home_text=home,
        away_text=away,
        competition=Competition.FEDERATED,
        **extra,
    )


RECORDS = [
    record("22/03/2025", "10:00", "LAS FLORES MORADO", "C.V. NORTE"),
    record("15/03/2025", "18:30", "C.D. LAS FLORES SEVILLA MORADO", "CLUB RIVAL"),
    record("15/03/2025", None, "AMATE", "LAS FLORES MORADO"),
    record("08/03/2025", "12:00", "SAN JOSE", "CD LAS FLORES AMARILLO"),
    record("01/03/2025", "12:00", "SAN JOSE", "AMATE"),
    record("sin fecha", None, "LAS FLORES MORADO", "SAN JOSE"),
]


class TestBuildCalendars:
    def test_one_calendar_per_club_team(self) -> None:
        calendars = build_calendars(RECORDS, Competition.FEDERATED, "CADETE")
        assert [c.identity.slug_key for c in calendars] == ["las_flores_amarillo", "las_flores_morado"]
        assert all(c.category == "CADETE" for c in calendars)
        assert all(c.competition is Competition.FEDERATED for c in calendars)

    def test_matches_without_club_team_are_dropped(self) -> None:
        calendars = build_calendars(RECORDS, Competition.FEDERATED, "CADETE")
        summaries = [e.summary for c in calendars for e in c.events]
        assert not any("SAN JOSE vs AMATE" in s for s in summaries)

    def test_unparseable_rows_are_dropped(self) -> None:
        calendars = build_calendars(RECORDS, Competition.FEDERATED, "CADETE")
        morado = calendars[1]
        assert len(morado.events) == 3

    def test_all_day_before_timed_then_chronological(self) -> None:
        morado = build_calendars(RECORDS, Competition.FEDERATED, "CADETE")[1]
        kinds = [type(e) for e in morado.events]
        assert kinds == [AllDayEvent, TimedEvent, TimedEvent]
        timed = [e.instant_utc for e in morado.events if isinstance(e, TimedEvent)]
        assert timed == sorted(timed)

    def test_order_independent_of_input_order(self) -> None:
        expected = build_calendars(RECORDS, Competition.FEDERATED, "CADETE")
        shuffled = list(RECORDS)
        for seed in range(5):
            random.Random(seed).shuffle(shuffled)
            assert build_calendars(shuffled, Competition.FEDERATED, "CADETE") == expected

    def test_duplicate_rows_collapse(self) -> None:
        calendars = build_calendars(RECORDS[:1] * 3, Competition.FEDERATED, "CADETE")
        assert len(calendars[0].events) == 1

    def test_club_derby_lands_in_both_calendars(self) -> None:
        derby = record("25/10/2025", "12:15", "LAS FLORES AMARILLO", "LAS FLORES MORADO")
        calendars = build_calendars([derby], Competition.FEDERATED, "CADETE")
        assert [c.identity.slug_key for c in calendars] == ["las_flores_amarillo", "las_flores_morado"]
        assert calendars[0].events == calendars[1].events

    def test_round_window_rows(self) -> None:
        window = RoundWindow(date(2025, 11, 21), date(2025, 11, 23))
        rows = [record("Por determinar", None, "LAS FLORES", "NORTE", round_window=window)]
        [calendar] = build_calendars(rows, Competition.FEDERATED, "SENIOR")
        assert calendar.identity.canonical_name == "LAS FLORES"
        assert calendar.events[0].start_date == window.start


class TestAggregate:
    def test_opponent_identities_get_no_bucket(self) -> None:
        event = AllDayEvent(date(2025, 1, 1), date(2025, 1, 1), "X vs Y (FEDERATED)")
        assert aggregate([(event, [resolve("X"), resolve("Y")])], Competition.FEDERATED, "SENIOR") == []

    def test_same_identity_twice_counts_once(self) -> None:
        event = AllDayEvent(date(2025, 1, 1), date(2025, 1, 1), "LAS FLORES vs LAS FLORES")
        identity = resolve("LAS FLORES")
        [calendar] = aggregate([(event, [identity, identity])], Competition.FEDERATED, "SENIOR")
        assert calendar.events == [event]
