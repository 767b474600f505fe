"""Federation and municipal page scraping.

These are thin: fetch a page, pull the table cells out as text and hand them
over as RawMatchRecord / ClassificationRow values. All interpretation (dates,
names, colours) happens downstream.
"""

from __future__ import annotations

import requests
from bs4 import BeautifulSoup, Tag

from club_calendars import ClassificationRow, Competition, RawMatchRecord, RoundWindow
from club_calendars.cache import parse_classification_rows
from club_calendars.config import ClassificationSource, FederatedGroup, MunicipalTeam
from club_calendars.events import is_placeholder, parse_round_window
from club_calendars.teams import normalize_name

USER_AGENT = "ClubCalendarsBot/1.0 (+calendar feed generator)"
TIMEOUT = 30


def fetch_html(url: str, session: requests.Session | None = None, timeout: float = TIMEOUT) -> str:
    """GET a page and return its text. Raises requests.RequestException on failure."""
    getter = session.get if session is not None else requests.get
    response = getter(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    response.raise_for_status()
    return response.text


def _cell_texts(row: Tag) -> list[str]:
    return [td.get_text(" ", strip=True) for td in row.find_all("td")]


def _cell(cells: list[str], idx: int) -> str | None:
    if idx < len(cells) and cells[idx]:
        return cells[idx]
    return None


def _window_before(table: Tag) -> RoundWindow | None:
    """Round window from the closest heading printed before ``table``."""
    heading = table.find_previous(string=lambda s: parse_round_window(s) is not None)
    return parse_round_window(heading) if heading else None


def parse_federated_html(html: str) -> list[RawMatchRecord]:
    """Parse a federation group calendar page.

    Columns: date, time, home, away, result, venue. The page lists one table
    per round; rows that only carry a round window (no per-match date) get
    the window of the round they are listed under.
    """
    soup = BeautifulSoup(html, "html.parser")
    records: list[RawMatchRecord] = []

    for table in soup.find_all("table"):
        window = _window_before(table)
        for row in table.select("tbody tr") or table.find_all("tr"):
            cells = _cell_texts(row)
            if len(cells) < 4:
                # Round header rows inside the table start a new window.
                window = parse_round_window(row.get_text(" ")) or window
                continue
            home, away = cells[2], cells[3]
            if not home and not away:
                continue
            records.append(RawMatchRecord(
                date_text=cells[0],
                time_text=_cell(cells, 1),
                home_text=home,
                away_text=away,
                result_text=_cell(cells, 4),
                venue_text=_cell(cells, 5),
                competition=Competition.FEDERATED,
                round_window=window,
            ))
    return records


def parse_municipal_html(html: str, team_name: str) -> list[RawMatchRecord]:
    """Parse a municipal team listing, keeping only rows that involve ``team_name``.

    Each ``table.tt`` opens with two header rows. Columns: date, time, home,
    away, result, venue, match notes, result notes.
    """
    soup = BeautifulSoup(html, "html.parser")
    container = soup.find(id="tab1") or soup
    needle = normalize_name(team_name)
    records: list[RawMatchRecord] = []

    for table in container.select("table.tt"):
        for row in table.find_all("tr")[2:]:
            cells = _cell_texts(row)
            if len(cells) < 5:
                continue
            home, away = cells[2], cells[3]
            if needle not in normalize_name(home) and needle not in normalize_name(away):
                continue

            notes = []
            for label, idx in (("Obs. Encuentro", 6), ("Obs. Resultado", 7)):
                value = _cell(cells, idx)
                if not is_placeholder(value):
                    notes.append(f"{label}: {value}")

            records.append(RawMatchRecord(
                date_text=cells[0],
                time_text=_cell(cells, 1),
                home_text=home,
                away_text=away,
                result_text=_cell(cells, 4),
                venue_text=_cell(cells, 5),
                notes_text=" | ".join(notes) or None,
                competition=Competition.MUNICIPAL,
            ))
    return records


def parse_classification_html(html: str) -> list[ClassificationRow]:
    """Parse a standings table (``table.tt``, else the first table on the page)."""
    soup = BeautifulSoup(html, "html.parser")
    table = soup.select_one("table.tt") or soup.find("table")
    if table is None:
        return []
    return parse_classification_rows(_cell_texts(row) for row in table.find_all("tr"))


def fetch_federated(group: FederatedGroup, session: requests.Session | None = None) -> list[RawMatchRecord]:
    return parse_federated_html(fetch_html(group.url, session))


def fetch_municipal(team: MunicipalTeam, session: requests.Session | None = None) -> list[RawMatchRecord]:
    return parse_municipal_html(fetch_html(team.url, session), team.name)


def fetch_classification(
    source: ClassificationSource, session: requests.Session | None = None
) -> list[ClassificationRow]:
    return parse_classification_html(fetch_html(source.url, session))
