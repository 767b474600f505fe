"""Classification caching for fallback on scrape failures.

The cache is one JSON document mapping a competition key to the last table
that was fetched live and passed validation. It is only ever written after a
good fetch; a failed fetch leaves the file exactly as it was.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict
from pathlib import Path

from club_calendars import ClassificationRow, Competition, Provenance, TeamIdentity
from club_calendars.config import DEFAULT_CLUB, ClubConfig
from club_calendars.teams import resolve, slug_for

logger = logging.getLogger(__name__)

# Column layout of a standings row:
#   0 team ("3 - NAME" when ranked), 1 played, 2 won, 3 lost,
#   4 sets won (points_for), 5 sets lost (points_against), ..., last points.
# Upstream also prints a second pair of for/against columns (game points);
# those are ignored so every table is read the same way.
MIN_COLUMNS = 7
_RANKED_NAME_RE = re.compile(r"^\s*(\d+)\s*[-.º)]\s*(.*\S)")

FetchRows = Callable[[], Sequence[ClassificationRow]]


class ClassificationValidationError(ValueError):
    """A fetched standings table does not have the expected shape."""


def _to_int(value: str, column: str) -> int:
    try:
        return int(value.replace(" ", ""))
    except (AttributeError, ValueError) as e:
        raise ClassificationValidationError(f"{column} is not a number: {value!r}") from e


def _is_number(value: str) -> bool:
    return re.fullmatch(r"-?\d+", value.replace(" ", "")) is not None


def parse_classification_rows(rows: Iterable[Sequence[str]]) -> list[ClassificationRow]:
    """Map raw table cells onto ClassificationRow values.

    Rows that do not look like data (a non-numeric last cell or
    played/won/lost columns) are headers or captions and are skipped. Data
    rows that are too short or have non-numeric tallies raise
    ClassificationValidationError.
    """
    parsed: list[ClassificationRow] = []
    for cells in rows:
        cells = [c.strip() for c in cells]
        if len(cells) < 4 or not _is_number(cells[-1]):
            continue
        if not all(_is_number(c) for c in cells[1:4]):
            continue
        if len(cells) < MIN_COLUMNS:
            raise ClassificationValidationError(
                f"expected at least {MIN_COLUMNS} columns, got {len(cells)}: {cells!r}"
            )

        rank = None
        name = cells[0]
        m = _RANKED_NAME_RE.match(name)
        if m:
            rank, name = int(m.group(1)), m.group(2)
        if not name:
            raise ClassificationValidationError(f"row without team name: {cells!r}")

        parsed.append(ClassificationRow(
            team=name,
            played=_to_int(cells[1], "played"),
            won=_to_int(cells[2], "won"),
            lost=_to_int(cells[3], "lost"),
            points_for=_to_int(cells[4], "points_for"),
            points_against=_to_int(cells[5], "points_against"),
            points=_to_int(cells[-1], "points"),
            rank=rank,
        ))
    return parsed


def validate_rows(rows: Sequence[ClassificationRow]) -> list[ClassificationRow]:
    if not rows:
        raise ClassificationValidationError("empty classification table")
    return list(rows)


def competition_key(competition: Competition, category: str, group: str) -> str:
    """Cache key for a (competition, group) table, e.g. 'municipal_cadete_grupo_a'."""
    return slug_for(f"{competition.value} {category} {group}")


def row_to_dict(row: ClassificationRow) -> dict:
    return asdict(row)


def row_from_dict(data: dict) -> ClassificationRow:
    return ClassificationRow(**data)


class ClassificationCache:
    """Last-known-good standings, one JSON file for all competitions."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, list[dict]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Unreadable classification cache %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def keys(self) -> list[str]:
        return sorted(self._load())

    def get(self, key: str) -> list[ClassificationRow] | None:
        """Cached rows for ``key``, or None if nothing was ever stored."""
        entry = self._load().get(key)
        if entry is None:
            return None
        try:
            return [row_from_dict(r) for r in entry]
        except TypeError as e:
            logger.error("Corrupt cache entry %s: %s", key, e)
            return None

    def put(self, key: str, rows: Sequence[ClassificationRow]) -> None:
        """Replace the entry for ``key`` (no history is kept)."""
        data = self._load()
        data[key] = [row_to_dict(r) for r in rows]
        _write_json(self.path, data)


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True), encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def fetch_or_fallback(
    key: str,
    fetch: FetchRows,
    cache: ClassificationCache,
) -> tuple[list[ClassificationRow], Provenance]:
    """Fetch a live table, falling back to the cached one on any failure."""
    try:
        rows = validate_rows(fetch())
    except Exception as e:
        cached = cache.get(key)
        if cached is not None:
            logger.warning("Live classification for %s failed (%s); using cached table", key, e)
            return cached, Provenance.CACHED
        logger.error("Live classification for %s failed (%s); no cached table", key, e)
        return [], Provenance.NONE

    cache.put(key, rows)
    logger.info("Classification %s updated (%d rows)", key, len(rows))
    return rows, Provenance.LIVE


def write_status(path: Path, statuses: dict[str, tuple[Provenance, int]]) -> None:
    """Record where each table shown downstream came from."""
    _write_json(path, {
        key: {"provenance": provenance.value, "rows": count}
        for key, (provenance, count) in statuses.items()
    })


def is_own_team(row: ClassificationRow, identity: TeamIdentity, club: ClubConfig = DEFAULT_CLUB) -> bool:
    """True when a standings row names the given club team."""
    return resolve(row.team, club).slug_key == identity.slug_key
