"""Tests for the classification cache and its fallback rules."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import requests

from club_calendars import ClassificationRow, Competition, Provenance
from club_calendars.cache import (
    ClassificationCache,
    ClassificationValidationError,
    competition_key,
    fetch_or_fallback,
    is_own_team,
    parse_classification_rows,
    validate_rows,
    write_status,
)
from club_calendars.teams import resolve

HEADER = ["Equipo", "PJ", "PG", "PP", "SF", "SC", "PTOS"]
ROWS = [
    ClassificationRow("LAS FLORES MORADO", 5, 5, 0, 15, 2, 15, rank=1),
    ClassificationRow("SAN JOSE", 5, 3, 2, 10, 8, 9, rank=2),
]
KEY = "municipal_infantil_grupo_a"


@pytest.fixture
def cache(tmp_path: Path) -> ClassificationCache:
    return ClassificationCache(tmp_path / "classifications.json")


def failing_fetch(exc: Exception):
    def fetch():
        raise exc
    return fetch


class TestParseRows:
    def test_maps_columns(self) -> None:
        rows = parse_classification_rows([
            HEADER,
            ["1 - C.D. LAS FLORES MORADO", "5", "5", "0", "15", "2", "15"],
            ["2 - SAN JOSE", "5", "3", "2", "10", "8", "9"],
        ])
        assert rows[0] == ClassificationRow("C.D. LAS FLORES MORADO", 5, 5, 0, 15, 2, 15, rank=1)
        assert rows[1].rank == 2
        assert rows[1].points == 9

    def test_points_come_from_last_column(self) -> None:
        [row] = parse_classification_rows([["AMATE", "5", "0", "5", "1", "15", "200", "375", "0"]])
        assert (row.points_for, row.points_against, row.points) == (1, 15, 0)
        assert row.rank is None

    def test_header_rows_skipped(self) -> None:
        assert parse_classification_rows([HEADER, [], ["Grupo A"]]) == []

    def test_too_few_columns(self) -> None:
        with pytest.raises(ClassificationValidationError):
            parse_classification_rows([["1 - X", "5", "5", "15"]])

    def test_non_numeric_tally(self) -> None:
        with pytest.raises(ClassificationValidationError):
            parse_classification_rows([["1 - X", "5", "5", "0", "quince", "2", "15"]])

    def test_caption_rows_skipped(self) -> None:
        rows = parse_classification_rows([
            ["Jornada", "12"],
            ["Grupo A", "Temporada", "2025", "2026"],
            ["1 - C.D. LAS FLORES MORADO", "5", "5", "0", "15", "2", "15"],
        ])
        assert [r.team for r in rows] == ["C.D. LAS FLORES MORADO"]

    def test_validate_rows_rejects_empty(self) -> None:
        with pytest.raises(ClassificationValidationError):
            validate_rows([])
        assert validate_rows(ROWS) == ROWS


class TestClassificationCache:
    def test_get_missing(self, cache: ClassificationCache) -> None:
        assert cache.get(KEY) is None
        assert cache.keys() == []

    def test_put_and_get(self, cache: ClassificationCache) -> None:
        cache.put(KEY, ROWS)
        assert cache.get(KEY) == ROWS
        assert cache.keys() == [KEY]

    def test_put_replaces_without_history(self, cache: ClassificationCache) -> None:
        cache.put(KEY, ROWS)
        cache.put(KEY, ROWS[:1])
        assert cache.get(KEY) == ROWS[:1]

    def test_keys_are_independent(self, cache: ClassificationCache) -> None:
        cache.put(KEY, ROWS)
        cache.put("federated_cadete_a", ROWS[:1])
        assert cache.get(KEY) == ROWS
        assert cache.keys() == ["federated_cadete_a", KEY]

    def test_corrupt_file_reads_as_empty(self, cache: ClassificationCache) -> None:
        cache.path.write_text("{not json", encoding="utf-8")
        assert cache.get(KEY) is None


class TestFetchOrFallback:
    def test_live_success_is_persisted(self, cache: ClassificationCache) -> None:
        rows, provenance = fetch_or_fallback(KEY, lambda: ROWS, cache)
        assert (rows, provenance) == (ROWS, Provenance.LIVE)
        stored = json.loads(cache.path.read_text(encoding="utf-8"))
        assert stored[KEY][0]["team"] == "LAS FLORES MORADO"

    @pytest.mark.parametrize(
        "exc",
        [
            requests.ConnectionError("down"),
            requests.Timeout("slow"),
            ClassificationValidationError("bad table"),
            RuntimeError("driver crashed"),
            IndexError("unexpected table layout"),
        ],
    )
    def test_failure_uses_cache(self, cache: ClassificationCache, exc: Exception) -> None:
        cache.put(KEY, ROWS)
        before = cache.path.read_bytes()

        rows, provenance = fetch_or_fallback(KEY, failing_fetch(exc), cache)

        assert (rows, provenance) == (ROWS, Provenance.CACHED)
        assert cache.path.read_bytes() == before

    def test_empty_result_is_a_failure(self, cache: ClassificationCache) -> None:
        cache.put(KEY, ROWS)
        before = cache.path.read_bytes()
        assert fetch_or_fallback(KEY, lambda: [], cache) == (ROWS, Provenance.CACHED)
        assert cache.path.read_bytes() == before

    def test_failure_without_cache(self, cache: ClassificationCache) -> None:
        rows, provenance = fetch_or_fallback(KEY, failing_fetch(requests.ConnectionError()), cache)
        assert (rows, provenance) == ([], Provenance.NONE)
        assert not cache.path.exists()

    def test_failure_for_other_key(self, cache: ClassificationCache) -> None:
        cache.put("federated_cadete_a", ROWS)
        before = cache.path.read_bytes()
        assert fetch_or_fallback(KEY, lambda: [], cache) == ([], Provenance.NONE)
        assert cache.path.read_bytes() == before

    def test_unexpected_error_without_cache(self, cache: ClassificationCache) -> None:
        rows, provenance = fetch_or_fallback(KEY, failing_fetch(RuntimeError("driver crashed")), cache)
        assert (rows, provenance) == ([], Provenance.NONE)

    def test_cache_write_error_propagates(self, cache: ClassificationCache) -> None:
        with patch("club_calendars.cache.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                fetch_or_fallback(KEY, lambda: ROWS, cache)
        assert list(cache.path.parent.iterdir()) == []


class TestHelpers:
    def test_competition_key(self) -> None:
        assert competition_key(Competition.MUNICIPAL, "Infantil", "Grupo A") == KEY
        assert competition_key(Competition.FEDERATED, "ALEVÍN", "2") == "federated_alevin_2"

    def test_is_own_team(self) -> None:
        row = ClassificationRow("C.D. LAS FLORES MORADO", 5, 5, 0, 15, 2, 15, rank=1)
        assert is_own_team(row, resolve("LAS FLORES MORADO"))
        assert not is_own_team(row, resolve("LAS FLORES AMARILLO"))
        assert not is_own_team(ROWS[1], resolve("LAS FLORES"))

    def test_write_status(self, tmp_path: Path) -> None:
        path = tmp_path / "status.json"
        write_status(path, {KEY: (Provenance.CACHED, 2), "other": (Provenance.NONE, 0)})
        assert json.loads(path.read_text(encoding="utf-8")) == {
            KEY: {"provenance": "CACHED", "rows": 2},
            "other": {"provenance": "NONE", "rows": 0},
        }
