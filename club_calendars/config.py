"""Club and run configuration, loaded from a JSON file."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

from club_calendars import Competition, VariantColor

# Applied in order to the accent-folded, upper-cased name.
NOISE_PATTERNS: tuple[str, ...] = (
    r"\bC\.?\s*D\.?(?=\s|$)",
    r"\bCLUB\b",
    r"\bVOLEIBOL\b",
    r"\bSEVILLA\b",
    r"\bBENJAMIN\b",
    r"\bALEVIN\b",
    r"\bINFANTIL\b",
    r"\bCADETE\b",
    r"\bJUVENIL\b",
    r"\bJUVENOL\b",
    r"\bJUNIOR\b",
    r"\bSENIOR\b",
    r"\bSUB\b",
    r"\b20\d{2}\b",
)

# First match wins. "PURPURA" is checked last so a name carrying both
# MORADO and PURPURA keeps the older MORADO team.
COLOR_RULES: tuple[tuple[str, VariantColor], ...] = (
    ("AMARILLO", VariantColor.YELLOW),
    ("ALBERO", VariantColor.SAND),
    ("MORADO", VariantColor.PURPLE),
    ("PURPURA", VariantColor.MAGENTA),
)

COLOR_LABELS: tuple[tuple[VariantColor, str], ...] = (
    (VariantColor.PURPLE, "MORADO"),
    (VariantColor.YELLOW, "AMARILLO"),
    (VariantColor.MAGENTA, "PÚRPURA"),
    (VariantColor.SAND, "ALBERO"),
)


@dataclass(frozen=True)
class ClubConfig:
    """Everything the resolver, synthesizer and serializer need to know about the club."""

    base_name: str = "LAS FLORES"
    youth_marker: str = "EVB"
    placeholder_name: str = "POR CONFIRMAR"
    noise_patterns: tuple[str, ...] = NOISE_PATTERNS
    color_rules: tuple[tuple[str, VariantColor], ...] = COLOR_RULES
    color_labels: tuple[tuple[VariantColor, str], ...] = COLOR_LABELS
    timezone: str = "Europe/Madrid"
    match_duration: timedelta = timedelta(hours=2)
    prodid: str = "-//Las Flores//Calendarios//ES"
    competition_prefixes: tuple[tuple[Competition, str], ...] = (
        (Competition.FEDERATED, "federado"),
        (Competition.MUNICIPAL, "imd"),
    )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def color_label(self, color: VariantColor) -> str | None:
        return dict(self.color_labels).get(color)

    def prefix_for(self, competition: Competition) -> str:
        return dict(self.competition_prefixes).get(competition, competition.value.lower())


DEFAULT_CLUB = ClubConfig()


@dataclass(frozen=True)
class FederatedGroup:
    """A tournament group on the federation site."""

    tournament: str
    group: str
    category: str

    @property
    def url(self) -> str:
        return f"https://favoley.es/es/tournament/{self.tournament}/calendar/{self.group}/all"


@dataclass(frozen=True)
class MunicipalTeam:
    """A club team registered in the municipal league."""

    team_id: str
    name: str
    category: str
    url: str


@dataclass(frozen=True)
class ClassificationSource:
    """A standings table to keep cached."""

    competition: Competition
    category: str
    group: str
    url: str


@dataclass(frozen=True)
class RunConfig:
    """Top-level configuration for one run."""

    club: ClubConfig = DEFAULT_CLUB
    output_dir: Path = Path("calendarios")
    request_delay: float = 2.0
    federated: tuple[FederatedGroup, ...] = ()
    municipal: tuple[MunicipalTeam, ...] = ()
    classifications: tuple[ClassificationSource, ...] = ()

    @property
    def classification_cache(self) -> Path:
        return self.output_dir / "classifications.json"

    @property
    def classification_status(self) -> Path:
        return self.output_dir / "classifications_status.json"


def _club_from_dict(data: dict) -> ClubConfig:
    overrides: dict = {}
    for key in ("base_name", "youth_marker", "placeholder_name", "timezone", "prodid"):
        if key in data:
            overrides[key] = str(data[key])
    if "match_duration_minutes" in data:
        overrides["match_duration"] = timedelta(minutes=int(data["match_duration_minutes"]))
    if "noise_patterns" in data:
        overrides["noise_patterns"] = tuple(data["noise_patterns"])
    if "color_rules" in data:
        overrides["color_rules"] = tuple(
            (token.upper(), VariantColor[color]) for token, color in data["color_rules"]
        )
    if "color_labels" in data:
        overrides["color_labels"] = tuple(
            (VariantColor[color], label) for color, label in data["color_labels"].items()
        )
    # Fail early on a misspelled zone name rather than at render time.
    ZoneInfo(overrides.get("timezone", DEFAULT_CLUB.timezone))
    return replace(DEFAULT_CLUB, **overrides)


def config_from_dict(data: dict) -> RunConfig:
    """Build a RunConfig from parsed JSON, using defaults for missing keys."""
    return RunConfig(
        club=_club_from_dict(data.get("club", {})),
        output_dir=Path(data.get("output_dir", "calendarios")),
        request_delay=float(data.get("request_delay", 2.0)),
        federated=tuple(FederatedGroup(**g) for g in data.get("federated", [])),
        municipal=tuple(MunicipalTeam(**t) for t in data.get("municipal", [])),
        classifications=tuple(
            ClassificationSource(
                competition=Competition[c["competition"]],
                category=c["category"],
                group=c["group"],
                url=c["url"],
            )
            for c in data.get("classifications", [])
        ),
    )


def load_config(path: str | Path = "calendars.json") -> RunConfig:
    """Load run configuration from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return config_from_dict(data)
