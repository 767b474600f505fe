"""Team name canonicalization.

Scraped sources spell the same team in many ways ("C.D. LAS FLORES SEVILLA
MORADO", "Las Flores Morado 2025", "CD LAS FLORES - MORADO"...). ``resolve``
maps every spelling onto one ``TeamIdentity`` so calendars and standings can
be keyed on ``slug_key``.

Names that do not carry the club's base name are opponents: they pass through
with only whitespace tidied up.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable
from functools import lru_cache

from club_calendars import TeamIdentity, VariantColor
from club_calendars.config import DEFAULT_CLUB, ClubConfig

ColorRule = tuple[Callable[[str], bool], VariantColor]


def fold_accents(text: str) -> str:
    """Strip diacritics: 'Púrpura' -> 'Purpura'."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def collapse_spaces(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_name(text: str) -> str:
    """Accent-folded, upper-cased, single-spaced version of a name."""
    return collapse_spaces(fold_accents(text or "")).upper()


def slug_for(text: str) -> str:
    """Filesystem-safe key: 'LAS FLORES PÚRPURA' -> 'las_flores_purpura'."""
    return re.sub(r"[^a-z0-9]+", "_", fold_accents(text).lower()).strip("_")


def strip_noise(text: str, club: ClubConfig = DEFAULT_CLUB) -> str:
    """Remove legal-form, city, age-category and season-year tokens."""
    for pattern in club.noise_patterns:
        text = re.sub(pattern, " ", text)
    # Dangling separators left over, e.g. "LAS FLORES - MORADO".
    text = re.sub(r"[-_.,;:/()]+", " ", text)
    return collapse_spaces(text)


def has_youth_marker(text: str, club: ClubConfig = DEFAULT_CLUB) -> bool:
    return re.search(rf"\b{re.escape(club.youth_marker)}\b", text) is not None


def color_rules(club: ClubConfig = DEFAULT_CLUB) -> list[ColorRule]:
    """The colour detectors, in priority order."""
    return [(_contains(token), color) for token, color in club.color_rules]


def _contains(token: str) -> Callable[[str], bool]:
    return lambda text: token in text


def detect_color(text: str, club: ClubConfig = DEFAULT_CLUB) -> VariantColor:
    """First rule whose predicate accepts ``text`` wins."""
    for predicate, color in color_rules(club):
        if predicate(text):
            return color
    return VariantColor.NONE


def canonical_name(color: VariantColor, is_youth: bool, club: ClubConfig = DEFAULT_CLUB) -> str:
    parts = []
    if is_youth:
        parts.append(club.youth_marker)
    parts.append(club.base_name)
    label = club.color_label(color)
    if label:
        parts.append(label)
    return " ".join(parts)


def club_identity(color: VariantColor, is_youth: bool, club: ClubConfig = DEFAULT_CLUB) -> TeamIdentity:
    name = canonical_name(color, is_youth, club)
    return TeamIdentity(
        canonical_name=name,
        color=color,
        is_youth=is_youth,
        slug_key=slug_for(name),
    )


def is_club_name(text: str, club: ClubConfig = DEFAULT_CLUB) -> bool:
    return normalize_name(club.base_name) in strip_noise(normalize_name(text), club)


def resolve(raw_text: str | None, club: ClubConfig = DEFAULT_CLUB) -> TeamIdentity:
    """Canonicalize a raw team name. Never raises."""
    return _resolve(raw_text or "", club)


@lru_cache(maxsize=1024)
def _resolve(raw_text: str, club: ClubConfig) -> TeamIdentity:
    cleaned = strip_noise(normalize_name(raw_text), club)

    if normalize_name(club.base_name) in cleaned:
        return club_identity(detect_color(cleaned, club), has_youth_marker(cleaned, club), club)

    display = collapse_spaces(raw_text) or club.placeholder_name
    return TeamIdentity(
        canonical_name=display,
        color=VariantColor.NONE,
        is_youth=False,
        slug_key=slug_for(display) or slug_for(club.placeholder_name),
        is_club=False,
    )
