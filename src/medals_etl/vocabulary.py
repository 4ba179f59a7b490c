"""Canonical vocabulary for disciplines, delegations and medal letters.

The tables are plain tuples at import time and only become lookups through
``build_vocabulary``, which returns read-only mappings. Callers hold on to the
returned ``Vocabulary`` and pass it to the normalizer and extractors.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

MEDAL_LETTERS: Tuple[str, ...] = ("G", "S", "B")
MEDAL_NAMES: Tuple[Tuple[str, str], ...] = (("gold", "G"), ("silver", "S"), ("bronze", "B"))

CANONICAL_DISCIPLINES: Tuple[str, ...] = (
    "Alpine Skiing",
    "Biathlon",
    "Bobsleigh",
    "Cross-Country Skiing",
    "Curling",
    "Figure Skating",
    "Freestyle Skiing",
    "Ice Hockey",
    "Luge",
    "Nordic Combined",
    "Short Track Speed Skating",
    "Skeleton",
    "Ski Jumping",
    "Ski Mountaineering",
    "Snowboard",
    "Speed Skating",
)

DISCIPLINE_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("hockey", "Ice Hockey"),
    ("bobsled", "Bobsleigh"),
    ("bobsledding", "Bobsleigh"),
    ("snowboarding", "Snowboard"),
    ("short track", "Short Track Speed Skating"),
    ("short-track speed skating", "Short Track Speed Skating"),
    ("cross country skiing", "Cross-Country Skiing"),
    ("cross-country", "Cross-Country Skiing"),
    ("alpine", "Alpine Skiing"),
    ("freestyle", "Freestyle Skiing"),
    ("skimo", "Ski Mountaineering"),
)

COUNTRY_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("Norway", "NOR"),
    ("Sweden", "SWE"),
    ("Finland", "FIN"),
    ("United States", "USA"),
    ("United States of America", "USA"),
    ("Canada", "CAN"),
    ("Germany", "GER"),
    ("Austria", "AUT"),
    ("Switzerland", "SUI"),
    ("Italy", "ITA"),
    ("France", "FRA"),
    ("Netherlands", "NED"),
    ("People's Republic of China", "CHN"),
    ("China", "CHN"),
    ("Japan", "JPN"),
    ("South Korea", "KOR"),
    ("Republic of Korea", "KOR"),
    ("Korea", "KOR"),
    ("Great Britain", "GBR"),
    ("United Kingdom", "GBR"),
    ("Team GB", "GBR"),
    ("Russian Olympic Committee", "ROC"),
    ("ROC", "ROC"),
    ("Russia", "ROC"),
    ("Olympic Athletes from Russia", "OAR"),
    ("Czech Republic", "CZE"),
    ("Czechia", "CZE"),
    ("Slovakia", "SVK"),
    ("Poland", "POL"),
    ("Slovenia", "SLO"),
    ("Hungary", "HUN"),
    ("Belgium", "BEL"),
    ("Spain", "ESP"),
    ("Australia", "AUS"),
    ("New Zealand", "NZL"),
    ("Ukraine", "UKR"),
    ("Latvia", "LAT"),
    ("Estonia", "EST"),
    ("Liechtenstein", "LIE"),
    ("Denmark", "DEN"),
    ("Belarus", "BLR"),
    ("Kazakhstan", "KAZ"),
    ("Croatia", "CRO"),
    ("Bulgaria", "BUL"),
    ("Brazil", "BRA"),
)


@dataclass(frozen=True)
class Vocabulary:
    disciplines: Mapping[str, str]
    country_aliases: Mapping[str, str]
    noc_codes: FrozenSet[str]
    # Original-case alias names, longest first, for substring matching in free text.
    country_names: Tuple[str, ...]

    def discipline(self, raw: str) -> Optional[str]:
        return self.disciplines.get(raw.casefold())

    def country(self, raw: str) -> Optional[str]:
        return self.country_aliases.get(raw.casefold())


def _discipline_table(extra: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    table: Dict[str, str] = {}
    for name in CANONICAL_DISCIPLINES:
        table[name.casefold()] = name
    for alias, canonical in list(DISCIPLINE_ALIASES) + list(extra):
        table[alias.casefold()] = canonical
        table.setdefault(canonical.casefold(), canonical)
    return table


def build_vocabulary(overrides: Optional[Dict[str, Any]] = None) -> Vocabulary:
    """Build the immutable vocabulary, merging optional config overrides.

    ``overrides`` mirrors the ``vocabulary`` section of ``config.yaml``::

        disciplines: {"bobsled": "Bobsleigh"}
        countries: {"Czechia": "CZE"}
    """
    overrides = overrides or {}
    extra_disciplines = [(str(k), str(v)) for k, v in (overrides.get("disciplines") or {}).items()]
    extra_countries = [(str(k), str(v).strip().upper()) for k, v in (overrides.get("countries") or {}).items()]

    pairs = list(COUNTRY_ALIASES) + extra_countries
    aliases = {name.casefold(): code for name, code in pairs}
    names = tuple(sorted({name for name, _ in pairs}, key=lambda n: (-len(n), n)))
    return Vocabulary(
        disciplines=MappingProxyType(_discipline_table(extra_disciplines)),
        country_aliases=MappingProxyType(aliases),
        noc_codes=frozenset(code for _, code in pairs),
        country_names=names,
    )
