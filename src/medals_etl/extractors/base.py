from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..identity import build_id
from ..models import MedalEvent
from ..normalize import normalize_country, normalize_discipline, normalize_medal, normalize_timestamp
from ..vocabulary import Vocabulary

DEFAULT_RECORDS_PATH = "medalSets"
DEFAULT_PLACEHOLDER_TS = "1970-01-01T00:00:00.000Z"


@dataclass(frozen=True)
class ExtractContext:
    vocabulary: Vocabulary
    scope: str
    placeholder_timestamp: str = DEFAULT_PLACEHOLDER_TS
    records_path: str = DEFAULT_RECORDS_PATH
    heading_level: int = 2


def dig(node: Any, *path: str) -> Any:
    """Follow dict keys, returning None as soon as a step is missing."""
    cur = node
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
        if cur is None:
            return None
    return cur


def first_present(*values: Any) -> Any:
    for value in values:
        if value is None or value == "":
            continue
        return value
    return None


def make_event(
    ctx: ExtractContext,
    discipline_raw: Any,
    country_raw: Any,
    medal_raw: Any,
    time_raw: Any = None,
    event: Optional[str] = None,
    event_id: Optional[str] = None,
) -> Optional[MedalEvent]:
    """Normalize one candidate; None when discipline, country or medal fails."""
    discipline = normalize_discipline(discipline_raw, ctx.vocabulary)
    country = normalize_country(country_raw, ctx.vocabulary)
    medal = normalize_medal(medal_raw)
    if not discipline or not country or not medal:
        return None
    return MedalEvent(
        event_id=event_id or build_id(ctx.scope, discipline, country, medal, event),
        discipline=discipline,
        country=country,
        medal=medal,
        timestamp=normalize_timestamp(time_raw, ctx.placeholder_timestamp),
        event=event or None,
    )
