"""Typed extractor for olympics.com-style medal feeds.

The payload holds an array of medal groupings under a known key (``medalSets``
by default). A grouping is one medal event and carries its winners either as
flat ``gold``/``silver``/``bronze`` NOC fields or nested under
``medalResults.GOLD.countryCode`` and friends.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..identity import feed_id
from ..models import MedalEvent
from .base import ExtractContext, dig, first_present, make_event

NAME = "feed"

MEDAL_FIELDS = (
    ("G", "gold", "GOLD"),
    ("S", "silver", "SILVER"),
    ("B", "bronze", "BRONZE"),
)


def group_id(group: Dict[str, Any]) -> Optional[str]:
    raw = first_present(group.get("id"), dig(group, "eventUnit", "eventUnitId"))
    if raw is None or isinstance(raw, (dict, list, bool)):
        return None
    return str(raw).strip() or None


def group_discipline(group: Dict[str, Any]) -> Any:
    return first_present(
        dig(group, "eventUnit", "discipline", "description"),
        dig(group, "eventUnit", "discipline", "name"),
        group.get("discipline") if not isinstance(group.get("discipline"), dict) else None,
    )


def winner_code(group: Dict[str, Any], flat_key: str, nested_key: str) -> Any:
    return first_present(group.get(flat_key), dig(group, "medalResults", nested_key, "countryCode"))


def extract_group(group: Any, ctx: ExtractContext) -> List[MedalEvent]:
    """At most three events for one grouping, one per medal colour present."""
    if not isinstance(group, dict):
        return []
    gid = group_id(group)
    if gid is None:
        return []
    discipline = group_discipline(group)
    ts = first_present(group.get("timestamp"), group.get("lastUpdated"))
    out: List[MedalEvent] = []
    for letter, flat_key, nested_key in MEDAL_FIELDS:
        code = winner_code(group, flat_key, nested_key)
        if code is None:
            continue
        ev = make_event(ctx, discipline, code, letter, ts, event_id=feed_id(gid, letter))
        if ev is not None:
            out.append(ev)
    return out


def records_at(payload: Any, path: str) -> List[Any]:
    node = dig(payload, *[p for p in path.split(".") if p]) if path else payload
    return node if isinstance(node, list) else []


def extract(payload: Any, ctx: ExtractContext) -> List[MedalEvent]:
    out: List[MedalEvent] = []
    for group in records_at(payload, ctx.records_path):
        out.extend(extract_group(group, ctx))
    return out
