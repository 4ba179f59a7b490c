"""Heuristic extractor for JSON of unknown shape.

Every dict node of the tree is offered to a short, ordered list of named
strategies. A strategy has a capability test (does this node look like a medal
record?) and an extraction function. Walking continues below matched nodes;
overlapping hits collapse later in the aggregator because identities are
deterministic.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List

from ..models import MedalEvent
from . import feed
from .base import ExtractContext, dig, first_present, make_event

NAME = "blob"

MEDAL_KEY_RE = re.compile(r"medal|rank|award", re.I)
COUNTRY_KEY_RE = re.compile(r"noc|country.?code|team.?code|country", re.I)
DISCIPLINE_KEY_RE = re.compile(r"discipline|sport", re.I)


@dataclass(frozen=True)
class BlobStrategy:
    name: str
    matches: Callable[[Dict[str, Any]], bool]
    extract: Callable[[Dict[str, Any], ExtractContext], List[MedalEvent]]


def iter_nodes(root: Any) -> Iterator[Dict[str, Any]]:
    """Yield every dict in ``root`` depth-first, each container at most once."""
    stack = [root]
    seen = set()
    while stack:
        node = stack.pop()
        if not isinstance(node, (dict, list)):
            continue
        if id(node) in seen:
            continue
        seen.add(id(node))
        if isinstance(node, dict):
            yield node
            children = list(node.values())
        else:
            children = list(node)
        stack.extend(reversed(children))


def _has_independent_signals(keys: List[str]) -> bool:
    medal = [k for k in keys if MEDAL_KEY_RE.search(k)]
    country = [k for k in keys if COUNTRY_KEY_RE.search(k)]
    discipline = [k for k in keys if DISCIPLINE_KEY_RE.search(k)]
    if not (medal and country and discipline):
        return False
    return any(len({m, c, d}) == 3 for m, c, d in itertools.product(medal, country, discipline))


def looks_like_medal_row(node: Dict[str, Any]) -> bool:
    return _has_independent_signals([str(k) for k in node.keys()])


def _text(value: Any) -> Any:
    return None if isinstance(value, (dict, list)) else value


def _by_pattern(node: Dict[str, Any], pattern: "re.Pattern[str]") -> Any:
    """First usable value under a key matching ``pattern``."""
    for key, value in node.items():
        if not pattern.search(str(key)):
            continue
        if isinstance(value, dict):
            value = first_present(value.get("code"), value.get("name"))
        value = _text(value)
        if value is not None and value != "":
            return value
    return None


def extract_medal_row(node: Dict[str, Any], ctx: ExtractContext) -> List[MedalEvent]:
    discipline = first_present(
        dig(node, "discipline", "name"),
        _text(node.get("discipline")),
        dig(node, "event", "discipline", "name"),
        dig(node, "sport", "name"),
        _text(node.get("sport")),
        _by_pattern(node, DISCIPLINE_KEY_RE),
    )
    country = first_present(
        dig(node, "team", "code"),
        dig(node, "noc", "code"),
        _text(node.get("countryCode")),
        dig(node, "country", "code"),
        _text(node.get("noc")),
        _text(node.get("country")),
        _by_pattern(node, COUNTRY_KEY_RE),
    )
    medal = first_present(
        dig(node, "medal", "name"),
        _text(node.get("medal")),
        _text(node.get("rank")),
        _text(node.get("award")),
        _by_pattern(node, MEDAL_KEY_RE),
    )
    ts = first_present(
        *(_text(node.get(k)) for k in ("date", "time", "awardedAt", "updatedAt", "lastUpdate", "timestamp"))
    )
    event = first_present(
        dig(node, "event", "name"),
        _text(node.get("eventName")),
        _text(node.get("event")),
        dig(node, "eventUnit", "description"),
    )
    if event is not None:
        event = str(event).strip() or None
    ev = make_event(ctx, discipline, country, medal, ts, event=event)
    return [ev] if ev is not None else []


def looks_like_medal_set(node: Dict[str, Any]) -> bool:
    if feed.group_id(node) is None or feed.group_discipline(node) is None:
        return False
    if isinstance(node.get("medalResults"), dict):
        return True
    return any(node.get(flat) is not None for _, flat, _ in feed.MEDAL_FIELDS)


STRATEGIES = (
    BlobStrategy("medal_set", looks_like_medal_set, feed.extract_group),
    BlobStrategy("medal_row", looks_like_medal_row, extract_medal_row),
)


def extract(payload: Any, ctx: ExtractContext) -> List[MedalEvent]:
    out: List[MedalEvent] = []
    for node in iter_nodes(payload):
        for strategy in STRATEGIES:
            if strategy.matches(node):
                out.extend(strategy.extract(node, ctx))
                break
    return out
