from __future__ import annotations

import re
from typing import Optional

# Field separator for derived ids; slugs never contain it, so each id splits
# back into exactly one tuple.
SEPARATOR = "_"
FEED_SEPARATOR = "-"
_SLUG_RE = re.compile(r"[\s_]+")


def slugify(value: str) -> str:
    return _SLUG_RE.sub("-", value.strip())


def build_id(scope: str, discipline: str, country: str, medal: str, event: Optional[str] = None) -> str:
    """Identity for one medal award: scope, discipline, event (if any), NOC, medal letter."""
    parts = [slugify(scope), slugify(discipline)]
    if event:
        parts.append(slugify(event))
    parts.extend([country, medal])
    return SEPARATOR.join(parts)


def feed_id(group_id: str, medal: str) -> str:
    """Identity for a typed-feed grouping, whose upstream id already names the event."""
    return f"{group_id}{FEED_SEPARATOR}{medal}"
