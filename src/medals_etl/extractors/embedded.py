"""Pull JSON blobs out of scraped pages.

Parsing never raises: each candidate script block becomes a ``ParseResult``
that is either ``ok`` with the decoded value or ``failed`` with a reason.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional

from bs4 import BeautifulSoup

NEXT_DATA_ID = "__NEXT_DATA__"
JSON_LD_TYPE = "application/ld+json"


@dataclass(frozen=True)
class ParseResult:
    origin: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, origin: str, value: Any) -> "ParseResult":
        return cls(origin=origin, value=value)

    @classmethod
    def failure(cls, origin: str, reason: str) -> "ParseResult":
        return cls(origin=origin, error=reason)


def decode_json(text: str, origin: str = "body") -> ParseResult:
    if text is None or not text.strip():
        return ParseResult.failure(origin, "empty")
    try:
        return ParseResult.success(origin, json.loads(text))
    except ValueError as exc:
        return ParseResult.failure(origin, f"invalid_json:{exc}")


def _looks_like_json(body: str) -> bool:
    return (body.startswith("{") and body.endswith("}")) or (body.startswith("[") and body.endswith("]"))


def parse_embedded_json(html: str) -> List[ParseResult]:
    """One result per script block that claims or appears to hold JSON."""
    soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html or "", "html.parser")
    results: List[ParseResult] = []
    for idx, script in enumerate(soup.find_all("script")):
        body = (script.string or script.get_text() or "").strip()
        if script.get("id") == NEXT_DATA_ID:
            origin = "next_data"
        elif (script.get("type") or "").lower() == JSON_LD_TYPE:
            origin = f"ld_json[{idx}]"
        elif _looks_like_json(body):
            origin = f"inline[{idx}]"
        else:
            continue
        results.append(decode_json(body, origin))
    return results
