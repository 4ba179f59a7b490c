"""Extractor for encyclopedia-style medal-winner tables.

Each heading at the configured level opens a section named after a
discipline; the section ends at the next heading of equal or higher level.
Inside it, every ``table.wikitable`` row of the form
``event | gold | silver | bronze`` yields up to three awards.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..models import MedalEvent
from ..normalize import resolve_known_country
from ..vocabulary import Vocabulary
from .base import ExtractContext, make_event

NAME = "table"

HEADING_RE = re.compile(r"^h([1-6])$")
FOOTNOTE_RE = re.compile(r"\[[^\]]*\]")
EDIT_RE = re.compile(r"\[\s*edit\s*\]\s*$", re.I)
WS_RE = re.compile(r"\s+")
MEDAL_COLUMNS = ("G", "S", "B")


def _clean(text: str) -> str:
    return WS_RE.sub(" ", FOOTNOTE_RE.sub("", text)).strip()


def heading_level(node: Any) -> Optional[int]:
    """Level of a heading element, or of a MediaWiki ``div.mw-heading`` wrapper."""
    if not isinstance(node, Tag):
        return None
    m = HEADING_RE.match(node.name or "")
    if m:
        return int(m.group(1))
    if node.name == "div" and "mw-heading" in (node.get("class") or []):
        inner = node.find(HEADING_RE)
        if inner is not None:
            return int(inner.name[1])
    return None


def _section_anchor(heading: Tag) -> Tag:
    parent = heading.parent
    if isinstance(parent, Tag) and parent.name == "div" and "mw-heading" in (parent.get("class") or []):
        return parent
    return heading


def iter_sections(soup: BeautifulSoup, level: int) -> Iterator[Tuple[str, List[Tag]]]:
    for heading in soup.find_all(f"h{level}"):
        title = EDIT_RE.sub("", heading.get_text(" ", strip=True)).strip()
        if not title:
            continue
        body: List[Tag] = []
        for sib in _section_anchor(heading).next_siblings:
            if not isinstance(sib, Tag):
                continue
            lvl = heading_level(sib)
            if lvl is not None and lvl <= level:
                break
            body.append(sib)
        yield title, body


def _tables(nodes: List[Tag]) -> Iterator[Tag]:
    for node in nodes:
        if node.name == "table" and "wikitable" in (node.get("class") or []):
            yield node
        yield from node.select("table.wikitable")


def cell_country(cell: Tag, vocab: Vocabulary) -> Optional[str]:
    flag = cell.select_one("span.flagicon")
    if flag is not None:
        link = flag.find_next_sibling("a", title=True)
        if link is not None:
            code = resolve_known_country(link["title"], vocab)
            if code:
                return code
        img = flag.find("img", alt=True)
        if img is not None:
            code = resolve_known_country(img["alt"], vocab)
            if code:
                return code
    for link in cell.find_all("a", title=True):
        code = resolve_known_country(link["title"], vocab)
        if code:
            return code
    text = _clean(cell.get_text(" "))
    for name in vocab.country_names:
        if re.search(rf"(?<!\w){re.escape(name)}(?!\w)", text):
            return vocab.country(name)
    return None


def extract_row(row: Tag, discipline: str, ctx: ExtractContext) -> List[MedalEvent]:
    cells = row.find_all(["td", "th"], recursive=False)
    if len(cells) < 4 or all(c.name == "th" for c in cells):
        return []
    event = _clean(cells[0].get_text(" "))
    # Rank columns of a standings table are not event names.
    if not event or event.isdigit():
        return []
    out: List[MedalEvent] = []
    for letter, cell in zip(MEDAL_COLUMNS, cells[1:4]):
        code = cell_country(cell, ctx.vocabulary)
        if code is None:
            continue
        ev = make_event(ctx, discipline, code, letter, None, event=event)
        if ev is not None:
            out.append(ev)
    return out


def extract(payload: Any, ctx: ExtractContext) -> List[MedalEvent]:
    soup = payload if isinstance(payload, BeautifulSoup) else BeautifulSoup(payload or "", "html.parser")
    out: List[MedalEvent] = []
    for discipline, body in iter_sections(soup, ctx.heading_level):
        for table in _tables(body):
            for row in table.find_all("tr"):
                out.extend(extract_row(row, discipline, ctx))
    return out
