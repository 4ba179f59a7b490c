from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Optional

from .vocabulary import MEDAL_LETTERS, MEDAL_NAMES, Vocabulary

_WS_RE = re.compile(r"\s+")
_WORD_START_RE = re.compile(r"\b\w")
_NOC_RE = re.compile(r"^[A-Za-z]{3}$")
_RANKS = {1: "G", 2: "S", 3: "B"}


def _clean_text(raw: Any) -> Optional[str]:
    if raw is None or isinstance(raw, (bool, dict, list)):
        return None
    text = _WS_RE.sub(" ", str(raw)).strip()
    return text or None


def normalize_discipline(raw: Any, vocab: Vocabulary) -> Optional[str]:
    text = _clean_text(raw)
    if text is None:
        return None
    canonical = vocab.discipline(text)
    if canonical:
        return canonical
    # Unknown disciplines are kept, upper-casing each word start.
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), text)


def normalize_country(raw: Any, vocab: Vocabulary) -> Optional[str]:
    text = _clean_text(raw)
    if text is None:
        return None
    code = vocab.country(text)
    if code:
        return code
    if _NOC_RE.match(text):
        return text.upper()
    return None


def resolve_known_country(raw: Any, vocab: Vocabulary) -> Optional[str]:
    """Like ``normalize_country`` but only accepts names or codes the vocabulary knows."""
    code = normalize_country(raw, vocab)
    if code in vocab.noc_codes:
        return code
    return None


def normalize_medal(raw: Any) -> Optional[str]:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return _RANKS.get(raw)
    if isinstance(raw, float):
        return _RANKS.get(int(raw)) if raw.is_integer() else None
    if not isinstance(raw, str):
        return None
    text = raw.strip().lower()
    for name, letter in MEDAL_NAMES:
        if name in text:
            return letter
    if text.upper() in MEDAL_LETTERS:
        return text.upper()
    if text in ("1", "2", "3"):
        return _RANKS[int(text)]
    return None


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        try:
            return datetime.fromtimestamp(raw / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def normalize_timestamp(raw: Any, placeholder: str) -> str:
    """Render ``raw`` as a UTC ISO instant, or return the batch placeholder."""
    dt = parse_timestamp(raw)
    if dt is None:
        return placeholder
    return format_timestamp(dt)
