from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import pyarrow as pa

from .normalize import parse_timestamp

RESULTS_SCHEMA = pa.schema(
    [
        pa.field("event_id", pa.string(), nullable=False),
        pa.field("discipline", pa.string(), nullable=False),
        pa.field("event", pa.string()),
        pa.field("country", pa.string(), nullable=False),
        pa.field("medal", pa.string(), nullable=False),
        pa.field("ts", pa.timestamp("ms", tz="UTC"), nullable=False),
    ]
)


@dataclass(frozen=True)
class MedalEvent:
    event_id: str
    discipline: str
    country: str
    medal: str
    timestamp: str
    event: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """Row shape of the results store; the timestamp column is ``ts``."""
        return {
            "event_id": self.event_id,
            "discipline": self.discipline,
            "event": self.event,
            "country": self.country,
            "medal": self.medal,
            "ts": self.timestamp,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MedalEvent":
        return cls(
            event_id=record["event_id"],
            discipline=record["discipline"],
            country=record["country"],
            medal=record["medal"],
            timestamp=record["ts"],
            event=record.get("event"),
        )


def events_to_table(events: Iterable[MedalEvent]) -> pa.Table:
    rows: List[Dict[str, Any]] = []
    for ev in events:
        rec = ev.to_record()
        rec["ts"] = parse_timestamp(ev.timestamp)
        rows.append(rec)
    return pa.Table.from_pylist(rows, schema=RESULTS_SCHEMA)
