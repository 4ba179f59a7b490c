from __future__ import annotations

from typing import Dict, Iterable, List

from .models import MedalEvent


class MedalAggregator:
    """Collapses extractor batches into one record per ``event_id``.

    The first record seen for an id is kept and later ones are dropped, so the
    order in which batches are added decides which timestamp survives.
    """

    def __init__(self) -> None:
        self._events: Dict[str, MedalEvent] = {}
        self.seen = 0
        self.duplicates: Dict[str, int] = {}

    def add(self, events: Iterable[MedalEvent], source: str = "default") -> int:
        """Add a batch and return how many new ids it contributed."""
        added = 0
        for ev in events:
            self.seen += 1
            if ev.event_id in self._events:
                self.duplicates[source] = self.duplicates.get(source, 0) + 1
                continue
            self._events[ev.event_id] = ev
            added += 1
        return added

    @property
    def duplicate_count(self) -> int:
        return sum(self.duplicates.values())

    def events(self) -> List[MedalEvent]:
        return list(self._events.values())

    def __len__(self) -> int:
        return len(self._events)


def dedupe_events(*batches: Iterable[MedalEvent]) -> List[MedalEvent]:
    agg = MedalAggregator()
    for batch in batches:
        agg.add(batch)
    return agg.events()
