from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol

import boto3

from .logging_utils import log_json
from .models import MedalEvent

DEFAULT_TABLE = "medal_results"


class Store(Protocol):
    def upsert(self, event: MedalEvent) -> None: ...


class ResultsStore:
    """DynamoDB results table keyed by ``event_id``.

    ``put_item`` replaces any existing item with the same key, which is the
    insert-or-overwrite behaviour the pipeline relies on. Credentials come from
    the normal AWS credential chain.
    """

    def __init__(self, region: str, table_name: Optional[str] = None) -> None:
        self.table_name = table_name or DEFAULT_TABLE
        self._client = boto3.client("dynamodb", region_name=region)

    @staticmethod
    def to_item(event: MedalEvent) -> Dict[str, Dict[str, str]]:
        return {k: {"S": str(v)} for k, v in event.to_record().items() if v is not None}

    def upsert(self, event: MedalEvent) -> None:
        self._client.put_item(TableName=self.table_name, Item=self.to_item(event))

    def get(self, event_id: str) -> Optional[MedalEvent]:
        resp = self._client.get_item(TableName=self.table_name, Key={"event_id": {"S": event_id}})
        item = resp.get("Item")
        if not item:
            return None
        return MedalEvent.from_record({k: v["S"] for k, v in item.items()})


@dataclass
class WriteReport:
    upserted: int = 0
    failed: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)


class SinkWriter:
    def __init__(self, store: Store, logger: Optional[logging.Logger] = None, max_concurrency: int = 4) -> None:
        self.store = store
        self._logger = logger or logging.getLogger(__name__)
        self._max_concurrency = max(1, max_concurrency)

    async def write(self, events: Iterable[MedalEvent]) -> WriteReport:
        """Upsert every event; a failed record is counted and logged, never fatal."""
        report = WriteReport()
        sem = asyncio.Semaphore(self._max_concurrency)

        async def _one(ev: MedalEvent) -> None:
            async with sem:
                try:
                    await asyncio.to_thread(self.store.upsert, ev)
                except Exception as exc:
                    report.failed += 1
                    report.failures.append({"event_id": ev.event_id, "error": str(exc)})
                    log_json(self._logger, "upsert_failed", logging.ERROR, event_id=ev.event_id, error=str(exc))
                    return
                report.upserted += 1

        tasks = [_one(ev) for ev in events]
        if tasks:
            await asyncio.gather(*tasks)
        log_json(self._logger, "sink_done", upserted=report.upserted, failed=report.failed)
        return report
