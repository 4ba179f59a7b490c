import threading

import boto3
from botocore.stub import Stubber

from medals_etl.models import MedalEvent
from medals_etl.sink import ResultsStore, SinkWriter

PLACEHOLDER = "2022-02-01T00:00:00.000Z"


def _ev(event_id: str, country: str = "NOR", ts: str = PLACEHOLDER, event=None) -> MedalEvent:
    return MedalEvent(event_id=event_id, discipline="Biathlon", country=country, medal="G", timestamp=ts, event=event)


def test_results_store_put_get():
    client = boto3.client("dynamodb", region_name="us-east-1")
    stubber = Stubber(client)

    store = ResultsStore("us-east-1", table_name="medal_results")
    store._client = client

    item = {
        "event_id": {"S": "E1-G"},
        "discipline": {"S": "Biathlon"},
        "country": {"S": "NOR"},
        "medal": {"S": "G"},
        "ts": {"S": PLACEHOLDER},
    }
    stubber.add_response("put_item", {}, {"TableName": "medal_results", "Item": item})
    stubber.add_response(
        "get_item",
        {"Item": item},
        {"TableName": "medal_results", "Key": {"event_id": {"S": "E1-G"}}},
    )

    with stubber:
        store.upsert(_ev("E1-G"))
        got = store.get("E1-G")
        assert got == _ev("E1-G")
        assert got.event is None


def test_to_item_keeps_event_name():
    item = ResultsStore.to_item(_ev("W2022_Biathlon_Sprint_NOR_G", event="Sprint"))
    assert item["event"] == {"S": "Sprint"}
    assert item["ts"] == {"S": PLACEHOLDER}


def test_upsert_overwrites_by_event_id(results_table):
    store = ResultsStore("us-east-1")
    store.upsert(_ev("E1-G", ts=PLACEHOLDER))
    store.upsert(_ev("E1-G", ts="2022-02-06T10:15:00.000Z"))

    scan = results_table.scan(TableName="medal_results")
    assert scan["Count"] == 1
    assert store.get("E1-G").timestamp == "2022-02-06T10:15:00.000Z"
    assert store.get("missing") is None


class FlakyStore:
    def __init__(self, bad_ids):
        self.bad_ids = set(bad_ids)
        self.written = []
        self._lock = threading.Lock()

    def upsert(self, event: MedalEvent) -> None:
        if event.event_id in self.bad_ids:
            raise RuntimeError("conflict")
        with self._lock:
            self.written.append(event.event_id)


async def test_writer_counts_failures_without_aborting():
    store = FlakyStore({"b"})
    writer = SinkWriter(store, max_concurrency=2)
    report = await writer.write([_ev("a"), _ev("b"), _ev("c")])
    assert report.upserted == 2
    assert report.failed == 1
    assert report.failures == [{"event_id": "b", "error": "conflict"}]
    assert sorted(store.written) == ["a", "c"]


async def test_writer_with_no_events():
    report = await SinkWriter(FlakyStore(()), max_concurrency=0).write([])
    assert (report.upserted, report.failed) == (0, 0)


async def test_writer_against_moto_table(results_table):
    writer = SinkWriter(ResultsStore("us-east-1"), max_concurrency=4)
    report = await writer.write([_ev(f"E{i}-G") for i in range(5)])
    assert report.upserted == 5
    assert results_table.scan(TableName="medal_results")["Count"] == 5
