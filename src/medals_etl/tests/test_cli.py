import json

import pytest

from medals_etl import cli
from medals_etl.errors import SourceExhausted, TransportFailure
from medals_etl.models import MedalEvent


def _read(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def test_extract_feed_file(tmp_path, feed_payload):
    src = tmp_path / "medals.json"
    src.write_text(json.dumps(feed_payload))
    out = tmp_path / "out.json"
    cli.main(["extract", "--kind", "feed", "--file", str(src), "--scope", "W2022", "--output", str(out)])
    records = _read(out)
    assert [r["event_id"] for r in records] == ["E1-G", "E1-S", "E2-G", "E2-S", "E2-B"]
    assert records[0]["ts"] == "1970-01-01T00:00:00.000Z"


def test_extract_pages_file(tmp_path, page_html):
    src = tmp_path / "page.html"
    src.write_text(page_html)
    out = tmp_path / "out.json"
    cli.main([
        "extract", "--kind", "pages", "--file", str(src), "--scope", "W2022",
        "--placeholder-timestamp", "2022-02-01T00:00:00.000Z", "--output", str(out),
    ])
    records = _read(out)
    assert [r["event_id"] for r in records] == ["W2022_Luge_GER_G", "W2022_Luge_AUT_S"]
    assert records[1]["ts"] == "2022-02-01T00:00:00.000Z"


def test_extract_table_to_stdout(tmp_path, wiki_html, capsys):
    src = tmp_path / "wiki.html"
    src.write_text(wiki_html)
    cli.main(["extract", "--kind", "table", "--file", str(src), "--scope", "W2022"])
    out = capsys.readouterr().out
    records = json.loads(out[out.index("["):])
    assert len(records) == 8


class FailingPipeline:
    def __init__(self, cfg, logger=None, dry_run=False):
        self.results = {}

    async def run(self, jobs=None):
        raise SourceExhausted(2, TransportFailure("https://mirror.test/", 2, "HTTP 500", status=500))

    async def close(self):
        return None


class StaticPipeline:
    def __init__(self, cfg, logger=None, dry_run=False):
        self.dry_run = dry_run
        ev = MedalEvent("E1-G", "Biathlon", "NOR", "G", "2022-02-01T00:00:00.000Z")
        self.results = {"feed": [ev], "pages": [ev]}

    async def run(self, jobs=None):
        return None

    async def close(self):
        return None


class PartialPipeline(FailingPipeline):
    def __init__(self, cfg, logger=None, dry_run=False):
        ev = MedalEvent("W2022_Curling_Men's_SWE_G", "Curling", "SWE", "G", "2022-02-01T00:00:00.000Z", event="Men's")
        self.results = {"feed": [], "wikipedia": [ev]}


def _config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("scope: W2022\njobs:\n  feed:\n    kind: feed\n    sources:\n      - url: https://a.test\n")
    return str(path)


def test_run_exits_nonzero_when_sources_exhausted(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Pipeline", FailingPipeline)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["run", "--config", _config(tmp_path), "--job", "feed"])
    assert excinfo.value.code == 1


def test_run_writes_deduplicated_output(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Pipeline", StaticPipeline)
    out = tmp_path / "out.json"
    cli.main(["run", "--config", _config(tmp_path), "--dry-run", "--output", str(out)])
    assert [r["event_id"] for r in _read(out)] == ["E1-G"]


def test_run_writes_completed_jobs_before_exiting_nonzero(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "Pipeline", PartialPipeline)
    out = tmp_path / "out.json"
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["run", "--config", _config(tmp_path), "--output", str(out)])
    assert excinfo.value.code == 1
    assert [r["event_id"] for r in _read(out)] == ["W2022_Curling_Men's_SWE_G"]
