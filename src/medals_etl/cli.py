from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from bs4 import BeautifulSoup

from .aggregate import dedupe_events
from .config import load_config
from .errors import SourceExhausted
from .extractors import get_extractor
from .extractors.base import DEFAULT_PLACEHOLDER_TS, DEFAULT_RECORDS_PATH, ExtractContext
from .extractors.embedded import decode_json
from .fetch import FetchedPayload, SourceSpec
from .logging_utils import log_json, setup_logging
from .models import MedalEvent
from .pipeline import Pipeline, payload_blobs
from .vocabulary import build_vocabulary


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="medals-etl")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Fetch, normalize and upsert medal results")
    run.add_argument("--config", default="config.yaml")
    run.add_argument("--job", action="append", dest="jobs", help="Job name; repeat for several (default: all)")
    run.add_argument("--dry-run", action="store_true", help="Skip the results store and archive")
    run.add_argument("--output", help="Write the deduplicated records to this JSON file")

    extract = sub.add_parser("extract", help="Run an extractor against a saved payload")
    extract.add_argument("--kind", required=True, choices=["feed", "blob", "pages", "table"])
    extract.add_argument("--file", required=True)
    extract.add_argument("--scope", default="LOCAL")
    extract.add_argument("--placeholder-timestamp", default=DEFAULT_PLACEHOLDER_TS)
    extract.add_argument("--records-path", default=DEFAULT_RECORDS_PATH)
    extract.add_argument("--output")

    return parser.parse_args(argv)


def write_output(path: str, events: List[MedalEvent]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump([ev.to_record() for ev in events], f, indent=2, ensure_ascii=False)


def extract_file(kind: str, text: str, ctx: ExtractContext) -> List[MedalEvent]:
    if kind == "table":
        return get_extractor("table")(BeautifulSoup(text, "html.parser"), ctx)
    if kind == "pages":
        page = FetchedPayload(source=SourceSpec(url="file"), status=200, content_type="text/html", text=text, attempts=1)
        results = payload_blobs(page)
    else:
        results = [decode_json(text, origin="file")]
    batches = [get_extractor("blob" if kind == "pages" else kind)(r.value, ctx) for r in results if r.ok]
    return dedupe_events(*batches)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logger = setup_logging(args.log_level)

    if args.command == "extract":
        with open(args.file, "r", encoding="utf-8") as f:
            text = f.read()
        ctx = ExtractContext(
            vocabulary=build_vocabulary(),
            scope=args.scope,
            placeholder_timestamp=args.placeholder_timestamp,
            records_path=args.records_path,
        )
        events = extract_file(args.kind, text, ctx)
        log_json(logger, "extract_done", kind=args.kind, records=len(events))
        if args.output:
            write_output(args.output, events)
        else:
            json.dump([ev.to_record() for ev in events], sys.stdout, indent=2, ensure_ascii=False)
            sys.stdout.write("\n")
        return

    cfg = load_config(args.config)
    pipeline = Pipeline(cfg, logger, dry_run=args.dry_run)

    async def _run() -> None:
        try:
            await pipeline.run(args.jobs)
        finally:
            await pipeline.close()

    exit_code = 0
    try:
        asyncio.run(_run())
    except SourceExhausted as exc:
        log_json(logger, "fatal", logging.CRITICAL, error=str(exc))
        exit_code = 1
    if args.output:
        # Jobs that finished before or after an exhausted one still get written.
        events = dedupe_events(*pipeline.results.values())
        write_output(args.output, events)
        log_json(logger, "output_written", path=args.output, records=len(events))
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
