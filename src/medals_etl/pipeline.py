from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .aggregate import MedalAggregator
from .archive import ResultsArchive, new_run_id, payload_hash
from .config import Config, get_feed_token, get_results_table
from .errors import SourceExhausted
from .extractors import build_registry
from .extractors.base import DEFAULT_RECORDS_PATH, ExtractContext
from .extractors.embedded import ParseResult, decode_json, parse_embedded_json
from .fetch import FetchConfig, FetchedPayload, FetchOrchestrator, sources_from_config
from .logging_utils import log_json
from .models import MedalEvent
from .sink import ResultsStore, SinkWriter
from .vocabulary import build_vocabulary


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


@dataclass
class JobSummary:
    job: str
    kind: str
    sources: List[str] = field(default_factory=list)
    pages_ok: int = 0
    pages_failed: int = 0
    blobs_failed: int = 0
    extracted: int = 0
    duplicates: int = 0
    unique: int = 0
    upserted: int = 0
    failed: int = 0
    error: Optional[str] = None


@dataclass
class RunSummary:
    run_id: str
    started_at: str
    finished_at: Optional[str] = None
    jobs: List[JobSummary] = field(default_factory=list)

    @property
    def upserted(self) -> int:
        return sum(j.upserted for j in self.jobs)

    @property
    def failed(self) -> int:
        return sum(j.failed for j in self.jobs)

    @property
    def failed_jobs(self) -> List[str]:
        return [j.job for j in self.jobs if j.error is not None]

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["upserted"] = self.upserted
        out["failed"] = self.failed
        out["failed_jobs"] = self.failed_jobs
        return out


def payload_blobs(payload: FetchedPayload) -> List[ParseResult]:
    """JSON values carried by a fetched page: the body itself, or its script blocks."""
    if payload.is_json:
        return [decode_json(payload.text, origin=payload.url)]
    stripped = payload.text.lstrip()
    if stripped.startswith(("{", "[")):
        result = decode_json(payload.text, origin=payload.url)
        if result.ok:
            return [result]
    return parse_embedded_json(payload.text)


class Pipeline:
    """Runs configured jobs: fetch, extract, dedupe, upsert, archive."""

    def __init__(
        self,
        config: Config,
        logger: Optional[logging.Logger] = None,
        fetcher: Optional[FetchOrchestrator] = None,
        writer: Optional[SinkWriter] = None,
        archive: Optional[ResultsArchive] = None,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.vocabulary = build_vocabulary(config.vocabulary)
        self.registry = build_registry()
        self.dry_run = dry_run
        if fetcher is None:
            fetch_cfg = config.fetch
            fetcher = FetchOrchestrator(
                FetchConfig(
                    base_delay_seconds=float(fetch_cfg.get("base_delay_seconds", 0.6)),
                    max_delay_seconds=float(fetch_cfg.get("max_delay_seconds", 8.0)),
                    **({"headers": fetch_cfg["headers"]} if fetch_cfg.get("headers") else {}),
                ),
                logger=self.logger,
                token=get_feed_token(),
            )
        self.fetcher = fetcher
        if writer is None and not dry_run:
            store = ResultsStore(config.sink.get("region", config.region), get_results_table(config))
            writer = SinkWriter(store, self.logger, max_concurrency=int(config.sink.get("max_concurrency", 4)))
        self.writer = writer
        if archive is None and config.archive.get("enabled") and not dry_run:
            archive = ResultsArchive.from_config(config.archive, config.region)
        self.archive = archive
        self.results: Dict[str, List[MedalEvent]] = {}
        self._summary = RunSummary(run_id=new_run_id(), started_at=_now())
        self._ingested_at = _today()

    async def close(self) -> None:
        await self.fetcher.close()

    def context(self, job: Dict[str, Any]) -> ExtractContext:
        return ExtractContext(
            vocabulary=self.vocabulary,
            scope=str(job.get("scope", self.config.scope)),
            placeholder_timestamp=job.get("placeholder_timestamp", self.config.placeholder_timestamp),
            records_path=job.get("records_path", DEFAULT_RECORDS_PATH),
            heading_level=int(job.get("heading_level", 2)),
        )

    @property
    def summary(self) -> RunSummary:
        return self._summary

    async def run(self, jobs: Optional[List[str]] = None) -> RunSummary:
        """Run each job in turn; an exhausted job does not stop the ones after it.

        The run summary is logged and archived before the first
        ``SourceExhausted`` is re-raised.
        """
        names = jobs or list(self.config.jobs)
        for name in names:
            if name not in self.config.jobs:
                raise ValueError(f"Unknown job: {name}")
        exhausted: List[SourceExhausted] = []
        for name in names:
            try:
                summary = await self.run_job(name)
            except SourceExhausted as exc:
                exhausted.append(exc)
                summary = self._failed_job(name, exc)
            self._summary.jobs.append(summary)
        self._summary.finished_at = _now()
        if self.archive is not None:
            self.archive.put_summary(self._summary.run_id, self._summary.to_dict())
        log_json(
            self.logger,
            "run_done",
            logging.ERROR if exhausted else logging.INFO,
            run_id=self._summary.run_id,
            jobs=len(self._summary.jobs),
            upserted=self._summary.upserted,
            failed=self._summary.failed,
            failed_jobs=self._summary.failed_jobs,
        )
        if exhausted:
            raise exhausted[0]
        return self._summary

    def _failed_job(self, name: str, exc: SourceExhausted) -> JobSummary:
        job = self.config.jobs[name]
        summary = JobSummary(job=name, kind=job["kind"], error=str(exc))
        if job["kind"] == "pages":
            summary.pages_failed = len(job["pages"])
        self.results[name] = []
        log_json(self.logger, "job_failed", logging.ERROR, job=name, error=str(exc))
        return summary

    async def run_job(self, name: str) -> JobSummary:
        job = self.config.jobs[name]
        kind = job["kind"]
        summary = JobSummary(job=name, kind=kind)
        ctx = self.context(job)
        extractors = self.config.job_extractors(name)
        agg = MedalAggregator()
        log_json(self.logger, "job_start", job=name, kind=kind, extractors=extractors)

        if kind == "pages":
            payloads = await self._fetch_pages(name, job, summary)
        else:
            payloads = [await self.fetcher.fetch(sources_from_config(job["sources"]))]
            summary.pages_ok = 1
        summary.sources = [p.url for p in payloads]

        for payload in payloads:
            self._archive_raw(name, payload)
            for origin, value in self._payload_values(kind, payload, summary):
                for ext_name in extractors:
                    events = self.registry[ext_name](value, ctx)
                    summary.extracted += len(events)
                    agg.add(events, source=f"{origin}:{ext_name}")
                    if events:
                        log_json(self.logger, "extracted", job=name, origin=origin, extractor=ext_name, records=len(events))

        events = agg.events()
        summary.duplicates = agg.duplicate_count
        summary.unique = len(events)
        self.results[name] = events
        if not events:
            log_json(self.logger, "no_medals_found", job=name)
        if self.writer is not None and events:
            report = await self.writer.write(events)
            summary.upserted = report.upserted
            summary.failed = report.failed
        if self.archive is not None and events:
            self.archive.put_results(name, ctx.scope, payload_hash([ev.to_record() for ev in events]), events)
        log_json(self.logger, "job_done", **asdict(summary))
        return summary

    async def _fetch_pages(self, name: str, job: Dict[str, Any], summary: JobSummary) -> List[FetchedPayload]:
        payloads: List[FetchedPayload] = []
        last_exc: Optional[SourceExhausted] = None
        for page in job["pages"]:
            try:
                payloads.append(await self.fetcher.fetch(sources_from_config(page["sources"])))
                summary.pages_ok += 1
            except SourceExhausted as exc:
                last_exc = exc
                summary.pages_failed += 1
                log_json(self.logger, "page_failed", logging.WARNING, job=name, page=page.get("name"), error=str(exc))
        if not payloads and last_exc is not None:
            raise last_exc
        return payloads

    def _payload_values(self, kind: str, payload: FetchedPayload, summary: JobSummary) -> List[tuple]:
        if kind == "table":
            return [(payload.url, BeautifulSoup(payload.text, "html.parser"))]
        if kind == "feed":
            results = [decode_json(payload.text, origin=payload.url)]
        else:
            results = payload_blobs(payload)
        values = []
        for result in results:
            if not result.ok:
                summary.blobs_failed += 1
                log_json(self.logger, "blob_unparseable", logging.DEBUG, origin=result.origin, error=result.error)
                continue
            values.append((result.origin, result.value))
        log_json(self.logger, "blobs_found", source=payload.url, ok=len(values), failed=len(results) - len(values))
        return values

    def _archive_raw(self, name: str, payload: FetchedPayload) -> None:
        if self.archive is None:
            return
        self.archive.put_raw(name, self._ingested_at, payload_hash(payload.text), [payload.text])
