"""S3 archive for raw payloads, normalized results and run summaries.

Layout under the bucket::

    <raw_prefix>/<job>/ingested_at=<date>/part-<hash8>.json.gz
    <results_prefix>/<job>/scope=<scope>/part-<hash8>.parquet
    <meta_prefix>/run_id=<run_id>.json
"""

from __future__ import annotations

import gzip
import hashlib
import io
import json
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional

import boto3
import pyarrow.parquet as pq

from .models import MedalEvent, events_to_table


class ResultsArchive:
    def __init__(
        self,
        bucket: str,
        region: str,
        raw_prefix: str = "raw",
        results_prefix: str = "results",
        meta_prefix: str = "meta",
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.raw_prefix = raw_prefix
        self.results_prefix = results_prefix
        self.meta_prefix = meta_prefix
        self._client = boto3.client("s3", region_name=region)

    @classmethod
    def from_config(cls, archive_cfg: Dict[str, Any], region: str) -> "ResultsArchive":
        return cls(
            bucket=archive_cfg["bucket"],
            region=archive_cfg.get("region", region),
            raw_prefix=archive_cfg.get("raw_prefix", "raw"),
            results_prefix=archive_cfg.get("results_prefix", "results"),
            meta_prefix=archive_cfg.get("meta_prefix", "meta"),
        )

    def _put_with_retry(self, key: str, body: bytes, max_attempts: int = 5) -> None:
        delay = 0.5
        for attempt in range(1, max_attempts + 1):
            try:
                self._client.put_object(Bucket=self.bucket, Key=key, Body=body)
                return
            except Exception:
                if attempt >= max_attempts:
                    raise
                time.sleep(delay)
                delay = min(8.0, delay * 2)

    def put_raw(self, job: str, ingested_at: str, part_hash: str, lines: Iterable[Any]) -> str:
        """Gzipped JSON lines; strings are written as ``{"text": ...}`` rows."""
        key = make_part_key(self.raw_prefix, job, f"ingested_at={ingested_at}", f"part-{part_hash[:8]}.json.gz")
        buf = io.BytesIO()
        with gzip.GzipFile(fileobj=buf, mode="wb") as gz:
            for item in lines:
                row = {"text": item} if isinstance(item, str) else item
                gz.write(json.dumps(row, default=str).encode("utf-8") + b"\n")
        self._put_with_retry(key, buf.getvalue())
        return key

    def put_results(self, job: str, scope: str, part_hash: str, events: List[MedalEvent]) -> str:
        key = make_part_key(self.results_prefix, job, f"scope={scope}", f"part-{part_hash[:8]}.parquet")
        sink = io.BytesIO()
        pq.write_table(events_to_table(events), sink, compression="snappy")
        self._put_with_retry(key, sink.getvalue())
        return key

    def put_summary(self, run_id: str, summary: Dict[str, Any]) -> str:
        key = make_part_key(self.meta_prefix, f"run_id={run_id}.json")
        self._put_with_retry(key, json.dumps(summary, default=str).encode("utf-8"))
        return key

    def get_object_bytes(self, key: str) -> bytes:
        obj = self._client.get_object(Bucket=self.bucket, Key=key)
        return obj["Body"].read()

    def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        keys = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix or ""):
            for obj in page.get("Contents", []):
                keys.append(obj["Key"])
        return keys


def payload_hash(payload: Any) -> str:
    """sha256 of a text body, or of the canonical JSON form of anything else."""
    raw = payload if isinstance(payload, str) else json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def make_part_key(prefix: str, *parts: str) -> str:
    return "/".join([prefix.strip("/")] + [p.strip("/") for p in parts])


def new_run_id() -> str:
    return uuid.uuid4().hex
