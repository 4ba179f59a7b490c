from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

from .extractors import EXTRACTOR_MODULES
from .extractors.base import DEFAULT_PLACEHOLDER_TS
from .sink import DEFAULT_TABLE

JOB_KINDS = ("feed", "pages", "table")
DEFAULT_EXTRACTORS = {"feed": ["feed"], "pages": ["blob"], "table": ["table"]}


@dataclass
class Config:
    raw: Dict[str, Any]

    @property
    def scope(self) -> str:
        return self.raw["scope"]

    @property
    def placeholder_timestamp(self) -> str:
        return self.raw.get("placeholder_timestamp", DEFAULT_PLACEHOLDER_TS)

    @property
    def region(self) -> str:
        return self.raw.get("region", "us-east-1")

    @property
    def fetch(self) -> Dict[str, Any]:
        return self.raw.get("fetch") or {}

    @property
    def sink(self) -> Dict[str, Any]:
        return self.raw.get("sink") or {}

    @property
    def archive(self) -> Dict[str, Any]:
        return self.raw.get("archive") or {}

    @property
    def vocabulary(self) -> Dict[str, Any]:
        return self.raw.get("vocabulary") or {}

    @property
    def jobs(self) -> Dict[str, Dict[str, Any]]:
        return self.raw["jobs"]

    def job_extractors(self, name: str) -> List[str]:
        job = self.jobs[name]
        return list(job.get("extractors") or DEFAULT_EXTRACTORS[job["kind"]])


def _validate_job(name: str, job: Dict[str, Any]) -> None:
    kind = job.get("kind")
    if kind not in JOB_KINDS:
        raise ValueError(f"job '{name}' has unknown kind {kind!r}; expected one of {JOB_KINDS}")
    if kind == "pages":
        pages = job.get("pages") or []
        if not pages or any(not page.get("sources") for page in pages):
            raise ValueError(f"job '{name}' needs pages, each with at least one source")
        sources = [src for page in pages for src in page["sources"]]
    else:
        sources = job.get("sources") or []
        if not sources:
            raise ValueError(f"job '{name}' needs at least one source")
    for src in sources:
        if not isinstance(src, dict) or not src.get("url"):
            raise ValueError(f"job '{name}' has a source without a url")
    for ext in job.get("extractors") or []:
        if ext not in EXTRACTOR_MODULES:
            raise ValueError(f"job '{name}' lists unknown extractor {ext!r}")


def load_config(path: str = "config.yaml") -> Config:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not raw.get("scope"):
        raise ValueError("scope is required (e.g. 'W2022')")
    jobs = raw.get("jobs") or {}
    if not jobs:
        raise ValueError("at least one job must be configured")
    for name, job in jobs.items():
        _validate_job(name, job)
    archive = raw.get("archive") or {}
    if archive.get("enabled") and not archive.get("bucket"):
        raise ValueError("archive.bucket is required when archive.enabled is true")
    return Config(raw)


def get_feed_token() -> Optional[str]:
    return os.getenv("MEDALS_FEED_TOKEN") or None


def get_results_table(cfg: Config) -> str:
    return os.getenv("MEDALS_RESULTS_TABLE") or cfg.sink.get("table") or DEFAULT_TABLE
