from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from .errors import SourceExhausted, TransportFailure
from .logging_utils import log_json

DEFAULT_HEADERS = {
    "User-Agent": "medals-etl/1.0",
    "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


@dataclass(frozen=True)
class SourceSpec:
    url: str
    max_attempts: int = 4
    timeout_seconds: float = 20.0
    min_bytes: int = 0
    name: Optional[str] = None
    # Send the feed token to this source; off unless the config opts in.
    auth: bool = False

    @property
    def label(self) -> str:
        return self.name or self.url

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SourceSpec":
        return cls(
            url=raw["url"],
            max_attempts=int(raw.get("max_attempts", 4)),
            timeout_seconds=float(raw.get("timeout_seconds", 20.0)),
            min_bytes=int(raw.get("min_bytes", 0)),
            name=raw.get("name"),
            auth=bool(raw.get("auth", False)),
        )


@dataclass
class FetchConfig:
    base_delay_seconds: float = 0.6
    max_delay_seconds: float = 8.0
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))


@dataclass(frozen=True)
class FetchedPayload:
    source: SourceSpec
    status: int
    content_type: str
    text: str
    attempts: int

    @property
    def url(self) -> str:
        return self.source.url

    @property
    def is_json(self) -> bool:
        return "json" in self.content_type.lower()


class FetchOrchestrator:
    """Ordered source fallback with per-source retry and exponential backoff.

    Sources are tried strictly in order and a call returns exactly one
    source's body. Each source gets ``max_attempts`` tries; the wait before
    try ``n + 1`` is ``base_delay * 2 ** (n - 1)`` capped at ``max_delay``.
    When the last source is used up, ``SourceExhausted`` is raised with that
    source's final ``TransportFailure``.
    """

    def __init__(
        self,
        cfg: FetchConfig,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        token: Optional[str] = None,
    ) -> None:
        self.cfg = cfg
        self._token = token
        self._client = client or httpx.AsyncClient(headers=dict(cfg.headers), follow_redirects=True)
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    async def close(self) -> None:
        await self._client.aclose()

    def backoff(self, attempt: int) -> float:
        return min(self.cfg.max_delay_seconds, self.cfg.base_delay_seconds * (2 ** (attempt - 1)))

    async def fetch(self, sources: Sequence[SourceSpec]) -> FetchedPayload:
        last_error: Optional[TransportFailure] = None
        for source in sources:
            try:
                return await self._fetch_source(source)
            except TransportFailure as exc:
                last_error = exc
                log_json(self._logger, "source_exhausted", source=source.label, attempts=source.max_attempts, error=exc.reason)
        raise SourceExhausted(len(sources), last_error)

    async def _fetch_source(self, source: SourceSpec) -> FetchedPayload:
        attempts = max(1, source.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            log_json(self._logger, "fetch_attempt", source=source.label, attempt=attempt)
            try:
                payload = await self._attempt(source, attempt)
            except TransportFailure as exc:
                if attempt >= attempts:
                    raise
                delay = self.backoff(attempt)
                log_json(
                    self._logger,
                    "fetch_failed",
                    source=source.label,
                    attempt=attempt,
                    status=exc.status,
                    error=exc.reason,
                    delay=delay,
                )
                await self._sleep(delay)
                continue
            log_json(self._logger, "fetch_ok", source=source.label, attempt=attempt, bytes=len(payload.text))
            return payload

    def _auth_headers(self, source: SourceSpec) -> Optional[Dict[str, str]]:
        if source.auth and self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return None

    async def _attempt(self, source: SourceSpec, attempt: int) -> FetchedPayload:
        try:
            resp = await self._client.get(
                source.url, headers=self._auth_headers(source), timeout=source.timeout_seconds
            )
        except httpx.TimeoutException:
            raise TransportFailure(source.url, attempt, "timeout") from None
        except httpx.HTTPError as exc:
            raise TransportFailure(source.url, attempt, f"transport_error:{exc}") from None
        if not resp.is_success:
            raise TransportFailure(
                source.url, attempt, f"HTTP {resp.status_code} {resp.reason_phrase}", status=resp.status_code
            )
        text = resp.text
        if len(text) < source.min_bytes:
            raise TransportFailure(source.url, attempt, f"short_body:{len(text)}<{source.min_bytes}", status=resp.status_code)
        return FetchedPayload(
            source=source,
            status=resp.status_code,
            content_type=resp.headers.get("Content-Type", ""),
            text=text,
            attempts=attempt,
        )


def sources_from_config(raw: List[Dict[str, Any]]) -> List[SourceSpec]:
    return [SourceSpec.from_dict(item) for item in raw]
