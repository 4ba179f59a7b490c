from __future__ import annotations

from typing import Optional


class MedalsEtlError(Exception):
    pass


class TransportFailure(MedalsEtlError):
    """One failed fetch attempt: bad status, timeout, network error or short body."""

    def __init__(self, url: str, attempt: int, reason: str, status: Optional[int] = None) -> None:
        super().__init__(f"{url} attempt {attempt}: {reason}")
        self.url = url
        self.attempt = attempt
        self.reason = reason
        self.status = status


class SourceExhausted(MedalsEtlError):
    """Every configured source failed; carries the final source's last error."""

    def __init__(self, sources_tried: int, last_error: Optional[TransportFailure]) -> None:
        detail = str(last_error) if last_error else "no sources configured"
        super().__init__(f"all {sources_tried} source(s) exhausted; last error: {detail}")
        self.sources_tried = sources_tried
        self.last_error = last_error
