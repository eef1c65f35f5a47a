"""Exception types raised by the crawl pipeline."""

from __future__ import annotations

from typing import Optional

from .models import FailureKind


class FatalInitError(RuntimeError):
    """The run cannot start, e.g. the browser failed to launch."""


class FetchError(Exception):
    """A page fetch failed; ``kind`` tells the retry policy what happened."""

    def __init__(
        self,
        url: str,
        kind: FailureKind,
        detail: str = "",
        status: Optional[int] = None,
    ) -> None:
        self.url = url
        self.kind = kind
        self.detail = detail
        self.status = status
        message = f"{kind.value} fetching {url}"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        if self.kind in (FailureKind.TIMEOUT, FailureKind.NETWORK):
            return True
        return self.kind is FailureKind.HTTP and (self.status or 0) >= 500
