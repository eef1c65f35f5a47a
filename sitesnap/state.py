"""Run-scoped crawl state shared by every unit of work."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Set


class ClaimSet:
    """A set whose only mutation is an atomic insert-if-absent."""

    def __init__(self) -> None:
        self._items: Set[str] = set()
        self._lock = threading.Lock()

    def claim(self, key: str) -> bool:
        """Insert ``key``; return True only for the caller that inserted it."""
        with self._lock:
            if key in self._items:
                return False
            self._items.add(key)
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._items))


class DownloadLedger:
    """Media URLs fetched during the run, with where each one was stored."""

    def __init__(self) -> None:
        self._claims = ClaimSet()
        self._stored: Dict[str, Path] = {}
        self._lock = threading.Lock()

    def claim(self, url: str) -> bool:
        return self._claims.claim(url)

    def record(self, url: str, path: Path) -> None:
        """Store or move the location of an already-claimed URL."""
        with self._lock:
            self._stored[url] = path

    def stored_path(self, url: str) -> Optional[Path]:
        with self._lock:
            return self._stored.get(url)

    def __contains__(self, url: object) -> bool:
        return url in self._claims

    def __len__(self) -> int:
        with self._lock:
            return len(self._stored)


@dataclass
class CrawlerState:
    """Sets owned by one crawl invocation."""

    visited: ClaimSet = field(default_factory=ClaimSet)
    dead_ends: ClaimSet = field(default_factory=ClaimSet)
    page_dirs: ClaimSet = field(default_factory=ClaimSet)
    downloads: DownloadLedger = field(default_factory=DownloadLedger)
