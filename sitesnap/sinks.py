"""Append-only side outputs: the sitemap and the error log."""

from __future__ import annotations

import datetime as dt
import threading
from pathlib import Path
from xml.sax.saxutils import escape


class SitemapWriter:
    """Appends one ``<url><loc>`` line per visited URL."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def record(self, url: str) -> None:
        line = f"<url><loc>{escape(url)}</loc></url>\n"
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)


class ErrorSink:
    """Appends one ``ISO8601-timestamp - message`` line per failure event."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()
        self.count = 0

    def log(self, message: str) -> None:
        stamp = dt.datetime.now(dt.timezone.utc).isoformat()
        single_line = " ".join(str(message).splitlines())
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(f"{stamp} - {single_line}\n")
            self.count += 1
