"""Data models used throughout the crawl pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple


class FailureKind(enum.Enum):
    """Why a page fetch failed; drives retry eligibility."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http"
    INVALID_URL = "invalid_url"


class MediaKind(enum.Enum):
    """Media classification; the value is the storage subdirectory."""

    IMAGE = "img"
    VIDEO = "videos"
    DOCUMENT = "docs"
    AUDIO = "audio"
    OTHER = "other"


@dataclass(frozen=True)
class PageRecord:
    """Structured content extracted from one rendered page."""

    url: str
    title: str
    breadcrumbs: Tuple[str, ...]
    links: Tuple[str, ...]
    media_refs: Tuple[str, ...]
    visible_text: Tuple[str, ...]
    raw_markup: str

    @property
    def text_content(self) -> str:
        return "\n".join(self.visible_text)


@dataclass
class MediaAsset:
    """Downloaded media item and where it was written."""

    source_url: str
    kind: MediaKind
    data: bytes
    path: Path


@dataclass
class CrawlReport:
    """Summary of a finished crawl run."""

    visited: List[str] = field(default_factory=list)
    dead_ends: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped_existing: List[str] = field(default_factory=list)
    media_downloaded: int = 0
    elapsed_seconds: float = 0.0
    timed_out: bool = False
