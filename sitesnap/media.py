"""Media classification, download, re-encoding, and quarantine."""

from __future__ import annotations

import hashlib
import io
import logging
import posixpath
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urljoin, urlsplit

import requests
from filetype import guess
from PIL import Image

from .config import CrawlConfig, IMAGE_EXTENSIONS
from .models import MediaAsset, MediaKind
from .sinks import ErrorSink
from .state import DownloadLedger
from .utils import sanitize_name

logger = logging.getLogger("sitesnap")

MAX_QUERY_LENGTH = 64

EXTENSION_KINDS: Dict[str, MediaKind] = {
    **{ext: MediaKind.IMAGE for ext in IMAGE_EXTENSIONS},
    **{
        ext: MediaKind.VIDEO
        for ext in (".mp4", ".avi", ".mov", ".wmv", ".mkv", ".flv", ".webm")
    },
    **{
        ext: MediaKind.DOCUMENT
        for ext in (".pdf", ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx", ".txt")
    },
    **{ext: MediaKind.AUDIO for ext in (".mp3", ".wav", ".ogg", ".aac", ".flac")},
}


def classify_media(url: str) -> MediaKind:
    """Classify a media URL by the extension of its path."""
    extension = posixpath.splitext(urlsplit(url).path)[1].lower()
    return EXTENSION_KINDS.get(extension, MediaKind.OTHER)


def media_filename(url: str) -> str:
    """Sanitized file name for ``url``; the query is folded in before the extension."""
    parts = urlsplit(url)
    name = posixpath.basename(unquote(parts.path))
    if parts.query:
        query = unquote(parts.query)
        if len(query) > MAX_QUERY_LENGTH:
            query = hashlib.sha1(parts.query.encode("utf-8")).hexdigest()[:12]
        stem, extension = posixpath.splitext(name)
        name = f"{stem or 'index'}_{query}{extension}"
    return sanitize_name(name, fallback="index")


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def reencode_image(data: bytes, config: CrawlConfig) -> bytes:
    """Re-encode JPEG, PNG, and WebP with their compression settings.

    Other formats are returned unchanged. Raises on undecodable input.
    """
    detected = detect_image_format(data)
    if detected == "jpg":
        params = {"format": "JPEG", "quality": config.jpeg_quality, "optimize": True}
    elif detected == "png":
        params = {
            "format": "PNG",
            "compress_level": config.png_compress_level,
            "optimize": True,
        }
    elif detected == "webp":
        params = {"format": "WEBP", "quality": config.webp_quality}
    else:
        return data

    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if params["format"] == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, **params)
    return buffer.getvalue()


class MediaPipeline:
    """Fetches media referenced by pages, at most once per URL per run."""

    def __init__(
        self,
        config: CrawlConfig,
        ledger: DownloadLedger,
        error_sink: ErrorSink,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.ledger = ledger
        self.error_sink = error_sink
        self.session = session or requests.Session()

    def process(
        self, media_url: str, page_dir: Path, page_url: str
    ) -> Optional[MediaAsset]:
        """Download one media reference into ``page_dir``.

        Returns the stored asset, or None when the reference was skipped,
        already downloaded, or failed.
        """
        scheme = urlsplit(media_url).scheme.lower()
        if scheme and scheme not in ("http", "https"):
            logger.debug("Skipping non-HTTP media %s", media_url)
            return None

        absolute_url = urljoin(page_url, media_url)
        if not self.ledger.claim(absolute_url):
            logger.debug(
                "Media already handled: %s (stored at %s)",
                absolute_url,
                self.ledger.stored_path(absolute_url),
            )
            return None

        kind = classify_media(absolute_url)
        try:
            resp = self.session.get(absolute_url, timeout=self.config.http_timeout)
        except (requests.RequestException, ValueError) as exc:
            self._quarantine(absolute_url, str(exc))
            return None

        if resp.status_code == 404:
            logger.info("Media not found (404): %s", absolute_url)
            return None
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            self._quarantine(absolute_url, str(exc))
            return None

        data = resp.content
        target_dir = page_dir / kind.value
        target_dir.mkdir(parents=True, exist_ok=True)
        destination = target_dir / media_filename(absolute_url)
        if kind is MediaKind.IMAGE:
            data = self._compress(absolute_url, data)
        destination.write_bytes(data)

        self.ledger.record(absolute_url, destination)
        logger.info("Downloaded media %s -> %s", absolute_url, destination)
        return MediaAsset(
            source_url=absolute_url, kind=kind, data=data, path=destination
        )

    def _compress(self, url: str, data: bytes) -> bytes:
        try:
            return reencode_image(data, self.config)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Re-encoding %s failed (%s); keeping original", url, exc)
            return data

    def _quarantine(self, url: str, reason: str) -> None:
        logger.error("Failed to download media %s: %s", url, reason)
        self.error_sink.log(f"Error downloading media {url}: {reason}")
        trash_dir = self.config.trash_dir
        trash_dir.mkdir(parents=True, exist_ok=True)
        entry = trash_dir / media_filename(url)
        entry.write_text(f"{url}\n{reason}\n", encoding="utf-8")
