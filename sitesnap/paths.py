"""Deterministic mapping from page metadata to a storage directory."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import List, Sequence
from urllib.parse import unquote, urlsplit

from .utils import sanitize_name


def relative_segments(origin: str, page_url: str) -> List[str]:
    """Path segments of ``page_url`` below the origin's path prefix."""
    origin_path = urlsplit(origin).path
    if not origin_path.endswith("/"):
        origin_path += "/"
    page_path = urlsplit(page_url).path or "/"
    if page_path.startswith(origin_path):
        relative = page_path[len(origin_path):]
    else:
        relative = page_path[1:]
    return [sanitize_name(unquote(part)) for part in relative.split("/") if part]


def resolve_page_path(
    origin: str,
    page_url: str,
    title: str,
    breadcrumbs: Sequence[str],
) -> PurePosixPath:
    """Compose ``<host>/<relative path>/<title>/<breadcrumbs>`` for a page.

    Pure: identical inputs always produce the identical path.
    """
    host = urlsplit(page_url).hostname or "site"
    parts = [sanitize_name(host)]
    parts.extend(relative_segments(origin, page_url))
    parts.append(sanitize_name(title.strip()))
    parts.extend(sanitize_name(crumb) for crumb in breadcrumbs if crumb)
    return PurePosixPath(*parts)


def page_directory(
    pages_root: Path,
    origin: str,
    page_url: str,
    title: str,
    breadcrumbs: Sequence[str],
) -> Path:
    """Absolute storage directory for a page under ``pages_root``."""
    return pages_root.joinpath(
        *resolve_page_path(origin, page_url, title, breadcrumbs).parts
    )
