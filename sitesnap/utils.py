"""Utility helpers for name sanitization and URL handling."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit

RESERVED_PATTERN = re.compile(r'[/\\:*?"<>|]')
_DEFAULT_PORTS = {"http": 80, "https": 443}


def sanitize_name(value: str, fallback: str = "Untitled") -> str:
    """Replace filesystem-reserved characters so the value is one path segment."""
    sanitized = RESERVED_PATTERN.sub("_", value)
    if not sanitized:
        return fallback
    if sanitized in (".", ".."):
        return sanitized.replace(".", "_")
    return sanitized


def canonicalize_url(url: str) -> Optional[str]:
    """Return the canonical form used for visited-set keys, or None if unusable.

    Drops the fragment, lowercases scheme and host, removes a default port,
    and turns an empty path into ``/``. Path case, trailing slashes, and the
    query string are left untouched.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return None
    netloc = host
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{host}"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc += f":{port}"
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def is_in_scope(url: str, origin: str) -> bool:
    """True when ``url`` lives under ``origin`` (same scheme, host, and path prefix)."""
    target = urlsplit(url)
    base = urlsplit(origin)
    if target.scheme.lower() != base.scheme.lower():
        return False
    if target.netloc.lower() != base.netloc.lower():
        return False
    prefix = base.path.rstrip("/")
    if not prefix:
        return True
    path = target.path
    return path == prefix or path.startswith(prefix + "/")


def path_segments(url: str) -> List[str]:
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def is_blacklisted(url: str, blacklist: Iterable[str]) -> bool:
    """True if any path segment matches the blacklist, ignoring case."""
    blocked = {entry.lower() for entry in blacklist}
    return any(segment.lower() in blocked for segment in path_segments(url))
