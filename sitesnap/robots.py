"""Robots.txt policy for the crawl origin."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin
from urllib.robotparser import RobotFileParser

import requests

from .errors import FatalInitError

logger = logging.getLogger("sitesnap")


class RobotsPolicy:
    """Immutable snapshot of the origin's robots rules."""

    def __init__(self, text: str, user_agent: str, source: str = "") -> None:
        self.user_agent = user_agent
        self.source = source
        self._parser = RobotFileParser()
        self._parser.parse(text.splitlines())

    @classmethod
    def allow_all(cls, user_agent: str) -> "RobotsPolicy":
        return cls("", user_agent, source="allow-all")

    @classmethod
    def from_file(cls, path: Path, user_agent: str) -> "RobotsPolicy":
        """Load a pre-supplied robots document; an unreadable file aborts the run."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise FatalInitError(f"Cannot read robots file {path}: {exc}") from exc
        logger.info("Loaded robots rules from %s", path)
        return cls(text, user_agent, source=str(path))

    @classmethod
    def fetch(
        cls,
        origin: str,
        user_agent: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> "RobotsPolicy":
        """Fetch ``/robots.txt``; any failure falls back to allowing everything."""
        robots_url = urljoin(origin, "/robots.txt")
        http = session or requests.Session()
        try:
            response = http.get(
                robots_url,
                timeout=timeout,
                headers={"User-Agent": user_agent},
            )
        except requests.RequestException as exc:
            logger.warning(
                "Could not fetch %s (%s); allowing all URLs", robots_url, exc
            )
            return cls.allow_all(user_agent)

        if response.status_code == 200:
            logger.info("Loaded robots rules from %s", robots_url)
            return cls(response.text, user_agent, source=robots_url)
        logger.warning(
            "robots.txt at %s returned HTTP %s; allowing all URLs",
            robots_url,
            response.status_code,
        )
        return cls.allow_all(user_agent)

    def is_allowed(self, url: str, user_agent: Optional[str] = None) -> bool:
        return self._parser.can_fetch(user_agent or self.user_agent, url)

    def crawl_delay(self, user_agent: Optional[str] = None) -> Optional[float]:
        delay = self._parser.crawl_delay(user_agent or self.user_agent)
        return float(delay) if delay is not None else None
