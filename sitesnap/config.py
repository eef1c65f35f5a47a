"""Configuration objects and constants for the site crawler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

DEFAULT_USER_AGENT = "SiteSnap/1.0"
DEFAULT_BLACKLIST = ("events", "calendar")
DEFAULT_BREADCRUMB_SELECTOR = "ul.breadcrumb > li"

MOBILE_VIEWPORT: Dict[str, int] = {"width": 375, "height": 812}
DESKTOP_VIEWPORT: Dict[str, int] = {"width": 1920, "height": 1080}

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg"}
)


@dataclass
class CrawlConfig:
    """Top-level settings that control traversal, politeness, and storage."""

    output_root: Path
    user_agent: str = DEFAULT_USER_AGENT
    blacklist: Tuple[str, ...] = DEFAULT_BLACKLIST
    max_concurrent: int = 4
    min_interval: float = 1.0
    max_attempts: int = 3
    backoff_base: float = 1.0
    navigation_timeout: float = 60.0
    wait_after_load: float = 0.0
    wait_until: str = "networkidle"
    run_timeout: Optional[float] = None
    http_timeout: float = 30.0
    breadcrumb_selector: str = DEFAULT_BREADCRUMB_SELECTOR
    css_image_extensions: FrozenSet[str] = IMAGE_EXTENSIONS
    jpeg_quality: int = 80
    webp_quality: int = 80
    png_compress_level: int = 9
    screenshot_quality: int = 80
    robots_path: Optional[Path] = None
    respect_crawl_delay: bool = True

    @property
    def pages_root(self) -> Path:
        return self.output_root / "pages"

    @property
    def trash_dir(self) -> Path:
        return self.output_root / "trash"

    @property
    def sitemap_path(self) -> Path:
        return self.output_root / "sitemap.xml"

    @property
    def error_log_path(self) -> Path:
        return self.output_root / "error.log"
