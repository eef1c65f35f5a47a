"""Page rendering and screenshot capture through Playwright."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import CrawlConfig, DESKTOP_VIEWPORT, MOBILE_VIEWPORT
from .errors import FatalInitError, FetchError
from .models import FailureKind

logger = logging.getLogger("sitesnap")

SCREENSHOTS = (
    ("screenshot_mobile.jpg", MOBILE_VIEWPORT),
    ("screenshot_desktop.jpg", DESKTOP_VIEWPORT),
)

MobileOpener = Callable[[str], Awaitable[Tuple[BrowserContext, Page]]]


class RenderedPage:
    """A navigated page, kept open until its unit of work finishes.

    The desktop capture reuses the navigated page. The mobile capture loads
    the URL again in a touch-enabled mobile context when ``open_mobile`` is
    given, so layouts keyed on mobile emulation show up.
    """

    def __init__(
        self,
        page: Page,
        url: str,
        markup: str,
        quality: int,
        open_mobile: Optional[MobileOpener] = None,
    ) -> None:
        self._page = page
        self._open_mobile = open_mobile
        self.url = url
        self.markup = markup
        self.quality = quality

    async def _capture(self, page: Page, path: Path) -> None:
        await page.screenshot(
            path=str(path), full_page=True, type="jpeg", quality=self.quality
        )

    async def screenshot(self, path: Path, viewport: Dict[str, int]) -> None:
        if viewport is MOBILE_VIEWPORT and self._open_mobile is not None:
            context, page = await self._open_mobile(self.url)
            try:
                await self._capture(page, path)
            finally:
                await context.close()
            return
        await self._page.set_viewport_size(viewport)
        await self._capture(self._page, path)

    async def capture_screenshots(self, directory: Path) -> List[Path]:
        """Write the mobile and desktop full-page captures into ``directory``."""
        written = []
        for filename, viewport in SCREENSHOTS:
            target = directory / filename
            await self.screenshot(target, viewport)
            written.append(target)
        return written

    async def close(self) -> None:
        try:
            await self._page.close()
        except PlaywrightError as exc:
            logger.debug("Ignoring error while closing %s: %s", self.url, exc)


def _is_navigable(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


class PlaywrightRenderer:
    """Owns one headless Chromium for the whole run."""

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def start(self) -> None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=True)
        except Exception as exc:  # pylint: disable=broad-except
            await self.close()
            raise FatalInitError(f"Could not launch browser: {exc}") from exc
        logger.debug("Browser launched")

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.debug("Ignoring error while closing browser: %s", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open_mobile(self, url: str) -> Tuple[BrowserContext, Page]:
        """Load ``url`` in a fresh touch-enabled mobile context."""
        if self._browser is None:
            raise RuntimeError("Renderer has not been started")
        context = await self._browser.new_context(
            viewport=MOBILE_VIEWPORT,
            is_mobile=True,
            has_touch=True,
            user_agent=self.config.user_agent,
        )
        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
            await page.goto(url, wait_until=self.config.wait_until)
            if self.config.wait_after_load:
                await page.wait_for_timeout(int(self.config.wait_after_load * 1000))
        except BaseException:
            await context.close()
            raise
        return context, page

    async def render(self, url: str) -> RenderedPage:
        """Navigate to ``url`` and wait for it to settle.

        Raises ``FetchError`` tagged with the failure kind.
        """
        if not _is_navigable(url):
            raise FetchError(url, FailureKind.INVALID_URL)
        if self._browser is None:
            raise RuntimeError("Renderer has not been started")

        page = await self._browser.new_page(
            viewport=DESKTOP_VIEWPORT, user_agent=self.config.user_agent
        )
        page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
        try:
            logger.info("Loading %s", url)
            response = await page.goto(url, wait_until=self.config.wait_until)
            if response is not None and response.status >= 400:
                raise FetchError(url, FailureKind.HTTP, status=response.status)
            if self.config.wait_after_load:
                await page.wait_for_timeout(int(self.config.wait_after_load * 1000))
            markup = await page.content()
        except PlaywrightTimeoutError as exc:
            await page.close()
            raise FetchError(url, FailureKind.TIMEOUT, str(exc)) from exc
        except PlaywrightError as exc:
            await page.close()
            raise FetchError(url, FailureKind.NETWORK, str(exc)) from exc
        except BaseException:
            await page.close()
            raise
        return RenderedPage(
            page, url, markup, self.config.screenshot_quality, self.open_mobile
        )
