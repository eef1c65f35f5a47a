"""High-level orchestration: frontier, workers, and per-page storage."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from typing import List, Optional

import requests

from .config import CrawlConfig
from .content import StylesheetLoader, extract_page
from .errors import FetchError
from .media import MediaPipeline
from .models import CrawlReport, MediaAsset, PageRecord
from .paths import page_directory
from .render import PlaywrightRenderer, RenderedPage
from .robots import RobotsPolicy
from .sinks import ErrorSink, SitemapWriter
from .state import CrawlerState
from .throttle import RateLimiter, RetryPolicy, call_with_retry
from .utils import canonicalize_url, is_blacklisted, is_in_scope

logger = logging.getLogger("sitesnap")

PARTIAL_SUFFIX = ".partial"


def build_session(config: CrawlConfig) -> requests.Session:
    """Plain HTTP session used for robots, stylesheets, and media."""
    session = requests.Session()
    session.headers.update({"User-Agent": config.user_agent})
    return session


class CrawlEngine:
    """Drives one crawl from a seed URL until the frontier is exhausted.

    Workers pull canonical URLs from a shared queue. A URL is claimed in the
    visited set before it is queued, so no two workers ever fetch it.
    """

    def __init__(
        self,
        config: CrawlConfig,
        renderer,
        robots: RobotsPolicy,
        session: Optional[requests.Session] = None,
        state: Optional[CrawlerState] = None,
        sleep=asyncio.sleep,
    ) -> None:
        self.config = config
        self.renderer = renderer
        self.robots = robots
        self.state = state or CrawlerState()
        self.session = session or build_session(config)
        self.error_sink = ErrorSink(config.error_log_path)
        self.sitemap = SitemapWriter(config.sitemap_path)
        self.limiter = RateLimiter(
            config.max_concurrent, config.min_interval, sleep=sleep
        )
        self.retry_policy = RetryPolicy(config.max_attempts, config.backoff_base)
        self.media = MediaPipeline(
            config, self.state.downloads, self.error_sink, self.session
        )
        self.stylesheets = StylesheetLoader(self.session, config.http_timeout)
        self.report = CrawlReport()
        self.origin = ""
        self._sleep = sleep
        self._queue: Optional[asyncio.Queue] = None

    def accept(self, url: str) -> Optional[str]:
        """Apply the politeness checks and claim ``url``; None if rejected."""
        canonical = canonicalize_url(url)
        if canonical is None or canonical in self.state.visited:
            return None
        if not is_in_scope(canonical, self.origin):
            return None
        if is_blacklisted(canonical, self.config.blacklist):
            logger.debug("Skipping blacklisted URL %s", canonical)
            return None
        if not self.robots.is_allowed(canonical):
            logger.debug("Skipping %s: disallowed by robots.txt", canonical)
            return None
        if not self.state.visited.claim(canonical):
            return None
        return canonical

    def offer(self, url: str) -> bool:
        """Queue ``url`` if it passes ``accept``."""
        if self._queue is None:
            raise RuntimeError("offer() called outside of crawl()")
        accepted = self.accept(url)
        if accepted is None:
            return False
        self._queue.put_nowait(accepted)
        return True

    async def crawl(self, seed_url: str, origin: Optional[str] = None) -> CrawlReport:
        self.origin = canonicalize_url(origin or seed_url) or ""
        if not self.origin:
            raise ValueError(f"Invalid origin: {origin or seed_url}")
        self.config.trash_dir.mkdir(parents=True, exist_ok=True)

        if self.config.respect_crawl_delay:
            delay = self.robots.crawl_delay()
            if delay:
                logger.info("Honouring robots.txt crawl delay of %.1fs", delay)
                self.limiter.widen_interval(delay)

        self._queue = asyncio.Queue()
        if not self.offer(seed_url):
            logger.warning("Seed URL %s was rejected by the crawl policy", seed_url)

        start = time.perf_counter()
        workers = [
            asyncio.create_task(self._worker(index))
            for index in range(self.config.max_concurrent)
        ]
        try:
            if self.config.run_timeout:
                await asyncio.wait_for(
                    self._queue.join(), timeout=self.config.run_timeout
                )
            else:
                await self._queue.join()
        except asyncio.TimeoutError:
            self.report.timed_out = True
            logger.error("Run timed out after %.1fs", self.config.run_timeout)
            self.error_sink.log(f"Run timed out after {self.config.run_timeout}s")
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        self.report.elapsed_seconds = time.perf_counter() - start
        self.report.dead_ends = list(self.state.dead_ends)
        self.report.media_downloaded = len(self.state.downloads)
        return self.report

    async def _worker(self, worker_id: int) -> None:
        assert self._queue is not None
        while True:
            url = await self._queue.get()
            try:
                await self._process(url)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Worker %d failed on %s", worker_id, url)
                self.error_sink.log(f"Error crawling website {url}: {exc}")
                self.report.failed.append(url)
            finally:
                self._queue.task_done()

    async def _render(self, url: str) -> RenderedPage:
        async with self.limiter:
            return await self.renderer.render(url)

    def _log_retry(self, retry: int, exc: FetchError, delay: float) -> None:
        self.error_sink.log(
            f"Retrying {exc.url} (retry {retry}) in {delay:.1f}s: {exc}"
        )

    async def _process(self, url: str) -> None:
        """Fetch, extract, store, and enqueue links for one URL."""
        try:
            rendered = await call_with_retry(
                lambda: self._render(url),
                self.retry_policy,
                on_retry=self._log_retry,
                sleep=self._sleep,
            )
        except FetchError as exc:
            logger.warning("Giving up on %s: %s", url, exc)
            self.error_sink.log(f"Error crawling website: {exc}")
            self.report.failed.append(url)
            return

        try:
            record = await asyncio.to_thread(
                extract_page, rendered.markup, url, self.config, self.stylesheets
            )
            await self._store(record, rendered)
        finally:
            await rendered.close()

        self.sitemap.record(url)
        self.report.visited.append(url)
        if not any(is_in_scope(link, self.origin) for link in record.links):
            self.state.dead_ends.claim(url)
            logger.info("Dead end: %s", url)
        queued = sum(1 for link in record.links if self.offer(link))
        logger.debug("Queued %d new links from %s", queued, url)

    async def _store(self, record: PageRecord, rendered: RenderedPage) -> None:
        page_dir = page_directory(
            self.config.pages_root,
            self.origin,
            record.url,
            record.title,
            record.breadcrumbs,
        )
        # Claim and existence check happen before any write to the directory.
        if not self.state.page_dirs.claim(str(page_dir)) or page_dir.exists():
            logger.info("Directory already exists for %s", record.url)
            self.report.skipped_existing.append(record.url)
            return

        # Artifacts land in a staging sibling; page_dir only appears once complete.
        staging = page_dir.with_name(page_dir.name + PARTIAL_SUFFIX)
        if staging.exists():
            logger.info("Discarding incomplete capture %s", staging)
            shutil.rmtree(staging)
        staging.mkdir(parents=True)
        assets: List[MediaAsset] = []
        try:
            (staging / "content.txt").write_text(record.text_content, encoding="utf-8")
            (staging / "source.html").write_text(record.raw_markup, encoding="utf-8")
            await rendered.capture_screenshots(staging)

            for ref in record.media_refs:
                try:
                    asset = await asyncio.to_thread(
                        self.media.process, ref, staging, record.url
                    )
                except OSError as exc:
                    logger.error("Failed to store media %s: %s", ref, exc)
                    self.error_sink.log(f"Error storing media {ref}: {exc}")
                    continue
                if asset is not None:
                    assets.append(asset)
            staging.rename(page_dir)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        for asset in assets:
            self.state.downloads.record(
                asset.source_url, page_dir / asset.path.relative_to(staging)
            )
        logger.info("Scraped content for %s -> %s", record.url, page_dir)


async def run_crawl(
    seed_url: str,
    config: CrawlConfig,
    origin: Optional[str] = None,
    renderer=None,
    robots: Optional[RobotsPolicy] = None,
    session: Optional[requests.Session] = None,
) -> CrawlReport:
    """Load the politeness policy, start the browser, and crawl ``seed_url``."""
    config.output_root.mkdir(parents=True, exist_ok=True)
    session = session or build_session(config)
    origin = origin or seed_url
    if robots is None:
        if config.robots_path is not None:
            robots = RobotsPolicy.from_file(config.robots_path, config.user_agent)
        else:
            robots = await asyncio.to_thread(
                RobotsPolicy.fetch,
                origin,
                config.user_agent,
                session,
                config.http_timeout,
            )

    async with (renderer or PlaywrightRenderer(config)) as active_renderer:
        engine = CrawlEngine(config, active_renderer, robots, session=session)
        report = await engine.crawl(seed_url, origin)

    logger.info(
        "Crawl finished in %.2fs: %d visited, %d skipped, %d failed, %d media",
        report.elapsed_seconds,
        len(report.visited),
        len(report.skipped_existing),
        len(report.failed),
        report.media_downloaded,
    )
    return report
