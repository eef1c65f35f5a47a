"""Command-line entry point for the site crawler."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from .config import (
    CrawlConfig,
    DEFAULT_BLACKLIST,
    DEFAULT_BREADCRUMB_SELECTOR,
    DEFAULT_USER_AGENT,
)
from .crawler import run_crawl
from .errors import FatalInitError

logger = logging.getLogger("sitesnap.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Crawl every in-scope page of a site with Playwright, saving text, "
            "markup, screenshots, and media into a mirrored directory tree."
        ),
    )
    parser.add_argument("url", help="Seed URL to start crawling from")
    parser.add_argument(
        "--origin",
        default=None,
        help="URL prefix that bounds the crawl (defaults to the seed URL)",
    )
    parser.add_argument(
        "--output",
        default="output",
        type=Path,
        help="Working directory for pages/, trash/, sitemap.xml, and error.log",
    )
    parser.add_argument(
        "--user-agent",
        default=DEFAULT_USER_AGENT,
        help="Agent name used for robots.txt rules and HTTP requests",
    )
    parser.add_argument(
        "--blacklist",
        nargs="*",
        default=list(DEFAULT_BLACKLIST),
        help="Path segments to exclude from the crawl (case-insensitive)",
    )
    parser.add_argument(
        "--robots-file",
        type=Path,
        default=None,
        help="Read robots rules from this file instead of fetching robots.txt",
    )
    parser.add_argument(
        "--ignore-crawl-delay",
        action="store_true",
        help="Do not widen request spacing to the robots.txt Crawl-delay",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Maximum number of pages fetched at once",
    )
    parser.add_argument(
        "--min-interval",
        type=float,
        default=1000.0,
        help="Minimum milliseconds between the start of two page fetches",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=3,
        help="Attempt budget for page fetches that time out",
    )
    parser.add_argument(
        "--backoff",
        type=float,
        default=1.0,
        help="Base delay in seconds for exponential retry backoff",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Navigation timeout in seconds",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=0.0,
        help="Seconds to wait after the page settles before reading HTML",
    )
    parser.add_argument(
        "--run-timeout",
        type=float,
        default=None,
        help="Abort the whole crawl after this many seconds",
    )
    parser.add_argument(
        "--breadcrumb-selector",
        default=DEFAULT_BREADCRUMB_SELECTOR,
        help="CSS selector matching breadcrumb items",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    return CrawlConfig(
        output_root=Path(args.output).resolve(),
        user_agent=args.user_agent,
        blacklist=tuple(args.blacklist),
        max_concurrent=args.concurrency,
        min_interval=args.min_interval / 1000.0,
        max_attempts=args.retries,
        backoff_base=args.backoff,
        navigation_timeout=args.timeout,
        wait_after_load=args.wait,
        run_timeout=args.run_timeout,
        breadcrumb_selector=args.breadcrumb_selector,
        robots_path=args.robots_file,
        respect_crawl_delay=not args.ignore_crawl_delay,
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    config = build_config(args)
    try:
        report = asyncio.run(run_crawl(args.url, config, origin=args.origin))
    except FatalInitError as exc:
        logger.error("Cannot start crawl: %s", exc)
        sys.exit(1)

    logger.info(
        "Finished in %.2fs (%d pages visited, %d dead ends, %d failed)%s",
        report.elapsed_seconds,
        len(report.visited),
        len(report.dead_ends),
        len(report.failed),
        " [timed out]" if report.timed_out else "",
    )
    if args.verbose:
        for url in report.failed:
            logger.debug("Failed: %s", url)


if __name__ == "__main__":
    main()
