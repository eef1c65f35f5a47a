"""MCP server exposing the site crawler as a tool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .config import CrawlConfig, DEFAULT_BLACKLIST
from .crawler import run_crawl
from .models import CrawlReport

logger = logging.getLogger("sitesnap.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="sitesnap")


def format_report(report: CrawlReport, output_root: Path) -> str:
    lines = [
        f"Output: {output_root}",
        f"Visited: {len(report.visited)}",
        f"Already archived: {len(report.skipped_existing)}",
        f"Dead ends: {len(report.dead_ends)}",
        f"Failed: {len(report.failed)}",
        f"Media downloaded: {report.media_downloaded}",
        f"Elapsed: {report.elapsed_seconds:.2f}s",
    ]
    if report.timed_out:
        lines.append("Run timed out before the frontier was exhausted.")
    lines.extend(f"- failed: {url}" for url in report.failed)
    return "\n".join(lines)


@mcp.tool()
async def crawl_site(
    url: str,
    output_dir: str = "output",
    origin: Optional[str] = None,
    blacklist: Optional[List[str]] = None,
    run_timeout: Optional[float] = None,
) -> str:
    """Archive every in-scope page under a site and summarise the run."""

    output_root = Path(output_dir).expanduser().resolve()
    config = CrawlConfig(
        output_root=output_root,
        blacklist=tuple(blacklist) if blacklist is not None else DEFAULT_BLACKLIST,
        run_timeout=run_timeout,
    )
    report = await run_crawl(url, config, origin=origin)
    return format_report(report, output_root)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
