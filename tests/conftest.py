"""Shared fixtures and in-process fakes for the browser and HTTP layers."""

import io
from collections import defaultdict
from pathlib import Path

import pytest
import requests
from PIL import Image

from sitesnap.config import CrawlConfig
from sitesnap.render import SCREENSHOTS


class FakeResponse:
    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for ``requests.Session``; unknown URLs return 404."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.headers = {}

    def get(self, url, timeout=None, headers=None):
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        if isinstance(route, str):
            route = route.encode("utf-8")
        return FakeResponse(200, route)


class FakeRenderedPage:
    def __init__(self, url, markup):
        self.url = url
        self.markup = markup
        self.closed = False

    async def capture_screenshots(self, directory: Path):
        written = []
        for filename, viewport in SCREENSHOTS:
            target = directory / filename
            target.write_bytes(f"{viewport['width']}x{viewport['height']}".encode())
            written.append(target)
        return written

    async def close(self):
        self.closed = True


class FakeRenderer:
    """Serves markup by URL; ``failures`` scripts exceptions raised before success."""

    def __init__(self, pages=None, failures=None):
        self.pages = dict(pages or {})
        self.failures = defaultdict(list, {k: list(v) for k, v in (failures or {}).items()})
        self.calls = []
        self.rendered = []
        self.started = False
        self.closed = False

    async def __aenter__(self):
        self.started = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def render(self, url):
        self.calls.append(url)
        if self.failures[url]:
            raise self.failures[url].pop(0)
        page = FakeRenderedPage(url, self.pages[url])
        self.rendered.append(page)
        return page


def html_page(title, body="", breadcrumbs=()):
    crumbs = "".join(f"<li>{crumb}</li>" for crumb in breadcrumbs)
    return (
        f"<html><head><title>{title}</title></head><body>"
        f'<ul class="breadcrumb">{crumbs}</ul>{body}</body></html>'
    )


def image_bytes(fmt="PNG", size=(32, 32), color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


async def no_sleep(delay):
    return None


@pytest.fixture
def config(tmp_path):
    return CrawlConfig(
        output_root=tmp_path,
        min_interval=0.0,
        backoff_base=0.0,
        max_concurrent=3,
    )
