"""HTML extraction: title, breadcrumbs, links, media references, visible text."""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

import requests
from bs4 import BeautifulSoup, NavigableString, Tag

from .config import CrawlConfig
from .models import PageRecord
from .utils import canonicalize_url

logger = logging.getLogger("sitesnap")

CSS_URL_RE = re.compile(r"""url\(\s*['"]?(.*?)['"]?\s*\)""", re.IGNORECASE)

_NON_CONTENT = ("script", "style", "noscript", "template", "iframe", "svg", "head")

BLOCK_TAGS = frozenset(
    {
        "h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "dt", "dd", "td", "th",
        "caption", "figcaption", "blockquote", "pre", "address", "summary",
        "legend", "label", "button",
    }
)
CONTAINER_TAGS = frozenset(
    {
        "article", "aside", "footer", "header", "main", "nav", "section",
        "details", "dialog", "figure", "ul", "ol", "dl", "table", "thead",
        "tbody", "tfoot", "tr", "fieldset", "menu",
    }
)
INLINE_TAGS = frozenset(
    {
        "a", "abbr", "b", "bdi", "bdo", "cite", "code", "data", "del", "dfn",
        "em", "i", "ins", "kbd", "mark", "q", "rp", "rt", "ruby", "s", "samp",
        "small", "span", "strong", "sub", "sup", "time", "u", "var", "output",
    }
)

StylesheetFetcher = Callable[[str], Optional[str]]


class StylesheetLoader:
    """Fetches linked stylesheets over plain HTTP, best effort."""

    def __init__(self, session: requests.Session, timeout: float = 30.0) -> None:
        self.session = session
        self.timeout = timeout

    def __call__(self, url: str) -> Optional[str]:
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Failed to fetch stylesheet %s: %s", url, exc)
            return None
        return resp.text


def _text_of(tag: Optional[Tag]) -> str:
    if tag is None:
        return ""
    return tag.get_text(" ", strip=True)


def extract_links(soup: BeautifulSoup, page_url: str) -> Tuple[str, ...]:
    """Absolute, canonical anchor targets in document order, without duplicates."""
    links: List[str] = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#"):
            continue
        if href.lower().startswith("javascript:"):
            continue
        absolute = canonicalize_url(urljoin(page_url, href))
        if absolute is None or absolute in seen:
            continue
        seen.add(absolute)
        links.append(absolute)
    return tuple(links)


def extract_breadcrumbs(soup: BeautifulSoup, selector: str) -> Tuple[str, ...]:
    crumbs = (_text_of(item) for item in soup.select(selector))
    return tuple(crumb for crumb in crumbs if crumb)


def css_image_urls(css: str, extensions: Iterable[str]) -> List[str]:
    """``url(...)`` references in a stylesheet whose extension is allowed."""
    allowed = tuple(ext.lower() for ext in extensions)
    found = []
    for match in CSS_URL_RE.finditer(css):
        candidate = match.group(1).strip()
        if not candidate or candidate.startswith("data:"):
            continue
        path = urlsplit(candidate).path.lower()
        if path.endswith(allowed):
            found.append(candidate)
    return found


def extract_media_refs(
    soup: BeautifulSoup,
    page_url: str,
    config: CrawlConfig,
    stylesheet_fetcher: Optional[StylesheetFetcher] = None,
) -> Tuple[str, ...]:
    """Raw image ``src`` values, then CSS background images."""
    refs: List[str] = []
    for img in soup.find_all("img"):
        src = img.get("src")
        if src:
            refs.append(src)

    for style in soup.find_all("style"):
        refs.extend(css_image_urls(style.get_text(), config.css_image_extensions))

    if stylesheet_fetcher is not None:
        for link in soup.find_all("link", href=True):
            rel = [value.lower() for value in (link.get("rel") or [])]
            if "stylesheet" not in rel:
                continue
            sheet_url = urljoin(page_url, link["href"])
            css = stylesheet_fetcher(sheet_url)
            if not css:
                continue
            # Stylesheet URLs are relative to the sheet, not the page.
            refs.extend(
                urljoin(sheet_url, ref)
                for ref in css_image_urls(css, config.css_image_extensions)
            )

    deduped: List[str] = []
    for ref in refs:
        if ref not in deduped:
            deduped.append(ref)
    return tuple(deduped)


def _block_for(node: NavigableString) -> Optional[Tag]:
    """Nearest block ancestor, else nearest container or inline ancestor."""
    fallback: Optional[Tag] = None
    for parent in node.parents:
        name = parent.name
        if name in BLOCK_TAGS:
            return parent
        if fallback is None and (name in CONTAINER_TAGS or name in INLINE_TAGS):
            fallback = parent
    return fallback


def extract_visible_text(soup: BeautifulSoup) -> Tuple[str, ...]:
    """Text blocks from content-bearing elements, in document order."""
    root = soup.body or soup
    blocks: List[str] = []
    current: Optional[Tag] = None
    pieces: List[str] = []
    for node in root.find_all(string=True):
        if type(node) is not NavigableString:
            continue
        text = " ".join(node.split())
        if not text:
            continue
        block = _block_for(node)
        if block is None:
            continue
        if block is not current and pieces:
            blocks.append(" ".join(pieces))
            pieces = []
        current = block
        pieces.append(text)
    if pieces:
        blocks.append(" ".join(pieces))
    return tuple(blocks)


def extract_page(
    markup: str,
    page_url: str,
    config: CrawlConfig,
    stylesheet_fetcher: Optional[StylesheetFetcher] = None,
) -> PageRecord:
    """Turn rendered markup into an immutable ``PageRecord``."""
    soup = BeautifulSoup(markup, "html.parser")
    title = _text_of(soup.title)
    breadcrumbs = extract_breadcrumbs(soup, config.breadcrumb_selector)
    links = extract_links(soup, page_url)
    media_refs = extract_media_refs(soup, page_url, config, stylesheet_fetcher)

    for tag in soup(list(_NON_CONTENT)):
        tag.decompose()
    visible_text = extract_visible_text(soup)

    return PageRecord(
        url=page_url,
        title=title,
        breadcrumbs=breadcrumbs,
        links=links,
        media_refs=media_refs,
        visible_text=visible_text,
        raw_markup=markup,
    )
