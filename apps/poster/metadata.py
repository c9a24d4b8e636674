"""
Metadata resolver
-----------------
Best-effort {title, excerpt, image} for an article URL. Two strategies, in
order:

    1. treat the URL as an RSS/Atom feed and take its first entry
    2. GET the page and scan the raw markup for OpenGraph / <title> /
       description tags

Nothing in here raises. A failed strategy falls through, and a failed page
fetch yields empty fields; the poster layout has placeholders for those.

Public API:
    resolve(url, client=None) -> ArticleMetadata
    extract_page_meta(markup) -> ArticleMetadata
    entry_to_meta(entry, atom=False) -> ArticleMetadata
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any, Dict, Optional

import feedparser
import httpx

from apps.poster.config import settings
from apps.poster.models import ArticleMetadata

__all__ = [
    "resolve",
    "extract_page_meta",
    "entry_to_meta",
]

log = logging.getLogger("posterpulse.metadata")

# ============================== Patterns =============================

# Textual scan, not a DOM parse: attribute order and double quotes are
# expected exactly as written here.
_OG_TITLE_RE = re.compile(r'<meta property="og:title" content="([^"]+)"', re.I)
_TITLE_RE = re.compile(r"<title>([^<]+)</title>", re.I)
_OG_DESC_RE = re.compile(r'<meta property="og:description" content="([^"]+)"', re.I)
_DESC_RE = re.compile(r'<meta name="description" content="([^"]+)"', re.I)
_OG_IMAGE_RE = re.compile(r'<meta property="og:image" content="([^"]+)"', re.I)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

# ============================== Helpers ==============================

def _first_group(*patterns: re.Pattern, text: str) -> str:
    for pat in patterns:
        m = pat.search(text)
        if m:
            return m.group(1)
    return ""

def _snippet(s: Optional[str]) -> str:
    """Markup-free, single-spaced text from an entry body."""
    if not s:
        return ""
    s = _TAG_RE.sub(" ", s)
    s = html.unescape(s)
    return _WS_RE.sub(" ", s).strip()

def _entry_body(entry: Dict[str, Any], atom: bool) -> str:
    # RSS: <description> (content:encoded is the full article, not a teaser)
    # Atom: <content>
    if not atom:
        return entry.get("summary", "") or ""
    for c in entry.get("content") or []:
        if isinstance(c, dict) and c.get("value"):
            return c["value"]
    return ""

def _entry_enclosure(entry: Dict[str, Any]) -> str:
    for enc in entry.get("enclosures") or []:
        u = enc.get("href") or enc.get("url")
        if u:
            return u
    for lnk in entry.get("links") or []:
        if isinstance(lnk, dict) and lnk.get("rel") == "enclosure" and lnk.get("href"):
            return lnk["href"]
    return ""

def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.fetch_timeout,
        follow_redirects=True,
        headers={"User-Agent": settings.fetch_user_agent},
    )

# ============================== Extraction ===========================

def entry_to_meta(entry: Dict[str, Any], atom: bool = False) -> ArticleMetadata:
    return ArticleMetadata(
        title=entry.get("title", "") or "",
        excerpt=_snippet(_entry_body(entry, atom)),
        image=_entry_enclosure(entry),
    )

def extract_page_meta(markup: str) -> ArticleMetadata:
    """
    Scan page markup in priority order:
      title   og:title > <title>
      excerpt og:description > meta description
      image   og:image
    """
    if not markup:
        return ArticleMetadata()
    return ArticleMetadata(
        title=_first_group(_OG_TITLE_RE, _TITLE_RE, text=markup),
        excerpt=_first_group(_OG_DESC_RE, _DESC_RE, text=markup),
        image=_first_group(_OG_IMAGE_RE, text=markup),
    )

async def _from_feed(client: httpx.AsyncClient, url: str) -> Optional[ArticleMetadata]:
    try:
        r = await client.get(url)
        r.raise_for_status()
        parsed = feedparser.parse(r.content)
        entries = parsed.entries or []
        if not entries:
            return None
        atom = (parsed.get("version") or "").startswith("atom")
        return entry_to_meta(entries[0], atom=atom)
    except Exception as e:
        log.debug("feed attempt failed url=%s err=%s", url, type(e).__name__)
        return None

async def _from_page(client: httpx.AsyncClient, url: str) -> ArticleMetadata:
    try:
        r = await client.get(url)
        r.raise_for_status()
        return extract_page_meta(r.text)
    except Exception as e:
        log.debug("page fetch failed url=%s err=%s", url, type(e).__name__)
        return ArticleMetadata()

# ============================== Entry point ==========================

async def resolve(url: str, client: Optional[httpx.AsyncClient] = None) -> ArticleMetadata:
    """Feed first, page markup second, empty fields last. Never raises."""
    owns_client = client is None
    cli = client or _client()
    try:
        meta = await _from_feed(cli, url)
        if meta is not None:
            return meta
        return await _from_page(cli, url)
    finally:
        if owns_client:
            await cli.aclose()
