# apps/poster/poster.py
#
# Builds the poster document that the rasterizer screenshots.
#
# LAYOUT (same for every template, only the palette changes):
#
#   +--------------------------------------+
#   | hero image (darkened)   [Source: x]  |
#   |                                      |
#   | TITLE                                |
#   +--------------------------------------+
#   | excerpt                              |
#   | Read more: <source url>              |
#   +--------------------------------------+
#
# NOTES:
# - Every externally sourced string goes through escape_html() before it is
#   substituted into the markup. That is the only injection defense.
# - Missing image -> flat "No image" panel, no <img> element at all.
# - Hostname extraction is strict: a source URL without scheme/host raises
#   InvalidSourceURL and the request fails (unlike the resolver, which never
#   raises).

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from apps.poster.config import settings
from apps.poster.models import ArticleMetadata, PosterSize

TITLE_PLACEHOLDER = "Title unavailable"
EXCERPT_PLACEHOLDER = "Summary unavailable."
NO_IMAGE_TEXT = "No image"


class InvalidSourceURL(ValueError):
    """Source URL has no scheme or host, so there is nothing to brand with."""


# -------------------------------------------------------------------
# helpers
# -------------------------------------------------------------------

def escape_html(s: object) -> str:
    # '&' first, otherwise the other entities get double-escaped
    return (
        str(s)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def source_hostname(url: str) -> str:
    try:
        p = urlparse(url)
        host = p.hostname
    except ValueError as e:
        raise InvalidSourceURL(f"invalid source url: {url!r}") from e
    if not p.scheme or not host:
        raise InvalidSourceURL(f"invalid source url: {url!r}")
    return host


# -------------------------------------------------------------------
# templates
# -------------------------------------------------------------------

_BASE_CSS = """
      @font-face { font-family: 'InterVar'; src: local('Arial'); }
      body { margin:0; font-family: InterVar, Arial, sans-serif; }
      .canvas { width:%(w)dpx; height:%(h)dpx; display:flex; flex-direction:column; overflow:hidden; }
      .hero { flex: 1 0 auto; position:relative; overflow:hidden; }
      .hero img { width:100%%; height:100%%; object-fit:cover; display:block; }
      .no-image { width:100%%; height:100%%; display:flex; align-items:center; justify-content:center; }
      .overlay { position:absolute; inset:0; display:flex; align-items:flex-end; padding:40px; }
      .source { font-size:14px; margin-top:12px; word-break:break-all; }
      .branding { position:absolute; right:20px; top:20px; padding:8px 12px; border-radius:8px; font-size:14px; }
"""

# template name -> palette block appended to _BASE_CSS
_TEMPLATE_CSS = {
    "bold": """
      .canvas { background:#fff; }
      .hero img { filter: brightness(0.6); }
      .no-image { background:#ddd; color:#666; }
      .title { color:#fff; font-size:56px; line-height:1.05; font-weight:700; text-shadow: 0 6px 18px rgba(0,0,0,0.45); }
      .meta { padding:28px; font-size:20px; color:#333; }
      .source { color:#666; }
      .branding { background:rgba(0,0,0,0.4); color:#fff; }
""",
    "clean": """
      .canvas { background:#f7f7f5; }
      .hero img { filter: brightness(0.75) saturate(0.9); }
      .no-image { background:#e9ecef; color:#8b95a7; }
      .title { color:#fff; font-size:48px; line-height:1.15; font-weight:500; letter-spacing:-0.5px; }
      .meta { padding:36px 40px; font-size:22px; line-height:1.45; color:#222; }
      .source { color:#8b95a7; }
      .branding { background:rgba(255,255,255,0.85); color:#222; }
""",
}

TEMPLATES = tuple(_TEMPLATE_CSS)

_DOCUMENT = """<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>%(css)s</style>
</head>
<body>
<div class="canvas template-%(template)s">
  <div class="hero">
    %(hero)s
    <div class="overlay">
      <div>
        <div class="title">%(title)s</div>
      </div>
      <div class="branding">Source: %(host)s</div>
    </div>
  </div>
  <div class="meta">
    <div class="excerpt">%(excerpt)s</div>
    <div class="source">Read more: %(source)s</div>
  </div>
</div>
</body>
</html>
"""


def _hero(image: str) -> str:
    if image:
        return f'<img src="{escape_html(image)}" alt="" />'
    return f'<div class="no-image">{NO_IMAGE_TEXT}</div>'


def build_poster_html(
    meta: ArticleMetadata,
    source_url: str,
    template: str = "bold",
    size: Optional[PosterSize] = None,
) -> str:
    """
    Render the poster document as a string. Unknown template names fall
    back to "bold" (the HTTP layer already rejects them).
    """
    w = size.w if size else settings.default_width
    h = size.h if size else settings.default_height
    palette = _TEMPLATE_CSS.get(template, _TEMPLATE_CSS["bold"])

    return _DOCUMENT % {
        "css": (_BASE_CSS % {"w": w, "h": h}) + palette,
        "template": template if template in _TEMPLATE_CSS else "bold",
        "hero": _hero(meta.image),
        "title": escape_html(meta.title or TITLE_PLACEHOLDER),
        "excerpt": escape_html(meta.excerpt or EXCERPT_PLACEHOLDER),
        "host": escape_html(source_hostname(source_url)),
        "source": escape_html(source_url),
    }
