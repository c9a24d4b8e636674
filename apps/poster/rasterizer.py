"""HTML -> PNG via headless Chromium, plus the temp-file artifact lifecycle."""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image
from playwright.async_api import async_playwright

from apps.poster.config import settings
from apps.poster.models import PosterSize

log = logging.getLogger("posterpulse.rasterizer")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# same flags the service has always launched Chromium with (containers)
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

_render_slots: Optional[asyncio.Semaphore] = None


def _slots() -> Optional[asyncio.Semaphore]:
    """Process-wide cap on live browser instances; None when uncapped."""
    global _render_slots
    if settings.max_concurrent_renders <= 0:
        return None
    if _render_slots is None:
        _render_slots = asyncio.Semaphore(settings.max_concurrent_renders)
    return _render_slots


def fit_to_size(png: bytes, size: PosterSize) -> bytes:
    """
    Crop or pad a screenshot so it is exactly size.w x size.h.
    A full-page capture can run past the viewport if content overflows.
    """
    with Image.open(BytesIO(png)) as img:
        if img.size == (size.w, size.h):
            return png
        log.debug("normalizing screenshot %sx%s -> %sx%s", *img.size, size.w, size.h)
        canvas = Image.new("RGB", (size.w, size.h), (255, 255, 255))
        canvas.paste(img.convert("RGB").crop((0, 0, min(img.width, size.w), min(img.height, size.h))), (0, 0))
        buf = BytesIO()
        canvas.save(buf, format="PNG")
        return buf.getvalue()


async def _screenshot(html: str, size: PosterSize) -> bytes:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True, args=BROWSER_ARGS)
        try:
            page = await browser.new_page(viewport={"width": size.w, "height": size.h})
            page.set_default_timeout(settings.render_timeout_ms)
            await page.set_content(html, wait_until="networkidle")
            return await page.screenshot(full_page=True, type="png")
        finally:
            await browser.close()


async def rasterize(html: str, size: PosterSize) -> bytes:
    """Launch a fresh browser, load the document, return PNG bytes of size w x h."""
    slots = _slots()
    if slots is None:
        png = await _screenshot(html, size)
    else:
        async with slots:
            png = await _screenshot(html, size)
    return fit_to_size(png, size)


# -------------------------------------------------------------------
# temp artifact
# -------------------------------------------------------------------

def write_artifact(png: bytes, tmp_dir: Optional[str] = None) -> Path:
    path = Path(tmp_dir or settings.tmp_dir) / f"poster-{uuid.uuid4()}.png"
    path.write_bytes(png)
    return path


def discard_artifact(path: Path) -> None:
    """Best-effort delete; a missing or locked file is not an error."""
    try:
        os.unlink(path)
    except OSError as e:
        log.warning("could not remove %s: %s", path, e)
